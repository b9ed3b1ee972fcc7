"""
Admin service for the method result cache.

Exposes health, Prometheus metrics, the registered cache policies and
invalidation endpoints for the services wired into a ``MethodCaching``.
"""

from typing import Dict, Optional

from prometheus_client import CollectorRegistry

from shared.base_service import BaseService
from shared.config import CacheSettings, get_config
from shared.errors import MethodCacheException, ServiceNotFoundError
from shared.metrics import MetricsCollector
from .registration import MethodCaching, build_method_caching, registered_methods
from .store.redis_store import RedisStore


class MethodCacheService(BaseService):
    """Method cache admin service."""

    def __init__(self, caching: MethodCaching, config: Optional[CacheSettings] = None, metrics: Optional[MetricsCollector] = None):
        self.caching = caching
        config = config or get_config()
        super().__init__(config.service_name, config, metrics)

        @self.app.on_event("startup")
        async def _startup():
            if isinstance(self.caching.store, RedisStore):
                try:
                    await self.caching.store.start()
                except MethodCacheException as e:
                    # Lookups fail open until the store is reachable
                    self.logger.error("Backing store unavailable at startup", error=e.message)

        @self.app.on_event("shutdown")
        async def _shutdown():
            if isinstance(self.caching.store, RedisStore):
                await self.caching.store.stop()

    def _setup_routes(self):
        """Set up cache admin routes."""
        super()._setup_routes()

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "Method result cache admin service",
                "version": "1.0.0",
                "store": type(self.caching.store).__name__,
                "services": sorted(self.caching.service_types)
            }

        @self.app.get("/api/v1/cache/policies")
        async def list_policies():
            """Cacheable methods of every registered service."""
            methods = registered_methods(self.caching)
            return {"methods": methods, "count": len(methods)}

        @self.app.post("/api/v1/cache/invalidate/{service}")
        async def invalidate_service(service: str):
            """Invalidate every cacheable method of a service."""
            service_type = self.caching.find_service_type(service)
            removed = await self.caching.invalidator.invalidate_all(service_type)
            self.logger.info("Service cache invalidated", service=service, methods=sorted(removed))
            return {
                "service": f"{service_type.__module__}.{service_type.__qualname__}",
                "invalidated": removed
            }

        @self.app.post("/api/v1/cache/invalidate/{service}/{method}")
        async def invalidate_method(service: str, method: str):
            """Invalidate every cached variant of one method."""
            service_type = self.caching.find_service_type(service)
            if method not in self.caching.cacheable_methods(service_type):
                raise ServiceNotFoundError(
                    f"{service}.{method}",
                    {"service": service, "method": method}
                )
            removed = await self.caching.invalidator.invalidate_method(service_type, method)
            return {
                "service": f"{service_type.__module__}.{service_type.__qualname__}",
                "method": method,
                "invalidated": removed
            }

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check the backing store."""
        healthy = await self.caching.store.health_check()
        return {"store": "ok" if healthy else "error"}


def create_app(caching: Optional[MethodCaching] = None, config: Optional[CacheSettings] = None):
    """Create the cache admin application."""
    config = config or get_config()
    metrics = MetricsCollector(config.service_name, CollectorRegistry())
    caching = caching or build_method_caching(config, metrics=metrics)
    service = MethodCacheService(caching, config, metrics)
    return service.app


if __name__ == "__main__":
    settings = get_config()
    service = MethodCacheService(build_method_caching(settings), settings)
    service.run()
