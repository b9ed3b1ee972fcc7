"""
Wiring of the method result cache.

``add_method_result_caching`` assembles options, key provider, engine,
interceptor, proxy factory and invalidator around one backing store.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from shared.config import BaseConfig
from shared.errors import ConfigurationError, ServiceNotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .caching.invalidator import CacheInvalidator
from .caching.method_result_cache import MethodResultCache
from .keys.provider import CacheKeyProvider
from .policy.options import CacheConfigurationBuilder, CacheOptions, SuffixFactory
from .proxy.interceptor import CacheInterceptor, CacheProxyFactory, CachedMethod
from .store.base import KeyValueStore
from .store.memory import InMemoryStore
from .store.redis_store import RedisStore

logger = get_logger("method_cache.registration")


@dataclass
class MethodCaching:
    """The assembled cache components."""
    options: CacheOptions
    store: KeyValueStore
    key_provider: CacheKeyProvider
    cache: MethodResultCache
    interceptor: CacheInterceptor
    proxy_factory: CacheProxyFactory
    invalidator: CacheInvalidator
    service_types: Dict[str, type] = field(default_factory=dict)

    def wrap_services(self, services: Mapping[type, Any]) -> Dict[type, Any]:
        """Validate service types and replace the cacheable ones with proxies.

        Raises ConfigurationError before any call is served when a service type
        carries a cache tag it cannot honor.
        """
        wrapped: Dict[type, Any] = {}
        for service_type, implementation in services.items():
            if self.options.is_cacheable_service_type(service_type):
                self.register_service_type(service_type)
                wrapped[service_type] = self.proxy_factory.create(service_type, implementation)
                logger.info("Caching enabled for service", service=service_type.__qualname__)
            else:
                wrapped[service_type] = implementation
        return wrapped

    def register_service_type(self, service_type: type):
        """Make a service type addressable by name for listing and invalidation."""
        self.service_types[f"{service_type.__module__}.{service_type.__qualname__}"] = service_type

    def find_service_type(self, name: str) -> type:
        """Look up a registered service type by qualified or simple name."""
        service_type = self.service_types.get(name)
        if service_type is not None:
            return service_type

        matches = [t for t in self.service_types.values() if t.__qualname__ == name or t.__name__ == name]
        if len(matches) == 1:
            return matches[0]

        details = {"candidates": sorted(self.service_types)} if matches else {}
        raise ServiceNotFoundError(name, details)

    def cacheable_methods(self, service_type: type) -> Dict[str, CachedMethod]:
        return self.proxy_factory.describe(service_type)


def add_method_result_caching(
    configure: Optional[Callable[[CacheConfigurationBuilder], Any]] = None,
    cache_key_suffix_factory: Optional[SuffixFactory] = None,
    store: Optional[KeyValueStore] = None,
    default_to_memory_store: bool = True,
    metrics: Optional[MetricsCollector] = None,
) -> MethodCaching:
    """Assemble the method result cache."""
    if store is None:
        if not default_to_memory_store:
            raise ConfigurationError(
                "A backing store is required when the in-memory default is disabled"
            )
        store = InMemoryStore()

    builder = CacheConfigurationBuilder()
    if configure is not None:
        configure(builder)
    options = builder.build(cache_key_suffix_factory)

    key_provider = CacheKeyProvider(options)
    cache = MethodResultCache(options, key_provider, store, metrics=metrics)
    interceptor = CacheInterceptor(cache)

    logger.info(
        "Method result cache configured",
        store=type(store).__name__,
        configured_services=len(options.configurations)
    )

    return MethodCaching(
        options=options,
        store=store,
        key_provider=key_provider,
        cache=cache,
        interceptor=interceptor,
        proxy_factory=CacheProxyFactory(interceptor, options),
        invalidator=CacheInvalidator(cache),
    )


def create_store(settings: BaseConfig) -> KeyValueStore:
    """Backing store selected by settings."""
    if settings.store_backend == "redis":
        return RedisStore(settings.redis_url, socket_timeout=settings.redis_socket_timeout)
    return InMemoryStore()


def build_method_caching(
    settings: BaseConfig,
    configure: Optional[Callable[[CacheConfigurationBuilder], Any]] = None,
    metrics: Optional[MetricsCollector] = None,
) -> MethodCaching:
    """Assemble the cache from settings."""
    suffix = settings.key_suffix
    return add_method_result_caching(
        configure=configure,
        cache_key_suffix_factory=(lambda: suffix) if suffix else None,
        store=create_store(settings),
        metrics=metrics,
    )


def registered_methods(caching: MethodCaching) -> List[Dict[str, Any]]:
    """Listing of every cacheable method of the registered service types."""
    listing: List[Dict[str, Any]] = []
    for name in sorted(caching.service_types):
        for method_name, method in caching.cacheable_methods(caching.service_types[name]).items():
            listing.append({
                "service": name,
                "method": method_name,
                "method_key": caching.key_provider.get_method_key(method.identity),
                "policy": method.policy.describe(),
            })
    return listing
