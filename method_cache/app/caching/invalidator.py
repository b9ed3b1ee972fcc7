"""
Invalidation of cached method results.
"""

import asyncio
from typing import Dict, List

from shared.errors import StoreRemoveFailure
from shared.logging import get_logger
from ..policy.models import MethodIdentity
from ..policy.options import public_methods
from .method_result_cache import MethodResultCache


class CacheInvalidator:
    """Removes every cached variant of a method, or of all methods of a service type."""

    def __init__(self, cache: MethodResultCache):
        self.cache = cache
        self.logger = get_logger("method_cache.invalidator")

    async def invalidate_method(self, service_type: type, method_name: str) -> List[str]:
        """Invalidate one method. Returns the keys that were targeted."""
        if method_name not in public_methods(service_type):
            self.logger.debug("Nothing to invalidate", service=service_type.__qualname__, method=method_name)
            return []

        identity = MethodIdentity(service_type, method_name)
        if self.cache.options.get_policy(identity) is None:
            return []

        return await self._invalidate(identity)

    async def invalidate_all(self, service_type: type) -> Dict[str, List[str]]:
        """Invalidate every cacheable public method of a service type."""
        names = list(public_methods(service_type))
        results = await asyncio.gather(*(
            self.invalidate_method(service_type, name) for name in names
        ))
        return {name: keys for name, keys in zip(names, results) if keys}

    async def _invalidate(self, identity: MethodIdentity) -> List[str]:
        method_key = self.cache.key_provider.get_method_key(identity)
        keys = await self.cache.index.clear(method_key)

        results = await asyncio.gather(
            *(self.cache.store.remove(key) for key in keys),
            return_exceptions=True
        )

        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                failure = StoreRemoveFailure(key, result)
                self.logger.error("Error while removing value from cache", key=key, error=failure.message)
                self.cache.record_store_failure("remove")

        if self.cache.metrics:
            self.cache.metrics.increment_counter("method_cache_invalidations_total", method=str(identity))

        self.logger.info("Invalidated method cache", method=str(identity), keys=len(keys))
        return keys
