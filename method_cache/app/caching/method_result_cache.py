"""
Cache-aside engine for method results.
"""

import time
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from shared.errors import CacheKeyError, EncodingError, StoreReadFailure, StoreWriteFailure
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..codec.payload import PayloadCodec
from ..keys.provider import CacheKeyProvider
from ..policy.expiration import NO_EXPIRATION, translate_expiration
from ..policy.models import MethodCachePolicy, MethodIdentity
from ..policy.options import CacheOptions
from ..store.base import KeyValueStore
from .entry import CacheEntry
from .key_index import KeyVariantIndex

T = TypeVar("T")


class MethodResultCache:
    """Read-through / write-through cache for method results.

    A broken store never breaks the wrapped method: read failures count as
    misses and write failures only skip persistence. Errors of the real
    computation always reach the caller unchanged.
    """

    def __init__(
        self,
        options: CacheOptions,
        key_provider: CacheKeyProvider,
        store: KeyValueStore,
        codec: Optional[PayloadCodec] = None,
        index: Optional[KeyVariantIndex] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.options = options
        self.key_provider = key_provider
        self.store = store
        self.codec = codec or PayloadCodec()
        self.metrics = metrics
        self.index = index or KeyVariantIndex(store, self.codec, metrics)
        self.logger = get_logger("method_cache.engine")

    def build_cache_key(self, identity: MethodIdentity, arguments: Optional[Sequence[Any]]) -> str:
        """Fingerprint of a call. Raises CacheKeyError when an argument cannot be encoded."""
        try:
            return self.key_provider.get_cache_key(identity, arguments)
        except EncodingError as e:
            raise CacheKeyError(
                f"Cannot build cache key for '{identity}'",
                {"method": str(identity), "reason": e.message, **e.details}
            ) from e

    async def get_or_create(
        self,
        identity: MethodIdentity,
        arguments: Optional[Sequence[Any]],
        policy: MethodCachePolicy,
        factory: Callable[[], Awaitable[T]],
        return_type: Any = Any,
        cache_key: Optional[str] = None,
    ) -> T:
        """Return the cached result of a call, computing and storing it on a miss.

        ``cache_key`` skips key building when the caller already has it.
        """
        if cache_key is None:
            cache_key = self.build_cache_key(identity, arguments)

        value_type = policy.result_type or return_type
        method = str(identity)

        try:
            entry = await self.get_entry(cache_key, value_type)
        except Exception as e:
            failure = StoreReadFailure(cache_key, e)
            self.logger.error("Error while reading value from cache", key=cache_key, error=failure.message)
            self.record_store_failure("read")
            entry = CacheEntry()

        if entry.loaded:
            self.logger.debug("Cache hit", key=cache_key)
            if self.metrics:
                self.metrics.record_lookup(method, hit=True)
            return entry.value

        self.logger.debug("Cache miss", key=cache_key)
        if self.metrics:
            self.metrics.record_lookup(method, hit=False)

        start = time.perf_counter()
        value = await factory()
        if self.metrics:
            self.metrics.observe_histogram(
                "method_cache_factory_duration_seconds",
                time.perf_counter() - start,
                method=method
            )

        try:
            written = await self.set_entry(cache_key, value, value_type, policy)
        except Exception as e:
            failure = StoreWriteFailure(cache_key, e)
            self.logger.error("Error while writing value to cache", key=cache_key, error=failure.message)
            self.record_store_failure("write")
            written = False

        if not written:
            return value

        await self.index.record(self.key_provider.get_method_key(identity), cache_key)
        return value

    async def get_entry(self, key: str, value_type: Any = Any) -> CacheEntry:
        """Typed read. Store and decode errors propagate."""
        data = await self.store.get(key)
        if not data:
            return CacheEntry()
        return CacheEntry(self.codec.decode(data, value_type), True)

    async def set_entry(
        self,
        key: str,
        value: Any,
        value_type: Any = Any,
        policy: Optional[MethodCachePolicy] = None,
    ) -> bool:
        """Typed write with the TTL of ``policy``. Returns whether the store was written."""
        payload = self.codec.encode(value, value_type)
        if not payload:
            return False

        expiration = translate_expiration(policy) if policy is not None else NO_EXPIRATION
        await self.store.set(key, payload, expiration)
        return True

    def record_store_failure(self, operation: str):
        if self.metrics:
            self.metrics.record_store_failure(operation)
