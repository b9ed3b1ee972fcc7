"""
Key-variant index.

Per method, the set of every fingerprint ever written, stored in the same
backing store under ``<method key>_keys``. Stores without key enumeration can
then still invalidate every cached variant of a method.
"""

from typing import FrozenSet, List, Optional

from shared.errors import StoreReadFailure, StoreWriteFailure
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..codec.payload import PayloadCodec
from ..policy.expiration import NO_EXPIRATION
from ..store.base import KeyValueStore
from .entry import CacheEntry


INDEX_KEY_SUFFIX = "_keys"


class KeyVariantIndex:
    """Registry of cache key variants per method."""

    def __init__(
        self,
        store: KeyValueStore,
        codec: Optional[PayloadCodec] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.codec = codec or PayloadCodec()
        self.metrics = metrics
        self.logger = get_logger("method_cache.key_index")

    @staticmethod
    def index_key(method_key: str) -> str:
        return f"{method_key}{INDEX_KEY_SUFFIX}"

    async def read(self, method_key: str) -> CacheEntry[FrozenSet[str]]:
        """Read the variants of a method. Store and decode errors propagate."""
        data = await self.store.get(self.index_key(method_key))
        if not data:
            return CacheEntry()
        return CacheEntry(frozenset(self.codec.decode(data, List[str])), True)

    async def record(self, method_key: str, cache_key: str) -> bool:
        """Add a written fingerprint to the index of its method.

        Writes only when the set grew. Returns whether a write happened; failures
        are logged and leave the index as it was.
        """
        index_key = self.index_key(method_key)

        try:
            entry = await self.read(method_key)
        except Exception as e:
            failure = StoreReadFailure(index_key, e)
            self.logger.error("Error while reading key index", key=index_key, error=failure.message)
            self._record_failure("index")
            return False

        variants = set(entry.value or ())
        if cache_key in variants:
            return False
        variants.add(cache_key)

        try:
            await self.store.set(index_key, self.codec.encode(sorted(variants), List[str]), NO_EXPIRATION)
        except Exception as e:
            failure = StoreWriteFailure(index_key, e)
            # The written value stays reachable through its own TTL only
            self.logger.error(
                "Error while writing key index; entry is unreachable by invalidation",
                key=index_key,
                cache_key=cache_key,
                error=failure.message
            )
            self._record_failure("index")
            return False

        if self.metrics:
            self.metrics.increment_counter("method_cache_index_updates_total", method=method_key)
        return True

    async def clear(self, method_key: str) -> List[str]:
        """Keys to remove to invalidate a method. Has no side effects.

        With an index: every listed variant, the bare method key when it is not
        listed, then the index itself. Without one: only the bare method key.
        """
        index_key = self.index_key(method_key)

        try:
            entry = await self.read(method_key)
        except Exception as e:
            failure = StoreReadFailure(index_key, e)
            self.logger.error("Error while reading key index", key=index_key, error=failure.message)
            self._record_failure("index")
            entry = CacheEntry()

        if not entry.loaded:
            return [method_key]

        keys = sorted(entry.value or ())
        if method_key not in entry.value:
            keys.append(method_key)
        keys.append(index_key)
        return keys

    def _record_failure(self, operation: str):
        if self.metrics:
            self.metrics.record_store_failure(operation)
