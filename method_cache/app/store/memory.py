"""
In-process key-value store, used when no dedicated store is configured.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from shared.logging import get_logger
from ..policy.expiration import NO_EXPIRATION, ExpirationInstruction, ExpirationKind
from .base import KeyValueStore

DEFAULT_SCAN_INTERVAL_SECONDS = 60.0


@dataclass
class _MemoryEntry:
    value: bytes
    expires_at: Optional[float] = None
    sliding_seconds: Optional[float] = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class InMemoryStore(KeyValueStore):
    """Dictionary backed store honoring absolute and sliding expiration.

    Expired entries are dropped when read, and at most every ``scan_interval``
    seconds a read or write sweeps out every expired entry, so keys that are
    never read again do not pile up.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        scan_interval: float = DEFAULT_SCAN_INTERVAL_SECONDS,
    ):
        self._clock = clock
        self._entries: Dict[str, _MemoryEntry] = {}
        self._scan_interval = scan_interval
        self._last_scan = clock()
        self.logger = get_logger("method_cache.store.memory")

    async def get(self, key: str) -> Optional[bytes]:
        self._scan_expired()
        entry = self._live_entry(key)
        if entry is None:
            return None

        if entry.sliding_seconds is not None:
            entry.expires_at = self._clock() + entry.sliding_seconds

        return entry.value

    async def set(self, key: str, value: bytes, expiration: ExpirationInstruction = NO_EXPIRATION) -> None:
        self._scan_expired()
        entry = _MemoryEntry(value=bytes(value))

        if expiration.kind is not ExpirationKind.NONE:
            seconds = expiration.duration.total_seconds()
            entry.expires_at = self._clock() + seconds
            if expiration.kind is ExpirationKind.SLIDING:
                entry.sliding_seconds = seconds

        self._entries[key] = entry

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def keys(self) -> List[str]:
        """Keys of all live entries."""
        return [key for key in list(self._entries) if self._live_entry(key) is not None]

    def __len__(self) -> int:
        return len(self.keys())

    def evict_expired(self) -> int:
        """Drop every expired entry. Returns how many were dropped."""
        now = self._clock()
        self._last_scan = now

        expired = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in expired:
            del self._entries[key]

        if expired:
            self.logger.debug("Evicted expired entries", count=len(expired))
        return len(expired)

    def _scan_expired(self):
        if self._clock() - self._last_scan >= self._scan_interval:
            self.evict_expired()

    def _live_entry(self, key: str) -> Optional[_MemoryEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.expired(self._clock()):
            del self._entries[key]
            self.logger.debug("Evicted expired entry", key=key)
            return None

        return entry
