"""
Backing key-value store interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..policy.expiration import NO_EXPIRATION, ExpirationInstruction


class KeyValueStore(ABC):
    """Asynchronous get/set/remove store with optional per-entry expiration.

    ``get`` returns ``None`` for an absent key. Implementations raise on
    infrastructure errors; the cache engine decides what is fatal.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Get the raw bytes stored under ``key``."""

    @abstractmethod
    async def set(self, key: str, value: bytes, expiration: ExpirationInstruction = NO_EXPIRATION) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove ``key``; absent keys are not an error."""

    async def health_check(self) -> bool:
        """Check store health."""
        return True
