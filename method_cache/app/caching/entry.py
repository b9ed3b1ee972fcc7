"""
Read-side result wrapper.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and whether it was loaded. ``loaded=False`` is the only miss signal."""
    value: Optional[T] = None
    loaded: bool = False
