"""
Expiration policy translation.

Turns the declarative expiration fields of a ``MethodCachePolicy`` into the
concrete TTL instruction handed to the backing store.
"""

import math
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional

from .models import MethodCachePolicy


class ExpirationKind(str, Enum):
    """Store TTL kinds."""
    NONE = "none"          # Kept until explicitly invalidated
    ABSOLUTE = "absolute"  # Fixed from write time
    SLIDING = "sliding"    # Reset on every read


@dataclass(frozen=True)
class ExpirationInstruction:
    """TTL instruction for a single store write."""
    kind: ExpirationKind = ExpirationKind.NONE
    duration: Optional[timedelta] = None

    @classmethod
    def absolute_in(cls, duration: timedelta) -> "ExpirationInstruction":
        return cls(ExpirationKind.ABSOLUTE, duration)

    @classmethod
    def sliding_window(cls, duration: timedelta) -> "ExpirationInstruction":
        return cls(ExpirationKind.SLIDING, duration)

    @property
    def expires(self) -> bool:
        return self.kind is not ExpirationKind.NONE

    @property
    def seconds(self) -> int:
        """Whole seconds for stores that only accept integral TTLs (rounded up)."""
        if self.duration is None:
            return 0
        return max(1, math.ceil(self.duration.total_seconds()))


NO_EXPIRATION = ExpirationInstruction()


def translate_expiration(policy: MethodCachePolicy) -> ExpirationInstruction:
    """Translate a method cache policy into a store TTL instruction."""
    duration = timedelta(
        hours=policy.expiration_hours,
        minutes=policy.expiration_minutes,
        seconds=policy.expiration_seconds,
    )

    if duration <= timedelta(0):
        return NO_EXPIRATION

    if policy.sliding_expiration:
        return ExpirationInstruction.sliding_window(duration)

    return ExpirationInstruction.absolute_in(duration)
