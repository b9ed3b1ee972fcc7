"""
Method identity and per-method cache policy models.
"""

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


METHOD_KEY_PREFIX = "method_result_cache_"


@dataclass(frozen=True)
class MethodIdentity:
    """Declaring service type plus method name. Derived from class metadata only."""
    service_type: type
    method_name: str

    @property
    def qualified_name(self) -> str:
        """Fully qualified name of the declaring service type."""
        return f"{self.service_type.__module__}.{self.service_type.__qualname__}"

    def __str__(self) -> str:
        return f"{self.qualified_name}.{self.method_name}"


class MethodCachePolicy(BaseModel):
    """Per-method cache configuration."""

    model_config = ConfigDict(frozen=True)

    expiration_hours: int = Field(default=0, ge=0, description="Expiration hours")
    expiration_minutes: int = Field(default=0, ge=0, description="Expiration minutes")
    expiration_seconds: int = Field(default=0, ge=0, description="Expiration seconds")
    sliding_expiration: bool = Field(default=False, description="Reset the TTL on every read")
    result_type: Optional[Any] = Field(
        default=None,
        description="Type to decode cached values as, when the declared return type is abstract"
    )

    def describe(self) -> dict:
        """JSON friendly view of the policy."""
        data = self.model_dump(exclude={"result_type"})
        data["result_type"] = _type_label(self.result_type)
        return data


def _type_label(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, type):
        return f"{value.__module__}.{value.__qualname__}"
    return repr(value)
