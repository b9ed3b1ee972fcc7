"""
Shared configuration management for the method result cache.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="METHOD_CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Backing store
    store_backend: Literal["memory", "redis"] = Field(default="memory")
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_socket_timeout: float = Field(default=5.0)

    # Appended to every cache key, e.g. to keep environments apart
    key_suffix: Optional[str] = Field(default=None)


class CacheSettings(BaseConfig):
    """Settings for the cache admin service."""

    service_name: str = "method_cache"
    host: str = "0.0.0.0"
    port: int = 8020


def get_config(**overrides) -> CacheSettings:
    """Get cache settings from the environment, with explicit overrides."""
    return CacheSettings(**overrides)
