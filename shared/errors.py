"""
Shared error handling for the method result cache.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class MethodCacheException(Exception):
    """Base exception for the method result cache."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(MethodCacheException):
    """Invalid cache configuration, raised at setup time."""

    def __init__(self, message: str = "Invalid cache configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class EncodingError(MethodCacheException):
    """A value could not be encoded or decoded."""

    def __init__(self, message: str = "Encoding failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("ENCODING_ERROR", message, details)


class CacheKeyError(EncodingError):
    """The fingerprint of a method call could not be built."""

    def __init__(self, message: str = "Cache key could not be built", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.code = "CACHE_KEY_ERROR"


class StoreFailure(MethodCacheException):
    """Backing store errors. Logged by the engine, never propagated."""

    def __init__(self, code: str, key: str, error: Exception):
        super().__init__(
            code,
            f"{type(error).__name__}: {error}",
            {"key": key, "error_type": type(error).__name__}
        )
        self.key = key
        self.error = error


class StoreReadFailure(StoreFailure):
    """Reading from the backing store failed."""

    def __init__(self, key: str, error: Exception):
        super().__init__("STORE_READ_FAILURE", key, error)


class StoreWriteFailure(StoreFailure):
    """Writing to the backing store failed."""

    def __init__(self, key: str, error: Exception):
        super().__init__("STORE_WRITE_FAILURE", key, error)


class StoreRemoveFailure(StoreFailure):
    """Removing from the backing store failed."""

    def __init__(self, key: str, error: Exception):
        super().__init__("STORE_REMOVE_FAILURE", key, error)


class ServiceNotFoundError(MethodCacheException):
    """No cacheable service is registered under the requested name."""

    def __init__(self, service: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_NOT_FOUND", f"Unknown cacheable service: {service}", details)
