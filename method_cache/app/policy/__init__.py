"""
Cache policy package.

Identifies cacheable methods, resolves their policies and translates
expiration settings into store TTL instructions.
"""

from .decorators import cacheable
from .expiration import (
    NO_EXPIRATION,
    ExpirationInstruction,
    ExpirationKind,
    translate_expiration,
)
from .models import MethodCachePolicy, MethodIdentity
from .options import CacheConfigurationBuilder, CacheOptions, public_methods

__all__ = [
    "NO_EXPIRATION",
    "CacheConfigurationBuilder",
    "CacheOptions",
    "ExpirationInstruction",
    "ExpirationKind",
    "MethodCachePolicy",
    "MethodIdentity",
    "cacheable",
    "public_methods",
    "translate_expiration",
]
