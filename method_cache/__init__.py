"""
Method result caching for async services.
"""

from .app.caching import CacheEntry, CacheInvalidator, KeyVariantIndex, MethodResultCache
from .app.keys import CacheKeyProvider
from .app.policy import (
    CacheConfigurationBuilder,
    CacheOptions,
    ExpirationInstruction,
    ExpirationKind,
    MethodCachePolicy,
    MethodIdentity,
    cacheable,
    translate_expiration,
)
from .app.registration import MethodCaching, add_method_result_caching, build_method_caching, create_store
from .app.store import InMemoryStore, KeyValueStore, RedisStore

__all__ = [
    "CacheConfigurationBuilder",
    "CacheEntry",
    "CacheInvalidator",
    "CacheKeyProvider",
    "CacheOptions",
    "ExpirationInstruction",
    "ExpirationKind",
    "InMemoryStore",
    "KeyValueStore",
    "KeyVariantIndex",
    "MethodCachePolicy",
    "MethodCaching",
    "MethodIdentity",
    "MethodResultCache",
    "RedisStore",
    "add_method_result_caching",
    "build_method_caching",
    "cacheable",
    "create_store",
    "translate_expiration",
]
