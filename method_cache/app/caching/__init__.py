"""
Method cache engine package.

Cache-aside lookups for method calls, the per-method key-variant index and
bulk invalidation built on top of it.
"""

from .entry import CacheEntry
from .invalidator import CacheInvalidator
from .key_index import KeyVariantIndex
from .method_result_cache import MethodResultCache

__all__ = ["CacheEntry", "CacheInvalidator", "KeyVariantIndex", "MethodResultCache"]
