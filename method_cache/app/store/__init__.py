"""
Store package.

Backing key-value stores for cached method results: an in-process store
used by default and a Redis store for shared caches.
"""

from .base import KeyValueStore
from .memory import InMemoryStore
from .redis_store import RedisStore

__all__ = ["InMemoryStore", "KeyValueStore", "RedisStore"]
