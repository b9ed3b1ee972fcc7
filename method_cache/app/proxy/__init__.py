"""
Interception package: proxies that route cacheable service calls through
the cache engine.
"""

from .interceptor import CacheInterceptor, CacheProxy, CacheProxyFactory, CachedMethod

__all__ = ["CacheInterceptor", "CacheProxy", "CacheProxyFactory", "CachedMethod"]
