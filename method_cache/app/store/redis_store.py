"""
Redis backed key-value store.

Each entry is a Redis hash holding the payload and its sliding window, so a
read can re-arm the TTL of sliding entries:

    <key> -> {"data": <payload bytes>, "sldexp": <sliding window seconds or 0>}
"""

from typing import Optional

import redis.asyncio as redis

from shared.errors import MethodCacheException
from shared.logging import get_logger
from ..policy.expiration import NO_EXPIRATION, ExpirationInstruction, ExpirationKind
from .base import KeyValueStore


class RedisStore(KeyValueStore):
    """Redis store for cached method results."""

    DATA_FIELD = "data"
    SLIDING_FIELD = "sldexp"

    def __init__(self, redis_url: str, socket_timeout: float = 5.0, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.socket_timeout = socket_timeout
        self.logger = get_logger("method_cache.store.redis")
        self._redis: Optional[redis.Redis] = client

    async def start(self):
        """Connect and verify the connection."""
        try:
            redis_client = await self._get_redis()
            await redis_client.ping()
            self.logger.info("Redis store started", redis_url=self.redis_url)

        except Exception as e:
            self.logger.error("Failed to start Redis store", error=str(e))
            raise MethodCacheException("REDIS_START_FAILED", str(e))

    async def stop(self):
        """Close the connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("Redis store stopped")

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                decode_responses=False,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                retry_on_timeout=True,
                health_check_interval=30
            )
        return self._redis

    async def get(self, key: str) -> Optional[bytes]:
        redis_client = await self._get_redis()
        data, sliding = await redis_client.hmget(key, self.DATA_FIELD, self.SLIDING_FIELD)
        if data is None:
            return None

        sliding_seconds = int(sliding or 0)
        if sliding_seconds > 0:
            await redis_client.expire(key, sliding_seconds)

        return data

    async def set(self, key: str, value: bytes, expiration: ExpirationInstruction = NO_EXPIRATION) -> None:
        redis_client = await self._get_redis()
        sliding_seconds = expiration.seconds if expiration.kind is ExpirationKind.SLIDING else 0

        async with redis_client.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            pipe.hset(key, mapping={self.DATA_FIELD: value, self.SLIDING_FIELD: sliding_seconds})
            if expiration.expires:
                pipe.expire(key, expiration.seconds)
            await pipe.execute()

        self.logger.debug("Stored entry", key=key, expiration=expiration.kind.value, ttl=expiration.seconds)

    async def remove(self, key: str) -> None:
        redis_client = await self._get_redis()
        await redis_client.delete(key)

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            redis_client = await self._get_redis()
            await redis_client.ping()
            return True
        except Exception:
            return False
