import logging
import time
from typing import Callable, Protocol

from cachetools import TLRUCache
from redis.asyncio import Redis, RedisError

from app.core.config import Settings
from app.core.errors import CacheUnavailableError

logger = logging.getLogger(__name__)


class CacheClient(Protocol):
    """
    Key-value store with TTL expiry.

    ``get`` returns None on an explicit miss and raises CacheUnavailableError
    on transport failure, so callers can tell the two apart.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def delete(self, *keys: str) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisCacheClient:
    def __init__(self, redis: Redis):
        self._redis = redis

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisCacheClient":
        options = dict(
            encoding="utf-8",
            decode_responses=True,
            max_connections=settings.redis_pool_size,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )
        if settings.redis_dsn.startswith("rediss://") and settings.redis_tls_insecure:
            options["ssl_cert_reqs"] = "none"
        return cls(Redis.from_url(settings.redis_dsn, **options))

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except RedisError as e:
            logger.error(f"Redis GET failed: {e}")
            raise CacheUnavailableError(f"cache GET failed for {key}") from e

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._redis.set(key, value, ex=ttl)
        except RedisError as e:
            logger.error(f"Redis SET failed: {e}")
            raise CacheUnavailableError(f"cache SET failed for {key}") from e

    async def delete(self, *keys: str) -> None:
        try:
            await self._redis.delete(*keys)
        except RedisError as e:
            logger.error(f"Redis DELETE failed: {e}")
            raise CacheUnavailableError(f"cache DELETE failed for {keys}") from e

    async def ping(self) -> bool:
        try:
            await self._redis.ping()
            return True
        except RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        try:
            await self._redis.aclose()
            logger.info("Redis connection closed")
        except RedisError as e:
            logger.error(f"Error closing Redis: {e}")


def _expires_at(_key, item, now):
    return now + item[1]


class MemoryCacheClient:
    """
    Process-local cache backend on cachetools.TLRUCache.

    Each entry keeps its own TTL. ``timer`` can be replaced to drive expiry
    from a fake clock.
    """

    def __init__(self, maxsize: int = 2048, timer: Callable[[], float] = time.monotonic):
        self._data = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)

    async def get(self, key: str) -> str | None:
        item = self._data.get(key)
        return None if item is None else item[0]

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._data[key] = (value, ttl)

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._data.clear()
