"""Redis caching layer with TTL support.

Only read-mostly catalog configuration is cached. Claims and quota usage
always come from the database.
"""

from __future__ import annotations

import json
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import redis.asyncio as redis
from attrs import field, frozen
from beartype import beartype
from redis.exceptions import RedisError

from .config import get_settings
from .logging_utils import get_logger

__all__ = [
    "Cache",
    "get_cache",
    "init_redis_pool",
    "close_redis_pool",
    "RedisType",
]

if TYPE_CHECKING:
    from redis.asyncio import Redis as RedisType
else:
    RedisType = redis.Redis

logger = get_logger(__name__)


@frozen
class CacheConfig:
    """Immutable cache configuration."""

    url: str = field()
    default_ttl: int = field(default=3600)
    max_connections: int = field(default=10)
    decode_responses: bool = field(default=True)


class Cache:
    """Redis cache manager with async support.

    Accepts an already-created ``redis.asyncio.Redis`` instance, in which
    case :py:meth:`connect` is a no-op. Tests pass a ``fakeredis`` client.
    """

    def __init__(self, redis_client: RedisType | None = None) -> None:
        self._redis: RedisType | None = redis_client
        self._config = self._get_config()

    @beartype
    def _get_config(self) -> CacheConfig:
        settings = get_settings()
        return CacheConfig(
            url=settings.redis_url,
            default_ttl=settings.redis_ttl_seconds,
        )

    @beartype
    async def connect(self) -> None:
        """Create Redis connection pool."""
        if self._redis is not None:
            return

        self._redis = redis.from_url(
            self._config.url,
            max_connections=self._config.max_connections,
            decode_responses=self._config.decode_responses,
        )

    @beartype
    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._redis is None:
            return

        await self._redis.aclose()
        self._redis = None

    @beartype
    async def get(self, key: str) -> Any | None:
        """Get value from cache."""
        if self._redis is None:
            raise RuntimeError("Cache not connected")

        value = await self._redis.get(key)
        if value is None:
            return None

        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    @beartype
    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | timedelta | None = None,
    ) -> bool:
        """Set value in cache with optional TTL."""
        if self._redis is None:
            raise RuntimeError("Cache not connected")

        if ttl is None:
            ttl = self._config.default_ttl

        if isinstance(ttl, int):
            ttl = timedelta(seconds=ttl)

        if not isinstance(value, (str, int, float, bytes)):
            value = json.dumps(value, default=str)

        result = await self._redis.setex(key, ttl, value)
        return bool(result)

    @beartype
    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        if self._redis is None:
            raise RuntimeError("Cache not connected")

        result = await self._redis.delete(key)
        return bool(result > 0)

    @property
    def is_connected(self) -> bool:
        """Check if cache is connected."""
        return self._redis is not None

    @beartype
    async def health_check(self) -> bool:
        """Perform cache health check."""
        if self._redis is None:
            return False
        try:
            await self._redis.ping()
            return True
        except (RedisError, OSError):
            logger.warning("Cache health check failed", exc_info=True)
            return False


_cache: Cache | None = None


@beartype
def get_cache() -> Cache:
    """Get the process-wide cache instance."""
    global _cache
    if _cache is None:
        _cache = Cache()
    return _cache


@beartype
async def init_redis_pool() -> Cache:
    cache = get_cache()
    await cache.connect()
    return cache


@beartype
async def close_redis_pool() -> None:
    global _cache
    if _cache is not None:
        await _cache.disconnect()
        _cache = None

