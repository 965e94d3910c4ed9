"""Redis cache for the public category listings.

The tree and flat listings are read far more often than categories change,
so the API caches their serialized responses and drops every
``categories:*`` key after a successful create, update or delete. Redis
being down never fails a request: errors are logged and treated as misses.
"""

from typing import Optional

import structlog
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from app.config import settings

logger = structlog.get_logger(__name__)

CATEGORY_KEY_PREFIX = "categories"
CATEGORY_TREE_KEY = f"{CATEGORY_KEY_PREFIX}:tree"
CATEGORY_FLAT_KEY = f"{CATEGORY_KEY_PREFIX}:flat"


class CacheService:
    """Async Redis cache service with TTL and pattern invalidation."""

    def __init__(self, redis_url: str):
        """Initialize cache service.

        Args:
            redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
        """
        self.redis_url = redis_url
        self._redis: Optional[Redis] = None
        self.logger = logger.bind(service="cache_service")

    async def _get_redis(self) -> Redis:
        """Get or lazily create the Redis client."""
        if self._redis is None:
            self._redis = from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.logger.info("redis_connection_created", url=self.redis_url)

        return self._redis

    async def get(self, key: str) -> Optional[str]:
        """Get a cached value, or None on miss or Redis error."""
        try:
            redis = await self._get_redis()
            value = await redis.get(key)
        except RedisError as e:
            self.logger.error("cache_get_failed", key=key, error=str(e))
            return None

        self.logger.debug("cache_hit" if value else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: str, ttl: int = 300) -> bool:
        """Store a value with a TTL in seconds. Returns False on Redis error."""
        try:
            redis = await self._get_redis()
            await redis.set(key, value, ex=ttl)
        except RedisError as e:
            self.logger.error("cache_set_failed", key=key, error=str(e))
            return False

        self.logger.debug("cache_set", key=key, ttl=ttl, value_length=len(value))
        return True

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a glob pattern (e.g., "categories:*").

        Returns:
            Number of keys deleted, 0 on error
        """
        try:
            redis = await self._get_redis()

            keys = [key async for key in redis.scan_iter(match=pattern, count=100)]
            deleted = await redis.delete(*keys) if keys else 0
        except RedisError as e:
            self.logger.error("cache_pattern_delete_failed", pattern=pattern, error=str(e))
            return 0

        self.logger.info("cache_pattern_delete", pattern=pattern, keys_deleted=deleted)
        return deleted

    async def health_check(self) -> bool:
        """Ping Redis. True if it answered."""
        try:
            redis = await self._get_redis()
            await redis.ping()
            return True
        except (RedisError, OSError) as e:
            self.logger.error("redis_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the Redis connection (application shutdown)."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("redis_connection_closed")


# Global cache instance
_cache_instance: Optional[CacheService] = None


def get_cache_service() -> CacheService:
    """Get or create the process-wide cache service."""
    global _cache_instance

    if _cache_instance is None:
        _cache_instance = CacheService(settings.REDIS_URL)
        logger.info("cache_service_initialized", redis_url=settings.REDIS_URL)

    return _cache_instance


async def get_cache() -> CacheService:
    """FastAPI dependency for the cache service."""
    return get_cache_service()


async def invalidate_categories_cache(cache: CacheService) -> int:
    """Drop every cached category listing.

    Returns:
        Number of cache keys deleted
    """
    deleted = await cache.delete_pattern(f"{CATEGORY_KEY_PREFIX}:*")
    logger.info("categories_cache_invalidated", keys_deleted=deleted)
    return deleted
