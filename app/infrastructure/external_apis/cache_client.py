"""Redis-based cache for API responses and venue read models.

Every operation degrades to a cache miss / no-op when Redis is disabled or
failing; callers always fall back to the source of truth.
"""
import hashlib
import json
import logging
from typing import Optional, Any, List
import redis.asyncio as redis
from app.core.settings import settings

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis-based cache with TTL support.

    Two addressing styles:
    - prefix + kwargs, hashed (Google responses, search results)
    - raw keys (trending scores, per-user lists, cache version counter)
    """

    def __init__(self, client: Optional[redis.Redis] = None):
        self._redis: Optional[redis.Redis] = client
        self._enabled = settings.REDIS_CACHE_ENABLED or client is not None

        if self._enabled and self._redis is None:
            try:
                self._redis = redis.from_url(
                    settings.get_redis_cache_url(),
                    encoding="utf-8",
                    decode_responses=True
                )
                logger.info(f"Redis cache initialized: {settings.REDIS_CACHE_HOST}:{settings.REDIS_CACHE_PORT}/{settings.REDIS_CACHE_DB}")
            except Exception as e:
                logger.error(f"Failed to initialize Redis cache: {e}")
                self._enabled = False

    @property
    def available(self) -> bool:
        return self._enabled and self._redis is not None

    @property
    def client(self) -> Optional[redis.Redis]:
        return self._redis if self.available else None

    def _make_key(self, prefix: str, **kwargs) -> str:
        """Create cache key from prefix and kwargs."""
        # Sort kwargs for consistent keys
        sorted_items = sorted(kwargs.items())
        key_str = f"{prefix}:{json.dumps(sorted_items, sort_keys=True, default=str)}"
        # Hash for shorter keys
        key_hash = hashlib.md5(key_str.encode()).hexdigest()
        return f"cache:{prefix}:{key_hash}"

    async def get(self, prefix: str, **kwargs) -> Optional[Any]:
        """Get cached value if exists and not expired."""
        return await self.get_key(self._make_key(prefix, **kwargs))

    async def set(self, value: Any, ttl_seconds: int, prefix: str, **kwargs):
        """Set cached value with TTL."""
        await self.set_key(self._make_key(prefix, **kwargs), value, ttl_seconds)

    async def delete(self, prefix: str, **kwargs):
        """Delete cached value."""
        await self.delete_key(self._make_key(prefix, **kwargs))

    async def get_key(self, key: str) -> Optional[Any]:
        if not self.available:
            return None

        try:
            value = await self._redis.get(key)
            if value is None:
                return None
            return json.loads(value)
        except Exception as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None

    async def set_key(self, key: str, value: Any, ttl_seconds: Optional[int] = None):
        if not self.available:
            return

        try:
            serialized = json.dumps(value, default=str)
            if ttl_seconds:
                await self._redis.setex(key, ttl_seconds, serialized)
            else:
                await self._redis.set(key, serialized)
        except Exception as e:
            logger.warning(f"Cache set error for {key}: {e}")

    async def delete_key(self, key: str):
        if not self.available:
            return

        try:
            await self._redis.delete(key)
        except Exception as e:
            logger.warning(f"Cache delete error for {key}: {e}")

    async def incr(self, key: str) -> Optional[int]:
        """Atomically increment an integer key. Returns None when unavailable."""
        if not self.available:
            return None

        try:
            return int(await self._redis.incr(key))
        except Exception as e:
            logger.warning(f"Cache incr error for {key}: {e}")
            return None

    async def push_recent(self, key: str, item: str, max_items: int, ttl_seconds: Optional[int] = None):
        """Move item to the head of a capped most-recent-first list."""
        if not self.available:
            return

        try:
            await self._redis.lrem(key, 0, item)
            await self._redis.lpush(key, item)
            await self._redis.ltrim(key, 0, max_items - 1)
            if ttl_seconds:
                await self._redis.expire(key, ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache list push error for {key}: {e}")

    async def get_list(self, key: str, max_items: int) -> List[str]:
        if not self.available:
            return []

        try:
            return list(await self._redis.lrange(key, 0, max_items - 1))
        except Exception as e:
            logger.warning(f"Cache list read error for {key}: {e}")
            return []

    async def clear_prefix(self, prefix: str):
        """Clear all hashed keys with given prefix."""
        await self.clear_pattern(f"cache:{prefix}:*")

    async def clear_pattern(self, pattern: str):
        """Clear all keys matching a glob pattern."""
        if not self.available:
            return

        try:
            cursor = 0
            while True:
                cursor, keys = await self._redis.scan(cursor, match=pattern, count=100)
                if keys:
                    await self._redis.delete(*keys)
                if cursor == 0:
                    break
            logger.info(f"Cleared cache for pattern: {pattern}")
        except Exception as e:
            logger.warning(f"Cache clear error for {pattern}: {e}")

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            logger.info("Redis cache connection closed")


# Global cache instance
_cache: Optional[RedisCache] = None


def get_cache() -> RedisCache:
    """Get the global cache instance."""
    global _cache
    if _cache is None:
        _cache = RedisCache()
    return _cache


async def close_cache():
    """Close the global cache instance."""
    global _cache
    if _cache:
        await _cache.close()
        _cache = None
