"""Versioned cache keys for venue read models.

Every key embeds the current value of ``venue:cache:version``; bumping that
counter makes all previously written keys unreachable without scanning.
"""
import logging
from typing import Any, Dict, Optional

from app.constants import CACHE_KEY_VERSION
from app.infrastructure.external_apis.cache_client import RedisCache

logger = logging.getLogger(__name__)


class VenueCacheService:
    """Get/set venue read models under versioned keys."""

    def __init__(self, cache: RedisCache):
        self.cache = cache

    async def get_version(self) -> int:
        version = await self.cache.get_key(CACHE_KEY_VERSION)
        try:
            return int(version) if version is not None else 1
        except (TypeError, ValueError):
            return 1

    @staticmethod
    def build_key(cache_type: str, version: int, params: Optional[Dict[str, Any]] = None) -> str:
        parts = [f"{k}={params[k]}" for k in sorted(params or {})]
        return f"venue:{cache_type}:{version}:{'&'.join(parts)}"

    async def make_key(self, cache_type: str, params: Optional[Dict[str, Any]] = None) -> str:
        return self.build_key(cache_type, await self.get_version(), params)

    async def get(self, cache_type: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        return await self.cache.get_key(await self.make_key(cache_type, params))

    async def set(self, cache_type: str, value: Any, ttl_seconds: int, params: Optional[Dict[str, Any]] = None):
        await self.cache.set_key(await self.make_key(cache_type, params), value, ttl_seconds)

    async def invalidate_all(self) -> Optional[int]:
        """Bump the version; returns the new version or None if the cache is down."""
        if await self.cache.get_key(CACHE_KEY_VERSION) is None:
            # INCR on a missing key yields 1, which is the implicit current version
            await self.cache.set_key(CACHE_KEY_VERSION, 1)
        version = await self.cache.incr(CACHE_KEY_VERSION)
        if version is not None:
            logger.info(f"Venue cache version bumped to {version}")
        return version
