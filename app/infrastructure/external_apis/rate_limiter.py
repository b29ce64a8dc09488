"""Per-operation token bucket for outbound Google API calls."""
import logging
from typing import Dict, Optional, Tuple

import redis.asyncio as redis

from app.config import settings
from app.constants import RATE_LIMIT_OP_NEARBY, RATE_LIMIT_OP_DETAILS, RATE_LIMIT_OP_GEOCODE

logger = logging.getLogger(__name__)


def default_limits() -> Dict[str, Tuple[int, int]]:
    """Operation -> (requests, window seconds)."""
    window = settings.RATE_LIMIT_WINDOW_SECONDS
    return {
        RATE_LIMIT_OP_NEARBY: (settings.RATE_LIMIT_PLACES_NEARBY, window),
        RATE_LIMIT_OP_DETAILS: (settings.RATE_LIMIT_PLACES_DETAILS, window),
        RATE_LIMIT_OP_GEOCODE: (settings.RATE_LIMIT_GEOCODE, window),
    }


class RateLimiter:
    """Token bucket stored in Redis under ``ratelimit:<operation>``.

    The first call in a window creates the bucket with ``limit - 1`` tokens
    and a TTL of the window (SET NX EX); later calls spend one token each
    with an atomic DECR. When Redis is missing or errors, calls are allowed
    (fail open).
    """

    def __init__(self, client: Optional[redis.Redis], limits: Optional[Dict[str, Tuple[int, int]]] = None):
        self._redis = client
        self.limits = limits or default_limits()

    async def try_acquire(self, operation: str) -> bool:
        """Take one token. Returns False when the bucket is empty."""
        if operation not in self.limits:
            return True
        if self._redis is None:
            return True

        limit, window = self.limits[operation]
        key = f"ratelimit:{operation}"
        try:
            if await self._redis.set(key, limit - 1, ex=window, nx=True):
                return True
            remaining = await self._redis.decr(key)
            if remaining >= 0:
                return True
            if await self._redis.ttl(key) == -1:
                # Bucket expired before DECR, which recreated it without a TTL
                await self._redis.set(key, limit - 1, ex=window)
                return True
            logger.warning(f"⚠ Rate limit reached for {operation}")
            return False
        except Exception as e:
            logger.error(f"Rate limiter error for {operation}, allowing request: {e}")
            return True
