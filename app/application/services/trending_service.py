"""Venue trending score calculation and refresh."""
import logging
import math
from datetime import datetime
from typing import Dict, Optional

from app.config import settings
from app.constants import (
    CACHE_KEY_TRENDING_LIST,
    CACHE_KEY_TRENDING_SCORE,
    SECONDS_PER_HOUR,
    TRENDING_DECAY_RATE,
    TRENDING_FOLLOW_WEIGHT,
    TRENDING_PLAN_WEIGHT,
    TRENDING_VIEW_WEIGHT,
)
from app.domain.repositories.venue_repository import VenueRepository
from app.infrastructure.external_apis.cache_client import RedisCache

logger = logging.getLogger(__name__)


def calculate_trending_score(
    follower_count: int,
    view_count: int,
    associated_plan_count: int,
    created_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> float:
    """Engagement score with exponential age decay.

    score = (plans * 5.0 + follows * 2.5 + views * 0.5) * exp(-0.05 * age_hours)

    Returns:
        Non-negative score
    """
    now = now or datetime.utcnow()
    age_hours = 0.0
    if created_at is not None:
        age_hours = max(0.0, (now - created_at).total_seconds() / SECONDS_PER_HOUR)

    decay = math.exp(-TRENDING_DECAY_RATE * age_hours)
    raw = (
        (associated_plan_count or 0) * TRENDING_PLAN_WEIGHT
        + (follower_count or 0) * TRENDING_FOLLOW_WEIGHT
        + (view_count or 0) * TRENDING_VIEW_WEIGHT
    )
    return max(0.0, raw * decay)


def trending_score_cache_key(venue_id: int) -> str:
    return f"{CACHE_KEY_TRENDING_SCORE}:{venue_id}"


class TrendingService:
    """Persists and caches trending scores."""

    def __init__(self, venue_repo: VenueRepository, cache: RedisCache):
        self.venue_repo = venue_repo
        self.cache = cache

    async def update_venue_trending_score(self, venue_id: int) -> Optional[float]:
        """Recompute, store and cache one venue's score.

        Returns:
            New score, or None if the venue is missing or the update failed
        """
        try:
            venue = await self.venue_repo.get_by_id(venue_id)
            if not venue:
                logger.warning(f"Venue {venue_id} not found for score update")
                return None

            score = calculate_trending_score(
                venue.follower_count,
                venue.view_count,
                venue.associated_plan_count,
                venue.created_at,
            )
            await self.venue_repo.update_trending_score(venue_id, score)
            await self.cache.set_key(trending_score_cache_key(venue_id), score, settings.CACHE_TTL_TRENDING_SCORE)
            logger.debug(f"Trending score for venue {venue_id}: {score:.4f}")
            return score
        except Exception as e:
            logger.error(f"Failed to update trending score for venue {venue_id}: {e}", exc_info=True)
            return None

    async def refresh_all(self, batch_size: Optional[int] = None) -> Dict[str, int]:
        """Recompute every active venue's score in batches.

        Returns:
            {"total", "updated", "failed"}
        """
        batch_size = batch_size or settings.TRENDING_REFRESH_BATCH_SIZE
        venue_ids = await self.venue_repo.list_active_ids()
        logger.info(f"Refreshing trending scores for {len(venue_ids)} active venues")

        updated = 0
        failed = 0
        total_batches = math.ceil(len(venue_ids) / batch_size) if venue_ids else 0

        for start in range(0, len(venue_ids), batch_size):
            batch = venue_ids[start:start + batch_size]
            for venue_id in batch:
                if await self.update_venue_trending_score(venue_id) is None:
                    failed += 1
                else:
                    updated += 1
            logger.info(
                f"Batch {start // batch_size + 1}/{total_batches} done. "
                f"Updated: {updated}, Failed: {failed}"
            )

        await self.cache.clear_pattern(f"venue:{CACHE_KEY_TRENDING_LIST}:*")
        logger.info(f"✓ Trending refresh finished: {updated} updated, {failed} failed")
        return {"total": len(venue_ids), "updated": updated, "failed": failed}
