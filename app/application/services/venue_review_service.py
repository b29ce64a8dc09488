"""Venue reviews and the aggregate rating derived from them."""
import logging
from typing import Any, Dict, List, Optional

from app.application.dto.venue_dto import review_to_dict
from app.application.services.venue_cache_service import VenueCacheService
from app.domain.entities.venue_review import VenueReview
from app.domain.exceptions import DuplicateReviewError, VenueNotFoundError, VenueValidationError
from app.domain.repositories.venue_repository import VenueRepository
from app.domain.repositories.venue_review_repository import VenueReviewRepository
from app.domain.value_objects.roles import Actor

logger = logging.getLogger(__name__)

REVIEW_PAGE_SIZE = 20
MIN_RATING = 1
MAX_RATING = 5


class VenueReviewService:
    """One review per user per venue; the venue's rating tracks published reviews."""

    def __init__(
        self,
        review_repo: VenueReviewRepository,
        venue_repo: VenueRepository,
        cache_service: VenueCacheService,
    ):
        self.review_repo = review_repo
        self.venue_repo = venue_repo
        self.cache_service = cache_service

    async def _ensure_venue(self, venue_id: int):
        if not await self.venue_repo.get_by_id(venue_id):
            raise VenueNotFoundError(venue_id)

    async def get_venue_reviews(self, venue_id: int, limit: int = REVIEW_PAGE_SIZE, offset: int = 0) -> List[Dict[str, Any]]:
        """Published reviews, newest first.

        Raises:
            VenueNotFoundError: If the venue does not exist
        """
        await self._ensure_venue(venue_id)
        reviews = await self.review_repo.list_published(venue_id, limit, offset)
        return [review_to_dict(r) for r in reviews]

    async def add_venue_review(
        self,
        venue_id: int,
        actor: Actor,
        rating: int,
        review: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Publish a review and refresh the venue's aggregate rating.

        Raises:
            VenueNotFoundError: If the venue does not exist
            DuplicateReviewError: If the user already reviewed this venue
            VenueValidationError: If the rating is outside 1-5
        """
        if not MIN_RATING <= rating <= MAX_RATING:
            raise VenueValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
        await self._ensure_venue(venue_id)

        if await self.review_repo.get_by_venue_and_user(venue_id, actor.user_id):
            raise DuplicateReviewError(venue_id, actor.user_id)

        created = await self.review_repo.create(
            VenueReview(id=None, venue_id=venue_id, user_id=actor.user_id, rating=rating, review=review, is_published=True)
        )
        if created is None:
            raise DuplicateReviewError(venue_id, actor.user_id)

        await self.update_venue_rating(venue_id)
        await self.cache_service.invalidate_all()
        logger.info(f"✓ Review {created.id} added to venue {venue_id} by {actor.user_id} ({rating}/5)")
        return review_to_dict(created)

    async def update_venue_rating(self, venue_id: int) -> float:
        """Recompute rating (mean of published reviews, one decimal; 0 with none) and review count."""
        average, count = await self.review_repo.published_rating_summary(venue_id)
        rating = round(average, 1) if average is not None else 0
        await self.venue_repo.update_rating(venue_id, rating, count)
        logger.debug(f"Venue {venue_id} rating now {rating} over {count} reviews")
        return rating
