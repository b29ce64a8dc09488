"""Venue review repository interface."""
from abc import ABC, abstractmethod
from typing import Optional, List, Tuple
from app.domain.entities.venue_review import VenueReview


class VenueReviewRepository(ABC):
    """Repository interface for VenueReview entity."""

    @abstractmethod
    async def get_by_venue_and_user(self, venue_id: int, user_id: str) -> Optional[VenueReview]:
        pass

    @abstractmethod
    async def list_published(self, venue_id: int, limit: int, offset: int) -> List[VenueReview]:
        """Published reviews, newest first."""
        pass

    @abstractmethod
    async def create(self, review: VenueReview) -> Optional[VenueReview]:
        """Insert a review. Returns None if the user already reviewed the venue."""
        pass

    @abstractmethod
    async def published_rating_summary(self, venue_id: int) -> Tuple[Optional[float], int]:
        """(average rating, count) over published reviews; average is None without any."""
        pass
