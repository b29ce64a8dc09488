"""Venue repository interface - abstraction for data access."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Tuple
from app.domain.entities.venue import Venue, VenueHours
from app.domain.value_objects.venue_search import VenueSearchOptions


class VenueRepository(ABC):
    """Repository interface for Venue entity.

    Follows Interface Segregation Principle - focused interface.
    Follows Dependency Inversion Principle - depends on abstraction.
    """

    @abstractmethod
    async def get_by_id(self, venue_id: int) -> Optional[Venue]:
        """Get venue by ID."""
        pass

    @abstractmethod
    async def get_by_ids(self, venue_ids: List[int]) -> List[Venue]:
        """Get venues by IDs, preserving the requested order."""
        pass

    @abstractmethod
    async def get_by_google_place_id(self, google_place_id: str) -> Optional[Venue]:
        """Get venue by its Google place identifier."""
        pass

    @abstractmethod
    async def save(
        self,
        venue: Venue,
        venue_type_names: Optional[List[str]] = None,
        hours: Optional[List[VenueHours]] = None,
    ) -> Venue:
        """Insert or update a venue; replaces its types and hours when given."""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Discard pending changes after a failed write."""
        pass

    @abstractmethod
    async def search(self, options: VenueSearchOptions) -> Tuple[List[Venue], int]:
        """Filtered, sorted, paginated search. Returns (venues, total)."""
        pass

    @abstractmethod
    async def search_by_text(self, query: str, limit: int) -> List[Venue]:
        """Relevance-ordered text match on name, description and address."""
        pass

    @abstractmethod
    async def adjust_counter(self, venue_id: int, counter: str, delta: int) -> Optional[int]:
        """Add delta to an engagement counter, never below zero. Returns new value."""
        pass

    @abstractmethod
    async def update_rating(self, venue_id: int, rating: float, review_count: int) -> bool:
        """Store the aggregate review rating. Returns False if the venue is gone."""
        pass

    @abstractmethod
    async def update_trending_score(self, venue_id: int, score: float) -> None:
        pass

    @abstractmethod
    async def list_active_ids(self) -> List[int]:
        pass

    @abstractmethod
    async def list_trending(self, offset: int, limit: int) -> Tuple[List[Venue], int]:
        pass

    @abstractmethod
    async def list_with_admin_overrides(self, offset: int, limit: int) -> Tuple[List[Venue], int]:
        pass

    @abstractmethod
    async def list_refreshed_before(self, cutoff: datetime) -> List[Venue]:
        """Venues whose external data is older than cutoff (or never refreshed)."""
        pass

    @abstractmethod
    async def list_without_city(self, limit: int) -> List[Venue]:
        pass

    @abstractmethod
    async def update_city(self, venue_id: int, city_id: int) -> bool:
        pass

    @abstractmethod
    async def list_venue_types(self) -> List[dict]:
        pass

    @abstractmethod
    async def add_follower(self, venue_id: int, user_id: str) -> bool:
        """Record a follow. Returns False if it already existed."""
        pass

    @abstractmethod
    async def remove_follower(self, venue_id: int, user_id: str) -> bool:
        """Remove a follow. Returns False if there was none."""
        pass

    @abstractmethod
    async def is_follower(self, venue_id: int, user_id: str) -> bool:
        pass
