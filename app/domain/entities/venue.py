"""Venue domain entity - pure business logic."""
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Optional, Dict, Any, List

from app.constants import VENUE_STATUS_PENDING, VENUE_STATUS_ACTIVE
from app.domain.value_objects.coordinates import Coordinates


@dataclass
class VenueHours:
    """One declared weekly opening window."""
    day_of_week: str
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    is_closed: bool = False
    is_open_24_hours: bool = False


@dataclass
class Venue:
    """Venue domain entity."""
    id: Optional[int]
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city_id: Optional[int] = None
    google_place_id: Optional[str] = None
    price_level: Optional[int] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    is_open_now: Optional[bool] = None
    google_rating: Optional[float] = None
    google_ratings_total: Optional[int] = None
    rating: Optional[float] = None
    review_count: int = 0
    popularity: int = 0
    view_count: int = 0
    follower_count: int = 0
    associated_plan_count: int = 0
    trending_score: float = 0.0
    status: str = VENUE_STATUS_PENDING
    admin_overrides: Dict[str, Any] = field(default_factory=dict)
    last_modified_by: Optional[str] = None
    last_modified_at: Optional[datetime] = None
    last_refreshed: Optional[datetime] = None
    is_featured: bool = False
    is_active: bool = True
    metadata: Optional[Dict[str, Any]] = None
    venue_types: List[str] = field(default_factory=list)
    hours: List[VenueHours] = field(default_factory=list)
    distance_miles: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def coordinates(self) -> Optional[Coordinates]:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(latitude=self.latitude, longitude=self.longitude)

    @property
    def is_public(self) -> bool:
        return self.status == VENUE_STATUS_ACTIVE and self.is_active

    def is_valid(self) -> bool:
        """Validate venue business rules."""
        return bool(self.name and self.name.strip())
