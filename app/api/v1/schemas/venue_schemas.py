"""Schemas for public venue endpoints."""
from datetime import time
from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, Field


class VenueHourSchema(BaseModel):
    day_of_week: str
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: bool = False
    is_open_24_hours: bool = False


class VenueSchema(BaseModel):
    """Public venue representation."""
    id: int
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city_id: Optional[int] = None
    google_place_id: Optional[str] = None
    google_rating: Optional[float] = None
    google_ratings_total: Optional[int] = None
    rating: Optional[float] = None
    review_count: int = 0
    price_level: Optional[int] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    is_open_now: Optional[bool] = None
    status: str
    is_featured: bool = False
    popularity: int = 0
    view_count: int = 0
    follower_count: int = 0
    associated_plan_count: int = 0
    trending_score: float = 0.0
    venue_types: List[str] = []
    hours: List[VenueHourSchema] = []
    distance_miles: Optional[float] = None
    is_following: Optional[bool] = None
    last_refreshed: Optional[str] = None
    created_at: Optional[str] = None


class VenueSearchResponseSchema(BaseModel):
    venues: List[VenueSchema]
    total: int


class VenueListResponseSchema(BaseModel):
    items: List[VenueSchema]
    total: int


class PaginatedVenuesSchema(BaseModel):
    items: List[VenueSchema]
    total: int
    page: int
    limit: int
    has_more: bool


class DiscoverResponseSchema(BaseModel):
    recently_viewed: List[VenueSchema]
    trending_venues: PaginatedVenuesSchema


class FollowResponseSchema(BaseModel):
    venue_id: int
    is_following: bool
    follower_count: int


class PhotoSchema(BaseModel):
    id: int
    venue_id: int
    user_id: Optional[str] = None
    photo_url: str
    thumbnail_url: Optional[str] = None
    medium_url: Optional[str] = None
    large_url: Optional[str] = None
    etag: Optional[str] = None
    caption: Optional[str] = None
    is_primary: bool = False
    is_approved: bool = False
    order: int = 0
    source: str
    created_at: Optional[str] = None


class VenueTypeSchema(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    icon_url: Optional[str] = None


class VenueEventSchema(BaseModel):
    """Plan lifecycle event posted by the plans service."""
    event_type: str
    payload: Dict[str, Any]


DayOfWeek = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class VenueHourInputSchema(BaseModel):
    day_of_week: DayOfWeek
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    is_closed: bool = False
    is_open_24_hours: bool = False


class VenueListingFields(BaseModel):
    """Listing details editable by admins and venue owners."""
    description: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    price_level: Optional[int] = Field(None, ge=1, le=4)
    website: Optional[str] = None
    phone: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    venue_types: Optional[List[str]] = None
    hours: Optional[List[VenueHourInputSchema]] = None


class VenueCreateSchema(VenueListingFields):
    name: str = Field(..., min_length=1, max_length=255)


class VenueUpdateSchema(VenueListingFields):
    """Fields sent are recorded as overrides and survive Google refreshes."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class ReviewCreateSchema(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=5000)


class ReviewSchema(BaseModel):
    id: int
    venue_id: int
    user_id: str
    rating: int
    review: Optional[str] = None
    is_verified_visit: bool = False
    upvote_count: int = 0
    downvote_count: int = 0
    created_at: Optional[str] = None
