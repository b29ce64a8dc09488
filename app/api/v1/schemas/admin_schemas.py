"""Schemas for admin endpoints."""
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field

from app.api.v1.schemas.venue_schemas import VenueSchema


class AdminVenueSchema(VenueSchema):
    """Venue with moderation and audit fields."""
    is_active: bool = True
    admin_overrides: Dict[str, Any] = {}
    last_modified_by: Optional[str] = None
    last_modified_at: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class AdminVenueListSchema(BaseModel):
    items: List[AdminVenueSchema]
    total: int


class AdminVenueUpdateSchema(BaseModel):
    """Admin edits. Every field sent is recorded as an override."""
    name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    city_id: Optional[int] = None
    google_rating: Optional[float] = Field(None, ge=0, le=5)
    google_ratings_total: Optional[int] = Field(None, ge=0)
    price_level: Optional[int] = Field(None, ge=1, le=4)
    website: Optional[str] = None
    phone: Optional[str] = None
    is_open_now: Optional[bool] = None
    status: Optional[str] = None
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None
    popularity: Optional[int] = Field(None, ge=0)
    metadata: Optional[Dict[str, Any]] = None


class VenueStatusSchema(BaseModel):
    status: str


class BulkApproveRequestSchema(BaseModel):
    photo_ids: List[int] = Field(..., min_length=1)


class BulkApproveResponseSchema(BaseModel):
    approved: List[int]
    failed: List[int]


class PhotoOrderItemSchema(BaseModel):
    photo_id: int
    order: int = Field(..., ge=0)


class PhotoOrderRequestSchema(BaseModel):
    orders: List[PhotoOrderItemSchema] = Field(..., min_length=1)


class GoogleImportRequestSchema(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius_meters: int = Field(1000, ge=1, le=50000)
    category: str


class GoogleImportResponseSchema(BaseModel):
    found: int
    created: int
    updated: int
    failed: int


class TrendingRefreshResponseSchema(BaseModel):
    total: int
    updated: int
    failed: int


class StalenessCheckResponseSchema(BaseModel):
    stale_venues_count: int
    unique_geohash_count: int
    enqueued_count: int
    decode_errors: int


class VenueCityUpdateSchema(BaseModel):
    city_id: int = Field(..., ge=1)


class VenueCityResponseSchema(BaseModel):
    venue_id: int
    city_id: int
