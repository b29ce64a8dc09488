"""Venue photo domain entity."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.constants import PHOTO_SOURCE_USER


@dataclass
class VenuePhoto:
    """Venue photo domain entity."""
    id: Optional[int]
    venue_id: int
    photo_url: str
    user_id: Optional[str] = None
    thumbnail_url: Optional[str] = None
    medium_url: Optional[str] = None
    large_url: Optional[str] = None
    etag: Optional[str] = None
    caption: Optional[str] = None
    is_primary: bool = False
    is_approved: bool = False
    order: int = 0
    source: str = PHOTO_SOURCE_USER
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
