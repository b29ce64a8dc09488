"""Venue review domain entity."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class VenueReview:
    """One user's rating of a venue (1-5) with optional text."""
    id: Optional[int]
    venue_id: int
    user_id: str
    rating: int
    review: Optional[str] = None
    is_verified_visit: bool = False
    upvote_count: int = 0
    downvote_count: int = 0
    is_published: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
