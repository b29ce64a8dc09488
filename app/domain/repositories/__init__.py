"""Repository interfaces."""
from app.domain.repositories.venue_repository import VenueRepository
from app.domain.repositories.venue_photo_repository import VenuePhotoRepository
from app.domain.repositories.venue_review_repository import VenueReviewRepository
from app.domain.repositories.scanned_area_repository import ScannedAreaRepository

__all__ = [
    "VenueRepository",
    "VenuePhotoRepository",
    "VenueReviewRepository",
    "ScannedAreaRepository",
]
