"""Response shapes for venue API payloads.

Services return plain dicts built here so they can be cached as JSON and
validated by the route response models unchanged.
"""
from datetime import datetime, time
from typing import Any, Dict, List, Optional

from app.domain.entities.venue import Venue
from app.domain.entities.venue_photo import VenuePhoto
from app.domain.entities.venue_review import VenueReview


def _iso(value) -> Optional[str]:
    if isinstance(value, (datetime, time)):
        return value.isoformat()
    return value


def venue_to_dict(venue: Venue, is_following: Optional[bool] = None) -> Dict[str, Any]:
    """Public venue representation."""
    data = {
        "id": venue.id,
        "name": venue.name,
        "description": venue.description,
        "address": venue.address,
        "latitude": venue.latitude,
        "longitude": venue.longitude,
        "city_id": venue.city_id,
        "google_place_id": venue.google_place_id,
        "price_level": venue.price_level,
        "website": venue.website,
        "phone": venue.phone,
        "is_open_now": venue.is_open_now,
        "google_rating": venue.google_rating,
        "google_ratings_total": venue.google_ratings_total,
        "rating": venue.rating,
        "review_count": venue.review_count,
        "popularity": venue.popularity,
        "view_count": venue.view_count,
        "follower_count": venue.follower_count,
        "associated_plan_count": venue.associated_plan_count,
        "trending_score": venue.trending_score,
        "status": venue.status,
        "is_featured": venue.is_featured,
        "venue_types": list(venue.venue_types),
        "hours": [
            {
                "day_of_week": h.day_of_week,
                "open_time": _iso(h.open_time),
                "close_time": _iso(h.close_time),
                "is_closed": h.is_closed,
                "is_open_24_hours": h.is_open_24_hours,
            }
            for h in venue.hours
        ],
        "distance_miles": round(venue.distance_miles, 3) if venue.distance_miles is not None else None,
        "last_refreshed": _iso(venue.last_refreshed),
        "created_at": _iso(venue.created_at),
    }
    if is_following is not None:
        data["is_following"] = is_following
    return data


def admin_venue_to_dict(venue: Venue) -> Dict[str, Any]:
    """Venue representation including moderation fields."""
    data = venue_to_dict(venue)
    data.update({
        "is_active": venue.is_active,
        "admin_overrides": dict(venue.admin_overrides or {}),
        "last_modified_by": venue.last_modified_by,
        "last_modified_at": _iso(venue.last_modified_at),
        "metadata": venue.metadata,
    })
    return data


def photo_to_dict(photo: VenuePhoto) -> Dict[str, Any]:
    return {
        "id": photo.id,
        "venue_id": photo.venue_id,
        "user_id": photo.user_id,
        "photo_url": photo.photo_url,
        "thumbnail_url": photo.thumbnail_url,
        "medium_url": photo.medium_url,
        "large_url": photo.large_url,
        "etag": photo.etag,
        "caption": photo.caption,
        "is_primary": photo.is_primary,
        "is_approved": photo.is_approved,
        "order": photo.order,
        "source": photo.source,
        "created_at": _iso(photo.created_at),
    }


def review_to_dict(review: VenueReview) -> Dict[str, Any]:
    return {
        "id": review.id,
        "venue_id": review.venue_id,
        "user_id": review.user_id,
        "rating": review.rating,
        "review": review.review,
        "is_verified_visit": review.is_verified_visit,
        "upvote_count": review.upvote_count,
        "downvote_count": review.downvote_count,
        "created_at": _iso(review.created_at),
    }

def paginated(items: List[Dict[str, Any]], total: int, page: int, limit: int) -> Dict[str, Any]:
    """{items, total, page, limit, has_more} envelope."""
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "has_more": total > page * limit,
    }
