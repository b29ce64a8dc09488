"""Merge externally sourced place data into venue records.

Admin overrides always win over Google data, and locally computed
engagement metrics are never taken from an external payload.
"""
import dataclasses
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from app.constants import (
    GOOGLE_TYPE_TO_VENUE_TYPE,
    VENUE_STATUS_PENDING,
    VENUE_STATUSES,
)
from app.domain.entities.venue import Venue
from app.domain.exceptions import VenueValidationError

logger = logging.getLogger(__name__)

# Fields a Google refresh is allowed to write
EXTERNAL_FIELDS = (
    "name",
    "description",
    "address",
    "latitude",
    "longitude",
    "city_id",
    "google_place_id",
    "google_rating",
    "google_ratings_total",
    "price_level",
    "website",
    "phone",
    "is_open_now",
)

# Fields an admin may set; every one written is recorded as an override
ADMIN_UPDATABLE_FIELDS = EXTERNAL_FIELDS + (
    "status",
    "is_featured",
    "is_active",
    "popularity",
    "metadata",
)

# Listing details a venue owner or admin may edit through the venue endpoints
LISTING_EDITABLE_FIELDS = (
    "name",
    "description",
    "address",
    "latitude",
    "longitude",
    "price_level",
    "website",
    "phone",
    "metadata",
)

AUDIT_FIELDS = ("last_modified_by", "last_modified_at", "admin_overrides")

_VENUE_FIELDS = {f.name for f in dataclasses.fields(Venue)}


def map_google_types(google_types: Iterable[str], fallback: Optional[str] = None) -> List[str]:
    """Map Google place types to venue type names, deduplicated in first-seen order.

    Args:
        google_types: Google ``types`` array
        fallback: Name returned when nothing maps (None -> empty list)
    """
    names: List[str] = []
    for google_type in google_types or []:
        name = GOOGLE_TYPE_TO_VENUE_TYPE.get(google_type)
        if name and name not in names:
            names.append(name)
    if not names and fallback:
        names.append(fallback)
    return names


def build_candidate_from_place(details: Dict[str, Any]) -> Dict[str, Any]:
    """Extract venue fields from a Place Details result."""
    location = (details.get("geometry") or {}).get("location") or {}
    opening_hours = details.get("opening_hours") or {}
    candidate = {
        "name": details.get("name"),
        "address": details.get("formatted_address"),
        "latitude": location.get("lat"),
        "longitude": location.get("lng"),
        "google_place_id": details.get("place_id"),
        "google_rating": details.get("rating"),
        "google_ratings_total": details.get("user_ratings_total"),
        "price_level": details.get("price_level"),
        "website": details.get("website"),
        "phone": details.get("formatted_phone_number"),
        "is_open_now": opening_hours.get("open_now"),
    }
    # Google uses 0 for "free"; stored price levels are 1-4
    if candidate["price_level"] is not None and not 1 <= candidate["price_level"] <= 4:
        candidate["price_level"] = None
    return candidate


def merge_venue(existing: Optional[Venue], external: Dict[str, Any], now: Optional[datetime] = None) -> Venue:
    """Combine an existing venue (or None) with external data.

    Args:
        existing: Venue matched by Google place id, or None
        external: Candidate fields from the external source
        now: Refresh timestamp (defaults to utcnow)

    Returns:
        Venue to persist
    """
    now = now or datetime.utcnow()
    external_fields = {k: v for k, v in external.items() if k in EXTERNAL_FIELDS}

    if existing is None:
        return Venue(
            id=None,
            status=VENUE_STATUS_PENDING,
            admin_overrides={},
            last_refreshed=now,
            **external_fields,
        )

    merged = dataclasses.replace(existing, **external_fields)

    overrides = existing.admin_overrides or {}
    for key, value in overrides.items():
        if key in _VENUE_FIELDS and key not in AUDIT_FIELDS:
            setattr(merged, key, value)
        else:
            logger.warning(f"Ignoring unknown admin override '{key}' on venue {existing.id}")

    merged.admin_overrides = dict(overrides)
    merged.last_refreshed = now
    return merged


def apply_admin_update(
    existing: Venue,
    updates: Dict[str, Any],
    admin_id: str,
    now: Optional[datetime] = None,
    allowed_fields: Iterable[str] = ADMIN_UPDATABLE_FIELDS,
) -> Venue:
    """Apply manual edits and record each one as an override.

    Raises:
        VenueValidationError: If a field is not in allowed_fields or the status is unknown
    """
    now = now or datetime.utcnow()
    unknown = [k for k in updates if k not in allowed_fields]
    if unknown:
        raise VenueValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
    if "status" in updates and updates["status"] not in VENUE_STATUSES:
        raise VenueValidationError(f"Invalid venue status: {updates['status']}")

    updated = dataclasses.replace(existing, **updates)
    overrides = dict(existing.admin_overrides or {})
    overrides.update(updates)
    updated.admin_overrides = overrides
    updated.last_modified_by = admin_id
    updated.last_modified_at = now
    return updated
