"""Public venue endpoints: search, detail, follow, discover and photos."""
import logging
from typing import Optional, List, Tuple

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from app.api.dependencies import get_actor, get_optional_actor
from app.api.v1.schemas.venue_schemas import (
    DiscoverResponseSchema,
    FollowResponseSchema,
    PaginatedVenuesSchema,
    PhotoSchema,
    ReviewCreateSchema,
    ReviewSchema,
    VenueCreateSchema,
    VenueListingFields,
    VenueUpdateSchema,
    VenueListResponseSchema,
    VenueSchema,
    VenueSearchResponseSchema,
    VenueTypeSchema,
)
from app.application.services.venue_map_service import VenueMapService
from app.application.services.venue_photo_service import VenuePhotoService
from app.application.services.venue_review_service import REVIEW_PAGE_SIZE, VenueReviewService
from app.application.services.venue_service import VenueService
from app.config import settings
from app.core.dependencies import (
    get_venue_map_service,
    get_venue_photo_service,
    get_venue_review_service,
    get_venue_service,
)
from app.domain.entities.venue import VenueHours
from app.domain.value_objects.roles import Actor
from app.domain.value_objects.venue_search import VenueSearchOptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/venues", tags=["venues"])


def search_options(
    lat: Optional[float] = Query(None, description="Latitude of the search point"),
    lon: Optional[float] = Query(None, description="Longitude of the search point"),
    radius: float = Query(settings.SEARCH_DEFAULT_RADIUS_MILES, description="Radius in miles"),
    q: Optional[str] = Query(None, description="Text filter on name, description and address"),
    venue_type_ids: List[int] = Query([], description="Only venues of these types"),
    sort_by: Optional[str] = Query(None, description="distance, rating, popularity or price"),
    order: Optional[str] = Query(None, description="ASC or DESC"),
    open_now: bool = Query(False),
    tz: Optional[str] = Query(None, description="Requester IANA timezone for open_now (default UTC)"),
    price_level: Optional[int] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE),
    offset: int = Query(0),
) -> VenueSearchOptions:
    """Build search options from query parameters (validated on construction)."""
    return VenueSearchOptions(
        latitude=lat,
        longitude=lon,
        radius=radius,
        query=q,
        venue_type_ids=venue_type_ids,
        sort_by=sort_by,
        order=order,
        open_now=open_now,
        price_level=price_level,
        limit=limit,
        offset=offset,
        timezone=tz,
    )


def _listing_changes(body: VenueListingFields) -> Tuple[dict, Optional[List[str]], Optional[List[VenueHours]]]:
    """Split a listing payload into scalar fields, type names and opening hours."""
    fields = body.model_dump(exclude_unset=True)
    venue_types = fields.pop("venue_types", None)
    hours = fields.pop("hours", None)
    if hours is not None:
        hours = [VenueHours(**h) for h in hours]
    return fields, venue_types, hours


# ===== Search =====

@router.get("/search", response_model=VenueSearchResponseSchema)
async def search_venues(
    options: VenueSearchOptions = Depends(search_options),
    service: VenueMapService = Depends(get_venue_map_service),
):
    """Filtered venue search; location is optional."""
    return await service.search_venues(options, require_location=False)


@router.get("/map", response_model=VenueSearchResponseSchema)
async def map_search(
    options: VenueSearchOptions = Depends(search_options),
    service: VenueMapService = Depends(get_venue_map_service),
):
    """Map viewport search.

    Requires lat/lon; scans the surrounding area in the background when its
    data is stale.
    """
    return await service.search_venues(options, require_location=True)


@router.get("/nearby", response_model=List[VenueSchema])
async def nearby_venues(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius: Optional[float] = Query(None, description="Radius in miles"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    service: VenueMapService = Depends(get_venue_map_service),
):
    """Closest venues to a point."""
    return await service.get_venues_near_location(lat, lon, radius, limit)


@router.get("/geocode")
async def geocode(
    address: str = Query(..., min_length=3),
    service: VenueMapService = Depends(get_venue_map_service),
):
    """Resolve an address to coordinates for a follow-up map search."""
    result = await service.geocode_address(address)
    if not result:
        raise HTTPException(status_code=404, detail=f"Could not geocode address: {address}")
    return result


@router.get("/reverse-geocode")
async def reverse_geocode(
    lat: float = Query(..., ge=settings.MIN_LATITUDE, le=settings.MAX_LATITUDE),
    lon: float = Query(..., ge=settings.MIN_LONGITUDE, le=settings.MAX_LONGITUDE),
    service: VenueMapService = Depends(get_venue_map_service),
):
    result = await service.reverse_geocode(lat, lon)
    if not result:
        raise HTTPException(status_code=404, detail=f"No address found near {lat},{lon}")
    return result


@router.get("/text-search", response_model=VenueListResponseSchema)
async def text_search(
    q: str = Query(..., min_length=1),
    limit: Optional[int] = Query(None, ge=1, le=50),
    actor: Optional[Actor] = Depends(get_optional_actor),
    service: VenueService = Depends(get_venue_service),
):
    """Relevance-ordered search by name, description or address."""
    return await service.search_venues_by_text(q, limit, actor)


@router.get("/recent-searches", response_model=List[str])
async def recent_searches(
    actor: Actor = Depends(get_actor),
    service: VenueService = Depends(get_venue_service),
):
    return await service.get_recent_searches(actor.user_id)


# ===== Trending & discover =====

@router.get("/trending", response_model=PaginatedVenuesSchema)
async def trending_venues(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    service: VenueService = Depends(get_venue_service),
):
    return await service.get_trending_venues(page, limit)


@router.get("/discover", response_model=DiscoverResponseSchema)
async def discover(
    actor: Optional[Actor] = Depends(get_optional_actor),
    service: VenueService = Depends(get_venue_service),
):
    """Recently viewed venues (signed-in callers) plus trending venues."""
    return await service.get_discover(actor.user_id if actor else None)


@router.get("/recently-viewed", response_model=List[VenueSchema])
async def recently_viewed(
    actor: Actor = Depends(get_actor),
    service: VenueService = Depends(get_venue_service),
):
    return await service.get_recently_viewed(actor.user_id)


@router.get("/types", response_model=List[VenueTypeSchema])
async def venue_types(service: VenueMapService = Depends(get_venue_map_service)):
    return await service.get_venue_types()


# ===== Listings =====

@router.post("", response_model=VenueSchema, status_code=201)
async def create_venue(
    body: VenueCreateSchema,
    actor: Actor = Depends(get_actor),
    service: VenueService = Depends(get_venue_service),
):
    """Create a venue listing (admins and venue owners).

    Owner-created listings stay pending until an admin approves them.
    """
    fields, venue_types, hours = _listing_changes(body)
    return await service.create_venue(actor, fields, venue_type_names=venue_types, hours=hours)


# ===== Detail & follow =====

@router.get("/{venue_id}", response_model=VenueSchema)
async def get_venue(
    venue_id: int,
    actor: Optional[Actor] = Depends(get_optional_actor),
    service: VenueService = Depends(get_venue_service),
):
    """Venue detail. Signed-in views count towards trending."""
    return await service.get_venue(venue_id, actor)


@router.patch("/{venue_id}", response_model=VenueSchema)
async def update_venue(
    venue_id: int,
    body: VenueUpdateSchema,
    actor: Actor = Depends(get_actor),
    service: VenueService = Depends(get_venue_service),
):
    fields, venue_types, hours = _listing_changes(body)
    return await service.update_venue(venue_id, actor, fields, venue_type_names=venue_types, hours=hours)


@router.post("/{venue_id}/follow", response_model=FollowResponseSchema)
async def follow_venue(
    venue_id: int,
    actor: Actor = Depends(get_actor),
    service: VenueService = Depends(get_venue_service),
):
    return await service.follow_venue(venue_id, actor)


@router.delete("/{venue_id}/follow", response_model=FollowResponseSchema)
async def unfollow_venue(
    venue_id: int,
    actor: Actor = Depends(get_actor),
    service: VenueService = Depends(get_venue_service),
):
    return await service.unfollow_venue(venue_id, actor)


# ===== Reviews =====

@router.get("/{venue_id}/reviews", response_model=List[ReviewSchema])
async def list_reviews(
    venue_id: int,
    limit: int = Query(REVIEW_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: VenueReviewService = Depends(get_venue_review_service),
):
    """Published reviews, newest first."""
    return await service.get_venue_reviews(venue_id, limit, offset)


@router.post("/{venue_id}/reviews", response_model=ReviewSchema, status_code=201)
async def add_review(
    venue_id: int,
    body: ReviewCreateSchema,
    actor: Actor = Depends(get_actor),
    service: VenueReviewService = Depends(get_venue_review_service),
):
    """One review per user; a second attempt is rejected with 403."""
    return await service.add_venue_review(venue_id, actor, body.rating, body.review)


# ===== Photos =====

@router.get("/{venue_id}/photos", response_model=List[PhotoSchema])
async def list_photos(
    venue_id: int,
    service: VenuePhotoService = Depends(get_venue_photo_service),
):
    """Approved photos in display order."""
    return await service.list_photos(venue_id, approved_only=True)


@router.post("/{venue_id}/photos", response_model=PhotoSchema, status_code=201)
async def add_photo(
    venue_id: int,
    file: Optional[UploadFile] = File(None),
    photo_url: Optional[str] = Form(None),
    caption: Optional[str] = Form(None),
    actor: Actor = Depends(get_actor),
    service: VenuePhotoService = Depends(get_venue_photo_service),
):
    """Upload an image file or register an existing image URL.

    Uploads from admins and venue owners are approved immediately; other
    uploads wait for moderation.
    """
    image_bytes = await file.read() if file else None
    content_type = file.content_type if file else None

    photo = await service.add_photo(
        venue_id,
        actor,
        image_bytes=image_bytes,
        content_type=content_type,
        photo_url=photo_url,
        caption=caption,
    )
    if photo is None:
        raise HTTPException(status_code=502, detail="Photo upload failed")
    return photo


@router.put("/{venue_id}/photos/{photo_id}/primary", response_model=PhotoSchema)
async def set_primary_photo(
    venue_id: int,
    photo_id: int,
    actor: Actor = Depends(get_actor),
    service: VenuePhotoService = Depends(get_venue_photo_service),
):
    return await service.set_primary(venue_id, photo_id, actor)


@router.delete("/{venue_id}/photos/{photo_id}", status_code=204)
async def delete_photo(
    venue_id: int,
    photo_id: int,
    actor: Actor = Depends(get_actor),
    service: VenuePhotoService = Depends(get_venue_photo_service),
):
    await service.delete_photo(photo_id, actor, venue_id=venue_id)
