"""Admin endpoints for venue moderation, photo review and maintenance."""
import logging
from typing import Optional, List

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_admin_actor, verify_admin_key
from app.api.v1.schemas.admin_schemas import (
    AdminVenueListSchema,
    AdminVenueSchema,
    AdminVenueUpdateSchema,
    BulkApproveRequestSchema,
    BulkApproveResponseSchema,
    GoogleImportRequestSchema,
    GoogleImportResponseSchema,
    PhotoOrderRequestSchema,
    StalenessCheckResponseSchema,
    TrendingRefreshResponseSchema,
    VenueStatusSchema,
)
from app.api.v1.schemas.venue_schemas import PhotoSchema
from app.application.services.trending_service import TrendingService
from app.application.services.venue_maintenance_service import VenueMaintenanceService
from app.application.services.venue_map_service import VenueMapService
from app.application.services.venue_photo_service import VenuePhotoService
from app.application.services.venue_service import VenueService
from app.core.dependencies import (
    get_maintenance_service,
    get_trending_service,
    get_venue_map_service,
    get_venue_photo_service,
    get_venue_service,
)
from app.domain.value_objects.roles import Actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(verify_admin_key)])


# ===== Venues =====

@router.get("/venues/overrides", response_model=AdminVenueListSchema)
async def list_venues_with_overrides(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: VenueService = Depends(get_venue_service),
):
    """Venues carrying admin overrides, most recently edited first."""
    return await service.list_venues_with_overrides(limit, offset)


@router.patch("/venues/{venue_id}", response_model=AdminVenueSchema)
async def update_venue(
    venue_id: int,
    body: AdminVenueUpdateSchema,
    admin: Actor = Depends(get_admin_actor),
    service: VenueService = Depends(get_venue_service),
):
    """Edit a venue. Edited fields are kept across later Google refreshes."""
    updates = body.model_dump(exclude_unset=True)
    return await service.admin_update_venue(venue_id, updates, admin.user_id)


@router.patch("/venues/{venue_id}/status", response_model=AdminVenueSchema)
async def set_venue_status(
    venue_id: int,
    body: VenueStatusSchema,
    admin: Actor = Depends(get_admin_actor),
    service: VenueService = Depends(get_venue_service),
):
    return await service.set_status(venue_id, body.status, admin.user_id)


@router.post("/venues/import", response_model=GoogleImportResponseSchema)
async def import_from_google(
    body: GoogleImportRequestSchema,
    admin: Actor = Depends(get_admin_actor),
    service: VenueMapService = Depends(get_venue_map_service),
):
    """Immediately import one Google place category around a point."""
    return await service.import_venues_from_google(
        body.latitude, body.longitude, body.radius_meters, body.category, admin
    )


@router.post("/venues/{venue_id}/refresh", response_model=AdminVenueSchema)
async def refresh_venue_google_data(
    venue_id: int,
    admin: Actor = Depends(get_admin_actor),
    service: VenueMapService = Depends(get_venue_map_service),
):
    """Re-fetch one venue from Google now. Admin overrides still win."""
    return await service.refresh_venue_google_data(venue_id, admin)


# ===== Photos =====

@router.get("/venues/{venue_id}/photos", response_model=List[PhotoSchema])
async def list_venue_photos(
    venue_id: int,
    source: Optional[str] = Query(None, pattern="^(google|admin|user)$"),
    service: VenuePhotoService = Depends(get_venue_photo_service),
):
    """All photos of a venue including unapproved ones."""
    return await service.admin_list_photos(venue_id, source)


@router.put("/venues/{venue_id}/photos/order", response_model=List[PhotoSchema])
async def update_photo_order(
    venue_id: int,
    body: PhotoOrderRequestSchema,
    admin: Actor = Depends(get_admin_actor),
    service: VenuePhotoService = Depends(get_venue_photo_service),
):
    orders = [(item.photo_id, item.order) for item in body.orders]
    return await service.update_order(venue_id, orders, admin)


@router.post("/photos/bulk-approve", response_model=BulkApproveResponseSchema)
async def bulk_approve_photos(
    body: BulkApproveRequestSchema,
    admin: Actor = Depends(get_admin_actor),
    service: VenuePhotoService = Depends(get_venue_photo_service),
):
    return await service.bulk_approve(body.photo_ids, admin)


@router.post("/photos/{photo_id}/approve", response_model=PhotoSchema)
async def approve_photo(
    photo_id: int,
    admin: Actor = Depends(get_admin_actor),
    service: VenuePhotoService = Depends(get_venue_photo_service),
):
    return await service.approve_photo(photo_id, admin)


@router.post("/photos/{photo_id}/reject", response_model=PhotoSchema)
async def reject_photo(
    photo_id: int,
    admin: Actor = Depends(get_admin_actor),
    service: VenuePhotoService = Depends(get_venue_photo_service),
):
    return await service.reject_photo(photo_id, admin)


# ===== Maintenance =====

@router.post("/trending/refresh", response_model=TrendingRefreshResponseSchema)
async def refresh_trending(service: TrendingService = Depends(get_trending_service)):
    """Recompute every active venue's trending score now."""
    logger.info("Manual trending refresh requested")
    return await service.refresh_all()


@router.post("/maintenance/staleness-check", response_model=StalenessCheckResponseSchema)
async def staleness_check(service: VenueMaintenanceService = Depends(get_maintenance_service)):
    """Run the weekly staleness sweep now."""
    logger.info("Manual staleness check requested")
    return await service.check_stale_venues()
