"""Admin backfill endpoints for venues missing a city."""
from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import verify_admin_key
from app.api.v1.schemas.admin_schemas import AdminVenueSchema, VenueCityResponseSchema, VenueCityUpdateSchema
from app.application.services.venue_maintenance_service import VenueMaintenanceService
from app.config import settings
from app.core.dependencies import get_maintenance_service

router = APIRouter(prefix="/admin/backfill", tags=["admin"], dependencies=[Depends(verify_admin_key)])


@router.get("/venues-without-city", response_model=List[AdminVenueSchema])
async def venues_without_city(
    limit: int = Query(settings.BACKFILL_DEFAULT_LIMIT, ge=1, le=settings.BACKFILL_MAX_LIMIT),
    service: VenueMaintenanceService = Depends(get_maintenance_service),
):
    """Venues with no city assigned, for the city backfill job."""
    return await service.list_venues_without_city(limit)


@router.patch("/venues/{venue_id}/city", response_model=VenueCityResponseSchema)
async def set_venue_city(
    venue_id: int,
    body: VenueCityUpdateSchema,
    service: VenueMaintenanceService = Depends(get_maintenance_service),
):
    return await service.set_venue_city(venue_id, body.city_id)
