"""Map search over local venues, with background refresh of stale areas."""
import logging
from typing import Any, Dict, List, Optional

from app.application.dto.venue_dto import admin_venue_to_dict, venue_to_dict
from app.application.ports.places import PlaceSearchClient
from app.application.services.scan_scheduler import ScanScheduler
from app.application.services.venue_cache_service import VenueCacheService
from app.application.services.venue_merger import (
    build_candidate_from_place,
    map_google_types,
    merge_venue,
)
from app.config import settings
from app.constants import FALLBACK_VENUE_TYPE
from app.core.background import spawn_background
from app.domain.exceptions import (
    ExternalDataUnavailableError,
    InvalidSearchError,
    MissingGooglePlaceError,
    PermissionDeniedError,
    VenueNotFoundError,
)
from app.domain.repositories.venue_repository import VenueRepository
from app.domain.value_objects.roles import Actor
from app.domain.value_objects.venue_search import ORDER_ASC, SORT_DISTANCE, VenueSearchOptions

logger = logging.getLogger(__name__)


class VenueMapService:
    """Serves searches from the local store and schedules scans for stale areas.

    Reads never wait on Google: a stale area is enqueued in the background
    and later searches pick up the refreshed venues.
    """

    def __init__(
        self,
        venue_repo: VenueRepository,
        scan_scheduler: ScanScheduler,
        places_client: Optional[PlaceSearchClient] = None,
        cache_service: Optional[VenueCacheService] = None,
    ):
        self.venue_repo = venue_repo
        self.scan_scheduler = scan_scheduler
        self.places_client = places_client
        self.cache_service = cache_service

    def _trigger_scan(self, latitude: float, longitude: float):
        spawn_background(
            self.scan_scheduler.enqueue_scan_if_stale(latitude, longitude),
            name=f"scan-check-{latitude:.4f},{longitude:.4f}",
        )

    async def search_venues(self, options: VenueSearchOptions, require_location: bool = True) -> Dict[str, Any]:
        """Filtered venue search.

        Args:
            options: Search options
            require_location: Reject searches without a point (map search)

        Returns:
            {"venues": [...], "total": int}; empty on internal errors

        Raises:
            InvalidSearchError: If a point is required and missing
        """
        if require_location and not options.has_location:
            logger.warning("Map search called without latitude/longitude")
            raise InvalidSearchError("Latitude and longitude are required for map search")

        if options.has_location:
            self._trigger_scan(options.latitude, options.longitude)

        try:
            venues, total = await self.venue_repo.search(options)
        except Exception as e:
            logger.error(f"Failed to search venues: {e}", exc_info=True)
            return {"venues": [], "total": 0}

        return {"venues": [venue_to_dict(v) for v in venues], "total": total}

    async def get_venues_near_location(
        self,
        latitude: float,
        longitude: float,
        radius_miles: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Closest venues first."""
        options = VenueSearchOptions(
            latitude=latitude,
            longitude=longitude,
            radius=radius_miles or settings.SEARCH_DEFAULT_RADIUS_MILES,
            sort_by=SORT_DISTANCE,
            order=ORDER_ASC,
            limit=limit or settings.DEFAULT_PAGE_SIZE,
        )
        result = await self.search_venues(options)
        return result["venues"]

    async def get_venue_types(self) -> List[dict]:
        try:
            return await self.venue_repo.list_venue_types()
        except Exception as e:
            logger.error(f"Failed to get venue types: {e}")
            return []

    async def geocode_address(self, address: str) -> Optional[Dict[str, float]]:
        """Resolve an address to {latitude, longitude}, or None."""
        result = await self.places_client.geocode_address(address)
        if not result or result.get("latitude") is None:
            return None
        return {"latitude": result["latitude"], "longitude": result["longitude"]}

    async def reverse_geocode(self, latitude: float, longitude: float) -> Optional[Dict[str, Any]]:
        address = await self.places_client.reverse_geocode(latitude, longitude)
        if not address:
            return None
        return {"latitude": latitude, "longitude": longitude, "address": address}

    async def import_venues_from_google(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int,
        category: str,
        actor: Actor,
    ) -> Dict[str, int]:
        """Admin import of one Google category around a point.

        Places with no known type are filed under "Other".

        Returns:
            {"found", "created", "updated", "failed"}

        Raises:
            PermissionDeniedError: If the actor is not an admin
        """
        if not actor.is_admin:
            raise PermissionDeniedError("Only admins can import venues from Google")
        if self.places_client is None:
            raise RuntimeError("Google Places client is not configured")

        places = await self.places_client.search_nearby(latitude, longitude, radius_meters, category)
        stats = {"found": len(places), "created": 0, "updated": 0, "failed": 0}

        for place in places:
            place_id = place.get("place_id")
            try:
                details = await self.places_client.get_place_details(place_id) if place_id else None
                if not details:
                    stats["failed"] += 1
                    continue
                existing = await self.venue_repo.get_by_google_place_id(place_id)
                venue = merge_venue(existing, build_candidate_from_place(details))
                type_names = map_google_types(details.get("types") or [], fallback=FALLBACK_VENUE_TYPE)
                await self.venue_repo.save(venue, venue_type_names=type_names)
                stats["updated" if existing else "created"] += 1
            except Exception as e:
                stats["failed"] += 1
                logger.error(f"Failed to import place {place_id}: {e}", exc_info=True)
                await self.venue_repo.rollback()

        logger.info(
            f"✓ Google import ({category}) at {latitude},{longitude}: "
            f"{stats['created']} created, {stats['updated']} updated, {stats['failed']} failed"
        )
        return stats

    async def refresh_venue_google_data(self, venue_id: int, actor: Actor) -> Dict[str, Any]:
        """Re-fetch one venue from Google now, keeping its admin overrides.

        Raises:
            PermissionDeniedError: If the actor is not an admin
            VenueNotFoundError: If the venue does not exist
            MissingGooglePlaceError: If the venue has no Google place id
            ExternalDataUnavailableError: If Google returns no details
        """
        if not actor.is_admin:
            raise PermissionDeniedError("Only admins can refresh Google data")
        if self.places_client is None:
            raise RuntimeError("Google Places client is not configured")

        venue = await self.venue_repo.get_by_id(venue_id)
        if venue is None:
            raise VenueNotFoundError(venue_id)
        if not venue.google_place_id:
            raise MissingGooglePlaceError(venue_id)

        details = await self.places_client.get_place_details(venue.google_place_id)
        if not details:
            raise ExternalDataUnavailableError(f"Google returned no details for place {venue.google_place_id}")

        merged = merge_venue(venue, build_candidate_from_place(details))
        type_names = map_google_types(details.get("types") or []) or None
        saved = await self.venue_repo.save(merged, venue_type_names=type_names)
        if self.cache_service is not None:
            await self.cache_service.invalidate_all()

        logger.info(f"✓ Admin {actor.user_id} refreshed Google data for venue {venue_id}")
        return admin_venue_to_dict(saved)
