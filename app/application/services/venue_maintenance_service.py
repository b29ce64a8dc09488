"""Periodic staleness sweep over stored venues, plus city backfill."""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from app.application.dto.venue_dto import admin_venue_to_dict
from app.application.services.scan_scheduler import ScanScheduler
from app.config import settings
from app.domain.exceptions import VenueNotFoundError, VenueValidationError
from app.domain.repositories.venue_repository import VenueRepository
from app.utils import geohash

logger = logging.getLogger(__name__)


class VenueMaintenanceService:
    """Finds venues whose Google data is out of date and re-enqueues their areas."""

    def __init__(self, venue_repo: VenueRepository, scan_scheduler: ScanScheduler):
        self.venue_repo = venue_repo
        self.scan_scheduler = scan_scheduler

    async def check_stale_venues(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Enqueue a staleness check for every bucket holding a stale venue.

        Returns:
            {stale_venues_count, unique_geohash_count, enqueued_count, decode_errors}
        """
        threshold_hours = settings.VENUE_SCAN_STALENESS_THRESHOLD_HOURS
        cutoff = (now or datetime.utcnow()) - timedelta(hours=threshold_hours)
        logger.info(f"Finding venues not refreshed since {cutoff.isoformat()} (threshold: {threshold_hours}h)")

        stale_venues = await self.venue_repo.list_refreshed_before(cutoff)
        if not stale_venues:
            logger.info("No stale venues found requiring refresh")
            return {"stale_venues_count": 0, "unique_geohash_count": 0, "enqueued_count": 0, "decode_errors": 0}

        prefixes: List[str] = []
        decode_errors = 0
        for venue in stale_venues:
            try:
                prefix = geohash.encode(venue.latitude, venue.longitude)
            except (TypeError, ValueError) as e:
                logger.warning(f"Could not encode location of stale venue {venue.id}: {e}")
                decode_errors += 1
                continue
            if prefix not in prefixes:
                prefixes.append(prefix)

        logger.info(f"Found {len(prefixes)} unique areas to scan (decode errors: {decode_errors})")

        enqueued = 0
        for prefix in prefixes:
            try:
                latitude, longitude = geohash.decode(prefix)
            except ValueError as e:
                logger.error(f"Error decoding geohash {prefix}: {e}")
                decode_errors += 1
                continue
            if await self.scan_scheduler.enqueue_scan_if_stale(latitude, longitude):
                enqueued += 1

        logger.info(f"✓ Staleness check enqueued {enqueued} scan jobs")
        return {
            "stale_venues_count": len(stale_venues),
            "unique_geohash_count": len(prefixes),
            "enqueued_count": enqueued,
            "decode_errors": decode_errors,
        }

    async def list_venues_without_city(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Venues with no city assigned, oldest first.

        Raises:
            VenueValidationError: If limit is outside 1..BACKFILL_MAX_LIMIT
        """
        limit = limit or settings.BACKFILL_DEFAULT_LIMIT
        if not 1 <= limit <= settings.BACKFILL_MAX_LIMIT:
            raise VenueValidationError(f"limit must be between 1 and {settings.BACKFILL_MAX_LIMIT}")
        venues = await self.venue_repo.list_without_city(limit)
        return [admin_venue_to_dict(v) for v in venues]

    async def set_venue_city(self, venue_id: int, city_id: int) -> Dict[str, Any]:
        """Assign a city to a venue.

        Raises:
            VenueNotFoundError: If the venue does not exist
        """
        if not await self.venue_repo.update_city(venue_id, city_id):
            raise VenueNotFoundError(venue_id)
        logger.info(f"Backfilled city {city_id} for venue {venue_id}")
        return {"venue_id": venue_id, "city_id": city_id}
