"""Use case: scan one geohash bucket for venues on Google Places."""
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Callable, Dict, Any, Optional, Sequence

from app.application.ports.places import PlaceSearchClient
from app.application.services.venue_merger import (
    build_candidate_from_place,
    map_google_types,
    merge_venue,
)
from app.config import settings
from app.constants import SCAN_PLACE_CATEGORIES
from app.domain.repositories.scanned_area_repository import ScannedAreaRepository
from app.domain.repositories.venue_repository import VenueRepository
from app.utils import geohash

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    geohash_prefix: str
    places_found: int = 0
    upserted: int = 0
    errors: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ScanAreaUseCase:
    """Search every scan category around a bucket centre and upsert the venues found.

    A failure on one place is logged and counted; the bucket's ledger entry is
    written once every category has been processed. Errors outside the
    per-place loop (e.g. an undecodable geohash) propagate so the job can be
    retried.
    """

    def __init__(
        self,
        places_client: PlaceSearchClient,
        venue_repository: VenueRepository,
        scanned_area_repository: ScannedAreaRepository,
        radius_meters: Optional[int] = None,
        categories: Sequence[str] = SCAN_PLACE_CATEGORIES,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._places = places_client
        self._venue_repo = venue_repository
        self._scanned_area_repo = scanned_area_repository
        self._radius_meters = radius_meters or settings.VENUE_SCAN_RADIUS_METERS
        self._categories = categories
        self._clock = clock

    async def execute(self, geohash_prefix: str, job_id: Optional[str] = None) -> ScanResult:
        """Scan one bucket.

        Args:
            geohash_prefix: Bucket to scan
            job_id: Identifier used in log lines

        Returns:
            ScanResult with found/upserted/error/skipped counts

        Raises:
            ValueError: If the geohash cannot be decoded
        """
        tag = f"[Job {job_id or geohash_prefix}]"
        logger.info(f"{tag} Starting scan for geohash: {geohash_prefix}")

        latitude, longitude = geohash.decode(geohash_prefix)
        result = ScanResult(geohash_prefix=geohash_prefix)

        for category in self._categories:
            places = await self._places.search_nearby(latitude, longitude, self._radius_meters, category)
            logger.debug(f"{tag} Found {len(places)} places for type {category}")
            result.places_found += len(places)

            for place in places:
                place_id = place.get("place_id") if isinstance(place, dict) else None
                try:
                    if not place_id:
                        logger.warning(f"{tag} Skipping place with no place_id")
                        result.skipped += 1
                        continue
                    outcome = await self._process_place(place_id, tag)
                    setattr(result, outcome, getattr(result, outcome) + 1)
                except Exception as e:
                    result.errors += 1
                    logger.error(f"{tag} Failed to process place_id {place_id or 'unknown'}: {e}", exc_info=True)
                    await self._venue_repo.rollback()

        await self._scanned_area_repo.upsert_last_scanned(geohash_prefix, self._clock())

        logger.info(
            f"{tag} ✓ Completed scan for geohash: {geohash_prefix}. "
            f"Total places found: {result.places_found}. "
            f"Successfully upserted: {result.upserted}. "
            f"Errored places: {result.errors}. Skipped: {result.skipped}."
        )
        return result

    async def _process_place(self, place_id: str, tag: str) -> str:
        """Fetch, map and upsert one place.

        Returns:
            The ScanResult counter to bump: "upserted", "skipped" or "errors"
        """
        details = await self._places.get_place_details(place_id)
        if not details:
            logger.warning(f"{tag} Failed to get details for place_id: {place_id}")
            return "errors"

        venue_types = map_google_types(details.get("types") or [])
        if not venue_types:
            logger.debug(f"{tag} Place {place_id} ({details.get('name')}) has no known venue type. Skipping.")
            return "skipped"

        candidate = build_candidate_from_place(details)
        existing = await self._venue_repo.get_by_google_place_id(place_id)
        venue = merge_venue(existing, candidate, now=self._clock())
        saved = await self._venue_repo.save(venue, venue_type_names=venue_types)
        action = "Updated" if existing else "Created"
        logger.debug(f"{tag} {action} venue: {saved.name} (ID: {saved.id})")
        return "upserted"
