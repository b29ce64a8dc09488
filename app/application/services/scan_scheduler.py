"""Staleness evaluation for geohash buckets."""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.config import settings
from app.core.scan_queue import ScanJobQueue
from app.domain.repositories.scanned_area_repository import ScannedAreaRepository
from app.utils import geohash

logger = logging.getLogger(__name__)


class ScanScheduler:
    """Decides whether an area needs a fresh Google scan and enqueues it."""

    def __init__(
        self,
        scanned_area_repo: ScannedAreaRepository,
        scan_queue: ScanJobQueue,
        staleness_threshold_hours: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.scanned_area_repo = scanned_area_repo
        self.scan_queue = scan_queue
        self.threshold = timedelta(
            hours=staleness_threshold_hours or settings.VENUE_SCAN_STALENESS_THRESHOLD_HOURS
        )
        self.clock = clock

    async def should_scan(self, latitude: float, longitude: float) -> bool:
        """True if the point's bucket was never scanned or its scan is older than the threshold."""
        geohash_prefix = geohash.encode(latitude, longitude)
        last_scanned = await self.scanned_area_repo.find_last_scanned(geohash_prefix)
        if last_scanned is None:
            return True
        return self.clock() - last_scanned >= self.threshold

    async def enqueue_scan_if_stale(self, latitude: float, longitude: float) -> bool:
        """Enqueue a scan for the point's bucket when stale.

        Never raises: runs detached from user requests.

        Returns:
            True if a scan job was enqueued
        """
        try:
            if not await self.should_scan(latitude, longitude):
                return False
            geohash_prefix = geohash.encode(latitude, longitude)
            # Redis marker and broker publish are blocking calls
            enqueued = await asyncio.to_thread(self.scan_queue.enqueue, geohash_prefix)
            if enqueued:
                logger.info(f"Area {geohash_prefix} is stale, scan enqueued")
            return enqueued
        except Exception as e:
            logger.error(f"Failed to evaluate/enqueue scan for {latitude},{longitude}: {e}")
            return False
