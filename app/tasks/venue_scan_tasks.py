"""Celery task that scans one geohash bucket for venues."""
import asyncio
import logging
from typing import Any, Dict

import httpx

from app.application.use_cases.scan_area import ScanAreaUseCase
from app.celery_app import celery_app
from app.config import settings
from app.core.scan_queue import get_scan_queue
from app.infrastructure.external_apis.cache_client import RedisCache
from app.infrastructure.external_apis.google_places_client import GooglePlacesClient
from app.infrastructure.external_apis.http_client import build_limits
from app.infrastructure.external_apis.rate_limiter import RateLimiter
from app.infrastructure.persistence.db import SessionLocal
from app.infrastructure.persistence.repositories.sqlalchemy_scanned_area_repository import (
    SQLAlchemyScannedAreaRepository,
)
from app.infrastructure.persistence.repositories.sqlalchemy_venue_repository import (
    SQLAlchemyVenueRepository,
)

logger = logging.getLogger(__name__)


async def run_scan(session, geohash_prefix: str, job_id: str) -> Dict[str, Any]:
    """Run one scan with clients bound to the current event loop."""
    cache = RedisCache()
    try:
        async with httpx.AsyncClient(timeout=settings.GOOGLE_API_TIMEOUT_SECONDS, limits=build_limits()) as http_client:
            places_client = GooglePlacesClient(
                http_client=http_client,
                cache=cache,
                rate_limiter=RateLimiter(cache.client),
            )
            use_case = ScanAreaUseCase(
                places_client=places_client,
                venue_repository=SQLAlchemyVenueRepository(session),
                scanned_area_repository=SQLAlchemyScannedAreaRepository(session),
            )
            result = await use_case.execute(geohash_prefix, job_id=job_id)
            return result.to_dict()
    finally:
        await cache.close()


@celery_app.task(
    name="app.tasks.venue_scan_tasks.scan_area",
    bind=True,
    max_retries=settings.VENUE_SCAN_MAX_ATTEMPTS - 1,
)
def scan_area(self, geohash_prefix: str):
    """Scan a bucket; retried with exponential backoff on job-level errors.

    The bucket's active marker is released on success and after the last
    failed attempt, never between retries.
    """
    job_id = self.request.id or geohash_prefix
    attempt = self.request.retries + 1
    logger.info(f"[Job {job_id}] Scan attempt {attempt}/{self.max_retries + 1} for {geohash_prefix}")

    session = SessionLocal()
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        result = loop.run_until_complete(run_scan(session, geohash_prefix, job_id))
        get_scan_queue().release(geohash_prefix)
        return {"status": "success", **result}

    except Exception as e:
        logger.error(f"[Job {job_id}] CRITICAL ERROR scanning {geohash_prefix}: {e}", exc_info=True)
        if self.request.retries >= self.max_retries:
            get_scan_queue().release(geohash_prefix)
            raise
        countdown = settings.VENUE_SCAN_BACKOFF_SECONDS * (2 ** self.request.retries)
        raise self.retry(exc=e, countdown=countdown)

    finally:
        loop.close()
        session.close()
