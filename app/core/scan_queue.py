"""Deduplicated job queue for area scans.

At most one scan job per geohash bucket is queued or running at any time.
The job id is ``scan-<geohash>``; a Redis marker under that id is taken with
``SET NX EX`` before the Celery task is dispatched and released by the
worker when the job finishes (success or final failure).
"""
import logging
import time
from typing import Callable, Dict, Optional

import redis

from app.config import settings as app_config
from app.constants import SCAN_JOB_ID_PREFIX
from app.core.settings import settings

logger = logging.getLogger(__name__)

Dispatcher = Callable[[str, str], None]


def scan_job_id(geohash_prefix: str) -> str:
    return f"{SCAN_JOB_ID_PREFIX}{geohash_prefix}"


def _celery_dispatch(geohash_prefix: str, job_id: str) -> None:
    from app.tasks.venue_scan_tasks import scan_area

    scan_area.apply_async(args=[geohash_prefix], task_id=job_id)


class ScanJobQueue:
    """Enqueue scan jobs keyed by geohash prefix, dropping duplicates."""

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        dispatcher: Optional[Dispatcher] = None,
        lock_ttl_seconds: Optional[int] = None,
        connect: bool = True,
    ):
        self.dispatcher = dispatcher or _celery_dispatch
        self.lock_ttl_seconds = lock_ttl_seconds or app_config.VENUE_SCAN_LOCK_TTL_SECONDS
        self.redis_client = redis_client
        # job id -> marker expiry (monotonic seconds)
        self._memory_store: Dict[str, float] = {}

        if self.redis_client is None and connect:
            try:
                self.redis_client = redis.Redis(
                    host=settings.REDIS_HOST,
                    port=settings.REDIS_PORT,
                    db=settings.SCAN_QUEUE_REDIS_DB,
                    decode_responses=True
                )
                self.redis_client.ping()
                logger.info("✓ Scan queue connected to Redis")
            except Exception as e:
                logger.warning(f"⚠ Scan queue: Redis not available, using in-memory fallback: {e}")
                self.redis_client = None

    def _acquire(self, job_id: str) -> bool:
        if self.redis_client:
            try:
                return bool(self.redis_client.set(job_id, "1", nx=True, ex=self.lock_ttl_seconds))
            except Exception as e:
                logger.warning(f"⚠ Scan queue Redis error, using in-memory fallback: {e}")

        now = time.monotonic()
        expires_at = self._memory_store.get(job_id)
        if expires_at is not None and expires_at > now:
            return False
        self._memory_store[job_id] = now + self.lock_ttl_seconds
        return True

    def is_active(self, geohash_prefix: str) -> bool:
        """Whether a job for this bucket is queued or running."""
        job_id = scan_job_id(geohash_prefix)
        if self.redis_client:
            try:
                return bool(self.redis_client.exists(job_id))
            except Exception as e:
                logger.warning(f"⚠ Scan queue Redis error: {e}")

        expires_at = self._memory_store.get(job_id)
        return expires_at is not None and expires_at > time.monotonic()

    def enqueue(self, geohash_prefix: str) -> bool:
        """Submit a scan job for a bucket.

        Args:
            geohash_prefix: Bucket to scan

        Returns:
            True if a job was dispatched, False if one is already active
        """
        job_id = scan_job_id(geohash_prefix)
        if not self._acquire(job_id):
            logger.debug(f"Scan job {job_id} already active, skipping")
            return False

        try:
            self.dispatcher(geohash_prefix, job_id)
        except Exception:
            self.release(geohash_prefix)
            raise

        logger.info(f"✓ Enqueued scan job {job_id}")
        return True

    def release(self, geohash_prefix: str):
        """Clear the active marker so the bucket can be scanned again."""
        job_id = scan_job_id(geohash_prefix)
        self._memory_store.pop(job_id, None)
        if self.redis_client:
            try:
                self.redis_client.delete(job_id)
            except Exception as e:
                logger.error(f"Error releasing scan job marker {job_id}: {e}")


# Global queue instance
_scan_queue: Optional[ScanJobQueue] = None


def get_scan_queue() -> ScanJobQueue:
    """Get the global scan queue instance."""
    global _scan_queue
    if _scan_queue is None:
        _scan_queue = ScanJobQueue()
    return _scan_queue
