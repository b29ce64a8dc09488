"""Celery task for the weekly venue staleness sweep."""
import asyncio
import logging

from app.application.services.scan_scheduler import ScanScheduler
from app.application.services.venue_maintenance_service import VenueMaintenanceService
from app.celery_app import celery_app
from app.core.scan_queue import get_scan_queue
from app.infrastructure.persistence.db import SessionLocal
from app.infrastructure.persistence.repositories.sqlalchemy_scanned_area_repository import (
    SQLAlchemyScannedAreaRepository,
)
from app.infrastructure.persistence.repositories.sqlalchemy_venue_repository import (
    SQLAlchemyVenueRepository,
)

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.maintenance_tasks.check_stale_venues")
def check_stale_venues():
    """Re-enqueue scans for areas whose venues have not been refreshed recently."""
    logger.info("Starting periodic venue staleness check")
    session = SessionLocal()
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        scheduler = ScanScheduler(SQLAlchemyScannedAreaRepository(session), get_scan_queue())
        service = VenueMaintenanceService(SQLAlchemyVenueRepository(session), scheduler)
        summary = loop.run_until_complete(service.check_stale_venues())
        return {"status": "success", **summary}
    except Exception as e:
        logger.error(f"Critical error during staleness check: {e}", exc_info=True)
        return {"status": "error", "error": str(e)}
    finally:
        loop.close()
        session.close()
