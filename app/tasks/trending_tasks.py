"""Celery task refreshing venue trending scores."""
import asyncio
import logging

from app.application.services.trending_service import TrendingService
from app.celery_app import celery_app
from app.infrastructure.external_apis.cache_client import RedisCache
from app.infrastructure.persistence.db import SessionLocal
from app.infrastructure.persistence.repositories.sqlalchemy_venue_repository import (
    SQLAlchemyVenueRepository,
)

logger = logging.getLogger(__name__)


async def run_refresh(session):
    cache = RedisCache()
    try:
        return await TrendingService(SQLAlchemyVenueRepository(session), cache).refresh_all()
    finally:
        await cache.close()


@celery_app.task(name="app.tasks.trending_tasks.refresh_trending_scores")
def refresh_trending_scores():
    """Recompute trending scores for all active venues (hourly)."""
    logger.info("Starting trending score refresh task")
    session = SessionLocal()
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        stats = loop.run_until_complete(run_refresh(session))
        return {"status": "success", **stats}
    except Exception as e:
        logger.error(f"Trending score refresh failed: {e}", exc_info=True)
        return {"status": "error", "error": str(e)}
    finally:
        loop.close()
        session.close()
