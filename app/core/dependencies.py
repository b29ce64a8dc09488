"""Dependency injection for FastAPI routes.
Routes depend on services; services are wired here from a per-request session."""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.application.ports.places import ImageStorage
from app.application.services.scan_scheduler import ScanScheduler
from app.application.services.trending_service import TrendingService
from app.application.services.venue_cache_service import VenueCacheService
from app.application.services.venue_event_handler import VenueEventHandler
from app.application.services.venue_maintenance_service import VenueMaintenanceService
from app.application.services.venue_map_service import VenueMapService
from app.application.services.venue_photo_service import VenuePhotoService
from app.application.services.venue_review_service import VenueReviewService
from app.application.services.venue_service import VenueService
from app.core.scan_queue import ScanJobQueue, get_scan_queue
from app.domain.repositories.scanned_area_repository import ScannedAreaRepository
from app.domain.repositories.venue_photo_repository import VenuePhotoRepository
from app.domain.repositories.venue_repository import VenueRepository
from app.domain.repositories.venue_review_repository import VenueReviewRepository
from app.infrastructure.external_apis.cache_client import RedisCache, get_cache
from app.infrastructure.external_apis.gcs_client import GCSImageClient
from app.infrastructure.external_apis.google_places_client import GooglePlacesClient
from app.infrastructure.external_apis.http_client import get_shared_client
from app.infrastructure.external_apis.rate_limiter import RateLimiter
from app.infrastructure.persistence.db import get_db
from app.infrastructure.persistence.repositories.sqlalchemy_scanned_area_repository import (
    SQLAlchemyScannedAreaRepository,
)
from app.infrastructure.persistence.repositories.sqlalchemy_venue_photo_repository import (
    SQLAlchemyVenuePhotoRepository,
)
from app.infrastructure.persistence.repositories.sqlalchemy_venue_repository import (
    SQLAlchemyVenueRepository,
)
from app.infrastructure.persistence.repositories.sqlalchemy_venue_review_repository import (
    SQLAlchemyVenueReviewRepository,
)


# ===== Process-wide clients =====

def get_redis_cache() -> RedisCache:
    return get_cache()


def get_queue() -> ScanJobQueue:
    return get_scan_queue()


def get_places_client() -> GooglePlacesClient:
    """Google Places client sharing the process HTTP pool and cache."""
    cache = get_cache()
    return GooglePlacesClient(
        http_client=get_shared_client(),
        cache=cache,
        rate_limiter=RateLimiter(cache.client),
    )


@lru_cache()
def get_image_storage() -> ImageStorage:
    return GCSImageClient()


# ===== Repositories (per request) =====

def get_venue_repository(db: Session = Depends(get_db)) -> VenueRepository:
    return SQLAlchemyVenueRepository(db)


def get_venue_photo_repository(db: Session = Depends(get_db)) -> VenuePhotoRepository:
    return SQLAlchemyVenuePhotoRepository(db)


def get_venue_review_repository(db: Session = Depends(get_db)) -> VenueReviewRepository:
    return SQLAlchemyVenueReviewRepository(db)


def get_scanned_area_repository(db: Session = Depends(get_db)) -> ScannedAreaRepository:
    return SQLAlchemyScannedAreaRepository(db)


# ===== Services =====

def get_cache_service(cache: RedisCache = Depends(get_redis_cache)) -> VenueCacheService:
    return VenueCacheService(cache)


def get_scan_scheduler(
    scanned_area_repo: ScannedAreaRepository = Depends(get_scanned_area_repository),
    queue: ScanJobQueue = Depends(get_queue),
) -> ScanScheduler:
    return ScanScheduler(scanned_area_repo, queue)


def get_trending_service(
    venue_repo: VenueRepository = Depends(get_venue_repository),
    cache: RedisCache = Depends(get_redis_cache),
) -> TrendingService:
    return TrendingService(venue_repo, cache)


def get_venue_service(
    venue_repo: VenueRepository = Depends(get_venue_repository),
    trending_service: TrendingService = Depends(get_trending_service),
    cache: RedisCache = Depends(get_redis_cache),
    cache_service: VenueCacheService = Depends(get_cache_service),
) -> VenueService:
    return VenueService(venue_repo, trending_service, cache, cache_service)


def get_venue_map_service(
    venue_repo: VenueRepository = Depends(get_venue_repository),
    scan_scheduler: ScanScheduler = Depends(get_scan_scheduler),
    places_client: GooglePlacesClient = Depends(get_places_client),
    cache_service: VenueCacheService = Depends(get_cache_service),
) -> VenueMapService:
    return VenueMapService(venue_repo, scan_scheduler, places_client, cache_service)


def get_venue_photo_service(
    photo_repo: VenuePhotoRepository = Depends(get_venue_photo_repository),
    venue_repo: VenueRepository = Depends(get_venue_repository),
    storage: ImageStorage = Depends(get_image_storage),
    cache_service: VenueCacheService = Depends(get_cache_service),
) -> VenuePhotoService:
    return VenuePhotoService(photo_repo, venue_repo, storage, cache_service)


def get_venue_review_service(
    review_repo: VenueReviewRepository = Depends(get_venue_review_repository),
    venue_repo: VenueRepository = Depends(get_venue_repository),
    cache_service: VenueCacheService = Depends(get_cache_service),
) -> VenueReviewService:
    return VenueReviewService(review_repo, venue_repo, cache_service)

def get_venue_event_handler(
    venue_repo: VenueRepository = Depends(get_venue_repository),
    trending_service: TrendingService = Depends(get_trending_service),
) -> VenueEventHandler:
    return VenueEventHandler(venue_repo, trending_service)


def get_maintenance_service(
    venue_repo: VenueRepository = Depends(get_venue_repository),
    scan_scheduler: ScanScheduler = Depends(get_scan_scheduler),
) -> VenueMaintenanceService:
    return VenueMaintenanceService(venue_repo, scan_scheduler)
