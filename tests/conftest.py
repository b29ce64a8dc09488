"""
Pytest configuration and shared fixtures for backend tests.

This module provides test fixtures for:
- Database sessions (in-memory SQLite for fast tests)
- FastAPI test client
- Fake Redis, Google Places and image storage
- Test data factories
"""

import fnmatch
import os
from datetime import datetime
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Import app and models
from app.main import app
from app.constants import VENUE_STATUS_ACTIVE
from app.core import dependencies
from app.core.scan_queue import ScanJobQueue
from app.core.settings import settings
from app.infrastructure.external_apis.cache_client import RedisCache
from app.infrastructure.persistence import models
from app.infrastructure.persistence.db import Base, create_db_engine, get_db
from app.infrastructure.persistence.repositories.sqlalchemy_scanned_area_repository import (
    SQLAlchemyScannedAreaRepository,
)
from app.infrastructure.persistence.repositories.sqlalchemy_venue_photo_repository import (
    SQLAlchemyVenuePhotoRepository,
)
from app.infrastructure.persistence.repositories.sqlalchemy_venue_repository import (
    SQLAlchemyVenueRepository,
)

ADMIN_KEY = "test_admin_key"
INTERNAL_KEY = "test_internal_key"


# ==============================================================================
# DATABASE FIXTURES
# ==============================================================================

@pytest.fixture(scope="function")
def test_db_engine():
    """Create an in-memory SQLite database with haversine functions registered."""
    engine = create_db_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def venue_repo(test_db_session):
    return SQLAlchemyVenueRepository(test_db_session)


@pytest.fixture
def photo_repo(test_db_session):
    return SQLAlchemyVenuePhotoRepository(test_db_session)


@pytest.fixture
def scanned_area_repo(test_db_session):
    return SQLAlchemyScannedAreaRepository(test_db_session)


# ==============================================================================
# FAKE EXTERNAL SERVICES
# ==============================================================================

class FakeRedis:
    """In-memory stand-in for the redis.asyncio commands the app uses."""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unavailable")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        value = self.store.get(key)
        return None if isinstance(value, list) else value

    async def set(self, key, value, ex=None, nx=False):
        self._check()
        if nx and key in self.store:
            return None
        self.store[key] = str(value)
        if ex:
            self.ttls[key] = ex
        else:
            self.ttls.pop(key, None)
        return True

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = str(value)
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def incr(self, key):
        self._check()
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def decrby(self, key, amount):
        self._check()
        value = int(self.store.get(key, 0)) - amount
        self.store[key] = str(value)
        return value

    async def decr(self, key):
        return await self.decrby(key, 1)

    async def ttl(self, key):
        self._check()
        if key not in self.store:
            return -2
        return self.ttls.get(key, -1)

    async def lrem(self, key, count, item):
        self._check()
        items = self.store.get(key, [])
        kept = [i for i in items if i != item]
        self.store[key] = kept
        return len(items) - len(kept)

    async def lpush(self, key, item):
        self._check()
        self.store.setdefault(key, []).insert(0, item)
        return len(self.store[key])

    async def ltrim(self, key, start, end):
        self._check()
        self.store[key] = self.store.get(key, [])[start:end + 1]
        return True

    async def lrange(self, key, start, end):
        self._check()
        return list(self.store.get(key, [])[start:end + 1])

    async def expire(self, key, ttl):
        self._check()
        self.ttls[key] = ttl
        return True

    async def scan(self, cursor=0, match=None, count=None):
        self._check()
        keys = [k for k in self.store if match is None or fnmatch.fnmatchcase(k, match)]
        return 0, keys

    async def aclose(self):
        return None


class FakePlacesClient:
    """Canned Google Places responses keyed by place id."""

    def __init__(self, places: Optional[List[dict]] = None, details: Optional[dict] = None):
        self.places = places or []
        self.details = details or {}
        self.nearby_calls = []
        self.geocoded = {}
        self.addresses = {}

    async def search_nearby(self, latitude, longitude, radius_meters, place_type=None, keyword=None):
        self.nearby_calls.append((latitude, longitude, radius_meters, place_type))
        return list(self.places)

    async def get_place_details(self, place_id):
        detail = self.details.get(place_id)
        if isinstance(detail, Exception):
            raise detail
        return detail

    async def geocode_address(self, address):
        return self.geocoded.get(address)

    async def reverse_geocode(self, latitude, longitude):
        return self.addresses.get((latitude, longitude))


class FakeImageStorage:
    """Records uploads and returns CDN-style URLs."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads = {}
        self.deleted_prefixes = []

    def upload_image(self, image_bytes, blob_path, content_type="image/webp"):
        if self.fail:
            return None
        self.uploads[blob_path] = (image_bytes, content_type)
        return f"https://cdn.test/{blob_path}"

    def delete_prefix(self, prefix):
        self.deleted_prefixes.append(prefix)
        return len([p for p in self.uploads if p.startswith(prefix)])


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    """RedisCache backed by the in-memory fake."""
    return RedisCache(client=fake_redis)


@pytest.fixture
def dispatched():
    """Scan jobs handed to the dispatcher, as (geohash, job_id)."""
    return []


@pytest.fixture
def scan_queue(dispatched):
    return ScanJobQueue(dispatcher=lambda g, job_id: dispatched.append((g, job_id)), connect=False)


@pytest.fixture
def places_client():
    return FakePlacesClient()


@pytest.fixture
def image_storage():
    return FakeImageStorage()


# ==============================================================================
# TEST CLIENT
# ==============================================================================

@pytest.fixture(scope="function")
def client(test_db_session, cache, scan_queue, places_client, image_storage, monkeypatch) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with test database and fake services."""
    monkeypatch.setattr(settings, "ADMIN_KEY", ADMIN_KEY)
    monkeypatch.setattr(settings, "INTERNAL_EVENTS_KEY", INTERNAL_KEY)

    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[dependencies.get_redis_cache] = lambda: cache
    app.dependency_overrides[dependencies.get_queue] = lambda: scan_queue
    app.dependency_overrides[dependencies.get_places_client] = lambda: places_client
    app.dependency_overrides[dependencies.get_image_storage] = lambda: image_storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ==============================================================================
# TEST DATA FACTORIES
# ==============================================================================

@pytest.fixture
def make_venue(test_db_session):
    """Insert a venue row; active and public unless overridden."""

    def _make(name="Test Venue", latitude=40.7128, longitude=-74.0060, hours=None, types=None, **fields):
        now = datetime.utcnow()
        values = dict(
            name=name,
            latitude=latitude,
            longitude=longitude,
            status=VENUE_STATUS_ACTIVE,
            is_active=True,
            created_at=now,
            updated_at=now,
            last_refreshed=now,
        )
        values.update(fields)
        row = models.Venue(**values)
        for day, open_t, close_t, extra in hours or []:
            row.hours.append(models.VenueHour(day_of_week=day, open_time=open_t, close_time=close_t, **extra))
        for type_name in types or []:
            venue_type = (
                test_db_session.query(models.VenueType).filter(models.VenueType.name == type_name).first()
                or models.VenueType(name=type_name)
            )
            row.venue_types.append(venue_type)
        test_db_session.add(row)
        test_db_session.commit()
        return row

    return _make


@pytest.fixture
def sample_place_details():
    """Google place details payload as returned by the Places API."""
    return {
        "place_id": "ChIJ_test_place",
        "name": "Test Bar",
        "formatted_address": "1 Test St, New York, NY",
        "geometry": {"location": {"lat": 40.7128, "lng": -74.0060}},
        "rating": 4.5,
        "user_ratings_total": 1000,
        "price_level": 2,
        "website": "https://testbar.example",
        "formatted_phone_number": "(555) 010-0000",
        "types": ["bar", "point_of_interest", "establishment"],
        "opening_hours": {"open_now": True},
    }


# ==============================================================================
# AUTHENTICATION FIXTURES
# ==============================================================================

@pytest.fixture
def admin_headers():
    """Headers with admin API key for authenticated requests."""
    return {"X-Admin-Key": ADMIN_KEY, "X-Admin-Id": "admin-1"}


@pytest.fixture
def invalid_admin_headers():
    """Headers with invalid admin API key for testing auth failures."""
    return {"X-Admin-Key": "invalid_key_12345"}


@pytest.fixture
def user_headers():
    return {"X-User-Id": "user-1", "X-User-Role": "user"}


@pytest.fixture(autouse=True)
def reset_environment():
    """Reset environment variables after each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


# ==============================================================================
# MARKERS
# ==============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: Mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: Mark test as slow (may take >1 second)"
    )
    config.addinivalue_line(
        "markers", "external_api: Mark test as requiring external API calls"
    )
