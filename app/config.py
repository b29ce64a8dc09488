"""Application configuration using Pydantic Settings.

This module centralizes all configuration values that may vary between environments.
Values can be overridden via environment variables or .env file.
"""
import os
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # ===== Venue Scanning =====
    VENUE_SCAN_RADIUS_METERS: int = int(os.getenv("VENUE_SCAN_RADIUS_METERS", "1000"))
    GEOHASH_PRECISION: int = int(os.getenv("GEOHASH_PRECISION", "7"))
    VENUE_SCAN_STALENESS_THRESHOLD_HOURS: int = int(os.getenv("VENUE_SCAN_STALENESS_THRESHOLD_HOURS", "168"))
    VENUE_SCAN_MAX_ATTEMPTS: int = int(os.getenv("VENUE_SCAN_MAX_ATTEMPTS", "3"))
    VENUE_SCAN_BACKOFF_SECONDS: int = int(os.getenv("VENUE_SCAN_BACKOFF_SECONDS", "1"))
    VENUE_SCAN_CONCURRENCY: int = int(os.getenv("VENUE_SCAN_CONCURRENCY", "3"))
    # Upper bound on how long a bucket stays marked as in flight
    VENUE_SCAN_LOCK_TTL_SECONDS: int = int(os.getenv("VENUE_SCAN_LOCK_TTL_SECONDS", "3600"))

    # ===== Google Maps API =====
    GOOGLE_API_MAX_RETRIES: int = int(os.getenv("GOOGLE_API_MAX_RETRIES", "3"))
    GOOGLE_API_RETRY_BASE_MS: int = int(os.getenv("GOOGLE_API_RETRY_BASE_MS", "500"))
    GOOGLE_API_RETRY_JITTER: float = float(os.getenv("GOOGLE_API_RETRY_JITTER", "0.1"))
    GOOGLE_API_TIMEOUT_SECONDS: float = float(os.getenv("GOOGLE_API_TIMEOUT_SECONDS", "10.0"))

    # ===== Rate Limiting (requests per window) =====
    RATE_LIMIT_PLACES_NEARBY: int = int(os.getenv("RATE_LIMIT_PLACES_NEARBY", "100"))
    RATE_LIMIT_PLACES_DETAILS: int = int(os.getenv("RATE_LIMIT_PLACES_DETAILS", "100"))
    RATE_LIMIT_GEOCODE: int = int(os.getenv("RATE_LIMIT_GEOCODE", "50"))
    RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

    # ===== Cache TTLs (seconds) =====
    CACHE_TTL_PLACE_DETAILS: int = int(os.getenv("CACHE_TTL_PLACE_DETAILS", "86400"))
    CACHE_TTL_PLACE_ERROR: int = int(os.getenv("CACHE_TTL_PLACE_ERROR", "3600"))
    CACHE_TTL_GEOCODE: int = int(os.getenv("CACHE_TTL_GEOCODE", "86400"))
    CACHE_TTL_TRENDING_SCORE: int = int(os.getenv("CACHE_TTL_TRENDING_SCORE", "1800"))
    CACHE_TTL_TRENDING_LIST: int = int(os.getenv("CACHE_TTL_TRENDING_LIST", "300"))
    CACHE_TTL_ADMIN_OVERRIDES: int = int(os.getenv("CACHE_TTL_ADMIN_OVERRIDES", "300"))
    CACHE_TTL_ADMIN_PHOTOS: int = int(os.getenv("CACHE_TTL_ADMIN_PHOTOS", "60"))
    CACHE_TTL_TEXT_SEARCH: int = int(os.getenv("CACHE_TTL_TEXT_SEARCH", "30"))
    CACHE_TTL_RECENT_SEARCHES: int = int(os.getenv("CACHE_TTL_RECENT_SEARCHES", "2592000"))

    # ===== Health Checks =====
    REDIS_SOCKET_TIMEOUT_SECONDS: float = float(os.getenv("REDIS_SOCKET_TIMEOUT_SECONDS", "2"))
    CELERY_INSPECT_TIMEOUT_SECONDS: float = float(os.getenv("CELERY_INSPECT_TIMEOUT_SECONDS", "2"))

    # ===== User Lists =====
    RECENTLY_VIEWED_LIMIT: int = int(os.getenv("RECENTLY_VIEWED_LIMIT", "10"))
    RECENT_SEARCHES_LIMIT: int = int(os.getenv("RECENT_SEARCHES_LIMIT", "10"))

    # ===== Search Defaults =====
    SEARCH_DEFAULT_RADIUS_MILES: float = float(os.getenv("SEARCH_DEFAULT_RADIUS_MILES", "10"))
    SEARCH_MIN_RADIUS_MILES: float = 0.1
    SEARCH_MAX_RADIUS_MILES: float = 50.0
    DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
    MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))
    TEXT_SEARCH_LIMIT: int = int(os.getenv("TEXT_SEARCH_LIMIT", "10"))
    DISCOVER_TRENDING_LIMIT: int = int(os.getenv("DISCOVER_TRENDING_LIMIT", "10"))

    # ===== Batch Processing =====
    TRENDING_REFRESH_BATCH_SIZE: int = int(os.getenv("TRENDING_REFRESH_BATCH_SIZE", "100"))
    BACKFILL_DEFAULT_LIMIT: int = 100
    BACKFILL_MAX_LIMIT: int = 1000

    # ===== Validation Limits =====
    MIN_LATITUDE: float = -90.0
    MAX_LATITUDE: float = 90.0
    MIN_LONGITUDE: float = -180.0
    MAX_LONGITUDE: float = 180.0
    MIN_PRICE_LEVEL: int = 1
    MAX_PRICE_LEVEL: int = 4

    class Config:
        env_file = ".env"
        case_sensitive = True
        # Allow extra fields from .env that aren't defined here
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure singleton pattern - settings are loaded once.
    """
    return Settings()


# Global settings instance for easy import
settings = get_settings()
