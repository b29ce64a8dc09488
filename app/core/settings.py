"""Application settings loaded from environment variables."""
import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings."""

    # ============================================================================
    # DATABASE
    # ============================================================================
    DATABASE_HOST: str = os.getenv("DATABASE_HOST", "localhost")
    DATABASE_PORT: int = int(os.getenv("DATABASE_PORT", "3306"))
    DATABASE_USER: str = os.getenv("DATABASE_USER", "root")
    DATABASE_PASSWORD: str = os.getenv("DATABASE_PASSWORD", "")
    DATABASE_NAME: str = os.getenv("DATABASE_NAME", "venues")

    # ============================================================================
    # API KEYS
    # ============================================================================
    GOOGLE_MAPS_API_KEY: Optional[str] = os.getenv("GOOGLE_MAPS_API_KEY") or os.getenv("GOOGLE_PLACES_API_KEY")
    ADMIN_KEY: Optional[str] = os.getenv("ADMIN_KEY")
    INTERNAL_EVENTS_KEY: Optional[str] = os.getenv("INTERNAL_EVENTS_KEY")

    # ============================================================================
    # PERFORMANCE SETTINGS
    # ============================================================================

    # Redis Cache
    REDIS_CACHE_ENABLED: bool = os.getenv("REDIS_CACHE_ENABLED", "true").lower() == "true"
    REDIS_CACHE_HOST: str = os.getenv("REDIS_CACHE_HOST", "localhost")
    REDIS_CACHE_PORT: int = int(os.getenv("REDIS_CACHE_PORT", "6379"))
    REDIS_CACHE_DB: int = int(os.getenv("REDIS_CACHE_DB", "2"))
    REDIS_CACHE_PASSWORD: Optional[str] = os.getenv("REDIS_CACHE_PASSWORD") or None

    # Connection Pooling
    HTTP_MAX_CONNECTIONS: int = int(os.getenv("HTTP_MAX_CONNECTIONS", "100"))
    HTTP_MAX_KEEPALIVE: int = int(os.getenv("HTTP_MAX_KEEPALIVE", "50"))
    HTTP_ENABLE_HTTP2: bool = os.getenv("HTTP_ENABLE_HTTP2", "false").lower() == "true"

    # ============================================================================
    # CELERY
    # ============================================================================
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    CELERY_BROKER_URL: str = os.getenv("CELERY_BROKER_URL", f"redis://{REDIS_HOST}:{REDIS_PORT}/0")
    CELERY_RESULT_BACKEND: str = os.getenv("CELERY_RESULT_BACKEND", f"redis://{REDIS_HOST}:{REDIS_PORT}/1")
    CELERY_BROKER_RETRY_ON_STARTUP: bool = os.getenv("CELERY_BROKER_RETRY_ON_STARTUP", "1") == "1"
    CELERY_TASK_TIME_LIMIT_SECONDS: int = int(os.getenv("CELERY_TASK_TIME_LIMIT_SECONDS", "1800"))
    # Weekly staleness sweep, UTC
    VENUE_STALENESS_REFRESH_DAY: str = os.getenv("VENUE_STALENESS_REFRESH_DAY", "sunday")
    VENUE_STALENESS_REFRESH_HOUR: int = int(os.getenv("VENUE_STALENESS_REFRESH_HOUR", "0"))
    SCAN_QUEUE_REDIS_DB: int = int(os.getenv("SCAN_QUEUE_REDIS_DB", "3"))

    # ============================================================================
    # STORAGE
    # ============================================================================
    GCS_BUCKET_NAME: str = os.getenv("GCS_BUCKET_NAME", "venue-photos")
    GCS_PROJECT_ID: Optional[str] = os.getenv("GCS_PROJECT_ID") or None
    GCS_CDN_URL: str = os.getenv("GCS_CDN_URL", "https://storage.googleapis.com/venue-photos")

    @classmethod
    def get_redis_cache_url(cls) -> str:
        """Get Redis cache connection URL."""
        if cls.REDIS_CACHE_PASSWORD:
            return f"redis://:{cls.REDIS_CACHE_PASSWORD}@{cls.REDIS_CACHE_HOST}:{cls.REDIS_CACHE_PORT}/{cls.REDIS_CACHE_DB}"
        return f"redis://{cls.REDIS_CACHE_HOST}:{cls.REDIS_CACHE_PORT}/{cls.REDIS_CACHE_DB}"


# Global settings instance
settings = Settings()
