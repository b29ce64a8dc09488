"""Health check service for monitoring system components."""
import logging
from typing import Dict, Any, Optional
from datetime import datetime
from enum import Enum

import redis
from sqlalchemy import text

from app.config import settings
from app.core.settings import settings as app_settings
from app.infrastructure.persistence import models
from app.infrastructure.persistence.db import SessionLocal

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health status values."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


class HealthCheckService:
    """Service for checking health of system components."""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory
        self.redis_host = app_settings.REDIS_HOST
        self.redis_port = app_settings.REDIS_PORT

    def check_database(self) -> Dict[str, Any]:
        """Check database connectivity.

        Returns:
            Dictionary with status and details
        """
        session = self.session_factory()
        try:
            session.execute(text("SELECT 1"))
            return {
                "status": HealthStatus.HEALTHY,
                "message": "Database connection successful",
                "details": {"dialect": session.get_bind().dialect.name},
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                "status": HealthStatus.UNHEALTHY,
                "message": f"Database connection failed: {str(e)}",
                "details": {"error": str(e)},
            }
        finally:
            session.close()

    def check_redis(self) -> Dict[str, Any]:
        """Check Redis connectivity.

        Returns:
            Dictionary with status and details
        """
        try:
            client = redis.Redis(
                host=self.redis_host,
                port=self.redis_port,
                socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            )
            client.ping()
            info = client.info('stats')

            return {
                "status": HealthStatus.HEALTHY,
                "message": "Redis connection successful",
                "details": {
                    "host": self.redis_host,
                    "port": self.redis_port,
                    "total_commands_processed": info.get('total_commands_processed', 0),
                },
            }
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return {
                "status": HealthStatus.UNHEALTHY,
                "message": f"Redis connection failed: {str(e)}",
                "details": {"host": self.redis_host, "port": self.redis_port, "error": str(e)},
            }

    def check_celery_worker(self) -> Dict[str, Any]:
        """Check that at least one scan worker is alive.

        Returns:
            Dictionary with status and details
        """
        try:
            from app.celery_app import celery_app

            inspect = celery_app.control.inspect(timeout=settings.CELERY_INSPECT_TIMEOUT_SECONDS)
            active_workers = inspect.active()

            if active_workers:
                return {
                    "status": HealthStatus.HEALTHY,
                    "message": f"{len(active_workers)} Celery worker(s) active",
                    "details": {"worker_count": len(active_workers), "workers": list(active_workers.keys())},
                }
            return {
                "status": HealthStatus.DEGRADED,
                "message": "No active Celery workers found; scans will queue until one starts",
                "details": {"worker_count": 0},
            }
        except Exception as e:
            logger.error(f"Celery health check failed: {e}")
            return {
                "status": HealthStatus.DEGRADED,
                "message": f"Celery check failed: {str(e)}",
                "details": {"error": str(e)},
            }

    def get_last_scan(self) -> Optional[Dict[str, Any]]:
        """Most recently scanned area from the ledger, if any."""
        session = self.session_factory()
        try:
            row = (
                session.query(models.ScannedArea)
                .order_by(models.ScannedArea.last_scanned_at.desc())
                .first()
            )
            if not row:
                return None
            return {
                "geohash_prefix": row.geohash_prefix,
                "last_scanned_at": row.last_scanned_at.isoformat() if row.last_scanned_at else None,
            }
        except Exception as e:
            logger.error(f"Failed to get last scan: {e}")
            return None
        finally:
            session.close()

    def get_overall_health(self) -> Dict[str, Any]:
        """Get overall system health status.

        The database is required; Redis and Celery outages degrade the
        service (cache misses, deferred scans) without taking it down.
        """
        db_health = self.check_database()
        redis_health = self.check_redis()
        celery_health = self.check_celery_worker()

        if db_health['status'] == HealthStatus.UNHEALTHY:
            overall_status = HealthStatus.UNHEALTHY
        elif all(c['status'] == HealthStatus.HEALTHY for c in (redis_health, celery_health)):
            overall_status = HealthStatus.HEALTHY
        else:
            overall_status = HealthStatus.DEGRADED

        return {
            "status": overall_status,
            "timestamp": datetime.utcnow().isoformat(),
            "components": {
                "database": db_health,
                "redis": redis_health,
                "celery": celery_health,
            },
            "last_scan": self.get_last_scan(),
        }


# Global health check service instance
health_service = HealthCheckService()
