"""Celery application: scan workers and periodic venue jobs."""
from celery import Celery
from celery.schedules import crontab

from app.config import settings as app_config
from app.core.settings import settings

celery_app = Celery(
    "venues",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.tasks.venue_scan_tasks",
        "app.tasks.trending_tasks",
        "app.tasks.maintenance_tasks",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=settings.CELERY_BROKER_RETRY_ON_STARTUP,
    task_track_started=True,
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT_SECONDS,
    task_soft_time_limit=settings.CELERY_TASK_TIME_LIMIT_SECONDS - 60,
    # One scan per worker slot; a slow bucket must not hold prefetched ones hostage
    worker_prefetch_multiplier=1,
    worker_concurrency=app_config.VENUE_SCAN_CONCURRENCY,
    worker_max_tasks_per_child=50,
)

celery_app.conf.task_routes = {
    "app.tasks.venue_scan_tasks.scan_area": {"queue": "venue_scan", "routing_key": "venue_scan"},
}

celery_app.conf.beat_schedule = {
    "refresh-trending-scores-hourly": {
        "task": "app.tasks.trending_tasks.refresh_trending_scores",
        "schedule": crontab(minute=0),
    },
    "venue-staleness-check-weekly": {
        "task": "app.tasks.maintenance_tasks.check_stale_venues",
        "schedule": crontab(
            day_of_week=settings.VENUE_STALENESS_REFRESH_DAY,
            hour=settings.VENUE_STALENESS_REFRESH_HOUR,
            minute=0,
        ),
    },
}

if __name__ == "__main__":
    celery_app.start()
