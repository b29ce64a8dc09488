"""Process-wide httpx client for the Google Maps endpoints."""
import logging
from typing import Optional

import httpx

from app.config import settings as app_config
from app.core.settings import settings

logger = logging.getLogger(__name__)

_shared_client: Optional[httpx.AsyncClient] = None


def build_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=settings.HTTP_MAX_CONNECTIONS,
        max_keepalive_connections=settings.HTTP_MAX_KEEPALIVE,
    )


def get_shared_client() -> httpx.AsyncClient:
    """Return the pooled client used by request handlers.

    Celery workers open their own client per task because each task runs
    on a fresh event loop.
    """
    global _shared_client

    if _shared_client is None or _shared_client.is_closed:
        _shared_client = httpx.AsyncClient(
            timeout=app_config.GOOGLE_API_TIMEOUT_SECONDS,
            limits=build_limits(),
            http2=settings.HTTP_ENABLE_HTTP2,
            headers={"Accept": "application/json"},
        )
        logger.info(
            f"HTTP pool ready: max_conn={settings.HTTP_MAX_CONNECTIONS}, "
            f"keepalive={settings.HTTP_MAX_KEEPALIVE}, http2={settings.HTTP_ENABLE_HTTP2}"
        )

    return _shared_client


async def close_shared_client():
    global _shared_client

    if _shared_client is not None:
        await _shared_client.aclose()
        _shared_client = None
        logger.info("HTTP pool closed")
