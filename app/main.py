import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.api.v1.routes.venues import router as venues_router
from app.api.v1.routes.admin import router as admin_router
from app.api.v1.routes.backfill import router as backfill_router
from app.api.v1.routes.events import router as events_router
from app.api.v1.routes.health import router as health_router
from app.core.background import drain_background_tasks
from app.domain.exceptions import (
    ExternalDataUnavailableError,
    InvalidSearchError,
    PermissionDeniedError,
    PhotoNotFoundError,
    VenueNotFoundError,
    VenueValidationError,
)
from app.infrastructure.external_apis.cache_client import close_cache
from app.infrastructure.external_apis.http_client import close_shared_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info("Starting up venue service...")

    yield

    logger.info("Shutting down venue service...")
    await drain_background_tasks()
    await close_shared_client()
    await close_cache()


def register_exception_handlers(app: FastAPI):
    """Map domain errors onto client error responses."""

    @app.exception_handler(VenueNotFoundError)
    @app.exception_handler(PhotoNotFoundError)
    async def not_found_handler(request: Request, exc: Exception):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(PermissionDeniedError)
    async def permission_denied_handler(request: Request, exc: PermissionDeniedError):
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.exception_handler(InvalidSearchError)
    @app.exception_handler(VenueValidationError)
    async def bad_request_handler(request: Request, exc: Exception):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ExternalDataUnavailableError)
    async def upstream_unavailable_handler(request: Request, exc: ExternalDataUnavailableError):
        return JSONResponse(status_code=502, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create FastAPI application and include routers."""
    app = FastAPI(
        title="Venue Directory Service",
        version="0.1.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(venues_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")
    app.include_router(backfill_router, prefix="/api/v1")
    app.include_router(events_router, prefix="/api/v1")
    app.include_router(health_router, prefix="/api/v1")
    return app


app = create_app()
