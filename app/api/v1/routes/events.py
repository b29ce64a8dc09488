"""Internal endpoint receiving plan lifecycle events from the plans service."""
import logging

from fastapi import APIRouter, Depends

from app.api.dependencies import verify_internal_key
from app.api.v1.schemas.venue_schemas import VenueEventSchema
from app.application.services.venue_event_handler import VenueEventHandler, parse_event
from app.core.dependencies import get_venue_event_handler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", tags=["internal"], dependencies=[Depends(verify_internal_key)])


@router.post("/events", status_code=202)
async def ingest_event(
    body: VenueEventSchema,
    handler: VenueEventHandler = Depends(get_venue_event_handler),
):
    """Apply one event to the venue's engagement counters.

    Unknown event types and malformed payloads are rejected with 400.
    """
    event = parse_event(body.event_type, body.payload)
    trending_score = await handler.handle(event)
    logger.info(f"Processed {body.event_type} for venue {event.venue_id}")
    return {"status": "processed", "venue_id": event.venue_id, "trending_score": trending_score}
