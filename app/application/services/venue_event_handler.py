"""Applies plan lifecycle events to venue engagement counters."""
import logging
from typing import Any, Dict, Optional

from app.application.services.trending_service import TrendingService
from app.domain.events import (
    EVENT_TYPES,
    PlanAssociatedWithVenue,
    PlanDisassociatedFromVenue,
    PlanJoined,
    PlanViewed,
    VenueEvent,
)
from app.domain.exceptions import VenueValidationError
from app.domain.repositories.venue_repository import VenueRepository

logger = logging.getLogger(__name__)


def parse_event(event_type: str, payload: Dict[str, Any]) -> VenueEvent:
    """Build a typed event from its wire name and payload.

    Raises:
        VenueValidationError: Unknown event type or missing fields
    """
    event_cls = EVENT_TYPES.get(event_type)
    if event_cls is None:
        raise VenueValidationError(f"Unknown event type: {event_type}")
    try:
        return event_cls(**payload)
    except TypeError as e:
        raise VenueValidationError(f"Invalid payload for {event_type}: {e}")


class VenueEventHandler:
    """Counter updates per event type, then a trending score recompute."""

    def __init__(self, venue_repo: VenueRepository, trending_service: TrendingService):
        self.venue_repo = venue_repo
        self.trending = trending_service
        self._handlers = {
            PlanJoined: self._on_plan_joined,
            PlanViewed: self._on_plan_viewed,
            PlanAssociatedWithVenue: self._on_plan_associated,
            PlanDisassociatedFromVenue: self._on_plan_disassociated,
        }

    async def handle(self, event: VenueEvent) -> Optional[float]:
        """Apply one event.

        Returns:
            The venue's new trending score, or None if it could not be computed
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise ValueError(f"No handler for event {type(event).__name__}")

        await handler(event)
        return await self.trending.update_venue_trending_score(event.venue_id)

    async def _on_plan_joined(self, event: PlanJoined):
        logger.info(f"User {event.user_id} joined plan {event.plan_id} at venue {event.venue_id}")

    async def _on_plan_viewed(self, event: PlanViewed):
        logger.debug(f"Plan {event.plan_id} viewed, counting view for venue {event.venue_id}")
        await self.venue_repo.adjust_counter(event.venue_id, "view_count", 1)

    async def _on_plan_associated(self, event: PlanAssociatedWithVenue):
        logger.info(f"Plan {event.plan_id} associated with venue {event.venue_id}")
        await self.venue_repo.adjust_counter(event.venue_id, "associated_plan_count", 1)

    async def _on_plan_disassociated(self, event: PlanDisassociatedFromVenue):
        logger.info(f"Plan {event.plan_id} disassociated from venue {event.venue_id}")
        await self.venue_repo.adjust_counter(event.venue_id, "associated_plan_count", -1)
