"""Plan lifecycle events that affect venue engagement."""
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class PlanJoined:
    plan_id: str
    venue_id: int
    user_id: Optional[str] = None


@dataclass(frozen=True)
class PlanViewed:
    plan_id: str
    venue_id: int


@dataclass(frozen=True)
class PlanAssociatedWithVenue:
    plan_id: str
    venue_id: int


@dataclass(frozen=True)
class PlanDisassociatedFromVenue:
    plan_id: str
    venue_id: int


VenueEvent = Union[PlanJoined, PlanViewed, PlanAssociatedWithVenue, PlanDisassociatedFromVenue]

EVENT_TYPES = {
    "plan.join": PlanJoined,
    "plan.view": PlanViewed,
    "plan.associated_with_venue": PlanAssociatedWithVenue,
    "plan.disassociated_from_venue": PlanDisassociatedFromVenue,
}
