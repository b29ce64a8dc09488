"""Search options value object for the venue search query."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List

import pytz

from app.config import settings
from app.domain.exceptions import InvalidSearchError

SORT_DISTANCE = "distance"
SORT_RATING = "rating"
SORT_POPULARITY = "popularity"
SORT_PRICE = "price"
SORT_FIELDS = (SORT_DISTANCE, SORT_RATING, SORT_POPULARITY, SORT_PRICE)

ORDER_ASC = "ASC"
ORDER_DESC = "DESC"


@dataclass
class VenueSearchOptions:
    """Filters, sort and pagination for a venue search.

    ``radius`` is in miles. When ``venue_ids`` is given the search is
    restricted to those ids and neither the radius filter nor limit/offset
    are applied; the caller orders and pages the result itself.
    """
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius: float = settings.SEARCH_DEFAULT_RADIUS_MILES
    query: Optional[str] = None
    venue_type_ids: List[int] = field(default_factory=list)
    sort_by: Optional[str] = None
    order: Optional[str] = None
    open_now: bool = False
    price_level: Optional[int] = None
    limit: int = settings.DEFAULT_PAGE_SIZE
    offset: int = 0
    venue_ids: Optional[List[int]] = None
    now: Optional[datetime] = None
    timezone: Optional[str] = None

    def __post_init__(self):
        if (self.latitude is None) != (self.longitude is None):
            raise InvalidSearchError("latitude and longitude must be provided together")
        if self.latitude is not None and not settings.MIN_LATITUDE <= self.latitude <= settings.MAX_LATITUDE:
            raise InvalidSearchError(f"Latitude must be between -90 and 90, got {self.latitude}")
        if self.longitude is not None and not settings.MIN_LONGITUDE <= self.longitude <= settings.MAX_LONGITUDE:
            raise InvalidSearchError(f"Longitude must be between -180 and 180, got {self.longitude}")
        if not settings.SEARCH_MIN_RADIUS_MILES <= self.radius <= settings.SEARCH_MAX_RADIUS_MILES:
            raise InvalidSearchError(
                f"Radius must be between {settings.SEARCH_MIN_RADIUS_MILES} and {settings.SEARCH_MAX_RADIUS_MILES} miles"
            )
        if not 1 <= self.limit <= settings.MAX_PAGE_SIZE:
            raise InvalidSearchError(f"Limit must be between 1 and {settings.MAX_PAGE_SIZE}")
        if self.offset < 0:
            raise InvalidSearchError("Offset cannot be negative")
        if self.price_level is not None and not settings.MIN_PRICE_LEVEL <= self.price_level <= settings.MAX_PRICE_LEVEL:
            raise InvalidSearchError("Price level must be between 1 and 4")
        if self.sort_by is not None and self.sort_by not in SORT_FIELDS:
            raise InvalidSearchError(f"Unsupported sort field: {self.sort_by}")
        if self.order is not None:
            self.order = self.order.upper()
            if self.order not in (ORDER_ASC, ORDER_DESC):
                raise InvalidSearchError(f"Unsupported sort order: {self.order}")
        if self.timezone is not None:
            try:
                pytz.timezone(self.timezone)
            except pytz.UnknownTimeZoneError:
                raise InvalidSearchError(f"Unknown timezone: {self.timezone}")

    def requester_now(self) -> datetime:
        """Naive wall-clock time used for open-now checks.

        An explicit ``now`` wins; otherwise the current time in ``timezone``
        (an IANA name), defaulting to UTC.
        """
        if self.now is not None:
            return self.now
        tz = pytz.timezone(self.timezone) if self.timezone else pytz.UTC
        return datetime.now(tz).replace(tzinfo=None)

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_geo_search(self) -> bool:
        return self.has_location and self.venue_ids is None

    def resolved_sort(self):
        """Return (sort_by, order) after applying defaults.

        Distance is the default for geo searches; otherwise popularity
        descending. Distance without a point falls back to popularity.
        """
        sort_by = self.sort_by or (SORT_DISTANCE if self.is_geo_search else SORT_POPULARITY)
        if sort_by == SORT_DISTANCE and not self.has_location:
            return SORT_POPULARITY, ORDER_DESC
        if self.order:
            return sort_by, self.order
        if sort_by in (SORT_DISTANCE, SORT_PRICE):
            return sort_by, ORDER_ASC
        return sort_by, ORDER_DESC
