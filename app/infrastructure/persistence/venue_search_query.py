"""Venue search query composition.

Builds a single SQLAlchemy query from ``VenueSearchOptions``:

1. an id allow-list restricts the rows and disables the radius filter and
   pagination; otherwise
2. a centre point adds a bounding-box prefilter, a haversine radius filter
   and a computed ``distance`` column;
3. venue type, free text, open-now and price filters are AND-ed on top.

Distance uses plain trig SQL functions so the same expression runs on MySQL
and on SQLite (see ``register_sqlite_functions``).
"""
import logging
import math
from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy import and_, or_, func, exists
from sqlalchemy.orm import Session, selectinload

from app.constants import EARTH_RADIUS_MILES, MILES_PER_DEGREE_LATITUDE, VENUE_STATUS_ACTIVE
from app.domain.value_objects.venue_search import (
    VenueSearchOptions,
    SORT_DISTANCE,
    SORT_RATING,
    SORT_PRICE,
    ORDER_ASC,
)
from app.infrastructure.persistence import models

logger = logging.getLogger(__name__)

DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def haversine_miles(latitude: float, longitude: float, lat_col=None, lon_col=None):
    """SQL expression for the great-circle distance in miles from a point."""
    lat_col = lat_col if lat_col is not None else models.Venue.latitude
    lon_col = lon_col if lon_col is not None else models.Venue.longitude
    dlat = func.radians(lat_col - latitude)
    dlon = func.radians(lon_col - longitude)
    a = (
        func.power(func.sin(dlat / 2), 2)
        + func.cos(func.radians(latitude)) * func.cos(func.radians(lat_col)) * func.power(func.sin(dlon / 2), 2)
    )
    return 2 * EARTH_RADIUS_MILES * func.asin(func.sqrt(a))


def bounding_box(latitude: float, longitude: float, radius_miles: float) -> Tuple[float, float, float, float]:
    """Return (min_lat, max_lat, min_lon, max_lon) enclosing the radius."""
    lat_delta = radius_miles / MILES_PER_DEGREE_LATITUDE
    cos_lat = math.cos(math.radians(latitude))
    if cos_lat < 1e-6:
        lon_delta = 180.0
    else:
        lon_delta = min(180.0, radius_miles / (MILES_PER_DEGREE_LATITUDE * cos_lat))
    return latitude - lat_delta, latitude + lat_delta, longitude - lon_delta, longitude + lon_delta


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def open_now_clause(now: datetime):
    """EXISTS clause: venue has a window for today's weekday containing now (inclusive)."""
    day = DAY_NAMES[now.weekday()]
    current = now.time().replace(microsecond=0)
    hour = models.VenueHour
    within_window = or_(
        and_(hour.open_time <= hour.close_time, hour.open_time <= current, hour.close_time >= current),
        # Overnight window, e.g. 20:00 - 02:00
        and_(hour.open_time > hour.close_time, or_(hour.open_time <= current, hour.close_time >= current)),
    )
    return exists().where(
        hour.venue_id == models.Venue.id,
        hour.day_of_week == day,
        hour.is_closed.is_(False),
        or_(hour.is_open_24_hours.is_(True), within_window),
    )


class VenueSearchQuery:
    """Compose and run a venue search against a session."""

    def __init__(self, session: Session, options: VenueSearchOptions):
        self.session = session
        self.options = options
        self.distance = None
        if options.has_location:
            self.distance = haversine_miles(options.latitude, options.longitude)

    def build(self):
        opts = self.options
        if self.distance is not None:
            query = self.session.query(models.Venue, self.distance.label("distance"))
        else:
            query = self.session.query(models.Venue)

        query = query.filter(
            models.Venue.status == VENUE_STATUS_ACTIVE,
            models.Venue.is_active.is_(True),
        )

        if opts.venue_ids is not None:
            query = query.filter(models.Venue.id.in_(opts.venue_ids))
        elif self.distance is not None:
            min_lat, max_lat, min_lon, max_lon = bounding_box(opts.latitude, opts.longitude, opts.radius)
            query = query.filter(
                models.Venue.latitude.isnot(None),
                models.Venue.longitude.isnot(None),
                models.Venue.latitude.between(min_lat, max_lat),
                models.Venue.longitude.between(min_lon, max_lon),
                self.distance <= opts.radius,
            )

        if opts.venue_type_ids:
            query = query.filter(models.Venue.venue_types.any(models.VenueType.id.in_(opts.venue_type_ids)))

        if opts.query and opts.query.strip():
            pattern = f"%{_escape_like(opts.query.strip().lower())}%"
            query = query.filter(
                or_(
                    func.lower(models.Venue.name).like(pattern, escape="\\"),
                    func.lower(models.Venue.description).like(pattern, escape="\\"),
                    func.lower(models.Venue.address).like(pattern, escape="\\"),
                )
            )

        if opts.open_now:
            query = query.filter(open_now_clause(opts.requester_now()))

        if opts.price_level is not None:
            query = query.filter(models.Venue.price_level == opts.price_level)

        return query

    def _sort_column(self):
        sort_by, order = self.options.resolved_sort()
        if sort_by == SORT_DISTANCE:
            column = self.distance
        elif sort_by == SORT_RATING:
            column = models.Venue.rating
        elif sort_by == SORT_PRICE:
            column = models.Venue.price_level
        else:
            column = models.Venue.popularity
        return column.asc() if order == ORDER_ASC else column.desc()

    def execute(self) -> Tuple[List[Tuple[models.Venue, Optional[float]]], int]:
        """Run the query. Returns ([(row, distance_miles)], total)."""
        query = self.build()
        total = query.order_by(None).count()

        query = query.options(selectinload(models.Venue.venue_types))
        query = query.order_by(self._sort_column(), models.Venue.id.asc())
        if self.options.venue_ids is None:
            query = query.offset(self.options.offset).limit(self.options.limit)

        results: List[Tuple[models.Venue, Optional[float]]] = []
        for item in query.all():
            if self.distance is not None:
                row, distance = item
                results.append((row, float(distance) if distance is not None else None))
            else:
                results.append((item, None))

        logger.debug(f"Venue search matched {total} venues, returning {len(results)}")
        return results, total

