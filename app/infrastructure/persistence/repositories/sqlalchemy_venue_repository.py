"""SQLAlchemy implementation of VenueRepository."""
from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.constants import VENUE_STATUS_ACTIVE
from app.domain.entities.venue import Venue as VenueEntity, VenueHours
from app.domain.repositories.venue_repository import VenueRepository
from app.domain.value_objects.venue_search import VenueSearchOptions
from app.infrastructure.persistence import models
from app.infrastructure.persistence.venue_search_query import VenueSearchQuery

COUNTERS = ("view_count", "follower_count", "associated_plan_count")

# Entity fields copied 1:1 onto the ORM row on save
_SCALAR_FIELDS = (
    "name",
    "description",
    "address",
    "latitude",
    "longitude",
    "city_id",
    "google_place_id",
    "price_level",
    "website",
    "phone",
    "is_open_now",
    "google_rating",
    "google_ratings_total",
    "rating",
    "review_count",
    "popularity",
    "view_count",
    "follower_count",
    "associated_plan_count",
    "trending_score",
    "status",
    "admin_overrides",
    "last_modified_by",
    "last_modified_at",
    "last_refreshed",
    "is_featured",
    "is_active",
)


def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _to_entity(row: models.Venue, distance: Optional[float] = None) -> VenueEntity:
    """Map ORM model to domain entity."""
    return VenueEntity(
        id=row.id,
        name=row.name,
        description=row.description,
        address=row.address,
        latitude=_float(row.latitude),
        longitude=_float(row.longitude),
        city_id=row.city_id,
        google_place_id=row.google_place_id,
        price_level=row.price_level,
        website=row.website,
        phone=row.phone,
        is_open_now=row.is_open_now,
        google_rating=_float(row.google_rating),
        google_ratings_total=row.google_ratings_total,
        rating=_float(row.rating),
        review_count=row.review_count or 0,
        popularity=row.popularity or 0,
        view_count=row.view_count or 0,
        follower_count=row.follower_count or 0,
        associated_plan_count=row.associated_plan_count or 0,
        trending_score=row.trending_score or 0.0,
        status=row.status,
        admin_overrides=dict(row.admin_overrides or {}),
        last_modified_by=row.last_modified_by,
        last_modified_at=row.last_modified_at,
        last_refreshed=row.last_refreshed,
        is_featured=bool(row.is_featured),
        is_active=bool(row.is_active),
        metadata=row.extra_metadata,
        venue_types=[t.name for t in row.venue_types],
        hours=[
            VenueHours(
                day_of_week=h.day_of_week,
                open_time=h.open_time,
                close_time=h.close_time,
                is_closed=bool(h.is_closed),
                is_open_24_hours=bool(h.is_open_24_hours),
            )
            for h in row.hours
        ],
        distance_miles=distance,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SQLAlchemyVenueRepository(VenueRepository):
    """Venue repository using SQLAlchemy."""

    def __init__(self, session: Session):
        self.session = session

    async def get_by_id(self, venue_id: int) -> Optional[VenueEntity]:
        row = self.session.get(models.Venue, venue_id)
        return _to_entity(row) if row else None

    async def get_by_ids(self, venue_ids: List[int]) -> List[VenueEntity]:
        if not venue_ids:
            return []
        rows = self.session.query(models.Venue).filter(models.Venue.id.in_(venue_ids)).all()
        by_id = {row.id: row for row in rows}
        return [_to_entity(by_id[vid]) for vid in venue_ids if vid in by_id]

    async def get_by_google_place_id(self, google_place_id: str) -> Optional[VenueEntity]:
        row = (
            self.session.query(models.Venue)
            .filter(models.Venue.google_place_id == google_place_id)
            .first()
        )
        return _to_entity(row) if row else None

    def _get_or_create_types(self, names: List[str]) -> List[models.VenueType]:
        types = []
        for name in dict.fromkeys(names):
            venue_type = self.session.query(models.VenueType).filter(models.VenueType.name == name).first()
            if venue_type is None:
                now = datetime.utcnow()
                venue_type = models.VenueType(name=name, created_at=now, updated_at=now)
                self.session.add(venue_type)
                self.session.flush()
            types.append(venue_type)
        return types

    async def save(
        self,
        venue: VenueEntity,
        venue_type_names: Optional[List[str]] = None,
        hours: Optional[List[VenueHours]] = None,
    ) -> VenueEntity:
        now = datetime.utcnow()
        try:
            row = self.session.get(models.Venue, venue.id) if venue.id is not None else None
            if row is None:
                row = models.Venue(created_at=venue.created_at or now)
                self.session.add(row)

            for name in _SCALAR_FIELDS:
                setattr(row, name, getattr(venue, name))
            row.extra_metadata = venue.metadata
            row.updated_at = now

            if venue_type_names is not None:
                row.venue_types = self._get_or_create_types(venue_type_names)
            if hours is not None:
                row.hours = [
                    models.VenueHour(
                        day_of_week=h.day_of_week,
                        open_time=h.open_time,
                        close_time=h.close_time,
                        is_closed=h.is_closed,
                        is_open_24_hours=h.is_open_24_hours,
                    )
                    for h in hours
                ]

            self.session.commit()
        except Exception:
            # Type creation flushes mid-save; a failed row must not poison the session
            self.session.rollback()
            raise
        self.session.refresh(row)
        return _to_entity(row)

    async def rollback(self) -> None:
        self.session.rollback()

    async def search(self, options: VenueSearchOptions) -> Tuple[List[VenueEntity], int]:
        results, total = VenueSearchQuery(self.session, options).execute()
        return [_to_entity(row, distance) for row, distance in results], total

    async def search_by_text(self, query: str, limit: int) -> List[VenueEntity]:
        term = query.strip().lower()
        if not term:
            return []
        contains = f"%{term}%"
        name = func.lower(models.Venue.name)
        relevance = case(
            (name == term, 3),
            (name.like(f"{term}%"), 2),
            (name.like(contains), 1),
            else_=0,
        )
        rows = (
            self.session.query(models.Venue)
            .filter(
                models.Venue.status == VENUE_STATUS_ACTIVE,
                models.Venue.is_active.is_(True),
                or_(
                    name.like(contains),
                    func.lower(models.Venue.description).like(contains),
                    func.lower(models.Venue.address).like(contains),
                ),
            )
            .order_by(relevance.desc(), models.Venue.popularity.desc(), models.Venue.id.asc())
            .limit(limit)
            .all()
        )
        return [_to_entity(r) for r in rows]

    async def adjust_counter(self, venue_id: int, counter: str, delta: int) -> Optional[int]:
        if counter not in COUNTERS:
            raise ValueError(f"Unknown counter: {counter}")
        column = getattr(models.Venue, counter)
        # Clamp at zero inside the UPDATE itself
        new_value = case((column + delta < 0, 0), else_=column + delta)
        updated = (
            self.session.query(models.Venue)
            .filter(models.Venue.id == venue_id)
            .update({column: new_value, models.Venue.updated_at: datetime.utcnow()}, synchronize_session=False)
        )
        self.session.commit()
        if not updated:
            return None
        return self.session.query(column).filter(models.Venue.id == venue_id).scalar()

    async def update_rating(self, venue_id: int, rating: float, review_count: int) -> bool:
        updated = (
            self.session.query(models.Venue)
            .filter(models.Venue.id == venue_id)
            .update(
                {
                    models.Venue.rating: rating,
                    models.Venue.review_count: review_count,
                    models.Venue.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return bool(updated)

    async def update_trending_score(self, venue_id: int, score: float) -> None:
        (
            self.session.query(models.Venue)
            .filter(models.Venue.id == venue_id)
            .update({models.Venue.trending_score: score}, synchronize_session=False)
        )
        self.session.commit()

    async def list_active_ids(self) -> List[int]:
        rows = (
            self.session.query(models.Venue.id)
            .filter(models.Venue.is_active.is_(True), models.Venue.status == VENUE_STATUS_ACTIVE)
            .order_by(models.Venue.id.asc())
            .all()
        )
        return [r[0] for r in rows]

    async def list_trending(self, offset: int, limit: int) -> Tuple[List[VenueEntity], int]:
        query = self.session.query(models.Venue).filter(
            models.Venue.is_active.is_(True),
            models.Venue.status == VENUE_STATUS_ACTIVE,
        )
        total = query.count()
        rows = (
            query.order_by(models.Venue.trending_score.desc(), models.Venue.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [_to_entity(r) for r in rows], total

    async def list_with_admin_overrides(self, offset: int, limit: int) -> Tuple[List[VenueEntity], int]:
        # JSON emptiness checks differ per backend; filter on the audit column instead
        query = self.session.query(models.Venue).filter(models.Venue.last_modified_by.isnot(None))
        rows = query.order_by(models.Venue.last_modified_at.desc(), models.Venue.id.asc()).all()
        with_overrides = [r for r in rows if r.admin_overrides]
        page = with_overrides[offset:offset + limit]
        return [_to_entity(r) for r in page], len(with_overrides)

    async def list_refreshed_before(self, cutoff: datetime) -> List[VenueEntity]:
        rows = (
            self.session.query(models.Venue)
            .filter(
                models.Venue.latitude.isnot(None),
                models.Venue.longitude.isnot(None),
                or_(models.Venue.last_refreshed.is_(None), models.Venue.last_refreshed < cutoff),
            )
            .all()
        )
        return [_to_entity(r) for r in rows]

    async def list_without_city(self, limit: int) -> List[VenueEntity]:
        rows = (
            self.session.query(models.Venue)
            .filter(models.Venue.city_id.is_(None))
            .order_by(models.Venue.id.asc())
            .limit(limit)
            .all()
        )
        return [_to_entity(r) for r in rows]

    async def update_city(self, venue_id: int, city_id: int) -> bool:
        updated = (
            self.session.query(models.Venue)
            .filter(models.Venue.id == venue_id)
            .update({models.Venue.city_id: city_id, models.Venue.updated_at: datetime.utcnow()}, synchronize_session=False)
        )
        self.session.commit()
        return bool(updated)

    async def list_venue_types(self) -> List[dict]:
        rows = self.session.query(models.VenueType).order_by(models.VenueType.name.asc()).all()
        return [
            {"id": r.id, "name": r.name, "description": r.description, "icon_url": r.icon_url}
            for r in rows
        ]

    async def add_follower(self, venue_id: int, user_id: str) -> bool:
        if await self.is_follower(venue_id, user_id):
            return False
        self.session.add(models.VenueFollower(venue_id=venue_id, user_id=user_id, created_at=datetime.utcnow()))
        try:
            self.session.commit()
        except IntegrityError:
            # Lost a race against the unique constraint
            self.session.rollback()
            return False
        return True

    async def remove_follower(self, venue_id: int, user_id: str) -> bool:
        deleted = (
            self.session.query(models.VenueFollower)
            .filter(models.VenueFollower.venue_id == venue_id, models.VenueFollower.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return bool(deleted)

    async def is_follower(self, venue_id: int, user_id: str) -> bool:
        return (
            self.session.query(models.VenueFollower.id)
            .filter(models.VenueFollower.venue_id == venue_id, models.VenueFollower.user_id == user_id)
            .first()
            is not None
        )
