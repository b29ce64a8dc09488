"""SQLAlchemy implementation of VenueReviewRepository."""
from datetime import datetime
from typing import Optional, List, Tuple
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.domain.entities.venue_review import VenueReview as VenueReviewEntity
from app.domain.repositories.venue_review_repository import VenueReviewRepository
from app.infrastructure.persistence import models


def _to_entity(row: models.VenueReview) -> VenueReviewEntity:
    return VenueReviewEntity(
        id=row.id,
        venue_id=row.venue_id,
        user_id=row.user_id,
        rating=row.rating,
        review=row.review,
        is_verified_visit=bool(row.is_verified_visit),
        upvote_count=row.upvote_count or 0,
        downvote_count=row.downvote_count or 0,
        is_published=bool(row.is_published),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SQLAlchemyVenueReviewRepository(VenueReviewRepository):
    """Venue review repository using SQLAlchemy."""

    def __init__(self, session: Session):
        self.session = session

    async def get_by_venue_and_user(self, venue_id: int, user_id: str) -> Optional[VenueReviewEntity]:
        row = (
            self.session.query(models.VenueReview)
            .filter(models.VenueReview.venue_id == venue_id, models.VenueReview.user_id == user_id)
            .first()
        )
        return _to_entity(row) if row else None

    async def list_published(self, venue_id: int, limit: int, offset: int) -> List[VenueReviewEntity]:
        rows = (
            self.session.query(models.VenueReview)
            .filter(models.VenueReview.venue_id == venue_id, models.VenueReview.is_published.is_(True))
            .order_by(models.VenueReview.created_at.desc(), models.VenueReview.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [_to_entity(r) for r in rows]

    async def create(self, review: VenueReviewEntity) -> Optional[VenueReviewEntity]:
        now = datetime.utcnow()
        row = models.VenueReview(
            venue_id=review.venue_id,
            user_id=review.user_id,
            rating=review.rating,
            review=review.review,
            is_verified_visit=review.is_verified_visit,
            upvote_count=review.upvote_count,
            downvote_count=review.downvote_count,
            is_published=review.is_published,
            created_at=review.created_at or now,
            updated_at=now,
        )
        self.session.add(row)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost a race against the one-review-per-user constraint
            self.session.rollback()
            return None
        self.session.refresh(row)
        return _to_entity(row)

    async def published_rating_summary(self, venue_id: int) -> Tuple[Optional[float], int]:
        average, count = (
            self.session.query(func.avg(models.VenueReview.rating), func.count(models.VenueReview.id))
            .filter(models.VenueReview.venue_id == venue_id, models.VenueReview.is_published.is_(True))
            .one()
        )
        return (float(average) if average is not None else None), count
