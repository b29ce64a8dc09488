"""SQLAlchemy implementation of VenuePhotoRepository."""
from datetime import datetime
from typing import Optional, List
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.domain.entities.venue_photo import VenuePhoto as VenuePhotoEntity
from app.domain.repositories.venue_photo_repository import VenuePhotoRepository
from app.infrastructure.persistence import models

_UPDATABLE = {"caption", "is_primary", "is_approved", "order", "thumbnail_url", "medium_url", "large_url", "photo_url"}


def _to_entity(row: models.VenuePhoto) -> VenuePhotoEntity:
    return VenuePhotoEntity(
        id=row.id,
        venue_id=row.venue_id,
        user_id=row.user_id,
        photo_url=row.photo_url,
        thumbnail_url=row.thumbnail_url,
        medium_url=row.medium_url,
        large_url=row.large_url,
        etag=row.etag,
        caption=row.caption,
        is_primary=bool(row.is_primary),
        is_approved=bool(row.is_approved),
        order=row.order or 0,
        source=row.source,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SQLAlchemyVenuePhotoRepository(VenuePhotoRepository):
    """Venue photo repository using SQLAlchemy."""

    def __init__(self, session: Session):
        self.session = session

    async def get_by_id(self, photo_id: int) -> Optional[VenuePhotoEntity]:
        row = self.session.get(models.VenuePhoto, photo_id)
        return _to_entity(row) if row else None

    async def list_by_venue(self, venue_id: int, approved_only: bool = True) -> List[VenuePhotoEntity]:
        query = self.session.query(models.VenuePhoto).filter(models.VenuePhoto.venue_id == venue_id)
        if approved_only:
            query = query.filter(models.VenuePhoto.is_approved.is_(True))
        rows = query.order_by(
            models.VenuePhoto.is_primary.desc(),
            models.VenuePhoto.order.asc(),
            models.VenuePhoto.created_at.desc(),
            models.VenuePhoto.id.asc(),
        ).all()
        return [_to_entity(r) for r in rows]

    async def create(self, photo: VenuePhotoEntity) -> VenuePhotoEntity:
        now = datetime.utcnow()
        row = models.VenuePhoto(
            venue_id=photo.venue_id,
            user_id=photo.user_id,
            photo_url=photo.photo_url,
            thumbnail_url=photo.thumbnail_url,
            medium_url=photo.medium_url,
            large_url=photo.large_url,
            etag=photo.etag,
            caption=photo.caption,
            is_primary=photo.is_primary,
            is_approved=photo.is_approved,
            order=photo.order,
            source=photo.source,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return _to_entity(row)

    async def update(self, photo_id: int, **fields) -> Optional[VenuePhotoEntity]:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update photo fields: {sorted(unknown)}")
        row = self.session.get(models.VenuePhoto, photo_id)
        if row is None:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        row.updated_at = datetime.utcnow()
        self.session.commit()
        self.session.refresh(row)
        return _to_entity(row)

    async def delete(self, photo_id: int) -> bool:
        row = self.session.get(models.VenuePhoto, photo_id)
        if row is None:
            return False
        self.session.delete(row)
        self.session.commit()
        return True

    async def set_primary(self, venue_id: int, photo_id: int) -> None:
        try:
            (
                self.session.query(models.VenuePhoto)
                .filter(models.VenuePhoto.venue_id == venue_id, models.VenuePhoto.is_primary.is_(True))
                .update({models.VenuePhoto.is_primary: False}, synchronize_session=False)
            )
            (
                self.session.query(models.VenuePhoto)
                .filter(models.VenuePhoto.id == photo_id, models.VenuePhoto.venue_id == venue_id)
                .update(
                    {models.VenuePhoto.is_primary: True, models.VenuePhoto.updated_at: datetime.utcnow()},
                    synchronize_session=False,
                )
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    async def next_order(self, venue_id: int) -> int:
        current = (
            self.session.query(func.max(models.VenuePhoto.order))
            .filter(models.VenuePhoto.venue_id == venue_id)
            .scalar()
        )
        return 0 if current is None else current + 1
