"""SQLAlchemy implementation of ScannedAreaRepository."""
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.domain.repositories.scanned_area_repository import ScannedAreaRepository
from app.infrastructure.persistence import models


class SQLAlchemyScannedAreaRepository(ScannedAreaRepository):
    """Scanned-area ledger using SQLAlchemy."""

    def __init__(self, session: Session):
        self.session = session

    def _find(self, geohash_prefix: str) -> Optional[models.ScannedArea]:
        return (
            self.session.query(models.ScannedArea)
            .filter(models.ScannedArea.geohash_prefix == geohash_prefix)
            .first()
        )

    async def find_last_scanned(self, geohash_prefix: str) -> Optional[datetime]:
        row = self._find(geohash_prefix)
        return row.last_scanned_at if row else None

    async def upsert_last_scanned(self, geohash_prefix: str, scanned_at: datetime) -> None:
        now = datetime.utcnow()
        row = self._find(geohash_prefix)
        if row is None:
            self.session.add(
                models.ScannedArea(
                    geohash_prefix=geohash_prefix,
                    last_scanned_at=scanned_at,
                    created_at=now,
                    updated_at=now,
                )
            )
            try:
                self.session.commit()
                return
            except IntegrityError:
                # Another worker inserted the bucket first; fall through to update
                self.session.rollback()
                row = self._find(geohash_prefix)

        row.last_scanned_at = scanned_at
        row.updated_at = now
        self.session.commit()
