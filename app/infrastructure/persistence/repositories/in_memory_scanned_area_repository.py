"""In-memory implementation of ScannedAreaRepository for testing.
Follows Liskov Substitution Principle - can replace any ScannedAreaRepository."""
from datetime import datetime
from typing import Optional, Dict
from app.domain.repositories.scanned_area_repository import ScannedAreaRepository


class InMemoryScannedAreaRepository(ScannedAreaRepository):
    """In-memory ledger for tests and local development."""

    def __init__(self):
        self._scanned: Dict[str, datetime] = {}

    async def find_last_scanned(self, geohash_prefix: str) -> Optional[datetime]:
        """Get last scan time."""
        return self._scanned.get(geohash_prefix)

    async def upsert_last_scanned(self, geohash_prefix: str, scanned_at: datetime) -> None:
        """Set last scan time."""
        self._scanned[geohash_prefix] = scanned_at
