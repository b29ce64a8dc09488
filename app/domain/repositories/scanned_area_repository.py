"""Scanned-area ledger interface."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional


class ScannedAreaRepository(ABC):
    """Last-scan timestamp per geohash bucket. One row per bucket, no history."""

    @abstractmethod
    async def find_last_scanned(self, geohash_prefix: str) -> Optional[datetime]:
        """Get when the bucket was last scanned, or None if never."""
        pass

    @abstractmethod
    async def upsert_last_scanned(self, geohash_prefix: str, scanned_at: datetime) -> None:
        """Create or update the bucket's last scan time."""
        pass
