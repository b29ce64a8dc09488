"""Venue photo repository interface."""
from abc import ABC, abstractmethod
from typing import Optional, List
from app.domain.entities.venue_photo import VenuePhoto


class VenuePhotoRepository(ABC):
    """Repository interface for VenuePhoto entity."""

    @abstractmethod
    async def get_by_id(self, photo_id: int) -> Optional[VenuePhoto]:
        pass

    @abstractmethod
    async def list_by_venue(self, venue_id: int, approved_only: bool = True) -> List[VenuePhoto]:
        """List photos ordered by primary first, then order, then age."""
        pass

    @abstractmethod
    async def create(self, photo: VenuePhoto) -> VenuePhoto:
        pass

    @abstractmethod
    async def update(self, photo_id: int, **fields) -> Optional[VenuePhoto]:
        pass

    @abstractmethod
    async def delete(self, photo_id: int) -> bool:
        pass

    @abstractmethod
    async def set_primary(self, venue_id: int, photo_id: int) -> None:
        """Clear every primary flag of the venue and set it on one photo, atomically."""
        pass

    @abstractmethod
    async def next_order(self, venue_id: int) -> int:
        pass
