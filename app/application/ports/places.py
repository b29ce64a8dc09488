"""External place search interface.

Implementations return raw Google-shaped dicts and never raise: failures
and rate limiting come back as [] / None.
"""
from typing import Protocol, Optional, List, Dict, Any


class PlaceSearchClient(Protocol):
    async def search_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int,
        place_type: Optional[str] = None,
        keyword: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Return nearby place results (each with at least place_id)."""

    async def get_place_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        """Return the Place Details result or None."""

    async def geocode_address(self, address: str) -> Optional[Dict[str, Any]]:
        """Return {latitude, longitude, formatted_address, ...} or None."""

    async def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        """Return the formatted address closest to a point, or None."""


class ImageStorage(Protocol):
    def upload_image(self, image_bytes: bytes, blob_path: str, content_type: str = "image/webp") -> Optional[str]:
        """Store bytes and return the public URL, or None on failure."""

    def delete_prefix(self, prefix: str) -> int:
        """Delete every object under prefix; returns how many were removed."""
