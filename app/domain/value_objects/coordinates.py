"""Coordinate value object - immutable and validated."""
import math
from dataclasses import dataclass

from app.constants import EARTH_RADIUS_MILES


@dataclass(frozen=True)
class Coordinates:
    """Immutable coordinate value object."""
    latitude: float
    longitude: float

    def __post_init__(self):
        """Validate coordinates."""
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Latitude must be between -90 and 90, got {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Longitude must be between -180 and 180, got {self.longitude}")

    def distance_miles_to(self, other: "Coordinates") -> float:
        """Great-circle distance using the haversine formula."""
        lat1, lon1 = math.radians(self.latitude), math.radians(self.longitude)
        lat2, lon2 = math.radians(other.latitude), math.radians(other.longitude)
        dlat = lat2 - lat1
        dlon = lon2 - lon1
        a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(a))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"latitude": self.latitude, "longitude": self.longitude}
