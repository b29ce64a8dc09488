"""Geohash bucketing for scan staleness tracking."""
import re
from typing import Optional, Tuple

import pygeohash as pgh

from app.config import settings
from app.domain.value_objects.coordinates import Coordinates

_GEOHASH_RE = re.compile(r"^[0123456789bcdefghjkmnpqrstuvwxyz]+$")


def encode(latitude: float, longitude: float, precision: Optional[int] = None) -> str:
    """Encode a point to its geohash bucket.

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        precision: Number of geohash characters (defaults to GEOHASH_PRECISION)

    Returns:
        Geohash string of the requested precision

    Raises:
        ValueError: If the coordinates or precision are out of range
    """
    precision = precision or settings.GEOHASH_PRECISION
    if not 1 <= precision <= 12:
        raise ValueError(f"Geohash precision must be between 1 and 12, got {precision}")
    Coordinates(latitude=float(latitude), longitude=float(longitude))
    return pgh.encode(float(latitude), float(longitude), precision=precision)


def decode(geohash: str) -> Tuple[float, float]:
    """Decode a geohash to the centre of its bucket.

    The original point is not recoverable; any point inside the bucket
    encodes back to the same geohash.

    Returns:
        (latitude, longitude) of the bucket centre

    Raises:
        ValueError: If the geohash is empty or contains invalid characters
    """
    if not geohash or not _GEOHASH_RE.match(geohash):
        raise ValueError(f"Invalid geohash: {geohash!r}")
    # decode_exactly gives the unrounded centre; plain decode rounds and can leave the cell
    latitude, longitude, _lat_err, _lon_err = pgh.decode_exactly(geohash)
    return float(latitude), float(longitude)
