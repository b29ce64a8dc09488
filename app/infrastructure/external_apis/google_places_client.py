"""Google Maps Platform client (Places Nearby, Place Details, Geocoding).

Every public call:
- reads the Redis cache first,
- takes a token from the per-operation rate limiter (skipped when empty),
- retries network errors, 429 and 5xx with exponential backoff and jitter,
- returns None / [] instead of raising.
"""
import asyncio
import logging
import random
from typing import Optional, Dict, Any, List

import httpx

from app.config import settings
from app.constants import (
    HTTP_RATE_LIMIT,
    HTTP_SERVER_ERROR,
    RATE_LIMIT_OP_NEARBY,
    RATE_LIMIT_OP_DETAILS,
    RATE_LIMIT_OP_GEOCODE,
)
from app.core.settings import settings as env_settings
from app.infrastructure.external_apis.cache_client import RedisCache
from app.infrastructure.external_apis.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DETAILS_FIELDS = ",".join([
    "name",
    "place_id",
    "formatted_address",
    "geometry",
    "rating",
    "user_ratings_total",
    "types",
    "photos",
    "opening_hours",
    "price_level",
    "website",
    "formatted_phone_number",
    "address_components",
])


class RetryableStatusError(Exception):
    """HTTP status worth retrying (429 or 5xx)."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Retryable HTTP status {status_code}")


def backoff_delay_seconds(attempt: int) -> float:
    """Delay before retry number ``attempt`` (1-based): 2^attempt * base, +/- jitter."""
    delay_ms = (2 ** attempt) * settings.GOOGLE_API_RETRY_BASE_MS
    jitter = delay_ms * settings.GOOGLE_API_RETRY_JITTER * (2 * random.random() - 1)
    return max(0.0, (delay_ms + jitter) / 1000.0)


class GooglePlacesClient:
    """Client for Google Maps web services used by venue discovery."""

    BASE_URL = "https://maps.googleapis.com/maps/api"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: RedisCache,
        rate_limiter: RateLimiter,
        api_key: Optional[str] = None,
        sleep=asyncio.sleep,
    ):
        self.http = http_client
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.api_key = api_key or env_settings.GOOGLE_MAPS_API_KEY
        self._sleep = sleep
        if not self.api_key:
            logger.warning("GOOGLE_MAPS_API_KEY not set - map-based venue discovery will not work")

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET with retry. Raises the last error once retries are exhausted."""
        url = f"{self.BASE_URL}/{path}"
        params = {**params, "key": self.api_key}
        max_retries = settings.GOOGLE_API_MAX_RETRIES
        attempt = 0

        while True:
            try:
                response = await self.http.get(url, params=params)
                if response.status_code == HTTP_RATE_LIMIT or response.status_code >= HTTP_SERVER_ERROR:
                    raise RetryableStatusError(response.status_code)
                response.raise_for_status()
                return response.json()
            except (httpx.TransportError, RetryableStatusError) as e:
                attempt += 1
                if attempt > max_retries:
                    raise
                delay = backoff_delay_seconds(attempt)
                logger.warning(f"⚠ Retry {attempt}/{max_retries} for {path} due to {e}. Waiting {delay:.2f}s")
                await self._sleep(delay)

    async def search_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int,
        place_type: Optional[str] = None,
        keyword: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Search for places near a point.

        Args:
            latitude: Centre latitude
            longitude: Centre longitude
            radius_meters: Search radius in meters
            place_type: Google place type (e.g. "bar")
            keyword: Optional keyword filter

        Returns:
            Raw place results, [] on any failure
        """
        params: Dict[str, Any] = {"location": f"{latitude},{longitude}", "radius": radius_meters}
        if place_type:
            params["type"] = place_type
        if keyword:
            params["keyword"] = keyword

        cached = await self.cache.get("nearby", **params)
        if cached:
            if cached.get("status") == "OK":
                return cached.get("results", [])
            if cached.get("status") == "ZERO_RESULTS":
                return []

        if not await self.rate_limiter.try_acquire(RATE_LIMIT_OP_NEARBY):
            logger.warning(f"Rate limit exceeded for nearby search: {latitude},{longitude}")
            return []

        try:
            data = await self._get_json("place/nearbysearch/json", params)
        except Exception as e:
            logger.error(f"Failed to search nearby for {latitude},{longitude}: {e}")
            return []

        status = data.get("status")
        if status in ("OK", "ZERO_RESULTS"):
            await self.cache.set(data, settings.CACHE_TTL_PLACE_DETAILS, "nearby", **params)
            return data.get("results", []) or []

        logger.warning(f"Nearby search for {latitude},{longitude} returned status: {status}")
        return []

    async def get_place_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        """Fetch place details.

        Successful responses are cached for a day; other statuses for an
        hour so a bad place id is not retried on every scan.
        """
        cached = await self.cache.get("details", place_id=place_id)
        if cached:
            if cached.get("status") == "OK" and cached.get("result"):
                return cached["result"]
            if cached.get("status"):
                logger.debug(f"Cache hit ({cached.get('status')}) for place details {place_id}")
                return None

        if not await self.rate_limiter.try_acquire(RATE_LIMIT_OP_DETAILS):
            logger.warning(f"Rate limit exceeded for place details: {place_id}")
            return None

        try:
            data = await self._get_json(
                "place/details/json",
                {"place_id": place_id, "fields": DETAILS_FIELDS},
            )
        except Exception as e:
            logger.error(f"Failed to get place details for {place_id}: {e}")
            return None

        status = data.get("status")
        if status == "OK" and data.get("result"):
            await self.cache.set(data, settings.CACHE_TTL_PLACE_DETAILS, "details", place_id=place_id)
            return data["result"]

        logger.warning(f"Place details for {place_id} returned status: {status}")
        if status:
            await self.cache.set(data, settings.CACHE_TTL_PLACE_ERROR, "details", place_id=place_id)
        return None

    async def geocode_address(self, address: str) -> Optional[Dict[str, Any]]:
        """Geocode an address.

        Returns:
            {latitude, longitude, formatted_address, place_id, address_components} or None
        """
        cached = await self.cache.get("geocode", address=address)
        if not (cached and cached.get("status") == "OK" and cached.get("results")):
            if not await self.rate_limiter.try_acquire(RATE_LIMIT_OP_GEOCODE):
                logger.warning(f"Rate limit exceeded for geocoding: {address}")
                return None
            try:
                cached = await self._get_json("geocode/json", {"address": address})
            except Exception as e:
                logger.error(f"Failed to geocode address '{address}': {e}")
                return None
            if cached.get("status") != "OK" or not cached.get("results"):
                logger.warning(f"Geocoding '{address}' returned status: {cached.get('status')}")
                return None
            await self.cache.set(cached, settings.CACHE_TTL_GEOCODE, "geocode", address=address)

        result = cached["results"][0]
        location = result.get("geometry", {}).get("location", {})
        return {
            "latitude": location.get("lat"),
            "longitude": location.get("lng"),
            "formatted_address": result.get("formatted_address"),
            "place_id": result.get("place_id"),
            "address_components": result.get("address_components", []),
        }

    async def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        """Formatted address of the closest match for a point, or None."""
        latlng = f"{round(latitude, 6)},{round(longitude, 6)}"
        cached = await self.cache.get("reverse_geocode", latlng=latlng)
        if cached and cached.get("status") == "OK" and cached.get("results"):
            return cached["results"][0].get("formatted_address")

        if not await self.rate_limiter.try_acquire(RATE_LIMIT_OP_GEOCODE):
            logger.warning(f"Rate limit exceeded for reverse geocoding: {latlng}")
            return None

        try:
            data = await self._get_json("geocode/json", {"latlng": latlng})
        except Exception as e:
            logger.error(f"Failed to reverse geocode {latlng}: {e}")
            return None

        if data.get("status") != "OK" or not data.get("results"):
            logger.warning(f"Reverse geocoding {latlng} returned status: {data.get('status')}")
            return None

        await self.cache.set(data, settings.CACHE_TTL_GEOCODE, "reverse_geocode", latlng=latlng)
        return data["results"][0].get("formatted_address")
