"""
Distance resolution between pickup and drop-off.

Fallback chain
--------------
1. Road distance from the Google Distance Matrix API (needs an API key).
2. Great-circle (Haversine) distance when the provider is unconfigured,
   unreachable, slow, or returns anything other than an OK element.

Pricing must always be computable, so ``DistanceResolver.resolve_km``
never raises.  Straight-line distance underestimates the real road
distance; every fallback is logged at WARNING level.

Complexity: O(1) per call (plus one HTTP round-trip when configured).
"""

from __future__ import annotations

import logging
import math

import httpx

from .entities import Location
from .errors import UpstreamDegradation

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km**, rounded to 2 decimals."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 2)


class DistanceResolver:
    """Road distance with a silent Haversine fallback."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str = "",
        endpoint: str = "https://maps.googleapis.com/maps/api/distancematrix/json",
        timeout_seconds: float = 3.0,
    ):
        self.http = http_client
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout_seconds

    async def resolve_km(self, pickup: Location, dropoff: Location) -> float:
        if pickup == dropoff:
            return 0.0

        try:
            return await self.road_distance_km(pickup, dropoff)
        except (UpstreamDegradation, httpx.HTTPError) as exc:
            fallback = haversine_km(
                pickup.latitude, pickup.longitude,
                dropoff.latitude, dropoff.longitude,
            )
            logger.warning(
                "Road distance unavailable (%s); using haversine %.2f km",
                exc, fallback,
            )
            return fallback

    async def road_distance_km(
        self, pickup: Location, dropoff: Location
    ) -> float:
        """Query the Distance Matrix API.  Raises ``UpstreamDegradation``."""
        if not self.api_key:
            raise UpstreamDegradation("no distance provider API key configured")

        response = await self.http.get(
            self.endpoint,
            params={
                "origins": f"{pickup.latitude},{pickup.longitude}",
                "destinations": f"{dropoff.latitude},{dropoff.longitude}",
                "units": "metric",
                "key": self.api_key,
            },
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise UpstreamDegradation(f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamDegradation("malformed JSON response") from exc

        meters = _element_meters(data)
        return round(meters / 1000, 2)


def _element_meters(data: object) -> float:
    """Extract ``rows[0].elements[0].distance.value`` from a matrix reply."""
    if not isinstance(data, dict) or data.get("status") != "OK":
        status = data.get("status") if isinstance(data, dict) else None
        raise UpstreamDegradation(f"matrix status {status}")

    try:
        element = data["rows"][0]["elements"][0]
    except (KeyError, IndexError, TypeError):
        raise UpstreamDegradation("matrix response has no elements") from None

    if not isinstance(element, dict) or element.get("status") != "OK":
        status = element.get("status") if isinstance(element, dict) else None
        raise UpstreamDegradation(f"element status {status}")

    try:
        meters = float(element["distance"]["value"])
    except (KeyError, TypeError, ValueError):
        raise UpstreamDegradation("element has no distance value") from None
    if not math.isfinite(meters) or meters < 0:
        raise UpstreamDegradation(f"invalid distance value {meters!r}")
    return meters
