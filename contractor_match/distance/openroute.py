"""OpenRouteService driving-distance provider.

Lookup order: cache -> API -> straight-line fallback. The provider never raises
on API trouble; it logs and returns the haversine distance instead, so a
routing outage degrades ranking quality but never fails a request.
"""

import logging
import os
import time
from typing import Any

import requests

from contractor_match.core.config import DistanceConfig
from contractor_match.core.schemas import Location
from contractor_match.distance.base import DistanceProvider, haversine_miles

logger = logging.getLogger(__name__)

_BASE_URL = "https://api.openrouteservice.org"
_DIRECTIONS_PATH = "/v2/directions/driving-car"
MILES_PER_METER = 0.000621371

# Delays before each retry on HTTP 429; initial attempt + 4 retries.
RETRY_DELAYS_S = (1.0, 2.0, 4.0, 8.0)


class RouteLookupError(RuntimeError):
    """Raised internally when the directions API gives no usable route."""


def cache_key(origin: Location, destination: Location) -> str:
    """Bidirectional key: A->B and B->A map to the same entry."""
    a = (origin.latitude, origin.longitude)
    b = (destination.latitude, destination.longitude)
    if a > b:
        a, b = b, a
    return f"{a[0]:.6f},{a[1]:.6f}|{b[0]:.6f},{b[1]:.6f}"


class DistanceCache:
    """In-memory TTL cache for API distances.

    When full, the entry closest to expiry is evicted.
    """

    def __init__(self, ttl_s: float, max_entries: int) -> None:
        self._ttl_s = ttl_s
        self._max_entries = max_entries
        self._entries: dict[str, tuple[float, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> float | None:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Distance cache miss: %s", key)
            return None
        expires_at, miles = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            logger.debug("Distance cache expired: %s", key)
            return None
        logger.debug("Distance cache hit: %s", key)
        return miles

    def put(self, key: str, miles: float) -> None:
        if key not in self._entries and len(self._entries) >= self._max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]
        self._entries[key] = (time.monotonic() + self._ttl_s, miles)


class OpenRouteServiceProvider(DistanceProvider):
    """Driving distance from the OpenRouteService directions API."""

    def __init__(
        self,
        config: DistanceConfig | None = None,
        session: requests.Session | None = None,
        api_key: str | None = None,
    ) -> None:
        self._config = config or DistanceConfig(provider="openrouteservice")
        # Only a session created here is closed by close().
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._api_key = api_key if api_key is not None else os.environ.get(self._config.api_key_env)
        self._cache = DistanceCache(
            ttl_s=self._config.cache_ttl_hours * 3600,
            max_entries=self._config.max_cache_entries,
        )
        if not self._api_key:
            logger.warning(
                "%s is not set - OpenRouteService distances will use straight-line fallback",
                self._config.api_key_env,
            )

    @property
    def provider_id(self) -> str:
        return "openrouteservice"

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def distance_miles(self, origin: Location, destination: Location) -> float:
        if origin == destination:
            return 0.0

        key = cache_key(origin, destination)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if self._api_key:
            try:
                miles = self._fetch_route_miles(origin, destination)
            except (requests.RequestException, RouteLookupError, ValueError) as e:
                logger.warning("Route lookup failed, falling back to straight-line: %s", e)
            else:
                self._cache.put(key, miles)
                return miles

        miles = haversine_miles(origin, destination)
        logger.info("Using fallback distance calculation: %.2f miles straight-line", miles)
        return miles

    def _fetch_route_miles(self, origin: Location, destination: Location) -> float:
        """Call the directions endpoint, retrying on rate limiting."""
        # GeoJSON order: [longitude, latitude]
        body = {
            "coordinates": [
                [origin.longitude, origin.latitude],
                [destination.longitude, destination.latitude],
            ],
        }
        headers = {"Authorization": self._api_key or ""}
        max_attempts = len(RETRY_DELAYS_S) + 1

        attempt = 1
        while True:
            response = self._session.post(
                f"{_BASE_URL}{_DIRECTIONS_PATH}",
                json=body,
                headers=headers,
                timeout=self._config.timeout_s,
            )
            if response.status_code != 429 or attempt == max_attempts:
                break
            delay = RETRY_DELAYS_S[attempt - 1]
            logger.warning(
                "Rate limit hit (429). Retrying in %.0fs (attempt %d/%d)",
                delay, attempt, max_attempts,
            )
            time.sleep(delay)
            attempt += 1

        if response.status_code >= 400:
            logger.error("OpenRouteService returned %d on attempt %d", response.status_code, attempt)
            msg = f"directions API returned HTTP {response.status_code}"
            raise RouteLookupError(msg)
        logger.debug("OpenRouteService call succeeded on attempt %d", attempt)
        return _parse_distance_miles(response.json())


def _parse_distance_miles(payload: dict[str, Any]) -> float:
    """Extract the first route's distance (metres) from a directions payload."""
    try:
        meters = float(payload["routes"][0]["summary"]["distance"])
    except (KeyError, IndexError, TypeError) as e:
        msg = f"unexpected directions payload: {e!r}"
        raise RouteLookupError(msg) from e
    if meters < 0:
        msg = f"negative route distance: {meters}"
        raise RouteLookupError(msg)
    return meters * MILES_PER_METER
