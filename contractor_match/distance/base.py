"""Distance provider interface and great-circle math."""

import math
from abc import ABC, abstractmethod

from contractor_match.core.schemas import Location

EARTH_RADIUS_KM = 6371.0
MILES_PER_KM = 0.621371


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two points in decimal degrees.

    Accepts any finite input; range checking is the caller's job.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Rounding can push a a hair outside [0, 1] for antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_miles(a: Location, b: Location) -> float:
    """Straight-line distance in miles between two locations."""
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude) * MILES_PER_KM


class DistanceProvider(ABC):
    """Base class that every distance provider must implement."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'haversine')."""

    @abstractmethod
    def distance_miles(self, origin: Location, destination: Location) -> float:
        """Return the distance in miles between two locations. Never negative."""

    def close(self) -> None:
        """Release resources held by the provider. Providers without any do nothing."""
