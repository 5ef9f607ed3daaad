"""In-process straight-line distance provider."""

from contractor_match.core.schemas import Location
from contractor_match.distance.base import DistanceProvider, haversine_miles


class HaversineProvider(DistanceProvider):
    """Great-circle distance. Pure, no I/O, safe to share between workers."""

    @property
    def provider_id(self) -> str:
        return "haversine"

    def distance_miles(self, origin: Location, destination: Location) -> float:
        return haversine_miles(origin, destination)
