from __future__ import annotations
from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt

"""
Geospatial helpers.

Road records, agents and the destination all live on the same (lon, lat) grid.
Every edge cost and the search heuristic come from the same haversine metric,
which is what keeps the heuristic admissible.
"""

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    """A longitude/latitude pair in decimal degrees (x=lon, y=lat)."""

    lon: float
    lat: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.lon, self.lat)


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Compute great-circle distance in kilometres between two coordinates."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push h a hair above 1.0 for antipodal points.
    return 2 * EARTH_RADIUS_KM * asin(sqrt(min(1.0, h)))


def same_coordinate(a: Coordinate, b: Coordinate) -> bool:
    """Exact field equality; no tolerance is applied."""
    return a.lon == b.lon and a.lat == b.lat
