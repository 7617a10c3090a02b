"""
Geographic helpers: great-circle distance, travel time and search centroid.
"""

import math
from typing import Iterable, Optional, Tuple

Coordinate = Tuple[float, float]

# Equatorial radius, matches the distance library the venue data was built with
EARTH_RADIUS_KM = 6378.137


class GeoMath:
    """Distance and travel-time estimation between coordinates.

    Subclass and override ``centroid`` to swap the naive mean for a
    geodesic centroid.
    """

    @staticmethod
    def distance_km(a: Coordinate, b: Coordinate) -> float:
        """Haversine distance between two (lat, lon) points in kilometres."""
        lat1, lon1 = map(math.radians, a)
        lat2, lon2 = map(math.radians, b)
        dlat = lat2 - lat1
        dlon = lon2 - lon1
        h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))

    @staticmethod
    def travel_minutes(a: Coordinate, b: Coordinate, speed_kmh: float) -> int:
        """Travel time at a constant speed, rounded up to the next whole minute."""
        if speed_kmh <= 0:
            raise ValueError("Travel speed must be positive")
        return math.ceil(GeoMath.distance_km(a, b) / speed_kmh * 60)

    @staticmethod
    def centroid(points: Iterable[Coordinate]) -> Optional[Coordinate]:
        """Arithmetic mean of latitudes and longitudes.

        Only valid at city scale; no correction for the antimeridian or
        the curvature of the earth.
        """
        points = list(points)
        if not points:
            return None
        lat = sum(p[0] for p in points) / len(points)
        lon = sum(p[1] for p in points) / len(points)
        return (lat, lon)
