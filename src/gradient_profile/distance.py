"""Distance calculations between track points.

Haversine on a spherical Earth; the same model the map and chart layers use
to measure a track, so feature lengths line up with what they display.
"""

from __future__ import annotations
import math
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from gradient_profile.models import GeoPoint

# Earth's mean radius in meters
EARTH_RADIUS_M = 6_371_000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points using Haversine formula.

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    # Rounding can push a a hair above 1 for antipodal points
    c = 2 * math.asin(math.sqrt(min(a, 1.0)))

    return EARTH_RADIUS_M * c


def point_distance(p1: GeoPoint, p2: GeoPoint) -> float:
    """Distance in meters between two GeoPoints, ignoring altitude."""
    return haversine_distance(p1.lat, p1.lon, p2.lat, p2.lon)


def cumulative_distance(points: Sequence[GeoPoint]) -> float:
    """Sum of the distances between consecutive points, 0 for fewer than 2."""
    total = 0.0
    for i in range(1, len(points)):
        total += point_distance(points[i - 1], points[i])
    return total
