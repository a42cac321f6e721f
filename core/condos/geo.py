"""
Geographic helpers for condo search.
"""

from __future__ import annotations

import math
from typing import Final, Optional


EARTH_RADIUS_KM: Final[float] = 6371.0

# 4 decimal places is roughly 11 m at the equator
COORDINATE_PRECISION: Final[int] = 4


def haversine_km(
    lat1: float, lon1: float,
    lat2: float, lon2: float,
) -> float:
    """
    Calculate distance between two points in kilometres using Haversine formula.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometres
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.asin(math.sqrt(a))

    return EARTH_RADIUS_KM * c


def coordinate_key(
    latitude: Optional[float],
    longitude: Optional[float],
    precision: int = COORDINATE_PRECISION,
) -> Optional[str]:
    """Rounded "lat,lng" string used to compare positions, or None."""
    if latitude is None or longitude is None:
        return None
    # Adding 0.0 turns a rounded -0.0 into 0.0
    latitude = round(latitude, precision) + 0.0
    longitude = round(longitude, precision) + 0.0
    return f"{latitude:.{precision}f},{longitude:.{precision}f}"
