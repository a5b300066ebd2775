"""
Great-circle helpers.

Haversine distance is used by the static gazetteer backend to fake road
distances; the degree conversions size map regions around a point.

Complexity: O(1) per call.
"""

import math

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **meters** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def meters_to_lat_deg(meters: float) -> float:
    return math.degrees(meters / EARTH_RADIUS_M)


def meters_to_lng_deg(meters: float, at_lat_deg: float) -> float:
    # clamp cos() so regions near the poles stay finite
    cos_lat = max(1e-6, math.cos(math.radians(at_lat_deg)))
    return math.degrees(meters / (EARTH_RADIUS_M * cos_lat))
