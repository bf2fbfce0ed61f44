"""Hubeny distance on the WGS84 ellipsoid."""

import math

from .models import Coordinates

_SEMI_MAJOR_AXIS = 6378137.0  # WGS84, meters
_ECCENTRICITY_SQ = 0.00669437999019758  # WGS84 first eccentricity squared
_MERIDIAN_NUMERATOR = _SEMI_MAJOR_AXIS * (1 - _ECCENTRICITY_SQ)


def hubeny_distance(a: Coordinates, b: Coordinates) -> float:
    """
    Approximate distance between two points using the Hubeny formula.

    Accurate to well under a meter at station-spacing scales.

    Args:
        a: First point.
        b: Second point. Only latitude and longitude are used.

    Returns:
        Distance in meters.
    """
    lat_a = math.radians(a.latitude)
    lat_b = math.radians(b.latitude)
    d_lat = lat_a - lat_b
    d_lon = math.radians(a.longitude) - math.radians(b.longitude)
    mean_lat = (lat_a + lat_b) / 2

    w = math.sqrt(1 - _ECCENTRICITY_SQ * math.sin(mean_lat) ** 2)
    meridian = _MERIDIAN_NUMERATOR / w ** 3
    prime_vertical = _SEMI_MAJOR_AXIS / w

    return math.hypot(d_lat * meridian, d_lon * prime_vertical * math.cos(mean_lat))
