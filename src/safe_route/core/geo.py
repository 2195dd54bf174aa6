"""Great-circle helpers shared by scoring, geofencing and progress tracking."""
from __future__ import annotations

from math import atan2, cos, degrees, inf, isnan, radians, sin, sqrt
from typing import Sequence

from safe_route.core.models import GeoPoint

EARTH_RADIUS_KM = 6371.0


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine distance in kilometres between two WGS-84 points."""
    lat1r, lon1r, lat2r, lon2r = map(radians, [a.lat, a.lng, b.lat, b.lng])
    dlat = lat2r - lat1r
    dlon = lon2r - lon1r
    h = sin(dlat / 2) ** 2 + cos(lat1r) * cos(lat2r) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(h), sqrt(1 - h))


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    return distance_km(a, b) * 1000.0


def bearing_deg(a: GeoPoint, b: GeoPoint) -> float:
    """Initial bearing (degrees clockwise from true north) in [0, 360)."""
    lat1r, lon1r, lat2r, lon2r = map(radians, [a.lat, a.lng, b.lat, b.lng])
    dlon = lon2r - lon1r
    x = sin(dlon) * cos(lat2r)
    y = cos(lat1r) * sin(lat2r) - sin(lat1r) * cos(lat2r) * cos(dlon)
    return (degrees(atan2(x, y)) + 360.0) % 360.0


def min_distance_to_polyline_km(p: GeoPoint, line: Sequence[GeoPoint]) -> float:
    """
    Smallest distance from *p* to any vertex of *line*.

    This is a vertex approximation, not a projection onto segments; long
    straight segments can hide a nearby point between their endpoints.
    """
    best = inf
    for v in line:
        d = distance_km(p, v)
        if isnan(d):
            return d
        if d < best:
            best = d
    return best
