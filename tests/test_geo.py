import math

import pytest

from safe_route.core.geo import bearing_deg, distance_km, distance_m, min_distance_to_polyline_km
from safe_route.core.models import GeoPoint


def p(lat, lng):
    return GeoPoint(lat=lat, lng=lng)


def test_distance_is_symmetric_and_zero_on_same_point():
    a, b = p(-0.2, -78.5), p(-0.19, -78.48)
    assert distance_km(a, b) == pytest.approx(distance_km(b, a))
    assert distance_km(a, a) == 0.0


def test_one_degree_of_latitude():
    assert distance_km(p(0, 0), p(1, 0)) == pytest.approx(111.195, rel=1e-4)
    assert distance_m(p(0, 0), p(1, 0)) == pytest.approx(111195, rel=1e-4)


@pytest.mark.parametrize(
    "dest, expected",
    [((1, 0), 0.0), ((0, 1), 90.0), ((-1, 0), 180.0), ((0, -1), 270.0)],
)
def test_bearing_cardinal_directions(dest, expected):
    assert bearing_deg(p(0, 0), p(*dest)) == pytest.approx(expected, abs=1e-9)


def test_bearing_range():
    b = bearing_deg(p(10, 10), p(9.5, 9.5))
    assert 0.0 <= b < 360.0
    assert 180.0 < b < 270.0


def test_polyline_distance_uses_nearest_vertex():
    line = [p(0, 1), p(0, 0.01), p(0, 2)]
    assert min_distance_to_polyline_km(p(0, 0), line) == pytest.approx(distance_km(p(0, 0), p(0, 0.01)))


def test_polyline_distance_ignores_segment_interiors():
    # halfway along a long segment, far from both vertices
    line = [p(0, -1), p(0, 1)]
    assert min_distance_to_polyline_km(p(0, 0), line) == pytest.approx(111.195, rel=1e-4)


def test_polyline_distance_empty_line_is_infinite():
    assert min_distance_to_polyline_km(p(0, 0), []) == math.inf


def test_nan_coordinates_propagate():
    d = min_distance_to_polyline_km(p(float("nan"), 0), [p(0, 0), p(0, 1)])
    assert math.isnan(d)
