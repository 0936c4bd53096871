import itertools
import math

import pytest

from route_planner.models.domain import Coordinate
from route_planner.services.geospatial import estimate_duration_min, estimate_leg, haversine_km

POINTS = [
    (0.0, 0.0),
    (40.7128, -74.0060),
    (51.5074, -0.1278),
    (-33.8688, 151.2093),
    (89.9, 179.9),
    (-45.0, -179.5),
]


def test_haversine_identity_is_zero():
    for lat, lon in POINTS:
        assert haversine_km(lat, lon, lat, lon) == 0.0


def test_haversine_is_symmetric():
    for (lat1, lon1), (lat2, lon2) in itertools.combinations(POINTS, 2):
        assert haversine_km(lat1, lon1, lat2, lon2) == pytest.approx(haversine_km(lat2, lon2, lat1, lon1))


def test_haversine_triangle_inequality():
    for a, b, c in itertools.permutations(POINTS, 3):
        direct = haversine_km(*a, *c)
        via = haversine_km(*a, *b) + haversine_km(*b, *c)
        assert direct <= via + 1e-9


def test_haversine_one_degree_of_longitude_at_equator():
    assert haversine_km(0, 0, 0, 1) == pytest.approx(2 * math.pi * 6371 / 360, rel=1e-9)


def test_haversine_antipodal_points():
    assert haversine_km(0, 0, 0, 180) == pytest.approx(math.pi * 6371, rel=1e-9)


def test_duration_estimate_uses_thirty_kmh():
    assert estimate_duration_min(15.0) == pytest.approx(30.0)
    assert estimate_duration_min(0.0) == 0.0


def test_duration_estimate_rejects_non_positive_speed():
    with pytest.raises(ValueError):
        estimate_duration_min(10.0, speed_kmh=0)


def test_estimate_leg_returns_distance_and_minutes():
    distance_km, duration_min = estimate_leg(Coordinate(0, 0), Coordinate(0, 1))
    assert distance_km == pytest.approx(111.19, abs=0.01)
    assert duration_min == pytest.approx(distance_km * 2)
