import random

import numpy as np
import pytest

from turnguide.errors import EmptyRouteError
from turnguide.geo_utils import distance, haversine_distance, haversine_to_many
from turnguide.models import Coord, PositionSample
from turnguide.route_matcher import match_position

from conftest import point, sample_at


def test_haversine_known_distance():
    # One degree of latitude on a 6371 km sphere
    assert haversine_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_194.9, abs=0.5)
    assert haversine_distance(40.7580, -73.9855, 40.7580, -73.9855) == 0.0


def test_vectorised_haversine_matches_scalar():
    lats = np.array([40.75, 40.76, 40.77])
    lons = np.array([-73.98, -73.97, -73.96])
    many = haversine_to_many(40.7580, -73.9855, lats, lons)
    for i in range(3):
        assert many[i] == pytest.approx(haversine_distance(40.7580, -73.9855, lats[i], lons[i]))


def test_match_returns_nearest_index(route, polyline):
    assert match_position(route, sample_at(0)) == 0
    assert match_position(route, sample_at(4.2)) == 4
    assert match_position(route, sample_at(4.8)) == 5
    assert match_position(polyline, point(9.1)) == 9
    assert match_position(route, sample_at(50)) == len(polyline) - 1


def test_match_tie_resolves_to_smallest_index():
    a, b = Coord(0.0, 0.001), Coord(0.0, -0.001)
    assert match_position([a, b], Coord(0.0, 0.0)) == 0
    assert match_position([a, b, a], a) == 0


def test_match_empty_route_fails():
    with pytest.raises(EmptyRouteError):
        match_position([], Coord(0.0, 0.0))


def test_match_agrees_with_brute_force():
    rng = random.Random(7)
    poly = [Coord(rng.uniform(-0.05, 0.05), rng.uniform(51.45, 51.55)) for _ in range(200)]
    for _ in range(50):
        pos = PositionSample(coord=Coord(rng.uniform(-0.06, 0.06), rng.uniform(51.44, 51.56)))
        idx = match_position(poly, pos)
        best = min(distance(pos.coord, c) for c in poly)
        assert distance(pos.coord, poly[idx]) == pytest.approx(best, abs=1e-6)
