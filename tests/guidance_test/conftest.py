# Shared fixtures: a straight north-bound route along the prime meridian.
# Consecutive points are 0.001° of latitude (~111 m) apart.

from typing import List

import pytest

from turnguide.models import Coord, NavigationStep, PositionSample
from turnguide.nav_config import NavConfig
from turnguide.providers import ReplayLocationProvider
from turnguide.route_model import RouteModel

STEP_DEG = 0.001
N_POINTS = 12


def point(i: float) -> Coord:
    return Coord(lon=0.0, lat=i * STEP_DEG)


def sample_at(i: float, t: int = 0) -> PositionSample:
    return PositionSample(coord=point(i), timestamp_ms=t)


def make_steps(starts=(0, 4, 8)) -> List[NavigationStep]:
    return [
        NavigationStep(
            start_index=s,
            instruction=f"Step starting at {s}",
            maneuver_type="depart" if s == 0 else "turn",
            maneuver_modifier=None if s == 0 else "left",
            distance_meters=400.0,
            duration_seconds=300.0,
            icon_key="depart" if s == 0 else "turn_left",
        )
        for s in starts
    ]


@pytest.fixture
def polyline():
    return [point(i) for i in range(N_POINTS)]


@pytest.fixture
def route(polyline):
    return RouteModel(polyline=tuple(polyline), steps=tuple(make_steps()))


@pytest.fixture
def provider():
    return ReplayLocationProvider()


@pytest.fixture
def config():
    return NavConfig()


@pytest.fixture
def events():
    return []
