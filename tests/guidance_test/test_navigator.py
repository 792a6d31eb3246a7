import json

from turnguide.errors import ProviderError, ProviderErrorKind, RouteComputeError
from turnguide.models import Coord, NavigationError, NavState, PositionSample, TransportMode
from turnguide.nav_config import NavConfig
from turnguide.nav_logger import NavLogger
from turnguide.navigator import NavigationSystem
from turnguide.providers import DirectionsResult, DirectionsStep, ReplayLocationProvider

from conftest import point, sample_at


class FakeDirections:
    def __init__(self, polyline, fail=False):
        self.polyline = tuple(polyline)
        self.fail = fail
        self.requests = []

    def request_route(self, origin, destination, mode):
        self.requests.append((origin, destination, mode))
        if self.fail:
            raise RouteComputeError("Directions service returned NoRoute")
        return DirectionsResult(
            distance_m=1223.0,
            duration_s=900.0,
            polyline=self.polyline,
            steps=(
                DirectionsStep("Head north", "depart", 450.0, 330.0, self.polyline[0]),
                DirectionsStep("Turn left", "turn", 450.0, 330.0, self.polyline[4], "left"),
                DirectionsStep("Turn right", "turn", 323.0, 240.0, self.polyline[8], "right"),
            ),
        )


def test_start_navigation_and_arrive(polyline, provider, events):
    nav = NavigationSystem(provider, FakeDirections(polyline))
    nav.add_listener(events.append)

    ok, msg = nav.start_navigation(point(0), point(11), TransportMode.CYCLING)
    assert ok
    assert "3 steps" in msg and "1.2km · 15min" in msg
    assert nav.state is NavState.NAVIGATING
    assert nav.current_step.instruction == "Head north"
    assert [s.start_index for s in nav.route.steps] == [0, 4, 8]

    provider.replay([sample_at(0), sample_at(5), sample_at(11)])
    assert [e.event for e in events][-1] == "arrived"
    assert nav.state is NavState.ARRIVED

    nav.reset()
    assert nav.state is NavState.IDLE and nav.route is None


def test_route_failure_creates_no_session(polyline, provider, events):
    nav = NavigationSystem(provider, FakeDirections(polyline, fail=True))
    nav.add_listener(events.append)

    ok, msg = nav.start_navigation(point(0), point(11))
    assert not ok and "NoRoute" in msg
    assert nav.state is NavState.IDLE
    assert provider.subscriber_count == 0
    assert isinstance(events[-1], NavigationError)
    assert events[-1].kind == "route_compute"


def test_start_from_current_position(polyline, events):
    directions = FakeDirections(polyline)
    provider = ReplayLocationProvider([PositionSample(coord=point(0.2))])
    nav = NavigationSystem(provider, directions)

    ok, _ = nav.start_from_current_position(point(11), TransportMode.WALKING)
    assert ok
    assert directions.requests[0][0] == point(0.2)


def test_start_from_current_position_without_fix(polyline, events):
    nav = NavigationSystem(ReplayLocationProvider(), FakeDirections(polyline))
    nav.add_listener(events.append)

    ok, _ = nav.start_from_current_position(point(11))
    assert not ok
    assert events[-1].kind == "unavailable"
    assert nav.state is NavState.IDLE


def test_recording_writes_route_and_events(tmp_path, polyline, provider):
    config = NavConfig(log_dir=str(tmp_path))
    nav = NavigationSystem(provider, FakeDirections(polyline), config=config, record=True)
    nav.start_navigation(point(0), point(11))
    route = nav.route
    provider.replay([sample_at(1), sample_at(11)])

    assert NavLogger(config).load_route() == route
    lines = (tmp_path / "nav_session.jsonl").read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["event"] for line in lines] == ["step_changed", "progress", "arrived"]


def test_follow_loaded_route(route, provider, events):
    nav = NavigationSystem(provider, FakeDirections([Coord(0, 0)]))
    nav.add_listener(events.append)
    ok, _ = nav.follow_route(route, TransportMode.WALKING)

    assert ok
    provider.emit(sample_at(9))
    assert events[-1].active_step.instruction == "Step starting at 8"
    nav.stop_navigation()
    nav.stop_navigation()
    assert nav.state is NavState.IDLE


class RefusingProvider(ReplayLocationProvider):
    def subscribe(self, on_sample, on_error, options):
        raise ProviderError(ProviderErrorKind.PERMISSION_DENIED, "location permission denied")


def test_refused_location_permission(polyline, events):
    nav = NavigationSystem(RefusingProvider(), FakeDirections(polyline))
    nav.add_listener(events.append)

    ok, msg = nav.start_navigation(point(0), point(11))
    assert not ok and "permission" in msg
    assert nav.state is NavState.IDLE
    assert nav.route is None
    assert [e.kind for e in events] == ["permission_denied"]
