import json

from turnguide.models import Arrived, NavigationError, ProgressUpdate
from turnguide.nav_config import NavConfig
from turnguide.nav_logger import NavLogger


def test_route_snapshot_round_trip(tmp_path, route):
    nav_logger = NavLogger(NavConfig(log_dir=str(tmp_path)))

    assert nav_logger.save_route(route)
    data = json.loads((tmp_path / "active_route.json").read_text(encoding="utf-8"))
    assert data["step_count"] == 3 and data["point_count"] == 12

    assert nav_logger.load_route() == route


def test_load_missing_or_broken_route(tmp_path):
    nav_logger = NavLogger(NavConfig(log_dir=str(tmp_path)))
    assert nav_logger.load_route() is None

    broken = tmp_path / "broken.json"
    broken.write_text('{"route": {"polyline": []}}', encoding="utf-8")
    assert nav_logger.load_route(str(broken)) is None


def test_log_event_appends_json_lines(tmp_path, route):
    nav_logger = NavLogger(NavConfig(log_dir=str(tmp_path)))
    nav_logger.log_event(ProgressUpdate(route.steps[0], "1.2km", "14min", remaining_m=1223.0, eta_s=873.0))
    nav_logger.log_event(Arrived())
    nav_logger.log_event(NavigationError(kind="timeout", message="no fix"))

    entries = [json.loads(line) for line in (tmp_path / "nav_session.jsonl").read_text(encoding="utf-8").splitlines()]
    assert [e["event"] for e in entries] == ["progress", "arrived", "error"]
    assert entries[0]["active_step"]["instruction"] == "Step starting at 0"
    assert entries[2]["kind"] == "timeout"
