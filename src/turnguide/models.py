# models.py
# Shared data structures and enums used across all modules.

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from .errors import MalformedSampleError
from .nav_config import AVERAGE_SPEED_MPS, DIRECTIONS_PROFILES


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coord:
    """Immutable geographic coordinate, longitude first."""
    lon: float
    lat: float

    def to_dict(self) -> dict:
        return {"lon": self.lon, "lat": self.lat}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Coord":
        return Coord(lon=float(d["lon"]), lat=float(d["lat"]))


# ---------------------------------------------------------------------------
# Transport mode
# ---------------------------------------------------------------------------

class TransportMode(Enum):
    DRIVING = "driving"
    WALKING = "walking"
    CYCLING = "cycling"
    TRANSIT = "transit"

    @property
    def average_speed_mps(self) -> float:
        return AVERAGE_SPEED_MPS[self.value]

    @property
    def directions_profile(self) -> str:
        return DIRECTIONS_PROFILES[self.value]


# ---------------------------------------------------------------------------
# Route step
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NavigationStep:
    """A single maneuver, active from start_index up to the next step's start."""
    start_index: int
    instruction: str
    maneuver_type: str           # "depart" | "turn" | "merge" | "roundabout" | "arrive" | ...
    distance_meters: float
    duration_seconds: float
    icon_key: str = "default"
    maneuver_modifier: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "start_index": self.start_index,
            "instruction": self.instruction,
            "maneuver_type": self.maneuver_type,
            "maneuver_modifier": self.maneuver_modifier,
            "distance_meters": self.distance_meters,
            "duration_seconds": self.duration_seconds,
            "icon_key": self.icon_key,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "NavigationStep":
        return NavigationStep(
            start_index=int(d["start_index"]),
            instruction=d["instruction"],
            maneuver_type=d["maneuver_type"],
            maneuver_modifier=d.get("maneuver_modifier"),
            distance_meters=float(d["distance_meters"]),
            duration_seconds=float(d["duration_seconds"]),
            icon_key=d.get("icon_key", "default"),
        )


# ---------------------------------------------------------------------------
# Position sample
# ---------------------------------------------------------------------------

def _required_float(raw: Mapping[str, Any], key: str) -> float:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedSampleError(f"Sample field '{key}' missing or not numeric: {value!r}")
    if not math.isfinite(value):
        raise MalformedSampleError(f"Sample field '{key}' is not finite: {value!r}")
    return float(value)


def _optional_float(raw: Mapping[str, Any], key: str) -> Optional[float]:
    value = raw.get(key)
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _timestamp_ms(raw: Mapping[str, Any]) -> int:
    value = raw.get("timestamp", raw.get("timestamp_ms"))
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise MalformedSampleError(f"Sample timestamp is not numeric: {value!r}")
    return int(value)


def _is_coordinate(value: Any) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and math.isfinite(value)


@dataclass(frozen=True)
class PositionSample:
    """One fix delivered by the location provider."""
    coord: Coord
    timestamp_ms: int = 0
    accuracy_m: Optional[float] = None
    heading_deg: Optional[float] = None

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "PositionSample":
        """
        Build a sample from a provider payload.

        Accepts a geolocation-style fix ({"coords": {"longitude", "latitude",
        "accuracy", "heading"}, "timestamp"}) or a flat {"lon", "lat", ...} mapping.

        Raises:
            MalformedSampleError: if the coordinate fields are missing or invalid.
        """
        if not isinstance(raw, Mapping):
            raise MalformedSampleError(f"Sample is not a mapping: {raw!r}")

        coords = raw.get("coords")
        if isinstance(coords, Mapping):
            lon = _required_float(coords, "longitude")
            lat = _required_float(coords, "latitude")
            accuracy = _optional_float(coords, "accuracy")
            heading = _optional_float(coords, "heading")
        else:
            lon = _required_float(raw, "lon")
            lat = _required_float(raw, "lat")
            accuracy = _optional_float(raw, "accuracy_m")
            heading = _optional_float(raw, "heading_deg")

        return PositionSample(
            coord=Coord(lon=lon, lat=lat),
            timestamp_ms=_timestamp_ms(raw),
            accuracy_m=accuracy,
            heading_deg=heading,
        )


def coerce_sample(raw: Any) -> PositionSample:
    """Return raw as a validated PositionSample, parsing mappings when needed."""
    if isinstance(raw, PositionSample):
        coord = raw.coord
        if not isinstance(coord, Coord) or not (_is_coordinate(coord.lat) and _is_coordinate(coord.lon)):
            raise MalformedSampleError(f"Sample has no usable coordinate: {raw!r}")
        return raw
    return PositionSample.from_dict(raw)


# ---------------------------------------------------------------------------
# Navigation status
# ---------------------------------------------------------------------------

class NavState(Enum):
    IDLE       = "idle"
    NAVIGATING = "navigating"
    ARRIVED    = "arrived"


@dataclass
class NavigationSession:
    """Mutable state of one navigation run; owned by NavigationStateMachine."""
    route: Any                   # RouteModel
    mode: TransportMode
    destination: Coord
    generation: int
    state: NavState = NavState.NAVIGATING
    current_step_index: int = 0
    announced: bool = False      # StepChanged emitted at least once
    matched_index: Optional[int] = None
    remaining_m: Optional[float] = None
    eta_s: Optional[float] = None

    @property
    def steps(self):
        return self.route.steps

    @property
    def current_step(self) -> NavigationStep:
        return self.route.steps[self.current_step_index]

    def clear_progress(self) -> None:
        self.matched_index = None
        self.remaining_m = None
        self.eta_s = None


# ---------------------------------------------------------------------------
# Produced events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProgressUpdate:
    """Emitted for every accepted sample that did not end the session."""
    active_step: NavigationStep
    remaining_distance_text: str
    eta_text: str
    step_index: int = 0
    matched_index: int = 0
    remaining_m: float = 0.0
    eta_s: float = 0.0

    event: str = field(default="progress", init=False)


@dataclass(frozen=True)
class StepChanged:
    new_step: NavigationStep
    step_index: int

    event: str = field(default="step_changed", init=False)


@dataclass(frozen=True)
class Arrived:
    event: str = field(default="arrived", init=False)


@dataclass(frozen=True)
class NavigationError:
    """Provider or route failure surfaced to the presentation layer."""
    kind: str                    # ProviderErrorKind value or "route_compute"
    message: str = ""

    event: str = field(default="error", init=False)
