# route_model.py
# Immutable route representation: polyline + maneuver steps.
# Also converts a directions result into a RouteModel.

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np

from .errors import EmptyRouteError, RouteComputeError
from .geo_utils import haversine_to_many, segment_lengths
from .models import Coord, NavigationStep

logger = logging.getLogger(__name__)


# Maneuver keys the presentation layer has an icon for
ICON_KEYS: frozenset = frozenset({
    'turn_right', 'turn_left', 'turn_slight_right', 'turn_slight_left',
    'turn_sharp_right', 'turn_sharp_left', 'uturn', 'straight',
    'merge', 'roundabout', 'arrive', 'depart',
})

DEFAULT_ICON_KEY = "default"


def icon_key_for(maneuver_type: str, modifier: Optional[str] = None) -> str:
    """Icon lookup key for a maneuver, "default" when no icon exists."""
    key = f"{maneuver_type}_{modifier}" if modifier else maneuver_type
    key = key.strip().lower().replace(" ", "_")
    return key if key in ICON_KEYS else DEFAULT_ICON_KEY


# ---------------------------------------------------------------------------
# Route model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteModel:
    """
    Ordered polyline plus the maneuver steps laid over it.

    Steps are sorted by start_index, start indices are unique, the first
    one is 0 and all lie inside the polyline. Precomputed coordinate and
    cumulative-distance arrays are read-only.

    Args:
        polyline:    Route coordinates in travel order.
        steps:       Maneuver steps over the polyline.
        destination: Arrival target; defaults to the last polyline coordinate.
        distance_m:  Total distance reported by the directions service, if any.
        duration_s:  Total duration reported by the directions service, if any.
    """
    polyline: Tuple[Coord, ...]
    steps: Tuple[NavigationStep, ...]
    destination: Optional[Coord] = None
    distance_m: Optional[float] = None
    duration_s: Optional[float] = None

    lats: np.ndarray = field(init=False, repr=False, compare=False)
    lons: np.ndarray = field(init=False, repr=False, compare=False)
    cumulative_m: np.ndarray = field(init=False, repr=False, compare=False)
    start_indices: Tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        polyline = tuple(self.polyline)
        steps = tuple(self.steps)
        if not polyline:
            raise EmptyRouteError()
        _validate_steps(steps, len(polyline))

        lats = np.array([c.lat for c in polyline], dtype=float)
        lons = np.array([c.lon for c in polyline], dtype=float)
        cumulative = np.concatenate(([0.0], np.cumsum(segment_lengths(lats, lons))))
        for arr in (lats, lons, cumulative):
            arr.setflags(write=False)

        object.__setattr__(self, "polyline", polyline)
        object.__setattr__(self, "steps", steps)
        object.__setattr__(self, "lats", lats)
        object.__setattr__(self, "lons", lons)
        object.__setattr__(self, "cumulative_m", cumulative)
        object.__setattr__(self, "start_indices", tuple(s.start_index for s in steps))
        if self.destination is None:
            object.__setattr__(self, "destination", polyline[-1])

    def __len__(self) -> int:
        return len(self.polyline)

    @property
    def length_m(self) -> float:
        """Polyline length measured along its coordinates."""
        return float(self.cumulative_m[-1])

    def to_dict(self) -> dict:
        return {
            "polyline": [c.to_dict() for c in self.polyline],
            "steps": [s.to_dict() for s in self.steps],
            "destination": self.destination.to_dict(),
            "distance_m": self.distance_m,
            "duration_s": self.duration_s,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "RouteModel":
        destination = d.get("destination")
        return RouteModel(
            polyline=tuple(Coord.from_dict(c) for c in d["polyline"]),
            steps=tuple(NavigationStep.from_dict(s) for s in d["steps"]),
            destination=Coord.from_dict(destination) if destination else None,
            distance_m=d.get("distance_m"),
            duration_s=d.get("duration_s"),
        )


def _validate_steps(steps: Sequence[NavigationStep], n_coords: int) -> None:
    if not steps:
        raise ValueError("A route needs at least one step.")
    if steps[0].start_index != 0:
        raise ValueError(f"First step must start at index 0, got {steps[0].start_index}.")
    prev = -1
    for step in steps:
        if not 0 <= step.start_index < n_coords:
            raise ValueError(f"Step start_index {step.start_index} outside polyline of {n_coords} points.")
        if step.start_index <= prev:
            raise ValueError("Step start indices must be strictly increasing.")
        prev = step.start_index


# ---------------------------------------------------------------------------
# Directions result → RouteModel
# ---------------------------------------------------------------------------

def nearest_index(lats: np.ndarray, lons: np.ndarray, coord: Coord) -> int:
    """Index of the polyline coordinate closest to coord; ties → smallest index."""
    if len(lats) == 0:
        raise EmptyRouteError()
    return int(np.argmin(haversine_to_many(coord.lat, coord.lon, lats, lons)))


def build_route(result, destination: Optional[Coord] = None) -> RouteModel:
    """
    Convert a DirectionsResult into a RouteModel.

    Each maneuver location is tied to its nearest polyline coordinate.
    The first step is pinned to index 0; a later step whose index does not
    advance past the previous one is dropped.

    Args:
        result:      DirectionsResult from a DirectionsProvider.
        destination: Arrival target override.

    Returns:
        RouteModel ready for navigation.

    Raises:
        RouteComputeError: if the result carries no geometry.
    """
    polyline = tuple(result.polyline)
    if not polyline:
        raise RouteComputeError("Directions result has no route geometry.")

    lats = np.array([c.lat for c in polyline], dtype=float)
    lons = np.array([c.lon for c in polyline], dtype=float)

    steps = []
    prev_index = -1
    for i, raw in enumerate(result.steps):
        index = 0 if i == 0 else nearest_index(lats, lons, raw.maneuver_location)
        if index <= prev_index:
            logger.warning(
                f"Dropping maneuver '{raw.instruction}': location maps to index {index}, "
                f"not after previous step at {prev_index}."
            )
            continue
        steps.append(NavigationStep(
            start_index=index,
            instruction=raw.instruction,
            maneuver_type=raw.maneuver_type,
            maneuver_modifier=raw.maneuver_modifier,
            distance_meters=float(raw.distance_m),
            duration_seconds=float(raw.duration_s),
            icon_key=icon_key_for(raw.maneuver_type, raw.maneuver_modifier),
        ))
        prev_index = index

    if not steps:
        steps.append(NavigationStep(
            start_index=0,
            instruction="Follow the route",
            maneuver_type="depart",
            distance_meters=float(result.distance_m),
            duration_seconds=float(result.duration_s),
            icon_key="depart",
        ))

    return RouteModel(
        polyline=polyline,
        steps=tuple(steps),
        destination=destination,
        distance_m=float(result.distance_m),
        duration_s=float(result.duration_s),
    )
