# progress.py
# Remaining distance, ETA and the display strings derived from them.
# Pure functions, no session state.

import math
from typing import Sequence, Union

from .errors import EmptyRouteError
from .geo_utils import distance
from .models import Coord, TransportMode
from .route_model import RouteModel


def remaining_distance(route: Union[RouteModel, Sequence[Coord]], matched_index: int) -> float:
    """
    Metres along the route from matched_index to the last coordinate.

    Args:
        route:         RouteModel or plain Coord sequence.
        matched_index: Polyline index from match_position().

    Returns:
        Sum of segment lengths after matched_index; 0.0 at the last index.

    Raises:
        EmptyRouteError: if the polyline has no coordinates.
        IndexError:      if matched_index is outside the polyline.
    """
    n = len(route)
    if n == 0:
        raise EmptyRouteError()
    if not 0 <= matched_index < n:
        raise IndexError(f"matched_index {matched_index} outside polyline of {n} points")

    if isinstance(route, RouteModel):
        cum = route.cumulative_m
        return max(0.0, float(cum[-1] - cum[matched_index]))

    total = 0.0
    for i in range(matched_index + 1, n):
        total += distance(route[i - 1], route[i])
    return total


def eta(remaining_m: float, mode: TransportMode) -> float:
    """Seconds to cover remaining_m at the mode's average speed."""
    return remaining_m / mode.average_speed_mps


def route_pace_eta(route: RouteModel, remaining_m: float, mode: TransportMode) -> float:
    """ETA using the directions service's own pace for this route, else eta()."""
    if route.duration_s and route.distance_m:
        return remaining_m * (route.duration_s / route.distance_m)
    return eta(remaining_m, mode)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_distance(meters: float) -> str:
    """'999m' below one kilometre, '1.5km' from there on."""
    if meters < 1000:
        return f"{math.floor(meters + 0.5)}m"
    return f"{meters / 1000:.1f}km"


def format_duration(seconds: float) -> str:
    """'5min' below one hour, '1h 30min' from there on."""
    hours = math.floor(seconds / 3600)
    minutes = math.floor((seconds % 3600) / 60)
    if seconds < 3600:
        return f"{math.floor(seconds / 60)}min"
    return f"{hours}h {minutes}min"


def format_route_summary(route: RouteModel) -> str:
    """Total distance and duration of a route, e.g. '12.4km · 18min'."""
    dist = route.distance_m if route.distance_m is not None else route.length_m
    if route.duration_s is None:
        return format_distance(dist)
    return f"{format_distance(dist)} · {format_duration(route.duration_s)}"
