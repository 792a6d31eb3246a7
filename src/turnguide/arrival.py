# arrival.py
# Threshold test against the destination.

from typing import Union

from .geo_utils import distance
from .models import Coord, PositionSample


DEFAULT_ARRIVAL_THRESHOLD_M = 20.0


def is_arrived(
    position: Union[PositionSample, Coord],
    destination: Coord,
    threshold_m: float = DEFAULT_ARRIVAL_THRESHOLD_M,
) -> bool:
    """True when position is strictly closer than threshold_m to destination."""
    coord = position.coord if isinstance(position, PositionSample) else position
    return distance(coord, destination) < threshold_m
