# route_matcher.py
# Projects a live position onto the nearest polyline index.

from typing import Sequence, Union

import numpy as np

from .errors import EmptyRouteError
from .models import Coord, PositionSample
from .route_model import RouteModel, nearest_index


def match_position(
    route: Union[RouteModel, Sequence[Coord]],
    position: Union[PositionSample, Coord],
) -> int:
    """
    Index of the route coordinate closest to the position.

    Distance is haversine to every polyline coordinate; when several indices
    are equally close the smallest one wins.

    Args:
        route:    RouteModel (uses its precomputed arrays) or a plain Coord sequence.
        position: PositionSample or Coord.

    Returns:
        Matched polyline index.

    Raises:
        EmptyRouteError: if the polyline has no coordinates.
    """
    coord = position.coord if isinstance(position, PositionSample) else position

    if isinstance(route, RouteModel):
        return nearest_index(route.lats, route.lons, coord)

    if len(route) == 0:
        raise EmptyRouteError()
    lats = np.fromiter((c.lat for c in route), dtype=float, count=len(route))
    lons = np.fromiter((c.lon for c in route), dtype=float, count=len(route))
    return nearest_index(lats, lons, coord)
