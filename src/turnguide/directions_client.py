# directions_client.py
# Mapbox Directions API client implementing DirectionsProvider.
# One-shot request, never retried here; failures become RouteComputeError.

import logging
from typing import Any, Dict, List, Optional, Tuple

import polyline
import requests

from .errors import RouteComputeError
from .models import Coord, TransportMode
from .nav_config import NavConfig
from .providers import DirectionsResult, DirectionsStep

logger = logging.getLogger(__name__)


def _decode_geometry(geometry: Any, geometries: str) -> Tuple[Coord, ...]:
    """GeoJSON LineString or encoded polyline → Coord tuple."""
    if isinstance(geometry, dict):
        return tuple(Coord(lon=float(lon), lat=float(lat)) for lon, lat, *_ in geometry.get("coordinates", []))
    if isinstance(geometry, str):
        precision = 6 if geometries == "polyline6" else 5
        return tuple(Coord(lon=lon, lat=lat) for lat, lon in polyline.decode(geometry, precision))
    return ()


def parse_directions_response(data: Dict[str, Any], geometries: str = "geojson") -> DirectionsResult:
    """
    Turn a Mapbox Directions JSON body into a DirectionsResult.

    Only the first route is used; steps of every leg are concatenated.

    Raises:
        RouteComputeError: if the body reports an error or has no route.
    """
    code = data.get("code")
    if code != "Ok":
        raise RouteComputeError(f"Directions service returned {code}: {data.get('message', '')}".strip())

    routes = data.get("routes") or []
    if not routes:
        raise RouteComputeError("Directions service returned no route.")
    route = routes[0]

    steps: List[DirectionsStep] = []
    try:
        for leg in route.get("legs", []):
            for n, step in enumerate(leg.get("steps", [])):
                steps.append(_parse_step(step, n))

        return DirectionsResult(
            distance_m=float(route.get("distance", 0.0)),
            duration_s=float(route.get("duration", 0.0)),
            polyline=_decode_geometry(route.get("geometry"), geometries),
            steps=tuple(steps),
        )
    except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
        raise RouteComputeError(f"Malformed directions response: {e}") from e


def _parse_step(step: Dict[str, Any], n: int) -> DirectionsStep:
    maneuver = step.get("maneuver", {})
    location = maneuver.get("location") or [0.0, 0.0]
    if len(location) < 2:
        raise ValueError(f"step {n} maneuver location has {len(location)} value(s)")
    return DirectionsStep(
        instruction=maneuver.get("instruction", ""),
        maneuver_type=maneuver.get("type", "unknown"),
        maneuver_modifier=maneuver.get("modifier"),
        distance_m=float(step.get("distance", 0.0)),
        duration_s=float(step.get("duration", 0.0)),
        maneuver_location=Coord(lon=float(location[0]), lat=float(location[1])),
    )


class MapboxDirectionsClient:
    """
    Requests a driving / walking / cycling / traffic-aware route from Mapbox.

    Args:
        config:       NavConfig with base URL, token and request timeout.
        access_token: Overrides config.mapbox_access_token.
        geometries:   "geojson", "polyline" or "polyline6".
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        access_token: Optional[str] = None,
        geometries: str = "geojson",
    ) -> None:
        self.config = config or NavConfig()
        self.access_token = access_token or self.config.mapbox_access_token
        self.geometries = geometries

    def route_url(self, origin: Coord, destination: Coord, mode: TransportMode) -> str:
        coords = f"{origin.lon},{origin.lat};{destination.lon},{destination.lat}"
        base = self.config.mapbox_base_url.rstrip("/")
        return f"{base}/directions/v5/mapbox/{mode.directions_profile}/{coords}"

    def request_route(self, origin: Coord, destination: Coord, mode: TransportMode) -> DirectionsResult:
        """
        Fetch a route between two coordinates.

        Raises:
            RouteComputeError: on transport, HTTP or payload errors, or no route.
        """
        url = self.route_url(origin, destination, mode)
        params = {
            "steps": "true",
            "geometries": self.geometries,
            "overview": "full",
            "access_token": self.access_token,
        }
        logger.info(f"Requesting {mode.value} route {origin} → {destination}")
        try:
            r = requests.get(url, params=params, timeout=self.config.request_timeout_s)
            r.raise_for_status()
            data = r.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise RouteComputeError(f"Directions service responded with HTTP {status}.") from e
        except requests.RequestException as e:
            # str(e) can echo the URL, access token included
            raise RouteComputeError(f"Directions request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise RouteComputeError(f"Directions response is not JSON: {e}") from e

        return parse_directions_response(data, self.geometries)
