# main.py
# Entry point: simulates a GPS loop feeding positions into NavigationSystem.
# In production, replace ReplayLocationProvider with your real location source.
#
# With MAPBOX_ACCESS_TOKEN set the route comes from the Mapbox Directions API,
# otherwise a fixed demo route (Times Square → Bryant Park) is used.

import logging

from .directions_client import MapboxDirectionsClient
from .models import Arrived, Coord, NavigationError, PositionSample, ProgressUpdate, StepChanged, TransportMode
from .nav_config import NavConfig
from .navigator import NavigationSystem
from .providers import DirectionsResult, DirectionsStep, ReplayLocationProvider

# ------------------------------------------------------------------
# Logging setup: configure once here, all modules inherit
# ------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

# ------------------------------------------------------------------
# Config: tweak thresholds or paths here, not inside the modules
# ------------------------------------------------------------------
config = NavConfig(
    arrival_threshold_m=20.0,
    log_dir="logs",
)

ORIGIN      = Coord(-73.9855, 40.7580)   # Times Square
DESTINATION = Coord(-73.9832, 40.7536)   # Bryant Park

DEMO_POLYLINE = (
    ORIGIN,
    Coord(-73.9861, 40.7572),
    Coord(-73.9866, 40.7565),
    Coord(-73.9871, 40.7558),   # left onto W 42nd St
    Coord(-73.9859, 40.7553),
    Coord(-73.9847, 40.7548),
    Coord(-73.9836, 40.7543),   # right onto 6th Ave
    DESTINATION,
)


class DemoDirections:
    """Offline DirectionsProvider returning the fixed demo route."""

    def request_route(self, origin: Coord, destination: Coord, mode: TransportMode) -> DirectionsResult:
        return DirectionsResult(
            distance_m=560.0,
            duration_s=400.0,
            polyline=DEMO_POLYLINE,
            steps=(
                DirectionsStep("Head southwest on 7th Ave", "depart", 240.0, 170.0, DEMO_POLYLINE[0]),
                DirectionsStep("Turn left onto W 42nd St", "turn", 260.0, 185.0, DEMO_POLYLINE[3], "left"),
                DirectionsStep("Turn right onto 6th Ave", "turn", 60.0, 45.0, DEMO_POLYLINE[6], "right"),
                DirectionsStep("You have arrived at Bryant Park", "arrive", 0.0, 0.0, DEMO_POLYLINE[7]),
            ),
        )


def show_event(event) -> None:
    if isinstance(event, StepChanged):
        print(f"  ➜  {event.new_step.instruction}")
    elif isinstance(event, ProgressUpdate):
        print(f"     {event.remaining_distance_text} left, ETA {event.eta_text}")
    elif isinstance(event, Arrived):
        print("  ✓  You have arrived at your destination!")
    elif isinstance(event, NavigationError):
        print(f"  ⚠  Navigation error: {event.kind} {event.message}")


def main() -> None:
    # 1. Wire providers
    directions = MapboxDirectionsClient(config) if config.mapbox_access_token else DemoDirections()
    provider = ReplayLocationProvider()
    nav = NavigationSystem(provider, directions, config=config, record=True)
    nav.add_listener(show_event)

    # 2. Request a route
    success, msg = nav.start_navigation(ORIGIN, DESTINATION, TransportMode.WALKING)
    print(f"[Main] {msg}")
    if not success:
        return

    print("\n--- GPS Loop Active ---")

    # 3. GPS loop, walking the route's own vertices
    samples = [
        PositionSample(coord=c, timestamp_ms=i * 1000, accuracy_m=5.0)
        for i, c in enumerate(nav.route.polyline)
    ]
    provider.replay(samples, interval_s=0.05)

    print("\n--- Session complete ---")
    print(f"    Log files written to: {config.log_dir}/")


if __name__ == "__main__":
    main()
