# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import os
from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# Transport mode constants
# ---------------------------------------------------------------------------

# Average speeds in metres per second, used when no richer duration model exists
AVERAGE_SPEED_MPS: dict = {
    "driving": 13.89,   # 50 km/h
    "walking": 1.4,     # 5 km/h
    "cycling": 4.17,    # 15 km/h
    "transit": 8.33,    # 30 km/h
}

# Directions API profile requested for each transport mode
DIRECTIONS_PROFILES: dict = {
    "driving": "driving",
    "walking": "walking",
    "cycling": "cycling",
    "transit": "driving-traffic",
}

MAPBOX_BASE_URL: str = "https://api.mapbox.com"


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Progress tracking
    arrival_threshold_m: float = 20.0      # strictly closer than this → arrived
    max_step_regression: int = 1           # steps the announced maneuver may move back
    use_route_pace: bool = False           # ETA from the route's own duration instead of mode speed

    # Sample delivery
    sample_queue_size: int = 32            # pending samples before the oldest is dropped
    high_accuracy: bool = True
    max_age_ms: int = 0
    timeout_ms: int = 5000

    # Directions service
    mapbox_base_url: str = MAPBOX_BASE_URL
    mapbox_access_token: str = field(
        default_factory=lambda: os.getenv("MAPBOX_ACCESS_TOKEN", "")
    )
    request_timeout_s: float = 30.0

    # Logging
    log_dir: str = "."                     # directory for saved JSON files
    route_filename: str = "active_route.json"
    events_filename: str = "nav_session.jsonl"

    @property
    def route_filepath(self) -> str:
        return os.path.join(self.log_dir, self.route_filename)

    @property
    def events_filepath(self) -> str:
        return os.path.join(self.log_dir, self.events_filename)
