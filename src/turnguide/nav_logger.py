# nav_logger.py
# Handles all file I/O for the guidance core.
# Saves route snapshots as JSON and appends produced events to a JSONL log.

import json
import os
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional

from .errors import EmptyRouteError
from .nav_config import NavConfig
from .route_model import RouteModel

# Standard Python logger, configure at app entry point if needed
logger = logging.getLogger(__name__)


class NavLogger:
    """
    Persists route snapshots and navigation events to JSON files.

    Register log_event as a state machine listener to record a session:
        machine.add_listener(nav_logger.log_event)

    Args:
        config: NavConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Route persistence
    # ------------------------------------------------------------------

    def save_route(self, route: RouteModel) -> bool:
        """
        Serialize a route to JSON.

        Args:
            route: RouteModel to snapshot.

        Returns:
            True on success, False on failure.
        """
        filepath = self.config.route_filepath
        try:
            data = {
                "saved_at": datetime.now().isoformat(),
                "point_count": len(route),
                "step_count": len(route.steps),
                "route": route.to_dict(),
            }
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            logger.info(f"Route saved to {filepath} ({len(route.steps)} steps).")
            return True
        except IOError as e:
            logger.error(f"Failed to save route to {filepath}: {e}")
            return False

    def load_route(self, filepath: Optional[str] = None) -> Optional[RouteModel]:
        """
        Load a previously saved route from JSON.

        Args:
            filepath: Path override; uses config default if omitted.

        Returns:
            RouteModel, or None if loading failed.
        """
        path = filepath or self.config.route_filepath
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            route = RouteModel.from_dict(data["route"])
            logger.info(f"Route loaded from {path} ({len(route.steps)} steps).")
            return route
        except (IOError, KeyError, ValueError, EmptyRouteError) as e:
            logger.error(f"Failed to load route from {path}: {e}")
            return None

    # ------------------------------------------------------------------
    # Session event logging
    # ------------------------------------------------------------------

    def log_event(self, event: Any) -> None:
        """
        Append a single produced event to the session log file.

        Args:
            event: ProgressUpdate, StepChanged, Arrived or NavigationError.
        """
        entry = {"timestamp": datetime.now().isoformat()}
        entry.update(asdict(event))
        try:
            with open(self.config.events_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except IOError as e:
            logger.error(f"Failed to write event log: {e}")
