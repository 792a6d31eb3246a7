# navigator.py
# Public entry point for the guidance core.
# Owns no business logic, delegates everything to specialist modules.

import logging
from typing import Any, Callable, Optional, Tuple

from .errors import ProviderError, RouteComputeError
from .models import Coord, NavigationError, NavigationStep, NavState, TransportMode
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .progress import format_route_summary
from .providers import DirectionsProvider, LocationProvider
from .route_model import RouteModel, build_route
from .state_machine import NavigationStateMachine

logger = logging.getLogger(__name__)


class NavigationSystem:
    """
    High-level navigation facade.

    Typical lifecycle:
        nav = NavigationSystem(location_provider, MapboxDirectionsClient(config))
        nav.add_listener(show_event)
        nav.start_navigation(Coord(-73.97, 40.77), Coord(-73.96, 40.78), TransportMode.WALKING)

        # location provider pushes samples → events reach show_event
        nav.stop_navigation()

    Args:
        location_provider:   Pushes position samples.
        directions_provider: Computes routes.
        config:              Optional NavConfig; defaults to NavConfig().
        record:              Save each route and log every event under config.log_dir.
    """

    def __init__(
        self,
        location_provider: LocationProvider,
        directions_provider: DirectionsProvider,
        config: Optional[NavConfig] = None,
        record: bool = False,
    ) -> None:
        self.config = config or NavConfig()
        self._location = location_provider
        self._directions = directions_provider

        # Specialist modules
        self._machine = NavigationStateMachine(location_provider, self.config)
        self._logger = NavLogger(self.config) if record else None
        if self._logger:
            self._machine.add_listener(self._logger.log_event)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Callable[[Any], None]) -> None:
        self._machine.add_listener(listener)

    def remove_listener(self, listener: Callable[[Any], None]) -> None:
        self._machine.remove_listener(listener)

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def start_navigation(
        self,
        origin: Coord,
        destination: Coord,
        mode: TransportMode = TransportMode.DRIVING,
    ) -> Tuple[bool, str]:
        """
        Request a route and begin tracking.

        A failed request leaves any running session untouched and emits
        NavigationError(kind="route_compute").

        Args:
            origin:      Starting coordinate.
            destination: Target coordinate.
            mode:        Transport mode.

        Returns:
            (success, message)
        """
        logger.info(f"Calculating route: {origin} → {destination} ({mode.value})")
        try:
            result = self._directions.request_route(origin, destination, mode)
            route = build_route(result, destination)
        except RouteComputeError as e:
            logger.warning(f"Route calculation failed: {e}")
            self._machine.notify(NavigationError(kind="route_compute", message=str(e)))
            return False, str(e)

        return self.follow_route(route, mode, destination)

    def start_from_current_position(
        self,
        destination: Coord,
        mode: TransportMode = TransportMode.DRIVING,
    ) -> Tuple[bool, str]:
        """Ask the location provider for a one-shot fix and route from there."""
        try:
            fix = self._location.get_current_position(self._machine.location_options)
        except ProviderError as e:
            logger.error(f"Could not get current position: {e}")
            self._machine.notify(NavigationError(kind=e.kind.value, message=str(e)))
            return False, str(e)
        return self.start_navigation(fix.coord, destination, mode)

    def follow_route(
        self,
        route: RouteModel,
        mode: TransportMode = TransportMode.DRIVING,
        destination: Optional[Coord] = None,
    ) -> Tuple[bool, str]:
        """Begin tracking an already computed route (e.g. a loaded snapshot)."""
        try:
            self._machine.start(route, mode, destination)
        except ProviderError as e:
            # The machine has already emitted NavigationError and is Idle
            return False, str(e)
        if self._logger:
            self._logger.save_route(route)

        summary = format_route_summary(route)
        logger.info(f"Route ready: {len(route.steps)} steps, {summary}. First: {route.steps[0].instruction}")
        return True, f"Route ready. {len(route.steps)} steps, {summary}."

    def stop_navigation(self) -> None:
        """Forcibly end the current navigation session."""
        self._machine.stop()

    def reset(self) -> None:
        """Clear an arrived session so a new one can start."""
        self._machine.reset()

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavState:
        return self._machine.state

    @property
    def is_active(self) -> bool:
        return self._machine.is_active

    @property
    def current_step(self) -> Optional[NavigationStep]:
        session = self._machine.session
        return session.current_step if session else None

    @property
    def route(self) -> Optional[RouteModel]:
        session = self._machine.session
        return session.route if session else None
