# state_machine.py
# State machine that owns a navigation session and turns position samples
# into guidance events.
# Call start() once per route; samples arrive through the location
# provider subscription (or NavigationTask) tagged with the session generation.

import logging
from typing import Any, Callable, List, Optional

from .arrival import is_arrived
from .errors import EmptyRouteError, MalformedSampleError, ProviderError, ProviderErrorKind
from .models import (
    Arrived,
    Coord,
    NavigationError,
    NavigationSession,
    NavState,
    ProgressUpdate,
    StepChanged,
    TransportMode,
    coerce_sample,
)
from .nav_config import NavConfig
from .progress import eta, format_distance, format_duration, remaining_distance, route_pace_eta
from .providers import LocationOptions, LocationProvider
from .route_matcher import match_position
from .route_model import RouteModel
from .step_selector import active_step_index

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]
Deliver = Callable[[str, int, Any], None]


class NavigationStateMachine:
    """
    Idle → Navigating → Arrived, driven by location provider callbacks.

    Usage:
        machine = NavigationStateMachine(provider, config)
        machine.add_listener(print)
        machine.start(route, TransportMode.DRIVING)

        # provider pushes samples → ProgressUpdate / StepChanged / Arrived
        machine.stop()

    Every subscription is tagged with the generation current at start();
    callbacks carrying any other generation are ignored.

    Args:
        location_provider: Source of position samples.
        config:            Optional NavConfig; defaults to NavConfig().
        deliver:           Optional hand-off for provider callbacks, called as
                           deliver("sample" | "error", generation, payload).
                           Defaults to processing on the caller's thread.
    """

    def __init__(
        self,
        location_provider: LocationProvider,
        config: Optional[NavConfig] = None,
        deliver: Optional[Deliver] = None,
    ) -> None:
        self.config = config or NavConfig()
        self._provider = location_provider
        self._deliver = deliver
        self._listeners: List[Listener] = []

        self._state = NavState.IDLE
        self._session: Optional[NavigationSession] = None
        self._generation = 0
        self._handle: Any = None

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavState:
        return self._state

    @property
    def session(self) -> Optional[NavigationSession]:
        return self._session

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_active(self) -> bool:
        return self._state is NavState.NAVIGATING

    @property
    def location_options(self) -> LocationOptions:
        return LocationOptions(
            high_accuracy=self.config.high_accuracy,
            max_age_ms=self.config.max_age_ms,
            timeout_ms=self.config.timeout_ms,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(
        self,
        route: RouteModel,
        mode: TransportMode,
        destination: Optional[Coord] = None,
    ) -> NavigationSession:
        """
        Begin a navigation session, replacing any previous one.

        Args:
            route:       RouteModel to follow.
            mode:        Transport mode used for the ETA.
            destination: Arrival target; defaults to route.destination.

        Returns:
            The new NavigationSession.

        Raises:
            EmptyRouteError: if the route has no coordinates.
            ProviderError:   if the subscription is refused. The machine is
                             back in Idle and NavigationError has been emitted.
        """
        if route is None or len(route) == 0:
            raise EmptyRouteError()
        if self._state is not NavState.IDLE:
            self._teardown()

        self._generation += 1
        generation = self._generation
        self._session = NavigationSession(
            route=route,
            mode=mode,
            destination=destination or route.destination,
            generation=generation,
        )
        self._state = NavState.NAVIGATING
        session = self._session

        on_sample, on_error = self._callbacks(generation)
        try:
            handle = self._provider.subscribe(on_sample, on_error, self.location_options)
        except ProviderError as e:
            logger.error(f"Location subscription failed, navigation ended: {e}")
            if self._is_current(generation):
                self._teardown()
            self.notify(NavigationError(kind=e.kind.value, message=str(e)))
            raise

        if self._is_current(generation):
            self._handle = handle
        else:
            # A fix delivered inside subscribe() already ended the session
            self._provider.unsubscribe(handle)
            logger.info(f"Session (generation {generation}) ended during subscribe; subscription released.")
            return session

        logger.info(
            f"Navigation started (generation {generation}): "
            f"{len(route)} points, {len(route.steps)} steps, mode={mode.value}."
        )
        return session

    def stop(self) -> None:
        """End navigation. No-op when already idle."""
        if self._state is NavState.IDLE:
            return
        self._teardown()
        logger.info("Navigation stopped.")

    def reset(self) -> None:
        """Leave the Arrived state (or any other) and return to Idle."""
        if self._state is NavState.IDLE:
            return
        self._teardown()
        logger.info("Navigation reset.")

    # ------------------------------------------------------------------
    # Provider callbacks
    # ------------------------------------------------------------------

    def handle_sample(self, raw_sample: Any, generation: int) -> bool:
        """
        Run one sample through matcher → selector → progress → arrival.

        Args:
            raw_sample: PositionSample or provider mapping.
            generation: Generation tag the sample's subscription carried.

        Returns:
            True if the sample changed the session, False if it was ignored.
        """
        session = self._session
        if not self._is_current(generation):
            logger.debug(f"Ignoring sample from generation {generation} (state={self._state.value}).")
            return False

        try:
            sample = coerce_sample(raw_sample)
        except MalformedSampleError as e:
            logger.warning(f"Dropping malformed sample: {e}")
            return False

        route = session.route

        # 1. Arrival wins over the ordinary progress update
        if is_arrived(sample, session.destination, self.config.arrival_threshold_m):
            self._arrive()
            return True

        # 2. Match + select
        matched = match_position(route, sample)
        selected = active_step_index(route.steps, matched)

        events: List[Any] = []
        if not session.announced:
            session.current_step_index = selected
            session.announced = True
            events.append(StepChanged(new_step=route.steps[selected], step_index=selected))
        elif selected != session.current_step_index:
            regression = session.current_step_index - selected
            if regression > self.config.max_step_regression:
                logger.debug(
                    f"Rejecting step regression {session.current_step_index} → {selected} "
                    f"(matched index {matched})."
                )
            else:
                session.current_step_index = selected
                events.append(StepChanged(new_step=route.steps[selected], step_index=selected))

        # 3. Progress figures always follow the matched position
        remaining = remaining_distance(route, matched)
        if self.config.use_route_pace:
            eta_s = route_pace_eta(route, remaining, session.mode)
        else:
            eta_s = eta(remaining, session.mode)

        session.matched_index = matched
        session.remaining_m = remaining
        session.eta_s = eta_s

        events.append(ProgressUpdate(
            active_step=session.current_step,
            remaining_distance_text=format_distance(remaining),
            eta_text=format_duration(eta_s),
            step_index=session.current_step_index,
            matched_index=matched,
            remaining_m=remaining,
            eta_s=eta_s,
        ))

        for event in events:
            # A listener may stop the session mid-way
            if not self._is_current(generation):
                break
            self.notify(event)
        return True

    def handle_error(self, error: Any, generation: int) -> bool:
        """
        Location provider failure: drop to Idle and emit NavigationError.

        Returns:
            True if the error ended the session, False if it was stale.
        """
        if not self._is_current(generation):
            logger.debug(f"Ignoring provider error from generation {generation}: {error}")
            return False

        if not isinstance(error, ProviderError):
            error = ProviderError(ProviderErrorKind.UNAVAILABLE, str(error))

        logger.error(f"Location provider failed, navigation ended: {error}")
        self._teardown()
        self.notify(NavigationError(kind=error.kind.value, message=str(error)))
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _callbacks(self, generation: int):
        if self._deliver is None:
            return (
                lambda sample: self.handle_sample(sample, generation),
                lambda error: self.handle_error(error, generation),
            )
        deliver = self._deliver
        return (
            lambda sample: deliver("sample", generation, sample),
            lambda error: deliver("error", generation, error),
        )

    def _is_current(self, generation: int) -> bool:
        return (
            self._state is NavState.NAVIGATING
            and self._session is not None
            and generation == self._generation
        )

    def _unsubscribe(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            self._provider.unsubscribe(handle)

    def _arrive(self) -> None:
        self._unsubscribe()
        self._session.clear_progress()
        self._session.state = NavState.ARRIVED
        self._state = NavState.ARRIVED
        logger.info("Destination reached.")
        self.notify(Arrived())

    def _teardown(self) -> None:
        self._unsubscribe()
        self._generation += 1
        self._session = None
        self._state = NavState.IDLE

    def notify(self, event: Any) -> None:
        """Deliver an event to every listener; a failing listener is logged and skipped."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener {listener!r} failed on {event!r}")
