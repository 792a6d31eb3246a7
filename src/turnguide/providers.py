# providers.py
# Interfaces of the external collaborators (location + directions)
# and an in-memory location provider used for simulation and tests.

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from .errors import ProviderError, ProviderErrorKind
from .models import Coord, PositionSample, TransportMode

logger = logging.getLogger(__name__)

SampleCallback = Callable[[Any], None]
ErrorCallback = Callable[[ProviderError], None]


# ---------------------------------------------------------------------------
# Location provider
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LocationOptions:
    high_accuracy: bool = True
    max_age_ms: int = 0
    timeout_ms: int = 5000


class LocationProvider(Protocol):
    def subscribe(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: LocationOptions,
    ) -> Any: ...

    def unsubscribe(self, handle: Any) -> None: ...

    def get_current_position(self, options: LocationOptions) -> PositionSample: ...


# ---------------------------------------------------------------------------
# Directions provider
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DirectionsStep:
    instruction: str
    maneuver_type: str
    distance_m: float
    duration_s: float
    maneuver_location: Coord
    maneuver_modifier: Optional[str] = None


@dataclass(frozen=True)
class DirectionsResult:
    distance_m: float
    duration_s: float
    polyline: Tuple[Coord, ...]
    steps: Tuple[DirectionsStep, ...] = field(default_factory=tuple)


class DirectionsProvider(Protocol):
    def request_route(
        self,
        origin: Coord,
        destination: Coord,
        mode: TransportMode,
    ) -> DirectionsResult: ...


# ---------------------------------------------------------------------------
# Replay provider
# ---------------------------------------------------------------------------

class ReplayLocationProvider:
    """
    Location provider that pushes a fixed list of samples to its subscribers.

    Usage:
        provider = ReplayLocationProvider(samples)
        machine = NavigationStateMachine(provider)
        machine.start(route, TransportMode.WALKING)
        provider.replay()

    Samples may be PositionSample objects or raw provider mappings.
    """

    def __init__(self, samples: Optional[Iterable[Any]] = None) -> None:
        self.samples: List[Any] = list(samples or [])
        self.subscriptions: Dict[int, Tuple[SampleCallback, ErrorCallback]] = {}
        self.last_options: Optional[LocationOptions] = None
        self._handles = itertools.count(1)

    # ------------------------------------------------------------------
    # LocationProvider interface
    # ------------------------------------------------------------------

    def subscribe(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: LocationOptions,
    ) -> int:
        handle = next(self._handles)
        self.subscriptions[handle] = (on_sample, on_error)
        self.last_options = options
        return handle

    def unsubscribe(self, handle: int) -> None:
        self.subscriptions.pop(handle, None)

    def get_current_position(self, options: LocationOptions) -> PositionSample:
        self.last_options = options
        if not self.samples:
            raise ProviderError(ProviderErrorKind.UNAVAILABLE, "No position available.")
        first = self.samples[0]
        return first if isinstance(first, PositionSample) else PositionSample.from_dict(first)

    # ------------------------------------------------------------------
    # Driving the subscribers
    # ------------------------------------------------------------------

    @property
    def subscriber_count(self) -> int:
        return len(self.subscriptions)

    def emit(self, sample: Any) -> None:
        """Deliver one sample to every current subscriber."""
        for on_sample, _ in list(self.subscriptions.values()):
            on_sample(sample)

    def fail(self, error: ProviderError) -> None:
        """Deliver a provider error to every current subscriber."""
        for _, on_error in list(self.subscriptions.values()):
            on_error(error)

    def replay(self, samples: Optional[Iterable[Any]] = None, interval_s: float = 0.0) -> int:
        """
        Push samples in order until they run out or nobody is subscribed.

        Returns:
            Number of samples delivered.
        """
        delivered = 0
        for sample in (self.samples if samples is None else samples):
            if not self.subscriptions:
                logger.debug("Replay stopped: no subscribers left.")
                break
            self.emit(sample)
            delivered += 1
            if interval_s:
                time.sleep(interval_s)
        return delivered
