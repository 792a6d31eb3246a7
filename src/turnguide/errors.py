# errors.py
# Exception types raised by the guidance core.
# Pure calculations only raise EmptyRouteError; everything touching a provider
# is turned into a NavigationError event by the state machine.

from enum import Enum


class GuidanceError(Exception):
    """Base class for all guidance errors."""


class EmptyRouteError(GuidanceError):
    """The route polyline has no coordinates, navigation cannot start."""

    def __init__(self, message: str = "Route polyline is empty.") -> None:
        super().__init__(message)


class ProviderErrorKind(Enum):
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT           = "timeout"
    UNAVAILABLE       = "unavailable"


class ProviderError(GuidanceError):
    """The location provider reported a failure."""

    def __init__(self, kind: ProviderErrorKind, message: str = "") -> None:
        self.kind = kind
        super().__init__(message or f"Location provider error: {kind.value}")


class RouteComputeError(GuidanceError):
    """The directions request failed or returned no usable route."""


class MalformedSampleError(GuidanceError):
    """A position sample is missing its coordinate fields."""
