"""Central error types used across the pipeline."""

from __future__ import annotations


class RoutistaError(RuntimeError):
    """Base error for every pipeline failure."""


class ExtractionError(RoutistaError):
    """Raised when no usable contour can be found in the input image."""


class InvalidInputError(RoutistaError, ValueError):
    """Raised when a malformed polygon or route crosses a stage boundary."""


class RoutingError(RoutistaError):
    """Base error for routing provider failures on a single leg."""

    def __init__(self, message: str, *, leg_index: int | None = None) -> None:
        super().__init__(message)
        self.leg_index = leg_index


class RoutingTimeoutError(RoutingError):
    """Raised when a leg request exceeds the provider-call timeout."""


class RoutingRateLimitError(RoutingError):
    """Raised when the provider answers HTTP 429."""


class RoutingAuthError(RoutingError):
    """Raised when the provider rejects the API key."""


class NoRouteFoundError(RoutingError):
    """Raised when the provider returns no path for a leg."""


class RoutingCancelledError(RoutingError):
    """Raised when a run is cancelled while legs are in flight."""


class PipelineError(RoutistaError):
    """Wraps a stage failure so callers can tell which stage broke."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage


__all__ = [
    "RoutistaError",
    "ExtractionError",
    "InvalidInputError",
    "RoutingError",
    "RoutingTimeoutError",
    "RoutingRateLimitError",
    "RoutingAuthError",
    "NoRouteFoundError",
    "RoutingCancelledError",
    "PipelineError",
]
