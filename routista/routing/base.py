"""Routing provider contract and run-scoped cancellation."""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from ..errors import RoutingCancelledError
from ..models import GeoPoint, RouteLeg, TransportMode


@runtime_checkable
class RoutingProvider(Protocol):
    """Anything that can route a single origin -> destination leg."""

    def route_leg(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        mode: TransportMode,
        *,
        timeout: float,
        leg_index: int = 0,
    ) -> RouteLeg:
        """Return the routed leg or raise a ``RoutingError`` subclass."""
        ...


class CancellationToken:
    """Thread-safe flag shared by every leg task of one run."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None
        self._lock = threading.Lock()

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if self._reason is None:
                self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def raise_if_cancelled(self, leg_index: int | None = None) -> None:
        if self._event.is_set():
            raise RoutingCancelledError(
                f"Route request cancelled ({self._reason})", leg_index=leg_index
            )

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; True once cancelled."""

        return self._event.wait(timeout)


__all__ = ["CancellationToken", "RoutingProvider"]
