"""Stitch per-leg provider answers into one route geometry.

One provider request is issued per consecutive waypoint pair (plus the
wrap-around pair for closed shapes). Legs run concurrently, but results are
placed by leg index, so completion order never affects the output. The first
failing leg aborts the whole run: pending legs are cancelled, in-flight
results are discarded and the error is raised; no partial route is returned.
"""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
import logging
import threading
import time
from typing import Dict, List, Optional

from ..config import PipelineConfig
from ..errors import (
    InvalidInputError,
    RoutingError,
    RoutingTimeoutError,
)
from ..models import GeoPoint, GeoPolygon, RouteGeometry, RouteLeg, TransportMode
from .base import CancellationToken, RoutingProvider

LOGGER = logging.getLogger(__name__)

# Slack on top of the provider timeout before the synthesizer gives up on a leg.
_TIMEOUT_GRACE_SECONDS = 1.0


class RouteSynthesizer:
    """Routes a waypoint polygon leg by leg through a ``RoutingProvider``."""

    def __init__(
        self,
        provider: RoutingProvider,
        config: PipelineConfig | None = None,
        *,
        poll_interval: float = 0.05,
    ) -> None:
        self._provider = provider
        self._config = config or PipelineConfig.from_env()
        self._poll_interval = poll_interval

    def synthesize(
        self,
        waypoints: GeoPolygon,
        mode: TransportMode | str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> RouteGeometry:
        """Return the stitched route or raise the first leg's ``RoutingError``."""

        if not isinstance(waypoints, GeoPolygon):
            raise InvalidInputError("synthesize expects a GeoPolygon")
        mode = TransportMode.parse(mode)
        pairs = waypoints.legs()
        caller_token = cancel_token or CancellationToken()
        caller_token.raise_if_cancelled()

        LOGGER.info(
            "Routing %d legs for %d waypoints (mode=%s, closed=%s)",
            len(pairs),
            len(waypoints),
            mode.value,
            waypoints.closed,
        )
        started = time.monotonic()
        legs = self._route_all(pairs, mode, caller_token)
        route = RouteGeometry.from_legs(legs)
        LOGGER.info(
            "Route stitched: %d points, %.2f km in %.2fs",
            len(route),
            route.distance_m / 1000.0,
            time.monotonic() - started,
        )
        return route

    def _route_all(
        self,
        pairs: List[tuple[GeoPoint, GeoPoint]],
        mode: TransportMode,
        caller_token: CancellationToken,
    ) -> List[RouteLeg]:
        timeout = self._config.leg_timeout_s
        # Run-local abort flag so a failure never cancels the caller's token.
        run_token = CancellationToken()
        started_at: Dict[int, float] = {}
        started_lock = threading.Lock()

        def check(index: int) -> None:
            caller_token.raise_if_cancelled(index)
            run_token.raise_if_cancelled(index)

        def run_leg(index: int, origin: GeoPoint, destination: GeoPoint) -> RouteLeg:
            check(index)
            with started_lock:
                started_at[index] = time.monotonic()
            leg = self._provider.route_leg(
                origin, destination, mode, timeout=timeout, leg_index=index
            )
            # Results that land after an abort belong to a dead run.
            check(index)
            return leg

        results: List[Optional[RouteLeg]] = [None] * len(pairs)
        workers = max(1, min(self._config.max_parallel_legs, len(pairs)))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="route-leg")
        futures: Dict[Future[RouteLeg], int] = {
            executor.submit(run_leg, index, origin, destination): index
            for index, (origin, destination) in enumerate(pairs)
        }
        pending = set(futures)
        try:
            while pending:
                done, pending = wait(
                    pending, timeout=self._poll_interval, return_when=FIRST_COMPLETED
                )
                for future in sorted(done, key=futures.__getitem__):
                    index = futures[future]
                    error = future.exception()
                    if error is not None:
                        raise _as_routing_error(error, index)
                    results[index] = _reindex(future.result(), index)
                if pending:
                    caller_token.raise_if_cancelled()
                    self._check_deadlines(pending, futures, started_at, started_lock)
        except BaseException as exc:
            run_token.cancel(type(exc).__name__)
            for future in pending:
                future.cancel()
            LOGGER.warning(
                "Route aborted (%d of %d legs outstanding): %s",
                len(pending),
                len(pairs),
                exc,
            )
            raise
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return [leg for leg in results if leg is not None]

    def _check_deadlines(
        self,
        pending: set[Future[RouteLeg]],
        futures: Dict[Future[RouteLeg], int],
        started_at: Dict[int, float],
        started_lock: threading.Lock,
    ) -> None:
        limit = self._config.leg_timeout_s + _TIMEOUT_GRACE_SECONDS
        now = time.monotonic()
        with started_lock:
            running = {futures[f]: started_at.get(futures[f]) for f in pending}
        for index in sorted(running):
            began = running[index]
            if began is not None and now - began > limit:
                raise RoutingTimeoutError(
                    f"Leg {index} exceeded {self._config.leg_timeout_s:.1f}s",
                    leg_index=index,
                )


def synthesize_route(
    waypoints: GeoPolygon,
    mode: TransportMode | str,
    provider: RoutingProvider,
    *,
    config: PipelineConfig | None = None,
    cancel_token: CancellationToken | None = None,
) -> RouteGeometry:
    """Convenience wrapper around :class:`RouteSynthesizer`."""

    return RouteSynthesizer(provider, config).synthesize(
        waypoints, mode, cancel_token=cancel_token
    )


def _reindex(leg: RouteLeg, index: int) -> RouteLeg:
    if leg.index == index:
        return leg
    return RouteLeg(
        index=index,
        points=leg.points,
        distance_m=leg.distance_m,
        duration_s=leg.duration_s,
    )


def _as_routing_error(error: BaseException, index: int) -> BaseException:
    if isinstance(error, RoutingError):
        if error.leg_index is None:
            error.leg_index = index
        return error
    if isinstance(error, Exception):
        wrapped = RoutingError(f"Leg {index} failed: {error}", leg_index=index)
        wrapped.__cause__ = error
        return wrapped
    return error


__all__ = ["RouteSynthesizer", "synthesize_route"]
