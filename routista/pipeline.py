"""End-to-end shape-to-route run: image -> polygon -> waypoints -> route -> score.

Every run starts from a clean slate: nothing from an earlier (possibly
abandoned) run is reused. A failure in any stage is re-raised as
``PipelineError`` whose ``stage`` names the step that broke, with the
original error chained as ``__cause__``.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

from .config import PipelineConfig
from .errors import PipelineError
from .extraction import ImageSource, extract_shape_detailed
from .geo import scale_to_geo
from .gpx import to_track_file
from .models import (
    AccuracyResult,
    GeoPoint,
    GeoPolygon,
    NormalizedPolygon,
    RouteGeometry,
    ShapeExtraction,
    TransportMode,
)
from .routing import (
    CachingProvider,
    CancellationToken,
    RadarDirectionsClient,
    RouteSynthesizer,
    RoutingProvider,
    StraightLineProvider,
)
from .scoring import score

STAGE_EXTRACTION = "extraction"
STAGE_PROJECTION = "projection"
STAGE_ROUTING = "routing"
STAGE_SCORING = "scoring"

EventHook = Callable[[str, Mapping[str, Any]], None]
T = TypeVar("T")

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    """Everything the caller needs to display, export or share a run."""

    shape: Optional[ShapeExtraction]
    polygon: NormalizedPolygon
    target: GeoPolygon
    route: RouteGeometry
    accuracy: AccuracyResult
    mode: TransportMode
    radius_m: float
    elapsed_s: float

    def to_gpx(self) -> str:
        return to_track_file(self.route)


def default_provider(config: PipelineConfig) -> RoutingProvider:
    """Radar when an API key is configured, otherwise straight lines."""

    provider: RoutingProvider
    if config.radar_api_key:
        provider = RadarDirectionsClient(
            config.radar_api_key,
            base_url=config.radar_base_url,
            geometry_format=config.radar_geometry_format,
        )
    else:
        LOGGER.warning("No RADAR_API_KEY configured; routing with straight lines")
        provider = StraightLineProvider(config.earth_radius_m)
    if config.route_cache_enabled:
        provider = CachingProvider(provider, ttl_seconds=config.route_cache_ttl_s)
    return provider


class ShapeRoutePipeline:
    """Runs the four stages in order for one user request."""

    def __init__(
        self,
        provider: RoutingProvider | None = None,
        config: PipelineConfig | None = None,
        event_hook: EventHook | None = None,
    ) -> None:
        self.config = config or PipelineConfig.from_env()
        self.provider = provider or default_provider(self.config)
        self._event_hook = event_hook
        self._log = logging.getLogger(self.__class__.__name__)

    def run(
        self,
        image: ImageSource,
        center: GeoPoint,
        radius_m: float,
        mode: TransportMode | str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> PipelineResult:
        """Extract the shape from ``image`` and route it around ``center``."""

        started = time.monotonic()
        self._emit("generation_started", {"source": "image", "radius_m": radius_m})
        shape = self._stage(
            STAGE_EXTRACTION, started, extract_shape_detailed, image, self.config
        )
        if shape.likely_noise:
            self._log.warning(
                "Image looks noisy (%d regions); shape may not be what was intended",
                shape.component_count,
            )
        return self._route_polygon(
            shape.polygon, center, radius_m, mode, cancel_token, started, shape
        )

    def run_polygon(
        self,
        polygon: NormalizedPolygon,
        center: GeoPoint,
        radius_m: float,
        mode: TransportMode | str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> PipelineResult:
        """Route an already-extracted (or hand-drawn) normalized polygon."""

        started = time.monotonic()
        self._emit("generation_started", {"source": "polygon", "radius_m": radius_m})
        return self._route_polygon(
            polygon, center, radius_m, mode, cancel_token, started, None
        )

    def _route_polygon(
        self,
        polygon: NormalizedPolygon,
        center: GeoPoint,
        radius_m: float,
        mode: TransportMode | str,
        cancel_token: CancellationToken | None,
        started: float,
        shape: ShapeExtraction | None,
    ) -> PipelineResult:
        token = cancel_token or CancellationToken()
        transport = self._stage(STAGE_ROUTING, started, TransportMode.parse, mode)
        target = self._stage(
            STAGE_PROJECTION,
            started,
            lambda: scale_to_geo(
                polygon,
                center,
                radius_m,
                earth_radius_m=self.config.earth_radius_m,
            ),
        )
        synthesizer = RouteSynthesizer(self.provider, self.config)
        route = self._stage(
            STAGE_ROUTING,
            started,
            lambda: synthesizer.synthesize(target, transport, cancel_token=token),
        )
        accuracy = self._stage(
            STAGE_SCORING,
            started,
            lambda: score(
                target, route, radius_m, earth_radius_m=self.config.earth_radius_m
            ),
        )
        elapsed = time.monotonic() - started
        self._log.info(
            "Generated %s route: %.2f km, accuracy %.1f%% (%d waypoints, %.2fs)",
            transport.value,
            accuracy.length_m / 1000.0,
            accuracy.accuracy_percent,
            len(target),
            elapsed,
        )
        self._emit(
            "generation_succeeded",
            {
                "latency_s": elapsed,
                "accuracy_percent": accuracy.accuracy_percent,
                "length_m": accuracy.length_m,
                "mode": transport.value,
                "waypoints": len(target),
            },
        )
        return PipelineResult(
            shape=shape,
            polygon=polygon,
            target=target,
            route=route,
            accuracy=accuracy,
            mode=transport,
            radius_m=radius_m,
            elapsed_s=elapsed,
        )

    def _stage(
        self, stage: str, started: float, func: Callable[..., T], *args: Any
    ) -> T:
        try:
            return func(*args)
        except Exception as exc:
            elapsed = time.monotonic() - started
            self._log.error("Stage %s failed after %.2fs: %s", stage, elapsed, exc)
            self._emit(
                "generation_failed",
                {"stage": stage, "error": type(exc).__name__, "latency_s": elapsed},
            )
            raise PipelineError(stage, str(exc)) from exc

    def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        if self._event_hook is None:
            return
        try:
            self._event_hook(event, payload)
        except Exception as exc:  # pragma: no cover - hook errors never break a run
            self._log.debug("Event hook failed for %s: %s", event, exc, exc_info=True)


__all__ = [
    "EventHook",
    "PipelineResult",
    "STAGE_EXTRACTION",
    "STAGE_PROJECTION",
    "STAGE_ROUTING",
    "STAGE_SCORING",
    "ShapeRoutePipeline",
    "default_provider",
]
