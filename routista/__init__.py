"""Routista: turn an image outline into a routable GPS track."""

from .errors import (
    ExtractionError,
    InvalidInputError,
    PipelineError,
    RoutingError,
)
from .extraction import extract_shape
from .geo import scale_to_geo
from .gpx import parse_track_file, to_track_file
from .models import (
    AccuracyResult,
    GeoPoint,
    GeoPolygon,
    NormalizedPoint,
    NormalizedPolygon,
    RouteGeometry,
    RouteLeg,
    TransportMode,
)
from .pipeline import PipelineResult, ShapeRoutePipeline
from .routing import synthesize_route
from .scoring import score

__all__ = [
    "AccuracyResult",
    "ExtractionError",
    "GeoPoint",
    "GeoPolygon",
    "InvalidInputError",
    "NormalizedPoint",
    "NormalizedPolygon",
    "PipelineError",
    "PipelineResult",
    "RouteGeometry",
    "RouteLeg",
    "RoutingError",
    "ShapeRoutePipeline",
    "TransportMode",
    "extract_shape",
    "parse_track_file",
    "scale_to_geo",
    "score",
    "synthesize_route",
    "to_track_file",
]
