"""Shape-fidelity scoring for a realised route.

Accuracy is vertex-anchored: for every target vertex we take the distance to
the nearest point on the route polyline (point-to-segment, so sparse route
sampling is not penalised), average those distances, and express the mean as
a fraction of the shape radius::

    accuracy = clamp(100 * (1 - mean_deviation / radius), 0, 100)

Known limitation: the metric is one-directional (target -> route). A route
that wanders off between two target vertices, but passes close to every
vertex, still scores highly. That is acceptable for judging whether the
drawn outline is recognisable, but it is not a general shape-similarity
measure.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from .config import EARTH_RADIUS_M
from .errors import InvalidInputError
from .geo import path_length_m, to_local_metres
from .models import AccuracyResult, GeoPoint, GeoPolygon, RouteGeometry

LOGGER = logging.getLogger(__name__)

MetricArray = NDArray[np.float64]


def score(
    target: GeoPolygon,
    route: RouteGeometry,
    radius_m: float,
    *,
    earth_radius_m: float = EARTH_RADIUS_M,
) -> AccuracyResult:
    """Return route length (haversine over route points) and accuracy percent."""

    if not isinstance(target, GeoPolygon) or len(target) == 0:
        raise InvalidInputError("score expects a non-empty GeoPolygon target")
    if not isinstance(route, RouteGeometry):
        raise InvalidInputError("score expects a RouteGeometry")
    if not math.isfinite(radius_m) or radius_m <= 0:
        raise InvalidInputError(f"radius_m must be positive, got {radius_m!r}")

    length = path_length_m(route.points, earth_radius_m=earth_radius_m)
    if len(route) < 2:
        LOGGER.info("Route has %d point(s); accuracy is 0", len(route))
        return AccuracyResult(length_m=length, accuracy_percent=0.0)

    deviations = route_deviations(target, route, earth_radius_m=earth_radius_m)
    mean_dev = float(np.mean(deviations))
    accuracy = 100.0 * (1.0 - mean_dev / radius_m)
    accuracy = min(100.0, max(0.0, accuracy))
    LOGGER.info(
        "Accuracy %.1f%% (mean deviation %.1fm, max %.1fm, radius %.0fm, length %.0fm)",
        accuracy,
        mean_dev,
        float(np.max(deviations)),
        radius_m,
        length,
    )
    return AccuracyResult(
        length_m=length,
        accuracy_percent=accuracy,
        mean_deviation_m=mean_dev,
        max_deviation_m=float(np.max(deviations)),
    )


def route_deviations(
    target: GeoPolygon | Sequence[GeoPoint],
    route: RouteGeometry,
    *,
    earth_radius_m: float = EARTH_RADIUS_M,
) -> MetricArray:
    """Distance (metres) from each target vertex to the nearest route segment."""

    target_points = list(target)
    if not target_points:
        return np.empty(0, dtype=float)
    if len(route) == 0:
        return np.full(len(target_points), np.inf)
    origin = target_points[0]
    target_xy = to_local_metres(target_points, origin, earth_radius_m=earth_radius_m)
    route_xy = to_local_metres(route.points, origin, earth_radius_m=earth_radius_m)
    if len(route_xy) == 1:
        return np.linalg.norm(target_xy - route_xy[0], axis=1)
    return point_to_polyline_distances(target_xy, route_xy)


def point_to_polyline_distances(points: MetricArray, line: MetricArray) -> MetricArray:
    """Minimum planar distance from each point to a polyline with >= 2 vertices."""

    starts = line[:-1]
    ends = line[1:]
    seg = ends - starts  # (S, 2)
    seg_len_sq = np.einsum("ij,ij->i", seg, seg)  # (S,)
    rel = points[:, None, :] - starts[None, :, :]  # (P, S, 2)
    dots = np.einsum("psk,sk->ps", rel, seg)
    t = np.divide(dots, seg_len_sq, out=np.zeros_like(dots), where=seg_len_sq > 0)
    t = np.clip(t, 0.0, 1.0)
    closest = starts[None, :, :] + t[:, :, None] * seg[None, :, :]
    distances = np.linalg.norm(points[:, None, :] - closest, axis=2)
    return distances.min(axis=1)


__all__ = ["point_to_polyline_distances", "route_deviations", "score"]
