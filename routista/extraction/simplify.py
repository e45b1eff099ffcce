"""Douglas-Peucker simplification of traced contours under a point budget."""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from shapely.geometry import LineString

PixelArray = NDArray[np.float64]


def simplify_ring(
    ring: Iterable[Sequence[float]], tolerance_px: float
) -> PixelArray:
    """Simplify a closed ring (first point not repeated) while keeping its start."""

    array = _as_pixel_array(ring)
    if len(array) < 4 or tolerance_px <= 0:
        return array
    closed = np.vstack((array, array[:1]))
    simplified = LineString(closed).simplify(tolerance_px, preserve_topology=False)
    coords = _as_pixel_array(simplified.coords)
    if len(coords) > 1 and np.array_equal(coords[0], coords[-1]):
        coords = coords[:-1]
    return coords


def simplify_with_budget(
    ring: Iterable[Sequence[float]],
    tolerance_px: float,
    max_points: int,
) -> Tuple[PixelArray, float, bool]:
    """Simplify a ring while capping the output cardinality.

    Returns the simplified ring, the tolerance finally used, and whether the
    budget forced anything beyond the requested tolerance.
    """

    array = _as_pixel_array(ring)
    effective_tolerance = max(tolerance_px, 0.0)
    simplified = simplify_ring(array, effective_tolerance)
    adjusted = False
    if len(simplified) <= max_points:
        return simplified, effective_tolerance, adjusted

    # Increase tolerance iteratively to reduce the point count before decimating.
    attempts = 0
    while len(simplified) > max_points and attempts < 8:
        effective_tolerance = (
            effective_tolerance * 1.5 if effective_tolerance > 0 else 1.0
        )
        simplified = simplify_ring(array, effective_tolerance)
        attempts += 1
        adjusted = True

    if len(simplified) > max_points:
        simplified = decimate_ring(simplified, max_points)
        adjusted = True

    return simplified, effective_tolerance, adjusted


def decimate_ring(points: PixelArray, max_points: int) -> PixelArray:
    """Evenly down-sample a ring, keeping its first point."""

    max_points = max(3, max_points)
    count = points.shape[0]
    if count <= max_points:
        return points
    indices = np.linspace(0, count, num=max_points, endpoint=False).astype(int)
    return points[indices]


def _as_pixel_array(points: Iterable[Sequence[float]]) -> PixelArray:
    array = np.asarray(list(points), dtype=float)
    if array.size == 0:
        return np.empty((0, 2), dtype=float)
    if array.ndim != 2 or array.shape[1] != 2:
        raise ValueError("Expected a sequence of 2D coordinates")
    return array


__all__ = ["decimate_ring", "simplify_ring", "simplify_with_budget"]
