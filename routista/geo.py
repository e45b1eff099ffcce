"""Short-range geographic helpers: shape projection, haversine, local planes.

Everything here uses a spherical Earth and an equirectangular approximation,
which is accurate to well under a metre for the few-kilometre radii the
product works with. No ellipsoidal correction is applied.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np
from numpy.typing import NDArray

from .config import EARTH_RADIUS_M
from .errors import InvalidInputError
from .models import GeoPoint, GeoPolygon, LatLon, NormalizedPolygon

MetricArray = NDArray[np.float64]


def scale_to_geo(
    polygon: NormalizedPolygon,
    center: GeoPoint,
    radius_m: float,
    *,
    earth_radius_m: float = EARTH_RADIUS_M,
) -> GeoPolygon:
    """Project a normalized shape onto the map around ``center``.

    The polygon's bounding box is centred on ``center`` and scaled so its
    longer side spans ``2 * radius_m``; the shorter side keeps the shape's
    aspect ratio. Image y grows downwards, so it is flipped to point north.
    Point order and closure are preserved. Near a pole, points that would
    fall beyond it are pinned to latitude +/-90, which distorts the shape
    but never fails.
    """

    if not isinstance(polygon, NormalizedPolygon):
        raise InvalidInputError("scale_to_geo expects a NormalizedPolygon")
    if not isinstance(center, GeoPoint):
        center = GeoPoint(*center)
    if not math.isfinite(radius_m) or radius_m <= 0:
        raise InvalidInputError(f"radius_m must be positive, got {radius_m!r}")

    min_x, min_y, max_x, max_y = polygon.bounds()
    mid_x = (min_x + max_x) / 2.0
    mid_y = (min_y + max_y) / 2.0
    span = max(max_x - min_x, max_y - min_y)
    metres_per_unit = (2.0 * radius_m / span) if span > 0 else 0.0

    points = [
        offset_point(
            center,
            east_m=(p.x - mid_x) * metres_per_unit,
            north_m=(mid_y - p.y) * metres_per_unit,
            earth_radius_m=earth_radius_m,
        )
        for p in polygon
    ]
    return GeoPolygon(tuple(points), closed=polygon.closed)


def offset_point(
    origin: GeoPoint,
    *,
    east_m: float,
    north_m: float,
    earth_radius_m: float = EARTH_RADIUS_M,
) -> GeoPoint:
    """Move ``origin`` by a local metre offset (equirectangular)."""

    lat_rad = math.radians(origin.lat)
    d_lat = math.degrees(north_m / earth_radius_m)
    d_lon = math.degrees(east_m / (earth_radius_m * math.cos(lat_rad)))
    lon = origin.lon + d_lon
    if lon > 180.0 or lon < -180.0:
        lon = ((lon + 180.0) % 360.0) - 180.0
    # Offsets past a pole are pinned to it rather than rejected.
    lat = min(90.0, max(-90.0, origin.lat + d_lat))
    return GeoPoint(lat, lon)


def to_local_metres(
    points: Iterable[GeoPoint | LatLon],
    origin: GeoPoint,
    *,
    earth_radius_m: float = EARTH_RADIUS_M,
) -> MetricArray:
    """Return an ``(n, 2)`` array of (east, north) metres relative to ``origin``."""

    latlon = np.asarray([_latlon(p) for p in points], dtype=float)
    if latlon.size == 0:
        return np.empty((0, 2), dtype=float)
    cos_lat = math.cos(math.radians(origin.lat))
    d_lon = latlon[:, 1] - origin.lon
    # Keep offsets continuous across the antimeridian.
    d_lon = (d_lon + 180.0) % 360.0 - 180.0
    east = np.radians(d_lon) * earth_radius_m * cos_lat
    north = np.radians(latlon[:, 0] - origin.lat) * earth_radius_m
    return np.column_stack((east, north))


def haversine_m(
    first: GeoPoint | LatLon,
    second: GeoPoint | LatLon,
    *,
    earth_radius_m: float = EARTH_RADIUS_M,
) -> float:
    """Great-circle distance in metres."""

    lat1, lon1 = _latlon(first)
    lat2, lon2 = _latlon(second)
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    sin_half_lat = math.sin((lat2_rad - lat1_rad) / 2.0)
    sin_half_lon = math.sin(math.radians(lon2 - lon1) / 2.0)
    a = sin_half_lat**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * sin_half_lon**2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return earth_radius_m * c


def path_length_m(
    points: Sequence[GeoPoint | LatLon],
    *,
    earth_radius_m: float = EARTH_RADIUS_M,
) -> float:
    """Sum of haversine distances between consecutive points."""

    total = 0.0
    for previous, current in zip(points[:-1], points[1:]):
        total += haversine_m(previous, current, earth_radius_m=earth_radius_m)
    return total


def _latlon(point: GeoPoint | LatLon) -> LatLon:
    if isinstance(point, GeoPoint):
        return point.lat, point.lon
    return float(point[0]), float(point[1])


__all__ = [
    "haversine_m",
    "offset_point",
    "path_length_m",
    "scale_to_geo",
    "to_local_metres",
]
