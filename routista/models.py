"""Value types passed between pipeline stages.

Every type is an immutable, slotted dataclass that validates its invariants on
construction, so a stage can trust whatever it receives from the previous one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
from typing import Any, Dict, Iterable, Iterator, Sequence, Tuple

from .errors import InvalidInputError

LatLon = Tuple[float, float]


def _finite(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidInputError(f"{name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True, slots=True)
class NormalizedPoint:
    """Resolution-independent image position, origin top-left, both axes in [0, 1]."""

    x: float
    y: float

    def __post_init__(self) -> None:
        x = _finite(self.x, "x")
        y = _finite(self.y, "y")
        if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
            raise InvalidInputError(f"Normalized point out of range: ({x}, {y})")
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)

    @classmethod
    def clamped(cls, x: float, y: float) -> "NormalizedPoint":
        """Build a point, clamping each coordinate into [0, 1]."""

        return cls(
            min(1.0, max(0.0, _finite(x, "x"))),
            min(1.0, max(0.0, _finite(y, "y"))),
        )


@dataclass(frozen=True, slots=True)
class NormalizedPolygon:
    """Ordered boundary of an extracted shape."""

    points: Tuple[NormalizedPoint, ...]
    closed: bool = True

    def __post_init__(self) -> None:
        points = tuple(self.points)
        if len(points) < 3:
            raise InvalidInputError(
                f"A shape needs at least 3 points, got {len(points)}"
            )
        for point in points:
            if not isinstance(point, NormalizedPoint):
                raise InvalidInputError(f"Expected NormalizedPoint, got {point!r}")
        object.__setattr__(self, "points", points)

    @classmethod
    def from_pairs(
        cls, pairs: Iterable[Sequence[float]], *, closed: bool = True
    ) -> "NormalizedPolygon":
        return cls(tuple(NormalizedPoint(p[0], p[1]) for p in pairs), closed=closed)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[NormalizedPoint]:
        return iter(self.points)

    def __getitem__(self, index: int) -> NormalizedPoint:
        return self.points[index]

    def bounds(self) -> Tuple[float, float, float, float]:
        """Return ``(min_x, min_y, max_x, max_y)``."""

        xs = [p.x for p in self.points]
        ys = [p.y for p in self.points]
        return min(xs), min(ys), max(xs), max(ys)


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """WGS84 coordinate in decimal degrees."""

    lat: float
    lon: float

    def __post_init__(self) -> None:
        lat = _finite(self.lat, "lat")
        lon = _finite(self.lon, "lon")
        if not -90.0 <= lat <= 90.0:
            raise InvalidInputError(f"Latitude out of range: {lat}")
        if not -180.0 <= lon <= 180.0:
            raise InvalidInputError(f"Longitude out of range: {lon}")
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lon", lon)

    def as_tuple(self) -> LatLon:
        return (self.lat, self.lon)


def _geo_points(points: Iterable[Any]) -> Tuple[GeoPoint, ...]:
    converted = []
    for point in points:
        if isinstance(point, GeoPoint):
            converted.append(point)
        elif isinstance(point, (tuple, list)) and len(point) == 2:
            converted.append(GeoPoint(point[0], point[1]))
        else:
            raise InvalidInputError(f"Expected GeoPoint or (lat, lon), got {point!r}")
    return tuple(converted)


@dataclass(frozen=True, slots=True)
class GeoPolygon:
    """Ordered waypoints in geographic space, mirroring the source polygon."""

    points: Tuple[GeoPoint, ...]
    closed: bool = True

    def __post_init__(self) -> None:
        points = _geo_points(self.points)
        if len(points) < 2:
            raise InvalidInputError(
                f"A waypoint sequence needs at least 2 points, got {len(points)}"
            )
        object.__setattr__(self, "points", points)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[GeoPoint]:
        return iter(self.points)

    def __getitem__(self, index: int) -> GeoPoint:
        return self.points[index]

    def legs(self) -> list[Tuple[GeoPoint, GeoPoint]]:
        """Return consecutive waypoint pairs, plus the wrap-around pair when closed."""

        pairs = list(zip(self.points[:-1], self.points[1:]))
        if self.closed and len(self.points) > 2:
            pairs.append((self.points[-1], self.points[0]))
        return pairs


class TransportMode(str, Enum):
    WALKING = "foot-walking"
    CYCLING = "cycling-regular"
    DRIVING = "driving-car"

    @classmethod
    def parse(cls, value: "str | TransportMode") -> "TransportMode":
        if isinstance(value, TransportMode):
            return value
        text = str(value).strip()
        for mode in cls:
            if text == mode.value or text.upper() == mode.name:
                return mode
        raise InvalidInputError(f"Unknown transport mode: {value!r}")


@dataclass(frozen=True, slots=True)
class RouteLeg:
    """Provider answer for one origin -> destination pair."""

    index: int
    points: Tuple[GeoPoint, ...]
    distance_m: float
    duration_s: float = 0.0

    def __post_init__(self) -> None:
        points = _geo_points(self.points)
        if not points:
            raise InvalidInputError(f"Leg {self.index} has no geometry")
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "distance_m", _finite(self.distance_m, "distance_m"))
        object.__setattr__(self, "duration_s", _finite(self.duration_s, "duration_s"))


@dataclass(frozen=True, slots=True)
class RouteGeometry:
    """Realised path: leg geometries stitched in waypoint order."""

    points: Tuple[GeoPoint, ...] = ()
    distance_m: float = 0.0
    duration_s: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", _geo_points(self.points))

    @classmethod
    def from_legs(cls, legs: Sequence[RouteLeg]) -> "RouteGeometry":
        """Concatenate legs, dropping points that repeat their predecessor."""

        stitched: list[GeoPoint] = []
        for leg in legs:
            for point in leg.points:
                if stitched and stitched[-1] == point:
                    continue
                stitched.append(point)
        return cls(
            points=tuple(stitched),
            distance_m=sum(leg.distance_m for leg in legs),
            duration_s=sum(leg.duration_s for leg in legs),
        )

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[GeoPoint]:
        return iter(self.points)

    def latlon(self) -> list[LatLon]:
        return [p.as_tuple() for p in self.points]


@dataclass(frozen=True, slots=True)
class AccuracyResult:
    """Route length and shape fidelity for one run."""

    length_m: float
    accuracy_percent: float
    mean_deviation_m: float | None = None
    max_deviation_m: float | None = None


@dataclass(frozen=True, slots=True)
class ShapeExtraction:
    """Extracted polygon plus the diagnostics gathered while finding it."""

    polygon: NormalizedPolygon
    threshold: float
    inverted: bool
    component_count: int
    likely_noise: bool
    image_size: Tuple[int, int]
    metadata: Dict[str, Any] = field(default_factory=dict)


__all__ = [
    "AccuracyResult",
    "GeoPoint",
    "GeoPolygon",
    "LatLon",
    "NormalizedPoint",
    "NormalizedPolygon",
    "RouteGeometry",
    "RouteLeg",
    "ShapeExtraction",
    "TransportMode",
]
