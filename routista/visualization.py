"""Interactive map preview of a target shape and its realised route."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import folium  # Using folium to build an interactive Leaflet map.
import numpy as np

from .models import GeoPolygon, LatLon, RouteGeometry
from .scoring import route_deviations

PathLike = Union[str, Path]

_ROUTE_COLOR = "#2c7bb6"
_TARGET_COLOR = "#1a9641"
_DIVERGENCE_COLOR = "#d73027"


@dataclass(slots=True)
class DeviationSummary:
    """The target vertex furthest from the realised route."""

    index: int
    offset_m: float
    coordinate: LatLon


def worst_deviation(
    target: GeoPolygon, deviations: Sequence[float]
) -> Optional[DeviationSummary]:
    """Return the largest finite deviation, or ``None`` when there is none."""

    values = np.asarray(deviations, dtype=float)
    if values.size == 0 or values.size != len(target):
        return None
    masked = np.where(np.isfinite(values), values, -np.inf)
    index = int(np.argmax(masked))
    offset = float(masked[index])
    if not np.isfinite(offset):
        return None
    return DeviationSummary(
        index=index, offset_m=offset, coordinate=target[index].as_tuple()
    )


def create_route_map(
    target: GeoPolygon,
    route: RouteGeometry,
    *,
    deviations: Optional[Sequence[float]] = None,
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Draw the target outline (dashed) under the routed path.

    Args:
        target: Projected shape the route was asked to follow.
        route: Stitched route geometry.
        deviations: Per-vertex distances from :func:`route_deviations`;
            computed when omitted.
        output_html_path: Optional path to persist the map as HTML.

    Returns:
        A :class:`folium.Map` with both layers and the worst vertex marked.
    """

    if deviations is None:
        deviations = route_deviations(target, route) if len(route) else []
    worst = worst_deviation(target, deviations)

    target_line: List[LatLon] = [p.as_tuple() for p in target]
    if target.closed:
        target_line.append(target_line[0])
    lats = [lat for lat, _ in target_line]
    lons = [lon for _, lon in target_line]
    map_center = (sum(lats) / len(lats), sum(lons) / len(lons))

    folium_map = folium.Map(location=map_center, zoom_start=15, control_scale=True)
    folium.PolyLine(
        target_line,
        color=_TARGET_COLOR,
        weight=3,
        opacity=0.8,
        dash_array="6 8",
        tooltip="Target shape",
    ).add_to(folium_map)
    if len(route) >= 2:
        folium.PolyLine(
            route.latlon(),
            color=_ROUTE_COLOR,
            weight=5,
            opacity=0.7,
            tooltip=f"Route ({route.distance_m / 1000.0:.2f} km)",
        ).add_to(folium_map)

    if worst is not None:
        popup = folium.Popup(
            html=(
                f"<strong>Max deviation:</strong> {worst.offset_m:.1f} m "
                f"(vertex {worst.index})"
            ),
            max_width=300,
        )
        folium.CircleMarker(
            location=worst.coordinate,
            radius=7,
            color=_DIVERGENCE_COLOR,
            fill=True,
            fill_color=_DIVERGENCE_COLOR,
            tooltip="Highest deviation",
            popup=popup,
        ).add_to(folium_map)

    folium_map.fit_bounds([[min(lats), min(lons)], [max(lats), max(lons)]])

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


__all__ = ["DeviationSummary", "create_route_map", "worst_deviation"]
