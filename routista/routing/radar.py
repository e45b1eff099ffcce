"""Radar directions client: one HTTP request per route leg."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

import requests
from polyline import decode as polyline_decode
from requests import Session

from ..config import LEG_TIMEOUT_SECONDS, RADAR_BASE_URL, RADAR_GEOMETRY_FORMAT
from ..errors import (
    NoRouteFoundError,
    RoutingAuthError,
    RoutingError,
    RoutingRateLimitError,
    RoutingTimeoutError,
)
from ..models import GeoPoint, RouteLeg, TransportMode
from .rate_limiter import RateLimiter
from .session import get_default_session

LOGGER = logging.getLogger(__name__)

RequestsJSONDecodeError: Type[Exception]
if hasattr(requests.exceptions, "JSONDecodeError"):
    RequestsJSONDecodeError = requests.exceptions.JSONDecodeError
else:  # pragma: no cover - fallback for old requests versions
    RequestsJSONDecodeError = ValueError

MODE_TO_RADAR: Dict[TransportMode, str] = {
    TransportMode.WALKING: "foot",
    TransportMode.CYCLING: "bike",
    TransportMode.DRIVING: "car",
}

_POLYLINE_PRECISION = {"polyline": 5, "polyline5": 5, "polyline6": 6}


class RadarDirectionsClient:
    """Routes legs through ``GET /route/directions``.

    The transport mode is mapped to Radar's vocabulary and otherwise passed
    through untouched. Every failure is raised as a ``RoutingError`` subclass
    tagged with the leg index.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = RADAR_BASE_URL,
        geometry_format: str = RADAR_GEOMETRY_FORMAT,
        session: Session | None = None,
        limiter: RateLimiter | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("A Radar API key is required")
        if geometry_format not in ("linestring", *_POLYLINE_PRECISION):
            raise ValueError(f"Unsupported geometry format: {geometry_format}")
        self._api_key = api_key
        self._url = base_url.rstrip("/") + "/route/directions"
        self._geometry_format = geometry_format
        self._session = session or get_default_session()
        self._limiter = limiter or RateLimiter()

    def route_leg(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        mode: TransportMode,
        *,
        timeout: float = LEG_TIMEOUT_SECONDS,
        leg_index: int = 0,
    ) -> RouteLeg:
        params = {
            "locations": f"{origin.lat},{origin.lon}|{destination.lat},{destination.lon}",
            "mode": MODE_TO_RADAR[TransportMode.parse(mode)],
            "units": "metric",
            "geometry": self._geometry_format,
        }
        headers = {"Authorization": self._api_key}
        context = f"Leg {leg_index}"

        with self._limiter.slot() as outcome:
            try:
                LOGGER.debug("GET %s params=%s", self._url, params)
                response = self._session.get(
                    self._url, params=params, headers=headers, timeout=timeout
                )
            except requests.Timeout as exc:
                raise RoutingTimeoutError(
                    f"{context} timed out after {timeout:.1f}s", leg_index=leg_index
                ) from exc
            except requests.RequestException as exc:
                raise RoutingError(
                    f"{context} request failed: {exc}", leg_index=leg_index
                ) from exc
            outcome.record(response)

        _raise_for_status(response, context, leg_index)
        payload = _safe_json(response)
        if not isinstance(payload, dict):
            raise RoutingError(f"{context} returned a non-JSON body", leg_index=leg_index)
        return parse_route_payload(
            payload,
            leg_index=leg_index,
            geometry_format=self._geometry_format,
        )


def parse_route_payload(
    payload: Dict[str, Any],
    *,
    leg_index: int,
    geometry_format: str = "linestring",
) -> RouteLeg:
    """Build a ``RouteLeg`` from a directions response body."""

    routes = payload.get("routes") or []
    if not routes:
        raise NoRouteFoundError(f"No route found for leg {leg_index}", leg_index=leg_index)
    route = routes[0]
    try:
        points = _route_points(route.get("geometry"), geometry_format)
    except (ValueError, TypeError, IndexError) as exc:
        raise RoutingError(
            f"Leg {leg_index} returned invalid geometry: {exc}", leg_index=leg_index
        ) from exc
    if not points:
        raise NoRouteFoundError(
            f"Route for leg {leg_index} has no geometry", leg_index=leg_index
        )
    distance = _value(route.get("distance"))
    # Radar reports duration in minutes.
    duration = _value(route.get("duration")) * 60.0
    return RouteLeg(
        index=leg_index,
        points=tuple(points),
        distance_m=distance,
        duration_s=duration,
    )


def _route_points(geometry: Any, geometry_format: str) -> List[GeoPoint]:
    if isinstance(geometry, dict) and isinstance(geometry.get("coordinates"), list):
        # GeoJSON order is [lon, lat].
        return [GeoPoint(float(c[1]), float(c[0])) for c in geometry["coordinates"]]
    encoded = geometry.get("polyline") if isinstance(geometry, dict) else geometry
    if isinstance(encoded, str) and encoded:
        precision = _POLYLINE_PRECISION.get(geometry_format, 6)
        decoded = polyline_decode(encoded, precision)
        return [GeoPoint(float(lat), float(lon)) for lat, lon in decoded]
    return []


def _value(measure: Any) -> float:
    if isinstance(measure, dict):
        measure = measure.get("value")
    try:
        return float(measure or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _raise_for_status(
    response: requests.Response, context: str, leg_index: int
) -> None:
    status = response.status_code
    if status < 400:
        return
    detail = extract_error(response)

    def with_detail(message: str) -> str:
        return f"{message} | {detail}" if detail else message

    if status == 429:
        raise RoutingRateLimitError(
            with_detail(f"{context} rate limited (429)"), leg_index=leg_index
        )
    if status in (401, 403):
        raise RoutingAuthError(
            with_detail(f"{context} rejected by provider ({status})"),
            leg_index=leg_index,
        )
    if status == 404:
        raise NoRouteFoundError(
            with_detail(f"{context} has no route (404)"), leg_index=leg_index
        )
    raise RoutingError(
        with_detail(f"{context} request failed (status {status})"),
        leg_index=leg_index,
    )


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return a compact error string from a Radar error body, if present."""

    if resp is None:
        return None
    data = _safe_json(resp)
    if isinstance(data, dict):
        meta = data.get("meta")
        if isinstance(meta, dict) and meta.get("message"):
            return str(meta["message"])
        if data.get("message"):
            return str(data["message"])
        return None
    text = getattr(resp, "text", "")
    if not isinstance(text, str) or not text.strip():
        return None
    trimmed = text.strip()
    return (trimmed[:297] + "...") if len(trimmed) > 300 else trimmed


def _safe_json(resp: requests.Response) -> Optional[Any]:
    try:
        return resp.json()
    except (ValueError, RequestsJSONDecodeError) as exc:
        LOGGER.debug("Failed to decode JSON from %s: %s", getattr(resp, "url", "?"), exc)
        return None


__all__ = ["MODE_TO_RADAR", "RadarDirectionsClient", "extract_error", "parse_route_payload"]
