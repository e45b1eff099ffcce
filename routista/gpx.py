"""GPX 1.1 export and re-import of route geometry.

Coordinates are written in positional notation (GPX types them as
``xsd:decimal``, which has no exponent form) using the shortest digit string
that parses back to the identical double, so ``parse_track_file`` reproduces
the exported points exactly.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Union
from xml.etree.ElementTree import ParseError

from defusedxml import ElementTree as ET
from defusedxml.common import DefusedXmlException
import numpy as np

from .config import GPX_CREATOR, GPX_TRACK_NAME
from .errors import InvalidInputError
from .models import GeoPoint, RouteGeometry

LOGGER = logging.getLogger(__name__)

GPX_NS = {"g": "http://www.topografix.com/GPX/1/1"}

PathLike = Union[str, Path]


def to_track_file(
    route: RouteGeometry,
    *,
    name: str = GPX_TRACK_NAME,
    creator: str = GPX_CREATOR,
) -> str:
    """Render ``route`` as a GPX document with one track and one segment.

    An empty route still yields a valid document with an empty ``trkseg``.
    """

    gpx_lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<gpx version="1.1" creator="{_escape_xml(creator)}"',
        f'     xmlns="{GPX_NS["g"]}"',
        '     xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"',
        '     xsi:schemaLocation="http://www.topografix.com/GPX/1/1 '
        'http://www.topografix.com/GPX/1/1/gpx.xsd">',
        "  <trk>",
        f"    <name>{_escape_xml(name)}</name>",
        "    <trkseg>",
    ]
    for point in route.points:
        lat, lon = _decimal(point.lat), _decimal(point.lon)
        gpx_lines.append(f'      <trkpt lat="{lat}" lon="{lon}"></trkpt>')
    gpx_lines.extend(
        [
            "    </trkseg>",
            "  </trk>",
            "</gpx>",
        ]
    )
    return "\n".join(gpx_lines) + "\n"


def parse_track_file(text: Union[str, bytes]) -> RouteGeometry:
    """Read the track points of the first track segment, in order."""

    try:
        root = ET.fromstring(text)
    except (ParseError, DefusedXmlException) as exc:
        raise InvalidInputError(f"Invalid GPX document: {exc}") from exc

    trkseg = root.find(".//g:trk/g:trkseg", GPX_NS)
    if trkseg is None:
        raise InvalidInputError("GPX document is missing a <trkseg> block")
    points: List[GeoPoint] = []
    for trkpt in trkseg.findall("g:trkpt", GPX_NS):
        lat, lon = trkpt.get("lat"), trkpt.get("lon")
        if lat is None or lon is None:
            raise InvalidInputError("GPX track point without lat/lon")
        try:
            points.append(GeoPoint(float(lat), float(lon)))
        except ValueError as exc:
            raise InvalidInputError(f"Bad GPX coordinate ({lat}, {lon})") from exc
    return RouteGeometry(points=tuple(points))


def write_track_file(route: RouteGeometry, path: PathLike, **kwargs: str) -> Path:
    """Write ``route`` as GPX to ``path`` and return the resolved path."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(to_track_file(route, **kwargs))
    LOGGER.info("GPX written to %s (%d points)", output_path, len(route))
    return output_path


def _decimal(value: float) -> str:
    return np.format_float_positional(value, unique=True, trim="-")


def _escape_xml(text: str) -> str:
    """Escape special XML characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


__all__ = ["GPX_NS", "parse_track_file", "to_track_file", "write_track_file"]
