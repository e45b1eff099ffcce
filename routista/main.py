"""Command-line entry point: turn an image into a GPX route.

Usage examples:

    # Heart-shaped walk of roughly 5 km around central London
    python -m routista heart.png --lat 51.505 --lon -0.09 --radius 1500

    # Cycling route, also writing an HTML map preview
    python -m routista star.png --lat 48.8566 --lon 2.3522 --radius 3000 \
        --mode cycling-regular --output star.gpx --map star.html

``RADAR_API_KEY`` (environment or ``.env``) selects live routing; without it
legs are straight lines, which is handy for checking the extracted shape.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import Sequence

from .config import PipelineConfig
from .errors import InvalidInputError, PipelineError
from .gpx import write_track_file
from .models import GeoPoint, TransportMode
from .pipeline import STAGE_EXTRACTION, STAGE_ROUTING, ShapeRoutePipeline
from .visualization import create_route_map

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_EXTRACTION = 2
EXIT_ROUTING = 3

LOGGER = logging.getLogger("routista")


def _setup_logging(level: str) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a GPX route that follows the outline of an image"
    )
    parser.add_argument("image", type=Path, help="Image containing the shape")
    parser.add_argument("--lat", type=float, required=True, help="Centre latitude")
    parser.add_argument("--lon", type=float, required=True, help="Centre longitude")
    parser.add_argument(
        "--radius",
        type=float,
        default=1000.0,
        help="Half the longer side of the shape, in metres (default: 1000)",
    )
    parser.add_argument(
        "--mode",
        default=TransportMode.WALKING.value,
        choices=[m.value for m in TransportMode],
        help="Transport mode passed to the routing provider",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="GPX output path (default: <image name>.gpx next to the image)",
    )
    parser.add_argument("--map", type=Path, help="Optional HTML map preview path")
    parser.add_argument(
        "--api-key",
        help="Radar publishable key (overrides RADAR_API_KEY)",
    )
    parser.add_argument(
        "--max-points",
        type=int,
        help="Cap on shape vertices, i.e. routed legs",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Python logging level",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for ``python -m routista``; returns the process exit code."""

    args = _build_parser().parse_args(argv)
    _setup_logging(args.log_level)

    config = PipelineConfig.from_env()
    if args.api_key:
        config = config.with_overrides(radar_api_key=args.api_key)
    if args.max_points:
        config = config.with_overrides(max_simplified_points=args.max_points)

    try:
        center = GeoPoint(args.lat, args.lon)
    except InvalidInputError as exc:
        LOGGER.error("Invalid centre: %s", exc)
        return EXIT_FAILURE

    pipeline = ShapeRoutePipeline(config=config)
    try:
        result = pipeline.run(args.image, center, args.radius, args.mode)
    except PipelineError as exc:
        if exc.stage == STAGE_EXTRACTION:
            LOGGER.error("%s. Try a different image.", exc)
            return EXIT_EXTRACTION
        if exc.stage == STAGE_ROUTING:
            LOGGER.error("%s. Try again, or pick a smaller radius.", exc)
            return EXIT_ROUTING
        LOGGER.error("%s", exc)
        return EXIT_FAILURE

    output_path = args.output or args.image.with_suffix(".gpx")
    write_track_file(result.route, output_path)
    if args.map:
        create_route_map(result.target, result.route, output_html_path=args.map)
        LOGGER.info("Map preview written to %s", args.map)

    print(
        f"Route: {result.accuracy.length_m / 1000.0:.2f} km, "
        f"accuracy {result.accuracy.accuracy_percent:.1f}% -> {output_path}"
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
