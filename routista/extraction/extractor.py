"""Turn an uploaded raster image into a normalized shape polygon.

The pipeline is: decode -> downscale -> threshold -> keep the largest
connected region -> trace its outer boundary -> simplify -> normalize.
Only the largest region is used; smaller islands are dropped silently.
"""

from __future__ import annotations

from io import BytesIO
import logging
from pathlib import Path
from typing import BinaryIO, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..config import NOISE_MAX_SMALL_REGIONS, NOISE_SMALL_REGION_PIXELS, PipelineConfig
from ..errors import ExtractionError, InvalidInputError
from ..models import NormalizedPoint, NormalizedPolygon, ShapeExtraction
from .simplify import simplify_with_budget
from .thresholds import foreground_mask
from .tracing import largest_region, trace_boundary

LOGGER = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, BinaryIO, Image.Image]


def load_image(source: ImageSource, max_dimension: int) -> Image.Image:
    """Decode ``source`` to RGBA, downscaled so neither side exceeds ``max_dimension``."""

    try:
        if isinstance(source, Image.Image):
            image = source.copy()
        elif isinstance(source, (bytes, bytearray)):
            image = Image.open(BytesIO(bytes(source)))
        else:
            image = Image.open(source)
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ExtractionError(f"Unable to decode image: {exc}") from exc

    image = image.convert("RGBA")
    if max_dimension > 0 and max(image.size) > max_dimension:
        original = image.size
        image.thumbnail((max_dimension, max_dimension))
        LOGGER.debug("Downscaled image %s -> %s", original, image.size)
    return image


def extract_shape(
    image: ImageSource, config: PipelineConfig | None = None
) -> NormalizedPolygon:
    """Return the normalized outline of the largest shape in ``image``.

    Raises:
        ExtractionError: when the image is blank, fully transparent, cannot be
            decoded, or holds no region large enough to outline.
    """

    return extract_shape_detailed(image, config).polygon


def extract_shape_detailed(
    image: ImageSource, config: PipelineConfig | None = None
) -> ShapeExtraction:
    """Like :func:`extract_shape` but also return threshold and noise diagnostics."""

    cfg = config or PipelineConfig.from_env()
    decoded = load_image(image, cfg.max_image_dimension)
    width, height = decoded.size
    if width < 2 or height < 2:
        raise ExtractionError(f"Image too small to outline ({width}x{height})")
    rgba = np.asarray(decoded, dtype=np.uint8)

    fg = foreground_mask(
        rgba,
        threshold=cfg.background_luminance_threshold,
        alpha_threshold=cfg.alpha_threshold,
    )
    LOGGER.info(
        "Threshold %.0f, inverted=%s, foreground pixels=%d",
        fg.threshold,
        fg.inverted,
        fg.pixel_count,
    )
    if fg.pixel_count == 0:
        raise ExtractionError("No shape found in image")

    region = largest_region(fg.mask)
    if region is None or region.area < cfg.min_region_pixels:
        raise ExtractionError(
            "No shape large enough to outline "
            f"(largest region {0 if region is None else region.area} px)"
        )
    if region.component_count > 1:
        LOGGER.info(
            "Using largest of %d regions (%d px); smaller regions discarded",
            region.component_count,
            region.area,
        )

    ring = trace_boundary(region.mask)
    simplified, tolerance, capped = simplify_with_budget(
        ring, cfg.simplify_tolerance_px, cfg.max_simplified_points
    )
    LOGGER.info(
        "Contour %d -> %d points (tolerance %.2fpx%s)",
        len(ring),
        len(simplified),
        tolerance,
        ", capped" if capped else "",
    )

    points = _normalize(simplified, width, height)
    if len(set(points)) < 3:
        raise ExtractionError("Shape outline collapsed to fewer than 3 points")
    try:
        polygon = NormalizedPolygon(tuple(points), closed=True)
    except InvalidInputError as exc:
        raise ExtractionError(str(exc)) from exc

    return ShapeExtraction(
        polygon=polygon,
        threshold=fg.threshold,
        inverted=fg.inverted,
        component_count=region.component_count,
        likely_noise=_looks_like_noise(region.component_sizes),
        image_size=(width, height),
        metadata={
            "region_area_px": region.area,
            "boundary_points": len(ring),
            "simplify_tolerance_px": tolerance,
            "simplify_capped": capped,
        },
    )


def _normalize(points: np.ndarray, width: int, height: int) -> list[NormalizedPoint]:
    """Map pixel coordinates to [0, 1] using pixel centres."""

    normalized: list[NormalizedPoint] = []
    for x, y in points:
        point = NormalizedPoint.clamped((x + 0.5) / width, (y + 0.5) / height)
        if normalized and normalized[-1] == point:
            continue
        normalized.append(point)
    return normalized


def _looks_like_noise(sizes: list[int]) -> bool:
    """Many small regions and no large one usually means speckle, not a shape."""

    small = [s for s in sizes if s < NOISE_SMALL_REGION_PIXELS]
    has_large = any(s >= NOISE_SMALL_REGION_PIXELS for s in sizes)
    return not has_large and len(small) > NOISE_MAX_SMALL_REGIONS


__all__ = ["ImageSource", "extract_shape", "extract_shape_detailed", "load_image"]
