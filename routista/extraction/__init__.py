"""Contour extraction from raster images."""

from .extractor import ImageSource, extract_shape, extract_shape_detailed, load_image
from .simplify import simplify_with_budget
from .thresholds import foreground_mask, otsu_threshold
from .tracing import largest_region, trace_boundary

__all__ = [
    "ImageSource",
    "extract_shape",
    "extract_shape_detailed",
    "foreground_mask",
    "largest_region",
    "load_image",
    "otsu_threshold",
    "simplify_with_budget",
    "trace_boundary",
]
