"""Foreground/background separation for uploaded shape images."""

from __future__ import annotations

from dataclasses import dataclass
import logging

import numpy as np
from numpy.typing import NDArray

from ..config import (
    MIN_LIGHT_COVERAGE_FOR_INVERT,
    OTSU_DEFAULT_THRESHOLD,
    OTSU_MAX_THRESHOLD,
    OTSU_MIN_THRESHOLD,
)

LOGGER = logging.getLogger(__name__)

BoolGrid = NDArray[np.bool_]
FloatGrid = NDArray[np.float64]


@dataclass(slots=True)
class ForegroundMask:
    """Binary grid of shape pixels plus how it was derived."""

    mask: BoolGrid
    threshold: float
    inverted: bool

    @property
    def pixel_count(self) -> int:
        return int(self.mask.sum())


def luminance(rgba: NDArray[np.uint8]) -> FloatGrid:
    """Return the mean of the RGB channels for an ``(h, w, 4)`` array."""

    return rgba[..., :3].astype(float).mean(axis=2)


def otsu_threshold(values: NDArray[np.float64]) -> float:
    """Return the luminance cut maximising inter-class variance.

    Uniform inputs, and cuts outside the usable band, fall back to the
    configured default so a flat image never yields a spurious shape.
    """

    if values.size == 0:
        return float(OTSU_DEFAULT_THRESHOLD)
    bins = np.clip(values.astype(int), 0, 255)
    histogram = np.bincount(bins.ravel(), minlength=256).astype(float)
    total = histogram.sum()
    levels = np.arange(256, dtype=float)

    weight_bg = np.cumsum(histogram)
    weight_fg = total - weight_bg
    sum_bg = np.cumsum(histogram * levels)
    sum_total = sum_bg[-1]

    valid = (weight_bg > 0) & (weight_fg > 0)
    if not valid.any():
        return float(OTSU_DEFAULT_THRESHOLD)
    mean_bg = np.divide(sum_bg, weight_bg, out=np.zeros_like(sum_bg), where=valid)
    mean_fg = np.divide(
        sum_total - sum_bg, weight_fg, out=np.zeros_like(sum_bg), where=valid
    )
    variance = np.where(valid, weight_bg * weight_fg * (mean_bg - mean_fg) ** 2, 0.0)
    best = int(np.argmax(variance))
    if variance[best] <= 0:
        return float(OTSU_DEFAULT_THRESHOLD)
    # Levels <= best are the dark class; callers test ``lum < cut``.
    cut = best + 1
    if cut < OTSU_MIN_THRESHOLD or cut > OTSU_MAX_THRESHOLD:
        LOGGER.debug(
            "Otsu threshold %s outside [%s, %s]; using %s",
            cut,
            OTSU_MIN_THRESHOLD,
            OTSU_MAX_THRESHOLD,
            OTSU_DEFAULT_THRESHOLD,
        )
        return float(OTSU_DEFAULT_THRESHOLD)
    return float(cut)


def should_invert(
    lum: FloatGrid,
    opaque: BoolGrid,
    threshold: float,
    min_light_coverage: float = MIN_LIGHT_COVERAGE_FOR_INVERT,
) -> bool:
    """Return True when the shape looks light-on-dark rather than dark-on-light."""

    opaque_count = int(opaque.sum())
    if opaque_count == 0:
        return False
    dark = int((opaque & (lum < threshold)).sum())
    light = opaque_count - dark
    dark_ratio = dark / opaque_count
    light_coverage = light / lum.size
    inverted = dark_ratio > 0.5 and light_coverage > min_light_coverage
    LOGGER.debug(
        "Dark ratio %.1f%%, light coverage %.1f%%, invert=%s",
        dark_ratio * 100,
        light_coverage * 100,
        inverted,
    )
    return inverted


def foreground_mask(
    rgba: NDArray[np.uint8],
    *,
    threshold: float | None = None,
    alpha_threshold: int = 128,
) -> ForegroundMask:
    """Classify each pixel as shape (True) or background (False).

    Transparent pixels are always background. ``threshold`` fixes the
    luminance cut; ``None`` derives it with Otsu's method over opaque pixels.
    """

    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise ValueError("Expected an (h, w, 4) RGBA array")
    lum = luminance(rgba)
    opaque = rgba[..., 3] > alpha_threshold
    cut = float(threshold) if threshold is not None else otsu_threshold(lum[opaque])
    inverted = should_invert(lum, opaque, cut)
    if inverted:
        mask = opaque & (lum >= cut)
    else:
        mask = opaque & (lum < cut)
    return ForegroundMask(mask=mask, threshold=cut, inverted=inverted)


__all__ = [
    "ForegroundMask",
    "foreground_mask",
    "luminance",
    "otsu_threshold",
    "should_invert",
]
