"""Contour extraction: thresholding, region selection, tracing, simplification."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image, ImageDraw

from routista.errors import ExtractionError
from routista.extraction import (
    extract_shape,
    extract_shape_detailed,
    foreground_mask,
    largest_region,
    otsu_threshold,
    simplify_with_budget,
    trace_boundary,
)
from routista.extraction.simplify import decimate_ring

from conftest import make_rect_image, png_bytes


def _rgba(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("RGBA"), dtype=np.uint8)


# --- thresholds ------------------------------------------------------
def test_otsu_splits_bimodal_values():
    values = np.concatenate([np.full(100, 50.0), np.full(100, 200.0)])
    cut = otsu_threshold(values)
    assert 50 < cut <= 200


def test_otsu_falls_back_for_uniform_or_empty_input():
    assert otsu_threshold(np.full(50, 255.0)) == 128.0
    assert otsu_threshold(np.empty(0)) == 128.0


def test_transparent_pixels_are_background():
    image = Image.new("RGBA", (10, 10), (0, 0, 0, 0))
    ImageDraw.Draw(image).rectangle((2, 2, 5, 5), fill=(0, 0, 0, 255))
    fg = foreground_mask(_rgba(image))
    assert fg.pixel_count == 16
    assert not fg.mask[0, 0]


def test_light_shape_on_dark_background_is_inverted():
    image = make_rect_image(fg=(255, 255, 255, 255), bg=(0, 0, 0, 255))
    fg = foreground_mask(_rgba(image))
    assert fg.inverted
    assert fg.pixel_count == 60 * 40


def test_fixed_threshold_is_respected():
    image = make_rect_image(fg=(100, 100, 100, 255))
    assert foreground_mask(_rgba(image), threshold=90).pixel_count == 0
    assert foreground_mask(_rgba(image), threshold=110).pixel_count == 60 * 40


# --- regions and tracing ---------------------------------------------
def test_largest_region_keeps_biggest_component():
    mask = np.zeros((20, 20), dtype=bool)
    mask[1:3, 1:3] = True
    mask[8:18, 8:18] = True
    region = largest_region(mask)
    assert region is not None
    assert region.area == 100
    assert region.component_count == 2
    assert not region.mask[1, 1]


def test_largest_region_empty_mask():
    assert largest_region(np.zeros((5, 5), dtype=bool)) is None


def test_diagonal_pixels_are_one_region():
    mask = np.eye(4, dtype=bool)
    region = largest_region(mask)
    assert region is not None and region.component_count == 1


def test_trace_boundary_square_is_clockwise_from_top_left():
    mask = np.zeros((5, 5), dtype=bool)
    mask[0:3, 0:3] = True
    assert trace_boundary(mask) == [
        (0, 0),
        (1, 0),
        (2, 0),
        (2, 1),
        (2, 2),
        (1, 2),
        (0, 2),
        (0, 1),
    ]


def test_trace_boundary_terminates_on_one_pixel_line():
    mask = np.zeros((3, 5), dtype=bool)
    mask[1, 1:4] = True
    ring = trace_boundary(mask)
    assert set(ring) == {(1, 1), (2, 1), (3, 1)}


def test_trace_boundary_empty():
    assert trace_boundary(np.zeros((3, 3), dtype=bool)) == []


# --- simplification ----------------------------------------------------
def test_simplify_collapses_rectangle_edges():
    mask = np.zeros((12, 12), dtype=bool)
    mask[1:11, 1:11] = True
    ring = trace_boundary(mask)
    simplified, tolerance, adjusted = simplify_with_budget(ring, 1.0, 60)
    assert len(simplified) == 4
    assert tolerance == 1.0
    assert not adjusted


def test_simplify_enforces_point_budget():
    angles = np.linspace(0, 2 * np.pi, 400, endpoint=False)
    ring = np.column_stack((100 + 80 * np.cos(angles), 100 + 80 * np.sin(angles)))
    simplified, _, adjusted = simplify_with_budget(ring, 0.01, 10)
    assert 3 <= len(simplified) <= 10
    assert adjusted


def test_decimate_keeps_first_point():
    ring = np.arange(40, dtype=float).reshape(20, 2)
    out = decimate_ring(ring, 5)
    assert len(out) == 5
    assert np.array_equal(out[0], ring[0])


# --- end to end --------------------------------------------------------
def test_extract_rectangle_bounds(rect_image, config):
    polygon = extract_shape(rect_image, config)
    assert polygon.closed
    assert len(polygon) >= 4
    min_x, min_y, max_x, max_y = polygon.bounds()
    assert min_x == pytest.approx(0.205)
    assert max_x == pytest.approx(0.795)
    assert min_y == pytest.approx(0.305)
    assert max_y == pytest.approx(0.695)


def test_extract_accepts_png_bytes_and_paths(rect_image, config, tmp_path):
    from_bytes = extract_shape(png_bytes(rect_image), config)
    path = tmp_path / "shape.png"
    rect_image.save(path)
    from_path = extract_shape(path, config)
    assert from_bytes == from_path


def test_blank_image_raises(config):
    blank = Image.new("RGBA", (50, 50), (255, 255, 255, 255))
    with pytest.raises(ExtractionError):
        extract_shape(blank, config)


def test_fully_transparent_image_raises(config):
    clear = Image.new("RGBA", (50, 50), (0, 0, 0, 0))
    with pytest.raises(ExtractionError):
        extract_shape(clear, config)


def test_undecodable_bytes_raise(config):
    with pytest.raises(ExtractionError):
        extract_shape(b"definitely not a png", config)


def test_tiny_speck_is_not_a_shape(config):
    image = make_rect_image(box=(10, 10, 11, 11))
    with pytest.raises(ExtractionError):
        extract_shape(image, config)


def test_full_frame_shape_is_clamped(config):
    image = Image.new("RGBA", (40, 40), (0, 0, 0, 255))
    polygon = extract_shape(image, config)
    for point in polygon:
        assert 0.0 <= point.x <= 1.0
        assert 0.0 <= point.y <= 1.0


def test_only_largest_shape_is_outlined(config):
    image = make_rect_image(box=(60, 60, 94, 94))
    ImageDraw.Draw(image).rectangle((5, 5, 12, 12), fill=(0, 0, 0, 255))
    shape = extract_shape_detailed(image, config)
    assert shape.component_count == 2
    min_x, min_y, _, _ = shape.polygon.bounds()
    assert min_x > 0.5 and min_y > 0.5


def test_point_cap_is_applied(config):
    image = Image.new("RGBA", (300, 300), (255, 255, 255, 255))
    ImageDraw.Draw(image).ellipse((60, 60, 240, 240), fill=(0, 0, 0, 255))
    capped = config.with_overrides(simplify_tolerance_px=0.1, max_simplified_points=8)
    shape = extract_shape_detailed(image, capped)
    assert 3 <= len(shape.polygon) <= 8
    assert shape.metadata["simplify_capped"]


def test_large_images_are_downscaled(config):
    image = make_rect_image(size=(1600, 1200), box=(400, 300, 1199, 899))
    shape = extract_shape_detailed(image, config.with_overrides(max_image_dimension=400))
    assert shape.image_size == (400, 300)


def test_speckled_image_is_flagged_as_noise(config):
    image = Image.new("RGBA", (100, 100), (255, 255, 255, 255))
    draw = ImageDraw.Draw(image)
    for offset in range(0, 100, 20):
        draw.rectangle((offset, offset, offset + 4, offset + 4), fill=(0, 0, 0, 255))
    shape = extract_shape_detailed(image, config)
    assert shape.component_count == 5
    assert shape.likely_noise
