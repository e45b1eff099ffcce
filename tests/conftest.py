"""Global pytest fixtures & helpers.

Adds project root to path and provides image factories and a scripted
routing provider shared by the extraction, routing and pipeline tests.
"""
from __future__ import annotations

import os
import sys
import threading
import time
from io import BytesIO

import pytest
from PIL import Image, ImageDraw

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from routista.config import PipelineConfig
from routista.geo import haversine_m
from routista.models import GeoPoint, RouteLeg


# --- Factory helpers -------------------------------------------------
def make_rect_image(
    size=(100, 100),
    box=(20, 30, 79, 69),
    fg=(0, 0, 0, 255),
    bg=(255, 255, 255, 255),
):
    """Return an RGBA image with one filled rectangle (inclusive box)."""
    image = Image.new("RGBA", size, bg)
    ImageDraw.Draw(image).rectangle(box, fill=fg)
    return image


def png_bytes(image):
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class ScriptedProvider:
    """Fake provider: straight-line legs, optional per-leg failures and delays."""

    def __init__(self, failures=None, delays=None, extra_points=0):
        self.failures = dict(failures or {})
        self.delays = dict(delays or {})
        self.extra_points = extra_points
        self.calls = []
        self._lock = threading.Lock()

    def route_leg(self, origin, destination, mode, *, timeout, leg_index=0):
        with self._lock:
            self.calls.append((leg_index, origin, destination, mode))
        delay = self.delays.get(leg_index)
        if delay:
            time.sleep(delay)
        failure = self.failures.get(leg_index)
        if failure is not None:
            raise failure
        points = [origin]
        for step in range(1, self.extra_points + 1):
            frac = step / (self.extra_points + 1)
            points.append(
                GeoPoint(
                    origin.lat + (destination.lat - origin.lat) * frac,
                    origin.lon + (destination.lon - origin.lon) * frac,
                )
            )
        points.append(destination)
        return RouteLeg(
            index=leg_index,
            points=tuple(points),
            distance_m=haversine_m(origin, destination),
        )


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def config():
    return PipelineConfig(
        radar_api_key="",
        route_cache_enabled=False,
        background_luminance_threshold=None,
        leg_timeout_s=2.0,
        max_parallel_legs=4,
    )


@pytest.fixture
def rect_image():
    return make_rect_image()


@pytest.fixture
def scripted_provider():
    return ScriptedProvider()


@pytest.fixture
def square_waypoints():
    """Roughly 10 m square near the equator, as (lat, lon) pairs."""
    d = 10.0 / 111_195.0
    return [(0.0, 0.0), (0.0, d), (d, d), (d, 0.0)]
