"""Central configuration for the shape-to-route pipeline.

Module-level values are read once from environment variables (optionally via
a local `.env`). Components never read them directly; they receive a
`PipelineConfig` built from these defaults so tests can override values
without patching globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import importlib
import os
from typing import Any


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _env_optional_float(key: str) -> float | None:
    value = os.getenv(key)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        return None


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------------
# Mean Earth radius (metres) used by the projector and haversine distances.
EARTH_RADIUS_M = _env_float("EARTH_RADIUS_M", 6_371_000.0)


# ---------------------------------------------------------------------------
# Shape extraction
# ---------------------------------------------------------------------------
# Images are downscaled so the longest side is at most this many pixels.
MAX_IMAGE_DIMENSION = _env_int("MAX_IMAGE_DIMENSION", 800)

# Fixed luminance cut-off (0-255). Leave unset to use Otsu's method.
BACKGROUND_LUMINANCE_THRESHOLD = _env_optional_float("BACKGROUND_LUMINANCE_THRESHOLD")

# Pixels with alpha at or below this value are always background.
ALPHA_THRESHOLD = _env_int("ALPHA_THRESHOLD", 128)

# Otsu results outside [min, max] fall back to the default threshold.
OTSU_MIN_THRESHOLD = 20
OTSU_MAX_THRESHOLD = 235
OTSU_DEFAULT_THRESHOLD = 128

# Invert polarity only when light opaque pixels cover at least this fraction.
MIN_LIGHT_COVERAGE_FOR_INVERT = 0.05

# Regions smaller than this (pixels) are not treated as a usable shape.
MIN_REGION_PIXELS = _env_int("MIN_REGION_PIXELS", 16)

# Douglas-Peucker tolerance (pixels) before the point budget is enforced.
SIMPLIFY_TOLERANCE_PX = _env_float("SIMPLIFY_TOLERANCE_PX", 1.5)

# Upper bound on contour vertices, which is also the number of routed legs.
MAX_SIMPLIFIED_POINTS = _env_int("MAX_SIMPLIFIED_POINTS", 60)

# Noise heuristic: many regions below this size and none above it.
NOISE_SMALL_REGION_PIXELS = 500
NOISE_MAX_SMALL_REGIONS = 3


# ---------------------------------------------------------------------------
# Routing provider
# ---------------------------------------------------------------------------
RADAR_BASE_URL = os.getenv("RADAR_BASE_URL", "https://api.radar.io/v1")

# Publishable key pulled from the environment. Do not hardcode secrets.
RADAR_API_KEY = os.getenv("RADAR_API_KEY", "")

# Ask the provider for "linestring" (GeoJSON) or "polyline6" geometry.
RADAR_GEOMETRY_FORMAT = os.getenv("RADAR_GEOMETRY_FORMAT", "linestring")

# Per-leg provider call timeout in seconds.
LEG_TIMEOUT_SECONDS = _env_float("LEG_TIMEOUT_SECONDS", 15.0)

# Legs requested concurrently for one route.
MAX_PARALLEL_LEGS = _env_int("MAX_PARALLEL_LEGS", 4)

# HTTP session pool sizes for concurrent requests.
HTTP_POOL_CONNECTIONS = 10
HTTP_POOL_MAXSIZE = 10

# Retries per leg request on connection errors and upstream 5xx.
HTTP_RETRY_TOTAL = _env_int("HTTP_RETRY_TOTAL", 2)

# Rate limiter settings.
# RATE_LIMIT_MAX_CONCURRENT caps total in-flight provider requests.
RATE_LIMIT_MAX_CONCURRENT = _env_int("RATE_LIMIT_MAX_CONCURRENT", 4)
# RATE_LIMIT_JITTER_RANGE adds random delay (seconds) to smooth bursts.
RATE_LIMIT_JITTER_RANGE = (0.0, 0.05)
# RATE_LIMIT_THROTTLE_SECONDS is the pause applied after a 429.
RATE_LIMIT_THROTTLE_SECONDS = _env_float("RATE_LIMIT_THROTTLE_SECONDS", 2.0)

# Memoise successful legs per (origin, destination, mode). Off by default so
# every run talks to the provider from a clean slate.
ROUTE_CACHE_ENABLED = _env_bool("ROUTE_CACHE_ENABLED", False)
ROUTE_CACHE_TTL_SECONDS = _env_int("ROUTE_CACHE_TTL_SECONDS", 24 * 60 * 60)
ROUTE_CACHE_SIZE = _env_int("ROUTE_CACHE_SIZE", 1024)


# ---------------------------------------------------------------------------
# Track export
# ---------------------------------------------------------------------------
GPX_CREATOR = "Routista"
GPX_TRACK_NAME = "Routista Route"


@dataclass(slots=True)
class PipelineConfig:
    """Explicit settings handed to every pipeline component."""

    earth_radius_m: float = EARTH_RADIUS_M
    max_image_dimension: int = MAX_IMAGE_DIMENSION
    background_luminance_threshold: float | None = BACKGROUND_LUMINANCE_THRESHOLD
    alpha_threshold: int = ALPHA_THRESHOLD
    min_region_pixels: int = MIN_REGION_PIXELS
    simplify_tolerance_px: float = SIMPLIFY_TOLERANCE_PX
    max_simplified_points: int = MAX_SIMPLIFIED_POINTS
    leg_timeout_s: float = LEG_TIMEOUT_SECONDS
    max_parallel_legs: int = MAX_PARALLEL_LEGS
    radar_base_url: str = RADAR_BASE_URL
    radar_api_key: str = field(default=RADAR_API_KEY, repr=False)
    radar_geometry_format: str = RADAR_GEOMETRY_FORMAT
    route_cache_enabled: bool = ROUTE_CACHE_ENABLED
    route_cache_ttl_s: int = ROUTE_CACHE_TTL_SECONDS

    def __post_init__(self) -> None:
        if self.earth_radius_m <= 0:
            raise ValueError("earth_radius_m must be positive")
        if self.max_simplified_points < 3:
            raise ValueError("max_simplified_points must be >= 3")
        if self.max_parallel_legs < 1:
            raise ValueError("max_parallel_legs must be >= 1")
        if self.leg_timeout_s <= 0:
            raise ValueError("leg_timeout_s must be positive")

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Return a config populated from the module-level defaults."""

        return cls()

    def with_overrides(self, **changes: Any) -> "PipelineConfig":
        """Return a copy with selected fields replaced."""

        return replace(self, **changes)


__all__ = ["PipelineConfig"]
