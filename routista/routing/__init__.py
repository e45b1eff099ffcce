"""Route synthesis against an external directions provider."""

from .base import CancellationToken, RoutingProvider
from .providers import CachingProvider, StraightLineProvider
from .radar import MODE_TO_RADAR, RadarDirectionsClient
from .rate_limiter import RateLimiter
from .synthesizer import RouteSynthesizer, synthesize_route

__all__ = [
    "CachingProvider",
    "CancellationToken",
    "MODE_TO_RADAR",
    "RadarDirectionsClient",
    "RateLimiter",
    "RouteSynthesizer",
    "RoutingProvider",
    "StraightLineProvider",
    "synthesize_route",
]
