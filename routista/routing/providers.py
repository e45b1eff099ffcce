"""Offline and caching routing providers."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Tuple

from cachetools import TTLCache

from ..config import EARTH_RADIUS_M, ROUTE_CACHE_SIZE, ROUTE_CACHE_TTL_SECONDS
from ..geo import haversine_m
from ..models import GeoPoint, RouteLeg, TransportMode
from .base import RoutingProvider

LOGGER = logging.getLogger(__name__)

_LegCacheKey = Tuple[float, float, float, float, str]


class StraightLineProvider:
    """Returns the direct origin -> destination segment for every leg.

    Used when no provider key is configured, and as a deterministic stand-in
    for tests. Distance is the haversine length of the segment.
    """

    def __init__(self, earth_radius_m: float = EARTH_RADIUS_M) -> None:
        self._earth_radius_m = earth_radius_m

    def route_leg(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        mode: TransportMode,
        *,
        timeout: float,
        leg_index: int = 0,
    ) -> RouteLeg:
        distance = haversine_m(origin, destination, earth_radius_m=self._earth_radius_m)
        return RouteLeg(
            index=leg_index,
            points=(origin, destination),
            distance_m=distance,
        )


class CachingProvider:
    """Memoises successful legs from a wrapped provider for a limited time."""

    def __init__(
        self,
        inner: RoutingProvider,
        *,
        ttl_seconds: int = ROUTE_CACHE_TTL_SECONDS,
        maxsize: int = ROUTE_CACHE_SIZE,
    ) -> None:
        self._inner = inner
        self._cache: TTLCache[_LegCacheKey, RouteLeg] = TTLCache(
            maxsize=max(1, maxsize), ttl=max(1, ttl_seconds)
        )
        self._lock = RLock()

    def route_leg(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        mode: TransportMode,
        *,
        timeout: float,
        leg_index: int = 0,
    ) -> RouteLeg:
        key = (origin.lat, origin.lon, destination.lat, destination.lon, mode.value)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            LOGGER.debug("Leg %d served from cache", leg_index)
            return RouteLeg(
                index=leg_index,
                points=cached.points,
                distance_m=cached.distance_m,
                duration_s=cached.duration_s,
            )
        leg = self._inner.route_leg(
            origin, destination, mode, timeout=timeout, leg_index=leg_index
        )
        with self._lock:
            self._cache[key] = leg
        return leg

    def clear(self) -> None:
        """Drop every cached leg."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


__all__ = ["CachingProvider", "StraightLineProvider"]
