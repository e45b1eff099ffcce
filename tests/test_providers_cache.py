import pytest

from routista.geo import haversine_m
from routista.models import GeoPoint, TransportMode
from routista.routing import CachingProvider, RoutingProvider, StraightLineProvider

from conftest import ScriptedProvider

A = GeoPoint(51.5, -0.1)
B = GeoPoint(51.501, -0.1)


def test_straight_line_provider_returns_direct_segment():
    leg = StraightLineProvider().route_leg(A, B, TransportMode.WALKING, timeout=1.0, leg_index=3)
    assert leg.index == 3
    assert leg.points == (A, B)
    assert leg.distance_m == pytest.approx(haversine_m(A, B))


def test_providers_satisfy_protocol():
    assert isinstance(StraightLineProvider(), RoutingProvider)
    assert isinstance(CachingProvider(StraightLineProvider()), RoutingProvider)


def test_cache_serves_repeat_legs_with_new_index():
    inner = ScriptedProvider()
    cache = CachingProvider(inner, ttl_seconds=60)
    first = cache.route_leg(A, B, TransportMode.WALKING, timeout=1.0, leg_index=0)
    second = cache.route_leg(A, B, TransportMode.WALKING, timeout=1.0, leg_index=5)
    assert len(inner.calls) == 1
    assert second.index == 5
    assert second.points == first.points
    assert len(cache) == 1


def test_cache_key_includes_mode_and_direction():
    inner = ScriptedProvider()
    cache = CachingProvider(inner, ttl_seconds=60)
    cache.route_leg(A, B, TransportMode.WALKING, timeout=1.0)
    cache.route_leg(A, B, TransportMode.CYCLING, timeout=1.0)
    cache.route_leg(B, A, TransportMode.WALKING, timeout=1.0)
    assert len(inner.calls) == 3


def test_failures_are_not_cached():
    inner = ScriptedProvider(failures={0: RuntimeError("down")})
    cache = CachingProvider(inner, ttl_seconds=60)
    with pytest.raises(RuntimeError):
        cache.route_leg(A, B, TransportMode.WALKING, timeout=1.0, leg_index=0)
    assert len(cache) == 0
    cache.clear()
