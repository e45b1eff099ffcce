"""Value-type invariants enforced at stage boundaries."""

import pytest

from routista.errors import InvalidInputError
from routista.models import (
    GeoPoint,
    GeoPolygon,
    NormalizedPoint,
    NormalizedPolygon,
    RouteGeometry,
    RouteLeg,
    TransportMode,
)


def test_normalized_point_rejects_out_of_range():
    with pytest.raises(InvalidInputError):
        NormalizedPoint(1.2, 0.5)
    with pytest.raises(InvalidInputError):
        NormalizedPoint(0.5, float("nan"))


def test_normalized_point_clamped():
    p = NormalizedPoint.clamped(-0.1, 1.5)
    assert (p.x, p.y) == (0.0, 1.0)


def test_normalized_polygon_needs_three_points():
    with pytest.raises(InvalidInputError):
        NormalizedPolygon.from_pairs([(0.0, 0.0), (1.0, 1.0)])
    poly = NormalizedPolygon.from_pairs([(0.0, 0.0), (1.0, 0.0), (0.5, 1.0)])
    assert len(poly) == 3
    assert poly.closed
    assert poly.bounds() == (0.0, 0.0, 1.0, 1.0)


def test_geo_point_range_checks():
    GeoPoint(-90.0, 180.0)
    with pytest.raises(InvalidInputError):
        GeoPoint(91.0, 0.0)
    with pytest.raises(InvalidInputError):
        GeoPoint(0.0, -180.5)


def test_geo_polygon_legs_closed_and_open():
    pts = [(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0)]
    closed = GeoPolygon(pts, closed=True)
    opened = GeoPolygon(pts, closed=False)
    assert len(closed.legs()) == 4
    assert closed.legs()[-1] == (closed[3], closed[0])
    assert len(opened.legs()) == 3


def test_two_point_polygon_has_single_leg_even_when_closed():
    poly = GeoPolygon([(0.0, 0.0), (0.0, 1.0)], closed=True)
    assert len(poly.legs()) == 1


def test_transport_mode_parse():
    assert TransportMode.parse("foot-walking") is TransportMode.WALKING
    assert TransportMode.parse("cycling") is TransportMode.CYCLING
    assert TransportMode.parse(TransportMode.DRIVING) is TransportMode.DRIVING
    with pytest.raises(InvalidInputError):
        TransportMode.parse("teleport")


def test_route_leg_requires_geometry():
    with pytest.raises(InvalidInputError):
        RouteLeg(index=0, points=(), distance_m=0.0)


def test_route_geometry_from_legs_drops_shared_endpoints():
    a, b, c = GeoPoint(0.0, 0.0), GeoPoint(0.0, 0.001), GeoPoint(0.001, 0.001)
    legs = [
        RouteLeg(index=0, points=(a, b), distance_m=111.0, duration_s=60.0),
        RouteLeg(index=1, points=(b, b, c), distance_m=111.0, duration_s=30.0),
    ]
    route = RouteGeometry.from_legs(legs)
    assert route.points == (a, b, c)
    assert route.distance_m == pytest.approx(222.0)
    assert route.duration_s == pytest.approx(90.0)


def test_empty_route_geometry():
    route = RouteGeometry()
    assert len(route) == 0
    assert route.latlon() == []
