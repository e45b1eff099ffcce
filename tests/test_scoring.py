"""Route length and shape-fidelity scoring."""

import numpy as np
import pytest

from routista.errors import InvalidInputError
from routista.geo import offset_point
from routista.models import GeoPoint, GeoPolygon, RouteGeometry
from routista.scoring import point_to_polyline_distances, route_deviations, score


def _closed_route(waypoints):
    points = tuple(GeoPoint(*p) for p in waypoints)
    return RouteGeometry(points=points + points[:1])


def test_route_on_square_scores_full_accuracy(square_waypoints):
    target = GeoPolygon(square_waypoints, closed=True)
    result = score(target, _closed_route(square_waypoints), 5.0)
    assert result.accuracy_percent == pytest.approx(100.0)
    assert result.length_m == pytest.approx(40.0, abs=1e-3)
    assert result.mean_deviation_m == pytest.approx(0.0, abs=1e-6)


def test_far_away_route_scores_zero(square_waypoints):
    target = GeoPolygon(square_waypoints, closed=True)
    far = RouteGeometry(points=(GeoPoint(1.0, 1.0), GeoPoint(1.0, 1.001)))
    result = score(target, far, 5.0)
    assert result.accuracy_percent == 0.0
    assert result.length_m > 0


def test_route_with_fewer_than_two_points_scores_zero(square_waypoints):
    target = GeoPolygon(square_waypoints)
    assert score(target, RouteGeometry(), 5.0).accuracy_percent == 0.0
    single = score(target, RouteGeometry(points=(GeoPoint(0.0, 0.0),)), 5.0)
    assert single.accuracy_percent == 0.0
    assert single.length_m == 0.0


def test_partial_offset_lowers_accuracy_proportionally():
    center = GeoPoint(45.0, 7.0)
    target = GeoPolygon([center, offset_point(center, east_m=100.0, north_m=0.0)], closed=False)
    # Route runs parallel, 10 m north of the target.
    route = RouteGeometry(
        points=(
            offset_point(center, east_m=0.0, north_m=10.0),
            offset_point(center, east_m=100.0, north_m=10.0),
        )
    )
    result = score(target, route, 100.0)
    assert result.accuracy_percent == pytest.approx(90.0, abs=0.01)
    assert result.max_deviation_m == pytest.approx(10.0, abs=0.01)


def test_accuracy_is_bounded(square_waypoints):
    target = GeoPolygon(square_waypoints)
    for route in (
        _closed_route(square_waypoints),
        RouteGeometry(points=(GeoPoint(0.0, 0.5), GeoPoint(0.5, 0.5))),
    ):
        result = score(target, route, 5.0)
        assert 0.0 <= result.accuracy_percent <= 100.0


@pytest.mark.parametrize("radius", [0.0, -1.0])
def test_invalid_radius_rejected(square_waypoints, radius):
    with pytest.raises(InvalidInputError):
        score(GeoPolygon(square_waypoints), _closed_route(square_waypoints), radius)


def test_point_to_segment_distance_uses_projection():
    line = np.array([[0.0, 0.0], [10.0, 0.0]])
    points = np.array([[5.0, 3.0], [-4.0, 3.0], [12.0, 0.0]])
    assert point_to_polyline_distances(points, line) == pytest.approx([3.0, 5.0, 2.0])


def test_route_deviations_without_route_are_infinite(square_waypoints):
    deviations = route_deviations(GeoPolygon(square_waypoints), RouteGeometry())
    assert np.isinf(deviations).all()
