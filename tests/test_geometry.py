import math

import pytest

from immomatch.services.geometry import (
    distance_point_to_line,
    distance_point_to_segment,
    haversine_distance,
    point_in_polygon,
    point_in_ring,
)

SQUARE = [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [0.0, 0.0]]
HOLE = [[0.4, 0.4], [0.6, 0.4], [0.6, 0.6], [0.4, 0.6], [0.4, 0.4]]


def test_haversine_zero_distance():
    assert haversine_distance(45.0, 9.0, 45.0, 9.0) == 0.0


def test_haversine_one_degree_latitude():
    # 1° широты ~ 111.19 км
    assert haversine_distance(45.0, 9.0, 46.0, 9.0) == pytest.approx(111.19, abs=0.05)


def test_haversine_is_symmetric():
    a = haversine_distance(45.46, 9.19, 41.90, 12.49)
    b = haversine_distance(41.90, 12.49, 45.46, 9.19)
    assert a == pytest.approx(b)
    assert a == pytest.approx(477, abs=5)  # Милан - Рим


def test_point_in_ring():
    assert point_in_ring((0.5, 0.5), SQUARE)
    assert not point_in_ring((1.5, 0.5), SQUARE)
    assert not point_in_ring((0.5, 0.5), SQUARE[:2])


def test_point_in_polygon_accepts_ring_and_geojson():
    assert point_in_polygon((0.5, 0.5), SQUARE)
    assert point_in_polygon((0.5, 0.5), {"type": "Polygon", "coordinates": [SQUARE]})
    feature = {"type": "Feature", "geometry": {"type": "Polygon", "coordinates": [SQUARE]}}
    assert point_in_polygon((0.5, 0.5), feature)


def test_point_in_hole_is_outside():
    polygon = [SQUARE, HOLE]
    assert not point_in_polygon((0.5, 0.5), polygon)
    assert point_in_polygon((0.2, 0.2), polygon)


def test_point_in_multipolygon():
    far_square = [[[10.0, 10.0], [11.0, 10.0], [11.0, 11.0], [10.0, 11.0], [10.0, 10.0]]]
    multipolygon = {"type": "MultiPolygon", "coordinates": [[SQUARE], far_square]}
    assert point_in_polygon((10.5, 10.5), multipolygon)
    assert not point_in_polygon((5.0, 5.0), multipolygon)


def test_point_in_polygon_empty():
    assert not point_in_polygon((0.5, 0.5), [])
    assert not point_in_polygon((0.5, 0.5), {"type": "LineString", "coordinates": SQUARE})


def test_distance_to_segment_perpendicular():
    # 0.01° широты ~ 1.112 км
    d = distance_point_to_segment((9.0, 45.01), [8.9, 45.0], [9.1, 45.0])
    assert d == pytest.approx(1.112, abs=0.01)


def test_distance_to_segment_endpoint():
    d = distance_point_to_segment((9.0, 45.01), [9.0, 45.0], [9.0, 45.0])
    assert d == pytest.approx(haversine_distance(45.01, 9.0, 45.0, 9.0), rel=1e-3)


def test_distance_to_line_matches_haversine_for_nearby_points():
    line = [[9.18, 45.46], [9.20, 45.46]]
    d = distance_point_to_line((9.19, 45.463), line)
    assert d == pytest.approx(haversine_distance(45.463, 9.19, 45.46, 9.19), rel=1e-3)


def test_distance_to_polygon_boundary():
    ring = [[9.18, 45.46], [9.20, 45.46], [9.20, 45.47], [9.18, 45.47], [9.18, 45.46]]
    # 0.001° южнее нижней стороны ~ 111 м
    d = distance_point_to_line((9.19, 45.459), {"type": "Polygon", "coordinates": [ring]})
    assert d == pytest.approx(0.111, abs=0.002)


def test_distance_to_degenerate_line_is_infinite():
    assert math.isinf(distance_point_to_line((0.0, 0.0), [[0.0, 0.0]]))
    assert math.isinf(distance_point_to_line((0.0, 0.0), []))
