import json

import pytest

from immomatch.schemas.search_area import (
    CircleArea,
    FeatureArea,
    InvalidSearchArea,
    PointArea,
    PointZone,
    PolygonZone,
    parse_search_area,
)

RING = [[9.18, 45.46], [9.20, 45.46], [9.20, 45.47], [9.18, 45.47], [9.18, 45.46]]


def test_feature_collection_with_polygon_and_point():
    raw = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"name": "Brera"}, "geometry": {"type": "Polygon", "coordinates": [RING]}},
            {"type": "Feature", "properties": {}, "geometry": {"type": "Point", "coordinates": [9.19, 45.46]}},
        ],
    }
    area = parse_search_area(raw)
    assert isinstance(area, FeatureArea)
    assert isinstance(area.zones[0], PolygonZone)
    assert area.zones[0].name == "Brera"
    assert isinstance(area.zones[1], PointZone)
    assert area.zones[1].lat == pytest.approx(45.46)
    assert area.zones[1].lng == pytest.approx(9.19)


def test_multipolygon_geometry():
    area = parse_search_area({"type": "MultiPolygon", "coordinates": [[RING], [RING]]})
    assert isinstance(area, FeatureArea)
    assert len(area.zones[0].polygons) == 2


def test_circle_radius_in_meters():
    area = parse_search_area({"center": {"lat": 45.46, "lng": 9.19}, "radius": 1500})
    assert isinstance(area, CircleArea)
    assert area.radius_km == pytest.approx(1.5)


def test_circle_radius_km_and_default():
    assert parse_search_area({"center": {"lat": 45.46, "lng": 9.19}, "radius_km": 2}).radius_km == 2
    assert parse_search_area({"center": {"lat": 45.46, "lng": 9.19}}).radius_km == 1.0


def test_bare_point_uses_default_radius():
    area = parse_search_area({"lat": 45.46, "lng": 9.19}, default_radius_km=3.0)
    assert isinstance(area, PointArea)
    assert area.radius_km == 3.0


def test_legacy_ring_is_closed():
    area = parse_search_area([[9.18, 45.46], [9.20, 45.46], [9.20, 45.47]])
    ring = area.zones[0].polygons[0][0]
    assert ring[0] == ring[-1]
    assert len(ring) == 4


def test_json_string_and_tagged_dict():
    tagged = {"kind": "circle", "center": {"lat": 45.46, "lng": 9.19}, "radius_km": 0.5}
    assert isinstance(parse_search_area(json.dumps(tagged)), CircleArea)
    assert parse_search_area(tagged).radius_km == 0.5


def test_already_parsed_area_is_returned_as_is():
    area = PointArea(lat=45.0, lng=9.0)
    assert parse_search_area(area) is area


@pytest.mark.parametrize("raw", [
    "not json",
    42,
    {"type": "FeatureCollection", "features": []},
    {"type": "Feature", "geometry": None},
    {"type": "Polygon", "coordinates": []},
    {"type": "Polygon", "coordinates": [[[9.18, 45.46], [9.18, 45.46], [9.2, 45.47]]]},
    {"type": "LineString", "coordinates": RING},
    {"center": {"lat": 200, "lng": 9.19}, "radius": 1000},
    {"center": {"lat": 45.0, "lng": 9.0}, "radius_km": -1},
    [[9.18, 45.46]],
    {"foo": "bar"},
])
def test_malformed_areas_raise(raw):
    with pytest.raises(InvalidSearchArea):
        parse_search_area(raw)
