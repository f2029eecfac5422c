"""
Геометрические предикаты для метчинга по области поиска.
Координаты во всех функциях - в порядке GeoJSON: (lng, lat).
Расстояния - в километрах.
"""
from math import asin, cos, radians, sin, sqrt, hypot
from typing import Any, Iterable, List, Sequence, Tuple

EARTH_RADIUS_KM = 6371.0

Point = Tuple[float, float]


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Расстояние по большому кругу между двумя точками, км"""
    dlat = radians(lat2 - lat1)
    dlng = radians(lng2 - lng1)
    a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(min(1.0, sqrt(a)))


def point_in_ring(point: Point, ring: Sequence[Sequence[float]]) -> bool:
    # Ray casting, (lng, lat)
    if len(ring) < 3:
        return False
    x, y = point[0], point[1]
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if (yi > y) != (yj > y):
            x_intersect = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_intersect:
                inside = not inside
        j = i
    return inside


def point_in_polygon(point: Point, polygon: Any) -> bool:
    """
    Проверяет попадание точки в полигон.

    polygon может быть:
    - кольцом [(lng, lat), ...];
    - списком колец [outer, hole1, ...];
    - GeoJSON геометрией Polygon/MultiPolygon или Feature с такой геометрией.

    Точка внутри дыры считается снаружи.
    """
    for rings in _polygons(polygon):
        if not rings or not point_in_ring(point, rings[0]):
            continue
        if any(point_in_ring(point, hole) for hole in rings[1:]):
            continue
        return True
    return False


def distance_point_to_segment(point: Point, a: Sequence[float], b: Sequence[float]) -> float:
    """
    Кратчайшее расстояние от точки до отрезка, км.
    Используется локальная равнопромежуточная проекция с центром в точке:
    на масштабах допуска (сотни метров) погрешность пренебрежимо мала.
    """
    lng0, lat0 = point[0], point[1]
    kx = radians(1.0) * EARTH_RADIUS_KM * cos(radians(lat0))
    ky = radians(1.0) * EARTH_RADIUS_KM
    ax, ay = (a[0] - lng0) * kx, (a[1] - lat0) * ky
    bx, by = (b[0] - lng0) * kx, (b[1] - lat0) * ky
    dx, dy = bx - ax, by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return hypot(ax, ay)
    # Проекция начала координат (точки) на отрезок
    t = max(0.0, min(1.0, -(ax * dx + ay * dy) / length_sq))
    return hypot(ax + t * dx, ay + t * dy)


def distance_point_to_line(point: Point, line: Any) -> float:
    """
    Кратчайшее расстояние от точки до ломаной или границы полигона, км.
    Для полигона учитываются все кольца, включая дыры.
    Ломаная из менее чем 2 точек дает float('inf').
    """
    best = float("inf")
    for coords in _lines(line):
        for i in range(len(coords) - 1):
            best = min(best, distance_point_to_segment(point, coords[i], coords[i + 1]))
    return best


def _polygons(polygon: Any) -> List[List[Sequence[Sequence[float]]]]:
    if isinstance(polygon, dict):
        if polygon.get("type") == "Feature":
            return _polygons(polygon.get("geometry") or {})
        if polygon.get("type") == "Polygon":
            return [polygon.get("coordinates") or []]
        if polygon.get("type") == "MultiPolygon":
            return list(polygon.get("coordinates") or [])
        return []
    if not polygon:
        return []
    if _is_position(polygon[0]):
        return [[polygon]]
    if polygon[0] and _is_position(polygon[0][0]):
        return [list(polygon)]
    return [list(p) for p in polygon]


def _lines(line: Any) -> Iterable[Sequence[Sequence[float]]]:
    if isinstance(line, dict):
        geo_type = line.get("type")
        if geo_type == "Feature":
            return _lines(line.get("geometry") or {})
        if geo_type == "LineString":
            return [line.get("coordinates") or []]
        if geo_type in ("Polygon", "MultiPolygon"):
            return [ring for rings in _polygons(line) for ring in rings]
        return []
    if not line:
        return []
    if _is_position(line[0]):
        return [line]
    return [ring for rings in _polygons(line) for ring in rings]


def _is_position(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) >= 2
        and isinstance(value[0], (int, float))
        and isinstance(value[1], (int, float))
    )
