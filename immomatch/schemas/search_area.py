"""
Область поиска покупателя.

В БД search_area хранится "как пришло" с фронтенда/геокодера: GeoJSON FeatureCollection,
отдельный Feature, круг {center, radius}, точка или старый формат - массив координат.
Перед метчингом payload приводится к размеченному типу с явным полем kind,
чтобы метчер никогда не гадал по набору ключей.
"""
import json
from typing import Annotated, Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator


class InvalidSearchArea(ValueError):
    """Область поиска не удалось разобрать"""


Ring = List[Tuple[float, float]]  # [(lng, lat), ...] как в GeoJSON


class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class PolygonZone(BaseModel):
    """Полигон (или мультиполигон): список полигонов, каждый - внешнее кольцо и дыры"""
    kind: Literal["polygon"] = "polygon"
    polygons: List[List[Ring]]
    name: Optional[str] = None

    @field_validator("polygons")
    @classmethod
    def validate_polygons(cls, v):
        if not v:
            raise ValueError("Полигон без координат")
        for polygon in v:
            if not polygon:
                raise ValueError("Полигон без колец")
            for ring in polygon:
                if len(set(ring)) < 3:
                    raise ValueError("Кольцо полигона должно содержать минимум 3 различные точки")
        return v


class PointZone(BaseModel):
    """Зона, заданная центральной точкой (например, центроид района)"""
    kind: Literal["point"] = "point"
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    name: Optional[str] = None


Zone = Annotated[Union[PolygonZone, PointZone], Field(discriminator="kind")]


class FeatureArea(BaseModel):
    """Набор зон: покупатель подходит, если объект попал хотя бы в одну"""
    kind: Literal["features"] = "features"
    zones: List[Zone]

    @field_validator("zones")
    @classmethod
    def validate_zones(cls, v):
        if not v:
            raise ValueError("Пустой список зон")
        return v


class CircleArea(BaseModel):
    kind: Literal["circle"] = "circle"
    center: LatLng
    radius_km: float = Field(1.0, gt=0)


class PointArea(BaseModel):
    kind: Literal["point"] = "point"
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    radius_km: float = Field(1.0, gt=0)


SearchArea = Annotated[Union[FeatureArea, CircleArea, PointArea], Field(discriminator="kind")]

_search_area_adapter = TypeAdapter(SearchArea)


def parse_search_area(raw: Any, default_radius_km: float = 1.0) -> Union[FeatureArea, CircleArea, PointArea]:
    """
    Приводит сырой payload области поиска к размеченному типу.

    Поддерживаемые форматы:
    - уже размеченный dict с kind (features/circle/point);
    - GeoJSON FeatureCollection, Feature, геометрия Polygon/MultiPolygon/Point;
    - круг {center: {lat, lng}, radius} - radius в метрах (формат виджета карты)
      либо {center, radius_km};
    - точка {lat, lng};
    - массив пар [lng, lat] (старый формат полигона, кольцо замыкается автоматически);
    - JSON-строка с любым из форматов выше.

    Raises:
        InvalidSearchArea: если формат не распознан или геометрия вырождена
    """
    if isinstance(raw, (FeatureArea, CircleArea, PointArea)):
        return raw

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise InvalidSearchArea(f"Search area is not valid JSON: {e}") from e

    try:
        if isinstance(raw, list):
            return FeatureArea(zones=[_legacy_ring_zone(raw)])

        if not isinstance(raw, dict):
            raise InvalidSearchArea(f"Unsupported search area payload: {type(raw).__name__}")

        if raw.get("kind") in ("features", "circle", "point"):
            return _search_area_adapter.validate_python(raw)

        geo_type = raw.get("type")
        if geo_type == "FeatureCollection":
            features = raw.get("features") or []
            return FeatureArea(zones=[_feature_zone(feature) for feature in features])
        if geo_type == "Feature":
            return FeatureArea(zones=[_feature_zone(raw)])
        if geo_type in ("Polygon", "MultiPolygon"):
            return FeatureArea(zones=[_geometry_zone(raw, None)])
        if geo_type == "Point":
            lng, lat = _point_coordinates(raw.get("coordinates"))
            return PointArea(lat=lat, lng=lng, radius_km=default_radius_km)

        if "center" in raw:
            center = raw.get("center") or {}
            if "radius_km" in raw and raw["radius_km"] is not None:
                radius_km = float(raw["radius_km"])
            elif raw.get("radius"):
                radius_km = float(raw["radius"]) / 1000.0
            else:
                radius_km = default_radius_km
            return CircleArea(center=LatLng(lat=center.get("lat"), lng=center.get("lng")), radius_km=radius_km)

        if "lat" in raw and "lng" in raw:
            return PointArea(lat=raw["lat"], lng=raw["lng"], radius_km=default_radius_km)
    except InvalidSearchArea:
        raise
    except ValidationError as e:
        raise InvalidSearchArea(f"Malformed search area: {e.error_count()} validation error(s)") from e
    except (TypeError, ValueError, AttributeError, KeyError, IndexError) as e:
        raise InvalidSearchArea(f"Malformed search area: {e}") from e

    raise InvalidSearchArea("Unrecognized search area format")


def _feature_zone(feature: Any) -> Union[PolygonZone, PointZone]:
    if not isinstance(feature, dict):
        raise InvalidSearchArea("Feature must be an object")
    geometry = feature.get("geometry")
    if not isinstance(geometry, dict):
        raise InvalidSearchArea("Feature has no geometry")
    properties = feature.get("properties") or {}
    name = properties.get("name") or properties.get("zoneName")
    return _geometry_zone(geometry, name)


def _geometry_zone(geometry: dict, name: Optional[str]) -> Union[PolygonZone, PointZone]:
    geo_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if geo_type == "Polygon":
        return PolygonZone(polygons=[_rings(coordinates)], name=name)
    if geo_type == "MultiPolygon":
        if not coordinates:
            raise InvalidSearchArea("Empty MultiPolygon")
        return PolygonZone(polygons=[_rings(polygon) for polygon in coordinates], name=name)
    if geo_type == "Point":
        lng, lat = _point_coordinates(coordinates)
        return PointZone(lat=lat, lng=lng, name=name)
    raise InvalidSearchArea(f"Unsupported geometry type: {geo_type}")


def _rings(coordinates: Any) -> List[Ring]:
    if not coordinates:
        raise InvalidSearchArea("Polygon without coordinates")
    return [[(float(p[0]), float(p[1])) for p in ring] for ring in coordinates]


def _point_coordinates(coordinates: Any) -> Tuple[float, float]:
    if not coordinates or len(coordinates) < 2:
        raise InvalidSearchArea("Point without coordinates")
    return float(coordinates[0]), float(coordinates[1])


def _legacy_ring_zone(points: list) -> PolygonZone:
    if len(points) < 3:
        raise InvalidSearchArea("Legacy polygon needs at least 3 points")
    ring = [(float(p[0]), float(p[1])) for p in points]
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return PolygonZone(polygons=[[ring]])
