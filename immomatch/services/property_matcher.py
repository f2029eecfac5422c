import json
import logging
from typing import Optional, Dict, Tuple, List, Any, Union
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from immomatch.config import get_settings
from immomatch.models import Buyer, Client, Property, SharedProperty
from immomatch.schemas.search_area import (
    CircleArea,
    FeatureArea,
    InvalidSearchArea,
    PointArea,
    PointZone,
    PolygonZone,
    parse_search_area,
)
from immomatch.services.geometry import distance_point_to_line, haversine_distance, point_in_polygon

logger = logging.getLogger(__name__)

# Совпадение всегда имеет оценку >= 1: 0 зарезервирован под "исключено"
MIN_MATCH_SCORE = 1
MAX_MATCH_SCORE = 100
_EPSILON = 1e-9

PROPERTY_TYPE_SYNONYMS = {
    "appartamento": "apartment",
    "apartment": "apartment",
    "flat": "apartment",
    "monolocale": "apartment",
    "bilocale": "apartment",
    "trilocale": "apartment",
    "quadrilocale": "apartment",
    "attico": "penthouse",
    "penthouse": "penthouse",
    "villa": "villa",
    "villetta": "villa",
    "loft": "loft",
    "casa indipendente": "house",
    "house": "house",
    "ufficio": "office",
    "office": "office",
}


@dataclass
class MatchTolerances:
    """Допуски метчинга. По умолчанию берутся из настроек приложения."""
    size_tolerance: float = 0.80
    size_max_ratio: float = 2.5
    price_tolerance: float = 1.20
    rooms_tolerance: int = 1
    rooms_exact_bonus: int = 5
    rooms_fewer_penalty: int = 5
    polygon_tolerance_km: float = 0.5
    point_radius_km: float = 0.5
    default_circle_radius_km: float = 1.0

    @classmethod
    def from_settings(cls) -> "MatchTolerances":
        settings = get_settings()
        return cls(
            size_tolerance=settings.match_size_tolerance,
            size_max_ratio=settings.match_size_max_ratio,
            price_tolerance=settings.match_price_tolerance,
            rooms_tolerance=settings.match_rooms_tolerance,
            rooms_exact_bonus=settings.match_rooms_exact_bonus,
            rooms_fewer_penalty=settings.match_rooms_fewer_penalty,
            polygon_tolerance_km=settings.match_polygon_tolerance_km,
            point_radius_km=settings.match_point_radius_km,
            default_circle_radius_km=settings.match_default_circle_radius_km,
        )


@dataclass
class MatchCandidate:
    """Объект в форме, которую понимает метчер (объявление или сводная карточка)"""
    id: Optional[int] = None
    price: Optional[float] = None
    size: Optional[float] = None
    type: Optional[str] = None
    rooms: Optional[int] = None
    location: Any = None
    address: Optional[str] = None

    @classmethod
    def from_record(cls, record: Union[Property, SharedProperty, Dict[str, Any]]) -> "MatchCandidate":
        if isinstance(record, dict):
            rooms = record.get("rooms")
            if rooms is None:
                rooms = record.get("bedrooms")
            return cls(
                id=record.get("id"),
                price=record.get("price"),
                size=record.get("size"),
                type=record.get("type"),
                rooms=rooms,
                location=record.get("location"),
                address=record.get("address"),
            )
        rooms = getattr(record, "rooms", None)
        if rooms is None:
            rooms = getattr(record, "bedrooms", None)
        return cls(
            id=record.id,
            price=record.price,
            size=record.size,
            type=record.type,
            rooms=rooms,
            location=record.location,
            address=record.address,
        )


@dataclass
class BuyerCriteria:
    """Критерии покупателя. None означает "без ограничения"."""
    id: Optional[int] = None
    min_size: Optional[float] = None
    max_price: Optional[float] = None
    property_type: Optional[str] = None
    rooms: Optional[int] = None
    search_area: Any = None

    @classmethod
    def from_record(cls, record: Union[Buyer, Dict[str, Any]]) -> "BuyerCriteria":
        if isinstance(record, dict):
            return cls(
                id=record.get("id"),
                min_size=record.get("min_size"),
                max_price=record.get("max_price"),
                property_type=record.get("property_type"),
                rooms=record.get("rooms"),
                search_area=record.get("search_area"),
            )
        return cls(
            id=record.id,
            min_size=record.min_size,
            max_price=record.max_price,
            property_type=record.property_type,
            rooms=record.rooms,
            search_area=record.search_area,
        )


@dataclass
class MatchEvaluation:
    """Результат сопоставления объекта с покупателем"""
    is_match: bool
    score: int  # 0 - исключено, 1..100 - совпадение
    reasons: List[str] = field(default_factory=list)

    @classmethod
    def rejected(cls, reason: str) -> "MatchEvaluation":
        return cls(is_match=False, score=0, reasons=[reason])


def normalize_property_type(value: Optional[str]) -> str:
    """Приводит тип объекта к каноническому виду с учетом синонимов (it/en)"""
    if not value:
        return ""
    normalized = " ".join(value.lower().split())
    return PROPERTY_TYPE_SYNONYMS.get(normalized, normalized)


def extract_coordinates(location: Any) -> Optional[Tuple[float, float]]:
    """
    Извлекает (lat, lng) из location объекта.
    Поддерживает {"lat", "lng"} (в т.ч. строками), GeoJSON Point и JSON-строки.
    """
    if location is None:
        return None
    if isinstance(location, str):
        try:
            location = json.loads(location)
        except ValueError:
            return None
    if not isinstance(location, dict):
        return None

    try:
        if location.get("coordinates") is not None:
            coords = location["coordinates"]
            if len(coords) < 2:
                return None
            lng, lat = float(coords[0]), float(coords[1])
        elif location.get("lat") is not None and location.get("lng") is not None:
            lat, lng = float(location["lat"]), float(location["lng"])
        else:
            return None
    except (TypeError, ValueError):
        return None

    if lat != lat or lng != lng:  # NaN
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng


def evaluate_match(
    property: Union[Property, SharedProperty, MatchCandidate, Dict[str, Any]],
    buyer: Union[Buyer, BuyerCriteria, Dict[str, Any]],
    tolerances: Optional[MatchTolerances] = None,
) -> MatchEvaluation:
    """
    Единственная функция сопоставления объекта с покупателем.
    Используется в обоих направлениях (объекты для покупателя и покупатели для объекта).

    Порядок проверок: тип, комнаты, площадь, цена, география.
    Любой жесткий отказ возвращает (False, 0).
    """
    candidate = property if isinstance(property, MatchCandidate) else MatchCandidate.from_record(property)
    criteria = buyer if isinstance(buyer, BuyerCriteria) else BuyerCriteria.from_record(buyer)
    tol = tolerances or MatchTolerances.from_settings()

    score = 100
    reasons: List[str] = []

    # 1. Тип объекта - строгое совпадение, если покупатель его указал
    if criteria.property_type:
        buyer_type = normalize_property_type(criteria.property_type)
        property_type = normalize_property_type(candidate.type)
        if buyer_type and property_type != buyer_type:
            logger.debug(
                f"Property {candidate.id} type '{candidate.type}' does not match buyer {criteria.id} "
                f"type '{criteria.property_type}' - rejected"
            )
            return MatchEvaluation.rejected(f"Тип '{candidate.type}' не совпадает с '{criteria.property_type}'")
        reasons.append("Тип совпадает")

    # 2. Комнаты
    if criteria.rooms is not None and candidate.rooms is not None:
        if candidate.rooms > criteria.rooms + tol.rooms_tolerance:
            logger.debug(f"Property {candidate.id} has {candidate.rooms} rooms, buyer {criteria.id} wants {criteria.rooms}")
            return MatchEvaluation.rejected(f"Слишком много комнат ({candidate.rooms})")
        if candidate.rooms == criteria.rooms:
            score += tol.rooms_exact_bonus
            reasons.append(f"Комнат ровно {candidate.rooms} (+{tol.rooms_exact_bonus})")
        elif candidate.rooms < criteria.rooms:
            score -= tol.rooms_fewer_penalty
            reasons.append(f"Комнат меньше желаемого (-{tol.rooms_fewer_penalty})")

    # 3. Площадь: от min_size * 0.8 до min_size * 2.5
    if criteria.min_size is not None and candidate.size is not None:
        min_acceptable = criteria.min_size * tol.size_tolerance
        max_acceptable = criteria.min_size * tol.size_max_ratio
        if candidate.size < min_acceptable - _EPSILON:
            logger.debug(f"Property {candidate.id} size {candidate.size} below {min_acceptable:.1f} for buyer {criteria.id}")
            return MatchEvaluation.rejected(f"Площадь {candidate.size} м² меньше допустимой {min_acceptable:.0f} м²")
        if candidate.size > max_acceptable + _EPSILON:
            logger.debug(f"Property {candidate.id} size {candidate.size} above {max_acceptable:.1f} for buyer {criteria.id}")
            return MatchEvaluation.rejected(f"Площадь {candidate.size} м² больше разумной {max_acceptable:.0f} м²")
        if candidate.size < criteria.min_size:
            penalty = round((1 - candidate.size / criteria.min_size) * 20)
            score -= penalty
            reasons.append(f"Площадь в пределах допуска (-{penalty})")

    # 4. Цена: до max_price * 1.2
    if criteria.max_price is not None and candidate.price is not None:
        max_acceptable = criteria.max_price * tol.price_tolerance
        if candidate.price > max_acceptable + _EPSILON:
            logger.debug(f"Property {candidate.id} price {candidate.price} exceeds {max_acceptable:.0f} for buyer {criteria.id}")
            return MatchEvaluation.rejected(f"Цена {candidate.price} выше допустимой {max_acceptable:.0f}")
        if candidate.price <= criteria.max_price:
            bonus = 0
            if criteria.max_price > 0:
                bonus = round((criteria.max_price - candidate.price) / criteria.max_price * 10)
            score += bonus
            reasons.append(f"Цена в бюджете (+{bonus})")
        else:
            # Штраф растет линейно до -30 на границе допуска
            overage = (candidate.price - criteria.max_price) / criteria.max_price
            band = max(tol.price_tolerance - 1, _EPSILON)
            penalty = min(30, round(overage / band * 30))
            score -= penalty
            reasons.append(f"Цена выше бюджета в пределах допуска (-{penalty})")

    # 5. География
    # Пустой {} или [] тоже область поиска: parse_search_area отклонит ее
    if criteria.search_area is not None:
        coordinates = extract_coordinates(candidate.location)
        if coordinates is None:
            logger.debug(f"Property {candidate.id} has no coordinates, buyer {criteria.id} requires search area")
            return MatchEvaluation.rejected("Нет координат объекта")
        try:
            area = parse_search_area(criteria.search_area, default_radius_km=tol.default_circle_radius_km)
            accepted, deduction, reason = _evaluate_area(coordinates, area, tol)
        except InvalidSearchArea as e:
            logger.warning(f"Buyer {criteria.id} has malformed search area: {e}")
            return MatchEvaluation.rejected("Некорректная область поиска")
        except (TypeError, ValueError, ZeroDivisionError) as e:
            logger.warning(f"Zone check error for property {candidate.id} / buyer {criteria.id}: {e}")
            return MatchEvaluation.rejected("Ошибка проверки области поиска")
        if not accepted:
            logger.debug(f"Property {candidate.id} outside search area of buyer {criteria.id}: {reason}")
            return MatchEvaluation.rejected(reason)
        score -= deduction
        reasons.append(reason)

    score = max(MIN_MATCH_SCORE, min(MAX_MATCH_SCORE, score))
    return MatchEvaluation(is_match=True, score=score, reasons=reasons)


def _evaluate_area(
    coordinates: Tuple[float, float],
    area: Union[FeatureArea, CircleArea, PointArea],
    tol: MatchTolerances,
) -> Tuple[bool, int, str]:
    """Возвращает (подходит, штраф, пояснение)"""
    lat, lng = coordinates
    point = (lng, lat)

    if isinstance(area, FeatureArea):
        for zone in area.zones:
            if isinstance(zone, PolygonZone) and point_in_polygon(point, zone.polygons):
                return True, 0, f"Внутри зоны {zone.name or ''}".strip()

        min_distance = float("inf")
        has_point_zone = False
        for zone in area.zones:
            if isinstance(zone, PointZone):
                has_point_zone = True
                distance = haversine_distance(lat, lng, zone.lat, zone.lng)
                if distance <= tol.point_radius_km:
                    deduction = round(distance / tol.point_radius_km * 10)
                    return True, deduction, f"В {distance * 1000:.0f} м от зоны {zone.name or ''}".strip()
                min_distance = min(min_distance, distance)
            else:
                min_distance = min(min_distance, distance_point_to_line(point, zone.polygons))

        threshold = tol.point_radius_km if has_point_zone else tol.polygon_tolerance_km
        if min_distance > threshold:
            return False, 0, f"Вне области поиска ({min_distance:.2f} км)"
        deduction = round(min_distance / threshold * 15)
        return True, deduction, f"Рядом с границей зоны ({min_distance * 1000:.0f} м)"

    if isinstance(area, CircleArea):
        center_lat, center_lng, radius_km = area.center.lat, area.center.lng, area.radius_km
    else:
        center_lat, center_lng, radius_km = area.lat, area.lng, area.radius_km

    distance = haversine_distance(lat, lng, center_lat, center_lng)
    if distance > radius_km:
        return False, 0, f"Вне радиуса {radius_km:.2f} км ({distance:.2f} км)"
    return True, round(distance / radius_km * 10), f"В радиусе поиска ({distance:.2f} км)"


class PropertyMatcher:
    """
    Подбор в обе стороны: объекты для покупателя и покупатели для объекта.
    Оба направления используют evaluate_match.
    """

    def __init__(self, db: Session, tolerances: Optional[MatchTolerances] = None):
        self.db = db
        self.tolerances = tolerances or MatchTolerances.from_settings()

    def evaluate(self, property, buyer) -> MatchEvaluation:
        return evaluate_match(property, buyer, self.tolerances)

    def match_properties_for_buyer(self, buyer_id: int) -> List[Property]:
        """Все доступные объявления, подходящие покупателю, по убыванию оценки"""
        buyer = (
            self.db.query(Buyer)
            .join(Client, Buyer.client_id == Client.id)
            .filter(Buyer.id == buyer_id, Client.type == "buyer")
            .first()
        )
        if not buyer:
            return []

        properties = self.db.query(Property).filter(Property.status == "available").all()
        scored: List[Tuple[int, Property]] = []
        for prop in properties:
            result = self.evaluate(prop, buyer)
            if result.is_match:
                scored.append((result.score, prop))

        scored.sort(key=lambda item: (-item[0], item[1].id))
        logger.info(f"Buyer {buyer_id}: {len(scored)} of {len(properties)} properties match")
        return [prop for _, prop in scored]

    def match_buyers_for_property(self, property_id: int) -> List[Client]:
        """Все клиенты-покупатели, которым подходит объявление"""
        prop = self.db.query(Property).filter(Property.id == property_id).first()
        if not prop or prop.status != "available":
            return []
        return self._match_buyers(prop, f"property {property_id}")

    def match_buyers_for_shared_property(self, shared_property_id: int) -> List[Client]:
        """Все клиенты-покупатели, которым подходит сводная карточка"""
        shared = self.db.query(SharedProperty).filter(SharedProperty.id == shared_property_id).first()
        if not shared or not shared.match_buyers:
            return []
        return self._match_buyers(shared, f"shared property {shared_property_id}")

    def _match_buyers(self, record: Union[Property, SharedProperty], label: str) -> List[Client]:
        rows = (
            self.db.query(Buyer, Client)
            .join(Client, Buyer.client_id == Client.id)
            .filter(Client.type == "buyer")
            .order_by(Client.id)
            .all()
        )
        scored: List[Tuple[int, Client]] = []
        for buyer, client in rows:
            result = self.evaluate(record, buyer)
            if result.is_match:
                scored.append((result.score, client))

        scored.sort(key=lambda item: (-item[0], item[1].id))
        logger.info(f"{len(scored)} of {len(rows)} buyers match {label}")
        return [client for _, client in scored]
