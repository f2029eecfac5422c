"""
Дедупликация объявлений с разных порталов.

Объявления с одинаковым (нечетко) адресом и близкими ценой/площадью/комнатами
считаются одним реальным объектом. Кластер от двух и более разных агентств -
"pluricondiviso" (multi-agency), по нему создается или обновляется SharedProperty.
Кластер от одного агентства - признак возможной эксклюзивы.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from rapidfuzz import fuzz
from sqlalchemy.orm import Session

from immomatch.config import get_settings
from immomatch.models import Property, SharedProperty
from immomatch.services.address import (
    address_house_numbers,
    is_generic_address,
    normalize_address,
    normalize_agency_name,
)

logger = logging.getLogger(__name__)

UNKNOWN_AGENCY = "Agenzia sconosciuta"
EXCLUSIVITY_KEYWORDS = ("esclusiva", "esclusivita", "esclusività")

_scan_lock = threading.Lock()


class DeduplicationScanInProgress(RuntimeError):
    """Сканирование уже выполняется в этом процессе"""


@dataclass
class _Candidate:
    record: Property
    address_key: str
    house_numbers: List[str]
    agency_key: str


@dataclass
class PropertyCluster:
    """Группа объявлений об одном реальном объекте"""
    properties: List[Property]
    address_key: str
    agencies: List[Dict[str, Any]] = field(default_factory=list)
    is_multiagency: bool = False
    exclusivity_hint: bool = False
    match_reasons: List[str] = field(default_factory=list)

    @property
    def cluster_size(self) -> int:
        return len(self.properties)

    @property
    def distinct_agencies(self) -> int:
        return len(self.agencies)


@dataclass
class DeduplicationResult:
    total_properties: int
    clusters: List[PropertyCluster]
    unclustered: List[Property]

    @property
    def clusters_found(self) -> int:
        return len(self.clusters)

    @property
    def multiagency_properties(self) -> int:
        return sum(c.cluster_size for c in self.clusters if c.is_multiagency)

    @property
    def exclusive_properties(self) -> int:
        return sum(c.cluster_size for c in self.clusters if c.exclusivity_hint)


class PropertyDeduplicator:
    """
    Кластеризация объявлений и синхронизация сводных карточек.
    Без db работает только find_clusters/deduplicate (чистые функции над списком).
    """

    def __init__(self, db: Optional[Session] = None):
        settings = get_settings()
        self.db = db
        self.price_band = settings.dedup_price_band
        self.size_band = settings.dedup_size_band
        self.size_abs_tolerance = settings.dedup_size_abs_tolerance_sqm
        self.rooms_tolerance = settings.dedup_rooms_tolerance
        self.address_similarity = settings.dedup_address_similarity

    # ------------------------------------------------------------------
    # Кластеризация
    # ------------------------------------------------------------------

    def deduplicate(self, properties: List[Property]) -> DeduplicationResult:
        clusters, unclustered = self.find_clusters(properties)
        result = DeduplicationResult(total_properties=len(properties), clusters=clusters, unclustered=unclustered)
        logger.info(
            f"Dedup: {result.total_properties} properties -> {result.clusters_found} clusters, "
            f"{result.multiagency_properties} multi-agency, {result.exclusive_properties} exclusive, "
            f"{len(unclustered)} not clusterable"
        )
        return result

    def find_clusters(self, properties: List[Property]) -> Tuple[List[PropertyCluster], List[Property]]:
        """
        Возвращает (кластеры, объявления без пригодного адреса).
        Порядок детерминирован: по id объявления.
        """
        candidates: List[_Candidate] = []
        unclustered: List[Property] = []
        for prop in sorted(properties, key=lambda p: p.id or 0):
            if is_generic_address(prop.address):
                unclustered.append(prop)
                continue
            key = normalize_address(prop.address)
            candidates.append(
                _Candidate(
                    record=prop,
                    address_key=key,
                    house_numbers=sorted(address_house_numbers(key)),
                    agency_key=self._agency_key(prop),
                )
            )

        clusters: List[PropertyCluster] = []
        for group in self._group_by_address(candidates):
            for members in self._split_by_proximity(group):
                clusters.append(self._build_cluster(members))
        return clusters, unclustered

    def _group_by_address(self, candidates: List[_Candidate]) -> List[List[_Candidate]]:
        groups: List[List[_Candidate]] = []
        for candidate in candidates:
            for group in groups:
                head = group[0]
                if head.house_numbers != candidate.house_numbers:
                    continue
                if fuzz.token_sort_ratio(head.address_key, candidate.address_key) >= self.address_similarity:
                    group.append(candidate)
                    break
            else:
                groups.append([candidate])
        return groups

    def _split_by_proximity(self, group: List[_Candidate]) -> List[List[_Candidate]]:
        # Полная связь: кандидат входит в подкластер, только если близок ко всем его членам
        subclusters: List[List[_Candidate]] = []
        for candidate in group:
            for subcluster in subclusters:
                if all(self.is_same_unit(candidate.record, member.record) for member in subcluster):
                    subcluster.append(candidate)
                    break
            else:
                subclusters.append([candidate])
        return subclusters

    def is_same_unit(self, a: Property, b: Property) -> bool:
        """Цена, площадь и комнаты в пределах допусков (неизвестные значения не мешают)"""
        if a.price and b.price:
            if abs(a.price - b.price) / min(a.price, b.price) > self.price_band:
                return False
        if a.size and b.size:
            diff = abs(a.size - b.size)
            if diff > self.size_abs_tolerance and diff / min(a.size, b.size) > self.size_band:
                return False
        rooms_a = a.rooms if a.rooms is not None else a.bedrooms
        rooms_b = b.rooms if b.rooms is not None else b.bedrooms
        if rooms_a is not None and rooms_b is not None:
            if abs(rooms_a - rooms_b) > self.rooms_tolerance:
                return False
        return True

    def _build_cluster(self, members: List[_Candidate]) -> PropertyCluster:
        agencies: List[Dict[str, Any]] = []
        seen: Dict[str, Dict[str, Any]] = {}
        for member in members:
            if member.agency_key in seen:
                continue
            entry = self._agency_entry(member.record)
            seen[member.agency_key] = entry
            agencies.append(entry)

        is_multiagency = len(agencies) > 1
        reasons: List[str] = []
        if len(members) > 1:
            reasons.append(f"Совпадает адрес: {members[0].address_key}")
            prices = [m.record.price for m in members if m.record.price]
            if len(prices) > 1:
                spread = (max(prices) - min(prices)) / min(prices) * 100
                reasons.append(f"Разброс цен {spread:.1f}%")
        if is_multiagency:
            reasons.append(f"Агентств: {len(agencies)}")
        elif any(self._has_exclusivity_keyword(m.record) for m in members):
            reasons.append('В описании есть "esclusiva"')

        return PropertyCluster(
            properties=[m.record for m in members],
            address_key=members[0].address_key,
            agencies=agencies,
            is_multiagency=is_multiagency,
            exclusivity_hint=not is_multiagency,
            match_reasons=reasons,
        )

    @staticmethod
    def _agency_key(prop: Property) -> str:
        for value in (prop.agency_name, prop.portal, prop.source):
            key = normalize_agency_name(value)
            if key:
                return key
        return normalize_agency_name(UNKNOWN_AGENCY)

    @staticmethod
    def _agency_entry(prop: Property) -> Dict[str, Any]:
        return {
            "name": prop.agency_name or prop.portal or prop.source or UNKNOWN_AGENCY,
            "link": prop.external_link or prop.url or "",
            "sourcePropertyId": prop.id,
        }

    @staticmethod
    def _has_exclusivity_keyword(prop: Property) -> bool:
        description = (prop.description or "").lower()
        return any(keyword in description for keyword in EXCLUSIVITY_KEYWORDS)

    # ------------------------------------------------------------------
    # Синхронизация с БД
    # ------------------------------------------------------------------

    def run_scan(self) -> Dict[str, Any]:
        """
        Полный проход по доступным объявлениям: кластеризация, создание/обновление
        сводных карточек и флагов объявлений. Повторный запуск без новых данных
        ничего не меняет.
        """
        if self.db is None:
            raise RuntimeError("run_scan requires a database session")

        started = time.monotonic()
        properties = (
            self.db.query(Property).filter(Property.status == "available").order_by(Property.id).all()
        )
        if not properties:
            logger.warning("Dedup scan: no available properties found")

        result = self.deduplicate(properties)
        shared_pool = self.db.query(SharedProperty).filter(SharedProperty.is_acquired == False).all()  # noqa: E712

        properties_updated = 0
        created = 0
        updated = 0
        try:
            for cluster in result.clusters:
                if cluster.is_multiagency:
                    shared, was_created, was_updated = self._upsert_shared_property(cluster, shared_pool)
                    created += int(was_created)
                    updated += int(was_updated)
                    flags = {
                        "is_multiagency": True,
                        "is_shared": True,
                        "exclusivity_hint": False,
                        "shared_property_id": shared.id,
                    }
                else:
                    flags = {"is_multiagency": False, "exclusivity_hint": True}
                for prop in cluster.properties:
                    prop_flags = flags
                    if not cluster.is_multiagency and self._is_scan_link(prop):
                        prop_flags = {**flags, "is_shared": False, "shared_property_id": None}
                    if self._apply_flags(prop, prop_flags):
                        properties_updated += 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Dedup scan finished in {duration_ms}ms: {created} shared properties created, "
            f"{updated} updated, {properties_updated} properties updated"
        )
        return {
            "total_properties": result.total_properties,
            "clusters_found": result.clusters_found,
            "multiagency_properties": result.multiagency_properties,
            "exclusive_properties": result.exclusive_properties,
            "properties_updated": properties_updated,
            "shared_properties_created": created,
            "shared_properties_updated": updated,
            "duration_ms": duration_ms,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def _upsert_shared_property(
        self, cluster: PropertyCluster, shared_pool: List[SharedProperty]
    ) -> Tuple[SharedProperty, bool, bool]:
        existing = self._find_existing_shared(cluster, shared_pool)
        if existing is None:
            first = cluster.properties[0]
            located = next((p for p in cluster.properties if p.location), None)
            shared = SharedProperty(
                address=first.address,
                city=first.city,
                price=first.price,
                size=first.size,
                type=first.type,
                rooms=first.rooms if first.rooms is not None else first.bedrooms,
                floor=first.floor,
                location=located.location if located else None,
                agencies=list(cluster.agencies),
                is_multiagency=True,
                is_acquired=False,
                is_ignored=False,
                match_buyers=True,
                stage="result",
                stage_result="multiagency",
            )
            self.db.add(shared)
            self.db.flush()
            shared_pool.append(shared)
            logger.info(f"Created shared property {shared.id} for '{first.address}' ({len(cluster.agencies)} agencies)")
            return shared, True, False

        current = [self._coerce_agency(a) for a in (existing.agencies or [])]
        known_names = {normalize_agency_name(a.get("name")) for a in current}
        new_agencies = [a for a in cluster.agencies if normalize_agency_name(a["name"]) not in known_names]

        changed = False
        if new_agencies:
            # Новый список, чтобы ORM заметил изменение JSON
            existing.agencies = current + new_agencies
            changed = True
            logger.info(f"Shared property {existing.id}: +{len(new_agencies)} agencies")
        is_multiagency = len({normalize_agency_name(a.get("name")) for a in existing.agencies}) > 1
        if existing.is_multiagency != is_multiagency:
            existing.is_multiagency = is_multiagency
            changed = True
        if not existing.location:
            located = next((p for p in cluster.properties if p.location), None)
            if located:
                existing.location = located.location
                changed = True
        return existing, False, changed

    def _find_existing_shared(
        self, cluster: PropertyCluster, shared_pool: List[SharedProperty]
    ) -> Optional[SharedProperty]:
        by_id = {sp.id: sp for sp in shared_pool}
        for prop in cluster.properties:
            if prop.shared_property_id and prop.shared_property_id in by_id:
                return by_id[prop.shared_property_id]

        numbers = sorted(address_house_numbers(cluster.address_key))
        reference = cluster.properties[0]
        for shared in shared_pool:
            key = normalize_address(shared.address)
            if sorted(address_house_numbers(key)) != numbers:
                continue
            if fuzz.token_sort_ratio(key, cluster.address_key) < self.address_similarity:
                continue
            if shared.price and reference.price:
                if abs(shared.price - reference.price) / min(shared.price, reference.price) > self.price_band:
                    continue
            return shared
        return None

    @staticmethod
    def _coerce_agency(agency: Any) -> Dict[str, Any]:
        # Старые записи хранили только название строкой
        if isinstance(agency, str):
            return {"name": agency, "link": "", "sourcePropertyId": None}
        return dict(agency)

    @staticmethod
    def _is_scan_link(prop: Property) -> bool:
        """Привязка создана сканированием (мультиагентская карточка), а не вручную"""
        if prop.shared_property_id is None:
            return False
        shared = prop.shared_property
        return shared is None or bool(shared.is_multiagency)

    @staticmethod
    def _apply_flags(prop: Property, flags: Dict[str, Any]) -> bool:
        changed = False
        for key, value in flags.items():
            if getattr(prop, key) != value:
                setattr(prop, key, value)
                changed = True
        return changed


def run_deduplication_scan(db: Session) -> Dict[str, Any]:
    """
    Запускает сканирование дедупликации.

    Raises:
        DeduplicationScanInProgress: если сканирование уже идет
    """
    if not _scan_lock.acquire(blocking=False):
        logger.info("Dedup scan already running, skipping")
        raise DeduplicationScanInProgress("Deduplication scan already running")
    try:
        return PropertyDeduplicator(db).run_scan()
    finally:
        _scan_lock.release()


def is_scan_running() -> bool:
    return _scan_lock.locked()


def delete_shared_property(db: Session, shared_property_id: int) -> bool:
    """
    Удаляет сводную карточку вместе с заметками и строками кэша метчинга.
    Объявления отвязываются и теряют флаги multi-agency.
    """
    shared = db.query(SharedProperty).filter(SharedProperty.id == shared_property_id).first()
    if not shared:
        return False
    for prop in list(shared.properties):
        prop.shared_property_id = None
        prop.is_shared = False
        prop.is_multiagency = False
    db.delete(shared)
    db.commit()
    logger.info(f"Deleted shared property {shared_property_id}")
    return True
