"""
Кэш результатов метчинга по клиенту.

Полный проход "все покупатели x все объекты" дорогой, поэтому последний набор
совпадений клиента хранится в таблице matches и считается свежим 15 минут.
Набор всегда заменяется целиком: старые строки удаляются, новые вставляются
в одной транзакции, так что в кэше не остается объектов, которые больше не подходят.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from immomatch.config import get_settings
from immomatch.models import Buyer, Client, Match, Property, SharedProperty
from immomatch.services.property_matcher import PropertyMatcher

logger = logging.getLogger(__name__)

KIND_SHARED = "shared"
KIND_PRIVATE = "private"


@dataclass
class MatchedProperty:
    """Объект, подходящий клиенту: сводная карточка или частное объявление"""
    kind: str  # shared, private
    id: int
    score: int
    record: Union[SharedProperty, Property]

    @property
    def is_multiagency(self) -> bool:
        return bool(getattr(self.record, "is_multiagency", False))


def _sort_key(item: MatchedProperty):
    return (-item.score, item.kind, item.id)


def _is_shared_candidate(shared: Optional[SharedProperty]) -> bool:
    return (
        shared is not None
        and not shared.is_ignored
        and not shared.is_acquired
        and bool(shared.match_buyers)
    )


def _is_private_candidate(prop: Optional[Property]) -> bool:
    return prop is not None and prop.owner_type == "private" and prop.status == "available"


def _as_utc(value: datetime) -> datetime:
    # SQLite возвращает naive datetime
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MatchCache:
    def __init__(
        self,
        db: Session,
        matcher: Optional[PropertyMatcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
        ttl_minutes: Optional[int] = None,
    ):
        self.db = db
        self.matcher = matcher or PropertyMatcher(db)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        if ttl_minutes is None:
            ttl_minutes = get_settings().match_cache_ttl_minutes
        self.ttl = timedelta(minutes=ttl_minutes)

    def save_client_matches(self, client_id: int, items: List[Dict[str, Any]]) -> int:
        """
        Заменяет кэш клиента.

        items: [{"shared_property_id": ..., "score": ...}] или [{"property_id": ..., "score": ...}].
        Строки с оценкой <= 0 (или NaN) не пишутся. Возвращает количество вставленных строк.
        При ошибке транзакция откатывается, исключение пробрасывается.
        """
        created_at = self.clock()
        rows = []
        for item in items:
            score = item.get("score")
            if score is None or (isinstance(score, float) and math.isnan(score)) or score <= 0:
                continue
            rows.append(
                Match(
                    client_id=client_id,
                    shared_property_id=item.get("shared_property_id"),
                    property_id=item.get("property_id"),
                    score=min(100, int(round(score))),
                    created_at=created_at,
                )
            )

        try:
            self.db.query(Match).filter(Match.client_id == client_id).delete(synchronize_session=False)
            self.db.add_all(rows)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Saved {len(rows)} cached matches for client {client_id}")
        return len(rows)

    def get_client_matches_from_cache(self, client_id: int) -> Tuple[List[Match], Optional[datetime]]:
        """
        Возвращает (строки кэша, время последнего обновления).
        Время обновления - самый ранний created_at среди строк; пустой кэш дает ([], None).
        """
        matches = self.db.query(Match).filter(Match.client_id == client_id).all()
        if not matches:
            return [], None
        last_updated = min(_as_utc(m.created_at) for m in matches)
        return matches, last_updated

    def invalidate_client(self, client_id: int) -> int:
        deleted = self.db.query(Match).filter(Match.client_id == client_id).delete(synchronize_session=False)
        self.db.commit()
        logger.info(f"Invalidated {deleted} cached matches for client {client_id}")
        return deleted

    def get_matching_properties_for_client(self, client_id: int, force_recompute: bool = False) -> List[MatchedProperty]:
        """
        Подходящие клиенту объекты, по убыванию оценки.
        Свежий кэш (моложе TTL) отдается без пересчета; иначе пересчет и перезапись кэша.
        """
        if not force_recompute:
            matches, last_updated = self.get_client_matches_from_cache(client_id)
            if matches and self.clock() - last_updated < self.ttl:
                logger.debug(f"Client {client_id}: serving {len(matches)} matches from cache")
                return self._from_cache(matches)

        results = self._recompute(client_id)
        items = [
            {"shared_property_id" if r.kind == KIND_SHARED else "property_id": r.id, "score": r.score}
            for r in results
        ]
        try:
            self.save_client_matches(client_id, items)
        except Exception:
            logger.exception(f"Failed to save match cache for client {client_id}")
        return results

    def _from_cache(self, matches: List[Match]) -> List[MatchedProperty]:
        # Объекты, выбывшие из подбора после записи кэша, не отдаются
        results: List[MatchedProperty] = []
        for match in matches:
            if match.shared_property_id is not None and _is_shared_candidate(match.shared_property):
                results.append(MatchedProperty(KIND_SHARED, match.shared_property_id, match.score, match.shared_property))
            elif match.property_id is not None and _is_private_candidate(match.property):
                results.append(MatchedProperty(KIND_PRIVATE, match.property_id, match.score, match.property))
        results.sort(key=_sort_key)
        return results

    def _recompute(self, client_id: int) -> List[MatchedProperty]:
        buyer = (
            self.db.query(Buyer)
            .join(Client, Buyer.client_id == Client.id)
            .filter(Buyer.client_id == client_id, Client.type == "buyer")
            .first()
        )
        if not buyer:
            logger.info(f"Client {client_id} has no buyer criteria, nothing to match")
            return []

        shared_properties = (
            self.db.query(SharedProperty)
            .filter(
                SharedProperty.is_ignored == False,  # noqa: E712
                SharedProperty.is_acquired == False,  # noqa: E712
                SharedProperty.match_buyers == True,  # noqa: E712
            )
            .all()
        )
        private_properties = (
            self.db.query(Property)
            .filter(Property.owner_type == "private", Property.status == "available")
            .all()
        )

        results: List[MatchedProperty] = []
        for shared in shared_properties:
            evaluation = self.matcher.evaluate(shared, buyer)
            if evaluation.is_match:
                results.append(MatchedProperty(KIND_SHARED, shared.id, evaluation.score, shared))
        for prop in private_properties:
            evaluation = self.matcher.evaluate(prop, buyer)
            if evaluation.is_match:
                results.append(MatchedProperty(KIND_PRIVATE, prop.id, evaluation.score, prop))

        results.sort(key=_sort_key)
        logger.info(
            f"Client {client_id}: recomputed {len(results)} matches over "
            f"{len(shared_properties)} shared and {len(private_properties)} private properties"
        )
        return results
