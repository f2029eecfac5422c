import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from immomatch.database import get_db
from immomatch.models import Buyer, Client
from immomatch.schemas.matching import (
    EvaluateMatchRequest, EvaluateMatchResponse, MatchedPropertyResponse, ClientMatchesResponse,
    ClientCacheResponse
)
from immomatch.schemas.property import PropertyResponse
from immomatch.schemas.shared_property import SharedPropertyResponse
from immomatch.services.match_cache import KIND_SHARED, MatchCache
from immomatch.services.property_matcher import PropertyMatcher, evaluate_match

router = APIRouter(prefix="/api", tags=["matching"])
logger = logging.getLogger(__name__)


def _get_client_or_404(db: Session, client_id: int) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Клиент не найден")
    return client


@router.get("/clients/{client_id}/matches", response_model=ClientMatchesResponse)
def get_client_matches(
    client_id: int,
    force: bool = Query(False, description="Пересчитать, даже если кэш свежий"),
    db: Session = Depends(get_db)
):
    """Подходящие клиенту объекты (с кэшем на 15 минут)"""
    _get_client_or_404(db, client_id)
    results = MatchCache(db).get_matching_properties_for_client(client_id, force_recompute=force)

    items = []
    for result in results:
        item = MatchedPropertyResponse(
            kind=result.kind,
            id=result.id,
            score=result.score,
            is_multiagency=result.is_multiagency,
        )
        if result.kind == KIND_SHARED:
            item.shared_property = SharedPropertyResponse.model_validate(result.record)
        else:
            item.property = PropertyResponse.model_validate(result.record)
        items.append(item)
    return ClientMatchesResponse(client_id=client_id, items=items, total=len(items))


@router.get("/clients/{client_id}/matches/cache", response_model=ClientCacheResponse)
def get_client_matches_cache(client_id: int, db: Session = Depends(get_db)):
    """Строки кэша клиента как есть"""
    _get_client_or_404(db, client_id)
    matches, last_updated = MatchCache(db).get_client_matches_from_cache(client_id)
    return ClientCacheResponse(client_id=client_id, matches=matches, last_updated=last_updated)


@router.delete("/clients/{client_id}/matches/cache")
def invalidate_client_matches_cache(client_id: int, db: Session = Depends(get_db)):
    """Сбросить кэш клиента (после правки критериев)"""
    _get_client_or_404(db, client_id)
    deleted = MatchCache(db).invalidate_client(client_id)
    return {"message": "Кэш сброшен", "deleted": deleted}


@router.get("/buyers/{buyer_id}/properties", response_model=List[PropertyResponse])
def get_buyer_properties(buyer_id: int, db: Session = Depends(get_db)):
    """Доступные объявления, подходящие покупателю"""
    buyer = db.query(Buyer).filter(Buyer.id == buyer_id).first()
    if not buyer:
        raise HTTPException(status_code=404, detail="Покупатель не найден")
    return PropertyMatcher(db).match_properties_for_buyer(buyer_id)


@router.post("/matching/evaluate", response_model=EvaluateMatchResponse)
def evaluate(request: EvaluateMatchRequest):
    """Разовое сопоставление объекта и критериев покупателя без обращения к БД"""
    result = evaluate_match(request.property.model_dump(), request.buyer.model_dump())
    return EvaluateMatchResponse(is_match=result.is_match, score=result.score, reasons=result.reasons)
