from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from immomatch.schemas.client import BuyerCriteriaInput
from immomatch.schemas.property import PropertyInput, PropertyResponse
from immomatch.schemas.shared_property import SharedPropertyResponse


class EvaluateMatchRequest(BaseModel):
    property: PropertyInput
    buyer: BuyerCriteriaInput


class EvaluateMatchResponse(BaseModel):
    is_match: bool
    score: int = Field(..., ge=0, le=100)
    reasons: List[str] = []


class MatchedPropertyResponse(BaseModel):
    """Подходящий клиенту объект с оценкой"""
    kind: str  # shared, private
    id: int
    score: int
    is_multiagency: bool = False
    shared_property: Optional[SharedPropertyResponse] = None
    property: Optional[PropertyResponse] = None


class ClientMatchesResponse(BaseModel):
    client_id: int
    items: List[MatchedPropertyResponse]
    total: int


class CachedMatchResponse(BaseModel):
    """Строка кэша метчинга"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    shared_property_id: Optional[int] = None
    property_id: Optional[int] = None
    score: int
    created_at: datetime


class ClientCacheResponse(BaseModel):
    client_id: int
    matches: List[CachedMatchResponse]
    last_updated: Optional[datetime] = None
