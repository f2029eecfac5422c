from typing import Optional, List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from immomatch.database import get_db
from immomatch.models import Property
from immomatch.schemas.client import ClientResponse
from immomatch.schemas.property import PropertyResponse
from immomatch.services.geocoding import GeocodingService
from immomatch.services.property_matcher import PropertyMatcher

router = APIRouter(prefix="/api/properties", tags=["properties"])


@router.get("", response_model=List[PropertyResponse])
def get_properties(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    city: Optional[str] = None,
    status: Optional[str] = None,
    owner_type: Optional[str] = None,
    multiagency: Optional[bool] = None,
    db: Session = Depends(get_db)
):
    """Получить список объявлений с фильтрацией"""
    query = db.query(Property)
    if city:
        query = query.filter(Property.city == city)
    if status:
        query = query.filter(Property.status == status)
    if owner_type:
        query = query.filter(Property.owner_type == owner_type)
    if multiagency is not None:
        query = query.filter(Property.is_multiagency == multiagency)

    return query.order_by(Property.id).offset((page - 1) * per_page).limit(per_page).all()


@router.post("/geocode")
def geocode_properties(limit: int = Query(50, ge=1, le=500), db: Session = Depends(get_db)):
    """Проставить координаты объявлениям без location"""
    service = GeocodingService()
    try:
        return service.geocode_missing_locations(db, limit=limit)
    finally:
        service.close()


@router.get("/{property_id}", response_model=PropertyResponse)
def get_property(property_id: int, db: Session = Depends(get_db)):
    """Получить объявление по ID"""
    property_obj = db.query(Property).filter(Property.id == property_id).first()
    if not property_obj:
        raise HTTPException(status_code=404, detail="Объявление не найдено")
    return property_obj


@router.get("/{property_id}/buyers", response_model=List[ClientResponse])
def get_property_buyers(property_id: int, db: Session = Depends(get_db)):
    """Покупатели, которым подходит объявление (по убыванию оценки)"""
    property_obj = db.query(Property).filter(Property.id == property_id).first()
    if not property_obj:
        raise HTTPException(status_code=404, detail="Объявление не найдено")
    return PropertyMatcher(db).match_buyers_for_property(property_id)
