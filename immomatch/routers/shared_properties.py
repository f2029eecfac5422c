from typing import Optional, List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from immomatch.database import get_db
from immomatch.models import SharedProperty
from immomatch.schemas.client import ClientResponse
from immomatch.schemas.shared_property import (
    SharedPropertyResponse, SharedPropertyUpdate, SharedPropertyListResponse
)
from immomatch.services.deduplication import delete_shared_property
from immomatch.services.property_matcher import PropertyMatcher

router = APIRouter(prefix="/api/shared-properties", tags=["shared-properties"])


@router.get("", response_model=SharedPropertyListResponse)
def get_shared_properties(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    multiagency: Optional[bool] = None,
    include_ignored: bool = False,
    include_acquired: bool = False,
    db: Session = Depends(get_db)
):
    """Получить список сводных карточек"""
    query = db.query(SharedProperty)
    if multiagency is not None:
        query = query.filter(SharedProperty.is_multiagency == multiagency)
    if not include_ignored:
        query = query.filter(SharedProperty.is_ignored == False)  # noqa: E712
    if not include_acquired:
        query = query.filter(SharedProperty.is_acquired == False)  # noqa: E712

    total = query.count()
    pages = (total + per_page - 1) // per_page
    items = query.order_by(SharedProperty.id).offset((page - 1) * per_page).limit(per_page).all()

    return SharedPropertyListResponse(
        items=items,
        total=total,
        page=page,
        per_page=per_page,
        pages=pages
    )


@router.get("/{shared_property_id}", response_model=SharedPropertyResponse)
def get_shared_property(shared_property_id: int, db: Session = Depends(get_db)):
    """Получить сводную карточку по ID"""
    shared = db.query(SharedProperty).filter(SharedProperty.id == shared_property_id).first()
    if not shared:
        raise HTTPException(status_code=404, detail="Карточка не найдена")
    return shared


@router.patch("/{shared_property_id}", response_model=SharedPropertyResponse)
def update_shared_property(
    shared_property_id: int,
    update: SharedPropertyUpdate,
    db: Session = Depends(get_db)
):
    """Изменить флаги сводной карточки"""
    shared = db.query(SharedProperty).filter(SharedProperty.id == shared_property_id).first()
    if not shared:
        raise HTTPException(status_code=404, detail="Карточка не найдена")

    for key, value in update.model_dump(exclude_unset=True).items():
        setattr(shared, key, value)

    db.commit()
    db.refresh(shared)
    return shared


@router.delete("/{shared_property_id}")
def remove_shared_property(shared_property_id: int, db: Session = Depends(get_db)):
    """Удалить сводную карточку (заметки и кэш метчинга удаляются вместе с ней)"""
    if not delete_shared_property(db, shared_property_id):
        raise HTTPException(status_code=404, detail="Карточка не найдена")
    return {"message": "Карточка удалена", "id": shared_property_id}


@router.get("/{shared_property_id}/buyers", response_model=List[ClientResponse])
def get_shared_property_buyers(shared_property_id: int, db: Session = Depends(get_db)):
    """Покупатели, которым подходит сводная карточка"""
    shared = db.query(SharedProperty).filter(SharedProperty.id == shared_property_id).first()
    if not shared:
        raise HTTPException(status_code=404, detail="Карточка не найдена")
    return PropertyMatcher(db).match_buyers_for_shared_property(shared_property_id)
