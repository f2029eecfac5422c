from typing import Optional, List, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class AgencyEntry(BaseModel):
    """Агентство, через которое продается объект"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    link: Optional[str] = ""
    source_property_id: Optional[int] = Field(None, alias="sourcePropertyId")


class SharedPropertyResponse(BaseModel):
    """Сводная карточка объекта"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    address: str
    city: Optional[str] = None
    price: Optional[int] = None
    size: Optional[float] = None
    type: Optional[str] = None
    rooms: Optional[int] = None
    floor: Optional[str] = None
    location: Optional[Any] = None
    agencies: List[AgencyEntry] = []
    is_multiagency: Optional[bool] = None
    is_ignored: Optional[bool] = None
    is_acquired: Optional[bool] = None
    is_favorite: Optional[bool] = None
    match_buyers: Optional[bool] = None
    stage: Optional[str] = None
    stage_result: Optional[str] = None
    created_at: Optional[datetime] = None


class SharedPropertyUpdate(BaseModel):
    """Ручное изменение флагов карточки"""
    is_ignored: Optional[bool] = None
    is_acquired: Optional[bool] = None
    is_favorite: Optional[bool] = None
    match_buyers: Optional[bool] = None
    stage: Optional[str] = None
    stage_result: Optional[str] = None


class SharedPropertyListResponse(BaseModel):
    """Список карточек с пагинацией"""
    items: List[SharedPropertyResponse]
    total: int
    page: int
    per_page: int
    pages: int
