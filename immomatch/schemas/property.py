from typing import Optional, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class PropertyBase(BaseModel):
    """Базовая схема объявления"""
    address: Optional[str] = None
    city: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    size: Optional[float] = Field(None, ge=0, description="Площадь, м²")
    type: Optional[str] = None
    rooms: Optional[int] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0)
    floor: Optional[str] = None
    location: Optional[Any] = None


class PropertyInput(PropertyBase):
    """Объект для разового сопоставления (без сохранения в БД)"""
    id: Optional[int] = None


class PropertyResponse(PropertyBase):
    """Схема ответа с объявлением"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: Optional[str] = None
    status: Optional[str] = None
    owner_type: Optional[str] = None
    agency_name: Optional[str] = None
    portal: Optional[str] = None
    external_link: Optional[str] = None
    is_shared: Optional[bool] = None
    is_multiagency: Optional[bool] = None
    exclusivity_hint: Optional[bool] = None
    shared_property_id: Optional[int] = None
    created_at: Optional[datetime] = None
