from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field


class BuyerCriteriaBase(BaseModel):
    """Критерии поиска покупателя. Пустое поле - без ограничения."""
    min_size: Optional[int] = Field(None, ge=0, description="Минимальная площадь, м²")
    max_price: Optional[int] = Field(None, ge=0, description="Максимальный бюджет, EUR")
    property_type: Optional[str] = None
    rooms: Optional[int] = Field(None, ge=0)
    search_area: Optional[Any] = None


class BuyerCriteriaInput(BuyerCriteriaBase):
    id: Optional[int] = None


class ClientResponse(BaseModel):
    """Клиент агентства"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
