"""
Schemas Pydantic per il Catalogo Servizi e gli abbonamenti
Progetto: ISP Billing (Gestionale ISP)
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from isp_billing.models.catalog import ServiceCategory


class ServiceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    category: ServiceCategory = ServiceCategory.INTERNET


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    category: Optional[ServiceCategory] = None
    is_active: Optional[bool] = None


class ServiceRead(ServiceBase):
    id: uuid.UUID
    is_active: bool = Field(..., serialization_alias="isActive")

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Abbonamenti
# -------------------------------------------------------------------

class SubscriptionCreate(BaseModel):
    service_id: uuid.UUID
    quantity: int = Field(1, ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self) -> "SubscriptionCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("La data di fine precede la data di inizio")
        return self


class SubscriptionRead(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID = Field(..., serialization_alias="clientId")
    service_id: uuid.UUID = Field(..., serialization_alias="serviceId")
    service: ServiceRead
    quantity: int
    start_date: date = Field(..., serialization_alias="startDate")
    end_date: Optional[date] = Field(None, serialization_alias="endDate")
    is_active: bool = Field(..., serialization_alias="isActive")

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "ServiceCreate",
    "ServiceUpdate",
    "ServiceRead",
    "SubscriptionCreate",
    "SubscriptionRead",
]
