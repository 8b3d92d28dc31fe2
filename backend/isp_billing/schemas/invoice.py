"""
Schemas Pydantic per la Fatturazione
Progetto: ISP Billing (Gestionale ISP)

Contiene:
- Schemas per le righe servizio
- Schemas per Invoice (creazione, lettura, lista)
- Schemas per la generazione mensile e i link PDF
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from isp_billing.models.catalog import ServiceCategory
from isp_billing.models.invoice import InvoiceStatus
from isp_billing.schemas.common import PageMeta


def first_of_month(value: date) -> date:
    return value.replace(day=1)


# -------------------------------------------------------------------
# Righe servizio
# -------------------------------------------------------------------

class InvoiceServiceLineCreate(BaseModel):
    service_id: uuid.UUID
    quantity: int = Field(1, ge=1)


class InvoiceServiceLineRead(BaseModel):
    service_id: uuid.UUID = Field(..., serialization_alias="serviceId")
    service_name: Optional[str] = Field(None, serialization_alias="serviceName")
    quantity: int
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def read_service_name(cls, data):
        service = getattr(data, "service", None)
        if service is not None:
            return {
                "service_id": data.service_id,
                "service_name": service.name,
                "quantity": data.quantity,
                "amount": data.amount,
            }
        return data


# -------------------------------------------------------------------
# Invoice
# -------------------------------------------------------------------

class InvoiceCreate(BaseModel):
    """
    Creazione manuale di una fattura.

    Se services è valorizzato l'importo è la somma delle righe
    (prezzo x quantità); altrimenti amount è obbligatorio.
    """

    client_id: uuid.UUID
    billing_month: date = Field(default_factory=lambda: first_of_month(date.today()))
    category: Optional[ServiceCategory] = None
    amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    services: list[InvoiceServiceLineCreate] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("billing_month")
    @classmethod
    def normalize_month(cls, v: date) -> date:
        return first_of_month(v)

    @model_validator(mode="after")
    def amount_or_services(self) -> "InvoiceCreate":
        if not self.services and self.amount is None:
            raise ValueError("Specificare l'importo oppure almeno un servizio")
        ids = [line.service_id for line in self.services]
        if len(ids) != len(set(ids)):
            raise ValueError("Servizio ripetuto nella fattura")
        return self


class InvoiceRead(BaseModel):
    id: uuid.UUID
    number: str
    client_id: uuid.UUID = Field(..., serialization_alias="clientId")
    client_name: Optional[str] = Field(None, serialization_alias="clientName")
    service_id: Optional[uuid.UUID] = Field(None, serialization_alias="serviceId")
    service_name: Optional[str] = Field(None, serialization_alias="serviceName")
    amount: Decimal
    paid_amount: Decimal = Field(..., serialization_alias="paidAmount")
    balance: Decimal
    status: InvoiceStatus
    billing_month: date = Field(..., serialization_alias="billingMonth")
    category: str
    notes: Optional[str] = None
    created_at: datetime = Field(..., serialization_alias="createdAt")
    service_links: list[InvoiceServiceLineRead] = Field(
        default_factory=list,
        serialization_alias="services",
    )

    model_config = ConfigDict(from_attributes=True)


class InvoiceList(PageMeta):
    items: list[InvoiceRead] = Field(default_factory=list)


class InvoiceGenerateRequest(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)


class InvoiceGenerateResult(BaseModel):
    created: int
    skipped: int
    billing_month: date = Field(..., serialization_alias="billingMonth")


class PdfLinkResponse(BaseModel):
    url: str
    expires_at: datetime = Field(..., serialization_alias="expiresAt")


__all__ = [
    "InvoiceServiceLineCreate",
    "InvoiceServiceLineRead",
    "InvoiceCreate",
    "InvoiceRead",
    "InvoiceList",
    "InvoiceGenerateRequest",
    "InvoiceGenerateResult",
    "PdfLinkResponse",
]
