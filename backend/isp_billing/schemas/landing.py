"""
Schemas Pydantic per la Landing Page pubblica
Progetto: ISP Billing (Gestionale ISP)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from isp_billing.models.landing import ContactStatus
from isp_billing.schemas.common import PageMeta


# -------------------------------------------------------------------
# Piani pubblicati
# -------------------------------------------------------------------

class LandingServiceCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    speed: Optional[str] = Field(None, max_length=50)
    tag: Optional[str] = Field(None, max_length=50)
    tag_color: Optional[str] = Field(None, max_length=20)
    icon: Optional[str] = Field(None, max_length=100)
    features: list[str] = Field(default_factory=list)
    display_order: int = 0
    featured: bool = False


class LandingServiceUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    speed: Optional[str] = Field(None, max_length=50)
    tag: Optional[str] = Field(None, max_length=50)
    tag_color: Optional[str] = Field(None, max_length=20)
    icon: Optional[str] = Field(None, max_length=100)
    features: Optional[list[str]] = None
    display_order: Optional[int] = None
    featured: Optional[bool] = None
    is_active: Optional[bool] = None


class LandingServiceRead(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    price: Decimal
    speed: Optional[str] = None
    tag: Optional[str] = None
    tag_color: Optional[str] = Field(None, serialization_alias="tagColor")
    icon: Optional[str] = None
    features: list[str] = Field(default_factory=list)
    display_order: int = Field(..., serialization_alias="order")
    featured: bool

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Conti bancari
# -------------------------------------------------------------------

class BankAccountCreate(BaseModel):
    bank_name: str = Field(..., min_length=1, max_length=50)
    icon: Optional[str] = Field(None, max_length=100)
    account_type: str = Field(..., min_length=1, max_length=50)
    currency: str = Field(..., min_length=1, max_length=10)
    account_number: str = Field(..., min_length=1, max_length=50)
    holder_name: Optional[str] = Field(None, max_length=150)
    message: Optional[str] = None
    display_order: int = 0


class BankAccountUpdate(BaseModel):
    bank_name: Optional[str] = Field(None, min_length=1, max_length=50)
    icon: Optional[str] = Field(None, max_length=100)
    account_type: Optional[str] = Field(None, min_length=1, max_length=50)
    currency: Optional[str] = Field(None, min_length=1, max_length=10)
    account_number: Optional[str] = Field(None, min_length=1, max_length=50)
    holder_name: Optional[str] = Field(None, max_length=150)
    message: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class BankAccountRead(BaseModel):
    id: uuid.UUID
    bank_name: str = Field(..., serialization_alias="bankName")
    icon: Optional[str] = None
    account_type: str = Field(..., serialization_alias="accountType")
    currency: str
    account_number: str = Field(..., serialization_alias="accountNumber")
    holder_name: Optional[str] = Field(None, serialization_alias="holderName")
    message: Optional[str] = None
    display_order: int = Field(..., serialization_alias="order")

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Informazioni aziendali e contatti
# -------------------------------------------------------------------

class CompanyInfo(BaseModel):
    name: str
    address: str
    phone: str
    email: str
    whatsapp: str
    hours: str


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    message: str = Field(..., min_length=1, max_length=2000)


class ContactRead(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    message: str
    status: str
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")
    read_at: Optional[datetime.datetime] = Field(None, serialization_alias="readAt")
    answered_at: Optional[datetime.datetime] = Field(None, serialization_alias="answeredAt")

    model_config = ConfigDict(from_attributes=True)


class ContactList(PageMeta):
    items: list[ContactRead] = Field(default_factory=list)


class ContactStatusUpdate(BaseModel):
    status: ContactStatus


__all__ = [
    "LandingServiceCreate",
    "LandingServiceUpdate",
    "LandingServiceRead",
    "BankAccountCreate",
    "BankAccountUpdate",
    "BankAccountRead",
    "CompanyInfo",
    "ContactCreate",
    "ContactRead",
    "ContactList",
    "ContactStatusUpdate",
]
