"""
Schemas Pydantic per le Spese
Progetto: ISP Billing (Gestionale ISP)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from isp_billing.models.expense import EXPENSE_CATEGORIES, EXPENSE_PAYMENT_METHODS
from isp_billing.schemas.common import PageMeta


def _check_category(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in EXPENSE_CATEGORIES:
        raise ValueError(f"Categoria non valida: {v}")
    return v


def _check_payment_method(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in EXPENSE_PAYMENT_METHODS:
        raise ValueError(f"Metodo di pagamento non valido: {v}")
    return v


class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=255)
    category: str
    amount: Decimal = Field(..., gt=0)
    expense_date: Optional[datetime.date] = None
    invoice_number: Optional[str] = Field(None, max_length=50)
    supplier: Optional[str] = Field(None, max_length=150)
    payment_method: str = "Efectivo"
    notes: Optional[str] = None

    @field_validator("category")
    @classmethod
    def check_category(cls, v: Optional[str]) -> Optional[str]:
        return _check_category(v)

    @field_validator("payment_method")
    @classmethod
    def check_payment_method(cls, v: Optional[str]) -> Optional[str]:
        return _check_payment_method(v)


class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = None
    amount: Optional[Decimal] = Field(None, gt=0)
    expense_date: Optional[datetime.date] = None
    invoice_number: Optional[str] = Field(None, max_length=50)
    supplier: Optional[str] = Field(None, max_length=150)
    payment_method: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("category")
    @classmethod
    def check_category(cls, v: Optional[str]) -> Optional[str]:
        return _check_category(v)

    @field_validator("payment_method")
    @classmethod
    def check_payment_method(cls, v: Optional[str]) -> Optional[str]:
        return _check_payment_method(v)


class ExpenseRead(BaseModel):
    id: uuid.UUID
    code: str
    description: str
    category: str
    amount: Decimal
    expense_date: datetime.date = Field(..., serialization_alias="expenseDate")
    invoice_number: Optional[str] = Field(None, serialization_alias="invoiceNumber")
    supplier: Optional[str] = None
    payment_method: str = Field(..., serialization_alias="paymentMethod")
    notes: Optional[str] = None
    is_active: bool = Field(..., serialization_alias="isActive")
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")

    model_config = ConfigDict(from_attributes=True)


class ExpenseList(PageMeta):
    items: list[ExpenseRead] = Field(default_factory=list)


class ExpenseCategoryTotal(BaseModel):
    category: str
    count: int
    total: Decimal


class ExpenseTotals(BaseModel):
    start: datetime.date
    end: datetime.date
    total: Decimal
    by_category: list[ExpenseCategoryTotal] = Field(default_factory=list, serialization_alias="byCategory")


__all__ = [
    "ExpenseCreate",
    "ExpenseUpdate",
    "ExpenseRead",
    "ExpenseList",
    "ExpenseCategoryTotal",
    "ExpenseTotals",
]
