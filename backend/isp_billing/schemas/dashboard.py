"""
Schemas Pydantic per le Dashboard
Progetto: ISP Billing (Gestionale ISP)
"""

import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from isp_billing.schemas.invoice import InvoiceRead
from isp_billing.schemas.payment import AmountBreakdown, DailyTotal, PaymentRead


class ClientCounts(BaseModel):
    total: int
    active: int
    new_this_month: int = Field(..., serialization_alias="newThisMonth")


class InvoiceCounts(BaseModel):
    total: int
    pending: int
    paid: int
    cancelled: int
    pending_balance: Decimal = Field(..., serialization_alias="pendingBalance")


class IncomeOverview(BaseModel):
    total: Decimal
    this_month: Decimal = Field(..., serialization_alias="thisMonth")
    today: Decimal


class ExpenseOverview(BaseModel):
    total: Decimal
    this_month: Decimal = Field(..., serialization_alias="thisMonth")


class MonthBreakdown(BaseModel):
    """Dettaglio di un mese: fatture per categoria, pagamenti per tipo, incasso giornaliero."""

    month: int
    year: int
    invoices_by_category: list[AmountBreakdown] = Field(
        default_factory=list, serialization_alias="invoicesByCategory"
    )
    payments_by_type: list[AmountBreakdown] = Field(
        default_factory=list, serialization_alias="paymentsByType"
    )
    income_per_day: list[DailyTotal] = Field(default_factory=list, serialization_alias="incomePerDay")


class DashboardSummary(BaseModel):
    clients: ClientCounts
    invoices: InvoiceCounts
    income: IncomeOverview
    expenses: ExpenseOverview
    month: MonthBreakdown


class ClientDashboard(BaseModel):
    """Riepilogo self-service del cliente."""

    pending_balance: Decimal = Field(..., serialization_alias="pendingBalance")
    pending_count: int = Field(..., serialization_alias="pendingCount")
    total_invoices: int = Field(..., serialization_alias="totalInvoices")
    total_paid: Decimal = Field(..., serialization_alias="totalPaid")
    last_invoice: Optional[InvoiceRead] = Field(None, serialization_alias="lastInvoice")
    last_payment: Optional[PaymentRead] = Field(None, serialization_alias="lastPayment")
    generated_at: datetime.datetime = Field(..., serialization_alias="generatedAt")


__all__ = [
    "ClientCounts",
    "InvoiceCounts",
    "IncomeOverview",
    "ExpenseOverview",
    "MonthBreakdown",
    "DashboardSummary",
    "ClientDashboard",
]
