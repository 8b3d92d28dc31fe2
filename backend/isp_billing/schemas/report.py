"""
Schemas Pydantic per il Report di periodo (entrate/uscite)
Progetto: ISP Billing (Gestionale ISP)
"""

import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ReportInvoices(BaseModel):
    generated: int
    paid: int
    pending: int
    internet: int
    streaming: int
    pending_internet: Decimal = Field(..., serialization_alias="pendingInternet")
    pending_streaming: Decimal = Field(..., serialization_alias="pendingStreaming")


class ReportPayments(BaseModel):
    count: int
    total: Decimal
    internet: Decimal
    streaming: Decimal


class ReportExpenses(BaseModel):
    count: int
    total: Decimal


class ReportClients(BaseModel):
    new: int
    active: int


class ReportComparison(BaseModel):
    """Confronto con il periodo precedente della stessa durata."""

    previous_start: datetime.date = Field(..., serialization_alias="previousStart")
    previous_end: datetime.date = Field(..., serialization_alias="previousEnd")
    previous_income: Decimal = Field(..., serialization_alias="previousIncome")
    previous_expenses: Decimal = Field(..., serialization_alias="previousExpenses")
    income_difference: Decimal = Field(..., serialization_alias="incomeDifference")
    expense_difference: Decimal = Field(..., serialization_alias="expenseDifference")
    # None se il periodo precedente non ha importi
    income_variation: Optional[Decimal] = Field(None, serialization_alias="incomeVariation")
    expense_variation: Optional[Decimal] = Field(None, serialization_alias="expenseVariation")


class PeriodReport(BaseModel):
    start: datetime.date
    end: datetime.date
    invoices: ReportInvoices
    payments: ReportPayments
    expenses: ReportExpenses
    clients: ReportClients
    total_income: Decimal = Field(..., serialization_alias="totalIncome")
    balance: Decimal
    comparison: ReportComparison
