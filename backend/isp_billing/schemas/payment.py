"""
Schemas Pydantic per i Pagamenti
Progetto: ISP Billing (Gestionale ISP)

Contiene:
- PaymentDetails: campi comuni (valuta, tipo, banca, importi misti)
- PaymentSingleCreate / PaymentMultiCreate: registrazione su una o più fatture
- PaymentRead / PaymentList
- Riepiloghi giornalieri, di periodo e statistiche
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from isp_billing.models.invoice import Currency, PaymentType
from isp_billing.schemas.common import PageMeta
from isp_billing.schemas.invoice import InvoiceRead

BANKS = ("Banpro", "Lafise", "BAC", "Ficohsa", "BDF")
ACCOUNT_TYPES = ("Cuenta $", "Cuenta C$", "Billetera movil")


# -------------------------------------------------------------------
# Creazione
# -------------------------------------------------------------------

class PaymentDetails(BaseModel):
    """Campi comuni ai pagamenti su una o più fatture."""

    currency: Currency = Currency.CORDOBAS
    payment_type: PaymentType = PaymentType.CASH
    bank: Optional[str] = Field(None, max_length=50)
    account_type: Optional[str] = Field(None, max_length=50)
    cash_cordobas: Optional[Decimal] = Field(None, ge=0)
    cash_dollars: Optional[Decimal] = Field(None, ge=0)
    electronic_cordobas: Optional[Decimal] = Field(None, ge=0)
    electronic_dollars: Optional[Decimal] = Field(None, ge=0)
    amount_received: Optional[Decimal] = Field(None, ge=0, description="Contante consegnato")
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_bank(self):
        if self.payment_type in (PaymentType.ELECTRONIC, PaymentType.MIXED) and not self.bank:
            raise ValueError("La banca è obbligatoria per i pagamenti elettronici")
        if self.bank and self.bank not in BANKS:
            raise ValueError(f"Banca non riconosciuta: {self.bank}")
        if self.account_type and self.account_type not in ACCOUNT_TYPES:
            raise ValueError(f"Tipo di conto non riconosciuto: {self.account_type}")
        return self


class PaymentSingleCreate(PaymentDetails):
    """Pagamento di una singola fattura. Senza amount si salda il residuo."""

    invoice_id: uuid.UUID
    amount: Optional[Decimal] = Field(None, description="Importo; <= 0 o assente = saldo")


class PaymentMultiCreate(PaymentDetails):
    """
    Pagamento di più fatture dello stesso cliente.

    allocations associa a ogni fattura l'importo applicato; se assente il
    totale viene distribuito sulle fatture nell'ordine indicato.
    """

    invoice_ids: list[uuid.UUID] = Field(default_factory=list)
    total: Optional[Decimal] = Field(None, description="Totale; <= 0 o assente = somma dei saldi")
    allocations: Optional[dict[uuid.UUID, Decimal]] = None


# -------------------------------------------------------------------
# Lettura
# -------------------------------------------------------------------

class PaymentLinkRead(BaseModel):
    invoice_id: uuid.UUID = Field(..., serialization_alias="invoiceId")
    invoice_number: Optional[str] = Field(None, serialization_alias="invoiceNumber")
    amount_applied: Decimal = Field(..., serialization_alias="amountApplied")

    model_config = ConfigDict(from_attributes=True)


class PaymentRead(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID = Field(..., serialization_alias="clientId")
    client_name: Optional[str] = Field(None, serialization_alias="clientName")
    amount: Decimal
    currency: str
    payment_type: str = Field(..., serialization_alias="paymentType")
    bank: Optional[str] = None
    account_type: Optional[str] = Field(None, serialization_alias="accountType")
    cash_cordobas: Optional[Decimal] = Field(None, serialization_alias="cashCordobas")
    cash_dollars: Optional[Decimal] = Field(None, serialization_alias="cashDollars")
    electronic_cordobas: Optional[Decimal] = Field(None, serialization_alias="electronicCordobas")
    electronic_dollars: Optional[Decimal] = Field(None, serialization_alias="electronicDollars")
    amount_received: Optional[Decimal] = Field(None, serialization_alias="amountReceived")
    change_given: Optional[Decimal] = Field(None, serialization_alias="changeGiven")
    exchange_rate: Optional[Decimal] = Field(None, serialization_alias="exchangeRate")
    payment_date: datetime = Field(..., serialization_alias="paymentDate")
    notes: Optional[str] = None
    applied_amount: Decimal = Field(..., serialization_alias="appliedAmount")
    links: list[PaymentLinkRead] = Field(default_factory=list, serialization_alias="invoices")

    model_config = ConfigDict(from_attributes=True)


class PaymentList(PageMeta):
    items: list[PaymentRead] = Field(default_factory=list)


class PaymentDeleteMany(BaseModel):
    ids: list[uuid.UUID] = Field(..., min_length=1)


class PaymentDeleteManyResult(BaseModel):
    deleted: int
    not_found: int = Field(..., serialization_alias="notFound")


# -------------------------------------------------------------------
# Riepiloghi
# -------------------------------------------------------------------

class AmountBreakdown(BaseModel):
    """Conteggio e totale per una chiave di raggruppamento."""

    key: str
    count: int
    total: Decimal


class DaySummary(BaseModel):
    day: date
    count: int
    total: Decimal
    by_type: list[AmountBreakdown] = Field(default_factory=list, serialization_alias="byType")
    by_bank: list[AmountBreakdown] = Field(default_factory=list, serialization_alias="byBank")


class DailyTotal(BaseModel):
    day: date
    count: int
    total: Decimal


class PeriodSummary(BaseModel):
    start: date
    end: date
    count: int
    total: Decimal
    average: Decimal
    by_type: list[AmountBreakdown] = Field(default_factory=list, serialization_alias="byType")
    per_day: list[DailyTotal] = Field(default_factory=list, serialization_alias="perDay")


class IncomeTotals(BaseModel):
    total: Decimal
    this_month: Decimal = Field(..., serialization_alias="thisMonth")
    today: Decimal


class PaymentStatistics(BaseModel):
    count: int
    total: Decimal
    average: Decimal
    largest: Decimal
    first_payment: Optional[datetime] = Field(None, serialization_alias="firstPayment")
    last_payment: Optional[datetime] = Field(None, serialization_alias="lastPayment")
    by_type: list[AmountBreakdown] = Field(default_factory=list, serialization_alias="byType")
    by_currency: list[AmountBreakdown] = Field(default_factory=list, serialization_alias="byCurrency")


class ExchangeRateRead(BaseModel):
    rate: Decimal
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")


class ExchangeRateUpdate(BaseModel):
    rate: Decimal = Field(..., gt=0)


class CurrencyConversion(BaseModel):
    amount: Decimal
    source: Currency = Field(..., serialization_alias="from")
    target: Currency = Field(..., serialization_alias="to")
    rate: Decimal
    result: Decimal


# -------------------------------------------------------------------
# Fatture di un cliente con saldi
# -------------------------------------------------------------------

class ClientBalanceSummary(BaseModel):
    invoice_count: int = Field(..., serialization_alias="invoiceCount")
    pending_count: int = Field(..., serialization_alias="pendingCount")
    total_invoiced: Decimal = Field(..., serialization_alias="totalInvoiced")
    total_paid: Decimal = Field(..., serialization_alias="totalPaid")
    pending_balance: Decimal = Field(..., serialization_alias="pendingBalance")


class ClientInvoicesWithBalance(BaseModel):
    client_id: uuid.UUID = Field(..., serialization_alias="clientId")
    client_name: str = Field(..., serialization_alias="clientName")
    invoices: list[InvoiceRead]
    summary: ClientBalanceSummary


__all__ = [
    "BANKS",
    "ACCOUNT_TYPES",
    "PaymentDetails",
    "PaymentSingleCreate",
    "PaymentMultiCreate",
    "PaymentLinkRead",
    "PaymentRead",
    "PaymentList",
    "PaymentDeleteMany",
    "PaymentDeleteManyResult",
    "AmountBreakdown",
    "DaySummary",
    "DailyTotal",
    "PeriodSummary",
    "IncomeTotals",
    "PaymentStatistics",
    "ExchangeRateRead",
    "ExchangeRateUpdate",
    "CurrencyConversion",
    "ClientBalanceSummary",
    "ClientInvoicesWithBalance",
]
