"""
Modelli SQLAlchemy per la Fatturazione
Progetto: ISP Billing (Gestionale ISP)

Contiene:
- Invoice: Fattura mensile di un cliente
- InvoiceServiceLink: Servizi fatturati (fatture con più servizi)
- Payment: Denaro ricevuto dal cliente
- PaymentInvoiceLink: Quota di un pagamento applicata a una fattura

Un pagamento non ha un riferimento diretto alla fattura: viene sempre
applicato tramite N >= 0 righe PaymentInvoiceLink (N = 1 nel caso comune).
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from isp_billing.models import Base
from isp_billing.models.mixins import TimestampMixin, UUIDMixin, utcnow

if TYPE_CHECKING:
    from isp_billing.models.catalog import Service
    from isp_billing.models.client import Client
    from isp_billing.models.user import User


ZERO = Decimal("0.00")


class InvoiceStatus(str, Enum):
    """Stato della fattura."""
    PENDING = "Pendiente"
    PAID = "Pagada"
    CANCELLED = "Cancelada"


class PaymentType(str, Enum):
    """Modalità di pagamento."""
    CASH = "Fisico"
    ELECTRONIC = "Electronico"
    MIXED = "Mixto"


class Currency(str, Enum):
    """Valuta del pagamento."""
    CORDOBAS = "C$"
    DOLLARS = "$"
    BOTH = "Ambos"


class Invoice(Base, UUIDMixin, TimestampMixin):
    """
    Modello per le fatture.

    Attributes:
        number: Numero fattura ({seq:04d}-{NomeCliente}-{MMYYYY})
        client_id: UUID del cliente
        service_id: Servizio principale fatturato (opzionale)
        amount: Importo totale
        status: Pendiente, Pagada o Cancelada
        billing_month: Primo giorno del mese fatturato
        category: Internet o Streaming
        pdf_path: Percorso dell'ultimo PDF archiviato (opzionale)
        notes: Note interne

    Relationships:
        client: Cliente intestatario
        service: Servizio principale
        service_links: Servizi fatturati
        payment_links: Quote di pagamento applicate

    Properties:
        paid_amount: Somma delle quote applicate
        balance: Saldo ancora dovuto, mai negativo
    """

    __tablename__ = "invoices"

    # ------------------------------------------------------------
    # Colonne Relazioni
    # ------------------------------------------------------------
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del cliente",
    )

    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="SET NULL"),
        nullable=True,
        doc="UUID del servizio principale fatturato",
    )

    # ------------------------------------------------------------
    # Colonne Dati
    # ------------------------------------------------------------
    number: Mapped[str] = mapped_column(
        String(120),
        unique=True,
        nullable=False,
        doc="Numero fattura",
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        doc="Importo totale della fattura",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoiceStatus.PENDING.value,
        doc="Stato della fattura",
    )

    billing_month: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="Mese di fatturazione (primo giorno del mese)",
    )

    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Categoria: Internet o Streaming",
    )

    pdf_path: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Percorso del PDF archiviato",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="invoices",
        lazy="selectin",
    )

    service: Mapped[Optional["Service"]] = relationship("Service", lazy="selectin")

    service_links: Mapped[List["InvoiceServiceLink"]] = relationship(
        "InvoiceServiceLink",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    payment_links: Mapped[List["PaymentInvoiceLink"]] = relationship(
        "PaymentInvoiceLink",
        back_populates="invoice",
        lazy="selectin",
    )

    # ------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------
    @property
    def paid_amount(self) -> Decimal:
        """Somma degli importi applicati da tutti i pagamenti."""
        return sum((link.amount_applied for link in self.payment_links), ZERO)

    @property
    def balance(self) -> Decimal:
        """Saldo dovuto: amount - pagato, limitato a zero."""
        return max(ZERO, self.amount - self.paid_amount)

    @property
    def client_name(self) -> Optional[str]:
        return self.client.name if self.client is not None else None

    @property
    def service_name(self) -> Optional[str]:
        return self.service.name if self.service is not None else None

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_invoices_amount_positive"),
        CheckConstraint(
            "status IN ('Pendiente', 'Pagada', 'Cancelada')",
            name="ck_invoices_status",
        ),
        Index("ix_invoices_client_month", "client_id", "billing_month"),
        Index("ix_invoices_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(number={self.number}, amount={self.amount}, status={self.status})>"


class InvoiceServiceLink(Base, UUIDMixin):
    """Servizio incluso in una fattura, con quantità e importo di riga."""

    __tablename__ = "invoice_services"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )

    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        doc="Importo di riga (prezzo x quantità)",
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="service_links")
    service: Mapped["Service"] = relationship("Service", lazy="selectin")

    __table_args__ = (
        Index("ix_invoice_services_unique", "invoice_id", "service_id", unique=True),
        CheckConstraint("quantity >= 1", name="ck_invoice_services_quantity"),
    )


class Payment(Base, UUIDMixin, TimestampMixin):
    """
    Modello per i pagamenti.

    Un pagamento è immutabile una volta registrato: si può solo eliminare.
    Gli importi in valuta mista vengono memorizzati così come ricevuti,
    senza conversione automatica in un totale canonico.

    Attributes:
        client_id: UUID del cliente che ha pagato
        amount: Importo totale del pagamento
        currency: C$, $ o Ambos
        payment_type: Fisico, Electronico o Mixto
        bank: Banca (pagamenti elettronici)
        account_type: Tipo di conto (Cuenta $, Cuenta C$, Billetera movil)
        cash_cordobas / cash_dollars: Parte in contanti per valuta
        electronic_cordobas / electronic_dollars: Parte elettronica per valuta
        amount_received: Contante consegnato dal cliente
        change_given: Resto restituito
        exchange_rate: Tipo di cambio applicato
        payment_date: Data/ora del pagamento
        notes: Osservazioni
        user_id: Operatore che ha registrato il pagamento
    """

    __tablename__ = "payments"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del cliente",
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        doc="Importo totale del pagamento",
    )

    currency: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=Currency.CORDOBAS.value,
    )

    payment_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentType.CASH.value,
    )

    bank: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    account_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # ------------------------------------------------------------
    # Importi in valuta mista
    # ------------------------------------------------------------
    cash_cordobas: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    cash_dollars: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    electronic_cordobas: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    electronic_dollars: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    amount_received: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        doc="Contante ricevuto",
    )

    change_given: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        doc="Resto consegnato",
    )

    exchange_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 4),
        nullable=True,
        doc="Tipo di cambio C$ per US$",
    )

    payment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        doc="Data/ora del pagamento",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        doc="Operatore che ha registrato il pagamento",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="payments",
        lazy="selectin",
    )

    user: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    links: Mapped[List["PaymentInvoiceLink"]] = relationship(
        "PaymentInvoiceLink",
        back_populates="payment",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="[PaymentInvoiceLink.position, PaymentInvoiceLink.created_at]",
    )

    @property
    def applied_amount(self) -> Decimal:
        """Parte del pagamento applicata a fatture."""
        return sum((link.amount_applied for link in self.links), ZERO)

    @property
    def client_name(self) -> Optional[str]:
        return self.client.name if self.client is not None else None

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        Index("ix_payments_client", "client_id"),
        Index("ix_payments_date", "payment_date"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, type={self.payment_type})>"


class PaymentInvoiceLink(Base, UUIDMixin, TimestampMixin):
    """
    Quota di un pagamento applicata a una fattura.

    Esempio:
        Pagamento P1 di C$ 2000 applicato così:
        - C$ 920 → Fattura A
        - C$ 1080 → Fattura B
    """

    __tablename__ = "payment_invoices"

    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
        doc="UUID del pagamento sorgente",
    )

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID della fattura destinazione",
    )

    amount_applied: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        doc="Importo applicato a questa fattura",
    )

    position: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        doc="Ordine della fattura nel pagamento",
    )

    payment: Mapped["Payment"] = relationship("Payment", back_populates="links")

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="payment_links",
        lazy="selectin",
    )

    @property
    def invoice_number(self) -> Optional[str]:
        return self.invoice.number if self.invoice is not None else None

    __table_args__ = (
        Index("ix_payment_invoices_unique", "payment_id", "invoice_id", unique=True),
        Index("ix_payment_invoices_invoice", "invoice_id"),
        CheckConstraint("amount_applied > 0", name="ck_payment_invoices_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<PaymentInvoiceLink(payment={self.payment_id}, invoice={self.invoice_id}, amount={self.amount_applied})>"
