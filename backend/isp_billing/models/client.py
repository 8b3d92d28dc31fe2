"""
Modello SQLAlchemy per l'entità Client
Progetto: ISP Billing (Gestionale ISP)

Anagrafica degli abbonati del provider.
"""


from __future__ import annotations
from typing import Optional, TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from isp_billing.models import Base
from isp_billing.models.mixins import TimestampMixin, UUIDMixin, SoftDeleteMixin

if TYPE_CHECKING:
    from isp_billing.models.catalog import ClientServiceSubscription
    from isp_billing.models.invoice import Invoice, Payment


class Client(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per l'anagrafica clienti.

    Attributes:
        code: Codice cliente univoco (es. CLI-001), usato anche per il login self-service
        name: Nome completo
        phone: Telefono
        id_number: Numero di cédula
        email: Indirizzo email
        invoice_count: Contatore denormalizzato delle fatture emesse
        is_active: Cliente attivo (i clienti disattivati non possono accedere)

    Relationships:
        invoices: Fatture del cliente
        payments: Pagamenti registrati
        subscriptions: Servizi sottoscritti
    """

    __tablename__ = "clients"

    # ------------------------------------------------------------
    # Colonne
    # ------------------------------------------------------------
    code: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        doc="Codice cliente univoco",
    )

    name: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        doc="Nome completo del cliente",
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        doc="Numero di telefono",
    )

    id_number: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        index=True,
        doc="Numero di cédula",
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        doc="Indirizzo email",
    )

    invoice_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Numero di fatture emesse (denormalizzato)",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice",
        back_populates="client",
        lazy="raise",
    )

    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="client",
        lazy="raise",
    )

    subscriptions: Mapped[List["ClientServiceSubscription"]] = relationship(
        "ClientServiceSubscription",
        back_populates="client",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_clients_name", "name"),
        CheckConstraint("invoice_count >= 0", name="ck_clients_invoice_count"),
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, code={self.code}, name={self.name})>"
