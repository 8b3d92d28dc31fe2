"""
Modelli SQLAlchemy per il Catalogo Servizi
Progetto: ISP Billing (Gestionale ISP)

Contiene:
- Service: Piani e servizi vendibili (Internet, Streaming)
- ClientServiceSubscription: Servizi sottoscritti da un cliente
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from isp_billing.models import Base
from isp_billing.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from isp_billing.models.client import Client


class ServiceCategory(str, Enum):
    """Categoria di servizio, usata anche per le fatture."""
    INTERNET = "Internet"
    STREAMING = "Streaming"


class Service(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Servizio del catalogo.

    Attributes:
        name: Nome del servizio (es. "Servicio 1")
        description: Descrizione libera
        price: Prezzo mensile in córdobas
        category: Internet o Streaming
        is_active: Servizio vendibile
    """

    __tablename__ = "services"

    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        doc="Nome del servizio",
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Descrizione del servizio",
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        doc="Prezzo mensile",
    )

    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ServiceCategory.INTERNET.value,
        doc="Categoria: Internet o Streaming",
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_services_price_positive"),
        Index("ix_services_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Service(name={self.name!r}, price={self.price})>"


class ClientServiceSubscription(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Servizio sottoscritto da un cliente.

    La generazione mensile delle fatture crea una fattura per ogni
    abbonamento attivo di ogni cliente attivo.
    """

    __tablename__ = "client_services"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        doc="UUID del cliente",
    )

    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del servizio",
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Quantità (es. numero di schermi streaming)",
    )

    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        default=date.today,
        doc="Inizio abbonamento",
    )

    end_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        doc="Fine abbonamento (None = in corso)",
    )

    client: Mapped["Client"] = relationship("Client", back_populates="subscriptions")
    service: Mapped["Service"] = relationship("Service", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_client_services_quantity"),
        Index("ix_client_services_client", "client_id"),
    )

    def __repr__(self) -> str:
        return f"<ClientServiceSubscription(client={self.client_id}, service={self.service_id})>"
