"""
Modelli SQLAlchemy per i contenuti della Landing Page
Progetto: ISP Billing (Gestionale ISP)

Contiene:
- BankAccount: Conti bancari mostrati ai clienti per i pagamenti
- LandingService: Piani pubblicizzati sulla landing page
- ContactMessage: Messaggi inviati dal modulo di contatto
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from isp_billing.models import Base
from isp_billing.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin


class ContactStatus(str, Enum):
    NEW = "Nuevo"
    READ = "Leído"
    ANSWERED = "Respondido"


class BankAccount(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """Conto bancario pubblicato come metodo di pagamento."""

    __tablename__ = "bank_accounts"

    bank_name: Mapped[str] = mapped_column(String(50), nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    account_type: Mapped[str] = mapped_column(String(50), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False)
    account_number: Mapped[str] = mapped_column(String(50), nullable=False)
    holder_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<BankAccount(bank={self.bank_name}, number={self.account_number})>"


class LandingService(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """Piano pubblicizzato sulla landing page."""

    __tablename__ = "landing_services"

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    speed: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tag: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tag_color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    features: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<LandingService(title={self.title}, price={self.price})>"


class ContactMessage(Base, UUIDMixin, TimestampMixin):
    """Messaggio ricevuto dal modulo di contatto pubblico."""

    __tablename__ = "contact_messages"

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ContactStatus.NEW.value)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    answered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
