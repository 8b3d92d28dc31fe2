"""
Modello SQLAlchemy per le Spese (egresos)
Progetto: ISP Billing (Gestionale ISP)
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from isp_billing.models import Base
from isp_billing.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from isp_billing.models.user import User


EXPENSE_CATEGORIES = (
    "Pago de Internet",
    "Sueldos y Salarios",
    "Mantenimiento de Equipos",
    "Compra de Equipos",
    "Compra de Materiales",
    "Servicios Públicos",
    "Alquiler",
    "Transporte",
    "Publicidad",
    "Otros",
)

EXPENSE_PAYMENT_METHODS = (
    "Efectivo",
    "Transferencia",
    "Cheque",
    "Tarjeta de Crédito",
    "Tarjeta de Débito",
)


class Expense(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Spesa sostenuta dal provider.

    Attributes:
        code: Codice progressivo EGR-0001
        description: Descrizione
        category: Una di EXPENSE_CATEGORIES
        amount: Importo (> 0)
        expense_date: Data della spesa
        invoice_number: Numero della fattura del fornitore
        supplier: Fornitore
        payment_method: Una di EXPENSE_PAYMENT_METHODS
        notes: Osservazioni
        user_id: Operatore che ha registrato la spesa
        is_active: False = eliminata (soft delete)
    """

    __tablename__ = "expenses"

    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)

    description: Mapped[str] = mapped_column(String(255), nullable=False)

    category: Mapped[str] = mapped_column(String(50), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    expense_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)

    invoice_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    supplier: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)

    payment_method: Mapped[str] = mapped_column(String(30), nullable=False, default="Efectivo")

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    user: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        Index("ix_expenses_date", "expense_date"),
        Index("ix_expenses_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Expense(code={self.code}, amount={self.amount})>"
