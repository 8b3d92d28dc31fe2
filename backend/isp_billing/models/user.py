"""
Modello SQLAlchemy per l'entità User
Progetto: ISP Billing (Gestionale ISP)

Personale che accede all'app mobile e al pannello web.
"""

from __future__ import annotations
from enum import Enum

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from isp_billing.models import Base
from isp_billing.models.mixins import TimestampMixin, UUIDMixin


class UserRole(str, Enum):
    """Ruoli del personale."""
    ADMIN = "Administrador"
    NORMAL = "Normal"
    CASHIER = "Caja"


# Ruolo dei token emessi ai clienti (non corrisponde a un User)
CLIENT_ROLE = "Cliente"


class User(Base, UUIDMixin, TimestampMixin):
    """
    Modello per gli utenti del personale.

    Attributes:
        username: Nome utente univoco per il login
        hashed_password: Hash bcrypt (o hash SHA-256 legacy, convertito al login)
        full_name: Nome completo mostrato nei token e nel pannello
        role: Administrador, Normal o Caja
        is_active: Utente abilitato al login
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        doc="Nome utente univoco",
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Password hashata",
    )

    full_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Nome completo dell'utente",
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.NORMAL.value,
        doc="Ruolo dell'utente",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Indica se l'utente è attivo",
    )

    __table_args__ = (
        Index("ix_users_role", "role"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
