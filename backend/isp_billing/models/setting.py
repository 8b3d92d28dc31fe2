"""
Modello SQLAlchemy per le impostazioni chiave/valore
Progetto: ISP Billing (Gestionale ISP)
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from isp_billing.models import Base
from isp_billing.models.mixins import TimestampMixin


# Chiavi note
EXCHANGE_RATE_KEY = "exchange_rate"


class Setting(Base, TimestampMixin):
    """Impostazione modificabile a runtime (es. tipo di cambio)."""

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Setting({self.key}={self.value!r})>"
