"""
Service per le impostazioni chiave/valore
Progetto: ISP Billing (Gestionale ISP)
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.config import settings
from isp_billing.core.exceptions import BusinessValidationError
from isp_billing.models.setting import EXCHANGE_RATE_KEY, Setting

logger = logging.getLogger(__name__)


class SettingsService:
    """Lettura e scrittura delle impostazioni modificabili a runtime."""

    async def get_value(self, db: AsyncSession, key: str) -> Optional[Setting]:
        return await db.get(Setting, key)

    async def set_value(
        self,
        db: AsyncSession,
        key: str,
        value: str,
        description: Optional[str] = None,
    ) -> Setting:
        setting = await db.get(Setting, key)
        if setting is None:
            setting = Setting(key=key, value=value, description=description)
            db.add(setting)
        else:
            setting.value = value
            if description is not None:
                setting.description = description
        await db.commit()
        await db.refresh(setting)
        logger.info("Impostazione %s aggiornata a %s", key, value)
        return setting

    async def get_exchange_rate(self, db: AsyncSession) -> tuple[Decimal, Optional[datetime]]:
        """
        Tipo di cambio corrente (C$ per 1 US$).

        Se l'impostazione manca o non è un numero valido si usa il
        valore di default della configurazione.
        """
        setting = await self.get_value(db, EXCHANGE_RATE_KEY)
        if setting is None:
            return settings.default_exchange_rate, None
        try:
            return Decimal(setting.value), setting.updated_at
        except InvalidOperation:
            logger.warning("Tipo di cambio non valido in tabella: %r", setting.value)
            return settings.default_exchange_rate, setting.updated_at

    async def set_exchange_rate(self, db: AsyncSession, rate: Decimal) -> Setting:
        if rate <= 0:
            raise BusinessValidationError("Il tipo di cambio deve essere positivo")
        return await self.set_value(
            db,
            EXCHANGE_RATE_KEY,
            str(rate),
            description="Córdobas per 1 dollaro",
        )
