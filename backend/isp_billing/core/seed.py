"""
Caricamento dei dati iniziali
Progetto: ISP Billing (Gestionale ISP)

Crea, solo se mancanti:
- l'utente amministratore iniziale (da configurazione)
- i servizi di default del catalogo
- i conti bancari e i piani mostrati sulla landing page
- il tipo di cambio

Ogni sezione è idempotente: viene saltata se la tabella contiene già dati.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.config import settings
from isp_billing.core.security import hash_password
from isp_billing.models import BankAccount, LandingService, Service, Setting, User, UserRole
from isp_billing.models.expense import EXPENSE_CATEGORIES, EXPENSE_PAYMENT_METHODS
from isp_billing.models.inventory import EquipmentStatus
from isp_billing.models.setting import EXCHANGE_RATE_KEY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedData:
    """
    Dati iniziali e valori ammessi.

    Le righe da inserire sono dizionari di attributi del modello.
    """

    services: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    bank_accounts: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    landing_plans: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    expense_categories: tuple[str, ...] = EXPENSE_CATEGORIES
    expense_payment_methods: tuple[str, ...] = EXPENSE_PAYMENT_METHODS
    equipment_statuses: tuple[str, ...] = tuple(s.value for s in EquipmentStatus)


@lru_cache
def get_seed_data() -> SeedData:
    return SeedData(
        services=(
            {"name": "Servicio 1", "price": Decimal("920.00"), "category": "Internet",
             "description": "Internet residencial hasta 10Mbps"},
            {"name": "Servicio 2", "price": Decimal("1104.00"), "category": "Internet",
             "description": "Internet residencial hasta 10Mbps"},
            {"name": "Servicio 3", "price": Decimal("1288.00"), "category": "Internet",
             "description": "Internet residencial RE hasta 10Mbps"},
            {"name": "Especial", "price": Decimal("1000.00"), "category": "Internet",
             "description": "Plan especial hasta 10Mbps"},
        ),
        bank_accounts=(
            {"bank_name": "Banpro", "icon": "🏦", "account_type": "Córdobas", "currency": "C$",
             "account_number": "10020200333635", "display_order": 1},
            {"bank_name": "Banpro", "icon": "🏦", "account_type": "Dólares", "currency": "$",
             "account_number": "10020210146151", "display_order": 2},
            {"bank_name": "Banpro", "icon": "🏦", "account_type": "Billetera Móvil", "currency": "📱",
             "account_number": "89308058", "display_order": 3},
            {"bank_name": "Lafise", "icon": "🏛️", "account_type": "Córdobas", "currency": "C$",
             "account_number": "134098622", "display_order": 4},
            {"bank_name": "Lafise", "icon": "🏛️", "account_type": "Dólares", "currency": "$",
             "account_number": "131247706", "display_order": 5},
            {"bank_name": "BAC", "icon": "💳", "account_type": "Próximamente", "currency": "",
             "account_number": "", "message": "Próximamente Disponible", "display_order": 6},
        ),
        landing_plans=(
            {"title": "Plan de hasta 10Mbps", "price": Decimal("920.00"), "speed": "10Mbps",
             "icon": "📡", "display_order": 1,
             "description": "Servicio de Internet Residencial hasta 10Mbps."},
            {"title": "Plan de hasta 10Mbps", "price": Decimal("1104.00"), "speed": "10Mbps",
             "icon": "🌐", "display_order": 2,
             "description": "Servicio de Internet Residencial hasta 10Mbps"},
            {"title": "Plan de hasta 10Mbps", "price": Decimal("1288.00"), "speed": "10Mbps RE",
             "icon": "🚀", "display_order": 3,
             "description": "Servicio de Internet Residencial RE hasta 10Mbps"},
            {"title": "Plan de hasta 10Mbps", "price": Decimal("1000.00"), "speed": "10Mbps",
             "icon": "⚡", "tag": "ESPECIAL", "tag_color": "bg-green-500", "display_order": 4,
             "description": "Servicio de Internet Residencial hasta 10Mbps"},
            {"title": "Plan de hasta 20Mbps", "price": Decimal("1288.00"), "speed": "20Mbps RE",
             "icon": "🎄", "tag": "OFERTA DICIEMBRE", "tag_color": "bg-red-500", "display_order": 5,
             "featured": True,
             "description": "Servicio de Internet Residencial RE hasta 20Mbps"},
        ),
    )


class SeedLoader:
    """Applica SeedData a un database vuoto o parzialmente popolato."""

    def __init__(self, data: SeedData | None = None) -> None:
        self.data = data or get_seed_data()

    async def _is_empty(self, db: AsyncSession, model) -> bool:
        count = (await db.execute(select(func.count()).select_from(model))).scalar() or 0
        return count == 0

    async def seed_admin(self, db: AsyncSession) -> bool:
        if not await self._is_empty(db, User):
            return False
        db.add(
            User(
                username=settings.admin_username,
                hashed_password=hash_password(settings.admin_password),
                full_name=settings.admin_full_name,
                role=UserRole.ADMIN.value,
                is_active=True,
            )
        )
        logger.warning(
            "Creato l'utente amministratore '%s': cambiare la password al primo accesso",
            settings.admin_username,
        )
        return True

    async def _seed_rows(self, db: AsyncSession, model, rows: tuple[dict[str, Any], ...]) -> bool:
        if not rows or not await self._is_empty(db, model):
            return False
        for row in rows:
            db.add(model(**row, is_active=True))
        logger.info("Creati %s record iniziali in %s", len(rows), model.__tablename__)
        return True

    async def seed_exchange_rate(self, db: AsyncSession) -> bool:
        if await db.get(Setting, EXCHANGE_RATE_KEY) is not None:
            return False
        db.add(
            Setting(
                key=EXCHANGE_RATE_KEY,
                value=str(settings.default_exchange_rate),
                description="Córdobas per 1 dollaro",
            )
        )
        return True

    async def run(self, db: AsyncSession) -> dict[str, bool]:
        """
        Esegue tutte le sezioni in un'unica transazione.

        Returns:
            Dizionario sezione → True se ha inserito dati
        """
        applied = {
            "admin": await self.seed_admin(db),
            "services": await self._seed_rows(db, Service, self.data.services),
            "bank_accounts": await self._seed_rows(db, BankAccount, self.data.bank_accounts),
            "landing_plans": await self._seed_rows(db, LandingService, self.data.landing_plans),
            "exchange_rate": await self.seed_exchange_rate(db),
        }
        await db.commit()
        logger.info("Dati iniziali: %s", ", ".join(k for k, v in applied.items() if v) or "nessuna modifica")
        return applied
