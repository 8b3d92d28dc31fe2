"""
Service per i contenuti della Landing Page
Progetto: ISP Billing (Gestionale ISP)

Piani pubblicati, conti bancari per i pagamenti, informazioni
aziendali e messaggi di contatto.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.config import settings
from isp_billing.core.exceptions import NotFoundError
from isp_billing.models import BankAccount, ContactMessage, ContactStatus, LandingService
from isp_billing.models.mixins import utcnow
from isp_billing.schemas.landing import (
    BankAccountCreate,
    BankAccountUpdate,
    CompanyInfo,
    ContactCreate,
    LandingServiceCreate,
    LandingServiceUpdate,
)

logger = logging.getLogger(__name__)


class LandingContentService:
    """Gestione dei contenuti pubblici e dei messaggi di contatto."""

    # ------------------------------------------------------------
    # Piani
    # ------------------------------------------------------------
    async def list_plans(self, db: AsyncSession, only_active: bool = True) -> list[LandingService]:
        query = select(LandingService).order_by(
            LandingService.display_order.asc(), LandingService.title.asc()
        )
        if only_active:
            query = query.where(LandingService.is_active.is_(True))
        return list((await db.execute(query)).scalars().all())

    async def get_plan(self, db: AsyncSession, plan_id: uuid.UUID) -> LandingService:
        plan = await db.get(LandingService, plan_id)
        if plan is None:
            raise NotFoundError(f"Piano {plan_id} non trovato")
        return plan

    async def create_plan(self, db: AsyncSession, data: LandingServiceCreate) -> LandingService:
        plan = LandingService(**data.model_dump(), is_active=True)
        db.add(plan)
        await db.commit()
        await db.refresh(plan)
        logger.info("Creato piano landing %s", plan.title)
        return plan

    async def update_plan(
        self, db: AsyncSession, plan_id: uuid.UUID, data: LandingServiceUpdate
    ) -> LandingService:
        plan = await self.get_plan(db, plan_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(plan, field, value)
        await db.commit()
        await db.refresh(plan)
        return plan

    async def delete_plan(self, db: AsyncSession, plan_id: uuid.UUID) -> None:
        plan = await self.get_plan(db, plan_id)
        await db.delete(plan)
        await db.commit()
        logger.info("Eliminato piano landing %s", plan.title)

    # ------------------------------------------------------------
    # Conti bancari
    # ------------------------------------------------------------
    async def list_bank_accounts(self, db: AsyncSession, only_active: bool = True) -> list[BankAccount]:
        query = select(BankAccount).order_by(BankAccount.display_order.asc(), BankAccount.bank_name.asc())
        if only_active:
            query = query.where(BankAccount.is_active.is_(True))
        return list((await db.execute(query)).scalars().all())

    async def get_bank_account(self, db: AsyncSession, account_id: uuid.UUID) -> BankAccount:
        account = await db.get(BankAccount, account_id)
        if account is None:
            raise NotFoundError(f"Conto {account_id} non trovato")
        return account

    async def create_bank_account(self, db: AsyncSession, data: BankAccountCreate) -> BankAccount:
        account = BankAccount(**data.model_dump(), is_active=True)
        db.add(account)
        await db.commit()
        await db.refresh(account)
        logger.info("Creato conto %s %s", account.bank_name, account.account_number)
        return account

    async def update_bank_account(
        self, db: AsyncSession, account_id: uuid.UUID, data: BankAccountUpdate
    ) -> BankAccount:
        account = await self.get_bank_account(db, account_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(account, field, value)
        await db.commit()
        await db.refresh(account)
        return account

    async def delete_bank_account(self, db: AsyncSession, account_id: uuid.UUID) -> None:
        account = await self.get_bank_account(db, account_id)
        await db.delete(account)
        await db.commit()
        logger.info("Eliminato conto %s %s", account.bank_name, account.account_number)

    # ------------------------------------------------------------
    # Informazioni e contatti
    # ------------------------------------------------------------
    def company_info(self) -> CompanyInfo:
        return CompanyInfo(
            name=settings.company_name,
            address=settings.company_address,
            phone=settings.company_phone,
            email=settings.company_email,
            whatsapp=settings.company_whatsapp,
            hours=settings.company_hours,
        )

    async def create_contact(self, db: AsyncSession, data: ContactCreate) -> ContactMessage:
        contact = ContactMessage(
            name=data.name.strip(),
            email=str(data.email),
            phone=data.phone,
            message=data.message.strip(),
            status=ContactStatus.NEW.value,
        )
        db.add(contact)
        await db.commit()
        await db.refresh(contact)
        logger.info("Nuovo messaggio di contatto da %s", contact.email)
        return contact

    async def list_contacts(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        status: Optional[str] = None,
    ) -> tuple[list[ContactMessage], int]:
        conditions = [ContactMessage.status == status] if status else []
        query = (
            select(ContactMessage)
            .where(*conditions)
            .order_by(ContactMessage.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        contacts = list((await db.execute(query)).scalars().all())
        total = (
            await db.execute(select(func.count(ContactMessage.id)).where(*conditions))
        ).scalar() or 0
        return contacts, total

    async def set_contact_status(
        self, db: AsyncSession, contact_id: uuid.UUID, status: ContactStatus
    ) -> ContactMessage:
        """Segna un messaggio come letto o risposto, registrando l'istante."""
        contact = await db.get(ContactMessage, contact_id)
        if contact is None:
            raise NotFoundError(f"Messaggio {contact_id} non trovato")

        now = utcnow()
        contact.status = status.value
        if status in (ContactStatus.READ, ContactStatus.ANSWERED) and contact.read_at is None:
            contact.read_at = now
        if status == ContactStatus.ANSWERED:
            contact.answered_at = now

        await db.commit()
        await db.refresh(contact)
        return contact

    async def delete_contact(self, db: AsyncSession, contact_id: uuid.UUID) -> None:
        contact = await db.get(ContactMessage, contact_id)
        if contact is None:
            raise NotFoundError(f"Messaggio {contact_id} non trovato")
        await db.delete(contact)
        await db.commit()
