"""
Router FastAPI per la gestione dei contenuti della landing page
Progetto: ISP Billing (Gestionale ISP)

Piani pubblicati, conti bancari e messaggi di contatto ricevuti.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import AdminUser, CurrentStaff
from isp_billing.models.landing import ContactStatus
from isp_billing.schemas.common import count_pages
from isp_billing.schemas.landing import (
    BankAccountCreate,
    BankAccountRead,
    BankAccountUpdate,
    ContactList,
    ContactRead,
    ContactStatusUpdate,
    LandingServiceCreate,
    LandingServiceRead,
    LandingServiceUpdate,
)
from isp_billing.services.landing_service import LandingContentService

router = APIRouter(tags=["Landing (gestione)"])


def get_landing_service() -> LandingContentService:
    return LandingContentService()


# -------------------------------------------------------------------
# Piani
# -------------------------------------------------------------------

@router.get("/landing/servicios", name="landing_piani", response_model=list[LandingServiceRead])
async def list_plans(
    _: CurrentStaff,
    include_inactive: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> list[LandingServiceRead]:
    plans = await service.list_plans(db, only_active=not include_inactive)
    return [LandingServiceRead.model_validate(p) for p in plans]


@router.post(
    "/landing/servicios",
    name="landing_piano_crea",
    response_model=LandingServiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_plan(
    data: LandingServiceCreate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> LandingServiceRead:
    return LandingServiceRead.model_validate(await service.create_plan(db, data))


@router.put("/landing/servicios/{plan_id}", name="landing_piano_aggiorna", response_model=LandingServiceRead)
async def update_plan(
    plan_id: uuid.UUID,
    data: LandingServiceUpdate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> LandingServiceRead:
    return LandingServiceRead.model_validate(await service.update_plan(db, plan_id, data))


@router.delete(
    "/landing/servicios/{plan_id}",
    name="landing_piano_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_plan(
    plan_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> None:
    await service.delete_plan(db, plan_id)


# -------------------------------------------------------------------
# Conti bancari
# -------------------------------------------------------------------

@router.get("/landing/metodos-pago", name="landing_conti", response_model=list[BankAccountRead])
async def list_bank_accounts(
    _: CurrentStaff,
    include_inactive: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> list[BankAccountRead]:
    accounts = await service.list_bank_accounts(db, only_active=not include_inactive)
    return [BankAccountRead.model_validate(a) for a in accounts]


@router.post(
    "/landing/metodos-pago",
    name="landing_conto_crea",
    response_model=BankAccountRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_bank_account(
    data: BankAccountCreate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> BankAccountRead:
    return BankAccountRead.model_validate(await service.create_bank_account(db, data))


@router.put("/landing/metodos-pago/{account_id}", name="landing_conto_aggiorna", response_model=BankAccountRead)
async def update_bank_account(
    account_id: uuid.UUID,
    data: BankAccountUpdate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> BankAccountRead:
    return BankAccountRead.model_validate(await service.update_bank_account(db, account_id, data))


@router.delete(
    "/landing/metodos-pago/{account_id}",
    name="landing_conto_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_bank_account(
    account_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> None:
    await service.delete_bank_account(db, account_id)


# -------------------------------------------------------------------
# Messaggi di contatto
# -------------------------------------------------------------------

@router.get("/contactos", name="contatti_lista", response_model=ContactList)
async def list_contacts(
    _: CurrentStaff,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status_filter: Optional[ContactStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> ContactList:
    contacts, total = await service.list_contacts(
        db, page=page, per_page=per_page, status=status_filter.value if status_filter else None
    )
    return ContactList(
        items=[ContactRead.model_validate(c) for c in contacts],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=count_pages(total, per_page),
    )


@router.put("/contactos/{contact_id}/estado", name="contatto_stato", response_model=ContactRead)
async def set_contact_status(
    contact_id: uuid.UUID,
    data: ContactStatusUpdate,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> ContactRead:
    return ContactRead.model_validate(await service.set_contact_status(db, contact_id, data.status))


@router.delete(
    "/contactos/{contact_id}",
    name="contatto_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_contact(
    contact_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> None:
    await service.delete_contact(db, contact_id)
