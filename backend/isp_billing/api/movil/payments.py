"""
Router FastAPI per i Pagamenti (app mobile / personale)
Progetto: ISP Billing (Gestionale ISP)

Registrazione su una o più fatture, eliminazione, riepiloghi
e tipo di cambio.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import AdminUser, BillingUser, CurrentStaff
from isp_billing.models.invoice import Currency, PaymentType
from isp_billing.schemas.common import count_pages
from isp_billing.schemas.payment import (
    CurrencyConversion,
    DaySummary,
    ExchangeRateRead,
    ExchangeRateUpdate,
    IncomeTotals,
    PaymentDeleteMany,
    PaymentDeleteManyResult,
    PaymentList,
    PaymentMultiCreate,
    PaymentRead,
    PaymentSingleCreate,
    PaymentStatistics,
    PeriodSummary,
)
from isp_billing.services.allocation import convert_currency
from isp_billing.services.payment_service import PaymentService
from isp_billing.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/pagos",
    tags=["Pagamenti"],
)


def get_payment_service() -> PaymentService:
    return PaymentService()


def get_settings_service() -> SettingsService:
    return SettingsService()


# -------------------------------------------------------------------
# Lettura
# -------------------------------------------------------------------

@router.get("", name="pagamenti_lista", summary="Lista pagamenti", response_model=PaymentList)
async def list_payments(
    _: CurrentStaff,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    start: Optional[date] = Query(None, description="Dal giorno (incluso)"),
    end: Optional[date] = Query(None, description="Al giorno (incluso)"),
    payment_type: Optional[PaymentType] = Query(None),
    bank: Optional[str] = Query(None),
    client_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentList:
    payments, total = await service.get_all(
        db,
        page=page,
        per_page=per_page,
        start=start,
        end=end,
        payment_type=payment_type.value if payment_type else None,
        bank=bank,
        client_id=client_id,
    )
    return PaymentList(
        items=[PaymentRead.model_validate(p) for p in payments],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=count_pages(total, per_page),
    )


@router.get("/resumen-dia", name="pagamenti_riepilogo_giorno", response_model=DaySummary)
async def day_summary(
    _: CurrentStaff,
    day: Optional[date] = Query(None, description="Giorno (default oggi)"),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> DaySummary:
    return await service.day_summary(db, day)


@router.get("/resumen-periodo", name="pagamenti_riepilogo_periodo", response_model=PeriodSummary)
async def period_summary(
    _: CurrentStaff,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PeriodSummary:
    return await service.period_summary(db, month=month, year=year, start=start, end=end)


@router.get("/ingresos", name="pagamenti_totali", response_model=IncomeTotals)
async def income_totals(
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> IncomeTotals:
    return await service.income_totals(db)


@router.get("/estadisticas", name="pagamenti_statistiche", response_model=PaymentStatistics)
async def statistics(
    _: CurrentStaff,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentStatistics:
    return await service.statistics(db, start=start, end=end)


# -------------------------------------------------------------------
# Tipo di cambio
# -------------------------------------------------------------------

@router.get("/tipo-cambio", name="tipo_cambio", response_model=ExchangeRateRead)
async def get_exchange_rate(
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
) -> ExchangeRateRead:
    rate, updated_at = await settings_service.get_exchange_rate(db)
    return ExchangeRateRead(rate=rate, updated_at=updated_at)


@router.put("/tipo-cambio", name="tipo_cambio_aggiorna", response_model=ExchangeRateRead)
async def update_exchange_rate(
    data: ExchangeRateUpdate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
) -> ExchangeRateRead:
    setting = await settings_service.set_exchange_rate(db, data.rate)
    return ExchangeRateRead(rate=Decimal(setting.value), updated_at=setting.updated_at)


@router.get("/convertir", name="conversione_valuta", response_model=CurrencyConversion)
async def convert(
    _: CurrentStaff,
    amount: Decimal = Query(..., ge=0),
    source: Currency = Query(..., alias="from"),
    target: Currency = Query(..., alias="to"),
    db: AsyncSession = Depends(get_db),
    settings_service: SettingsService = Depends(get_settings_service),
) -> CurrencyConversion:
    rate, _updated = await settings_service.get_exchange_rate(db)
    return CurrencyConversion(
        amount=amount,
        source=source,
        target=target,
        rate=rate,
        result=convert_currency(amount, source, target, rate),
    )


# -------------------------------------------------------------------
# Registrazione ed eliminazione
# -------------------------------------------------------------------

@router.post(
    "",
    name="pagamento_crea",
    summary="Pagamento di una fattura",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    data: PaymentSingleCreate,
    user: BillingUser,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    """
    Registra un pagamento su una fattura. Senza importo si salda il residuo.

    Raises:
        NotFoundError 404: fattura inesistente
        BusinessValidationError 400: fattura pagata, annullata o senza saldo
    """
    return PaymentRead.model_validate(await service.create_single(db, data, user))


@router.post(
    "/multiple",
    name="pagamento_crea_multiplo",
    summary="Pagamento di più fatture",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_multiple_payment(
    data: PaymentMultiCreate,
    user: BillingUser,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    """Un solo pagamento applicato a più fatture dello stesso cliente."""
    return PaymentRead.model_validate(await service.create_multiple(db, data, user))


@router.post(
    "/eliminar-multiples",
    name="pagamenti_elimina_multipli",
    response_model=PaymentDeleteManyResult,
)
async def delete_many_payments(
    data: PaymentDeleteMany,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentDeleteManyResult:
    deleted, not_found = await service.delete_many(db, data.ids)
    return PaymentDeleteManyResult(deleted=deleted, not_found=not_found)


@router.get("/{payment_id}", name="pagamento_dettaglio", response_model=PaymentRead)
async def get_payment(
    payment_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    return PaymentRead.model_validate(await service.get_by_id(db, payment_id))


@router.delete(
    "/{payment_id}",
    name="pagamento_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_payment(
    payment_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> None:
    """Le fatture che tornano ad avere saldo ritornano Pendiente."""
    await service.delete(db, payment_id)
