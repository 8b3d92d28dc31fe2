"""
Router FastAPI per il Report di entrate e uscite
Progetto: ISP Billing (Gestionale ISP)
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import BillingUser
from isp_billing.schemas.report import PeriodReport
from isp_billing.services.report_service import ReportService

router = APIRouter(
    prefix="/reportes",
    tags=["Report"],
)


def get_report_service() -> ReportService:
    return ReportService()


@router.get("/mensual", name="report_mensile", response_model=PeriodReport)
async def month_report(
    _: BillingUser,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> PeriodReport:
    return await service.month_report(db, month, year)


@router.get("/periodo", name="report_periodo", response_model=PeriodReport)
async def period_report(
    _: BillingUser,
    start: date = Query(..., alias="from"),
    end: date = Query(..., alias="to"),
    db: AsyncSession = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> PeriodReport:
    """
    Fatture, incassi, spese e clienti tra due date (incluse),
    con il confronto sul periodo precedente della stessa durata.
    """
    return await service.period_report(db, start, end)
