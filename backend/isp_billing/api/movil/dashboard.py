"""
Router FastAPI per la Dashboard del personale
Progetto: ISP Billing (Gestionale ISP)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import CurrentStaff
from isp_billing.schemas.dashboard import DashboardSummary, MonthBreakdown
from isp_billing.services.dashboard_service import DashboardService

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
)


def get_dashboard_service() -> DashboardService:
    return DashboardService()


@router.get("", name="dashboard", summary="Riepilogo generale", response_model=DashboardSummary)
async def get_dashboard(
    _: CurrentStaff,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardSummary:
    """
    Conteggi clienti e fatture, incassi, spese e dettaglio del mese.

    Senza mese/anno il dettaglio usa il mese corrente.
    """
    return await service.summary(db, month=month, year=year)


@router.get("/mes", name="dashboard_mese", response_model=MonthBreakdown)
async def get_month(
    _: CurrentStaff,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    service: DashboardService = Depends(get_dashboard_service),
) -> MonthBreakdown:
    return await service.month_breakdown(db, month, year)
