"""
Router FastAPI per le Spese (egresos)
Progetto: ISP Billing (Gestionale ISP)
"""

import uuid
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import AdminUser, BillingUser, CurrentStaff
from isp_billing.core.seed import SeedData, get_seed_data
from isp_billing.schemas.common import count_pages
from isp_billing.schemas.expense import (
    ExpenseCreate,
    ExpenseList,
    ExpenseRead,
    ExpenseTotals,
    ExpenseUpdate,
)
from isp_billing.services.expense_service import ExpenseService
from isp_billing.services.periods import month_bounds, today

router = APIRouter(
    prefix="/egresos",
    tags=["Spese"],
)


def get_expense_service() -> ExpenseService:
    return ExpenseService()


@router.get("", name="spese_lista", response_model=ExpenseList)
async def list_expenses(
    _: CurrentStaff,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Codice, descrizione, fornitore o numero fattura"),
    db: AsyncSession = Depends(get_db),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseList:
    expenses, total = await service.get_all(
        db,
        page=page,
        per_page=per_page,
        start=start,
        end=end,
        category=category,
        search=search,
    )
    return ExpenseList(
        items=[ExpenseRead.model_validate(e) for e in expenses],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=count_pages(total, per_page),
    )


@router.get("/categorias", name="spese_categorie", response_model=dict[str, list[str]])
async def expense_options(
    _: CurrentStaff,
    seed: SeedData = Depends(get_seed_data),
) -> dict[str, list[str]]:
    """Valori ammessi per categoria e metodo di pagamento."""
    return {
        "categories": list(seed.expense_categories),
        "paymentMethods": list(seed.expense_payment_methods),
    }


@router.get("/totales", name="spese_totali", response_model=ExpenseTotals)
async def expense_totals(
    _: CurrentStaff,
    start: Optional[date] = Query(None, description="Default: inizio mese corrente"),
    end: Optional[date] = Query(None, description="Default: fine mese corrente"),
    db: AsyncSession = Depends(get_db),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseTotals:
    current = today()
    month_start, next_month = month_bounds(current.year, current.month)
    return await service.totals_by_category(
        db,
        start or month_start,
        end or next_month - timedelta(days=1),
    )


@router.get("/{expense_id}", name="spesa_dettaglio", response_model=ExpenseRead)
async def get_expense(
    expense_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseRead:
    return ExpenseRead.model_validate(await service.get_by_id(db, expense_id))


@router.post(
    "",
    name="spesa_crea",
    response_model=ExpenseRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_expense(
    data: ExpenseCreate,
    user: BillingUser,
    db: AsyncSession = Depends(get_db),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseRead:
    return ExpenseRead.model_validate(await service.create(db, data, user))


@router.put("/{expense_id}", name="spesa_aggiorna", response_model=ExpenseRead)
async def update_expense(
    expense_id: uuid.UUID,
    data: ExpenseUpdate,
    _: BillingUser,
    db: AsyncSession = Depends(get_db),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseRead:
    return ExpenseRead.model_validate(await service.update(db, expense_id, data))


@router.delete(
    "/{expense_id}",
    name="spesa_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_expense(
    expense_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: ExpenseService = Depends(get_expense_service),
) -> None:
    await service.delete(db, expense_id)
