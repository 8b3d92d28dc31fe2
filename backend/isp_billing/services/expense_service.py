"""
Service Layer per le Spese
Progetto: ISP Billing (Gestionale ISP)

Registro delle spese con codice progressivo EGR-0001.
L'eliminazione è logica (is_active=False).
"""

import logging
import re
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.exceptions import BusinessValidationError, NotFoundError
from isp_billing.models import Expense, User
from isp_billing.schemas.expense import (
    ExpenseCategoryTotal,
    ExpenseCreate,
    ExpenseTotals,
    ExpenseUpdate,
)
from isp_billing.services.allocation import ZERO, quantize

logger = logging.getLogger(__name__)

EXPENSE_CODE_PREFIX = "EGR-"
_CODE_NUMBER = re.compile(r"^EGR-(\d+)$")


class ExpenseService:
    """CRUD e totali delle spese."""

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        start: Optional[date] = None,
        end: Optional[date] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Expense], int]:
        """Lista paginata delle spese attive, dalla più recente."""
        conditions = [Expense.is_active.is_(True)]
        if start:
            conditions.append(Expense.expense_date >= start)
        if end:
            conditions.append(Expense.expense_date <= end)
        if category:
            conditions.append(Expense.category == category)
        if search:
            term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Expense.code.ilike(term),
                    Expense.description.ilike(term),
                    Expense.supplier.ilike(term),
                    Expense.invoice_number.ilike(term),
                )
            )

        query = (
            select(Expense)
            .where(*conditions)
            .order_by(Expense.expense_date.desc(), Expense.code.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        expenses = list((await db.execute(query)).scalars().all())
        total = (
            await db.execute(select(func.count(Expense.id)).where(*conditions))
        ).scalar() or 0
        return expenses, total

    async def get_by_id(self, db: AsyncSession, expense_id: uuid.UUID) -> Expense:
        expense = await db.get(Expense, expense_id)
        if expense is None or not expense.is_active:
            raise NotFoundError(f"Spesa con ID {expense_id} non trovata")
        return expense

    async def generate_code(self, db: AsyncSession) -> str:
        """Prossimo codice EGR-NNNN (incluse le spese eliminate)."""
        result = await db.execute(
            select(Expense.code).where(Expense.code.like(f"{EXPENSE_CODE_PREFIX}%"))
        )
        numbers = [int(m.group(1)) for m in map(_CODE_NUMBER.match, result.scalars().all()) if m]
        return f"{EXPENSE_CODE_PREFIX}{max(numbers, default=0) + 1:04d}"

    async def create(
        self,
        db: AsyncSession,
        data: ExpenseCreate,
        user: Optional[User] = None,
    ) -> Expense:
        expense = Expense(
            code=await self.generate_code(db),
            description=data.description.strip(),
            category=data.category,
            amount=quantize(data.amount),
            expense_date=data.expense_date or date.today(),
            invoice_number=data.invoice_number,
            supplier=data.supplier,
            payment_method=data.payment_method,
            notes=data.notes,
            user_id=user.id if user is not None else None,
            is_active=True,
        )
        db.add(expense)
        await db.commit()
        await db.refresh(expense)
        logger.info("Registrata spesa %s di %s (%s)", expense.code, expense.amount, expense.category)
        return expense

    async def update(self, db: AsyncSession, expense_id: uuid.UUID, data: ExpenseUpdate) -> Expense:
        expense = await self.get_by_id(db, expense_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(expense, field, value)
        await db.commit()
        await db.refresh(expense)
        logger.info("Aggiornata spesa %s", expense.code)
        return expense

    async def delete(self, db: AsyncSession, expense_id: uuid.UUID) -> None:
        """Soft delete: la spesa resta in tabella con is_active=False."""
        expense = await self.get_by_id(db, expense_id)
        expense.is_active = False
        await db.commit()
        logger.info("Eliminata spesa %s", expense.code)

    async def sum_between(self, db: AsyncSession, start: Optional[date], end: Optional[date]) -> Decimal:
        query = select(func.coalesce(func.sum(Expense.amount), 0)).where(Expense.is_active.is_(True))
        if start:
            query = query.where(Expense.expense_date >= start)
        if end:
            query = query.where(Expense.expense_date <= end)
        return quantize(Decimal(str((await db.execute(query)).scalar() or 0)))

    async def totals_by_category(self, db: AsyncSession, start: date, end: date) -> ExpenseTotals:
        """
        Totali per categoria nel periodo (estremi inclusi).

        Raises:
            BusinessValidationError: se end precede start
        """
        if end < start:
            raise BusinessValidationError("La data finale precede quella iniziale")

        result = await db.execute(
            select(
                Expense.category,
                func.count(Expense.id),
                func.coalesce(func.sum(Expense.amount), 0),
            )
            .where(
                Expense.is_active.is_(True),
                Expense.expense_date >= start,
                Expense.expense_date <= end,
            )
            .group_by(Expense.category)
            .order_by(Expense.category.asc())
        )
        rows = [
            ExpenseCategoryTotal(category=category, count=count, total=quantize(Decimal(str(total))))
            for category, count, total in result.all()
        ]
        return ExpenseTotals(
            start=start,
            end=end,
            total=quantize(sum((row.total for row in rows), ZERO)),
            by_category=rows,
        )
