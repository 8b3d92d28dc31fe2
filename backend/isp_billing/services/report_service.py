"""
Service per il Report di periodo (entrate e uscite)
Progetto: ISP Billing (Gestionale ISP)

Il report copre un intervallo di giorni (estremi inclusi) oppure un mese:
- fatture create nel periodo per stato e categoria
- pagamenti incassati, ripartiti per categoria tramite le quote applicate
- spese attive del periodo
- clienti nuovi e attivi a fine periodo
- confronto con il periodo precedente della stessa durata
"""

import logging
from collections import Counter
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.exceptions import BusinessValidationError
from isp_billing.models import Client, Expense, Invoice, InvoiceStatus, Payment, ServiceCategory
from isp_billing.schemas.report import (
    PeriodReport,
    ReportClients,
    ReportComparison,
    ReportExpenses,
    ReportInvoices,
    ReportPayments,
)
from isp_billing.services.allocation import ZERO, quantize
from isp_billing.services.expense_service import ExpenseService
from isp_billing.services.periods import date_range, month_bounds

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def variation(current: Decimal, previous: Decimal) -> Optional[Decimal]:
    """Variazione percentuale rispetto al periodo precedente (None se precedente = 0)."""
    if previous <= ZERO:
        return None
    return quantize((current - previous) / previous * HUNDRED)


def previous_period(start: date, end: date) -> tuple[date, date]:
    """Periodo della stessa durata che termina il giorno prima di start."""
    days = (end - start).days + 1
    return start - timedelta(days=days), start - timedelta(days=1)


class ReportService:
    """Calcolo del report di entrate e uscite."""

    def __init__(self, expense_service: Optional[ExpenseService] = None) -> None:
        self.expense_service = expense_service or ExpenseService()

    async def _invoices(self, db: AsyncSession, start: date, end: date) -> ReportInvoices:
        since, until = date_range(start, end)
        invoices = (
            await db.execute(
                select(Invoice).where(Invoice.created_at >= since, Invoice.created_at < until)
            )
        ).scalars().all()

        by_status = Counter(inv.status for inv in invoices)
        by_category = Counter(inv.category for inv in invoices)
        pending = [inv for inv in invoices if inv.status == InvoiceStatus.PENDING.value]

        def pending_amount(category: str) -> Decimal:
            return quantize(sum((inv.amount for inv in pending if inv.category == category), ZERO))

        return ReportInvoices(
            generated=len(invoices),
            paid=by_status[InvoiceStatus.PAID.value],
            pending=by_status[InvoiceStatus.PENDING.value],
            internet=by_category[ServiceCategory.INTERNET.value],
            streaming=by_category[ServiceCategory.STREAMING.value],
            pending_internet=pending_amount(ServiceCategory.INTERNET.value),
            pending_streaming=pending_amount(ServiceCategory.STREAMING.value),
        )

    async def _payments(self, db: AsyncSession, start: date, end: date) -> ReportPayments:
        since, until = date_range(start, end)
        payments = (
            await db.execute(
                select(Payment).where(Payment.payment_date >= since, Payment.payment_date < until)
            )
        ).scalars().all()

        per_category: dict[str, Decimal] = {}
        for payment in payments:
            for link in payment.links:
                category = link.invoice.category if link.invoice is not None else None
                per_category[category] = per_category.get(category, ZERO) + link.amount_applied

        return ReportPayments(
            count=len(payments),
            total=quantize(sum((p.amount for p in payments), ZERO)),
            internet=quantize(per_category.get(ServiceCategory.INTERNET.value, ZERO)),
            streaming=quantize(per_category.get(ServiceCategory.STREAMING.value, ZERO)),
        )

    async def _expenses(self, db: AsyncSession, start: date, end: date) -> ReportExpenses:
        count = (
            await db.execute(
                select(func.count(Expense.id)).where(
                    Expense.is_active.is_(True),
                    Expense.expense_date >= start,
                    Expense.expense_date <= end,
                )
            )
        ).scalar() or 0
        return ReportExpenses(count=count, total=await self.expense_service.sum_between(db, start, end))

    async def _clients(self, db: AsyncSession, start: date, end: date) -> ReportClients:
        since, until = date_range(start, end)
        new = (
            await db.execute(
                select(func.count(Client.id)).where(Client.created_at >= since, Client.created_at < until)
            )
        ).scalar() or 0
        active = (
            await db.execute(
                select(func.count(Client.id)).where(Client.is_active.is_(True), Client.created_at < until)
            )
        ).scalar() or 0
        return ReportClients(new=new, active=active)

    async def _income(self, db: AsyncSession, start: date, end: date) -> Decimal:
        since, until = date_range(start, end)
        total = (
            await db.execute(
                select(func.coalesce(func.sum(Payment.amount), 0)).where(
                    Payment.payment_date >= since, Payment.payment_date < until
                )
            )
        ).scalar()
        return quantize(Decimal(str(total or 0)))

    async def _comparison(
        self,
        db: AsyncSession,
        start: date,
        end: date,
        income: Decimal,
        expenses: Decimal,
    ) -> ReportComparison:
        previous_start, previous_end = previous_period(start, end)
        previous_income = await self._income(db, previous_start, previous_end)
        previous_expenses = await self.expense_service.sum_between(db, previous_start, previous_end)
        return ReportComparison(
            previous_start=previous_start,
            previous_end=previous_end,
            previous_income=previous_income,
            previous_expenses=previous_expenses,
            income_difference=quantize(income - previous_income),
            expense_difference=quantize(expenses - previous_expenses),
            income_variation=variation(income, previous_income),
            expense_variation=variation(expenses, previous_expenses),
        )

    async def period_report(self, db: AsyncSession, start: date, end: date) -> PeriodReport:
        """
        Report del periodo [start, end], estremi inclusi.

        Raises:
            BusinessValidationError: se end precede start
        """
        if end < start:
            raise BusinessValidationError("La data finale precede quella iniziale")

        payments = await self._payments(db, start, end)
        expenses = await self._expenses(db, start, end)
        report = PeriodReport(
            start=start,
            end=end,
            invoices=await self._invoices(db, start, end),
            payments=payments,
            expenses=expenses,
            clients=await self._clients(db, start, end),
            total_income=payments.total,
            balance=quantize(payments.total - expenses.total),
            comparison=await self._comparison(db, start, end, payments.total, expenses.total),
        )
        logger.debug("Report calcolato dal %s al %s", start, end)
        return report

    async def month_report(self, db: AsyncSession, month: int, year: int) -> PeriodReport:
        first, next_first = month_bounds(year, month)
        return await self.period_report(db, first, next_first - timedelta(days=1))
