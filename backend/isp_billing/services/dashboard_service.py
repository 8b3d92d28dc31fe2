"""
Service per le Dashboard
Progetto: ISP Billing (Gestionale ISP)

Aggregati in sola lettura, ricalcolati a ogni chiamata:
- Dashboard del personale (clienti, fatture, incassi, spese, dettaglio mensile)
- Dashboard self-service del cliente
"""

import logging
import uuid
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.models import Client, Invoice, InvoiceStatus, Payment
from isp_billing.models.mixins import utcnow
from isp_billing.schemas.dashboard import (
    ClientCounts,
    ClientDashboard,
    DashboardSummary,
    ExpenseOverview,
    IncomeOverview,
    InvoiceCounts,
    MonthBreakdown,
)
from isp_billing.schemas.invoice import InvoiceRead
from isp_billing.schemas.payment import AmountBreakdown, DailyTotal, PaymentRead
from isp_billing.services.allocation import ZERO, quantize
from isp_billing.services.expense_service import ExpenseService
from isp_billing.services.payment_service import PaymentService
from isp_billing.services.periods import month_bounds, month_range, to_date, today

logger = logging.getLogger(__name__)


class DashboardService:
    """Calcolo dei riepiloghi per le dashboard."""

    def __init__(
        self,
        payment_service: Optional[PaymentService] = None,
        expense_service: Optional[ExpenseService] = None,
    ) -> None:
        self.payment_service = payment_service or PaymentService()
        self.expense_service = expense_service or ExpenseService()

    async def _client_counts(self, db: AsyncSession) -> ClientCounts:
        current = today()
        month_start, _ = month_range(current.year, current.month)
        total = (await db.execute(select(func.count(Client.id)))).scalar() or 0
        active = (
            await db.execute(select(func.count(Client.id)).where(Client.is_active.is_(True)))
        ).scalar() or 0
        new = (
            await db.execute(select(func.count(Client.id)).where(Client.created_at >= month_start))
        ).scalar() or 0
        return ClientCounts(total=total, active=active, new_this_month=new)

    async def _invoice_counts(self, db: AsyncSession) -> InvoiceCounts:
        result = await db.execute(
            select(Invoice.status, func.count(Invoice.id)).group_by(Invoice.status)
        )
        by_status = {status: count for status, count in result.all()}

        # Il saldo dipende dalle quote applicate: si calcola sulle fatture pendenti
        pending = (
            await db.execute(select(Invoice).where(Invoice.status == InvoiceStatus.PENDING.value))
        ).scalars().all()

        return InvoiceCounts(
            total=sum(by_status.values()),
            pending=by_status.get(InvoiceStatus.PENDING.value, 0),
            paid=by_status.get(InvoiceStatus.PAID.value, 0),
            cancelled=by_status.get(InvoiceStatus.CANCELLED.value, 0),
            pending_balance=quantize(sum((inv.balance for inv in pending), ZERO)),
        )

    async def month_breakdown(self, db: AsyncSession, month: int, year: int) -> MonthBreakdown:
        """Fatture per categoria, pagamenti per tipo e incasso giornaliero del mese."""
        first, next_first = month_bounds(year, month)
        result = await db.execute(
            select(Invoice.category, func.count(Invoice.id), func.coalesce(func.sum(Invoice.amount), 0))
            .where(
                and_(Invoice.billing_month >= first, Invoice.billing_month < next_first),
                Invoice.status != InvoiceStatus.CANCELLED.value,
            )
            .group_by(Invoice.category)
            .order_by(Invoice.category.asc())
        )
        invoices_by_category = [
            AmountBreakdown(key=category, count=count, total=quantize(Decimal(str(total))))
            for category, count, total in result.all()
        ]

        start, end = month_range(year, month)
        payments = (
            await db.execute(
                select(Payment).where(Payment.payment_date >= start, Payment.payment_date < end)
            )
        ).scalars().all()

        per_type: dict[str, list[Decimal]] = defaultdict(list)
        per_day: dict = defaultdict(list)
        for payment in payments:
            per_type[payment.payment_type].append(payment.amount)
            per_day[to_date(payment.payment_date)].append(payment.amount)

        return MonthBreakdown(
            month=month,
            year=year,
            invoices_by_category=invoices_by_category,
            payments_by_type=[
                AmountBreakdown(key=key, count=len(amounts), total=quantize(sum(amounts, ZERO)))
                for key, amounts in sorted(per_type.items())
            ],
            income_per_day=[
                DailyTotal(day=day, count=len(amounts), total=quantize(sum(amounts, ZERO)))
                for day, amounts in sorted(per_day.items())
            ],
        )

    async def summary(
        self,
        db: AsyncSession,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> DashboardSummary:
        """Dashboard del personale; il dettaglio mensile usa il mese corrente se non indicato."""
        current = today()
        month = month or current.month
        year = year or current.year

        income = await self.payment_service.income_totals(db)
        month_start, next_month = month_bounds(current.year, current.month)

        summary = DashboardSummary(
            clients=await self._client_counts(db),
            invoices=await self._invoice_counts(db),
            income=IncomeOverview(total=income.total, this_month=income.this_month, today=income.today),
            expenses=ExpenseOverview(
                total=await self.expense_service.sum_between(db, None, None),
                this_month=await self.expense_service.sum_between(
                    db, month_start, next_month - timedelta(days=1)
                ),
            ),
            month=await self.month_breakdown(db, month, year),
        )
        logger.debug("Dashboard calcolata per %02d/%s", month, year)
        return summary

    async def client_summary(self, db: AsyncSession, client_id: uuid.UUID) -> ClientDashboard:
        """Saldo, fatture pendenti e ultimi movimenti di un cliente."""
        invoices = (
            await db.execute(
                select(Invoice)
                .where(Invoice.client_id == client_id)
                .order_by(Invoice.billing_month.desc(), Invoice.created_at.desc())
            )
        ).scalars().all()
        billable = [inv for inv in invoices if inv.status != InvoiceStatus.CANCELLED.value]
        pending = [inv for inv in billable if inv.status == InvoiceStatus.PENDING.value]

        last_payment = (
            await db.execute(
                select(Payment)
                .where(Payment.client_id == client_id)
                .order_by(Payment.payment_date.desc())
                .limit(1)
            )
        ).scalars().first()

        return ClientDashboard(
            pending_balance=quantize(sum((inv.balance for inv in pending), ZERO)),
            pending_count=len(pending),
            total_invoices=len(invoices),
            total_paid=quantize(sum((inv.paid_amount for inv in billable), ZERO)),
            last_invoice=InvoiceRead.model_validate(invoices[0]) if invoices else None,
            last_payment=PaymentRead.model_validate(last_payment) if last_payment else None,
            generated_at=utcnow(),
        )
