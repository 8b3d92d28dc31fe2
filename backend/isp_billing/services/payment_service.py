"""
Service Layer per i Pagamenti
Progetto: ISP Billing (Gestionale ISP)

Registra il denaro ricevuto e lo applica a una o più fatture:
- Pagamento di una fattura (importo di default = saldo)
- Pagamento di più fatture dello stesso cliente in un'unica transazione
- Eliminazione con ripristino dello stato delle fatture
- Riepiloghi giornalieri, di periodo, totali incassati e statistiche

Lo stato della fattura passa a Pagada quando il pagato raggiunge
l'importo e torna Pendiente se un'eliminazione riapre il saldo.
"""

import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.exceptions import BusinessValidationError, NotFoundError
from isp_billing.models import Client, Invoice, InvoiceStatus, Payment, PaymentInvoiceLink, User
from isp_billing.models.mixins import utcnow
from isp_billing.schemas.payment import (
    AmountBreakdown,
    ClientBalanceSummary,
    DailyTotal,
    DaySummary,
    IncomeTotals,
    PaymentDetails,
    PaymentMultiCreate,
    PaymentSingleCreate,
    PaymentStatistics,
    PeriodSummary,
)
from isp_billing.services.allocation import (
    ZERO,
    compute_change,
    distribute,
    quantize,
    resolve_single_amount,
    status_for,
    validate_allocations,
)
from isp_billing.services.periods import date_range, day_range, month_range, to_date, today
from isp_billing.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


def _breakdown(payments: Iterable[Payment], key) -> list[AmountBreakdown]:
    """Raggruppa i pagamenti per chiave: conteggio e totale."""
    counts: dict[str, int] = defaultdict(int)
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        group = key(payment) or "N/D"
        counts[group] += 1
        totals[group] += payment.amount
    return [
        AmountBreakdown(key=group, count=counts[group], total=quantize(totals[group]))
        for group in sorted(totals)
    ]


class PaymentService:
    """Service per la registrazione e l'analisi dei pagamenti."""

    def __init__(self, settings_service: Optional[SettingsService] = None) -> None:
        self.settings_service = settings_service or SettingsService()

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------
    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        start: Optional[date] = None,
        end: Optional[date] = None,
        payment_type: Optional[str] = None,
        bank: Optional[str] = None,
        client_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[Payment], int]:
        """
        Lista paginata dei pagamenti, dal più recente.

        Args:
            start, end: Intervallo di date (estremi inclusi)
            payment_type: Fisico / Electronico / Mixto
            bank: Nome della banca
            client_id: Solo pagamenti del cliente
        """
        conditions = []
        if start:
            conditions.append(Payment.payment_date >= date_range(start, start)[0])
        if end:
            conditions.append(Payment.payment_date < date_range(end, end)[1])
        if payment_type:
            conditions.append(Payment.payment_type == payment_type)
        if bank:
            conditions.append(Payment.bank == bank)
        if client_id:
            conditions.append(Payment.client_id == client_id)

        query = (
            select(Payment)
            .where(*conditions)
            .order_by(Payment.payment_date.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        payments = list((await db.execute(query)).scalars().all())
        total = (
            await db.execute(select(func.count(Payment.id)).where(*conditions))
        ).scalar() or 0
        return payments, total

    async def get_by_id(self, db: AsyncSession, payment_id: uuid.UUID) -> Payment:
        """
        Raises:
            NotFoundError: Se il pagamento non esiste
        """
        payment = await db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError(f"Pagamento {payment_id} non trovato")
        return payment

    async def _reload(self, db: AsyncSession, payment_id: uuid.UUID) -> Payment:
        payment = await self.get_by_id(db, payment_id)
        await db.refresh(payment, ["client", "links"])
        return payment

    # ------------------------------------------------------------
    # Creazione
    # ------------------------------------------------------------
    async def _build_payment(
        self,
        db: AsyncSession,
        data: PaymentDetails,
        client_id: uuid.UUID,
        amount: Decimal,
        user: Optional[User],
    ) -> Payment:
        if data.exchange_rate is not None:
            rate = data.exchange_rate
        else:
            rate, _ = await self.settings_service.get_exchange_rate(db)

        return Payment(
            client_id=client_id,
            amount=amount,
            currency=data.currency.value,
            payment_type=data.payment_type.value,
            bank=data.bank,
            account_type=data.account_type,
            cash_cordobas=data.cash_cordobas,
            cash_dollars=data.cash_dollars,
            electronic_cordobas=data.electronic_cordobas,
            electronic_dollars=data.electronic_dollars,
            amount_received=data.amount_received,
            change_given=compute_change(data.amount_received, amount),
            exchange_rate=rate,
            payment_date=data.payment_date or utcnow(),
            notes=data.notes,
            user_id=user.id if user is not None else None,
        )

    @staticmethod
    def _ensure_payable(invoice: Invoice) -> None:
        if invoice.status == InvoiceStatus.PAID.value:
            raise BusinessValidationError(
                f"La fattura {invoice.number} è già pagata",
                error_code="INVOICE_ALREADY_PAID",
            )
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise BusinessValidationError(
                f"La fattura {invoice.number} è annullata",
                error_code="INVOICE_CANCELLED",
            )
        if invoice.balance <= ZERO:
            raise BusinessValidationError(
                f"La fattura {invoice.number} non ha saldo da pagare",
                error_code="INVOICE_NO_BALANCE",
            )

    @staticmethod
    def _refresh_status(invoice: Invoice) -> None:
        new_status = status_for(invoice.status, invoice.amount, invoice.paid_amount)
        if new_status != invoice.status:
            logger.info("Fattura %s: %s → %s", invoice.number, invoice.status, new_status)
            invoice.status = new_status

    async def create_single(
        self,
        db: AsyncSession,
        data: PaymentSingleCreate,
        user: Optional[User] = None,
    ) -> Payment:
        """
        Registra il pagamento di una fattura.

        L'importo assente o non positivo diventa il saldo residuo. La quota
        applicata alla fattura non supera mai il saldo; l'eventuale eccedenza
        resta sul pagamento.

        Raises:
            NotFoundError: fattura inesistente
            BusinessValidationError: fattura già pagata, annullata o senza saldo
        """
        invoice = await db.get(Invoice, data.invoice_id)
        if invoice is None:
            raise NotFoundError(f"Fattura con ID {data.invoice_id} non trovata")

        try:
            self._ensure_payable(invoice)
        except BusinessValidationError:
            logger.warning("Pagamento rifiutato per la fattura %s (%s)", invoice.number, invoice.status)
            raise

        balance = invoice.balance
        amount = resolve_single_amount(data.amount, balance)

        payment = await self._build_payment(db, data, invoice.client_id, amount, user)
        payment.links.append(
            PaymentInvoiceLink(invoice=invoice, amount_applied=min(amount, balance))
        )
        db.add(payment)
        await db.flush()

        self._refresh_status(invoice)
        await db.commit()

        logger.info(
            "Registrato pagamento %s di %s sulla fattura %s",
            payment.id, amount, invoice.number,
        )
        return await self._reload(db, payment.id)

    async def create_multiple(
        self,
        db: AsyncSession,
        data: PaymentMultiCreate,
        user: Optional[User] = None,
    ) -> Payment:
        """
        Registra un pagamento applicato a più fatture dello stesso cliente.

        Crea un solo Payment e una riga PaymentInvoiceLink per fattura,
        nella stessa transazione.

        Raises:
            BusinessValidationError: nessuna fattura, fatture ripetute o
                inesistenti, clienti diversi, fatture non pagabili, quote
                non valide o totale insufficiente
        """
        invoice_ids = list(data.invoice_ids)
        if not invoice_ids:
            raise BusinessValidationError("Indicare almeno una fattura")
        if len(set(invoice_ids)) != len(invoice_ids):
            raise BusinessValidationError("La stessa fattura è indicata più volte")

        result = await db.execute(select(Invoice).where(Invoice.id.in_(invoice_ids)))
        found = {invoice.id: invoice for invoice in result.scalars().all()}

        missing = [str(i) for i in invoice_ids if i not in found]
        if missing:
            raise BusinessValidationError(
                "Fatture non trovate: " + ", ".join(missing),
                extra={"missing": missing},
            )

        invoices = [found[i] for i in invoice_ids]
        if len({invoice.client_id for invoice in invoices}) > 1:
            raise BusinessValidationError("Le fatture appartengono a clienti diversi")

        for invoice in invoices:
            self._ensure_payable(invoice)

        balances = {invoice.id: invoice.balance for invoice in invoices}

        if data.total is not None and data.total > ZERO:
            total = quantize(data.total)
        else:
            total = quantize(sum(balances.values(), ZERO))

        if data.allocations:
            if set(data.allocations) != set(invoice_ids):
                raise BusinessValidationError(
                    "Indicare l'importo applicato per ciascuna fattura del pagamento"
                )
            applied = validate_allocations(
                data.allocations,
                balances,
                total,
                labels={invoice.id: invoice.number for invoice in invoices},
            )
        else:
            applied = distribute(total, [(invoice.id, balances[invoice.id]) for invoice in invoices])
            uncovered = [invoice.number for invoice in invoices if invoice.id not in applied]
            if uncovered:
                raise BusinessValidationError(
                    "Il totale non copre tutte le fatture selezionate: " + ", ".join(uncovered)
                )

        payment = await self._build_payment(db, data, invoices[0].client_id, total, user)
        for position, invoice in enumerate(invoices):
            payment.links.append(
                PaymentInvoiceLink(
                    invoice=invoice, amount_applied=applied[invoice.id], position=position
                )
            )
        db.add(payment)
        await db.flush()

        for invoice in invoices:
            self._refresh_status(invoice)
        await db.commit()

        logger.info(
            "Registrato pagamento %s di %s su %s fatture",
            payment.id, total, len(invoices),
        )
        return await self._reload(db, payment.id)

    # ------------------------------------------------------------
    # Eliminazione
    # ------------------------------------------------------------
    async def _delete(self, db: AsyncSession, payment: Payment) -> None:
        invoices = [link.invoice for link in payment.links]
        await db.delete(payment)
        await db.flush()
        for invoice in invoices:
            await db.refresh(invoice, ["payment_links"])
            self._refresh_status(invoice)

    async def delete(self, db: AsyncSession, payment_id: uuid.UUID) -> None:
        """
        Elimina un pagamento e le sue quote.

        Le fatture Pagada che tornano ad avere saldo diventano Pendiente.

        Raises:
            NotFoundError: pagamento inesistente
        """
        payment = await self.get_by_id(db, payment_id)
        await self._delete(db, payment)
        await db.commit()
        logger.info("Eliminato pagamento %s", payment_id)

    async def delete_many(self, db: AsyncSession, payment_ids: list[uuid.UUID]) -> tuple[int, int]:
        """
        Elimina più pagamenti.

        Returns:
            Tuple (eliminati, non trovati)
        """
        deleted = not_found = 0
        for payment_id in dict.fromkeys(payment_ids):
            payment = await db.get(Payment, payment_id)
            if payment is None:
                not_found += 1
                continue
            await self._delete(db, payment)
            deleted += 1
        await db.commit()
        logger.info("Eliminati %s pagamenti (%s non trovati)", deleted, not_found)
        return deleted, not_found

    # ------------------------------------------------------------
    # Riepiloghi
    # ------------------------------------------------------------
    async def _payments_between(self, db: AsyncSession, start: datetime, end: datetime) -> list[Payment]:
        result = await db.execute(
            select(Payment)
            .where(and_(Payment.payment_date >= start, Payment.payment_date < end))
            .order_by(Payment.payment_date.asc())
        )
        return list(result.scalars().all())

    async def _sum_between(self, db: AsyncSession, start: Optional[datetime], end: Optional[datetime]) -> Decimal:
        query = select(func.coalesce(func.sum(Payment.amount), 0))
        if start is not None:
            query = query.where(Payment.payment_date >= start)
        if end is not None:
            query = query.where(Payment.payment_date < end)
        return quantize(Decimal(str((await db.execute(query)).scalar() or 0)))

    async def day_summary(self, db: AsyncSession, day: Optional[date] = None) -> DaySummary:
        """Incassi di un giorno per tipo di pagamento e per banca."""
        day = day or today()
        payments = await self._payments_between(db, *day_range(day))
        return DaySummary(
            day=day,
            count=len(payments),
            total=quantize(sum((p.amount for p in payments), ZERO)),
            by_type=_breakdown(payments, lambda p: p.payment_type),
            by_bank=_breakdown([p for p in payments if p.bank], lambda p: p.bank),
        )

    async def period_summary(
        self,
        db: AsyncSession,
        month: Optional[int] = None,
        year: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> PeriodSummary:
        """
        Incassi di un periodo: mese/anno oppure intervallo esplicito.

        Senza parametri si usa il mese corrente.
        """
        if start and end:
            if end < start:
                raise BusinessValidationError("La data finale precede quella iniziale")
            range_start, range_end = date_range(start, end)
        else:
            current = today()
            range_start, range_end = month_range(year or current.year, month or current.month)
            start = range_start.date()
            end = (range_end - timedelta(days=1)).date()

        payments = await self._payments_between(db, range_start, range_end)
        total = quantize(sum((p.amount for p in payments), ZERO))

        per_day: dict[date, list[Payment]] = defaultdict(list)
        for payment in payments:
            per_day[to_date(payment.payment_date)].append(payment)

        return PeriodSummary(
            start=start,
            end=end,
            count=len(payments),
            total=total,
            average=quantize(total / len(payments)) if payments else ZERO,
            by_type=_breakdown(payments, lambda p: p.payment_type),
            per_day=[
                DailyTotal(
                    day=day,
                    count=len(items),
                    total=quantize(sum((p.amount for p in items), ZERO)),
                )
                for day, items in sorted(per_day.items())
            ],
        )

    async def income_totals(self, db: AsyncSession) -> IncomeTotals:
        """Totale incassato: sempre, nel mese corrente, oggi."""
        current = today()
        return IncomeTotals(
            total=await self._sum_between(db, None, None),
            this_month=await self._sum_between(db, *month_range(current.year, current.month)),
            today=await self._sum_between(db, *day_range(current)),
        )

    async def statistics(
        self,
        db: AsyncSession,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> PaymentStatistics:
        query = select(Payment).order_by(Payment.payment_date.asc())
        if start:
            query = query.where(Payment.payment_date >= date_range(start, start)[0])
        if end:
            query = query.where(Payment.payment_date < date_range(end, end)[1])
        payments = list((await db.execute(query)).scalars().all())

        total = quantize(sum((p.amount for p in payments), ZERO))
        return PaymentStatistics(
            count=len(payments),
            total=total,
            average=quantize(total / len(payments)) if payments else ZERO,
            largest=max((p.amount for p in payments), default=ZERO),
            first_payment=payments[0].payment_date if payments else None,
            last_payment=payments[-1].payment_date if payments else None,
            by_type=_breakdown(payments, lambda p: p.payment_type),
            by_currency=_breakdown(payments, lambda p: p.currency),
        )

    # ------------------------------------------------------------
    # Saldi per cliente
    # ------------------------------------------------------------
    async def client_balance(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
    ) -> tuple[Client, list[Invoice], ClientBalanceSummary]:
        """
        Fatture del cliente con saldo e riepilogo.

        Le fatture annullate sono escluse dai totali.

        Raises:
            NotFoundError: cliente inesistente
        """
        client = await db.get(Client, client_id)
        if client is None:
            raise NotFoundError(f"Cliente con ID {client_id} non trovato")

        invoices = list(
            (
                await db.execute(
                    select(Invoice)
                    .where(Invoice.client_id == client_id)
                    .order_by(Invoice.billing_month.desc(), Invoice.created_at.desc())
                )
            ).scalars().all()
        )
        billable = [i for i in invoices if i.status != InvoiceStatus.CANCELLED.value]
        summary = ClientBalanceSummary(
            invoice_count=len(invoices),
            pending_count=sum(1 for i in billable if i.status == InvoiceStatus.PENDING.value),
            total_invoiced=quantize(sum((i.amount for i in billable), ZERO)),
            total_paid=quantize(sum((i.paid_amount for i in billable), ZERO)),
            pending_balance=quantize(sum((i.balance for i in billable), ZERO)),
        )
        return client, invoices, summary
