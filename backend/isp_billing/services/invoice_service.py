"""
Service Layer per la Fatturazione
Progetto: ISP Billing (Gestionale ISP)

Gestisce:
- Numerazione fatture ({seq:04d}-{NomeCliente}-{MMYYYY})
- Creazione manuale e generazione mensile dagli abbonamenti
- Ricerca, filtri e paginazione
- Annullamento ed eliminazione (solo senza pagamenti)
- Fatture di un cliente con saldi
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, extract, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from isp_billing.models import (
    Client,
    ClientServiceSubscription,
    Invoice,
    InvoiceServiceLink,
    InvoiceStatus,
    Service,
    ServiceCategory,
)
from isp_billing.schemas.invoice import InvoiceCreate
from isp_billing.services.allocation import ZERO, quantize
from isp_billing.services.periods import month_bounds

logger = logging.getLogger(__name__)


def format_invoice_number(sequence: int, client_name: str, billing_month: date) -> str:
    """
    Numero fattura: progressivo a 4 cifre, nome cliente senza spazi, MMYYYY.

    >>> format_invoice_number(7, "Juan Pérez", date(2024, 3, 1))
    '0007-JuanPérez-032024'
    """
    compact_name = "".join(client_name.split())
    return f"{sequence:04d}-{compact_name}-{billing_month:%m%Y}"


class InvoiceService:
    """Service per la gestione delle fatture."""

    # ------------------------------------------------------------
    # Numerazione
    # ------------------------------------------------------------
    async def _generate_invoice_number(
        self,
        db: AsyncSession,
        client: Client,
        billing_month: date,
    ) -> str:
        """Progressivo globale = numero fatture esistenti + 1, finché libero."""
        sequence = ((await db.execute(select(func.count(Invoice.id)))).scalar() or 0) + 1
        while True:
            number = format_invoice_number(sequence, client.name, billing_month)
            exists = await db.execute(select(Invoice.id).where(Invoice.number == number))
            if exists.first() is None:
                return number
            sequence += 1

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------
    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        client_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Invoice], int]:
        """
        Lista paginata delle fatture, dalla più recente.

        Args:
            client_id: Solo fatture del cliente
            status: Pendiente / Pagada / Cancelada
            category: Internet / Streaming
            month, year: Mese di fatturazione (anche solo l'anno)
            search: Testo cercato in numero fattura, nome e codice cliente

        Returns:
            Tuple (fatture della pagina, totale)
        """
        conditions = []
        if client_id:
            conditions.append(Invoice.client_id == client_id)
        if status:
            conditions.append(Invoice.status == status)
        if category:
            conditions.append(Invoice.category == category)
        if year and month:
            start, end = month_bounds(year, month)
            conditions.append(and_(Invoice.billing_month >= start, Invoice.billing_month < end))
        elif year:
            conditions.append(extract("year", Invoice.billing_month) == year)
        elif month:
            conditions.append(extract("month", Invoice.billing_month) == month)
        if search:
            term = f"%{search.strip()}%"
            conditions.append(
                or_(Invoice.number.ilike(term), Client.name.ilike(term), Client.code.ilike(term))
            )

        base = select(Invoice).join(Client, Invoice.client_id == Client.id).where(*conditions)
        query = (
            base.order_by(Invoice.billing_month.desc(), Invoice.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        invoices = list((await db.execute(query)).scalars().all())

        count_query = (
            select(func.count(Invoice.id))
            .join(Client, Invoice.client_id == Client.id)
            .where(*conditions)
        )
        total = (await db.execute(count_query)).scalar() or 0
        return invoices, total

    async def get_by_id(self, db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        """
        Raises:
            NotFoundError: Se la fattura non esiste
        """
        invoice = await db.get(Invoice, invoice_id)
        if invoice is None:
            logger.warning("Fattura non trovata: %s", invoice_id)
            raise NotFoundError(f"Fattura con ID {invoice_id} non trovata")
        return invoice

    async def get_pending(
        self,
        db: AsyncSession,
        search: Optional[str] = None,
        limit: int = 50,
        client_id: Optional[uuid.UUID] = None,
    ) -> list[Invoice]:
        """Fatture Pendiente con saldo > 0, dalla più vecchia."""
        query = (
            select(Invoice)
            .join(Client, Invoice.client_id == Client.id)
            .where(Invoice.status == InvoiceStatus.PENDING.value)
            .order_by(Invoice.billing_month.asc(), Invoice.number.asc())
        )
        if client_id:
            query = query.where(Invoice.client_id == client_id)
        if search:
            term = f"%{search.strip()}%"
            query = query.where(
                or_(Invoice.number.ilike(term), Client.name.ilike(term), Client.code.ilike(term))
            )
        invoices = (await db.execute(query)).scalars().all()
        return [inv for inv in invoices if inv.balance > ZERO][:limit]

    async def get_for_client(self, db: AsyncSession, client_id: uuid.UUID) -> list[Invoice]:
        result = await db.execute(
            select(Invoice)
            .where(Invoice.client_id == client_id)
            .order_by(Invoice.billing_month.desc(), Invoice.created_at.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------
    # Creazione
    # ------------------------------------------------------------
    async def create(self, db: AsyncSession, data: InvoiceCreate) -> Invoice:
        """
        Crea una fattura manuale.

        Raises:
            NotFoundError: cliente o servizio inesistente
            BusinessValidationError: cliente disattivato, servizio non attivo
        """
        client = await db.get(Client, data.client_id)
        if client is None:
            raise NotFoundError(f"Cliente con ID {data.client_id} non trovato")
        if not client.is_active:
            raise BusinessValidationError(f"Il cliente {client.code} è disattivato")

        lines: list[InvoiceServiceLink] = []
        amount = ZERO
        first_service: Optional[Service] = None
        for line in data.services:
            service = await db.get(Service, line.service_id)
            if service is None:
                raise NotFoundError(f"Servizio con ID {line.service_id} non trovato")
            if not service.is_active:
                raise BusinessValidationError(f"Il servizio {service.name} non è attivo")
            line_amount = quantize(service.price * line.quantity)
            lines.append(
                InvoiceServiceLink(service_id=service.id, quantity=line.quantity, amount=line_amount)
            )
            amount += line_amount
            first_service = first_service or service

        if not lines:
            amount = quantize(data.amount)

        if data.category is not None:
            category = data.category.value
        elif first_service is not None:
            category = first_service.category
        else:
            category = ServiceCategory.INTERNET.value

        invoice = await self._add_invoice(
            db,
            client,
            billing_month=data.billing_month,
            amount=amount,
            category=category,
            service_id=first_service.id if first_service else None,
            lines=lines,
            notes=data.notes,
        )
        await db.commit()
        invoice = await self._reload(db, invoice.id)
        logger.info("Creata fattura %s per %s (%s)", invoice.number, client.code, invoice.amount)
        return invoice

    async def _add_invoice(
        self,
        db: AsyncSession,
        client: Client,
        billing_month: date,
        amount: Decimal,
        category: str,
        service_id: Optional[uuid.UUID],
        lines: list[InvoiceServiceLink],
        notes: Optional[str] = None,
    ) -> Invoice:
        invoice = Invoice(
            client_id=client.id,
            service_id=service_id,
            number=await self._generate_invoice_number(db, client, billing_month),
            amount=amount,
            status=InvoiceStatus.PENDING.value,
            billing_month=billing_month,
            category=category,
            notes=notes,
            service_links=lines,
        )
        db.add(invoice)
        client.invoice_count = (client.invoice_count or 0) + 1
        await db.flush()
        return invoice

    async def _reload(self, db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        invoice = await self.get_by_id(db, invoice_id)
        await db.refresh(invoice, ["client", "service", "service_links", "payment_links"])
        return invoice

    async def generate_month(self, db: AsyncSession, month: int, year: int) -> tuple[int, int, date]:
        """
        Genera le fatture del mese dagli abbonamenti attivi.

        Per ogni cliente attivo e ogni abbonamento attivo nel mese viene
        creata una fattura (cliente, servizio, mese), saltando quelle già
        esistenti.

        Returns:
            Tuple (create, saltate, mese di fatturazione)
        """
        billing_month, next_month = month_bounds(year, month)

        subscriptions = (
            await db.execute(
                select(ClientServiceSubscription)
                .join(Client, ClientServiceSubscription.client_id == Client.id)
                .join(Service, ClientServiceSubscription.service_id == Service.id)
                .where(
                    Client.is_active.is_(True),
                    Service.is_active.is_(True),
                    ClientServiceSubscription.is_active.is_(True),
                    ClientServiceSubscription.start_date < next_month,
                    or_(
                        ClientServiceSubscription.end_date.is_(None),
                        ClientServiceSubscription.end_date >= billing_month,
                    ),
                )
                .order_by(Client.name.asc())
            )
        ).scalars().all()

        existing = {
            (row.client_id, row.service_id)
            for row in (
                await db.execute(
                    select(Invoice.client_id, Invoice.service_id).where(
                        Invoice.billing_month == billing_month
                    )
                )
            ).all()
        }

        created = skipped = 0
        for subscription in subscriptions:
            key = (subscription.client_id, subscription.service_id)
            if key in existing:
                skipped += 1
                continue
            client = await db.get(Client, subscription.client_id)
            service = await db.get(Service, subscription.service_id)
            amount = quantize(service.price * subscription.quantity)
            await self._add_invoice(
                db,
                client,
                billing_month=billing_month,
                amount=amount,
                category=service.category,
                service_id=service.id,
                lines=[
                    InvoiceServiceLink(
                        service_id=service.id,
                        quantity=subscription.quantity,
                        amount=amount,
                    )
                ],
            )
            existing.add(key)
            created += 1

        await db.commit()
        logger.info(
            "Generazione %02d/%s: %s fatture create, %s già presenti",
            month, year, created, skipped,
        )
        return created, skipped, billing_month

    # ------------------------------------------------------------
    # Annullamento / eliminazione
    # ------------------------------------------------------------
    async def cancel(self, db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        """
        Annulla una fattura senza pagamenti.

        Raises:
            ConflictError: già annullata o con pagamenti applicati
        """
        invoice = await self.get_by_id(db, invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise ConflictError(f"La fattura {invoice.number} è già annullata")
        if invoice.payment_links:
            raise ConflictError(
                f"La fattura {invoice.number} ha pagamenti registrati: eliminarli prima di annullarla"
            )
        invoice.status = InvoiceStatus.CANCELLED.value
        await db.commit()
        logger.info("Annullata fattura %s", invoice.number)
        return await self._reload(db, invoice_id)

    async def delete(self, db: AsyncSession, invoice_id: uuid.UUID) -> None:
        """
        Elimina una fattura.

        Raises:
            NotFoundError: Se la fattura non esiste
            ConflictError: Se la fattura ha pagamenti collegati
        """
        invoice = await self.get_by_id(db, invoice_id)
        if invoice.payment_links:
            logger.warning("Eliminazione rifiutata: fattura %s con pagamenti", invoice.number)
            raise ConflictError(f"La fattura {invoice.number} ha pagamenti registrati")

        client = await db.get(Client, invoice.client_id)
        if client is not None and client.invoice_count > 0:
            client.invoice_count -= 1

        number = invoice.number
        await db.delete(invoice)
        await db.commit()
        logger.info("Eliminata fattura %s", number)
