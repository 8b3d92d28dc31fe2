"""
Test per InvoiceService: numerazione, creazione, generazione mensile,
annullamento ed eliminazione.
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from isp_billing.core.exceptions import BusinessValidationError, ConflictError
from isp_billing.models import ClientServiceSubscription, Invoice
from isp_billing.models.invoice import InvoiceStatus
from isp_billing.schemas.invoice import InvoiceCreate, InvoiceServiceLineCreate
from isp_billing.schemas.payment import PaymentSingleCreate
from isp_billing.services.invoice_service import InvoiceService, format_invoice_number
from isp_billing.services.payment_service import PaymentService


# ============================================================
# Numerazione
# ============================================================


class TestInvoiceNumber:
    """Test per format_invoice_number."""

    def test_format(self):
        """Test progressivo, nome senza spazi e MMYYYY."""
        assert format_invoice_number(7, "Juan Pérez", date(2024, 3, 1)) == "0007-JuanPérez-032024"

    def test_collapses_whitespace(self):
        """Test spazi multipli nel nome."""
        assert format_invoice_number(12, "  Ana  María ", date(2023, 11, 1)) == "0012-AnaMaría-112023"


# ============================================================
# Creazione
# ============================================================


class TestCreateInvoice:
    """Test per InvoiceService.create."""

    @pytest.mark.asyncio
    async def test_amount_from_service_lines(self, db, make_client, make_service):
        """Test importo = somma prezzo x quantità delle righe."""
        client = await make_client()
        internet = await make_service(price="920.00")
        tv = await make_service(name="Streaming", price="150.00", category="Streaming")

        invoice = await InvoiceService().create(
            db,
            InvoiceCreate(
                client_id=client.id,
                billing_month=date(2024, 3, 1),
                services=[
                    InvoiceServiceLineCreate(service_id=internet.id),
                    InvoiceServiceLineCreate(service_id=tv.id, quantity=2),
                ],
            ),
        )

        assert invoice.amount == Decimal("1220.00")
        assert invoice.category == "Internet"
        assert len(invoice.service_links) == 2
        assert invoice.status == InvoiceStatus.PENDING.value
        assert client.invoice_count == 1

    @pytest.mark.asyncio
    async def test_sequence_increments(self, db, make_client):
        """Test il progressivo cresce con le fatture esistenti."""
        client = await make_client(name="Juan Pérez")
        service = InvoiceService()
        data = InvoiceCreate(client_id=client.id, amount=Decimal("500"), billing_month=date(2024, 3, 1))

        first = await service.create(db, data)
        second = await service.create(db, data)

        assert first.number == "0001-JuanPérez-032024"
        assert second.number == "0002-JuanPérez-032024"

    @pytest.mark.asyncio
    async def test_sequence_is_global(self, db, make_client):
        """Test il progressivo conta le fatture di tutti i clienti."""
        juan = await make_client(name="Juan Pérez")
        maria = await make_client(code="CLI-002", name="María López")
        service = InvoiceService()

        await service.create(
            db, InvoiceCreate(client_id=juan.id, amount=Decimal("500"), billing_month=date(2024, 3, 1))
        )
        invoice = await service.create(
            db, InvoiceCreate(client_id=maria.id, amount=Decimal("500"), billing_month=date(2024, 3, 1))
        )

        assert invoice.number == "0002-MaríaLópez-032024"

    @pytest.mark.asyncio
    async def test_inactive_client(self, db, make_client):
        """Test cliente disattivato."""
        client = await make_client(is_active=False)

        with pytest.raises(BusinessValidationError):
            await InvoiceService().create(db, InvoiceCreate(client_id=client.id, amount=Decimal("500")))

    def test_amount_or_services_required(self):
        """Test serve l'importo oppure almeno un servizio."""
        with pytest.raises(ValueError):
            InvoiceCreate(client_id=uuid.uuid4())


# ============================================================
# Generazione mensile
# ============================================================


class TestGenerateMonth:
    """Test per InvoiceService.generate_month."""

    @pytest.mark.asyncio
    async def test_one_invoice_per_active_subscription(self, db, make_client, make_service):
        """Test abbonamenti attivi fatturati, scaduti e clienti inattivi esclusi."""
        juan = await make_client()
        maria = await make_client(code="CLI-002", name="María López", is_active=False)
        pedro = await make_client(code="CLI-003", name="Pedro Ruiz")
        internet = await make_service(price="920.00")
        db.add_all(
            [
                ClientServiceSubscription(
                    client_id=juan.id, service_id=internet.id, quantity=1,
                    start_date=date(2024, 1, 1), is_active=True,
                ),
                ClientServiceSubscription(
                    client_id=maria.id, service_id=internet.id, quantity=1,
                    start_date=date(2024, 1, 1), is_active=True,
                ),
                ClientServiceSubscription(
                    client_id=pedro.id, service_id=internet.id, quantity=1,
                    start_date=date(2023, 1, 1), end_date=date(2024, 2, 29), is_active=True,
                ),
            ]
        )
        await db.commit()

        created, skipped, billing_month = await InvoiceService().generate_month(db, 3, 2024)

        assert (created, skipped) == (1, 0)
        assert billing_month == date(2024, 3, 1)

        again = await InvoiceService().generate_month(db, 3, 2024)
        assert again[:2] == (0, 1)


# ============================================================
# Annullamento ed eliminazione
# ============================================================


class TestCancelAndDelete:
    """Test per cancel e delete."""

    @pytest.mark.asyncio
    async def test_cancel_without_payments(self, db, make_client, make_invoice):
        """Test annullamento di una fattura senza pagamenti."""
        client = await make_client()
        invoice = await make_invoice(client)

        cancelled = await InvoiceService().cancel(db, invoice.id)

        assert cancelled.status == InvoiceStatus.CANCELLED.value

    @pytest.mark.asyncio
    async def test_delete_with_payments_conflict(self, db, make_client, make_invoice):
        """Test una fattura con pagamenti non si elimina né si annulla."""
        client = await make_client()
        invoice = await make_invoice(client)
        await PaymentService().create_single(
            db, PaymentSingleCreate(invoice_id=invoice.id, amount=Decimal("100"))
        )

        with pytest.raises(ConflictError):
            await InvoiceService().delete(db, invoice.id)
        with pytest.raises(ConflictError):
            await InvoiceService().cancel(db, invoice.id)

    @pytest.mark.asyncio
    async def test_delete_without_payments(self, db, make_client, make_invoice):
        """Test eliminazione di una fattura senza pagamenti."""
        client = await make_client()
        invoice = await make_invoice(client)

        await InvoiceService().delete(db, invoice.id)

        assert await db.get(Invoice, invoice.id) is None
