"""
Test di integrazione per PaymentService su database SQLite.

Coprono l'applicazione dei pagamenti alle fatture, il cambio di
stato Pendiente/Pagada e l'eliminazione dei pagamenti.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from isp_billing.core.exceptions import BusinessValidationError, NotFoundError
from isp_billing.models.invoice import InvoiceStatus, Payment, PaymentInvoiceLink, PaymentType
from isp_billing.schemas.payment import PaymentMultiCreate, PaymentSingleCreate
from isp_billing.services.payment_service import PaymentService
from isp_billing.services.settings_service import SettingsService


async def _count(db, column) -> int:
    return (await db.execute(select(func.count(column)))).scalar()


# ============================================================
# Pagamento di una fattura
# ============================================================


class TestSinglePayment:
    """Test per create_single."""

    @pytest.mark.asyncio
    async def test_partial_then_full_payment(self, db, make_client, make_invoice):
        """Test 1000 → paga 400 → saldo 600 Pendiente → paga 600 → Pagada."""
        client = await make_client()
        invoice = await make_invoice(client, amount="1000.00")
        service = PaymentService()

        first = await service.create_single(
            db, PaymentSingleCreate(invoice_id=invoice.id, amount=Decimal("400"))
        )
        assert first.amount == Decimal("400.00")
        assert invoice.balance == Decimal("600.00")
        assert invoice.status == InvoiceStatus.PENDING.value

        await service.create_single(
            db, PaymentSingleCreate(invoice_id=invoice.id, amount=Decimal("600"))
        )
        assert invoice.balance == Decimal("0.00")
        assert invoice.status == InvoiceStatus.PAID.value

    @pytest.mark.asyncio
    async def test_amount_defaults_to_balance(self, db, make_client, make_invoice):
        """Test senza importo si salda il residuo."""
        client = await make_client()
        invoice = await make_invoice(client, amount="750.00")

        payment = await PaymentService().create_single(db, PaymentSingleCreate(invoice_id=invoice.id))

        assert payment.amount == Decimal("750.00")
        assert payment.applied_amount == Decimal("750.00")
        assert invoice.status == InvoiceStatus.PAID.value

    @pytest.mark.asyncio
    async def test_overpayment_applies_only_balance(self, db, make_client, make_invoice):
        """Test la quota applicata non supera il saldo e si calcola il resto."""
        client = await make_client()
        invoice = await make_invoice(client, amount="500.00")

        payment = await PaymentService().create_single(
            db,
            PaymentSingleCreate(
                invoice_id=invoice.id,
                amount=Decimal("600"),
                amount_received=Decimal("1000"),
            ),
        )

        assert payment.links[0].amount_applied == Decimal("500.00")
        assert payment.change_given == Decimal("400.00")
        assert invoice.paid_amount == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_paid_invoice_rejected(self, db, make_client, make_invoice):
        """Test pagamento su fattura già Pagada: errore e nessuna riga creata."""
        client = await make_client()
        invoice = await make_invoice(client, amount="1000.00", status=InvoiceStatus.PAID.value)

        with pytest.raises(BusinessValidationError) as exc_info:
            await PaymentService().create_single(db, PaymentSingleCreate(invoice_id=invoice.id))

        assert exc_info.value.error_code == "INVOICE_ALREADY_PAID"
        assert await _count(db, Payment.id) == 0

    @pytest.mark.asyncio
    async def test_cancelled_invoice_rejected(self, db, make_client, make_invoice):
        """Test pagamento su fattura Cancelada."""
        client = await make_client()
        invoice = await make_invoice(client, status=InvoiceStatus.CANCELLED.value)

        with pytest.raises(BusinessValidationError) as exc_info:
            await PaymentService().create_single(db, PaymentSingleCreate(invoice_id=invoice.id))

        assert exc_info.value.error_code == "INVOICE_CANCELLED"

    @pytest.mark.asyncio
    async def test_unknown_invoice(self, db):
        """Test fattura inesistente."""
        with pytest.raises(NotFoundError):
            await PaymentService().create_single(db, PaymentSingleCreate(invoice_id=uuid.uuid4()))

    def test_electronic_payment_requires_bank(self):
        """Test pagamento elettronico senza banca."""
        with pytest.raises(ValueError):
            PaymentSingleCreate(invoice_id=uuid.uuid4(), payment_type=PaymentType.ELECTRONIC)


# ============================================================
# Pagamento di più fatture
# ============================================================


class TestMultiPayment:
    """Test per create_multiple."""

    @pytest.mark.asyncio
    async def test_one_payment_many_links(self, db, make_client, make_invoice):
        """Test un solo Payment e una quota per fattura, somma = totale."""
        client = await make_client()
        first = await make_invoice(client, amount="1000.00")
        second = await make_invoice(client, amount="500.00")

        payment = await PaymentService().create_multiple(
            db, PaymentMultiCreate(invoice_ids=[first.id, second.id])
        )

        assert payment.amount == Decimal("1500.00")
        assert len(payment.links) == 2
        assert sum(link.amount_applied for link in payment.links) == Decimal("1500.00")
        assert await _count(db, Payment.id) == 1
        assert await _count(db, PaymentInvoiceLink.id) == 2
        assert first.status == InvoiceStatus.PAID.value
        assert second.status == InvoiceStatus.PAID.value

    @pytest.mark.asyncio
    async def test_explicit_allocations(self, db, make_client, make_invoice):
        """Test quote indicate per ciascuna fattura."""
        client = await make_client()
        first = await make_invoice(client, amount="1000.00")
        second = await make_invoice(client, amount="500.00")

        await PaymentService().create_multiple(
            db,
            PaymentMultiCreate(
                invoice_ids=[first.id, second.id],
                total=Decimal("800"),
                allocations={first.id: Decimal("300"), second.id: Decimal("500")},
            ),
        )

        assert first.balance == Decimal("700.00")
        assert first.status == InvoiceStatus.PENDING.value
        assert second.status == InvoiceStatus.PAID.value

    @pytest.mark.asyncio
    async def test_total_not_covering_all_invoices(self, db, make_client, make_invoice):
        """Test totale che lascia fatture senza quota."""
        client = await make_client()
        first = await make_invoice(client, amount="1000.00")
        second = await make_invoice(client, amount="500.00")

        with pytest.raises(BusinessValidationError):
            await PaymentService().create_multiple(
                db, PaymentMultiCreate(invoice_ids=[first.id, second.id], total=Decimal("900"))
            )
        assert await _count(db, Payment.id) == 0

    @pytest.mark.asyncio
    async def test_invoices_of_different_clients(self, db, make_client, make_invoice):
        """Test fatture di clienti diversi."""
        juan = await make_client()
        maria = await make_client(code="CLI-002", name="María López")
        first = await make_invoice(juan)
        second = await make_invoice(maria)

        with pytest.raises(BusinessValidationError):
            await PaymentService().create_multiple(
                db, PaymentMultiCreate(invoice_ids=[first.id, second.id])
            )

    @pytest.mark.asyncio
    async def test_repeated_invoice(self, db, make_client, make_invoice):
        """Test la stessa fattura indicata due volte."""
        client = await make_client()
        invoice = await make_invoice(client)

        with pytest.raises(BusinessValidationError):
            await PaymentService().create_multiple(
                db, PaymentMultiCreate(invoice_ids=[invoice.id, invoice.id])
            )
        assert await _count(db, Payment.id) == 0

    @pytest.mark.asyncio
    async def test_missing_invoices_listed(self, db, make_client, make_invoice):
        """Test le fatture inesistenti sono elencate nell'errore."""
        client = await make_client()
        invoice = await make_invoice(client)
        unknown = uuid.uuid4()

        with pytest.raises(BusinessValidationError) as exc_info:
            await PaymentService().create_multiple(
                db, PaymentMultiCreate(invoice_ids=[invoice.id, unknown])
            )

        assert exc_info.value.extra == {"missing": [str(unknown)]}
        assert exc_info.value.status_code == 400
        assert await _count(db, Payment.id) == 0
        assert await _count(db, PaymentInvoiceLink.id) == 0

    @pytest.mark.asyncio
    async def test_paid_invoice_in_set(self, db, make_client, make_invoice):
        """Test una fattura già pagata blocca l'intero pagamento."""
        client = await make_client()
        first = await make_invoice(client, amount="1000.00")
        second = await make_invoice(client, amount="500.00")
        service = PaymentService()
        await service.create_single(db, PaymentSingleCreate(invoice_id=second.id))

        with pytest.raises(BusinessValidationError):
            await service.create_multiple(db, PaymentMultiCreate(invoice_ids=[first.id, second.id]))

        assert await _count(db, Payment.id) == 1
        assert await _count(db, PaymentInvoiceLink.id) == 1
        assert first.status == InvoiceStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_links_keep_invoice_order(self, db, make_client, make_invoice):
        """Test le quote seguono l'ordine delle fatture indicate."""
        client = await make_client()
        large = await make_invoice(client, amount="1000.00")
        small = await make_invoice(client, amount="500.00")
        service = PaymentService()

        payment = await service.create_multiple(
            db, PaymentMultiCreate(invoice_ids=[small.id, large.id])
        )
        reloaded = await service.get_by_id(db, payment.id)

        assert [link.invoice_id for link in reloaded.links] == [small.id, large.id]
        assert [link.position for link in reloaded.links] == [0, 1]


# ============================================================
# Eliminazione e riepiloghi
# ============================================================


class TestDeleteAndSummary:
    """Test per eliminazione e riepiloghi."""

    @pytest.mark.asyncio
    async def test_delete_reverts_status(self, db, make_client, make_invoice):
        """Test eliminare il pagamento riporta la fattura a Pendiente."""
        client = await make_client()
        invoice = await make_invoice(client, amount="1000.00")
        service = PaymentService()

        payment = await service.create_single(db, PaymentSingleCreate(invoice_id=invoice.id))
        assert invoice.status == InvoiceStatus.PAID.value

        await service.delete(db, payment.id)

        assert invoice.status == InvoiceStatus.PENDING.value
        assert invoice.balance == Decimal("1000.00")
        assert await _count(db, PaymentInvoiceLink.id) == 0

    @pytest.mark.asyncio
    async def test_delete_many_counts_missing(self, db, make_client, make_invoice):
        """Test eliminazione multipla con ID inesistenti."""
        client = await make_client()
        invoice = await make_invoice(client)
        payment = await PaymentService().create_single(db, PaymentSingleCreate(invoice_id=invoice.id))

        deleted, not_found = await PaymentService().delete_many(db, [payment.id, uuid.uuid4()])

        assert (deleted, not_found) == (1, 1)

    @pytest.mark.asyncio
    async def test_period_summary(self, db, make_client, make_invoice):
        """Test totale e media di un intervallo."""
        client = await make_client()
        service = PaymentService()
        for amount in ("300", "500"):
            invoice = await make_invoice(client, amount="1000.00")
            await service.create_single(
                db,
                PaymentSingleCreate(
                    invoice_id=invoice.id,
                    amount=Decimal(amount),
                    payment_date=datetime(2024, 3, 10, 15, 0, tzinfo=timezone.utc),
                ),
            )

        summary = await service.period_summary(db, start=date(2024, 3, 1), end=date(2024, 3, 31))

        assert summary.count == 2
        assert summary.total == Decimal("800.00")
        assert summary.average == Decimal("400.00")

    @pytest.mark.asyncio
    async def test_client_balance(self, db, make_client, make_invoice):
        """Test riepilogo saldi del cliente, annullate escluse."""
        client = await make_client()
        await make_invoice(client, amount="1000.00")
        await make_invoice(client, amount="200.00", status=InvoiceStatus.CANCELLED.value)

        _, invoices, summary = await PaymentService().client_balance(db, client.id)

        assert len(invoices) == 2
        assert summary.total_invoiced == Decimal("1000.00")
        assert summary.pending_balance == Decimal("1000.00")


# ============================================================
# Tipo di cambio
# ============================================================


class TestExchangeRate:
    """Test per SettingsService con sessione mock."""

    @pytest.mark.asyncio
    async def test_default_rate_when_missing(self, mock_db):
        """Test senza impostazione si usa il valore di configurazione."""
        mock_db.get = AsyncMock(return_value=None)

        rate, updated_at = await SettingsService().get_exchange_rate(mock_db)

        assert rate > 0
        assert updated_at is None

    @pytest.mark.asyncio
    async def test_reject_non_positive_rate(self, mock_db):
        """Test tipo di cambio non positivo."""
        with pytest.raises(BusinessValidationError):
            await SettingsService().set_exchange_rate(mock_db, Decimal("0"))
        mock_db.commit.assert_not_awaited()
