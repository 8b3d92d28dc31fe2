"""
Test per ReportService e per gli endpoint /api/movil/reportes.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from isp_billing.core.exceptions import BusinessValidationError
from isp_billing.models.user import UserRole
from isp_billing.schemas.expense import ExpenseCreate
from isp_billing.schemas.payment import PaymentSingleCreate
from isp_billing.services.expense_service import ExpenseService
from isp_billing.services.payment_service import PaymentService
from isp_billing.services.report_service import ReportService, previous_period, variation


def _at(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def march_data(db, make_client, make_invoice):
    """Clienti, fatture, pagamenti e spese tra gennaio e marzo 2024."""

    async def _load():
        juan = await make_client(name="Juan Pérez")
        maria = await make_client(code="CLI-002", name="María López")
        pedro = await make_client(code="CLI-003", name="Pedro Ruiz", is_active=False)
        juan.created_at = _at(date(2024, 3, 5))
        maria.created_at = _at(date(2024, 1, 10))
        pedro.created_at = _at(date(2024, 3, 20))

        internet_paid = await make_invoice(juan, amount="1000.00")
        streaming = await make_invoice(juan, amount="300.00")
        internet_pending = await make_invoice(juan, amount="500.00")
        february = await make_invoice(maria, amount="800.00", billing_month=date(2024, 2, 1))
        streaming.category = "Streaming"
        internet_paid.created_at = _at(date(2024, 3, 2))
        streaming.created_at = _at(date(2024, 3, 3))
        internet_pending.created_at = _at(date(2024, 3, 4))
        february.created_at = _at(date(2024, 2, 15))
        await db.commit()

        payments = PaymentService()
        for invoice, amount, day in (
            (internet_paid, "1000", date(2024, 3, 10)),
            (streaming, "100", date(2024, 3, 12)),
            (february, "800", date(2024, 2, 20)),
        ):
            await payments.create_single(
                db,
                PaymentSingleCreate(invoice_id=invoice.id, amount=Decimal(amount), payment_date=_at(day)),
            )

        expenses = ExpenseService()
        for amount, day in (("400.00", date(2024, 3, 15)), ("200.00", date(2024, 2, 10))):
            await expenses.create(
                db,
                ExpenseCreate(
                    description="Pago de enlace",
                    category="Pago de Internet",
                    amount=Decimal(amount),
                    expense_date=day,
                ),
            )
        removed = await expenses.create(
            db,
            ExpenseCreate(
                description="Registrado por error",
                category="Otros",
                amount=Decimal("999.00"),
                expense_date=date(2024, 3, 20),
            ),
        )
        await expenses.delete(db, removed.id)

    return _load


# ============================================================
# Funzioni di supporto
# ============================================================


class TestHelpers:
    """Test per previous_period e variation."""

    def test_previous_period_same_length(self):
        """Test marzo (31 giorni) → 30 gennaio - 29 febbraio."""
        assert previous_period(date(2024, 3, 1), date(2024, 3, 31)) == (date(2024, 1, 30), date(2024, 2, 29))

    def test_variation_without_previous(self):
        """Test nessuna variazione se il periodo precedente è a zero."""
        assert variation(Decimal("100"), Decimal("0")) is None
        assert variation(Decimal("150"), Decimal("100")) == Decimal("50.00")


# ============================================================
# Report
# ============================================================


class TestPeriodReport:
    """Test per ReportService.month_report e period_report."""

    @pytest.mark.asyncio
    async def test_month_figures(self, db, march_data):
        """Test fatture, incassi per categoria, spese, clienti e saldo di marzo."""
        await march_data()

        report = await ReportService().month_report(db, 3, 2024)

        assert (report.start, report.end) == (date(2024, 3, 1), date(2024, 3, 31))
        assert (report.invoices.generated, report.invoices.paid, report.invoices.pending) == (3, 1, 2)
        assert (report.invoices.internet, report.invoices.streaming) == (2, 1)
        assert report.invoices.pending_internet == Decimal("500.00")
        assert report.invoices.pending_streaming == Decimal("300.00")
        assert report.payments.count == 2
        assert report.payments.total == Decimal("1100.00")
        assert report.payments.internet == Decimal("1000.00")
        assert report.payments.streaming == Decimal("100.00")
        assert (report.expenses.count, report.expenses.total) == (1, Decimal("400.00"))
        assert (report.clients.new, report.clients.active) == (2, 2)
        assert report.total_income == Decimal("1100.00")
        assert report.balance == Decimal("700.00")

    @pytest.mark.asyncio
    async def test_comparison_with_previous_period(self, db, march_data):
        """Test differenze e variazioni rispetto al periodo precedente."""
        await march_data()

        comparison = (await ReportService().month_report(db, 3, 2024)).comparison

        assert comparison.previous_income == Decimal("800.00")
        assert comparison.previous_expenses == Decimal("200.00")
        assert comparison.income_difference == Decimal("300.00")
        assert comparison.expense_difference == Decimal("200.00")
        assert comparison.income_variation == Decimal("37.50")
        assert comparison.expense_variation == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_empty_period(self, db):
        """Test periodo senza dati: tutto a zero, nessuna variazione."""
        report = await ReportService().period_report(db, date(2024, 3, 1), date(2024, 3, 7))

        assert report.invoices.generated == 0
        assert report.balance == Decimal("0.00")
        assert report.comparison.previous_start == date(2024, 2, 23)
        assert report.comparison.income_variation is None

    @pytest.mark.asyncio
    async def test_end_before_start(self, db):
        """Test data finale precedente a quella iniziale."""
        with pytest.raises(BusinessValidationError):
            await ReportService().period_report(db, date(2024, 3, 31), date(2024, 3, 1))


# ============================================================
# API
# ============================================================


class TestReportApi:
    """Test per /api/movil/reportes."""

    @pytest.mark.asyncio
    async def test_month_report_camel_case(self, api, make_user, auth_staff, march_data):
        """Test il report mensile usa i nomi camelCase."""
        await march_data()
        user = await make_user(username="caja1", role=UserRole.CASHIER.value)

        response = await api.get(
            "/api/movil/reportes/mensual", params={"month": 3, "year": 2024}, headers=auth_staff(user)
        )

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["totalIncome"]) == Decimal("1100.00")
        assert Decimal(body["balance"]) == Decimal("700.00")
        assert Decimal(body["comparison"]["incomeVariation"]) == Decimal("37.50")

    @pytest.mark.asyncio
    async def test_normal_user_forbidden(self, api, make_user, auth_staff):
        """Test un utente Normal non vede i report: 403."""
        user = await make_user(username="tecnico", role=UserRole.NORMAL.value)

        response = await api.get(
            "/api/movil/reportes/periodo",
            params={"from": "2024-03-01", "to": "2024-03-31"},
            headers=auth_staff(user),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_reversed_range(self, api, make_user, auth_staff):
        """Test intervallo invertito: 400."""
        user = await make_user()

        response = await api.get(
            "/api/movil/reportes/periodo",
            params={"from": "2024-03-31", "to": "2024-03-01"},
            headers=auth_staff(user),
        )

        assert response.status_code == 400
