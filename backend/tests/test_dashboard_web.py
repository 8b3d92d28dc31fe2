"""
Test per dati iniziali, dashboard e pannello web.
"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from isp_billing.core.config import settings
from isp_billing.core.security import RolePolicy
from isp_billing.core.seed import SeedLoader
from isp_billing.models import BankAccount, Service, User
from isp_billing.models.user import UserRole
from isp_billing.schemas.payment import PaymentSingleCreate
from isp_billing.services.dashboard_service import DashboardService
from isp_billing.services.payment_service import PaymentService


# ============================================================
# Dati iniziali
# ============================================================


class TestSeedLoader:
    """Test per SeedLoader."""

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, db):
        """Test la seconda esecuzione non inserisce nulla."""
        first = await SeedLoader().run(db)
        second = await SeedLoader().run(db)

        assert all(first.values())
        assert not any(second.values())
        assert (await db.execute(select(func.count(User.id)))).scalar() == 1
        assert (await db.execute(select(func.count(Service.id)))).scalar() > 0
        assert (await db.execute(select(func.count(BankAccount.id)))).scalar() > 0


# ============================================================
# Policy
# ============================================================


class TestRolePolicy:
    """Test per RolePolicy."""

    def test_allows_listed_roles(self):
        """Test i ruoli elencati sono ammessi."""
        policy = RolePolicy.of("billing", [UserRole.ADMIN, UserRole.CASHIER])

        assert policy.allows("Administrador")
        assert policy.allows("Caja")
        assert not policy.allows("Normal")
        assert not policy.allows(None)


# ============================================================
# Dashboard
# ============================================================


class TestDashboard:
    """Test per DashboardService."""

    @pytest.mark.asyncio
    async def test_summary_counts(self, db, make_client, make_invoice):
        """Test conteggi di clienti e fatture."""
        client = await make_client()
        await make_client(code="CLI-002", name="María López", is_active=False)
        paid = await make_invoice(client, amount="500.00")
        await make_invoice(client, amount="1000.00")
        await PaymentService().create_single(db, PaymentSingleCreate(invoice_id=paid.id))

        summary = await DashboardService().summary(db)

        assert summary.clients.total == 2
        assert summary.clients.active == 1
        assert summary.invoices.pending == 1
        assert summary.invoices.paid == 1
        assert summary.invoices.pending_balance == Decimal("1000.00")
        assert summary.income.total == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_client_dashboard_api(self, api, make_client, make_invoice, auth_client):
        """Test dashboard self-service del cliente."""
        client = await make_client()
        await make_invoice(client, amount="920.00")

        response = await api.get("/api/cliente/dashboard", headers=auth_client(client))

        assert response.status_code == 200
        assert Decimal(response.json()["pendingBalance"]) == Decimal("920.00")


# ============================================================
# Pannello web
# ============================================================


class TestWebPanel:
    """Test per le pagine /web."""

    @pytest.mark.asyncio
    async def test_redirect_without_session(self, api):
        """Test senza cookie si torna al login."""
        response = await api.get("/web/clientes")

        assert response.status_code == 303
        assert response.headers["location"] == "/web/login"

    @pytest.mark.asyncio
    async def test_login_page(self, api):
        """Test pagina di login."""
        response = await api.get("/web/login")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]

    @pytest.mark.asyncio
    async def test_wrong_credentials(self, api, make_user):
        """Test credenziali errate: la pagina di login viene mostrata di nuovo."""
        await make_user(username="admin", password="secret")

        response = await api.post("/web/login", data={"username": "admin", "password": "wrong"})

        assert response.status_code == 401
        assert settings.session_cookie_name not in response.cookies

    @pytest.mark.asyncio
    async def test_login_and_browse(self, api, make_user, make_client):
        """Test login, cookie di sessione e lista clienti."""
        await make_user(username="admin", password="secret")
        await make_client(name="Juan Pérez")

        login = await api.post("/web/login", data={"username": "admin", "password": "secret"})
        assert login.status_code == 303
        token = login.cookies[settings.session_cookie_name]

        response = await api.get("/web/clientes", cookies={settings.session_cookie_name: token})

        assert response.status_code == 200
        assert "Juan Pérez" in response.text
