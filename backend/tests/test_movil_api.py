"""
Test API dell'app mobile (/api/movil): autenticazione, ruoli,
clienti, fatture e pagamenti.
"""

from datetime import date
from decimal import Decimal

import pytest

from isp_billing.core.security import legacy_sha256, verify_password
from isp_billing.models import ClientServiceSubscription, User
from isp_billing.models.invoice import InvoiceStatus
from isp_billing.models.user import UserRole


# ============================================================
# Autenticazione del personale
# ============================================================


class TestStaffLogin:
    """Test per POST /api/movil/auth/login."""

    @pytest.mark.asyncio
    async def test_login_json(self, api, make_user):
        """Test login con body JSON."""
        await make_user(username="caja1", password="pass123", role=UserRole.CASHIER.value)

        response = await api.post(
            "/api/movil/auth/login", json={"username": "caja1", "password": "pass123"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["access_token"]
        assert body["role"] == "Caja"

    @pytest.mark.asyncio
    async def test_login_form(self, api, make_user):
        """Test login con form OAuth2."""
        await make_user(username="admin", password="secret")

        response = await api.post(
            "/api/movil/auth/login", data={"username": "admin", "password": "secret"}
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_password(self, api, make_user):
        """Test password errata: 401."""
        await make_user(username="admin", password="secret")

        response = await api.post(
            "/api/movil/auth/login", json={"username": "admin", "password": "wrong"}
        )

        assert response.status_code == 401
        assert "access_token" not in response.json()

    @pytest.mark.asyncio
    async def test_inactive_user(self, api, make_user):
        """Test utente disattivato: 401."""
        await make_user(username="old", password="secret", is_active=False)

        response = await api.post(
            "/api/movil/auth/login", json={"username": "old", "password": "secret"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_legacy_hash_upgraded(self, api, db):
        """Test un hash SHA-256 legacy viene sostituito da bcrypt al login."""
        user = User(
            username="legacy",
            hashed_password=legacy_sha256("secret"),
            full_name="Legacy",
            role=UserRole.NORMAL.value,
            is_active=True,
        )
        db.add(user)
        await db.commit()

        response = await api.post(
            "/api/movil/auth/login", json={"username": "legacy", "password": "secret"}
        )
        assert response.status_code == 200

        await db.refresh(user)
        assert user.hashed_password.startswith("$2")
        assert verify_password("secret", user.hashed_password)

    @pytest.mark.asyncio
    async def test_me(self, api, make_user, auth_staff):
        """Test profilo dell'utente corrente."""
        user = await make_user(username="ana", role=UserRole.NORMAL.value)

        response = await api.get("/api/movil/auth/me", headers=auth_staff(user))

        assert response.status_code == 200
        assert response.json()["fullName"] == "Ana"


# ============================================================
# Ruoli
# ============================================================


class TestRoles:
    """Test per le policy di ruolo sugli endpoint."""

    @pytest.mark.asyncio
    async def test_normal_user_cannot_register_payment(
        self, api, make_user, make_client, make_invoice, auth_staff
    ):
        """Test un utente Normal non registra pagamenti: 403."""
        user = await make_user(username="tecnico", role=UserRole.NORMAL.value)
        client = await make_client()
        invoice = await make_invoice(client)

        response = await api.post(
            "/api/movil/pagos", json={"invoice_id": str(invoice.id)}, headers=auth_staff(user)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cashier_cannot_manage_users(self, api, make_user, auth_staff):
        """Test la gestione utenti è riservata agli amministratori."""
        user = await make_user(username="caja1", role=UserRole.CASHIER.value)

        response = await api.get("/api/movil/usuarios", headers=auth_staff(user))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_client_token_rejected(self, api, make_client, auth_client):
        """Test un token cliente non apre l'app del personale."""
        client = await make_client()

        response = await api.get("/api/movil/clientes", headers=auth_client(client))

        assert response.status_code == 401


# ============================================================
# Clienti e fatture
# ============================================================


class TestClientsAndInvoices:
    """Test per clienti, numerazione e generazione mensile."""

    @pytest.mark.asyncio
    async def test_client_code_generated(self, api, make_user, auth_staff):
        """Test codici CLI-001, CLI-002 assegnati in sequenza."""
        user = await make_user()
        headers = auth_staff(user)

        first = await api.post("/api/movil/clientes", json={"name": "Juan Pérez"}, headers=headers)
        second = await api.post("/api/movil/clientes", json={"name": "María López"}, headers=headers)

        assert first.status_code == 201
        assert first.json()["code"] == "CLI-001"
        assert second.json()["code"] == "CLI-002"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, api, make_user, auth_staff):
        """Test email già registrata: 409."""
        user = await make_user()
        headers = auth_staff(user)
        data = {"name": "Juan Pérez", "email": "juan@correo.com"}

        await api.post("/api/movil/clientes", json=data, headers=headers)
        response = await api.post(
            "/api/movil/clientes", json={**data, "name": "Otro"}, headers=headers
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_invoice_number_format(self, api, make_user, make_client, auth_staff):
        """Test numero fattura {seq}-{NomeCliente}-{MMYYYY}."""
        user = await make_user()
        client = await make_client(name="Juan Pérez")

        response = await api.post(
            "/api/movil/facturas",
            json={"client_id": str(client.id), "amount": "850.00", "billing_month": "2024-03-15"},
            headers=auth_staff(user),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["number"] == "0001-JuanPérez-032024"
        assert body["billingMonth"] == "2024-03-01"
        assert body["status"] == InvoiceStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_generate_month_skips_existing(
        self, api, db, make_user, make_client, make_service, auth_staff
    ):
        """Test generazione mensile: la seconda esecuzione non duplica."""
        user = await make_user()
        client = await make_client()
        service = await make_service(price="1000.00")
        db.add(
            ClientServiceSubscription(
                client_id=client.id,
                service_id=service.id,
                quantity=1,
                start_date=date(2024, 1, 1),
                is_active=True,
            )
        )
        await db.commit()
        headers = auth_staff(user)

        first = await api.post("/api/movil/facturas/generar", json={"month": 3, "year": 2024}, headers=headers)
        second = await api.post("/api/movil/facturas/generar", json={"month": 3, "year": 2024}, headers=headers)

        assert first.json()["created"] == 1
        assert second.json()["created"] == 0
        assert second.json()["skipped"] == 1


# ============================================================
# Pagamenti
# ============================================================


class TestPaymentsApi:
    """Test per /api/movil/pagos."""

    @pytest.mark.asyncio
    async def test_cashier_registers_payment(
        self, api, make_user, make_client, make_invoice, auth_staff
    ):
        """Test pagamento parziale da un utente Caja."""
        user = await make_user(username="caja1", role=UserRole.CASHIER.value)
        client = await make_client()
        invoice = await make_invoice(client, amount="1000.00")
        headers = auth_staff(user)

        response = await api.post(
            "/api/movil/pagos",
            json={"invoice_id": str(invoice.id), "amount": "400"},
            headers=headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert Decimal(body["amount"]) == Decimal("400")
        assert body["paymentType"] == "Fisico"
        assert len(body["invoices"]) == 1

        detail = await api.get(f"/api/movil/facturas/{invoice.id}", headers=headers)
        assert Decimal(detail.json()["balance"]) == Decimal("600")

    @pytest.mark.asyncio
    async def test_paid_invoice_conflict(self, api, make_user, make_client, make_invoice, auth_staff):
        """Test pagamento su fattura già pagata: 400 INVOICE_ALREADY_PAID."""
        user = await make_user()
        client = await make_client()
        invoice = await make_invoice(client, status=InvoiceStatus.PAID.value)

        response = await api.post(
            "/api/movil/pagos", json={"invoice_id": str(invoice.id)}, headers=auth_staff(user)
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVOICE_ALREADY_PAID"

    @pytest.mark.asyncio
    async def test_electronic_without_bank(self, api, make_user, make_client, make_invoice, auth_staff):
        """Test pagamento elettronico senza banca: 422."""
        user = await make_user()
        client = await make_client()
        invoice = await make_invoice(client)

        response = await api.post(
            "/api/movil/pagos",
            json={"invoice_id": str(invoice.id), "payment_type": "Electronico"},
            headers=auth_staff(user),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_exchange_rate_update_and_convert(self, api, make_user, auth_staff):
        """Test aggiornamento del tipo di cambio e conversione."""
        user = await make_user()
        headers = auth_staff(user)

        updated = await api.put("/api/movil/pagos/tipo-cambio", json={"rate": "36.50"}, headers=headers)
        assert updated.status_code == 200

        response = await api.get(
            "/api/movil/pagos/convertir",
            params={"amount": "10", "from": "$", "to": "C$"},
            headers=headers,
        )

        assert response.status_code == 200
        assert Decimal(response.json()["result"]) == Decimal("365.00")

    @pytest.mark.asyncio
    async def test_delete_requires_admin(self, api, make_user, make_client, make_invoice, auth_staff):
        """Test l'eliminazione di un pagamento è riservata agli amministratori."""
        cashier = await make_user(username="caja1", role=UserRole.CASHIER.value)
        admin = await make_user(username="admin")
        client = await make_client()
        invoice = await make_invoice(client)

        created = await api.post(
            "/api/movil/pagos", json={"invoice_id": str(invoice.id)}, headers=auth_staff(cashier)
        )
        payment_id = created.json()["id"]

        forbidden = await api.delete(f"/api/movil/pagos/{payment_id}", headers=auth_staff(cashier))
        deleted = await api.delete(f"/api/movil/pagos/{payment_id}", headers=auth_staff(admin))
        detail = await api.get(f"/api/movil/facturas/{invoice.id}", headers=auth_staff(admin))

        assert forbidden.status_code == 403
        assert deleted.status_code == 204
        assert detail.json()["status"] == InvoiceStatus.PENDING.value


# ============================================================
# Inventario
# ============================================================


class TestInventoryApi:
    """Test per consegne, fornitori e manutenzioni in /api/movil/inventario."""

    @pytest.mark.asyncio
    async def test_assignment_and_return(self, api, make_user, make_client, auth_staff):
        """Test consegna a un cliente e restituzione via API."""
        user = await make_user(username="tecnico", role=UserRole.NORMAL.value)
        client = await make_client()
        headers = auth_staff(user)
        equipment = await api.post(
            "/api/movil/inventario/equipos", json={"name": "ONU Huawei", "stock": 3}, headers=headers
        )
        equipment_id = equipment.json()["id"]

        created = await api.post(
            "/api/movil/inventario/asignaciones",
            json={"equipment_id": equipment_id, "quantity": 2, "client_id": str(client.id)},
            headers=headers,
        )
        assert created.status_code == 201
        assert created.json()["status"] == "Activa"
        in_use = await api.get(f"/api/movil/inventario/equipos/{equipment_id}", headers=headers)
        assert (in_use.json()["stock"], in_use.json()["status"]) == (1, "En uso")

        returned = await api.post(
            f"/api/movil/inventario/asignaciones/{created.json()['id']}/devolver", headers=headers
        )
        assert returned.status_code == 200
        assert returned.json()["returnedAt"] is not None
        available = await api.get(f"/api/movil/inventario/equipos/{equipment_id}", headers=headers)
        assert (available.json()["stock"], available.json()["status"]) == (3, "Disponible")

    @pytest.mark.asyncio
    async def test_assignment_over_stock(self, api, make_user, auth_staff):
        """Test consegna oltre la giacenza: 400."""
        user = await make_user()
        headers = auth_staff(user)
        equipment = await api.post(
            "/api/movil/inventario/equipos", json={"name": "Antena", "stock": 1}, headers=headers
        )

        response = await api.post(
            "/api/movil/inventario/asignaciones",
            json={"equipment_id": equipment.json()["id"], "quantity": 5, "employee_name": "Carlos"},
            headers=headers,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_supplier_in_use_conflict(self, api, make_user, auth_staff):
        """Test fornitore con apparati attivi: 409."""
        admin = await make_user()
        headers = auth_staff(admin)
        supplier = await api.post("/api/movil/inventario/proveedores", json={"name": "TP-Link"}, headers=headers)
        assert supplier.status_code == 201
        await api.post(
            "/api/movil/inventario/equipos",
            json={"name": "Router", "supplier_id": supplier.json()["id"]},
            headers=headers,
        )

        response = await api.delete(f"/api/movil/inventario/proveedores/{supplier.json()['id']}", headers=headers)

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_repair_status(self, api, make_user, auth_staff):
        """Test una riparazione in corso porta l'apparato En reparación."""
        user = await make_user(username="tecnico", role=UserRole.NORMAL.value)
        headers = auth_staff(user)
        equipment = await api.post("/api/movil/inventario/equipos", json={"name": "Radio"}, headers=headers)
        equipment_id = equipment.json()["id"]

        created = await api.post(
            "/api/movil/inventario/mantenimientos",
            json={"equipment_id": equipment_id, "maintenance_type": "Correctivo", "status": "En proceso"},
            headers=headers,
        )
        detail = await api.get(f"/api/movil/inventario/equipos/{equipment_id}", headers=headers)

        assert created.status_code == 201
        assert created.json()["type"] == "Correctivo"
        assert detail.json()["status"] == "En reparación"
