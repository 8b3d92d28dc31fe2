"""
Test per ExpenseService e per gli endpoint /api/movil/egresos.
"""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from isp_billing.core.exceptions import BusinessValidationError, NotFoundError
from isp_billing.models import Expense
from isp_billing.models.user import UserRole
from isp_billing.schemas.expense import ExpenseCreate
from isp_billing.services.expense_service import ExpenseService


def _expense(amount: str = "1500.00", category: str = "Alquiler", day: date = date(2024, 3, 5)) -> ExpenseCreate:
    return ExpenseCreate(
        description="Alquiler de oficina",
        category=category,
        amount=Decimal(amount),
        expense_date=day,
    )


class TestExpenseService:
    """Test per codici, soft delete e totali."""

    @pytest.mark.asyncio
    async def test_codes_are_sequential(self, db):
        """Test codici EGR-0001, EGR-0002."""
        service = ExpenseService()

        first = await service.create(db, _expense())
        second = await service.create(db, _expense())

        assert first.code == "EGR-0001"
        assert second.code == "EGR-0002"

    @pytest.mark.asyncio
    async def test_soft_delete(self, db):
        """Test la spesa eliminata resta in tabella ma non è più visibile."""
        service = ExpenseService()
        expense = await service.create(db, _expense())

        await service.delete(db, expense.id)

        stored = await db.get(Expense, expense.id)
        assert stored is not None
        assert stored.is_active is False
        with pytest.raises(NotFoundError):
            await service.get_by_id(db, expense.id)

    @pytest.mark.asyncio
    async def test_code_not_reused_after_delete(self, db):
        """Test il codice di una spesa eliminata non viene riassegnato."""
        service = ExpenseService()
        expense = await service.create(db, _expense())
        await service.delete(db, expense.id)

        again = await service.create(db, _expense())

        assert again.code == "EGR-0002"

    @pytest.mark.asyncio
    async def test_totals_by_category(self, db):
        """Test totali per categoria, spese eliminate escluse."""
        service = ExpenseService()
        await service.create(db, _expense("1500.00", "Alquiler"))
        await service.create(db, _expense("300.00", "Transporte"))
        removed = await service.create(db, _expense("200.00", "Transporte"))
        await service.delete(db, removed.id)

        totals = await service.totals_by_category(db, date(2024, 3, 1), date(2024, 3, 31))

        assert totals.total == Decimal("1800.00")
        assert {row.category: row.total for row in totals.by_category} == {
            "Alquiler": Decimal("1500.00"),
            "Transporte": Decimal("300.00"),
        }

    @pytest.mark.asyncio
    async def test_totals_invalid_range(self, db):
        """Test intervallo con fine prima dell'inizio."""
        with pytest.raises(BusinessValidationError):
            await ExpenseService().totals_by_category(db, date(2024, 3, 31), date(2024, 3, 1))

    def test_unknown_category(self):
        """Test categoria non prevista."""
        with pytest.raises(ValidationError):
            _expense(category="Vacaciones")


class TestExpenseApi:
    """Test per /api/movil/egresos."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, api, make_user, auth_staff):
        """Test un utente Caja registra una spesa."""
        user = await make_user(username="caja1", role=UserRole.CASHIER.value)
        headers = auth_staff(user)

        created = await api.post(
            "/api/movil/egresos",
            json={"description": "Combustible", "category": "Transporte", "amount": "450.00"},
            headers=headers,
        )
        listed = await api.get("/api/movil/egresos", headers=headers)

        assert created.status_code == 201
        assert created.json()["code"] == "EGR-0001"
        assert listed.json()["totalItems"] == 1

    @pytest.mark.asyncio
    async def test_categories(self, api, make_user, auth_staff):
        """Test elenco categorie e metodi di pagamento."""
        user = await make_user()

        response = await api.get("/api/movil/egresos/categorias", headers=auth_staff(user))

        assert response.status_code == 200
        assert "Alquiler" in response.json()["categories"]
        assert "Efectivo" in response.json()["paymentMethods"]

    @pytest.mark.asyncio
    async def test_delete_requires_admin(self, api, make_user, auth_staff):
        """Test solo un amministratore elimina una spesa."""
        cashier = await make_user(username="caja1", role=UserRole.CASHIER.value)
        headers = auth_staff(cashier)
        created = await api.post(
            "/api/movil/egresos",
            json={"description": "Combustible", "category": "Transporte", "amount": "450.00"},
            headers=headers,
        )

        response = await api.delete(f"/api/movil/egresos/{created.json()['id']}", headers=headers)

        assert response.status_code == 403
