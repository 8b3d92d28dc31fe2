"""
Unit tests per le regole pure di applicazione dei pagamenti.
"""

import uuid
from decimal import Decimal

import pytest

from isp_billing.core.exceptions import BusinessValidationError
from isp_billing.models.invoice import Currency, InvoiceStatus
from isp_billing.services.allocation import (
    compute_balance,
    compute_change,
    convert_currency,
    distribute,
    resolve_single_amount,
    status_for,
    validate_allocations,
)


# ============================================================
# Saldo e stato
# ============================================================


class TestBalanceAndStatus:
    """Test per saldo residuo e stato risultante."""

    def test_balance_after_partial_payment(self):
        """Test 1000 - 400 = 600."""
        assert compute_balance(Decimal("1000"), [Decimal("400")]) == Decimal("600.00")

    def test_balance_never_negative(self):
        """Test il saldo non scende sotto zero."""
        assert compute_balance(Decimal("100"), [Decimal("80"), Decimal("50")]) == Decimal("0.00")

    def test_status_paid_when_covered(self):
        """Test Pagada quando il pagato raggiunge l'importo."""
        status = status_for(InvoiceStatus.PENDING.value, Decimal("1000"), Decimal("1000"))
        assert status == InvoiceStatus.PAID.value

    def test_status_reverts_to_pending(self):
        """Test una Pagada con saldo torna Pendiente."""
        status = status_for(InvoiceStatus.PAID.value, Decimal("1000"), Decimal("400"))
        assert status == InvoiceStatus.PENDING.value

    def test_cancelled_never_changes(self):
        """Test una Cancelada resta Cancelada."""
        status = status_for(InvoiceStatus.CANCELLED.value, Decimal("1000"), Decimal("1000"))
        assert status == InvoiceStatus.CANCELLED.value


# ============================================================
# Importo di un pagamento singolo
# ============================================================


class TestResolveSingleAmount:
    """Test per l'importo di default."""

    @pytest.mark.parametrize("requested", [None, Decimal("0"), Decimal("-5")])
    def test_missing_amount_uses_balance(self, requested):
        """Test importo assente o non positivo = saldo."""
        assert resolve_single_amount(requested, Decimal("600")) == Decimal("600.00")

    def test_explicit_amount(self):
        """Test importo indicato."""
        assert resolve_single_amount(Decimal("250.5"), Decimal("600")) == Decimal("250.50")


# ============================================================
# Distribuzione e validazione delle quote
# ============================================================


class TestDistribute:
    """Test per la distribuzione di un totale su più fatture."""

    def test_covers_in_order(self):
        """Test il totale copre le fatture nell'ordine indicato."""
        a, b = uuid.uuid4(), uuid.uuid4()
        result = distribute(Decimal("1500"), [(a, Decimal("1000")), (b, Decimal("800"))])
        assert result == {a: Decimal("1000.00"), b: Decimal("500.00")}

    def test_stops_when_exhausted(self):
        """Test le fatture senza quota non compaiono."""
        a, b = uuid.uuid4(), uuid.uuid4()
        result = distribute(Decimal("300"), [(a, Decimal("1000")), (b, Decimal("800"))])
        assert result == {a: Decimal("300.00")}


class TestValidateAllocations:
    """Test per le quote indicate dal chiamante."""

    def test_valid_allocations(self):
        """Test quote entro saldo e totale."""
        a, b = uuid.uuid4(), uuid.uuid4()
        balances = {a: Decimal("1000"), b: Decimal("500")}
        result = validate_allocations({a: Decimal("700"), b: Decimal("300")}, balances, Decimal("1000"))
        assert sum(result.values()) == Decimal("1000.00")

    def test_allocation_over_balance(self):
        """Test quota superiore al saldo."""
        a = uuid.uuid4()
        with pytest.raises(BusinessValidationError):
            validate_allocations({a: Decimal("1200")}, {a: Decimal("1000")}, Decimal("1200"))

    def test_allocation_for_foreign_invoice(self):
        """Test fattura non inclusa nel pagamento."""
        a, other = uuid.uuid4(), uuid.uuid4()
        with pytest.raises(BusinessValidationError):
            validate_allocations({other: Decimal("10")}, {a: Decimal("1000")}, Decimal("10"))

    def test_sum_over_total(self):
        """Test somma delle quote oltre il totale."""
        a, b = uuid.uuid4(), uuid.uuid4()
        balances = {a: Decimal("1000"), b: Decimal("500")}
        with pytest.raises(BusinessValidationError):
            validate_allocations({a: Decimal("600"), b: Decimal("500")}, balances, Decimal("1000"))


# ============================================================
# Resto e conversione
# ============================================================


class TestChangeAndCurrency:
    """Test per resto e tipo di cambio."""

    def test_change(self):
        """Test resto = ricevuto - importo."""
        assert compute_change(Decimal("1000"), Decimal("850")) == Decimal("150.00")

    def test_change_without_received(self):
        """Test senza ricevuto nessun resto."""
        assert compute_change(None, Decimal("850")) is None

    def test_cordobas_to_dollars(self):
        """Test C$ → $ divide per il cambio."""
        result = convert_currency(Decimal("368"), Currency.CORDOBAS, Currency.DOLLARS, Decimal("36.80"))
        assert result == Decimal("10.00")

    def test_dollars_to_cordobas(self):
        """Test $ → C$ moltiplica per il cambio."""
        result = convert_currency(Decimal("10"), Currency.DOLLARS, Currency.CORDOBAS, Decimal("36.80"))
        assert result == Decimal("368.00")

    def test_invalid_rate(self):
        """Test cambio non positivo."""
        with pytest.raises(BusinessValidationError):
            convert_currency(Decimal("10"), Currency.DOLLARS, Currency.CORDOBAS, Decimal("0"))
