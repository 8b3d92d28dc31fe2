"""
Regole di applicazione dei pagamenti alle fatture
Progetto: ISP Billing (Gestionale ISP)

Funzioni pure (senza database) usate da PaymentService:
- saldo di una fattura e stato risultante
- importo di default di un pagamento
- distribuzione di un totale su più fatture
- validazione delle quote indicate dal chiamante
- resto e conversione di valuta
"""

import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping, Optional, Sequence

from isp_billing.core.exceptions import BusinessValidationError
from isp_billing.models.invoice import Currency, InvoiceStatus

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def quantize(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_balance(amount: Decimal, applied: Iterable[Decimal]) -> Decimal:
    """Saldo = amount - somma applicata, mai negativo."""
    return max(ZERO, quantize(amount - sum(applied, ZERO)))


def status_for(current_status: str, amount: Decimal, paid: Decimal) -> str:
    """
    Stato della fattura dopo una variazione dei pagamenti.

    Pagada quando il pagato raggiunge l'importo, altrimenti Pendiente.
    Una fattura Cancelada non cambia stato.
    """
    if current_status == InvoiceStatus.CANCELLED.value:
        return current_status
    if paid >= amount:
        return InvoiceStatus.PAID.value
    return InvoiceStatus.PENDING.value


def resolve_single_amount(requested: Optional[Decimal], balance: Decimal) -> Decimal:
    """Importo assente o non positivo → saldo residuo della fattura."""
    if requested is None or requested <= ZERO:
        return quantize(balance)
    return quantize(requested)


def distribute(total: Decimal, balances: Sequence[tuple[uuid.UUID, Decimal]]) -> dict[uuid.UUID, Decimal]:
    """
    Distribuisce un totale sulle fatture nell'ordine indicato.

    Ogni quota è limitata al saldo della fattura; le fatture che
    non ricevono nulla non compaiono nel risultato.
    """
    remaining = quantize(total)
    result: dict[uuid.UUID, Decimal] = {}
    for invoice_id, balance in balances:
        if remaining <= ZERO:
            break
        share = min(remaining, balance)
        if share > ZERO:
            result[invoice_id] = quantize(share)
            remaining -= share
    return result


def validate_allocations(
    allocations: Mapping[uuid.UUID, Decimal],
    balances: Mapping[uuid.UUID, Decimal],
    total: Decimal,
    labels: Optional[Mapping[uuid.UUID, str]] = None,
) -> dict[uuid.UUID, Decimal]:
    """
    Valida le quote indicate dal chiamante.

    Raises:
        BusinessValidationError: fattura non inclusa nel pagamento, quota
            non positiva o superiore al saldo, somma superiore al totale
    """
    labels = labels or {}
    checked: dict[uuid.UUID, Decimal] = {}

    for invoice_id, raw_amount in allocations.items():
        if invoice_id not in balances:
            raise BusinessValidationError(
                f"La fattura {invoice_id} non fa parte del pagamento"
            )
        amount = quantize(raw_amount)
        label = labels.get(invoice_id, str(invoice_id))
        if amount <= ZERO:
            raise BusinessValidationError(f"Fattura {label}: l'importo applicato deve essere positivo")
        if amount > balances[invoice_id]:
            raise BusinessValidationError(
                f"Fattura {label}: importo applicato ({amount}) "
                f"supera il saldo ({balances[invoice_id]})"
            )
        checked[invoice_id] = amount

    applied = sum(checked.values(), ZERO)
    if applied > quantize(total):
        raise BusinessValidationError(
            f"Somma applicata ({applied}) supera l'importo del pagamento ({quantize(total)})"
        )
    return checked


def compute_change(amount_received: Optional[Decimal], amount: Decimal) -> Optional[Decimal]:
    """Resto = max(0, ricevuto - importo); None se il ricevuto non è indicato."""
    if amount_received is None:
        return None
    return max(ZERO, quantize(amount_received - amount))


def convert_currency(amount: Decimal, source: Currency, target: Currency, rate: Decimal) -> Decimal:
    """
    Converte fra córdobas e dollari.

    C$ → $ divide per il tipo di cambio, $ → C$ moltiplica.
    Stessa valuta (o Ambos) → importo invariato.
    """
    source = Currency(source)
    target = Currency(target)
    if rate <= ZERO:
        raise BusinessValidationError("Il tipo di cambio deve essere positivo")
    if source == Currency.CORDOBAS and target == Currency.DOLLARS:
        return quantize(amount / rate)
    if source == Currency.DOLLARS and target == Currency.CORDOBAS:
        return quantize(amount * rate)
    return quantize(amount)
