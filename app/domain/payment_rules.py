"""
Reglas de negocio puras del ciclo de pago.

- Resolución de moneda de liquidación
- Validación de montos contra los límites de Stripe
- Reparto comisión / payout
- Monto de transferencia cuando Stripe liquida en otra moneda
- Llaves de idempotencia deterministas
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.domain.constants import (
    COUNTRY_CURRENCIES,
    DEFAULT_CURRENCY,
    DEFAULT_MINIMUM_CHARGE,
    MAXIMUM_CHARGE_AMOUNT,
    MINIMUM_CHARGE_AMOUNTS,
)
from app.domain.errors import InvalidAmountError
from app.domain.value_objects.money import round_to_currency


@dataclass(frozen=True)
class PaymentSplit:
    total_with_vat: Decimal
    platform_commission: Decimal
    professional_payout: Decimal


def resolve_settlement_currency(
    quote_currency: str | None,
    payee_currency: str | None,
    customer_country: str | None,
) -> str:
    """Moneda de la cotización, luego la preferida del profesional, luego la del país del cliente."""
    if quote_currency:
        return quote_currency.upper()
    if payee_currency:
        return payee_currency.upper()
    if customer_country:
        return COUNTRY_CURRENCIES.get(customer_country.upper(), DEFAULT_CURRENCY)
    return DEFAULT_CURRENCY


def validate_charge_amount(total: Decimal, currency: str) -> None:
    """Valida el total contra el mínimo por moneda y el máximo de Stripe."""
    minimum = MINIMUM_CHARGE_AMOUNTS.get(currency.upper(), DEFAULT_MINIMUM_CHARGE)
    if total < minimum:
        raise InvalidAmountError(f"Amount must be at least {minimum} {currency.upper()}")
    if total > MAXIMUM_CHARGE_AMOUNT:
        raise InvalidAmountError(f"Amount must not exceed {MAXIMUM_CHARGE_AMOUNT} {currency.upper()}")


def split_payment(total_with_vat: Decimal, commission_percent: Decimal, currency: str) -> PaymentSplit:
    """
    Calcula comisión y payout.

    La comisión se redondea a la unidad menor y el payout es el resto exacto,
    así payout + comisión == total siempre.
    """
    total = round_to_currency(total_with_vat, currency)
    commission = round_to_currency(total * Decimal(commission_percent) / Decimal(100), currency)
    return PaymentSplit(
        total_with_vat=total,
        platform_commission=commission,
        professional_payout=total - commission,
    )


def settlement_transfer_amount(
    settlement_amount_minor: int,
    payout: Decimal,
    booking_total: Decimal,
) -> int:
    """
    Payout proporcional en la moneda de liquidación (unidades menores).

    transfer = max(1, round(settlement * clamp(payout / total, 0, 1)))
    """
    if booking_total > 0:
        ratio = min(max(payout / booking_total, Decimal(0)), Decimal(1))
    else:
        ratio = Decimal(1)
    amount = (Decimal(settlement_amount_minor) * ratio).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(1, int(amount))


def proportional_reversal_amount(
    transfer_amount_minor: int,
    refund_amount: Decimal,
    total: Decimal,
) -> int:
    """Porción de la transferencia a revertir para un reembolso parcial."""
    if total <= 0:
        return transfer_amount_minor
    ratio = min(max(refund_amount / total, Decimal(0)), Decimal(1))
    amount = (Decimal(transfer_amount_minor) * ratio).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(1, int(amount))


def idempotency_key(booking_id: str, operation: str, timestamp: int | None = None) -> str:
    """Llave determinista por (reserva, operación[, timestamp])."""
    parts = ["booking", booking_id, operation]
    if timestamp is not None:
        parts.append(str(timestamp))
    return "_".join(parts)
