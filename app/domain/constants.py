"""Constantes del dominio de pagos."""

from decimal import Decimal

# Estados de la reserva que toca el núcleo de pagos
BOOKING_STATUS_QUOTE_ACCEPTED = "quote_accepted"
BOOKING_STATUS_PAYMENT_PENDING = "payment_pending"
BOOKING_STATUS_BOOKED = "booked"
BOOKING_STATUS_CANCELLED = "cancelled"
BOOKING_STATUS_REFUNDED = "refunded"

PAYABLE_BOOKING_STATUSES = (
    BOOKING_STATUS_QUOTE_ACCEPTED,
    BOOKING_STATUS_PAYMENT_PENDING,
    BOOKING_STATUS_BOOKED,
)

ROLE_ADMIN = "admin"

DEFAULT_CURRENCY = "EUR"
DEFAULT_COUNTRY = "BE"
DEFAULT_CUSTOMER_TYPE = "individual"

# Límites de Stripe para cargos (unidades mayores)
DEFAULT_MINIMUM_CHARGE = Decimal("0.50")
MINIMUM_CHARGE_AMOUNTS = {
    "EUR": Decimal("0.50"),
    "USD": Decimal("0.50"),
    "GBP": Decimal("0.30"),
    "CHF": Decimal("0.50"),
    "CAD": Decimal("0.50"),
    "AUD": Decimal("0.50"),
    "DKK": Decimal("2.50"),
    "NOK": Decimal("3.00"),
    "SEK": Decimal("3.00"),
    "PLN": Decimal("2.00"),
    "JPY": Decimal("50"),
}
MAXIMUM_CHARGE_AMOUNT = Decimal("999999.99")

# Monedas sin decimales en la API de Stripe
ZERO_DECIMAL_CURRENCIES = frozenset(
    {"BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA", "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF"}
)

COUNTRY_CURRENCIES = {
    "AT": "EUR",
    "BE": "EUR",
    "DE": "EUR",
    "ES": "EUR",
    "FI": "EUR",
    "FR": "EUR",
    "IE": "EUR",
    "IT": "EUR",
    "LU": "EUR",
    "NL": "EUR",
    "PT": "EUR",
    "GB": "GBP",
    "US": "USD",
    "CA": "CAD",
    "AU": "AUD",
    "CH": "CHF",
    "DK": "DKK",
    "NO": "NOK",
    "SE": "SEK",
    "PL": "PLN",
    "JP": "JPY",
}

# Operaciones usadas para derivar llaves de idempotencia
OPERATION_PAYMENT_INTENT = "payment-intent"
OPERATION_CAPTURE = "capture"
OPERATION_CANCEL = "cancel"
OPERATION_TRANSFER = "transfer"
OPERATION_REFUND = "refund"
OPERATION_TRANSFER_REVERSAL = "transfer-reversal"
