"""Value Object Money - representa un valor monetario con su moneda."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.domain.constants import ZERO_DECIMAL_CURRENCIES


def minor_unit_exponent(currency_code: str) -> int:
    """Cantidad de decimales que Stripe usa para la moneda."""
    return 0 if currency_code.upper() in ZERO_DECIMAL_CURRENCIES else 2


def round_to_currency(amount: Decimal, currency_code: str) -> Decimal:
    """Redondea (half-up) a la unidad menor de la moneda."""
    exponent = minor_unit_exponent(currency_code)
    quantum = Decimal(1).scaleb(-exponent)
    return Decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """
    Value Object inmutable que representa un monto monetario.

    Attributes:
        amount: Monto decimal en unidades mayores.
        currency_code: Código ISO 4217 de la moneda (ej: EUR, USD, GBP).
    """

    amount: Decimal
    currency_code: str

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))

        if len(self.currency_code) != 3:
            raise ValueError(f"currency_code must have 3 characters: {self.currency_code}")

        object.__setattr__(self, "currency_code", self.currency_code.upper())

    def rounded(self) -> "Money":
        return Money(amount=round_to_currency(self.amount, self.currency_code), currency_code=self.currency_code)

    def __str__(self) -> str:
        return f"{self.rounded().amount} {self.currency_code}"

    @classmethod
    def from_minor_units(cls, minor: int, currency_code: str) -> "Money":
        """Crea un Money desde unidades menores (centavos para Stripe)."""
        exponent = minor_unit_exponent(currency_code)
        return cls(amount=Decimal(minor).scaleb(-exponent), currency_code=currency_code)

    def to_minor_units(self) -> int:
        """Convierte a unidades menores (centavos), redondeando half-up."""
        exponent = minor_unit_exponent(self.currency_code)
        scaled = (self.amount * Decimal(10) ** exponent).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return int(scaled)
