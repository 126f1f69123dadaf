"""Value Objects del dominio de pagos."""

from app.domain.value_objects.money import Money, minor_unit_exponent, round_to_currency

__all__ = [
    "Money",
    "minor_unit_exponent",
    "round_to_currency",
]
