"""Servicios de infraestructura."""

from app.infrastructure.services.clock_impl import ClockImpl
from app.infrastructure.services.vat_calculator import EuVatCalculator, ZeroVatCalculator

__all__ = [
    "ClockImpl",
    "EuVatCalculator",
    "ZeroVatCalculator",
]
