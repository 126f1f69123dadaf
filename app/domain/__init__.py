"""
Capa de Dominio - Pagos en escrow del marketplace.

Esta capa contiene la lógica de negocio pura, sin dependencias de frameworks.

Estructura:
- entities/: Booking, PaymentLedgerRecord, Payee, eventos del procesador
- value_objects/: Money y utilidades de unidades menores
- payment_rules.py: reparto, moneda de liquidación, llaves de idempotencia
- errors.py: Excepciones específicas del dominio
- constants.py: Constantes del dominio
"""

from app.domain.entities import (
    Booking,
    Payee,
    PaymentLedgerRecord,
    PaymentStatus,
    ProcessorEvent,
    ProcessorEventKind,
    RefundEntry,
    RefundSource,
)
from app.domain.errors import (
    DomainError,
    InvalidAmountError,
    InvalidStatusError,
    NotFoundError,
    PayeeNotReadyError,
    PaymentAlreadyProcessedError,
    ProcessorError,
    RefundExceedsTotalError,
    TransferFailedError,
    UnauthorizedError,
)
from app.domain.value_objects import Money

__all__ = [
    "Booking",
    "Payee",
    "PaymentLedgerRecord",
    "PaymentStatus",
    "ProcessorEvent",
    "ProcessorEventKind",
    "RefundEntry",
    "RefundSource",
    "DomainError",
    "InvalidAmountError",
    "InvalidStatusError",
    "NotFoundError",
    "PayeeNotReadyError",
    "PaymentAlreadyProcessedError",
    "ProcessorError",
    "RefundExceedsTotalError",
    "TransferFailedError",
    "UnauthorizedError",
    "Money",
]
