"""Entidades del dominio de pagos en escrow."""

from app.domain.entities.booking import Booking, PaymentSummary, ProjectRef, Quote
from app.domain.entities.payee import (
    ConnectedAccount,
    Payee,
    PayeeFound,
    PayeeMissing,
    PayeeResolution,
)
from app.domain.entities.payment import (
    PaymentLedgerRecord,
    PaymentStatus,
    RefundEntry,
    RefundSource,
    TransferFailure,
)
from app.domain.entities.processor_event import (
    ProcessorEvent,
    ProcessorEventKind,
    parse_processor_event,
)

__all__ = [
    "Booking",
    "PaymentSummary",
    "ProjectRef",
    "Quote",
    "ConnectedAccount",
    "Payee",
    "PayeeFound",
    "PayeeMissing",
    "PayeeResolution",
    "PaymentLedgerRecord",
    "PaymentStatus",
    "RefundEntry",
    "RefundSource",
    "TransferFailure",
    "ProcessorEvent",
    "ProcessorEventKind",
    "parse_processor_event",
]
