"""Eventos del procesador (webhooks de Stripe) como variante etiquetada."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProcessorEventKind(str, Enum):
    """Tipos de evento que el procesador de webhooks reconoce."""

    AUTHORIZATION_SUCCEEDED = "payment_intent.succeeded"
    AUTHORIZATION_FAILED = "payment_intent.payment_failed"
    AUTHORIZATION_CANCELED = "payment_intent.canceled"
    CHARGE_CAPTURED = "charge.captured"
    CHARGE_REFUNDED = "charge.refunded"
    DISPUTE_OPENED = "charge.dispute.created"
    DISPUTE_CLOSED = "charge.dispute.closed"
    TRANSFER_CREATED = "transfer.created"
    TRANSFER_REVERSED = "transfer.reversed"
    ACCOUNT_UPDATED = "account.updated"
    ACCOUNT_DISCONNECTED = "account.application.deauthorized"
    PAYOUT_PAID = "payout.paid"
    UNKNOWN = "unknown"

    @classmethod
    def from_type(cls, event_type: str | None) -> "ProcessorEventKind":
        try:
            return cls(event_type)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class IntentPayload:
    intent_id: str | None
    booking_id: str | None
    latest_charge: str | None = None
    amount: int | None = None
    currency: str | None = None
    failure_message: str | None = None


@dataclass(frozen=True)
class ChargePayload:
    charge_id: str | None
    intent_id: str | None
    amount: int = 0
    amount_refunded: int = 0
    currency: str | None = None


@dataclass(frozen=True)
class DisputePayload:
    dispute_id: str
    charge_id: str | None
    amount: int = 0
    currency: str | None = None
    reason: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class TransferPayload:
    transfer_id: str
    booking_id: str | None
    amount: int | None = None
    currency: str | None = None
    destination_payment: str | None = None


@dataclass(frozen=True)
class AccountPayload:
    account_id: str | None
    user_id: str | None
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False


@dataclass(frozen=True)
class PayoutPayload:
    payout_id: str | None
    amount: int = 0
    currency: str | None = None


@dataclass(frozen=True)
class UnknownPayload:
    event_type: str | None


EventPayload = (
    IntentPayload
    | ChargePayload
    | DisputePayload
    | TransferPayload
    | AccountPayload
    | PayoutPayload
    | UnknownPayload
)


@dataclass(frozen=True)
class ProcessorEvent:
    id: str
    kind: ProcessorEventKind
    payload: EventPayload
    event_type: str | None = None


def _metadata(data_obj: dict[str, Any]) -> dict[str, Any]:
    metadata = data_obj.get("metadata") or {}
    return metadata if isinstance(metadata, dict) else {}


def _object_id(value: Any) -> str | None:
    """Stripe puede expandir referencias: acepta id o el objeto completo."""
    if isinstance(value, dict):
        return value.get("id")
    return value


def parse_processor_event(envelope: dict[str, Any]) -> ProcessorEvent:
    """Convierte el sobre JSON de Stripe en un ProcessorEvent tipado."""
    event_type = envelope.get("type")
    kind = ProcessorEventKind.from_type(event_type)
    data = envelope.get("data") or {}
    data_obj: dict[str, Any] = (data.get("object") or {}) if isinstance(data, dict) else {}
    metadata = _metadata(data_obj)

    payload: EventPayload
    if kind in (
        ProcessorEventKind.AUTHORIZATION_SUCCEEDED,
        ProcessorEventKind.AUTHORIZATION_FAILED,
        ProcessorEventKind.AUTHORIZATION_CANCELED,
    ):
        last_error = data_obj.get("last_payment_error") or {}
        payload = IntentPayload(
            intent_id=data_obj.get("id"),
            booking_id=metadata.get("bookingId"),
            latest_charge=_object_id(data_obj.get("latest_charge")),
            amount=data_obj.get("amount"),
            currency=data_obj.get("currency"),
            failure_message=last_error.get("message"),
        )
    elif kind in (ProcessorEventKind.CHARGE_CAPTURED, ProcessorEventKind.CHARGE_REFUNDED):
        payload = ChargePayload(
            charge_id=data_obj.get("id"),
            intent_id=_object_id(data_obj.get("payment_intent")),
            amount=data_obj.get("amount") or 0,
            amount_refunded=data_obj.get("amount_refunded") or 0,
            currency=data_obj.get("currency"),
        )
    elif kind in (ProcessorEventKind.DISPUTE_OPENED, ProcessorEventKind.DISPUTE_CLOSED):
        payload = DisputePayload(
            dispute_id=data_obj.get("id") or "",
            charge_id=_object_id(data_obj.get("charge")),
            amount=data_obj.get("amount") or 0,
            currency=data_obj.get("currency"),
            reason=data_obj.get("reason"),
            status=data_obj.get("status"),
        )
    elif kind in (ProcessorEventKind.TRANSFER_CREATED, ProcessorEventKind.TRANSFER_REVERSED):
        payload = TransferPayload(
            transfer_id=data_obj.get("id") or "",
            booking_id=metadata.get("bookingId"),
            amount=data_obj.get("amount"),
            currency=data_obj.get("currency"),
            destination_payment=_object_id(data_obj.get("destination_payment")),
        )
    elif kind == ProcessorEventKind.ACCOUNT_UPDATED:
        payload = AccountPayload(
            account_id=data_obj.get("id"),
            user_id=metadata.get("userId"),
            charges_enabled=bool(data_obj.get("charges_enabled")),
            payouts_enabled=bool(data_obj.get("payouts_enabled")),
            details_submitted=bool(data_obj.get("details_submitted")),
        )
    elif kind == ProcessorEventKind.ACCOUNT_DISCONNECTED:
        # El id de la cuenta desconectada viaja en event.account
        payload = AccountPayload(account_id=envelope.get("account"), user_id=None)
    elif kind == ProcessorEventKind.PAYOUT_PAID:
        payload = PayoutPayload(
            payout_id=data_obj.get("id"),
            amount=data_obj.get("amount") or 0,
            currency=data_obj.get("currency"),
        )
    else:
        payload = UnknownPayload(event_type=event_type)

    return ProcessorEvent(
        id=envelope.get("id") or "",
        kind=kind,
        payload=payload,
        event_type=event_type,
    )
