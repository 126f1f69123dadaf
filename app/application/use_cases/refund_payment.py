import logging
from dataclasses import dataclass
from decimal import Decimal

from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.application.interfaces.stripe_gateway import StripeGateway
from app.application.payment_ledger import LedgerUpdate, PaymentLedgerWriter
from app.domain.constants import (
    BOOKING_STATUS_CANCELLED,
    BOOKING_STATUS_REFUNDED,
    OPERATION_CANCEL,
    OPERATION_REFUND,
    OPERATION_TRANSFER_REVERSAL,
    ROLE_ADMIN,
)
from app.domain.entities.payment import (
    CAPTURED_STATUSES,
    PaymentLedgerRecord,
    PaymentStatus,
    RefundEntry,
    RefundSource,
)
from app.domain.errors import (
    BookingNotFoundError,
    InvalidAmountError,
    InvalidStatusError,
    NoPaymentError,
    ProcessorError,
    RefundExceedsTotalError,
    UnauthorizedError,
)
from app.domain.payment_rules import idempotency_key, proportional_reversal_amount
from app.domain.value_objects.money import Money, round_to_currency

CANCELLATION_NOTE = "Authorization cancelled before capture, no funds were collected"


@dataclass(frozen=True)
class RefundOutcome:
    booking_id: str
    status: str
    refunded_amount: Decimal
    currency: str
    refund_source: str
    refund_id: str | None = None
    transfer_reversal_id: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class _Reversal:
    source: RefundSource
    reversal_id: str | None = None
    note: str | None = None


class RefundPaymentUseCase:
    """
    Cancels an uncaptured authorization, or refunds a captured payment and
    claws back the payee's share of the transfer when there is one.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        ledger_repo: PaymentLedgerRepo,
        stripe_gateway: StripeGateway,
        ledger_writer: PaymentLedgerWriter,
        clock: Clock,
    ) -> None:
        self._booking_repo = booking_repo
        self._ledger_repo = ledger_repo
        self._stripe_gateway = stripe_gateway
        self._ledger_writer = ledger_writer
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        booking_id: str,
        requester_id: str,
        requester_role: str | None,
        reason: str | None = None,
        amount: Decimal | None = None,
    ) -> RefundOutcome:
        booking = await self._booking_repo.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if requester_role != ROLE_ADMIN and not booking.is_customer(requester_id):
            raise UnauthorizedError("Only an administrator or the booking's customer can request a refund")

        record = await self._ledger_repo.get_by_booking(booking_id)
        if record is None or not record.stripe_payment_intent_id:
            raise NoPaymentError(booking_id, "refund")
        if amount is not None and amount <= 0:
            raise InvalidAmountError("Refund amount must be greater than zero")

        if record.status == PaymentStatus.AUTHORIZED:
            return await self._cancel_authorization(record, reason)
        if record.status in CAPTURED_STATUSES:
            return await self._refund_captured(record, reason, amount)

        raise InvalidStatusError(
            current_status=record.status.value,
            expected_status=[
                PaymentStatus.AUTHORIZED.value,
                PaymentStatus.COMPLETED.value,
                PaymentStatus.PARTIALLY_REFUNDED.value,
            ],
            operation="refund payment",
        )

    async def _cancel_authorization(self, record: PaymentLedgerRecord, reason: str | None) -> RefundOutcome:
        key = idempotency_key(record.booking_id, OPERATION_CANCEL)
        await self._stripe_gateway.cancel_payment_intent(
            payment_intent_id=record.stripe_payment_intent_id,
            idempotency_key=key,
        )

        now = self._clock.now()

        def record_cancellation(current: PaymentLedgerRecord) -> LedgerUpdate | None:
            # payment_intent.canceled may have landed first
            if current.status != PaymentStatus.AUTHORIZED:
                return None
            current.transition_to(PaymentStatus.REFUNDED, "cancel authorization")
            current.refunded_at = now
            current.canceled_at = now
            current.refund_notes = CANCELLATION_NOTE
            current.add_refund(
                RefundEntry(
                    amount=current.total,
                    reason=reason,
                    refunded_at=now,
                    source=RefundSource.PLATFORM,
                    notes=CANCELLATION_NOTE,
                )
            )
            return LedgerUpdate(current, booking_status=BOOKING_STATUS_CANCELLED)

        saved = await self._ledger_writer.apply(record.booking_id, record_cancellation)

        self._logger.info(
            "Authorization cancelled",
            extra={
                "booking_id": record.booking_id,
                "payment_intent_id": record.stripe_payment_intent_id,
                "idempotency_key": key,
            },
        )
        return RefundOutcome(
            booking_id=record.booking_id,
            status=saved.status.value,
            refunded_amount=record.total,
            currency=record.currency,
            refund_source=RefundSource.PLATFORM.value,
            notes=CANCELLATION_NOTE,
        )

    async def _refund_captured(
        self,
        record: PaymentLedgerRecord,
        reason: str | None,
        amount: Decimal | None,
    ) -> RefundOutcome:
        already_refunded = record.refunded_total
        if amount is not None:
            refund_amount = round_to_currency(amount, record.currency)
            if already_refunded + refund_amount > record.total:
                raise RefundExceedsTotalError(refund_amount, already_refunded, record.total)
        else:
            refund_amount = record.remaining_refundable
            if refund_amount <= 0:
                raise RefundExceedsTotalError(refund_amount, already_refunded, record.total)
        is_full = already_refunded + refund_amount >= record.total

        timestamp = self._clock.timestamp_ms()
        refund_key = idempotency_key(record.booking_id, OPERATION_REFUND, timestamp)
        refund = await self._stripe_gateway.create_refund(
            payment_intent_id=record.stripe_payment_intent_id,
            amount=Money(refund_amount, record.currency).to_minor_units(),
            idempotency_key=refund_key,
            metadata={"bookingId": record.booking_id, "reason": reason or ""},
        )

        reversal = await self._reverse_transfer(record, refund_amount, is_full, timestamp)

        refunded_at = self._clock.now()

        def record_refund(current: PaymentLedgerRecord) -> LedgerUpdate | None:
            # charge.refunded may already carry this refund
            if current.has_refund(refund.id):
                return None
            current.refunded_at = refunded_at
            if current.refunded_total + refund_amount > current.total:
                # A dispute withdrew the funds while the refund was in flight
                current.refund_notes = (
                    f"Refund {refund.id} of {refund_amount} {current.currency} issued while the payment "
                    f"was already {current.status.value}. Manual review required."
                )
                self._logger.error(
                    "Refund issued on a payment that changed meanwhile, recorded for manual review",
                    extra={
                        "booking_id": current.booking_id,
                        "refund_id": refund.id,
                        "payment_status": current.status.value,
                        "dispute_id": current.dispute_id,
                    },
                )
                return LedgerUpdate(current, booking_status=BOOKING_STATUS_REFUNDED)

            current.add_refund(
                RefundEntry(
                    amount=refund_amount,
                    reason=reason,
                    refunded_at=refunded_at,
                    source=reversal.source,
                    refund_id=refund.id,
                    notes=reversal.note,
                )
            )
            if current.status in CAPTURED_STATUSES:
                current.transition_to(current.status_after_refund(), "refund payment")
            if reversal.note:
                current.refund_notes = reversal.note
            return LedgerUpdate(current, booking_status=BOOKING_STATUS_REFUNDED)

        saved = await self._ledger_writer.apply(record.booking_id, record_refund)

        self._logger.info(
            "Payment refunded",
            extra={
                "booking_id": record.booking_id,
                "refund_id": refund.id,
                "amount": str(refund_amount),
                "currency": record.currency,
                "status": saved.status.value,
                "refund_source": reversal.source.value,
                "idempotency_key": refund_key,
            },
        )
        return RefundOutcome(
            booking_id=record.booking_id,
            status=saved.status.value,
            refunded_amount=refund_amount,
            currency=record.currency,
            refund_source=reversal.source.value,
            refund_id=refund.id,
            transfer_reversal_id=reversal.reversal_id,
            notes=reversal.note if saved.has_refund(refund.id) else saved.refund_notes,
        )

    async def _reverse_transfer(
        self,
        record: PaymentLedgerRecord,
        refund_amount: Decimal,
        is_full: bool,
        timestamp: int,
    ) -> _Reversal:
        if not record.stripe_transfer_id:
            return _Reversal(source=RefundSource.PLATFORM)

        if is_full:
            reversal_amount = None
        else:
            transferred = record.transfer_amount_minor
            if transferred is None:
                transferred = Money(record.payout_amount, record.currency).to_minor_units()
            reversal_amount = proportional_reversal_amount(transferred, refund_amount, record.total)

        key = idempotency_key(record.booking_id, OPERATION_TRANSFER_REVERSAL, timestamp)
        try:
            reversal = await self._stripe_gateway.create_transfer_reversal(
                transfer_id=record.stripe_transfer_id,
                amount=reversal_amount,
                idempotency_key=key,
                metadata={"bookingId": record.booking_id},
            )
        except ProcessorError as exc:
            self._logger.error(
                "Transfer reversal failed, refund funded by platform",
                extra={
                    "booking_id": record.booking_id,
                    "transfer_id": record.stripe_transfer_id,
                    "amount": reversal_amount,
                    "error": exc.message,
                },
            )
            return _Reversal(
                source=RefundSource.PLATFORM,
                note=f"Transfer reversal failed: {exc.message}. Refund funded by platform.",
            )

        return _Reversal(source=RefundSource.PROVIDER, reversal_id=reversal.id)
