import logging
from dataclasses import dataclass

from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.payee_repo import PayeeRepo
from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.application.interfaces.stripe_gateway import ChargeSettlement, StripeGateway
from app.application.payee_resolution import resolve_payee
from app.application.payment_ledger import LedgerUpdate, PaymentLedgerWriter
from app.domain.constants import OPERATION_CAPTURE, OPERATION_TRANSFER
from app.domain.entities.booking import Booking
from app.domain.entities.payee import PayeeMissing
from app.domain.entities.payment import PaymentLedgerRecord, PaymentStatus, TransferFailure, can_transition
from app.domain.errors import (
    BookingNotFoundError,
    InvalidStatusError,
    NoPaymentError,
    PayeeNotReadyError,
    ProcessorError,
    TransferFailedError,
)
from app.domain.payment_rules import idempotency_key, settlement_transfer_amount
from app.domain.value_objects.money import Money


@dataclass(frozen=True)
class CaptureOutcome:
    booking_id: str
    status: str
    charge_id: str | None
    transfer_id: str | None
    transfer_amount: int | None
    transfer_currency: str | None


@dataclass(frozen=True)
class _TransferPlan:
    amount: int
    currency: str
    source_transaction: str | None = None


class CaptureAndTransferUseCase:
    """
    Captures a held authorization and pays the payee's share out to the
    connected account.

    The capture is committed before the transfer is attempted. A failed
    transfer leaves the payment completed with a transfer-failure annotation
    for manual payout, and TransferFailedError is raised.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        ledger_repo: PaymentLedgerRepo,
        payee_repo: PayeeRepo,
        stripe_gateway: StripeGateway,
        ledger_writer: PaymentLedgerWriter,
        clock: Clock,
    ) -> None:
        self._booking_repo = booking_repo
        self._ledger_repo = ledger_repo
        self._payee_repo = payee_repo
        self._stripe_gateway = stripe_gateway
        self._ledger_writer = ledger_writer
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(self, booking_id: str) -> CaptureOutcome:
        booking = await self._booking_repo.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)

        record = await self._ledger_repo.get_by_booking(booking_id)
        if record is None or not record.stripe_payment_intent_id:
            raise NoPaymentError(booking_id, "capture")
        if record.status != PaymentStatus.AUTHORIZED:
            raise InvalidStatusError(
                current_status=record.status.value,
                expected_status=PaymentStatus.AUTHORIZED.value,
                operation="capture payment",
            )

        destination = await self._payee_account(booking)

        capture_key = idempotency_key(booking_id, OPERATION_CAPTURE)
        intent = await self._stripe_gateway.capture_payment_intent(
            payment_intent_id=record.stripe_payment_intent_id,
            idempotency_key=capture_key,
        )

        captured_at = self._clock.now()

        def record_capture(current: PaymentLedgerRecord) -> LedgerUpdate | None:
            if current.captured_at is not None and current.stripe_charge_id:
                return None
            current.captured_at = current.captured_at or captured_at
            current.stripe_charge_id = intent.latest_charge or current.stripe_charge_id
            return LedgerUpdate(current)

        captured = await self._ledger_writer.apply(booking_id, record_capture)
        self._logger.info(
            "Payment captured",
            extra={
                "booking_id": booking_id,
                "payment_intent_id": record.stripe_payment_intent_id,
                "charge_id": captured.stripe_charge_id,
                "idempotency_key": capture_key,
            },
        )

        plan = await self._plan_transfer(captured)
        transfer_key = idempotency_key(booking_id, OPERATION_TRANSFER)
        try:
            transfer = await self._stripe_gateway.create_transfer(
                amount=plan.amount,
                currency=plan.currency,
                destination=destination,
                idempotency_key=transfer_key,
                metadata={
                    "bookingId": booking_id,
                    "bookingNumber": captured.booking_number or "",
                    "payeeId": captured.payee_id or "",
                    "chargeId": captured.stripe_charge_id or "",
                },
                source_transaction=plan.source_transaction,
            )
        except ProcessorError as exc:
            await self._record_transfer_failure(captured, plan, exc)
            raise TransferFailedError(booking_id, exc.message) from exc

        transferred_at = self._clock.now()

        def record_transfer(current: PaymentLedgerRecord) -> LedgerUpdate:
            self._complete(current, "record transfer")
            current.stripe_transfer_id = transfer.id
            current.stripe_destination_payment = transfer.destination_payment
            current.transfer_amount_minor = transfer.amount
            current.transfer_currency = transfer.currency.upper()
            current.transferred_at = current.transferred_at or transferred_at
            current.transfer_failure = None
            return LedgerUpdate(current)

        saved = await self._ledger_writer.apply(booking_id, record_transfer)

        self._logger.info(
            "Payout transferred to payee",
            extra={
                "booking_id": booking_id,
                "transfer_id": transfer.id,
                "amount": transfer.amount,
                "currency": saved.transfer_currency,
                "idempotency_key": transfer_key,
            },
        )
        return CaptureOutcome(
            booking_id=booking_id,
            status=saved.status.value,
            charge_id=saved.stripe_charge_id,
            transfer_id=saved.stripe_transfer_id,
            transfer_amount=saved.transfer_amount_minor,
            transfer_currency=saved.transfer_currency,
        )

    async def _payee_account(self, booking: Booking) -> str:
        resolution = await resolve_payee(booking, self._payee_repo)
        if isinstance(resolution, PayeeMissing):
            raise PayeeNotReadyError(booking.payee_id or "", f"Cannot transfer payout: {resolution.reason}")
        account_id = resolution.payee.stripe.account_id
        if not account_id:
            raise PayeeNotReadyError(resolution.payee.id, "Professional has no connected payout account")
        return account_id

    async def _plan_transfer(self, record: PaymentLedgerRecord) -> _TransferPlan:
        payout = record.payout_amount
        fallback = _TransferPlan(
            amount=Money(payout, record.currency).to_minor_units(),
            currency=record.currency,
        )
        if not record.stripe_charge_id:
            return fallback

        try:
            settlement: ChargeSettlement | None = await self._stripe_gateway.retrieve_charge_settlement(
                record.stripe_charge_id
            )
        except ProcessorError as exc:
            self._logger.warning(
                "Could not inspect charge settlement, transferring in booking currency",
                extra={"booking_id": record.booking_id, "charge_id": record.stripe_charge_id, "error": exc.message},
            )
            return fallback

        if settlement is None or settlement.currency.upper() == record.currency.upper():
            return fallback

        amount = settlement_transfer_amount(settlement.amount, payout, record.total)
        self._logger.info(
            "Charge settled in a different currency, converting payout",
            extra={
                "booking_id": record.booking_id,
                "booking_currency": record.currency,
                "settlement_currency": settlement.currency.upper(),
                "settlement_amount": settlement.amount,
                "transfer_amount": amount,
            },
        )
        return _TransferPlan(
            amount=amount,
            currency=settlement.currency.upper(),
            source_transaction=record.stripe_charge_id,
        )

    async def _record_transfer_failure(
        self,
        captured: PaymentLedgerRecord,
        plan: _TransferPlan,
        exc: ProcessorError,
    ) -> None:
        failure = TransferFailure(
            error=exc.message,
            attempted_currency=plan.currency,
            attempted_amount=plan.amount,
            booking_currency=captured.currency,
            recorded_at=self._clock.now(),
        )

        def record_failure(current: PaymentLedgerRecord) -> LedgerUpdate:
            self._complete(current, "record transfer failure")
            current.transfer_failure = failure
            current.refund_notes = f"Transfer to professional failed: {exc.message}. Manual payout required."
            return LedgerUpdate(current)

        await self._ledger_writer.apply(captured.booking_id, record_failure)
        self._logger.error(
            "Payment captured but transfer to payee failed",
            extra={
                "booking_id": captured.booking_id,
                "charge_id": captured.stripe_charge_id,
                "attempted_amount": plan.amount,
                "attempted_currency": plan.currency,
                "error": exc.message,
            },
        )

    def _complete(self, current: PaymentLedgerRecord, operation: str) -> None:
        """Mark the capture flow completed unless a webhook already moved the payment elsewhere."""
        if current.status == PaymentStatus.COMPLETED:
            return
        if can_transition(current.status, PaymentStatus.COMPLETED):
            current.transition_to(PaymentStatus.COMPLETED, operation)
            return
        self._logger.error(
            "Payment changed while capturing, keeping its current status",
            extra={
                "booking_id": current.booking_id,
                "payment_status": current.status.value,
                "dispute_id": current.dispute_id,
                "operation": operation,
            },
        )
