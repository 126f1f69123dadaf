import logging
from dataclasses import dataclass

from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.application.interfaces.stripe_gateway import StripeGateway
from app.application.payment_ledger import LedgerUpdate, PaymentLedgerWriter
from app.domain.constants import BOOKING_STATUS_BOOKED
from app.domain.entities.payment import PaymentLedgerRecord, PaymentStatus
from app.domain.errors import (
    BookingNotFoundError,
    NoPaymentError,
    PaymentIntentMismatchError,
    UnauthorizedError,
)

INTENT_STATUS_REQUIRES_CAPTURE = "requires_capture"


@dataclass(frozen=True)
class ConfirmPaymentOutcome:
    booking_id: str
    status: str
    already_processed: bool = False
    processor_status: str | None = None


class ConfirmPaymentUseCase:
    """
    Advances a pending payment to authorized once the client finished the card
    flow, without waiting for the payment_intent.succeeded webhook.
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
        payment_intent_id: str,
        user_id: str,
    ) -> ConfirmPaymentOutcome:
        booking = await self._booking_repo.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if not booking.is_customer(user_id):
            raise UnauthorizedError("Only the booking's customer can confirm its payment")

        record = await self._ledger_repo.get_by_booking(booking_id)
        if record is None or not record.stripe_payment_intent_id:
            raise NoPaymentError(booking_id, "confirm")

        if record.status == PaymentStatus.AUTHORIZED or record.is_captured:
            return ConfirmPaymentOutcome(
                booking_id=booking_id,
                status=record.status.value,
                already_processed=True,
            )

        if record.stripe_payment_intent_id != payment_intent_id:
            raise PaymentIntentMismatchError(record.stripe_payment_intent_id, payment_intent_id)

        intent = await self._stripe_gateway.retrieve_payment_intent(payment_intent_id)
        if intent.status != INTENT_STATUS_REQUIRES_CAPTURE or record.status != PaymentStatus.PENDING:
            self._logger.info(
                "Payment not authorized yet, awaiting webhook",
                extra={
                    "booking_id": booking_id,
                    "payment_intent_id": payment_intent_id,
                    "processor_status": intent.status,
                },
            )
            return ConfirmPaymentOutcome(
                booking_id=booking_id,
                status=record.status.value,
                processor_status=intent.status,
            )

        authorized_at = self._clock.now()

        def record_authorization(current: PaymentLedgerRecord) -> LedgerUpdate | None:
            # payment_intent.succeeded may have authorized it meanwhile
            if current.status != PaymentStatus.PENDING or current.stripe_payment_intent_id != payment_intent_id:
                return None
            current.transition_to(PaymentStatus.AUTHORIZED, "confirm payment")
            current.authorized_at = authorized_at
            current.stripe_charge_id = intent.latest_charge or current.stripe_charge_id
            return LedgerUpdate(current, booking_status=BOOKING_STATUS_BOOKED)

        saved = await self._ledger_writer.apply(booking_id, record_authorization)

        self._logger.info(
            "Payment authorized by client confirmation",
            extra={"booking_id": booking_id, "payment_intent_id": payment_intent_id},
        )
        return ConfirmPaymentOutcome(
            booking_id=booking_id,
            status=saved.status.value,
            processor_status=intent.status,
        )
