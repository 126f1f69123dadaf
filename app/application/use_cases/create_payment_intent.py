import logging
from dataclasses import dataclass
from decimal import Decimal

from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.payee_repo import PayeeRepo
from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.application.interfaces.stripe_gateway import StripeGateway
from app.application.interfaces.vat_calculator import VatCalculator
from app.application.payee_resolution import resolve_payee
from app.application.payment_ledger import PaymentLedgerWriter
from app.application.use_cases.platform_settings import GetPlatformSettingsUseCase
from app.domain.constants import (
    BOOKING_STATUS_PAYMENT_PENDING,
    OPERATION_PAYMENT_INTENT,
    PAYABLE_BOOKING_STATUSES,
)
from app.domain.entities.booking import Booking
from app.domain.entities.payee import Payee, PayeeMissing
from app.domain.entities.payment import PaymentLedgerRecord, PaymentStatus
from app.domain.errors import (
    BookingNotFoundError,
    NoQuoteError,
    PayeeNotFoundError,
    PayeeNotReadyError,
    PaymentAlreadyProcessedError,
    StaleLedgerRecordError,
    UnauthorizedError,
)
from app.domain.payment_rules import (
    idempotency_key,
    resolve_settlement_currency,
    split_payment,
    validate_charge_amount,
)
from app.domain.value_objects.money import Money, round_to_currency

# Una autorización en estos estados no se reemplaza
_PROCESSED_STATUSES = frozenset(
    {PaymentStatus.AUTHORIZED, PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED}
)


@dataclass(frozen=True)
class PaymentIntentOutcome:
    booking_id: str
    payment_intent_id: str
    client_secret: str | None
    currency: str
    net_amount: Decimal | None
    vat_amount: Decimal | None
    vat_rate: Decimal | None
    total_with_vat: Decimal | None
    platform_commission: Decimal | None
    professional_payout: Decimal | None
    reused: bool = False

    @classmethod
    def from_record(cls, record: PaymentLedgerRecord, reused: bool = False) -> "PaymentIntentOutcome":
        return cls(
            booking_id=record.booking_id,
            payment_intent_id=record.stripe_payment_intent_id or "",
            client_secret=record.stripe_client_secret,
            currency=record.currency,
            net_amount=record.net_amount,
            vat_amount=record.vat_amount,
            vat_rate=record.vat_rate,
            total_with_vat=record.total_with_vat,
            platform_commission=record.platform_commission,
            professional_payout=record.professional_payout,
            reused=reused,
        )


class CreatePaymentIntentUseCase:
    """Creates (or reuses) the held authorization for a booking's accepted quote."""

    def __init__(
        self,
        booking_repo: BookingRepo,
        ledger_repo: PaymentLedgerRepo,
        payee_repo: PayeeRepo,
        stripe_gateway: StripeGateway,
        vat_calculator: VatCalculator,
        platform_settings: GetPlatformSettingsUseCase,
        ledger_writer: PaymentLedgerWriter,
        clock: Clock,
        environment: str,
    ) -> None:
        self._booking_repo = booking_repo
        self._ledger_repo = ledger_repo
        self._payee_repo = payee_repo
        self._stripe_gateway = stripe_gateway
        self._vat_calculator = vat_calculator
        self._platform_settings = platform_settings
        self._ledger_writer = ledger_writer
        self._clock = clock
        self._environment = environment
        self._logger = logging.getLogger(__name__)

    async def execute(self, booking_id: str, user_id: str) -> PaymentIntentOutcome:
        booking = await self._booking_repo.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if not booking.is_customer(user_id):
            raise UnauthorizedError("Only the booking's customer can pay for it")

        existing = await self._ledger_repo.get_by_booking(booking_id)
        if existing is not None:
            if existing.status in _PROCESSED_STATUSES:
                raise PaymentAlreadyProcessedError(booking_id, existing.status.value)
            if existing.status == PaymentStatus.PENDING and existing.stripe_client_secret:
                self._logger.info(
                    "Reusing pending payment intent",
                    extra={
                        "booking_id": booking_id,
                        "payment_intent_id": existing.stripe_payment_intent_id,
                    },
                )
                return PaymentIntentOutcome.from_record(existing, reused=True)

        if booking.quote is None or booking.status not in PAYABLE_BOOKING_STATUSES:
            raise NoQuoteError(booking.status)

        payee = await self._resolve_ready_payee(booking)

        currency = resolve_settlement_currency(
            booking.quote.currency,
            payee.preferred_currency,
            booking.customer_country,
        )
        net_amount = round_to_currency(booking.quote.amount, currency)
        vat = self._vat_calculator.calculate(
            amount=net_amount,
            customer_country=booking.billing_country,
            customer_vat_number=booking.customer_vat_number,
            payee_country=payee.country,
            customer_type=booking.customer_type,
        )
        total = round_to_currency(vat.total, currency)
        validate_charge_amount(total, currency)

        settings = await self._platform_settings.execute()
        split = split_payment(total, settings.commission_percent, currency)

        # Tras un intento terminal la llave base ya fue usada en Stripe
        if existing is not None and existing.allows_new_authorization:
            key = idempotency_key(booking_id, OPERATION_PAYMENT_INTENT, self._clock.timestamp_ms())
        else:
            key = idempotency_key(booking_id, OPERATION_PAYMENT_INTENT)

        metadata = {
            "bookingId": booking.id,
            "bookingNumber": booking.booking_number or "",
            "customerId": booking.customer_id,
            "payeeId": payee.id,
            "payeeAccountId": payee.stripe.account_id or "",
            "environment": self._environment,
        }
        intent = await self._stripe_gateway.create_payment_intent(
            amount=Money(split.total_with_vat, currency).to_minor_units(),
            currency=currency,
            idempotency_key=key,
            metadata=metadata,
            description=f"Booking {booking.booking_number or booking.id}",
        )

        record = PaymentLedgerRecord.new_pending(
            booking_id=booking.id,
            currency=currency,
            net_amount=net_amount,
            booking_number=booking.booking_number,
            customer_id=booking.customer_id,
            payee_id=payee.id,
            vat_amount=round_to_currency(vat.vat_amount, currency),
            vat_rate=vat.vat_rate,
            total_with_vat=split.total_with_vat,
            platform_commission=split.platform_commission,
            professional_payout=split.professional_payout,
            stripe_payment_intent_id=intent.id,
            stripe_client_secret=intent.client_secret,
            created_at=existing.created_at if existing else None,
            version=existing.version if existing else 0,
            metadata={"environment": self._environment, "idempotencyKey": key},
        )
        if existing is not None and existing.stripe_payment_intent_id:
            record.metadata["previousPaymentIntentId"] = existing.stripe_payment_intent_id

        try:
            saved = await self._ledger_writer.commit(record, booking_status=BOOKING_STATUS_PAYMENT_PENDING)
        except StaleLedgerRecordError:
            # A concurrent request for the same booking committed first
            fresh = await self._ledger_repo.get_by_booking(booking.id)
            if fresh is None or fresh.stripe_payment_intent_id != intent.id:
                raise
            self._logger.info(
                "Payment intent already recorded by a concurrent request",
                extra={"booking_id": booking.id, "payment_intent_id": intent.id},
            )
            return PaymentIntentOutcome.from_record(fresh, reused=True)
        self._logger.info(
            "Payment intent created",
            extra={
                "booking_id": booking.id,
                "payment_intent_id": intent.id,
                "currency": currency,
                "total_with_vat": str(split.total_with_vat),
                "platform_commission": str(split.platform_commission),
                "idempotency_key": key,
            },
        )
        return PaymentIntentOutcome.from_record(saved)

    async def _resolve_ready_payee(self, booking: Booking) -> Payee:
        resolution = await resolve_payee(booking, self._payee_repo)
        if isinstance(resolution, PayeeMissing):
            raise PayeeNotFoundError(booking.id, resolution.reason)
        payee = resolution.payee
        if not payee.stripe.is_connected:
            raise PayeeNotReadyError(payee.id, "Professional has not set up a payout account yet")
        if not payee.stripe.charges_enabled:
            raise PayeeNotReadyError(payee.id, "Professional payout account cannot accept payments yet")
        return payee
