from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, condecimal, constr

from app.application.interfaces.platform_settings_repo import PlatformSettingsRecord
from app.application.use_cases.capture_and_transfer import CaptureOutcome
from app.application.use_cases.confirm_payment import ConfirmPaymentOutcome
from app.application.use_cases.create_payment_intent import PaymentIntentOutcome
from app.application.use_cases.get_payee_earnings import PayeePaymentStats, PayeeTransaction
from app.application.use_cases.refund_payment import RefundOutcome
from app.domain.entities.payment import PaymentLedgerRecord

Money = condecimal(max_digits=12, decimal_places=2)

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody
    error_id: str | None = None


# === Webhooks ===


class StripeWebhookEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    account: str | None = None
    livemode: bool | None = None
    created: int | None = None


class WebhookAck(BaseModel):
    received: bool = True
    duplicate: bool | None = None


# === Payment intent / confirmation ===


class PaymentIntentResponse(BaseModel):
    booking_id: str
    payment_intent_id: str
    client_secret: str | None = None
    currency: str
    amount: Decimal | None = None
    vat_amount: Decimal | None = None
    vat_rate: Decimal | None = None
    total_with_vat: Decimal | None = None
    platform_commission: Decimal | None = None
    professional_payout: Decimal | None = None
    reused: bool = False

    @classmethod
    def from_outcome(cls, outcome: PaymentIntentOutcome) -> "PaymentIntentResponse":
        return cls(
            booking_id=outcome.booking_id,
            payment_intent_id=outcome.payment_intent_id,
            client_secret=outcome.client_secret,
            currency=outcome.currency,
            amount=outcome.net_amount,
            vat_amount=outcome.vat_amount,
            vat_rate=outcome.vat_rate,
            total_with_vat=outcome.total_with_vat,
            platform_commission=outcome.platform_commission,
            professional_payout=outcome.professional_payout,
            reused=outcome.reused,
        )


class ConfirmPaymentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    booking_id: constr(strip_whitespace=True, min_length=1)
    payment_intent_id: constr(strip_whitespace=True, min_length=1)


class ConfirmPaymentResponse(BaseModel):
    booking_id: str
    status: str
    already_processed: bool = False
    processor_status: str | None = None

    @classmethod
    def from_outcome(cls, outcome: ConfirmPaymentOutcome) -> "ConfirmPaymentResponse":
        return cls(
            booking_id=outcome.booking_id,
            status=outcome.status,
            already_processed=outcome.already_processed,
            processor_status=outcome.processor_status,
        )


# === Capture / refund ===


class CaptureResponse(BaseModel):
    booking_id: str
    status: str
    charge_id: str | None = None
    transfer_id: str | None = None
    transfer_amount: int | None = None
    transfer_currency: str | None = None

    @classmethod
    def from_outcome(cls, outcome: CaptureOutcome) -> "CaptureResponse":
        return cls(
            booking_id=outcome.booking_id,
            status=outcome.status,
            charge_id=outcome.charge_id,
            transfer_id=outcome.transfer_id,
            transfer_amount=outcome.transfer_amount,
            transfer_currency=outcome.transfer_currency,
        )


class RefundRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    booking_id: constr(strip_whitespace=True, min_length=1)
    reason: constr(strip_whitespace=True, max_length=500) | None = None
    amount: Money | None = None


class RefundResponse(BaseModel):
    booking_id: str
    status: str
    refunded_amount: Decimal
    currency: str
    refund_source: str
    refund_id: str | None = None
    transfer_reversal_id: str | None = None
    notes: str | None = None

    @classmethod
    def from_outcome(cls, outcome: RefundOutcome) -> "RefundResponse":
        return cls(
            booking_id=outcome.booking_id,
            status=outcome.status,
            refunded_amount=outcome.refunded_amount,
            currency=outcome.currency,
            refund_source=outcome.refund_source,
            refund_id=outcome.refund_id,
            transfer_reversal_id=outcome.transfer_reversal_id,
            notes=outcome.notes,
        )


# === Ledger view ===


class RefundEntryView(BaseModel):
    amount: Decimal
    reason: str | None = None
    refund_id: str | None = None
    refunded_at: datetime
    source: str
    notes: str | None = None


class TransferFailureView(BaseModel):
    error: str
    attempted_currency: str
    attempted_amount: int
    booking_currency: str
    recorded_at: datetime


class PaymentLedgerView(BaseModel):
    booking_id: str
    booking_number: str | None = None
    status: str
    currency: str
    amount: Decimal
    vat_amount: Decimal | None = None
    vat_rate: Decimal | None = None
    total_with_vat: Decimal | None = None
    platform_commission: Decimal | None = None
    professional_payout: Decimal | None = None
    stripe_payment_intent_id: str | None = None
    stripe_charge_id: str | None = None
    stripe_transfer_id: str | None = None
    transfer_amount_minor: int | None = None
    transfer_currency: str | None = None
    authorized_at: datetime | None = None
    captured_at: datetime | None = None
    transferred_at: datetime | None = None
    refunded_at: datetime | None = None
    canceled_at: datetime | None = None
    refund_notes: str | None = None
    dispute_id: str | None = None
    dispute_status: str | None = None
    transfer_failure: TransferFailureView | None = None
    refunds: list[RefundEntryView] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: PaymentLedgerRecord) -> "PaymentLedgerView":
        failure = record.transfer_failure
        return cls(
            booking_id=record.booking_id,
            booking_number=record.booking_number,
            status=record.status.value,
            currency=record.currency,
            amount=record.amount,
            vat_amount=record.vat_amount,
            vat_rate=record.vat_rate,
            total_with_vat=record.total_with_vat,
            platform_commission=record.platform_commission,
            professional_payout=record.professional_payout,
            stripe_payment_intent_id=record.stripe_payment_intent_id,
            stripe_charge_id=record.stripe_charge_id,
            stripe_transfer_id=record.stripe_transfer_id,
            transfer_amount_minor=record.transfer_amount_minor,
            transfer_currency=record.transfer_currency,
            authorized_at=record.authorized_at,
            captured_at=record.captured_at,
            transferred_at=record.transferred_at,
            refunded_at=record.refunded_at,
            canceled_at=record.canceled_at,
            refund_notes=record.refund_notes,
            dispute_id=record.dispute_id,
            dispute_status=record.dispute_status,
            transfer_failure=TransferFailureView(
                error=failure.error,
                attempted_currency=failure.attempted_currency,
                attempted_amount=failure.attempted_amount,
                booking_currency=failure.booking_currency,
                recorded_at=failure.recorded_at,
            )
            if failure
            else None,
            refunds=[
                RefundEntryView(
                    amount=entry.amount,
                    reason=entry.reason,
                    refund_id=entry.refund_id,
                    refunded_at=entry.refunded_at,
                    source=entry.source.value,
                    notes=entry.notes,
                )
                for entry in record.refunds
            ],
        )


# === Payee earnings ===


class PayeePaymentStatsResponse(BaseModel):
    total_earnings: Decimal
    pending_earnings: Decimal
    completed_bookings: int
    currency: str

    @classmethod
    def from_stats(cls, stats: PayeePaymentStats) -> "PayeePaymentStatsResponse":
        return cls(
            total_earnings=stats.total_earnings,
            pending_earnings=stats.pending_earnings,
            completed_bookings=stats.completed_bookings,
            currency=stats.currency,
        )


class PayeeTransactionView(BaseModel):
    booking_id: str
    booking_number: str
    date: datetime | None = None
    status: str
    currency: str
    amount: Decimal

    @classmethod
    def from_transaction(cls, tx: PayeeTransaction) -> "PayeeTransactionView":
        return cls(
            booking_id=tx.booking_id,
            booking_number=tx.booking_number,
            date=tx.date,
            status=tx.status,
            currency=tx.currency,
            amount=tx.amount,
        )


# === Platform settings ===


class PlatformSettingsResponse(BaseModel):
    commission_percent: Decimal
    last_modified: datetime
    last_modified_by: str | None = None
    version: int

    @classmethod
    def from_record(cls, record: PlatformSettingsRecord) -> "PlatformSettingsResponse":
        return cls(
            commission_percent=record.commission_percent,
            last_modified=record.last_modified,
            last_modified_by=record.last_modified_by,
            version=record.version,
        )


class UpdatePlatformSettingsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    commission_percent: float
