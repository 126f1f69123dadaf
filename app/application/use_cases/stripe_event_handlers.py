import logging
from typing import Awaitable, Callable, TypeVar

from app.application.interfaces.clock import Clock
from app.application.interfaces.payee_repo import PayeeRepo
from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.payment_ledger import PaymentLedgerWriter
from app.domain.constants import (
    BOOKING_STATUS_BOOKED,
    BOOKING_STATUS_CANCELLED,
    BOOKING_STATUS_PAYMENT_PENDING,
    BOOKING_STATUS_REFUNDED,
)
from app.domain.entities.payment import (
    PaymentLedgerRecord,
    PaymentStatus,
    RefundEntry,
    RefundSource,
    can_transition,
)
from app.domain.entities.processor_event import (
    AccountPayload,
    ChargePayload,
    DisputePayload,
    IntentPayload,
    PayoutPayload,
    ProcessorEvent,
    ProcessorEventKind,
    TransferPayload,
)
from app.domain.value_objects.money import Money

DISPUTE_STATUS_WON = "won"
DISPUTE_STATUS_LOST = "lost"

# Un cargo ya reembolsado todavía puede recibir un contracargo
_DISPUTABLE_STATUSES = frozenset(
    {
        PaymentStatus.AUTHORIZED,
        PaymentStatus.COMPLETED,
        PaymentStatus.PARTIALLY_REFUNDED,
        PaymentStatus.REFUNDED,
    }
)

Handler = Callable[[ProcessorEvent], Awaitable[None]]
P = TypeVar("P")


class StripeEventHandlers:
    """
    Lookup table from processor event kind to handler.

    Every handler re-reads the persisted record and only mutates it when the
    current status allows the transition, so re-delivered or out-of-order
    events are harmless.
    """

    def __init__(
        self,
        ledger_repo: PaymentLedgerRepo,
        payee_repo: PayeeRepo,
        ledger_writer: PaymentLedgerWriter,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._ledger_repo = ledger_repo
        self._payee_repo = payee_repo
        self._ledger_writer = ledger_writer
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)
        self._handlers: dict[ProcessorEventKind, Handler] = {
            ProcessorEventKind.AUTHORIZATION_SUCCEEDED: self._on_authorization_succeeded,
            ProcessorEventKind.AUTHORIZATION_FAILED: self._on_authorization_failed,
            ProcessorEventKind.AUTHORIZATION_CANCELED: self._on_authorization_canceled,
            ProcessorEventKind.CHARGE_CAPTURED: self._on_charge_captured,
            ProcessorEventKind.CHARGE_REFUNDED: self._on_charge_refunded,
            ProcessorEventKind.DISPUTE_OPENED: self._on_dispute_opened,
            ProcessorEventKind.DISPUTE_CLOSED: self._on_dispute_closed,
            ProcessorEventKind.TRANSFER_CREATED: self._on_transfer_created,
            ProcessorEventKind.TRANSFER_REVERSED: self._on_transfer_reversed,
            ProcessorEventKind.ACCOUNT_UPDATED: self._on_account_updated,
            ProcessorEventKind.ACCOUNT_DISCONNECTED: self._on_account_disconnected,
            ProcessorEventKind.PAYOUT_PAID: self._on_payout_paid,
            ProcessorEventKind.UNKNOWN: self._on_unknown,
        }

    def handler_for(self, kind: ProcessorEventKind) -> Handler:
        return self._handlers.get(kind, self._on_unknown)

    async def dispatch(self, event: ProcessorEvent) -> None:
        await self.handler_for(event.kind)(event)

    # === Lookup ===

    async def _find_record(
        self,
        booking_id: str | None = None,
        intent_id: str | None = None,
        charge_id: str | None = None,
        transfer_id: str | None = None,
    ) -> PaymentLedgerRecord | None:
        if booking_id:
            record = await self._ledger_repo.get_by_booking(booking_id)
            if record is not None:
                return record
        if intent_id:
            record = await self._ledger_repo.find_by_payment_intent(intent_id)
            if record is not None:
                return record
        if charge_id:
            record = await self._ledger_repo.find_by_charge(charge_id)
            if record is not None:
                return record
        if transfer_id:
            return await self._ledger_repo.find_by_transfer(transfer_id)
        return None

    async def _find_intent_record(self, event: ProcessorEvent, payload: IntentPayload) -> PaymentLedgerRecord | None:
        record = await self._find_record(booking_id=payload.booking_id, intent_id=payload.intent_id)
        if record is None:
            self._logger.warning(
                "No payment found for payment intent event",
                extra={"event_id": event.id, "payment_intent_id": payload.intent_id, "booking_id": payload.booking_id},
            )
            return None
        # Eventos de un intent anterior no tocan el registro vigente
        if payload.intent_id and record.stripe_payment_intent_id != payload.intent_id:
            self._logger.info(
                "Ignoring event for a superseded payment intent",
                extra={
                    "event_id": event.id,
                    "payment_intent_id": payload.intent_id,
                    "current_payment_intent_id": record.stripe_payment_intent_id,
                },
            )
            return None
        return record

    def _payload(self, event: ProcessorEvent, payload_type: type[P]) -> P | None:
        if isinstance(event.payload, payload_type):
            return event.payload
        self._logger.warning(
            "Webhook payload does not match its event kind, ignoring",
            extra={
                "event_id": event.id,
                "event_type": event.event_type,
                "payload_type": type(event.payload).__name__,
            },
        )
        return None

    def _skip(self, event: ProcessorEvent, record: PaymentLedgerRecord, reason: str) -> None:
        self._logger.info(
            "Webhook event skipped",
            extra={
                "event_id": event.id,
                "event_type": event.event_type,
                "booking_id": record.booking_id,
                "payment_status": record.status.value,
                "reason": reason,
            },
        )

    # === Payment intent ===

    async def _on_authorization_succeeded(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, IntentPayload)
        if payload is None:
            return
        record = await self._find_intent_record(event, payload)
        if record is None:
            return
        if record.status != PaymentStatus.PENDING:
            self._skip(event, record, "payment is not pending")
            return

        updated = record.copy()
        updated.transition_to(PaymentStatus.AUTHORIZED, "authorize payment")
        updated.authorized_at = self._clock.now()
        updated.stripe_charge_id = payload.latest_charge or updated.stripe_charge_id
        await self._ledger_writer.commit(updated, booking_status=BOOKING_STATUS_BOOKED)
        self._logger.info(
            "Payment authorized",
            extra={"event_id": event.id, "booking_id": record.booking_id, "payment_intent_id": payload.intent_id},
        )

    async def _on_authorization_failed(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, IntentPayload)
        if payload is None:
            return
        record = await self._find_intent_record(event, payload)
        if record is None:
            return
        if not can_transition(record.status, PaymentStatus.FAILED):
            self._skip(event, record, "payment cannot fail from its current status")
            return

        updated = record.copy()
        updated.transition_to(PaymentStatus.FAILED, "fail payment")
        if payload.failure_message:
            updated.metadata["failureMessage"] = payload.failure_message
        await self._ledger_writer.commit(updated, booking_status=BOOKING_STATUS_PAYMENT_PENDING)
        self._logger.warning(
            "Payment authorization failed",
            extra={
                "event_id": event.id,
                "booking_id": record.booking_id,
                "payment_intent_id": payload.intent_id,
                "failure_message": payload.failure_message,
            },
        )

    async def _on_authorization_canceled(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, IntentPayload)
        if payload is None:
            return
        record = await self._find_intent_record(event, payload)
        if record is None:
            return
        if record.status != PaymentStatus.AUTHORIZED:
            self._skip(event, record, "payment is not authorized")
            return

        now = self._clock.now()
        updated = record.copy()
        updated.transition_to(PaymentStatus.REFUNDED, "cancel authorization")
        updated.refunded_at = now
        updated.canceled_at = now
        updated.refund_notes = "Authorization canceled by the payment processor"
        await self._ledger_writer.commit(updated, booking_status=BOOKING_STATUS_CANCELLED)
        self._logger.info(
            "Payment authorization canceled",
            extra={"event_id": event.id, "booking_id": record.booking_id, "payment_intent_id": payload.intent_id},
        )

    # === Charge ===

    async def _on_charge_captured(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, ChargePayload)
        if payload is None:
            return
        record = await self._find_record(intent_id=payload.intent_id, charge_id=payload.charge_id)
        if record is None:
            self._logger.warning(
                "No payment found for captured charge",
                extra={"event_id": event.id, "charge_id": payload.charge_id},
            )
            return
        if record.status != PaymentStatus.AUTHORIZED or record.captured_at is not None:
            self._skip(event, record, "capture already recorded")
            return

        updated = record.copy()
        updated.captured_at = self._clock.now()
        updated.stripe_charge_id = payload.charge_id or updated.stripe_charge_id
        await self._ledger_writer.commit(updated)
        self._logger.info(
            "Charge capture recorded",
            extra={"event_id": event.id, "booking_id": record.booking_id, "charge_id": payload.charge_id},
        )

    async def _on_charge_refunded(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, ChargePayload)
        if payload is None:
            return
        record = await self._find_record(intent_id=payload.intent_id, charge_id=payload.charge_id)
        if record is None:
            self._logger.warning(
                "No payment found for refunded charge",
                extra={"event_id": event.id, "charge_id": payload.charge_id},
            )
            return
        if record.status == PaymentStatus.REFUNDED:
            self._skip(event, record, "payment already refunded")
            return

        if payload.amount_refunded >= payload.amount:
            target = PaymentStatus.REFUNDED
        else:
            target = PaymentStatus.PARTIALLY_REFUNDED
        if not can_transition(record.status, target):
            self._skip(event, record, f"cannot move to {target.value}")
            return

        updated = record.copy()
        updated.transition_to(target, "refund payment")
        updated.refunded_at = self._clock.now()
        await self._ledger_writer.commit(updated, booking_status=BOOKING_STATUS_REFUNDED)
        self._logger.info(
            "Charge refund recorded",
            extra={
                "event_id": event.id,
                "booking_id": record.booking_id,
                "charge_id": payload.charge_id,
                "amount_refunded": payload.amount_refunded,
                "status": target.value,
            },
        )

    # === Disputes ===

    async def _on_dispute_opened(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, DisputePayload)
        if payload is None:
            return
        record = await self._find_record(charge_id=payload.charge_id)
        if record is None:
            self._logger.warning(
                "No payment found for disputed charge",
                extra={"event_id": event.id, "dispute_id": payload.dispute_id, "charge_id": payload.charge_id},
            )
            return
        if record.dispute_id == payload.dispute_id or record.has_refund(payload.dispute_id):
            self._skip(event, record, "dispute already recorded")
            return
        if record.status not in _DISPUTABLE_STATUSES:
            self._skip(event, record, "payment holds no disputable funds")
            return

        now = self._clock.now()
        currency = (payload.currency or record.currency).upper()
        disputed = Money.from_minor_units(payload.amount, currency).amount
        # Lo ya reembolsado no se vuelve a contar
        amount = min(disputed, record.remaining_refundable)
        note = f"Chargeback dispute {payload.dispute_id} opened, funds withdrawn by the card issuer"

        updated = record.copy()
        updated.force_refunded_for_dispute(payload.dispute_id, payload.status)
        if amount > 0:
            updated.add_refund(
                RefundEntry(
                    amount=amount,
                    reason=f"Dispute: {payload.reason}",
                    refunded_at=now,
                    source=RefundSource.PLATFORM,
                    refund_id=payload.dispute_id,
                    notes=note,
                )
            )
        updated.refunded_at = now
        updated.refund_notes = note
        await self._ledger_writer.commit(updated)
        self._logger.error(
            "Charge disputed, payment marked refunded",
            extra={
                "event_id": event.id,
                "booking_id": record.booking_id,
                "dispute_id": payload.dispute_id,
                "amount": str(disputed),
                "recorded_amount": str(amount),
                "currency": currency,
                "reason": payload.reason,
            },
        )

    async def _on_dispute_closed(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, DisputePayload)
        if payload is None:
            return
        record = await self._find_record(charge_id=payload.charge_id)
        if record is None:
            self._logger.warning(
                "No payment found for closed dispute",
                extra={"event_id": event.id, "dispute_id": payload.dispute_id},
            )
            return
        if record.dispute_id != payload.dispute_id:
            self._skip(event, record, "dispute not recorded on this payment")
            return

        updated = record.copy()
        if payload.status == DISPUTE_STATUS_WON:
            if record.dispute_status == DISPUTE_STATUS_WON or record.status != PaymentStatus.REFUNDED:
                self._skip(event, record, "payment already restored")
                return
            updated.restore_after_dispute(payload.dispute_id)
            updated.refund_notes = f"Dispute {payload.dispute_id} won, funds restored"
            await self._ledger_writer.commit(updated)
            self._logger.info(
                "Dispute won, payment restored",
                extra={"event_id": event.id, "booking_id": record.booking_id, "dispute_id": payload.dispute_id},
            )
            return

        if record.dispute_status == payload.status:
            self._skip(event, record, "dispute outcome already recorded")
            return
        updated.dispute_status = payload.status or DISPUTE_STATUS_LOST
        updated.refund_notes = f"Dispute {payload.dispute_id} closed as {updated.dispute_status}, funds not recovered"
        await self._ledger_writer.commit(updated)
        self._logger.error(
            "Dispute closed without recovering funds",
            extra={
                "event_id": event.id,
                "booking_id": record.booking_id,
                "dispute_id": payload.dispute_id,
                "dispute_status": updated.dispute_status,
            },
        )

    # === Transfers ===

    async def _on_transfer_created(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, TransferPayload)
        if payload is None:
            return
        record = await self._find_record(booking_id=payload.booking_id, transfer_id=payload.transfer_id)
        if record is None:
            self._logger.warning(
                "No payment found for transfer",
                extra={"event_id": event.id, "transfer_id": payload.transfer_id},
            )
            return
        if record.stripe_transfer_id == payload.transfer_id and record.transferred_at is not None:
            self._skip(event, record, "transfer already recorded")
            return
        if record.status not in (PaymentStatus.AUTHORIZED, PaymentStatus.COMPLETED):
            self._skip(event, record, "payment is not awaiting a transfer")
            return

        updated = record.copy()
        updated.stripe_transfer_id = payload.transfer_id
        updated.transferred_at = updated.transferred_at or self._clock.now()
        updated.stripe_destination_payment = payload.destination_payment or updated.stripe_destination_payment
        if payload.amount is not None and updated.transfer_amount_minor is None:
            updated.transfer_amount_minor = payload.amount
            updated.transfer_currency = (payload.currency or record.currency).upper()
        await self._ledger_writer.commit(updated)
        self._logger.info(
            "Transfer recorded",
            extra={"event_id": event.id, "booking_id": record.booking_id, "transfer_id": payload.transfer_id},
        )

    async def _on_transfer_reversed(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, TransferPayload)
        if payload is None:
            return
        self._logger.info(
            "Transfer reversed",
            extra={"event_id": event.id, "transfer_id": payload.transfer_id, "booking_id": payload.booking_id},
        )

    # === Connected accounts ===

    async def _on_account_updated(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, AccountPayload)
        if payload is None:
            return
        payee = None
        if payload.user_id:
            payee = await self._payee_repo.get_by_id(payload.user_id)
        if payee is None and payload.account_id:
            payee = await self._payee_repo.find_by_account_id(payload.account_id)
        if payee is None:
            self._logger.warning(
                "No payee found for connected account",
                extra={"event_id": event.id, "account_id": payload.account_id, "user_id": payload.user_id},
            )
            return

        if not payee.stripe.account_id:
            payee.stripe.account_id = payload.account_id
        payee.stripe.mirror_capabilities(
            charges_enabled=payload.charges_enabled,
            payouts_enabled=payload.payouts_enabled,
            details_submitted=payload.details_submitted,
        )
        async with self._transaction_manager.start():
            await self._payee_repo.save(payee)
        self._logger.info(
            "Connected account updated",
            extra={
                "event_id": event.id,
                "payee_id": payee.id,
                "account_id": payload.account_id,
                "account_status": payee.stripe.account_status,
            },
        )

    async def _on_account_disconnected(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, AccountPayload)
        if payload is None:
            return
        payee = await self._payee_repo.find_by_account_id(payload.account_id) if payload.account_id else None
        if payee is None:
            self._logger.warning(
                "No payee found for deauthorized account",
                extra={"event_id": event.id, "account_id": payload.account_id},
            )
            return

        payee.stripe.restrict()
        async with self._transaction_manager.start():
            await self._payee_repo.save(payee)
        self._logger.error(
            "Connected account deauthorized, payee restricted",
            extra={"event_id": event.id, "payee_id": payee.id, "account_id": payload.account_id},
        )

    # === Informational ===

    async def _on_payout_paid(self, event: ProcessorEvent) -> None:
        payload = self._payload(event, PayoutPayload)
        if payload is None:
            return
        self._logger.info(
            "Payout paid",
            extra={
                "event_id": event.id,
                "payout_id": payload.payout_id,
                "amount": payload.amount,
                "currency": payload.currency,
            },
        )

    async def _on_unknown(self, event: ProcessorEvent) -> None:
        self._logger.info(
            "Unhandled webhook event type",
            extra={"event_id": event.id, "event_type": event.event_type},
        )
