import copy
import json
from collections import Counter
from typing import Any
from uuid import uuid4

import stripe

from app.application.interfaces.stripe_gateway import (
    ChargeSettlement,
    PaymentIntentResult,
    RefundResult,
    StripeGateway,
    TransferResult,
    TransferReversalResult,
)
from app.domain.errors import InvalidWebhookSignatureError, ProcessorError


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:24]}"


class StubStripeGateway(StripeGateway):
    """
    Stateful in-memory stand-in for Stripe.

    Replays results for repeated idempotency keys, counts calls per operation,
    lets tests inject failures and override the settlement of captured charges.
    Webhook signatures are verified with the real stripe.WebhookSignature.
    """

    def __init__(self, webhook_tolerance: int = 300) -> None:
        self.intents: dict[str, PaymentIntentResult] = {}
        self.transfers: dict[str, TransferResult] = {}
        self.reversals: dict[str, TransferReversalResult] = {}
        self.refunds: dict[str, RefundResult] = {}
        self.calls: Counter[str] = Counter()
        self._replays: dict[str, Any] = {}
        self._failures: dict[str, str] = {}
        self._settlement: tuple[str, int] | None = None
        self._webhook_tolerance = webhook_tolerance

    # === Test controls ===

    def fail_next(self, operation: str, message: str = "Stripe is unavailable") -> None:
        """Make the next call of `operation` (e.g. "create_transfer") raise ProcessorError."""
        self._failures[operation] = message

    def settle_in(self, currency: str, amount: int) -> None:
        """Report every captured charge as settled in another currency."""
        self._settlement = (currency.upper(), amount)

    def authorize(self, payment_intent_id: str) -> PaymentIntentResult:
        """Simulate the client completing the card flow."""
        intent = self.intents[payment_intent_id]
        intent.status = "requires_capture"
        intent.latest_charge = intent.latest_charge or _new_id("ch")
        return copy.deepcopy(intent)

    # === Helpers ===

    def _enter(self, operation: str, idempotency_key: str | None = None) -> Any:
        self.calls[operation] += 1
        message = self._failures.pop(operation, None)
        if message is not None:
            raise ProcessorError(operation, message)
        if idempotency_key is not None and idempotency_key in self._replays:
            return copy.deepcopy(self._replays[idempotency_key])
        return None

    def _remember(self, idempotency_key: str, result: Any) -> Any:
        self._replays[idempotency_key] = copy.deepcopy(result)
        return copy.deepcopy(result)

    def _intent(self, operation: str, payment_intent_id: str) -> PaymentIntentResult:
        intent = self.intents.get(payment_intent_id)
        if intent is None:
            raise ProcessorError(operation, f"No such payment_intent: '{payment_intent_id}'")
        return intent

    # === Payment intents ===

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str],
        description: str | None = None,
    ) -> PaymentIntentResult:
        replay = self._enter("create_payment_intent", idempotency_key)
        if replay is not None:
            return replay
        intent_id = _new_id("pi")
        intent = PaymentIntentResult(
            id=intent_id,
            status="requires_payment_method",
            amount=amount,
            currency=currency.upper(),
            client_secret=f"{intent_id}_secret_{uuid4().hex[:16]}",
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        return self._remember(idempotency_key, intent)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        self._enter("retrieve_payment_intent")
        return copy.deepcopy(self._intent("retrieve_payment_intent", payment_intent_id))

    async def capture_payment_intent(
        self,
        payment_intent_id: str,
        idempotency_key: str,
    ) -> PaymentIntentResult:
        replay = self._enter("capture_payment_intent", idempotency_key)
        if replay is not None:
            return replay
        intent = self._intent("capture_payment_intent", payment_intent_id)
        if intent.status != "requires_capture":
            raise ProcessorError(
                "capture_payment_intent",
                f"This PaymentIntent could not be captured because it has a status of {intent.status}.",
            )
        intent.status = "succeeded"
        intent.latest_charge = intent.latest_charge or _new_id("ch")
        return self._remember(idempotency_key, intent)

    async def cancel_payment_intent(
        self,
        payment_intent_id: str,
        idempotency_key: str,
    ) -> PaymentIntentResult:
        replay = self._enter("cancel_payment_intent", idempotency_key)
        if replay is not None:
            return replay
        intent = self._intent("cancel_payment_intent", payment_intent_id)
        if intent.status in ("succeeded", "canceled"):
            raise ProcessorError(
                "cancel_payment_intent",
                f"You cannot cancel this PaymentIntent because it has a status of {intent.status}.",
            )
        intent.status = "canceled"
        return self._remember(idempotency_key, intent)

    async def retrieve_charge_settlement(self, charge_id: str) -> ChargeSettlement | None:
        self._enter("retrieve_charge_settlement")
        intent = next((i for i in self.intents.values() if i.latest_charge == charge_id), None)
        if intent is None:
            raise ProcessorError("retrieve_charge_settlement", f"No such charge: '{charge_id}'")
        if intent.status != "succeeded":
            return None
        if self._settlement is not None:
            currency, amount = self._settlement
            return ChargeSettlement(charge_id=charge_id, amount=amount, currency=currency)
        return ChargeSettlement(charge_id=charge_id, amount=intent.amount, currency=intent.currency)

    # === Transfers ===

    async def create_transfer(
        self,
        amount: int,
        currency: str,
        destination: str,
        idempotency_key: str,
        metadata: dict[str, str],
        source_transaction: str | None = None,
    ) -> TransferResult:
        replay = self._enter("create_transfer", idempotency_key)
        if replay is not None:
            return replay
        transfer = TransferResult(
            id=_new_id("tr"),
            amount=amount,
            currency=currency.upper(),
            destination=destination,
            destination_payment=_new_id("py"),
        )
        self.transfers[transfer.id] = transfer
        return self._remember(idempotency_key, transfer)

    async def create_transfer_reversal(
        self,
        transfer_id: str,
        amount: int | None,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> TransferReversalResult:
        replay = self._enter("create_transfer_reversal", idempotency_key)
        if replay is not None:
            return replay
        transfer = self.transfers.get(transfer_id)
        if transfer is None:
            raise ProcessorError("create_transfer_reversal", f"No such transfer: '{transfer_id}'")
        already_reversed = sum(r.amount for r in self.reversals.values() if r.transfer_id == transfer_id)
        remaining = transfer.amount - already_reversed
        reverse = remaining if amount is None else amount
        if reverse > remaining:
            raise ProcessorError("create_transfer_reversal", "Amount exceeds the transfer's unreversed amount")
        reversal = TransferReversalResult(id=_new_id("trr"), transfer_id=transfer_id, amount=reverse)
        self.reversals[reversal.id] = reversal
        return self._remember(idempotency_key, reversal)

    # === Refunds ===

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int | None,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> RefundResult:
        replay = self._enter("create_refund", idempotency_key)
        if replay is not None:
            return replay
        intent = self._intent("create_refund", payment_intent_id)
        if intent.status != "succeeded":
            raise ProcessorError("create_refund", "This PaymentIntent does not have a successful charge to refund.")
        refunded = sum(r.amount for r in self.refunds.values() if r.payment_intent_id == intent.id)
        remaining = intent.amount - refunded
        value = remaining if amount is None else amount
        if value > remaining:
            raise ProcessorError("create_refund", "Refund amount is greater than the unrefunded charge amount")
        refund = RefundResult(id=_new_id("re"), status="succeeded", amount=value, payment_intent_id=intent.id)
        self.refunds[refund.id] = refund
        return self._remember(idempotency_key, refund)

    # === Webhooks ===

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        if not signature_header or not webhook_secret:
            raise InvalidWebhookSignatureError("Missing Stripe-Signature header")
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidWebhookSignatureError("Invalid webhook payload") from exc
        try:
            stripe.WebhookSignature.verify_header(
                body, signature_header, webhook_secret, tolerance=self._webhook_tolerance
            )
        except stripe.SignatureVerificationError as exc:
            raise InvalidWebhookSignatureError("Invalid Stripe signature") from exc
        try:
            event = json.loads(body)
        except json.JSONDecodeError as exc:
            raise InvalidWebhookSignatureError("Invalid webhook payload") from exc
        if not isinstance(event, dict):
            raise InvalidWebhookSignatureError("Invalid webhook payload")
        return event
