from dataclasses import dataclass, field
from typing import Any


@dataclass
class PaymentIntentResult:
    id: str
    status: str
    amount: int
    currency: str
    client_secret: str | None = None
    latest_charge: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class ChargeSettlement:
    """Amount actually credited to the platform balance for a charge."""

    charge_id: str
    amount: int
    currency: str


@dataclass
class TransferResult:
    id: str
    amount: int
    currency: str
    destination: str
    destination_payment: str | None = None


@dataclass
class TransferReversalResult:
    id: str
    transfer_id: str
    amount: int


@dataclass
class RefundResult:
    id: str
    status: str
    amount: int
    payment_intent_id: str | None = None


class StripeGateway:
    """
    Port to the payment processor.

    Amounts are integers in the currency's minor unit. Every mutating call takes
    an idempotency key so a retried call is equivalent to the original. Failures
    are raised as ProcessorError.
    """

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str],
        description: str | None = None,
    ) -> PaymentIntentResult:
        """Create a held (manual capture, card) authorization."""
        raise NotImplementedError

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        raise NotImplementedError

    async def capture_payment_intent(
        self,
        payment_intent_id: str,
        idempotency_key: str,
    ) -> PaymentIntentResult:
        raise NotImplementedError

    async def cancel_payment_intent(
        self,
        payment_intent_id: str,
        idempotency_key: str,
    ) -> PaymentIntentResult:
        raise NotImplementedError

    async def retrieve_charge_settlement(self, charge_id: str) -> ChargeSettlement | None:
        """Charge with its balance transaction; None when not settled yet."""
        raise NotImplementedError

    async def create_transfer(
        self,
        amount: int,
        currency: str,
        destination: str,
        idempotency_key: str,
        metadata: dict[str, str],
        source_transaction: str | None = None,
    ) -> TransferResult:
        raise NotImplementedError

    async def create_transfer_reversal(
        self,
        transfer_id: str,
        amount: int | None,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> TransferReversalResult:
        """Reverse part of a transfer; amount None reverses the whole transfer."""
        raise NotImplementedError

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int | None,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> RefundResult:
        raise NotImplementedError

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        """Verify the signature and return the event envelope; InvalidWebhookSignatureError otherwise."""
        raise NotImplementedError
