import asyncio
import logging
from typing import Any, Callable

import stripe

from app.application.interfaces.stripe_gateway import (
    ChargeSettlement,
    PaymentIntentResult,
    RefundResult,
    StripeGateway,
    TransferResult,
    TransferReversalResult,
)
from app.config import get_settings
from app.domain.errors import InvalidWebhookSignatureError, ProcessorError
from app.infrastructure.circuit_breaker import CircuitBreakerError, stripe_breaker

logger = logging.getLogger(__name__)


def _object_id(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return getattr(value, "id", None)


def _intent_result(intent: Any) -> PaymentIntentResult:
    return PaymentIntentResult(
        id=intent.id,
        status=intent.status,
        amount=intent.amount,
        currency=intent.currency.upper(),
        client_secret=intent.client_secret,
        latest_charge=_object_id(intent.latest_charge),
        metadata=dict(intent.metadata or {}),
    )


class StripeGatewayReal(StripeGateway):
    def __init__(self, api_key: str | None = None) -> None:
        settings = get_settings()
        stripe.api_key = api_key or settings.stripe_api_key

        # Stripe SDK is synchronous; bound each request so worker threads are not held indefinitely
        stripe.max_network_retries = settings.stripe_max_network_retries
        stripe.default_http_client = stripe.RequestsClient(timeout=settings.stripe_timeout_seconds)

    async def _call(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run a Stripe API call in a worker thread, protected by the circuit breaker.

        Raises:
            ProcessorError: Stripe rejected the call, is unreachable, or the circuit is open
        """
        try:
            return await asyncio.to_thread(stripe_breaker.call, fn, *args, **kwargs)
        except CircuitBreakerError as e:
            logger.error(
                "Stripe circuit breaker is open - service unavailable",
                extra={"operation": operation, "circuit_state": str(e)},
            )
            raise ProcessorError(operation, "Payment processor temporarily unavailable") from e
        except stripe.StripeError as e:
            logger.error(
                "Stripe API error",
                exc_info=e,
                extra={
                    "operation": operation,
                    "stripe_code": e.code,
                    "idempotency_key": kwargs.get("idempotency_key"),
                },
            )
            raise ProcessorError(operation, e.user_message or str(e)) from e

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str],
        description: str | None = None,
    ) -> PaymentIntentResult:
        intent = await self._call(
            "create_payment_intent",
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency.lower(),
            capture_method="manual",
            payment_method_types=["card"],
            metadata=metadata,
            description=description,
            idempotency_key=idempotency_key,
        )
        return _intent_result(intent)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        intent = await self._call("retrieve_payment_intent", stripe.PaymentIntent.retrieve, payment_intent_id)
        return _intent_result(intent)

    async def capture_payment_intent(self, payment_intent_id: str, idempotency_key: str) -> PaymentIntentResult:
        intent = await self._call(
            "capture_payment_intent",
            stripe.PaymentIntent.capture,
            payment_intent_id,
            idempotency_key=idempotency_key,
        )
        return _intent_result(intent)

    async def cancel_payment_intent(self, payment_intent_id: str, idempotency_key: str) -> PaymentIntentResult:
        intent = await self._call(
            "cancel_payment_intent",
            stripe.PaymentIntent.cancel,
            payment_intent_id,
            idempotency_key=idempotency_key,
        )
        return _intent_result(intent)

    async def retrieve_charge_settlement(self, charge_id: str) -> ChargeSettlement | None:
        charge = await self._call(
            "retrieve_charge",
            stripe.Charge.retrieve,
            charge_id,
            expand=["balance_transaction"],
        )
        balance_transaction = charge.balance_transaction
        if balance_transaction is None or isinstance(balance_transaction, str):
            return None
        return ChargeSettlement(
            charge_id=charge.id,
            amount=balance_transaction.amount,
            currency=balance_transaction.currency.upper(),
        )

    async def create_transfer(
        self,
        amount: int,
        currency: str,
        destination: str,
        idempotency_key: str,
        metadata: dict[str, str],
        source_transaction: str | None = None,
    ) -> TransferResult:
        params: dict[str, Any] = {
            "amount": amount,
            "currency": currency.lower(),
            "destination": destination,
            "metadata": metadata,
            "idempotency_key": idempotency_key,
        }
        if source_transaction:
            params["source_transaction"] = source_transaction
        transfer = await self._call("create_transfer", stripe.Transfer.create, **params)
        return TransferResult(
            id=transfer.id,
            amount=transfer.amount,
            currency=transfer.currency.upper(),
            destination=_object_id(transfer.destination) or destination,
            destination_payment=_object_id(transfer.destination_payment),
        )

    async def create_transfer_reversal(
        self,
        transfer_id: str,
        amount: int | None,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> TransferReversalResult:
        params: dict[str, Any] = {"metadata": metadata, "idempotency_key": idempotency_key}
        if amount is not None:
            params["amount"] = amount
        reversal = await self._call(
            "create_transfer_reversal",
            stripe.Transfer.create_reversal,
            transfer_id,
            **params,
        )
        return TransferReversalResult(id=reversal.id, transfer_id=transfer_id, amount=reversal.amount)

    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int | None,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> RefundResult:
        params: dict[str, Any] = {
            "payment_intent": payment_intent_id,
            "metadata": metadata,
            "idempotency_key": idempotency_key,
        }
        if amount is not None:
            params["amount"] = amount
        refund = await self._call("create_refund", stripe.Refund.create, **params)
        return RefundResult(
            id=refund.id,
            status=refund.status,
            amount=refund.amount,
            payment_intent_id=_object_id(refund.payment_intent),
        )

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        if not signature_header or not webhook_secret:
            raise InvalidWebhookSignatureError("Missing Stripe-Signature header")
        try:
            event = stripe.Webhook.construct_event(
                payload=payload.decode("utf-8"),
                sig_header=signature_header,
                secret=webhook_secret,
            )
        except stripe.SignatureVerificationError as exc:
            raise InvalidWebhookSignatureError("Invalid Stripe signature") from exc
        except ValueError as exc:
            raise InvalidWebhookSignatureError("Invalid Stripe webhook payload") from exc

        return event.to_dict() if hasattr(event, "to_dict") else dict(event)
