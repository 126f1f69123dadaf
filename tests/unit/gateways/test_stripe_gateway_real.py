import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import stripe

from app.domain.errors import InvalidWebhookSignatureError, ProcessorError
from app.infrastructure.circuit_breaker import stripe_breaker
from app.infrastructure.gateways.stripe_gateway_real import StripeGatewayReal


def _intent(**overrides):
    values = {
        "id": "pi_123",
        "status": "requires_capture",
        "amount": 12000,
        "currency": "eur",
        "client_secret": "pi_123_secret",
        "latest_charge": "ch_123",
        "metadata": {"bookingId": "b1"},
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestStripeGatewayReal(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        stripe_breaker.close()
        self.gateway = StripeGatewayReal(api_key="sk_test_123")

    def tearDown(self):
        stripe_breaker.close()

    @patch.object(stripe.PaymentIntent, "create")
    async def test_create_payment_intent_holds_funds(self, mock_create):
        mock_create.return_value = _intent(status="requires_payment_method", latest_charge=None)

        result = await self.gateway.create_payment_intent(
            amount=12000,
            currency="EUR",
            idempotency_key="booking_b1_payment-intent",
            metadata={"bookingId": "b1"},
        )

        kwargs = mock_create.call_args.kwargs
        self.assertEqual(kwargs["capture_method"], "manual")
        self.assertEqual(kwargs["currency"], "eur")
        self.assertEqual(kwargs["idempotency_key"], "booking_b1_payment-intent")
        self.assertEqual(result.currency, "EUR")
        self.assertEqual(result.client_secret, "pi_123_secret")
        self.assertIsNone(result.latest_charge)

    @patch.object(stripe.PaymentIntent, "capture")
    async def test_capture_accepts_expanded_charge(self, mock_capture):
        mock_capture.return_value = _intent(status="succeeded", latest_charge=SimpleNamespace(id="ch_999"))

        result = await self.gateway.capture_payment_intent("pi_123", idempotency_key="booking_b1_capture")

        mock_capture.assert_called_once_with("pi_123", idempotency_key="booking_b1_capture")
        self.assertEqual(result.latest_charge, "ch_999")

    @patch.object(stripe.Charge, "retrieve")
    async def test_charge_settlement_from_balance_transaction(self, mock_retrieve):
        mock_retrieve.return_value = SimpleNamespace(
            id="ch_123",
            balance_transaction=SimpleNamespace(amount=13000, currency="usd"),
        )

        settlement = await self.gateway.retrieve_charge_settlement("ch_123")

        mock_retrieve.assert_called_once_with("ch_123", expand=["balance_transaction"])
        self.assertEqual(settlement.amount, 13000)
        self.assertEqual(settlement.currency, "USD")

    @patch.object(stripe.Charge, "retrieve")
    async def test_unexpanded_balance_transaction_means_unknown_settlement(self, mock_retrieve):
        mock_retrieve.return_value = SimpleNamespace(id="ch_123", balance_transaction="txn_1")

        self.assertIsNone(await self.gateway.retrieve_charge_settlement("ch_123"))

    @patch.object(stripe.Transfer, "create")
    async def test_transfer_linked_to_source_charge(self, mock_create):
        mock_create.return_value = SimpleNamespace(
            id="tr_1", amount=11050, currency="usd", destination="acct_1", destination_payment="py_1"
        )

        result = await self.gateway.create_transfer(
            amount=11050,
            currency="USD",
            destination="acct_1",
            idempotency_key="booking_b1_transfer",
            metadata={"bookingId": "b1"},
            source_transaction="ch_123",
        )

        self.assertEqual(mock_create.call_args.kwargs["source_transaction"], "ch_123")
        self.assertEqual(result.destination_payment, "py_1")
        self.assertEqual(result.currency, "USD")

    @patch.object(stripe.Transfer, "create_reversal")
    async def test_full_reversal_sends_no_amount(self, mock_reversal):
        mock_reversal.return_value = SimpleNamespace(id="trr_1", amount=10200)

        result = await self.gateway.create_transfer_reversal(
            "tr_1", amount=None, idempotency_key="booking_b1_transfer-reversal_1", metadata={}
        )

        self.assertNotIn("amount", mock_reversal.call_args.kwargs)
        self.assertEqual(mock_reversal.call_args.args, ("tr_1",))
        self.assertEqual(result.amount, 10200)

    @patch.object(stripe.Refund, "create")
    async def test_stripe_error_becomes_processor_error(self, mock_create):
        mock_create.side_effect = stripe.InvalidRequestError("Charge already refunded", param="amount")

        with self.assertRaises(ProcessorError) as ctx:
            await self.gateway.create_refund("pi_123", amount=500, idempotency_key="k", metadata={})

        self.assertEqual(ctx.exception.code, "STRIPE_ERROR")
        self.assertEqual(ctx.exception.operation, "create_refund")

    async def test_open_circuit_becomes_processor_error(self):
        stripe_breaker.open()
        mock_fn = MagicMock()

        with self.assertRaises(ProcessorError):
            await self.gateway._call("retrieve_payment_intent", mock_fn, "pi_123")

        mock_fn.assert_not_called()

    async def test_webhook_without_signature_is_rejected(self):
        with self.assertRaises(InvalidWebhookSignatureError):
            await self.gateway.parse_webhook_event(b"{}", None, "whsec_test")

    @patch.object(stripe.Webhook, "construct_event")
    async def test_invalid_webhook_signature(self, mock_construct):
        mock_construct.side_effect = stripe.SignatureVerificationError("bad signature", "t=1,v1=x")

        with self.assertRaises(InvalidWebhookSignatureError):
            await self.gateway.parse_webhook_event(b"{}", "t=1,v1=x", "whsec_test")
