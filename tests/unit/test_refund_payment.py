"""Reembolsos: cancelación previa a la captura y reembolsos con reversa de transferencia."""

from decimal import Decimal

import pytest

from app.application.use_cases.refund_payment import CANCELLATION_NOTE
from app.domain.entities.payment import PaymentStatus, RefundSource
from app.domain.errors import (
    InvalidAmountError,
    InvalidStatusError,
    NoPaymentError,
    RefundExceedsTotalError,
    UnauthorizedError,
)
from tests.conftest import ADMIN_ID, CUSTOMER_ID, make_booking, sign_payload, stripe_event


class TestCancelAuthorization:
    @pytest.mark.asyncio
    async def test_authorized_payment_is_cancelled(self, world, clock):
        created = await world.authorized_payment()

        outcome = await world.use_cases["refund_payment"].execute(
            created.booking_id, CUSTOMER_ID, None, reason="Changed plans"
        )

        assert outcome.status == "refunded"
        assert outcome.refund_source == "platform"
        assert outcome.notes == CANCELLATION_NOTE
        assert world.stripe.intents[created.payment_intent_id].status == "canceled"
        assert world.stripe.calls["create_refund"] == 0

        record = await world.ledger_repo.get_by_booking(created.booking_id)
        assert record.status == PaymentStatus.REFUNDED
        assert record.canceled_at == clock.now()
        assert record.refunds[0].amount == Decimal("120.00")
        assert record.refunds[0].reason == "Changed plans"
        stored = await world.booking_repo.get_by_id(created.booking_id)
        assert stored.status == "cancelled"
        assert stored.payment.refund_reason == "Changed plans"


class TestRefundCaptured:
    @pytest.mark.asyncio
    async def test_full_refund_reverses_whole_transfer(self, world):
        created = await world.completed_payment()

        outcome = await world.use_cases["refund_payment"].execute(created.booking_id, ADMIN_ID, "admin")

        assert outcome.status == "refunded"
        assert outcome.refunded_amount == Decimal("120.00")
        assert outcome.refund_source == "provider"
        reversal = world.stripe.reversals[outcome.transfer_reversal_id]
        assert reversal.amount == 10200
        refund = world.stripe.refunds[outcome.refund_id]
        assert refund.amount == 12000

        stored = await world.booking_repo.get_by_id(created.booking_id)
        assert stored.status == "refunded"
        assert stored.payment.refund_source == "provider"

    @pytest.mark.asyncio
    async def test_partial_refund_reverses_proportional_share(self, world, clock):
        created = await world.completed_payment()

        outcome = await world.use_cases["refund_payment"].execute(
            created.booking_id, CUSTOMER_ID, None, amount=Decimal("60.00")
        )

        assert outcome.status == "partially_refunded"
        assert world.stripe.reversals[outcome.transfer_reversal_id].amount == 5100

        clock.advance(seconds=1)
        second = await world.use_cases["refund_payment"].execute(created.booking_id, CUSTOMER_ID, None)

        assert second.status == "refunded"
        assert second.refunded_amount == Decimal("60.00")
        record = await world.ledger_repo.get_by_booking(created.booking_id)
        assert record.refunded_total == Decimal("120.00")
        assert len(record.refunds) == 2

    @pytest.mark.asyncio
    async def test_partial_refund_on_top_of_prior_refund(self, world, clock):
        booking = make_booking(amount="100.00")
        created = await world.completed_payment(booking)
        await world.use_cases["refund_payment"].execute(
            created.booking_id, CUSTOMER_ID, None, amount=Decimal("20.00")
        )
        clock.advance(seconds=1)

        outcome = await world.use_cases["refund_payment"].execute(
            created.booking_id, CUSTOMER_ID, None, amount=Decimal("30.00")
        )

        assert outcome.status == "partially_refunded"
        record = await world.ledger_repo.get_by_booking(created.booking_id)
        assert record.refunded_total == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_refund_exceeding_total_is_rejected(self, world, clock):
        booking = make_booking(amount="100.00")
        created = await world.completed_payment(booking)
        await world.use_cases["refund_payment"].execute(
            created.booking_id, CUSTOMER_ID, None, amount=Decimal("80.00")
        )
        clock.advance(seconds=1)

        with pytest.raises(RefundExceedsTotalError):
            await world.use_cases["refund_payment"].execute(
                created.booking_id, CUSTOMER_ID, None, amount=Decimal("30.00")
            )
        assert world.stripe.calls["create_refund"] == 1

    @pytest.mark.asyncio
    async def test_nothing_left_to_refund(self, world, clock):
        created = await world.completed_payment()
        await world.use_cases["refund_payment"].execute(
            created.booking_id, CUSTOMER_ID, None, amount=Decimal("120.00")
        )
        record = await world.ledger_repo.get_by_booking(created.booking_id)
        assert record.status == PaymentStatus.REFUNDED
        clock.advance(seconds=1)

        with pytest.raises(InvalidStatusError):
            await world.use_cases["refund_payment"].execute(created.booking_id, CUSTOMER_ID, None)

    @pytest.mark.asyncio
    async def test_failed_reversal_is_platform_funded(self, world):
        created = await world.completed_payment()
        world.stripe.fail_next("create_transfer_reversal", "Connected account balance is insufficient")

        outcome = await world.use_cases["refund_payment"].execute(created.booking_id, CUSTOMER_ID, None)

        assert outcome.status == "refunded"
        assert outcome.refund_source == "platform"
        assert outcome.transfer_reversal_id is None
        assert "Transfer reversal failed" in outcome.notes
        record = await world.ledger_repo.get_by_booking(created.booking_id)
        assert record.refunds[-1].source == RefundSource.PLATFORM
        assert "Refund funded by platform" in record.refund_notes

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
    async def test_non_positive_amount_is_rejected(self, world, amount):
        created = await world.completed_payment()

        with pytest.raises(InvalidAmountError):
            await world.use_cases["refund_payment"].execute(created.booking_id, CUSTOMER_ID, None, amount=amount)


class TestRefundGuards:
    @pytest.mark.asyncio
    async def test_pending_payment_cannot_be_refunded(self, world):
        booking = await world.seed()
        await world.use_cases["create_payment_intent"].execute(booking.id, CUSTOMER_ID)

        with pytest.raises(InvalidStatusError):
            await world.use_cases["refund_payment"].execute(booking.id, CUSTOMER_ID, None)

    @pytest.mark.asyncio
    async def test_stranger_cannot_request_refund(self, world):
        created = await world.completed_payment()

        with pytest.raises(UnauthorizedError):
            await world.use_cases["refund_payment"].execute(created.booking_id, "stranger", "customer")

    @pytest.mark.asyncio
    async def test_no_payment_to_refund(self, world):
        booking = await world.seed()

        with pytest.raises(NoPaymentError):
            await world.use_cases["refund_payment"].execute(booking.id, ADMIN_ID, "admin")


class TestWebhookDuringRefund:
    @pytest.mark.asyncio
    async def test_dispute_opened_while_refund_in_flight_is_kept(self, world, monkeypatch):
        created = await world.completed_payment()
        record = await world.ledger_repo.get_by_booking(created.booking_id)
        original_create_refund = world.stripe.create_refund

        async def create_refund_racing_dispute(**kwargs):
            payload = stripe_event(
                "evt_dispute",
                "charge.dispute.created",
                {
                    "id": "dp_1",
                    "charge": record.stripe_charge_id,
                    "amount": 12000,
                    "currency": "eur",
                    "reason": "fraudulent",
                    "status": "needs_response",
                },
            )
            await world.use_cases["handle_webhook"].execute(payload.encode("utf-8"), sign_payload(payload))
            return await original_create_refund(**kwargs)

        monkeypatch.setattr(world.stripe, "create_refund", create_refund_racing_dispute)

        outcome = await world.use_cases["refund_payment"].execute(created.booking_id, ADMIN_ID, "admin")

        assert outcome.status == "refunded"
        stored = await world.ledger_repo.get_by_booking(created.booking_id)
        assert stored.status == PaymentStatus.REFUNDED
        assert stored.dispute_id == "dp_1"
        assert stored.has_refund("dp_1")
        assert stored.refunded_total == stored.total
        assert outcome.refund_id in stored.refund_notes
        assert "Manual review required" in outcome.notes

    @pytest.mark.asyncio
    async def test_cancel_after_processor_already_canceled(self, world, monkeypatch):
        created = await world.authorized_payment()
        original_cancel = world.stripe.cancel_payment_intent

        async def cancel_racing_webhook(**kwargs):
            payload = stripe_event(
                "evt_canceled",
                "payment_intent.canceled",
                {"id": created.payment_intent_id, "metadata": {"bookingId": created.booking_id}},
            )
            await world.use_cases["handle_webhook"].execute(payload.encode("utf-8"), sign_payload(payload))
            return await original_cancel(**kwargs)

        monkeypatch.setattr(world.stripe, "cancel_payment_intent", cancel_racing_webhook)

        outcome = await world.use_cases["refund_payment"].execute(created.booking_id, CUSTOMER_ID, None)

        assert outcome.status == "refunded"
        stored = await world.ledger_repo.get_by_booking(created.booking_id)
        assert stored.refund_notes == "Authorization canceled by the payment processor"
        assert stored.refunds == []
