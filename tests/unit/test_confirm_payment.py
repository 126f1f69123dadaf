"""Confirmación del cliente tras completar el flujo de tarjeta."""

import pytest

from app.domain.entities.payment import PaymentStatus
from app.domain.errors import NoPaymentError, PaymentIntentMismatchError, UnauthorizedError
from tests.conftest import CUSTOMER_ID


class TestConfirmPayment:
    @pytest.mark.asyncio
    async def test_requires_capture_moves_payment_to_authorized(self, world, clock):
        booking = await world.seed()
        created = await world.use_cases["create_payment_intent"].execute(booking.id, CUSTOMER_ID)
        intent = world.stripe.authorize(created.payment_intent_id)

        outcome = await world.use_cases["confirm_payment"].execute(
            booking.id, created.payment_intent_id, CUSTOMER_ID
        )

        assert outcome.status == "authorized"
        assert outcome.already_processed is False
        record = await world.ledger_repo.get_by_booking(booking.id)
        assert record.status == PaymentStatus.AUTHORIZED
        assert record.authorized_at == clock.now()
        assert record.stripe_charge_id == intent.latest_charge
        stored = await world.booking_repo.get_by_id(booking.id)
        assert stored.status == "booked"
        assert stored.payment.status == "authorized"

    @pytest.mark.asyncio
    async def test_unfinished_card_flow_keeps_pending(self, world):
        booking = await world.seed()
        created = await world.use_cases["create_payment_intent"].execute(booking.id, CUSTOMER_ID)

        outcome = await world.use_cases["confirm_payment"].execute(
            booking.id, created.payment_intent_id, CUSTOMER_ID
        )

        assert outcome.status == "pending"
        assert outcome.processor_status == "requires_payment_method"
        record = await world.ledger_repo.get_by_booking(booking.id)
        assert record.status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_already_authorized_is_reported(self, world):
        created = await world.authorized_payment()

        outcome = await world.use_cases["confirm_payment"].execute(
            created.booking_id, created.payment_intent_id, CUSTOMER_ID
        )

        assert outcome.already_processed is True
        assert outcome.status == "authorized"
        assert world.stripe.calls["retrieve_payment_intent"] == 1

    @pytest.mark.asyncio
    async def test_mismatched_intent_is_rejected(self, world):
        booking = await world.seed()
        await world.use_cases["create_payment_intent"].execute(booking.id, CUSTOMER_ID)

        with pytest.raises(PaymentIntentMismatchError):
            await world.use_cases["confirm_payment"].execute(booking.id, "pi_other", CUSTOMER_ID)

    @pytest.mark.asyncio
    async def test_no_payment_to_confirm(self, world):
        booking = await world.seed()

        with pytest.raises(NoPaymentError):
            await world.use_cases["confirm_payment"].execute(booking.id, "pi_any", CUSTOMER_ID)

    @pytest.mark.asyncio
    async def test_only_customer_can_confirm(self, world):
        booking = await world.seed()

        with pytest.raises(UnauthorizedError):
            await world.use_cases["confirm_payment"].execute(booking.id, "pi_any", "intruder")
