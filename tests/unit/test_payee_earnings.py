"""Estadísticas y transacciones del profesional."""

from decimal import Decimal

import pytest

from app.application.use_cases.get_payee_earnings import clamp_limit
from tests.conftest import CUSTOMER_ID, PAYEE_ID, make_booking


class TestPayeeEarnings:
    @pytest.mark.asyncio
    async def test_stats_split_completed_and_pending(self, world, clock):
        await world.completed_payment(make_booking(booking_id="b-done", amount="120.00"))
        clock.advance(minutes=5)
        await world.authorized_payment(make_booking(booking_id="b-held", amount="100.00"))
        clock.advance(minutes=5)
        booking = await world.seed(make_booking(booking_id="b-pending", amount="80.00"))
        await world.use_cases["create_payment_intent"].execute(booking.id, CUSTOMER_ID)

        stats = await world.use_cases["payee_stats"].execute(PAYEE_ID)

        assert stats.total_earnings == Decimal("102.00")
        assert stats.pending_earnings == Decimal("85.00")
        assert stats.completed_bookings == 1
        assert stats.currency == "EUR"

    @pytest.mark.asyncio
    async def test_stats_for_payee_without_payments(self, world):
        stats = await world.use_cases["payee_stats"].execute("nobody")

        assert stats.total_earnings == Decimal("0")
        assert stats.completed_bookings == 0
        assert stats.currency == "EUR"

    @pytest.mark.asyncio
    async def test_transactions_most_recent_first(self, world, clock):
        await world.completed_payment(make_booking(booking_id="b-old"))
        clock.advance(days=1)
        booking = await world.seed(make_booking(booking_id="b-new"))
        await world.use_cases["create_payment_intent"].execute(booking.id, CUSTOMER_ID)

        transactions = await world.use_cases["payee_transactions"].execute(PAYEE_ID, limit=None)

        assert [t.booking_id for t in transactions] == ["b-new", "b-old"]
        newest, oldest = transactions
        assert newest.status == "pending"
        assert newest.date == clock.now()
        assert oldest.status == "completed"
        assert oldest.amount == Decimal("102.00")
        assert oldest.booking_number == "BK-b-old"

    @pytest.mark.asyncio
    async def test_transactions_respect_limit(self, world, clock):
        for index in range(3):
            await world.completed_payment(make_booking(booking_id=f"b-{index}"))
            clock.advance(minutes=1)

        transactions = await world.use_cases["payee_transactions"].execute(PAYEE_ID, limit=2)

        assert len(transactions) == 2

    @pytest.mark.parametrize("limit,expected", [(None, 10), (0, 1), (-3, 1), (25, 25), (500, 50)])
    def test_limit_is_clamped(self, limit, expected):
        assert clamp_limit(limit) == expected
