import pytest

from app.domain.errors import BookingNotFoundError, NoPaymentError, UnauthorizedError
from tests.conftest import ADMIN_ID, CUSTOMER_ID


class TestGetBookingPayment:
    @pytest.mark.asyncio
    async def test_customer_and_admin_can_view(self, world):
        created = await world.completed_payment()
        use_case = world.use_cases["get_booking_payment"]

        as_customer = await use_case.execute(created.booking_id, CUSTOMER_ID, None)
        as_admin = await use_case.execute(created.booking_id, ADMIN_ID, "admin")

        assert as_customer.status.value == "completed"
        assert as_admin.stripe_transfer_id == as_customer.stripe_transfer_id

    @pytest.mark.asyncio
    async def test_other_users_cannot_view(self, world):
        created = await world.completed_payment()

        with pytest.raises(UnauthorizedError):
            await world.use_cases["get_booking_payment"].execute(created.booking_id, "stranger", "payee")

    @pytest.mark.asyncio
    async def test_booking_without_payment(self, world):
        booking = await world.seed()

        with pytest.raises(NoPaymentError):
            await world.use_cases["get_booking_payment"].execute(booking.id, CUSTOMER_ID, None)

    @pytest.mark.asyncio
    async def test_unknown_booking(self, world):
        with pytest.raises(BookingNotFoundError):
            await world.use_cases["get_booking_payment"].execute("missing", ADMIN_ID, "admin")
