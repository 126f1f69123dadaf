from app.domain.entities.booking import Booking, PaymentSummary


class BookingRepo:
    async def get_by_id(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    async def save(self, booking: Booking) -> None:
        raise NotImplementedError

    async def update_payment_projection(
        self,
        booking_id: str,
        summary: PaymentSummary,
        status: str | None = None,
    ) -> None:
        """Refresh the embedded payment summary (and optionally the booking status)."""
        raise NotImplementedError
