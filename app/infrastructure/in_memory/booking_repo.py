"""Implementación in-memory del repositorio de reservas."""

import copy

from app.application.interfaces.booking_repo import BookingRepo
from app.domain.entities.booking import Booking, PaymentSummary


class InMemoryBookingRepo(BookingRepo):
    """Guarda copias para que los casos de uso no compartan referencias con el store."""

    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}

    async def get_by_id(self, booking_id: str) -> Booking | None:
        booking = self._bookings.get(booking_id)
        return copy.deepcopy(booking) if booking else None

    async def save(self, booking: Booking) -> None:
        self._bookings[booking.id] = copy.deepcopy(booking)

    async def update_payment_projection(
        self,
        booking_id: str,
        summary: PaymentSummary,
        status: str | None = None,
    ) -> None:
        booking = self._bookings.get(booking_id)
        if booking is None:
            return
        booking.payment = copy.deepcopy(summary)
        if status is not None:
            booking.status = status
        booking.lock_version += 1
