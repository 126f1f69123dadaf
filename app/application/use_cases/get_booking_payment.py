from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.domain.constants import ROLE_ADMIN
from app.domain.entities.payment import PaymentLedgerRecord
from app.domain.errors import BookingNotFoundError, NoPaymentError, UnauthorizedError


class GetBookingPaymentUseCase:
    """Ledger view of a booking's payment for its customer or an administrator."""

    def __init__(self, booking_repo: BookingRepo, ledger_repo: PaymentLedgerRepo) -> None:
        self._booking_repo = booking_repo
        self._ledger_repo = ledger_repo

    async def execute(
        self,
        booking_id: str,
        requester_id: str,
        requester_role: str | None,
    ) -> PaymentLedgerRecord:
        booking = await self._booking_repo.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if requester_role != ROLE_ADMIN and not booking.is_customer(requester_id):
            raise UnauthorizedError("Not authorized to view this payment")

        record = await self._ledger_repo.get_by_booking(booking_id)
        if record is None:
            raise NoPaymentError(booking_id, "view")
        return record
