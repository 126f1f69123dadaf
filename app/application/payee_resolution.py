from app.application.interfaces.payee_repo import PayeeRepo
from app.domain.entities.booking import Booking
from app.domain.entities.payee import PayeeFound, PayeeMissing, PayeeResolution


def payee_candidates(booking: Booking) -> list[str]:
    """Direct payee first, then the payee of the booking's project."""
    candidates: list[str] = []
    if booking.payee_id:
        candidates.append(booking.payee_id)
    if booking.project and booking.project.payee_id and booking.project.payee_id not in candidates:
        candidates.append(booking.project.payee_id)
    return candidates


async def resolve_payee(booking: Booking, payee_repo: PayeeRepo) -> PayeeResolution:
    candidates = payee_candidates(booking)
    if not candidates:
        return PayeeMissing(reason="booking has no direct payee and no project payee")
    for payee_id in candidates:
        payee = await payee_repo.get_by_id(payee_id)
        if payee is not None:
            return PayeeFound(payee=payee)
    return PayeeMissing(reason=f"payee not found: {', '.join(candidates)}")
