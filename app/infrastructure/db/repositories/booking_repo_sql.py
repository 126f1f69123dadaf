from dataclasses import asdict, fields
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.booking_repo import BookingRepo
from app.domain.entities.booking import Booking, PaymentSummary, ProjectRef, Quote
from app.infrastructure.db.repositories._codec import as_decimal, parse_datetime, to_json_value
from app.infrastructure.db.tables import bookings

_DECIMAL_FIELDS = frozenset(
    {
        "amount",
        "net_amount",
        "vat_amount",
        "vat_rate",
        "total_with_vat",
        "platform_commission",
        "professional_payout",
    }
)
_DATETIME_FIELDS = {f.name for f in fields(PaymentSummary) if f.name.endswith("_at")}


def summary_to_json(summary: PaymentSummary | None) -> dict[str, Any] | None:
    if summary is None:
        return None
    return {key: to_json_value(value) for key, value in asdict(summary).items()}


def summary_from_json(data: dict[str, Any] | None) -> PaymentSummary | None:
    if not data:
        return None
    values: dict[str, Any] = {}
    for f in fields(PaymentSummary):
        if f.name not in data:
            continue
        raw = data[f.name]
        if f.name in _DATETIME_FIELDS:
            values[f.name] = parse_datetime(raw)
        elif f.name in _DECIMAL_FIELDS:
            values[f.name] = as_decimal(raw)
        else:
            values[f.name] = raw
    return PaymentSummary(**values)


class BookingRepoSQL(BookingRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _to_entity(self, row) -> Booking:
        project = None
        if row.project_id:
            project = ProjectRef(
                project_id=row.project_id,
                title=row.project_title,
                payee_id=row.project_payee_id,
            )
        quote = None
        if row.quote_amount is not None:
            quote = Quote(amount=as_decimal(row.quote_amount), currency=row.quote_currency)
        return Booking(
            id=row.id,
            customer_id=row.customer_id,
            status=row.status,
            booking_number=row.booking_number,
            payee_id=row.payee_id,
            project=project,
            quote=quote,
            customer_country=row.customer_country,
            customer_vat_number=row.customer_vat_number,
            customer_type=row.customer_type,
            payment=summary_from_json(row.payment_summary),
            lock_version=row.lock_version,
        )

    async def get_by_id(self, booking_id: str) -> Booking | None:
        result = await self._session.execute(select(bookings).where(bookings.c.id == booking_id))
        row = result.first()
        return self._to_entity(row) if row else None

    async def save(self, booking: Booking) -> None:
        values = {
            "booking_number": booking.booking_number,
            "customer_id": booking.customer_id,
            "payee_id": booking.payee_id,
            "project_id": booking.project.project_id if booking.project else None,
            "project_title": booking.project.title if booking.project else None,
            "project_payee_id": booking.project.payee_id if booking.project else None,
            "status": booking.status,
            "quote_amount": booking.quote.amount if booking.quote else None,
            "quote_currency": booking.quote.currency if booking.quote else None,
            "customer_country": booking.customer_country,
            "customer_vat_number": booking.customer_vat_number,
            "customer_type": booking.customer_type,
            "payment_summary": summary_to_json(booking.payment),
            "lock_version": booking.lock_version,
        }
        exists = await self._session.execute(select(bookings.c.id).where(bookings.c.id == booking.id))
        if exists.first():
            await self._session.execute(update(bookings).where(bookings.c.id == booking.id).values(**values))
        else:
            await self._session.execute(insert(bookings).values(id=booking.id, **values))

    async def update_payment_projection(
        self,
        booking_id: str,
        summary: PaymentSummary,
        status: str | None = None,
    ) -> None:
        values: dict[str, Any] = {
            "payment_summary": summary_to_json(summary),
            "lock_version": bookings.c.lock_version + 1,
        }
        if status is not None:
            values["status"] = status
        await self._session.execute(update(bookings).where(bookings.c.id == booking_id).values(**values))
