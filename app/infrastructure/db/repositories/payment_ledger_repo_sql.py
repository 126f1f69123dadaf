from typing import Any, Sequence

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.domain.entities.payment import (
    PaymentLedgerRecord,
    PaymentStatus,
    RefundEntry,
    RefundSource,
    TransferFailure,
)
from app.domain.errors import StaleLedgerRecordError
from app.infrastructure.db.repositories._codec import as_decimal, as_utc, parse_datetime, to_json_value
from app.infrastructure.db.tables import payment_ledger, payment_refunds

_DATETIME_COLUMNS = (
    "authorized_at",
    "captured_at",
    "transferred_at",
    "refunded_at",
    "canceled_at",
    "created_at",
    "updated_at",
)
_DECIMAL_COLUMNS = (
    "amount",
    "net_amount",
    "vat_amount",
    "vat_rate",
    "total_with_vat",
    "platform_commission",
    "professional_payout",
)
_PLAIN_COLUMNS = (
    "booking_number",
    "customer_id",
    "payee_id",
    "method",
    "currency",
    "stripe_payment_intent_id",
    "stripe_client_secret",
    "stripe_charge_id",
    "stripe_transfer_id",
    "stripe_destination_payment",
    "transfer_amount_minor",
    "transfer_currency",
    "refund_notes",
    "dispute_id",
    "dispute_status",
)


def _failure_to_json(failure: TransferFailure | None) -> dict[str, Any] | None:
    if failure is None:
        return None
    return {
        "error": failure.error,
        "attempted_currency": failure.attempted_currency,
        "attempted_amount": failure.attempted_amount,
        "booking_currency": failure.booking_currency,
        "recorded_at": to_json_value(failure.recorded_at),
    }


def _failure_from_json(data: dict[str, Any] | None) -> TransferFailure | None:
    if not data:
        return None
    return TransferFailure(
        error=data["error"],
        attempted_currency=data["attempted_currency"],
        attempted_amount=data["attempted_amount"],
        booking_currency=data["booking_currency"],
        recorded_at=parse_datetime(data["recorded_at"]),
    )


class PaymentLedgerRepoSQL(PaymentLedgerRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _load_refunds(self, booking_id: str) -> list[RefundEntry]:
        stmt = (
            select(payment_refunds)
            .where(payment_refunds.c.booking_id == booking_id)
            .order_by(payment_refunds.c.position)
        )
        result = await self._session.execute(stmt)
        return [
            RefundEntry(
                amount=as_decimal(row.amount),
                reason=row.reason,
                refunded_at=as_utc(row.refunded_at),
                source=RefundSource(row.source),
                refund_id=row.refund_id,
                notes=row.notes,
            )
            for row in result
        ]

    async def _to_record(self, row) -> PaymentLedgerRecord:
        values: dict[str, Any] = {name: getattr(row, name) for name in _PLAIN_COLUMNS}
        values.update({name: as_decimal(getattr(row, name)) for name in _DECIMAL_COLUMNS})
        values.update({name: as_utc(getattr(row, name)) for name in _DATETIME_COLUMNS})
        return PaymentLedgerRecord(
            booking_id=row.booking_id,
            status=PaymentStatus(row.status),
            transfer_failure=_failure_from_json(row.transfer_failure),
            metadata=dict(row.extra_metadata or {}),
            refunds=await self._load_refunds(row.booking_id),
            version=row.version,
            **values,
        )

    async def _fetch_one(self, *criteria) -> PaymentLedgerRecord | None:
        result = await self._session.execute(select(payment_ledger).where(*criteria))
        row = result.first()
        return await self._to_record(row) if row else None

    async def get_by_booking(self, booking_id: str) -> PaymentLedgerRecord | None:
        return await self._fetch_one(payment_ledger.c.booking_id == booking_id)

    async def find_by_payment_intent(self, stripe_payment_intent_id: str) -> PaymentLedgerRecord | None:
        return await self._fetch_one(payment_ledger.c.stripe_payment_intent_id == stripe_payment_intent_id)

    async def find_by_charge(self, stripe_charge_id: str) -> PaymentLedgerRecord | None:
        return await self._fetch_one(payment_ledger.c.stripe_charge_id == stripe_charge_id)

    async def find_by_transfer(self, stripe_transfer_id: str) -> PaymentLedgerRecord | None:
        return await self._fetch_one(payment_ledger.c.stripe_transfer_id == stripe_transfer_id)

    async def list_by_payee(
        self,
        payee_id: str,
        statuses: Sequence[PaymentStatus] | None = None,
        limit: int | None = None,
    ) -> Sequence[PaymentLedgerRecord]:
        stmt = (
            select(payment_ledger)
            .where(payment_ledger.c.payee_id == payee_id)
            .order_by(payment_ledger.c.created_at.desc())
        )
        if statuses is not None:
            stmt = stmt.where(payment_ledger.c.status.in_([s.value for s in statuses]))
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [await self._to_record(row) for row in result.all()]

    async def upsert(self, record: PaymentLedgerRecord) -> PaymentLedgerRecord:
        values: dict[str, Any] = {name: getattr(record, name) for name in _PLAIN_COLUMNS}
        values.update({name: getattr(record, name) for name in _DECIMAL_COLUMNS})
        values.update({name: getattr(record, name) for name in _DATETIME_COLUMNS})
        values["status"] = record.status.value
        values["transfer_failure"] = _failure_to_json(record.transfer_failure)
        values["extra_metadata"] = dict(record.metadata)

        if record.version == 0:
            try:
                await self._session.execute(
                    insert(payment_ledger).values(booking_id=record.booking_id, version=1, **values)
                )
            except IntegrityError as exc:
                raise StaleLedgerRecordError(record.booking_id, record.version) from exc
        else:
            result = await self._session.execute(
                update(payment_ledger)
                .where(
                    payment_ledger.c.booking_id == record.booking_id,
                    payment_ledger.c.version == record.version,
                )
                .values(version=payment_ledger.c.version + 1, **values)
            )
            if result.rowcount == 0:
                raise StaleLedgerRecordError(record.booking_id, record.version)

        # Bajo la guarda de versión el historial se reescribe completo (una disputa ganada retira su entrada)
        await self._session.execute(
            delete(payment_refunds).where(payment_refunds.c.booking_id == record.booking_id)
        )
        if record.refunds:
            await self._session.execute(
                insert(payment_refunds),
                [
                    {
                        "booking_id": record.booking_id,
                        "position": position,
                        "amount": entry.amount,
                        "reason": entry.reason,
                        "refund_id": entry.refund_id,
                        "refunded_at": entry.refunded_at,
                        "source": entry.source.value,
                        "notes": entry.notes,
                    }
                    for position, entry in enumerate(record.refunds)
                ],
            )
        return await self.get_by_booking(record.booking_id)
