"""Implementación in-memory del ledger de pagos."""

import copy
from datetime import datetime, timezone
from typing import Sequence

from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.domain.entities.payment import PaymentLedgerRecord, PaymentStatus
from app.domain.errors import StaleLedgerRecordError

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class InMemoryPaymentLedgerRepo(PaymentLedgerRepo):
    def __init__(self) -> None:
        self._by_booking: dict[str, PaymentLedgerRecord] = {}

    async def get_by_booking(self, booking_id: str) -> PaymentLedgerRecord | None:
        record = self._by_booking.get(booking_id)
        return copy.deepcopy(record) if record else None

    async def _find(self, **criteria: str) -> PaymentLedgerRecord | None:
        for record in self._by_booking.values():
            if all(getattr(record, attr) == value for attr, value in criteria.items()):
                return copy.deepcopy(record)
        return None

    async def find_by_payment_intent(self, stripe_payment_intent_id: str) -> PaymentLedgerRecord | None:
        return await self._find(stripe_payment_intent_id=stripe_payment_intent_id)

    async def find_by_charge(self, stripe_charge_id: str) -> PaymentLedgerRecord | None:
        return await self._find(stripe_charge_id=stripe_charge_id)

    async def find_by_transfer(self, stripe_transfer_id: str) -> PaymentLedgerRecord | None:
        return await self._find(stripe_transfer_id=stripe_transfer_id)

    async def list_by_payee(
        self,
        payee_id: str,
        statuses: Sequence[PaymentStatus] | None = None,
        limit: int | None = None,
    ) -> Sequence[PaymentLedgerRecord]:
        records = [
            r
            for r in self._by_booking.values()
            if r.payee_id == payee_id and (statuses is None or r.status in statuses)
        ]
        records.sort(key=lambda r: r.created_at or _EPOCH, reverse=True)
        if limit is not None:
            records = records[:limit]
        return [copy.deepcopy(r) for r in records]

    async def upsert(self, record: PaymentLedgerRecord) -> PaymentLedgerRecord:
        current = self._by_booking.get(record.booking_id)
        stored_version = current.version if current else 0
        if record.version != stored_version:
            raise StaleLedgerRecordError(record.booking_id, record.version)
        stored = copy.deepcopy(record)
        stored.version = stored_version + 1
        self._by_booking[record.booking_id] = stored
        return copy.deepcopy(stored)
