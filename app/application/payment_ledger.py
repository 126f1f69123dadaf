import logging
from dataclasses import dataclass
from typing import Callable

from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.domain.entities.booking import PaymentSummary
from app.domain.entities.payment import PaymentLedgerRecord
from app.domain.errors import NoPaymentError, StaleLedgerRecordError

DEFAULT_APPLY_ATTEMPTS = 3


@dataclass
class LedgerUpdate:
    record: PaymentLedgerRecord
    booking_status: str | None = None


# Receives a fresh copy of the stored record; None means there is nothing to write
LedgerMutation = Callable[[PaymentLedgerRecord], LedgerUpdate | None]


class PaymentLedgerWriter:
    """
    The only component that persists payment state.

    A commit upserts the ledger record and then refreshes the booking's embedded
    payment summary as a projection of it, inside one transaction. The upsert is
    guarded by the record version, so a write based on a stale read fails with
    StaleLedgerRecordError instead of overwriting a concurrent change.
    """

    def __init__(
        self,
        ledger_repo: PaymentLedgerRepo,
        booking_repo: BookingRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._ledger_repo = ledger_repo
        self._booking_repo = booking_repo
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def commit(
        self,
        record: PaymentLedgerRecord,
        booking_status: str | None = None,
    ) -> PaymentLedgerRecord:
        now = self._clock.now()
        if record.created_at is None:
            record.created_at = now
        record.updated_at = now

        async with self._transaction_manager.start():
            saved = await self._ledger_repo.upsert(record)
            await self._booking_repo.update_payment_projection(
                booking_id=saved.booking_id,
                summary=PaymentSummary.project(saved),
                status=booking_status,
            )

        self._logger.debug(
            "Payment ledger committed",
            extra={
                "booking_id": saved.booking_id,
                "payment_status": saved.status.value,
                "booking_status": booking_status,
                "version": saved.version,
            },
        )
        return saved

    async def apply(
        self,
        booking_id: str,
        mutation: LedgerMutation,
        attempts: int = DEFAULT_APPLY_ATTEMPTS,
    ) -> PaymentLedgerRecord:
        """
        Re-read the record, apply the mutation and commit it.

        Coordinators use this after a processor call: the record read before
        the call may have been changed by a webhook in the meantime, so the
        mutation is re-applied to the latest state on every version conflict.

        Raises:
            StaleLedgerRecordError: the record kept changing for every attempt
        """
        for attempt in range(1, attempts + 1):
            current = await self._ledger_repo.get_by_booking(booking_id)
            if current is None:
                raise NoPaymentError(booking_id, "update")
            update = mutation(current.copy())
            if update is None:
                return current
            try:
                return await self.commit(update.record, booking_status=update.booking_status)
            except StaleLedgerRecordError:
                if attempt == attempts:
                    raise
                self._logger.warning(
                    "Payment ledger changed concurrently, re-applying update",
                    extra={"booking_id": booking_id, "attempt": attempt, "version": current.version},
                )
        raise StaleLedgerRecordError(booking_id, -1)
