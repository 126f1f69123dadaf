from typing import Sequence

from app.domain.entities.payment import PaymentLedgerRecord, PaymentStatus


class PaymentLedgerRepo:
    async def get_by_booking(self, booking_id: str) -> PaymentLedgerRecord | None:
        raise NotImplementedError

    async def find_by_payment_intent(self, stripe_payment_intent_id: str) -> PaymentLedgerRecord | None:
        raise NotImplementedError

    async def find_by_charge(self, stripe_charge_id: str) -> PaymentLedgerRecord | None:
        raise NotImplementedError

    async def find_by_transfer(self, stripe_transfer_id: str) -> PaymentLedgerRecord | None:
        raise NotImplementedError

    async def list_by_payee(
        self,
        payee_id: str,
        statuses: Sequence[PaymentStatus] | None = None,
        limit: int | None = None,
    ) -> Sequence[PaymentLedgerRecord]:
        """Most recent first."""
        raise NotImplementedError

    async def upsert(self, record: PaymentLedgerRecord) -> PaymentLedgerRecord:
        """
        Insert (version 0) or replace the single record of record.booking_id.

        The replace only applies while the stored version still equals
        record.version; the stored version is then incremented.

        Raises:
            StaleLedgerRecordError: the stored record changed since it was read
        """
        raise NotImplementedError
