from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.domain.constants import DEFAULT_CURRENCY
from app.domain.entities.payment import PaymentStatus

DEFAULT_TRANSACTIONS_LIMIT = 10
MAX_TRANSACTIONS_LIMIT = 50


@dataclass(frozen=True)
class PayeePaymentStats:
    total_earnings: Decimal
    pending_earnings: Decimal
    completed_bookings: int
    currency: str


@dataclass(frozen=True)
class PayeeTransaction:
    booking_id: str
    booking_number: str
    date: datetime | None
    status: str
    currency: str
    amount: Decimal


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_TRANSACTIONS_LIMIT
    return min(max(limit, 1), MAX_TRANSACTIONS_LIMIT)


class GetPayeePaymentStatsUseCase:
    def __init__(self, ledger_repo: PaymentLedgerRepo) -> None:
        self._ledger_repo = ledger_repo

    async def execute(self, payee_id: str) -> PayeePaymentStats:
        records = await self._ledger_repo.list_by_payee(
            payee_id,
            statuses=[PaymentStatus.COMPLETED, PaymentStatus.AUTHORIZED],
        )
        completed = [r for r in records if r.status == PaymentStatus.COMPLETED]
        authorized = [r for r in records if r.status == PaymentStatus.AUTHORIZED]
        return PayeePaymentStats(
            total_earnings=sum((r.payout_amount for r in completed), Decimal("0")),
            pending_earnings=sum((r.payout_amount for r in authorized), Decimal("0")),
            completed_bookings=len(completed),
            currency=completed[0].currency if completed else DEFAULT_CURRENCY,
        )


class ListPayeeTransactionsUseCase:
    def __init__(self, ledger_repo: PaymentLedgerRepo) -> None:
        self._ledger_repo = ledger_repo

    async def execute(self, payee_id: str, limit: int | None = None) -> list[PayeeTransaction]:
        records = await self._ledger_repo.list_by_payee(payee_id, limit=clamp_limit(limit))
        return [
            PayeeTransaction(
                booking_id=r.booking_id,
                booking_number=r.booking_number or "N/A",
                date=r.transferred_at or r.captured_at or r.created_at,
                status=r.status.value,
                currency=r.currency,
                amount=r.payout_amount,
            )
            for r in records
        ]
