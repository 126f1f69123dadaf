"""Escritor del ledger: guarda de versión y re-aplicación tras conflicto."""

from decimal import Decimal

import pytest

from app.application.payment_ledger import LedgerUpdate, PaymentLedgerWriter
from app.domain.entities.payment import PaymentLedgerRecord, PaymentStatus
from app.domain.errors import NoPaymentError, StaleLedgerRecordError
from app.infrastructure.in_memory import InMemoryPaymentLedgerRepo


def _record(booking_id: str = "booking-1") -> PaymentLedgerRecord:
    return PaymentLedgerRecord(
        booking_id=booking_id,
        currency="EUR",
        amount=Decimal("100.00"),
        status=PaymentStatus.COMPLETED,
        stripe_payment_intent_id="pi_1",
    )


def _writer(world) -> PaymentLedgerWriter:
    return PaymentLedgerWriter(world.ledger_repo, world.booking_repo, world.tx_manager, world.clock)


class TestInMemoryVersionGuard:
    @pytest.mark.asyncio
    async def test_each_upsert_bumps_version(self):
        repo = InMemoryPaymentLedgerRepo()

        first = await repo.upsert(_record())
        second = await repo.upsert(first)

        assert first.version == 1
        assert second.version == 2

    @pytest.mark.asyncio
    async def test_write_from_stale_read_is_rejected(self):
        repo = InMemoryPaymentLedgerRepo()
        stored = await repo.upsert(_record())
        await repo.upsert(stored.copy())

        stale = stored.copy()
        stale.status = PaymentStatus.REFUNDED
        with pytest.raises(StaleLedgerRecordError) as exc_info:
            await repo.upsert(stale)

        assert exc_info.value.http_status == 409
        assert (await repo.get_by_booking("booking-1")).status == PaymentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_new_record_over_existing_one_is_rejected(self):
        repo = InMemoryPaymentLedgerRepo()
        await repo.upsert(_record())

        with pytest.raises(StaleLedgerRecordError):
            await repo.upsert(_record())


class TestApply:
    @pytest.mark.asyncio
    async def test_mutation_is_reapplied_on_latest_state(self, world, monkeypatch):
        await world.seed()
        await world.ledger_repo.upsert(_record())
        writer = _writer(world)
        original_upsert = world.ledger_repo.upsert
        raced = []

        async def upsert_after_concurrent_write(record):
            if not raced:
                raced.append(True)
                concurrent = await world.ledger_repo.get_by_booking(record.booking_id)
                concurrent.dispute_id = "dp_1"
                await original_upsert(concurrent)
            return await original_upsert(record)

        monkeypatch.setattr(world.ledger_repo, "upsert", upsert_after_concurrent_write)
        seen = []

        def add_note(current: PaymentLedgerRecord) -> LedgerUpdate:
            seen.append(current.dispute_id)
            current.refund_notes = "reviewed"
            return LedgerUpdate(current)

        saved = await writer.apply("booking-1", add_note)

        assert seen == [None, "dp_1"]
        assert saved.dispute_id == "dp_1"
        assert saved.refund_notes == "reviewed"
        assert saved.version == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_repeated_conflicts(self, world, monkeypatch):
        await world.seed()
        await world.ledger_repo.upsert(_record())
        writer = _writer(world)

        async def always_stale(record):
            raise StaleLedgerRecordError(record.booking_id, record.version)

        monkeypatch.setattr(world.ledger_repo, "upsert", always_stale)

        with pytest.raises(StaleLedgerRecordError):
            await writer.apply("booking-1", lambda current: LedgerUpdate(current), attempts=2)

    @pytest.mark.asyncio
    async def test_no_update_leaves_record_untouched(self, world):
        await world.ledger_repo.upsert(_record())

        saved = await _writer(world).apply("booking-1", lambda current: None)

        assert saved.version == 1

    @pytest.mark.asyncio
    async def test_missing_record(self, world):
        with pytest.raises(NoPaymentError):
            await _writer(world).apply("booking-x", lambda current: LedgerUpdate(current))
