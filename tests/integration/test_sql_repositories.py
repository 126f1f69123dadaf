"""
Integration tests for the SQLAlchemy Core repositories.

Corre el ciclo de pago completo sobre SQLite in-memory (aiosqlite) para
verificar mapeo de columnas, proyección en la reserva y transacciones.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import build_use_cases
from app.application.interfaces.clock import FakeClock
from app.application.interfaces.platform_settings_repo import PlatformSettingsRecord
from app.domain.entities.payment import (
    PaymentLedgerRecord,
    PaymentStatus,
    RefundEntry,
    RefundSource,
    TransferFailure,
)
from app.domain.errors import StaleLedgerRecordError
from app.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from app.infrastructure.db.repositories.payee_repo_sql import PayeeRepoSQL
from app.infrastructure.db.repositories.payment_ledger_repo_sql import PaymentLedgerRepoSQL
from app.infrastructure.db.repositories.platform_settings_repo_sql import PlatformSettingsRepoSQL
from app.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from app.infrastructure.in_memory import InMemoryEventDeduplicator, InMemoryStripeGateway
from tests.conftest import CUSTOMER_ID, PAYEE_ACCOUNT_ID, PAYEE_ID, make_booking, make_payee

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class TestBookingRepoSQL:
    @pytest.mark.asyncio
    async def test_save_and_load_booking(self, db_session: AsyncSession):
        repo = BookingRepoSQL(db_session)
        booking = make_booking(payee_id=None, project_payee_id=PAYEE_ID)

        await repo.save(booking)
        loaded = await repo.get_by_id(booking.id)

        assert loaded.quote.amount == Decimal("120.00")
        assert loaded.project.payee_id == PAYEE_ID
        assert loaded.customer_country == "US"
        assert loaded.payment is None
        assert await repo.get_by_id("missing") is None


class TestPayeeRepoSQL:
    @pytest.mark.asyncio
    async def test_find_by_account_and_update(self, db_session: AsyncSession):
        repo = PayeeRepoSQL(db_session)
        await repo.save(make_payee())

        payee = await repo.find_by_account_id(PAYEE_ACCOUNT_ID)
        payee.stripe.restrict()
        await repo.save(payee)

        loaded = await repo.get_by_id(PAYEE_ID)
        assert loaded.stripe.account_status == "restricted"
        assert loaded.stripe.charges_enabled is False


class TestPlatformSettingsRepoSQL:
    @pytest.mark.asyncio
    async def test_single_row_is_overwritten(self, db_session: AsyncSession):
        repo = PlatformSettingsRepoSQL(db_session)
        assert await repo.get() is None

        await repo.save(PlatformSettingsRecord(commission_percent=Decimal("15"), last_modified=NOW))
        await repo.save(
            PlatformSettingsRecord(
                commission_percent=Decimal("12.5"), last_modified=NOW, version=2, last_modified_by="admin-1"
            )
        )

        settings = await repo.get()
        assert settings.commission_percent == Decimal("12.5")
        assert settings.version == 2
        assert settings.last_modified == NOW


class TestPaymentLedgerRepoSQL:
    def _record(self, booking_id: str = "booking-1", created_at: datetime = NOW) -> PaymentLedgerRecord:
        return PaymentLedgerRecord(
            booking_id=booking_id,
            currency="EUR",
            amount=Decimal("100.00"),
            total_with_vat=Decimal("121.00"),
            professional_payout=Decimal("102.85"),
            status=PaymentStatus.COMPLETED,
            payee_id=PAYEE_ID,
            stripe_payment_intent_id=f"pi_{booking_id}",
            stripe_charge_id=f"ch_{booking_id}",
            stripe_transfer_id=f"tr_{booking_id}",
            created_at=created_at,
            metadata={"environment": "test"},
        )

    @pytest.mark.asyncio
    async def test_upsert_round_trip_with_refunds_and_failure(self, db_session: AsyncSession):
        repo = PaymentLedgerRepoSQL(db_session)
        record = self._record()
        record.transfer_failure = TransferFailure(
            error="boom", attempted_currency="EUR", attempted_amount=10285, booking_currency="EUR", recorded_at=NOW
        )
        record.add_refund(
            RefundEntry(amount=Decimal("20.00"), reason="late", refunded_at=NOW, source=RefundSource.PROVIDER, refund_id="re_1")
        )
        record.add_refund(RefundEntry(amount=Decimal("10.00"), reason=None, refunded_at=NOW, refund_id="re_2"))

        saved = await repo.upsert(record)

        assert saved.total_with_vat == Decimal("121.00")
        assert saved.metadata == {"environment": "test"}
        assert saved.transfer_failure.attempted_amount == 10285
        assert [r.refund_id for r in saved.refunds] == ["re_1", "re_2"]
        assert saved.refunds[0].source == RefundSource.PROVIDER
        assert saved.created_at == NOW

    @pytest.mark.asyncio
    async def test_upsert_rewrites_refund_history(self, db_session: AsyncSession):
        repo = PaymentLedgerRepoSQL(db_session)
        record = self._record()
        record.add_refund(RefundEntry(amount=Decimal("121.00"), reason="Dispute: fraudulent", refunded_at=NOW, refund_id="dp_1"))
        stored = await repo.upsert(record)

        stored.refunds = []
        stored.status = PaymentStatus.COMPLETED
        saved = await repo.upsert(stored)

        assert saved.refunds == []
        assert saved.version == 2

    @pytest.mark.asyncio
    async def test_upsert_rejects_stale_version(self, db_session: AsyncSession):
        repo = PaymentLedgerRepoSQL(db_session)
        stored = await repo.upsert(self._record())
        await repo.upsert(stored.copy())

        stale = stored.copy()
        stale.status = PaymentStatus.REFUNDED
        with pytest.raises(StaleLedgerRecordError):
            await repo.upsert(stale)

        current = await repo.get_by_booking("booking-1")
        assert current.status == PaymentStatus.COMPLETED
        assert current.version == 2

    @pytest.mark.asyncio
    async def test_lookups_by_processor_ids(self, db_session: AsyncSession):
        repo = PaymentLedgerRepoSQL(db_session)
        await repo.upsert(self._record())

        assert (await repo.find_by_payment_intent("pi_booking-1")).booking_id == "booking-1"
        assert (await repo.find_by_charge("ch_booking-1")).booking_id == "booking-1"
        assert (await repo.find_by_transfer("tr_booking-1")).booking_id == "booking-1"
        assert await repo.find_by_charge("ch_unknown") is None

    @pytest.mark.asyncio
    async def test_list_by_payee_orders_and_filters(self, db_session: AsyncSession):
        repo = PaymentLedgerRepoSQL(db_session)
        older = self._record("b-old", NOW)
        newer = self._record("b-new", NOW.replace(hour=13))
        newer.status = PaymentStatus.AUTHORIZED
        await repo.upsert(older)
        await repo.upsert(newer)

        listed = await repo.list_by_payee(PAYEE_ID)
        completed = await repo.list_by_payee(PAYEE_ID, statuses=[PaymentStatus.COMPLETED])
        limited = await repo.list_by_payee(PAYEE_ID, limit=1)

        assert [r.booking_id for r in listed] == ["b-new", "b-old"]
        assert [r.booking_id for r in completed] == ["b-old"]
        assert [r.booking_id for r in limited] == ["b-new"]


class TestPaymentLifecycleOnSQL:
    @pytest.mark.asyncio
    async def test_intent_capture_refund_with_projection(self, db_session: AsyncSession, settings):
        clock = FakeClock()
        gateway = InMemoryStripeGateway()
        booking_repo = BookingRepoSQL(db_session)
        ledger_repo = PaymentLedgerRepoSQL(db_session)
        payee_repo = PayeeRepoSQL(db_session)
        use_cases = build_use_cases(
            settings,
            booking_repo=booking_repo,
            ledger_repo=ledger_repo,
            payee_repo=payee_repo,
            settings_repo=PlatformSettingsRepoSQL(db_session),
            stripe_gateway=gateway,
            deduplicator=InMemoryEventDeduplicator(),
            tx_manager=SQLAlchemyTransactionManager(db_session),
            clock=clock,
        )
        await booking_repo.save(make_booking())
        await payee_repo.save(make_payee())
        await db_session.commit()

        created = await use_cases["create_payment_intent"].execute("booking-1", CUSTOMER_ID)
        gateway.authorize(created.payment_intent_id)
        await use_cases["confirm_payment"].execute("booking-1", created.payment_intent_id, CUSTOMER_ID)
        captured = await use_cases["capture_payment"].execute("booking-1")
        refund = await use_cases["refund_payment"].execute("booking-1", CUSTOMER_ID, None, amount=Decimal("20.00"))

        assert captured.transfer_amount == 10200
        assert refund.status == "partially_refunded"
        record = await ledger_repo.get_by_booking("booking-1")
        assert record.status == PaymentStatus.PARTIALLY_REFUNDED
        assert record.refunded_total == Decimal("20.00")
        assert record.captured_at == clock.now()
        booking = await booking_repo.get_by_id("booking-1")
        assert booking.status == "refunded"
        assert booking.payment.status == "partially_refunded"
        assert booking.payment.professional_payout == Decimal("102.00")
        assert booking.payment.captured_at == clock.now()
        assert booking.lock_version == 5

    @pytest.mark.asyncio
    async def test_failed_unit_of_work_is_rolled_back(self, db_session: AsyncSession):
        repo = PayeeRepoSQL(db_session)
        tx = SQLAlchemyTransactionManager(db_session)

        with pytest.raises(RuntimeError):
            async with tx.start():
                await repo.save(make_payee())
                raise RuntimeError("boom")

        assert await repo.get_by_id(PAYEE_ID) is None
