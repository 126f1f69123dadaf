from functools import lru_cache
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import AsyncSessionLocal
from app.application.interfaces.vat_calculator import VatCalculator
from app.application.payment_ledger import PaymentLedgerWriter
from app.application.use_cases.capture_and_transfer import CaptureAndTransferUseCase
from app.application.use_cases.confirm_payment import ConfirmPaymentUseCase
from app.application.use_cases.create_payment_intent import CreatePaymentIntentUseCase
from app.application.use_cases.get_booking_payment import GetBookingPaymentUseCase
from app.application.use_cases.get_payee_earnings import (
    GetPayeePaymentStatsUseCase,
    ListPayeeTransactionsUseCase,
)
from app.application.use_cases.handle_stripe_webhook import HandleStripeWebhookUseCase
from app.application.use_cases.platform_settings import (
    GetPlatformSettingsUseCase,
    UpdatePlatformSettingsUseCase,
)
from app.application.use_cases.refund_payment import RefundPaymentUseCase
from app.application.use_cases.stripe_event_handlers import StripeEventHandlers
from app.config import Settings, get_settings
from app.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from app.infrastructure.db.repositories.payee_repo_sql import PayeeRepoSQL
from app.infrastructure.db.repositories.payment_ledger_repo_sql import PaymentLedgerRepoSQL
from app.infrastructure.db.repositories.platform_settings_repo_sql import PlatformSettingsRepoSQL
from app.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from app.infrastructure.gateways.stripe_gateway_real import StripeGatewayReal
from app.infrastructure.in_memory.booking_repo import InMemoryBookingRepo
from app.infrastructure.in_memory.event_deduplicator import InMemoryEventDeduplicator
from app.infrastructure.in_memory.payee_repo import InMemoryPayeeRepo
from app.infrastructure.in_memory.payment_ledger_repo import InMemoryPaymentLedgerRepo
from app.infrastructure.in_memory.platform_settings_repo import InMemoryPlatformSettingsRepo
from app.infrastructure.in_memory.stripe_gateway import StubStripeGateway
from app.infrastructure.in_memory.transaction_manager import NoopTransactionManager
from app.infrastructure.services.clock_impl import ClockImpl
from app.infrastructure.services.vat_calculator import EuVatCalculator, ZeroVatCalculator


async def get_session(settings: Settings = Depends(get_settings)) -> AsyncGenerator[AsyncSession | None, None]:
    if settings.use_in_memory:
        yield None
        return
    async with AsyncSessionLocal() as session:
        yield session


@lru_cache(maxsize=1)
def _in_memory_bundle():
    settings = get_settings()
    return {
        "booking_repo": InMemoryBookingRepo(),
        "ledger_repo": InMemoryPaymentLedgerRepo(),
        "payee_repo": InMemoryPayeeRepo(),
        "settings_repo": InMemoryPlatformSettingsRepo(),
        "stripe_gateway": StubStripeGateway(webhook_tolerance=settings.stripe_webhook_tolerance_seconds),
        "deduplicator": InMemoryEventDeduplicator(capacity=settings.webhook_dedup_capacity),
        "tx_manager": NoopTransactionManager(),
    }


@lru_cache(maxsize=1)
def _process_deduplicator(capacity: int) -> InMemoryEventDeduplicator:
    # Shared across requests in SQL mode; handlers stay status-guarded regardless
    return InMemoryEventDeduplicator(capacity=capacity)


def _vat_calculator(settings: Settings) -> VatCalculator:
    return EuVatCalculator() if settings.vat_enabled else ZeroVatCalculator()


def build_use_cases(
    settings: Settings,
    booking_repo,
    ledger_repo,
    payee_repo,
    settings_repo,
    stripe_gateway,
    deduplicator,
    tx_manager,
    clock=None,
) -> dict:
    clock = clock or ClockImpl()
    ledger_writer = PaymentLedgerWriter(
        ledger_repo=ledger_repo,
        booking_repo=booking_repo,
        transaction_manager=tx_manager,
        clock=clock,
    )
    get_platform_settings = GetPlatformSettingsUseCase(
        settings_repo=settings_repo,
        transaction_manager=tx_manager,
        clock=clock,
        default_commission_percent=settings.platform_commission_percent,
    )
    event_handlers = StripeEventHandlers(
        ledger_repo=ledger_repo,
        payee_repo=payee_repo,
        ledger_writer=ledger_writer,
        transaction_manager=tx_manager,
        clock=clock,
    )
    return {
        "create_payment_intent": CreatePaymentIntentUseCase(
            booking_repo=booking_repo,
            ledger_repo=ledger_repo,
            payee_repo=payee_repo,
            stripe_gateway=stripe_gateway,
            vat_calculator=_vat_calculator(settings),
            platform_settings=get_platform_settings,
            ledger_writer=ledger_writer,
            clock=clock,
            environment=settings.stripe_environment,
        ),
        "confirm_payment": ConfirmPaymentUseCase(
            booking_repo=booking_repo,
            ledger_repo=ledger_repo,
            stripe_gateway=stripe_gateway,
            ledger_writer=ledger_writer,
            clock=clock,
        ),
        "capture_payment": CaptureAndTransferUseCase(
            booking_repo=booking_repo,
            ledger_repo=ledger_repo,
            payee_repo=payee_repo,
            stripe_gateway=stripe_gateway,
            ledger_writer=ledger_writer,
            clock=clock,
        ),
        "refund_payment": RefundPaymentUseCase(
            booking_repo=booking_repo,
            ledger_repo=ledger_repo,
            stripe_gateway=stripe_gateway,
            ledger_writer=ledger_writer,
            clock=clock,
        ),
        "get_booking_payment": GetBookingPaymentUseCase(booking_repo=booking_repo, ledger_repo=ledger_repo),
        "handle_webhook": HandleStripeWebhookUseCase(
            stripe_gateway=stripe_gateway,
            event_handlers=event_handlers,
            deduplicator=deduplicator,
            stripe_webhook_secret=settings.stripe_webhook_secret,
        ),
        "payee_stats": GetPayeePaymentStatsUseCase(ledger_repo=ledger_repo),
        "payee_transactions": ListPayeeTransactionsUseCase(ledger_repo=ledger_repo),
        "get_platform_settings": get_platform_settings,
        "update_platform_settings": UpdatePlatformSettingsUseCase(
            settings_repo=settings_repo,
            get_settings=get_platform_settings,
            transaction_manager=tx_manager,
            clock=clock,
        ),
    }


def get_use_cases(
    settings: Settings = Depends(get_settings),
    session: AsyncSession | None = Depends(get_session),
):
    if settings.use_in_memory:
        bundle = _in_memory_bundle()
        return build_use_cases(
            settings,
            booking_repo=bundle["booking_repo"],
            ledger_repo=bundle["ledger_repo"],
            payee_repo=bundle["payee_repo"],
            settings_repo=bundle["settings_repo"],
            stripe_gateway=bundle["stripe_gateway"],
            deduplicator=bundle["deduplicator"],
            tx_manager=bundle["tx_manager"],
        )

    if not session:
        raise RuntimeError("DB session not available")

    return build_use_cases(
        settings,
        booking_repo=BookingRepoSQL(session),
        ledger_repo=PaymentLedgerRepoSQL(session),
        payee_repo=PayeeRepoSQL(session),
        settings_repo=PlatformSettingsRepoSQL(session),
        stripe_gateway=StripeGatewayReal(api_key=settings.stripe_api_key),
        deduplicator=_process_deduplicator(settings.webhook_dedup_capacity),
        tx_manager=SQLAlchemyTransactionManager(session),
    )
