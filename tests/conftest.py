"""
Pytest configuration and shared fixtures.

Este módulo provee fixtures reutilizables para:
- Repositorios in-memory, gateway de Stripe simulado y reloj fijo
- Casos de uso cableados igual que en producción (build_use_cases)
- Cliente HTTP de prueba (FastAPI TestClient)
- Base de datos SQLite in-memory para los repositorios SQL
- Firma de webhooks de Stripe
"""

import hashlib
import hmac
import json
import time
from decimal import Decimal
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.dependencies import _in_memory_bundle, build_use_cases
from app.application.interfaces.clock import FakeClock
from app.config import Settings, get_settings
from app.domain.entities.booking import Booking, ProjectRef, Quote
from app.domain.entities.payee import ConnectedAccount, Payee
from app.infrastructure.circuit_breaker import stripe_breaker
from app.infrastructure.db.engine import build_sessionmaker, create_schema
from app.infrastructure.in_memory import (
    InMemoryBookingRepo,
    InMemoryEventDeduplicator,
    InMemoryPayeeRepo,
    InMemoryPaymentLedgerRepo,
    InMemoryPlatformSettingsRepo,
    InMemoryStripeGateway,
    InMemoryTransactionManager,
)
from app.main import app

WEBHOOK_SECRET = "whsec_test_secret"
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

CUSTOMER_ID = "customer-1"
PAYEE_ID = "payee-1"
PAYEE_ACCOUNT_ID = "acct_payee_1"
ADMIN_ID = "admin-1"


# ============================================================================
# HELPERS
# ============================================================================


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Construye un header Stripe-Signature válido (t=...,v1=HMAC-SHA256)."""
    timestamp = timestamp if timestamp is not None else int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(event_id: str, event_type: str, data_object: dict, **extra) -> str:
    """Serializa un sobre de evento de Stripe."""
    envelope = {"id": event_id, "object": "event", "type": event_type, "data": {"object": data_object}}
    envelope.update(extra)
    return json.dumps(envelope)


def make_booking(
    booking_id: str = "booking-1",
    amount: str = "120.00",
    currency: str | None = "EUR",
    customer_country: str = "US",
    payee_id: str | None = PAYEE_ID,
    project_payee_id: str | None = None,
    status: str = "quote_accepted",
) -> Booking:
    project = None
    if project_payee_id:
        project = ProjectRef(project_id="project-1", title="Kitchen renovation", payee_id=project_payee_id)
    return Booking(
        id=booking_id,
        customer_id=CUSTOMER_ID,
        status=status,
        booking_number=f"BK-{booking_id}",
        payee_id=payee_id,
        project=project,
        quote=Quote(amount=Decimal(amount), currency=currency),
        customer_country=customer_country,
    )


def make_payee(
    payee_id: str = PAYEE_ID,
    account_id: str | None = PAYEE_ACCOUNT_ID,
    charges_enabled: bool = True,
    country: str = "BE",
) -> Payee:
    return Payee(
        id=payee_id,
        preferred_currency="EUR",
        business_country=country,
        stripe=ConnectedAccount(
            account_id=account_id,
            onboarding_completed=charges_enabled,
            charges_enabled=charges_enabled,
            payouts_enabled=charges_enabled,
            details_submitted=charges_enabled,
            account_status="active" if charges_enabled else "pending",
        ),
    )


class PaymentWorld:
    """Backends in-memory más los casos de uso construidos sobre ellos."""

    def __init__(self, settings: Settings, clock: FakeClock):
        self.settings = settings
        self.clock = clock
        self.booking_repo = InMemoryBookingRepo()
        self.ledger_repo = InMemoryPaymentLedgerRepo()
        self.payee_repo = InMemoryPayeeRepo()
        self.settings_repo = InMemoryPlatformSettingsRepo()
        self.stripe = InMemoryStripeGateway()
        self.deduplicator = InMemoryEventDeduplicator(capacity=100)
        self.tx_manager = InMemoryTransactionManager()
        self.use_cases = build_use_cases(
            settings,
            booking_repo=self.booking_repo,
            ledger_repo=self.ledger_repo,
            payee_repo=self.payee_repo,
            settings_repo=self.settings_repo,
            stripe_gateway=self.stripe,
            deduplicator=self.deduplicator,
            tx_manager=self.tx_manager,
            clock=clock,
        )

    async def seed(self, booking: Booking | None = None, payee: Payee | None = None) -> Booking:
        booking = booking or make_booking()
        await self.booking_repo.save(booking)
        await self.payee_repo.save(payee or make_payee())
        return booking

    async def authorized_payment(self, booking: Booking | None = None):
        """Reserva con intent creado y autorizado por el cliente."""
        booking = await self.seed(booking)
        outcome = await self.use_cases["create_payment_intent"].execute(booking.id, CUSTOMER_ID)
        self.stripe.authorize(outcome.payment_intent_id)
        await self.use_cases["confirm_payment"].execute(booking.id, outcome.payment_intent_id, CUSTOMER_ID)
        return outcome

    async def completed_payment(self, booking: Booking | None = None):
        """Reserva capturada y con payout transferido."""
        outcome = await self.authorized_payment(booking)
        await self.use_cases["capture_payment"].execute(outcome.booking_id)
        return outcome


# ============================================================================
# FIXTURES DE CASOS DE USO
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        use_in_memory=True,
        stripe_webhook_secret=WEBHOOK_SECRET,
        platform_commission_percent=15.0,
        vat_enabled=True,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def world(settings: Settings, clock: FakeClock) -> PaymentWorld:
    return PaymentWorld(settings, clock)


# ============================================================================
# FIXTURES DE CLIENTE HTTP
# ============================================================================


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    """
    FastAPI TestClient sobre el backend in-memory.
    Cada test arranca con stores vacíos.
    """
    _in_memory_bundle.cache_clear()
    app.dependency_overrides[get_settings] = lambda: settings

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    _in_memory_bundle.cache_clear()


@pytest.fixture
def bundle(client: TestClient) -> dict:
    """Stores in-memory que usa la app bajo prueba."""
    return _in_memory_bundle()


# ============================================================================
# FIXTURES DE BASE DE DATOS
# ============================================================================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Sesión sobre SQLite in-memory con el esquema creado."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    await create_schema(engine)
    session_factory = build_sessionmaker(engine)

    async with session_factory() as session:
        yield session

    await engine.dispose()


# ============================================================================
# HOOKS DE PYTEST
# ============================================================================


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """
    Reset circuit breakers antes de cada test.
    Evita que tests fallen por breakers abiertos de tests anteriores.
    """
    stripe_breaker.close()
    yield
    stripe_breaker.close()
