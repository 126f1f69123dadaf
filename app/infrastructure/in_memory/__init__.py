"""Implementaciones in-memory para testing."""

from app.infrastructure.in_memory.booking_repo import InMemoryBookingRepo
from app.infrastructure.in_memory.event_deduplicator import InMemoryEventDeduplicator
from app.infrastructure.in_memory.payee_repo import InMemoryPayeeRepo
from app.infrastructure.in_memory.payment_ledger_repo import InMemoryPaymentLedgerRepo
from app.infrastructure.in_memory.platform_settings_repo import InMemoryPlatformSettingsRepo
from app.infrastructure.in_memory.stripe_gateway import StubStripeGateway as InMemoryStripeGateway
from app.infrastructure.in_memory.transaction_manager import NoopTransactionManager as InMemoryTransactionManager

__all__ = [
    # Repositories
    "InMemoryBookingRepo",
    "InMemoryPaymentLedgerRepo",
    "InMemoryPayeeRepo",
    "InMemoryPlatformSettingsRepo",
    # Gateways
    "InMemoryStripeGateway",
    # Infrastructure
    "InMemoryEventDeduplicator",
    "InMemoryTransactionManager",
]
