"""
Capa de Infraestructura - Pagos en escrow.

Esta capa contiene las implementaciones concretas de los puertos (interfaces).
Incluye adaptadores para bases de datos, Stripe y servicios.

Estructura:
- db/: Tablas SQLAlchemy Core, repositorios SQL y transacciones
- gateways/: Adaptador real de Stripe
- in_memory/: Implementaciones in-memory (backend por defecto y pruebas)
- services/: Servicios de infraestructura (Clock, IVA)
- circuit_breaker.py: Circuit breaker para llamadas a Stripe
"""

# Database
from app.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from app.infrastructure.db.repositories.payee_repo_sql import PayeeRepoSQL
from app.infrastructure.db.repositories.payment_ledger_repo_sql import PaymentLedgerRepoSQL
from app.infrastructure.db.repositories.platform_settings_repo_sql import PlatformSettingsRepoSQL
from app.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager

# Gateways
from app.infrastructure.gateways.stripe_gateway_real import StripeGatewayReal

# In-Memory
from app.infrastructure.in_memory import (
    InMemoryBookingRepo,
    InMemoryEventDeduplicator,
    InMemoryPayeeRepo,
    InMemoryPaymentLedgerRepo,
    InMemoryPlatformSettingsRepo,
    InMemoryStripeGateway,
    InMemoryTransactionManager,
)

# Services
from app.infrastructure.services.clock_impl import ClockImpl
from app.infrastructure.services.vat_calculator import EuVatCalculator, ZeroVatCalculator

__all__ = [
    # Database - Repositories SQL
    "BookingRepoSQL",
    "PayeeRepoSQL",
    "PaymentLedgerRepoSQL",
    "PlatformSettingsRepoSQL",
    "SQLAlchemyTransactionManager",
    # Gateways
    "StripeGatewayReal",
    # In-Memory
    "InMemoryBookingRepo",
    "InMemoryEventDeduplicator",
    "InMemoryPayeeRepo",
    "InMemoryPaymentLedgerRepo",
    "InMemoryPlatformSettingsRepo",
    "InMemoryStripeGateway",
    "InMemoryTransactionManager",
    # Services
    "ClockImpl",
    "EuVatCalculator",
    "ZeroVatCalculator",
]
