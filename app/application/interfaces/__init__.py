from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock, FakeClock
from app.application.interfaces.event_deduplicator import EventDeduplicator
from app.application.interfaces.payee_repo import PayeeRepo
from app.application.interfaces.payment_ledger_repo import PaymentLedgerRepo
from app.application.interfaces.platform_settings_repo import (
    PlatformSettingsRecord,
    PlatformSettingsRepo,
)
from app.application.interfaces.stripe_gateway import (
    ChargeSettlement,
    PaymentIntentResult,
    RefundResult,
    StripeGateway,
    TransferResult,
    TransferReversalResult,
)
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.vat_calculator import VatCalculation, VatCalculator

__all__ = [
    "BookingRepo",
    "Clock",
    "FakeClock",
    "EventDeduplicator",
    "PayeeRepo",
    "PaymentLedgerRepo",
    "PlatformSettingsRecord",
    "PlatformSettingsRepo",
    "ChargeSettlement",
    "PaymentIntentResult",
    "RefundResult",
    "StripeGateway",
    "TransferResult",
    "TransferReversalResult",
    "TransactionManager",
    "VatCalculation",
    "VatCalculator",
]
