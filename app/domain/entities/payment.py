"""Entidad PaymentLedgerRecord - registro de pago por reserva (ledger)."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from app.domain.errors import InvalidStatusError
from app.domain.value_objects.money import round_to_currency


class PaymentStatus(str, Enum):
    """Estados posibles de un pago en escrow."""

    PENDING = "pending"
    AUTHORIZED = "authorized"
    COMPLETED = "completed"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"
    FAILED = "failed"


class RefundSource(str, Enum):
    """Quién financia un reembolso."""

    PLATFORM = "platform"
    PROVIDER = "provider"


# Transiciones permitidas (origen -> destinos)
_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.AUTHORIZED, PaymentStatus.FAILED}),
    PaymentStatus.AUTHORIZED: frozenset(
        {PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.REFUNDED}
    ),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED}),
    PaymentStatus.PARTIALLY_REFUNDED: frozenset(
        {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED}
    ),
    PaymentStatus.REFUNDED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
}

# Estados desde los que se puede iniciar una nueva autorización
RESTARTABLE_STATUSES = frozenset({PaymentStatus.FAILED, PaymentStatus.REFUNDED})

CAPTURED_STATUSES = frozenset({PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED})

_STATUS_BEFORE_DISPUTE = "statusBeforeDispute"


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in _TRANSITIONS[current]


@dataclass
class RefundEntry:
    amount: Decimal
    reason: str | None
    refunded_at: datetime
    source: RefundSource = RefundSource.PLATFORM
    refund_id: str | None = None
    notes: str | None = None


@dataclass
class TransferFailure:
    """Anotación para recuperación manual cuando la transferencia falla tras la captura."""

    error: str
    attempted_currency: str
    attempted_amount: int
    booking_currency: str
    recorded_at: datetime


@dataclass
class PaymentLedgerRecord:
    """
    Registro desnormalizado del pago de una reserva.

    Es la única fuente escribible del estado de pago; el resumen embebido en la
    reserva se proyecta desde aquí.
    """

    booking_id: str
    currency: str
    amount: Decimal
    status: PaymentStatus = PaymentStatus.PENDING
    booking_number: str | None = None
    customer_id: str | None = None
    payee_id: str | None = None
    method: str = "card"

    # Desglose
    net_amount: Decimal | None = None
    vat_amount: Decimal | None = None
    vat_rate: Decimal | None = None
    total_with_vat: Decimal | None = None
    platform_commission: Decimal | None = None
    professional_payout: Decimal | None = None

    # Identificadores de Stripe
    stripe_payment_intent_id: str | None = None
    stripe_client_secret: str | None = None
    stripe_charge_id: str | None = None
    stripe_transfer_id: str | None = None
    stripe_destination_payment: str | None = None
    transfer_amount_minor: int | None = None
    transfer_currency: str | None = None

    # Timestamps
    authorized_at: datetime | None = None
    captured_at: datetime | None = None
    transferred_at: datetime | None = None
    refunded_at: datetime | None = None
    canceled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Anotaciones
    refund_notes: str | None = None
    dispute_id: str | None = None
    dispute_status: str | None = None
    transfer_failure: TransferFailure | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    refunds: list[RefundEntry] = field(default_factory=list)

    # Versión optimista: 0 mientras el registro no se ha persistido
    version: int = 0

    # === Propiedades ===

    @property
    def total(self) -> Decimal:
        """Total cobrado al cliente (con IVA)."""
        if self.total_with_vat is not None:
            return self.total_with_vat
        return self.amount

    @property
    def payout_amount(self) -> Decimal:
        """Monto del profesional: payout, luego total con IVA, luego monto base."""
        for candidate in (self.professional_payout, self.total_with_vat, self.amount):
            if candidate is not None:
                return candidate
        return Decimal("0")

    @property
    def refunded_total(self) -> Decimal:
        return sum((entry.amount for entry in self.refunds), Decimal("0"))

    @property
    def remaining_refundable(self) -> Decimal:
        return max(self.total - self.refunded_total, Decimal("0"))

    @property
    def is_captured(self) -> bool:
        return self.status in CAPTURED_STATUSES

    @property
    def allows_new_authorization(self) -> bool:
        return self.status in RESTARTABLE_STATUSES

    # === Métodos de negocio ===

    def copy(self) -> "PaymentLedgerRecord":
        return replace(
            self,
            metadata=dict(self.metadata),
            refunds=list(self.refunds),
        )

    def transition_to(self, target: PaymentStatus, operation: str) -> None:
        """Avanza el estado respetando la máquina de estados."""
        if not can_transition(self.status, target):
            raise InvalidStatusError(
                current_status=self.status.value,
                expected_status=[s.value for s, targets in _TRANSITIONS.items() if target in targets],
                operation=operation,
            )
        self.status = target

    def force_refunded_for_dispute(self, dispute_id: str, dispute_status: str | None) -> None:
        """Una disputa retira los fondos sin importar el estado interno."""
        self.metadata[_STATUS_BEFORE_DISPUTE] = self.status.value
        self.status = PaymentStatus.REFUNDED
        self.dispute_id = dispute_id
        self.dispute_status = dispute_status

    def restore_after_dispute(self, dispute_id: str) -> None:
        if self.dispute_id != dispute_id or self.status != PaymentStatus.REFUNDED:
            raise InvalidStatusError(
                current_status=self.status.value,
                expected_status=PaymentStatus.REFUNDED.value,
                operation=f"restore payment after dispute {dispute_id}",
            )
        # Un pago ya reembolsado antes de la disputa sigue reembolsado
        previous = self.metadata.pop(_STATUS_BEFORE_DISPUTE, None)
        if previous == PaymentStatus.REFUNDED.value:
            self.status = PaymentStatus.REFUNDED
        else:
            self.status = PaymentStatus.COMPLETED
        self.dispute_status = "won"
        # Los fondos vuelven: la entrada de la disputa deja de contar como reembolso
        self.refunds = [entry for entry in self.refunds if entry.refund_id != dispute_id]

    def add_refund(self, entry: RefundEntry) -> None:
        self.refunds.append(entry)

    def has_refund(self, refund_id: str) -> bool:
        return any(entry.refund_id == refund_id for entry in self.refunds)

    def status_after_refund(self) -> PaymentStatus:
        """Estado tras acumular reembolsos: total o parcial."""
        refunded = round_to_currency(self.refunded_total, self.currency)
        if refunded >= round_to_currency(self.total, self.currency):
            return PaymentStatus.REFUNDED
        return PaymentStatus.PARTIALLY_REFUNDED

    @classmethod
    def new_pending(
        cls,
        booking_id: str,
        currency: str,
        net_amount: Decimal,
        **fields: Any,
    ) -> "PaymentLedgerRecord":
        """Factory para un registro pendiente de autorización."""
        return cls(
            booking_id=booking_id,
            currency=currency,
            amount=net_amount,
            net_amount=net_amount,
            status=PaymentStatus.PENDING,
            **fields,
        )
