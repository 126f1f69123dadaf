"""Entidad Booking - la reserva del marketplace vista desde el núcleo de pagos."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from app.domain.constants import (
    BOOKING_STATUS_QUOTE_ACCEPTED,
    DEFAULT_COUNTRY,
    DEFAULT_CUSTOMER_TYPE,
)
from app.domain.entities.payment import PaymentLedgerRecord


@dataclass
class Quote:
    amount: Decimal
    currency: str | None = None


@dataclass
class ProjectRef:
    """Proyecto al que pertenece la reserva (el profesional puede venir de aquí)."""

    project_id: str
    title: str | None = None
    payee_id: str | None = None


@dataclass
class PaymentSummary:
    """
    Resumen de pago embebido en la reserva.

    Es una proyección de solo lectura del PaymentLedgerRecord; sólo el
    escritor del ledger la actualiza.
    """

    status: str
    currency: str
    amount: Decimal
    method: str = "card"
    net_amount: Decimal | None = None
    vat_amount: Decimal | None = None
    vat_rate: Decimal | None = None
    total_with_vat: Decimal | None = None
    platform_commission: Decimal | None = None
    professional_payout: Decimal | None = None
    stripe_payment_intent_id: str | None = None
    stripe_client_secret: str | None = None
    stripe_charge_id: str | None = None
    stripe_transfer_id: str | None = None
    stripe_destination_payment: str | None = None
    authorized_at: datetime | None = None
    captured_at: datetime | None = None
    transferred_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_reason: str | None = None
    refund_source: str | None = None
    refund_notes: str | None = None

    @classmethod
    def project(cls, record: PaymentLedgerRecord) -> "PaymentSummary":
        """Construye el resumen a partir del registro del ledger."""
        last_refund = record.refunds[-1] if record.refunds else None
        return cls(
            status=record.status.value,
            currency=record.currency,
            amount=record.amount,
            method=record.method,
            net_amount=record.net_amount,
            vat_amount=record.vat_amount,
            vat_rate=record.vat_rate,
            total_with_vat=record.total_with_vat,
            platform_commission=record.platform_commission,
            professional_payout=record.professional_payout,
            stripe_payment_intent_id=record.stripe_payment_intent_id,
            stripe_client_secret=record.stripe_client_secret,
            stripe_charge_id=record.stripe_charge_id,
            stripe_transfer_id=record.stripe_transfer_id,
            stripe_destination_payment=record.stripe_destination_payment,
            authorized_at=record.authorized_at,
            captured_at=record.captured_at,
            transferred_at=record.transferred_at,
            refunded_at=record.refunded_at,
            refund_reason=last_refund.reason if last_refund else None,
            refund_source=last_refund.source.value if last_refund else None,
            refund_notes=record.refund_notes,
        )


@dataclass
class Booking:
    """
    Reserva del marketplace.

    Sólo se modelan los campos que consume el ciclo de pago; el resto de la
    reserva vive en el sistema que la contiene.
    """

    id: str
    customer_id: str
    status: str = BOOKING_STATUS_QUOTE_ACCEPTED
    booking_number: str | None = None
    payee_id: str | None = None
    project: ProjectRef | None = None
    quote: Quote | None = None

    # Datos del cliente que afectan moneda e IVA
    customer_country: str | None = None
    customer_vat_number: str | None = None
    customer_type: str = DEFAULT_CUSTOMER_TYPE

    payment: PaymentSummary | None = field(default=None)
    lock_version: int = 0

    @property
    def billing_country(self) -> str:
        return self.customer_country or DEFAULT_COUNTRY

    def is_customer(self, user_id: str) -> bool:
        return self.customer_id == user_id
