"""Entidad Payee - profesional que recibe el payout por una cuenta conectada."""

from dataclasses import dataclass, field

from app.domain.constants import DEFAULT_COUNTRY

ACCOUNT_STATUS_PENDING = "pending"
ACCOUNT_STATUS_ACTIVE = "active"
ACCOUNT_STATUS_RESTRICTED = "restricted"


@dataclass
class ConnectedAccount:
    """Cuenta Stripe Connect del profesional y sus capacidades."""

    account_id: str | None = None
    onboarding_completed: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    account_status: str = ACCOUNT_STATUS_PENDING

    @property
    def is_connected(self) -> bool:
        return bool(self.account_id)

    def mirror_capabilities(
        self,
        charges_enabled: bool,
        payouts_enabled: bool,
        details_submitted: bool,
    ) -> None:
        self.onboarding_completed = details_submitted
        self.details_submitted = details_submitted
        self.charges_enabled = charges_enabled
        self.payouts_enabled = payouts_enabled
        self.account_status = ACCOUNT_STATUS_ACTIVE if charges_enabled else ACCOUNT_STATUS_PENDING

    def restrict(self) -> None:
        self.charges_enabled = False
        self.payouts_enabled = False
        self.account_status = ACCOUNT_STATUS_RESTRICTED


@dataclass
class Payee:
    id: str
    preferred_currency: str | None = None
    business_country: str | None = None
    stripe: ConnectedAccount = field(default_factory=ConnectedAccount)

    @property
    def country(self) -> str:
        return self.business_country or DEFAULT_COUNTRY


@dataclass(frozen=True)
class PayeeFound:
    payee: Payee


@dataclass(frozen=True)
class PayeeMissing:
    reason: str


PayeeResolution = PayeeFound | PayeeMissing
