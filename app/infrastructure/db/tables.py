from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)

metadata = MetaData()

bookings = Table(
    "bookings",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("booking_number", String(50)),
    Column("customer_id", String(64), nullable=False),
    Column("payee_id", String(64)),
    Column("project_id", String(64)),
    Column("project_title", String(255)),
    Column("project_payee_id", String(64)),
    Column("status", String(32), nullable=False),
    Column("quote_amount", Numeric(12, 2)),
    Column("quote_currency", String(3)),
    Column("customer_country", String(2)),
    Column("customer_vat_number", String(32)),
    Column("customer_type", String(20), nullable=False),
    Column("payment_summary", JSON),
    Column("lock_version", Integer, nullable=False, default=0),
)

payees = Table(
    "payees",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("preferred_currency", String(3)),
    Column("business_country", String(2)),
    Column("stripe_account_id", String(64), unique=True),
    Column("onboarding_completed", Boolean, nullable=False, default=False),
    Column("charges_enabled", Boolean, nullable=False, default=False),
    Column("payouts_enabled", Boolean, nullable=False, default=False),
    Column("details_submitted", Boolean, nullable=False, default=False),
    Column("account_status", String(20), nullable=False),
)

payment_ledger = Table(
    "payment_ledger",
    metadata,
    Column("booking_id", String(64), primary_key=True),
    Column("booking_number", String(50)),
    Column("customer_id", String(64)),
    Column("payee_id", String(64), index=True),
    Column("method", String(20), nullable=False),
    Column("status", String(32), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("net_amount", Numeric(12, 2)),
    Column("vat_amount", Numeric(12, 2)),
    Column("vat_rate", Numeric(5, 2)),
    Column("total_with_vat", Numeric(12, 2)),
    Column("platform_commission", Numeric(12, 2)),
    Column("professional_payout", Numeric(12, 2)),
    Column("stripe_payment_intent_id", String(64), index=True),
    Column("stripe_client_secret", String(255)),
    Column("stripe_charge_id", String(64), index=True),
    Column("stripe_transfer_id", String(64), index=True),
    Column("stripe_destination_payment", String(64)),
    Column("transfer_amount_minor", Integer),
    Column("transfer_currency", String(3)),
    Column("authorized_at", DateTime(timezone=True)),
    Column("captured_at", DateTime(timezone=True)),
    Column("transferred_at", DateTime(timezone=True)),
    Column("refunded_at", DateTime(timezone=True)),
    Column("canceled_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    Column("refund_notes", Text),
    Column("dispute_id", String(64)),
    Column("dispute_status", String(32)),
    Column("transfer_failure", JSON),
    Column("extra_metadata", JSON),
    Column("version", Integer, nullable=False, default=1),
)

payment_refunds = Table(
    "payment_refunds",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("booking_id", String(64), nullable=False, index=True),
    Column("position", Integer, nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("reason", String(500)),
    Column("refund_id", String(64)),
    Column("refunded_at", DateTime(timezone=True), nullable=False),
    Column("source", String(20), nullable=False),
    Column("notes", Text),
)

platform_settings = Table(
    "platform_settings",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("commission_percent", Numeric(5, 2), nullable=False),
    Column("last_modified", DateTime(timezone=True), nullable=False),
    Column("last_modified_by", String(64)),
    Column("version", Integer, nullable=False, default=1),
)
