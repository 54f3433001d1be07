"""Create routers, odps, subscribers, addon items and invoices.

Revision ID: a1c4e7b20f31
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "a1c4e7b20f31"
down_revision = None
branch_labels = None
depends_on = None

_ENUMS = {
    "odpstatus": ("active", "maintenance", "inactive"),
    "subscriberstatus": ("active", "suspended", "terminated", "pending"),
    "billingstatus": ("unpaid", "paid", "suspended"),
    "servicestatus": ("active", "inactive"),
    "routeraccountstatus": ("active", "disabled"),
    "billingtype": ("prepaid", "postpaid"),
    "activeperiodunit": ("days", "months"),
    "installationstatus": ("not_installed", "installed"),
    "addonitemtype": ("one_time", "monthly"),
    "invoicekind": ("payment", "penalty", "discount", "refund"),
    "invoicestatus": ("pending", "paid", "overdue", "cancelled"),
    "paymentmethod": ("cash", "transfer", "digital_wallet", "other"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*_ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in _ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "routers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False, unique=True),
        sa.Column("ip_address", sa.String(64), nullable=False),
        sa.Column("port", sa.Integer(), nullable=True),
        sa.Column("username", sa.String(120), nullable=True),
        sa.Column("password", sa.String(255), nullable=True),
        sa.Column("use_ssl", sa.Boolean(), nullable=True),
        sa.Column("area", sa.String(120), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "odps",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("area", sa.String(120), nullable=True),
        sa.Column("total_slots", sa.Integer(), nullable=False, server_default="8"),
        sa.Column("used_slots", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("available_slots", sa.Integer(), nullable=False, server_default="8"),
        sa.Column("latitude", sa.Numeric(10, 8), nullable=True),
        sa.Column("longitude", sa.Numeric(11, 8), nullable=True),
        sa.Column("status", _enum("odpstatus"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("total_slots >= 1", name="ck_odps_total_slots_positive"),
        sa.CheckConstraint("used_slots >= 0", name="ck_odps_used_slots_non_negative"),
        sa.CheckConstraint("used_slots <= total_slots", name="ck_odps_used_slots_within_total"),
    )

    op.create_table(
        "subscribers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("subscriber_number", sa.String(40), nullable=False, unique=True),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("area", sa.String(120), nullable=True),
        sa.Column("package_name", sa.String(120), nullable=True),
        sa.Column("package_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("addon_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("discount", sa.Numeric(12, 2), nullable=True),
        sa.Column("billing_type", _enum("billingtype"), nullable=True),
        sa.Column("active_period", sa.Integer(), nullable=True),
        sa.Column("active_period_unit", _enum("activeperiodunit"), nullable=True),
        sa.Column("active_date", sa.Date(), nullable=True),
        sa.Column("expire_date", sa.Date(), nullable=True),
        sa.Column("payment_due_date", sa.Date(), nullable=True),
        sa.Column("status", _enum("subscriberstatus"), nullable=True),
        sa.Column("installation_status", _enum("installationstatus"), nullable=True),
        sa.Column("billing_status", _enum("billingstatus"), nullable=False),
        sa.Column("service_status", _enum("servicestatus"), nullable=False),
        sa.Column("router_account_status", _enum("routeraccountstatus"), nullable=False),
        sa.Column("proration_applied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("proration_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("router_account_name", sa.String(120), nullable=True),
        sa.Column(
            "router_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("routers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "odp_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("odps.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("odp_slot", sa.String(40), nullable=True),
        sa.Column("last_billing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_billing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_suspend_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "addon_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "subscriber_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("subscribers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("item_type", _enum("addonitemtype"), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "invoices",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "subscriber_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("subscribers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("subscriber_name", sa.String(160), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("kind", _enum("invoicekind"), nullable=False),
        sa.Column("method", _enum("paymentmethod"), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("period_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("period_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", _enum("invoicestatus"), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("receipt_number", sa.String(60), nullable=True, unique=True),
        sa.Column("breakdown", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_invoices_subscriber_id", "invoices", ["subscriber_id"])
    op.create_index("ix_invoices_created_at", "invoices", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_invoices_created_at", table_name="invoices")
    op.drop_index("ix_invoices_subscriber_id", table_name="invoices")
    op.drop_table("invoices")
    op.drop_table("addon_items")
    op.drop_table("subscribers")
    op.drop_table("odps")
    op.drop_table("routers")
    bind = op.get_bind()
    for name in reversed(list(_ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
