"""Add invoices.billing_period with one monthly bill per subscriber and period.

Revision ID: c3f81d5e6a92
Revises: a1c4e7b20f31
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "c3f81d5e6a92"
down_revision = "a1c4e7b20f31"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("invoices", sa.Column("billing_period", sa.String(7), nullable=True))
    op.create_index(
        "uq_invoices_subscriber_billing_period",
        "invoices",
        ["subscriber_id", "billing_period"],
        unique=True,
        postgresql_where=sa.text("kind = 'payment'"),
    )


def downgrade() -> None:
    op.drop_index("uq_invoices_subscriber_billing_period", table_name="invoices")
    op.drop_column("invoices", "billing_period")
