import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from isp_billing.db import Base


class InvoiceKind(enum.Enum):
    payment = "payment"
    penalty = "penalty"
    discount = "discount"
    refund = "refund"


class InvoiceStatus(enum.Enum):
    pending = "pending"
    paid = "paid"
    overdue = "overdue"
    cancelled = "cancelled"


class PaymentMethod(enum.Enum):
    cash = "cash"
    transfer = "transfer"
    digital_wallet = "digital_wallet"
    other = "other"


class Invoice(Base):
    """A billing ledger entry: monthly bill, penalty, discount or refund."""

    __tablename__ = "invoices"
    __table_args__ = (
        # At most one generated monthly bill per subscriber and billing period.
        Index(
            "uq_invoices_subscriber_billing_period",
            "subscriber_id",
            "billing_period",
            unique=True,
            postgresql_where=text("kind = 'payment'"),
            sqlite_where=text("kind = 'payment'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    subscriber_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("subscribers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subscriber_name: Mapped[str | None] = mapped_column(String(160))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    kind: Mapped[InvoiceKind] = mapped_column(
        Enum(InvoiceKind), default=InvoiceKind.payment, nullable=False
    )
    method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod), default=PaymentMethod.cash, nullable=False
    )
    description: Mapped[str | None] = mapped_column(String(255))
    period_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    period_to: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    billing_period: Mapped[str | None] = mapped_column(String(7))
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus), default=InvoiceStatus.pending, nullable=False
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    receipt_number: Mapped[str | None] = mapped_column(String(60), unique=True)
    breakdown: Mapped[dict | None] = mapped_column(JSON)
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    subscriber = relationship("Subscriber", back_populates="invoices")
