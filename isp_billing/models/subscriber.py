import enum
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from isp_billing.db import Base


class SubscriberStatus(enum.Enum):
    active = "active"
    suspended = "suspended"
    terminated = "terminated"
    pending = "pending"


class BillingStatus(enum.Enum):
    unpaid = "unpaid"
    paid = "paid"
    suspended = "suspended"


class ServiceStatus(enum.Enum):
    active = "active"
    inactive = "inactive"


class RouterAccountStatus(enum.Enum):
    active = "active"
    disabled = "disabled"


class BillingType(enum.Enum):
    prepaid = "prepaid"
    postpaid = "postpaid"


class ActivePeriodUnit(enum.Enum):
    days = "days"
    months = "months"


class InstallationStatus(enum.Enum):
    not_installed = "not_installed"
    installed = "installed"


class AddonItemType(enum.Enum):
    one_time = "one_time"
    monthly = "monthly"


class Subscriber(Base):
    __tablename__ = "subscribers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    subscriber_number: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(40))
    address: Mapped[str | None] = mapped_column(Text)
    area: Mapped[str | None] = mapped_column(String(120))

    package_name: Mapped[str | None] = mapped_column(String(120))
    package_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    addon_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    billing_type: Mapped[BillingType] = mapped_column(
        Enum(BillingType), default=BillingType.prepaid
    )
    active_period: Mapped[int] = mapped_column(Integer, default=1)
    active_period_unit: Mapped[ActivePeriodUnit] = mapped_column(
        Enum(ActivePeriodUnit), default=ActivePeriodUnit.months
    )

    active_date: Mapped[date | None] = mapped_column(Date)
    expire_date: Mapped[date | None] = mapped_column(Date)
    payment_due_date: Mapped[date | None] = mapped_column(Date)

    status: Mapped[SubscriberStatus] = mapped_column(
        Enum(SubscriberStatus), default=SubscriberStatus.pending
    )
    installation_status: Mapped[InstallationStatus] = mapped_column(
        Enum(InstallationStatus), default=InstallationStatus.not_installed
    )
    billing_status: Mapped[BillingStatus] = mapped_column(
        Enum(BillingStatus), default=BillingStatus.unpaid, nullable=False
    )
    service_status: Mapped[ServiceStatus] = mapped_column(
        Enum(ServiceStatus), default=ServiceStatus.inactive, nullable=False
    )
    router_account_status: Mapped[RouterAccountStatus] = mapped_column(
        Enum(RouterAccountStatus), default=RouterAccountStatus.active, nullable=False
    )

    proration_applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    proration_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    router_account_name: Mapped[str | None] = mapped_column(String(120))
    router_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("routers.id", ondelete="SET NULL")
    )
    odp_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("odps.id", ondelete="SET NULL")
    )
    odp_slot: Mapped[str | None] = mapped_column(String(40))

    last_billing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_billing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_suspend_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    router = relationship("Router", back_populates="subscribers")
    odp = relationship("Odp", back_populates="subscribers")
    invoices = relationship(
        "Invoice", back_populates="subscriber", cascade="all, delete-orphan"
    )
    addon_items = relationship(
        "AddonItem", back_populates="subscriber", cascade="all, delete-orphan"
    )


class AddonItem(Base):
    __tablename__ = "addon_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    subscriber_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("subscribers.id", ondelete="CASCADE"),
        nullable=False,
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_type: Mapped[AddonItemType] = mapped_column(
        Enum(AddonItemType), default=AddonItemType.monthly, nullable=False
    )
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    subscriber = relationship("Subscriber", back_populates="addon_items")
