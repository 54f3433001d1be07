import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Integer,
    Numeric,
    String,
    event,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from isp_billing.db import Base


class OdpStatus(enum.Enum):
    active = "active"
    maintenance = "maintenance"
    inactive = "inactive"


class Router(Base):
    __tablename__ = "routers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False)
    port: Mapped[int | None] = mapped_column(Integer)
    username: Mapped[str | None] = mapped_column(String(120))
    password: Mapped[str | None] = mapped_column(String(255))
    use_ssl: Mapped[bool] = mapped_column(Boolean, default=False)
    area: Mapped[str | None] = mapped_column(String(120))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    subscribers = relationship("Subscriber", back_populates="router")


class Odp(Base):
    """Optical distribution point with a fixed number of subscriber slots."""

    __tablename__ = "odps"
    __table_args__ = (
        CheckConstraint("total_slots >= 1", name="ck_odps_total_slots_positive"),
        CheckConstraint("used_slots >= 0", name="ck_odps_used_slots_non_negative"),
        CheckConstraint(
            "used_slots <= total_slots", name="ck_odps_used_slots_within_total"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255))
    area: Mapped[str | None] = mapped_column(String(120))
    total_slots: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    used_slots: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_slots: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 8))
    longitude: Mapped[Decimal | None] = mapped_column(Numeric(11, 8))
    status: Mapped[OdpStatus] = mapped_column(Enum(OdpStatus), default=OdpStatus.active)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    subscribers = relationship("Subscriber", back_populates="odp")

    def recompute_available_slots(self) -> None:
        total = self.total_slots if self.total_slots is not None else 8
        used = self.used_slots or 0
        self.available_slots = total - used


@event.listens_for(Odp, "before_insert")
@event.listens_for(Odp, "before_update")
def _odp_recompute_available_slots(_mapper, _connection, target: Odp) -> None:
    # available_slots is derived; never trust a value written elsewhere.
    target.recompute_available_slots()
