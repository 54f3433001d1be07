from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from isp_billing.models.billing import InvoiceKind, InvoiceStatus, PaymentMethod
from isp_billing.models.subscriber import ActivePeriodUnit


class InvoiceBase(BaseModel):
    subscriber_id: UUID
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    kind: InvoiceKind = InvoiceKind.payment
    method: PaymentMethod = PaymentMethod.cash
    description: str | None = Field(default=None, max_length=255)
    period_from: datetime | None = None
    period_to: datetime | None = None
    status: InvoiceStatus = InvoiceStatus.pending
    due_date: datetime | None = None
    notes: str | None = None


class InvoiceCreate(InvoiceBase):
    pass


class InvoiceUpdate(BaseModel):
    amount: Decimal | None = Field(default=None, ge=0)
    kind: InvoiceKind | None = None
    method: PaymentMethod | None = None
    description: str | None = Field(default=None, max_length=255)
    period_from: datetime | None = None
    period_to: datetime | None = None
    status: InvoiceStatus | None = None
    due_date: datetime | None = None
    notes: str | None = None


class InvoiceRead(InvoiceBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subscriber_name: str | None = None
    billing_period: str | None = None
    paid_at: datetime | None = None
    receipt_number: str | None = None
    breakdown: dict | None = None
    created_at: datetime
    updated_at: datetime


class ReinstatementRead(BaseModel):
    attempted: bool
    success: bool
    configuration_gap: bool = False
    message: str | None = None
    error: str | None = None


class InvoiceWriteResponse(BaseModel):
    invoice: InvoiceRead
    reinstatement: ReinstatementRead | None = None


class InvoiceRunRequest(BaseModel):
    run_at: datetime | None = None


class InvoiceRunFailure(BaseModel):
    subscriber_id: UUID
    error: str


class InvoiceRunSkip(BaseModel):
    subscriber_id: UUID
    reason: str


class InvoiceRunResponse(BaseModel):
    run_at: datetime
    created_count: int
    invoices: list[InvoiceRead] = Field(default_factory=list)
    skipped: list[InvoiceRunSkip] = Field(default_factory=list)
    failures: list[InvoiceRunFailure] = Field(default_factory=list)


class SuspensionRunRequest(BaseModel):
    run_at: datetime | None = None


class SuspensionEntry(BaseModel):
    subscriber_id: UUID
    subscriber_name: str
    success: bool
    router_name: str | None = None
    account: str | None = None
    message: str | None = None
    error: str | None = None


class SuspensionSkip(BaseModel):
    subscriber_id: UUID
    subscriber_name: str
    reason: str


class SuspensionRunResponse(BaseModel):
    run_at: datetime
    not_suspension_day: bool = False
    run_date: date | None = None
    next_run_date: date | None = None
    suspended: list[SuspensionEntry] = Field(default_factory=list)
    skipped: list[SuspensionSkip] = Field(default_factory=list)
    grace_period: dict[str, datetime] | None = None
    suspend_date: datetime | None = None


class SubscriberActionRequest(BaseModel):
    reference: str = Field(min_length=1, description="Subscriber id or name fragment")


class SubscriberActionResponse(BaseModel):
    success: bool
    subscriber_id: UUID
    subscriber_name: str
    router_name: str | None = None
    account: str | None = None
    message: str | None = None
    error: str | None = None


class ProrationPreviewRequest(BaseModel):
    activation_date: date
    package_price: Decimal = Field(ge=0)
    period_unit: ActivePeriodUnit = ActivePeriodUnit.months
    active_period: int = Field(default=1, ge=1)


class ProrationPreviewResponse(BaseModel):
    activation_date: date
    package_price: Decimal
    applied: bool
    amount: Decimal
    remaining_days: int
    days_in_period: int
    note: str | None = None


class RouterAccountStatusResponse(BaseModel):
    subscriber_id: UUID
    router_name: str
    account: str
    success: bool
    found: bool
    disabled: bool | None = None
    profile: str | None = None
    service: str | None = None
    message: str | None = None
    error: str | None = None
