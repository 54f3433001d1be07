from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from isp_billing.models.subscriber import (
    ActivePeriodUnit,
    AddonItemType,
    BillingStatus,
    BillingType,
    InstallationStatus,
    RouterAccountStatus,
    ServiceStatus,
    SubscriberStatus,
)


class SubscriberBase(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=40)
    address: str | None = None
    area: str | None = Field(default=None, max_length=120)
    package_name: str | None = Field(default=None, max_length=120)
    package_price: Decimal = Field(default=Decimal("0"), ge=0)
    addon_price: Decimal = Field(default=Decimal("0"), ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    billing_type: BillingType = BillingType.prepaid
    active_period: int = Field(default=1, ge=1)
    active_period_unit: ActivePeriodUnit = ActivePeriodUnit.months
    active_date: date | None = None
    expire_date: date | None = None
    payment_due_date: date | None = None
    status: SubscriberStatus = SubscriberStatus.pending
    installation_status: InstallationStatus = InstallationStatus.not_installed
    router_account_name: str | None = Field(default=None, max_length=120)
    router_id: UUID | None = None
    odp_id: UUID | None = None
    odp_slot: str | None = Field(default=None, max_length=40)
    notes: str | None = None


class SubscriberCreate(SubscriberBase):
    pass


class SubscriberUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=40)
    address: str | None = None
    area: str | None = Field(default=None, max_length=120)
    package_name: str | None = Field(default=None, max_length=120)
    package_price: Decimal | None = Field(default=None, ge=0)
    addon_price: Decimal | None = Field(default=None, ge=0)
    discount: Decimal | None = Field(default=None, ge=0)
    billing_type: BillingType | None = None
    active_period: int | None = Field(default=None, ge=1)
    active_period_unit: ActivePeriodUnit | None = None
    active_date: date | None = None
    expire_date: date | None = None
    payment_due_date: date | None = None
    status: SubscriberStatus | None = None
    installation_status: InstallationStatus | None = None
    billing_status: BillingStatus | None = None
    router_account_name: str | None = Field(default=None, max_length=120)
    router_id: UUID | None = None
    odp_id: UUID | None = None
    odp_slot: str | None = Field(default=None, max_length=40)
    notes: str | None = None


class SubscriberRead(SubscriberBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subscriber_number: str
    billing_status: BillingStatus
    service_status: ServiceStatus
    router_account_status: RouterAccountStatus
    proration_applied: bool
    proration_amount: Decimal | None = None
    last_billing_date: datetime | None = None
    next_billing_date: datetime | None = None
    last_suspend_date: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AddonItemBase(BaseModel):
    item_name: str = Field(min_length=1, max_length=255)
    item_type: AddonItemType = AddonItemType.monthly
    price: Decimal = Field(default=Decimal("0"), ge=0)
    quantity: int = Field(default=1, ge=1)
    description: str | None = None
    is_active: bool = True


class AddonItemCreate(AddonItemBase):
    pass


class AddonItemUpdate(BaseModel):
    item_name: str | None = Field(default=None, min_length=1, max_length=255)
    item_type: AddonItemType | None = None
    price: Decimal | None = Field(default=None, ge=0)
    quantity: int | None = Field(default=None, ge=1)
    description: str | None = None
    is_active: bool | None = None


class AddonItemRead(AddonItemBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subscriber_id: UUID
    is_paid: bool
    created_at: datetime
    updated_at: datetime
