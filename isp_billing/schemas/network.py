from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from isp_billing.models.network import OdpStatus


class RouterBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    ip_address: str = Field(min_length=1, max_length=64)
    port: int | None = Field(default=None, ge=1, le=65535)
    username: str | None = Field(default=None, max_length=120)
    use_ssl: bool = False
    area: str | None = Field(default=None, max_length=120)
    is_active: bool = True


class RouterCreate(RouterBase):
    password: str | None = Field(default=None, max_length=255)


class RouterRead(RouterBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class OdpBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    location: str | None = Field(default=None, max_length=255)
    area: str | None = Field(default=None, max_length=120)
    total_slots: int = Field(default=8, ge=1)
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    status: OdpStatus = OdpStatus.active


class OdpCreate(OdpBase):
    pass


class OdpRead(OdpBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    used_slots: int
    available_slots: int
    created_at: datetime
    updated_at: datetime
