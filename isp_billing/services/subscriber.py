from __future__ import annotations

import logging
import re

from fastapi import HTTPException
from sqlalchemy.orm import Session

from isp_billing.config import settings
from isp_billing.models.network import Odp, Router
from isp_billing.models.subscriber import (
    AddonItem,
    AddonItemType,
    BillingStatus,
    InstallationStatus,
    ServiceStatus,
    Subscriber,
    SubscriberStatus,
)
from isp_billing.schemas.subscriber import (
    AddonItemCreate,
    AddonItemUpdate,
    SubscriberCreate,
    SubscriberUpdate,
)
from isp_billing.services import billing_state, odp_slots
from isp_billing.services.billing_errors import (
    CapacityExceededError,
    SubscriberNotFoundError,
)
from isp_billing.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    get_or_404,
    try_uuid,
    validate_enum,
)
from isp_billing.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def next_subscriber_number(db: Session) -> str:
    """Next number in the PREFIX0001 sequence, one past the highest issued."""
    prefix = settings.subscriber_number_prefix
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    rows = (
        db.query(Subscriber.subscriber_number)
        .filter(Subscriber.subscriber_number.like(f"{prefix}%"))
        .all()
    )
    for (number,) in rows:
        match = pattern.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1:0{settings.subscriber_number_padding}d}"


def find_by_reference(db: Session, reference: str) -> Subscriber:
    """Find a subscriber by id, or by case-insensitive name fragment.

    The oldest name match wins.

    Raises:
        SubscriberNotFoundError: nothing matches reference
    """
    reference = (reference or "").strip()
    subscriber = None
    subscriber_id = try_uuid(reference)
    if subscriber_id:
        subscriber = db.get(Subscriber, subscriber_id)
    elif reference:
        subscriber = (
            db.query(Subscriber)
            .filter(Subscriber.name.ilike(f"%{reference}%"))
            .order_by(Subscriber.created_at.asc())
            .first()
        )
    if subscriber is None:
        raise SubscriberNotFoundError(
            f"Subscriber not found: {reference}", details={"reference": reference}
        )
    return subscriber


def _ensure_router(db: Session, router_id) -> None:
    if router_id and not db.get(Router, coerce_uuid(router_id)):
        raise HTTPException(status_code=400, detail="Router not found")


def _ensure_odp(db: Session, odp_id) -> None:
    if odp_id and not db.get(Odp, coerce_uuid(odp_id)):
        raise HTTPException(status_code=400, detail="ODP not found")


def _apply_installation(subscriber: Subscriber) -> None:
    if subscriber.installation_status == InstallationStatus.installed:
        subscriber.service_status = ServiceStatus.active


class Subscribers(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: SubscriberCreate) -> Subscriber:
        data = payload.model_dump()
        odp_id = data.pop("odp_id", None)
        _ensure_router(db, data.get("router_id"))
        _ensure_odp(db, odp_id)
        subscriber = Subscriber(**data)
        subscriber.subscriber_number = next_subscriber_number(db)
        _apply_installation(subscriber)
        db.add(subscriber)
        try:
            db.flush()
            if odp_id:
                odp_slots.assign(db, subscriber, odp_id)
            db.commit()
        except CapacityExceededError:
            db.rollback()
            raise
        db.refresh(subscriber)
        logger.info("Subscriber %s created as %s", subscriber.id, subscriber.subscriber_number)
        return subscriber

    @staticmethod
    def get(db: Session, subscriber_id: str) -> Subscriber:
        return get_or_404(db, Subscriber, subscriber_id)

    @staticmethod
    def list(
        db: Session,
        status: str | None,
        billing_status: str | None,
        search: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ):
        query = db.query(Subscriber)
        if status:
            query = query.filter(
                Subscriber.status == validate_enum(status, SubscriberStatus, "status")
            )
        if billing_status:
            query = query.filter(
                Subscriber.billing_status
                == validate_enum(billing_status, BillingStatus, "billing_status")
            )
        if search:
            like = f"%{search.strip()}%"
            query = query.filter(
                Subscriber.name.ilike(like) | Subscriber.subscriber_number.ilike(like)
            )
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": Subscriber.created_at,
                "name": Subscriber.name,
                "subscriber_number": Subscriber.subscriber_number,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, subscriber_id: str, payload: SubscriberUpdate) -> Subscriber:
        subscriber = get_or_404(db, Subscriber, subscriber_id)
        data = payload.model_dump(exclude_unset=True)
        if "router_id" in data:
            _ensure_router(db, data["router_id"])
        new_billing_status = data.pop("billing_status", None)
        odp_changed = "odp_id" in data and data["odp_id"] != subscriber.odp_id
        new_odp_id = data.pop("odp_id", None)
        if odp_changed:
            _ensure_odp(db, new_odp_id)
        old_odp_id = subscriber.odp_id
        for key, value in data.items():
            setattr(subscriber, key, value)
        if new_billing_status is not None:
            billing_state.transition_billing_status(subscriber, new_billing_status)
        _apply_installation(subscriber)
        try:
            if odp_changed:
                if new_odp_id is None:
                    odp_slots.release(db, subscriber, old_odp_id)
                elif old_odp_id is None:
                    odp_slots.assign(db, subscriber, new_odp_id)
                else:
                    odp_slots.reassign(db, subscriber, old_odp_id, new_odp_id)
            db.commit()
        except CapacityExceededError:
            db.rollback()
            raise
        db.refresh(subscriber)
        return subscriber

    @staticmethod
    def delete(db: Session, subscriber_id: str) -> None:
        subscriber = get_or_404(db, Subscriber, subscriber_id)
        if subscriber.odp_id:
            odp_slots.release(db, subscriber, subscriber.odp_id)
        db.delete(subscriber)
        db.commit()
        logger.info("Subscriber %s deleted", subscriber_id)


class AddonItems(ListResponseMixin):
    @staticmethod
    def create(db: Session, subscriber_id: str, payload: AddonItemCreate) -> AddonItem:
        subscriber = get_or_404(db, Subscriber, subscriber_id)
        addon = AddonItem(subscriber_id=subscriber.id, **payload.model_dump())
        db.add(addon)
        db.commit()
        db.refresh(addon)
        return addon

    @staticmethod
    def get(db: Session, addon_id: str) -> AddonItem:
        return get_or_404(db, AddonItem, addon_id, detail="Add-on item not found")

    @staticmethod
    def list(
        db: Session,
        subscriber_id: str,
        item_type: str | None,
        is_active: bool | None,
        limit: int,
        offset: int,
    ):
        get_or_404(db, Subscriber, subscriber_id)
        query = db.query(AddonItem).filter(AddonItem.subscriber_id == coerce_uuid(subscriber_id))
        if item_type:
            query = query.filter(
                AddonItem.item_type == validate_enum(item_type, AddonItemType, "item_type")
            )
        if is_active is None:
            query = query.filter(AddonItem.is_active.is_(True))
        else:
            query = query.filter(AddonItem.is_active == is_active)
        query = query.order_by(AddonItem.created_at.asc())
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, addon_id: str, payload: AddonItemUpdate) -> AddonItem:
        addon = get_or_404(db, AddonItem, addon_id, detail="Add-on item not found")
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(addon, key, value)
        db.commit()
        db.refresh(addon)
        return addon

    @staticmethod
    def deactivate(db: Session, addon_id: str) -> AddonItem:
        addon = get_or_404(db, AddonItem, addon_id, detail="Add-on item not found")
        addon.is_active = False
        db.commit()
        db.refresh(addon)
        return addon


subscribers = Subscribers()
addon_items = AddonItems()
