"""ODP slot accounting.

Every subscriber attached to an ODP occupies one slot. These are the only
functions that change Odp.used_slots; they flush but never commit, so the
slot change lands in the same transaction as the subscriber write.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from isp_billing.models.network import Odp
from isp_billing.models.subscriber import Subscriber
from isp_billing.services.billing_errors import CapacityExceededError
from isp_billing.services.common import coerce_uuid

logger = logging.getLogger(__name__)


def _locked(db: Session, odp: Odp | str) -> Odp:
    odp_id = odp.id if isinstance(odp, Odp) else coerce_uuid(odp)
    locked = (
        db.query(Odp)
        .filter(Odp.id == odp_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if locked is None:
        raise ValueError(f"ODP {odp_id} not found")
    return locked


def assign(db: Session, subscriber: Subscriber, odp: Odp | str) -> Odp:
    """Take one slot on odp for subscriber.

    Raises:
        CapacityExceededError: odp has no available slots
    """
    locked = _locked(db, odp)
    locked.recompute_available_slots()
    if locked.available_slots <= 0:
        raise CapacityExceededError(
            f"ODP {locked.name} is full ({locked.used_slots}/{locked.total_slots})",
            details={
                "odp_id": str(locked.id),
                "used_slots": locked.used_slots,
                "total_slots": locked.total_slots,
            },
        )
    locked.used_slots = (locked.used_slots or 0) + 1
    locked.recompute_available_slots()
    subscriber.odp_id = locked.id
    db.flush()
    return locked


def release(db: Session, subscriber: Subscriber | None, odp: Odp | str) -> Odp:
    """Give back one slot on odp. Never fails; used_slots stays >= 0."""
    locked = _locked(db, odp)
    if not locked.used_slots:
        logger.warning("Releasing slot on ODP %s with no used slots", locked.id)
    locked.used_slots = max((locked.used_slots or 0) - 1, 0)
    locked.recompute_available_slots()
    if subscriber is not None and subscriber.odp_id == locked.id:
        subscriber.odp_id = None
    db.flush()
    return locked


def reassign(db: Session, subscriber: Subscriber, old_odp: Odp | str | None, new_odp: Odp | str) -> Odp:
    """Move subscriber from old_odp to new_odp atomically.

    On CapacityExceededError the release is rolled back and the subscriber
    keeps its old slot.
    """
    old_odp_id = subscriber.odp_id
    nested = db.begin_nested()
    try:
        if old_odp is not None:
            release(db, subscriber, old_odp)
        locked = assign(db, subscriber, new_odp)
        nested.commit()
    except CapacityExceededError:
        nested.rollback()
        subscriber.odp_id = old_odp_id
        raise
    return locked
