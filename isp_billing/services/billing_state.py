"""Subscriber billing state.

Each subscriber carries three statuses that move together:

- billing_status: unpaid, paid or suspended
- service_status: active or inactive
- router_account_status: active or disabled

billing_status changes only through the transitions in VALID_TRANSITIONS.
Router-facing changes (suspend, reinstate, payment) also require the router
target to be resolvable; otherwise they are reported as a configuration gap.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from isp_billing.models.network import Router
from isp_billing.models.subscriber import (
    BillingStatus,
    RouterAccountStatus,
    ServiceStatus,
    Subscriber,
)
from isp_billing.services.billing_errors import ConfigurationGapError
from isp_billing.services.business_calendar import now_utc
from isp_billing.services.router_gateway import RouterControlGateway

logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """Raised when an invalid billing status transition is attempted."""

    code = "invalid_transition"

    def __init__(self, from_status: BillingStatus, to_status: BillingStatus):
        self.from_status = from_status
        self.to_status = to_status
        self.message = f"Cannot transition from {from_status.value} to {to_status.value}"
        super().__init__(self.message)


# Valid billing status transitions (from -> allowed to states)
VALID_TRANSITIONS = {
    BillingStatus.unpaid: {BillingStatus.unpaid, BillingStatus.paid, BillingStatus.suspended},
    BillingStatus.paid: {BillingStatus.paid, BillingStatus.unpaid, BillingStatus.suspended},
    BillingStatus.suspended: {BillingStatus.suspended, BillingStatus.paid},
}


def can_transition(from_status: BillingStatus, to_status: BillingStatus) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, set())


def transition_billing_status(subscriber: Subscriber, new_status: BillingStatus) -> bool:
    """Move subscriber to new_status. Returns False for a self-transition."""
    old_status = subscriber.billing_status or BillingStatus.unpaid
    if not can_transition(old_status, new_status):
        raise InvalidTransitionError(old_status, new_status)
    if old_status == new_status:
        return False
    subscriber.billing_status = new_status
    return True


@dataclass(frozen=True)
class RouterTarget:
    router_id: object
    router_name: str
    account: str


def resolve_router_target(db: Session, subscriber: Subscriber) -> RouterTarget:
    """Resolve the router name and PPP account for subscriber.

    Raises:
        ConfigurationGapError: account name missing or router unresolvable
    """
    account = (subscriber.router_account_name or "").strip()
    if not account:
        raise ConfigurationGapError(
            f"Subscriber {subscriber.subscriber_number} has no router account",
            details={"subscriber_id": str(subscriber.id)},
        )
    router = db.get(Router, subscriber.router_id) if subscriber.router_id else None
    if router is None or not router.name:
        raise ConfigurationGapError(
            f"Subscriber {subscriber.subscriber_number} has no router assigned",
            details={"subscriber_id": str(subscriber.id), "account": account},
        )
    return RouterTarget(router_id=router.id, router_name=router.name, account=account)


def mark_suspended(subscriber: Subscriber, suspended_at: datetime | None = None) -> None:
    transition_billing_status(subscriber, BillingStatus.suspended)
    subscriber.router_account_status = RouterAccountStatus.disabled
    subscriber.last_suspend_date = suspended_at or now_utc()


def mark_reinstated(subscriber: Subscriber) -> None:
    transition_billing_status(subscriber, BillingStatus.paid)
    subscriber.router_account_status = RouterAccountStatus.active
    subscriber.service_status = ServiceStatus.active


@dataclass
class ReinstatementOutcome:
    attempted: bool
    success: bool
    configuration_gap: bool = False
    message: str | None = None
    error: str | None = None

    def as_dict(self) -> dict:
        return asdict(self)


def record_payment(
    db: Session, subscriber: Subscriber, gateway: RouterControlGateway
) -> ReinstatementOutcome:
    """Apply a payment to subscriber and reinstate the router account.

    The subscriber is always left paid with service active. The router account
    is marked active only when the gateway confirms the enable. Changes are
    flushed but not committed.
    """
    try:
        target = resolve_router_target(db, subscriber)
    except ConfigurationGapError as exc:
        transition_billing_status(subscriber, BillingStatus.paid)
        subscriber.service_status = ServiceStatus.active
        db.flush()
        logger.info("Payment recorded for %s without reinstatement: %s", subscriber.id, exc)
        return ReinstatementOutcome(
            attempted=False,
            success=False,
            configuration_gap=True,
            message=exc.message,
            error=exc.code,
        )

    result = gateway.enable(target.router_name, target.account)
    if result.success:
        mark_reinstated(subscriber)
    else:
        transition_billing_status(subscriber, BillingStatus.paid)
        subscriber.service_status = ServiceStatus.active
        logger.warning(
            "Payment recorded for %s but router %s enable failed: %s",
            subscriber.id,
            target.router_name,
            result.message,
        )
    db.flush()
    return ReinstatementOutcome(
        attempted=True,
        success=result.success,
        message=result.message,
        error=result.error,
    )
