"""Grace-period suspension.

Monthly invoices are created on the 1st and may be paid until the end of the
5th (business time). On the 6th every subscriber still holding a pending
invoice from that window has its PPP account disabled on the router. Local
status changes are committed only after the router confirms the disable, so a
failed router call leaves the subscriber as a candidate for the next run.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from isp_billing.metrics import SUSPENSIONS
from isp_billing.models.subscriber import (
    BillingStatus,
    RouterAccountStatus,
    ServiceStatus,
    Subscriber,
)
from isp_billing.services import billing_state
from isp_billing.services.billing import Invoices
from isp_billing.services.billing_errors import (
    ConfigurationGapError,
    PersistenceError,
    RemoteGatewayError,
)
from isp_billing.services.business_calendar import (
    DateWindow,
    as_utc,
    business_date,
    grace_window,
    is_suspension_day,
    next_suspension_date,
    now_utc,
)
from isp_billing.services.common import get_or_404
from isp_billing.services.router_gateway import (
    GatewayResult,
    MikrotikGateway,
    RouterControlGateway,
)
from isp_billing.services.subscriber import find_by_reference

logger = logging.getLogger(__name__)


def _entry(
    subscriber: Subscriber,
    target: billing_state.RouterTarget | None,
    result: GatewayResult,
) -> dict[str, Any]:
    return {
        "subscriber_id": subscriber.id,
        "subscriber_name": subscriber.name,
        "success": result.success,
        "router_name": target.router_name if target else None,
        "account": target.account if target else None,
        "message": result.message,
        "error": result.error,
    }


def _skip(subscriber: Subscriber, reason: str) -> dict[str, Any]:
    return {"subscriber_id": subscriber.id, "subscriber_name": subscriber.name, "reason": reason}


def _commit_after_remote(db: Session, subscriber_id, operation: str, result: GatewayResult) -> GatewayResult:
    """Commit local state after a successful router call.

    If the commit fails the router has already changed; the failure is logged
    and returned so the caller reports it, and the next run reconciles.
    """
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Router %s succeeded for subscriber %s but local commit failed (%s)",
            operation,
            subscriber_id,
            result.message,
        )
        return GatewayResult(
            success=False,
            message=f"{result.message}; local update failed: {exc}",
            error=PersistenceError.code,
        )
    return result


def _call_gateway(operation, target: billing_state.RouterTarget) -> GatewayResult:
    """Run a gateway operation; an exception becomes a failed result."""
    try:
        return operation(target.router_name, target.account)
    except Exception as exc:
        logger.exception(
            "Router %s call for account %s raised", target.router_name, target.account
        )
        return GatewayResult(
            success=False,
            message=str(exc) or exc.__class__.__name__,
            error=RemoteGatewayError.code,
        )


def _suspend_candidate(
    db: Session,
    subscriber_id,
    window: DateWindow,
    run_at: datetime,
    gateway: RouterControlGateway,
) -> tuple[str, dict[str, Any]]:
    subscriber = db.get(Subscriber, subscriber_id)
    pending = Invoices.list_pending_in_window(db, subscriber_id, window.start, window.end)
    if not pending:
        return "skipped", _skip(subscriber, "no_unpaid_invoice_in_grace_period")
    try:
        target = billing_state.resolve_router_target(db, subscriber)
    except ConfigurationGapError as exc:
        logger.warning("Suspension skipped for %s: %s", subscriber_id, exc.message)
        SUSPENSIONS.labels(outcome="configuration_gap").inc()
        return "skipped", _skip(subscriber, ConfigurationGapError.code)

    result = _call_gateway(gateway.disable, target)
    if result.success:
        billing_state.mark_suspended(subscriber, run_at)
        result = _commit_after_remote(db, subscriber_id, "disable", result)
    SUSPENSIONS.labels(outcome="success" if result.success else "failure").inc()
    return "suspended", _entry(subscriber, target, result)


def run_suspension_cycle(
    db: Session,
    run_at: datetime | None = None,
    gateway: RouterControlGateway | None = None,
) -> dict[str, Any]:
    """Disable router accounts of subscribers with unpaid grace-period invoices.

    Does nothing unless run_at falls on the suspension day in the business
    timezone.

    Args:
        db: Database session
        run_at: Reference time for the run (defaults to now)
        gateway: Router control gateway (defaults to MikrotikGateway)
    """
    run_at = as_utc(run_at) or now_utc()
    if not is_suspension_day(run_at):
        logger.info("Suspension run skipped: %s is not a suspension day", business_date(run_at))
        return {
            "run_at": run_at,
            "not_suspension_day": True,
            "run_date": business_date(run_at),
            "next_run_date": next_suspension_date(run_at),
            "suspended": [],
            "skipped": [],
        }

    gateway = gateway or MikrotikGateway(db)
    window = grace_window(run_at)
    candidates = (
        db.query(Subscriber.id, Subscriber.name)
        .filter(Subscriber.billing_status == BillingStatus.unpaid)
        .filter(Subscriber.service_status == ServiceStatus.active)
        .filter(Subscriber.router_account_status != RouterAccountStatus.disabled)
        .order_by(Subscriber.created_at.asc())
        .all()
    )
    summary: dict[str, Any] = {
        "run_at": run_at,
        "not_suspension_day": False,
        "suspended": [],
        "skipped": [],
        "grace_period": window.as_dict(),
        "suspend_date": run_at,
    }

    for subscriber_id, subscriber_name in candidates:
        try:
            bucket, item = _suspend_candidate(db, subscriber_id, window, run_at, gateway)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Suspension failed for subscriber %s", subscriber_id)
            SUSPENSIONS.labels(outcome="failure").inc()
            item = {
                "subscriber_id": subscriber_id,
                "subscriber_name": subscriber_name,
                "success": False,
                "router_name": None,
                "account": None,
                "message": str(exc),
                "error": PersistenceError.code,
            }
            bucket = "suspended"
        summary[bucket].append(item)

    succeeded = sum(1 for entry in summary["suspended"] if entry["success"])
    logger.info(
        "Suspension run at %s: suspended=%d failed=%d skipped=%d",
        run_at.isoformat(),
        succeeded,
        len(summary["suspended"]) - succeeded,
        len(summary["skipped"]),
    )
    return summary


def suspend_one(
    db: Session,
    reference: str,
    gateway: RouterControlGateway | None = None,
) -> dict[str, Any]:
    """Suspend one subscriber immediately, regardless of the calendar.

    Raises:
        SubscriberNotFoundError: reference matches no subscriber
        ConfigurationGapError: subscriber has no resolvable router target
    """
    subscriber = find_by_reference(db, reference)
    target = billing_state.resolve_router_target(db, subscriber)
    gateway = gateway or MikrotikGateway(db)
    result = _call_gateway(gateway.disable, target)
    if result.success:
        billing_state.mark_suspended(subscriber, now_utc())
        result = _commit_after_remote(db, subscriber.id, "disable", result)
    return _entry(subscriber, target, result)


def reinstate_one(
    db: Session,
    reference: str,
    gateway: RouterControlGateway | None = None,
) -> dict[str, Any]:
    """Re-enable one subscriber's router account and mark it paid.

    Raises:
        SubscriberNotFoundError: reference matches no subscriber
        ConfigurationGapError: subscriber has no resolvable router target
    """
    subscriber = find_by_reference(db, reference)
    target = billing_state.resolve_router_target(db, subscriber)
    gateway = gateway or MikrotikGateway(db)
    result = _call_gateway(gateway.enable, target)
    if result.success:
        billing_state.mark_reinstated(subscriber)
        result = _commit_after_remote(db, subscriber.id, "enable", result)
    return _entry(subscriber, target, result)


def check_router_account(
    db: Session,
    subscriber_id: str,
    gateway: RouterControlGateway | None = None,
) -> dict[str, Any]:
    subscriber = get_or_404(db, Subscriber, subscriber_id)
    target = billing_state.resolve_router_target(db, subscriber)
    gateway = gateway or MikrotikGateway(db)
    status = gateway.check_status(target.router_name, target.account)
    data = status.as_dict()
    data.update(
        subscriber_id=subscriber.id,
        router_name=target.router_name,
        account=target.account,
    )
    return data
