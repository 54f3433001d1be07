from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from isp_billing.config import settings
from isp_billing.metrics import INVOICES_CREATED
from isp_billing.models.billing import Invoice, InvoiceKind, InvoiceStatus
from isp_billing.models.subscriber import (
    AddonItem,
    AddonItemType,
    BillingStatus,
    ServiceStatus,
    Subscriber,
    SubscriberStatus,
)
from isp_billing.services import billing_state
from isp_billing.services.billing import Invoices
from isp_billing.services.business_calendar import (
    as_utc,
    business_date,
    business_midnight,
    first_of_month,
    first_of_next_month,
    invoice_due_at,
    last_of_month,
    month_window,
    now_utc,
)
from isp_billing.services.common import to_decimal
from isp_billing.services.proration import calculate_proration

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value: Decimal) -> str:
    return str(to_decimal(value).quantize(CENTS))


def _billable_addons(db: Session, subscriber: Subscriber) -> tuple[list[AddonItem], list[AddonItem]]:
    items = (
        db.query(AddonItem)
        .filter(AddonItem.subscriber_id == subscriber.id)
        .filter(AddonItem.is_active.is_(True))
        .order_by(AddonItem.created_at.asc())
        .all()
    )
    monthly = [item for item in items if item.item_type == AddonItemType.monthly]
    one_time = [
        item
        for item in items
        if item.item_type == AddonItemType.one_time and not item.is_paid
    ]
    return monthly, one_time


def _addon_line(item: AddonItem) -> tuple[dict, Decimal]:
    total = to_decimal(item.price) * (item.quantity or 1)
    return (
        {
            "name": item.item_name,
            "price": _money(item.price),
            "quantity": item.quantity or 1,
            "total": _money(total),
        },
        total,
    )


def _bill_subscriber(db: Session, subscriber: Subscriber, run_at: datetime) -> Invoice:
    """Build and add the monthly invoice for one subscriber. Flushes, never commits."""
    today = business_date(run_at)
    package_price = to_decimal(subscriber.package_price)
    base = package_price
    package_line: dict[str, Any] = {
        "name": subscriber.package_name,
        "price": _money(package_price),
    }

    if not subscriber.proration_applied and subscriber.active_date:
        proration = calculate_proration(
            subscriber.active_date,
            package_price,
            subscriber.active_period_unit,
            subscriber.active_period,
        )
        if proration.applied:
            base = proration.amount
            package_line["price"] = _money(base)
            package_line["note"] = proration.note
            subscriber.proration_applied = True
            subscriber.proration_amount = proration.amount

    breakdown: dict[str, Any] = {
        "package": package_line,
        "addons": [],
        "one_time_items": [],
        "discount": _money(subscriber.discount),
        "currency": settings.billing_currency,
    }
    total = base
    monthly, one_time = _billable_addons(db, subscriber)
    for item in monthly:
        line, line_total = _addon_line(item)
        breakdown["addons"].append(line)
        total += line_total
    for item in one_time:
        line, line_total = _addon_line(item)
        breakdown["one_time_items"].append(line)
        total += line_total
        item.is_paid = True

    total -= to_decimal(subscriber.discount)
    amount = max(Decimal("0"), total).quantize(CENTS)

    invoice = Invoice(
        subscriber_id=subscriber.id,
        subscriber_name=subscriber.name,
        amount=amount,
        kind=InvoiceKind.payment,
        description=f"Monthly bill {today:%B %Y}",
        status=InvoiceStatus.pending,
        due_date=invoice_due_at(run_at),
        period_from=business_midnight(first_of_month(today)),
        period_to=business_midnight(last_of_month(today)),
        billing_period=f"{today:%Y-%m}",
        breakdown=breakdown,
        created_at=run_at,
    )
    db.add(invoice)

    subscriber.last_billing_date = run_at
    subscriber.next_billing_date = business_midnight(first_of_next_month(today))
    if subscriber.billing_status != BillingStatus.suspended:
        billing_state.transition_billing_status(subscriber, BillingStatus.unpaid)
    db.flush()
    return invoice


def _lock_subscriber(db: Session, subscriber_id) -> Subscriber | None:
    return (
        db.query(Subscriber)
        .filter(Subscriber.id == subscriber_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )


def generate_monthly_invoices(db: Session, run_at: datetime | None = None) -> dict[str, Any]:
    """Generate this month's invoice for every active subscriber.

    Each subscriber is locked, checked, billed and committed in its own
    transaction, so one failure never blocks the rest of the run. A subscriber
    that already has a payment invoice this business month is skipped; the
    unique (subscriber_id, billing_period) index catches a concurrent run that
    slips past the check.

    Args:
        db: Database session
        run_at: Reference time for the run (defaults to now)
    """
    run_at = as_utc(run_at) or now_utc()
    window = month_window(run_at)
    subscriber_ids = [
        row.id
        for row in db.query(Subscriber.id)
        .filter(Subscriber.status == SubscriberStatus.active)
        .filter(Subscriber.service_status == ServiceStatus.active)
        .order_by(Subscriber.created_at.asc())
        .all()
    ]
    summary: dict[str, Any] = {
        "run_at": run_at,
        "created_count": 0,
        "invoices": [],
        "skipped": [],
        "failures": [],
    }

    for subscriber_id in subscriber_ids:
        try:
            subscriber = _lock_subscriber(db, subscriber_id)
            if subscriber is None:
                db.rollback()
                continue
            existing = Invoices.find_cycle_invoice(
                db, subscriber_id, InvoiceKind.payment, window.start, window.end
            )
            if existing:
                db.rollback()
                summary["skipped"].append(
                    {"subscriber_id": subscriber_id, "reason": "already_billed"}
                )
                continue
            invoice = _bill_subscriber(db, subscriber, run_at)
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("Subscriber %s already billed for this period", subscriber_id)
            summary["skipped"].append({"subscriber_id": subscriber_id, "reason": "already_billed"})
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Invoice generation failed for subscriber %s", subscriber_id)
            summary["failures"].append({"subscriber_id": subscriber_id, "error": str(exc)})
            continue
        summary["invoices"].append(invoice)
        summary["created_count"] += 1

    INVOICES_CREATED.inc(summary["created_count"])
    logger.info(
        "Invoice run at %s: created=%d skipped=%d failed=%d",
        run_at.isoformat(),
        summary["created_count"],
        len(summary["skipped"]),
        len(summary["failures"]),
    )
    return summary
