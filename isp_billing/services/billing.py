"""Invoice ledger.

Invoices record monthly bills, penalties, discounts and refunds for a
subscriber. Creating a payment invoice as paid, or flipping one to paid,
reinstates the subscriber through the router control gateway.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.orm import Session

from isp_billing.models.billing import Invoice, InvoiceKind, InvoiceStatus
from isp_billing.models.subscriber import Subscriber
from isp_billing.schemas.billing import InvoiceCreate, InvoiceUpdate
from isp_billing.services import billing_state
from isp_billing.services.business_calendar import as_utc, now_utc, to_business
from isp_billing.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    get_or_404,
    validate_enum,
)
from isp_billing.services.response import ListResponseMixin
from isp_billing.services.router_gateway import MikrotikGateway, RouterControlGateway

logger = logging.getLogger(__name__)


@dataclass
class InvoiceWriteResult:
    invoice: Invoice
    reinstatement: billing_state.ReinstatementOutcome | None = None


def _receipt_number(invoice: Invoice, paid_at: datetime) -> str:
    return f"RCP-{to_business(paid_at):%Y%m%d}-{invoice.id.hex[:8].upper()}"


def _mark_paid(invoice: Invoice, paid_at: datetime | None = None) -> None:
    paid_at = paid_at or now_utc()
    invoice.status = InvoiceStatus.paid
    invoice.paid_at = paid_at
    if not invoice.receipt_number:
        invoice.receipt_number = _receipt_number(invoice, paid_at)


def _reinstate_on_payment(
    db: Session, invoice: Invoice, subscriber: Subscriber, gateway: RouterControlGateway | None
) -> billing_state.ReinstatementOutcome | None:
    if invoice.kind != InvoiceKind.payment:
        return None
    return billing_state.record_payment(db, subscriber, gateway or MikrotikGateway(db))


class Invoices(ListResponseMixin):
    @staticmethod
    def create(
        db: Session, payload: InvoiceCreate, gateway: RouterControlGateway | None = None
    ) -> InvoiceWriteResult:
        subscriber = get_or_404(db, Subscriber, payload.subscriber_id)
        data = payload.model_dump()
        status = data.pop("status")
        invoice = Invoice(**data)
        invoice.subscriber_name = subscriber.name
        invoice.status = InvoiceStatus.pending
        db.add(invoice)
        db.flush()
        reinstatement = None
        if status == InvoiceStatus.paid:
            _mark_paid(invoice)
            reinstatement = _reinstate_on_payment(db, invoice, subscriber, gateway)
        else:
            invoice.status = status
        db.commit()
        db.refresh(invoice)
        logger.info(
            "Invoice %s created for subscriber %s status=%s amount=%s",
            invoice.id,
            subscriber.id,
            invoice.status.value,
            invoice.amount,
        )
        return InvoiceWriteResult(invoice=invoice, reinstatement=reinstatement)

    @staticmethod
    def get(db: Session, invoice_id: str) -> Invoice:
        return get_or_404(db, Invoice, invoice_id)

    @staticmethod
    def list(
        db: Session,
        subscriber_id: str | None,
        status: str | None,
        kind: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ):
        query = db.query(Invoice)
        if subscriber_id:
            query = query.filter(Invoice.subscriber_id == coerce_uuid(subscriber_id))
        if status:
            query = query.filter(
                Invoice.status == validate_enum(status, InvoiceStatus, "status")
            )
        if kind:
            query = query.filter(Invoice.kind == validate_enum(kind, InvoiceKind, "kind"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": Invoice.created_at, "amount": Invoice.amount, "due_date": Invoice.due_date},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(
        db: Session,
        invoice_id: str,
        payload: InvoiceUpdate,
        gateway: RouterControlGateway | None = None,
    ) -> InvoiceWriteResult:
        invoice = get_or_404(db, Invoice, invoice_id)
        if invoice.status == InvoiceStatus.paid:
            raise HTTPException(status_code=409, detail="Paid invoice cannot be modified")
        data = payload.model_dump(exclude_unset=True)
        new_status = data.pop("status", None)
        for key, value in data.items():
            setattr(invoice, key, value)
        reinstatement = None
        if new_status == InvoiceStatus.paid:
            _mark_paid(invoice)
            reinstatement = _reinstate_on_payment(db, invoice, invoice.subscriber, gateway)
        elif new_status is not None:
            invoice.status = new_status
        db.commit()
        db.refresh(invoice)
        return InvoiceWriteResult(invoice=invoice, reinstatement=reinstatement)

    @staticmethod
    def find_cycle_invoice(
        db: Session,
        subscriber_id,
        kind: InvoiceKind,
        start: datetime,
        end: datetime,
    ) -> Invoice | None:
        return (
            db.query(Invoice)
            .filter(Invoice.subscriber_id == coerce_uuid(subscriber_id))
            .filter(Invoice.kind == kind)
            .filter(Invoice.created_at >= as_utc(start))
            .filter(Invoice.created_at <= as_utc(end))
            .order_by(Invoice.created_at.asc())
            .first()
        )

    @staticmethod
    def list_pending_in_window(
        db: Session, subscriber_id, start: datetime, end: datetime
    ) -> list[Invoice]:
        return (
            db.query(Invoice)
            .filter(Invoice.subscriber_id == coerce_uuid(subscriber_id))
            .filter(Invoice.status == InvoiceStatus.pending)
            .filter(Invoice.created_at >= as_utc(start))
            .filter(Invoice.created_at <= as_utc(end))
            .order_by(Invoice.created_at.asc())
            .all()
        )


invoices = Invoices()
