from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from isp_billing.api.deps import get_router_gateway
from isp_billing.db import get_db
from isp_billing.schemas.billing import (
    InvoiceCreate,
    InvoiceRead,
    InvoiceRunRequest,
    InvoiceRunResponse,
    InvoiceUpdate,
    InvoiceWriteResponse,
    ProrationPreviewRequest,
    ProrationPreviewResponse,
    RouterAccountStatusResponse,
    SubscriberActionRequest,
    SubscriberActionResponse,
    SuspensionRunRequest,
    SuspensionRunResponse,
)
from isp_billing.schemas.common import ErrorResponse, ListResponse
from isp_billing.services import billing as billing_service
from isp_billing.services import billing_automation as billing_automation_service
from isp_billing.services import proration as proration_service
from isp_billing.services import suspension as suspension_service
from isp_billing.services.billing_errors import PersistenceError, RemoteGatewayError
from isp_billing.services.router_gateway import RouterControlGateway

router = APIRouter()

ACTION_ERRORS = {
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def _write_response(result: billing_service.InvoiceWriteResult) -> dict:
    return {
        "invoice": result.invoice,
        "reinstatement": result.reinstatement.as_dict() if result.reinstatement else None,
    }


def _action_response(result: dict) -> dict:
    if result["success"]:
        return result
    if result["error"] == PersistenceError.code:
        raise PersistenceError(result["message"] or "Local update failed", details=result)
    raise RemoteGatewayError(result["message"] or "Router operation failed", details=result)


@router.post(
    "/billing/invoice-runs",
    response_model=InvoiceRunResponse,
    tags=["billing"],
)
def run_invoice_generation(payload: InvoiceRunRequest, db: Session = Depends(get_db)):
    return billing_automation_service.generate_monthly_invoices(db, run_at=payload.run_at)


@router.post(
    "/billing/suspension-runs",
    response_model=SuspensionRunResponse,
    tags=["billing"],
)
def run_suspension(
    payload: SuspensionRunRequest,
    db: Session = Depends(get_db),
    gateway: RouterControlGateway = Depends(get_router_gateway),
):
    return suspension_service.run_suspension_cycle(db, run_at=payload.run_at, gateway=gateway)


@router.post(
    "/billing/suspend",
    response_model=SubscriberActionResponse,
    responses=ACTION_ERRORS,
    tags=["billing"],
)
def suspend_subscriber(
    payload: SubscriberActionRequest,
    db: Session = Depends(get_db),
    gateway: RouterControlGateway = Depends(get_router_gateway),
):
    return _action_response(suspension_service.suspend_one(db, payload.reference, gateway))


@router.post(
    "/billing/reinstate",
    response_model=SubscriberActionResponse,
    responses=ACTION_ERRORS,
    tags=["billing"],
)
def reinstate_subscriber(
    payload: SubscriberActionRequest,
    db: Session = Depends(get_db),
    gateway: RouterControlGateway = Depends(get_router_gateway),
):
    return _action_response(suspension_service.reinstate_one(db, payload.reference, gateway))


@router.post(
    "/billing/proration-preview",
    response_model=ProrationPreviewResponse,
    tags=["billing"],
)
def proration_preview(payload: ProrationPreviewRequest):
    return proration_service.preview_proration(
        payload.activation_date,
        payload.package_price,
        payload.period_unit,
        payload.active_period,
    )


@router.get(
    "/billing/router-accounts/{subscriber_id}/status",
    response_model=RouterAccountStatusResponse,
    tags=["billing"],
)
def router_account_status(
    subscriber_id: str,
    db: Session = Depends(get_db),
    gateway: RouterControlGateway = Depends(get_router_gateway),
):
    return suspension_service.check_router_account(db, subscriber_id, gateway)


@router.post(
    "/invoices",
    response_model=InvoiceWriteResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["invoices"],
)
def create_invoice(
    payload: InvoiceCreate,
    db: Session = Depends(get_db),
    gateway: RouterControlGateway = Depends(get_router_gateway),
):
    return _write_response(billing_service.invoices.create(db, payload, gateway))


@router.get(
    "/invoices/{invoice_id}",
    response_model=InvoiceRead,
    tags=["invoices"],
)
def get_invoice(invoice_id: str, db: Session = Depends(get_db)):
    return billing_service.invoices.get(db, invoice_id)


@router.get(
    "/invoices",
    response_model=ListResponse[InvoiceRead],
    tags=["invoices"],
)
def list_invoices(
    subscriber_id: str | None = None,
    status: str | None = None,
    kind: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return billing_service.invoices.list_response(
        db, subscriber_id, status, kind, order_by, order_dir, limit, offset
    )


@router.patch(
    "/invoices/{invoice_id}",
    response_model=InvoiceWriteResponse,
    tags=["invoices"],
)
def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    gateway: RouterControlGateway = Depends(get_router_gateway),
):
    return _write_response(billing_service.invoices.update(db, invoice_id, payload, gateway))
