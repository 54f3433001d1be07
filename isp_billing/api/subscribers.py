from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from isp_billing.db import get_db
from isp_billing.schemas.common import ListResponse
from isp_billing.schemas.subscriber import (
    AddonItemCreate,
    AddonItemRead,
    AddonItemUpdate,
    SubscriberCreate,
    SubscriberRead,
    SubscriberUpdate,
)
from isp_billing.services import subscriber as subscriber_service

router = APIRouter()


@router.post(
    "/subscribers",
    response_model=SubscriberRead,
    status_code=status.HTTP_201_CREATED,
    tags=["subscribers"],
)
def create_subscriber(payload: SubscriberCreate, db: Session = Depends(get_db)):
    return subscriber_service.subscribers.create(db, payload)


@router.get(
    "/subscribers/{subscriber_id}",
    response_model=SubscriberRead,
    tags=["subscribers"],
)
def get_subscriber(subscriber_id: str, db: Session = Depends(get_db)):
    return subscriber_service.subscribers.get(db, subscriber_id)


@router.get(
    "/subscribers",
    response_model=ListResponse[SubscriberRead],
    tags=["subscribers"],
)
def list_subscribers(
    status: str | None = None,
    billing_status: str | None = None,
    search: str | None = Query(default=None, max_length=160),
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return subscriber_service.subscribers.list_response(
        db, status, billing_status, search, order_by, order_dir, limit, offset
    )


@router.patch(
    "/subscribers/{subscriber_id}",
    response_model=SubscriberRead,
    tags=["subscribers"],
)
def update_subscriber(
    subscriber_id: str, payload: SubscriberUpdate, db: Session = Depends(get_db)
):
    return subscriber_service.subscribers.update(db, subscriber_id, payload)


@router.delete(
    "/subscribers/{subscriber_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["subscribers"],
)
def delete_subscriber(subscriber_id: str, db: Session = Depends(get_db)):
    subscriber_service.subscribers.delete(db, subscriber_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/subscribers/{subscriber_id}/addons",
    response_model=ListResponse[AddonItemRead],
    tags=["addons"],
)
def list_addon_items(
    subscriber_id: str,
    item_type: str | None = None,
    is_active: bool | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return subscriber_service.addon_items.list_response(
        db, subscriber_id, item_type, is_active, limit, offset
    )


@router.post(
    "/subscribers/{subscriber_id}/addons",
    response_model=AddonItemRead,
    status_code=status.HTTP_201_CREATED,
    tags=["addons"],
)
def create_addon_item(
    subscriber_id: str, payload: AddonItemCreate, db: Session = Depends(get_db)
):
    return subscriber_service.addon_items.create(db, subscriber_id, payload)


@router.patch(
    "/addons/{addon_id}",
    response_model=AddonItemRead,
    tags=["addons"],
)
def update_addon_item(addon_id: str, payload: AddonItemUpdate, db: Session = Depends(get_db)):
    return subscriber_service.addon_items.update(db, addon_id, payload)


@router.delete(
    "/addons/{addon_id}",
    response_model=AddonItemRead,
    tags=["addons"],
)
def deactivate_addon_item(addon_id: str, db: Session = Depends(get_db)):
    return subscriber_service.addon_items.deactivate(db, addon_id)
