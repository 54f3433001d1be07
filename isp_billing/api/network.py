from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from isp_billing.db import get_db
from isp_billing.schemas.common import ListResponse
from isp_billing.schemas.network import OdpCreate, OdpRead, RouterCreate, RouterRead
from isp_billing.services import network as network_service

router = APIRouter()


@router.post(
    "/routers",
    response_model=RouterRead,
    status_code=status.HTTP_201_CREATED,
    tags=["routers"],
)
def create_router(payload: RouterCreate, db: Session = Depends(get_db)):
    return network_service.routers.create(db, payload)


@router.get("/routers/{router_id}", response_model=RouterRead, tags=["routers"])
def get_router(router_id: str, db: Session = Depends(get_db)):
    return network_service.routers.get(db, router_id)


@router.get("/routers", response_model=ListResponse[RouterRead], tags=["routers"])
def list_routers(
    is_active: bool | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return network_service.routers.list_response(db, is_active, limit, offset)


@router.post(
    "/odps",
    response_model=OdpRead,
    status_code=status.HTTP_201_CREATED,
    tags=["odps"],
)
def create_odp(payload: OdpCreate, db: Session = Depends(get_db)):
    return network_service.odps.create(db, payload)


@router.get("/odps/{odp_id}", response_model=OdpRead, tags=["odps"])
def get_odp(odp_id: str, db: Session = Depends(get_db)):
    return network_service.odps.get(db, odp_id)


@router.get("/odps", response_model=ListResponse[OdpRead], tags=["odps"])
def list_odps(
    area: str | None = None,
    status: str | None = None,
    order_by: str = Query(default="name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return network_service.odps.list_response(
        db, area, status, order_by, order_dir, limit, offset
    )
