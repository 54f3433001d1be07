from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy.orm import Session

from isp_billing.models.network import Odp, OdpStatus, Router
from isp_billing.schemas.network import OdpCreate, RouterCreate
from isp_billing.services.common import (
    apply_ordering,
    apply_pagination,
    get_or_404,
    validate_enum,
)
from isp_billing.services.response import ListResponseMixin


class Routers(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: RouterCreate) -> Router:
        if db.query(Router).filter(Router.name == payload.name).first():
            raise HTTPException(status_code=409, detail="Router name already exists")
        router = Router(**payload.model_dump())
        db.add(router)
        db.commit()
        db.refresh(router)
        return router

    @staticmethod
    def get(db: Session, router_id: str) -> Router:
        return get_or_404(db, Router, router_id)

    @staticmethod
    def list(db: Session, is_active: bool | None, limit: int, offset: int):
        query = db.query(Router)
        if is_active is not None:
            query = query.filter(Router.is_active == is_active)
        query = query.order_by(Router.name.asc())
        return apply_pagination(query, limit, offset).all()


class Odps(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: OdpCreate) -> Odp:
        odp = Odp(**payload.model_dump())
        odp.used_slots = 0
        odp.recompute_available_slots()
        db.add(odp)
        db.commit()
        db.refresh(odp)
        return odp

    @staticmethod
    def get(db: Session, odp_id: str) -> Odp:
        return get_or_404(db, Odp, odp_id, detail="ODP not found")

    @staticmethod
    def list(
        db: Session,
        area: str | None,
        status: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ):
        query = db.query(Odp)
        if area:
            query = query.filter(Odp.area == area)
        if status:
            query = query.filter(Odp.status == validate_enum(status, OdpStatus, "status"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"name": Odp.name, "available_slots": Odp.available_slots, "created_at": Odp.created_at},
        )
        return apply_pagination(query, limit, offset).all()


routers = Routers()
odps = Odps()
