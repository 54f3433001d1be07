from fastapi import Depends
from sqlalchemy.orm import Session

from isp_billing.db import get_db
from isp_billing.services.router_gateway import MikrotikGateway, RouterControlGateway


def get_router_gateway(db: Session = Depends(get_db)) -> RouterControlGateway:
    return MikrotikGateway(db)
