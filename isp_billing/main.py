import uuid

from fastapi import FastAPI, Request
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from isp_billing.api.billing import router as billing_router
from isp_billing.api.network import router as network_router
from isp_billing.api.subscribers import router as subscribers_router
from isp_billing.errors import register_error_handlers
from isp_billing.logging import configure_logging

configure_logging()

app = FastAPI(title="ISP Billing API")
register_error_handlers(app)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


for router in (billing_router, subscribers_router, network_router):
    app.include_router(router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
