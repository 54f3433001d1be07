import time

from isp_billing.celery_app import celery_app
from isp_billing.db import SessionLocal
from isp_billing.logging import get_logger
from isp_billing.metrics import observe_job
from isp_billing.services import billing_automation as billing_automation_service
from isp_billing.services import suspension as suspension_service


@celery_app.task(name="isp_billing.tasks.billing.generate_monthly_invoices")
def generate_monthly_invoices():
    start = time.monotonic()
    status = "success"
    session = SessionLocal()
    logger = get_logger(__name__)
    logger.info("INVOICE_RUN_START")
    try:
        result = billing_automation_service.generate_monthly_invoices(session)
        if result["failures"]:
            status = "partial"
        return {
            "created_count": result["created_count"],
            "skipped": len(result["skipped"]),
            "failures": len(result["failures"]),
        }
    except Exception:
        status = "error"
        session.rollback()
        raise
    finally:
        session.close()
        duration = time.monotonic() - start
        observe_job("generate_monthly_invoices", status, duration)


@celery_app.task(name="isp_billing.tasks.billing.run_suspension_cycle")
def run_suspension_cycle():
    start = time.monotonic()
    status = "success"
    session = SessionLocal()
    logger = get_logger(__name__)
    logger.info("SUSPENSION_RUN_START")
    try:
        result = suspension_service.run_suspension_cycle(session)
        if result.get("not_suspension_day"):
            status = "skipped"
            return {"not_suspension_day": True}
        failed = sum(1 for entry in result["suspended"] if not entry["success"])
        if failed:
            status = "partial"
        return {
            "suspended": len(result["suspended"]) - failed,
            "failed": failed,
            "skipped": len(result["skipped"]),
        }
    except Exception:
        status = "error"
        session.rollback()
        raise
    finally:
        session.close()
        duration = time.monotonic() - start
        observe_job("run_suspension_cycle", status, duration)
