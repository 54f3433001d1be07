import logging
import os

from celery.schedules import crontab

from isp_billing.config import settings

logger = logging.getLogger(__name__)


def _env_value(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value


def _env_bool(name: str) -> bool | None:
    raw = _env_value(name)
    if raw is None:
        return None
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str) -> int | None:
    raw = _env_value(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer value for %s: %r", name, raw)
        return None


def _effective_bool(env_key: str, default: bool) -> bool:
    value = _env_bool(env_key)
    return default if value is None else value


def _effective_int(env_key: str, default: int, minimum: int, maximum: int) -> int:
    value = _env_int(env_key)
    if value is None:
        return default
    return min(max(value, minimum), maximum)


def get_celery_config() -> dict:
    broker = (
        _env_value("CELERY_BROKER_URL")
        or _env_value("REDIS_URL")
        or "redis://localhost:6379/0"
    )
    backend = (
        _env_value("CELERY_RESULT_BACKEND")
        or _env_value("REDIS_URL")
        or "redis://localhost:6379/1"
    )
    config: dict[str, object] = {
        "broker_url": broker,
        "result_backend": backend,
        "timezone": settings.business_timezone,
        "enable_utc": True,
    }
    config["beat_max_loop_interval"] = _effective_int(
        "CELERY_BEAT_MAX_LOOP_INTERVAL", 5, 1, 300
    )
    return config


def build_beat_schedule() -> dict:
    """Crontab entries for the monthly invoice run and the suspension run.

    Times are wall-clock in the business timezone (the Celery timezone).
    """
    schedule: dict[str, dict] = {}
    if _effective_bool("INVOICE_RUN_ENABLED", True):
        schedule["generate_monthly_invoices"] = {
            "task": "isp_billing.tasks.billing.generate_monthly_invoices",
            "schedule": crontab(
                minute=_effective_int("INVOICE_RUN_MINUTE", 5, 0, 59),
                hour=_effective_int("INVOICE_RUN_HOUR", 0, 0, 23),
                day_of_month=1,
            ),
        }
    if _effective_bool("SUSPENSION_RUN_ENABLED", True):
        schedule["run_suspension_cycle"] = {
            "task": "isp_billing.tasks.billing.run_suspension_cycle",
            "schedule": crontab(
                minute=_effective_int("SUSPENSION_RUN_MINUTE", 1, 0, 59),
                hour=_effective_int("SUSPENSION_RUN_HOUR", 0, 0, 23),
                day_of_month=settings.suspension_day,
            ),
        }
    return schedule
