import logging
import logging.config

from isp_billing.config import settings

_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_KEYVALUE_FORMAT = "ts=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)r"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the API process or Celery worker."""
    global _configured
    if _configured:
        return
    fmt = _KEYVALUE_FORMAT if settings.log_format == "keyvalue" else _PLAIN_FORMAT
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": fmt}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                }
            },
            "root": {
                "handlers": ["console"],
                "level": (level or settings.log_level).upper(),
            },
            "loggers": {
                "sqlalchemy.engine": {"level": "WARNING"},
                "routeros_api": {"level": "WARNING"},
            },
        }
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
