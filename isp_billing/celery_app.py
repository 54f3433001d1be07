from celery import Celery
from celery.signals import setup_logging

from isp_billing.logging import configure_logging
from isp_billing.services.scheduler_config import build_beat_schedule, get_celery_config

celery_app = Celery("isp_billing")
celery_app.conf.update(get_celery_config())
celery_app.conf.beat_schedule = build_beat_schedule()
celery_app.autodiscover_tasks(["isp_billing.tasks"])


@setup_logging.connect
def _configure_worker_logging(**_kwargs):
    configure_logging()
