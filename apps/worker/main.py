"""
Celery worker entry point.

Runs the challenge service's scheduled jobs (streak resets, premium
expiry). The task code lives in the API package mounted at /api.
"""
import logging
import sys

from celery.signals import worker_ready

sys.path.insert(0, '/api')

from core.logging import setup_logging  # noqa: E402
from tasks import celery_app  # noqa: E402

setup_logging()
logger = logging.getLogger("worker")

celery_app.autodiscover_tasks(['tasks'])


@worker_ready.connect
def log_schedule(sender=None, **kwargs):
    jobs = sorted(celery_app.conf.beat_schedule or {})
    logger.info(f"Worker ready; scheduled jobs: {', '.join(jobs) or 'none'}")


@celery_app.task(name="worker.health_check")
def health_check():
    return {"status": "ok"}
