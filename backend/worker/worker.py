# backend/worker/worker.py

from celery import Celery
from celery.signals import worker_ready
from backend.app.config import settings

# Create Celery app
celery_app = Celery("cv_tailoring")
celery_app.config_from_object("backend.celeryconfig")

# Ensure tasks are imported on worker start
import backend.app.core.tasks       # noqa: F401

@worker_ready.connect
def _create_tables_on_ready(sender=None, **kwargs):
    from backend.app.db import init_db
    init_db()

@worker_ready.connect
def _warmup_on_ready(sender=None, **kwargs):
    """
    When the worker starts, auto-warm the active LLM model.
    Sent to the cv queue so it runs on a worker that will do the tailoring.
    """
    if not settings.WARMUP_ENABLED:
        return
    celery_app.send_task("warmup_llm", queue="cv", routing_key="cv")

# Run with:
#   celery -A backend.worker.worker:celery_app worker -Q cv,default --concurrency=4
#   celery -A backend.worker.worker:celery_app beat   (only when QUEUE_POLL_SECONDS > 0)
