# backend/app/core/tasks.py

from celery.utils.log import get_task_logger
from backend.worker.worker import celery_app
from backend.app.core.processor import JobProcessor
from backend.app.core.tailoring import TailoringEngine
from backend.app.config import settings
from backend.app.models.job_models import AttemptOutcome

logger = get_task_logger(__name__)

@celery_app.task(
    name="process_cv_job",
    bind=False,
    # No task-level retries: the job row carries the retry budget
    soft_time_limit=settings.CELERY_SOFT_TIME_LIMIT,
    time_limit=settings.CELERY_HARD_TIME_LIMIT,
    acks_late=False,
)
def process_cv_job(row_id: str):
    logger.info("Starting cv job row=%s", row_id)
    processor = JobProcessor()
    outcome = processor.process(row_id)
    logger.info("Finished cv job row=%s outcome=%s", row_id, outcome.value)
    result = {"row_id": row_id, "outcome": outcome.value}
    if outcome is AttemptOutcome.SKIPPED:
        # Another attempt owns this row (concurrent process_next picked it twice);
        # this trigger passes to the next queued job
        from backend.app.core.async_queue import dispatcher

        result["next"] = dispatcher.process_next()
    return result


@celery_app.task(name="drain_cv_queue", bind=False, soft_time_limit=30, time_limit=60)
def drain_cv_queue():
    """Periodic trigger: dispatch the oldest queued job, if any."""
    from backend.app.core.async_queue import dispatcher

    return dispatcher.process_next()


@celery_app.task(
    name="warmup_llm",
    bind=False,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_jitter=True,
    retry_kwargs={"max_retries": 0},
    soft_time_limit=180,
    time_limit=240,
)
def warmup_llm():
    """
    Pre-load the model into memory via a tiny LiteLLM call.
    """
    engine = TailoringEngine()
    logger.info("Warming up LLM model_id=%s base_url=%s", engine.model_id, settings.LLM_BASE_URL)
    txt = engine.warmup()
    logger.info("Warmup response (truncated): %s", (txt or "")[:120])
    return {"status": "ok", "model": engine.model_id}
