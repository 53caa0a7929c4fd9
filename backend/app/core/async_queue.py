# backend/app/core/async_queue.py

import logging
from datetime import timedelta
from typing import Dict, Any, List, Optional

from backend.app.config import settings
from backend.app.core.errors import AttemptAbandoned, JobNotFound, JobNotRetryable
from backend.app.core.job_store import JobRecordStore
from backend.app.core.processor import record_failure
from backend.app.core.tasks import process_cv_job
from backend.app.models.cv_job import utcnow
from backend.app.models.job_models import AttemptOutcome, CVJobRecord, CVJobStatus

logger = logging.getLogger(__name__)

class CVJobDispatcher:
    """Selects CV jobs and hands them to the Celery 'cv' queue.

    Nothing here waits for processing: callers get an acknowledgement as soon
    as the task is enqueued. Duplicate dispatches of the same job are safe
    because the worker only proceeds after claiming a queued row.
    """

    def __init__(self, store: Optional[JobRecordStore] = None, stale_after: Optional[float] = None):
        self.store = store or JobRecordStore()
        self.stale_after = settings.STALE_PROCESSING_SECONDS if stale_after is None else stale_after

    def recover_stale(self) -> List[str]:
        """Put jobs stuck in processing back through the retry budget.

        A row stays 'processing' when its worker died mid-attempt or the
        failure could not be written. Past ``stale_after`` seconds no attempt
        can still own it (the hard time limit has killed it), so it is
        re-queued or failed like any other failed attempt.
        """
        cutoff = utcnow() - timedelta(seconds=self.stale_after)
        recovered = []
        for job in self.store.select_stale_processing(cutoff):
            error = AttemptAbandoned(f"Processing attempt abandoned: no result after {int(self.stale_after)}s")
            outcome = record_failure(self.store, job, error, settings.STORE_CAS_ATTEMPTS, abandoned=True)
            if outcome is not AttemptOutcome.SKIPPED:
                logger.warning("Recovered stale job %s as %s", job.job_id, outcome.value)
                recovered.append(job.job_id)
        return recovered

    def _submit(self, job: CVJobRecord, countdown: Optional[float] = None) -> str:
        async_result = process_cv_job.apply_async(
            args=[job.id],
            queue="cv",
            routing_key="cv",
            countdown=countdown,
        )
        logger.info("Dispatched job %s as task %s", job.job_id, async_result.id)
        return async_result.id

    def process_next(self, countdown: Optional[float] = None) -> Dict[str, Any]:
        self.recover_stale()
        job = self.store.select_oldest_queued()
        if job is None:
            return {"message": "No jobs in queue", "job_id": None}
        self._submit(job, countdown)
        return {"message": "Processing started", "job_id": job.job_id}

    def process_specific(self, job_id: str, countdown: Optional[float] = None) -> Dict[str, Any]:
        job = self.store.read_by_job_id(job_id)
        if job is None:
            raise JobNotFound(job_id)
        if job.status == CVJobStatus.PROCESSING and job.job_id in self.recover_stale():
            job = self.store.read_by_job_id(job_id)
        if job.status != CVJobStatus.QUEUED:
            # Acknowledge without enqueuing; the claim would skip it anyway
            logger.info("Job %s is %s; nothing to process", job_id, job.status.value)
            return {"message": f"Job is {job.status.value}", "job_id": job.job_id}
        self._submit(job, countdown)
        return {"message": "Processing started", "job_id": job.job_id}

    def retry_failed(self, job_id: str) -> Dict[str, Any]:
        """Manual retry of a job whose retries ran out: fresh budget, back in the queue."""
        job = self.store.read_by_job_id(job_id)
        if job is None:
            raise JobNotFound(job_id)
        if job.status != CVJobStatus.FAILED:
            raise JobNotRetryable(job_id, job.status.value)
        job = self.store.update_by_id(
            job.id,
            {
                "status": CVJobStatus.QUEUED,
                "retry_count": 0,
                "progress": 0,
                "error_message": None,
                "error_kind": None,
                "processing_started_at": None,
                "processing_completed_at": None,
            },
            expected_version=job.version,
        )
        logger.info("Job %s queued for retry", job_id)
        self._submit(job)
        return {"message": "Job queued for retry", "job_id": job.job_id}

    def get_job(self, job_id: str) -> CVJobRecord:
        job = self.store.read_by_job_id(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def list_jobs(self, status: Optional[CVJobStatus] = None, limit: int = 50) -> List[CVJobRecord]:
        return self.store.list_jobs(status=status, limit=limit)

    def queue_stats(self) -> Dict[CVJobStatus, int]:
        return self.store.count_by_status()


# Singleton
dispatcher = CVJobDispatcher()
