# backend/app/core/processor.py

import logging
from typing import Optional

from backend.app.config import settings
from backend.app.core.blob_store import BlobStore, get_blob_store
from backend.app.core.errors import (
    BlobFetchFailed,
    ExtractionFailed,
    JobNotFound,
    JobStageError,
    StaleJobVersion,
    TailoringFailed,
)
from backend.app.core.job_store import JobRecordStore
from backend.app.core.tailoring import TailoringEngine
from backend.app.core.text_extractor import TextExtractor
from backend.app.models.cv_job import utcnow
from backend.app.models.job_models import AttemptOutcome, CVJobRecord, CVJobStatus

logger = logging.getLogger(__name__)


class JobProcessor:
    """Runs one processing attempt of a CV job: fetch -> extract -> tailor.

    Every stage result is persisted on the job row. Stage failures never
    escape ``process``; they become a re-queue or a terminal ``failed``
    depending on the retry budget read back from the row at failure time.
    """

    def __init__(
        self,
        store: Optional[JobRecordStore] = None,
        blob_store: Optional[BlobStore] = None,
        extractor: Optional[TextExtractor] = None,
        engine: Optional[TailoringEngine] = None,
        cas_attempts: Optional[int] = None,
    ):
        self.store = store or JobRecordStore()
        self.blob_store = blob_store or get_blob_store()
        self.extractor = extractor or TextExtractor()
        self.engine = engine or TailoringEngine()
        self.cas_attempts = cas_attempts or settings.STORE_CAS_ATTEMPTS

    def process(self, row_id: str) -> AttemptOutcome:
        job = self.store.claim(row_id)
        if job is None:
            logger.info("Job row %s is not queued; skipping", row_id)
            return AttemptOutcome.SKIPPED
        logger.info("Processing job %s (attempt %d of %d)", job.job_id, job.retry_count + 1, job.max_retries + 1)

        try:
            self._run(job)
        except JobStageError as e:
            return self._record_failure(job, e)
        except Exception as e:
            # Store errors and anything unforeseen still go through the retry budget
            logger.exception("Unexpected error while processing job %s", job.job_id)
            return self._record_failure(job, JobStageError(str(e) or type(e).__name__, cause=e))

        logger.info("Job %s completed successfully", job.job_id)
        return AttemptOutcome.COMPLETED

    def _run(self, job: CVJobRecord) -> None:
        file_bytes = self._fetch(job)
        self.store.update_by_id(job.id, {"progress": 30})

        text = self._extract(job, file_bytes)
        self.store.update_by_id(job.id, {"progress": 50, "extracted_text": text})

        tailored = self._tailor(job, text)
        self.store.update_by_id(job.id, {"progress": 80})

        self.store.update_by_id(job.id, {
            "status": CVJobStatus.COMPLETED,
            "progress": 100,
            "tailored_content": tailored,
            "processing_completed_at": utcnow(),
            "error_message": None,
            "error_kind": None,
        })

    # -------- Stages --------
    def _fetch(self, job: CVJobRecord) -> bytes:
        try:
            return self.blob_store.fetch(job.file_path)
        except BlobFetchFailed:
            raise
        except Exception as e:
            raise BlobFetchFailed(f"Failed to download {job.file_path}: {e}", cause=e) from e

    def _extract(self, job: CVJobRecord, file_bytes: bytes) -> str:
        try:
            return self.extractor.extract(file_bytes, job.file_name)
        except ExtractionFailed:
            raise
        except Exception as e:
            raise ExtractionFailed(f"Failed to extract text from file: {e}", cause=e) from e

    def _tailor(self, job: CVJobRecord, text: str) -> str:
        try:
            return self.engine.tailor(text, job.job_title, job.company_name, job.job_description)
        except TailoringFailed:
            raise
        except Exception as e:
            raise TailoringFailed(f"AI tailoring error: {e}", cause=e) from e

    # -------- Failure path --------
    def _record_failure(self, job: CVJobRecord, error: JobStageError) -> AttemptOutcome:
        try:
            return record_failure(self.store, job, error, self.cas_attempts)
        except Exception:
            logger.exception("Could not record failure of job %s; row left as processing", job.job_id)
            return AttemptOutcome.UNRECORDED


def record_failure(
    store: JobRecordStore,
    job: CVJobRecord,
    error: JobStageError,
    cas_attempts: int,
    abandoned: bool = False,
) -> AttemptOutcome:
    """Re-queue or fail ``job`` depending on the retry budget stored on its row.

    With ``abandoned`` the write only happens while the row is still in the
    attempt that ``job`` was read in (same status and start time); otherwise
    the attempt has moved on and the result is SKIPPED.
    """
    fields, outcome = {}, AttemptOutcome.FAILED
    for _ in range(cas_attempts):
        # Retry budget is read back at failure time, not taken from the claim snapshot
        current = store.read_by_id(job.id)
        if current is None:
            raise JobNotFound(job.id)
        if abandoned and (
            current.status != CVJobStatus.PROCESSING
            or current.processing_started_at != job.processing_started_at
        ):
            return AttemptOutcome.SKIPPED
        fields, outcome = _failure_fields(current, error)
        try:
            store.update_by_id(job.id, fields, expected_version=current.version)
            break
        except StaleJobVersion:
            logger.warning("Job %s changed while recording failure; re-reading", job.job_id)
    else:
        if abandoned:
            return AttemptOutcome.SKIPPED
        store.update_by_id(job.id, fields)

    if outcome is AttemptOutcome.REQUEUED:
        logger.warning(
            "Job %s failed with %s (%s); re-queued, retry %d of %d",
            job.job_id, error.kind, error, fields["retry_count"], job.max_retries,
        )
    else:
        logger.error("Job %s failed with %s (%s); retries exhausted", job.job_id, error.kind, error)
    return outcome


def _failure_fields(current: CVJobRecord, error: JobStageError):
    fields = {
        "error_message": str(error),
        "error_kind": error.kind,
        "processing_completed_at": utcnow(),
    }
    if current.retry_count < current.max_retries:
        fields.update(status=CVJobStatus.QUEUED, retry_count=current.retry_count + 1, progress=0)
        return fields, AttemptOutcome.REQUEUED
    fields.update(status=CVJobStatus.FAILED)
    return fields, AttemptOutcome.FAILED
