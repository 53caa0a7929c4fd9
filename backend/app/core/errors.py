# backend/app/core/errors.py

from typing import Optional


class PipelineError(Exception):
    """Base class for every error raised by the CV tailoring pipeline."""


class JobStageError(PipelineError):
    """A failure inside one stage of a processing attempt.

    Stage errors never leave the job processor; they are turned into a
    persisted state transition. ``kind`` is stored on the job row so the
    failure class stays visible after the fact.
    """
    kind = "ProcessingError"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class BlobFetchFailed(JobStageError):
    kind = "BlobFetchFailed"


class ExtractionFailed(JobStageError):
    kind = "ExtractionFailed"


class TailoringFailed(JobStageError):
    kind = "TailoringFailed"


class JobNotFound(PipelineError):
    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class JobNotRetryable(PipelineError):
    def __init__(self, job_id: str, status: str):
        super().__init__(f"Job {job_id} is {status}; only failed jobs can be retried")
        self.job_id = job_id
        self.status = status


class StaleJobVersion(PipelineError):
    """A versioned write lost the race against another writer."""

    def __init__(self, row_id: str, expected_version: int):
        super().__init__(f"Job row {row_id} changed since version {expected_version}")
        self.row_id = row_id
        self.expected_version = expected_version


class AttemptAbandoned(JobStageError):
    """An attempt stayed in processing past the stale limit (worker lost or failure unrecorded)."""
    kind = "AttemptAbandoned"
