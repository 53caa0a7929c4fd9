
#backend/app/models/job_models.py

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

class CVJobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

class AttemptOutcome(str, Enum):
    """What one processing attempt did to its job."""
    COMPLETED = "completed"
    REQUEUED = "requeued"
    FAILED = "failed"      # retries exhausted
    SKIPPED = "skipped"    # job was not claimable (owned elsewhere or terminal)
    UNRECORDED = "unrecorded"  # the failure could not be written back

class CVJobRecord(BaseModel):
    """Detached snapshot of a cv_jobs row."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    job_id: str
    file_path: str
    file_name: str
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    job_description: Optional[str] = None
    status: CVJobStatus
    progress: int = 0
    retry_count: int = 0
    max_retries: int = 3
    extracted_text: Optional[str] = None
    tailored_content: Optional[str] = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    version: int = 1
    created_at: Optional[datetime] = None
    processing_started_at: Optional[datetime] = None
    processing_completed_at: Optional[datetime] = None

class CreateJobRequest(BaseModel):
    file_path: str = Field(..., description="Path of the uploaded resume in the blob store")
    file_name: str = Field(..., description="Original file name; the extension selects the extraction path")
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    job_description: Optional[str] = None
    max_retries: Optional[int] = Field(default=None, ge=0, le=10)

class ProcessRequest(BaseModel):
    action: Literal["process_next", "process_specific"]
    job_id: Optional[str] = Field(default=None, description="Public job id, required for process_specific")

class ProcessAck(BaseModel):
    message: str
    job_id: Optional[str] = None

class JobStatusResponse(BaseModel):
    job_id: str
    status: CVJobStatus
    progress: int
    retry_count: int
    max_retries: int
    file_name: str
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    tailored_content: Optional[str] = None
    created_at: Optional[datetime] = None
    processing_started_at: Optional[datetime] = None
    processing_completed_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: CVJobRecord) -> "JobStatusResponse":
        return cls(**record.model_dump(include=set(cls.model_fields)))

class JobListResponse(BaseModel):
    jobs: List[JobStatusResponse]

class QueueStatsResponse(BaseModel):
    counts: Dict[CVJobStatus, int]
    total: int
