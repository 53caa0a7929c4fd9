# backend/app/models/cv_job.py

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from backend.app.db import Base
from backend.app.models.job_models import CVJobStatus


def uid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CVJob(Base):
    __tablename__ = "cv_jobs"

    id = Column(String(36), primary_key=True, default=uid)
    job_id = Column(String(64), unique=True, nullable=False, default=uid)  # public token

    # Inputs
    file_path = Column(Text, nullable=False)
    file_name = Column(String(255), nullable=False)
    job_title = Column(String(255), nullable=True)
    company_name = Column(String(255), nullable=True)
    job_description = Column(Text, nullable=True)

    # State
    status = Column(String(20), nullable=False, default=CVJobStatus.QUEUED.value)
    progress = Column(Integer, nullable=False, default=0)
    retry_count = Column(Integer, nullable=False, default=0)
    max_retries = Column(Integer, nullable=False, default=3)
    extracted_text = Column(Text, nullable=True)
    tailored_content = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    error_kind = Column(String(64), nullable=True)  # BlobFetchFailed|ExtractionFailed|TailoringFailed|ProcessingError|AttemptAbandoned

    # Bumped on every write; conditional updates compare against it
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    processing_started_at = Column(DateTime(timezone=True), nullable=True)
    processing_completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_cv_jobs_status_created_at", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<CVJob(id={self.id}, job_id={self.job_id}, status='{self.status}', progress={self.progress})>"
