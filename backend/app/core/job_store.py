# backend/app/core/job_store.py

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import sessionmaker

from backend.app.config import settings
from backend.app.core.errors import JobNotFound, StaleJobVersion
from backend.app.models.cv_job import CVJob, utcnow
from backend.app.models.job_models import CVJobRecord, CVJobStatus

logger = logging.getLogger(__name__)

# Columns a caller may write through update_by_id; identity and version are managed here
_WRITABLE = {
    "status", "progress", "retry_count", "max_retries",
    "extracted_text", "tailored_content", "error_message", "error_kind",
    "processing_started_at", "processing_completed_at",
    "job_title", "company_name", "job_description",
}


class JobRecordStore:
    """Persisted cv_jobs table.

    Every write goes through a single UPDATE keyed by row id and bumps
    ``version``. Passing ``expected_version`` turns the write into a
    compare-and-swap so concurrent writers to the same row cannot silently
    overwrite each other.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        if session_factory is None:
            from backend.app.db import SessionLocal
            session_factory = SessionLocal
        self.session_factory = session_factory

    # -------- Create / read --------
    def create(
        self,
        file_path: str,
        file_name: str,
        job_title: Optional[str] = None,
        company_name: Optional[str] = None,
        job_description: Optional[str] = None,
        max_retries: Optional[int] = None,
        job_id: Optional[str] = None,
    ) -> CVJobRecord:
        row = CVJob(
            file_path=file_path,
            file_name=file_name,
            job_title=job_title,
            company_name=company_name,
            job_description=job_description,
            status=CVJobStatus.QUEUED.value,
            progress=0,
            retry_count=0,
            max_retries=settings.DEFAULT_MAX_RETRIES if max_retries is None else max_retries,
            created_at=utcnow(),
        )
        if job_id:
            row.job_id = job_id
        with self.session_factory() as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            record = CVJobRecord.model_validate(row)
        logger.info("Queued cv job job_id=%s file=%s", record.job_id, record.file_name)
        return record

    def read_by_id(self, row_id: str) -> Optional[CVJobRecord]:
        with self.session_factory() as session:
            row = session.get(CVJob, row_id)
            return CVJobRecord.model_validate(row) if row is not None else None

    def read_by_job_id(self, job_id: str) -> Optional[CVJobRecord]:
        with self.session_factory() as session:
            row = session.execute(select(CVJob).where(CVJob.job_id == job_id)).scalar_one_or_none()
            return CVJobRecord.model_validate(row) if row is not None else None

    def select_oldest_queued(self) -> Optional[CVJobRecord]:
        stmt = (
            select(CVJob)
            .where(CVJob.status == CVJobStatus.QUEUED.value)
            .order_by(CVJob.created_at.asc(), CVJob.id.asc())
            .limit(1)
        )
        with self.session_factory() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return CVJobRecord.model_validate(row) if row is not None else None

    def select_stale_processing(self, started_before: datetime) -> List[CVJobRecord]:
        stmt = (
            select(CVJob)
            .where(
                CVJob.status == CVJobStatus.PROCESSING.value,
                CVJob.processing_started_at < started_before,
            )
            .order_by(CVJob.processing_started_at.asc())
        )
        with self.session_factory() as session:
            return [CVJobRecord.model_validate(r) for r in session.execute(stmt).scalars()]

    def list_jobs(self, status: Optional[CVJobStatus] = None, limit: int = 50) -> List[CVJobRecord]:
        stmt = select(CVJob).order_by(CVJob.created_at.desc()).limit(limit)
        if status is not None:
            stmt = stmt.where(CVJob.status == CVJobStatus(status).value)
        with self.session_factory() as session:
            return [CVJobRecord.model_validate(r) for r in session.execute(stmt).scalars()]

    def count_by_status(self) -> Dict[CVJobStatus, int]:
        counts = {s: 0 for s in CVJobStatus}
        stmt = select(CVJob.status, func.count()).group_by(CVJob.status)
        with self.session_factory() as session:
            for status, n in session.execute(stmt):
                counts[CVJobStatus(status)] = n
        return counts

    # -------- Writes --------
    def update_by_id(
        self,
        row_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> CVJobRecord:
        unknown = set(fields) - _WRITABLE
        if unknown:
            raise ValueError(f"Not writable on cv_jobs: {sorted(unknown)}")
        values = dict(fields)
        if isinstance(values.get("status"), CVJobStatus):
            values["status"] = values["status"].value

        stmt = update(CVJob).where(CVJob.id == row_id)
        if expected_version is not None:
            stmt = stmt.where(CVJob.version == expected_version)
        stmt = stmt.values(**values, version=CVJob.version + 1).execution_options(synchronize_session=False)

        with self.session_factory() as session:
            result = session.execute(stmt)
            session.commit()
            if result.rowcount != 1:
                if session.get(CVJob, row_id) is None:
                    raise JobNotFound(row_id)
                raise StaleJobVersion(row_id, expected_version)
        return self.read_by_id(row_id)

    def claim(self, row_id: str) -> Optional[CVJobRecord]:
        """Atomically move a queued job to processing.

        Returns the claimed record, or None if the job is not queued anymore
        (another attempt owns it, or it already reached a terminal state).
        """
        stmt = (
            update(CVJob)
            .where(CVJob.id == row_id, CVJob.status == CVJobStatus.QUEUED.value)
            .values(
                status=CVJobStatus.PROCESSING.value,
                progress=10,
                processing_started_at=utcnow(),
                version=CVJob.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        with self.session_factory() as session:
            result = session.execute(stmt)
            session.commit()
            if result.rowcount != 1:
                return None
        return self.read_by_id(row_id)
