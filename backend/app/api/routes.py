#backend/app/api/routes.py

from typing import Optional
from fastapi import APIRouter, Depends, Query, HTTPException

from backend.app.core.async_queue import CVJobDispatcher, dispatcher
from backend.app.core.errors import JobNotFound, JobNotRetryable, StaleJobVersion
from backend.app.models.job_models import (
    CVJobStatus,
    CreateJobRequest,
    JobListResponse,
    JobStatusResponse,
    ProcessAck,
    ProcessRequest,
    QueueStatsResponse,
)
from backend.worker.worker import celery_app


api_router = APIRouter()

def get_dispatcher() -> CVJobDispatcher:
    return dispatcher

@api_router.get("/health", tags=["Health"])
def health_check():
    return {"status": "ok"}

# ------------ Trigger entry points ------------
@api_router.post("/process-cv-job", response_model=ProcessAck, tags=["Processing"])
def process_cv_job(request: ProcessRequest, d: CVJobDispatcher = Depends(get_dispatcher)):
    """
    Start processing the oldest queued job, or a specific one.
    Returns as soon as the work is enqueued; poll /jobs/{job_id} for progress.
    """
    if request.action == "process_next":
        return ProcessAck(**d.process_next())
    if not request.job_id:
        raise HTTPException(status_code=400, detail="job_id is required for process_specific")
    try:
        return ProcessAck(**d.process_specific(request.job_id))
    except JobNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

# ------------ Jobs ------------
@api_router.post("/jobs", response_model=JobStatusResponse, status_code=201, tags=["Jobs"])
def create_job(request: CreateJobRequest, d: CVJobDispatcher = Depends(get_dispatcher)):
    """Register an already uploaded resume as a queued job."""
    job = d.store.create(**request.model_dump())
    return JobStatusResponse.from_record(job)

@api_router.get("/jobs", response_model=JobListResponse, tags=["Jobs"])
def list_jobs(
    status: Optional[CVJobStatus] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    d: CVJobDispatcher = Depends(get_dispatcher),
):
    jobs = d.list_jobs(status=status, limit=limit)
    return JobListResponse(jobs=[JobStatusResponse.from_record(j) for j in jobs])

@api_router.get("/jobs/{job_id}", response_model=JobStatusResponse, tags=["Jobs"])
def job_status(job_id: str, d: CVJobDispatcher = Depends(get_dispatcher)):
    try:
        return JobStatusResponse.from_record(d.get_job(job_id))
    except JobNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

@api_router.post("/jobs/{job_id}/retry", response_model=ProcessAck, tags=["Jobs"])
def retry_job(job_id: str, d: CVJobDispatcher = Depends(get_dispatcher)):
    """Give a failed job a fresh retry budget and dispatch it."""
    try:
        return ProcessAck(**d.retry_failed(job_id))
    except JobNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (JobNotRetryable, StaleJobVersion) as e:
        raise HTTPException(status_code=409, detail=str(e))

@api_router.get("/queue/stats", response_model=QueueStatsResponse, tags=["Jobs"])
def queue_stats(d: CVJobDispatcher = Depends(get_dispatcher)):
    counts = d.queue_stats()
    return QueueStatsResponse(counts=counts, total=sum(counts.values()))

# ------------ Warmup ------------
@api_router.post("/warmup", tags=["Health"])
def warmup():
    """
    Enqueue a warmup task for the active model.
    """
    async_res = celery_app.send_task("warmup_llm", queue="cv", routing_key="cv")
    return {"task_id": async_res.id}
