import time
from datetime import timedelta

import pytest

from backend.app.core.errors import JobNotFound, StaleJobVersion
from backend.app.models.cv_job import utcnow
from backend.app.models.job_models import CVJobStatus


def test_create_defaults(store):
    job = store.create("resumes/a.pdf", "a.pdf", job_title="Data Engineer", max_retries=3)
    assert job.status == CVJobStatus.QUEUED
    assert job.progress == 0
    assert job.retry_count == 0
    assert job.max_retries == 3
    assert job.tailored_content is None
    assert job.job_id and job.id != job.job_id


def test_update_then_read_round_trip(store):
    job = store.create("resumes/a.txt", "a.txt")
    store.update_by_id(job.id, {"progress": 50, "extracted_text": "Jane Doe", "error_message": "boom"})

    again = store.read_by_id(job.id)
    assert again.progress == 50
    assert again.extracted_text == "Jane Doe"
    assert again.error_message == "boom"
    assert again.version == job.version + 1


def test_versioned_update_detects_concurrent_write(store):
    job = store.create("resumes/a.txt", "a.txt")
    store.update_by_id(job.id, {"progress": 30})

    with pytest.raises(StaleJobVersion):
        store.update_by_id(job.id, {"status": CVJobStatus.FAILED}, expected_version=job.version)
    assert store.read_by_id(job.id).status == CVJobStatus.QUEUED


def test_update_unknown_row_raises(store):
    with pytest.raises(JobNotFound):
        store.update_by_id("missing", {"progress": 10})


def test_update_rejects_identity_columns(store):
    job = store.create("resumes/a.txt", "a.txt")
    with pytest.raises(ValueError):
        store.update_by_id(job.id, {"version": 99})


def test_claim_is_exclusive(store):
    job = store.create("resumes/a.txt", "a.txt")

    first = store.claim(job.id)
    assert first.status == CVJobStatus.PROCESSING
    assert first.progress == 10
    assert first.processing_started_at is not None

    assert store.claim(job.id) is None


def test_select_oldest_queued_is_fifo(store):
    first = store.create("resumes/1.txt", "1.txt")
    time.sleep(0.01)
    second = store.create("resumes/2.txt", "2.txt")

    assert store.select_oldest_queued().id == first.id
    store.claim(first.id)
    assert store.select_oldest_queued().id == second.id
    store.claim(second.id)
    assert store.select_oldest_queued() is None


def test_list_and_count_by_status(store):
    a = store.create("resumes/1.txt", "1.txt")
    store.create("resumes/2.txt", "2.txt")
    store.claim(a.id)

    counts = store.count_by_status()
    assert counts[CVJobStatus.QUEUED] == 1
    assert counts[CVJobStatus.PROCESSING] == 1
    assert counts[CVJobStatus.FAILED] == 0

    processing = store.list_jobs(status=CVJobStatus.PROCESSING)
    assert [j.id for j in processing] == [a.id]
    assert len(store.list_jobs()) == 2


def test_select_stale_processing_only_returns_old_attempts(store):
    old = store.create("resumes/1.txt", "1.txt")
    fresh = store.create("resumes/2.txt", "2.txt")
    store.create("resumes/3.txt", "3.txt")
    store.claim(old.id)
    store.claim(fresh.id)
    store.update_by_id(old.id, {"processing_started_at": utcnow() - timedelta(hours=1)})

    stale = store.select_stale_processing(utcnow() - timedelta(minutes=5))

    assert [j.id for j in stale] == [old.id]
