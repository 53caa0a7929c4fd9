import pytest
from fastapi.testclient import TestClient

from backend.app.api.routes import get_dispatcher
from backend.app.core.async_queue import CVJobDispatcher
from backend.app.main import CVPipelineApp
from backend.app.models.job_models import CVJobStatus


@pytest.fixture
def client(store, submitted):
    app = CVPipelineApp(create_tables=False).app
    app.dependency_overrides[get_dispatcher] = lambda: CVJobDispatcher(store)
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_process_next_with_empty_queue(client, submitted):
    resp = client.post("/process-cv-job", json={"action": "process_next"})
    assert resp.status_code == 200
    assert resp.json() == {"message": "No jobs in queue", "job_id": None}
    assert submitted == []


def test_register_then_process_next(client, submitted):
    created = client.post("/jobs", json={
        "file_path": "resumes/jane.txt",
        "file_name": "jane.txt",
        "job_title": "Data Engineer",
    })
    assert created.status_code == 201
    job_id = created.json()["job_id"]
    assert created.json()["status"] == "queued"

    resp = client.post("/process-cv-job", json={"action": "process_next"})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Processing started", "job_id": job_id}
    assert len(submitted) == 1


def test_process_specific_unknown_job_is_404(client):
    resp = client.post("/process-cv-job", json={"action": "process_specific", "job_id": "nope"})
    assert resp.status_code == 404
    assert "Job not found" in resp.json()["detail"]


def test_process_specific_requires_job_id(client):
    resp = client.post("/process-cv-job", json={"action": "process_specific"})
    assert resp.status_code == 400


def test_invalid_action_is_rejected(client):
    resp = client.post("/process-cv-job", json={"action": "drop_tables"})
    assert resp.status_code == 422


def test_job_status_and_listing(client, store):
    job = store.create("resumes/jane.txt", "jane.txt", job_id="cv-42")
    store.claim(job.id)

    status = client.get("/jobs/cv-42")
    assert status.status_code == 200
    body = status.json()
    assert body["status"] == "processing"
    assert body["progress"] == 10

    listing = client.get("/jobs", params={"status": "processing"})
    assert [j["job_id"] for j in listing.json()["jobs"]] == ["cv-42"]

    assert client.get("/jobs/missing").status_code == 404


def test_retry_endpoint(client, store, submitted):
    job = store.create("resumes/jane.txt", "jane.txt", job_id="cv-7")
    assert client.post("/jobs/cv-7/retry").status_code == 409

    store.update_by_id(job.id, {"status": CVJobStatus.FAILED, "error_message": "AI API error: 500"})
    resp = client.post("/jobs/cv-7/retry")
    assert resp.status_code == 200
    assert store.read_by_id(job.id).status == CVJobStatus.QUEUED
    assert len(submitted) == 1


def test_queue_stats(client, store):
    store.create("resumes/1.txt", "1.txt")
    store.create("resumes/2.txt", "2.txt")
    body = client.get("/queue/stats").json()
    assert body["total"] == 2
    assert body["counts"]["queued"] == 2
    assert body["counts"]["failed"] == 0
