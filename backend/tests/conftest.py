from types import SimpleNamespace

import pytest

from backend.app.core.blob_store import BlobStore
from backend.app.core.errors import BlobFetchFailed
from backend.app.core.job_store import JobRecordStore
from backend.app.core.processor import JobProcessor
from backend.app.core.text_extractor import TextExtractor
from backend.app.db import init_db, make_engine, make_session_factory


JANE_DOE_RESUME = (
    "Jane Doe\n"
    "Senior Backend Engineer | jane.doe@example.com | Berlin\n\n"
    "Experience\n"
    "- Acme Corp (2019-2024): built Python services handling 2M requests per day, "
    "led migration from cron scripts to Celery workers.\n"
    "- Initech (2016-2019): maintained PostgreSQL reporting pipelines.\n\n"
    "Education\n"
    "BSc Computer Science, TU Berlin\n"
)


class FakeBlobStore(BlobStore):
    def __init__(self, blobs=None):
        self.blobs = dict(blobs or {})
        self.fetched = []

    def fetch(self, path: str) -> bytes:
        self.fetched.append(path)
        if path not in self.blobs:
            raise BlobFetchFailed(f"Failed to download {path}: not found")
        return self.blobs[path]


class FakeTailoringEngine:
    """Plays back a script of results; exceptions in the script are raised."""

    def __init__(self, script=None):
        self.script = list(script or [])
        self.calls = []

    def tailor(self, resume_text, job_title=None, company_name=None, job_description=None):
        self.calls.append((resume_text, job_title, company_name, job_description))
        step = self.script.pop(0) if self.script else None
        if isinstance(step, Exception):
            raise step
        if step is not None:
            return step
        name = resume_text.splitlines()[0]
        return f"# {name}\n\n## Career Profile\nTailored for {job_title or 'the role'}."


class FakeOcrEngine:
    """Context-managed stand-in for OcrEngine that records its lifecycle."""

    instances = []

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.entered = False
        self.closed = False
        self.recognized = []
        FakeOcrEngine.instances.append(self)

    def __enter__(self):
        self.entered = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True

    def recognize(self, file_bytes, file_name):
        self.recognized.append(file_name)
        if self.error is not None:
            raise self.error
        return self.text


class RecordingStore(JobRecordStore):
    """JobRecordStore that remembers the status/progress after every write."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.history = []

    def _record(self, record):
        if record is not None:
            self.history.append((record.status.value, record.progress))
        return record

    def claim(self, row_id):
        return self._record(super().claim(row_id))

    def update_by_id(self, row_id, fields, expected_version=None):
        return self._record(super().update_by_id(row_id, fields, expected_version=expected_version))

    def statuses(self):
        return [status for status, _ in self.history]


@pytest.fixture
def session_factory(tmp_path):
    """Isolated SQLite database per test."""
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return RecordingStore(session_factory)


@pytest.fixture
def blobs():
    return FakeBlobStore({"resumes/jane.txt": JANE_DOE_RESUME.encode("utf-8")})


@pytest.fixture
def make_processor(store, blobs):
    def _make(script=None, extractor=None):
        engine = FakeTailoringEngine(script)
        processor = JobProcessor(
            store=store,
            blob_store=blobs,
            extractor=extractor or TextExtractor(),
            engine=engine,
        )
        return processor, engine
    return _make


@pytest.fixture
def submitted(monkeypatch):
    """Replace the Celery task the dispatcher enqueues; collects submitted row ids."""
    from backend.app.core import async_queue

    calls = []

    def apply_async(args=None, queue=None, routing_key=None, countdown=None):
        calls.append({"args": args, "queue": queue, "countdown": countdown})
        return SimpleNamespace(id=f"task-{len(calls)}")

    monkeypatch.setattr(async_queue, "process_cv_job", SimpleNamespace(apply_async=apply_async))
    return calls


@pytest.fixture(autouse=True)
def _reset_fake_ocr():
    FakeOcrEngine.instances.clear()
    yield


@pytest.fixture
def fake_ocr():
    return FakeOcrEngine


@pytest.fixture
def jane_resume():
    return JANE_DOE_RESUME
