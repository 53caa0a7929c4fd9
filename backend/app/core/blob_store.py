# backend/app/core/blob_store.py

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import requests

from backend.app.config import settings
from backend.app.core.errors import BlobFetchFailed


class BlobStore(ABC):
    """Read-only access to uploaded resume files."""

    @abstractmethod
    def fetch(self, path: str) -> bytes:
        ...


class LocalBlobStore(BlobStore):
    """Blobs stored as files under a root directory."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def fetch(self, path: str) -> bytes:
        target = (self.root / path.lstrip("/")).resolve()
        # Paths come from job rows; never read outside the root
        if self.root not in target.parents and target != self.root:
            raise BlobFetchFailed(f"Blob path escapes store root: {path}")
        try:
            with open(target, "rb") as f:
                return f.read()
        except OSError as e:
            raise BlobFetchFailed(f"Failed to download {path}: {e}", cause=e) from e


class HttpBlobStore(BlobStore):
    """Object storage over HTTP, e.g. ``{base}/storage/v1/object/{bucket}/{path}``."""

    def __init__(self, base_url: str, bucket: str, api_key: Optional[str] = None, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.api_key = api_key
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(path.lstrip('/'))}"

    def fetch(self, path: str) -> bytes:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        try:
            resp = requests.get(self._url(path), headers=headers, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise BlobFetchFailed(f"Failed to download {path}: {e}", cause=e) from e
        return resp.content


def get_blob_store() -> BlobStore:
    backend = settings.BLOB_BACKEND.strip().lower()
    if backend == "local":
        return LocalBlobStore(settings.BLOB_ROOT)
    if backend == "http":
        if not settings.BLOB_BASE_URL:
            raise ValueError("BLOB_BASE_URL is required when BLOB_BACKEND=http")
        return HttpBlobStore(
            settings.BLOB_BASE_URL,
            settings.BLOB_BUCKET,
            api_key=settings.BLOB_API_KEY or None,
            timeout=settings.BLOB_FETCH_TIMEOUT,
        )
    raise ValueError(f"Unsupported BLOB_BACKEND: {settings.BLOB_BACKEND}")
