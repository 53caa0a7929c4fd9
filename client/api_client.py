# client/api_client.py

import os
import time
from typing import Optional, Dict, Any, Callable
import requests

TERMINAL_STATUSES = ("completed", "failed")

class BackendClient:
    """HTTP client for the trigger API, used by schedulers and upload hooks."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0):
        self.base_url = (base_url or os.getenv("BACKEND_URL") or "http://localhost:8000").rstrip("/")
        self.timeout = timeout

    # -------- Triggers --------
    def process_next(self) -> Dict[str, Any]:
        return self._post("/process-cv-job", {"action": "process_next"})

    def process_specific(self, job_id: str) -> Dict[str, Any]:
        return self._post("/process-cv-job", {"action": "process_specific", "job_id": job_id})

    def retry(self, job_id: str) -> Dict[str, Any]:
        return self._post(f"/jobs/{job_id}/retry", None)

    # -------- Jobs --------
    def create_job(
        self,
        file_path: str,
        file_name: str,
        job_title: Optional[str] = None,
        company_name: Optional[str] = None,
        job_description: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "file_path": file_path,
            "file_name": file_name,
            "job_title": job_title,
            "company_name": company_name,
            "job_description": job_description,
        }
        return self._post("/jobs", payload)

    def job_status(self, job_id: str) -> Dict[str, Any]:
        url = f"{self.base_url}/jobs/{job_id}"
        resp = requests.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def queue_stats(self) -> Dict[str, Any]:
        url = f"{self.base_url}/queue/stats"
        resp = requests.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def _post(self, path: str, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        resp = requests.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    # -------- Convenience: poll with progress callback --------
    def wait_with_progress(
        self,
        job_id: str,
        total_wait: float = 300.0,
        poll_interval: float = 5.0,
        on_tick: Optional[Callable[[float, Dict[str, Any]], None]] = None,
    ) -> Dict[str, Any]:
        """Poll the job row until it completes or fails, or total_wait runs out."""
        elapsed = 0.0
        while elapsed < total_wait:
            res = self.job_status(job_id)
            if on_tick:
                on_tick(elapsed, res)
            if res.get("status") in TERMINAL_STATUSES:
                return res
            time.sleep(poll_interval)
            elapsed += poll_interval
        # Fallback: final status fetch
        return self.job_status(job_id)
