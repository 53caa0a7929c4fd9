# backend/celeryconfig.py

import os
from kombu import Queue, Exchange

from backend.app.config import settings

# redis may run in another docker container;
# point CELERY_BROKER_URL at it, e.g. "redis://host.docker.internal:6379/0"

BROKER_URL = os.getenv("CELERY_BROKER_URL", settings.REDIS_URL)
RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", BROKER_URL)

broker_url = BROKER_URL
result_backend = RESULT_BACKEND


task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]
timezone = "UTC"
enable_utc = True

# One CV job at a time per worker process; the pool size bounds concurrency
worker_prefetch_multiplier = 1

# -------- Queues & Routing --------
# Exchanges (direct for simple routing)

default_exchange = Exchange("default", type="direct")
cv_exchange = Exchange("cv", type="direct")

# Declare queues
task_queues = (
    Queue("celery", exchange=default_exchange, routing_key="celery"),  # default
    Queue("default", exchange=default_exchange, routing_key="default"),
    Queue("cv", exchange=cv_exchange, routing_key="cv"),
)

# Default routing if a task has no explicit route
task_default_queue = "default"
task_default_exchange = "default"
task_default_routing_key = "default"

task_routes = {
    "process_cv_job": {"queue": "cv", "routing_key": "cv"},
    "warmup_llm": {"queue": "cv", "routing_key": "cv"},
}

# -------- Periodic drain of the job queue --------
# Re-queued jobs are picked up again by this trigger; leave QUEUE_POLL_SECONDS=0
# when an external scheduler calls /process-cv-job instead.
beat_schedule = {}
if settings.QUEUE_POLL_SECONDS > 0:
    beat_schedule["drain-cv-queue"] = {
        "task": "drain_cv_queue",
        "schedule": settings.QUEUE_POLL_SECONDS,
        "options": {"queue": "default", "routing_key": "default"},
    }
