"""Celery application configuration.

Features:
- Redis as broker and result backend
- Task routing by queue
- Scheduled tasks via Celery Beat
"""

from celery import Celery

from sweeps_ledger.config import get_settings
from sweeps_ledger.tasks.schedules import CELERY_BEAT_SCHEDULE, CELERY_TASK_ROUTES

settings = get_settings()

REDIS_URL = settings.redis_url or "redis://localhost:6379/0"
_REDIS_BASE = REDIS_URL.rsplit("/", 1)[0]

celery_app = Celery(
    "sweeps_ledger",
    broker=f"{_REDIS_BASE}/1",  # DB 1 for broker
    backend=f"{_REDIS_BASE}/2",  # DB 2 for results
    include=[
        "sweeps_ledger.tasks.tournaments",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    timezone="UTC",
    enable_utc=True,

    task_routes=CELERY_TASK_ROUTES,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    result_expires=86400,  # 24 hours

    beat_schedule=CELERY_BEAT_SCHEDULE,

    # A sweep that misses its slot is picked up by the next beat tick
    task_default_retry_delay=30,
    task_max_retries=0,
)
