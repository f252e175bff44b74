"""Celery configuration and app."""

from celery import Celery
from celery.schedules import crontab

from legacylens.core.config import settings

celery_app = Celery(
    "legacylens",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task settings
    task_track_started=True,
    task_time_limit=15 * 60,  # 15 minutes max
    task_soft_time_limit=12 * 60,

    # Result settings
    result_expires=3600,

    # Worker settings
    worker_prefetch_multiplier=1,  # One task at a time per worker
    worker_concurrency=4,

    # Task routing
    task_routes={
        "legacylens.workers.analysis.*": {"queue": "analysis"},
        "legacylens.workers.scheduled.*": {"queue": "default"},
    },

    task_default_queue="default",

    # Task acknowledgement
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    beat_schedule={
        "requeue-stuck-files": {
            "task": "legacylens.workers.scheduled.requeue_stuck_files",
            "schedule": crontab(minute="*/10"),
            "options": {"queue": "default"},
        },
    },
)

# Import worker modules explicitly so LiteLLM is not loaded before the pool forks.
import legacylens.workers.analysis  # noqa: F401, E402
import legacylens.workers.scheduled  # noqa: F401, E402
