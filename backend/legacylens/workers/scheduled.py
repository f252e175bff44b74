"""Periodic maintenance tasks run by Celery beat."""

import logging

from legacylens.core.celery import celery_app
from legacylens.core.config import settings
from legacylens.core.database import get_sync_session

logger = logging.getLogger(__name__)


@celery_app.task(name="legacylens.workers.scheduled.requeue_stuck_files")
def requeue_stuck_files(older_than_minutes: int | None = None) -> dict:
    """
    Re-dispatch files stuck in processing.

    A file is stuck when its worker died or its dispatch was lost. The
    processing clock restarts on every re-queue.
    """
    from legacylens.services.processing import ProcessingService

    minutes = older_than_minutes or settings.stuck_processing_minutes
    with get_sync_session() as db:
        requeued = ProcessingService(db).requeue_stuck_files(minutes)

    logger.info(f"Stuck-file sweep re-queued {len(requeued)} file(s)")
    return {"requeued": [str(file_id) for file_id in requeued]}
