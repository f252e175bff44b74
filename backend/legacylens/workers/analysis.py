"""Analysis worker: runs one file through the analysis pipeline."""

import asyncio
import logging
from uuid import UUID

from sqlalchemy import select

from legacylens.core.celery import celery_app
from legacylens.core.database import get_sync_session
from legacylens.models.source_file import SourceFile
from legacylens.services.processing_state import (
    MAX_ERROR_MESSAGE_LENGTH,
    FileStatus,
    ProcessingStateMachine,
)

logger = logging.getLogger(__name__)

# Shown to clients instead of the raw exception text
GENERIC_FAILURE_MESSAGE = "Analysis failed due to an internal error"


def run_async(coro):
    """Run a coroutine to completion from synchronous Celery code."""
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    if loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def _mark_file_failed(file_id: str, error_message: str) -> None:
    """Mark a file failed after an unexpected error, if it is still processing."""
    with get_sync_session() as db:
        result = db.execute(
            select(SourceFile).where(SourceFile.id == UUID(file_id))
        )
        source_file = result.scalar_one_or_none()
        if source_file is None:
            logger.error(f"Cannot mark missing file {file_id} as failed")
            return

        if source_file.status != FileStatus.PROCESSING.value:
            logger.info(
                f"File {file_id} is {source_file.status}, not marking failed"
            )
            return

        ProcessingStateMachine(db).mark_failed(
            source_file.id, error_message[:MAX_ERROR_MESSAGE_LENGTH]
        )


@celery_app.task(bind=True, name="legacylens.workers.analysis.analyze_file")
def analyze_file(self, file_id: str) -> dict:
    """
    Analyze one uploaded file.

    Args:
        file_id: UUID of the source file (as string)

    Returns:
        dict with file_id, status and analysis_id (None when not analyzed)
    """
    from legacylens.services.processing import ProcessingService

    logger.info(f"Starting analysis for file {file_id}")

    try:
        with get_sync_session() as db:
            service = ProcessingService(db)
            record = run_async(service.run_analysis(UUID(file_id)))

        if record is None:
            logger.info(f"No analysis saved for file {file_id}")
            return {"file_id": file_id, "status": "skipped", "analysis_id": None}

        logger.info(f"Analysis {record.id} completed for file {file_id}")
        return {
            "file_id": file_id,
            "status": FileStatus.ANALYZED.value,
            "analysis_id": str(record.id),
        }

    except Exception as e:
        logger.error(f"Analysis failed for file {file_id}: {e}", exc_info=True)
        try:
            _mark_file_failed(file_id, GENERIC_FAILURE_MESSAGE)
        except Exception as mark_error:
            logger.error(f"Could not mark file {file_id} as failed: {mark_error}")
        self.update_state(state="FAILURE", meta={"error": str(e)})
        raise
