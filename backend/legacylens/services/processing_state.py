"""ProcessingStateMachine for per-file processing state.

Single source of truth for SourceFile status updates: every transition is
validated, timestamped, committed and then announced on Redis.

    uploaded -> processing -> analyzed | failed
    analyzed | failed -> processing   (re-analysis)
"""

import logging
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from legacylens.core.exceptions import InvalidStateTransitionError, SourceFileNotFoundError
from legacylens.models.source_file import SourceFile

logger = logging.getLogger(__name__)


class FileStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    ANALYZED = "analyzed"
    FAILED = "failed"


# =============================================================================
# State Transition Definitions
# =============================================================================

# Key: current status, Value: set of allowed next statuses
PROCESSING_TRANSITIONS: dict[str, set[str]] = {
    FileStatus.UPLOADED.value: {FileStatus.PROCESSING.value},
    FileStatus.PROCESSING.value: {FileStatus.ANALYZED.value, FileStatus.FAILED.value},
    FileStatus.ANALYZED.value: {FileStatus.PROCESSING.value},
    FileStatus.FAILED.value: {FileStatus.PROCESSING.value},
}

MAX_ERROR_MESSAGE_LENGTH = 500


def is_valid_processing_transition(current_status: str, new_status: str) -> bool:
    """
    Check if a processing status transition is valid.

    Args:
        current_status: Current SourceFile.status value
        new_status: Proposed new status value

    Returns:
        True if transition is valid, False otherwise
    """
    if current_status not in PROCESSING_TRANSITIONS:
        return False
    return new_status in PROCESSING_TRANSITIONS[current_status]


# =============================================================================
# ProcessingStateMachine
# =============================================================================


class ProcessingStateMachine:
    """
    Drives a SourceFile through its processing states.

    Each transition commits the session it was given, so any pending rows
    added by the caller (analysis record, suggestions) are committed in the
    same transaction as the status change.
    """

    def __init__(self, session: Session, publish_events: bool = True):
        self.session = session
        self.publish_events = publish_events

    def _get_file(self, file_id: UUID) -> SourceFile:
        result = self.session.execute(
            select(SourceFile).where(SourceFile.id == file_id)
        )
        source_file = result.scalar_one_or_none()
        if source_file is None:
            raise SourceFileNotFoundError(file_id)
        return source_file

    def _publish_event(
        self,
        source_file: SourceFile,
        analysis_id: UUID | None = None,
    ) -> None:
        """
        Publish the new status to Redis.

        Non-blocking: catches and logs errors without raising.
        """
        if not self.publish_events:
            return

        try:
            from legacylens.core.redis import publish_file_status

            publish_file_status(
                file_id=str(source_file.id),
                status=source_file.status,
                error_message=source_file.error_message,
                analysis_id=str(analysis_id) if analysis_id else None,
            )
        except Exception as e:
            logger.warning(f"Failed to publish status event: {e}")

    def _transition(self, source_file: SourceFile, new_status: FileStatus) -> None:
        current_status = source_file.status
        if not is_valid_processing_transition(current_status, new_status.value):
            logger.warning(
                f"Invalid processing transition attempted: "
                f"'{current_status}' -> '{new_status.value}' for file {source_file.id}"
            )
            raise InvalidStateTransitionError(current_status, new_status.value)
        source_file.status = new_status.value

    def mark_processing(self, file_id: UUID) -> SourceFile:
        """
        Enter processing: set processing_started_at and clear the last error.

        Raises:
            SourceFileNotFoundError: If file not found
            InvalidStateTransitionError: If the file is already processing
        """
        source_file = self._get_file(file_id)
        self._transition(source_file, FileStatus.PROCESSING)

        source_file.processing_started_at = datetime.now(UTC)
        source_file.processing_completed_at = None
        source_file.error_message = None

        self.session.commit()
        logger.info(f"File {file_id} -> processing")
        self._publish_event(source_file)
        return source_file

    def mark_analyzed(self, file_id: UUID, analysis_id: UUID | None = None) -> SourceFile:
        """
        Enter analyzed: set processing_completed_at.

        Raises:
            SourceFileNotFoundError: If file not found
            InvalidStateTransitionError: If the file is not processing
        """
        source_file = self._get_file(file_id)
        self._transition(source_file, FileStatus.ANALYZED)

        source_file.processing_completed_at = datetime.now(UTC)
        source_file.has_errors = False

        self.session.commit()
        logger.info(f"File {file_id} -> analyzed (analysis {analysis_id})")
        self._publish_event(source_file, analysis_id)
        return source_file

    def mark_failed(self, file_id: UUID, error_message: str) -> SourceFile:
        """
        Enter failed: set has_errors, the truncated error and processing_completed_at.

        Raises:
            SourceFileNotFoundError: If file not found
            InvalidStateTransitionError: If the file is not processing
        """
        source_file = self._get_file(file_id)
        self._transition(source_file, FileStatus.FAILED)

        source_file.processing_completed_at = datetime.now(UTC)
        source_file.has_errors = True
        source_file.error_message = error_message[:MAX_ERROR_MESSAGE_LENGTH]

        self.session.commit()
        logger.info(f"File {file_id} -> failed: {source_file.error_message}")
        self._publish_event(source_file)
        return source_file
