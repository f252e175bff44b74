"""Tests for the Celery analysis and maintenance tasks."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from legacylens.workers.analysis import (
    GENERIC_FAILURE_MESSAGE,
    _mark_file_failed,
    analyze_file,
)
from legacylens.workers.scheduled import requeue_stuck_files


def mock_session_context(mock_get_session, session=None) -> MagicMock:
    session = session or MagicMock()
    mock_get_session.return_value.__enter__ = MagicMock(return_value=session)
    mock_get_session.return_value.__exit__ = MagicMock(return_value=False)
    return session


class TestAnalyzeFileTask:
    """The analyze_file task wraps ProcessingService.run_analysis."""

    @patch("legacylens.services.processing.ProcessingService")
    @patch("legacylens.workers.analysis.get_sync_session")
    def test_returns_analysis_id(self, mock_get_session, mock_service_cls):
        mock_session_context(mock_get_session)
        record = MagicMock(id=uuid4())
        mock_service_cls.return_value.run_analysis = AsyncMock(return_value=record)
        file_id = str(uuid4())

        result = analyze_file(file_id)

        assert result == {"file_id": file_id, "status": "analyzed", "analysis_id": str(record.id)}

    @patch("legacylens.services.processing.ProcessingService")
    @patch("legacylens.workers.analysis.get_sync_session")
    def test_nothing_saved_is_skipped(self, mock_get_session, mock_service_cls):
        mock_session_context(mock_get_session)
        mock_service_cls.return_value.run_analysis = AsyncMock(return_value=None)
        file_id = str(uuid4())

        result = analyze_file(file_id)

        assert result == {"file_id": file_id, "status": "skipped", "analysis_id": None}

    @patch("legacylens.workers.analysis._mark_file_failed")
    @patch("legacylens.services.processing.ProcessingService")
    @patch("legacylens.workers.analysis.get_sync_session")
    def test_unexpected_error_marks_failed_and_reraises(
        self, mock_get_session, mock_service_cls, mock_mark_failed
    ):
        mock_session_context(mock_get_session)
        mock_service_cls.return_value.run_analysis = AsyncMock(
            side_effect=RuntimeError("connection pool exhausted")
        )
        file_id = str(uuid4())

        with patch.object(analyze_file, "update_state") as mock_update_state:
            with pytest.raises(RuntimeError):
                analyze_file(file_id)

        mock_mark_failed.assert_called_once_with(file_id, GENERIC_FAILURE_MESSAGE)
        mock_update_state.assert_called_once()
        assert mock_update_state.call_args.kwargs["state"] == "FAILURE"


class TestMarkFileFailed:
    """Fallback failure marking from the task's error handler."""

    @patch("legacylens.workers.analysis.ProcessingStateMachine")
    @patch("legacylens.workers.analysis.get_sync_session")
    def test_processing_file_is_marked(self, mock_get_session, mock_state_cls):
        source_file = MagicMock(id=uuid4(), status="processing")
        session = mock_session_context(mock_get_session)
        session.execute.return_value.scalar_one_or_none.return_value = source_file

        _mark_file_failed(str(source_file.id), "x" * 900)

        mock_state_cls.return_value.mark_failed.assert_called_once()
        file_id, message = mock_state_cls.return_value.mark_failed.call_args[0]
        assert file_id == source_file.id
        assert len(message) == 500

    @patch("legacylens.workers.analysis.ProcessingStateMachine")
    @patch("legacylens.workers.analysis.get_sync_session")
    def test_finished_file_is_left_alone(self, mock_get_session, mock_state_cls):
        source_file = MagicMock(id=uuid4(), status="failed")
        session = mock_session_context(mock_get_session)
        session.execute.return_value.scalar_one_or_none.return_value = source_file

        _mark_file_failed(str(source_file.id), GENERIC_FAILURE_MESSAGE)

        mock_state_cls.return_value.mark_failed.assert_not_called()

    @patch("legacylens.workers.analysis.ProcessingStateMachine")
    @patch("legacylens.workers.analysis.get_sync_session")
    def test_missing_file_is_ignored(self, mock_get_session, mock_state_cls):
        session = mock_session_context(mock_get_session)
        session.execute.return_value.scalar_one_or_none.return_value = None

        _mark_file_failed(str(uuid4()), GENERIC_FAILURE_MESSAGE)

        mock_state_cls.assert_not_called()


class TestRequeueStuckFilesTask:
    """Beat task re-dispatching stuck files."""

    @patch("legacylens.services.processing.ProcessingService")
    @patch("legacylens.workers.scheduled.get_sync_session")
    def test_reports_requeued_ids(self, mock_get_session, mock_service_cls):
        mock_session_context(mock_get_session)
        stuck = [uuid4(), uuid4()]
        mock_service_cls.return_value.requeue_stuck_files.return_value = stuck

        result = requeue_stuck_files(15)

        assert result == {"requeued": [str(file_id) for file_id in stuck]}
        mock_service_cls.return_value.requeue_stuck_files.assert_called_once_with(15)
