"""Tests for the SourceFile processing state machine."""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from legacylens.core.exceptions import InvalidStateTransitionError, SourceFileNotFoundError
from legacylens.services.processing_state import (
    MAX_ERROR_MESSAGE_LENGTH,
    PROCESSING_TRANSITIONS,
    FileStatus,
    ProcessingStateMachine,
    is_valid_processing_transition,
)

ALL_STATUSES = [s.value for s in FileStatus]


def make_file(status: str) -> MagicMock:
    source_file = MagicMock()
    source_file.id = uuid4()
    source_file.status = status
    source_file.error_message = None
    source_file.has_errors = False
    return source_file


def make_session(source_file) -> MagicMock:
    mock_session = MagicMock()
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = source_file
    mock_session.execute.return_value = mock_result
    return mock_session


class TestTransitionTable:
    """The allowed transitions."""

    @given(
        current=st.sampled_from(ALL_STATUSES),
        new=st.sampled_from(ALL_STATUSES),
    )
    @settings(max_examples=100)
    def test_matches_table(self, current, new):
        assert is_valid_processing_transition(current, new) == (new in PROCESSING_TRANSITIONS[current])

    def test_expected_edges(self):
        assert is_valid_processing_transition("uploaded", "processing")
        assert is_valid_processing_transition("processing", "analyzed")
        assert is_valid_processing_transition("processing", "failed")
        assert is_valid_processing_transition("analyzed", "processing")
        assert is_valid_processing_transition("failed", "processing")

    def test_forbidden_edges(self):
        assert not is_valid_processing_transition("uploaded", "analyzed")
        assert not is_valid_processing_transition("processing", "processing")
        assert not is_valid_processing_transition("analyzed", "failed")
        assert not is_valid_processing_transition("unknown", "processing")


class TestStateMachine:
    """Timestamps, error bookkeeping and commits."""

    def test_mark_processing(self):
        source_file = make_file("failed")
        source_file.error_message = "old error"
        session = make_session(source_file)

        ProcessingStateMachine(session, publish_events=False).mark_processing(source_file.id)

        assert source_file.status == "processing"
        assert source_file.processing_started_at is not None
        assert source_file.processing_completed_at is None
        assert source_file.error_message is None
        session.commit.assert_called_once()

    def test_mark_analyzed(self):
        source_file = make_file("processing")
        session = make_session(source_file)

        ProcessingStateMachine(session, publish_events=False).mark_analyzed(source_file.id, uuid4())

        assert source_file.status == "analyzed"
        assert source_file.has_errors is False
        assert source_file.processing_completed_at is not None
        session.commit.assert_called_once()

    def test_mark_failed_truncates_message(self):
        source_file = make_file("processing")
        session = make_session(source_file)

        ProcessingStateMachine(session, publish_events=False).mark_failed(source_file.id, "e" * 2000)

        assert source_file.status == "failed"
        assert source_file.has_errors is True
        assert len(source_file.error_message) == MAX_ERROR_MESSAGE_LENGTH
        assert source_file.processing_completed_at is not None

    def test_invalid_transition_raises_without_commit(self):
        source_file = make_file("uploaded")
        session = make_session(source_file)

        with pytest.raises(InvalidStateTransitionError):
            ProcessingStateMachine(session, publish_events=False).mark_analyzed(source_file.id)

        assert source_file.status == "uploaded"
        session.commit.assert_not_called()

    def test_processing_twice_is_rejected(self):
        source_file = make_file("processing")
        session = make_session(source_file)

        with pytest.raises(InvalidStateTransitionError):
            ProcessingStateMachine(session, publish_events=False).mark_processing(source_file.id)

    def test_missing_file(self):
        session = make_session(None)

        with pytest.raises(SourceFileNotFoundError):
            ProcessingStateMachine(session, publish_events=False).mark_processing(uuid4())


class TestEventPublishing:
    """Status events are published after commit and never fail a transition."""

    @patch("legacylens.core.redis.publish_file_status")
    def test_event_published(self, mock_publish):
        source_file = make_file("processing")
        analysis_id = uuid4()

        ProcessingStateMachine(make_session(source_file)).mark_analyzed(source_file.id, analysis_id)

        mock_publish.assert_called_once_with(
            file_id=str(source_file.id),
            status="analyzed",
            error_message=None,
            analysis_id=str(analysis_id),
        )

    @patch("legacylens.core.redis.publish_file_status")
    def test_publish_failure_is_swallowed(self, mock_publish):
        mock_publish.side_effect = ConnectionError("redis down")
        source_file = make_file("uploaded")

        result = ProcessingStateMachine(make_session(source_file)).mark_processing(source_file.id)

        assert result.status == "processing"
