"""Source file schemas."""

from datetime import datetime
from uuid import UUID

from legacylens.schemas.analysis import AnalysisResponse
from legacylens.schemas.common import BaseSchema
from legacylens.services.processing import AnalysisRequestOutcome, IngestOutcome
from legacylens.services.processing_state import FileStatus


class IngestResponse(BaseSchema):
    """Result of an upload."""

    file_id: UUID
    outcome: IngestOutcome


class FileStatusResponse(BaseSchema):
    """Processing status of a file."""

    file_id: UUID
    status: FileStatus
    has_errors: bool = False
    error_message: str | None = None
    processing_started_at: datetime | None = None
    processing_completed_at: datetime | None = None
    latest_analysis_id: UUID | None = None


class AnalyzeResponse(BaseSchema):
    """Result of an analysis request."""

    file_id: UUID
    outcome: AnalysisRequestOutcome
    analysis: AnalysisResponse | None = None
