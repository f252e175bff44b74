"""Pydantic schemas for request/response validation."""

from legacylens.schemas.analysis import (
    AnalysisResponse,
    SuggestionListResponse,
    SuggestionResponse,
    TechnicalDebtSchema,
)
from legacylens.schemas.common import BaseSchema
from legacylens.schemas.files import (
    AnalyzeResponse,
    FileStatusResponse,
    IngestResponse,
)

__all__ = [
    # Common
    "BaseSchema",
    # Files
    "IngestResponse",
    "FileStatusResponse",
    "AnalyzeResponse",
    # Analysis
    "AnalysisResponse",
    "TechnicalDebtSchema",
    "SuggestionResponse",
    "SuggestionListResponse",
]
