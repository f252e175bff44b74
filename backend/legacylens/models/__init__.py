"""SQLAlchemy models."""

from legacylens.models.analysis import AnalysisRecord
from legacylens.models.source_file import SourceFile
from legacylens.models.suggestion import Suggestion

__all__ = [
    "SourceFile",
    "AnalysisRecord",
    "Suggestion",
]
