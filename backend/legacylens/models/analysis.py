"""Analysis record model."""

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from legacylens.models.base import BaseModelNoUpdate, JSONType

if TYPE_CHECKING:
    from legacylens.models.source_file import SourceFile
    from legacylens.models.suggestion import Suggestion


class AnalysisRecord(BaseModelNoUpdate):
    """Metrics and scores from one analysis run of a source file.

    Rows are append-only: re-analysis inserts a new record.
    """

    __tablename__ = "analyses"
    __table_args__ = (
        CheckConstraint(
            "complexity_level IN ('low', 'medium', 'high', 'critical')",
            name="ck_analyses_complexity_level",
        ),
        CheckConstraint(
            "risk_score >= 0 AND risk_score <= 100",
            name="ck_analyses_risk_score_range",
        ),
        Index("ix_analyses_file_id_created_at", "file_id", "created_at"),
    )

    file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("source_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Raw metrics
    lines_of_code: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    code_lines: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_lines: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blank_lines: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cyclomatic_complexity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    nesting_depth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    function_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    class_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    loop_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    conditional_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sql_join_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dependency_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Derived scores
    maintainability_index: Mapped[float] = mapped_column(
        Numeric(5, 2),
        nullable=False,
    )
    risk_score: Mapped[float] = mapped_column(
        Numeric(5, 2),
        nullable=False,
    )
    complexity_level: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    quality_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    technical_debt_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    technical_debt_category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="low",
    )
    technical_debt_hours: Mapped[float] = mapped_column(
        Numeric(7, 1),
        nullable=False,
        default=0,
    )

    # Provenance
    technology: Mapped[str] = mapped_column(String(20), nullable=False)
    provenance: Mapped[str] = mapped_column(String(20), nullable=False)
    analyzer_version: Mapped[str] = mapped_column(String(20), nullable=False)
    ai_model: Mapped[str | None] = mapped_column(String(100), nullable=True)

    detailed_metrics: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )
    issues_found: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONType,
        nullable=True,
    )

    # Relationships
    source_file: Mapped["SourceFile"] = relationship(
        "SourceFile",
        back_populates="analyses",
    )
    suggestions: Mapped[list["Suggestion"]] = relationship(
        "Suggestion",
        back_populates="analysis",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<AnalysisRecord {self.id} ({self.provenance}, {self.complexity_level})>"
