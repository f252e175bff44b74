"""Suggestion model."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from legacylens.models.base import BaseModelNoUpdate

if TYPE_CHECKING:
    from legacylens.models.analysis import AnalysisRecord


class Suggestion(BaseModelNoUpdate):
    """An improvement suggestion derived from one analysis record."""

    __tablename__ = "suggestions"

    analysis_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("analyses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    severity: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    suggested_fix: Mapped[str | None] = mapped_column(Text, nullable=True)
    modernization_approach: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_line: Mapped[int | None] = mapped_column(Integer, nullable=True)
    end_line: Mapped[int | None] = mapped_column(Integer, nullable=True)
    impact_score: Mapped[float] = mapped_column(
        Numeric(3, 2),
        nullable=False,
    )
    effort_estimate: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    ai_confidence: Mapped[float] = mapped_column(
        Numeric(3, 2),
        nullable=False,
    )
    ai_model: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Relationships
    analysis: Mapped["AnalysisRecord"] = relationship(
        "AnalysisRecord",
        back_populates="suggestions",
    )

    def __repr__(self) -> str:
        return f"<Suggestion {self.type}/{self.category} ({self.severity})>"
