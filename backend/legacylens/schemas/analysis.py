"""Analysis and suggestion schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from legacylens.schemas.common import BaseSchema
from legacylens.services.scoring import get_scoring_service


class TechnicalDebtSchema(BaseModel):
    """Technical debt estimate."""

    score: int
    category: str
    estimated_hours: float


class AnalysisResponse(BaseModel):
    """One analysis record with raw metrics, derived scores and findings."""

    id: UUID
    file_id: UUID
    created_at: datetime

    # Raw metrics
    lines_of_code: int
    code_lines: int
    comment_lines: int
    blank_lines: int
    cyclomatic_complexity: int
    nesting_depth: int
    function_count: int
    class_count: int
    loop_count: int
    conditional_count: int
    sql_join_count: int
    dependency_count: int

    # Derived
    maintainability_index: float
    maintainability_category: str
    risk_score: float
    risk_level: str
    complexity_level: str
    quality_score: int
    technical_debt: TechnicalDebtSchema

    # Provenance
    technology: str
    provenance: str
    analyzer_version: str
    ai_model: str | None = None

    detailed_metrics: dict[str, Any] = Field(default_factory=dict)
    issues_found: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record) -> "AnalysisResponse":
        """Build the response from an AnalysisRecord, adding display bands."""
        scoring = get_scoring_service()
        maintainability_index = float(record.maintainability_index)
        risk_score = float(record.risk_score)
        return cls(
            id=record.id,
            file_id=record.file_id,
            created_at=record.created_at,
            lines_of_code=record.lines_of_code,
            code_lines=record.code_lines,
            comment_lines=record.comment_lines,
            blank_lines=record.blank_lines,
            cyclomatic_complexity=record.cyclomatic_complexity,
            nesting_depth=record.nesting_depth,
            function_count=record.function_count,
            class_count=record.class_count,
            loop_count=record.loop_count,
            conditional_count=record.conditional_count,
            sql_join_count=record.sql_join_count,
            dependency_count=record.dependency_count,
            maintainability_index=maintainability_index,
            maintainability_category=scoring.maintainability_category(maintainability_index),
            risk_score=risk_score,
            risk_level=scoring.risk_level(risk_score).value,
            complexity_level=record.complexity_level,
            quality_score=record.quality_score,
            technical_debt=TechnicalDebtSchema(
                score=record.technical_debt_score,
                category=record.technical_debt_category,
                estimated_hours=float(record.technical_debt_hours),
            ),
            technology=record.technology,
            provenance=record.provenance,
            analyzer_version=record.analyzer_version,
            ai_model=record.ai_model,
            detailed_metrics=record.detailed_metrics or {},
            issues_found=record.issues_found or [],
        )


class SuggestionResponse(BaseSchema):
    """An improvement suggestion."""

    id: UUID
    analysis_id: UUID
    type: str
    severity: str
    category: str
    title: str
    description: str
    explanation: str | None = None
    suggested_fix: str | None = None
    modernization_approach: str | None = None
    start_line: int | None = None
    end_line: int | None = None
    impact_score: float
    effort_estimate: str
    ai_confidence: float
    ai_model: str | None = None


class SuggestionListResponse(BaseModel):
    """Suggestions of one analysis, most severe first."""

    analysis_id: UUID
    data: list[SuggestionResponse]
    total: int
