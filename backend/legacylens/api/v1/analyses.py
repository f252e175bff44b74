"""Analysis endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from legacylens.api.deps import Processing
from legacylens.core.exceptions import AnalysisNotFoundError
from legacylens.schemas.analysis import (
    AnalysisResponse,
    SuggestionListResponse,
    SuggestionResponse,
)

router = APIRouter()


@router.get("/{analysis_id}", response_model=AnalysisResponse)
def get_analysis(analysis_id: UUID, service: Processing) -> AnalysisResponse:
    """Get one analysis record."""
    try:
        record = service.get_analysis(analysis_id)
    except AnalysisNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Analysis not found",
        )
    return AnalysisResponse.from_record(record)


@router.get("/{analysis_id}/suggestions", response_model=SuggestionListResponse)
def list_suggestions(analysis_id: UUID, service: Processing) -> SuggestionListResponse:
    """List suggestions of an analysis, most severe first."""
    try:
        suggestions = service.get_suggestions(analysis_id)
    except AnalysisNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Analysis not found",
        )
    return SuggestionListResponse(
        analysis_id=analysis_id,
        data=[SuggestionResponse.model_validate(s) for s in suggestions],
        total=len(suggestions),
    )
