"""Source file endpoints: upload, status and analysis requests."""

import logging
from uuid import UUID

from fastapi import APIRouter, File, HTTPException, Query, Response, UploadFile, status

from legacylens.api.deps import Processing
from legacylens.core.exceptions import (
    InputError,
    InvalidStateTransitionError,
    PersistenceError,
    SourceFileNotFoundError,
    UploadTooLargeError,
)
from legacylens.schemas.analysis import AnalysisResponse
from legacylens.schemas.files import AnalyzeResponse, FileStatusResponse, IngestResponse
from legacylens.services.processing import AnalysisRequestOutcome, IngestOutcome

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=IngestResponse, status_code=status.HTTP_201_CREATED)
def upload_file(
    response: Response,
    service: Processing,
    file: UploadFile = File(...),
    auto_analyze: bool = Query(True, description="Queue analysis right after upload"),
) -> IngestResponse:
    """
    Upload a legacy source file.

    Returns 201 for a new file and 200 when identical content was already
    uploaded (the existing file_id is returned and nothing is re-queued).
    """
    content = file.file.read()
    filename = file.filename or "upload"

    try:
        result = service.ingest(filename, content, auto_analyze=auto_analyze)
    except UploadTooLargeError as e:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(e),
        )
    except InputError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except PersistenceError as e:
        logger.error(f"Upload of {filename} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store uploaded file",
        )

    if result.outcome == IngestOutcome.DUPLICATE:
        response.status_code = status.HTTP_200_OK

    return IngestResponse(file_id=result.file_id, outcome=result.outcome)


@router.get("/{file_id}/status", response_model=FileStatusResponse)
def get_file_status(file_id: UUID, service: Processing) -> FileStatusResponse:
    """Current processing status of a file."""
    try:
        state = service.get_status(file_id)
    except SourceFileNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )
    return FileStatusResponse.model_validate(state)


@router.post("/{file_id}/analyze", response_model=AnalyzeResponse, status_code=status.HTTP_202_ACCEPTED)
def analyze_file(
    file_id: UUID,
    response: Response,
    service: Processing,
    force: bool = Query(False, description="Re-analyze even if an analysis exists"),
) -> AnalyzeResponse:
    """
    Request analysis of a file.

    Returns 202 when analysis was queued and 200 with the latest analysis
    when the file was already analyzed and ``force`` is not set.
    """
    try:
        result = service.request_analysis(file_id, force_reanalysis=force)
    except SourceFileNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )
    except InvalidStateTransitionError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="File is already being processed",
        )

    if result.outcome == AnalysisRequestOutcome.ALREADY_ANALYZED:
        response.status_code = status.HTTP_200_OK
        return AnalyzeResponse(
            file_id=result.file_id,
            outcome=result.outcome,
            analysis=AnalysisResponse.from_record(result.analysis),
        )

    return AnalyzeResponse(file_id=result.file_id, outcome=result.outcome)
