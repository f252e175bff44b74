"""ProcessingService: ingestion, analysis requests and the analysis worker body.

The downstream interface of the analysis engine:
- ingest: validate, fingerprint, deduplicate, store and register a file
- request_analysis: idempotent trigger that dispatches a background task
- run_analysis: the heavy path, executed by the Celery worker
- get_status / get_analysis / latest_analysis / get_suggestions: read side
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from legacylens.core.config import settings
from legacylens.core.exceptions import (
    AnalysisNotFoundError,
    InputError,
    PersistenceError,
    SourceFileNotFoundError,
    UploadTooLargeError,
)
from legacylens.models.analysis import AnalysisRecord
from legacylens.models.source_file import SourceFile
from legacylens.models.suggestion import Suggestion
from legacylens.services.analysis_engine import (
    AnalysisOrchestrator,
    AnalysisResult,
    decode_content,
)
from legacylens.services.file_storage import FileStorage, FileStorageError, get_file_storage
from legacylens.services.fingerprint import fingerprint, storage_key_for
from legacylens.services.processing_state import FileStatus, ProcessingStateMachine
from legacylens.services.suggestion_generator import SuggestionDraft, SuggestionGenerator
from legacylens.services.technology import Technology, detect_technology, file_extension

logger = logging.getLogger(__name__)


class IngestOutcome(str, Enum):
    UPLOADED = "uploaded"
    DUPLICATE = "duplicate"


class AnalysisRequestOutcome(str, Enum):
    QUEUED = "queued"
    ALREADY_ANALYZED = "already_analyzed"


@dataclass
class IngestResult:
    file_id: UUID
    outcome: IngestOutcome


@dataclass
class AnalysisRequestResult:
    file_id: UUID
    outcome: AnalysisRequestOutcome
    analysis: AnalysisRecord | None = None


@dataclass
class ProcessingState:
    """Point-in-time processing status of a file."""

    file_id: UUID
    status: str
    has_errors: bool
    error_message: str | None
    processing_started_at: datetime | None
    processing_completed_at: datetime | None
    latest_analysis_id: UUID | None


# Display order of suggestions: most severe first
SEVERITY_RANK: dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def _dispatch_analysis_task(file_id: UUID) -> None:
    from legacylens.workers.analysis import analyze_file

    analyze_file.delay(str(file_id))


class ProcessingService:
    """Coordinates ingestion, dispatch and persistence of analyses."""

    def __init__(
        self,
        session: Session,
        storage: FileStorage | None = None,
        orchestrator: AnalysisOrchestrator | None = None,
        suggestion_generator: SuggestionGenerator | None = None,
        dispatcher: Callable[[UUID], None] | None = None,
        publish_events: bool = True,
    ):
        self.session = session
        self.storage = storage or get_file_storage()
        self._orchestrator = orchestrator
        self._suggestion_generator = suggestion_generator
        self.dispatcher = dispatcher or _dispatch_analysis_task
        self.state = ProcessingStateMachine(session, publish_events=publish_events)

    @property
    def orchestrator(self) -> AnalysisOrchestrator:
        # Built lazily: ingest and read paths never touch the AI client
        if self._orchestrator is None:
            self._orchestrator = AnalysisOrchestrator()
        return self._orchestrator

    @property
    def suggestion_generator(self) -> SuggestionGenerator:
        if self._suggestion_generator is None:
            self._suggestion_generator = SuggestionGenerator(
                ai_client=self.orchestrator.ai_client,
                ai_model=self.orchestrator.ai_model,
            )
        return self._suggestion_generator

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _get_file(self, file_id: UUID) -> SourceFile:
        result = self.session.execute(
            select(SourceFile).where(SourceFile.id == file_id)
        )
        source_file = result.scalar_one_or_none()
        if source_file is None:
            raise SourceFileNotFoundError(file_id)
        return source_file

    def _find_by_hash(self, content_hash: str) -> SourceFile | None:
        result = self.session.execute(
            select(SourceFile).where(SourceFile.content_hash == content_hash)
        )
        return result.scalar_one_or_none()

    def get_analysis(self, analysis_id: UUID) -> AnalysisRecord:
        """
        Get an analysis record by ID.

        Raises:
            AnalysisNotFoundError: If analysis not found
        """
        result = self.session.execute(
            select(AnalysisRecord).where(AnalysisRecord.id == analysis_id)
        )
        analysis = result.scalar_one_or_none()
        if analysis is None:
            raise AnalysisNotFoundError(analysis_id)
        return analysis

    def latest_analysis(self, file_id: UUID) -> AnalysisRecord | None:
        """Most recent analysis record of a file, or None."""
        result = self.session.execute(
            select(AnalysisRecord)
            .where(AnalysisRecord.file_id == file_id)
            .order_by(AnalysisRecord.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def get_status(self, file_id: UUID) -> ProcessingState:
        """
        Current processing state of a file. Read-only.

        Raises:
            SourceFileNotFoundError: If file not found
        """
        source_file = self._get_file(file_id)
        latest = self.latest_analysis(file_id)
        return ProcessingState(
            file_id=source_file.id,
            status=source_file.status,
            has_errors=source_file.has_errors,
            error_message=source_file.error_message,
            processing_started_at=source_file.processing_started_at,
            processing_completed_at=source_file.processing_completed_at,
            latest_analysis_id=latest.id if latest else None,
        )

    def get_suggestions(self, analysis_id: UUID) -> list[Suggestion]:
        """
        Suggestions of an analysis, most severe and most impactful first.

        Raises:
            AnalysisNotFoundError: If analysis not found
        """
        self.get_analysis(analysis_id)
        result = self.session.execute(
            select(Suggestion).where(Suggestion.analysis_id == analysis_id)
        )
        suggestions = list(result.scalars().all())
        return sorted(
            suggestions,
            key=lambda s: (SEVERITY_RANK.get(s.severity, len(SEVERITY_RANK)), -float(s.impact_score)),
        )

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def _validate_upload(self, filename: str, content: bytes) -> None:
        if not content:
            raise InputError("File is empty", filename=filename)

        if len(content) > settings.max_upload_size_bytes:
            raise UploadTooLargeError(len(content), settings.max_upload_size_bytes, filename=filename)

        extension = file_extension(filename)
        if extension not in settings.allowed_extensions:
            raise InputError(
                f"File type '.{extension}' is not allowed. "
                f"Allowed: {', '.join(settings.allowed_extensions)}",
                filename=filename,
            )

    def ingest(self, filename: str, content: bytes, auto_analyze: bool = True) -> IngestResult:
        """
        Register an uploaded file.

        Identical content resolves to the existing file with outcome
        ``duplicate`` and triggers nothing. A new file is stored, committed
        and, with ``auto_analyze``, moved to processing and dispatched.

        Raises:
            InputError: If the upload is empty, too large or of a disallowed type
            PersistenceError: If the file store rejects the content
        """
        self._validate_upload(filename, content)

        content_hash = fingerprint(content)
        existing = self._find_by_hash(content_hash)
        if existing is not None:
            logger.info(f"Duplicate upload {filename} matches file {existing.id}")
            return IngestResult(file_id=existing.id, outcome=IngestOutcome.DUPLICATE)

        # Lenient decode only for technology sniffing; analysis decodes strictly
        technology = detect_technology(filename, content.decode("utf-8", errors="ignore"))
        storage_key = storage_key_for(content_hash, file_extension(filename))

        try:
            if not self.storage.exists(storage_key):
                self.storage.write(storage_key, content)
        except FileStorageError as e:
            raise PersistenceError("store file", str(e))

        source_file = SourceFile(
            filename=storage_key.rsplit("/", 1)[-1],
            original_filename=filename,
            technology=technology.value,
            content_hash=content_hash,
            storage_key=storage_key,
            size_bytes=len(content),
            status=FileStatus.UPLOADED.value,
            has_errors=False,
        )
        self.session.add(source_file)

        try:
            self.session.commit()
        except IntegrityError:
            # Concurrent upload of the same content won the unique constraint
            self.session.rollback()
            existing = self._find_by_hash(content_hash)
            if existing is None:
                raise PersistenceError("register file", "unique constraint violated without a match")
            logger.info(f"Concurrent duplicate upload {filename} resolved to file {existing.id}")
            return IngestResult(file_id=existing.id, outcome=IngestOutcome.DUPLICATE)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError("register file", str(e))

        logger.info(f"Ingested {filename} as file {source_file.id} ({technology.value}, {len(content)} bytes)")

        if auto_analyze:
            self.state.mark_processing(source_file.id)
            self._dispatch(source_file.id)

        return IngestResult(file_id=source_file.id, outcome=IngestOutcome.UPLOADED)

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    def _dispatch(self, file_id: UUID) -> None:
        """Queue the analysis task. A lost dispatch is recovered by the stuck-file sweep."""
        try:
            self.dispatcher(file_id)
            logger.info(f"Dispatched analysis for file {file_id}")
        except Exception as e:
            logger.error(f"Failed to dispatch analysis for file {file_id}: {e}")

    def request_analysis(self, file_id: UUID, force_reanalysis: bool = False) -> AnalysisRequestResult:
        """
        Request analysis of a file.

        Without ``force_reanalysis`` a file that already has an analysis
        record short-circuits to ``already_analyzed`` and nothing is dispatched.

        Raises:
            SourceFileNotFoundError: If file not found
            InvalidStateTransitionError: If the file is already processing
        """
        self._get_file(file_id)

        if not force_reanalysis:
            latest = self.latest_analysis(file_id)
            if latest is not None:
                logger.debug(f"File {file_id} already analyzed ({latest.id}), not re-queued")
                return AnalysisRequestResult(
                    file_id=file_id,
                    outcome=AnalysisRequestOutcome.ALREADY_ANALYZED,
                    analysis=latest,
                )

        self.state.mark_processing(file_id)
        self._dispatch(file_id)
        return AnalysisRequestResult(file_id=file_id, outcome=AnalysisRequestOutcome.QUEUED)

    async def run_analysis(self, file_id: UUID) -> AnalysisRecord | None:
        """
        Analyze a processing file and persist the record and its suggestions.

        InputError and PersistenceError mark the file failed and return None.
        A file that is no longer processing is skipped.

        Raises:
            SourceFileNotFoundError: If file not found
        """
        source_file = self._get_file(file_id)
        if source_file.status != FileStatus.PROCESSING.value:
            logger.warning(f"Skipping analysis of file {file_id}: status is {source_file.status}")
            return None

        try:
            content = self._load_content(source_file)
        except (InputError, PersistenceError) as e:
            logger.error(f"Analysis of file {file_id} failed: {e}")
            self.state.mark_failed(file_id, str(e))
            return None

        technology = Technology(source_file.technology)
        result = await self.orchestrator.analyze(content, source_file.original_filename, technology)
        drafts = await self.suggestion_generator.generate(
            content,
            result.metrics,
            technology,
            use_ai=result.ai_available,
        )

        try:
            record = self._persist(file_id, result, drafts)
        except PersistenceError as e:
            logger.error(f"Analysis of file {file_id} not saved: {e}; result: {result.summary()}")
            self.state.mark_failed(file_id, str(e))
            return None

        return record

    def _load_content(self, source_file: SourceFile) -> str:
        try:
            raw = self.storage.read(source_file.storage_key)
        except FileStorageError as e:
            raise PersistenceError("read file", str(e))
        if raw is None:
            raise PersistenceError("read file", f"content missing for key {source_file.storage_key}")
        return decode_content(raw, source_file.original_filename)

    def _persist(
        self,
        file_id: UUID,
        result: AnalysisResult,
        drafts: list[SuggestionDraft],
    ) -> AnalysisRecord:
        """Write the record and suggestions and mark the file analyzed, in one commit."""
        metrics = result.metrics
        record = AnalysisRecord(
            file_id=file_id,
            **metrics.to_dict(),
            maintainability_index=round(result.maintainability_index, 2),
            risk_score=round(result.risk_score, 2),
            complexity_level=result.complexity_level,
            quality_score=result.quality_score,
            technical_debt_score=result.technical_debt.score,
            technical_debt_category=result.technical_debt.category,
            technical_debt_hours=result.technical_debt.estimated_hours,
            technology=result.technology.value,
            provenance=result.provenance.value,
            analyzer_version=result.analyzer_version,
            ai_model=result.ai_model,
            detailed_metrics=result.detailed_metrics,
            issues_found=result.issues_found,
        )

        try:
            self.session.add(record)
            self.session.flush()
            for draft in drafts:
                self.session.add(Suggestion(analysis_id=record.id, **draft.to_dict()))
            self.state.mark_analyzed(file_id, record.id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError("save analysis", str(e))

        logger.info(f"Saved analysis {record.id} for file {file_id} with {len(drafts)} suggestions")
        return record

    # -------------------------------------------------------------------------
    # Recovery
    # -------------------------------------------------------------------------

    def find_stuck_files(self, older_than_minutes: int | None = None) -> list[SourceFile]:
        """Files in processing whose processing started before the threshold."""
        minutes = older_than_minutes if older_than_minutes is not None else settings.stuck_processing_minutes
        cutoff = datetime.now(UTC) - timedelta(minutes=minutes)
        result = self.session.execute(
            select(SourceFile).where(
                SourceFile.status == FileStatus.PROCESSING.value,
                SourceFile.processing_started_at < cutoff,
            )
        )
        return list(result.scalars().all())

    def requeue_stuck_files(self, older_than_minutes: int | None = None) -> list[UUID]:
        """Re-dispatch stuck files, restarting their processing clock."""
        requeued: list[UUID] = []
        for source_file in self.find_stuck_files(older_than_minutes):
            source_file.processing_started_at = datetime.now(UTC)
            self.session.commit()
            self._dispatch(source_file.id)
            requeued.append(source_file.id)

        if requeued:
            logger.warning(f"Re-queued {len(requeued)} file(s) stuck in processing")
        return requeued
