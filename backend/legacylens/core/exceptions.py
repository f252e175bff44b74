"""Error taxonomy shared by the analysis engine and the processing pipeline.

Only InputError and PersistenceError move a file to the failed state.
ExternalServiceError and ValidationError are absorbed where they occur and
turn into degraded output (heuristic metrics, default values, empty lists).
"""

from uuid import UUID


class InputError(ValueError):
    """Raised when file content cannot be accepted, read, or decoded."""

    def __init__(self, message: str, filename: str | None = None):
        self.filename = filename
        self.message = message
        if filename:
            super().__init__(f"{message} ({filename})")
        else:
            super().__init__(message)


class UploadTooLargeError(InputError):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, size: int, limit: int, filename: str | None = None):
        self.size = size
        self.limit = limit
        super().__init__(
            f"File size {size} bytes exceeds the {limit} byte limit",
            filename=filename,
        )


class ExternalServiceError(Exception):
    """Raised when the generative model is unavailable, slow, or unusable."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")


class ValidationError(ValueError):
    """Raised when a metric is missing or out of range after merging."""

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid metric '{field}'={value!r}: {reason}")


class PersistenceError(Exception):
    """Raised when the file store or the database rejects a write."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class SourceFileNotFoundError(ValueError):
    """Raised when a source file is not found."""

    def __init__(self, file_id: UUID):
        self.file_id = file_id
        super().__init__(f"Source file not found: {file_id}")


class AnalysisNotFoundError(ValueError):
    """Raised when an analysis record is not found."""

    def __init__(self, analysis_id: UUID):
        self.analysis_id = analysis_id
        super().__init__(f"Analysis not found: {analysis_id}")


class InvalidStateTransitionError(ValueError):
    """Raised when an invalid processing state transition is attempted."""

    def __init__(self, current_status: str, new_status: str):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            f"Invalid processing transition: '{current_status}' -> '{new_status}'"
        )
