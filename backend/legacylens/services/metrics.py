"""Metric containers shared by the extractor, the scorer and the orchestrator."""

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any


class ComplexityLevel(str, Enum):
    """Complexity banding values."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Provenance(str, Enum):
    """Where a metrics record came from."""

    AI = "ai"
    HEURISTIC = "heuristic"


class IssueSeverity(str, Enum):
    """Severity of a raw issue found during analysis."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# Ceiling for any count metric: a file within the upload limit has no more
# lines or constructs than bytes
MAX_METRIC_VALUE = 10 * 1024 * 1024


def split_lines(content: str) -> list[str]:
    """Split file content into numbered lines.

    Only "\n" ends a line (a trailing "\r" is dropped), so form feeds and other
    Unicode separators stay inside their line. A final newline does not start
    an extra line.
    """
    if not content:
        return []
    lines = [line.removesuffix("\r") for line in content.split("\n")]
    if content.endswith("\n"):
        lines.pop()
    return lines


@dataclass
class RawMetrics:
    """Structural metrics extracted from one file. Zero means "not found"."""

    lines_of_code: int = 0
    code_lines: int = 0
    comment_lines: int = 0
    blank_lines: int = 0
    cyclomatic_complexity: int = 1
    nesting_depth: int = 0
    function_count: int = 0
    class_count: int = 0
    loop_count: int = 0
    conditional_count: int = 0
    sql_join_count: int = 0
    dependency_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class CodeIssue:
    """A raw finding attached to an analysis record."""

    line: int
    severity: str
    message: str
    rule: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


RAW_METRIC_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(RawMetrics))

# Canonical key order requested from the model and used for positional recovery
METRIC_KEYS: tuple[str, ...] = RAW_METRIC_FIELDS + ("complexity_level", "risk_score")

CATEGORICAL_METRIC_KEYS: frozenset[str] = frozenset({"complexity_level"})

