"""Heuristic metric extraction.

Deterministic, regex and line based. No parsing: each technology is described
by a PatternSet (see patterns.py) and every count is a sum of pattern matches
over the code lines of the file.
"""

import logging
import re
from dataclasses import dataclass, field

from legacylens.services.metrics import CodeIssue, IssueSeverity, RawMetrics, split_lines
from legacylens.services.patterns import (
    GENERIC_PATTERNS,
    PATTERN_SETS,
    SQL_JOIN_PATTERNS,
    PatternSet,
)
from legacylens.services.technology import Technology

logger = logging.getLogger(__name__)


def _keyword_expression(keyword: str) -> str:
    """Escape a literal keyword, adding word boundaries on word-character ends."""
    expression = re.escape(keyword)
    if keyword[:1].isalnum() or keyword[:1] == "_":
        expression = r"\b" + expression
    if keyword[-1:].isalnum() or keyword[-1:] == "_":
        expression = expression + r"\b"
    return expression


@dataclass
class CompiledPatternSet:
    """A PatternSet with every usable expression compiled."""

    source: PatternSet
    conditionals: list[re.Pattern] = field(default_factory=list)
    loops: list[re.Pattern] = field(default_factory=list)
    functions: list[re.Pattern] = field(default_factory=list)
    classes: list[re.Pattern] = field(default_factory=list)
    dependencies: list[re.Pattern] = field(default_factory=list)
    opening: list[re.Pattern] = field(default_factory=list)
    closing: list[re.Pattern] = field(default_factory=list)


@dataclass
class LineClassification:
    """Blank/comment/code split of a file."""

    total: int
    code: int
    comment: int
    blank: int
    code_lines: list[str]

    @property
    def code_text(self) -> str:
        return "\n".join(self.code_lines)


class HeuristicMetricsExtractor:
    """Extract RawMetrics from source text using per-technology pattern tables."""

    def __init__(self, pattern_sets: dict[Technology, PatternSet] | None = None):
        self._pattern_sets = pattern_sets if pattern_sets is not None else PATTERN_SETS
        self._compiled: dict[Technology, CompiledPatternSet] = {}
        self._sql_join_patterns = self._compile_all(SQL_JOIN_PATTERNS, flags=re.IGNORECASE)

    # -------------------------------------------------------------------------
    # Pattern compilation
    # -------------------------------------------------------------------------

    def _compile_all(
        self,
        sources: tuple[str, ...],
        literal: bool = False,
        flags: int = 0,
    ) -> list[re.Pattern]:
        """Compile expressions, skipping (and logging) any that fail."""
        compiled: list[re.Pattern] = []
        for source in sources:
            expression = _keyword_expression(source) if literal else source
            try:
                compiled.append(re.compile(expression, flags | re.MULTILINE))
            except re.error as e:
                logger.warning(f"Skipping invalid pattern {source!r}: {e}")
        return compiled

    def _get_compiled(self, technology: Technology) -> CompiledPatternSet:
        if technology not in self._compiled:
            pattern_set = self._pattern_sets.get(technology, GENERIC_PATTERNS)
            keyword_flags = re.IGNORECASE if pattern_set.case_insensitive_keywords else 0
            self._compiled[technology] = CompiledPatternSet(
                source=pattern_set,
                conditionals=(
                    self._compile_all(pattern_set.conditional_keywords, literal=True, flags=keyword_flags)
                    + self._compile_all(pattern_set.conditional_patterns)
                ),
                loops=(
                    self._compile_all(pattern_set.loop_keywords, literal=True, flags=keyword_flags)
                    + self._compile_all(pattern_set.loop_patterns)
                ),
                functions=self._compile_all(pattern_set.function_patterns),
                classes=self._compile_all(pattern_set.class_patterns),
                dependencies=self._compile_all(pattern_set.dependency_patterns),
                opening=self._compile_all(pattern_set.opening_patterns),
                closing=self._compile_all(pattern_set.closing_patterns),
            )
        return self._compiled[technology]

    # -------------------------------------------------------------------------
    # Extraction
    # -------------------------------------------------------------------------

    def extract(self, content: str, technology: Technology) -> RawMetrics:
        """Extract structural metrics from file content.

        Every field is populated; absent constructs count as zero and the
        cyclomatic complexity is conditionals + loops + 1.
        """
        compiled = self._get_compiled(technology)
        lines = self.classify_lines(content, technology)
        code_text = lines.code_text

        conditional_count = self._count(compiled.conditionals, code_text)
        loop_count = self._count(compiled.loops, code_text)

        metrics = RawMetrics(
            lines_of_code=lines.total,
            code_lines=lines.code,
            comment_lines=lines.comment,
            blank_lines=lines.blank,
            cyclomatic_complexity=conditional_count + loop_count + 1,
            nesting_depth=self.nesting_depth(lines.code_lines, technology),
            function_count=self._count(compiled.functions, code_text),
            class_count=self._count(compiled.classes, code_text),
            loop_count=loop_count,
            conditional_count=conditional_count,
            sql_join_count=self._count(self._sql_join_patterns, code_text),
            dependency_count=self._count(compiled.dependencies, code_text),
        )
        logger.debug(f"Heuristic metrics for {technology.value}: {metrics}")
        return metrics

    def classify_lines(self, content: str, technology: Technology) -> LineClassification:
        """Split lines into blank, comment and code.

        Block comments are tracked with an "inside comment" flag holding the
        expected end marker.
        """
        pattern_set = self._get_compiled(technology).source
        lines = split_lines(content)

        code = comment = blank = 0
        code_lines: list[str] = []
        block_end: str | None = None

        for line in lines:
            stripped = line.strip()

            if block_end is not None:
                comment += 1
                if block_end in stripped:
                    block_end = None
                continue

            if not stripped:
                blank += 1
                continue

            opened = next(
                ((start, end) for start, end in pattern_set.block_comments if stripped.startswith(start)),
                None,
            )
            if opened is not None:
                start, end = opened
                comment += 1
                if end not in stripped[len(start):]:
                    block_end = end
                continue

            if any(stripped.startswith(marker) for marker in pattern_set.line_comment_markers):
                comment += 1
                continue

            code += 1
            code_lines.append(line)
            block_end = self._trailing_block_start(stripped, pattern_set)

        return LineClassification(
            total=len(lines),
            code=code,
            comment=comment,
            blank=blank,
            code_lines=code_lines,
        )

    def _trailing_block_start(self, stripped: str, pattern_set: PatternSet) -> str | None:
        """End marker of a block comment opened after code on the same line."""
        for start, end in pattern_set.block_comments:
            # POD directives only open at the start of a line
            if start.startswith("="):
                continue
            position = stripped.find(start)
            if position > 0 and end not in stripped[position + len(start):]:
                return end
        return None

    def nesting_depth(self, code_lines: list[str], technology: Technology) -> int:
        """Maximum nesting depth over the given lines.

        Opening and closing matches are applied in the order they appear on
        each line. Depth floors at zero, so stray closers never go negative.
        """
        compiled = self._get_compiled(technology)
        depth = 0
        max_depth = 0

        for line in code_lines:
            events = [(m.start(), 1) for p in compiled.opening for m in p.finditer(line)]
            events.extend((m.start(), -1) for p in compiled.closing for m in p.finditer(line))
            for _, delta in sorted(events):
                depth = max(0, depth + delta)
                max_depth = max(max_depth, depth)

        return max_depth

    @staticmethod
    def _count(patterns: list[re.Pattern], text: str) -> int:
        return sum(1 for pattern in patterns for _ in pattern.finditer(text))


# =============================================================================
# Basic issues
# =============================================================================

LONG_FUNCTION_LINES = 50
HIGH_COMPLEXITY = 20
DEEP_NESTING = 5
MIN_LINES_FOR_COMMENT_CHECK = 50
MIN_COMMENT_RATIO = 0.1


def find_basic_issues(metrics: RawMetrics) -> list[CodeIssue]:
    """Technology-independent issues derived from the metrics alone."""
    issues: list[CodeIssue] = []

    if metrics.function_count > 0 and metrics.code_lines / metrics.function_count > LONG_FUNCTION_LINES:
        issues.append(CodeIssue(
            line=0,
            severity=IssueSeverity.WARNING.value,
            message="Functions are too long on average. Consider refactoring.",
            rule="refactoring",
        ))

    if metrics.cyclomatic_complexity > HIGH_COMPLEXITY:
        issues.append(CodeIssue(
            line=0,
            severity=IssueSeverity.WARNING.value,
            message="Code has high cyclomatic complexity. Consider simplifying logic.",
            rule="complexity",
        ))

    if metrics.nesting_depth > DEEP_NESTING:
        issues.append(CodeIssue(
            line=0,
            severity=IssueSeverity.WARNING.value,
            message="Code has deep nesting. Consider refactoring to reduce nesting depth.",
            rule="nesting",
        ))

    if (
        metrics.lines_of_code > MIN_LINES_FOR_COMMENT_CHECK
        and metrics.comment_lines / metrics.lines_of_code < MIN_COMMENT_RATIO
    ):
        issues.append(CodeIssue(
            line=0,
            severity=IssueSeverity.INFO.value,
            message="Code has low comment ratio. Consider adding more comments.",
            rule="documentation",
        ))

    return issues


_extractor: HeuristicMetricsExtractor | None = None


def get_heuristic_extractor() -> HeuristicMetricsExtractor:
    """Get the shared extractor (compiled patterns are cached per technology)."""
    global _extractor
    if _extractor is None:
        _extractor = HeuristicMetricsExtractor()
    return _extractor
