"""Analysis orchestrator.

Chooses between the AI-assisted and the heuristic extraction path, merges
and validates the result, runs the AI sub-scans and assembles everything
that is persisted for one analysis.

Failure semantics: only InputError (undecodable content) propagates. Every
AI failure degrades to heuristics or empty sub-scan output and is logged at
warning level.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from legacylens.core.config import settings
from legacylens.core.exceptions import InputError, ValidationError
from legacylens.services.heuristic_extractor import (
    HeuristicMetricsExtractor,
    get_heuristic_extractor,
)
from legacylens.services.llm_gateway import AIClient, get_llm_gateway
from legacylens.services.metrics import (
    MAX_METRIC_VALUE,
    METRIC_KEYS,
    RAW_METRIC_FIELDS,
    CodeIssue,
    IssueSeverity,
    Provenance,
    RawMetrics,
)
from legacylens.services.prompts import (
    METRICS_EXTRACTION_PROMPT,
    SECURITY_SCAN_PROMPT,
    refactoring_scan_prompt,
)
from legacylens.services.response_recovery import (
    AIResponseRecoveryParser,
    get_recovery_parser,
)
from legacylens.services.scoring import ScoringService, TechnicalDebt, get_scoring_service
from legacylens.services.technology import Technology, detect_technology
from legacylens.services.technology_insights import extract_detailed_metrics, find_issues

logger = logging.getLogger(__name__)

ANALYZER_VERSION = "1.0.0"

_LINE_ISSUE = re.compile(r"^Line\s+(\d+):\s+(.+)$", re.IGNORECASE)


@dataclass
class LineIssue:
    """One finding from a line-numbered model answer."""

    line: int
    issue: str


@dataclass
class AnalysisResult:
    """Everything the orchestrator produces for one file."""

    metrics: RawMetrics
    maintainability_index: float
    risk_score: float
    complexity_level: str
    quality_score: int
    technical_debt: TechnicalDebt
    technology: Technology
    provenance: Provenance
    analyzer_version: str = ANALYZER_VERSION
    detailed_metrics: dict[str, Any] = field(default_factory=dict)
    issues_found: list[dict[str, Any]] = field(default_factory=list)
    ai_model: str | None = None
    ai_available: bool = False

    def summary(self) -> dict[str, Any]:
        """Compact view used in diagnostics logs."""
        return {
            "technology": self.technology.value,
            "provenance": self.provenance.value,
            "cyclomatic_complexity": self.metrics.cyclomatic_complexity,
            "lines_of_code": self.metrics.lines_of_code,
            "maintainability_index": round(self.maintainability_index, 2),
            "risk_score": round(self.risk_score, 2),
            "complexity_level": self.complexity_level,
            "issues": len(self.issues_found),
        }


def decode_content(raw: bytes, filename: str | None = None) -> str:
    """Decode file bytes as UTF-8 (optional BOM).

    Raises:
        InputError: If the bytes are not valid UTF-8
    """
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InputError(f"Content is not valid UTF-8 at byte {e.start}", filename=filename)


def parse_line_issues(text: str) -> list[LineIssue]:
    """Parse "Line N: description" answers.

    Lines without the prefix become line 0; blank lines are skipped.
    """
    issues: list[LineIssue] = []
    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue
        match = _LINE_ISSUE.match(line)
        if match:
            issues.append(LineIssue(line=int(match.group(1)), issue=match.group(2).strip()))
        else:
            issues.append(LineIssue(line=0, issue=line))
    return issues


class AnalysisOrchestrator:
    """Dual-path metric extraction plus derived scores and issues."""

    def __init__(
        self,
        ai_client: AIClient | None = None,
        ai_model: str | None = None,
        extractor: HeuristicMetricsExtractor | None = None,
        recovery_parser: AIResponseRecoveryParser | None = None,
        scoring: ScoringService | None = None,
    ):
        self.ai_client = ai_client if ai_client is not None else get_llm_gateway()
        self.ai_model = ai_model or getattr(self.ai_client, "model", None) or settings.llm_model
        self.extractor = extractor or get_heuristic_extractor()
        self.recovery_parser = recovery_parser or get_recovery_parser()
        self.scoring = scoring or get_scoring_service()

    async def analyze(
        self,
        content: str | bytes,
        filename: str,
        technology: Technology | None = None,
    ) -> AnalysisResult:
        """Analyze one file.

        Args:
            content: File content (bytes are decoded as UTF-8)
            filename: Original filename, used for technology detection
            technology: Known technology, detected from filename/content if None

        Returns:
            AnalysisResult with metrics, scores, detailed metrics and issues

        Raises:
            InputError: If bytes content cannot be decoded
        """
        if isinstance(content, bytes):
            content = decode_content(content, filename)

        if technology is None:
            technology = detect_technology(filename, content)

        ai_available = await self._check_ai()

        values: dict[str, Any] | None = None
        provenance = Provenance.HEURISTIC
        if ai_available:
            values = await self._extract_with_ai(content, filename)
            if values is not None:
                provenance = Provenance.AI

        if values is None:
            values = self.extractor.extract(content, technology).to_dict()

        metrics = self._validate_metrics(values)

        maintainability_index = self.scoring.calculate_maintainability_index(metrics)
        risk_score = self._risk_score(values, metrics)
        complexity_level = self.scoring.determine_complexity_level(metrics.cyclomatic_complexity).value

        issues = [issue.to_dict() for issue in find_issues(content, technology, metrics)]
        if ai_available:
            issues.extend(await self._run_sub_scans(content, metrics.cyclomatic_complexity))

        result = AnalysisResult(
            metrics=metrics,
            maintainability_index=maintainability_index,
            risk_score=risk_score,
            complexity_level=complexity_level,
            quality_score=self.scoring.calculate_quality_score(metrics, maintainability_index),
            technical_debt=self.scoring.calculate_technical_debt(metrics),
            technology=technology,
            provenance=provenance,
            detailed_metrics=extract_detailed_metrics(content, technology, metrics),
            issues_found=issues,
            ai_model=self.ai_model if provenance == Provenance.AI else None,
            ai_available=ai_available,
        )

        logger.info(
            f"Analyzed {filename}: provenance={provenance.value}, "
            f"cc={metrics.cyclomatic_complexity}, level={complexity_level}, "
            f"risk={risk_score:.1f}, issues={len(issues)}"
        )
        return result

    # -------------------------------------------------------------------------
    # AI path
    # -------------------------------------------------------------------------

    async def _check_ai(self) -> bool:
        try:
            available = await asyncio.wait_for(
                self.ai_client.is_available(),
                timeout=settings.llm_check_timeout_seconds,
            )
        except Exception as e:
            logger.warning(f"AI availability check failed, using heuristics: {e}")
            return False

        if not available:
            logger.warning("AI unavailable, falling back to heuristic analysis")
        return bool(available)

    async def _extract_with_ai(self, content: str, filename: str) -> dict[str, Any] | None:
        """Metric values from the model, or None when the AI path fails."""
        try:
            response = await self.ai_client.generate(METRICS_EXTRACTION_PROMPT, content)
        except Exception as e:
            logger.warning(f"AI metric extraction failed for {filename}, using heuristics: {e}")
            return None

        recovery = self.recovery_parser.recover(response, METRIC_KEYS, content)
        if recovery.is_fallback:
            logger.warning(f"AI response for {filename} unrecoverable, using fallback metrics")
        else:
            logger.debug(f"AI response for {filename} recovered via {recovery.strategy.value}")
        return recovery.values

    async def _sub_scan(self, name: str, prompt: str, content: str) -> list[LineIssue]:
        try:
            response = await self.ai_client.generate(prompt, content)
        except Exception as e:
            logger.warning(f"AI {name} scan failed: {e}")
            return []
        return parse_line_issues(response)

    async def _run_sub_scans(self, content: str, cyclomatic_complexity: int) -> list[dict[str, Any]]:
        security, refactoring = await asyncio.gather(
            self._sub_scan("security", SECURITY_SCAN_PROMPT, content),
            self._sub_scan("refactoring", refactoring_scan_prompt(cyclomatic_complexity), content),
        )

        issues = [
            CodeIssue(line=i.line, severity=IssueSeverity.WARNING.value, message=i.issue, rule="security")
            for i in security
        ]
        issues.extend(
            CodeIssue(line=i.line, severity=IssueSeverity.INFO.value, message=i.issue, rule="refactoring")
            for i in refactoring
        )
        return [issue.to_dict() for issue in issues]

    # -------------------------------------------------------------------------
    # Validation and derived scores
    # -------------------------------------------------------------------------

    @staticmethod
    def _coerce_metric(name: str, value: Any) -> int:
        """Coerce one raw metric to a non-negative int.

        Raises:
            ValidationError: If the value is missing, non-numeric or out of range
        """
        if value is None or isinstance(value, bool):
            raise ValidationError(name, value, "missing")
        try:
            number = int(float(value))
        except (TypeError, ValueError):
            raise ValidationError(name, value, "not a number")
        except OverflowError:
            raise ValidationError(name, value, "out of range")
        if number < 0:
            raise ValidationError(name, value, "negative")
        if number > MAX_METRIC_VALUE:
            raise ValidationError(name, value, "out of range")
        if name == "cyclomatic_complexity" and number < 1:
            raise ValidationError(name, value, "complexity must be at least 1")
        return number

    def _validate_metrics(self, values: dict[str, Any]) -> RawMetrics:
        """Merge values into RawMetrics, defaulting anything invalid."""
        defaults = RawMetrics()
        coerced: dict[str, int] = {}
        for name in RAW_METRIC_FIELDS:
            try:
                coerced[name] = self._coerce_metric(name, values.get(name))
            except ValidationError as e:
                logger.debug(f"Defaulting metric: {e}")
                coerced[name] = getattr(defaults, name)
        return RawMetrics(**coerced)

    def _risk_score(self, values: dict[str, Any], metrics: RawMetrics) -> float:
        """Supplied risk clamped to [0, 100], or the risk formula when absent."""
        supplied = values.get("risk_score")
        if isinstance(supplied, (int, float)) and not isinstance(supplied, bool):
            return max(0.0, min(100.0, float(supplied)))
        return self.scoring.calculate_risk_score(metrics)
