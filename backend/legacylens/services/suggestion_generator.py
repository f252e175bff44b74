"""Rule-based improvement suggestions for analyzed files.

Rules are additive and deterministic. When AI is enabled the refactor and
modernization explanations are taken from the model; every AI failure falls
back to the static explanation.
"""

import logging
import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from legacylens.services.llm_gateway import AIClient
from legacylens.services.metrics import RawMetrics, split_lines
from legacylens.services.prompts import AnalysisType, get_prompt_for_analysis
from legacylens.services.technology import Technology

logger = logging.getLogger(__name__)


class SuggestionType(str, Enum):
    REFACTOR = "refactor"
    SECURITY = "security"
    PERFORMANCE = "performance"
    MODERNIZATION = "modernization"
    STYLE = "style"


class SuggestionSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EffortEstimate(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class SuggestionDraft:
    """A suggestion before it is attached to an analysis record."""

    type: str
    severity: str
    category: str
    title: str
    description: str
    impact_score: float
    effort_estimate: str
    ai_confidence: float
    explanation: str | None = None
    suggested_fix: str | None = None
    modernization_approach: str | None = None
    start_line: int | None = None
    end_line: int | None = None
    ai_model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# Rule thresholds
REFACTOR_COMPLEXITY_THRESHOLD = 10
HIGH_SEVERITY_COMPLEXITY = 20
NESTED_LOOP_MIN_LINES = 200

# Characters of model output kept as an explanation
AI_EXPLANATION_LENGTH = 200

_CREDENTIAL_PATTERN = re.compile(r"password\s*=\s*[\"'][^\"']+[\"']", re.IGNORECASE)
_NESTED_LOOP_PATTERN = re.compile(r"for\s*\([^}]*for\s*\(")

_STATIC_REFACTOR_EXPLANATION = (
    "High cyclomatic complexity makes code harder to test and change. "
    "Extracting focused functions reduces the number of paths in each one."
)
_STATIC_MODERNIZATION_EXPLANATION = (
    "Legacy code benefits from incremental modernization: current tooling, "
    "explicit error handling and automated tests."
)


class SuggestionGenerator:
    """Categorized, severity-ranked suggestions for one file."""

    def __init__(self, ai_client: AIClient | None = None, ai_model: str | None = None):
        self.ai_client = ai_client
        self.ai_model = ai_model

    async def generate(
        self,
        content: str,
        metrics: RawMetrics,
        technology: Technology,
        use_ai: bool = False,
    ) -> list[SuggestionDraft]:
        """Apply every rule to the file.

        Args:
            content: Decoded file content
            metrics: Raw metrics of the file
            technology: Technology of the file
            use_ai: Ask the AI client for refactor/modernization explanations

        Returns:
            Suggestions in rule order: refactor, security, performance, modernization
        """
        use_ai = use_ai and self.ai_client is not None
        suggestions: list[SuggestionDraft] = []

        if metrics.cyclomatic_complexity > REFACTOR_COMPLEXITY_THRESHOLD:
            suggestions.append(await self._refactoring_suggestion(content, metrics, technology, use_ai))

        suggestions.extend(self._security_suggestions(content))
        suggestions.extend(self._performance_suggestions(content, metrics))
        suggestions.append(await self._modernization_suggestion(content, technology, use_ai))

        logger.debug(f"Generated {len(suggestions)} suggestions for {technology.value} file")
        return suggestions

    async def _ai_explanation(
        self,
        analysis_type: AnalysisType,
        content: str,
        technology: Technology,
    ) -> str | None:
        """First characters of the model's answer, or None on any failure."""
        prompt = get_prompt_for_analysis(analysis_type, technology)
        try:
            response = await self.ai_client.generate(prompt, content)
        except Exception as e:
            logger.warning(f"AI {analysis_type.value} explanation unavailable: {e}")
            return None

        response = (response or "").strip()
        if not response:
            return None
        return response[:AI_EXPLANATION_LENGTH]

    async def _refactoring_suggestion(
        self,
        content: str,
        metrics: RawMetrics,
        technology: Technology,
        use_ai: bool,
    ) -> SuggestionDraft:
        cc = metrics.cyclomatic_complexity
        explanation = None
        if use_ai:
            explanation = await self._ai_explanation(AnalysisType.REFACTORING, content, technology)

        return SuggestionDraft(
            type=SuggestionType.REFACTOR.value,
            severity=(
                SuggestionSeverity.HIGH.value if cc > HIGH_SEVERITY_COMPLEXITY
                else SuggestionSeverity.MEDIUM.value
            ),
            category="complexity",
            title="Reduce Cyclomatic Complexity",
            description=f"Function complexity is {cc}. Consider breaking down large functions.",
            explanation=explanation or _STATIC_REFACTOR_EXPLANATION,
            suggested_fix="Break large functions into smaller, focused functions",
            impact_score=0.8,
            effort_estimate=EffortEstimate.MEDIUM.value,
            ai_confidence=0.7,
            ai_model=self.ai_model if explanation else None,
        )

    def _security_suggestions(self, content: str) -> list[SuggestionDraft]:
        suggestions: list[SuggestionDraft] = []

        if "eval(" in content or "exec(" in content:
            suggestions.append(SuggestionDraft(
                type=SuggestionType.SECURITY.value,
                severity=SuggestionSeverity.HIGH.value,
                category="code-injection",
                title="Potential Code Injection Risk",
                description="Use of eval() or exec() functions detected",
                explanation="These functions can execute arbitrary code and pose security risks",
                suggested_fix="Replace with safer alternatives or implement proper input validation",
                impact_score=0.9,
                effort_estimate=EffortEstimate.LOW.value,
                ai_confidence=0.8,
            ))

        for line_number, line in enumerate(split_lines(content), start=1):
            if _CREDENTIAL_PATTERN.search(line):
                suggestions.append(SuggestionDraft(
                    type=SuggestionType.SECURITY.value,
                    severity=SuggestionSeverity.CRITICAL.value,
                    category="credentials",
                    title="Hardcoded Credentials Detected",
                    description="Hardcoded password or secret found in code",
                    explanation="Credentials should be stored in environment variables or secure configuration",
                    suggested_fix="Move credentials to environment variables",
                    start_line=line_number,
                    end_line=line_number,
                    impact_score=0.95,
                    effort_estimate=EffortEstimate.LOW.value,
                    ai_confidence=0.9,
                ))

        return suggestions

    def _performance_suggestions(self, content: str, metrics: RawMetrics) -> list[SuggestionDraft]:
        if metrics.lines_of_code <= NESTED_LOOP_MIN_LINES or not _NESTED_LOOP_PATTERN.search(content):
            return []

        return [SuggestionDraft(
            type=SuggestionType.PERFORMANCE.value,
            severity=SuggestionSeverity.MEDIUM.value,
            category="algorithms",
            title="Nested Loops Detected",
            description="Nested loops may cause performance issues with large datasets",
            explanation="Consider optimizing algorithm complexity or using data structures like hash maps",
            suggested_fix="Review algorithm design and consider using more efficient data structures",
            impact_score=0.6,
            effort_estimate=EffortEstimate.MEDIUM.value,
            ai_confidence=0.7,
        )]

    async def _modernization_suggestion(
        self,
        content: str,
        technology: Technology,
        use_ai: bool,
    ) -> SuggestionDraft:
        explanation = None
        if use_ai:
            explanation = await self._ai_explanation(AnalysisType.MODERNIZATION, content, technology)

        return SuggestionDraft(
            type=SuggestionType.MODERNIZATION.value,
            severity=SuggestionSeverity.LOW.value,
            category="migration",
            title=f"{technology.value.upper()} Modernization Opportunities",
            description=f"Consider modernizing this {technology.value} code for better maintainability",
            explanation=explanation or _STATIC_MODERNIZATION_EXPLANATION,
            modernization_approach="Gradual migration to modern practices",
            impact_score=0.7,
            effort_estimate=EffortEstimate.HIGH.value,
            ai_confidence=0.6,
            ai_model=self.ai_model if explanation else None,
        )
