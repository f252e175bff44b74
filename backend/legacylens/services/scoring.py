"""Scoring Service for legacy code metrics.

Provides deterministic scoring formulas for:
- Maintainability Index (MI): size and complexity composite
- Risk Score: change risk from complexity, nesting, size and comment density
- Technical Debt: remediation effort implied by threshold excesses
- Quality Score: weighted blend of MI, complexity, documentation and duplication

All formulas are pure functions of RawMetrics. Scores are in [0, 100].
"""

import math
from dataclasses import asdict, dataclass

from legacylens.services.metrics import ComplexityLevel, RawMetrics


@dataclass
class TechnicalDebt:
    """Technical debt estimate for one file."""

    score: int
    category: str
    estimated_hours: float

    def to_dict(self) -> dict:
        return asdict(self)


class ScoringService:
    """Deterministic scoring formulas for legacy code metrics."""

    # Complexity level bands (upper bounds, inclusive) on cyclomatic complexity
    COMPLEXITY_BANDS: list[tuple[int, ComplexityLevel]] = [
        (10, ComplexityLevel.LOW),
        (20, ComplexityLevel.MEDIUM),
        (50, ComplexityLevel.HIGH),
    ]

    # Risk level bands (upper bounds, exclusive) on risk score
    RISK_BANDS: list[tuple[float, ComplexityLevel]] = [
        (25, ComplexityLevel.LOW),
        (50, ComplexityLevel.MEDIUM),
        (75, ComplexityLevel.HIGH),
    ]

    # MI formula coefficients
    MI_BASE = 171.0
    MI_AVG_SIZE_WEIGHT = 5.2
    MI_COMPLEXITY_WEIGHT = 0.23
    MI_TOTAL_SIZE_WEIGHT = 16.2

    # Risk formula weights
    RISK_COMPLEXITY_WEIGHT = 0.4
    RISK_NESTING_WEIGHT = 2.0
    RISK_SIZE_WEIGHT = 5.0
    RISK_COMMENT_WEIGHT = 10.0

    # Technical debt thresholds
    DEBT_COMPLEXITY_THRESHOLD = 10
    DEBT_SIZE_THRESHOLD = 500
    DEBT_NESTING_THRESHOLD = 4
    DEBT_NO_FUNCTIONS_MIN_LINES = 50
    # Largest value the technical_debt_hours column holds
    MAX_DEBT_HOURS = 999_999.9

    # Quality score weights
    QUALITY_MI_WEIGHT = 0.3
    QUALITY_COMPLEXITY_WEIGHT = 0.25
    QUALITY_TEST_COVERAGE_WEIGHT = 0.2
    QUALITY_DOCUMENTATION_WEIGHT = 0.15
    QUALITY_DUPLICATION_WEIGHT = 0.1

    MAINTAINABILITY_CATEGORIES: list[tuple[float, str]] = [
        (85, "excellent"),
        (70, "good"),
        (50, "moderate"),
        (25, "difficult"),
    ]

    def calculate_maintainability_index(self, metrics: RawMetrics) -> float:
        """Calculate the Maintainability Index.

        Formula: 171 - 5.2 × ln(avg) - 0.23 × cc - 16.2 × ln(total)

        where avg is code lines per function (functions floored at 1) and
        both logarithm arguments are floored at 1.

        Args:
            metrics: Raw structural metrics

        Returns:
            Maintainability index 0-100
        """
        avg_function_size = metrics.code_lines / max(metrics.function_count, 1)
        avg_function_size = max(avg_function_size, 1.0)
        total_lines = max(metrics.lines_of_code, 1)

        mi = (
            self.MI_BASE
            - self.MI_AVG_SIZE_WEIGHT * math.log(avg_function_size)
            - self.MI_COMPLEXITY_WEIGHT * metrics.cyclomatic_complexity
            - self.MI_TOTAL_SIZE_WEIGHT * math.log(total_lines)
        )

        return max(0.0, min(100.0, mi))

    def determine_complexity_level(self, cyclomatic_complexity: int) -> ComplexityLevel:
        """Band cyclomatic complexity: ≤10 low, ≤20 medium, ≤50 high, else critical."""
        for upper, level in self.COMPLEXITY_BANDS:
            if cyclomatic_complexity <= upper:
                return level
        return ComplexityLevel.CRITICAL

    def calculate_risk_score(self, metrics: RawMetrics) -> float:
        """Calculate the Risk Score.

        Formula: 0.4 × cc + 2 × nesting + 5 × ln(loc) + 10 × (1 - comment / loc)

        The size term is 0 for loc ≤ 1 and the comment term is 10 for loc = 0.

        Args:
            metrics: Raw structural metrics

        Returns:
            Risk score 0-100
        """
        loc = metrics.lines_of_code

        size_term = math.log(loc) if loc > 1 else 0.0
        comment_density = metrics.comment_lines / loc if loc > 0 else 0.0

        risk = (
            self.RISK_COMPLEXITY_WEIGHT * metrics.cyclomatic_complexity
            + self.RISK_NESTING_WEIGHT * metrics.nesting_depth
            + self.RISK_SIZE_WEIGHT * size_term
            + self.RISK_COMMENT_WEIGHT * (1 - comment_density)
        )

        return max(0.0, min(100.0, risk))

    def risk_level(self, risk_score: float) -> ComplexityLevel:
        """Band a risk score: <25 low, <50 medium, <75 high, else critical."""
        for upper, level in self.RISK_BANDS:
            if risk_score < upper:
                return level
        return ComplexityLevel.CRITICAL

    def calculate_technical_debt(self, metrics: RawMetrics) -> TechnicalDebt:
        """Estimate technical debt from threshold excesses.

        - Complexity: 2 points and 0.5 h per point above 10
        - Size: 1 point and 0.25 h per 100 lines above 500
        - Nesting: 3 points and 1 h per level above 4
        - No functions in a file over 50 lines: 5 points and 2 h

        The category is banded on the unrounded score. Hours are capped at
        MAX_DEBT_HOURS.
        """
        score = 0.0
        hours = 0.0

        if metrics.cyclomatic_complexity > self.DEBT_COMPLEXITY_THRESHOLD:
            excess = metrics.cyclomatic_complexity - self.DEBT_COMPLEXITY_THRESHOLD
            score += excess * 2
            hours += excess * 0.5

        if metrics.lines_of_code > self.DEBT_SIZE_THRESHOLD:
            excess_hundreds = (metrics.lines_of_code - self.DEBT_SIZE_THRESHOLD) / 100
            score += excess_hundreds
            hours += excess_hundreds * 0.25

        if metrics.nesting_depth > self.DEBT_NESTING_THRESHOLD:
            excess = metrics.nesting_depth - self.DEBT_NESTING_THRESHOLD
            score += excess * 3
            hours += excess * 1

        if metrics.function_count == 0 and metrics.lines_of_code > self.DEBT_NO_FUNCTIONS_MIN_LINES:
            score += 5
            hours += 2

        if score <= 5:
            category = "low"
        elif score <= 15:
            category = "medium"
        elif score <= 30:
            category = "high"
        else:
            category = "critical"

        return TechnicalDebt(
            score=round(score),
            category=category,
            estimated_hours=min(round(hours, 1), self.MAX_DEBT_HOURS),
        )

    def _documentation_score(self, metrics: RawMetrics) -> float:
        """Score documentation from the comment-to-code ratio.

        10-30% comments scores 100, 5-50% scores 70, any comments 40.
        """
        ratio = metrics.comment_lines / (metrics.code_lines or 1)
        if 0.1 <= ratio <= 0.3:
            return 100.0
        if 0.05 <= ratio <= 0.5:
            return 70.0
        if ratio > 0:
            return 40.0
        return 0.0

    def _duplication_score(self, metrics: RawMetrics) -> float:
        """Score duplication from function density per 1000 lines."""
        density = metrics.function_count / (metrics.lines_of_code or 1) * 1000
        if density >= 5:
            return 100.0
        if density >= 3:
            return 80.0
        if density >= 1:
            return 60.0
        return 40.0

    def calculate_quality_score(self, metrics: RawMetrics, maintainability_index: float | None = None) -> int:
        """Calculate the Quality Score.

        Formula: MI × 0.3 + max(0, 100 - 2 × cc) × 0.25 + coverage × 0.2
                 + documentation × 0.15 + duplication × 0.1

        Test coverage is not measured and contributes 0.

        Args:
            metrics: Raw structural metrics
            maintainability_index: Precomputed MI, computed from metrics if None

        Returns:
            Quality score 0-100 (integer)
        """
        if maintainability_index is None:
            maintainability_index = self.calculate_maintainability_index(metrics)

        normalized_complexity = max(0.0, 100.0 - metrics.cyclomatic_complexity * 2)
        test_coverage = 0.0

        score = (
            maintainability_index * self.QUALITY_MI_WEIGHT
            + normalized_complexity * self.QUALITY_COMPLEXITY_WEIGHT
            + test_coverage * self.QUALITY_TEST_COVERAGE_WEIGHT
            + self._documentation_score(metrics) * self.QUALITY_DOCUMENTATION_WEIGHT
            + self._duplication_score(metrics) * self.QUALITY_DUPLICATION_WEIGHT
        )

        return max(0, min(100, round(score)))

    def maintainability_category(self, maintainability_index: float) -> str:
        """Label an MI value: excellent, good, moderate, difficult or unmaintainable."""
        for lower, label in self.MAINTAINABILITY_CATEGORIES:
            if maintainability_index >= lower:
                return label
        return "unmaintainable"


# Singleton instance for easy import
_scoring_service: ScoringService | None = None


def get_scoring_service() -> ScoringService:
    """Get the singleton ScoringService instance."""
    global _scoring_service
    if _scoring_service is None:
        _scoring_service = ScoringService()
    return _scoring_service
