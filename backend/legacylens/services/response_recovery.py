"""Recovery of metric values from free-form model output.

Models asked for "ONLY valid JSON" still wrap it in prose, emit markdown
fences, leave trailing commas or return a bare list of quoted values. The
parser tries a fixed cascade of strategies and, whatever happens, returns a
fully populated values dict for the requested keys.
"""

import json
import logging
import math
import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from legacylens.services.metrics import (
    CATEGORICAL_METRIC_KEYS,
    MAX_METRIC_VALUE,
    METRIC_KEYS,
    ComplexityLevel,
    RawMetrics,
    split_lines,
)
from legacylens.services.scoring import get_scoring_service

logger = logging.getLogger(__name__)


class RecoveryStrategy(str, Enum):
    """Which step of the cascade produced the values."""

    TRAILING_OBJECT = "trailing_object"
    FIRST_OBJECT = "first_object"
    SIMPLE_OBJECT = "simple_object"
    REPAIRED = "repaired"
    POSITIONAL = "positional"
    NUMERIC = "numeric"
    FALLBACK = "fallback"


@dataclass
class RecoveryResult:
    """Recovered values plus how they were obtained."""

    values: dict[str, Any]
    strategy: RecoveryStrategy
    backfilled: list[str] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return self.strategy == RecoveryStrategy.FALLBACK


@dataclass
class FallbackMetrics:
    """Placeholder metrics used when nothing can be recovered from the text.

    Line counts are proportional to the content (70% code, 20% comments,
    10% blank); every structural count is a fixed middle-of-the-road value.
    """

    lines_of_code: int = 0
    code_lines: int = 0
    comment_lines: int = 0
    blank_lines: int = 0
    cyclomatic_complexity: int = 5
    nesting_depth: int = 3
    function_count: int = 2
    class_count: int = 1
    loop_count: int = 2
    conditional_count: int = 3
    sql_join_count: int = 0
    dependency_count: int = 1
    complexity_level: str = ComplexityLevel.MEDIUM.value
    risk_score: float = 50.0

    @classmethod
    def from_content(cls, content: str) -> "FallbackMetrics":
        total = len(split_lines(content))
        return cls(
            lines_of_code=total,
            code_lines=math.floor(total * 0.7),
            comment_lines=math.floor(total * 0.2),
            blank_lines=math.floor(total * 0.1),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Patterns
# =============================================================================

# Metric answers are a few hundred characters; anything past this is noise
MAX_RESPONSE_CHARS = 20_000

_SIMPLE_OBJECT = re.compile(r"\{[^{}]*\}")

_CODE_FENCE = re.compile(r"```[a-zA-Z]*")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f]+")
_LONE_BACKSLASH = re.compile(r"\\(?![\"\\/bfnrtu])")
_BARE_VALUE = re.compile(
    r"(\"[^\"]+\"\s*:\s*)"
    r"(?!-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?\s*[,}\]]|true\b|false\b|null\b|[\"{\[])"
    r"([^,}\]\"]*[^,}\]\"\s])"
    r"(\s*[,}\]])"
)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")

_QUOTED_NUMBER_WITH_COMMA = re.compile(r"\"\d+,\"")
_QUOTED_WORD = re.compile(r"\"\s*\w+\s*\"")
_QUOTED_VALUE = re.compile(r"\"([^\"]+)\"")
_INTEGER = re.compile(r"\d+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")

# Defaults for keys the numeric strategy cannot fill
_NUMERIC_STRATEGY_DEFAULTS: dict[str, Any] = {
    "cyclomatic_complexity": 1,
    "complexity_level": ComplexityLevel.MEDIUM.value,
    "risk_score": 50,
}

# Backfill value for absent numeric keys other than cyclomatic complexity
_NUMERIC_BACKFILL = 0


def _snake_case(key: str) -> str:
    """Normalize model-supplied keys (``linesOfCode``, ``Lines Of Code``)."""
    key = _CAMEL_BOUNDARY.sub(r"_\1", key.strip())
    return re.sub(r"[\s\-]+", "_", key).lower()


def _parse_number(value: Any) -> float | None:
    """Numeric value of a field, or None when it is junk."""
    if isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        if isinstance(value, str):
            number = float(value.strip().rstrip(",").strip())
        else:
            number = float(value)
    except (ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _trailing_object(text: str) -> str | None:
    """From the first "{" to a "}" that ends the text."""
    stripped = text.rstrip()
    start = stripped.find("{")
    if start == -1 or not stripped.endswith("}"):
        return None
    return stripped[start:]


def _first_object(text: str) -> str | None:
    """From the first "{" to the first "}" after it."""
    start = text.find("{")
    if start == -1:
        return None
    end = text.find("}", start)
    if end == -1:
        return None
    return text[start : end + 1]


def _outermost_object(text: str) -> str | None:
    """From the first "{" to the last "}"."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


class AIResponseRecoveryParser:
    """Extract and repair JSON-like metric output from free model text."""

    def recover(
        self,
        raw_text: str,
        expected_keys: tuple[str, ...] = METRIC_KEYS,
        content: str = "",
    ) -> RecoveryResult:
        """Recover values for ``expected_keys`` from ``raw_text``.

        Never raises. When no strategy yields anything the result carries
        FallbackMetrics built from ``content``. Text past MAX_RESPONSE_CHARS
        is ignored.
        """
        raw_text = raw_text or ""
        if len(raw_text) > MAX_RESPONSE_CHARS:
            logger.warning(f"Truncating {len(raw_text)}-char model response to {MAX_RESPONSE_CHARS} chars")
            raw_text = raw_text[:MAX_RESPONSE_CHARS]

        try:
            recovered = self._run_strategies(raw_text, expected_keys)
        except Exception as e:
            logger.warning(f"Response recovery aborted, using fallback metrics: {e}")
            recovered = None

        if recovered is None:
            strategy = RecoveryStrategy.FALLBACK
            values = FallbackMetrics.from_content(content).to_dict()
        else:
            strategy, values = recovered

        normalized, backfilled = self._normalize(values, expected_keys)
        if backfilled:
            logger.debug(f"Backfilled {len(backfilled)} metric(s) after {strategy.value}: {backfilled}")

        return RecoveryResult(values=normalized, strategy=strategy, backfilled=backfilled)

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def _run_strategies(
        self,
        text: str,
        expected_keys: tuple[str, ...],
    ) -> tuple[RecoveryStrategy, dict[str, Any]] | None:
        candidate = _trailing_object(text)
        if candidate is not None:
            parsed = self._load_object(candidate)
            if parsed is not None:
                return RecoveryStrategy.TRAILING_OBJECT, parsed

        candidate = _first_object(text)
        if candidate is not None:
            parsed = self._load_object(candidate)
            if parsed is not None:
                return RecoveryStrategy.FIRST_OBJECT, parsed

        for candidate in sorted(_SIMPLE_OBJECT.findall(text), key=len):
            parsed = self._load_object(candidate)
            if parsed is not None:
                return RecoveryStrategy.SIMPLE_OBJECT, parsed

        parsed = self._load_object(self._repair(text))
        if parsed is not None:
            return RecoveryStrategy.REPAIRED, parsed

        positional = self._positional(text, expected_keys)
        if positional:
            return RecoveryStrategy.POSITIONAL, positional

        numeric = self._numeric(text, expected_keys)
        if numeric:
            return RecoveryStrategy.NUMERIC, numeric

        logger.warning("No metric values recoverable from model response")
        return None

    @staticmethod
    def _load_object(candidate: str) -> dict[str, Any] | None:
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, ValueError, RecursionError):
            return None
        if not isinstance(parsed, dict):
            return None
        return {_snake_case(str(k)): v for k, v in parsed.items()}

    def _repair(self, text: str) -> str:
        """Textual repair pass over the outermost brace block (or the whole text)."""
        text = _CODE_FENCE.sub("", text)
        candidate = _outermost_object(text) or text

        candidate = _CONTROL_CHARS.sub(" ", candidate)
        candidate = _LONE_BACKSLASH.sub(r"\\\\", candidate)
        candidate = _BARE_VALUE.sub(lambda m: f'{m.group(1)}"{m.group(2).strip()}"{m.group(3)}', candidate)
        candidate = _TRAILING_COMMA.sub(r"\1", candidate)
        return candidate

    def _positional(self, text: str, expected_keys: tuple[str, ...]) -> dict[str, Any]:
        """Zip quoted bare values against the expected keys in order."""
        has_bare_values = bool(_QUOTED_NUMBER_WITH_COMMA.search(text)) or (
            bool(_QUOTED_WORD.search(text)) and ":" not in text
        )
        if not has_bare_values:
            return {}

        values = [v.replace(",", "").strip() for v in _QUOTED_VALUE.findall(text)]
        reconstructed: dict[str, Any] = {}
        for key, value in zip(expected_keys, values):
            if key in CATEGORICAL_METRIC_KEYS:
                reconstructed[key] = value
                continue
            number = _parse_number(value)
            reconstructed[key] = value if number is None else number
        return reconstructed

    def _numeric(self, text: str, expected_keys: tuple[str, ...]) -> dict[str, Any]:
        """Assign every integer in the text, in order, to the numeric keys."""
        integers = [int(n) for n in _INTEGER.findall(text)]
        if not integers:
            return {}

        numeric_keys = [k for k in expected_keys if k not in CATEGORICAL_METRIC_KEYS]
        reconstructed: dict[str, Any] = dict(zip(numeric_keys, integers))
        for key, default in _NUMERIC_STRATEGY_DEFAULTS.items():
            if key in expected_keys:
                reconstructed.setdefault(key, default)
        reconstructed["complexity_level"] = ComplexityLevel.MEDIUM.value
        return reconstructed

    # -------------------------------------------------------------------------
    # Normalization
    # -------------------------------------------------------------------------

    def _normalize(
        self,
        values: dict[str, Any],
        expected_keys: tuple[str, ...],
    ) -> tuple[dict[str, Any], list[str]]:
        """Coerce present values and backfill absent ones.

        Junk in a numeric field counts as absent, and so does a count above
        MAX_METRIC_VALUE. Negative numbers clamp to 0 and risk clamps to 100.
        Missing ``complexity_level`` comes from the cc banding and missing
        ``risk_score`` from the risk formula.
        """
        normalized: dict[str, Any] = {}
        backfilled: list[str] = []

        for key in expected_keys:
            if key in CATEGORICAL_METRIC_KEYS:
                continue
            number = _parse_number(values.get(key))
            if number is None:
                continue
            number = max(0.0, number)
            if key == "risk_score":
                normalized[key] = min(number, 100.0)
            elif number <= MAX_METRIC_VALUE:
                normalized[key] = int(number)

        raw_fields = RawMetrics().to_dict()
        for key in expected_keys:
            if key in normalized or key in CATEGORICAL_METRIC_KEYS or key == "risk_score":
                continue
            normalized[key] = raw_fields.get(key, _NUMERIC_BACKFILL)
            backfilled.append(key)

        scoring = get_scoring_service()
        metrics = RawMetrics(**{k: v for k, v in normalized.items() if k in raw_fields})

        if "complexity_level" in expected_keys:
            level = values.get("complexity_level")
            valid_levels = {lvl.value for lvl in ComplexityLevel}
            if isinstance(level, str) and level.strip().lower() in valid_levels:
                normalized["complexity_level"] = level.strip().lower()
            else:
                normalized["complexity_level"] = scoring.determine_complexity_level(
                    metrics.cyclomatic_complexity
                ).value
                backfilled.append("complexity_level")

        if "risk_score" in expected_keys and "risk_score" not in normalized:
            normalized["risk_score"] = scoring.calculate_risk_score(metrics)
            backfilled.append("risk_score")

        return normalized, backfilled


_parser: AIResponseRecoveryParser | None = None


def get_recovery_parser() -> AIResponseRecoveryParser:
    """Get the shared recovery parser."""
    global _parser
    if _parser is None:
        _parser = AIResponseRecoveryParser()
    return _parser
