"""Tests for the analysis orchestrator.

The AI client is an AsyncMock so both extraction paths, the sub-scans and
every degradation can be driven deterministically.
"""

import json
from unittest.mock import AsyncMock

import pytest

from legacylens.core.exceptions import InputError
from legacylens.services.analysis_engine import (
    ANALYZER_VERSION,
    AnalysisOrchestrator,
    decode_content,
    parse_line_issues,
)
from legacylens.services.llm_gateway import LLMError
from legacylens.services.metrics import MAX_METRIC_VALUE
from legacylens.services.prompts import METRICS_EXTRACTION_PROMPT, SECURITY_SCAN_PROMPT
from legacylens.services.suggestion_generator import SuggestionGenerator
from legacylens.services.technology import Technology

PERL_SNIPPET = """use strict;
sub check {
    my ($value) = @_;
    if ($value > 10) {
        print "big";
    }
    if ($value < 0) {
        print "negative";
    }
    while ($value > 0) {
        $value--;
    }
}
"""

AI_METRICS = {
    "lines_of_code": 13,
    "code_lines": 13,
    "comment_lines": 0,
    "blank_lines": 0,
    "cyclomatic_complexity": 12,
    "nesting_depth": 2,
    "function_count": 1,
    "class_count": 0,
    "loop_count": 1,
    "conditional_count": 2,
    "sql_join_count": 0,
    "dependency_count": 1,
    "complexity_level": "low",
    "risk_score": 150,
}


def make_ai_client(available: bool = True, responses: dict | None = None) -> AsyncMock:
    """AI client whose answers depend on the prompt."""
    responses = responses or {}

    def generate(prompt: str, content: str) -> str:
        for key, answer in responses.items():
            if prompt == key or (key == "refactoring" and "cyclomatic complexity of" in prompt):
                if isinstance(answer, Exception):
                    raise answer
                return answer
        return ""

    client = AsyncMock()
    client.is_available.return_value = available
    client.generate.side_effect = generate
    return client


# =============================================================================
# Helpers
# =============================================================================


class TestDecodeContent:
    """Content must be UTF-8, with an optional BOM."""

    def test_plain_utf8(self):
        assert decode_content("naïve".encode()) == "naïve"

    def test_bom_is_stripped(self):
        assert decode_content(b"\xef\xbb\xbfuse strict;") == "use strict;"

    def test_invalid_bytes_raise_input_error(self):
        with pytest.raises(InputError) as exc_info:
            decode_content(b"\xff\xfe\x00bad", "broken.pl")
        assert exc_info.value.filename == "broken.pl"


class TestParseLineIssues:
    """"Line N: description" parsing."""

    def test_prefixed_and_unprefixed_lines(self):
        text = "Line 3: SQL built from input\n\nline 12:  shell call\nGeneral remark"
        issues = parse_line_issues(text)

        assert [(i.line, i.issue) for i in issues] == [
            (3, "SQL built from input"),
            (12, "shell call"),
            (0, "General remark"),
        ]

    def test_empty_text(self):
        assert parse_line_issues("") == []
        assert parse_line_issues(None) == []  # type: ignore[arg-type]


# =============================================================================
# Heuristic path
# =============================================================================


class TestHeuristicPath:
    """AI unavailable: heuristics, no sub-scans."""

    @pytest.mark.asyncio
    async def test_unavailable_ai_uses_heuristics(self):
        client = make_ai_client(available=False)
        orchestrator = AnalysisOrchestrator(ai_client=client, ai_model="test-model")

        result = await orchestrator.analyze(PERL_SNIPPET, "check.pl")

        assert result.provenance.value == "heuristic"
        assert result.technology == Technology.PERL
        assert result.metrics.cyclomatic_complexity == 4
        assert result.complexity_level == "low"
        assert result.ai_model is None
        assert result.ai_available is False
        assert result.analyzer_version == ANALYZER_VERSION
        client.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_suggestions_still_produced_without_ai(self):
        """With AI unavailable the pipeline still yields suggestions."""
        client = make_ai_client(available=False)
        orchestrator = AnalysisOrchestrator(ai_client=client, ai_model="test-model")

        result = await orchestrator.analyze(PERL_SNIPPET, "check.pl")
        suggestions = await SuggestionGenerator(client, "test-model").generate(
            PERL_SNIPPET, result.metrics, result.technology, use_ai=result.ai_available
        )

        assert suggestions
        assert suggestions[-1].type == "modernization"
        assert suggestions[-1].title == "PERL Modernization Opportunities"

    @pytest.mark.asyncio
    async def test_availability_check_exception_reads_as_unavailable(self):
        client = make_ai_client()
        client.is_available.side_effect = RuntimeError("connection refused")
        orchestrator = AnalysisOrchestrator(ai_client=client, ai_model="test-model")

        result = await orchestrator.analyze(PERL_SNIPPET, "check.pl")

        assert result.provenance.value == "heuristic"
        assert result.ai_available is False

    @pytest.mark.asyncio
    async def test_derived_scores_are_populated(self):
        orchestrator = AnalysisOrchestrator(ai_client=make_ai_client(available=False), ai_model="m")
        result = await orchestrator.analyze(PERL_SNIPPET, "check.pl")

        assert 0 <= result.maintainability_index <= 100
        assert 0 <= result.risk_score <= 100
        assert 0 <= result.quality_score <= 100
        assert result.technical_debt.category == "low"
        assert result.detailed_metrics["subroutines"] == ["check"]
        assert result.summary()["provenance"] == "heuristic"

    @pytest.mark.asyncio
    async def test_bytes_are_decoded(self):
        orchestrator = AnalysisOrchestrator(ai_client=make_ai_client(available=False), ai_model="m")
        result = await orchestrator.analyze(PERL_SNIPPET.encode("utf-8"), "check.pl")
        assert result.metrics.cyclomatic_complexity == 4

    @pytest.mark.asyncio
    async def test_undecodable_bytes_raise(self):
        orchestrator = AnalysisOrchestrator(ai_client=make_ai_client(available=False), ai_model="m")
        with pytest.raises(InputError):
            await orchestrator.analyze(b"\xff\xfe\x00", "bad.pl")


# =============================================================================
# AI path
# =============================================================================


class TestAIPath:
    """AI available: model metrics, recovery, sub-scans."""

    @pytest.mark.asyncio
    async def test_ai_metrics_with_recomputed_level_and_clamped_risk(self):
        client = make_ai_client(responses={
            METRICS_EXTRACTION_PROMPT: "Sure!\n" + json.dumps(AI_METRICS),
        })
        orchestrator = AnalysisOrchestrator(ai_client=client, ai_model="codellama-test")

        result = await orchestrator.analyze(PERL_SNIPPET, "check.pl")

        assert result.provenance.value == "ai"
        assert result.ai_model == "codellama-test"
        assert result.metrics.cyclomatic_complexity == 12
        # Level always follows cc, whatever the model said
        assert result.complexity_level == "medium"
        assert result.risk_score == 100.0

    @pytest.mark.asyncio
    async def test_sub_scan_issues_are_appended(self):
        client = make_ai_client(responses={
            METRICS_EXTRACTION_PROMPT: json.dumps(AI_METRICS),
            SECURITY_SCAN_PROMPT: "Line 5: user input printed unescaped",
            "refactoring": "Line 4: merge the two range checks\nConsider a dispatch table",
        })
        orchestrator = AnalysisOrchestrator(ai_client=client, ai_model="codellama-test")

        result = await orchestrator.analyze(PERL_SNIPPET, "check.pl")

        scan_issues = [i for i in result.issues_found if i["rule"] in ("security", "refactoring")]
        assert scan_issues == [
            {"line": 5, "severity": "warning", "message": "user input printed unescaped", "rule": "security"},
            {"line": 4, "severity": "info", "message": "merge the two range checks", "rule": "refactoring"},
            {"line": 0, "severity": "info", "message": "Consider a dispatch table", "rule": "refactoring"},
        ]

    @pytest.mark.asyncio
    async def test_extraction_failure_falls_back_to_heuristics(self):
        client = make_ai_client(responses={
            METRICS_EXTRACTION_PROMPT: LLMError("timed out"),
            SECURITY_SCAN_PROMPT: LLMError("timed out"),
            "refactoring": LLMError("timed out"),
        })
        orchestrator = AnalysisOrchestrator(ai_client=client, ai_model="codellama-test")

        result = await orchestrator.analyze(PERL_SNIPPET, "check.pl")

        assert result.provenance.value == "heuristic"
        assert result.ai_model is None
        assert result.metrics.cyclomatic_complexity == 4
        assert not any(i["rule"] in ("security", "refactoring") for i in result.issues_found)

    @pytest.mark.asyncio
    async def test_unrecoverable_response_uses_fallback_metrics(self):
        """A fallback recovery is accepted as the AI result."""
        client = make_ai_client(responses={METRICS_EXTRACTION_PROMPT: "I cannot help with that."})
        orchestrator = AnalysisOrchestrator(ai_client=client, ai_model="codellama-test")

        result = await orchestrator.analyze(PERL_SNIPPET, "check.pl")

        assert result.provenance.value == "ai"
        assert result.metrics.cyclomatic_complexity == 5
        assert result.metrics.nesting_depth == 3
        assert result.risk_score == 50.0
        assert result.complexity_level == "low"

    @pytest.mark.asyncio
    async def test_impossible_counts_are_defaulted(self):
        """Counts larger than any uploadable file could hold never reach scoring."""
        answer = dict(AI_METRICS, cyclomatic_complexity=5_000_000_000, lines_of_code=10**12, nesting_depth="1e400")
        client = make_ai_client(responses={METRICS_EXTRACTION_PROMPT: json.dumps(answer)})
        orchestrator = AnalysisOrchestrator(ai_client=client, ai_model="codellama-test")

        result = await orchestrator.analyze(PERL_SNIPPET, "check.pl")

        assert result.provenance.value == "ai"
        assert result.metrics.cyclomatic_complexity == 1
        assert result.metrics.lines_of_code == 0
        assert result.metrics.nesting_depth == 0
        assert result.metrics.loop_count == 1
        assert result.technical_debt.estimated_hours == 0
        assert result.risk_score == 100.0


class TestValidateMetrics:
    """Merged values are coerced; invalid ones are defaulted."""

    def test_invalid_values_default(self):
        orchestrator = AnalysisOrchestrator(ai_client=make_ai_client(available=False), ai_model="m")
        metrics = orchestrator._validate_metrics({
            "lines_of_code": "12",
            "cyclomatic_complexity": 0,
            "nesting_depth": -1,
            "loop_count": "many",
            "function_count": 3.7,
        })

        assert metrics.lines_of_code == 12
        assert metrics.cyclomatic_complexity == 1
        assert metrics.nesting_depth == 0
        assert metrics.loop_count == 0
        assert metrics.function_count == 3
        assert metrics.class_count == 0

    def test_out_of_range_values_default(self):
        orchestrator = AnalysisOrchestrator(ai_client=make_ai_client(available=False), ai_model="m")
        metrics = orchestrator._validate_metrics({
            "lines_of_code": MAX_METRIC_VALUE + 1,
            "cyclomatic_complexity": float("inf"),
            "nesting_depth": "1e400",
            "loop_count": MAX_METRIC_VALUE,
        })

        assert metrics.lines_of_code == 0
        assert metrics.cyclomatic_complexity == 1
        assert metrics.nesting_depth == 0
        assert metrics.loop_count == MAX_METRIC_VALUE
