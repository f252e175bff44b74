"""Tests for heuristic metric extraction.

Covers line classification, counting per technology, nesting depth and
the basic metric-derived issues.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from legacylens.services.heuristic_extractor import (
    HeuristicMetricsExtractor,
    find_basic_issues,
)
from legacylens.services.metrics import RAW_METRIC_FIELDS, RawMetrics
from legacylens.services.patterns import PERL_PATTERNS, PatternSet
from legacylens.services.scoring import get_scoring_service
from legacylens.services.technology import Technology

PERL_SNIPPET = """#!/usr/bin/perl
use strict;
use warnings;

# Check the input
sub check {
    my ($value) = @_;
    if ($value > 10) {
        print "big\\n";
    }
    if ($value < 0) {
        print "negative\\n";
    }
    while ($value > 0) {
        $value--;
    }
    return $value;
}
"""

TIBCO_PROCESS = """<?xml version="1.0" encoding="UTF-8"?>
<pd:ProcessDefinition xmlns:pd="http://xmlns.tibco.com/bw/process/2003">
    <!-- Order intake -->
    <pd:name>Processes/Orders.process</pd:name>
    <pd:activity name="Query Orders">
        <pd:type>com.tibco.plugin.jdbc.JDBCQueryActivity</pd:type>
    </pd:activity>
    <pd:group name="Each Order">
        <pd:type>com.tibco.pe.core.ForEachActivity</pd:type>
        <pd:activity name="Route">
            <pd:type>com.tibco.pe.core.ChoiceActivity</pd:type>
        </pd:activity>
    </pd:group>
</pd:ProcessDefinition>
"""

PENTAHO_TRANSFORMATION = """<transformation>
  <info><name>load_customers</name></info>
  <connection>warehouse</connection>
  <step>
    <name>Read customers</name>
    <type>TableInput</type>
    <sql>SELECT * FROM customers c INNER JOIN orders o ON o.customer_id = c.id</sql>
  </step>
  <step>
    <name>Filter active</name>
    <type>FilterRows</type>
  </step>
  <hop><from>Read customers</from><to>Filter active</to></hop>
</transformation>
"""


class TestLineClassification:
    """Lines are blank, comment or code, per technology."""

    def test_perl_hash_comments_and_blanks(self):
        extractor = HeuristicMetricsExtractor()
        lines = extractor.classify_lines(PERL_SNIPPET, Technology.PERL)

        assert lines.total == 18
        assert lines.blank == 1
        assert lines.comment == 2  # shebang and "# Check the input"
        assert lines.code == lines.total - lines.blank - lines.comment

    def test_perl_pod_block_is_comment(self):
        content = "my $x = 1;\n=pod\n\nDocs here\n\n=cut\nmy $y = 2;\n"
        lines = HeuristicMetricsExtractor().classify_lines(content, Technology.PERL)

        assert lines.code == 2
        assert lines.comment == 5
        assert lines.blank == 0

    def test_xml_block_comment_spanning_lines(self):
        content = "<job>\n<!-- start\nstill comment\nend -->\n<entry/>\n</job>\n"
        lines = HeuristicMetricsExtractor().classify_lines(content, Technology.PENTAHO)

        assert lines.comment == 3
        assert lines.code == 3

    def test_generic_markers(self):
        content = "// one\n# two\n/* three */\n * four\nint x = 1;\n"
        lines = HeuristicMetricsExtractor().classify_lines(content, Technology.OTHER)

        assert lines.comment == 4
        assert lines.code == 1

    def test_only_newline_ends_a_line(self):
        """Form feeds and Unicode line separators stay inside their line."""
        content = "my $a = 1;\fmy $b = 2;\nmy $c = 3; # note\r\n# tail\n"
        lines = HeuristicMetricsExtractor().classify_lines(content, Technology.PERL)

        assert lines.total == 3
        assert lines.code == 2
        assert lines.comment == 1

    def test_empty_content(self):
        metrics = HeuristicMetricsExtractor().extract("", Technology.PERL)
        assert metrics == RawMetrics()


class TestPerlExtraction:
    """Counting over Perl code lines."""

    def test_two_ifs_and_a_while_give_complexity_four(self):
        """A Perl snippet with two ifs and one while has cc 4 and level low."""
        metrics = HeuristicMetricsExtractor().extract(PERL_SNIPPET, Technology.PERL)

        assert metrics.conditional_count == 2
        assert metrics.loop_count == 1
        assert metrics.cyclomatic_complexity == 4
        assert get_scoring_service().determine_complexity_level(4).value == "low"

    def test_fifty_line_script_without_subs(self):
        """Two ifs and one while in a 50-line script with no subs give cc 4."""
        body = [
            "if ($count > 10) {",
            '    print "many\\n";',
            "}",
            "if ($count < 0) {",
            '    print "none\\n";',
            "}",
            "while ($count > 0) {",
            "    $count--;",
            "}",
        ]
        filler = [f"my $value{i} = {i};" for i in range(50 - len(body))]
        content = "\n".join(filler + body) + "\n"

        metrics = HeuristicMetricsExtractor().extract(content, Technology.PERL)

        assert metrics.lines_of_code == 50
        assert metrics.function_count == 0
        assert metrics.conditional_count == 2
        assert metrics.loop_count == 1
        assert metrics.cyclomatic_complexity == 4
        assert get_scoring_service().determine_complexity_level(metrics.cyclomatic_complexity).value == "low"

    def test_structure_counts(self):
        metrics = HeuristicMetricsExtractor().extract(PERL_SNIPPET, Technology.PERL)

        assert metrics.function_count == 1
        assert metrics.class_count == 0
        assert metrics.dependency_count == 2
        assert metrics.nesting_depth == 2

    def test_keywords_in_comments_are_not_counted(self):
        content = "# if while for\nmy $x = 1;\n"
        metrics = HeuristicMetricsExtractor().extract(content, Technology.PERL)

        assert metrics.conditional_count == 0
        assert metrics.loop_count == 0
        assert metrics.cyclomatic_complexity == 1

    def test_keyword_boundaries(self):
        """foreach is one loop, elsif is not an if, and identifiers are ignored."""
        content = "foreach my $i (@list) { $iffy = 1; }\nif ($a) { 1 } elsif ($b) { 2 }\n"
        metrics = HeuristicMetricsExtractor().extract(content, Technology.PERL)

        assert metrics.loop_count == 1
        assert metrics.conditional_count == 2

    def test_package_is_a_class(self):
        content = "package My::Module;\nuse parent 'Exporter';\n1;\n"
        metrics = HeuristicMetricsExtractor().extract(content, Technology.PERL)

        assert metrics.class_count == 1
        assert metrics.dependency_count == 1


class TestXmlExtraction:
    """Counting over TIBCO and Pentaho XML."""

    def test_tibco_process(self):
        metrics = HeuristicMetricsExtractor().extract(TIBCO_PROCESS, Technology.TIBCO)

        assert metrics.comment_lines == 1
        assert metrics.conditional_count == 1
        assert metrics.loop_count == 1
        assert metrics.cyclomatic_complexity == 3
        assert metrics.class_count == 1
        assert metrics.function_count == 2
        assert metrics.nesting_depth == 2

    def test_pentaho_transformation(self):
        metrics = HeuristicMetricsExtractor().extract(PENTAHO_TRANSFORMATION, Technology.PENTAHO)

        assert metrics.function_count == 2
        assert metrics.class_count == 1
        assert metrics.conditional_count == 1
        assert metrics.loop_count == 0
        # one connection plus the two step types
        assert metrics.dependency_count == 3
        assert metrics.sql_join_count == 1
        assert metrics.nesting_depth == 2

    def test_each_join_counted_once(self):
        content = "SELECT * FROM a LEFT OUTER JOIN b ON 1=1 join c ON 1=1 FULL JOIN d ON 1=1\n"
        metrics = HeuristicMetricsExtractor().extract(content, Technology.OTHER)
        assert metrics.sql_join_count == 3


class TestNestingDepth:
    """Nesting depth is a running maximum that never goes negative."""

    def test_unmatched_closers_do_not_go_negative(self):
        extractor = HeuristicMetricsExtractor()
        assert extractor.nesting_depth(["}", "}}", "{"], Technology.PERL) == 1

    def test_same_line_open_and_close(self):
        extractor = HeuristicMetricsExtractor()
        assert extractor.nesting_depth(["if ($x) { y(); }"], Technology.PERL) == 1

    @given(st.lists(st.text(alphabet="{}()[] ax", max_size=30), max_size=40))
    @settings(max_examples=100)
    def test_nesting_depth_is_never_negative(self, lines: list[str]):
        """For any mix of openers and closers the depth is >= 0."""
        extractor = HeuristicMetricsExtractor()
        for technology in Technology:
            assert extractor.nesting_depth(lines, technology) >= 0

    @given(st.text(max_size=2000))
    @settings(max_examples=100)
    def test_extract_always_fully_populated(self, content: str):
        """Every metric field is a non-negative int; complexity is at least 1."""
        metrics = HeuristicMetricsExtractor().extract(content, Technology.OTHER)
        for name in RAW_METRIC_FIELDS:
            value = getattr(metrics, name)
            assert isinstance(value, int)
            assert value >= 0
        assert metrics.cyclomatic_complexity >= 1
        assert metrics.code_lines + metrics.comment_lines + metrics.blank_lines == metrics.lines_of_code


class TestInvalidPatterns:
    """A broken pattern is skipped; extraction continues."""

    def test_invalid_pattern_is_skipped(self):
        broken = PatternSet(
            line_comment_markers=PERL_PATTERNS.line_comment_markers,
            conditional_keywords=("if",),
            conditional_patterns=("(unclosed",),
            loop_patterns=(r"\bwhile\b",),
        )
        extractor = HeuristicMetricsExtractor({Technology.PERL: broken})
        metrics = extractor.extract("if ($x) { while (1) {} }\n", Technology.PERL)

        assert metrics.conditional_count == 1
        assert metrics.loop_count == 1
        assert metrics.cyclomatic_complexity == 3


class TestBasicIssues:
    """Issues derived from the metrics alone."""

    def test_clean_metrics_have_no_issues(self):
        metrics = RawMetrics(lines_of_code=40, code_lines=30, comment_lines=8, function_count=3)
        assert find_basic_issues(metrics) == []

    def test_every_threshold_exceeded(self):
        metrics = RawMetrics(
            lines_of_code=300,
            code_lines=290,
            comment_lines=5,
            cyclomatic_complexity=21,
            nesting_depth=6,
            function_count=2,
        )
        rules = [issue.rule for issue in find_basic_issues(metrics)]
        assert rules == ["refactoring", "complexity", "nesting", "documentation"]

    def test_documentation_issue_is_info(self):
        metrics = RawMetrics(lines_of_code=60, code_lines=60, function_count=3)
        issues = find_basic_issues(metrics)
        assert [(i.rule, i.severity) for i in issues] == [("documentation", "info")]
