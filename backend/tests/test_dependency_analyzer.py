"""Tests for dependency extraction and risk classification."""

import pytest

from legacylens.services.dependency_analyzer import DependencyAnalyzer, DependencyRisk
from legacylens.services.technology import Technology

PERL_MODULE = """package Billing::Export;
use strict;
use warnings;
use DBI 1.643;
use LWP::UserAgent;
require "helpers.pl";
require IPC::System::Simple;
"""


class TestPerlDependencies:
    """use/require statements with standard-library classification."""

    def test_extracts_every_statement(self):
        analysis = DependencyAnalyzer().analyze(PERL_MODULE, Technology.PERL)
        names = [d.name for d in analysis.dependencies]

        assert names == ["strict", "warnings", "DBI", "LWP::UserAgent", "helpers.pl", "IPC::System::Simple"]
        assert analysis.total_count == 6

    def test_classification(self):
        deps = {d.name: d for d in DependencyAnalyzer().analyze(PERL_MODULE, Technology.PERL).dependencies}

        assert deps["strict"].is_standard
        assert not deps["strict"].is_external
        assert deps["DBI"].version == "1.643"
        assert deps["DBI"].kind == "use"
        assert deps["helpers.pl"].kind == "require"
        assert not deps["helpers.pl"].is_external

    def test_risk_levels(self):
        deps = {d.name: d for d in DependencyAnalyzer().analyze(PERL_MODULE, Technology.PERL).dependencies}

        assert deps["DBI"].risk_level == "low"
        assert deps["LWP::UserAgent"].risk_level == "medium"
        assert deps["IPC::System::Simple"].risk_level == "high"

    def test_summary_counts(self):
        summary = DependencyAnalyzer().analyze(PERL_MODULE, Technology.PERL).to_dict()

        assert summary["total_count"] == 6
        assert summary["external_count"] == 3
        assert summary["high_risk_count"] == 1
        assert len(summary["dependencies"]) == 6


class TestXmlDependencies:
    """TIBCO imports/activity types and Pentaho step types/connections."""

    def test_tibco_imports_and_activity_types(self):
        content = (
            "<import namespace=\"x\">java.util.List</import>\n"
            "<import>com.acme.Billing</import>\n"
            '<pd:activity name="Run" type="com.tibco.plugin.shell.ShellActivity">\n'
        )
        deps = DependencyAnalyzer().analyze(content, Technology.TIBCO).dependencies

        assert [(d.name, d.kind) for d in deps] == [
            ("java.util.List", "import"),
            ("com.acme.Billing", "import"),
            ("com.tibco.plugin.shell.ShellActivity", "reference"),
        ]
        assert deps[0].is_standard
        assert deps[1].is_external
        assert deps[2].risk_level == "high"

    def test_pentaho_steps_and_connections(self):
        content = (
            "<step>\n  <name>Read</name>\n  <type>TableInput</type>\n</step>\n"
            "<connection>warehouse</connection>\n"
        )
        deps = DependencyAnalyzer().analyze(content, Technology.PENTAHO).dependencies

        assert [(d.name, d.risk_level) for d in deps] == [
            ("TableInput", "low"),
            ("warehouse", "medium"),
        ]
        assert deps[1].is_external

    def test_other_has_no_dependencies(self):
        analysis = DependencyAnalyzer().analyze("import os\n", Technology.OTHER)
        assert analysis.total_count == 0


class TestAssessRisk:
    """Risk is judged on the name only."""

    @pytest.mark.parametrize(
        ("name", "risk"),
        [
            ("Safe::Eval", DependencyRisk.HIGH),
            ("Unsafe", DependencyRisk.HIGH),
            ("Data::Dumper", DependencyRisk.LOW),
            ("My::Module", DependencyRisk.MEDIUM),
            ("POSIX", DependencyRisk.LOW),
        ],
    )
    def test_assess_risk(self, name: str, risk: DependencyRisk):
        assert DependencyAnalyzer().assess_risk(name) == risk
