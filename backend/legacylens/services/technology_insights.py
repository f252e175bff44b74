"""Technology-specific detailed metrics and line-level issue checks."""

import re
from typing import Any

from legacylens.services.dependency_analyzer import DependencyAnalyzer
from legacylens.services.heuristic_extractor import find_basic_issues
from legacylens.services.metrics import CodeIssue, IssueSeverity, RawMetrics, split_lines
from legacylens.services.technology import Technology

# =============================================================================
# Detailed metrics
# =============================================================================

TIBCO_PERFORMANCE_ACTIVITIES = (
    "JDBCQueryActivity",
    "JDBCUpdateActivity",
    "XMLParseActivity",
    "XMLRenderActivity",
    "WriteFileActivity",
    "ReadFileActivity",
    "CallProcessActivity",
)

PENTAHO_PERFORMANCE_STEPS = (
    "SortRows",
    "GroupBy",
    "DatabaseJoin",
    "DBLookup",
    "ExecSQL",
    "ExecSQLRow",
    "Unique",
    "MergeJoin",
)

PENTAHO_ERROR_STEPS = ("Abort", "WriteToLog", "MailValidator")


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _perl_details(content: str) -> dict[str, Any]:
    package = re.search(r"^\s*package\s+([\w:]+)", content, re.MULTILINE)
    return {
        "package_name": package.group(1) if package else None,
        "subroutines": re.findall(r"^\s*sub\s+(\w+)", content, re.MULTILINE),
        "modules": re.findall(r"^\s*use\s+([\w:]+)", content, re.MULTILINE),
        "global_variables": len(set(re.findall(r"(?<!my )\$\w+", content))),
        "lexical_variables": len(re.findall(r"\bmy\s+[$@%]\w+", content)),
    }


def _tibco_details(content: str) -> dict[str, Any]:
    if "com.tibco.pe.core.ProcessDefinition" in content:
        process_type = "process"
    elif "com.tibco.pe.core.ServiceDefinition" in content:
        process_type = "service"
    else:
        process_type = "unknown"

    activity_types = [
        activity_type.rsplit(".", 1)[-1]
        for activity_type in re.findall(r'type="([^"]+)"', content)
        if "com.tibco" in activity_type
    ]

    return {
        "process_type": process_type,
        "activity_types": _unique(activity_types),
        "transitions": len(re.findall(r"<pd:transition\b", content)),
        "variables": len(re.findall(r"<pd:variable\b", content)),
        "services": len(re.findall(r"<pd:service\b", content)),
        "exception_handlers": len(re.findall(r"<pd:handler\b", content)),
        "performance_impact_activities": [
            activity for activity in TIBCO_PERFORMANCE_ACTIVITIES
            if re.search(rf'type="[^"]*{activity}"', content)
        ],
    }


def _pentaho_details(content: str) -> dict[str, Any]:
    if "<transformation>" in content:
        transformation_type = "transformation"
    elif "<job>" in content:
        transformation_type = "job"
    else:
        transformation_type = "unknown"

    step_types = re.findall(r"<type>([^<]+)</type>", content)

    return {
        "transformation_type": transformation_type,
        "step_types": _unique(step_types),
        "connections": len(re.findall(r"<connection>", content)),
        "hops": len(re.findall(r"<hop>", content)),
        "error_handling_steps": sum(step_types.count(step) for step in PENTAHO_ERROR_STEPS),
        "performance_impact_steps": [
            step for step in PENTAHO_PERFORMANCE_STEPS if step in step_types
        ],
    }


def extract_detailed_metrics(
    content: str,
    technology: Technology,
    metrics: RawMetrics,
) -> dict[str, Any]:
    """Free-form metrics payload stored alongside an analysis record."""
    details: dict[str, Any] = {
        "file_size": len(content),
        "average_function_size": (
            metrics.code_lines / metrics.function_count if metrics.function_count > 0 else 0
        ),
        "comment_ratio": (
            metrics.comment_lines / metrics.lines_of_code if metrics.lines_of_code > 0 else 0
        ),
    }

    if technology == Technology.PERL:
        details.update(_perl_details(content))
    elif technology == Technology.TIBCO:
        details.update(_tibco_details(content))
    elif technology == Technology.PENTAHO:
        details.update(_pentaho_details(content))

    if technology != Technology.OTHER:
        details["dependency_analysis"] = DependencyAnalyzer().analyze(content, technology).to_dict()

    return details


# =============================================================================
# Line-level issues
# =============================================================================

PERL_MAX_INDENTATION = 20


def _perl_issues(lines: list[str], content: str) -> list[CodeIssue]:
    issues: list[CodeIssue] = []
    for number, line in enumerate(lines, start=1):
        if re.search(r"\beval\s*\(", line):
            issues.append(CodeIssue(number, IssueSeverity.WARNING.value,
                                    "Use of eval() can be dangerous", "no-eval"))
        if re.search(r"\bexec\s*\(", line):
            issues.append(CodeIssue(number, IssueSeverity.WARNING.value,
                                    "Use of exec() should be carefully reviewed", "careful-exec"))
        if re.search(r"\$\w+\s*=\s*\$_\[\d+\]", line):
            issues.append(CodeIssue(number, IssueSeverity.INFO.value,
                                    "Consider using named parameters instead of $_[n]", "named-params"))
        indentation = len(line) - len(line.lstrip())
        if line.strip() and indentation > PERL_MAX_INDENTATION:
            issues.append(CodeIssue(number, IssueSeverity.WARNING.value,
                                    "Deep nesting detected, consider refactoring", "max-depth"))
    return issues


def _tibco_issues(lines: list[str], content: str) -> list[CodeIssue]:
    issues: list[CodeIssue] = []
    has_exception_handler = '<pd:handler type="com.tibco.pe.core.ExceptionHandler"' in content

    for number, line in enumerate(lines, start=1):
        if "JDBCQueryActivity" in line and 'maxRows="-1"' in line:
            issues.append(CodeIssue(number, IssueSeverity.WARNING.value,
                                    "Unlimited result set can cause memory issues",
                                    "performance-unlimited-resultset"))
        if "CallProcessActivity" in line and 'asyncCall="true"' not in line:
            issues.append(CodeIssue(number, IssueSeverity.INFO.value,
                                    "Consider using asynchronous calls for better performance",
                                    "performance-sync-call"))
        if "jdbcProperty" in line and "value=" in line and "$" not in line:
            issues.append(CodeIssue(number, IssueSeverity.WARNING.value,
                                    "Hardcoded database connection detected, use variables instead",
                                    "maintainability-hardcoded-db"))
        if 'type="com.tibco.plugin.jdbc.JDBCQueryActivity"' in line and not has_exception_handler:
            issues.append(CodeIssue(number, IssueSeverity.WARNING.value,
                                    "Consider adding error handling for database operations",
                                    "reliability-error-handling"))
        if "com.tibco.plugin.xml.XMLParseActivity" in line:
            issues.append(CodeIssue(number, IssueSeverity.INFO.value,
                                    "Consider migrating to newer XML processing activities",
                                    "modernization-deprecated-activity"))
    return issues


def _pentaho_issues(lines: list[str], content: str) -> list[CodeIssue]:
    issues: list[CodeIssue] = []
    has_error_handling = "<type>Abort</type>" in content or 'error_handling="Y"' in content

    for number, line in enumerate(lines, start=1):
        if "<type>SortRows</type>" in line:
            issues.append(CodeIssue(number, IssueSeverity.WARNING.value,
                                    "SortRows step can be memory-intensive with large datasets",
                                    "performance-sort-rows"))
        if "<type>ExecSQL</type>" in line:
            issues.append(CodeIssue(number, IssueSeverity.WARNING.value,
                                    "ExecSQL step should be used carefully, consider using dedicated database steps",
                                    "performance-exec-sql"))
        if "password=" in line and "${" not in line:
            issues.append(CodeIssue(number, IssueSeverity.ERROR.value,
                                    "Hardcoded password detected, use variables instead",
                                    "security-hardcoded-password"))
        if ("<type>TableInput</type>" in line or "<type>TableOutput</type>" in line) and not has_error_handling:
            issues.append(CodeIssue(number, IssueSeverity.WARNING.value,
                                    "Consider adding error handling for database operations",
                                    "reliability-error-handling"))
    return issues


_ISSUE_CHECKS = {
    Technology.PERL: _perl_issues,
    Technology.TIBCO: _tibco_issues,
    Technology.PENTAHO: _pentaho_issues,
}


def find_technology_issues(content: str, technology: Technology) -> list[CodeIssue]:
    """Line-level issues specific to a legacy technology."""
    check = _ISSUE_CHECKS.get(technology)
    if check is None:
        return []
    return check(split_lines(content), content)


def find_issues(content: str, technology: Technology, metrics: RawMetrics) -> list[CodeIssue]:
    """Basic metric-derived issues followed by the technology line checks."""
    return find_basic_issues(metrics) + find_technology_issues(content, technology)
