"""Prompt catalogue for AI-assisted analysis.

General prompts per analysis type, technology-specific overrides for the
legacy technologies, and the structured prompts whose output is parsed back
into metrics or line-numbered issues.
"""

from enum import Enum

from legacylens.services.metrics import METRIC_KEYS
from legacylens.services.technology import Technology


class AnalysisType(str, Enum):
    SECURITY = "security"
    REFACTORING = "refactoring"
    PERFORMANCE = "performance"
    MODERNIZATION = "modernization"
    CODE_STYLE = "code_style"


ANALYSIS_PROMPTS: dict[AnalysisType, str] = {
    AnalysisType.SECURITY: """Analyze this code for security vulnerabilities. Look for:
- SQL injection vulnerabilities
- Command injection risks
- Authentication bypass possibilities
- Input validation issues
- Hardcoded credentials or secrets
- Unsafe file operations
- Cross-site scripting (XSS) risks
- Insecure cryptographic practices

Provide specific line-by-line recommendations.""",
    AnalysisType.REFACTORING: """Analyze this code for refactoring opportunities. Focus on:
- Reducing cyclomatic complexity
- Eliminating code duplication
- Improving function/method structure
- Enhancing readability and maintainability
- Applying design patterns where appropriate
- Breaking down large functions
- Improving variable and function naming

Suggest specific code improvements.""",
    AnalysisType.PERFORMANCE: """Analyze this code for performance issues. Look for:
- Inefficient algorithms or data structures
- Unnecessary loops or iterations
- Memory leaks or excessive memory usage
- Database query optimization opportunities
- Caching opportunities
- I/O operation improvements
- Concurrency issues

Provide actionable performance optimization suggestions.""",
    AnalysisType.MODERNIZATION: """Suggest modernization approaches for this legacy code:
- Migration to modern frameworks/libraries
- Adoption of current best practices
- Improved error handling
- Better logging and monitoring
- Code organization improvements
- Testing strategy enhancements
- Documentation improvements

Focus on practical migration steps.""",
    AnalysisType.CODE_STYLE: """Review this code for style and best practice improvements:
- Code formatting and consistency
- Naming conventions
- Comment quality and documentation
- Function/method organization
- Error handling patterns
- Logging practices
- Code organization

Suggest specific style improvements.""",
}

TECHNOLOGY_SPECIFIC_PROMPTS: dict[Technology, dict[AnalysisType, str]] = {
    Technology.PERL: {
        AnalysisType.MODERNIZATION: """This is Perl code. Suggest modernization approaches including:
- Migration to modern Perl practices
- Use of modern Perl modules (Moose, Moo, etc.)
- Improved error handling with Try::Tiny
- Better testing with Test::More
- Migration to Python/Node.js considerations
- Package management improvements
- Security enhancements""",
        AnalysisType.REFACTORING: """This is Perl code. Suggest refactoring improvements:
- Subroutine organization and naming
- Use of references vs. direct variables
- Hash and array handling improvements
- Regular expression optimizations
- Module organization
- Scope and variable declaration improvements""",
    },
    Technology.TIBCO: {
        AnalysisType.MODERNIZATION: """This is TIBCO BusinessWorks XML. Suggest modernization approaches:
- Migration to TIBCO BusinessWorks 6.x
- Process optimization strategies
- Error handling improvements
- Integration pattern enhancements
- Performance optimization
- Monitoring and logging improvements
- Service-oriented architecture adoption""",
        AnalysisType.REFACTORING: """This is TIBCO BusinessWorks XML. Suggest improvements:
- Process flow optimization
- Activity configuration enhancements
- Variable and parameter management
- Error handling and retry logic
- Transaction management
- Resource connection optimization""",
    },
    Technology.PENTAHO: {
        AnalysisType.MODERNIZATION: """This is Pentaho ETL (Kettle). Suggest modernization approaches:
- Migration to modern ETL tools
- Performance optimization strategies
- Data pipeline improvements
- Error handling enhancements
- Monitoring and logging
- Cloud migration considerations
- Real-time processing adoption""",
        AnalysisType.REFACTORING: """This is Pentaho ETL code. Suggest improvements:
- Step optimization and configuration
- Variable and parameter usage
- Transformation flow improvements
- Error handling and logging
- Performance tuning
- Database connection optimization""",
    },
}


def get_prompt_for_analysis(
    analysis_type: AnalysisType,
    technology: Technology | None = None,
    context: str | None = None,
) -> str:
    """Prompt for an analysis type, preferring the technology override when one exists."""
    prompt = ANALYSIS_PROMPTS[analysis_type]

    if technology is not None:
        prompt = TECHNOLOGY_SPECIFIC_PROMPTS.get(technology, {}).get(analysis_type, prompt)

    if context:
        prompt += f"\n\nAdditional context: {context}"

    return prompt


# =============================================================================
# Structured prompts
# =============================================================================

_METRIC_DESCRIPTIONS: dict[str, str] = {
    "lines_of_code": "total number of lines",
    "code_lines": "number of code lines (excluding comments and blank lines)",
    "comment_lines": "number of comment lines",
    "blank_lines": "number of blank lines",
    "cyclomatic_complexity": "a number between 1-50 representing code complexity",
    "nesting_depth": "maximum nesting level in the code",
    "function_count": "number of functions/methods",
    "class_count": "number of classes/objects",
    "loop_count": "number of loops",
    "conditional_count": "number of conditional statements",
    "sql_join_count": "number of SQL joins if applicable",
    "dependency_count": "number of imports/dependencies",
    "complexity_level": 'one of "low", "medium", "high", or "critical"',
    "risk_score": "a number between 0-100 representing risk",
}

METRICS_EXTRACTION_PROMPT = (
    "Analyze this code and provide the following metrics in JSON format:\n"
    + "\n".join(f"- {key}: {_METRIC_DESCRIPTIONS[key]}" for key in METRIC_KEYS)
    + "\n\nReturn ONLY valid JSON without any explanation or additional text."
)

_LINE_FORMAT_INSTRUCTIONS = """
For each {item} found, provide the line number and description in this format:
"Line X: Description of the {item}"
where X is the line number. If you can't determine the exact line, use "Line 0".
"""

SECURITY_SCAN_PROMPT = """Analyze this code for security vulnerabilities. Focus on:
- SQL injection risks
- Command injection
- Authentication issues
- Data validation problems
- Hardcoded credentials
""" + _LINE_FORMAT_INSTRUCTIONS.format(item="issue")


def refactoring_scan_prompt(cyclomatic_complexity: int) -> str:
    return (
        f"This code has a cyclomatic complexity of {cyclomatic_complexity}. "
        "Suggest specific refactoring approaches to reduce complexity and improve maintainability.\n"
        + _LINE_FORMAT_INSTRUCTIONS.format(item="refactoring suggestion")
    )
