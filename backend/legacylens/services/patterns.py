"""Per-technology pattern tables for heuristic metric extraction.

Each technology maps to one PatternSet. ``*_keywords`` entries are literal
strings: they are escaped before compilation and get word boundaries on
whichever end is a word character. ``*_patterns`` entries are regular
expressions compiled as-is with re.MULTILINE.
"""

from dataclasses import dataclass

from legacylens.services.technology import Technology


@dataclass(frozen=True)
class PatternSet:
    """Regex and keyword tables for one technology."""

    line_comment_markers: tuple[str, ...] = ()
    block_comments: tuple[tuple[str, str], ...] = ()
    conditional_keywords: tuple[str, ...] = ()
    conditional_patterns: tuple[str, ...] = ()
    loop_keywords: tuple[str, ...] = ()
    loop_patterns: tuple[str, ...] = ()
    function_patterns: tuple[str, ...] = ()
    class_patterns: tuple[str, ...] = ()
    dependency_patterns: tuple[str, ...] = ()
    opening_patterns: tuple[str, ...] = ()
    closing_patterns: tuple[str, ...] = ()
    case_insensitive_keywords: bool = False


# Every JOIN keyword once, whatever its qualifier (INNER, LEFT OUTER, ...)
SQL_JOIN_PATTERNS: tuple[str, ...] = (r"\bJOIN\b",)


def _tibco_activity_markers(*class_names: str) -> tuple[str, ...]:
    """Attribute and element spellings of TIBCO activity types."""
    markers: list[str] = []
    for name in class_names:
        markers.append(f'type="{name}"')
        markers.append(f"<pd:type>{name}</pd:type>")
    return tuple(markers)


def _pentaho_step_markers(*step_types: str) -> tuple[str, ...]:
    return tuple(f"<type>{step}</type>" for step in step_types)


PERL_PATTERNS = PatternSet(
    line_comment_markers=("#",),
    block_comments=(
        ("=pod", "=cut"),
        ("=head1", "=cut"),
        ("=head2", "=cut"),
        ("=begin", "=cut"),
        ("=over", "=cut"),
    ),
    conditional_keywords=("if", "elsif", "unless", "given", "when"),
    loop_keywords=("while", "until", "for", "foreach"),
    function_patterns=(r"^\s*sub\s+\w+",),
    class_patterns=(r"^\s*package\s+[\w:]+",),
    dependency_patterns=(
        r"^\s*use\s+[\w:]+",
        r"^\s*require\s+(?:[\w:]+|'[^']+'|\"[^\"]+\")",
    ),
    opening_patterns=(r"\{",),
    closing_patterns=(r"\}",),
)

TIBCO_PATTERNS = PatternSet(
    block_comments=(("<!--", "-->"),),
    conditional_keywords=_tibco_activity_markers(
        "com.tibco.pe.core.ChoiceActivity",
        "com.tibco.pe.core.IfActivity",
    ),
    loop_keywords=_tibco_activity_markers(
        "com.tibco.pe.core.WhileActivity",
        "com.tibco.pe.core.ForEachActivity",
        "com.tibco.pe.core.RepeatUntilActivity",
        "com.tibco.pe.core.GroupActivity",
    ),
    function_patterns=(
        r"<pd:activity\b[^>]*\bname=\"[^\"]+\"",
        r"<pd:process\b[^>]*\bname=\"[^\"]+\"",
    ),
    class_patterns=(
        r"<pd:process\b",
        r"<pd:ProcessDefinition\b",
    ),
    dependency_patterns=(
        r"<import\b[^>]*>[^<]+</import>",
        r"<pd:activity\b[^>]*\btype=\"[^\"]+\"",
    ),
    opening_patterns=(r"<pd:(?:activity|process|group|sequence)\b(?![^>]*/>)",),
    closing_patterns=(r"</pd:(?:activity|process|group|sequence)>",),
)

PENTAHO_PATTERNS = PatternSet(
    block_comments=(("<!--", "-->"),),
    conditional_keywords=_pentaho_step_markers(
        "FilterRows",
        "SwitchCase",
        "IfNull",
        "Abort",
    ),
    loop_keywords=_pentaho_step_markers(
        "SingleThreader",
        "BlockingStep",
        "ExecuteForEach",
        "JobExecutor",
        "LoopRows",
        "Repeat",
    ),
    function_patterns=(r"<step>", r"<entry>"),
    class_patterns=(r"<transformation>", r"<job>"),
    dependency_patterns=(
        r"<connection>[^<]+</connection>",
        r"<step>\s*<name>[^<]+</name>\s*<type>[^<]+</type>",
    ),
    opening_patterns=(r"<(?:step|transformation|job|hop)>",),
    closing_patterns=(r"</(?:step|transformation|job|hop)>",),
    case_insensitive_keywords=True,
)

GENERIC_PATTERNS = PatternSet(
    line_comment_markers=("//", "#", "/*", "*", "<!--"),
    block_comments=(("/*", "*/"), ("<!--", "-->")),
    conditional_keywords=("if", "elif", "elsif", "unless", "switch", "case", "catch"),
    loop_keywords=("for", "foreach", "while", "do", "repeat", "until"),
    function_patterns=(
        r"\bfunction\s+\w+\s*\(",
        r"\w+\s*=\s*function\s*\(",
        r"\bdef\s+\w+\s*\(",
        r"\bsub\s+\w+",
    ),
    class_patterns=(r"\b(?:class|interface|struct|package|module)\s+\w+",),
    dependency_patterns=(
        r"^\s*import\s+\S+",
        r"\brequire\s*\(?\s*['\"][^'\"]+['\"]",
        r"^\s*use\s+[\w\\:]+",
        r"^\s*from\s+[\w.]+\s+import\b",
        r"^\s*using\s+[\w.]+\s*;",
    ),
    opening_patterns=(r"\{", r"\(", r"\["),
    closing_patterns=(r"\}", r"\)", r"\]"),
)

PATTERN_SETS: dict[Technology, PatternSet] = {
    Technology.PERL: PERL_PATTERNS,
    Technology.TIBCO: TIBCO_PATTERNS,
    Technology.PENTAHO: PENTAHO_PATTERNS,
    Technology.OTHER: GENERIC_PATTERNS,
}

