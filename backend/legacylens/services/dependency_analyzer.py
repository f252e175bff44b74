"""Dependency extraction for legacy technologies.

Lists what a file pulls in (Perl modules, TIBCO imports and activity
references, Pentaho step types and connections) and classifies each entry as
standard or external with a coarse risk level.
"""

import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from legacylens.services.metrics import split_lines
from legacylens.services.technology import Technology


class DependencyKind(str, Enum):
    USE = "use"
    REQUIRE = "require"
    IMPORT = "import"
    REFERENCE = "reference"


class DependencyRisk(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Dependency:
    """One dependency reference found in a file."""

    name: str
    kind: str
    is_external: bool
    is_standard: bool
    risk_level: str
    version: str | None = None


@dataclass
class DependencyAnalysis:
    """Dependencies of a file with summary counts."""

    dependencies: list[Dependency] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.dependencies)

    @property
    def external_count(self) -> int:
        return sum(1 for d in self.dependencies if d.is_external)

    @property
    def high_risk_count(self) -> int:
        return sum(1 for d in self.dependencies if d.risk_level == DependencyRisk.HIGH.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dependencies": [asdict(d) for d in self.dependencies],
            "total_count": self.total_count,
            "external_count": self.external_count,
            "high_risk_count": self.high_risk_count,
        }


STANDARD_LIBRARIES: dict[Technology, frozenset[str]] = {
    Technology.PERL: frozenset({
        "strict", "warnings", "Carp", "Data::Dumper", "File::Basename",
        "File::Path", "File::Spec", "Getopt::Long", "IO::File", "List::Util",
        "Scalar::Util", "Time::Local", "POSIX", "Exporter",
    }),
    Technology.TIBCO: frozenset({
        "java.lang", "java.util", "java.io", "javax.xml", "org.w3c.dom",
    }),
    Technology.PENTAHO: frozenset({
        "java.lang", "java.util", "java.sql", "javax.sql", "org.pentaho",
    }),
}

HIGH_RISK_PATTERNS = [
    re.compile(r"eval", re.IGNORECASE),
    re.compile(r"exec", re.IGNORECASE),
    re.compile(r"system", re.IGNORECASE),
    re.compile(r"shell", re.IGNORECASE),
    re.compile(r"unsafe", re.IGNORECASE),
    re.compile(r"deprecated", re.IGNORECASE),
]

_PERL_USE = re.compile(r"^use\s+([\w:]+)(?:\s+([\d.]+))?")
_PERL_REQUIRE = re.compile(r"^require\s+(?:\"([^\"]+)\"|'([^']+)'|([\w:]+))")
_TIBCO_IMPORT = re.compile(r"<import[^>]*>([^<]+)</import>")
_TIBCO_ACTIVITY_TYPE = re.compile(r"<pd:activity[^>]+type=\"([^\"]+)\"")
_PENTAHO_STEP_TYPE = re.compile(r"<step>\s*<name>[^<]+</name>\s*<type>([^<]+)</type>")
_PENTAHO_CONNECTION = re.compile(r"<connection>([^<]+)</connection>")


class DependencyAnalyzer:
    """Extract and classify dependencies per technology."""

    def analyze(self, content: str, technology: Technology) -> DependencyAnalysis:
        if technology == Technology.PERL:
            dependencies = self._perl_dependencies(content)
        elif technology == Technology.TIBCO:
            dependencies = self._tibco_dependencies(content)
        elif technology == Technology.PENTAHO:
            dependencies = self._pentaho_dependencies(content)
        else:
            dependencies = []
        return DependencyAnalysis(dependencies=dependencies)

    def assess_risk(self, name: str) -> DependencyRisk:
        """Risk level of a dependency by name."""
        for pattern in HIGH_RISK_PATTERNS:
            if pattern.search(name):
                return DependencyRisk.HIGH

        if "::" in name and name not in STANDARD_LIBRARIES[Technology.PERL]:
            return DependencyRisk.MEDIUM

        return DependencyRisk.LOW

    def _perl_dependencies(self, content: str) -> list[Dependency]:
        standard = STANDARD_LIBRARIES[Technology.PERL]
        dependencies: list[Dependency] = []

        for line in split_lines(content):
            trimmed = line.strip()

            use_match = _PERL_USE.match(trimmed)
            if use_match:
                name = use_match.group(1)
                dependencies.append(Dependency(
                    name=name,
                    kind=DependencyKind.USE.value,
                    version=use_match.group(2),
                    is_external=name not in standard,
                    is_standard=name in standard,
                    risk_level=self.assess_risk(name).value,
                ))
                continue

            require_match = _PERL_REQUIRE.match(trimmed)
            if require_match:
                name = next(g for g in require_match.groups() if g)
                dependencies.append(Dependency(
                    name=name,
                    kind=DependencyKind.REQUIRE.value,
                    # Local script files are part of the same code base
                    is_external=not name.endswith(".pl") and name not in standard,
                    is_standard=name in standard,
                    risk_level=self.assess_risk(name).value,
                ))

        return dependencies

    def _tibco_dependencies(self, content: str) -> list[Dependency]:
        standard = STANDARD_LIBRARIES[Technology.TIBCO]
        dependencies: list[Dependency] = []

        for match in _TIBCO_IMPORT.finditer(content):
            name = match.group(1).strip()
            package_root = ".".join(name.split(".")[:2])
            dependencies.append(Dependency(
                name=name,
                kind=DependencyKind.IMPORT.value,
                is_external=package_root not in standard,
                is_standard=package_root in standard,
                risk_level=self.assess_risk(name).value,
            ))

        for match in _TIBCO_ACTIVITY_TYPE.finditer(content):
            name = match.group(1)
            dependencies.append(Dependency(
                name=name,
                kind=DependencyKind.REFERENCE.value,
                is_external=True,
                is_standard=False,
                risk_level=self.assess_risk(name).value,
            ))

        return dependencies

    def _pentaho_dependencies(self, content: str) -> list[Dependency]:
        dependencies: list[Dependency] = []

        for match in _PENTAHO_STEP_TYPE.finditer(content):
            name = match.group(1)
            dependencies.append(Dependency(
                name=name,
                kind=DependencyKind.REFERENCE.value,
                is_external=False,
                is_standard=True,
                risk_level=self.assess_risk(name).value,
            ))

        for match in _PENTAHO_CONNECTION.finditer(content):
            dependencies.append(Dependency(
                name=match.group(1),
                kind=DependencyKind.REFERENCE.value,
                is_external=True,
                is_standard=False,
                risk_level=DependencyRisk.MEDIUM.value,
            ))

        return dependencies
