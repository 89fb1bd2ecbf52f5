"""
Diagnostic domain objects for zgraph.

Structural problems found while resolving are collected as Diagnostic
records rather than raised one at a time, so a single run reports every
problem in the graph.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class DiagnosticKind(Enum):
    MALFORMED_IDENTIFIER = "MalformedIdentifier"
    MALFORMED_VERSION = "MalformedVersion"
    INVALID_GLOB = "InvalidGlob"
    INVALID_DESCRIPTOR = "InvalidProjectDescriptor"
    DUPLICATE_TARGET = "DuplicateTarget"
    MALFORMED_DEPENDENCY_REFERENCE = "MalformedDependencyReference"
    VISIBILITY_VIOLATION = "VisibilityViolation"
    UNRESOLVED_TARGET = "UnresolvedTarget"
    DEPENDENCY_CYCLE = "DependencyCycle"
    UNSUPPORTED_VERSION = "UnsupportedVersion"


class Severity(Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """
    One problem found in the build graph.

    Attributes:
        kind: What went wrong
        subject: Textual identifier (or file path) of the reporting target
        reason: Human-readable explanation
        dependency: Textual identifier of the other endpoint, if any
        related: Further identifiers involved (e.g. the full cycle path)
        severity: ERROR fails the resolution, WARNING does not
    """

    kind: DiagnosticKind
    subject: str
    reason: str
    dependency: Optional[str] = None
    related: Tuple[str, ...] = ()
    severity: Severity = Severity.ERROR

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def sort_key(self) -> Tuple[str, str, str, str]:
        return (self.subject, self.dependency or '', self.kind.value, self.reason)

    def message(self) -> str:
        if self.dependency:
            return f"{self.kind.value}: {self.subject} -> {self.dependency}: {self.reason}"
        return f"{self.kind.value}: {self.subject}: {self.reason}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'kind': self.kind.value,
            'severity': self.severity.value,
            'subject': self.subject,
            'reason': self.reason,
        }
        if self.dependency:
            result['dependency'] = self.dependency
        if self.related:
            result['related'] = list(self.related)
        return result

    def __str__(self) -> str:
        return self.message()


def sort_diagnostics(diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
    """Deterministic order: reporting target, then dependency, then kind."""
    return sorted(diagnostics, key=Diagnostic.sort_key)


def has_errors(diagnostics: Iterable[Diagnostic]) -> bool:
    return any(d.is_error for d in diagnostics)
