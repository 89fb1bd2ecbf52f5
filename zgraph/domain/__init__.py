"""
Domain layer for zgraph.

Contains pure domain objects with no I/O or side effects:
- Identifier family: ArtifactId, QualifiedArtifactId, Identifier, IdKind
- Version: semver with precedence ordering
- Pattern: include/exclude globs over repository-relative paths
- Project: metadata plus workspace and rule patterns
- Target: graph node with visibility and declared dependencies
- Diagnostic: one problem found while resolving

These objects are immutable and provide serialization methods for
JSONL output.
"""

from .identifier import ArtifactId, QualifiedArtifactId, Identifier, IdKind
from .version import Version, Ordering, compare, satisfies
from .pattern import Pattern, select, select_any
from .project import Author, ProjectMeta, Project, ProjectBuilder, load_project
from .target import (
    Dependency,
    Scope,
    ScopeKind,
    Target,
    TransitiveLevel,
    Visibility,
    VisibilityKind,
)
from .diagnostic import Diagnostic, DiagnosticKind, Severity

__all__ = [
    'ArtifactId',
    'QualifiedArtifactId',
    'Identifier',
    'IdKind',
    'Version',
    'Ordering',
    'compare',
    'satisfies',
    'Pattern',
    'select',
    'select_any',
    'Author',
    'ProjectMeta',
    'Project',
    'ProjectBuilder',
    'load_project',
    'Dependency',
    'Scope',
    'ScopeKind',
    'Target',
    'TransitiveLevel',
    'Visibility',
    'VisibilityKind',
    'Diagnostic',
    'DiagnosticKind',
    'Severity',
]
