"""
Target domain objects for zgraph.

A Target is a node of the dependency graph. Its dependencies are kept
exactly as written (unresolved text plus transitive level); the resolver
turns them into edges in a separate adjacency structure and never
mutates the Target itself.
"""

import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from ..exit_codes import ContractError
from .identifier import ArtifactId, Identifier
from .pattern import normalize_path


class TransitiveLevel(Enum):
    """Whether a dependency is re-exported to the depender's consumers."""
    PUBLIC = "public"        # Re-exported, interface and linkage
    INTERFACE = "interface"  # Interface re-exported, linkage is not
    PRIVATE = "private"      # Implementation detail

    @classmethod
    def parse(cls, text: str) -> 'TransitiveLevel':
        for level in cls:
            if level.value == text:
                return level
        raise ValueError(f"unknown transitive level {text!r}")


class VisibilityKind(Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    SCOPED = "scoped"


class ScopeKind(Enum):
    """What a visibility scope refers to."""
    DIRECTORY = "visibleToDir"
    FILE = "visibleToFile"
    ARTIFACT = "visibleToArtifact"


@dataclass(frozen=True)
class Scope:
    """One entry of a visibility allow-list."""

    kind: ScopeKind
    value: str

    @classmethod
    def directory(cls, path: str) -> 'Scope':
        return cls(ScopeKind.DIRECTORY, normalize_path(path))

    @classmethod
    def file(cls, path: str) -> 'Scope':
        return cls(ScopeKind.FILE, normalize_path(path))

    @classmethod
    def artifact(cls, artifact: ArtifactId) -> 'Scope':
        return cls(ScopeKind.ARTIFACT, artifact.format())

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.value}"


@dataclass(frozen=True)
class Visibility:
    """
    Which targets may depend on a target.

    Exactly one of three shapes:
        Visibility.public()
        Visibility.private()
        Visibility.scoped_to(Scope.directory("src/net"), ...)
    """

    kind: VisibilityKind
    scopes: FrozenSet[Scope] = frozenset()

    @classmethod
    def public(cls) -> 'Visibility':
        return cls(VisibilityKind.PUBLIC)

    @classmethod
    def private(cls) -> 'Visibility':
        return cls(VisibilityKind.PRIVATE)

    @classmethod
    def scoped_to(cls, *scopes: Scope) -> 'Visibility':
        if not scopes:
            raise ContractError("a scoped visibility needs at least one scope")
        return cls(VisibilityKind.SCOPED, frozenset(scopes))

    def __str__(self) -> str:
        if self.kind is VisibilityKind.SCOPED:
            return "scoped(" + ", ".join(sorted(str(s) for s in self.scopes)) + ")"
        return self.kind.value

    def to_dict(self) -> Any:
        if self.kind is not VisibilityKind.SCOPED:
            return self.kind.value
        grouped: Dict[str, list] = {}
        for scope in sorted(self.scopes, key=str):
            grouped.setdefault(scope.kind.value, []).append(scope.value)
        return grouped


@dataclass(frozen=True)
class Dependency:
    """A dependency as declared: reference text plus transitive level."""

    reference: str
    level: TransitiveLevel = TransitiveLevel.PRIVATE

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.reference, 'transitive': self.level.value}


@dataclass(frozen=True)
class Target:
    """
    Immutable graph node.

    Attributes:
        identifier: Typed identifier, the node's identity
        visibility: Who may depend on this target
        dependencies: Declared dependencies, in declaration order
        source_file: Repository-relative rule file that declared it
    """

    identifier: Identifier
    visibility: Visibility = Visibility(VisibilityKind.PUBLIC)
    dependencies: Tuple[Dependency, ...] = ()
    source_file: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.identifier, Identifier):
            raise ContractError(
                f"Target.identifier must be an Identifier, got {type(self.identifier).__name__}"
            )
        if not isinstance(self.visibility, Visibility):
            raise ContractError(
                f"Target.visibility must be a Visibility, got {type(self.visibility).__name__}"
            )
        for dep in self.dependencies:
            if not isinstance(dep, Dependency):
                raise ContractError(f"Target.dependencies must hold Dependency, got {type(dep).__name__}")
        if self.source_file is not None:
            object.__setattr__(self, 'source_file', normalize_path(self.source_file))

    @property
    def source_directory(self) -> Optional[str]:
        if self.source_file is None:
            return None
        return posixpath.dirname(self.source_file)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'id': self.identifier.format(),
            'visibility': self.visibility.to_dict(),
            'dependencies': [dep.to_dict() for dep in self.dependencies],
        }
        if self.source_file is not None:
            result['source_file'] = self.source_file
        return result
