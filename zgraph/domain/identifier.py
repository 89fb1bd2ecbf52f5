"""
Identifier domain objects for zgraph.

The identifier family is a three-level namespace plus typed entities:

    group                                  e.g. "org.example"
    artifact            group:name         e.g. "org.example:core"
    qualified artifact  artifact@version   e.g. "org.example:core@1.2.0"
    identifier          qualified#kind::name
                        e.g. "org.example:core@1.2.0#target::lib"

Every value here is immutable, parses from text and formats back to the
exact same text.
"""

import re
from dataclasses import dataclass
from enum import Enum

from ..exit_codes import ContractError, MalformedIdentifier, MalformedVersion
from .version import Version

# Characters that separate segments and therefore never appear inside one
SEPARATORS = (':', '@', '#')

_WHITESPACE_RE = re.compile(r'\s')


class IdKind(Enum):
    """Closed set of entity kinds an identifier can name."""
    TARGET = "target"
    TARGET_TYPE = "target_type"
    ARCHITECTURE = "architecture"
    OS = "os"
    TOOL_TYPE = "tool_type"
    TOOL_NAME = "tool_name"

    @classmethod
    def parse(cls, text: str) -> 'IdKind':
        for kind in cls:
            if kind.value == text:
                return kind
        raise ValueError(f"unknown identifier kind {text!r}")


def _check_segment(text: str, segment: str, what: str) -> str:
    if not segment:
        raise MalformedIdentifier(text, f"empty {what}")
    for sep in SEPARATORS:
        if sep in segment:
            raise MalformedIdentifier(text, f"{what} {segment!r} contains separator {sep!r}")
    if _WHITESPACE_RE.search(segment):
        raise MalformedIdentifier(text, f"{what} {segment!r} contains whitespace")
    return segment


def _require_str(text) -> str:
    if not isinstance(text, str):
        raise ContractError(f"identifier text must be a str, got {type(text).__name__}")
    return text


@dataclass(frozen=True)
class ArtifactId:
    """An artifact within a group, written ``group:name``."""

    group: str
    name: str

    @classmethod
    def parse(cls, text: str) -> 'ArtifactId':
        _require_str(text)
        if '@' in text or '#' in text:
            raise MalformedIdentifier(text, "artifact id must not carry a version or kind")
        if text.count(':') != 1:
            raise MalformedIdentifier(text, "expected exactly one ':' between group and name")
        group, name = text.split(':')
        return cls(
            group=_check_segment(text, group, "group"),
            name=_check_segment(text, name, "artifact name"),
        )

    def format(self) -> str:
        return f"{self.group}:{self.name}"

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class QualifiedArtifactId:
    """An artifact pinned to a version, written ``group:name@version``."""

    artifact: ArtifactId
    version: Version

    @classmethod
    def parse(cls, text: str) -> 'QualifiedArtifactId':
        _require_str(text)
        if '#' in text:
            raise MalformedIdentifier(text, "qualified artifact id must not carry a kind")
        if text.count('@') != 1:
            raise MalformedIdentifier(text, "expected exactly one '@' before the version")
        artifact_text, version_text = text.split('@')
        artifact = ArtifactId.parse(artifact_text)
        try:
            version = Version.parse(version_text)
        except MalformedVersion as e:
            raise MalformedIdentifier(text, e.reason) from e
        return cls(artifact=artifact, version=version)

    def format(self) -> str:
        return f"{self.artifact.format()}@{self.version.format()}"

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class Identifier:
    """
    Typed identifier of a graph entity.

    The kind is part of identity: ``...#target::x`` and ``...#os::x``
    are different identifiers and never compare equal.

    Attributes:
        kind: Entity kind (target, os, tool_type, ...)
        group: Group namespace
        artifact: Artifact name within the group
        version: Artifact version
        name: Entity name within the qualified artifact
    """

    kind: IdKind
    group: str
    artifact: str
    version: Version
    name: str

    @classmethod
    def parse(cls, text: str) -> 'Identifier':
        """
        Parse ``group:artifact@version#kind::name``.

        Raises:
            MalformedIdentifier: On empty segments, stray separators,
                more than one '@' or an unknown kind tag
        """
        _require_str(text)
        if text.count('@') != 1:
            raise MalformedIdentifier(text, "expected exactly one '@' before the version")
        if text.count('#') != 1:
            raise MalformedIdentifier(text, "expected exactly one '#' before the kind")

        qualified_text, typed_part = text.split('#')
        if '::' not in typed_part:
            raise MalformedIdentifier(text, "expected '<kind>::<name>' after '#'")
        kind_text, name = typed_part.split('::', 1)

        try:
            kind = IdKind.parse(kind_text)
        except ValueError as e:
            raise MalformedIdentifier(text, str(e)) from e

        qualified = QualifiedArtifactId.parse(qualified_text)
        return cls(
            kind=kind,
            group=qualified.artifact.group,
            artifact=qualified.artifact.name,
            version=qualified.version,
            name=_check_segment(text, name, "name"),
        )

    @classmethod
    def of(cls, qualified: QualifiedArtifactId, name: str, kind: IdKind = IdKind.TARGET) -> 'Identifier':
        """Build an identifier inside a qualified artifact, validating the name."""
        text = f"{qualified.format()}#{kind.value}::{name}"
        return cls(
            kind=kind,
            group=qualified.artifact.group,
            artifact=qualified.artifact.name,
            version=qualified.version,
            name=_check_segment(text, name, "name"),
        )

    @property
    def artifact_id(self) -> ArtifactId:
        return ArtifactId(self.group, self.artifact)

    @property
    def qualified_artifact(self) -> QualifiedArtifactId:
        return QualifiedArtifactId(self.artifact_id, self.version)

    def format(self) -> str:
        return f"{self.group}:{self.artifact}@{self.version.format()}#{self.kind.value}::{self.name}"

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f"Identifier({self.format()!r})"


def parse_identifier(text: str) -> Identifier:
    """Parse a typed identifier string."""
    return Identifier.parse(text)


def format_identifier(identifier: Identifier) -> str:
    """Inverse of parse_identifier()."""
    return identifier.format()
