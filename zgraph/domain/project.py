"""
Project domain objects for zgraph.

A Project carries the metadata from a project descriptor plus the
patterns that select its workspaces and rule files. Projects are frozen;
ProjectBuilder collects extra patterns before freezing.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..exit_codes import ContractError, InvalidProjectDescriptor
from .identifier import ArtifactId, Identifier, IdKind, QualifiedArtifactId
from .pattern import Pattern
from .version import Version, as_version

# git style author sign: "Name <user@host>"
_AUTHOR_RE = re.compile(r'^(?P<name>[^<>]+?)\s*<(?P<email>[^<>@\s]+@[^<>@\s]+)>$')


@dataclass(frozen=True)
class Author:
    """Project author in git sign form."""
    name: str
    email: str

    @classmethod
    def parse(cls, text: str) -> 'Author':
        match = _AUTHOR_RE.match(text.strip()) if isinstance(text, str) else None
        if not match:
            raise InvalidProjectDescriptor(f"author {text!r} is not of the form 'Name <user@host>'")
        return cls(name=match.group('name').strip(), email=match.group('email'))

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


@dataclass(frozen=True)
class ProjectMeta:
    """
    Declared project metadata.

    Attributes:
        group: Group namespace
        artifact: Artifact name within the group
        version: Project version
        description: Optional free text
        license: Optional license expression
        authors: Authors in declaration order
    """
    group: str
    artifact: str
    version: Version
    description: Optional[str] = None
    license: Optional[str] = None
    authors: Tuple[Author, ...] = ()

    @property
    def artifact_id(self) -> ArtifactId:
        return ArtifactId(self.group, self.artifact)

    @property
    def qualified_artifact(self) -> QualifiedArtifactId:
        return QualifiedArtifactId(self.artifact_id, self.version)

    @classmethod
    def from_descriptor(cls, data: Dict[str, Any], source: Optional[str] = None) -> 'ProjectMeta':
        """
        Build metadata from descriptor data, validating every field.

        Raises:
            InvalidProjectDescriptor: On missing or malformed fields
        """
        if not isinstance(data, dict):
            raise InvalidProjectDescriptor("project descriptor must be a mapping", source)

        for key in ('group', 'artifact', 'version'):
            if not isinstance(data.get(key), str) or not data.get(key):
                raise InvalidProjectDescriptor(f"missing required string field '{key}'", source)

        try:
            # Validates group and artifact segments with the identifier grammar
            qualified = QualifiedArtifactId.parse(f"{data['group']}:{data['artifact']}@{data['version']}")
        except ValueError as e:
            raise InvalidProjectDescriptor(str(e), source) from e

        for key in ('description', 'license'):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise InvalidProjectDescriptor(f"field '{key}' must be a string", source)

        authors = data.get('authors') or []
        if not isinstance(authors, list):
            raise InvalidProjectDescriptor("field 'authors' must be a list", source)
        try:
            parsed_authors = tuple(Author.parse(a) for a in authors)
        except InvalidProjectDescriptor as e:
            raise InvalidProjectDescriptor(str(e), source) from e

        return cls(
            group=qualified.artifact.group,
            artifact=qualified.artifact.name,
            version=qualified.version,
            description=data.get('description'),
            license=data.get('license'),
            authors=parsed_authors,
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'group': self.group,
            'artifact': self.artifact,
            'version': self.version.format(),
        }
        if self.description:
            result['description'] = self.description
        if self.license:
            result['license'] = self.license
        if self.authors:
            result['authors'] = [str(a) for a in self.authors]
        return result


@dataclass(frozen=True)
class Project:
    """
    Immutable project.

    Attributes:
        meta: Declared metadata
        workspaces: Patterns selecting workspace roots; empty means the
            project root is the only workspace
        rules: Patterns selecting rule files inside each workspace
        root: Repository-relative directory of the project file
    """
    meta: ProjectMeta
    workspaces: Tuple[Pattern, ...] = ()
    rules: Tuple[Pattern, ...] = ()
    root: str = ''

    @property
    def qualified_artifact(self) -> QualifiedArtifactId:
        return self.meta.qualified_artifact

    def identifier(self, name: str, kind: IdKind = IdKind.TARGET) -> Identifier:
        """Identifier for an entity declared inside this project."""
        return Identifier.of(self.qualified_artifact, name, kind)

    def to_dict(self) -> Dict[str, Any]:
        result = self.meta.to_dict()
        result['workspaces'] = [p.to_descriptor() for p in self.workspaces]
        result['rules'] = [p.to_descriptor() for p in self.rules]
        if self.root:
            result['root'] = self.root
        return result


@dataclass
class ProjectBuilder:
    """
    Mutable project under construction.

    Example:
        builder = ProjectBuilder(meta)
        builder.add_workspace(Pattern(include=("libs/*",)))
        builder.add_rule(Pattern.of(["BUILD.yaml"]))
        project = builder.build()
    """
    meta: ProjectMeta
    root: str = ''
    workspaces: List[Pattern] = field(default_factory=list)
    rules: List[Pattern] = field(default_factory=list)

    def add_workspace(self, pattern: Pattern) -> 'ProjectBuilder':
        if not isinstance(pattern, Pattern):
            raise ContractError(f"add_workspace() expects a Pattern, got {type(pattern).__name__}")
        self.workspaces.append(pattern)
        return self

    def add_rule(self, pattern: Pattern) -> 'ProjectBuilder':
        if not isinstance(pattern, Pattern):
            raise ContractError(f"add_rule() expects a Pattern, got {type(pattern).__name__}")
        self.rules.append(pattern)
        return self

    def build(self) -> Project:
        return Project(
            meta=self.meta,
            workspaces=tuple(self.workspaces),
            rules=tuple(self.rules),
            root=self.root,
        )


def load_project(
    metadata: ProjectMeta,
    workspace_pattern: Optional[Pattern] = None,
    rule_pattern: Optional[Pattern] = None,
    root: str = '',
) -> Project:
    """
    Construct a Project from metadata and its two patterns.

    Args:
        metadata: Project metadata
        workspace_pattern: Selects workspace roots (None: project root only)
        rule_pattern: Selects rule files within a workspace
        root: Repository-relative directory of the project file

    Returns:
        Frozen Project
    """
    if not isinstance(metadata, ProjectMeta):
        raise ContractError(f"load_project() expects ProjectMeta, got {type(metadata).__name__}")
    builder = ProjectBuilder(meta=metadata, root=root)
    if workspace_pattern is not None:
        builder.add_workspace(workspace_pattern)
    if rule_pattern is not None:
        builder.add_rule(rule_pattern)
    return builder.build()


def project_meta(group: str, artifact: str, version, **kwargs) -> ProjectMeta:
    """Shorthand for building metadata in code."""
    artifact_id = ArtifactId.parse(f"{group}:{artifact}")
    return ProjectMeta(
        group=artifact_id.group,
        artifact=artifact_id.name,
        version=as_version(version),
        **kwargs,
    )
