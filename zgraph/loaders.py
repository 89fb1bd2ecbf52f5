"""
Descriptor loading for zgraph.

These are the boundary collaborators that turn files into domain data:

- load_project_descriptor() reads a project file (JSON, TOML or YAML)
- StructuredRuleEvaluator reads structured rule files into Targets

The resolver never calls into this module; the graph service does.

Rule file shape:

    targets:
      - name: lib                       # or id: "g:a@1.0.0#target::lib"
        kind: target                    # optional, default "target"
        visibility: private             # public | private | scopes
        dependencies:
          - "g:b@2.0.0#target::core"
          - id: "g:c@1.0.0#target::util"
            transitive: public          # public | interface | private
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import yaml

from .config import read_structured_file
from .domain.identifier import ArtifactId, Identifier, IdKind
from .domain.pattern import Pattern, normalize_path
from .domain.project import Project, ProjectMeta, load_project
from .domain.target import Dependency, Scope, ScopeKind, Target, TransitiveLevel, Visibility
from .exit_codes import InvalidProjectDescriptor, MalformedIdentifier

logger = logging.getLogger(__name__)


class BuildFileEvaluator(Protocol):
    """Turns one rule file into the targets it declares."""

    def evaluate(self, rule_file: str, project: Project) -> List[Target]: ...


def _read(path: Path, source: str) -> Any:
    try:
        return read_structured_file(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise InvalidProjectDescriptor(f"cannot read file: {e}", source) from e


def load_project_descriptor(path: str, repository_root: Optional[str] = None) -> Project:
    """
    Load a project descriptor file.

    Args:
        path: Path to project.{json,toml,yaml,yml}
        repository_root: Directory that repository-relative paths are
            measured from (defaults to the descriptor's directory)

    Returns:
        Frozen Project rooted at the descriptor's directory

    Raises:
        InvalidProjectDescriptor: If the file is unreadable or malformed
    """
    descriptor_path = Path(path)
    source = str(descriptor_path)
    data = _read(descriptor_path, source)

    meta = ProjectMeta.from_descriptor(data, source)
    workspaces = data.get('workspaces')
    rules = data.get('rules')

    root = ''
    if repository_root is not None:
        # Measured on the path as listed, so a symlinked descriptor is
        # rooted where the link lives
        rel = os.path.relpath(os.path.dirname(os.path.abspath(path)), os.path.abspath(repository_root))
        rel = rel.replace(os.sep, '/')
        if rel == '..' or rel.startswith('../'):
            raise InvalidProjectDescriptor(f"descriptor is outside the repository root {repository_root}", source)
        root = normalize_path(rel)

    return load_project(
        meta,
        workspace_pattern=Pattern.from_descriptor(workspaces, source) if workspaces is not None else None,
        rule_pattern=Pattern.from_descriptor(rules, source) if rules is not None else None,
        root=root,
    )


_SCOPE_KEYS = {kind.value: kind for kind in ScopeKind}


def parse_visibility(value: Any, source: Optional[str] = None) -> Visibility:
    """
    Parse descriptor visibility data.

    Accepts "public", "private", a mapping using visibleToDir,
    visibleToFile and visibleToArtifact keys, or a list of such mappings.
    A bare list of strings is rejected: its meaning is ambiguous.
    """
    if value is None or value == "public":
        return Visibility.public()
    if value == "private":
        return Visibility.private()

    entries = value if isinstance(value, list) else [value]
    scopes = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise InvalidProjectDescriptor(
                "visibility must be 'public', 'private' or visibleToDir/visibleToFile/"
                f"visibleToArtifact mappings, got {entry!r}",
                source,
            )
        for key, items in entry.items():
            kind = _SCOPE_KEYS.get(key)
            if kind is None:
                raise InvalidProjectDescriptor(f"unknown visibility scope {key!r}", source)
            if isinstance(items, str):
                items = [items]
            if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
                raise InvalidProjectDescriptor(f"visibility scope {key!r} must list strings", source)
            for item in items:
                if kind is ScopeKind.DIRECTORY:
                    scopes.append(Scope.directory(item))
                elif kind is ScopeKind.FILE:
                    scopes.append(Scope.file(item))
                else:
                    try:
                        scopes.append(Scope.artifact(ArtifactId.parse(item)))
                    except MalformedIdentifier as e:
                        raise InvalidProjectDescriptor(str(e), source) from e

    if not scopes:
        raise InvalidProjectDescriptor("scoped visibility lists no scopes", source)
    return Visibility.scoped_to(*scopes)


def parse_dependency(value: Any, source: Optional[str] = None) -> Dependency:
    """Parse one dependency entry; the reference text is kept unparsed."""
    if isinstance(value, str):
        return Dependency(reference=value)
    if isinstance(value, dict) and isinstance(value.get('id'), str):
        level_text = value.get('transitive', TransitiveLevel.PRIVATE.value)
        try:
            level = TransitiveLevel.parse(level_text)
        except ValueError as e:
            raise InvalidProjectDescriptor(str(e), source) from e
        return Dependency(reference=value['id'], level=level)
    raise InvalidProjectDescriptor(f"dependency must be a string or an {{id, transitive}} mapping, got {value!r}", source)


class StructuredRuleEvaluator:
    """
    Evaluates structured (JSON/TOML/YAML) rule files.

    Short target names are qualified by the project owning the rule
    file; full ids are taken as written.
    """

    def __init__(self, repository_root: str):
        self.repository_root = Path(repository_root)

    def evaluate(self, rule_file: str, project: Project) -> List[Target]:
        """
        Read the targets declared in one rule file.

        Args:
            rule_file: Repository-relative path of the rule file
            project: Project the rule file belongs to

        Raises:
            InvalidProjectDescriptor: If the file is unreadable or malformed
        """
        rule_file = normalize_path(rule_file)
        data = _read(self.repository_root / rule_file, rule_file)
        if data is None:
            return []
        if not isinstance(data, dict) or not isinstance(data.get('targets', []), list):
            raise InvalidProjectDescriptor("rule file must be a mapping with a 'targets' list", rule_file)

        targets = []
        for position, entry in enumerate(data.get('targets', [])):
            targets.append(self._target(entry, project, rule_file, position))
        logger.debug(f"{rule_file}: {len(targets)} target(s)")
        return targets

    def _target(self, entry: Dict[str, Any], project: Project, rule_file: str, position: int) -> Target:
        where = f"{rule_file} (target #{position + 1})"
        if not isinstance(entry, dict):
            raise InvalidProjectDescriptor("target entry must be a mapping", where)

        if isinstance(entry.get('id'), str):
            text = entry['id']
        elif isinstance(entry.get('name'), str):
            text = f"{project.qualified_artifact}#{entry.get('kind', IdKind.TARGET.value)}::{entry['name']}"
        else:
            raise InvalidProjectDescriptor("target needs an 'id' or a 'name' string", where)
        try:
            identifier = Identifier.parse(text)
        except MalformedIdentifier as e:
            raise InvalidProjectDescriptor(str(e), where) from e

        dependencies = entry.get('dependencies') or []
        if not isinstance(dependencies, list):
            raise InvalidProjectDescriptor("'dependencies' must be a list", where)

        return Target(
            identifier=identifier,
            visibility=parse_visibility(entry.get('visibility'), where),
            dependencies=tuple(parse_dependency(d, where) for d in dependencies),
            source_file=rule_file,
        )

