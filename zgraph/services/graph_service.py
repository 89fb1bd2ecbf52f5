"""
Graph service for zgraph.

Orchestrates a whole run: find project descriptors, discover workspaces
and rule files per project (in parallel), evaluate rule files into
targets, and hand the merged snapshot to the resolver. Problems with
individual files are recovered and reported as diagnostics so one bad
file never hides the rest.
"""

import logging
import os
import posixpath
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import load_config
from ..diagnostics import DiagnosticsSink, LoggingSink
from ..domain.diagnostic import Diagnostic, DiagnosticKind
from ..domain.project import Project
from ..domain.target import Target
from ..exit_codes import InvalidGlob, InvalidProjectDescriptor, MalformedIdentifier, MalformedVersion
from ..loaders import BuildFileEvaluator, StructuredRuleEvaluator, load_project_descriptor
from ..resolver import DependencyGraphResolver, Resolution
from ..workspace import (
    discover_rule_files,
    discover_workspaces,
    list_repository_paths,
    nested_project_roots,
)

logger = logging.getLogger(__name__)

_DIAGNOSTIC_KINDS = {
    MalformedIdentifier: DiagnosticKind.MALFORMED_IDENTIFIER,
    MalformedVersion: DiagnosticKind.MALFORMED_VERSION,
    InvalidGlob: DiagnosticKind.INVALID_GLOB,
    InvalidProjectDescriptor: DiagnosticKind.INVALID_DESCRIPTOR,
}

_RECOVERABLE = tuple(_DIAGNOSTIC_KINDS)


def diagnostic_from_error(subject: str, error: Exception) -> Diagnostic:
    """Turn a recovered parsing-stage error into a diagnostic."""
    kind = _DIAGNOSTIC_KINDS.get(type(error), DiagnosticKind.INVALID_DESCRIPTOR)
    return Diagnostic(kind=kind, subject=subject, reason=str(error))


@dataclass
class WorkspaceDiscovery:
    """Rule files found in one workspace of one project."""
    project: Project
    workspace_root: str
    rule_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'project': self.project.qualified_artifact.format(),
            'workspace': self.workspace_root or '.',
            'rule_files': list(self.rule_files),
        }


@dataclass
class DiscoveryResult:
    """Everything discovery produced, in project/workspace order."""
    projects: List[Project] = field(default_factory=list)
    workspaces: List[WorkspaceDiscovery] = field(default_factory=list)
    targets: List[Target] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class GraphService:
    """
    Service for discovering and resolving the build graph under a root.

    Example:
        service = GraphService("/path/to/repo")
        resolution = service.resolve()
        if resolution.ok:
            print(resolution.graph.topological_order())
    """

    def __init__(
        self,
        root: str,
        config: Optional[Dict[str, Any]] = None,
        evaluator: Optional[BuildFileEvaluator] = None,
        sink: Optional[DiagnosticsSink] = None,
    ):
        """
        Initialize GraphService.

        Args:
            root: Repository root directory
            config: Configuration dict (loads default if None)
            evaluator: Rule-file evaluator (structured files by default)
            sink: Diagnostics sink (logging by default)
        """
        self.root = os.path.abspath(os.path.expanduser(root))
        self.config = config or load_config()
        self.evaluator = evaluator or StructuredRuleEvaluator(self.root)
        self.sink = sink or LoggingSink()
        self.last_discovery: Optional[DiscoveryResult] = None

    @property
    def max_workers(self) -> int:
        return max(1, int(self.config.get('resolver', {}).get('max_workers', 1)))

    def repository_paths(self) -> List[str]:
        skip = self.config.get('discovery', {}).get('skip_directories', [])
        return list(list_repository_paths(self.root, skip))

    def repository_files(self, repository_paths: Sequence[str]) -> List[str]:
        """The regular files among repository paths, in traversal order."""
        return [p for p in repository_paths if os.path.isfile(os.path.join(self.root, p))]

    def find_project_files(self, repository_files: Sequence[str]) -> List[str]:
        names = set(self.config.get('discovery', {}).get('project_files', []))
        return [p for p in repository_files if p.rsplit('/', 1)[-1] in names]

    def load_projects(self, repository_files: Sequence[str], result: DiscoveryResult) -> None:
        for project_file in self.find_project_files(repository_files):
            try:
                project = load_project_descriptor(os.path.join(self.root, project_file), self.root)
            except _RECOVERABLE as e:
                result.diagnostics.append(diagnostic_from_error(project_file, e))
                continue
            result.projects.append(project)
        logger.debug(f"Loaded {len(result.projects)} project(s) from {self.root}")

    def _discover_project(
        self,
        project: Project,
        repository_paths: Sequence[str],
        repository_files: Sequence[str],
        project_roots: Sequence[str],
    ) -> List[WorkspaceDiscovery]:
        # Rule files under a nested project belong to the innermost project
        nested = nested_project_roots(project, project_roots)
        found = []
        for workspace_root in discover_workspaces(project, repository_paths):
            rule_files = discover_rule_files(project, workspace_root, repository_files, nested)
            found.append(WorkspaceDiscovery(project, workspace_root, rule_files))
        return found

    def discover(self) -> DiscoveryResult:
        """
        Discover projects, workspaces, rule files and their targets.

        Returns:
            DiscoveryResult, also kept as last_discovery
        """
        result = DiscoveryResult()
        self.last_discovery = result

        repository_paths = self.repository_paths()
        repository_files = self.repository_files(repository_paths)
        self.load_projects(repository_files, result)
        # Descriptors that failed to load still own the files below them
        project_roots = [posixpath.dirname(p) for p in self.find_project_files(repository_files)]

        # Workspaces are independent: discover in parallel, merge in project order
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            per_project = list(executor.map(
                lambda p: self._discover_project(p, repository_paths, repository_files, project_roots),
                result.projects,
            ))

        seen_rule_files = set()
        for workspaces in per_project:
            for workspace in workspaces:
                result.workspaces.append(workspace)
                for rule_file in workspace.rule_files:
                    # Nested workspaces can select the same file twice
                    if rule_file in seen_rule_files:
                        continue
                    seen_rule_files.add(rule_file)
                    try:
                        result.targets.extend(self.evaluator.evaluate(rule_file, workspace.project))
                    except _RECOVERABLE as e:
                        result.diagnostics.append(diagnostic_from_error(rule_file, e))

        return result

    def resolve(self, cancel: Optional[threading.Event] = None) -> Resolution:
        """Discover everything under the root and resolve the graph."""
        discovery = self.discover()
        resolver = DependencyGraphResolver(sink=self.sink, max_workers=self.max_workers)
        return resolver.resolve(discovery.targets, diagnostics=discovery.diagnostics, cancel=cancel)
