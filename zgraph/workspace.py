"""
Workspace and rule-file discovery for zgraph.

Only enumerates candidate files. Reading a rule file is the job of a
build-file evaluator (see loaders.py); this module never opens one.
"""

import logging
import os
from typing import Iterable, Iterator, List, Optional, Sequence

from .domain.pattern import normalize_path, select_any
from .domain.project import Project
from .exit_codes import ContractError

logger = logging.getLogger(__name__)


def _relative_to(path: str, base: str) -> Optional[str]:
    """Path relative to base, or None when path is not strictly inside base."""
    if not base:
        return path
    prefix = base + '/'
    if path.startswith(prefix):
        return path[len(prefix):]
    return None


def _join(base: str, rel: str) -> str:
    return f"{base}/{rel}" if base else rel


def discover_workspaces(project: Project, repository_paths: Iterable[str]) -> List[str]:
    """
    Enumerate a project's workspace roots.

    Workspace globs are relative to the project root. A project without
    workspace patterns has a single workspace: its own root.

    Args:
        project: Project whose workspace patterns to apply
        repository_paths: Repository-relative paths, in traversal order

    Returns:
        Repository-relative workspace roots, in traversal order
    """
    if not isinstance(project, Project):
        raise ContractError(f"discover_workspaces() expects a Project, got {type(project).__name__}")

    if not project.workspaces:
        return [project.root]

    rel_paths = []
    for path in repository_paths:
        rel = _relative_to(normalize_path(path), project.root)
        if rel:
            rel_paths.append(rel)

    roots = [_join(project.root, rel) for rel in select_any(project.workspaces, rel_paths)]
    logger.debug(f"{project.qualified_artifact}: {len(roots)} workspace(s)")
    return roots


def _is_within(path: str, directory: str) -> bool:
    return not directory or path == directory or path.startswith(directory + '/')


def nested_project_roots(project: Project, project_roots: Iterable[str]) -> List[str]:
    """Roots of other projects strictly inside this project's root."""
    return [
        root for root in project_roots
        if root != project.root and _is_within(root, project.root)
    ]


def discover_rule_files(
    project: Project,
    workspace_root: str,
    repository_paths: Iterable[str],
    nested_roots: Sequence[str] = (),
) -> List[str]:
    """
    Enumerate rule files inside one workspace.

    Rule globs are matched against paths relative to the workspace root.
    Pass file paths only: a directory is never a rule file.

    Args:
        project: Project whose rule patterns to apply
        workspace_root: Repository-relative workspace root
        repository_paths: Repository-relative file paths, in traversal order
        nested_roots: Roots of projects nested inside this one; files at
            or below them belong to the nested project

    Returns:
        Repository-relative rule file paths, in traversal order
    """
    if not isinstance(project, Project):
        raise ContractError(f"discover_rule_files() expects a Project, got {type(project).__name__}")

    if not project.rules:
        logger.warning(f"{project.qualified_artifact} declares no rule pattern; no rule files selected")
        return []

    workspace_root = normalize_path(workspace_root)
    nested = [normalize_path(root) for root in nested_roots]
    rel_paths = []
    for path in repository_paths:
        path = normalize_path(path)
        if any(_is_within(path, root) for root in nested):
            continue
        rel = _relative_to(path, workspace_root)
        if rel:
            rel_paths.append(rel)

    return [_join(workspace_root, rel) for rel in select_any(project.rules, rel_paths)]


def list_repository_paths(root: str, skip_directories: Sequence[str] = ()) -> Iterator[str]:
    """
    Walk a directory tree, yielding repository-relative POSIX paths.

    Directories are yielded before their contents; entries within a
    directory are sorted so the traversal order is stable.

    Args:
        root: Directory to walk
        skip_directories: Directory names never descended into
    """
    root = os.path.abspath(os.path.expanduser(root))
    skip = set(skip_directories)

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in skip)
        rel_dir = os.path.relpath(dirpath, root)
        rel_dir = '' if rel_dir == '.' else rel_dir.replace(os.sep, '/')

        for name in dirnames:
            yield _join(rel_dir, name)
        for name in sorted(filenames):
            yield _join(rel_dir, name)
