"""
zgraph - Dependency graph resolver for zmake-style build projects.

zgraph takes every target declared across a set of projects and
workspaces, builds the dependency graph, checks every edge against the
declared visibility rules, and reports cycles and unresolved references
before any build action runs.

Quick Start:
    import zgraph

    # Resolve everything under a repository root
    resolution = zgraph.GraphService("~/src/myrepo").resolve()

    # Or resolve targets you built yourself
    resolution = zgraph.DependencyGraphResolver().resolve(targets)

    if resolution.ok:
        graph = resolution.graph
        for identifier in graph.topological_order():
            print(identifier, graph.reexport_set_of(identifier))
    else:
        for diagnostic in resolution.diagnostics:
            print(diagnostic)

Identifiers:
    "group:artifact@1.2.0#target::name"
    kinds: target, target_type, architecture, os, tool_type, tool_name

Domain Objects:
    Identifier, Version, Pattern - parsed from text, immutable
    Project - metadata plus workspace and rule patterns
    Target - graph node with visibility and declared dependencies
    Diagnostic - one problem found while resolving
"""

__version__ = "0.3.0"

# Domain objects
from .domain import (
    ArtifactId,
    QualifiedArtifactId,
    Identifier,
    IdKind,
    Version,
    Ordering,
    Pattern,
    Project,
    ProjectBuilder,
    ProjectMeta,
    load_project,
    Dependency,
    Scope,
    Target,
    TransitiveLevel,
    Visibility,
    Diagnostic,
    DiagnosticKind,
)

# Resolution
from .resolver import DependencyGraphResolver, Resolution, ResolutionState, ResolvedGraph
from .visibility import authorize
from .version_gate import require_minimum_version

# Services
from .services import GraphService

# Errors
from .exit_codes import (
    ZGraphError,
    ContractError,
    MalformedIdentifier,
    MalformedVersion,
    InvalidGlob,
    InvalidProjectDescriptor,
    UnsupportedVersion,
    ResolutionFailed,
    ResolutionCancelled,
)

__all__ = [
    # Version
    "__version__",
    # Domain objects
    "ArtifactId",
    "QualifiedArtifactId",
    "Identifier",
    "IdKind",
    "Version",
    "Ordering",
    "Pattern",
    "Project",
    "ProjectBuilder",
    "ProjectMeta",
    "load_project",
    "Dependency",
    "Scope",
    "Target",
    "TransitiveLevel",
    "Visibility",
    "Diagnostic",
    "DiagnosticKind",
    # Resolution
    "DependencyGraphResolver",
    "Resolution",
    "ResolutionState",
    "ResolvedGraph",
    "authorize",
    "require_minimum_version",
    # Services
    "GraphService",
    # Errors
    "ZGraphError",
    "ContractError",
    "MalformedIdentifier",
    "MalformedVersion",
    "InvalidGlob",
    "InvalidProjectDescriptor",
    "UnsupportedVersion",
    "ResolutionFailed",
    "ResolutionCancelled",
]
