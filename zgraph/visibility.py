"""
Visibility and transitivity rules for zgraph.

authorize() decides whether one target may depend on another.
propagate_reexports() computes what each target re-exports to its own
consumers, given the transitive level of every edge.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .domain.identifier import ArtifactId, Identifier
from .domain.target import ScopeKind, Target, TransitiveLevel, VisibilityKind
from .exit_codes import ContractError

PRIVATE_OUTSIDE_ARTIFACT = "private target outside artifact"
NOT_IN_ALLOW_LIST = "consumer not in visibility allow-list"


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""
    authorized: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.authorized


AUTHORIZED = Decision(True)


def denied(reason: str) -> Decision:
    return Decision(False, reason)


def _in_directory(path: Optional[str], directory: str) -> bool:
    if path is None:
        return False
    if not directory:
        return True
    return path == directory or path.startswith(directory + '/')


def _scope_admits(consumer: Target, kind: ScopeKind, value: str) -> bool:
    if kind is ScopeKind.DIRECTORY:
        return _in_directory(consumer.source_directory, value)
    if kind is ScopeKind.FILE:
        return consumer.source_file is not None and consumer.source_file == value
    if kind is ScopeKind.ARTIFACT:
        return consumer.identifier.artifact_id == ArtifactId.parse(value)
    return False


def authorize(consumer: Target, dependency: Target, declared_level: TransitiveLevel) -> Decision:
    """
    Decide whether consumer may depend on dependency.

    The transitive level does not affect the decision; it is accepted so
    every edge is authorized with the data it was declared with.

    Returns:
        AUTHORIZED, or a denied Decision carrying the reason
    """
    if not isinstance(consumer, Target) or not isinstance(dependency, Target):
        raise ContractError("authorize() expects two Target instances")
    if not isinstance(declared_level, TransitiveLevel):
        raise ContractError("authorize() expects a TransitiveLevel")

    visibility = dependency.visibility

    if visibility.kind is VisibilityKind.PUBLIC:
        return AUTHORIZED

    if visibility.kind is VisibilityKind.PRIVATE:
        if consumer.identifier.artifact_id == dependency.identifier.artifact_id:
            return AUTHORIZED
        return denied(PRIVATE_OUTSIDE_ARTIFACT)

    for scope in visibility.scopes:
        if _scope_admits(consumer, scope.kind, scope.value):
            return AUTHORIZED
    return denied(NOT_IN_ALLOW_LIST)


class Facet(Enum):
    """How much of a dependency is re-exported."""
    INTERFACE = "interface"  # Declared types / headers only
    FULL = "full"            # Interface and build-time linkage


def _merge(reexports: Dict[Identifier, Facet], identifier: Identifier, facet: Facet) -> None:
    # FULL wins over INTERFACE
    if reexports.get(identifier) is not Facet.FULL:
        reexports[identifier] = facet


def propagate_reexports(
    order: Sequence[Identifier],
    edges: Mapping[Identifier, Sequence[Tuple[Identifier, TransitiveLevel]]],
) -> Dict[Identifier, Dict[Identifier, Facet]]:
    """
    Compute every target's re-export set.

    A public dependency is re-exported in full together with whatever it
    re-exports itself. An interface dependency contributes only its
    interface facet (its own re-exports are downgraded to interface).
    A private dependency contributes nothing.

    Args:
        order: Topological order, dependencies before dependents
        edges: For each target, its (dependency, level) pairs in order

    Returns:
        Mapping of target -> {re-exported identifier: facet}
    """
    result: Dict[Identifier, Dict[Identifier, Facet]] = {}

    for identifier in order:
        reexports: Dict[Identifier, Facet] = {}
        for dependency, level in edges.get(identifier, ()):
            if level is TransitiveLevel.PRIVATE:
                continue
            inherited = result.get(dependency, {})
            if level is TransitiveLevel.PUBLIC:
                _merge(reexports, dependency, Facet.FULL)
                for inner, facet in inherited.items():
                    _merge(reexports, inner, facet)
            else:
                _merge(reexports, dependency, Facet.INTERFACE)
                for inner in inherited:
                    _merge(reexports, inner, Facet.INTERFACE)
        reexports.pop(identifier, None)
        result[identifier] = reexports

    return result

