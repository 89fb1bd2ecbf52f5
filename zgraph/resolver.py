"""
Dependency graph resolver for zgraph.

Takes the snapshot of every discovered Target and either builds a
validated, immutable ResolvedGraph or reports every problem found.

The resolver moves through these states:

    DISCOVERING -> PARSING -> AUTHORIZING -> CYCLE_CHECKING -> RESOLVED
                                                            \\-> FAILED

Errors are collected, never raised one at a time: a FAILED resolution
carries the complete, deterministically ordered list of diagnostics.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .diagnostics import DiagnosticsSink, LoggingSink, emit
from .domain.diagnostic import Diagnostic, DiagnosticKind, has_errors, sort_diagnostics
from .domain.identifier import Identifier
from .domain.target import Target, TransitiveLevel
from .exit_codes import ContractError, MalformedIdentifier, ResolutionCancelled, ResolutionFailed
from .visibility import Decision, Facet, authorize, propagate_reexports

_LEVEL_RANK = {
    TransitiveLevel.PRIVATE: 0,
    TransitiveLevel.INTERFACE: 1,
    TransitiveLevel.PUBLIC: 2,
}


class ResolutionState(Enum):
    DISCOVERING = "discovering"
    PARSING = "parsing"
    AUTHORIZING = "authorizing"
    CYCLE_CHECKING = "cycle_checking"
    RESOLVED = "resolved"
    FAILED = "failed"


class _Visit(Enum):
    UNVISITED = 0
    IN_PROGRESS = 1
    DONE = 2


@dataclass(frozen=True)
class Edge:
    """A parsed dependency edge."""
    dependency: Identifier
    level: TransitiveLevel


class ResolvedGraph:
    """
    Immutable, validated dependency graph.

    Exposes the query surface an execution engine consumes. Every query
    takes a typed Identifier and raises KeyError for unknown ones.
    """

    def __init__(
        self,
        targets: Dict[Identifier, Target],
        adjacency: Dict[Identifier, Tuple[Edge, ...]],
        order: Tuple[Identifier, ...],
        reexports: Dict[Identifier, Dict[Identifier, Facet]],
    ):
        self._targets = dict(targets)
        self._adjacency = dict(adjacency)
        self._order = tuple(order)
        self._reexports = {k: dict(v) for k, v in reexports.items()}

    def _require(self, identifier: Identifier) -> None:
        if identifier not in self._targets:
            raise KeyError(f"unknown target {identifier}")

    def __contains__(self, identifier: Identifier) -> bool:
        return identifier in self._targets

    def __len__(self) -> int:
        return len(self._targets)

    def target(self, identifier: Identifier) -> Target:
        self._require(identifier)
        return self._targets[identifier]

    def resolved_targets(self) -> List[Target]:
        """All targets, dependencies before dependents."""
        return [self._targets[i] for i in self._order]

    def topological_order(self) -> List[Identifier]:
        return list(self._order)

    def edges_of(self, identifier: Identifier) -> List[Edge]:
        self._require(identifier)
        return list(self._adjacency.get(identifier, ()))

    def dependencies_of(self, identifier: Identifier) -> List[Identifier]:
        """Direct dependencies, in declaration order."""
        return [edge.dependency for edge in self.edges_of(identifier)]

    def reexport_set_of(self, identifier: Identifier) -> FrozenSet[Identifier]:
        """Identifiers this target re-exports to its consumers."""
        self._require(identifier)
        return frozenset(self._reexports.get(identifier, {}))

    def reexport_facets_of(self, identifier: Identifier) -> Dict[Identifier, Facet]:
        """Re-exported identifiers with how much of each is re-exported."""
        self._require(identifier)
        return dict(self._reexports.get(identifier, {}))

    def visible_interface_of(self, identifier: Identifier) -> List[Identifier]:
        """
        Everything a target can see: its direct dependencies plus what
        each of them re-exports.
        """
        seen = []
        for dependency in self.dependencies_of(identifier):
            if dependency not in seen:
                seen.append(dependency)
            for inner in sorted(self._reexports.get(dependency, {}), key=str):
                if inner not in seen and inner != identifier:
                    seen.append(inner)
        return seen

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'order': [i.format() for i in self._order],
            'targets': [
                {
                    **self._targets[i].to_dict(),
                    'resolved_dependencies': [e.dependency.format() for e in self._adjacency.get(i, ())],
                    'reexports': {
                        k.format(): v.value
                        for k, v in sorted(self._reexports.get(i, {}).items(), key=lambda kv: str(kv[0]))
                    },
                }
                for i in self._order
            ],
        }


@dataclass(frozen=True)
class Resolution:
    """
    Outcome of a resolve() call.

    Attributes:
        state: RESOLVED or FAILED
        graph: The graph when RESOLVED, otherwise None
        diagnostics: Every diagnostic, sorted (warnings included)
    """
    state: ResolutionState
    graph: Optional[ResolvedGraph]
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state is ResolutionState.RESOLVED

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    def graph_or_raise(self) -> ResolvedGraph:
        if self.graph is None:
            raise ResolutionFailed(self.errors)
        return self.graph


class DependencyGraphResolver:
    """
    Builds and validates the target dependency graph.

    Example:
        resolver = DependencyGraphResolver()
        resolution = resolver.resolve(targets)
        if resolution.ok:
            for identifier in resolution.graph.topological_order():
                ...
        else:
            for diagnostic in resolution.diagnostics:
                print(diagnostic)
    """

    def __init__(self, sink: Optional[DiagnosticsSink] = None, max_workers: int = 1):
        """
        Args:
            sink: Where to report progress and diagnostics (logging by default)
            max_workers: Threads used to authorize edges (1 = sequential)
        """
        self.sink = sink or LoggingSink()
        self.max_workers = max(1, int(max_workers))
        self.state = ResolutionState.DISCOVERING

    def _enter(self, state: ResolutionState, cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise ResolutionCancelled(state.value)
        self.state = state
        self.sink.trace(f"resolver: {state.value}")

    def resolve(
        self,
        targets: Iterable[Target],
        diagnostics: Iterable[Diagnostic] = (),
        cancel: Optional[threading.Event] = None,
    ) -> Resolution:
        """
        Resolve a snapshot of discovered targets.

        Args:
            targets: Every discovered target, in discovery order
            diagnostics: Diagnostics already reported by discovery; any
                error among them fails the resolution
            cancel: Checked at each phase boundary

        Returns:
            Resolution, RESOLVED with a graph or FAILED with diagnostics

        Raises:
            ContractError: If targets holds something other than Target
            ResolutionCancelled: If cancel is set at a phase boundary
        """
        if targets is None:
            raise ContractError("resolve() requires an iterable of targets")

        collected: List[Diagnostic] = list(diagnostics)

        self._enter(ResolutionState.DISCOVERING, cancel)
        index = self._index(targets, collected)

        self._enter(ResolutionState.PARSING, cancel)
        phase_errors: List[Diagnostic] = []
        edges = self._parse(index, phase_errors)

        self._enter(ResolutionState.AUTHORIZING, cancel)
        self._authorize(index, edges, phase_errors)
        collected.extend(phase_errors)

        order: Tuple[Identifier, ...] = ()
        self._enter(ResolutionState.CYCLE_CHECKING, cancel)
        if has_errors(phase_errors):
            self.sink.debug("resolver: skipping cycle check, earlier phases reported errors")
        else:
            self._unresolved(index, edges, collected)
            order = self._check_cycles(index, edges, collected)

        ordered = tuple(sort_diagnostics(collected))
        emit(ordered, self.sink)

        if has_errors(ordered):
            self.state = ResolutionState.FAILED
            self.sink.log(f"resolver: failed with {sum(1 for d in ordered if d.is_error)} error(s)")
            return Resolution(ResolutionState.FAILED, None, ordered)

        adjacency = {identifier: tuple(edges.get(identifier, ())) for identifier in index}
        reexports = propagate_reexports(
            order,
            {i: [(e.dependency, e.level) for e in adj] for i, adj in adjacency.items()},
        )
        graph = ResolvedGraph(index, adjacency, order, reexports)
        self.state = ResolutionState.RESOLVED
        self.sink.log(f"resolver: resolved {len(index)} target(s)")
        return Resolution(ResolutionState.RESOLVED, graph, ordered)

    def _index(self, targets: Iterable[Target], collected: List[Diagnostic]) -> Dict[Identifier, Target]:
        index: Dict[Identifier, Target] = {}
        for target in targets:
            if not isinstance(target, Target):
                raise ContractError(f"resolve() expects Target instances, got {type(target).__name__}")
            identifier = target.identifier
            if identifier in index:
                first = index[identifier].source_file or "<unknown>"
                second = target.source_file or "<unknown>"
                collected.append(Diagnostic(
                    kind=DiagnosticKind.DUPLICATE_TARGET,
                    subject=identifier.format(),
                    reason=f"declared in {first} and again in {second}",
                ))
                continue
            index[identifier] = target
        return index

    def _parse(
        self,
        index: Dict[Identifier, Target],
        collected: List[Diagnostic],
    ) -> Dict[Identifier, List[Edge]]:
        edges: Dict[Identifier, List[Edge]] = {}
        for identifier, target in index.items():
            parsed: List[Edge] = []
            for dependency in target.dependencies:
                try:
                    dep_id = Identifier.parse(dependency.reference)
                except MalformedIdentifier as e:
                    collected.append(Diagnostic(
                        kind=DiagnosticKind.MALFORMED_DEPENDENCY_REFERENCE,
                        subject=identifier.format(),
                        dependency=dependency.reference,
                        reason=e.reason,
                    ))
                    continue

                # A repeated dependency keeps its first position and the
                # widest transitive level declared for it
                for pos, existing in enumerate(parsed):
                    if existing.dependency == dep_id:
                        if _LEVEL_RANK[dependency.level] > _LEVEL_RANK[existing.level]:
                            parsed[pos] = Edge(dep_id, dependency.level)
                        break
                else:
                    parsed.append(Edge(dep_id, dependency.level))
            edges[identifier] = parsed
        return edges

    def _authorize(
        self,
        index: Dict[Identifier, Target],
        edges: Dict[Identifier, List[Edge]],
        collected: List[Diagnostic],
    ) -> None:
        candidates = [
            (index[consumer], index[edge.dependency], edge.level)
            for consumer, consumer_edges in edges.items()
            for edge in consumer_edges
            if edge.dependency in index
        ]

        def check(candidate: Tuple[Target, Target, TransitiveLevel]) -> Decision:
            return authorize(*candidate)

        if self.max_workers > 1 and len(candidates) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                decisions = list(executor.map(check, candidates))
        else:
            decisions = [check(c) for c in candidates]

        for (consumer, dependency, _), decision in zip(candidates, decisions):
            if not decision.authorized:
                collected.append(Diagnostic(
                    kind=DiagnosticKind.VISIBILITY_VIOLATION,
                    subject=consumer.identifier.format(),
                    dependency=dependency.identifier.format(),
                    related=(consumer.identifier.format(), dependency.identifier.format()),
                    reason=decision.reason or "denied",
                ))

    def _unresolved(
        self,
        index: Dict[Identifier, Target],
        edges: Dict[Identifier, List[Edge]],
        collected: List[Diagnostic],
    ) -> None:
        for consumer, consumer_edges in edges.items():
            for edge in consumer_edges:
                if edge.dependency not in index:
                    collected.append(Diagnostic(
                        kind=DiagnosticKind.UNRESOLVED_TARGET,
                        subject=consumer.format(),
                        dependency=edge.dependency.format(),
                        reason="no target with this identifier was discovered",
                    ))

    def _check_cycles(
        self,
        index: Dict[Identifier, Target],
        edges: Dict[Identifier, List[Edge]],
        collected: List[Diagnostic],
    ) -> Tuple[Identifier, ...]:
        """
        Depth-first cycle detection that also yields the topological order.

        Each back-edge to an in-progress node is reported as one cycle,
        written from the re-entered node back to itself.
        """
        def neighbors(node: Identifier) -> List[Identifier]:
            return [e.dependency for e in edges.get(node, ()) if e.dependency in index]

        state = {identifier: _Visit.UNVISITED for identifier in index}
        order: List[Identifier] = []

        for root in sorted(index, key=str):
            if state[root] is not _Visit.UNVISITED:
                continue

            state[root] = _Visit.IN_PROGRESS
            path = [root]
            stack = [(root, iter(neighbors(root)))]

            while stack:
                node, pending = stack[-1]
                descended = False
                for nxt in pending:
                    if state[nxt] is _Visit.UNVISITED:
                        state[nxt] = _Visit.IN_PROGRESS
                        path.append(nxt)
                        stack.append((nxt, iter(neighbors(nxt))))
                        descended = True
                        break
                    if state[nxt] is _Visit.IN_PROGRESS:
                        cycle = path[path.index(nxt):] + [nxt]
                        collected.append(self._cycle_diagnostic(cycle))
                if not descended:
                    stack.pop()
                    path.pop()
                    state[node] = _Visit.DONE
                    order.append(node)

        return tuple(order)

    @staticmethod
    def _cycle_diagnostic(cycle: Sequence[Identifier]) -> Diagnostic:
        texts = tuple(i.format() for i in cycle)
        return Diagnostic(
            kind=DiagnosticKind.DEPENDENCY_CYCLE,
            subject=texts[0],
            dependency=texts[1],
            related=texts,
            reason="dependency cycle: " + " -> ".join(texts),
        )


def resolve(targets: Iterable[Target], **kwargs) -> Resolution:
    """Resolve targets with a default resolver."""
    return DependencyGraphResolver(**kwargs).resolve(targets)
