"""Tests for the dependency graph resolver."""

import threading

import pytest

from zgraph.diagnostics import CollectingSink
from zgraph.domain import Dependency, Diagnostic, DiagnosticKind, Identifier, Target, TransitiveLevel, Visibility
from zgraph.exit_codes import ContractError, ResolutionCancelled, ResolutionFailed, ZGraphError
from zgraph.resolver import DependencyGraphResolver, ResolutionState, resolve
from zgraph.visibility import Facet


def ident(name, artifact="g:a@1.0.0", kind="target"):
    return Identifier.parse(f"{artifact}#{kind}::{name}")


def target(name, *deps, artifact="g:a@1.0.0", visibility=None, source_file=None):
    """Build a target; deps are reference strings or (reference, level) pairs."""
    dependencies = []
    for dep in deps:
        if isinstance(dep, tuple):
            dependencies.append(Dependency(dep[0], dep[1]))
        else:
            dependencies.append(Dependency(dep))
    return Target(
        identifier=ident(name, artifact),
        visibility=visibility or Visibility.public(),
        dependencies=tuple(dependencies),
        source_file=source_file,
    )


def ref(name, artifact="g:a@1.0.0"):
    return ident(name, artifact).format()


def kinds(resolution):
    return [d.kind for d in resolution.diagnostics]


class TestResolve:
    """Tests for successful resolution."""

    def test_empty_graph(self):
        resolution = DependencyGraphResolver().resolve([])
        assert resolution.ok
        assert len(resolution.graph) == 0
        assert resolution.graph.topological_order() == []

    def test_topological_order_puts_dependencies_first(self):
        resolution = resolve([
            target("app", ref("net"), ref("log")),
            target("net", ref("log")),
            target("log"),
        ])
        order = resolution.graph.topological_order()
        assert order.index(ident("log")) < order.index(ident("net")) < order.index(ident("app"))
        assert [t.identifier for t in resolution.graph.resolved_targets()] == order

    def test_dependencies_keep_declaration_order(self):
        resolution = resolve([target("app", ref("z"), ref("a")), target("z"), target("a")])
        assert resolution.graph.dependencies_of(ident("app")) == [ident("z"), ident("a")]

    def test_targets_are_not_mutated(self):
        app = target("app", ref("lib"))
        resolution = resolve([app, target("lib")])
        assert resolution.graph.target(ident("app")) is app
        assert app.dependencies == (Dependency(ref("lib")),)

    def test_transitive_reexport(self):
        resolution = resolve([
            target("x", (ref("y"), TransitiveLevel.PUBLIC)),
            target("y"),
            target("z", ref("x")),
        ])
        graph = resolution.graph
        assert ident("y") in graph.reexport_set_of(ident("x"))
        assert graph.dependencies_of(ident("z")) == [ident("x")]
        assert graph.visible_interface_of(ident("z")) == [ident("x"), ident("y")]

    def test_private_level_is_not_reexported(self):
        resolution = resolve([target("x", ref("y")), target("y"), target("z", ref("x"))])
        assert resolution.graph.reexport_set_of(ident("x")) == frozenset()
        assert resolution.graph.visible_interface_of(ident("z")) == [ident("x")]

    def test_interface_level_facet(self):
        resolution = resolve([target("x", (ref("y"), TransitiveLevel.INTERFACE)), target("y")])
        assert resolution.graph.reexport_facets_of(ident("x")) == {ident("y"): Facet.INTERFACE}

    def test_repeated_dependency_keeps_widest_level(self):
        resolution = resolve([
            target("x", ref("y"), (ref("y"), TransitiveLevel.PUBLIC)),
            target("y"),
        ])
        edges = resolution.graph.edges_of(ident("x"))
        assert len(edges) == 1
        assert edges[0].level is TransitiveLevel.PUBLIC

    def test_kind_is_part_of_identity(self):
        os_entry = Target(identifier=ident("linux", kind="os"))
        resolution = resolve([
            target("linux"),
            os_entry,
            target("app", ident("linux", kind="os").format()),
        ])
        assert resolution.ok
        assert resolution.graph.dependencies_of(ident("app")) == [ident("linux", kind="os")]
        assert len(resolution.graph) == 3

    def test_unknown_identifier_raises_key_error(self):
        graph = resolve([target("a")]).graph
        with pytest.raises(KeyError):
            graph.dependencies_of(ident("missing"))
        assert ident("missing") not in graph

    def test_idempotent(self):
        targets = [
            target("x", (ref("y"), TransitiveLevel.PUBLIC)),
            target("y", (ref("w"), TransitiveLevel.INTERFACE)),
            target("w"),
            target("z", ref("x"), ref("w")),
        ]
        first = resolve(targets).graph
        second = resolve(targets).graph
        assert first.to_dict() == second.to_dict()
        for identifier in first.topological_order():
            assert first.reexport_facets_of(identifier) == second.reexport_facets_of(identifier)

    def test_parallel_authorization_matches_sequential(self):
        targets = [target(f"t{i}", *[ref(f"t{j}") for j in range(i)]) for i in range(8)]
        sequential = DependencyGraphResolver(max_workers=1).resolve(targets)
        parallel = DependencyGraphResolver(max_workers=4).resolve(targets)
        assert sequential.graph.to_dict() == parallel.graph.to_dict()

    def test_state(self):
        resolver = DependencyGraphResolver()
        assert resolver.state is ResolutionState.DISCOVERING
        resolver.resolve([target("a")])
        assert resolver.state is ResolutionState.RESOLVED


class TestDiagnostics:
    """Tests for failed resolutions."""

    def test_private_cross_artifact_denial(self):
        resolution = resolve([
            target("lib", artifact="g:a@1.0.0", visibility=Visibility.private()),
            target("app", ref("lib", "g:a@1.0.0"), artifact="g:b@1.0.0"),
        ])
        assert resolution.state is ResolutionState.FAILED
        assert resolution.graph is None
        assert kinds(resolution) == [DiagnosticKind.VISIBILITY_VIOLATION]
        violation = resolution.diagnostics[0]
        assert violation.subject == "g:b@1.0.0#target::app"
        assert violation.dependency == "g:a@1.0.0#target::lib"
        assert set(violation.related) == {"g:b@1.0.0#target::app", "g:a@1.0.0#target::lib"}

    def test_cycle_reported_once(self):
        resolution = resolve([
            target("a", ref("b")),
            target("b", ref("c")),
            target("c", ref("a")),
        ])
        cycles = [d for d in resolution.diagnostics if d.kind is DiagnosticKind.DEPENDENCY_CYCLE]
        assert len(cycles) == 1
        path = [Identifier.parse(text).name for text in cycles[0].related]
        assert path[0] == path[-1]
        rotation = path[:-1]
        assert rotation in (["a", "b", "c"], ["b", "c", "a"], ["c", "a", "b"])

    def test_self_dependency_is_a_cycle(self):
        resolution = resolve([target("a", ref("a"))])
        assert kinds(resolution) == [DiagnosticKind.DEPENDENCY_CYCLE]

    def test_unresolved_target(self):
        resolution = resolve([target("app", ref("ghost"))])
        assert kinds(resolution) == [DiagnosticKind.UNRESOLVED_TARGET]
        assert resolution.diagnostics[0].dependency == ref("ghost")

    def test_malformed_references_are_batched(self):
        resolution = resolve([
            target("a", "not an id", ref("b")),
            target("b", "g:a@1.0#target::x"),
            target("c", "g:a@1.0.0#widget::x"),
        ])
        assert kinds(resolution) == [DiagnosticKind.MALFORMED_DEPENDENCY_REFERENCE] * 3
        assert [d.subject for d in resolution.diagnostics] == [ref("a"), ref("b"), ref("c")]

    def test_malformed_reference_skips_structural_checks(self):
        resolution = resolve([target("a", "bad", ref("ghost"))])
        assert DiagnosticKind.UNRESOLVED_TARGET not in kinds(resolution)

    def test_duplicate_target(self):
        resolution = resolve([
            target("lib", source_file="one/BUILD.yaml"),
            target("lib", source_file="two/BUILD.yaml"),
            target("app", ref("ghost")),
        ])
        assert sorted(k.value for k in kinds(resolution)) == ["DuplicateTarget", "UnresolvedTarget"]
        duplicate = next(d for d in resolution.diagnostics if d.kind is DiagnosticKind.DUPLICATE_TARGET)
        assert "one/BUILD.yaml" in duplicate.reason
        assert "two/BUILD.yaml" in duplicate.reason

    def test_all_violations_in_one_pass(self):
        resolution = resolve([
            target("lib", artifact="g:a@1.0.0", visibility=Visibility.private()),
            target("app", ref("lib", "g:a@1.0.0"), artifact="g:b@1.0.0"),
            target("tool", ref("lib", "g:a@1.0.0"), artifact="g:c@1.0.0"),
        ])
        assert kinds(resolution) == [DiagnosticKind.VISIBILITY_VIOLATION] * 2

    def test_diagnostic_order_is_deterministic(self):
        targets = [
            target("b", ref("ghost1")),
            target("a", ref("ghost2")),
            target("c", ref("ghost0")),
        ]
        forward = resolve(targets).diagnostics
        backward = resolve(list(reversed(targets))).diagnostics
        assert forward == backward
        assert [d.subject for d in forward] == [ref("a"), ref("b"), ref("c")]

    def test_discovery_diagnostics_fail_resolution(self):
        discovered = Diagnostic(
            kind=DiagnosticKind.INVALID_GLOB,
            subject="project.yaml",
            reason="unbalanced '['",
        )
        resolution = DependencyGraphResolver().resolve([target("a")], diagnostics=[discovered])
        assert not resolution.ok
        assert resolution.diagnostics == (discovered,)

    def test_graph_or_raise(self):
        resolution = resolve([target("app", ref("ghost"))])
        with pytest.raises(ResolutionFailed) as excinfo:
            resolution.graph_or_raise()
        assert excinfo.value.diagnostics == tuple(resolution.errors)
        assert resolve([target("a")]).graph_or_raise() is not None


class TestContract:
    """Tests for resolver misuse and cancellation."""

    def test_rejects_none(self):
        with pytest.raises(ContractError):
            DependencyGraphResolver().resolve(None)

    def test_rejects_non_targets(self):
        with pytest.raises(ContractError):
            DependencyGraphResolver().resolve([ref("a")])

    def test_contract_error_is_not_a_data_error(self):
        assert not issubclass(ContractError, ZGraphError)

    def test_cancelled_before_start(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ResolutionCancelled) as excinfo:
            DependencyGraphResolver().resolve([target("a")], cancel=cancel)
        assert excinfo.value.phase == "discovering"

    def test_unset_event_does_not_cancel(self):
        assert DependencyGraphResolver().resolve([target("a")], cancel=threading.Event()).ok


class TestSink:
    """Tests for reporting through a diagnostics sink."""

    def test_phases_are_traced(self):
        sink = CollectingSink()
        DependencyGraphResolver(sink=sink).resolve([target("a")])
        assert sink.messages('trace') == [
            "resolver: discovering",
            "resolver: parsing",
            "resolver: authorizing",
            "resolver: cycle_checking",
        ]
        assert sink.messages('log') == ["resolver: resolved 1 target(s)"]

    def test_errors_are_emitted(self):
        sink = CollectingSink()
        DependencyGraphResolver(sink=sink).resolve([target("app", ref("ghost"))])
        errors = sink.messages('error')
        assert len(errors) == 1
        assert errors[0].startswith("UnresolvedTarget: ")
