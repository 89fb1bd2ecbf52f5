"""Tests for diagnostic records and sinks."""

import logging

from zgraph.diagnostics import TRACE, CollectingSink, LoggingSink, emit
from zgraph.domain.diagnostic import Diagnostic, DiagnosticKind, Severity, has_errors, sort_diagnostics


def make(kind=DiagnosticKind.UNRESOLVED_TARGET, subject="g:a@1.0.0#target::a", dependency=None, **kwargs):
    return Diagnostic(kind=kind, subject=subject, reason=kwargs.pop('reason', "missing"), dependency=dependency, **kwargs)


class TestDiagnostic:
    """Tests for Diagnostic."""

    def test_message_with_dependency(self):
        diagnostic = make(dependency="g:b@1.0.0#target::b")
        assert diagnostic.message() == "UnresolvedTarget: g:a@1.0.0#target::a -> g:b@1.0.0#target::b: missing"
        assert str(diagnostic) == diagnostic.message()

    def test_message_without_dependency(self):
        assert make(kind=DiagnosticKind.DUPLICATE_TARGET).message() == "DuplicateTarget: g:a@1.0.0#target::a: missing"

    def test_to_dict(self):
        diagnostic = make(dependency="x", related=("a", "x"))
        assert diagnostic.to_dict() == {
            'kind': 'UnresolvedTarget',
            'severity': 'error',
            'subject': 'g:a@1.0.0#target::a',
            'reason': 'missing',
            'dependency': 'x',
            'related': ['a', 'x'],
        }

    def test_sort_order(self):
        c = make(subject="c")
        a2 = make(subject="a", dependency="2")
        a1 = make(subject="a", dependency="1")
        a = make(subject="a")
        assert sort_diagnostics([c, a2, a1, a]) == [a, a1, a2, c]

    def test_warnings_are_not_errors(self):
        warning = make(severity=Severity.WARNING)
        assert not has_errors([warning])
        assert has_errors([warning, make()])


class TestSinks:
    """Tests for diagnostics sinks."""

    def test_emit_routes_by_severity(self):
        sink = CollectingSink()
        emit([make(), make(severity=Severity.WARNING, reason="odd")], sink)
        assert len(sink.messages('error')) == 1
        assert sink.messages('warn') == ["UnresolvedTarget: g:a@1.0.0#target::a: odd"]

    def test_logging_sink(self, caplog):
        logger = logging.getLogger("zgraph.test_sink")
        sink = LoggingSink(logger)
        with caplog.at_level(TRACE, logger="zgraph.test_sink"):
            sink.trace("t")
            sink.debug("d")
            sink.log("l")
            sink.warn("w")
            sink.error("e")
        assert [(r.levelno, r.getMessage()) for r in caplog.records] == [
            (TRACE, "t"),
            (logging.DEBUG, "d"),
            (logging.INFO, "l"),
            (logging.WARNING, "w"),
            (logging.ERROR, "e"),
        ]
        assert logging.getLevelName(TRACE) == "TRACE"

    def test_collecting_sink_keeps_emitted_diagnostics(self):
        sink = CollectingSink()
        diagnostic = make(dependency="g:b@1.0.0#target::b")
        emit([diagnostic], sink)
        assert sink.diagnostics == [diagnostic]
        assert sink.diagnostics[0].kind is DiagnosticKind.UNRESOLVED_TARGET

    def test_logging_sink_attaches_diagnostic_data(self, caplog):
        logger = logging.getLogger("zgraph.test_sink")
        with caplog.at_level(logging.WARNING, logger="zgraph.test_sink"):
            emit([make(dependency="g:b@1.0.0#target::b")], LoggingSink(logger))
        [record] = caplog.records
        assert record.levelno == logging.ERROR
        assert record.diagnostic['kind'] == 'UnresolvedTarget'
        assert record.diagnostic['subject'] == "g:a@1.0.0#target::a"
        assert record.diagnostic['dependency'] == "g:b@1.0.0#target::b"

    def test_plain_messages_carry_no_diagnostic(self, caplog):
        logger = logging.getLogger("zgraph.test_sink")
        with caplog.at_level(logging.WARNING, logger="zgraph.test_sink"):
            LoggingSink(logger).warn("plain")
        assert not hasattr(caplog.records[0], 'diagnostic')
