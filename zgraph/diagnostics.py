"""
Diagnostics sink boundary for zgraph.

The resolver never writes to the console. It reports through a sink
with trace/debug/log/warn/error methods; LoggingSink forwards those to
the standard logging module, and the CLI renders diagnostics itself.

warn() and error() optionally carry the Diagnostic a message was
formatted from, so sinks can keep kind, subject and dependency as data.
"""

import logging
from typing import Iterable, List, Optional, Protocol

from .domain.diagnostic import Diagnostic, Severity

# Below logging.DEBUG, used for phase transitions
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


class DiagnosticsSink(Protocol):
    def trace(self, message: str) -> None: ...
    def debug(self, message: str) -> None: ...
    def log(self, message: str) -> None: ...
    def warn(self, message: str, diagnostic: Optional[Diagnostic] = None) -> None: ...
    def error(self, message: str, diagnostic: Optional[Diagnostic] = None) -> None: ...


class LoggingSink:
    """
    Sink that forwards to a logging.Logger.

    A diagnostic passed to warn() or error() is attached to the log record
    as ``record.diagnostic`` (its to_dict() form).
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("zgraph")

    @staticmethod
    def _extra(diagnostic: Optional[Diagnostic]) -> Optional[dict]:
        return {'diagnostic': diagnostic.to_dict()} if diagnostic is not None else None

    def trace(self, message: str) -> None:
        self.logger.log(TRACE, message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)

    def log(self, message: str) -> None:
        self.logger.info(message)

    def warn(self, message: str, diagnostic: Optional[Diagnostic] = None) -> None:
        self.logger.warning(message, extra=self._extra(diagnostic))

    def error(self, message: str, diagnostic: Optional[Diagnostic] = None) -> None:
        self.logger.error(message, extra=self._extra(diagnostic))


class CollectingSink:
    """Sink that keeps (level, message) pairs and emitted diagnostics in memory."""

    def __init__(self):
        self.records: List[tuple] = []
        self.diagnostics: List[Diagnostic] = []

    def trace(self, message: str) -> None:
        self.records.append(('trace', message))

    def debug(self, message: str) -> None:
        self.records.append(('debug', message))

    def log(self, message: str) -> None:
        self.records.append(('log', message))

    def warn(self, message: str, diagnostic: Optional[Diagnostic] = None) -> None:
        self.records.append(('warn', message))
        if diagnostic is not None:
            self.diagnostics.append(diagnostic)

    def error(self, message: str, diagnostic: Optional[Diagnostic] = None) -> None:
        self.records.append(('error', message))
        if diagnostic is not None:
            self.diagnostics.append(diagnostic)

    def messages(self, level: str) -> List[str]:
        return [message for lvl, message in self.records if lvl == level]


def emit(diagnostics: Iterable[Diagnostic], sink: DiagnosticsSink) -> None:
    """Send each diagnostic to the sink at the level its severity calls for."""
    for diagnostic in diagnostics:
        if diagnostic.severity is Severity.ERROR:
            sink.error(diagnostic.message(), diagnostic=diagnostic)
        else:
            sink.warn(diagnostic.message(), diagnostic=diagnostic)
