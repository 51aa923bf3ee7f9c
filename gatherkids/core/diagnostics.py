"""
Structured, non-fatal diagnostic events.

The mapping layer and the adapter factory report recoverable anomalies
(legacy field spellings, missing remote credentials, partially applied remote
transactions) through a ``DiagnosticSink`` handed to them at construction.
Production code uses ``LoggingDiagnosticSink``; tests pass a
``CapturingDiagnosticSink`` and assert on ``events``.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, List, Protocol, Tuple

logger = logging.getLogger("gatherkids.diagnostics")


class DiagnosticSink(Protocol):
    def emit(self, event: str, **payload: Any) -> None:
        ...


class LoggingDiagnosticSink:
    """Writes ``"<event> <json payload>"`` lines to the diagnostics logger."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.WARNING) -> None:
        self._log = log or logger
        self._level = level

    def emit(self, event: str, **payload: Any) -> None:
        self._log.log(self._level, "%s %s", event, json.dumps(payload, sort_keys=True, default=str))


class CapturingDiagnosticSink:
    """Keeps every emitted event in memory."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def emit(self, event: str, **payload: Any) -> None:
        with self._lock:
            self.events.append((event, dict(payload)))

    def named(self, event: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [payload for name, payload in self.events if name == event]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()


_default_sink = LoggingDiagnosticSink()


def default_sink() -> DiagnosticSink:
    return _default_sink
