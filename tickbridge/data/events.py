"""
TICKBRIDGE — Fetch Event Sinks
The orchestrator reports progress as named events through a caller-supplied
sink instead of writing to a particular logging backend.
"""
from typing import Any, Dict, List, Optional, Protocol, Tuple

from tickbridge.utils.logger import get_logger

FETCH_STARTED = "fetch_started"
FETCH_SUCCEEDED = "fetch_succeeded"
FETCH_DEGRADED = "fetch_degraded"
FETCH_FAILED = "fetch_failed"


class EventSink(Protocol):
    def emit(self, event: str, **fields: Any) -> None:
        ...


class StructlogEventSink:
    """Default sink: forwards events to structlog at a level matching their severity."""

    _LEVELS = {
        FETCH_STARTED: "info",
        FETCH_SUCCEEDED: "info",
        FETCH_DEGRADED: "warning",
        FETCH_FAILED: "error",
    }

    def __init__(self, logger_name: str = "orchestrator"):
        self._logger = get_logger(logger_name)

    def emit(self, event: str, **fields: Any) -> None:
        level = self._LEVELS.get(event, "info")
        getattr(self._logger, level)(event, **fields)


class RecordingEventSink:
    """Keeps events in memory; handy for tests and for attaching to API responses."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, event: str, **fields: Any) -> None:
        self.events.append((event, fields))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def of(self, event: str) -> List[Dict[str, Any]]:
        return [fields for name, fields in self.events if name == event]

    def last(self, event: Optional[str] = None) -> Optional[Dict[str, Any]]:
        matches = self.events if event is None else [e for e in self.events if e[0] == event]
        return matches[-1][1] if matches else None
