"""Pipeline event sinks: warnings, recovered files and scheduled retries."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Final, Protocol, runtime_checkable

import structlog

_DEFAULT_ERROR_BUFFER: Final[int] = 256


@runtime_checkable
class PipelineEvents(Protocol):
    """Callbacks the extractor and continuation controller report through."""

    def on_warning(self, message: str) -> None: ...

    def on_recovered(self, path: str) -> None: ...

    def on_retry(self, attempt: int, delay_seconds: float, reason: str) -> None: ...


class NullPipelineEvents:
    """Sink that ignores every event."""

    def on_warning(self, message: str) -> None:
        return None

    def on_recovered(self, path: str) -> None:
        return None

    def on_retry(self, attempt: int, delay_seconds: float, reason: str) -> None:
        return None


@dataclass(frozen=True, slots=True)
class RetryEvent:
    attempt: int
    delay_seconds: float
    reason: str


class RecordingPipelineEvents:
    """In-memory sink; handy for assertions and for CLI summaries."""

    def __init__(self) -> None:
        self.warnings: list[str] = []
        self.recovered: list[str] = []
        self.retries: list[RetryEvent] = []

    def on_warning(self, message: str) -> None:
        self.warnings.append(message)

    def on_recovered(self, path: str) -> None:
        self.recovered.append(path)

    def on_retry(self, attempt: int, delay_seconds: float, reason: str) -> None:
        self.retries.append(RetryEvent(attempt=attempt, delay_seconds=delay_seconds, reason=reason))


class StructlogPipelineEvents:
    """Forward events to a structlog logger as snake_case events."""

    def __init__(self, *, logger: Any | None = None) -> None:
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def on_warning(self, message: str) -> None:
        self._logger.warning("pipeline_warning", message=message)

    def on_recovered(self, path: str) -> None:
        self._logger.info("pipeline_file_recovered", path=path)

    def on_retry(self, attempt: int, delay_seconds: float, reason: str) -> None:
        self._logger.info(
            "pipeline_retry_scheduled",
            attempt=attempt,
            delay_seconds=delay_seconds,
            reason=reason,
        )


@dataclass(frozen=True, slots=True)
class SinkError:
    """Sink failure captured without interrupting the pipeline."""

    event: str
    target: str
    error_type: str
    message: str


class EventDispatcher:
    """Fan out events to several sinks; a failing sink never breaks the caller."""

    def __init__(self, sinks: Iterable[PipelineEvents] = ()) -> None:
        self._sinks: list[PipelineEvents] = list(sinks)
        self._errors = deque[SinkError](maxlen=_DEFAULT_ERROR_BUFFER)
        self._lock = threading.Lock()

    def add_sink(self, sink: PipelineEvents) -> None:
        if not isinstance(sink, PipelineEvents):
            raise ValueError("sink must implement on_warning, on_recovered and on_retry")
        with self._lock:
            self._sinks.append(sink)

    @property
    def sinks(self) -> tuple[PipelineEvents, ...]:
        with self._lock:
            return tuple(self._sinks)

    def errors(self) -> tuple[SinkError, ...]:
        with self._lock:
            return tuple(self._errors)

    def on_warning(self, message: str) -> None:
        self._dispatch("on_warning", message)

    def on_recovered(self, path: str) -> None:
        self._dispatch("on_recovered", path)

    def on_retry(self, attempt: int, delay_seconds: float, reason: str) -> None:
        self._dispatch("on_retry", attempt, delay_seconds, reason)

    def _dispatch(self, event: str, *args: object) -> None:
        for sink in self.sinks:
            try:
                getattr(sink, event)(*args)
            except Exception as exc:  # noqa: BLE001
                with self._lock:
                    self._errors.append(
                        SinkError(
                            event=event,
                            target=type(sink).__qualname__,
                            error_type=type(exc).__name__,
                            message=str(exc),
                        )
                    )


def as_dispatcher(events: PipelineEvents | None) -> EventDispatcher:
    """Wrap a single optional sink so callers can always dispatch."""

    if isinstance(events, EventDispatcher):
        return events
    return EventDispatcher(() if events is None else (events,))


__all__ = [
    "EventDispatcher",
    "NullPipelineEvents",
    "PipelineEvents",
    "RecordingPipelineEvents",
    "RetryEvent",
    "SinkError",
    "StructlogPipelineEvents",
    "as_dispatcher",
]
