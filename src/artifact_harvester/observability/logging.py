"""
artifact-harvester — run logging

File: src/artifact_harvester/observability/logging.py
Last updated: 2026-10-18

Purpose
- Route structlog events from the extractor, controller and repair pipeline
  into one stdlib logger whose records are drained by a background queue
  listener into a per-run JSON-lines file and/or stderr.

What should be included in this file
- ``LoggingConfig`` with validation at construction.
- ``setup_logging`` adapter for the ``[observability]`` config section.
- ``configure_structlog`` processor chain; context bound with
  ``structlog.contextvars`` lands in each record's ``fields``.
- Secret redaction for messages and fields.
- Process-wide active handle with idempotent shutdown (also at exit).

Functional requirements
- Producers never block: a full queue drops the record and counts it.
- Shutdown drains the queue before closing sinks.
"""

from __future__ import annotations

import atexit
import json
import logging
import logging.handlers
import math
import queue
import re
import sys
import threading
import time
from collections.abc import Callable, Mapping, MutableMapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final, Literal

import structlog

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
LogRedactor = Callable[[JSONValue], JSONValue]
LogFormat = Literal["json", "text"]

REDACTED: Final[str] = "***REDACTED***"
_ROOT_LOGGER: Final[str] = "artifact_harvester"
_FIELDS_ATTR: Final[str] = "harvest_fields"

_SECRET_KEY: Final[re.Pattern[str]] = re.compile(
    r"(?i)secret|token|passw(?:or)?d|passphrase|api[_-]?key|authorization|credential"
    r"|cookie|private[_-]?key"
)
_INLINE_SECRETS: Final[tuple[tuple[re.Pattern[str], str | Callable[[re.Match[str]], str]], ...]] = (
    (
        re.compile(
            r"(?i)\b(api[_-]?key|token|password|secret|client_secret|authorization)\b"
            r"\s*([:=])\s*[^\s,;]+"
        ),
        lambda match: f"{match.group(1)}{match.group(2)}{REDACTED}",
    ),
    (re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*"), f"Bearer {REDACTED}"),
    (re.compile(r"\bsk-(?:ant-)?[A-Za-z0-9_-]{12,}\b"), REDACTED),
)

_active_lock = threading.Lock()
_active: StructuredLoggingHandle | None = None
_atexit_registered = False


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Sinks and limits for one harvest run."""

    run_id: str
    base_log_dir: Path | str | None = Path("logs")
    logger_name: str = _ROOT_LOGGER
    level: int | str = "INFO"
    log_format: LogFormat = "json"
    queue_size: int = 4096
    log_filename: str = "harvester.jsonl"
    log_to_stderr: bool = True
    redactor: LogRedactor | None = None

    def __post_init__(self) -> None:
        for name in ("run_id", "logger_name", "log_filename"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{name} must be a non-empty string")
            object.__setattr__(self, name, value.strip())
        if Path(self.log_filename).name != self.log_filename:
            raise ValueError("log_filename must not include path separators")
        if isinstance(self.queue_size, bool) or self.queue_size <= 0:
            raise ValueError("queue_size must be > 0")
        if self.log_format not in ("json", "text"):
            raise ValueError(f"unsupported log_format {self.log_format!r}")
        object.__setattr__(self, "level", _level_number(self.level))

    @property
    def log_path(self) -> Path | None:
        if self.base_log_dir is None:
            return None
        return Path(self.base_log_dir) / self.run_id / self.log_filename


def setup_logging(
    observability_config: Mapping[str, object] | None = None,
    *,
    run_id: str,
    log_dir: Path | str | None = None,
    log_to_file: bool = True,
    logger_name: str = _ROOT_LOGGER,
) -> StructuredLoggingHandle:
    """Start run logging from an ``[observability]`` section of ``harvester.toml``.

    ``log_dir`` overrides ``log_dir`` from the section; with ``log_to_file``
    false only the stderr sink is installed.
    """

    section = dict(observability_config or {})
    base_dir = log_dir if log_dir is not None else section.get("log_dir", "logs")
    if not isinstance(base_dir, (str, Path)):
        base_dir = "logs"
    level = section.get("log_level", "INFO")
    return setup_structured_logging(
        LoggingConfig(
            run_id=run_id,
            base_log_dir=base_dir if log_to_file else None,
            logger_name=logger_name,
            level=level if isinstance(level, (int, str)) else "INFO",
            log_format="text" if section.get("log_format") == "text" else "json",
            redactor=default_log_redactor if section.get("redact_secrets", True) else _unredacted,
        )
    )


def configure_structlog() -> None:
    """Send structlog events, with bound contextvars, to the stdlib logger tree."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            _to_stdlib_call,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def _to_stdlib_call(
    _logger: object, _method: str, event_dict: MutableMapping[str, Any]
) -> dict[str, Any]:
    call: dict[str, Any] = {"msg": event_dict.pop("event", "")}
    exc_info = event_dict.pop("exc_info", None)
    if exc_info:
        call["exc_info"] = exc_info
    call["extra"] = {_FIELDS_ATTR: dict(event_dict)}
    return call


class _DroppingQueueHandler(logging.handlers.QueueHandler):
    """Never blocks the producer; counts records lost to a full queue."""

    def __init__(self, log_queue: queue.Queue[object]) -> None:
        super().__init__(log_queue)
        self._drop_lock = threading.Lock()
        self.dropped = 0

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            with self._drop_lock:
                self.dropped += 1


class _RecordFormatter(logging.Formatter):
    def __init__(self, *, run_id: str, redactor: LogRedactor, log_format: LogFormat) -> None:
        super().__init__()
        self._run_id = run_id
        self._redact = redactor
        self._format = log_format

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, JSONValue] = {
            "timestamp": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "run_id": self._run_id,
            "event": _as_text(self._redact(record.getMessage())),
        }
        fields = getattr(record, _FIELDS_ATTR, None)
        if fields:
            entry["fields"] = self._redact(_jsonable(fields))
        if record.exc_info is not None:
            entry["exception"] = _as_text(self._redact(self.formatException(record.exc_info)))
        if self._format == "text":
            return _text_line(entry)
        return json.dumps(entry, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _text_line(entry: Mapping[str, JSONValue]) -> str:
    line = f"{entry['timestamp']} {entry['level']:<7} {entry['event']}"
    fields = entry.get("fields")
    if isinstance(fields, Mapping):
        line += "".join(f" {key}={_as_text(fields[key])}" for key in sorted(fields))
    exception = entry.get("exception")
    if isinstance(exception, str):
        line += f" \n{exception}"
    return line


class StructuredLoggingHandle:
    """An active logging setup; ``shutdown`` drains the queue and closes sinks."""

    def __init__(
        self,
        config: LoggingConfig,
        logger: logging.Logger,
        queue_handler: _DroppingQueueHandler,
        sinks: tuple[logging.Handler, ...],
    ) -> None:
        self.run_id = config.run_id
        self.log_path = config.log_path
        self.logger = logger
        self._queue_handler = queue_handler
        self._sinks = sinks
        self._listener = logging.handlers.QueueListener(
            queue_handler.queue, *sinks, respect_handler_level=True
        )
        self._close_lock = threading.Lock()
        self._closed = False

    @property
    def dropped_records(self) -> int:
        return self._queue_handler.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def start(self) -> None:
        self._listener.start()
        self.logger.addHandler(self._queue_handler)

    def flush(self, *, timeout_seconds: float = 2.0) -> None:
        pending = self._queue_handler.queue
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while getattr(pending, "unfinished_tasks", 0) and time.monotonic() < deadline:
            time.sleep(0.01)
        for sink in self._sinks:
            sink.flush()

    def shutdown(self, *, timeout_seconds: float = 2.0) -> None:
        with self._close_lock:
            if self._closed:
                return
            self.flush(timeout_seconds=timeout_seconds)
            self._listener.stop()
            self.logger.removeHandler(self._queue_handler)
            self._queue_handler.close()
            for sink in self._sinks:
                sink.close()
            self._closed = True


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Replace any active setup with queue-backed sinks described by ``config``."""

    global _active
    shutdown_logging()

    formatter = _RecordFormatter(
        run_id=config.run_id,
        redactor=config.redactor or default_log_redactor,
        log_format=config.log_format,
    )
    sinks: list[logging.Handler] = []
    if config.log_path is not None:
        config.log_path.parent.mkdir(parents=True, exist_ok=True)
        sinks.append(logging.FileHandler(config.log_path, encoding="utf-8"))
    if config.log_to_stderr:
        sinks.append(logging.StreamHandler(sys.stderr))
    for sink in sinks:
        sink.setLevel(config.level)
        sink.setFormatter(formatter)

    logger = logging.getLogger(config.logger_name)
    logger.setLevel(config.level)
    logger.propagate = False
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()

    queue_handler = _DroppingQueueHandler(queue.Queue(maxsize=config.queue_size))
    queue_handler.setLevel(config.level)
    handle = StructuredLoggingHandle(config, logger, queue_handler, tuple(sinks))
    handle.start()
    configure_structlog()

    with _active_lock:
        _active = handle
    _ensure_atexit()
    return handle


def shutdown_logging(
    handle: StructuredLoggingHandle | None = None, *, timeout_seconds: float = 2.0
) -> None:
    """Shut down ``handle`` (default: the active one); repeated calls are no-ops."""

    global _active
    target = handle if handle is not None else get_active_logging_handle()
    if target is None:
        return
    target.shutdown(timeout_seconds=timeout_seconds)
    with _active_lock:
        if _active is target:
            _active = None


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _active_lock:
        return _active


def default_log_redactor(value: JSONValue) -> JSONValue:
    """Mask values under secret-looking keys and inline credentials in strings."""

    if isinstance(value, str):
        for pattern, replacement in _INLINE_SECRETS:
            value = pattern.sub(replacement, value)
        return value
    if isinstance(value, list):
        return [default_log_redactor(item) for item in value]
    if isinstance(value, dict):
        return {
            key: REDACTED if _SECRET_KEY.search(key) else default_log_redactor(item)
            for key, item in value.items()
        }
    return value


def _unredacted(value: JSONValue) -> JSONValue:
    return value


def _ensure_atexit() -> None:
    global _atexit_registered
    if not _atexit_registered:
        atexit.register(shutdown_logging)
        _atexit_registered = True


def _level_number(level: int | str) -> int:
    if isinstance(level, bool):
        raise ValueError("level must be a logging level name or number")
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        number = logging.getLevelName(level.strip().upper())
        if isinstance(number, int):
            return number
    raise ValueError(f"unsupported logging level {level!r}")


def _utc_timestamp(epoch_seconds: float) -> str:
    moment = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_text(value: JSONValue) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _jsonable(value: object) -> JSONValue:
    if isinstance(value, float) and not math.isfinite(value):
        return repr(value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_jsonable(item) for item in value), key=repr)
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, datetime):
        aware = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        return aware.astimezone(UTC).isoformat().replace("+00:00", "Z")
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


__all__ = [
    "REDACTED",
    "JSONScalar",
    "JSONValue",
    "LogFormat",
    "LogRedactor",
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "default_log_redactor",
    "get_active_logging_handle",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
