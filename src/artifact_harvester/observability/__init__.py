"""Public observability primitives: structured logging and pipeline event sinks."""

from artifact_harvester.observability.events import (
    EventDispatcher,
    NullPipelineEvents,
    PipelineEvents,
    RecordingPipelineEvents,
    RetryEvent,
    SinkError,
    StructlogPipelineEvents,
    as_dispatcher,
)
from artifact_harvester.observability.logging import (
    REDACTED,
    LoggingConfig,
    LogRedactor,
    StructuredLoggingHandle,
    configure_structlog,
    default_log_redactor,
    get_active_logging_handle,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "EventDispatcher",
    "LogRedactor",
    "LoggingConfig",
    "NullPipelineEvents",
    "REDACTED",
    "PipelineEvents",
    "RecordingPipelineEvents",
    "RetryEvent",
    "SinkError",
    "StructlogPipelineEvents",
    "StructuredLoggingHandle",
    "as_dispatcher",
    "configure_structlog",
    "default_log_redactor",
    "get_active_logging_handle",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
