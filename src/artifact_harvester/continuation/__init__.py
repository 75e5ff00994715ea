"""
artifact-harvester continuation package public API.

File: src/artifact_harvester/continuation/__init__.py
Last updated: 2026-10-18

Purpose
- Export the continuation state, controller and prompt builders.

Functional requirements
- The controller is the only async component of the pipeline.
"""

from artifact_harvester.continuation.controller import (
    ContinuationController,
    ContinuationPolicy,
    TargetedResult,
    TruncationRetryResult,
    drive_continuation,
    validate_files,
)
from artifact_harvester.continuation.prompts import (
    batch_continuation_prompt,
    continuation_prompt,
    missing_files_prompt,
    truncation_continuation_prompt,
)
from artifact_harvester.continuation.state import (
    TERMINAL_PHASES,
    ContinuationError,
    ContinuationOutcome,
    ContinuationPhase,
    ContinuationState,
    ContinuationStep,
    GenerationMeta,
)

__all__ = [
    "TERMINAL_PHASES",
    "ContinuationController",
    "ContinuationError",
    "ContinuationOutcome",
    "ContinuationPhase",
    "ContinuationPolicy",
    "ContinuationState",
    "ContinuationStep",
    "GenerationMeta",
    "TargetedResult",
    "TruncationRetryResult",
    "batch_continuation_prompt",
    "continuation_prompt",
    "drive_continuation",
    "missing_files_prompt",
    "truncation_continuation_prompt",
    "validate_files",
]
