"""Generation collaborator interface: request, client protocol, errors, backoff."""

from artifact_harvester.generation.base import (
    BackoffConfig,
    BackoffGrowth,
    CallableGenerationClient,
    ChunkCallback,
    GenerationClient,
    GenerationError,
    GenerationRateLimitError,
    GenerationRequest,
    GenerationResponseError,
    GenerationServiceError,
    GenerationTimeoutError,
    SleepFn,
    compute_backoff_delay,
    is_retryable_error,
    normalize_generation_error,
)

__all__ = [
    "BackoffConfig",
    "BackoffGrowth",
    "CallableGenerationClient",
    "ChunkCallback",
    "GenerationClient",
    "GenerationError",
    "GenerationRateLimitError",
    "GenerationRequest",
    "GenerationResponseError",
    "GenerationServiceError",
    "GenerationTimeoutError",
    "SleepFn",
    "compute_backoff_delay",
    "is_retryable_error",
    "normalize_generation_error",
]
