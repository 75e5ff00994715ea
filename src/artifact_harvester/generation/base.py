"""
artifact-harvester — generation collaborator interface

File: src/artifact_harvester/generation/base.py
Last updated: 2026-10-18

Purpose
- Describe the "send a generation request" collaborator the continuation
  controller drives, without implementing any transport.

What should be included in this file
- Request model: prompt, system instruction, optional response schema, model,
  token and temperature limits.
- Client protocol with plain and streaming calls, and an adapter for plain
  async callables.
- Error taxonomy with retryability classification.
- Backoff policy and delay computation.

Functional requirements
- Any exception raised by a client can be normalized to a ``GenerationError``.
- Backoff delays are pure values; sleeping is the caller's job.

Non-functional requirements
- No network or SDK imports; transports live outside this package.
"""

from __future__ import annotations

import asyncio
import random as random_module
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Protocol, TypeAlias, runtime_checkable

from artifact_harvester.constants import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TEMPERATURE,
    MAX_RETRY_ATTEMPTS,
    RETRY_BACKOFF_INITIAL_SECONDS,
    RETRY_BACKOFF_MAX_SECONDS,
)

SleepFn: TypeAlias = Callable[[float], Awaitable[None]]
RandomFn: TypeAlias = Callable[[], float]
ChunkCallback: TypeAlias = Callable[[str], None]

_MAX_DETAIL_LENGTH = 2000


def _validate_non_empty_str(value: str, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    if not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """One request to the generation collaborator."""

    prompt: str
    system_instruction: str | None = None
    response_schema: Mapping[str, object] | None = None
    model: str | None = None
    max_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _validate_non_empty_str(self.prompt, "prompt")
        if self.model is not None:
            _validate_non_empty_str(self.model, "model")
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")
        if not (0.0 <= self.temperature <= 2.0):
            raise ValueError("temperature must be between 0.0 and 2.0")
        object.__setattr__(self, "metadata", dict(self.metadata))

    def with_prompt(self, prompt: str) -> GenerationRequest:
        return replace(self, prompt=prompt)

    def to_dict(self) -> dict[str, object]:
        return {
            "prompt": self.prompt,
            "system_instruction": self.system_instruction,
            "response_schema": dict(self.response_schema) if self.response_schema else None,
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "metadata": dict(self.metadata),
        }


@runtime_checkable
class GenerationClient(Protocol):
    """Transport-agnostic generation collaborator."""

    async def generate(self, request: GenerationRequest) -> str:
        """Return the full response text for ``request``."""

    async def generate_stream(self, request: GenerationRequest, on_chunk: ChunkCallback) -> str:
        """Stream chunks to ``on_chunk`` and return the full response text."""


GenerateFn: TypeAlias = Callable[[GenerationRequest], Awaitable[str]]
GenerateStreamFn: TypeAlias = Callable[[GenerationRequest, ChunkCallback], Awaitable[str]]


class CallableGenerationClient:
    """Adapt plain async functions to ``GenerationClient``.

    Without a streaming function the whole response is delivered as one chunk.
    """

    def __init__(self, generate: GenerateFn, *, stream: GenerateStreamFn | None = None) -> None:
        if not callable(generate):
            raise ValueError("generate must be callable")
        if stream is not None and not callable(stream):
            raise ValueError("stream must be callable")
        self._generate = generate
        self._stream = stream

    async def generate(self, request: GenerationRequest) -> str:
        return await self._generate(request)

    async def generate_stream(self, request: GenerationRequest, on_chunk: ChunkCallback) -> str:
        if self._stream is not None:
            return await self._stream(request, on_chunk)
        text = await self._generate(request)
        on_chunk(text)
        return text


class GenerationError(RuntimeError):
    """Normalized generation failure with machine-readable fields."""

    def __init__(
        self,
        *,
        code: str,
        detail: str,
        retryable: bool,
        client: str = "client",
        http_status: int | None = None,
    ) -> None:
        self.code = _validate_non_empty_str(code, "code")
        self.detail = _normalize_detail(detail)
        self.retryable = bool(retryable)
        self.client = client
        self.http_status = http_status

        parts = [
            f"client={self.client}",
            f"code={self.code}",
            f"retryable={str(self.retryable).lower()}",
        ]
        if self.http_status is not None:
            parts.append(f"http_status={self.http_status}")
        parts.append(f"detail={self.detail}")
        super().__init__(" ".join(parts))


class GenerationTimeoutError(GenerationError):
    """The collaborator did not answer in time (retryable)."""

    def __init__(self, detail: str, *, client: str = "client") -> None:
        super().__init__(code="timeout", detail=detail, retryable=True, client=client)


class GenerationRateLimitError(GenerationError):
    """Rate-limit responses (retryable)."""

    def __init__(
        self, detail: str, *, client: str = "client", http_status: int | None = 429
    ) -> None:
        super().__init__(
            code="rate_limit",
            detail=detail,
            retryable=True,
            client=client,
            http_status=http_status,
        )


class GenerationServiceError(GenerationError):
    """Transport or service failures."""

    def __init__(
        self,
        detail: str,
        *,
        client: str = "client",
        retryable: bool = True,
        http_status: int | None = None,
    ) -> None:
        super().__init__(
            code="service",
            detail=detail,
            retryable=retryable,
            client=client,
            http_status=http_status,
        )


class GenerationResponseError(GenerationError):
    """The collaborator answered with something unusable."""

    def __init__(self, detail: str, *, client: str = "client") -> None:
        super().__init__(code="response_invalid", detail=detail, retryable=True, client=client)


def is_retryable_error(error: BaseException) -> bool:
    return isinstance(error, GenerationError) and error.retryable


def normalize_generation_error(error: BaseException) -> GenerationError:
    """Map an arbitrary client exception onto the taxonomy."""

    if isinstance(error, GenerationError):
        return error
    detail = str(error) or type(error).__name__
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return GenerationTimeoutError(detail)
    return GenerationServiceError(f"{type(error).__name__}: {detail}")


class BackoffGrowth(StrEnum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True, slots=True)
class BackoffConfig:
    """Bounded retry backoff policy; linear by default (1s, 2s, 3s)."""

    max_retries: int = MAX_RETRY_ATTEMPTS
    initial_delay_seconds: float = RETRY_BACKOFF_INITIAL_SECONDS
    multiplier: float = 2.0
    max_delay_seconds: float = RETRY_BACKOFF_MAX_SECONDS
    jitter_ratio: float = 0.0
    growth: BackoffGrowth = BackoffGrowth.LINEAR

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay_seconds < 0:
            raise ValueError("initial_delay_seconds must be >= 0")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if self.max_delay_seconds < 0:
            raise ValueError("max_delay_seconds must be >= 0")
        if self.initial_delay_seconds > self.max_delay_seconds:
            raise ValueError("initial_delay_seconds must be <= max_delay_seconds")
        if not (0.0 <= self.jitter_ratio <= 1.0):
            raise ValueError("jitter_ratio must be between 0.0 and 1.0")
        object.__setattr__(self, "growth", BackoffGrowth(self.growth))


def compute_backoff_delay(
    *,
    retry_number: int,
    config: BackoffConfig,
    random_fn: RandomFn = random_module.random,
) -> float:
    """Return the bounded backoff delay for retry attempt N (1-based)."""

    if retry_number <= 0:
        raise ValueError("retry_number must be > 0")

    if config.growth is BackoffGrowth.LINEAR:
        base_delay = config.initial_delay_seconds * retry_number
    else:
        base_delay = config.initial_delay_seconds * (config.multiplier ** (retry_number - 1))
    bounded_delay = min(base_delay, config.max_delay_seconds)

    if config.jitter_ratio == 0.0:
        return bounded_delay

    random_value = random_fn()
    if not (0.0 <= random_value <= 1.0):
        raise ValueError("random_fn must return values in [0.0, 1.0]")

    max_jitter = bounded_delay * config.jitter_ratio
    jitter = ((random_value * 2.0) - 1.0) * max_jitter
    return max(0.0, min(config.max_delay_seconds, bounded_delay + jitter))


def _normalize_detail(detail: str) -> str:
    text = " ".join(str(detail).split())
    if not text:
        return "no detail"
    if len(text) > _MAX_DETAIL_LENGTH:
        return text[: _MAX_DETAIL_LENGTH - 3] + "..."
    return text


__all__ = [
    "BackoffConfig",
    "BackoffGrowth",
    "CallableGenerationClient",
    "ChunkCallback",
    "GenerateFn",
    "GenerateStreamFn",
    "GenerationClient",
    "GenerationError",
    "GenerationRateLimitError",
    "GenerationRequest",
    "GenerationResponseError",
    "GenerationServiceError",
    "GenerationTimeoutError",
    "RandomFn",
    "SleepFn",
    "compute_backoff_delay",
    "is_retryable_error",
    "normalize_generation_error",
]
