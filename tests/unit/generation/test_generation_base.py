"""
artifact-harvester — unit tests for the generation contract

File: tests/unit/generation/test_generation_base.py
Last updated: 2026-10-18

Purpose
- Validate request validation, error normalization and bounded backoff.

What this test file should cover
- Request field validation.
- Error taxonomy rendering and normalization of foreign exceptions.
- Linear and exponential backoff with caps and jitter.
- Callable client adaptation with and without streaming.
"""

from __future__ import annotations

import asyncio

import pytest

from artifact_harvester.generation.base import (
    BackoffConfig,
    BackoffGrowth,
    CallableGenerationClient,
    GenerationClient,
    GenerationError,
    GenerationRateLimitError,
    GenerationRequest,
    GenerationResponseError,
    GenerationServiceError,
    GenerationTimeoutError,
    compute_backoff_delay,
    is_retryable_error,
    normalize_generation_error,
)

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st

    HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    HYPOTHESIS_AVAILABLE = False


@pytest.mark.parametrize(
    ("kwargs", "error"),
    [
        ({"prompt": "  "}, ValueError),
        ({"prompt": 3}, TypeError),
        ({"prompt": "go", "max_tokens": 0}, ValueError),
        ({"prompt": "go", "temperature": 2.5}, ValueError),
        ({"prompt": "go", "model": ""}, ValueError),
    ],
)
def test_request_validation(kwargs: dict[str, object], error: type[Exception]) -> None:
    with pytest.raises(error):
        GenerationRequest(**kwargs)  # type: ignore[arg-type]


def test_request_with_prompt_keeps_other_fields() -> None:
    request = GenerationRequest(prompt="first", model="m-1", metadata={"run": "r1"})

    follow_up = request.with_prompt("second")

    assert follow_up.prompt == "second"
    assert follow_up.model == "m-1"
    assert follow_up.to_dict()["metadata"] == {"run": "r1"}


def test_error_string_carries_machine_fields() -> None:
    error = GenerationRateLimitError("slow   down\nplease", client="scripted")

    assert error.code == "rate_limit"
    assert error.retryable
    assert error.http_status == 429
    assert error.detail == "slow down please"
    assert str(error) == (
        "client=scripted code=rate_limit retryable=true http_status=429 detail=slow down please"
    )


def test_error_detail_is_normalized() -> None:
    assert GenerationServiceError("   ").detail == "no detail"
    long_detail = GenerationServiceError("x" * 5000).detail
    assert len(long_detail) == 2000
    assert long_detail.endswith("...")


@pytest.mark.parametrize(
    ("error", "code", "retryable"),
    [
        (GenerationTimeoutError("slow"), "timeout", True),
        (GenerationServiceError("down", retryable=False), "service", False),
        (GenerationResponseError("empty"), "response_invalid", True),
    ],
)
def test_error_taxonomy(error: GenerationError, code: str, retryable: bool) -> None:
    assert error.code == code
    assert is_retryable_error(error) is retryable


def test_normalize_maps_foreign_exceptions() -> None:
    timeout = normalize_generation_error(asyncio.TimeoutError())
    assert isinstance(timeout, GenerationTimeoutError)
    assert timeout.detail == "TimeoutError"

    service = normalize_generation_error(ConnectionResetError("peer closed"))
    assert isinstance(service, GenerationServiceError)
    assert service.detail == "ConnectionResetError: peer closed"

    original = GenerationResponseError("no files")
    assert normalize_generation_error(original) is original
    assert not is_retryable_error(ValueError("plain"))


def test_linear_backoff_is_the_default() -> None:
    config = BackoffConfig()

    delays = [compute_backoff_delay(retry_number=n, config=config) for n in (1, 2, 3)]

    assert delays == [1.0, 2.0, 3.0]


def test_exponential_backoff_is_capped() -> None:
    config = BackoffConfig(
        initial_delay_seconds=1.0, max_delay_seconds=5.0, growth=BackoffGrowth.EXPONENTIAL
    )

    delays = [compute_backoff_delay(retry_number=n, config=config) for n in (1, 2, 3, 4)]

    assert delays == [1.0, 2.0, 4.0, 5.0]


def test_jitter_uses_injected_random() -> None:
    config = BackoffConfig(jitter_ratio=0.5)

    assert compute_backoff_delay(retry_number=2, config=config, random_fn=lambda: 1.0) == 3.0
    assert compute_backoff_delay(retry_number=2, config=config, random_fn=lambda: 0.0) == 1.0
    with pytest.raises(ValueError, match="random_fn"):
        compute_backoff_delay(retry_number=1, config=config, random_fn=lambda: 1.5)


def test_backoff_rejects_bad_input() -> None:
    with pytest.raises(ValueError, match="retry_number"):
        compute_backoff_delay(retry_number=0, config=BackoffConfig())
    with pytest.raises(ValueError, match="initial_delay_seconds"):
        BackoffConfig(initial_delay_seconds=10.0, max_delay_seconds=1.0)
    with pytest.raises(ValueError, match="multiplier"):
        BackoffConfig(multiplier=0.5)
    with pytest.raises(ValueError, match="jitter_ratio"):
        BackoffConfig(jitter_ratio=1.5)
    with pytest.raises(ValueError):
        BackoffConfig(growth="quadratic")  # type: ignore[arg-type]


if HYPOTHESIS_AVAILABLE:

    @settings(max_examples=30, derandomize=True, deadline=None)
    @given(
        retry_number=st.integers(min_value=1, max_value=50),
        jitter=st.floats(min_value=0.0, max_value=1.0),
        random_value=st.floats(min_value=0.0, max_value=1.0),
        exponential=st.booleans(),
    )
    def test_backoff_delay_stays_within_bounds(
        retry_number: int, jitter: float, random_value: float, exponential: bool
    ) -> None:
        config = BackoffConfig(
            jitter_ratio=jitter,
            growth=BackoffGrowth.EXPONENTIAL if exponential else BackoffGrowth.LINEAR,
        )

        delay = compute_backoff_delay(
            retry_number=retry_number, config=config, random_fn=lambda: random_value
        )

        assert 0.0 <= delay <= config.max_delay_seconds


@pytest.mark.asyncio
async def test_callable_client_without_stream_delivers_one_chunk() -> None:
    async def generate(request: GenerationRequest) -> str:
        return f"echo: {request.prompt}"

    client = CallableGenerationClient(generate)
    chunks: list[str] = []

    text = await client.generate_stream(GenerationRequest(prompt="hi"), chunks.append)

    assert isinstance(client, GenerationClient)
    assert text == "echo: hi"
    assert chunks == ["echo: hi"]
    assert await client.generate(GenerationRequest(prompt="again")) == "echo: again"


@pytest.mark.asyncio
async def test_callable_client_prefers_stream_function() -> None:
    async def generate(request: GenerationRequest) -> str:
        raise AssertionError("stream function should be used")

    async def stream(request: GenerationRequest, on_chunk) -> str:
        for part in ("ab", "cd"):
            on_chunk(part)
        return "abcd"

    client = CallableGenerationClient(generate, stream=stream)
    chunks: list[str] = []

    assert await client.generate_stream(GenerationRequest(prompt="hi"), chunks.append) == "abcd"
    assert chunks == ["ab", "cd"]


def test_callable_client_rejects_non_callables() -> None:
    with pytest.raises(ValueError, match="generate"):
        CallableGenerationClient("nope")  # type: ignore[arg-type]
