"""
artifact-harvester — continuation controller

File: src/artifact_harvester/continuation/controller.py
Last updated: 2026-10-18

Purpose
- Drive follow-up generation calls until a multi-batch generation is complete,
  forced complete, or failed.

What should be included in this file
- ``ContinuationPolicy``: batch cap, retry cap, backoff, validation floor.
- ``ContinuationController.step``: exactly one request/parse round, returning
  the delay to wait before the next one.
- ``ContinuationController.drive``: loop ``step`` with an injectable sleep.
- Targeted missing-file requests and truncation retries.

Functional requirements
- A parse with zero files counts as a failed call.
- Retries exhausted with accumulated files never end in ``failed``.
- At most one in-flight request per state.

Non-functional requirements
- Delays are values; no timers are started here.
- Every phase transition is logged as a structlog event.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final

import structlog

from artifact_harvester.constants import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TEMPERATURE,
    DEGENERATE_CONTENT_TOKENS,
    MAX_CONTINUATION_BATCHES,
    MAX_RETRY_ATTEMPTS,
    MIN_ACCEPTED_FILE_LENGTH,
    TRUNCATION_CONTEXT_HEAD_CHARS,
    TRUNCATION_CONTEXT_TAIL_CHARS,
)
from artifact_harvester.continuation.prompts import (
    continuation_prompt,
    missing_files_prompt,
    truncation_continuation_prompt,
)
from artifact_harvester.continuation.state import (
    ContinuationError,
    ContinuationOutcome,
    ContinuationPhase,
    ContinuationState,
    ContinuationStep,
    remaining_after,
)
from artifact_harvester.domain.models import ParseResult
from artifact_harvester.generation.base import (
    BackoffConfig,
    GenerationClient,
    GenerationError,
    GenerationRequest,
    GenerationResponseError,
    SleepFn,
    compute_backoff_delay,
    normalize_generation_error,
)
from artifact_harvester.observability.events import PipelineEvents, as_dispatcher
from artifact_harvester.parsing.extractor import ArtifactExtractor

_EXTENSION_SUFFIX: Final[re.Pattern[str]] = re.compile(r"\.[A-Za-z]+$")
_DEFAULT_EXPLANATION: Final[str] = "Generation complete."


@dataclass(frozen=True, slots=True)
class ContinuationPolicy:
    """Limits applied while driving one continuation."""

    max_batches: int = MAX_CONTINUATION_BATCHES
    max_retry_attempts: int = MAX_RETRY_ATTEMPTS
    backoff: BackoffConfig = field(default_factory=BackoffConfig)
    min_file_length: int = MIN_ACCEPTED_FILE_LENGTH
    targeted_request: bool = True
    truncation_head_chars: int = TRUNCATION_CONTEXT_HEAD_CHARS
    truncation_tail_chars: int = TRUNCATION_CONTEXT_TAIL_CHARS
    model: str | None = None
    max_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    response_schema: Mapping[str, object] | None = None

    def __post_init__(self) -> None:
        if self.max_batches <= 0:
            raise ValueError("max_batches must be > 0")
        if self.max_retry_attempts < 0:
            raise ValueError("max_retry_attempts must be >= 0")
        if self.min_file_length < 0:
            raise ValueError("min_file_length must be >= 0")
        if self.truncation_head_chars < 0 or self.truncation_tail_chars < 0:
            raise ValueError("truncation context sizes must be >= 0")


@dataclass(frozen=True, slots=True)
class TargetedResult:
    success: bool
    files: Mapping[str, str]
    explanation: str | None = None


@dataclass(frozen=True, slots=True)
class TruncationRetryResult:
    """Outcome of resuming a truncated response."""

    result: ParseResult
    combined_response: str
    attempts: int
    recovered: bool


def validate_files(
    files: Mapping[str, str], *, min_length: int = MIN_ACCEPTED_FILE_LENGTH
) -> tuple[dict[str, str], list[str]]:
    """Split ``files`` into accepted files and rejected paths."""

    valid: dict[str, str] = {}
    invalid: list[str] = []
    for path, content in files.items():
        if not path or "/." in path or not _EXTENSION_SUFFIX.search(path):
            invalid.append(path)
            continue
        text = content if isinstance(content, str) else ""
        if len(text) < min_length or text.strip().rstrip(";") in DEGENERATE_CONTENT_TOKENS:
            invalid.append(path)
            continue
        valid[path] = text
    return valid, invalid


class ContinuationController:
    """State machine over a caller-owned ``ContinuationState``."""

    def __init__(
        self,
        client: GenerationClient,
        policy: ContinuationPolicy | None = None,
        *,
        extractor: ArtifactExtractor | None = None,
        events: PipelineEvents | None = None,
        sleep: SleepFn = asyncio.sleep,
        logger: Any | None = None,
    ) -> None:
        self._client = client
        self._policy = policy if policy is not None else ContinuationPolicy()
        self._events = as_dispatcher(events)
        self._extractor = extractor if extractor is not None else ArtifactExtractor()
        self._sleep = sleep
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def policy(self) -> ContinuationPolicy:
        return self._policy

    async def drive(self, state: ContinuationState) -> ContinuationOutcome:
        """Run steps until a terminal outcome, sleeping for each returned delay."""

        while True:
            step = await self.step(state)
            if step.outcome is not None:
                return step.outcome
            if step.delay_seconds > 0:
                await self._sleep(step.delay_seconds)

    async def step(self, state: ContinuationState) -> ContinuationStep:
        """Perform one request/parse round for ``state``."""

        if state.discarded:
            raise ContinuationError("continuation state was discarded")
        if state.is_terminal:
            raise ContinuationError(f"continuation already finished ({state.phase.value})")
        if state.lock.locked():
            raise ContinuationError("a request for this continuation is already in flight")

        async with state.lock:
            if not state.remaining_files:
                return self._finish(state, ContinuationPhase.COMPLETE)
            return await self._round(state)

    async def _round(self, state: ContinuationState) -> ContinuationStep:
        self._transition(state, ContinuationPhase.REQUESTING)
        state.reset_stream()
        try:
            text = await self._client.generate_stream(
                self._request(continuation_prompt(state), state.system_instruction),
                state.append_chunk,
            )
        except Exception as exc:  # noqa: BLE001
            if state.discarded:
                raise ContinuationError("continuation state was discarded mid-request") from exc
            return await self._on_failure(state, normalize_generation_error(exc))
        if state.discarded:
            raise ContinuationError("continuation state was discarded mid-request")

        self._transition(state, ContinuationPhase.PARSING, response_chars=len(text))
        result = self._extractor.extract(text)
        state.reset_stream()
        if not result.files:
            return await self._on_failure(
                state,
                GenerationResponseError("continuation response contained no files"),
            )

        policy = self._policy
        # A batch the model declares unfinished, with every file intact, is
        # ordinary progress and advances like any other batch.
        declared_only = (
            result.batch is not None
            and not result.batch.is_complete
            and not result.incomplete_files
        )
        cut_off = result.truncated and not declared_only
        if cut_off and state.retry_attempts < policy.max_retry_attempts:
            new_paths = state.merge_files(result.files, incomplete=result.incomplete_files)
            return self._schedule_retry(state, "truncated response", new_paths=new_paths)

        remaining_before = list(state.remaining_files)
        new_paths = state.merge_files(result.files)
        if result.explanation:
            state.explanation = result.explanation
        made_progress = bool(new_paths) or state.remaining_files != remaining_before
        model_complete = result.batch is not None and result.batch.is_complete

        if not state.remaining_files or model_complete:
            return self._finish(state, ContinuationPhase.COMPLETE, new_paths=new_paths)
        if state.current_batch >= policy.max_batches or not made_progress:
            self._logger.info(
                "continuation_forcing_completion",
                current_batch=state.current_batch,
                max_batches=policy.max_batches,
                made_progress=made_progress,
            )
            return self._finish(state, ContinuationPhase.FORCED_COMPLETE, new_paths=new_paths)

        state.current_batch += 1
        state.generation_meta.current_batch = state.current_batch
        state.retry_attempts = 0
        self._transition(
            state,
            ContinuationPhase.IDLE,
            next_batch=state.current_batch,
            remaining=len(state.remaining_files),
        )
        return ContinuationStep(phase=ContinuationPhase.IDLE, new_files=tuple(new_paths))

    async def _on_failure(
        self, state: ContinuationState, error: GenerationError
    ) -> ContinuationStep:
        state.last_error = error.detail
        self._logger.warning(
            "continuation_call_failed",
            code=error.code,
            detail=error.detail,
            retry_attempts=state.retry_attempts,
        )
        if state.retry_attempts < self._policy.max_retry_attempts and state.remaining_files:
            return self._schedule_retry(state, error.detail)

        if state.remaining_files and state.accumulated_files and self._policy.targeted_request:
            self._transition(
                state, ContinuationPhase.TARGETED_REQUEST, missing=len(state.remaining_files)
            )
            targeted = await self.request_missing_files(
                state.remaining_files, state.accumulated_files, state.system_instruction
            )
            if targeted.success:
                produced = [path for path in targeted.files if path not in state.accumulated_files]
                new_paths = state.merge_files({path: targeted.files[path] for path in produced})
                if targeted.explanation:
                    state.explanation = targeted.explanation
                status = (
                    ContinuationPhase.COMPLETE
                    if not state.remaining_files
                    else ContinuationPhase.FORCED_COMPLETE
                )
                return self._finish(state, status, new_paths=new_paths)

        if state.accumulated_files:
            return self._finish(state, ContinuationPhase.FORCED_COMPLETE)
        return self._fail(state, f"Generation failed: {error.detail}")

    def _schedule_retry(
        self,
        state: ContinuationState,
        reason: str,
        *,
        new_paths: Sequence[str] = (),
    ) -> ContinuationStep:
        state.retry_attempts += 1
        delay = compute_backoff_delay(
            retry_number=state.retry_attempts, config=self._policy.backoff
        )
        self._transition(
            state,
            ContinuationPhase.RETRYING,
            attempt=state.retry_attempts,
            max_attempts=self._policy.max_retry_attempts,
        )
        self._logger.info(
            "continuation_retry_scheduled",
            attempt=state.retry_attempts,
            delay_seconds=delay,
            reason=reason,
        )
        self._events.on_retry(state.retry_attempts, delay, reason)
        return ContinuationStep(
            phase=ContinuationPhase.RETRYING,
            delay_seconds=delay,
            new_files=tuple(new_paths),
            reason=reason,
        )

    def _finish(
        self,
        state: ContinuationState,
        status: ContinuationPhase,
        *,
        new_paths: Sequence[str] = (),
    ) -> ContinuationStep:
        valid, invalid = validate_files(
            state.accumulated_files, min_length=self._policy.min_file_length
        )
        for path in invalid:
            self._events.on_warning(f'Invalid file excluded: "{path}"')
        if not valid:
            return self._fail(
                state,
                "Generation failed - files were empty or malformed. "
                f"Invalid files: {', '.join(invalid) or 'none'}",
                invalid=invalid,
            )

        missing = tuple(remaining_after(state.remaining_files, valid))
        explanation = state.explanation or _DEFAULT_EXPLANATION
        if invalid:
            explanation += f"\n\n{len(invalid)} files were invalid and excluded: {', '.join(invalid)}"
        if missing:
            explanation += f"\n\n{len(missing)} files could not be generated: {', '.join(missing)}"

        self._transition(state, status, files=len(valid), missing=len(missing))
        outcome = ContinuationOutcome(
            status=status,
            files=valid,
            explanation=explanation,
            missing_files=missing,
            invalid_files=tuple(invalid),
            batches_run=state.current_batch,
        )
        return ContinuationStep(phase=status, new_files=tuple(new_paths), outcome=outcome)

    def _fail(
        self, state: ContinuationState, explanation: str, *, invalid: Sequence[str] = ()
    ) -> ContinuationStep:
        self._transition(state, ContinuationPhase.FAILED, reason=explanation)
        outcome = ContinuationOutcome(
            status=ContinuationPhase.FAILED,
            files={},
            explanation=explanation,
            missing_files=tuple(state.remaining_files),
            invalid_files=tuple(invalid),
            batches_run=state.current_batch,
        )
        return ContinuationStep(phase=ContinuationPhase.FAILED, reason=explanation, outcome=outcome)

    async def request_missing_files(
        self,
        missing: Sequence[str],
        accumulated: Mapping[str, str],
        system_instruction: str | None = None,
    ) -> TargetedResult:
        """One focused request for exactly ``missing``; never raises for call failures."""

        if not missing:
            return TargetedResult(success=True, files=dict(accumulated))
        self._logger.info("continuation_targeted_request", missing=list(missing))
        chunks: list[str] = []
        try:
            text = await self._client.generate_stream(
                self._request(missing_files_prompt(missing, accumulated), system_instruction),
                chunks.append,
            )
        except Exception as exc:  # noqa: BLE001
            error = normalize_generation_error(exc)
            self._logger.warning(
                "continuation_targeted_request_failed", code=error.code, detail=error.detail
            )
            return TargetedResult(success=False, files=dict(accumulated))

        result = self._extractor.extract(text)
        if not result.files:
            self._logger.warning("continuation_targeted_request_empty")
            return TargetedResult(success=False, files=dict(accumulated))
        merged = {**accumulated, **result.files}
        return TargetedResult(success=True, files=merged, explanation=result.explanation)

    async def retry_truncated(
        self,
        raw_response: str,
        original_prompt: str,
        *,
        system_instruction: str | None = None,
        attempt: int = 0,
    ) -> TruncationRetryResult:
        """Resume a truncated response and re-extract the concatenation."""

        combined = raw_response
        result = self._extractor.extract(combined)
        attempts = attempt
        while attempts < self._policy.max_retry_attempts:
            attempts += 1
            prompt = truncation_continuation_prompt(
                combined,
                original_prompt,
                head_chars=self._policy.truncation_head_chars,
                tail_chars=self._policy.truncation_tail_chars,
            )
            chunks: list[str] = []
            try:
                continuation = await self._client.generate_stream(
                    self._request(prompt, system_instruction), chunks.append
                )
            except Exception as exc:  # noqa: BLE001
                error = normalize_generation_error(exc)
                if not error.retryable:
                    raise error from exc
                delay = compute_backoff_delay(retry_number=attempts, config=self._policy.backoff)
                self._events.on_retry(attempts, delay, error.detail)
                await self._sleep(delay)
                continue

            combined += continuation
            result = self._extractor.extract(combined)
            self._logger.info(
                "continuation_truncation_retry",
                attempt=attempts,
                files=result.file_count,
                truncated=result.truncated,
            )
            if result.files and not result.truncated:
                return TruncationRetryResult(
                    result=result, combined_response=combined, attempts=attempts, recovered=True
                )
        return TruncationRetryResult(
            result=result, combined_response=combined, attempts=attempts, recovered=False
        )

    def _request(self, prompt: str, system_instruction: str | None) -> GenerationRequest:
        policy = self._policy
        return GenerationRequest(
            prompt=prompt,
            system_instruction=system_instruction,
            response_schema=policy.response_schema,
            model=policy.model,
            max_tokens=policy.max_tokens,
            temperature=policy.temperature,
        )

    def _transition(self, state: ContinuationState, phase: ContinuationPhase, **fields: Any) -> None:
        previous = state.phase
        state.phase = phase
        self._logger.info(
            "continuation_phase",
            previous=previous.value,
            phase=phase.value,
            batch=state.current_batch,
            **fields,
        )


async def drive_continuation(
    state: ContinuationState,
    client: GenerationClient,
    *,
    policy: ContinuationPolicy | None = None,
    extractor: ArtifactExtractor | None = None,
    events: PipelineEvents | None = None,
    sleep: SleepFn = asyncio.sleep,
    logger: Any | None = None,
) -> ContinuationOutcome:
    """Drive ``state`` to a terminal outcome with ``client``."""

    controller = ContinuationController(
        client,
        policy,
        extractor=extractor,
        events=events,
        sleep=sleep,
        logger=logger,
    )
    return await controller.drive(state)


__all__ = [
    "ContinuationController",
    "ContinuationPolicy",
    "TargetedResult",
    "TruncationRetryResult",
    "drive_continuation",
    "validate_files",
]
