"""
artifact-harvester — unit tests for the continuation controller

File: tests/unit/continuation/test_continuation_controller.py
Last updated: 2026-10-18

Purpose
- Validate the multi-batch state machine against a scripted generation client.

What this test file should cover
- Completion across batches and forced completion after exhausted retries.
- Linear retry delays and retry events.
- Targeted requests for missing files.
- Failure when nothing usable was ever produced.
- Output validation of accumulated files.
- One in-flight request per state.
"""

from __future__ import annotations

import asyncio
import json
from collections import deque
from dataclasses import dataclass, field

import pytest

from artifact_harvester.continuation.controller import (
    ContinuationController,
    ContinuationPolicy,
    drive_continuation,
    validate_files,
)
from artifact_harvester.continuation.state import (
    ContinuationError,
    ContinuationPhase,
    ContinuationState,
)
from artifact_harvester.domain.models import ParseResult
from artifact_harvester.generation.base import (
    GenerationRequest,
    GenerationServiceError,
)
from artifact_harvester.observability.events import RecordingPipelineEvents
from artifact_harvester.parsing.extractor import extract


@dataclass(slots=True)
class ScriptedClient:
    outcomes: deque[str | Exception]
    requests: list[GenerationRequest] = field(default_factory=list)

    async def generate(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if not self.outcomes:
            raise RuntimeError("scripted outcomes exhausted")
        outcome = self.outcomes.popleft()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def generate_stream(self, request: GenerationRequest, on_chunk) -> str:
        text = await self.generate(request)
        on_chunk(text)
        return text


@dataclass(slots=True)
class SleepRecorder:
    delays: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _source(name: str) -> str:
    return f"export const {name} = '{name * 12}';"


def _batch_payload(
    files: list[str], *, current: int, total: int, completed: list[str], remaining: list[str]
) -> str:
    return json.dumps(
        {
            "meta": {"format": "json", "version": "2.0"},
            "batch": {
                "current": current,
                "total": total,
                "isComplete": not remaining,
                "completed": completed,
                "remaining": remaining,
            },
            "files": {f"{name}.ts": _source(name) for name in files},
        }
    )


def _state(files: dict[str, str], remaining: list[str]) -> ContinuationState:
    return ContinuationState.from_parse_result(
        ParseResult(files=files), original_prompt="build the app", remaining=remaining
    )


def _first_batch_state() -> ContinuationState:
    first = extract(
        _batch_payload(
            ["a", "b", "c"],
            current=1,
            total=2,
            completed=["a.ts", "b.ts", "c.ts"],
            remaining=["d.ts", "e.ts", "f.ts", "g.ts", "h.ts"],
        )
    )
    return ContinuationState.from_parse_result(first, original_prompt="build the app")


@pytest.mark.asyncio
async def test_second_batch_completes_the_generation() -> None:
    state = _first_batch_state()
    assert len(state.remaining_files) == 5
    second = _batch_payload(
        ["d", "e", "f", "g", "h"],
        current=2,
        total=2,
        completed=["d.ts", "e.ts", "f.ts", "g.ts", "h.ts"],
        remaining=[],
    )
    client = ScriptedClient(outcomes=deque([second]))
    sleep = SleepRecorder()

    outcome = await ContinuationController(client, sleep=sleep).drive(state)

    assert outcome.status is ContinuationPhase.COMPLETE
    assert sorted(outcome.files) == [f"{name}.ts" for name in "abcdefgh"]
    assert outcome.missing_files == ()
    assert outcome.explanation == "Generation complete."
    assert sleep.delays == []
    assert len(client.requests) == 1
    prompt = client.requests[0].prompt
    assert "Remaining: 5 files" in prompt
    assert "- d.ts" in prompt
    assert "build the app" in prompt
    assert state.phase is ContinuationPhase.COMPLETE


@pytest.mark.asyncio
async def test_batch_declared_unfinished_advances_without_backoff() -> None:
    first = extract(
        _batch_payload(
            ["a", "b", "c"],
            current=1,
            total=3,
            completed=["a.ts", "b.ts", "c.ts"],
            remaining=["d.ts", "e.ts", "f.ts", "g.ts", "h.ts"],
        )
    )
    state = ContinuationState.from_parse_result(first, original_prompt="build the app")
    second = _batch_payload(
        ["d", "e"],
        current=2,
        total=3,
        completed=["a.ts", "b.ts", "c.ts", "d.ts", "e.ts"],
        remaining=["f.ts", "g.ts", "h.ts"],
    )
    third = _batch_payload(
        ["f", "g", "h"],
        current=3,
        total=3,
        completed=[f"{name}.ts" for name in "abcdefgh"],
        remaining=[],
    )
    client = ScriptedClient(outcomes=deque([second, third]))
    sleep = SleepRecorder()

    outcome = await ContinuationController(client, sleep=sleep).drive(state)

    assert outcome.status is ContinuationPhase.COMPLETE
    assert sorted(outcome.files) == [f"{name}.ts" for name in "abcdefgh"]
    assert sleep.delays == []
    assert len(client.requests) == 2
    assert outcome.batches_run == 2
    assert "Remaining: 3 files" in client.requests[1].prompt


@pytest.mark.asyncio
async def test_exhausted_retries_force_completion_with_accumulated_files() -> None:
    state = _first_batch_state()
    client = ScriptedClient(
        outcomes=deque(GenerationServiceError("upstream unavailable") for _ in range(5))
    )
    sleep = SleepRecorder()
    events = RecordingPipelineEvents()

    outcome = await ContinuationController(client, events=events, sleep=sleep).drive(state)

    assert outcome.status is ContinuationPhase.FORCED_COMPLETE
    assert sorted(outcome.files) == ["a.ts", "b.ts", "c.ts"]
    assert outcome.missing_files == ("d.ts", "e.ts", "f.ts", "g.ts", "h.ts")
    assert "5 files could not be generated: d.ts, e.ts" in outcome.explanation
    assert sleep.delays == [1.0, 2.0, 3.0]
    assert [retry.attempt for retry in events.retries] == [1, 2, 3]
    # three retries plus the targeted request
    assert len(client.requests) == 5
    assert client.requests[-1].prompt.startswith("Generate ONLY the following specific files.")
    assert state.last_error == "upstream unavailable"


@pytest.mark.asyncio
async def test_failure_without_accumulated_files_is_failed() -> None:
    state = _state({}, ["a.ts"])
    client = ScriptedClient(outcomes=deque([GenerationServiceError("boom")]))
    policy = ContinuationPolicy(max_retry_attempts=0)

    outcome = await ContinuationController(client, policy, sleep=SleepRecorder()).drive(state)

    assert outcome.status is ContinuationPhase.FAILED
    assert outcome.explanation == "Generation failed: boom"
    assert outcome.files == {}
    assert outcome.missing_files == ("a.ts",)
    assert not outcome.succeeded


@pytest.mark.asyncio
async def test_targeted_request_that_delivers_everything_completes() -> None:
    state = _state({"a.ts": _source("a")}, ["d.ts"])
    targeted = json.dumps({"files": {"d.ts": _source("d")}, "explanation": "Filled the gap"})
    client = ScriptedClient(outcomes=deque([GenerationServiceError("boom"), targeted]))
    policy = ContinuationPolicy(max_retry_attempts=0)

    outcome = await ContinuationController(client, policy, sleep=SleepRecorder()).drive(state)

    assert outcome.status is ContinuationPhase.COMPLETE
    assert sorted(outcome.files) == ["a.ts", "d.ts"]
    assert outcome.explanation == "Filled the gap"
    assert "1. d.ts" in client.requests[1].prompt


@pytest.mark.asyncio
async def test_targeted_request_can_be_disabled() -> None:
    state = _state({"a.ts": _source("a")}, ["d.ts"])
    client = ScriptedClient(outcomes=deque([GenerationServiceError("boom")]))
    policy = ContinuationPolicy(max_retry_attempts=0, targeted_request=False)

    outcome = await ContinuationController(client, policy, sleep=SleepRecorder()).drive(state)

    assert outcome.status is ContinuationPhase.FORCED_COMPLETE
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_truncated_response_is_merged_then_retried() -> None:
    state = _state({"a.ts": _source("a")}, ["d.ts"])
    client = ScriptedClient(
        outcomes=deque(
            [
                '{"files": {"d.ts": "export const d = 1; // partial',
                json.dumps({"files": {"d.ts": "export const d = 1; // complete"}}),
            ]
        )
    )
    controller = ContinuationController(client, sleep=SleepRecorder())

    first = await controller.step(state)

    assert first.phase is ContinuationPhase.RETRYING
    assert first.delay_seconds == 1.0
    assert first.new_files == ("d.ts",)
    assert first.reason == "truncated response"
    assert state.accumulated_files["d.ts"] == "export const d = 1; // partial"
    assert state.remaining_files == ["d.ts"]
    assert state.retry_attempts == 1

    second = await controller.step(state)

    assert second.done and second.outcome is not None
    assert second.outcome.status is ContinuationPhase.COMPLETE
    assert second.outcome.files["d.ts"] == "export const d = 1; // complete"


@pytest.mark.asyncio
async def test_response_without_files_counts_as_failure() -> None:
    state = _state({"a.ts": _source("a")}, ["d.ts"])
    client = ScriptedClient(outcomes=deque(["I could not do that."]))

    step = await ContinuationController(client, sleep=SleepRecorder()).step(state)

    assert step.phase is ContinuationPhase.RETRYING
    assert state.last_error == "continuation response contained no files"


@pytest.mark.asyncio
async def test_no_progress_forces_completion() -> None:
    state = _state({"a.ts": _source("a")}, ["d.ts", "e.ts"])
    client = ScriptedClient(outcomes=deque([json.dumps({"files": {"a.ts": _source("a")}})]))

    outcome = await ContinuationController(client, sleep=SleepRecorder()).drive(state)

    assert outcome.status is ContinuationPhase.FORCED_COMPLETE
    assert outcome.missing_files == ("d.ts", "e.ts")


@pytest.mark.asyncio
async def test_batch_cap_forces_completion() -> None:
    state = _state({"a.ts": _source("a")}, ["d.ts", "e.ts"])
    client = ScriptedClient(outcomes=deque([json.dumps({"files": {"d.ts": _source("d")}})]))
    policy = ContinuationPolicy(max_batches=1)

    outcome = await ContinuationController(client, policy, sleep=SleepRecorder()).drive(state)

    assert outcome.status is ContinuationPhase.FORCED_COMPLETE
    assert sorted(outcome.files) == ["a.ts", "d.ts"]
    assert outcome.missing_files == ("e.ts",)
    assert outcome.batches_run == 1


@pytest.mark.asyncio
async def test_progress_advances_to_the_next_batch() -> None:
    state = _state({"a.ts": _source("a")}, ["d.ts", "e.ts"])
    client = ScriptedClient(
        outcomes=deque(
            [
                json.dumps({"files": {"d.ts": _source("d")}}),
                json.dumps({"files": {"e.ts": _source("e")}}),
            ]
        )
    )
    controller = ContinuationController(client, sleep=SleepRecorder())

    step = await controller.step(state)

    assert step.phase is ContinuationPhase.IDLE
    assert step.new_files == ("d.ts",)
    assert state.current_batch == 2
    assert state.generation_meta.current_batch == 2

    outcome = await controller.drive(state)
    assert outcome.status is ContinuationPhase.COMPLETE
    assert outcome.batches_run == 2


@pytest.mark.asyncio
async def test_invalid_files_are_excluded_with_warnings() -> None:
    state = _state({"a.ts": _source("a"), "notes": "x" * 40, "b.ts": "tiny"}, [])
    events = RecordingPipelineEvents()
    client = ScriptedClient(outcomes=deque())

    outcome = await drive_continuation(state, client, events=events, sleep=SleepRecorder())

    assert outcome.status is ContinuationPhase.COMPLETE
    assert list(outcome.files) == ["a.ts"]
    assert outcome.invalid_files == ("notes", "b.ts")
    assert 'Invalid file excluded: "notes"' in events.warnings
    assert "2 files were invalid and excluded: notes, b.ts" in outcome.explanation
    assert client.requests == []


@pytest.mark.asyncio
async def test_only_invalid_files_fail_the_generation() -> None:
    state = _state({"a.ts": "tiny"}, [])

    outcome = await drive_continuation(state, ScriptedClient(outcomes=deque()))

    assert outcome.status is ContinuationPhase.FAILED
    assert outcome.explanation == (
        "Generation failed - files were empty or malformed. Invalid files: a.ts"
    )
    assert outcome.invalid_files == ("a.ts",)


def test_validate_files_rejects_paths_and_degenerate_content() -> None:
    valid, invalid = validate_files(
        {
            "src/a.ts": "x" * 25,
            "Makefile": "y" * 25,
            "src/.hidden/b.ts": "z" * 25,
            "c.ts": "tsx" + " " * 20,
            "d.ts": "short",
        }
    )

    assert list(valid) == ["src/a.ts"]
    assert invalid == ["Makefile", "src/.hidden/b.ts", "c.ts", "d.ts"]


def test_validate_files_honours_min_length() -> None:
    valid, invalid = validate_files({"a.ts": "short"}, min_length=0)

    assert valid == {"a.ts": "short"}
    assert invalid == []


@pytest.mark.asyncio
async def test_terminal_and_discarded_states_cannot_step() -> None:
    client = ScriptedClient(outcomes=deque())
    controller = ContinuationController(client)

    finished = _state({"a.ts": _source("a")}, [])
    await controller.drive(finished)
    with pytest.raises(ContinuationError, match="already finished"):
        await controller.step(finished)

    discarded = _state({"a.ts": _source("a")}, ["d.ts"])
    discarded.discard()
    with pytest.raises(ContinuationError, match="discarded"):
        await controller.step(discarded)


@pytest.mark.asyncio
async def test_second_step_while_request_in_flight_is_rejected() -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    class GatedClient:
        async def generate(self, request: GenerationRequest) -> str:
            started.set()
            await release.wait()
            return json.dumps({"files": {"d.ts": _source("d")}})

        async def generate_stream(self, request: GenerationRequest, on_chunk) -> str:
            text = await self.generate(request)
            on_chunk(text)
            return text

    state = _state({"a.ts": _source("a")}, ["d.ts"])
    controller = ContinuationController(GatedClient())

    in_flight = asyncio.create_task(controller.step(state))
    await started.wait()
    with pytest.raises(ContinuationError, match="in flight"):
        await controller.step(state)
    release.set()
    step = await in_flight

    assert step.outcome is not None
    assert step.outcome.status is ContinuationPhase.COMPLETE


@pytest.mark.asyncio
async def test_retry_truncated_concatenates_the_continuation() -> None:
    raw = '{"files": {"a.ts": "export const a = 1; // first half'
    client = ScriptedClient(outcomes=deque([' and second half"}}']))
    controller = ContinuationController(client, sleep=SleepRecorder())

    retried = await controller.retry_truncated(raw, "build the app")

    assert retried.recovered
    assert retried.attempts == 1
    assert retried.combined_response.endswith('second half"}}')
    assert retried.result.files == {"a.ts": "export const a = 1; // first half and second half"}
    assert "Original prompt: build the app" in client.requests[0].prompt


@pytest.mark.asyncio
async def test_retry_truncated_gives_up_after_retryable_failures() -> None:
    raw = '{"files": {"a.ts": "export const a = 1; // first half'
    client = ScriptedClient(
        outcomes=deque([GenerationServiceError("busy"), GenerationServiceError("busy")])
    )
    sleep = SleepRecorder()
    policy = ContinuationPolicy(max_retry_attempts=2)

    retried = await ContinuationController(client, policy, sleep=sleep).retry_truncated(
        raw, "build the app"
    )

    assert not retried.recovered
    assert retried.attempts == 2
    assert sleep.delays == [1.0, 2.0]
    assert retried.result.truncated


@pytest.mark.asyncio
async def test_retry_truncated_raises_non_retryable_errors() -> None:
    client = ScriptedClient(
        outcomes=deque([GenerationServiceError("bad key", retryable=False)])
    )

    with pytest.raises(GenerationServiceError):
        await ContinuationController(client).retry_truncated('{"files": {', "build")


def test_policy_validation() -> None:
    with pytest.raises(ValueError, match="max_batches"):
        ContinuationPolicy(max_batches=0)
    with pytest.raises(ValueError, match="max_retry_attempts"):
        ContinuationPolicy(max_retry_attempts=-1)
