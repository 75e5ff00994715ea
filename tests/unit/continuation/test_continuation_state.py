"""
artifact-harvester — unit tests for continuation state

File: tests/unit/continuation/test_continuation_state.py
Last updated: 2026-10-18

Purpose
- Validate how a continuation is seeded, merged into and discarded.

What this test file should cover
- Pending files from an explicit list, an incomplete batch or the plan.
- Basename matching when produced paths drift between batches.
- Partial files stay remaining until delivered whole.
- Discard salvages streamed files and closes the state.
"""

from __future__ import annotations

import pytest

from artifact_harvester.continuation.state import (
    ContinuationError,
    ContinuationOutcome,
    ContinuationPhase,
    ContinuationState,
    ContinuationStep,
    GenerationMeta,
    remaining_after,
)
from artifact_harvester.domain.models import BatchInfo, ParseResult, PlanInfo

A_SOURCE = "export const a = 'alpha value';"


def test_pending_files_come_from_plan_entries_that_were_not_delivered() -> None:
    result = ParseResult(
        files={"src/a.ts": A_SOURCE},
        plan=PlanInfo(create=("src/a.ts", "src/b.ts")),
        explanation="first pass",
    )

    state = ContinuationState.from_parse_result(result, original_prompt="build a thing")

    assert state.remaining_files == ["src/b.ts"]
    assert state.generation_meta.completed_files == ["src/a.ts"]
    assert state.generation_meta.total_files_planned == 2
    assert state.explanation == "first pass"
    assert state.needs_continuation
    assert state.phase is ContinuationPhase.IDLE


def test_incomplete_batch_wins_over_plan() -> None:
    result = ParseResult(
        files={"a.ts": A_SOURCE},
        plan=PlanInfo(create=("a.ts", "z.ts")),
        batch=BatchInfo(
            current=1,
            total=3,
            is_complete=False,
            completed=("a.ts",),
            remaining=("b.ts", "c.ts"),
        ),
    )

    state = ContinuationState.from_parse_result(result, original_prompt="build")

    assert state.remaining_files == ["b.ts", "c.ts"]
    assert state.generation_meta.total_batches == 3
    assert state.current_batch == 1


def test_explicit_remaining_is_deduplicated_and_filtered_by_basename() -> None:
    result = ParseResult(files={"src/a.ts": A_SOURCE})

    state = ContinuationState.from_parse_result(
        result,
        original_prompt="build",
        remaining=["lib/a.ts", "b.ts", "b.ts"],
    )

    assert state.remaining_files == ["b.ts"]


def test_complete_first_parse_needs_no_continuation() -> None:
    state = ContinuationState.from_parse_result(
        ParseResult(files={"a.ts": A_SOURCE}), original_prompt="build"
    )

    assert not state.needs_continuation
    assert state.generation_meta.is_complete


@pytest.mark.parametrize("prompt", ["", "   "])
def test_empty_prompt_is_rejected(prompt: str) -> None:
    with pytest.raises(ValueError, match="original_prompt"):
        ContinuationState.from_parse_result(ParseResult(), original_prompt=prompt)


def test_merge_reports_new_paths_and_keeps_partial_files_remaining() -> None:
    state = ContinuationState.from_parse_result(
        ParseResult(files={"a.ts": A_SOURCE}),
        original_prompt="build",
        remaining=["b.ts", "c.ts"],
    )

    new_paths = state.merge_files({"a.ts": A_SOURCE, "b.ts": "export const b = 'bravo';"})
    assert new_paths == ["b.ts"]
    assert state.remaining_files == ["c.ts"]

    new_paths = state.merge_files({"c.ts": "export const c ="}, incomplete=["c.ts"])
    assert new_paths == ["c.ts"]
    assert state.remaining_files == ["c.ts"]
    assert state.generation_meta.files_in_this_batch == ["c.ts"]
    assert "c.ts" not in state.generation_meta.completed_files


def test_remaining_after_matches_by_basename() -> None:
    assert remaining_after(
        ["src/ui/Button.tsx", "b.ts"], ["components/Button.tsx"]
    ) == ["b.ts"]


def test_record_batch_marks_completion_when_nothing_remains() -> None:
    meta = GenerationMeta(total_files_planned=2, remaining_files=["a.ts", "b.ts"])

    meta.record_batch(["a.ts", "b.ts"], finished=["a.ts"])
    assert meta.remaining_files == ["b.ts"]
    assert not meta.is_complete

    meta.record_batch(["b.ts"])
    assert meta.remaining_files == []
    assert meta.is_complete
    assert meta.completed_files == ["a.ts", "b.ts"]


def test_discard_salvages_complete_streamed_files() -> None:
    state = ContinuationState.from_parse_result(
        ParseResult(files={"a.ts": A_SOURCE}),
        original_prompt="build",
        remaining=["d.ts", "e.ts"],
    )
    state.append_chunk("<!-- FILE:d.ts -->\nexport const d = 'delivered';\n<!-- /FILE:d.ts -->\n")
    state.append_chunk("<!-- FILE:e.ts -->\nexport const")

    salvaged = state.discard()

    assert list(salvaged) == ["d.ts"]
    assert "d.ts" in state.accumulated_files
    assert state.remaining_files == ["e.ts"]
    assert state.discarded
    assert not state.needs_continuation
    assert state.streamed_text == ""
    assert state.discard() == {}


def test_discarded_state_rejects_streaming_and_merging() -> None:
    state = ContinuationState.from_parse_result(
        ParseResult(files={"a.ts": A_SOURCE}), original_prompt="build"
    )
    assert state.discard() == {}

    with pytest.raises(ContinuationError):
        state.append_chunk("more")
    with pytest.raises(ContinuationError):
        state.merge_files({"b.ts": "export const b = 'bravo';"})


def test_outcome_requires_terminal_status() -> None:
    with pytest.raises(ValueError, match="terminal"):
        ContinuationOutcome(status=ContinuationPhase.RETRYING, files={}, explanation="x")

    failed = ContinuationOutcome(status=ContinuationPhase.FAILED, files={}, explanation="x")
    forced = ContinuationOutcome(
        status=ContinuationPhase.FORCED_COMPLETE,
        files={"a.ts": A_SOURCE},
        explanation="partial",
        missing_files=("b.ts",),
    )
    assert not failed.succeeded
    assert forced.succeeded
    assert forced.to_dict()["missing_files"] == ["b.ts"]
    assert forced.to_dict()["status"] == "forced_complete"


def test_step_is_done_only_with_outcome() -> None:
    assert not ContinuationStep(phase=ContinuationPhase.IDLE).done
    outcome = ContinuationOutcome(status=ContinuationPhase.COMPLETE, files={}, explanation="ok")
    assert ContinuationStep(phase=ContinuationPhase.COMPLETE, outcome=outcome).done


def test_state_serializes_phase_and_paths() -> None:
    state = ContinuationState.from_parse_result(
        ParseResult(files={"b.ts": A_SOURCE, "a.ts": A_SOURCE}),
        original_prompt="build",
        remaining=["c.ts"],
    )

    payload = state.to_dict()

    assert payload["accumulated_files"] == ["a.ts", "b.ts"]
    assert payload["phase"] == "idle"
    assert payload["generation_meta"]["remaining_files"] == ["c.ts"]
