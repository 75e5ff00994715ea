"""
artifact-harvester — continuation state

File: src/artifact_harvester/continuation/state.py
Last updated: 2026-10-18

Purpose
- Caller-owned record of one multi-batch generation: what was asked, what has
  been produced, what is still missing and where the state machine stands.

What should be included in this file
- Phase enum and the terminal phase set.
- ``GenerationMeta``: planned/completed/remaining bookkeeping.
- ``ContinuationState`` with creation from a first parse, merging, the
  streamed-chunk accumulator and explicit discard with salvage.
- Outcome and step value types returned by the controller.

Functional requirements
- Remaining paths are matched by exact path or by basename.
- ``discard`` salvages files from partially streamed text before closing.
- A discarded state can no longer be merged into.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

from artifact_harvester.domain.models import ParseResult
from artifact_harvester.parsing.extractor import extract
from artifact_harvester.parsing.text import path_matches
from artifact_harvester.parsing.truncation import missing_planned_files


class ContinuationError(RuntimeError):
    """Raised when a continuation state is used outside its lifecycle."""


class ContinuationPhase(StrEnum):
    IDLE = "idle"
    REQUESTING = "requesting"
    PARSING = "parsing"
    RETRYING = "retrying"
    TARGETED_REQUEST = "targeted_request"
    COMPLETE = "complete"
    FORCED_COMPLETE = "forced_complete"
    FAILED = "failed"


TERMINAL_PHASES: Final[frozenset[ContinuationPhase]] = frozenset(
    {ContinuationPhase.COMPLETE, ContinuationPhase.FORCED_COMPLETE, ContinuationPhase.FAILED}
)


def remaining_after(remaining: Iterable[str], produced: Iterable[str]) -> list[str]:
    """Drop every remaining path that one of ``produced`` satisfies."""

    produced_paths = tuple(produced)
    return [
        path
        for path in remaining
        if not any(path_matches(candidate, path) for candidate in produced_paths)
    ]


@dataclass(slots=True)
class GenerationMeta:
    """Batch bookkeeping carried across follow-up requests."""

    total_files_planned: int
    completed_files: list[str] = field(default_factory=list)
    remaining_files: list[str] = field(default_factory=list)
    files_in_this_batch: list[str] = field(default_factory=list)
    current_batch: int = 1
    total_batches: int = 1
    is_complete: bool = False

    def record_batch(self, produced: Sequence[str], *, finished: Sequence[str] | None = None) -> None:
        """Mark ``produced`` as delivered; only ``finished`` paths leave ``remaining``."""

        done = list(produced if finished is None else finished)
        self.files_in_this_batch = list(produced)
        for path in done:
            if path not in self.completed_files:
                self.completed_files.append(path)
        self.remaining_files = remaining_after(self.remaining_files, done)
        self.is_complete = not self.remaining_files

    def to_dict(self) -> dict[str, object]:
        return {
            "total_files_planned": self.total_files_planned,
            "completed_files": list(self.completed_files),
            "remaining_files": list(self.remaining_files),
            "files_in_this_batch": list(self.files_in_this_batch),
            "current_batch": self.current_batch,
            "total_batches": self.total_batches,
            "is_complete": self.is_complete,
        }


@dataclass(slots=True)
class ContinuationState:
    """Mutable state of one continued generation; owned and discarded by the caller."""

    original_prompt: str
    generation_meta: GenerationMeta
    system_instruction: str | None = None
    accumulated_files: dict[str, str] = field(default_factory=dict)
    current_batch: int = 1
    retry_attempts: int = 0
    phase: ContinuationPhase = ContinuationPhase.IDLE
    explanation: str | None = None
    last_error: str | None = None
    discarded: bool = False
    stream_chunks: list[str] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @classmethod
    def from_parse_result(
        cls,
        result: ParseResult,
        *,
        original_prompt: str,
        system_instruction: str | None = None,
        remaining: Sequence[str] | None = None,
    ) -> ContinuationState:
        """Seed a state from the first parse of a generation.

        ``remaining`` overrides what the response declares; otherwise an
        incomplete batch wins over plan entries that were not delivered.
        """

        if not isinstance(original_prompt, str) or not original_prompt.strip():
            raise ValueError("original_prompt cannot be empty")

        batch = result.batch
        if remaining is not None:
            pending = list(dict.fromkeys(remaining))
        elif batch is not None and not batch.is_complete:
            pending = list(batch.remaining)
        else:
            pending = list(missing_planned_files(result))
        pending = remaining_after(pending, result.files)

        completed = list(result.files)
        if batch is not None:
            completed = list(dict.fromkeys([*batch.completed, *completed]))
        meta = GenerationMeta(
            total_files_planned=len(completed) + len(pending),
            completed_files=completed,
            remaining_files=pending,
            files_in_this_batch=list(result.files),
            current_batch=batch.current if batch is not None else 1,
            total_batches=batch.total if batch is not None else 1,
            is_complete=not pending,
        )
        return cls(
            original_prompt=original_prompt,
            generation_meta=meta,
            system_instruction=system_instruction,
            accumulated_files=dict(result.files),
            current_batch=meta.current_batch,
            explanation=result.explanation,
        )

    @property
    def needs_continuation(self) -> bool:
        return not self.discarded and bool(self.generation_meta.remaining_files)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def remaining_files(self) -> list[str]:
        return self.generation_meta.remaining_files

    @property
    def streamed_text(self) -> str:
        return "".join(self.stream_chunks)

    def append_chunk(self, chunk: str) -> None:
        if self.discarded:
            raise ContinuationError("cannot stream into a discarded continuation state")
        if chunk:
            self.stream_chunks.append(chunk)

    def reset_stream(self) -> None:
        self.stream_chunks.clear()

    def merge_files(
        self, files: Mapping[str, str], *, incomplete: Iterable[str] = ()
    ) -> list[str]:
        """Merge produced files; return the paths that were new to this state."""

        if self.discarded:
            raise ContinuationError("cannot merge into a discarded continuation state")
        unfinished = set(incomplete)
        new_paths = [path for path in files if path not in self.accumulated_files]
        self.accumulated_files.update(files)
        self.generation_meta.record_batch(
            list(files), finished=[path for path in files if path not in unfinished]
        )
        return new_paths

    def discard(self) -> dict[str, str]:
        """Close the state, salvaging files from any partially streamed response."""

        if self.discarded:
            return {}
        salvaged: dict[str, str] = {}
        partial = self.streamed_text
        if partial.strip():
            result = extract(partial)
            salvaged = {
                path: content
                for path, content in result.files.items()
                if path not in result.incomplete_files
            }
            if salvaged:
                self.merge_files(salvaged)
        self.reset_stream()
        self.discarded = True
        return salvaged

    def to_dict(self) -> dict[str, object]:
        return {
            "original_prompt": self.original_prompt,
            "system_instruction": self.system_instruction,
            "generation_meta": self.generation_meta.to_dict(),
            "accumulated_files": sorted(self.accumulated_files),
            "current_batch": self.current_batch,
            "retry_attempts": self.retry_attempts,
            "phase": self.phase.value,
            "discarded": self.discarded,
        }


@dataclass(frozen=True, slots=True)
class ContinuationOutcome:
    """Terminal result of driving a continuation."""

    status: ContinuationPhase
    files: Mapping[str, str]
    explanation: str
    missing_files: tuple[str, ...] = ()
    invalid_files: tuple[str, ...] = ()
    batches_run: int = 0

    def __post_init__(self) -> None:
        if self.status not in TERMINAL_PHASES:
            raise ValueError(f"outcome status must be terminal, got {self.status.value}")
        object.__setattr__(self, "files", dict(self.files))

    @property
    def succeeded(self) -> bool:
        return self.status is not ContinuationPhase.FAILED

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "files": dict(self.files),
            "explanation": self.explanation,
            "missing_files": list(self.missing_files),
            "invalid_files": list(self.invalid_files),
            "batches_run": self.batches_run,
        }


@dataclass(frozen=True, slots=True)
class ContinuationStep:
    """One request/parse round; ``delay_seconds`` is how long to wait before the next."""

    phase: ContinuationPhase
    delay_seconds: float = 0.0
    new_files: tuple[str, ...] = ()
    reason: str | None = None
    outcome: ContinuationOutcome | None = None

    @property
    def done(self) -> bool:
        return self.outcome is not None


__all__ = [
    "TERMINAL_PHASES",
    "ContinuationError",
    "ContinuationOutcome",
    "ContinuationPhase",
    "ContinuationState",
    "ContinuationStep",
    "GenerationMeta",
    "remaining_after",
]
