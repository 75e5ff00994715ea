"""Follow-up prompt builders for continued, targeted and truncation-retry requests."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Final

from artifact_harvester.constants import (
    TRUNCATION_CONTEXT_HEAD_CHARS,
    TRUNCATION_CONTEXT_TAIL_CHARS,
)
from artifact_harvester.continuation.state import ContinuationState
from artifact_harvester.domain.models import ParseResult

_REFERENCE_FILE_LIMIT: Final[int] = 5


def _bullets(paths: Sequence[str]) -> str:
    return "\n".join(f"- {path}" for path in paths)


def continuation_prompt(state: ContinuationState) -> str:
    """Ask for the remaining files, restating what is done and the original request."""

    meta = state.generation_meta
    return (
        "Continue generating the remaining files for the project.\n\n"
        "## GENERATION CONTEXT\n"
        f"Already completed: {len(meta.completed_files)} files\n"
        f"Remaining: {len(meta.remaining_files)} files\n\n"
        "### ALREADY COMPLETED FILES:\n"
        f"{_bullets(meta.completed_files)}\n\n"
        "### REMAINING FILES TO GENERATE:\n"
        f"{_bullets(meta.remaining_files)}\n\n"
        "### ORIGINAL REQUEST:\n"
        f"{state.original_prompt}\n\n"
        "Generate the remaining files. Each file must be COMPLETE and FUNCTIONAL."
    )


def missing_files_prompt(missing: Sequence[str], accumulated: Mapping[str, str]) -> str:
    """Targeted request for exactly ``missing``, with a short list of existing files."""

    existing = list(accumulated)
    reference = _bullets(existing[:_REFERENCE_FILE_LIMIT])
    if len(existing) > _REFERENCE_FILE_LIMIT:
        reference += f"\n... and {len(existing) - _REFERENCE_FILE_LIMIT} more files"
    required = "\n".join(f"{index}. {path}" for index, path in enumerate(missing, start=1))
    example_entries = ",\n".join(
        f'    "{path}": "// complete file content..."' for path in missing[:2]
    )
    return (
        "Generate ONLY the following specific files. "
        "These files are missing from the project.\n\n"
        "## REQUIRED FILES (generate ALL of these):\n"
        f"{required}\n\n"
        "## CONTEXT\n"
        "These files should integrate with the existing project structure. "
        "Use the same patterns and styles.\n\n"
        "## EXISTING FILES FOR REFERENCE:\n"
        f"{reference}\n\n"
        "## CRITICAL INSTRUCTIONS:\n"
        f"1. Generate EXACTLY the {len(missing)} files listed above\n"
        "2. Use relative imports (./component, ../utils)\n"
        "3. Return complete file contents - no truncation\n\n"
        "Return ONLY a JSON object with the files:\n"
        "{\n"
        '  "files": {\n'
        f"{example_entries}\n"
        "  },\n"
        f'  "explanation": "Generated {len(missing)} missing files"\n'
        "}"
    )


def truncation_continuation_prompt(
    incomplete_response: str,
    original_prompt: str,
    *,
    head_chars: int = TRUNCATION_CONTEXT_HEAD_CHARS,
    tail_chars: int = TRUNCATION_CONTEXT_TAIL_CHARS,
) -> str:
    """Ask the model to resume a cut-off response from exactly where it stopped."""

    head = incomplete_response[:head_chars]
    tail = incomplete_response[-tail_chars:] if tail_chars > 0 else ""
    return (
        "Continue generating from where you left off. "
        "Your previous response was truncated:\n\n"
        f"**Previous incomplete response (first {head_chars} chars):**\n"
        f"{head}\n\n"
        f"**Last {tail_chars} chars of incomplete response:**\n"
        f"{tail}\n\n"
        "Please continue from exactly where you stopped and complete the response. "
        "Make sure to:\n"
        "1. Complete any incomplete JSON structure\n"
        "2. Finish any cut-off file content\n"
        "3. Provide all remaining files\n"
        "4. Ensure the response is properly formatted JSON\n\n"
        f"Original prompt: {original_prompt}"
    )


def batch_continuation_prompt(result: ParseResult) -> str | None:
    """Prompt for the next batch of a multi-batch response, or ``None`` when complete."""

    batch = result.batch
    if batch is None or batch.is_complete or not batch.remaining:
        return None
    return (
        f"Continue generating the remaining {len(batch.remaining)} files.\n\n"
        f"ALREADY COMPLETED ({len(batch.completed)} files):\n"
        f"{_bullets(batch.completed)}\n\n"
        "REMAINING FILES TO GENERATE:\n"
        f"{_bullets(batch.remaining)}\n\n"
        "Use the same format and structure. "
        f"This is batch {batch.current + 1} of {batch.total}."
    )


__all__ = [
    "batch_continuation_prompt",
    "continuation_prompt",
    "missing_files_prompt",
    "truncation_continuation_prompt",
]
