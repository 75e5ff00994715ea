"""Marker dialect parser: ``<!-- NAME -->`` blocks and ``<!-- FILE:path -->`` sections."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from artifact_harvester.domain.models import ParseResult, ResponseFormat
from artifact_harvester.parsing.metadata import (
    build_batch,
    cross_check_manifest,
    key_value_lines,
    manifest_from_table,
    meta_from_mapping,
    plan_from_lines,
)
from artifact_harvester.parsing.text import accept_path, strip_leading_invisible

_FILE_OPEN: Final[re.Pattern[str]] = re.compile(r"<!--\s*FILE:\s*([^\s<>]+?)\s*-->")
_FILE_CLOSE: Final[re.Pattern[str]] = re.compile(r"<!--\s*/FILE:\s*([^\s<>]+?)\s*-->")
_CONTROL_MARKER: Final[re.Pattern[str]] = re.compile(
    r"<!--\s*/?(?:META|PLAN|MANIFEST|BATCH|EXPLANATION|GENERATION_META)\s*-->"
)
_BLOCK_NAMES: Final[tuple[str, ...]] = ("META", "PLAN", "MANIFEST", "BATCH", "EXPLANATION")


@dataclass(frozen=True, slots=True)
class _Marker:
    start: int
    end: int
    path: str


def _block_pattern(name: str) -> re.Pattern[str]:
    return re.compile(rf"<!--\s*{name}\s*-->(.*?)<!--\s*/{name}\s*-->", re.DOTALL)


_BLOCKS: Final[dict[str, re.Pattern[str]]] = {name: _block_pattern(name) for name in _BLOCK_NAMES}


def extract_block(text: str, name: str) -> str | None:
    """Return the body of the first closed ``name`` block, or ``None``."""

    pattern = _BLOCKS.get(name) or _block_pattern(name)
    match = pattern.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def file_markers(text: str) -> list[str]:
    """Paths named by ``FILE:`` openers, in order of appearance."""

    return [match.group(1) for match in _FILE_OPEN.finditer(text)]


class MarkerDialectParser:
    """Parser for marker v1/v2 responses; v2 is recognized by its META block."""

    @property
    def format(self) -> ResponseFormat:
        return ResponseFormat.MARKER_V2

    def parse(self, text: str) -> ParseResult:
        body = strip_leading_invisible(text)
        meta_block = extract_block(body, "META")
        result = ParseResult(
            format=ResponseFormat.MARKER_V2 if meta_block is not None else ResponseFormat.MARKER_V1
        )

        if meta_block is not None:
            result.meta = meta_from_mapping(key_value_lines(meta_block))

        plan_block = extract_block(body, "PLAN")
        if plan_block is not None:
            result.plan = plan_from_lines(plan_block)
            result.deleted_files = [
                path for path in result.plan.delete if accept_path(path) is not None
            ]

        manifest_block = extract_block(body, "MANIFEST")
        if manifest_block is not None:
            result.manifest = manifest_from_table(manifest_block)

        batch_block = extract_block(body, "BATCH")
        if batch_block is not None:
            values = {
                re.sub(r"[\s_-]", "", key): value
                for key, value in key_value_lines(batch_block).items()
            }
            result.batch = build_batch(
                current=values.get("current"),
                total=values.get("total"),
                is_complete=values.get("iscomplete", values.get("complete")),
                completed=values.get("completed", ""),
                remaining=values.get("remaining", ""),
                next_batch_hint=values.get("nextbatchhint"),
                warnings=result.warnings,
            )
            if not result.batch.is_complete:
                result.truncated = True

        explanation = extract_block(body, "EXPLANATION")
        if explanation:
            result.explanation = explanation

        _extract_files(body, result)
        cross_check_manifest(result)
        if not result.files:
            result.errors.append("No FILE blocks found in marker response")
        return result


def _extract_files(text: str, result: ParseResult) -> None:
    openers = [_Marker(m.start(), m.end(), m.group(1)) for m in _FILE_OPEN.finditer(text)]
    closers = [_Marker(m.start(), m.end(), m.group(1)) for m in _FILE_CLOSE.finditer(text)]
    used_closers: set[int] = set()
    contents: dict[int, tuple[str, bool, bool]] = {}

    # Pass 1: well-formed pairs.
    for index, opener in enumerate(openers):
        limit = openers[index + 1].start if index + 1 < len(openers) else len(text)
        for closer_index, closer in enumerate(closers):
            if closer_index in used_closers or closer.start < opener.end:
                continue
            if closer.start >= limit:
                break
            if closer.path == opener.path:
                used_closers.add(closer_index)
                contents[index] = (text[opener.end : closer.start], False, False)
                break

    # Pass 2: positional recovery of unclosed openers.
    stray_starts = [closer.start for i, closer in enumerate(closers) if i not in used_closers]
    control_starts = [match.start() for match in _CONTROL_MARKER.finditer(text)]
    boundaries = sorted(stray_starts + control_starts)
    for index, opener in enumerate(openers):
        if index in contents:
            continue
        is_last = index + 1 >= len(openers)
        limit = len(text) if is_last else openers[index + 1].start
        end = next((pos for pos in boundaries if opener.end <= pos < limit), None)
        at_end_of_text = is_last and end is None
        stop = end if end is not None else limit
        contents[index] = (text[opener.end : stop], True, at_end_of_text)

    for index, opener in enumerate(openers):
        raw, recovered, incomplete = contents[index]
        path = accept_path(opener.path)
        if path is None:
            continue
        content = raw.lstrip("\r\n").rstrip()
        if not content:
            result.warnings.append(f'File "{path}" was empty')
            continue
        result.add_file(path, content, recovered=recovered)
        if incomplete:
            result.mark_incomplete(path)
            result.truncated = True
            result.warnings.append(f'File "{path}" was truncated at end of response')
        elif recovered:
            result.warnings.append(f'File "{path}" had missing closing marker - recovered')


__all__ = ["MarkerDialectParser", "extract_block", "file_markers"]
