"""Shared text helpers for the dialect parsers: invisible characters, fences, paths."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Final

from artifact_harvester.constants import IGNORED_PATH_SEGMENTS
from artifact_harvester.domain.models import PlanInfo

INVISIBLE_CHARACTERS: Final[str] = "\ufeff\u200b\u200c\u200d\u00a0"

_INVISIBLE_TABLE: Final[dict[int, None]] = {ord(char): None for char in INVISIBLE_CHARACTERS}
_PLAN_COMMENT_PREFIX: Final[str] = "// PLAN:"
_JSON_FENCE_OPENER: Final[re.Pattern[str]] = re.compile(r"(?m)^[ \t]*```(?:json|JSON)?[ \t]*$")
_FENCE_CLOSER: Final[re.Pattern[str]] = re.compile(r"(?m)^[ \t]*```[ \t]*$")
_EXTENSION: Final[re.Pattern[str]] = re.compile(r"\.[A-Za-z][A-Za-z0-9]*$")
_IGNORED: Final[frozenset[str]] = frozenset(IGNORED_PATH_SEGMENTS)


@dataclass(frozen=True, slots=True)
class PlanComment:
    """A leading ``// PLAN: {...}`` line split off from the payload."""

    plan: PlanInfo | None
    remainder: str


def strip_invisible(text: str) -> str:
    """Remove byte-order marks, zero-width characters and no-break spaces everywhere."""

    return text.translate(_INVISIBLE_TABLE)


def strip_leading_invisible(text: str) -> str:
    index = 0
    while index < len(text) and (text[index] in INVISIBLE_CHARACTERS or text[index].isspace()):
        index += 1
    return text[index:]


def split_plan_comment(text: str) -> PlanComment:
    """Split a single-line plan comment from the start of ``text``.

    A malformed plan line is still removed; only its plan is lost.
    """

    stripped = strip_leading_invisible(text)
    if not stripped.startswith(_PLAN_COMMENT_PREFIX):
        return PlanComment(plan=None, remainder=text)

    line_end = stripped.find("\n")
    plan_line = stripped[len(_PLAN_COMMENT_PREFIX) : line_end if line_end >= 0 else None]
    remainder = stripped[line_end + 1 :] if line_end >= 0 else ""

    plan: PlanInfo | None = None
    try:
        payload = json.loads(plan_line.strip())
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict):
        plan = PlanInfo.from_mapping(payload)
    return PlanComment(plan=plan, remainder=remainder)


def unwrap_json_fence(text: str) -> str:
    """Return the body of the first ```` ```json ```` fence, or ``text`` when unfenced.

    A payload that already starts with ``{`` is never unwrapped, and an
    unterminated fence (a truncated response) yields everything after its opener.
    """

    if strip_leading_invisible(text).startswith("{"):
        return text
    opener = _JSON_FENCE_OPENER.search(text)
    if opener is None:
        return text
    body_start = opener.end() + 1 if text[opener.end() : opener.end() + 1] == "\n" else opener.end()
    closer = _FENCE_CLOSER.search(text, body_start)
    if closer is None:
        return text[body_start:]
    return text[body_start : closer.start()]


def clean_generated_code(content: str) -> str:
    """Unwrap a file body that the generator wrapped in its own code fence."""

    stripped = content.strip()
    if not stripped.startswith("```"):
        return content
    first_newline = stripped.find("\n")
    if first_newline < 0:
        return ""
    body = stripped[first_newline + 1 :]
    trailing = body.rstrip()
    if trailing.endswith("```"):
        body = trailing[:-3]
    return body.strip("\n")


def normalize_path(path: str) -> str:
    return path.strip().replace("\\", "/")


def looks_like_file_path(path: str) -> bool:
    candidate = normalize_path(path)
    if not candidate or len(candidate) > 512:
        return False
    if any(char.isspace() for char in candidate):
        return False
    return "." in candidate or "/" in candidate


def has_extension(path: str) -> bool:
    return _EXTENSION.search(basename(path)) is not None


def is_ignored_path(path: str) -> bool:
    """Return ``True`` for version-control, dependency and build-output paths."""

    segments = [segment for segment in normalize_path(path).split("/") if segment]
    return any(segment in _IGNORED for segment in segments)


def basename(path: str) -> str:
    normalized = normalize_path(path).rstrip("/")
    return normalized.rsplit("/", 1)[-1]


def path_matches(candidate: str, target: str) -> bool:
    """Match paths exactly or by basename, tolerating prefix drift across batches."""

    if normalize_path(candidate) == normalize_path(target):
        return True
    return basename(candidate) == basename(target)


def accept_path(path: object) -> str | None:
    """Return the normalized path when it may become an artifact, else ``None``."""

    if not isinstance(path, str):
        return None
    normalized = normalize_path(path)
    if not looks_like_file_path(normalized) or is_ignored_path(normalized):
        return None
    return normalized


__all__ = [
    "INVISIBLE_CHARACTERS",
    "PlanComment",
    "accept_path",
    "basename",
    "clean_generated_code",
    "has_extension",
    "is_ignored_path",
    "looks_like_file_path",
    "normalize_path",
    "path_matches",
    "split_plan_comment",
    "strip_invisible",
    "strip_leading_invisible",
    "unwrap_json_fence",
]
