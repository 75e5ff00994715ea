"""Format detection: classify a raw response into one of the supported dialects."""

from __future__ import annotations

import json
import re
from typing import Final

from artifact_harvester.domain.models import ResponseFormat
from artifact_harvester.parsing.text import split_plan_comment, strip_invisible, unwrap_json_fence

_META_BLOCK: Final[re.Pattern[str]] = re.compile(r"<!--\s*META\s*-->.*?<!--\s*/META\s*-->", re.S)
_FILE_MARKER: Final[re.Pattern[str]] = re.compile(r"<!--\s*FILE:\s*\S")
_PLAN_MARKER: Final[re.Pattern[str]] = re.compile(r"<!--\s*PLAN\s*-->")
_EXPLANATION_MARKER: Final[re.Pattern[str]] = re.compile(r"<!--\s*EXPLANATION\s*-->")

_JSON_HINT_KEYS: Final[re.Pattern[str]] = re.compile(r'"(?:files|meta|fileChanges)"\s*:')
_V2_FORMAT: Final[re.Pattern[str]] = re.compile(r'"format"\s*:\s*"json"')
_V2_VERSION: Final[re.Pattern[str]] = re.compile(r'"version"\s*:\s*"2\.0"')
_V2_BATCH: Final[re.Pattern[str]] = re.compile(r'"batch"\s*:\s*\{')
_V2_MANIFEST: Final[re.Pattern[str]] = re.compile(r'"manifest"\s*:\s*\[')
_V1_KEYS: Final[re.Pattern[str]] = re.compile(r'"(?:files|fileChanges|explanation)"\s*:')
_CODE_FENCE: Final[re.Pattern[str]] = re.compile(
    r"(?m)^[ \t]*```[ \t]*(?:tsx|ts|jsx|js|typescript|javascript)\b"
)


def detect_format(text: str) -> ResponseFormat:
    """Classify ``text``; the first matching fingerprint wins."""

    if not isinstance(text, str):
        return ResponseFormat.UNKNOWN
    cleaned = strip_invisible(text)
    if not cleaned.strip():
        return ResponseFormat.UNKNOWN

    has_file_marker = _FILE_MARKER.search(cleaned) is not None
    if has_file_marker and _META_BLOCK.search(cleaned) is not None:
        return ResponseFormat.MARKER_V2
    if has_file_marker or (
        _PLAN_MARKER.search(cleaned) is not None
        and _EXPLANATION_MARKER.search(cleaned) is not None
    ):
        return ResponseFormat.MARKER_V1

    json_format = _detect_json(cleaned)
    if json_format is not None:
        return json_format

    if _CODE_FENCE.search(cleaned) is not None:
        return ResponseFormat.FALLBACK
    return ResponseFormat.UNKNOWN


def _detect_json(text: str) -> ResponseFormat | None:
    body = unwrap_json_fence(split_plan_comment(text).remainder).strip()
    if not body.startswith("{") and _JSON_HINT_KEYS.search(body) is None:
        return None

    if (
        _V2_FORMAT.search(body) is not None
        or _V2_VERSION.search(body) is not None
        or (_V2_BATCH.search(body) is not None and _V2_MANIFEST.search(body) is not None)
    ):
        return ResponseFormat.JSON_V2
    if _V1_KEYS.search(body) is not None:
        return ResponseFormat.JSON_V1

    return _detect_json_structurally(body)


def _detect_json_structurally(body: str) -> ResponseFormat | None:
    start = body.find("{")
    if start < 0:
        return None
    try:
        value, _ = json.JSONDecoder(strict=False).raw_decode(body[start:])
    except json.JSONDecodeError:
        return ResponseFormat.JSON_V1 if body.startswith("{") else None
    if not isinstance(value, dict):
        return None
    meta = value.get("meta")
    if isinstance(meta, dict) and str(meta.get("version", "")) == "2.0":
        return ResponseFormat.JSON_V2
    return ResponseFormat.JSON_V1


__all__ = ["detect_format"]
