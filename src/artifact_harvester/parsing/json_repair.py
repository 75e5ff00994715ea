"""
artifact-harvester — truncated JSON repair

File: src/artifact_harvester/parsing/json_repair.py
Last updated: 2026-10-18

Purpose
- Turn a JSON document that was cut off mid-stream into the largest decodable
  prefix of itself.

What should be included in this file
- A single-pass, quote-aware scanner with an explicit state enum that tracks
  string/escape state, the open container stack and structural cut points.
- The repair loop: drop a dangling escape, close an open string, strip an
  incomplete key/value tail, close containers in LIFO order, and cut back to
  the previous structural boundary while the result still fails to decode.

Functional requirements
- The output either decodes or the repair reports failure; a half-written
  value is never invented.
- Control characters inside strings are tolerated (generators emit raw newlines).

Non-functional requirements
- Linear scan per attempt and a bounded number of attempts.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Final

_DECODER: Final[json.JSONDecoder] = json.JSONDecoder(strict=False)
_MAX_CUTS: Final[int] = 64
_HEX_DIGITS: Final[frozenset[str]] = frozenset("0123456789abcdefABCDEF")
_CLOSERS: Final[dict[str, str]] = {"{": "}", "[": "]"}
_TRAILING_KEY: Final[re.Pattern[str]] = re.compile(r'"((?:[^"\\\n]|\\.){0,512})"\s*:\s*$')


class _Undecodable:
    __slots__ = ()


_UNDECODABLE: Final[_Undecodable] = _Undecodable()


class _ScanState(Enum):
    VALUE = "value"
    STRING = "string"
    ESCAPE = "escape"
    UNICODE_ESCAPE = "unicode_escape"


@dataclass(frozen=True, slots=True)
class JsonScan:
    """Structural state of a JSON text at its end."""

    state: _ScanState
    stack: tuple[str, ...]
    boundaries: tuple[int, ...]
    string_start: int | None
    escape_start: int | None

    @property
    def in_string(self) -> bool:
        return self.state is not _ScanState.VALUE

    @property
    def is_open(self) -> bool:
        """``True`` when the text ended before its structure was complete."""

        return self.in_string or bool(self.stack)

    def closers(self) -> str:
        return "".join(_CLOSERS[opener] for opener in reversed(self.stack))


@dataclass(frozen=True, slots=True)
class JsonRepair:
    value: object
    text: str
    closed_string: bool
    truncated: bool
    cuts: int
    truncated_key: str | None


@dataclass(frozen=True, slots=True)
class DecodedJson:
    """Outcome of decoding a payload, possibly through the repair pass."""

    value: dict[str, object] | None
    repaired: bool = False
    truncated: bool = False
    truncated_key: str | None = None
    error: str | None = None


def scan_json(text: str) -> JsonScan:
    state = _ScanState.VALUE
    stack: list[str] = []
    boundaries: list[int] = []
    string_start: int | None = None
    escape_start: int | None = None
    unicode_left = 0

    for index, char in enumerate(text):
        if state is _ScanState.STRING:
            if char == "\\":
                state = _ScanState.ESCAPE
                escape_start = index
            elif char == '"':
                state = _ScanState.VALUE
                string_start = None
        elif state is _ScanState.ESCAPE:
            if char == "u":
                state = _ScanState.UNICODE_ESCAPE
                unicode_left = 4
            else:
                state = _ScanState.STRING
                escape_start = None
        elif state is _ScanState.UNICODE_ESCAPE:
            if char in _HEX_DIGITS:
                unicode_left -= 1
                if unicode_left == 0:
                    state = _ScanState.STRING
                    escape_start = None
            else:
                # Malformed escape: leave it for the decoder to reject.
                state = _ScanState.STRING
                escape_start = None
        elif char == '"':
            state = _ScanState.STRING
            string_start = index
        elif char in _CLOSERS:
            stack.append(char)
            boundaries.append(index)
        elif char in "}]":
            if stack and _CLOSERS[stack[-1]] == char:
                stack.pop()
        elif char == ",":
            boundaries.append(index)

    dangling_escape = state in (_ScanState.ESCAPE, _ScanState.UNICODE_ESCAPE)
    return JsonScan(
        state=state,
        stack=tuple(stack),
        boundaries=tuple(boundaries),
        string_start=string_start,
        escape_start=escape_start if dangling_escape else None,
    )


def repair_truncated_json(text: str) -> JsonRepair | None:
    """Repair ``text`` into a decodable document, or return ``None``."""

    scan = scan_json(text)
    body = text
    closed_string = False
    truncated_key: str | None = None

    if scan.escape_start is not None:
        body = body[: scan.escape_start]
    if scan.in_string:
        if scan.string_start is not None:
            truncated_key = _key_before(text, scan.string_start)
        body += '"'
        closed_string = True

    body = _strip_incomplete_tail(body)
    boundaries = list(scan.boundaries)
    for cuts in range(_MAX_CUTS):
        candidate = body + scan_json(body).closers()
        try:
            value = _DECODER.decode(candidate)
        except json.JSONDecodeError:
            value = _UNDECODABLE
        if value is not _UNDECODABLE:
            return JsonRepair(
                value=value,
                text=candidate,
                closed_string=closed_string and cuts == 0,
                truncated=scan.is_open,
                cuts=cuts,
                truncated_key=truncated_key if cuts == 0 else None,
            )

        cut_body = _cut_to_previous_boundary(body, boundaries, text)
        if cut_body is None:
            return None
        body = cut_body
    return None


def decode_json_payload(text: str) -> DecodedJson:
    """Decode the first JSON object in ``text``, repairing truncation when needed."""

    start = text.find("{")
    if start < 0:
        return DecodedJson(value=None, error="No JSON object found in response")
    payload = text[start:]

    try:
        value, _ = _DECODER.raw_decode(payload)
    except json.JSONDecodeError as exc:
        repaired = repair_truncated_json(payload)
        if repaired is None:
            return DecodedJson(value=None, error=f"JSON parse failed: {exc.msg} at char {exc.pos}")
        if not isinstance(repaired.value, dict):
            return DecodedJson(value=None, error="Repaired JSON root is not an object")
        return DecodedJson(
            value=repaired.value,
            repaired=True,
            truncated=repaired.truncated,
            truncated_key=repaired.truncated_key,
        )

    if not isinstance(value, dict):
        return DecodedJson(value=None, error="JSON root is not an object")
    return DecodedJson(value=value)


def _strip_incomplete_tail(body: str) -> str:
    """Remove a trailing comma or a dangling ``"key":`` from ``body``."""

    while True:
        trimmed = body.rstrip()
        if trimmed.endswith(","):
            body = trimmed[:-1]
            continue
        match = (
            _TRAILING_KEY.search(trimmed, max(0, len(trimmed) - 600))
            if trimmed.endswith(":")
            else None
        )
        if match is not None:
            body = trimmed[: match.start()]
            continue
        return trimmed


def _cut_to_previous_boundary(body: str, boundaries: list[int], original: str) -> str | None:
    while boundaries:
        position = boundaries.pop()
        if position >= len(body) or position >= len(original):
            continue
        marker = original[position]
        cut = body[:position] if marker == "," else body[: position + 1]
        if len(cut) < len(body):
            return _strip_incomplete_tail(cut)
    return None


def _key_before(text: str, string_start: int) -> str | None:
    window = text[max(0, string_start - 600) : string_start]
    match = _TRAILING_KEY.search(window)
    if match is None:
        return None
    try:
        key = json.loads(f'"{match.group(1)}"')
    except json.JSONDecodeError:
        return None
    return key if isinstance(key, str) else None


__all__ = [
    "DecodedJson",
    "JsonRepair",
    "JsonScan",
    "decode_json_payload",
    "repair_truncated_json",
    "scan_json",
]
