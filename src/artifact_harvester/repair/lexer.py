"""
artifact-harvester — script lexer for the repair pipeline

File: src/artifact_harvester/repair/lexer.py
Last updated: 2026-10-18

Purpose
- One-pass, explicit-state scanner over script/markup text that tells every
  other fixer which characters are code and which are string, template or
  comment bodies.

What should be included in this file
- ``LexState`` enum and the single scanning loop.
- A code projection: same length as the input, string/comment bodies blanked
  to spaces, newlines and quote delimiters kept.
- Unterminated single-line strings per line and an unterminated template.
- Helpers to apply regex substitutions only at code positions.

Functional requirements
- Single and double quoted strings end at an unescaped newline.
- ``${`` interpolations nest, including templates inside interpolations.
- An apostrophe glued to a word character (``don't``, ``users'``) is text.

Non-functional requirements
- O(n), no regex backtracking inside the scanning loop.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Final

_REGEX_PREFIX_CHARS: Final[str] = "(,=:[!&|?;{"
_QUOTE_CHARS: Final[frozenset[str]] = frozenset({"'", '"'})


class LexState(Enum):
    CODE = "code"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"
    SINGLE_QUOTE = "single_quote"
    DOUBLE_QUOTE = "double_quote"
    TEMPLATE = "template"
    REGEX = "regex"


@dataclass(frozen=True, slots=True)
class UnterminatedString:
    line: int
    quote: str
    start: int


@dataclass(frozen=True, slots=True)
class Lexed:
    """Result of scanning one text."""

    text: str
    projection: str
    code_mask: bytes
    end_state: LexState
    unterminated_strings: tuple[UnterminatedString, ...]
    unterminated_template: int | None

    def is_code(self, index: int) -> bool:
        if index < 0 or index >= len(self.code_mask):
            return False
        return self.code_mask[index] == 1

    @property
    def projection_lines(self) -> list[str]:
        return self.projection.split("\n")


def _quote_char(state: LexState) -> str:
    return "'" if state is LexState.SINGLE_QUOTE else '"'


def lex(text: str) -> Lexed:
    """Scan ``text`` once and build its code projection."""

    out = list(text)
    mask = bytearray(len(text))
    length = len(text)
    state = LexState.CODE
    # One entry per open template: brace depth inside its current ``${``
    # interpolation, or -1 while in template text.
    templates: list[int] = []
    template_starts: list[int] = []
    unterminated: list[UnterminatedString] = []
    string_start = 0
    line = 0
    in_class = False
    last_significant = ""

    def blank(position: int) -> None:
        if position < length and out[position] != "\n":
            out[position] = " "

    def skip_escape(position: int) -> int:
        blank(position)
        if position + 1 < length and text[position + 1] != "\n":
            blank(position + 1)
            return position + 2
        return position + 1

    index = 0
    while index < length:
        char = text[index]
        nxt = text[index + 1] if index + 1 < length else ""

        if char == "\n":
            if state is LexState.LINE_COMMENT or state is LexState.REGEX:
                state = LexState.CODE
            elif state in (LexState.SINGLE_QUOTE, LexState.DOUBLE_QUOTE):
                if index == 0 or text[index - 1] != "\\":
                    unterminated.append(
                        UnterminatedString(line=line, quote=_quote_char(state), start=string_start)
                    )
                    state = LexState.CODE
            if state is LexState.CODE:
                mask[index] = 1
            line += 1
            index += 1
            continue

        if state is LexState.CODE:
            if char == "/" and nxt == "/" and (index == 0 or text[index - 1] != ":"):
                state = LexState.LINE_COMMENT
                blank(index)
                blank(index + 1)
                index += 2
                continue
            if char == "/" and nxt == "*":
                state = LexState.BLOCK_COMMENT
                blank(index)
                blank(index + 1)
                index += 2
                continue
            if char in _QUOTE_CHARS:
                previous = text[index - 1] if index > 0 else ""
                glued = previous.isalnum() or previous == "_"
                if (char == "'" and glued) or (char == '"' and previous.isdigit()):
                    mask[index] = 1
                    last_significant = char
                    index += 1
                    continue
                state = LexState.SINGLE_QUOTE if char == "'" else LexState.DOUBLE_QUOTE
                string_start = index
                index += 1
                continue
            if char == "`":
                templates.append(-1)
                template_starts.append(index)
                state = LexState.TEMPLATE
                index += 1
                continue
            if char == "/" and (last_significant == "" or last_significant in _REGEX_PREFIX_CHARS):
                state = LexState.REGEX
                in_class = False
                index += 1
                continue
            mask[index] = 1
            if templates and templates[-1] >= 0:
                if char == "{":
                    templates[-1] += 1
                elif char == "}":
                    if templates[-1] == 0:
                        templates[-1] = -1
                        state = LexState.TEMPLATE
                        last_significant = char
                        index += 1
                        continue
                    templates[-1] -= 1
            if not char.isspace():
                last_significant = char
            index += 1
            continue

        if state is LexState.LINE_COMMENT or state is LexState.BLOCK_COMMENT:
            if state is LexState.BLOCK_COMMENT and char == "*" and nxt == "/":
                blank(index)
                blank(index + 1)
                state = LexState.CODE
                index += 2
                continue
            blank(index)
            index += 1
            continue

        if state in (LexState.SINGLE_QUOTE, LexState.DOUBLE_QUOTE):
            if char == "\\":
                index = skip_escape(index)
                continue
            if char == _quote_char(state):
                state = LexState.CODE
                last_significant = char
                index += 1
                continue
            blank(index)
            index += 1
            continue

        if state is LexState.TEMPLATE:
            if char == "\\":
                index = skip_escape(index)
                continue
            if char == "`":
                templates.pop()
                template_starts.pop()
                last_significant = char
                state = LexState.CODE
                index += 1
                continue
            if char == "$" and nxt == "{":
                templates[-1] = 0
                mask[index] = 1
                mask[index + 1] = 1
                state = LexState.CODE
                last_significant = "{"
                index += 2
                continue
            blank(index)
            index += 1
            continue

        # Regex literal body.
        if char == "\\":
            index = skip_escape(index)
            continue
        if char == "[":
            in_class = True
        elif char == "]":
            in_class = False
        elif char == "/" and not in_class:
            state = LexState.CODE
            last_significant = "/"
            index += 1
            continue
        blank(index)
        index += 1

    if state in (LexState.SINGLE_QUOTE, LexState.DOUBLE_QUOTE):
        unterminated.append(
            UnterminatedString(line=line, quote=_quote_char(state), start=string_start)
        )
    return Lexed(
        text=text,
        projection="".join(out),
        code_mask=bytes(mask),
        end_state=state,
        unterminated_strings=tuple(unterminated),
        unterminated_template=template_starts[0] if template_starts else None,
    )


Replacement = str | Callable[[re.Match[str]], str]


def sub_in_code(pattern: re.Pattern[str], replacement: Replacement, text: str) -> str:
    """``pattern.sub`` that leaves matches starting inside strings or comments alone."""

    lexed = lex(text)

    def _replace(match: re.Match[str]) -> str:
        if not lexed.is_code(match.start()):
            return match.group(0)
        if callable(replacement):
            return replacement(match)
        return match.expand(replacement)

    return pattern.sub(_replace, text)


def line_offsets(text: str) -> list[int]:
    """Start offset of every line in ``text``."""

    offsets = [0]
    offsets.extend(match.end() for match in re.finditer("\n", text))
    return offsets


def indentation(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


def line_index(offsets: list[int], position: int) -> int:
    """Zero-based line containing ``position``."""

    low, high = 0, len(offsets) - 1
    while low < high:
        middle = (low + high + 1) // 2
        if offsets[middle] <= position:
            low = middle
        else:
            high = middle - 1
    return low


@dataclass(frozen=True, slots=True)
class Insertion:
    """Text queued for insertion; ties at one position keep queue order."""

    position: int
    order: int
    text: str


def lands_in_code(text: str, position: int, inserted: str) -> bool:
    """Whether ``inserted`` placed at ``position`` would be scanned as code.

    Text inside a string, template or comment is inert, so a closer put there
    leaves the imbalance in place and the next pass would add it again.
    """

    state = lex(text[:position]).end_state
    if state is LexState.CODE:
        return True
    return state in (LexState.LINE_COMMENT, LexState.REGEX) and inserted.startswith("\n")


def apply_insertions(text: str, insertions: list[Insertion]) -> str:
    if not insertions:
        return text
    pieces: list[str] = []
    cursor = 0
    for insertion in sorted(insertions, key=lambda item: (item.position, item.order)):
        position = min(max(insertion.position, cursor), len(text))
        pieces.append(text[cursor:position])
        pieces.append(insertion.text)
        cursor = position
    pieces.append(text[cursor:])
    return "".join(pieces)


__all__ = [
    "Insertion",
    "LexState",
    "Lexed",
    "UnterminatedString",
    "apply_insertions",
    "indentation",
    "lands_in_code",
    "lex",
    "line_index",
    "line_offsets",
    "sub_in_code",
]
