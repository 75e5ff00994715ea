"""
artifact-harvester — markup element balancing

File: src/artifact_harvester/repair/elements.py
Last updated: 2026-10-18

Purpose
- Find opening, self-closing and closing element tags embedded in script code
  and insert closing tags for openers that were never closed.

What should be included in this file
- Tag scanner over the lexer projection (strings and comments never yield tags).
- Stack walk producing unmatched openers.
- Closer placement: before the enclosing closing tag when one exists, else
  before the next ``)``, ``);`` or ``}`` line within the search window.

Functional requirements
- Generic type arguments (``useState<User>``, ``<T extends X>(``) and
  comparisons are not tags.
- Lowercase void elements (``<br>``, ``<img ...>``) never need closers.
- Outer closers are always placed at or after inner ones.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from itertools import count
from typing import Final

from artifact_harvester.constants import ELEMENT_CLOSER_SEARCH_LINES
from artifact_harvester.repair.lexer import (
    Insertion,
    Lexed,
    apply_insertions,
    indentation,
    lands_in_code,
    lex,
    line_index,
    line_offsets,
)

_VOID_ELEMENTS: Final[frozenset[str]] = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)
_TAG_NAME = re.compile(r"[A-Za-z][\w.:-]*")
_CLOSING_TAG = re.compile(r"</\s*([A-Za-z][\w.:-]*)?\s*>")
_BOUNDARY_LINE = re.compile(r"\s*(?:\);?|\})\s*")
_FALLBACK_OFFSET_LINES: Final[int] = 5


class TagKind(StrEnum):
    OPEN = "open"
    CLOSE = "close"
    SELF_CLOSING = "self_closing"


@dataclass(frozen=True, slots=True)
class ElementTag:
    name: str
    kind: TagKind
    start: int
    end: int
    line: int


def _opening_tag_end(projection: str, start: int) -> int | None:
    depth = 0
    for index in range(start, len(projection)):
        char = projection[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                return None
        elif depth == 0 and char in "<;":
            return None
        elif depth == 0 and char == ">":
            return index
    return None


def _next_visible(projection: str, index: int) -> str:
    while index < len(projection) and projection[index].isspace():
        index += 1
    return projection[index] if index < len(projection) else ""


def scan_tags(lexed: Lexed) -> list[ElementTag]:
    projection = lexed.projection
    offsets = line_offsets(projection)
    tags: list[ElementTag] = []
    index = projection.find("<")
    while index != -1:
        resume = index + 1
        tag = _tag_at(lexed, projection, index)
        if tag is not None:
            tags.append(
                ElementTag(
                    name=tag[0],
                    kind=tag[1],
                    start=index,
                    end=tag[2],
                    line=line_index(offsets, index),
                )
            )
            resume = tag[2]
        index = projection.find("<", resume)
    return tags


def _tag_at(lexed: Lexed, projection: str, index: int) -> tuple[str, TagKind, int] | None:
    if not lexed.is_code(index):
        return None
    following = projection[index + 1] if index + 1 < len(projection) else ""
    if following == "/":
        match = _CLOSING_TAG.match(projection, index)
        if match is None:
            return None
        return match.group(1) or "", TagKind.CLOSE, match.end()

    previous = projection[index - 1] if index > 0 else ""
    if previous and (previous.isalnum() or previous in "_.)]$"):
        return None
    if following == ">":
        return "", TagKind.OPEN, index + 2

    match = _TAG_NAME.match(projection, index + 1)
    if match is None:
        return None
    after = projection[match.end()] if match.end() < len(projection) else ""
    if not (after.isspace() or after in (">", "/")):
        return None
    close = _opening_tag_end(projection, match.end())
    if close is None:
        return None
    name = match.group(0)
    if projection[index + 1 : close].rstrip().endswith("/"):
        return name, TagKind.SELF_CLOSING, close + 1
    if _next_visible(projection, close + 1) == "(":
        return None
    if name in _VOID_ELEMENTS:
        return name, TagKind.SELF_CLOSING, close + 1
    return name, TagKind.OPEN, close + 1


def find_unclosed(
    tags: list[ElementTag],
) -> tuple[list[ElementTag], list[tuple[ElementTag, ElementTag]]]:
    """Return openers never closed and openers implicitly closed by an outer closing tag."""

    stack: list[ElementTag] = []
    implicit: list[tuple[ElementTag, ElementTag]] = []
    for tag in tags:
        if tag.kind is TagKind.SELF_CLOSING:
            continue
        if tag.kind is TagKind.OPEN:
            stack.append(tag)
            continue
        depth = next(
            (level for level in range(len(stack) - 1, -1, -1) if stack[level].name == tag.name),
            None,
        )
        if depth is None:
            continue
        while len(stack) > depth + 1:
            implicit.append((stack.pop(), tag))
        stack.pop()
    return stack, implicit


def balance_elements(text: str, *, search_lines: int = ELEMENT_CLOSER_SEARCH_LINES) -> str:
    lexed = lex(text)
    unclosed, implicit = find_unclosed(scan_tags(lexed))
    if not unclosed and not implicit:
        return text

    lines = text.split("\n")
    projection_lines = lexed.projection_lines
    offsets = line_offsets(text)
    order = count()
    insertions: list[Insertion] = []

    for opener, closing in implicit:
        indent = indentation(lines[opener.line])
        line_start = offsets[closing.line]
        if not text[line_start : closing.start].strip():
            insertions.append(Insertion(line_start, next(order), f"{indent}</{opener.name}>\n"))
        else:
            insertions.append(Insertion(closing.start, next(order), f"</{opener.name}>"))

    floor = 0
    for opener in reversed(unclosed):
        indent = indentation(lines[opener.line])
        target_line = None
        last = min(opener.line + search_lines, len(lines) - 1)
        for number in range(opener.line + 1, last + 1):
            if _BOUNDARY_LINE.fullmatch(projection_lines[number]):
                target_line = number
                break
        if target_line is None:
            fallback = opener.line + _FALLBACK_OFFSET_LINES
            target_line = fallback if fallback < len(lines) else None

        target = len(text) if target_line is None else offsets[target_line]
        target = max(target, floor)
        if target >= len(text) and not text.endswith("\n"):
            closer = f"\n{indent}</{opener.name}>"
        else:
            closer = f"{indent}</{opener.name}>\n"
        if not lands_in_code(text, target, closer):
            continue
        insertions.append(Insertion(target, next(order), closer))
        floor = target

    return apply_insertions(text, insertions)


__all__ = ["ElementTag", "TagKind", "balance_elements", "find_unclosed", "scan_tags"]
