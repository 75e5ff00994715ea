"""Quote/comment-aware bracket balancing over the lexer projection."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import count
from typing import Final

from artifact_harvester.constants import BRACE_BOUNDARY_SEARCH_LINES, PAREN_BOUNDARY_SEARCH_LINES
from artifact_harvester.repair.lexer import (
    Insertion,
    apply_insertions,
    indentation,
    lands_in_code,
    lex,
    line_index,
    line_offsets,
)

PAIRS: Final[dict[str, str]] = {"(": ")", "[": "]", "{": "}"}
OPENERS: Final[dict[str, str]] = {closer: opener for opener, closer in PAIRS.items()}
_EXPRESSION_BOUNDARIES: Final[frozenset[str]] = frozenset(";}]")


@dataclass(frozen=True, slots=True)
class Bracket:
    char: str
    position: int


@dataclass(frozen=True, slots=True)
class BracketScan:
    """Stack walk result.

    ``implicit`` holds openers left open inside a pair that was closed further
    out, with the position of that outer closer.
    """

    unclosed: tuple[Bracket, ...]
    implicit: tuple[tuple[Bracket, int], ...]
    stray: tuple[Bracket, ...]

    @property
    def balanced(self) -> bool:
        return not (self.unclosed or self.implicit or self.stray)


def scan_brackets(projection: str) -> BracketScan:
    stack: list[Bracket] = []
    implicit: list[tuple[Bracket, int]] = []
    stray: list[Bracket] = []
    for index, char in enumerate(projection):
        if char in PAIRS:
            stack.append(Bracket(char, index))
            continue
        opener = OPENERS.get(char)
        if opener is None:
            continue
        if stack and stack[-1].char == opener:
            stack.pop()
            continue
        depth = next(
            (level for level in range(len(stack) - 1, -1, -1) if stack[level].char == opener),
            None,
        )
        if depth is None:
            stray.append(Bracket(char, index))
            continue
        while len(stack) > depth + 1:
            implicit.append((stack.pop(), index))
        stack.pop()
    return BracketScan(unclosed=tuple(stack), implicit=tuple(implicit), stray=tuple(stray))


def _end_of_text_closer(text: str, indent: str, closer: str) -> str:
    if text.endswith("\n"):
        return f"{indent}{closer}\n"
    return f"\n{indent}{closer}"


def _brace_target(
    projection_lines: list[str], offsets: list[int], lines: list[str], position: int, limit: int
) -> int | None:
    first = line_index(offsets, position)
    for number in range(first, min(first + limit, len(lines))):
        segment = projection_lines[number]
        if number == first:
            segment = segment[position - offsets[number] + 1 :]
        if segment.rstrip().endswith((";", "}")):
            return offsets[number] + len(lines[number])
    return None


def _expression_target(projection: str, offsets: list[int], position: int, limit: int) -> int | None:
    last_line = min(line_index(offsets, position) + limit, len(offsets)) - 1
    stop = offsets[last_line + 1] if last_line + 1 < len(offsets) else len(projection)
    depth = 0
    for index in range(position + 1, stop):
        char = projection[index]
        if char in PAIRS:
            depth += 1
        elif char in OPENERS and depth > 0:
            depth -= 1
        elif depth == 0 and char in _EXPRESSION_BOUNDARIES:
            return index
    return None


def balance_brackets(
    text: str,
    *,
    brace_search_lines: int = BRACE_BOUNDARY_SEARCH_LINES,
    paren_search_lines: int = PAREN_BOUNDARY_SEARCH_LINES,
) -> str:
    """Insert missing closers; stray closers are left for the validator to judge."""

    lexed = lex(text)
    scan = scan_brackets(lexed.projection)
    if not scan.unclosed and not scan.implicit:
        return text

    order = count()
    insertions = [
        Insertion(position, next(order), PAIRS[opener.char]) for opener, position in scan.implicit
    ]

    lines = text.split("\n")
    projection_lines = lexed.projection_lines
    offsets = line_offsets(text)
    floor = 0
    # Innermost first so every outer closer lands at or after the inner ones.
    for opener in reversed(scan.unclosed):
        closer = PAIRS[opener.char]
        indent = indentation(lines[line_index(offsets, opener.position)])
        if opener.char == "{":
            target = _brace_target(
                projection_lines, offsets, lines, opener.position, brace_search_lines
            )
            if target is not None and target < floor:
                floor_line = line_index(offsets, floor)
                target = offsets[floor_line] + len(lines[floor_line])
            if target is None or target >= len(text):
                target = len(text)
                inserted = _end_of_text_closer(text, indent, closer)
            else:
                inserted = f"\n{indent}{closer}"
        else:
            target = _expression_target(
                lexed.projection, offsets, opener.position, paren_search_lines
            )
            if target is None:
                target = len(text.rstrip())
            target = max(target, floor)
            inserted = closer
        if not lands_in_code(text, target, inserted):
            continue
        insertions.append(Insertion(target, next(order), inserted))
        floor = max(floor, target)

    return apply_insertions(text, insertions)


__all__ = ["OPENERS", "PAIRS", "Bracket", "BracketScan", "balance_brackets", "scan_brackets"]
