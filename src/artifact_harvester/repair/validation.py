"""Quick structural validator run after the repair passes."""

from __future__ import annotations

import re
from typing import Final

from artifact_harvester.repair.brackets import OPENERS, PAIRS
from artifact_harvester.repair.lexer import lex, line_index, line_offsets

_BRACKET_NAMES: Final[dict[str, str]] = {"(": "parentheses", "[": "brackets", "{": "braces"}

_COMMON_RESIDUALS: Final[tuple[tuple[re.Pattern[str], str], ...]] = (
    (re.compile(r"=[ \t]+>"), "spaced arrow '= >'"),
)
_MARKUP_RESIDUALS: Final[tuple[tuple[re.Pattern[str], str], ...]] = (
    (re.compile(r"(?<![\w$.-])className\""), "attribute 'className\"' without '='"),
    (
        re.compile(r"(?<!\?)\?\s*<[A-Za-z][^:\n]*(?:/>|</[\w.]*>)\s*\}"),
        "markup ternary arm without an alternate",
    ),
)
_TYPED_RESIDUALS: Final[tuple[tuple[re.Pattern[str], str], ...]] = (
    (re.compile(r":[ \t]*:"), "duplicate ':'"),
)


def quick_validate(code: str, *, markup: bool = True, typed: bool = True) -> list[str]:
    """Problems found in ``code``; an empty list means it looks structurally sound."""

    lexed = lex(code)
    offsets = line_offsets(code)
    problems: list[str] = []

    depth = dict.fromkeys(PAIRS, 0)
    negative: set[str] = set()
    for index, char in enumerate(lexed.projection):
        if char in PAIRS:
            depth[char] += 1
        elif char in OPENERS:
            opener = OPENERS[char]
            depth[opener] -= 1
            if depth[opener] < 0 and opener not in negative:
                negative.add(opener)
                problems.append(
                    f"Unexpected '{char}' at line {line_index(offsets, index) + 1}"
                )
    for opener, balance in depth.items():
        if balance != 0:
            problems.append(f"Unbalanced {_BRACKET_NAMES[opener]} ({balance:+d})")

    residuals = list(_COMMON_RESIDUALS)
    if markup:
        residuals.extend(_MARKUP_RESIDUALS)
    if typed:
        residuals.extend(_TYPED_RESIDUALS)
    for pattern, label in residuals:
        for match in pattern.finditer(code):
            if lexed.is_code(match.start()):
                problems.append(f"Residual {label} at line {line_index(offsets, match.start()) + 1}")
                break
    return problems


def is_valid(code: str, *, markup: bool = True, typed: bool = True) -> bool:
    return not quick_validate(code, markup=markup, typed=typed)


__all__ = ["is_valid", "quick_validate"]
