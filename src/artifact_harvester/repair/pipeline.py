"""
artifact-harvester — multi-pass syntax repair

File: src/artifact_harvester/repair/pipeline.py
Last updated: 2026-10-18

Purpose
- Run the fixer chain over one file for up to ``max_passes`` passes, then
  accept the result only if the quick validator finds nothing wrong.

What should be included in this file
- ``RepairOptions`` and the extension -> syntax profile mapping.
- The fixed-order fixer chain.
- ``repair_code`` / ``repair_file`` / ``repair_files``.

Functional requirements
- Non-script files are returned unchanged.
- Markup fixers only run where markup is legal; typed fixers only on typed files.
- A pass without any change stops early.
- Failing validation discards every fix and returns the input unchanged.

Non-functional requirements
- Never raises for bad input; a failing fixer is recorded as an issue.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import partial
from pathlib import PurePosixPath
from typing import Any, Final

import structlog

from artifact_harvester.constants import (
    BRACE_BOUNDARY_SEARCH_LINES,
    DEFAULT_REPAIR_PASSES,
    ELEMENT_CLOSER_SEARCH_LINES,
    PAREN_BOUNDARY_SEARCH_LINES,
)
from artifact_harvester.domain.models import FixResult
from artifact_harvester.repair.brackets import balance_brackets
from artifact_harvester.repair.elements import balance_elements
from artifact_harvester.repair.fixers import (
    fix_arrow_functions,
    fix_attributes,
    fix_return_statements,
    fix_strings,
    fix_ternaries,
    fix_typed_syntax,
)
from artifact_harvester.repair.imports import merge_imports
from artifact_harvester.repair.validation import quick_validate

MARKUP_EXTENSIONS: Final[frozenset[str]] = frozenset({".jsx", ".tsx", ".js", ".mjs"})
TYPED_EXTENSIONS: Final[frozenset[str]] = frozenset({".ts", ".tsx", ".mts", ".cts"})
SCRIPT_EXTENSIONS: Final[frozenset[str]] = MARKUP_EXTENSIONS | TYPED_EXTENSIONS | {".cjs"}

ROLLBACK_ISSUE: Final[str] = "Fixes made code invalid, reverting"


@dataclass(frozen=True, slots=True)
class RepairOptions:
    max_passes: int = DEFAULT_REPAIR_PASSES
    validate: bool = True
    brace_search_lines: int = BRACE_BOUNDARY_SEARCH_LINES
    paren_search_lines: int = PAREN_BOUNDARY_SEARCH_LINES
    element_search_lines: int = ELEMENT_CLOSER_SEARCH_LINES

    def __post_init__(self) -> None:
        for name in (
            "max_passes",
            "brace_search_lines",
            "paren_search_lines",
            "element_search_lines",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be an integer >= 1")
        if not isinstance(self.validate, bool):
            raise ValueError("validate must be a boolean")


@dataclass(frozen=True, slots=True)
class SyntaxProfile:
    markup: bool
    typed: bool


@dataclass(frozen=True, slots=True)
class Fixer:
    label: str
    apply: Callable[[str], str]
    markup_only: bool = False
    typed_only: bool = False

    def applies_to(self, profile: SyntaxProfile) -> bool:
        if self.markup_only and not profile.markup:
            return False
        return not (self.typed_only and not profile.typed)


def syntax_profile(path: str) -> SyntaxProfile | None:
    """Which fixer families apply to ``path``; ``None`` for files that are never repaired."""

    suffix = PurePosixPath(path).suffix.lower()
    if suffix not in SCRIPT_EXTENSIONS:
        return None
    return SyntaxProfile(markup=suffix in MARKUP_EXTENSIONS, typed=suffix in TYPED_EXTENSIONS)


def fixer_chain(options: RepairOptions) -> tuple[Fixer, ...]:
    return (
        Fixer("Merged duplicate imports", merge_imports),
        Fixer("Fixed arrow function syntax", fix_arrow_functions),
        Fixer("Fixed malformed ternary operators", fix_ternaries, markup_only=True),
        Fixer("Fixed markup attribute syntax", fix_attributes, markup_only=True),
        Fixer("Fixed string/template literal issues", fix_strings),
        Fixer("Fixed typed syntax issues", fix_typed_syntax, typed_only=True),
        Fixer("Fixed return statements", fix_return_statements, markup_only=True),
        Fixer(
            "Fixed bracket balance",
            partial(
                balance_brackets,
                brace_search_lines=options.brace_search_lines,
                paren_search_lines=options.paren_search_lines,
            ),
        ),
        Fixer(
            "Fixed unclosed markup elements",
            partial(balance_elements, search_lines=options.element_search_lines),
            markup_only=True,
        ),
    )


def repair_code(
    code: str,
    profile: SyntaxProfile,
    *,
    options: RepairOptions | None = None,
    path: str | None = None,
    logger: Any | None = None,
) -> FixResult:
    active_options = options if options is not None else RepairOptions()
    active_logger = logger if logger is not None else structlog.get_logger(__name__)
    chain = tuple(fixer for fixer in fixer_chain(active_options) if fixer.applies_to(profile))

    fixes: list[str] = []
    issues: list[str] = []
    current = code
    for pass_number in range(1, active_options.max_passes + 1):
        before = current
        for fixer in chain:
            try:
                updated = fixer.apply(current)
            except Exception as exc:  # noqa: BLE001
                issues.append(f"Pass {pass_number}: {fixer.label} skipped ({type(exc).__name__}: {exc})")
                continue
            if updated != current:
                fixes.append(f"Pass {pass_number}: {fixer.label}")
                current = updated
        if current == before:
            break

    if fixes and active_options.validate:
        problems = quick_validate(current, markup=profile.markup, typed=profile.typed)
        if problems:
            active_logger.warning(
                "repair_rolled_back",
                path=path,
                fix_count=len(fixes),
                problems=problems,
            )
            issues.append(f"{ROLLBACK_ISSUE}: {'; '.join(problems)}")
            return FixResult(
                code=code,
                fixes_applied=tuple(fixes),
                issues=tuple(issues),
                rolled_back=True,
            )

    if fixes:
        active_logger.info("repair_applied", path=path, fix_count=len(fixes))
    return FixResult(code=current, fixes_applied=tuple(fixes), issues=tuple(issues))


def repair_file(
    path: str,
    content: str,
    *,
    options: RepairOptions | None = None,
    logger: Any | None = None,
) -> FixResult:
    """Repair one generated file; files of non-script types come back untouched."""

    profile = syntax_profile(path)
    if profile is None:
        return FixResult(code=content)
    return repair_code(content, profile, options=options, path=path, logger=logger)


def repair_files(
    files: Mapping[str, str],
    *,
    options: RepairOptions | None = None,
    logger: Any | None = None,
) -> dict[str, FixResult]:
    return {
        path: repair_file(path, content, options=options, logger=logger)
        for path, content in files.items()
    }


__all__ = [
    "MARKUP_EXTENSIONS",
    "ROLLBACK_ISSUE",
    "SCRIPT_EXTENSIONS",
    "TYPED_EXTENSIONS",
    "Fixer",
    "RepairOptions",
    "SyntaxProfile",
    "fixer_chain",
    "repair_code",
    "repair_file",
    "repair_files",
    "syntax_profile",
]
