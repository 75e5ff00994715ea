"""Duplicate import merging for single-line module import statements."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass

from artifact_harvester.repair.lexer import lex, line_offsets

_IMPORT_LINE = re.compile(
    r"(?P<indent>[ \t]*)import\s+(?P<type>type\s+)?"
    r"(?:(?P<namespace>\*\s*as\s+[\w$]+)|(?P<default>[\w$]+)(?:\s*,\s*)?)?"
    r"(?:\{(?P<named>[^{}]*)\})?"
    r"\s*from\s*(?P<quote>['\"])(?P<source>[^'\"]+)(?P=quote)\s*(?P<semi>;?)\s*"
)


@dataclass(frozen=True, slots=True)
class ImportStatement:
    line: int
    source: str
    type_only: bool
    default: str | None
    namespace: str | None
    named: tuple[str, ...]
    quote: str
    semicolon: bool
    indent: str


def parse_imports(code: str) -> list[ImportStatement]:
    """Single-line ``import ... from '...'`` statements outside strings and comments."""

    lexed = lex(code)
    offsets = line_offsets(code)
    statements: list[ImportStatement] = []
    for number, line in enumerate(code.split("\n")):
        match = _IMPORT_LINE.fullmatch(line)
        if match is None:
            continue
        if not lexed.is_code(offsets[number] + len(match.group("indent"))):
            continue
        default = match.group("default")
        namespace = match.group("namespace")
        named_group = match.group("named")
        if default is None and namespace is None and named_group is None:
            continue
        named = tuple(
            part.strip() for part in (named_group or "").split(",") if part.strip()
        )
        statements.append(
            ImportStatement(
                line=number,
                source=match.group("source"),
                type_only=match.group("type") is not None,
                default=default,
                namespace=re.sub(r"^\*\s*as\s+", "", namespace) if namespace else None,
                named=named,
                quote=match.group("quote"),
                semicolon=bool(match.group("semi")),
                indent=match.group("indent"),
            )
        )
    return statements


def _render(
    first: ImportStatement, default: str | None, named: list[str]
) -> str:
    prefix = "type " if first.type_only else ""
    clauses: list[str] = []
    if default:
        clauses.append(default)
    if named:
        clauses.append("{ " + ", ".join(named) + " }")
    semicolon = ";" if first.semicolon else ""
    return (
        f"{first.indent}import {prefix}{', '.join(clauses)} from "
        f"{first.quote}{first.source}{first.quote}{semicolon}"
    )


def merge_imports(code: str) -> str:
    """Merge imports of one source into the first of them.

    Namespace imports stay separate statements (exact duplicates are dropped);
    sources imported under two different default names are left untouched.
    """

    statements = parse_imports(code)
    if len(statements) < 2:
        return code

    groups: dict[tuple[str, bool], list[ImportStatement]] = defaultdict(list)
    namespaces: dict[tuple[str, bool, str], list[ImportStatement]] = defaultdict(list)
    for statement in statements:
        if statement.namespace is not None:
            namespaces[(statement.source, statement.type_only, statement.namespace)].append(statement)
        else:
            groups[(statement.source, statement.type_only)].append(statement)

    replacements: dict[int, str | None] = {}
    for members in groups.values():
        if len(members) < 2:
            continue
        defaults = {member.default for member in members if member.default}
        if len(defaults) > 1:
            continue
        named: list[str] = []
        for member in members:
            for specifier in member.named:
                if specifier not in named:
                    named.append(specifier)
        first = members[0]
        replacements[first.line] = _render(first, next(iter(defaults), None), named)
        for member in members[1:]:
            replacements[member.line] = None
    for members in namespaces.values():
        for member in members[1:]:
            replacements[member.line] = None

    if not replacements:
        return code
    output: list[str] = []
    for number, line in enumerate(code.split("\n")):
        if number not in replacements:
            output.append(line)
            continue
        replacement = replacements[number]
        if replacement is not None:
            output.append(replacement)
    return "\n".join(output)


__all__ = ["ImportStatement", "merge_imports", "parse_imports"]
