"""
artifact-harvester — pattern fixers for common generator mistakes

File: src/artifact_harvester/repair/fixers.py
Last updated: 2026-10-18

Purpose
- Small, independent text transforms, each targeting one family of mistakes
  seen in generated script and markup code.

What should be included in this file
- Arrow-function token fixes.
- Ternary-with-markup fixes.
- Markup attribute fixes.
- Unterminated string / template line fixes.
- Typed-superset delimiter fixes.
- ``return (`` balancing.

Functional requirements
- Every regex-driven fix applies only where the match starts in code, never
  inside strings, templates or comments.
- Each fixer is a no-op on text that does not contain its mistake.

Non-functional requirements
- Pure functions ``str -> str``; no logging here, the pipeline reports.
"""

from __future__ import annotations

import re
from typing import Final

from artifact_harvester.constants import TEMPLATE_CLOSER_SEARCH_LINES
from artifact_harvester.repair.lexer import (
    Lexed,
    indentation,
    lex,
    line_index,
    line_offsets,
    sub_in_code,
)

# Arrow functions.
_SPACED_ARROW = re.compile(r"=[ \t]+>")
_SPACED_EMPTY_PARAMS = re.compile(r"\([ \t]+\)[ \t]*=>")
_ARROWLESS_EMPTY_PARAMS = re.compile(r"=[ \t]*\([ \t]*\)[ \t]*\{")
_ARROWLESS_ASYNC = re.compile(r"(?<![\w$.])async[ \t]*\(([^()\n]*)\)[ \t]*\{")

# Ternaries with a markup arm.
_TERNARY_AND_ALTERNATE = re.compile(
    r"(\?\s*<[A-Za-z][\w.]*[^?:\n]*?(?:/>|</[\w.]*>))\s*:\s*(?=[\w$.]+\s*&&\s*<)"
)
_TERNARY_NO_ALTERNATE = re.compile(r"(?<!\?)\?(\s*<[A-Za-z][^\n]*?(?:/>|</[\w.]*>))(?=\s*\})")

# Markup attributes.
_ATTRIBUTE_NAMES: Final[str] = (
    "className|class|key|href|src|alt|id|type|name|value|placeholder|title|htmlFor|role"
)
_MISSING_EQUALS = re.compile(rf"(?<![\w$.-])({_ATTRIBUTE_NAMES})(\"[^\"\n]*\"|'[^'\n]*')")
_HANDLER_MISSING_EQUALS = re.compile(r"(?<![\w$.-])(on[A-Z]\w*)\"([\w$.]+)\"")
_DOUBLED_EQUALS = re.compile(rf"(?<=\s)({_ATTRIBUTE_NAMES}|on[A-Z]\w*|style)==(?=[\"'{{])")
_UNCLOSED_EXPRESSION_ATTRIBUTE = re.compile(r"=\{([A-Za-z_$][\w$]*)(\s+[A-Za-z][\w-]*=)")

# Typed-superset delimiters.
_DOUBLE_COLON = re.compile(r":[ \t]*:[ \t]*")
_PIPE_BEFORE_SEMICOLON = re.compile(r"(?<=[\w$\])'\"`>}])[ \t]*\|[ \t]*(?=;)")
_HERITAGE_TRAILING_COMMA = re.compile(r"\b(extends|implements)(\s+[^{};<\n]*?)\s*,\s*\{")
_UNION_FOLLOWER = re.compile(
    r"\s*(?:\}|(?:export|const|let|var|function|type|interface|class|import|return|enum|declare)\b"
    r"|[\w$]+\??\s*:)"
)

# Return statements.
_BARE_RETURN = re.compile(r"[ \t]*return[ \t]*")
_RETURN_PAREN = re.compile(r"\breturn[ \t]*\(")


def fix_arrow_functions(code: str) -> str:
    result = sub_in_code(_SPACED_ARROW, "=>", code)
    result = sub_in_code(_SPACED_EMPTY_PARAMS, "() =>", result)
    result = sub_in_code(_ARROWLESS_EMPTY_PARAMS, "= () => {", result)
    return sub_in_code(_ARROWLESS_ASYNC, r"async (\1) => {", result)


def _alternate_end(projection: str, start: int) -> int | None:
    depth = 0
    for index in range(start, len(projection)):
        char = projection[index]
        if char in "([{":
            depth += 1
        elif char in ")]}":
            if depth == 0:
                return index
            depth -= 1
    return None


def _depth_zero_colon(projection: str) -> bool:
    depth = 0
    for char in projection:
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == ":" and depth == 0:
            return True
    return False


def fix_ternaries(code: str) -> str:
    """Parenthesize ``: cond && <markup>`` alternates and add ``: null`` to alternate-less arms."""

    lexed = lex(code)
    result = code
    # Nested alternates are left for the next pass so offsets stay valid.
    next_start = len(code)
    for match in reversed(list(_TERNARY_AND_ALTERNATE.finditer(code))):
        if not lexed.is_code(match.start()):
            continue
        end = _alternate_end(lexed.projection, match.end())
        if end is None or end > next_start:
            continue
        next_start = match.start()
        alternate = code[match.end() : end]
        stripped = alternate.rstrip()
        result = (
            result[: match.start()]
            + f"{match.group(1)} : ({stripped})"
            + alternate[len(stripped) :]
            + result[end:]
        )

    lexed = lex(result)

    def _add_null(match: re.Match[str]) -> str:
        arm_projection = lexed.projection[match.start(1) : match.end(1)]
        if arm_projection.count("{") != arm_projection.count("}"):
            return match.group(0)
        if _depth_zero_colon(arm_projection):
            return match.group(0)
        return f"?{match.group(1)} : null"

    return sub_in_code(_TERNARY_NO_ALTERNATE, _add_null, result)


def fix_attributes(code: str) -> str:
    result = sub_in_code(_MISSING_EQUALS, r"\1=\2", code)
    result = sub_in_code(_HANDLER_MISSING_EQUALS, r"\1={\2}", result)
    result = sub_in_code(_DOUBLED_EQUALS, r"\1=", result)
    return sub_in_code(_UNCLOSED_EXPRESSION_ATTRIBUTE, r"={\1}\2", result)


def _closing_cut(line: str, floor: int, open_parens: int) -> int:
    """Where a closing quote goes: before a trailing ``;``/``,`` and call parens."""

    stripped = line.rstrip()
    cut = len(stripped)
    if cut > floor and stripped[cut - 1] in ";,":
        cut -= 1
    closed = 0
    while closed < open_parens and cut > floor and stripped[cut - 1] == ")":
        cut -= 1
        closed += 1
    return cut


def fix_strings(code: str) -> str:
    """Close quotes left open at the end of a line and an unterminated template opener."""

    lexed = lex(code)
    if not lexed.unterminated_strings and lexed.unterminated_template is None:
        return code
    lines = code.split("\n")
    projection_lines = lexed.projection_lines
    offsets = line_offsets(code)

    for unterminated in lexed.unterminated_strings:
        number = unterminated.line
        line = lines[number]
        column = unterminated.start - offsets[number]
        if line.rstrip().endswith("\\") or "`" in line:
            continue
        if number + 1 < len(lines) and lines[number + 1].lstrip().startswith(("'", '"')):
            continue
        if "</" in line[column:]:
            continue
        prefix = projection_lines[number][:column]
        cut = _closing_cut(line, column + 1, prefix.count("(") - prefix.count(")"))
        lines[number] = line[:cut] + unterminated.quote + line[cut:]

    if lexed.unterminated_template is not None:
        start = lexed.unterminated_template
        number = line_index(offsets, start)
        line = lines[number]
        column = start - offsets[number]
        following = lines[number + 1 : number + 1 + TEMPLATE_CLOSER_SEARCH_LINES]
        if "${" in line[column:] and not any("`" in later for later in following):
            cut = _closing_cut(line, column + 1, 0)
            lines[number] = line[:cut] + "`" + line[cut:]

    return "\n".join(lines)


def fix_typed_syntax(code: str) -> str:
    """Duplicate colons, dangling union pipes and a stray comma before ``{`` in heritage lists."""

    result = sub_in_code(_DOUBLE_COLON, ": ", code)
    result = sub_in_code(_PIPE_BEFORE_SEMICOLON, "", result)
    result = sub_in_code(_HERITAGE_TRAILING_COMMA, r"\1\2 {", result)

    lexed = lex(result)
    lines = result.split("\n")
    offsets = line_offsets(result)
    for number, line in enumerate(lines):
        stripped = line.rstrip()
        if not stripped.endswith("|") or stripped.endswith("||"):
            continue
        if not lexed.is_code(offsets[number] + len(stripped) - 1):
            continue
        follower = next((later for later in lines[number + 1 :] if later.strip()), None)
        if follower is None or _UNION_FOLLOWER.match(follower):
            lines[number] = stripped[:-1].rstrip()
    return "\n".join(lines)


def _strip_trailing_semicolon(lines: list[str], before: int, after: int) -> None:
    for number in range(before - 1, after, -1):
        if lines[number].strip():
            stripped = lines[number].rstrip()
            if stripped.endswith(";"):
                lines[number] = stripped[:-1]
            return


def _append_line(lines: list[str], line: str) -> int:
    """Append before a trailing empty line (the final newline); return the index used."""

    position = len(lines) - 1 if lines and not lines[-1].strip() else len(lines)
    lines.insert(position, line)
    return position


def _dedented_brace_line(
    projection_lines: list[str], start: int, indent: str
) -> int | None:
    for number in range(start, len(projection_lines)):
        candidate = projection_lines[number]
        if not candidate.strip():
            continue
        if len(indentation(candidate)) <= len(indent) and candidate.lstrip().startswith("}"):
            return number
    return None


def _wrap_bare_returns(code: str) -> str:
    lexed = lex(code)
    lines = code.split("\n")
    offsets = line_offsets(code)
    candidates = [
        number
        for number, line in enumerate(lines)
        if _BARE_RETURN.fullmatch(line)
        and number + 1 < len(lines)
        and lines[number + 1].lstrip().startswith("<")
        and lexed.is_code(offsets[number] + len(indentation(line)))
    ]
    if not candidates:
        return code
    projection_lines = lexed.projection_lines
    for number in reversed(candidates):
        indent = indentation(lines[number])
        lines[number] = lines[number].rstrip() + " ("
        end = _dedented_brace_line(projection_lines, number + 2, indent)
        if end is None:
            _strip_trailing_semicolon(lines, len(lines), number)
            projection_lines.insert(_append_line(lines, f"{indent});"), f"{indent});")
        else:
            _strip_trailing_semicolon(lines, end, number)
            lines.insert(end, f"{indent});")
            projection_lines.insert(end, f"{indent});")
    return "\n".join(lines)


def _first_unclosed_return(lexed: Lexed) -> int | None:
    """Offset of the first ``return (`` whose paren never closes."""

    projection = lexed.projection
    for match in _RETURN_PAREN.finditer(projection):
        if not lexed.is_code(match.start()):
            continue
        depth = 0
        for char in projection[match.end() - 1 :]:
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth == 0:
                    break
        if depth > 0:
            return match.start()
    return None


def _close_return_parens(code: str) -> str:
    result = code
    for _ in range(result.count("return")):
        lexed = lex(result)
        start = _first_unclosed_return(lexed)
        if start is None:
            break
        offsets = line_offsets(result)
        number = line_index(offsets, start)
        lines = result.split("\n")
        indent = indentation(lines[number])
        end = _dedented_brace_line(lexed.projection_lines, number + 1, indent)
        stop = len(result) if end is None else offsets[end]
        segment = lexed.projection[start:stop]
        closer = f"{indent}{')' * max(segment.count('(') - segment.count(')'), 1)};"
        _strip_trailing_semicolon(lines, len(lines) if end is None else end, number)
        if end is None:
            _append_line(lines, closer)
        else:
            lines.insert(end, closer)
        result = "\n".join(lines)
    return result


def fix_return_statements(code: str) -> str:
    """Parenthesize bare ``return`` before markup and close ``return (`` left open."""

    return _close_return_parens(_wrap_bare_returns(code))


__all__ = [
    "fix_arrow_functions",
    "fix_attributes",
    "fix_return_statements",
    "fix_strings",
    "fix_ternaries",
    "fix_typed_syntax",
]
