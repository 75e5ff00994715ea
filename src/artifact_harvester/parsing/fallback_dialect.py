"""
artifact-harvester — fallback dialect parser

File: src/artifact_harvester/parsing/fallback_dialect.py
Last updated: 2026-10-18

Purpose
- Salvage files from responses that follow no known dialect but contain
  fenced code blocks.

What should be included in this file
- A line-based fence scanner (explicit in/out-of-fence state).
- Three strategies tried in order, stopping at the first that yields files:
  path line before a fence, ``File: <path>`` first line inside a fence, and
  long fences of a recognized code language with a synthesized path.

Functional requirements
- Every file produced here is tagged recovered.
- An unterminated final fence is kept and marked incomplete.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Final

from artifact_harvester.constants import FALLBACK_MIN_BLOCK_LENGTH
from artifact_harvester.domain.models import ParseResult, ResponseFormat
from artifact_harvester.parsing.text import accept_path

FALLBACK_WARNING: Final[str] = "Using fallback parser - response format not recognized"

CODE_LANGUAGES: Final[frozenset[str]] = frozenset(
    {"tsx", "ts", "jsx", "js", "typescript", "javascript"}
)
KNOWN_EXTENSIONS: Final[tuple[str, ...]] = (
    "tsx",
    "ts",
    "jsx",
    "js",
    "mjs",
    "cjs",
    "css",
    "scss",
    "less",
    "json",
    "md",
    "mdx",
    "html",
    "htm",
    "vue",
    "svelte",
    "py",
    "yml",
    "yaml",
    "toml",
    "svg",
    "txt",
)

_PATH_TOKEN: Final[re.Pattern[str]] = re.compile(
    r"[\w@./()\[\]-]+\.(?:" + "|".join(KNOWN_EXTENSIONS) + r")"
)
_PATH_PREFIX: Final[re.Pattern[str]] = re.compile(r"^(?:file(?:name)?|path)\s*:\s*", re.IGNORECASE)
_LIST_PREFIX: Final[re.Pattern[str]] = re.compile(r"^\d+[.)]\s+")
_IN_BLOCK_FILE_LINE: Final[re.Pattern[str]] = re.compile(
    r"^\s*(?://|#|<!--|/\*)?\s*File(?:name)?:\s*(\S+?)\s*(?:-->|\*/)?\s*$", re.IGNORECASE
)
_MARKUP_HINT: Final[re.Pattern[str]] = re.compile(r"<[A-Za-z][\w.]*[\s/>]")
_COMPONENT_EXPORT: Final[re.Pattern[str]] = re.compile(
    r"export\s+default\s+(?:function\s+)?[A-Z]|React\.|from\s+['\"]react['\"]"
)
_EXPORT: Final[re.Pattern[str]] = re.compile(r"\bexport\b")


@dataclass(frozen=True, slots=True)
class FencedBlock:
    language: str
    body: str
    preceding_line: str
    closed: bool


def iter_fenced_blocks(text: str) -> Iterator[FencedBlock]:
    """Yield fenced code blocks in order; a fence still open at the end is yielded unclosed."""

    in_fence = False
    fence = ""
    language = ""
    preceding = ""
    last_text_line = ""
    body: list[str] = []

    for line in text.splitlines():
        stripped = line.strip()
        if not in_fence:
            if stripped.startswith("```"):
                marker_length = len(stripped) - len(stripped.lstrip("`"))
                fence = "`" * marker_length
                info = stripped[marker_length:].strip()
                language = info.split()[0].lower() if info else ""
                preceding = last_text_line
                body = []
                in_fence = True
            elif stripped:
                last_text_line = stripped
            continue

        if stripped.startswith(fence) and not stripped.strip("`"):
            yield FencedBlock(
                language=language, body="\n".join(body), preceding_line=preceding, closed=True
            )
            in_fence = False
            last_text_line = ""
            continue
        body.append(line)

    if in_fence:
        yield FencedBlock(
            language=language, body="\n".join(body), preceding_line=preceding, closed=False
        )


def path_from_line(line: str) -> str | None:
    """Return the file path a decorated markdown line names, if any."""

    candidate = _LIST_PREFIX.sub("", line.strip().strip("#>*-` ").strip())
    candidate = _PATH_PREFIX.sub("", candidate).strip("`*: ")
    match = _PATH_TOKEN.fullmatch(candidate)
    if match is None:
        return None
    return accept_path(candidate)


_Extracted = list[tuple[str, str, bool]]


def _from_path_lines(blocks: list[FencedBlock]) -> _Extracted:
    found: _Extracted = []
    for block in blocks:
        path = path_from_line(block.preceding_line)
        if path is not None and block.body.strip():
            found.append((path, block.body, block.closed))
    return found


def _from_in_block_markers(blocks: list[FencedBlock]) -> _Extracted:
    found: _Extracted = []
    for block in blocks:
        first, _, rest = block.body.lstrip("\n").partition("\n")
        match = _IN_BLOCK_FILE_LINE.match(first)
        if match is None:
            continue
        path = accept_path(match.group(1))
        if path is not None and rest.strip():
            found.append((path, rest, block.closed))
    return found


def _from_code_blocks(blocks: list[FencedBlock]) -> _Extracted:
    found: _Extracted = []
    for block in blocks:
        if block.language not in CODE_LANGUAGES:
            continue
        if len(block.body.strip()) < FALLBACK_MIN_BLOCK_LENGTH:
            continue
        found.append((synthesize_path(block.body, len(found) + 1), block.body, block.closed))
    return found


def synthesize_path(content: str, index: int) -> str:
    """Infer a file name from content: component, module or plain script."""

    if _COMPONENT_EXPORT.search(content) or (
        _MARKUP_HINT.search(content) and "return" in content
    ):
        return f"component{index}.tsx"
    if _EXPORT.search(content):
        return f"module{index}.ts"
    return f"code{index}.js"


_STRATEGIES: Final[tuple[tuple[str, Callable[[list[FencedBlock]], _Extracted]], ...]] = (
    ("path-line", _from_path_lines),
    ("in-block-marker", _from_in_block_markers),
    ("code-block", _from_code_blocks),
)


class FallbackDialectParser:
    @property
    def format(self) -> ResponseFormat:
        return ResponseFormat.FALLBACK

    def parse(self, text: str) -> ParseResult:
        result = ParseResult(format=ResponseFormat.FALLBACK)
        result.warnings.append(FALLBACK_WARNING)
        blocks = list(iter_fenced_blocks(text))

        for name, strategy in _STRATEGIES:
            found = strategy(blocks)
            if not found:
                continue
            for path, content, closed in found:
                cleaned = content.strip("\n").rstrip()
                result.add_file(path, cleaned, recovered=True)
                if not closed:
                    result.mark_incomplete(path)
                    result.truncated = True
            result.warnings.append(f"Fallback strategy '{name}' extracted {len(found)} file(s)")
            break

        if not result.files:
            result.errors.append("No fenced code blocks with recoverable files found")
        return result


__all__ = [
    "CODE_LANGUAGES",
    "FALLBACK_WARNING",
    "FallbackDialectParser",
    "FencedBlock",
    "iter_fenced_blocks",
    "path_from_line",
    "synthesize_path",
]
