"""
artifact-harvester — artifact extractor

File: src/artifact_harvester/parsing/extractor.py
Last updated: 2026-10-18

Purpose
- Single entrypoint turning raw generator text into one ``ParseResult``.

What should be included in this file
- Input validation (empty input, size ceiling).
- An explicit, ordered strategy table keyed by detected format, evaluated by
  a small interpreter loop that keeps the first result with files.
- Plan-vs-output truncation heuristics.
- Cheap helpers: ``has_files`` and ``extract_file_list``.

Functional requirements
- ``extract`` never raises for bad input.
- ``errors`` is non-empty exactly when no files were produced.
- Errors of strategies that were superseded by a later success are demoted
  to warnings.

Non-functional requirements
- Every dialect parser is independently constructible and testable; the
  extractor owns no parsing logic of its own.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Final, Protocol

import structlog

from artifact_harvester.constants import DEFAULT_MAX_RESPONSE_SIZE, MIN_PARSED_FILE_LENGTH
from artifact_harvester.domain.models import ParseResult, ResponseFormat
from artifact_harvester.observability.events import PipelineEvents, as_dispatcher
from artifact_harvester.parsing.detection import detect_format
from artifact_harvester.parsing.fallback_dialect import (
    FallbackDialectParser,
    iter_fenced_blocks,
    path_from_line,
)
from artifact_harvester.parsing.json_dialect import JsonDialectParser
from artifact_harvester.parsing.marker_dialect import (
    MarkerDialectParser,
    extract_block,
    file_markers,
)
from artifact_harvester.parsing.metadata import plan_from_lines
from artifact_harvester.parsing.text import (
    accept_path,
    split_plan_comment,
    strip_invisible,
)
from artifact_harvester.parsing.truncation import (
    TruncationThresholds,
    find_truncated_files,
    missing_planned_files,
)

EMPTY_RESPONSE_ERROR: Final[str] = "Empty or invalid response"
NO_FILES_ERROR: Final[str] = "No files could be extracted from response"

_JSON_FILES_CONTAINER: Final[re.Pattern[str]] = re.compile(r'"(?:files|fileChanges)"\s*:\s*[\{\[]')
_MARKER_FILE: Final[re.Pattern[str]] = re.compile(r"<!--\s*FILE:")
_FALLBACK_FENCE: Final[re.Pattern[str]] = re.compile(r"```[ \t]*(?:tsx?|jsx?|typescript|javascript)\b")
_JSON_PATH_KEY: Final[re.Pattern[str]] = re.compile(r'"([\w@./()\[\]-]+\.[A-Za-z][A-Za-z0-9]*)"\s*:')
_JSON_PATH_VALUE: Final[re.Pattern[str]] = re.compile(r'"(?:path|file)"\s*:\s*"([^"\\]+)"')


class DialectParser(Protocol):
    @property
    def format(self) -> ResponseFormat: ...

    def parse(self, text: str) -> ParseResult: ...


@dataclass(frozen=True, slots=True)
class ExtractOptions:
    """Knobs for one extraction call."""

    max_size: int = DEFAULT_MAX_RESPONSE_SIZE
    include_raw: bool = False
    aggressive_recovery: bool = True
    min_file_length: int = MIN_PARSED_FILE_LENGTH
    truncation: TruncationThresholds = field(default_factory=TruncationThresholds)

    def __post_init__(self) -> None:
        if self.max_size <= 0:
            raise ValueError("max_size must be > 0")
        if self.min_file_length < 0:
            raise ValueError("min_file_length must be >= 0")


@dataclass(frozen=True, slots=True)
class Strategy:
    """One entry of the strategy table: a named dialect parser factory."""

    name: str
    build: Callable[[ExtractOptions], DialectParser]


def _json_v1(options: ExtractOptions) -> DialectParser:
    return JsonDialectParser(ResponseFormat.JSON_V1, min_file_length=options.min_file_length)


def _json_v2(options: ExtractOptions) -> DialectParser:
    return JsonDialectParser(ResponseFormat.JSON_V2, min_file_length=options.min_file_length)


def _marker(options: ExtractOptions) -> DialectParser:
    return MarkerDialectParser()


def _fallback(options: ExtractOptions) -> DialectParser:
    return FallbackDialectParser()


JSON_V1_STRATEGY: Final[Strategy] = Strategy("json-v1", _json_v1)
JSON_V2_STRATEGY: Final[Strategy] = Strategy("json-v2", _json_v2)
MARKER_STRATEGY: Final[Strategy] = Strategy("marker", _marker)
FALLBACK_STRATEGY: Final[Strategy] = Strategy("fallback", _fallback)

STRATEGY_TABLE: Final[Mapping[ResponseFormat, tuple[Strategy, ...]]] = {
    ResponseFormat.JSON_V2: (JSON_V2_STRATEGY,),
    ResponseFormat.JSON_V1: (JSON_V1_STRATEGY,),
    ResponseFormat.MARKER_V2: (MARKER_STRATEGY,),
    ResponseFormat.MARKER_V1: (MARKER_STRATEGY,),
    ResponseFormat.FALLBACK: (FALLBACK_STRATEGY,),
    ResponseFormat.UNKNOWN: (),
}
RECOVERY_CHAIN: Final[tuple[Strategy, ...]] = (JSON_V1_STRATEGY, MARKER_STRATEGY, FALLBACK_STRATEGY)


def strategy_chain(
    response_format: ResponseFormat, *, aggressive_recovery: bool = True
) -> tuple[Strategy, ...]:
    """Ordered strategies to try for ``response_format``.

    Without ``aggressive_recovery`` only the detected dialect is tried, so
    unknown input yields no strategies at all.
    """

    primary = STRATEGY_TABLE[response_format]
    if not aggressive_recovery:
        return primary
    names = {strategy.name for strategy in primary}
    return primary + tuple(strategy for strategy in RECOVERY_CHAIN if strategy.name not in names)


class ArtifactExtractor:
    """Detect, dispatch and merge; the strategy loop is the only control flow."""

    def __init__(
        self,
        options: ExtractOptions | None = None,
        *,
        events: PipelineEvents | None = None,
        logger: Any | None = None,
    ) -> None:
        self._options = options if options is not None else ExtractOptions()
        self._events = as_dispatcher(events)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def options(self) -> ExtractOptions:
        return self._options

    def extract(self, text: object) -> ParseResult:
        options = self._options
        result = ParseResult()
        if options.include_raw and isinstance(text, str):
            result.raw_response = text

        if not isinstance(text, str) or not text.strip():
            result.errors.append(EMPTY_RESPONSE_ERROR)
            self._log_summary(result)
            return result
        if len(text) > options.max_size:
            result.errors.append(
                f"Response too large ({round(len(text) / 1000)}KB > "
                f"{round(options.max_size / 1000)}KB limit)"
            )
            self._log_summary(result)
            return result

        detected = detect_format(text)
        chain = strategy_chain(detected, aggressive_recovery=options.aggressive_recovery)
        result = self._run_chain(text, detected, chain)
        if options.include_raw:
            result.raw_response = text

        if result.files:
            self._check_plan_coverage(result)
        else:
            result.errors.append(NO_FILES_ERROR)

        for warning in result.warnings:
            self._events.on_warning(warning)
        for path in result.recovered_files:
            self._events.on_recovered(path)
        self._log_summary(result)
        return result

    def _run_chain(
        self, text: str, detected: ResponseFormat, chain: tuple[Strategy, ...]
    ) -> ParseResult:
        failures: list[tuple[str, ParseResult]] = []
        for strategy in chain:
            parsed = strategy.build(self._options).parse(text)
            if parsed.files:
                for name, failed in failures:
                    parsed.warnings.extend(f"{name} parser: {error}" for error in failed.errors)
                if failures:
                    parsed.warnings.append(
                        f"Detected {detected.value} but files were recovered by the "
                        f"{strategy.name} parser"
                    )
                return parsed
            failures.append((strategy.name, parsed))

        merged = ParseResult(format=detected)
        for name, failed in failures:
            merged.errors.extend(f"{name} parser: {error}" for error in failed.errors)
            for warning in failed.warnings:
                if warning not in merged.warnings:
                    merged.warnings.append(warning)
            if merged.explanation is None:
                merged.explanation = failed.explanation
            if merged.plan is None:
                merged.plan = failed.plan
            if merged.batch is None:
                merged.batch = failed.batch
            merged.truncated = merged.truncated or failed.truncated
        return merged

    def _check_plan_coverage(self, result: ParseResult) -> None:
        missing = missing_planned_files(result)
        if not missing:
            return
        result.warnings.append(
            f"Plan lists {len(missing)} file(s) missing from response: {', '.join(missing)}"
        )
        suspicious = find_truncated_files(result.files, self._options.truncation)
        for path in suspicious:
            result.mark_incomplete(path)
        if suspicious:
            result.truncated = True
            result.warnings.append(
                f"Response appears truncated; suspicious files: {', '.join(suspicious)}"
            )

    def _log_summary(self, result: ParseResult) -> None:
        self._logger.info(
            "artifact_extract_summary",
            format=result.format.value,
            file_count=result.file_count,
            truncated=result.truncated,
            warning_count=len(result.warnings),
            error_count=len(result.errors),
        )
        if result.errors:
            self._logger.warning("artifact_extract_errors", errors=list(result.errors))


def extract(
    text: object,
    options: ExtractOptions | None = None,
    *,
    events: PipelineEvents | None = None,
    logger: Any | None = None,
) -> ParseResult:
    """Extract files and metadata from ``text``; never raises for bad input."""

    return ArtifactExtractor(options, events=events, logger=logger).extract(text)


def has_files(text: object) -> bool:
    """Cheap check for file content in a recognized dialect, without parsing."""

    if not isinstance(text, str) or not text.strip():
        return False
    response_format = detect_format(text)
    if response_format in (ResponseFormat.JSON_V1, ResponseFormat.JSON_V2):
        return _JSON_FILES_CONTAINER.search(text) is not None
    if response_format in (ResponseFormat.MARKER_V1, ResponseFormat.MARKER_V2):
        return _MARKER_FILE.search(text) is not None
    if response_format is ResponseFormat.FALLBACK:
        return _FALLBACK_FENCE.search(text) is not None
    return False


def extract_file_list(text: object) -> list[str]:
    """Paths a response announces or contains, for progress display.

    Sorted, de-duplicated, with ignored paths removed. Works on partial
    (still streaming) text.
    """

    if not isinstance(text, str) or not text.strip():
        return []
    cleaned = strip_invisible(text)
    response_format = detect_format(cleaned)
    candidates: list[str] = []

    if response_format in (ResponseFormat.MARKER_V1, ResponseFormat.MARKER_V2):
        plan_block = extract_block(cleaned, "PLAN")
        if plan_block is not None:
            candidates.extend(plan_from_lines(plan_block).written_paths)
        candidates.extend(file_markers(cleaned))
    elif response_format is ResponseFormat.FALLBACK:
        candidates.extend(
            path
            for block in iter_fenced_blocks(cleaned)
            if (path := path_from_line(block.preceding_line)) is not None
        )
    else:
        comment = split_plan_comment(cleaned)
        if comment.plan is not None:
            candidates.extend(comment.plan.written_paths)
        candidates.extend(match.group(1) for match in _JSON_PATH_KEY.finditer(comment.remainder))
        candidates.extend(match.group(1) for match in _JSON_PATH_VALUE.finditer(comment.remainder))

    accepted = {path for raw in candidates if (path := accept_path(raw)) is not None}
    return sorted(accepted)


__all__ = [
    "EMPTY_RESPONSE_ERROR",
    "NO_FILES_ERROR",
    "RECOVERY_CHAIN",
    "STRATEGY_TABLE",
    "ArtifactExtractor",
    "DialectParser",
    "ExtractOptions",
    "Strategy",
    "detect_format",
    "extract",
    "extract_file_list",
    "has_files",
    "strategy_chain",
]
