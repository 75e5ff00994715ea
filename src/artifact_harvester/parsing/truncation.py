"""Heuristic truncation analysis over extracted file contents."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from artifact_harvester.constants import (
    DEFAULT_BRACE_IMBALANCE_THRESHOLD,
    DEFAULT_MARKUP_EXTENSIONS,
    DEFAULT_PAREN_IMBALANCE_THRESHOLD,
)
from artifact_harvester.domain.models import ParseResult
from artifact_harvester.parsing.text import path_matches


@dataclass(frozen=True, slots=True)
class TruncationThresholds:
    """Tunable limits for the suspicious-truncation heuristic.

    The defaults were picked empirically; raise them if continuation is
    triggered for files that were actually complete.
    """

    brace_imbalance: int = DEFAULT_BRACE_IMBALANCE_THRESHOLD
    paren_imbalance: int = DEFAULT_PAREN_IMBALANCE_THRESHOLD
    markup_extensions: tuple[str, ...] = DEFAULT_MARKUP_EXTENSIONS

    def __post_init__(self) -> None:
        if self.brace_imbalance < 0 or self.paren_imbalance < 0:
            raise ValueError("imbalance thresholds must be >= 0")
        object.__setattr__(
            self,
            "markup_extensions",
            tuple(ext if ext.startswith(".") else f".{ext}" for ext in self.markup_extensions),
        )


class TruncationAction(StrEnum):
    NONE = "none"
    CONTINUATION = "continuation"
    PARTIAL = "partial"


@dataclass(frozen=True, slots=True)
class TruncationReport:
    action: TruncationAction
    missing_files: tuple[str, ...] = ()
    suspicious_files: tuple[str, ...] = ()


def looks_truncated(
    path: str,
    content: str,
    thresholds: TruncationThresholds | None = None,
) -> bool:
    """Return ``True`` when ``content`` shows structural signs of being cut off."""

    limits = thresholds or TruncationThresholds()
    stripped = content.rstrip()
    if not stripped:
        return True
    if stripped.endswith("\\"):
        return True
    if stripped.count("{") - stripped.count("}") > limits.brace_imbalance:
        return True
    if stripped.count("(") - stripped.count(")") > limits.paren_imbalance:
        return True
    if path.lower().endswith(limits.markup_extensions):
        return stripped[-1] not in "};)"
    return False


def find_truncated_files(
    files: Mapping[str, str],
    thresholds: TruncationThresholds | None = None,
) -> tuple[str, ...]:
    return tuple(path for path, content in files.items() if looks_truncated(path, content, thresholds))


def missing_planned_files(result: ParseResult) -> tuple[str, ...]:
    """Planned create/update paths with no extracted file (exact or basename match)."""

    planned = result.plan.written_paths if result.plan is not None else ()
    return tuple(
        path for path in planned if not any(path_matches(found, path) for found in result.files)
    )


def analyze_response(
    result: ParseResult,
    thresholds: TruncationThresholds | None = None,
) -> TruncationReport:
    """Decide whether a parse needs continuation.

    Heuristic content checks only run when the plan names files that were not
    delivered; a response that delivered its whole plan is trusted.
    """

    missing = missing_planned_files(result)
    if result.batch is not None and not result.batch.is_complete:
        missing = tuple(dict.fromkeys(missing + result.batch.remaining))

    if not missing and not result.truncated:
        return TruncationReport(action=TruncationAction.NONE)

    suspicious = find_truncated_files(result.files, thresholds) if missing else ()
    suspicious = tuple(dict.fromkeys(suspicious + tuple(result.incomplete_files)))
    action = TruncationAction.CONTINUATION if missing or not result.files else TruncationAction.PARTIAL
    return TruncationReport(action=action, missing_files=missing, suspicious_files=suspicious)


__all__ = [
    "TruncationAction",
    "TruncationReport",
    "TruncationThresholds",
    "analyze_response",
    "find_truncated_files",
    "looks_truncated",
    "missing_planned_files",
]
