"""Plan, manifest, batch and meta builders shared by the JSON and marker dialects."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from artifact_harvester.domain.models import (
    BatchInfo,
    FileAction,
    ManifestEntry,
    ManifestStatus,
    MetaInfo,
    ParseResult,
    PlanInfo,
    parse_file_action,
    parse_manifest_status,
)
from artifact_harvester.parsing.text import normalize_path, path_matches

_TRUE_WORDS = frozenset({"true", "yes", "1", "y", "complete", "done"})
_FALSE_WORDS = frozenset({"false", "no", "0", "n", "incomplete"})


def coerce_int(value: object, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        digits = value.strip().replace(",", "").lstrip("~")
        if digits.isdigit():
            return int(digits)
    return default


def coerce_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
    return default


def split_path_list(value: object) -> tuple[str, ...]:
    """Accept either a JSON list or a comma separated string of paths."""

    if isinstance(value, str):
        items: Iterable[object] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return ()
    return tuple(normalize_path(item) for item in items if isinstance(item, str) and item.strip())


def build_batch(
    *,
    current: object,
    total: object,
    is_complete: object,
    completed: object,
    remaining: object,
    next_batch_hint: object,
    warnings: list[str],
) -> BatchInfo:
    """Build a ``BatchInfo``; a "complete" batch that still lists remaining files is incomplete."""

    remaining_paths = split_path_list(remaining)
    complete = is_complete is not False and coerce_bool(is_complete, True)
    if complete and remaining_paths:
        warnings.append(
            "Batch declared complete but lists remaining files; treating as incomplete"
        )
        complete = False
    hint = next_batch_hint.strip() if isinstance(next_batch_hint, str) else None
    return BatchInfo(
        current=max(0, coerce_int(current, 1)),
        total=max(0, coerce_int(total, 1)),
        is_complete=complete,
        completed=split_path_list(completed),
        remaining=remaining_paths,
        next_batch_hint=hint or None,
    )


def batch_from_mapping(payload: Mapping[str, object], warnings: list[str]) -> BatchInfo:
    return build_batch(
        current=payload.get("current"),
        total=payload.get("total"),
        is_complete=payload.get("isComplete", payload.get("is_complete")),
        completed=payload.get("completed"),
        remaining=payload.get("remaining"),
        next_batch_hint=payload.get("nextBatchHint", payload.get("next_batch_hint")),
        warnings=warnings,
    )


def meta_from_mapping(payload: Mapping[str, object]) -> MetaInfo:
    def _text(key: str) -> str | None:
        value = payload.get(key)
        if value is None:
            return None
        return str(value).strip() or None

    return MetaInfo(format=_text("format"), version=_text("version"), timestamp=_text("timestamp"))


def manifest_from_items(items: Sequence[object]) -> tuple[ManifestEntry, ...]:
    entries: list[ManifestEntry] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        path = item.get("path")
        if not isinstance(path, str) or not path.strip():
            continue
        entries.append(
            ManifestEntry(
                path=normalize_path(path),
                action=parse_file_action(item.get("action")),
                declared_lines=coerce_int(item.get("lines"), 0),
                declared_tokens=coerce_int(item.get("tokens"), 0),
                status=parse_manifest_status(item.get("status")),
            )
        )
    return tuple(entries)


def manifest_from_table(block: str) -> tuple[ManifestEntry, ...]:
    """Parse pipe-table rows ``file | action | lines | tokens | status``."""

    entries: list[ManifestEntry] = []
    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line.startswith("|") or line.startswith("|-") or line.startswith("| -"):
            continue
        cells = [cell.strip() for cell in line.strip("|").split("|")]
        if len(cells) < 4 or cells[0].lower() in {"file", "path"}:
            continue
        if set(cells[0]) <= {"-", ":"}:
            continue
        entries.append(
            ManifestEntry(
                path=normalize_path(cells[0].strip("`")),
                action=parse_file_action(cells[1]),
                declared_lines=coerce_int(cells[2], 0),
                declared_tokens=coerce_int(cells[3], 0),
                status=parse_manifest_status(cells[4] if len(cells) > 4 else None),
            )
        )
    return tuple(entries)


def key_value_lines(block: str) -> dict[str, str]:
    """Parse ``key: value`` lines; keys are lower-cased."""

    values: dict[str, str] = {}
    for raw_line in block.splitlines():
        key, separator, value = raw_line.partition(":")
        if not separator:
            continue
        normalized_key = key.strip().lower()
        if normalized_key:
            values[normalized_key] = value.strip()
    return values


def plan_from_lines(block: str) -> PlanInfo:
    values = key_value_lines(block)
    return PlanInfo(
        create=split_path_list(values.get("create", "")),
        update=split_path_list(values.get("update", "")),
        delete=split_path_list(values.get("delete", "")),
    )


def cross_check_manifest(result: ParseResult) -> None:
    """Warn about included, non-deleted manifest entries that produced no file."""

    if not result.manifest:
        return
    missing = [
        entry.path
        for entry in result.manifest
        if entry.status is ManifestStatus.INCLUDED
        and entry.action is not FileAction.DELETE
        and not any(path_matches(path, entry.path) for path in result.files)
    ]
    if missing:
        result.warnings.append(f"Manifest validation: missing files: {', '.join(missing)}")


__all__ = [
    "batch_from_mapping",
    "build_batch",
    "coerce_bool",
    "coerce_int",
    "cross_check_manifest",
    "key_value_lines",
    "manifest_from_items",
    "manifest_from_table",
    "meta_from_mapping",
    "plan_from_lines",
    "split_path_list",
]
