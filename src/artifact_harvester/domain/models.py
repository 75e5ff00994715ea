"""Dataclass domain models for parsed responses, plans, batches and repair results."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


class ResponseFormat(StrEnum):
    JSON_V1 = "json-v1"
    JSON_V2 = "json-v2"
    MARKER_V1 = "marker-v1"
    MARKER_V2 = "marker-v2"
    FALLBACK = "fallback"
    UNKNOWN = "unknown"


class FileAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ManifestStatus(StrEnum):
    INCLUDED = "included"
    PENDING = "pending"
    MARKED = "marked"
    SKIPPED = "skipped"


def parse_file_action(value: object, *, default: FileAction = FileAction.CREATE) -> FileAction:
    """Map loosely-typed generator input onto a ``FileAction``."""

    if isinstance(value, str):
        normalized = value.strip().lower()
        for action in FileAction:
            if action.value == normalized:
                return action
    return default


def parse_manifest_status(
    value: object, *, default: ManifestStatus = ManifestStatus.INCLUDED
) -> ManifestStatus:
    if isinstance(value, str):
        normalized = value.strip().lower()
        for status in ManifestStatus:
            if status.value == normalized:
                return status
    return default


def _as_path_tuple(values: Iterable[object] | None) -> tuple[str, ...]:
    if values is None:
        return ()
    out: list[str] = []
    for item in values:
        if isinstance(item, str) and item.strip():
            out.append(item.strip())
    return tuple(out)


@dataclass(frozen=True, slots=True)
class ParsedFile:
    """One extracted artifact."""

    path: str
    content: str
    action: FileAction = FileAction.CREATE
    recovered: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.path, str) or not self.path.strip():
            raise ValueError("path must be a non-empty string")
        if "." not in self.path and "/" not in self.path:
            raise ValueError(f"path {self.path!r} must contain an extension or a slash")
        if not isinstance(self.content, str):
            raise TypeError("content must be a string")


@dataclass(frozen=True, slots=True)
class PlanInfo:
    """Declared intent of a generation: which paths are created, updated, deleted."""

    create: tuple[str, ...] = ()
    update: tuple[str, ...] = ()
    delete: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "create", _as_path_tuple(self.create))
        object.__setattr__(self, "update", _as_path_tuple(self.update))
        object.__setattr__(self, "delete", _as_path_tuple(self.delete))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> PlanInfo:
        def _list(key: str) -> tuple[str, ...]:
            raw = payload.get(key)
            if isinstance(raw, (list, tuple)):
                return _as_path_tuple(raw)
            return ()

        return cls(create=_list("create"), update=_list("update"), delete=_list("delete"))

    @property
    def written_paths(self) -> tuple[str, ...]:
        """Paths the plan expects to carry content (create + update)."""

        return self.create + tuple(path for path in self.update if path not in self.create)

    @property
    def is_empty(self) -> bool:
        return not (self.create or self.update or self.delete)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "create": list(self.create),
            "update": list(self.update),
            "delete": list(self.delete),
        }


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    path: str
    action: FileAction = FileAction.CREATE
    declared_lines: int = 0
    declared_tokens: int = 0
    status: ManifestStatus = ManifestStatus.INCLUDED

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "path": self.path,
            "action": self.action.value,
            "declared_lines": self.declared_lines,
            "declared_tokens": self.declared_tokens,
            "status": self.status.value,
        }


@dataclass(frozen=True, slots=True)
class MetaInfo:
    format: str | None = None
    version: str | None = None
    timestamp: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {"format": self.format, "version": self.version, "timestamp": self.timestamp}


@dataclass(frozen=True, slots=True)
class BatchInfo:
    """Batch progress declared by the generator.

    A complete batch never lists remaining paths; parsers normalize contradictory
    payloads before construction.
    """

    current: int = 1
    total: int = 1
    is_complete: bool = True
    completed: tuple[str, ...] = ()
    remaining: tuple[str, ...] = ()
    next_batch_hint: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "completed", _as_path_tuple(self.completed))
        object.__setattr__(self, "remaining", _as_path_tuple(self.remaining))
        if self.current < 0 or self.total < 0:
            raise ValueError("batch counters must be >= 0")
        if self.is_complete and self.remaining:
            raise ValueError("a complete batch cannot list remaining files")

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "current": self.current,
            "total": self.total,
            "is_complete": self.is_complete,
            "completed": list(self.completed),
            "remaining": list(self.remaining),
            "next_batch_hint": self.next_batch_hint,
        }


@dataclass(slots=True)
class ParseResult:
    """Aggregate output of one extraction over one response."""

    format: ResponseFormat = ResponseFormat.UNKNOWN
    files: dict[str, str] = field(default_factory=dict)
    explanation: str | None = None
    plan: PlanInfo | None = None
    manifest: tuple[ManifestEntry, ...] | None = None
    batch: BatchInfo | None = None
    meta: MetaInfo | None = None
    truncated: bool = False
    incomplete_files: list[str] = field(default_factory=list)
    recovered_files: list[str] = field(default_factory=list)
    deleted_files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    raw_response: str | None = None

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def has_files(self) -> bool:
        return bool(self.files)

    def add_file(self, path: str, content: str, *, recovered: bool = False) -> None:
        self.files[path] = content
        if recovered and path not in self.recovered_files:
            self.recovered_files.append(path)

    def mark_incomplete(self, path: str) -> None:
        if path not in self.incomplete_files:
            self.incomplete_files.append(path)

    def parsed_files(self) -> tuple[ParsedFile, ...]:
        """Return files as ``ParsedFile`` values with actions derived from the plan."""

        updates = set(self.plan.update) if self.plan is not None else set()
        recovered = set(self.recovered_files)
        return tuple(
            ParsedFile(
                path=path,
                content=content,
                action=FileAction.UPDATE if path in updates else FileAction.CREATE,
                recovered=path in recovered,
            )
            for path, content in self.files.items()
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "format": self.format.value,
            "files": dict(self.files),
            "explanation": self.explanation,
            "plan": self.plan.to_dict() if self.plan is not None else None,
            "manifest": (
                [entry.to_dict() for entry in self.manifest] if self.manifest is not None else None
            ),
            "batch": self.batch.to_dict() if self.batch is not None else None,
            "meta": self.meta.to_dict() if self.meta is not None else None,
            "truncated": self.truncated,
            "incomplete_files": list(self.incomplete_files),
            "recovered_files": list(self.recovered_files),
            "deleted_files": list(self.deleted_files),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, indent=2, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class FixResult:
    """Outcome of the syntax repair pipeline over one file."""

    code: str
    fixes_applied: tuple[str, ...] = ()
    issues: tuple[str, ...] = ()
    rolled_back: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.fixes_applied) and not self.rolled_back

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "code": self.code,
            "fixes_applied": list(self.fixes_applied),
            "issues": list(self.issues),
            "rolled_back": self.rolled_back,
        }


__all__ = [
    "BatchInfo",
    "FileAction",
    "FixResult",
    "JSONScalar",
    "JSONValue",
    "ManifestEntry",
    "ManifestStatus",
    "MetaInfo",
    "ParseResult",
    "ParsedFile",
    "PlanInfo",
    "ResponseFormat",
    "parse_file_action",
    "parse_manifest_status",
]
