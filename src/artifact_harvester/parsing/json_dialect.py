"""
artifact-harvester — JSON dialect parsers (v1 and v2)

File: src/artifact_harvester/parsing/json_dialect.py
Last updated: 2026-10-18

Purpose
- Extract files and metadata from JSON-shaped generator responses.

What should be included in this file
- Payload location: leading ``// PLAN:`` comment, optional fenced wrapper,
  first ``{`` of the document.
- Truncation repair through ``json_repair.decode_json_payload``.
- v1: ``files``/``fileChanges`` maps, ``explanation``, ``deletedFiles``.
- v2: additionally ``meta``, ``plan``, ``manifest`` and ``batch``.

Functional requirements
- ``parse`` never raises; failures are recorded in ``errors``.
- File bodies shorter than the configured floor are skipped.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from artifact_harvester.constants import MIN_PARSED_FILE_LENGTH
from artifact_harvester.domain.models import ParseResult, PlanInfo, ResponseFormat
from artifact_harvester.parsing.json_repair import DecodedJson, decode_json_payload
from artifact_harvester.parsing.metadata import (
    batch_from_mapping,
    cross_check_manifest,
    manifest_from_items,
    meta_from_mapping,
    split_path_list,
)
from artifact_harvester.parsing.text import (
    accept_path,
    clean_generated_code,
    split_plan_comment,
    strip_leading_invisible,
    unwrap_json_fence,
)

REPAIRED_WARNING: Final[str] = "JSON was repaired from truncated response"
MALFORMED_WARNING: Final[str] = "JSON was repaired from malformed response"

_FILE_CONTAINER_KEYS: Final[tuple[str, ...]] = ("files", "fileChanges", "changes", "Changes")
_CONTENT_KEYS: Final[tuple[str, ...]] = ("content", "code", "diff")
_RESERVED_ROOT_KEYS: Final[frozenset[str]] = frozenset(
    {"explanation", "deletedFiles", "meta", "plan", "manifest", "batch", *_FILE_CONTAINER_KEYS}
)


class JsonDialectParser:
    """Parser for the v1 and v2 JSON dialects."""

    def __init__(
        self,
        response_format: ResponseFormat = ResponseFormat.JSON_V1,
        *,
        min_file_length: int = MIN_PARSED_FILE_LENGTH,
    ) -> None:
        if response_format not in (ResponseFormat.JSON_V1, ResponseFormat.JSON_V2):
            raise ValueError(f"unsupported JSON dialect: {response_format}")
        self._format = response_format
        self._min_file_length = min_file_length

    @property
    def format(self) -> ResponseFormat:
        return self._format

    def parse(self, text: str) -> ParseResult:
        result = ParseResult(format=self._format)
        body, comment_plan = _locate_payload(text)
        decoded = decode_json_payload(body)
        if decoded.value is None:
            result.errors.append(decoded.error or "JSON parse failed")
            return result

        if decoded.repaired:
            result.warnings.append(REPAIRED_WARNING if decoded.truncated else MALFORMED_WARNING)
            result.truncated = decoded.truncated

        root = decoded.value
        explanation = root.get("explanation")
        if isinstance(explanation, str) and explanation.strip():
            result.explanation = explanation.strip()

        self._collect_files(root, result)
        _mark_truncated_file(decoded, result)

        deleted = split_path_list(root.get("deletedFiles"))
        plan = comment_plan
        raw_plan = root.get("plan")
        if isinstance(raw_plan, Mapping):
            plan = PlanInfo.from_mapping(raw_plan)
        result.plan = plan

        if self._format is ResponseFormat.JSON_V2:
            self._collect_v2_metadata(root, result)
            if result.plan is not None and not deleted:
                deleted = result.plan.delete
        result.deleted_files = [path for path in deleted if accept_path(path) is not None]

        cross_check_manifest(result)
        if not result.files:
            result.errors.append(f"No files found in {self._format.value} payload")
        return result

    def _collect_files(self, root: Mapping[str, object], result: ParseResult) -> None:
        containers = [root[key] for key in _FILE_CONTAINER_KEYS if key in root]
        if not containers and self._format is ResponseFormat.JSON_V1:
            containers = [
                {key: value for key, value in root.items() if key not in _RESERVED_ROOT_KEYS}
            ]

        for container in containers:
            for raw_path, value in _iter_file_entries(container):
                path = accept_path(raw_path)
                content = _file_content(value)
                if path is None or content is None:
                    continue
                cleaned = clean_generated_code(content)
                if len(cleaned.strip()) < self._min_file_length:
                    result.warnings.append(
                        f'File "{path}" skipped: content shorter than '
                        f"{self._min_file_length} characters"
                    )
                    continue
                result.add_file(path, cleaned)

    def _collect_v2_metadata(self, root: Mapping[str, object], result: ParseResult) -> None:
        meta = root.get("meta")
        if isinstance(meta, Mapping):
            result.meta = meta_from_mapping(meta)

        manifest = root.get("manifest")
        if isinstance(manifest, list):
            result.manifest = manifest_from_items(manifest)

        batch = root.get("batch")
        if isinstance(batch, Mapping):
            result.batch = batch_from_mapping(batch, result.warnings)
            if not result.batch.is_complete:
                result.truncated = True


def _locate_payload(text: str) -> tuple[str, PlanInfo | None]:
    """Strip the plan comment and fenced wrapper in whichever order they appear."""

    comment = split_plan_comment(strip_leading_invisible(text))
    body = unwrap_json_fence(comment.remainder)
    plan = comment.plan
    if plan is None:
        inner = split_plan_comment(body)
        plan = inner.plan
        body = inner.remainder
    return body, plan


def _iter_file_entries(container: object) -> list[tuple[object, object]]:
    if isinstance(container, Mapping):
        return list(container.items())
    if isinstance(container, list):
        entries: list[tuple[object, object]] = []
        for item in container:
            if isinstance(item, Mapping):
                entries.append((item.get("path", item.get("file")), item))
        return entries
    return []


def _file_content(value: object) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        for key in _CONTENT_KEYS:
            candidate = value.get(key)
            if isinstance(candidate, str):
                return candidate
    return None


def _mark_truncated_file(decoded: DecodedJson, result: ParseResult) -> None:
    if not decoded.truncated or not result.files:
        return
    key = decoded.truncated_key
    if key is not None and key in result.files:
        result.mark_incomplete(key)
    elif key in _CONTENT_KEYS:
        result.mark_incomplete(next(reversed(result.files)))


__all__ = ["MALFORMED_WARNING", "REPAIRED_WARNING", "JsonDialectParser"]
