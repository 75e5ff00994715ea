"""
artifact-harvester — unit tests for the JSON dialect parsers

File: tests/unit/parsing/test_json_dialect.py
Last updated: 2026-10-18

Purpose
- Validate file, plan, manifest and batch extraction from v1 and v2 payloads.

What this test file should cover
- v1 file maps, change lists and root-level maps.
- v2 metadata blocks and batch normalization.
- Repair warnings and incomplete-file marking on truncated payloads.
- Short, ignored and fenced file bodies.
"""

from __future__ import annotations

import json

import pytest

from artifact_harvester.domain.models import FileAction, ManifestStatus, ResponseFormat
from artifact_harvester.parsing.json_dialect import (
    MALFORMED_WARNING,
    REPAIRED_WARNING,
    JsonDialectParser,
)

V1 = JsonDialectParser(ResponseFormat.JSON_V1)
V2 = JsonDialectParser(ResponseFormat.JSON_V2)


def test_v1_files_explanation_and_deleted_paths() -> None:
    text = json.dumps(
        {
            "explanation": "  done  ",
            "files": {"src/a.ts": "export const a = 1;"},
            "deletedFiles": ["src/old.ts"],
        }
    )

    result = V1.parse(text)

    assert result.format is ResponseFormat.JSON_V1
    assert result.files == {"src/a.ts": "export const a = 1;"}
    assert result.explanation == "done"
    assert result.deleted_files == ["src/old.ts"]
    assert result.errors == []
    assert not result.truncated


def test_v1_change_list_and_root_level_map() -> None:
    changes = V1.parse(
        json.dumps({"fileChanges": [{"path": "a.ts", "content": "export const a = 1;"}]})
    )
    root_level = V1.parse(json.dumps({"b.ts": "export const b = 2;", "explanation": "x"}))

    assert changes.files == {"a.ts": "export const a = 1;"}
    assert root_level.files == {"b.ts": "export const b = 2;"}
    assert root_level.explanation == "x"


def test_fenced_file_bodies_are_unwrapped() -> None:
    result = V1.parse(json.dumps({"files": {"a.ts": "```ts\nconst alpha = 1;\n```"}}))

    assert result.files == {"a.ts": "const alpha = 1;"}


def test_short_and_ignored_files_are_skipped() -> None:
    result = V1.parse(
        json.dumps({"files": {"a.ts": "x", "node_modules/pkg/index.js": "module.exports = 1;"}})
    )

    assert result.files == {}
    assert 'File "a.ts" skipped: content shorter than 10 characters' in result.warnings
    assert result.errors == ["No files found in json-v1 payload"]


def test_payload_after_plan_comment_and_fence() -> None:
    text = (
        '// PLAN: {"create": ["a.ts"], "update": ["b.ts"], "delete": []}\n'
        '```json\n{"files": {"a.ts": "export const a = 1;"}}\n```'
    )

    result = V1.parse(text)

    assert result.files == {"a.ts": "export const a = 1;"}
    assert result.plan is not None
    assert result.plan.written_paths == ("a.ts", "b.ts")


def test_v2_metadata_manifest_and_incomplete_batch() -> None:
    payload = {
        "meta": {"format": "json", "version": "2.0", "timestamp": "2026-10-18T00:00:00Z"},
        "plan": {"create": ["a.ts", "b.ts"], "update": [], "delete": ["c.ts"]},
        "manifest": [
            {"path": "a.ts", "action": "create", "lines": 3, "tokens": "~20", "status": "included"},
            {"path": "b.ts", "action": "create", "status": "pending"},
        ],
        "batch": {
            "current": 1,
            "total": 2,
            "isComplete": False,
            "completed": ["a.ts"],
            "remaining": ["b.ts"],
            "nextBatchHint": "b.ts next",
        },
        "files": {"a.ts": "export const a = 1;"},
    }

    result = V2.parse(json.dumps(payload))

    assert result.format is ResponseFormat.JSON_V2
    assert result.meta is not None and result.meta.version == "2.0"
    assert result.deleted_files == ["c.ts"]
    assert result.manifest is not None
    assert result.manifest[0].declared_tokens == 20
    assert result.manifest[0].action is FileAction.CREATE
    assert result.manifest[1].status is ManifestStatus.PENDING
    assert result.batch is not None
    assert result.batch.remaining == ("b.ts",)
    assert result.batch.next_batch_hint == "b.ts next"
    assert result.truncated
    assert not any(warning.startswith("Manifest validation") for warning in result.warnings)


def test_v2_complete_batch_with_remaining_files_is_treated_as_incomplete() -> None:
    payload = {
        "meta": {"version": "2.0"},
        "batch": {"current": 1, "total": 1, "isComplete": True, "remaining": ["b.ts"]},
        "files": {"a.ts": "export const a = 1;"},
    }

    result = V2.parse(json.dumps(payload))

    assert result.batch is not None
    assert not result.batch.is_complete
    assert "Batch declared complete but lists remaining files; treating as incomplete" in (
        result.warnings
    )


def test_manifest_entry_without_file_produces_warning() -> None:
    payload = {
        "manifest": [{"path": "a.ts"}, {"path": "gone.ts"}, {"path": "old.ts", "action": "delete"}],
        "files": {"a.ts": "export const a = 1;"},
    }

    result = V2.parse(json.dumps(payload))

    assert "Manifest validation: missing files: gone.ts" in result.warnings


def test_truncated_payload_marks_the_cut_file_incomplete() -> None:
    text = '{"files": {"a.ts": "export const a = 1;", "b.ts": "export const b = '

    result = V1.parse(text)

    assert result.files == {"a.ts": "export const a = 1;", "b.ts": "export const b = "}
    assert result.incomplete_files == ["b.ts"]
    assert result.truncated
    assert REPAIRED_WARNING in result.warnings


def test_malformed_complete_payload_is_repaired_without_truncation() -> None:
    result = V1.parse('{"files": {"a.ts": "export const a = 1;"},}')

    assert result.files == {"a.ts": "export const a = 1;"}
    assert MALFORMED_WARNING in result.warnings
    assert not result.truncated


def test_missing_payload_is_an_error_not_an_exception() -> None:
    result = V1.parse("the model refused")

    assert result.files == {}
    assert result.errors == ["No JSON object found in response"]


def test_unsupported_dialect_is_rejected() -> None:
    with pytest.raises(ValueError, match="unsupported JSON dialect"):
        JsonDialectParser(ResponseFormat.MARKER_V1)
