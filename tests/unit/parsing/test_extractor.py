"""
artifact-harvester — unit tests for the artifact extractor

File: tests/unit/parsing/test_extractor.py
Last updated: 2026-10-18

Purpose
- Validate the extraction entrypoint end to end over every dialect.

What this test file should cover
- Input validation: empty and oversized input.
- The strategy table and recovery chain, including error demotion.
- Plan coverage checks that mark suspicious files incomplete.
- ``has_files`` and ``extract_file_list`` on complete and partial text.
- Well-formed JSON exactness and truncated-JSON safety properties.
"""

from __future__ import annotations

import json

import pytest

from artifact_harvester.domain.models import ResponseFormat
from artifact_harvester.observability.events import RecordingPipelineEvents
from artifact_harvester.parsing.extractor import (
    EMPTY_RESPONSE_ERROR,
    NO_FILES_ERROR,
    ExtractOptions,
    extract,
    extract_file_list,
    has_files,
    strategy_chain,
)
from artifact_harvester.parsing.fallback_dialect import FALLBACK_WARNING

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st

    HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    HYPOTHESIS_AVAILABLE = False


def test_plan_comment_with_truncated_json_payload() -> None:
    text = (
        '// PLAN: {"create":["a.ts"],"update":[],"delete":[],"total":1}\n'
        '{"explanation":"x","files":{"a.ts":"export const a = 1;'
    )

    result = extract(text)

    assert result.format is ResponseFormat.JSON_V1
    assert result.files == {"a.ts": "export const a = 1;"}
    assert result.truncated
    assert result.incomplete_files == ["a.ts"]
    assert result.explanation == "x"
    assert result.errors == []


def test_marker_response_with_one_missing_closer() -> None:
    text = (
        "<!-- FILE:src/x.ts -->\nexport const x = 1;\n<!-- /FILE:src/x.ts -->\n"
        "<!-- FILE:src/y.ts -->\nexport const y = 2;\n"
    )

    result = extract(text)

    assert result.files["src/x.ts"] == "export const x = 1;"
    assert result.files["src/y.ts"] == "export const y = 2;"
    assert result.recovered_files == ["src/y.ts"]


@pytest.mark.parametrize("text", ["", "   \n", None, 42])
def test_empty_or_non_text_input(text: object) -> None:
    result = extract(text)

    assert result.files == {}
    assert result.errors == [EMPTY_RESPONSE_ERROR]


def test_oversized_input_is_rejected_before_parsing() -> None:
    result = extract("x" * 1500, ExtractOptions(max_size=1000))

    assert result.errors == ["Response too large (2KB > 1KB limit)"]
    assert result.format is ResponseFormat.UNKNOWN


def test_unknown_input_reports_every_strategy_error() -> None:
    result = extract("I could not generate that.")

    assert result.files == {}
    assert result.errors[-1] == NO_FILES_ERROR
    assert "json-v1 parser: No JSON object found in response" in result.errors
    assert "fallback parser: No fenced code blocks with recoverable files found" in result.errors
    assert FALLBACK_WARNING in result.warnings


def test_unknown_input_without_aggressive_recovery_tries_nothing() -> None:
    result = extract("I could not generate that.", ExtractOptions(aggressive_recovery=False))

    assert result.errors == [NO_FILES_ERROR]
    assert strategy_chain(ResponseFormat.UNKNOWN, aggressive_recovery=False) == ()


def test_strategy_chain_puts_detected_dialect_first_without_duplicates() -> None:
    names = [strategy.name for strategy in strategy_chain(ResponseFormat.MARKER_V2)]

    assert names == ["marker", "json-v1", "fallback"]


def test_recovery_chain_demotes_superseded_errors_to_warnings() -> None:
    text = '{"files": "oops"}\n\n**src/a.ts**\n```ts\nexport const a = 1;\n```\n'

    result = extract(text)

    assert result.format is ResponseFormat.FALLBACK
    assert result.files == {"src/a.ts": "export const a = 1;"}
    assert result.errors == []
    assert "json-v1 parser: No files found in json-v1 payload" in result.warnings
    assert "Detected json-v1 but files were recovered by the fallback parser" in result.warnings


def test_plan_coverage_marks_suspicious_files_incomplete() -> None:
    text = (
        '// PLAN: {"create": ["a.ts", "b.tsx"]}\n'
        + json.dumps({"files": {"b.tsx": "export const B = () => (\n  <div>hi</div>"}})
    )

    result = extract(text)

    assert "Plan lists 1 file(s) missing from response: a.ts" in result.warnings
    assert result.incomplete_files == ["b.tsx"]
    assert result.truncated


def test_events_receive_warnings_and_recovered_paths() -> None:
    recorder = RecordingPipelineEvents()

    result = extract("src/a.ts\n```ts\nexport const a = 1;\n```\n", events=recorder)

    assert recorder.recovered == ["src/a.ts"]
    assert recorder.warnings == result.warnings


def test_include_raw_keeps_the_original_text() -> None:
    text = json.dumps({"files": {"a.ts": "export const a = 1;"}})

    assert extract(text, ExtractOptions(include_raw=True)).raw_response == text
    assert extract(text).raw_response is None


def test_options_validation() -> None:
    with pytest.raises(ValueError, match="max_size"):
        ExtractOptions(max_size=0)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('{"files": {"a.ts": "x"}}', True),
        ("<!-- FILE:a.ts -->\nx", True),
        ("```tsx\nx\n```", True),
        ('{"explanation": "nothing"}', False),
        ("plain prose", False),
        ("", False),
    ],
)
def test_has_files(text: str, expected: bool) -> None:
    assert has_files(text) is expected


def test_extract_file_list_on_partial_json() -> None:
    text = (
        '// PLAN: {"create": ["src/b.ts"]}\n'
        '{"files": {"src/a.ts": "export const a = 1;", "node_modules/x/y.js": "z", "src/c.ts": "exp'
    )

    assert extract_file_list(text) == ["src/a.ts", "src/b.ts", "src/c.ts"]


def test_extract_file_list_on_markers_and_fences() -> None:
    markers = "<!-- PLAN -->\ncreate: src/a.ts\n<!-- /PLAN -->\n<!-- FILE:src/b.ts -->\nx"
    fences = "**src/App.tsx**\n```tsx\nconst a = 1;\n```"

    assert extract_file_list(markers) == ["src/a.ts", "src/b.ts"]
    assert extract_file_list(fences) == ["src/App.tsx"]
    assert extract_file_list("") == []


if HYPOTHESIS_AVAILABLE:
    _FILES = st.dictionaries(
        st.from_regex(r"src/[a-z]{1,8}\.(ts|tsx|js)", fullmatch=True),
        st.text(alphabet="abcxyz ;=(){}\n\"\\", min_size=10, max_size=60).filter(
            lambda content: len(content.strip()) >= 10
        ),
        min_size=1,
        max_size=4,
    )

    @settings(max_examples=30, derandomize=True, deadline=None)
    @given(_FILES)
    def test_well_formed_json_is_extracted_exactly(files: dict[str, str]) -> None:
        result = extract(json.dumps({"explanation": "ok", "files": files}))

        assert result.files == files
        assert not result.truncated
        assert result.errors == []

    @settings(max_examples=30, derandomize=True, deadline=None)
    @given(_FILES, st.data())
    def test_json_truncated_past_halfway_never_corrupts_files(
        files: dict[str, str], data: st.DataObject
    ) -> None:
        text = json.dumps({"files": files})
        cut = data.draw(st.integers(min_value=len(text) // 2, max_value=len(text) - 1))

        result = extract(text[:cut])

        if result.files:
            assert result.truncated
            for path, content in result.files.items():
                assert path in files
                assert files[path].startswith(content)
        else:
            assert result.errors
