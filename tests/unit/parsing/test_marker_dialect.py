"""
artifact-harvester — unit tests for the marker dialect parser

File: tests/unit/parsing/test_marker_dialect.py
Last updated: 2026-10-18

Purpose
- Validate block extraction and the two-pass FILE extraction.

What this test file should cover
- META/PLAN/MANIFEST/BATCH/EXPLANATION blocks, each optional.
- Well-formed pairs taken verbatim.
- Positional recovery of unclosed openers; the final open file is incomplete.
- Removing every closer but the last yields the same files, tagged recovered.
"""

from __future__ import annotations

from artifact_harvester.domain.models import ManifestStatus, ResponseFormat
from artifact_harvester.parsing.extractor import extract
from artifact_harvester.parsing.marker_dialect import (
    MarkerDialectParser,
    extract_block,
    file_markers,
)

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st

    HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    HYPOTHESIS_AVAILABLE = False

PARSER = MarkerDialectParser()

FULL_V2 = """<!-- META -->
format: marker
version: 2.0
<!-- /META -->
<!-- PLAN -->
create: src/a.ts, src/b.ts
update:
delete: src/old.ts
<!-- /PLAN -->
<!-- MANIFEST -->
| file | action | lines | tokens | status |
|------|--------|-------|--------|--------|
| src/a.ts | create | 1 | 10 | included |
| src/b.ts | create | 1 | 10 | pending |
<!-- /MANIFEST -->
<!-- BATCH -->
current: 1
total: 2
is_complete: false
completed: src/a.ts
remaining: src/b.ts
<!-- /BATCH -->
<!-- EXPLANATION -->
First batch.
<!-- /EXPLANATION -->
<!-- FILE:src/a.ts -->
export const a = 1;
<!-- /FILE:src/a.ts -->
"""


def _render(files: dict[str, str], *, close: set[str]) -> str:
    parts = []
    for path, content in files.items():
        parts.append(f"<!-- FILE:{path} -->\n{content}\n")
        if path in close:
            parts.append(f"<!-- /FILE:{path} -->\n")
    return "".join(parts)


def test_full_v2_response_blocks() -> None:
    result = PARSER.parse(FULL_V2)

    assert result.format is ResponseFormat.MARKER_V2
    assert result.meta is not None and result.meta.version == "2.0"
    assert result.plan is not None
    assert result.plan.create == ("src/a.ts", "src/b.ts")
    assert result.deleted_files == ["src/old.ts"]
    assert result.manifest is not None
    assert [entry.status for entry in result.manifest] == [
        ManifestStatus.INCLUDED,
        ManifestStatus.PENDING,
    ]
    assert result.batch is not None
    assert result.batch.current == 1 and result.batch.total == 2
    assert result.batch.remaining == ("src/b.ts",)
    assert result.truncated
    assert result.explanation == "First batch."
    assert result.files == {"src/a.ts": "export const a = 1;"}
    assert result.recovered_files == []


def test_first_file_verbatim_and_open_last_file_recovered() -> None:
    text = (
        "<!-- FILE:src/first.ts -->\nexport const first = 1;\n<!-- /FILE:src/first.ts -->\n"
        "<!-- FILE:src/second.ts -->\nexport const second = 2;\n"
    )

    result = PARSER.parse(text)

    assert result.files == {
        "src/first.ts": "export const first = 1;",
        "src/second.ts": "export const second = 2;",
    }
    assert result.recovered_files == ["src/second.ts"]
    assert result.incomplete_files == ["src/second.ts"]
    assert result.truncated
    assert 'File "src/second.ts" was truncated at end of response' in result.warnings


def test_unclosed_middle_file_runs_to_next_opener() -> None:
    text = "<!-- FILE:a.ts -->\nconst a = 1;\n<!-- FILE:b.ts -->\nconst b = 2;\n<!-- /FILE:b.ts -->"

    result = PARSER.parse(text)

    assert result.files == {"a.ts": "const a = 1;", "b.ts": "const b = 2;"}
    assert result.recovered_files == ["a.ts"]
    assert result.incomplete_files == []
    assert not result.truncated
    assert 'File "a.ts" had missing closing marker - recovered' in result.warnings


def test_mismatched_closer_and_control_marker_bound_recovery() -> None:
    text = (
        "<!-- FILE:a.ts -->\nconst a = 1;\n<!-- /FILE:wrong.ts -->\n"
        "<!-- EXPLANATION -->\nnotes\n<!-- /EXPLANATION -->\n"
    )

    result = PARSER.parse(text)

    assert result.files == {"a.ts": "const a = 1;"}
    assert result.recovered_files == ["a.ts"]
    assert result.incomplete_files == []
    assert result.explanation == "notes"


def test_empty_file_block_is_skipped_with_warning() -> None:
    result = PARSER.parse("<!-- FILE:a.ts -->\n\n<!-- /FILE:a.ts -->")

    assert result.files == {}
    assert 'File "a.ts" was empty' in result.warnings
    assert result.errors == ["No FILE blocks found in marker response"]


def test_block_and_marker_helpers() -> None:
    assert extract_block(FULL_V2, "EXPLANATION") == "First batch."
    assert extract_block(FULL_V2, "MISSING") is None
    assert file_markers(FULL_V2) == ["src/a.ts"]


if HYPOTHESIS_AVAILABLE:
    _PATHS = st.lists(
        st.from_regex(r"src/[a-z]{1,8}\.ts", fullmatch=True), min_size=2, max_size=4, unique=True
    )
    _CONTENT = st.text(alphabet="abcxyz0123 ;=(){}\n", min_size=1, max_size=40).map(str.strip).filter(
        bool
    )

    @settings(max_examples=30, derandomize=True, deadline=None)
    @given(_PATHS, st.data())
    def test_well_formed_blocks_are_extracted_exactly(paths: list[str], data: st.DataObject) -> None:
        files = {path: data.draw(_CONTENT) for path in paths}

        result = extract(_render(files, close=set(files)))

        assert result.files == files
        assert result.recovered_files == []
        assert not result.truncated

    @settings(max_examples=30, derandomize=True, deadline=None)
    @given(_PATHS, st.data())
    def test_dropping_closers_except_last_recovers_same_files(
        paths: list[str], data: st.DataObject
    ) -> None:
        files = {path: data.draw(_CONTENT) for path in paths}

        result = extract(_render(files, close={paths[-1]}))

        assert result.files == files
        assert result.recovered_files == paths[:-1]
        assert result.incomplete_files == []
