"""
artifact-harvester — unit tests for format detection

File: tests/unit/parsing/test_detection.py
Last updated: 2026-10-18

Purpose
- Validate that each wire dialect is fingerprinted and that precedence is
  marker v2, marker v1, JSON v2, JSON v1, fallback, unknown.
"""

from __future__ import annotations

import pytest

from artifact_harvester.domain.models import ResponseFormat
from artifact_harvester.parsing.detection import detect_format

MARKER_V2 = (
    "<!-- META -->\nformat: marker\nversion: 2.0\n<!-- /META -->\n"
    "<!-- FILE:src/a.ts -->\nexport const a = 1;\n<!-- /FILE:src/a.ts -->\n"
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        (MARKER_V2, ResponseFormat.MARKER_V2),
        ("<!-- FILE:a.ts -->\nx\n<!-- /FILE:a.ts -->", ResponseFormat.MARKER_V1),
        (
            "<!-- PLAN -->\ncreate: a.ts\n<!-- /PLAN -->\n<!-- EXPLANATION -->\nx\n<!-- /EXPLANATION -->",
            ResponseFormat.MARKER_V1,
        ),
        ('{"meta": {"format": "json", "version": "2.0"}, "files": {}}', ResponseFormat.JSON_V2),
        ('{"batch": {"current": 1}, "manifest": [], "files": {}}', ResponseFormat.JSON_V2),
        ('{"files": {"a.ts": "x"}}', ResponseFormat.JSON_V1),
        ('```json\n{"files": {}}\n```', ResponseFormat.JSON_V1),
        ('// PLAN: {"create": ["a.ts"]}\n{"explanation": "x"}', ResponseFormat.JSON_V1),
        ('{"src/a.ts": "export const a = 1;"}', ResponseFormat.JSON_V1),
        ("\ufeff\u200b{\"files\": {}}", ResponseFormat.JSON_V1),
        ("Here you go:\n```tsx\nconst a = 1;\n```\n", ResponseFormat.FALLBACK),
        ("Just some prose without code.", ResponseFormat.UNKNOWN),
        ("```python\nprint('x')\n```", ResponseFormat.UNKNOWN),
        ("", ResponseFormat.UNKNOWN),
        ("  \n\t", ResponseFormat.UNKNOWN),
    ],
)
def test_detect_format(text: str, expected: ResponseFormat) -> None:
    assert detect_format(text) is expected


def test_marker_fingerprint_wins_over_json_body() -> None:
    text = '<!-- FILE:a.json -->\n{"files": {}}\n<!-- /FILE:a.json -->'

    assert detect_format(text) is ResponseFormat.MARKER_V1


def test_non_string_input_is_unknown() -> None:
    assert detect_format(None) is ResponseFormat.UNKNOWN  # type: ignore[arg-type]
