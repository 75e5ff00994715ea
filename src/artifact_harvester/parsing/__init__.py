"""
artifact-harvester parsing package public API.

File: src/artifact_harvester/parsing/__init__.py
Last updated: 2026-10-18

Purpose
- Export format detection, the dialect parsers and the artifact extractor.

What should be included in this file
- The extractor entrypoints and their options.
- Dialect parsers for callers that already know the wire format.
- Truncation analysis used by the continuation layer.

Functional requirements
- Parsing is synchronous and performs no IO.
"""

from artifact_harvester.parsing.detection import detect_format
from artifact_harvester.parsing.extractor import (
    NO_FILES_ERROR,
    RECOVERY_CHAIN,
    STRATEGY_TABLE,
    ArtifactExtractor,
    DialectParser,
    ExtractOptions,
    Strategy,
    extract,
    extract_file_list,
    has_files,
    strategy_chain,
)
from artifact_harvester.parsing.fallback_dialect import FallbackDialectParser
from artifact_harvester.parsing.json_dialect import JsonDialectParser
from artifact_harvester.parsing.json_repair import decode_json_payload, repair_truncated_json
from artifact_harvester.parsing.marker_dialect import MarkerDialectParser
from artifact_harvester.parsing.truncation import (
    TruncationAction,
    TruncationReport,
    TruncationThresholds,
    analyze_response,
    find_truncated_files,
    looks_truncated,
)

__all__ = [
    "NO_FILES_ERROR",
    "RECOVERY_CHAIN",
    "STRATEGY_TABLE",
    "ArtifactExtractor",
    "DialectParser",
    "ExtractOptions",
    "FallbackDialectParser",
    "JsonDialectParser",
    "MarkerDialectParser",
    "Strategy",
    "TruncationAction",
    "TruncationReport",
    "TruncationThresholds",
    "analyze_response",
    "decode_json_payload",
    "detect_format",
    "extract",
    "extract_file_list",
    "find_truncated_files",
    "has_files",
    "looks_truncated",
    "repair_truncated_json",
    "strategy_chain",
]
