"""
artifact-harvester — domain types

File: src/artifact_harvester/domain/__init__.py
Last updated: 2026-10-18

Purpose
- Types shared by the parsing, continuation and repair layers: ParseResult,
  ParsedFile, PlanInfo, ManifestEntry, BatchInfo, MetaInfo, FixResult.

Functional requirements
- Domain objects are plain dataclasses with no IO side effects.
"""

from artifact_harvester.domain.models import (
    BatchInfo,
    FileAction,
    FixResult,
    ManifestEntry,
    ManifestStatus,
    MetaInfo,
    ParsedFile,
    ParseResult,
    PlanInfo,
    ResponseFormat,
)

__all__ = [
    "BatchInfo",
    "FileAction",
    "FixResult",
    "ManifestEntry",
    "ManifestStatus",
    "MetaInfo",
    "ParseResult",
    "ParsedFile",
    "PlanInfo",
    "ResponseFormat",
]
