"""
artifact-harvester — package root

File: src/artifact_harvester/__init__.py
Last updated: 2026-10-18

Purpose
- Recover complete source files from raw LLM responses: detect the wire
  dialect, extract files and metadata, drive multi-batch continuation, and
  repair common syntax damage in generated script files.

What should be included in this file
- Version export and the small public API surface.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

from artifact_harvester.continuation import drive_continuation
from artifact_harvester.parsing import detect_format, extract, extract_file_list, has_files
from artifact_harvester.repair import repair_file

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "detect_format",
    "drive_continuation",
    "extract",
    "extract_file_list",
    "has_files",
    "repair_file",
]
