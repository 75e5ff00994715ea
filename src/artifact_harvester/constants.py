"""Stable constants shared across the parsing, continuation and repair layers."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Response ingestion limits.
DEFAULT_MAX_RESPONSE_SIZE: Final[int] = 500_000
MIN_PARSED_FILE_LENGTH: Final[int] = 10
FALLBACK_MIN_BLOCK_LENGTH: Final[int] = 50

# Continuation policy defaults.
MIN_ACCEPTED_FILE_LENGTH: Final[int] = 20
MAX_CONTINUATION_BATCHES: Final[int] = 5
MAX_RETRY_ATTEMPTS: Final[int] = 3
RETRY_BACKOFF_INITIAL_SECONDS: Final[float] = 1.0
RETRY_BACKOFF_MAX_SECONDS: Final[float] = 30.0
DEFAULT_MAX_OUTPUT_TOKENS: Final[int] = 32_768
DEFAULT_TEMPERATURE: Final[float] = 0.7
TRUNCATION_CONTEXT_HEAD_CHARS: Final[int] = 2_000
TRUNCATION_CONTEXT_TAIL_CHARS: Final[int] = 500

# Syntax repair defaults.
DEFAULT_REPAIR_PASSES: Final[int] = 3
ELEMENT_CLOSER_SEARCH_LINES: Final[int] = 20
BRACE_BOUNDARY_SEARCH_LINES: Final[int] = 10
PAREN_BOUNDARY_SEARCH_LINES: Final[int] = 5
TEMPLATE_CLOSER_SEARCH_LINES: Final[int] = 10

# Truncation heuristics.
DEFAULT_BRACE_IMBALANCE_THRESHOLD: Final[int] = 1
DEFAULT_PAREN_IMBALANCE_THRESHOLD: Final[int] = 2
DEFAULT_MARKUP_EXTENSIONS: Final[tuple[str, ...]] = (".tsx", ".jsx")

# Paths that never become artifacts (version control, dependencies, build output).
IGNORED_PATH_SEGMENTS: Final[tuple[str, ...]] = (
    ".git",
    "node_modules",
    ".next",
    ".nuxt",
    "dist",
    "build",
    ".cache",
    ".DS_Store",
    "Thumbs.db",
)

# Whole-content outputs a generator sometimes emits instead of a file body.
DEGENERATE_CONTENT_TOKENS: Final[frozenset[str]] = frozenset(
    {"tsx", "jsx", "ts", "js", "css", "json", "md"}
)

__all__ = [
    "BRACE_BOUNDARY_SEARCH_LINES",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_BRACE_IMBALANCE_THRESHOLD",
    "DEFAULT_MARKUP_EXTENSIONS",
    "DEFAULT_MAX_OUTPUT_TOKENS",
    "DEFAULT_MAX_RESPONSE_SIZE",
    "DEFAULT_PAREN_IMBALANCE_THRESHOLD",
    "DEFAULT_REPAIR_PASSES",
    "DEFAULT_TEMPERATURE",
    "DEGENERATE_CONTENT_TOKENS",
    "ELEMENT_CLOSER_SEARCH_LINES",
    "FALLBACK_MIN_BLOCK_LENGTH",
    "IGNORED_PATH_SEGMENTS",
    "MAX_CONTINUATION_BATCHES",
    "MAX_RETRY_ATTEMPTS",
    "MIN_ACCEPTED_FILE_LENGTH",
    "MIN_PARSED_FILE_LENGTH",
    "PAREN_BOUNDARY_SEARCH_LINES",
    "RETRY_BACKOFF_INITIAL_SECONDS",
    "RETRY_BACKOFF_MAX_SECONDS",
    "TEMPLATE_CLOSER_SEARCH_LINES",
    "TRUNCATION_CONTEXT_HEAD_CHARS",
    "TRUNCATION_CONTEXT_TAIL_CHARS",
]
