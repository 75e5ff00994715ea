"""
artifact-harvester — configuration schema and validation.

File: src/artifact_harvester/config/schema.py
Last updated: 2026-10-18

Purpose
- Define authoritative configuration defaults and strict validation rules.

What should be included in this file
- Schema versioning and migration guidance.
- Validation rules for required fields, types, enums, and numeric constraints.
- Profile overlay validation and deterministic deep-merge helpers.
- Redaction rules for sensitive fields.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Support profile overlays including strict/lenient.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, NotRequired, TypedDict

from artifact_harvester.constants import (
    BRACE_BOUNDARY_SEARCH_LINES,
    CONFIG_SCHEMA_VERSION,
    DEFAULT_BRACE_IMBALANCE_THRESHOLD,
    DEFAULT_MARKUP_EXTENSIONS,
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_MAX_RESPONSE_SIZE,
    DEFAULT_PAREN_IMBALANCE_THRESHOLD,
    DEFAULT_REPAIR_PASSES,
    DEFAULT_TEMPERATURE,
    ELEMENT_CLOSER_SEARCH_LINES,
    MAX_CONTINUATION_BATCHES,
    MAX_RETRY_ATTEMPTS,
    MIN_ACCEPTED_FILE_LENGTH,
    MIN_PARSED_FILE_LENGTH,
    PAREN_BOUNDARY_SEARCH_LINES,
    RETRY_BACKOFF_INITIAL_SECONDS,
    RETRY_BACKOFF_MAX_SECONDS,
    TRUNCATION_CONTEXT_HEAD_CHARS,
    TRUNCATION_CONTEXT_TAIL_CHARS,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
BUILTIN_PROFILE_NAMES: Final[tuple[str, ...]] = ("strict", "lenient")

_PROFILE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")
_EXTENSION_PATTERN = re.compile(r"^\.?[A-Za-z0-9]+$")
_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_SENSITIVE_KEY_TOKENS: Final[frozenset[str]] = frozenset(
    {
        "secret",
        "token",
        "password",
        "passwd",
        "api",
        "key",
        "apikey",
        "private",
        "credential",
        "credentials",
        "auth",
    }
)
_SENSITIVE_KEY_PHRASES: Final[tuple[str, ...]] = (
    "api_key",
    "access_token",
    "refresh_token",
    "client_secret",
    "private_key",
    "password",
    "secret",
)

# Config paths that should be normalized relative to config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (("observability", "log_dir"),)

SECTION_NAMES: Final[tuple[str, ...]] = (
    "parser",
    "continuation",
    "repair",
    "truncation",
    "observability",
)


class MetaConfig(TypedDict):
    schema_version: int


class ParserConfig(TypedDict):
    max_response_size: int
    include_raw: bool
    aggressive_recovery: bool
    min_file_length: int


class ContinuationConfig(TypedDict):
    max_batches: int
    max_retry_attempts: int
    backoff_growth: Literal["linear", "exponential"]
    backoff_initial_seconds: float
    backoff_multiplier: float
    backoff_max_seconds: float
    backoff_jitter_ratio: float
    min_file_length: int
    targeted_request: bool
    truncation_head_chars: int
    truncation_tail_chars: int
    max_output_tokens: int
    temperature: float
    model: NotRequired[str]


class RepairConfig(TypedDict):
    enabled: bool
    max_passes: int
    validate: bool
    brace_search_lines: int
    paren_search_lines: int
    element_search_lines: int


class TruncationConfig(TypedDict):
    brace_imbalance: int
    paren_imbalance: int
    markup_extensions: list[str]


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["json", "text"]
    log_dir: str
    redact_secrets: bool


class ProfileOverlay(TypedDict, total=False):
    parser: dict[str, object]
    continuation: dict[str, object]
    repair: dict[str, object]
    truncation: dict[str, object]
    observability: dict[str, object]


class HarvesterConfig(TypedDict):
    meta: MetaConfig
    parser: ParserConfig
    continuation: ContinuationConfig
    repair: RepairConfig
    truncation: TruncationConfig
    observability: ObservabilityConfig
    profiles: dict[str, ProfileOverlay]


# Field types per section; the loader derives HARVEST_* bindings from these.
SECTION_TYPES: Final[dict[str, type]] = {
    "parser": ParserConfig,
    "continuation": ContinuationConfig,
    "repair": RepairConfig,
    "truncation": TruncationConfig,
    "observability": ObservabilityConfig,
}


DEFAULT_CONFIG: Final[HarvesterConfig] = {
    "meta": {
        "schema_version": ConfigSchemaVersion,
    },
    "parser": {
        "max_response_size": DEFAULT_MAX_RESPONSE_SIZE,
        "include_raw": False,
        "aggressive_recovery": True,
        "min_file_length": MIN_PARSED_FILE_LENGTH,
    },
    "continuation": {
        "max_batches": MAX_CONTINUATION_BATCHES,
        "max_retry_attempts": MAX_RETRY_ATTEMPTS,
        "backoff_growth": "linear",
        "backoff_initial_seconds": RETRY_BACKOFF_INITIAL_SECONDS,
        "backoff_multiplier": 2.0,
        "backoff_max_seconds": RETRY_BACKOFF_MAX_SECONDS,
        "backoff_jitter_ratio": 0.0,
        "min_file_length": MIN_ACCEPTED_FILE_LENGTH,
        "targeted_request": True,
        "truncation_head_chars": TRUNCATION_CONTEXT_HEAD_CHARS,
        "truncation_tail_chars": TRUNCATION_CONTEXT_TAIL_CHARS,
        "max_output_tokens": DEFAULT_MAX_OUTPUT_TOKENS,
        "temperature": DEFAULT_TEMPERATURE,
    },
    "repair": {
        "enabled": True,
        "max_passes": DEFAULT_REPAIR_PASSES,
        "validate": True,
        "brace_search_lines": BRACE_BOUNDARY_SEARCH_LINES,
        "paren_search_lines": PAREN_BOUNDARY_SEARCH_LINES,
        "element_search_lines": ELEMENT_CLOSER_SEARCH_LINES,
    },
    "truncation": {
        "brace_imbalance": DEFAULT_BRACE_IMBALANCE_THRESHOLD,
        "paren_imbalance": DEFAULT_PAREN_IMBALANCE_THRESHOLD,
        "markup_extensions": list(DEFAULT_MARKUP_EXTENSIONS),
    },
    "observability": {
        "log_level": "INFO",
        "log_format": "json",
        "log_dir": "logs/",
        "redact_secrets": True,
    },
    "profiles": {
        "strict": {
            "parser": {"aggressive_recovery": False},
            "continuation": {"max_batches": 3, "max_retry_attempts": 1},
            "truncation": {"brace_imbalance": 0, "paren_imbalance": 1},
        },
        "lenient": {
            "parser": {"max_response_size": 2_000_000},
            "continuation": {"max_batches": 8, "max_retry_attempts": 5},
            "truncation": {"brace_imbalance": 2, "paren_imbalance": 3},
        },
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


FieldRule = Callable[[object, str, _IssueCollector], object | None]


def default_config() -> HarvesterConfig:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    """Return deterministic migration guidance for schema version mismatch."""

    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade harvester.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the artifact-harvester package"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def apply_profile_overlay(config: Mapping[str, object], profile: str | None) -> dict[str, Any]:
    """Apply a named profile overlay and re-validate the resulting config."""

    materialized = _deep_copy_mapping(config)
    if profile is None:
        return materialized

    selected = profile.strip()
    if not selected:
        return materialized

    profiles_raw = materialized.get("profiles")
    if not isinstance(profiles_raw, Mapping):
        raise ConfigValidationError(
            (ConfigValidationIssue("profiles", "profiles section is required"),)
        )

    overlay_raw = profiles_raw.get(selected)
    if overlay_raw is None:
        raise ConfigValidationError(
            (ConfigValidationIssue("profiles", f"profile {selected!r} is not defined"),)
        )
    if not isinstance(overlay_raw, Mapping):
        raise ConfigValidationError(
            (ConfigValidationIssue(f"profiles.{selected}", "profile overlay must be an object"),)
        )

    merged = merge_config(materialized, overlay_raw)
    return assert_valid_config(merged, active_profile=selected)


def validate_config(
    config: Mapping[str, object] | object,
    *,
    active_profile: str | None = None,
) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, "", issues)

    selected_profile = active_profile.strip() if isinstance(active_profile, str) else None
    if selected_profile:
        profiles = normalized.get("profiles")
        if not isinstance(profiles, Mapping) or selected_profile not in profiles:
            issues.add("profiles", f"profile {selected_profile!r} is not defined")

    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=issues.items())


def assert_valid_config(
    config: Mapping[str, object] | object,
    *,
    active_profile: str | None = None,
) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config, active_profile=active_profile)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def redact_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Return deterministic redacted representation for logs."""

    if not isinstance(config, Mapping):
        return {}
    redacted = _redact_value(config, parent_key=None)
    if isinstance(redacted, dict):
        return redacted
    return {}


def _validate_root(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
) -> dict[str, Any]:
    allowed = {"meta", "profiles", *SECTION_NAMES}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, {"meta", *SECTION_NAMES}, path, issues)

    out: dict[str, Any] = {}
    meta = payload.get("meta")
    if meta is not None:
        meta_obj = _as_object(meta, _join(path, "meta"), issues)
        if meta_obj is not None:
            out["meta"] = _validate_meta(meta_obj, _join(path, "meta"), issues)

    for section in SECTION_NAMES:
        raw = payload.get(section)
        if raw is None:
            continue
        section_path = _join(path, section)
        section_obj = _as_object(raw, section_path, issues)
        if section_obj is None:
            continue
        out[section] = _validate_section(section, section_obj, section_path, issues, partial=False)

    profiles_raw = payload.get("profiles")
    if profiles_raw is not None:
        profiles_path = _join(path, "profiles")
        profiles_obj = _as_object(profiles_raw, profiles_path, issues)
        if profiles_obj is not None:
            out["profiles"] = _validate_profiles(profiles_obj, profiles_path, issues)

    _validate_cross_fields(out, issues)
    return out


def _validate_meta(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, path, issues)
    _require_keys(payload, {"schema_version"}, path, issues)

    out: dict[str, Any] = {}
    if "schema_version" in payload:
        parsed = _as_int(payload["schema_version"], _join(path, "schema_version"), issues, minimum=1)
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != ConfigSchemaVersion:
                issues.add(_join(path, "schema_version"), migration_guidance(parsed))
    return out


def _int_rule(minimum: int) -> FieldRule:
    return lambda value, path, issues: _as_int(value, path, issues, minimum=minimum)


def _float_rule(minimum: float, maximum: float | None = None) -> FieldRule:
    return lambda value, path, issues: _as_float(
        value, path, issues, minimum=minimum, maximum=maximum
    )


def _enum_rule(*allowed_values: str) -> FieldRule:
    return lambda value, path, issues: _as_enum(value, path, issues, allowed_values=allowed_values)


_SECTION_RULES: Final[dict[str, dict[str, FieldRule]]] = {
    "parser": {
        "max_response_size": _int_rule(1),
        "include_raw": lambda value, path, issues: _as_bool(value, path, issues),
        "aggressive_recovery": lambda value, path, issues: _as_bool(value, path, issues),
        "min_file_length": _int_rule(0),
    },
    "continuation": {
        "max_batches": _int_rule(1),
        "max_retry_attempts": _int_rule(0),
        "backoff_growth": _enum_rule("linear", "exponential"),
        "backoff_initial_seconds": _float_rule(0.0),
        "backoff_multiplier": _float_rule(1.0),
        "backoff_max_seconds": _float_rule(0.0),
        "backoff_jitter_ratio": _float_rule(0.0, 1.0),
        "min_file_length": _int_rule(0),
        "targeted_request": lambda value, path, issues: _as_bool(value, path, issues),
        "truncation_head_chars": _int_rule(0),
        "truncation_tail_chars": _int_rule(0),
        "max_output_tokens": _int_rule(1),
        "temperature": _float_rule(0.0, 2.0),
        "model": lambda value, path, issues: _as_str(value, path, issues),
    },
    "repair": {
        "enabled": lambda value, path, issues: _as_bool(value, path, issues),
        "max_passes": _int_rule(1),
        "validate": lambda value, path, issues: _as_bool(value, path, issues),
        "brace_search_lines": _int_rule(1),
        "paren_search_lines": _int_rule(1),
        "element_search_lines": _int_rule(1),
    },
    "truncation": {
        "brace_imbalance": _int_rule(0),
        "paren_imbalance": _int_rule(0),
        "markup_extensions": lambda value, path, issues: _as_extension_list(value, path, issues),
    },
    "observability": {
        "log_level": _enum_rule("DEBUG", "INFO", "WARNING", "ERROR"),
        "log_format": _enum_rule("json", "text"),
        "log_dir": lambda value, path, issues: _as_path_text(value, path, issues),
        "redact_secrets": lambda value, path, issues: _as_bool(value, path, issues),
    },
}

_OPTIONAL_FIELDS: Final[dict[str, frozenset[str]]] = {
    "continuation": frozenset({"model"}),
}


def _validate_section(
    section: str,
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    rules = _SECTION_RULES[section]
    allowed = set(rules)
    _reject_unknown_keys(payload, allowed, path, issues)
    if not partial:
        _require_keys(payload, allowed - _OPTIONAL_FIELDS.get(section, frozenset()), path, issues)

    out: dict[str, Any] = {}
    for key in sorted(rules):
        if key not in payload:
            continue
        parsed = rules[key](payload[key], _join(path, key), issues)
        if parsed is not None:
            out[key] = parsed
    return out


def _validate_profiles(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for profile_name in sorted(payload):
        profile_path = _join(path, profile_name)
        if not _PROFILE_NAME_PATTERN.fullmatch(profile_name):
            issues.add(profile_path, "profile name must match ^[a-z][a-z0-9_-]*$")
            continue
        profile_obj = _as_object(payload[profile_name], profile_path, issues)
        if profile_obj is None:
            continue
        _reject_unknown_keys(profile_obj, set(SECTION_NAMES), profile_path, issues)
        overlay: dict[str, Any] = {}
        for section in SECTION_NAMES:
            raw = profile_obj.get(section)
            if raw is None:
                continue
            section_path = _join(profile_path, section)
            section_obj = _as_object(raw, section_path, issues)
            if section_obj is None:
                continue
            overlay[section] = _validate_section(
                section, section_obj, section_path, issues, partial=True
            )
        out[profile_name] = overlay
    return out


def _validate_cross_fields(config: Mapping[str, Any], issues: _IssueCollector) -> None:
    continuation = config.get("continuation")
    if not isinstance(continuation, Mapping):
        return
    initial = continuation.get("backoff_initial_seconds")
    maximum = continuation.get("backoff_max_seconds")
    if isinstance(initial, float) and isinstance(maximum, float) and initial > maximum:
        issues.add(
            "continuation.backoff_initial_seconds",
            "must be <= continuation.backoff_max_seconds",
        )


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_float(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        issues.add(path, f"expected number, got {type(value).__name__}")
        return None
    parsed = float(value)
    if not math.isfinite(parsed):
        issues.add(path, "must be finite")
        return None
    if minimum is not None and parsed < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    if maximum is not None and parsed > maximum:
        issues.add(path, f"must be <= {maximum}")
        return None
    return parsed


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _as_extension_list(value: object, path: str, issues: _IssueCollector) -> list[str] | None:
    if not isinstance(value, (list, tuple)):
        issues.add(path, f"expected list, got {type(value).__name__}")
        return None
    out: list[str] = []
    for index, item in enumerate(value):
        item_path = f"{path}[{index}]"
        parsed = _as_str(item, item_path, issues)
        if parsed is None:
            continue
        if not _EXTENSION_PATTERN.fullmatch(parsed):
            issues.add(item_path, "must be a file extension (example: .tsx)")
            continue
        normalized = (parsed if parsed.startswith(".") else f".{parsed}").lower()
        if normalized not in out:
            out.append(normalized)
    return out


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key in allowed:
            continue
        key_path = _join(path, key)
        if _looks_sensitive_key(key):
            issues.add(key_path, "embedded secret values are forbidden")
        else:
            issues.add(key_path, "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _looks_sensitive_key(key: str) -> bool:
    normalized = _normalize_key(key)
    if any(phrase in normalized for phrase in _SENSITIVE_KEY_PHRASES):
        return True
    tokens = tuple(token for token in normalized.split("_") if token)
    return any(token in _SENSITIVE_KEY_TOKENS for token in tokens)


def _normalize_key(key: str) -> str:
    with_boundaries = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key.strip())
    return _NON_ALNUM.sub("_", with_boundaries.lower()).strip("_")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = _deep_copy_value(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: _deep_copy_value(value[key]) for key in sorted(value)}


def _deep_copy_value(value: object) -> Any:
    if isinstance(value, Mapping):
        return {key: _deep_copy_value(item) for key, item in value.items() if isinstance(key, str)}
    if isinstance(value, list):
        return [_deep_copy_value(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_deep_copy_value(item) for item in value)
    return copy.deepcopy(value)


def _redact_value(value: object, parent_key: str | None) -> object:
    if isinstance(value, Mapping):
        out: dict[str, object] = {}
        for key in sorted(value):
            item = value[key]
            out[key] = "<redacted>" if _looks_sensitive_key(key) else _redact_value(item, key)
        return out
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, parent_key) for item in value]
    return value


__all__ = [
    "BUILTIN_PROFILE_NAMES",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "HarvesterConfig",
    "PATH_FIELDS",
    "ProfileOverlay",
    "SECTION_NAMES",
    "SECTION_TYPES",
    "apply_profile_overlay",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "redact_config",
    "validate_config",
]
