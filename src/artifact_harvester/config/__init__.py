"""
artifact-harvester config package public API.

File: src/artifact_harvester/config/__init__.py
Last updated: 2026-10-18

Purpose
- Export config loading/validation entrypoints and public error types.

What should be included in this file
- Public schema constants and validation/report types.
- Loader APIs for effective runtime config and redacted dumps.
- Typed settings consumed by the extraction, continuation, and repair layers.

Functional requirements
- Support loading from ``harvester.toml`` + ``HARVEST_`` env overrides.
- Fail fast with clear structured validation/load errors.

Non-functional requirements
- Keep import-time surface small and deterministic.
"""

from artifact_harvester.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLayer,
    ConfigLoadError,
    EnvBinding,
    config_layers,
    dump_effective_config,
    effective_config,
    env_bindings,
    load_config,
)
from artifact_harvester.config.schema import (
    BUILTIN_PROFILE_NAMES,
    DEFAULT_CONFIG,
    PATH_FIELDS,
    ConfigSchemaVersion,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    HarvesterConfig,
    ProfileOverlay,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    redact_config,
    validate_config,
)
from artifact_harvester.config.settings import (
    HarvesterSettings,
    ObservabilitySettings,
    settings_from_config,
)

__all__ = [
    "BUILTIN_PROFILE_NAMES",
    "ConfigLayer",
    "ConfigLoadError",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "EnvBinding",
    "HarvesterConfig",
    "HarvesterSettings",
    "ObservabilitySettings",
    "PATH_FIELDS",
    "ProfileOverlay",
    "apply_profile_overlay",
    "assert_valid_config",
    "config_layers",
    "default_config",
    "dump_effective_config",
    "effective_config",
    "env_bindings",
    "load_config",
    "merge_config",
    "migration_guidance",
    "redact_config",
    "settings_from_config",
    "validate_config",
]
