"""
artifact-harvester — harvester.toml loader

File: src/artifact_harvester/config/loader.py
Last updated: 2026-10-18

Purpose
- Build the effective harvester configuration as an ordered stack of named
  layers: defaults, ``harvester.toml``, the selected profile, ``HARVEST_*``
  environment variables and CLI overrides.

What should be included in this file
- Layer collection and folding (later layers win).
- Environment bindings derived from the typed section definitions in
  ``config.schema``; every scalar or list field of a section gets exactly one
  ``HARVEST_<SECTION>_<FIELD>`` variable.
- Coercion of environment strings by field type with actionable errors.
- ``observability.log_dir`` resolution relative to the config file.
- Redacted deterministic dump of the effective config.

Functional requirements
- A missing implicit ``harvester.toml`` means defaults; a missing explicit one
  is an error.
- Profiles are selected by argument, then a ``profile`` CLI override, then
  ``HARVEST_PROFILE``.
- The folded result is validated before it is returned.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any,
    Final,
    Literal,
    NotRequired,
    Required,
    get_args,
    get_origin,
    get_type_hints,
)

from artifact_harvester.config.schema import (
    PATH_FIELDS,
    SECTION_TYPES,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
    redact_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "harvester.toml"
ENV_PREFIX: Final[str] = "HARVEST_"
PROFILE_ENV_VAR: Final[str] = f"{ENV_PREFIX}PROFILE"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})

FieldKind = Literal["str", "int", "float", "bool", "list"]


class ConfigLoadError(ValueError):
    """Raised when config cannot be read or an override cannot be coerced."""


@dataclass(frozen=True, slots=True)
class EnvBinding:
    """One ``HARVEST_*`` variable and the config field it overrides."""

    name: str
    section: str
    key: str
    kind: FieldKind

    @property
    def dotted(self) -> str:
        return f"{self.section}.{self.key}"


@dataclass(frozen=True, slots=True)
class ConfigLayer:
    """A named partial config; empty layers are kept so callers see what was consulted."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.payload


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config (CLI > env > profile > file > defaults)."""

    layers = config_layers(
        config_path, profile=profile, cli_overrides=cli_overrides, environ=environ
    )
    folded: dict[str, Any] = {}
    for layer in layers:
        folded = merge_config(folded, layer.payload)
    selected = _selected_profile(profile, cli_overrides, environ)
    return assert_valid_config(folded, active_profile=selected)


def config_layers(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> list[ConfigLayer]:
    """Collect the ordered layers that make up the effective config."""

    path = _config_file(config_path)
    env = os.environ if environ is None else environ
    selected = _selected_profile(profile, cli_overrides, env)

    defaults = merge_config({}, default_config())
    _resolve_log_dir(defaults, path.parent)
    layers = [ConfigLayer("defaults", defaults)]
    file_payload = _read_toml(path, required=config_path is not None)
    _resolve_log_dir(file_payload, path.parent)
    layers.append(ConfigLayer(f"file:{path.as_posix()}", file_payload))

    # The file is validated on its own so profile lookups see a sound base.
    base = assert_valid_config(merge_config(layers[0].payload, file_payload))
    if selected is not None:
        overlay = _profile_delta(base, selected)
        _resolve_log_dir(overlay, path.parent)
        layers.append(ConfigLayer(f"profile:{selected}", overlay))

    layers.append(ConfigLayer("env", _env_layer(env)))
    cli_payload = _cli_layer(cli_overrides or {})
    _resolve_log_dir(cli_payload, path.parent)
    layers.append(ConfigLayer("cli", cli_payload))
    return layers


def env_bindings() -> dict[str, tuple[str, ...]]:
    """Map every recognised ``HARVEST_*`` variable to the config path it overrides."""

    return {binding.name: (binding.section, binding.key) for binding in _bindings()}


def effective_config(config: Mapping[str, object]) -> dict[str, Any]:
    """Redacted copy of ``config`` for display and logging."""

    return redact_config(config)


def dump_effective_config(config: Mapping[str, object]) -> str:
    return json.dumps(
        effective_config(config), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def _bindings() -> list[EnvBinding]:
    out: list[EnvBinding] = []
    for section, section_type in SECTION_TYPES.items():
        for key, annotation in sorted(get_type_hints(section_type).items()):
            out.append(
                EnvBinding(
                    name=f"{ENV_PREFIX}{section.upper()}_{key.upper()}",
                    section=section,
                    key=key,
                    kind=_kind_of(annotation),
                )
            )
    return out


def _kind_of(annotation: object) -> FieldKind:
    if get_origin(annotation) in (Required, NotRequired):
        annotation = get_args(annotation)[0]
    if annotation is bool:
        return "bool"
    if annotation is int:
        return "int"
    if annotation is float:
        return "float"
    origin = get_origin(annotation)
    if origin is list:
        return "list"
    if origin is Literal and all(isinstance(arg, str) for arg in get_args(annotation)):
        return "str"
    if annotation is str:
        return "str"
    raise TypeError(f"unsupported config field type: {annotation!r}")


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(raw)


def _parse_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


_PARSERS: Final[dict[FieldKind, tuple[Callable[[str], object], str]]] = {
    "str": (str, "a string"),
    "int": (int, "an integer"),
    "float": (float, "a number"),
    "bool": (_parse_bool, "a boolean (true/false/1/0/yes/no/on/off)"),
    "list": (_parse_list, "a comma-separated list"),
}


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for binding in _bindings():
        raw = environ.get(binding.name)
        if raw is None:
            continue
        parse, expected = _PARSERS[binding.kind]
        try:
            value = parse(raw.strip())
        except ValueError as exc:
            raise ConfigLoadError(
                f"{binding.name} -> {binding.dotted} must be {expected}"
            ) from exc
        payload.setdefault(binding.section, {})[binding.key] = value
    return payload


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for key in sorted(overrides):
        if key == "profile":
            continue
        value = overrides[key]
        parts = [part for part in key.split(".") if part]
        if not parts:
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
        for part in reversed(parts[1:]):
            value = {part: value}
        payload = merge_config(payload, {parts[0]: value})
    return payload


def _profile_delta(base: Mapping[str, Any], profile: str) -> dict[str, Any]:
    # Raises ConfigValidationError for unknown or invalid profiles.
    apply_profile_overlay(base, profile)
    return merge_config({}, base["profiles"][profile])


def _selected_profile(
    profile: str | None,
    cli_overrides: Mapping[str, object] | None,
    environ: Mapping[str, str] | None,
) -> str | None:
    if profile is not None:
        return profile.strip() or None
    if cli_overrides and "profile" in cli_overrides:
        value = cli_overrides["profile"]
        if not isinstance(value, str):
            raise ConfigLoadError("cli override 'profile' must be a string")
        return value.strip() or None
    raw = (os.environ if environ is None else environ).get(PROFILE_ENV_VAR, "")
    return raw.strip() or None


def _config_file(config_path: str | Path | None) -> Path:
    if config_path is None:
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.is_file():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _resolve_log_dir(payload: dict[str, Any], base_dir: Path) -> None:
    """Anchor relative path fields present in ``payload`` at ``base_dir``."""

    for section, key in PATH_FIELDS:
        values = payload.get(section)
        if not isinstance(values, dict) or not isinstance(values.get(key), str):
            continue
        candidate = Path(os.path.expandvars(values[key])).expanduser()
        if not candidate.is_absolute():
            candidate = base_dir / candidate
        values[key] = Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "PROFILE_ENV_VAR",
    "ConfigLayer",
    "ConfigLoadError",
    "EnvBinding",
    "config_layers",
    "dump_effective_config",
    "effective_config",
    "env_bindings",
    "load_config",
]
