"""Typed runtime settings derived from a validated config mapping."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from artifact_harvester.continuation.controller import ContinuationPolicy
from artifact_harvester.generation.base import BackoffConfig, BackoffGrowth
from artifact_harvester.parsing.extractor import ExtractOptions
from artifact_harvester.parsing.truncation import TruncationThresholds
from artifact_harvester.repair.pipeline import RepairOptions


@dataclass(frozen=True, slots=True)
class ObservabilitySettings:
    log_level: str = "INFO"
    log_format: str = "json"
    log_dir: Path = Path("logs")
    redact_secrets: bool = True


@dataclass(frozen=True, slots=True)
class HarvesterSettings:
    """Everything the extraction, continuation, and repair layers need."""

    extract: ExtractOptions = field(default_factory=ExtractOptions)
    continuation: ContinuationPolicy = field(default_factory=ContinuationPolicy)
    repair: RepairOptions = field(default_factory=RepairOptions)
    repair_enabled: bool = True
    observability: ObservabilitySettings = field(default_factory=ObservabilitySettings)

    @property
    def truncation(self) -> TruncationThresholds:
        return self.extract.truncation


def settings_from_config(config: Mapping[str, Any]) -> HarvesterSettings:
    """Build settings from an already validated config (see ``load_config``)."""

    parser = config["parser"]
    continuation = config["continuation"]
    repair = config["repair"]
    truncation = config["truncation"]
    observability = config["observability"]

    thresholds = TruncationThresholds(
        brace_imbalance=truncation["brace_imbalance"],
        paren_imbalance=truncation["paren_imbalance"],
        markup_extensions=tuple(truncation["markup_extensions"]),
    )
    extract = ExtractOptions(
        max_size=parser["max_response_size"],
        include_raw=parser["include_raw"],
        aggressive_recovery=parser["aggressive_recovery"],
        min_file_length=parser["min_file_length"],
        truncation=thresholds,
    )
    backoff = BackoffConfig(
        max_retries=continuation["max_retry_attempts"],
        initial_delay_seconds=continuation["backoff_initial_seconds"],
        multiplier=continuation["backoff_multiplier"],
        max_delay_seconds=continuation["backoff_max_seconds"],
        jitter_ratio=continuation["backoff_jitter_ratio"],
        growth=BackoffGrowth(continuation["backoff_growth"]),
    )
    policy = ContinuationPolicy(
        max_batches=continuation["max_batches"],
        max_retry_attempts=continuation["max_retry_attempts"],
        backoff=backoff,
        min_file_length=continuation["min_file_length"],
        targeted_request=continuation["targeted_request"],
        truncation_head_chars=continuation["truncation_head_chars"],
        truncation_tail_chars=continuation["truncation_tail_chars"],
        model=continuation.get("model"),
        max_tokens=continuation["max_output_tokens"],
        temperature=continuation["temperature"],
    )
    repair_options = RepairOptions(
        max_passes=repair["max_passes"],
        validate=repair["validate"],
        brace_search_lines=repair["brace_search_lines"],
        paren_search_lines=repair["paren_search_lines"],
        element_search_lines=repair["element_search_lines"],
    )
    return HarvesterSettings(
        extract=extract,
        continuation=policy,
        repair=repair_options,
        repair_enabled=repair["enabled"],
        observability=ObservabilitySettings(
            log_level=observability["log_level"],
            log_format=observability["log_format"],
            log_dir=Path(observability["log_dir"]),
            redact_secrets=observability["redact_secrets"],
        ),
    )


__all__ = ["HarvesterSettings", "ObservabilitySettings", "settings_from_config"]
