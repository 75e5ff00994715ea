"""Command-line interface router for artifact-harvester."""

from __future__ import annotations

import argparse
import sys
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import structlog

from artifact_harvester.config import (
    ConfigLoadError,
    ConfigValidationError,
    HarvesterSettings,
    config_layers,
    effective_config,
    load_config,
    settings_from_config,
)
from artifact_harvester.domain.models import FixResult, ParseResult
from artifact_harvester.main import ExitCode
from artifact_harvester.observability.events import (
    EventDispatcher,
    RecordingPipelineEvents,
    StructlogPipelineEvents,
)
from artifact_harvester.observability.logging import setup_logging, shutdown_logging
from artifact_harvester.parsing import detect_format, extract, extract_file_list
from artifact_harvester.repair import repair_file, syntax_profile
from artifact_harvester.ui.render import CLIRenderer, OutputFormat, create_renderer
from artifact_harvester.utils.fs import ArtifactPathError, atomic_write, write_artifacts

STDIN_MARKER: Final[str] = "-"
OUTPUT_CHOICES: Final[tuple[str, ...]] = ("text", "json", "yaml")


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = int(ExitCode.EXTRACTION_FAILED)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="harvest",
        description=(
            "artifact-harvester: recover source files from LLM responses.\n\n"
            "Common workflows:\n"
            "  harvest detect response.txt          Report the response dialect\n"
            "  harvest extract response.txt -w out  Extract files into ./out\n"
            "  harvest repair App.tsx --in-place    Repair a generated file\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to harvester TOML config (default: ./harvester.toml if present).",
    )
    common.add_argument(
        "--profile",
        default=None,
        help="Optional config profile overlay name (strict, lenient, ...).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output and debug logs on stderr.",
    )
    common.add_argument(
        "--log-file",
        action="store_true",
        default=False,
        help="Also write JSON-lines logs under the configured log directory.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    detect_parser = subparsers.add_parser(
        "detect",
        parents=[common],
        help="Report which wire dialect a response uses",
    )
    detect_parser.add_argument("source", help="Response file, or '-' for stdin.")
    _add_output_argument(detect_parser)
    detect_parser.set_defaults(handler=_cmd_detect)

    files_parser = subparsers.add_parser(
        "files",
        parents=[common],
        help="List the file paths a (possibly partial) response announces",
    )
    files_parser.add_argument("source", help="Response file, or '-' for stdin.")
    _add_output_argument(files_parser)
    files_parser.set_defaults(handler=_cmd_files)

    extract_parser = subparsers.add_parser(
        "extract",
        parents=[common],
        help="Extract files and metadata from a response",
        description=(
            "Extract generated files from a response in any supported dialect.\n\n"
            "Examples:\n"
            "  harvest extract response.txt\n"
            "  harvest extract response.txt --repair --write ./generated\n"
            "  cat response.txt | harvest extract - --output yaml\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    extract_parser.add_argument("source", help="Response file, or '-' for stdin.")
    extract_parser.add_argument(
        "--repair",
        action="store_true",
        default=False,
        help="Run the syntax repair pipeline over every extracted script file.",
    )
    extract_parser.add_argument(
        "--write",
        "-w",
        dest="write_dir",
        default=None,
        help="Write extracted files under this directory.",
    )
    _add_output_argument(extract_parser)
    extract_parser.set_defaults(handler=_cmd_extract)

    repair_parser = subparsers.add_parser(
        "repair",
        parents=[common],
        help="Repair common syntax damage in a generated script file",
    )
    repair_parser.add_argument("source", help="Source file, or '-' for stdin.")
    repair_parser.add_argument(
        "--as",
        dest="as_path",
        default=None,
        help="Path used to pick the syntax profile (required for stdin).",
    )
    repair_parser.add_argument(
        "--in-place",
        action="store_true",
        default=False,
        help="Overwrite the source file with the repaired code.",
    )
    _add_output_argument(repair_parser)
    repair_parser.set_defaults(handler=_cmd_repair)

    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show the effective (redacted) configuration",
    )
    config_parser.add_argument(
        "--output",
        "-o",
        choices=("json", "yaml"),
        default="yaml",
        help="Output format (default: yaml).",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def _add_output_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        "-o",
        choices=OUTPUT_CHOICES,
        default="text",
        help="Output format (default: text).",
    )


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.CONFIG_ERROR)

    try:
        config = _load_effective_config(namespace)
        handle = setup_logging(
            _logging_section(
                config,
                verbose=_flag(namespace, "verbose"),
                log_file=_flag(namespace, "log_file"),
            ),
            run_id=f"harvest-{uuid.uuid4().hex[:12]}",
            log_to_file=_flag(namespace, "log_file"),
        )
        try:
            with structlog.contextvars.bound_contextvars(
                command=namespace.command,
                profile=_optional_str(getattr(namespace, "profile", None)),
            ):
                result = handler(namespace, config)
        finally:
            shutdown_logging(handle)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_detect(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    text = _read_source(args.source)
    response_format = detect_format(text)
    output = _output(args)
    if output == "text":
        _get_renderer(args).text(response_format.value)
    else:
        _get_renderer(args).structured(
            {"command": "detect", "format": response_format.value}, output
        )
    return int(ExitCode.SUCCESS)


def _cmd_files(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    paths = extract_file_list(_read_source(args.source))
    output = _output(args)
    renderer = _get_renderer(args)
    if output == "text":
        for path in paths:
            renderer.text(path)
    else:
        renderer.structured({"command": "files", "paths": paths}, output)
    return int(ExitCode.SUCCESS)


def _cmd_extract(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    settings = settings_from_config(config)
    text = _read_source(args.source)
    recorder = RecordingPipelineEvents()
    result = extract(text, settings.extract, events=_events(recorder))

    repairs: dict[str, FixResult] = {}
    if _flag(args, "repair") and settings.repair_enabled:
        repairs = _repair_result_files(result, settings)

    written: list[Path] = []
    write_dir = getattr(args, "write_dir", None)
    if write_dir and result.files:
        try:
            written = write_artifacts(result.files, Path(write_dir))
        except ArtifactPathError as exc:
            raise CLIError(str(exc), exit_code=int(ExitCode.EXTRACTION_FAILED)) from exc
        except OSError as exc:
            raise CLIError(f"unable to write artifacts: {exc}") from exc

    output = _output(args)
    renderer = _get_renderer(args)
    if output == "text":
        _render_extract(renderer, result, repairs, written)
    else:
        payload: dict[str, object] = {
            "command": "extract",
            "result": result.to_dict(),
            "repairs": {
                path: {
                    "fixes_applied": list(fix.fixes_applied),
                    "issues": list(fix.issues),
                    "rolled_back": fix.rolled_back,
                }
                for path, fix in sorted(repairs.items())
            },
            "written": [path.as_posix() for path in written],
        }
        renderer.structured(payload, output)

    return int(ExitCode.SUCCESS if result.has_files else ExitCode.EXTRACTION_FAILED)


def _cmd_repair(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    settings = settings_from_config(config)
    source = args.source
    as_path = getattr(args, "as_path", None) or (None if source == STDIN_MARKER else source)
    if as_path is None:
        raise CLIError("--as PATH is required when reading from stdin", exit_code=2)
    if syntax_profile(as_path) is None:
        raise CLIError(f"not a repairable script file: {as_path}", exit_code=2)
    if _flag(args, "in_place") and source == STDIN_MARKER:
        raise CLIError("--in-place cannot be used with stdin", exit_code=2)

    fix = repair_file(as_path, _read_source(source), options=settings.repair)

    if _flag(args, "in_place") and fix.changed:
        try:
            atomic_write(Path(source), fix.code)
        except OSError as exc:
            raise CLIError(f"unable to write {source}: {exc}") from exc

    output = _output(args)
    renderer = _get_renderer(args)
    if output != "text":
        payload = {"command": "repair", "path": as_path, **fix.to_dict()}
        renderer.structured(payload, output)
    elif not _flag(args, "in_place"):
        renderer.stream.write(fix.code)

    stderr = create_renderer(stream=sys.stderr)
    for line in fix.fixes_applied:
        stderr.text(f"fixed: {line}")
    for line in fix.issues:
        stderr.text(f"issue: {line}")
    return int(ExitCode.EXTRACTION_FAILED if fix.rolled_back else ExitCode.SUCCESS)


def _cmd_config(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    profile = _optional_str(getattr(args, "profile", None))
    layers = config_layers(_optional_str(getattr(args, "config_path", None)), profile=profile)
    payload: dict[str, object] = {
        "active_profile": profile,
        "layers": [layer.name for layer in layers if not layer.empty],
        "config": effective_config(config),
    }
    output: OutputFormat = "json" if getattr(args, "output", "yaml") == "json" else "yaml"
    _get_renderer(args).structured(payload, output)
    return int(ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _render_extract(
    renderer: CLIRenderer,
    result: ParseResult,
    repairs: Mapping[str, FixResult],
    written: Sequence[Path],
) -> None:
    renderer.kv("Format", result.format.value)
    renderer.kv("Files", result.file_count)
    if result.truncated:
        renderer.kv("Truncated", "yes")
    if result.explanation and renderer.verbose:
        renderer.kv("Explanation", result.explanation)

    rows: list[list[str]] = []
    incomplete = set(result.incomplete_files)
    recovered = set(result.recovered_files)
    for path, content in result.files.items():
        flags = []
        if path in recovered:
            flags.append("recovered")
        if path in incomplete:
            flags.append("incomplete")
        fix = repairs.get(path)
        if fix is not None and fix.changed:
            flags.append(f"repaired({len(fix.fixes_applied)})")
        elif fix is not None and fix.rolled_back:
            flags.append("repair-rolled-back")
        rows.append([path, str(len(content)), ", ".join(flags)])
    if rows:
        renderer.section("Extracted files:")
        renderer.table(["path", "chars", "flags"], rows)

    if result.deleted_files:
        renderer.section("Deleted files:")
        renderer.items(result.deleted_files)
    if result.warnings:
        renderer.section("Warnings:")
        renderer.items(result.warnings)
    if result.errors:
        renderer.section("Errors:")
        renderer.items(result.errors)
    if written:
        renderer.section(f"Wrote {len(written)} file(s).")
        if renderer.verbose:
            renderer.items([path.as_posix() for path in written])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _repair_result_files(result: ParseResult, settings: HarvesterSettings) -> dict[str, FixResult]:
    repairs: dict[str, FixResult] = {}
    for path, content in list(result.files.items()):
        if syntax_profile(path) is None:
            continue
        fix = repair_file(path, content, options=settings.repair)
        repairs[path] = fix
        if fix.changed:
            result.files[path] = fix.code
    return repairs


def _events(recorder: RecordingPipelineEvents) -> EventDispatcher:
    return EventDispatcher((recorder, StructlogPipelineEvents()))


def _read_source(source: str) -> str:
    if source == STDIN_MARKER:
        return sys.stdin.read()
    path = Path(source).expanduser()
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError as exc:
        raise CLIError(f"file not found: {path}", exit_code=int(ExitCode.CONFIG_ERROR)) from exc
    except OSError as exc:
        raise CLIError(f"unable to read {path}: {exc}", exit_code=int(ExitCode.CONFIG_ERROR)) from exc


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    config_path = _optional_str(getattr(args, "config_path", None))
    profile = _optional_str(getattr(args, "profile", None))

    try:
        return load_config(config_path, profile=profile)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=int(ExitCode.CONFIG_ERROR)) from exc


def _logging_section(
    config: Mapping[str, Any], *, verbose: bool, log_file: bool
) -> dict[str, object]:
    section = dict(config.get("observability", {}))
    if verbose:
        section["log_level"] = "DEBUG"
    elif not log_file:
        section["log_level"] = "WARNING"
        section["log_format"] = "text"
    return section


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(verbose=_flag(args, "verbose"))


def _output(args: argparse.Namespace) -> OutputFormat:
    value = getattr(args, "output", "text")
    if value == "json":
        return "json"
    if value == "yaml":
        return "yaml"
    return "text"


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]
