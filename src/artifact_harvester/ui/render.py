"""Output rendering for the harvest CLI.

File: src/artifact_harvester/ui/render.py
Last updated: 2026-10-18

Purpose
- Provide a thin rendering layer for human-readable CLI output.
- Serialize machine-readable payloads as JSON or YAML.

Functional requirements
- Plain-text rendering must always work.
- Structured output is deterministic (sorted keys).
"""

from __future__ import annotations

import json
import sys
from collections.abc import Mapping, Sequence
from typing import Literal, TextIO

import yaml

OutputFormat = Literal["text", "json", "yaml"]


class CLIRenderer:
    """Thin CLI output renderer writing plain text to ``stream``."""

    def __init__(self, *, verbose: bool = False, stream: TextIO | None = None) -> None:
        self.verbose = verbose
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def text(self, line: str) -> None:
        print(line, file=self.stream)

    def kv(self, key: str, value: object) -> None:
        print(f"{key}: {value}", file=self.stream)

    def section(self, title: str) -> None:
        print(f"\n{title}", file=self.stream)

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            print(f"  {prefix}{entry}", file=self.stream)

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Print a formatted ASCII table."""

        if not rows:
            return
        widths = [len(header) for header in headers]
        for row in rows:
            for index, cell in enumerate(row[: len(headers)]):
                widths[index] = max(widths[index], len(cell))

        def _pad(cells: Sequence[str]) -> str:
            return "  ".join(
                (cells[index] if index < len(cells) else "").ljust(width)
                for index, width in enumerate(widths)
            ).rstrip()

        print(f"  {_pad(headers)}", file=self.stream)
        print(f"  {'  '.join('-' * width for width in widths)}", file=self.stream)
        for row in rows:
            print(f"  {_pad(row)}", file=self.stream)

    def structured(self, payload: Mapping[str, object], output: OutputFormat) -> None:
        self.stream.write(dump_structured(payload, output))


def dump_structured(payload: Mapping[str, object], output: OutputFormat) -> str:
    """Serialize ``payload`` as JSON or YAML with a trailing newline."""

    if output == "yaml":
        return yaml.safe_dump(
            dict(payload), sort_keys=True, allow_unicode=True, default_flow_style=False
        )
    return json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def create_renderer(*, verbose: bool = False, stream: TextIO | None = None) -> CLIRenderer:
    return CLIRenderer(verbose=verbose, stream=stream)


__all__ = ["CLIRenderer", "OutputFormat", "create_renderer", "dump_structured"]
