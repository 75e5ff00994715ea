"""Module entrypoint for ``python -m artifact_harvester``."""

from __future__ import annotations

from artifact_harvester.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
