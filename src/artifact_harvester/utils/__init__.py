"""Utility exports for artifact materialization."""

from artifact_harvester.utils.fs import (
    ArtifactPathError,
    atomic_write,
    resolve_artifact_path,
    write_artifacts,
)

__all__ = [
    "ArtifactPathError",
    "atomic_write",
    "resolve_artifact_path",
    "write_artifacts",
]
