"""
artifact-harvester — filesystem utilities

File: src/artifact_harvester/utils/fs.py
Last updated: 2026-10-18

Purpose
- Materialize extracted artifacts onto disk without partial files or path escapes.

Functional requirements
- Atomic writes use a temp file in the destination directory and a single replace.
- Artifact paths produced by a generator are untrusted: absolute paths, drive
  prefixes and ``..`` segments that leave the target root are refused.

Non-functional requirements
- Standard library only.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path, PurePosixPath

PathLike = str | os.PathLike[str]

__all__ = [
    "ArtifactPathError",
    "atomic_write",
    "resolve_artifact_path",
    "write_artifacts",
]


class ArtifactPathError(ValueError):
    """Raised when an artifact path would be written outside the target root."""


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``data`` to ``path``.

    The temp file lives next to the target so ``os.replace`` never crosses
    filesystems; file data is fsynced before the replace.
    """

    target = Path(path)
    target_parent = target.parent.resolve(strict=True)
    if not target_parent.is_dir():
        raise NotADirectoryError(f"{target_parent!s} is not a directory")

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target_parent),
    )
    temp_path = Path(temp_name)

    try:
        mode = "wb" if isinstance(data, bytes) else "w"
        open_kwargs = {} if isinstance(data, bytes) else {"encoding": encoding, "newline": ""}
        with os.fdopen(fd, mode, **open_kwargs) as file_handle:
            file_handle.write(data)
            file_handle.flush()
            os.fsync(file_handle.fileno())
        os.replace(temp_path, target)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def resolve_artifact_path(root: PathLike, relative_path: str) -> Path:
    """Return the on-disk location for ``relative_path`` under ``root``."""

    normalized = relative_path.strip().replace("\\", "/")
    if not normalized:
        raise ArtifactPathError("artifact path must not be empty")
    posix = PurePosixPath(normalized)
    if posix.is_absolute() or (posix.parts and posix.parts[0].endswith(":")):
        raise ArtifactPathError(f"artifact path must be relative: {relative_path!r}")

    resolved_root = Path(root).resolve()
    candidate = (resolved_root / Path(*posix.parts)).resolve()
    try:
        candidate.relative_to(resolved_root)
    except ValueError as exc:
        raise ArtifactPathError(
            f"artifact path escapes target directory: {relative_path!r}"
        ) from exc
    return candidate


def write_artifacts(files: Mapping[str, str], root: PathLike) -> list[Path]:
    """Write every ``path -> content`` entry under ``root`` and return the written paths.

    All paths are validated before the first write so a bad entry never leaves
    a half-materialized tree behind.
    """

    targets = [(resolve_artifact_path(root, path), content) for path, content in files.items()]
    written: list[Path] = []
    for target, content in targets:
        target.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(target, content)
        written.append(target)
    return written
