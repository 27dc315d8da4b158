"""Persist generated artifacts to the output directory.

Generation finishes in memory before anything touches the disk, so a failed
run never leaves a half-written package behind. Writing then happens in two
steps:

1. Every artifact path is checked to stay inside the output directory.
2. Files are written in parallel on a thread pool; each one atomically
   (temp file in the target directory, ``fsync``, then ``os.replace``), so
   readers never observe a partially written module.

Artifact paths are distinct, so the workers never contend for a file.
"""

from __future__ import annotations

import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Optional

from sdking.exceptions import OutputError
from sdking.models import GeneratedArtifact
from sdking.output import debug


def write_artifacts(
    artifacts: list[GeneratedArtifact],
    output_dir: str | Path,
    jobs: int = 4,
) -> list[Path]:
    """Write *artifacts* below *output_dir*.

    Args:
        artifacts: Artifacts with paths relative to *output_dir*.
        output_dir: Target directory. Created (including parents) if missing.
        jobs: Number of writer threads.

    Returns:
        Absolute paths of the written files, in artifact order.

    Raises:
        OutputError: If an artifact path escapes *output_dir* or a file
            cannot be written.
    """
    root = Path(output_dir).resolve()
    targets = [_target_path(root, artifact.path) for artifact in artifacts]

    write = partial(_atomic_write, mode=_file_mode())
    try:
        root.mkdir(parents=True, exist_ok=True)
        with ThreadPoolExecutor(max_workers=max(1, jobs)) as pool:
            list(pool.map(write, targets, (artifact.content for artifact in artifacts)))
    except OSError as exc:
        raise OutputError(f"Cannot write to {root}: {exc}") from exc

    debug(f"Wrote {len(targets)} files to {root}")
    return targets


def _target_path(root: Path, relative: str) -> Path:
    """Resolve *relative* below *root*, refusing anything that leaves it."""
    target = (root / relative).resolve()
    if target == root or root not in target.parents:
        raise OutputError(f"Artifact path '{relative}' escapes the output directory {root}")
    return target


def _file_mode() -> int:
    """Permissions a plain ``open()`` would give a new file under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def _atomic_write(path: Path, data: str, mode: int = 0o644) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On any failure the temp file is removed before the error propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    handle = None
    tmp_path: Optional[str] = None
    try:
        handle = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
            newline="\n",
        )
        tmp_path = handle.name
        handle.write(data)
        handle.flush()
        os.fsync(handle.fileno())
        handle.close()
        handle = None
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        if handle is not None:
            handle.close()
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
