"""
Atomic file writing with fsync so a key file is never half-written.

Pattern:
  1. Write to a temporary file in the same directory
  2. fsync to flush to disk
  3. chmod (optional), then rename atomically over the target

A crash mid-write leaves the previous file intact.
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional


def atomic_write_bytes(path: Path, content: bytes, mode: Optional[int] = None) -> None:
    """
    Atomically replace *path* with *content*.

    When *mode* is given it is applied to the temp file before the rename, so
    the target never exists with looser permissions.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory as the target: rename must not cross filesystems
    fd, temp_path = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        if mode is not None:
            os.chmod(temp_path, mode)

        # On POSIX this overwrites the destination
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def atomic_write_text(path: Path, content: str, mode: Optional[int] = None, encoding: str = "utf-8") -> None:
    """Text wrapper around atomic_write_bytes."""
    atomic_write_bytes(path, content.encode(encoding), mode=mode)
