"""
Per-account blob storage on the local filesystem.

Directory layout per account:
  /home/<username>/.letsencrypt/
      public.key      — Account public key (PEM)
      private.key     — Account private key (PEM, mode 0o600)
      config.json     — Status / contact key-value pairs (see config_store.py)

All writes are atomic: temp file + fsync + atomic rename.
"""
from __future__ import annotations

import logging
import stat
from pathlib import Path

from account.errors import StorageFailure
from storage.atomic import atomic_write_bytes

logger = logging.getLogger(__name__)

# Blobs whose name matches are written owner-read/write only
_PRIVATE_SUFFIXES = ("private.key",)


class FileBlobStorage:
    """Opaque byte blobs stored as files in one directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, name: str) -> Path:
        # Flat namespace: reject anything that could escape the account dir
        if not name or "/" in name or "\\" in name or name in {".", ".."}:
            raise ValueError(f"Invalid blob name: {name!r}")
        return self.root / name

    def exists(self, name: str) -> bool:
        return self._path(name).is_file()

    def read(self, name: str) -> bytes:
        path = self._path(name)
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.error("Failed to read %s: %s", path, exc)
            raise StorageFailure(name, "read", exc) from exc

    def write(self, name: str, data: bytes) -> None:
        path = self._path(name)
        mode = stat.S_IRUSR | stat.S_IWUSR if name.endswith(_PRIVATE_SUFFIXES) else None
        try:
            atomic_write_bytes(path, data, mode=mode)
        except OSError as exc:
            logger.error("Failed to write %s: %s", path, exc)
            raise StorageFailure(name, "write", exc) from exc
        logger.debug("Wrote %d bytes to %s", len(data), path)

    def discard(self, name: str) -> None:
        """Remove a blob if present (used to roll back a half-written key pair)."""
        path = self._path(name)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to remove %s: %s", path, exc)
            raise StorageFailure(name, "discard", exc) from exc
