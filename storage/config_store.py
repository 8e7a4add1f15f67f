"""
Per-account key/value status store, persisted as a small JSON document.

Every `set` rewrites the whole file atomically, so readers never see a
half-updated config.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from storage.atomic import atomic_write_text
from account.errors import StorageFailure

logger = logging.getLogger(__name__)


class JsonConfigStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def all(self) -> dict[str, Any]:
        """Return every stored key/value pair ({} when nothing has been set)."""
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text())
        except (OSError, ValueError) as exc:
            logger.error("Failed to read config %s: %s", self.path, exc)
            raise StorageFailure(self.path.name, "read", exc) from exc

    def get(self, key: str, default: Any = None) -> Any:
        return self.all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self.all()
        data[key] = value
        try:
            atomic_write_text(self.path, json.dumps(data, indent=2, sort_keys=True))
        except OSError as exc:
            logger.error("Failed to write config %s: %s", self.path, exc)
            raise StorageFailure(self.path.name, "write", exc) from exc
        logger.debug("Config %s: %s = %r", self.path, key, value)
