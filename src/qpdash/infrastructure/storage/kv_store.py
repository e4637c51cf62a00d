from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from qpdash.infrastructure.storage.json_store import read_json, write_json

logger = logging.getLogger(__name__)


def _safe_chmod(filepath: Path, mode: int) -> None:
    try:
        os.chmod(filepath, mode)
    except OSError:
        pass


class KeyValueStore:
    """
    Process-wide key-value state backed by one JSON file.

    The file is read once by `load()`; every `set`/`pop` writes through.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._data: dict[str, Any] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> "KeyValueStore":
        if self._loaded:
            return self
        payload = read_json(self._path, {})
        self._data = dict(payload) if isinstance(payload, dict) else {}
        self._loaded = True
        return self

    def get(self, key: str, default: Any = None) -> Any:
        self.load()
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.load()
        self._data[key] = value
        self._flush()

    def pop(self, key: str, default: Any = None) -> Any:
        self.load()
        if key not in self._data:
            return default
        value = self._data.pop(key)
        self._flush()
        return value

    def __contains__(self, key: str) -> bool:
        self.load()
        return key in self._data

    def _flush(self) -> None:
        try:
            write_json(self._path, self._data)
        except OSError as exc:
            logger.warning("⚠️ Unable to write state file %s: %s", self._path, exc)
            return
        _safe_chmod(self._path, 0o600)


class MemoryKeyValueStore(KeyValueStore):
    """Non-persistent variant used by tests and one-off commands."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        super().__init__(Path(os.devnull))
        self._data = dict(initial or {})
        self._loaded = True

    def _flush(self) -> None:
        return
