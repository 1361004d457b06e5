"""Durable key-value storage for the id mapping and pairing credentials."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from .exceptions import RemSyncConfigError

logger = logging.getLogger(__name__)

# Pairing credentials share the store with the id mapping
DEVICE_TOKEN_KEY = "__REMARKABLE_DEVICE_TOKEN__"
DEVICE_ID_KEY = "__REMARKABLE_DEVICE_ID__"
RESERVED_KEYS = frozenset({DEVICE_TOKEN_KEY, DEVICE_ID_KEY})


class KeyValueStore(Protocol):
    """Flat string-to-string storage that survives process restarts."""

    def load(self) -> dict[str, str]:
        """Return a copy of every stored key."""
        ...

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def update(self, values: dict[str, str]) -> None:
        """Write several keys at once, leaving other keys untouched."""
        ...


class JsonFileStore:
    """Key-value store kept in a single JSON file.

    Every write rewrites the file through a temporary file and an atomic
    rename, so a crash never leaves a half-written store behind.
    """

    def __init__(self, path: Path):
        """Initialize the store.

        Args:
            path: JSON file holding the store. Created on first write.
        """
        self.path = path

    def load(self) -> dict[str, str]:
        if not self.path.exists():
            logger.debug(f"No store found at {self.path}")
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise RemSyncConfigError(f"Store {self.path} is corrupt: {e}") from e

        if not isinstance(data, dict):
            raise RemSyncConfigError(f"Store {self.path} does not hold an object")
        return {str(k): str(v) for k, v in data.items()}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.load().get(key, default)

    def set(self, key: str, value: str) -> None:
        self.update({key: value})

    def update(self, values: dict[str, str]) -> None:
        data = self.load()
        data.update(values)
        self._write(data)
        logger.debug(f"Wrote {len(values)} key(s) to {self.path}")

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=".store-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
