"""Configuration management for pyremsync."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_AUTH_URL = "https://webapp-prod.cloud.remarkable.engineering"
DEFAULT_DISCOVERY_URL = (
    "https://service-manager-production-dot-remarkable-production.appspot.com"
)

CONFIG_FILE_NAME = "config.json"
STORE_FILE_NAME = "store.json"


class Config:
    """Resolves settings from environment variables and the config file.

    Environment variables take precedence over values stored in
    ``~/.config/pyremsync/config.json``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config and store files.
                Defaults to $REMSYNC_CONFIG_DIR or ~/.config/pyremsync
        """
        if config_dir is None:
            env_dir = os.environ.get("REMSYNC_CONFIG_DIR")
            config_dir = (
                Path(env_dir) if env_dir else Path.home() / ".config" / "pyremsync"
            )
        self.config_dir = config_dir
        self._file_values: Optional[dict[str, Any]] = None

    def _load_file(self) -> dict[str, Any]:
        if self._file_values is None:
            path = self.get_config_path()
            self._file_values = {}
            if path.exists():
                try:
                    with open(path, encoding="utf-8") as f:
                        data = json.load(f)
                    if isinstance(data, dict):
                        self._file_values = data
                    else:
                        logger.warning(f"Ignoring malformed config file {path}")
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Failed to read config file {path}: {e}")
        return self._file_values

    def get_config_path(self) -> Path:
        """Return the path of the JSON config file."""
        return self.config_dir / CONFIG_FILE_NAME

    def get_store_path(self) -> Path:
        """Return the path of the persistent id mapping store."""
        return self.config_dir / STORE_FILE_NAME

    @property
    def auth_url(self) -> str:
        return os.environ.get("REMSYNC_AUTH_URL") or self._load_file().get(
            "auth_url", DEFAULT_AUTH_URL
        )

    @property
    def discovery_url(self) -> str:
        return os.environ.get("REMSYNC_DISCOVERY_URL") or self._load_file().get(
            "discovery_url", DEFAULT_DISCOVERY_URL
        )

    @property
    def storage_host(self) -> Optional[str]:
        """Fixed document-storage host; service discovery is used when unset."""
        return os.environ.get("REMSYNC_STORAGE_HOST") or self._load_file().get(
            "storage_host"
        )

    def get_default_skip_list(self) -> list[str]:
        """Folder names skipped when the command line gives none."""
        skip = self._load_file().get("skip", [])
        return [str(name) for name in skip] if isinstance(skip, list) else []

    def get_default_mode(self) -> str:
        return str(self._load_file().get("mode", "update"))


config = Config()
