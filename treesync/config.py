"""Configuration management for treesync.

Values are resolved in this order:

1. Environment variables (``TREESYNC_*``)
2. The JSON config file (``~/.config/treesync/config.json``)
3. Built-in defaults
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SSH_PORT = 22
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_COMMAND_TIMEOUT = 300.0

CONFIG_FILE_NAME = "config.json"


class Config:
    """Resolved treesync settings."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory containing config.json. Defaults to
                ``$TREESYNC_CONFIG_DIR`` or ``~/.config/treesync``.
        """
        if config_dir is None:
            env_dir = os.environ.get("TREESYNC_CONFIG_DIR")
            config_dir = (
                Path(env_dir) if env_dir else Path.home() / ".config" / "treesync"
            )
        self.config_dir = config_dir
        self._file_values: Optional[dict[str, Any]] = None

    def get_config_path(self) -> Path:
        """Get the path of the JSON config file."""
        return self.config_dir / CONFIG_FILE_NAME

    def _load_file(self) -> dict[str, Any]:
        if self._file_values is not None:
            return self._file_values

        path = self.get_config_path()
        values: dict[str, Any] = {}
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigError(f"Cannot read config file {path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"Config file {path} must contain a JSON object")
            values = data
            logger.debug("Loaded config from %s", path)

        self._file_values = values
        return values

    def _get(self, env_name: str, file_key: str) -> Optional[Any]:
        value = os.environ.get(env_name)
        if value:
            return value
        return self._load_file().get(file_key)

    def _get_number(self, env_name: str, file_key: str, default: float) -> float:
        value = self._get(env_name, file_key)
        if value is None:
            return default
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{env_name} must be a number, got {value!r}") from e
        if number <= 0:
            raise ConfigError(f"{env_name} must be positive, got {value!r}")
        return number

    @property
    def username(self) -> Optional[str]:
        """Default SSH user name."""
        return self._get("TREESYNC_USER", "username")

    @property
    def password(self) -> Optional[str]:
        """Default SSH password."""
        return self._get("TREESYNC_PASSWORD", "password")

    @property
    def key_filename(self) -> Optional[str]:
        """Default SSH private key file."""
        value = self._get("TREESYNC_KEY_FILE", "keyFile")
        return os.path.expanduser(value) if value else None

    @property
    def port(self) -> int:
        """Default SSH port."""
        port = self._get_number("TREESYNC_PORT", "port", DEFAULT_SSH_PORT)
        if port != int(port) or port > 65535:
            raise ConfigError(f"TREESYNC_PORT is not a valid port: {port}")
        return int(port)

    @property
    def connect_timeout(self) -> float:
        """Seconds allowed for establishing a remote session."""
        return self._get_number(
            "TREESYNC_CONNECT_TIMEOUT", "connectTimeout", DEFAULT_CONNECT_TIMEOUT
        )

    @property
    def command_timeout(self) -> float:
        """Seconds allowed for a single remote command."""
        return self._get_number(
            "TREESYNC_COMMAND_TIMEOUT", "commandTimeout", DEFAULT_COMMAND_TIMEOUT
        )

    def reload(self) -> None:
        """Forget cached file values so the next access re-reads the file."""
        self._file_values = None


config = Config()
