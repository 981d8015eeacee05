#!/usr/bin/env python3
"""Configuration loader for consultroom.

This module provides the configuration used by the chat client and the relay
server. Values come from three layers, later layers winning:

- Built-in defaults
- JSON file `client_config.json` in the config directory
- Environment variables (a `.env` file is honoured through python-dotenv)

Environment overrides:
- CONSULTROOM_SERVER_URL        -> server.url
- CONSULTROOM_LOG_LEVEL         -> logging.level
- CONSULTROOM_MIN_SEND_INTERVAL -> session.min_send_interval
"""
import os
import json
import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .message_utils import STRUCTURED_NOTE_PREFIX
from .path_config import get_client_config_file, get_config_dir

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "CONSULTROOM_SERVER_URL": ("server", "url", str),
    "CONSULTROOM_LOG_LEVEL": ("logging", "level", str),
    "CONSULTROOM_MIN_SEND_INTERVAL": ("session", "min_send_interval", float),
}


class ConfigManager:
    def __init__(self, config_dir: Optional[str] = None, load_env: bool = True):
        """Initialize the configuration manager."""
        self._config_dir = config_dir or get_config_dir()
        self._config: Dict[str, Any] = {}
        self._load_defaults()
        self._load_config_file()
        if load_env:
            load_dotenv()
            self._apply_env_overrides(os.environ)

    def _load_defaults(self) -> None:
        """Load default configuration values."""
        self._config = {
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "server": {
                "url": "http://localhost:5000",
                "host": "0.0.0.0",
                "port": 5000
            },
            "session": {
                "structured_note_prefix": STRUCTURED_NOTE_PREFIX,
                "min_send_interval": 0.0
            }
        }

    def _load_config_file(self) -> None:
        """Merge client_config.json from the config directory, if present."""
        filepath = get_client_config_file(self._config_dir)
        if not os.path.exists(filepath):
            logger.debug(f"No config file at {filepath}, using defaults")
            return
        try:
            with open(filepath, 'r') as f:
                file_config = json.load(f)
            self._validate_config(file_config)
            self._merge_config(self._config, file_config)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading config file {filepath}: {e}")

    def _apply_env_overrides(self, environ) -> None:
        for env_key, (section, key, cast) in ENV_OVERRIDES.items():
            raw = environ.get(env_key)
            if raw is None or raw == "":
                continue
            try:
                self.set(section, key, cast(raw))
            except ValueError:
                logger.error(f"Ignoring invalid value for {env_key}: {raw!r}")

    def _merge_config(self, base: Dict, update: Dict) -> None:
        """
        Recursively merge two configuration dictionaries.
        Args:
            base: Base configuration dictionary
            update: Dictionary with updates to merge
        """
        for key, value in update.items():
            if (
                key in base and
                isinstance(base[key], dict) and
                isinstance(value, dict)
            ):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate a configuration file before it is merged."""
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a JSON object")

        for section in ("logging", "server", "session"):
            if not isinstance(config.get(section, {}), dict):
                raise ValueError(f"Section '{section}' must be an object")

        server = config.get("server", {})
        if "port" in server and not isinstance(server["port"], int):
            raise ValueError("Server port must be an integer")

        session = config.get("session", {})
        interval = session.get("min_send_interval", 0.0)
        if not isinstance(interval, (int, float)) or interval < 0:
            raise ValueError("session.min_send_interval must be a non-negative number")

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.
        Args:
            section: Configuration section
            key: Configuration key
            default: Default value if not found
        Returns:
            Configuration value or default
        """
        try:
            return self._config[section][key]
        except KeyError:
            return default

    def set(self, section: str, key: str, value: Any) -> None:
        """
        Set a configuration value.
        Args:
            section: Configuration section
            key: Configuration key
            value: Value to set
        """
        if section not in self._config:
            self._config[section] = {}
        self._config[section][key] = value

    def save(self) -> bool:
        """
        Save current configuration to client_config.json.
        Returns:
            bool: True if save was successful, False otherwise
        """
        filepath = get_client_config_file(self._config_dir)
        try:
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
            with open(filepath, 'w') as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)
            return True
        except OSError as e:
            logger.error(f"Error saving config to {filepath}: {e}")
            return False

    @property
    def config(self) -> Dict[str, Any]:
        """Get the complete configuration dictionary."""
        return self._config.copy()


# Create a global configuration instance
config = ConfigManager()
