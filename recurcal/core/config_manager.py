"""Configuration management from environment variables and .env files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return result

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment to avoid
        surprising overrides of user's environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        parsed = parse_env_file(self.env_file_path)

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - RECURCAL_WEB_HOST -> 'server_bind'
        - RECURCAL_WEB_PORT -> 'server_port'
        - RECURCAL_LOG_LEVEL -> 'log_level'
        - RECURCAL_STORE -> 'store_backend'
        - RECURCAL_STORE_PATH -> 'store_path'
        - RECURCAL_WINDOW_MONTHS -> 'default_window_months'
        - RECURCAL_MAX_ITERATIONS -> 'max_iterations'
        - RECURCAL_WINDOW_MODIFIED_INSTANCES -> 'window_modified_instances'

        Values are passed through as strings; Config.from_dict does the coercion.
        """
        mapping = {
            "RECURCAL_WEB_HOST": "server_bind",
            "RECURCAL_WEB_PORT": "server_port",
            "RECURCAL_LOG_LEVEL": "log_level",
            "RECURCAL_STORE": "store_backend",
            "RECURCAL_STORE_PATH": "store_path",
            "RECURCAL_WINDOW_MONTHS": "default_window_months",
            "RECURCAL_MAX_ITERATIONS": "max_iterations",
            "RECURCAL_WINDOW_MODIFIED_INSTANCES": "window_modified_instances",
        }

        cfg: dict[str, Any] = {}
        for env_key, cfg_key in mapping.items():
            value = os.environ.get(env_key)
            if value:
                cfg[cfg_key] = value

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        This is the main entry point for loading configuration.
        """
        self.load_env_file()
        return self.build_config_from_env()
