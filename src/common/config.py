"""
YAML defaults for the display player.

A fleet image can ship a defaults file so every screen starts with the same
CMS URL and cadences before any per-device JSON exists:

    cms:
      base_url: https://cms.example.com
    player:
      fetch_timeout_seconds: 15
      heartbeat_interval_seconds: 30
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULTS_ENV_VAR = 'SIGNAGE_DEFAULTS_FILE'


class Config:
    """Read-mostly view of a YAML defaults file."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to the YAML file. If None, SIGNAGE_DEFAULTS_FILE
                         is used when set.
        """
        if config_path is None:
            config_path = os.environ.get(DEFAULTS_ENV_VAR)

        self.config_path = Path(config_path) if config_path else None
        self._config: Dict[str, Any] = {}
        if self.config_path is not None and self.config_path.exists():
            self.load()

    def load(self) -> None:
        """Load configuration from the YAML file."""
        if self.config_path is None or not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            data = yaml.safe_load(f)

        self._config = data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Example:
            >>> config.get('cms.base_url')
            'https://cms.example.com'
        """
        value = self._config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def section(self, name: str) -> Dict[str, Any]:
        """A top-level mapping, or an empty dict."""
        value = self._config.get(name)
        return dict(value) if isinstance(value, dict) else {}

    def __repr__(self) -> str:
        return f"Config(path={self.config_path})"
