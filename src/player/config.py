"""
JSON configuration management for the display player.
Handles device.json and settings.json files, layered over optional YAML
defaults and environment overrides.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from src.common.config import Config as DefaultsConfig


class PlayerConfig:
    """Manages JSON configuration files for the player."""

    DEFAULT_CONFIG_DIR = str(Path.home() / ".signage")
    DEFAULT_CMS_URL = "http://localhost:5002"

    # Built-in settings; YAML defaults and settings.json override these
    DEFAULT_SETTINGS: Dict[str, Any] = {
        'fetch_timeout_seconds': 15,
        'heartbeat_interval_seconds': 30,
        'default_poll_seconds': 60,
        'standby_poll_seconds': 30,
        'pairing_poll_seconds': 5,
    }

    def __init__(self, config_dir: Optional[str] = None, defaults_file: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Path to config directory. If None, uses DEFAULT_CONFIG_DIR
            defaults_file: Optional YAML defaults file
        """
        if config_dir is None:
            config_dir = self.DEFAULT_CONFIG_DIR

        self.config_dir = Path(config_dir)
        self._defaults = DefaultsConfig(defaults_file)

        self._device: Dict[str, Any] = {}
        self._settings: Dict[str, Any] = {}

        self.load_all()

    def _load_json(self, filename: str) -> Dict[str, Any]:
        """
        Load a JSON config file.

        Args:
            filename: Name of the JSON file to load

        Returns:
            Parsed JSON data as dictionary (empty if missing)
        """
        file_path = self.config_dir / filename
        if not file_path.exists():
            return {}

        with open(file_path, 'r') as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _save_json(self, filename: str, data: Dict[str, Any]) -> None:
        """
        Save data to a JSON config file.

        Args:
            filename: Name of the JSON file to save
            data: Dictionary to save as JSON
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)

        file_path = self.config_dir / filename
        with open(file_path, 'w') as f:
            json.dump(data, f, indent=2)

    def load_all(self) -> None:
        """Load all configuration files."""
        self._device = self._load_json("device.json")
        self._settings = self._load_json("settings.json")

        # Apply environment variable overrides
        self._apply_env_overrides()

    def _apply_env_overrides(self) -> None:
        """Override config values from environment variables."""
        if 'SIGNAGE_DEVICE_CODE' in os.environ:
            self._device['device_code'] = os.environ['SIGNAGE_DEVICE_CODE']

        if 'SIGNAGE_CMS_URL' in os.environ:
            self._device['cms_url'] = os.environ['SIGNAGE_CMS_URL']

    def save_all(self) -> None:
        """Save all configuration files."""
        self._save_json("device.json", self._device)
        self._save_json("settings.json", self._settings)

    def _setting(self, key: str) -> Any:
        if key in self._settings:
            return self._settings[key]
        return self._defaults.get(f'player.{key}', self.DEFAULT_SETTINGS[key])

    # Device config accessors

    @property
    def device_code(self) -> str:
        """Get device code."""
        return self._device.get('device_code', '')

    @device_code.setter
    def device_code(self, value: str) -> None:
        self._device['device_code'] = value

    @property
    def cms_url(self) -> str:
        """Get CMS base URL."""
        return self._device.get('cms_url') or self._defaults.get('cms.base_url', self.DEFAULT_CMS_URL)

    @cms_url.setter
    def cms_url(self, value: str) -> None:
        self._device['cms_url'] = value

    @property
    def display_name(self) -> str:
        return self._device.get('display_name', '')

    # Settings accessors

    @property
    def fetch_timeout_seconds(self) -> float:
        """Bound on every CMS request."""
        return float(self._setting('fetch_timeout_seconds'))

    @property
    def heartbeat_interval_seconds(self) -> int:
        return int(self._setting('heartbeat_interval_seconds'))

    @property
    def default_poll_seconds(self) -> int:
        """Refresh interval used until a manifest dictates one."""
        return int(self._setting('default_poll_seconds'))

    @property
    def standby_poll_seconds(self) -> int:
        return int(self._setting('standby_poll_seconds'))

    @property
    def pairing_poll_seconds(self) -> int:
        return int(self._setting('pairing_poll_seconds'))

    def set_setting(self, key: str, value: Any) -> None:
        """Set one settings.json value."""
        if key not in self.DEFAULT_SETTINGS:
            raise KeyError(f"Unknown setting: {key}")
        self._settings[key] = value

    def get_settings_config(self) -> Dict[str, Any]:
        """Effective settings with defaults applied."""
        return {key: self._setting(key) for key in self.DEFAULT_SETTINGS}

    def save_device(self) -> None:
        """Save device configuration to file."""
        self._save_json("device.json", self._device)

    def save_settings(self) -> None:
        """Save settings configuration to file."""
        self._save_json("settings.json", self._settings)

    def __repr__(self) -> str:
        return f"PlayerConfig(config_dir={self.config_dir})"
