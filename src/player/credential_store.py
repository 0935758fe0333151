"""
Persistent credential and manifest cache for the player.

Stores the device secret and the last good manifest in a single JSON file in
the player's config directory, under ``secret:<device_code>`` and
``manifest:<device_code>`` keys, so several displays can share one directory.
"""

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from src.common.logger import setup_logger

logger = setup_logger(__name__)


class CredentialStore:
    """Thread-safe JSON key/value store keyed by device code."""

    FILENAME = "credentials.json"

    def __init__(self, config_dir: str):
        self.path = Path(config_dir) / self.FILENAME
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable credential store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix('.tmp')
        with open(tmp_path, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    def _get(self, key: str) -> Any:
        with self._lock:
            return self._read().get(key)

    def _put(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
            self._write(data)

    # Secret

    def get_secret(self, device_code: str) -> Optional[str]:
        return self._get(f"secret:{device_code}") or None

    def save_secret(self, device_code: str, secret: str) -> None:
        self._put(f"secret:{device_code}", secret)
        logger.info(f"Stored secret for {device_code}")

    def clear_secret(self, device_code: str) -> None:
        self._put(f"secret:{device_code}", None)
        logger.info(f"Cleared secret for {device_code}")

    # Manifest cache

    def get_manifest(self, device_code: str) -> Optional[Dict[str, Any]]:
        manifest = self._get(f"manifest:{device_code}")
        return manifest if isinstance(manifest, dict) else None

    def save_manifest(self, device_code: str, manifest: Dict[str, Any]) -> None:
        self._put(f"manifest:{device_code}", manifest)

    def clear_manifest(self, device_code: str) -> None:
        self._put(f"manifest:{device_code}", None)
