"""
Heartbeat Reporter - Reports device liveness to the CMS at a fixed interval.
Fire-and-forget: failures are logged and counted, never acted on.
"""

import threading
import time
from typing import Any, Callable, Dict, Optional

from src.common.cms_client import CmsClient, CmsClientError
from src.common.logger import setup_logger

logger = setup_logger(__name__)


class HeartbeatReporter:
    """Reports device status to the CMS at regular intervals."""

    DEFAULT_INTERVAL = 30  # seconds between heartbeats

    def __init__(
        self,
        client: CmsClient,
        secret_provider: Callable[[], Optional[str]],
        interval: int = DEFAULT_INTERVAL
    ):
        """
        Initialize heartbeat reporter.

        Args:
            client: CMS client bound to this device code
            secret_provider: Returns the current device secret (None while unpaired)
            interval: Seconds between heartbeats (default: 30)
        """
        self.client = client
        self.interval = interval
        self._secret_provider = secret_provider

        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._status_callback: Optional[Callable[[], Dict[str, Any]]] = None

        # Track last heartbeat
        self._last_heartbeat_time: Optional[float] = None
        self._last_heartbeat_success: bool = False
        self._consecutive_failures = 0

    def set_status_callback(self, callback: Callable[[], Dict[str, Any]]) -> None:
        """
        Set callback function for getting current playback status.

        The callback should return a dict with keys:
        - status: str (playing, standby, offline, error, ...)
        - current_version: str or None

        Args:
            callback: Function that returns current status dict
        """
        self._status_callback = callback

    def _collect_status(self) -> Dict[str, Any]:
        status = {"status": "unknown", "current_version": None}
        if self._status_callback:
            try:
                status.update(self._status_callback())
            except Exception as e:
                logger.error(f"Error getting playback status: {e}")
        return status

    def send_heartbeat(self) -> bool:
        """
        Send one heartbeat.

        Returns:
            True if the CMS accepted it, False otherwise (including no secret)
        """
        secret = self._secret_provider()
        if not secret:
            logger.debug("Skipping heartbeat: device has no secret yet")
            return False

        status = self._collect_status()

        try:
            self.client.send_heartbeat(
                secret,
                current_version=status.get("current_version"),
                status=status.get("status", "unknown")
            )
        except CmsClientError as e:
            logger.warning(f"Heartbeat failed ({type(e).__name__}): {e}")
            self._last_heartbeat_success = False
            self._consecutive_failures += 1
            return False

        self._last_heartbeat_time = time.time()
        self._last_heartbeat_success = True
        self._consecutive_failures = 0
        logger.debug(f"Heartbeat sent: {status.get('status')}")
        return True

    def _heartbeat_loop(self) -> None:
        """Background thread loop for sending heartbeats."""
        logger.info(f"Heartbeat reporter started (interval: {self.interval}s)")

        while self._running:
            self.send_heartbeat()

            if self._stop_event.wait(timeout=self.interval):
                break

        logger.info("Heartbeat reporter stopped")

    def start(self) -> None:
        """Start the heartbeat reporter background thread."""
        if self._running:
            logger.warning("Heartbeat reporter already running")
            return

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._heartbeat_loop, name="HeartbeatReporter", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the heartbeat reporter."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    def is_running(self) -> bool:
        """Check if heartbeat reporter is running."""
        return self._running

    def get_last_heartbeat_info(self) -> Dict[str, Any]:
        """
        Get information about the last heartbeat.

        Returns:
            Dictionary with last heartbeat details
        """
        return {
            "last_time": self._last_heartbeat_time,
            "last_success": self._last_heartbeat_success,
            "consecutive_failures": self._consecutive_failures
        }
