"""
SignagePlayer - Main player orchestrator for the display player.
Coordinates all components: credential storage, pairing, manifest sync,
heartbeat reporting and playback.
"""

import argparse
import queue
import signal
import sys
import threading
from typing import Any, Dict, Optional

from src.common.cms_client import CmsClient, CmsClientError
from src.common.device_id import get_or_create_device_code
from src.common.logger import setup_logger

from .config import PlayerConfig
from .credential_store import CredentialStore
from .heartbeat import HeartbeatReporter
from .pairing import PairingClient
from .playback import LoggingRenderer, PlaybackEngine, Renderer
from .state_machine import PlayerState, PlayerStateMachine
from .sync_service import SyncService

logger = setup_logger(__name__)


class SignagePlayer:
    """
    Main player orchestrator that:
    1. Loads configuration and the device code
    2. Starts the manifest sync and heartbeat threads
    3. Runs the pairing flow whenever a secret is required
    4. Hands manifests to the playback engine on the main loop
    5. Handles coordinated shutdown
    """

    TICK_SECONDS = 0.1

    def __init__(
        self,
        config: PlayerConfig,
        renderer: Optional[Renderer] = None,
        auto_pair: bool = True
    ):
        self.config = config
        self.auto_pair = auto_pair

        if not config.device_code:
            config.device_code = get_or_create_device_code(str(config.config_dir))
            config.save_device()
        self.device_code = config.device_code

        self.store = CredentialStore(str(config.config_dir))
        self.client = CmsClient(config.cms_url, self.device_code, timeout=config.fetch_timeout_seconds)

        self.playback = PlaybackEngine(renderer or LoggingRenderer())
        self.state_machine = PlayerStateMachine(on_state_changed=self._on_state_changed)
        self.sync = SyncService(
            self.client,
            self.store,
            self.state_machine,
            default_poll_seconds=config.default_poll_seconds,
            standby_poll_seconds=config.standby_poll_seconds,
            on_manifest=self._on_manifest,
            on_standby=self._on_standby,
        )
        self.heartbeat = HeartbeatReporter(
            self.client,
            secret_provider=lambda: self.store.get_secret(self.device_code),
            interval=config.heartbeat_interval_seconds,
        )
        self.heartbeat.set_status_callback(self._heartbeat_status)
        self.pairing = PairingClient(self.client, self.store, poll_seconds=config.pairing_poll_seconds)

        # Playback runs on the main loop only; other threads post events here
        self._events: "queue.Queue[tuple]" = queue.Queue()
        self._running = False
        self._stop_event = threading.Event()
        self._pairing_thread: Optional[threading.Thread] = None

    # Callbacks from the sync thread

    def _on_manifest(self, manifest: Dict[str, Any], offline: bool) -> None:
        self._events.put(('manifest', manifest))

    def _on_standby(self, standby: Dict[str, Any]) -> None:
        self._events.put(('standby', standby))

    def _on_state_changed(self, machine: PlayerStateMachine, old: PlayerState, new: PlayerState) -> None:
        if new == PlayerState.SECRET_REQUIRED and self.auto_pair:
            self._start_pairing()
        elif new == PlayerState.ERROR:
            logger.error("Nothing to play: %s", machine.error_message)

    def _heartbeat_status(self) -> Dict[str, Any]:
        return {
            'status': self.sync.status_label,
            'current_version': self.sync.current_version,
        }

    # Pairing

    def _start_pairing(self) -> None:
        if self._pairing_thread and self._pairing_thread.is_alive():
            return
        self._pairing_thread = threading.Thread(target=self._pairing_loop, name="Pairing", daemon=True)
        self._pairing_thread.start()

    def _pairing_loop(self) -> None:
        """Issue pins until one is claimed or the player stops."""
        while self._running and self.state_machine.needs_secret:
            try:
                secret = self.pairing.pair(on_pin=self._show_pin)
            except CmsClientError as e:
                logger.warning("Could not start pairing: %s", e)
                secret = None
                if self._stop_event.wait(timeout=self.pairing.poll_seconds):
                    return

            if secret:
                self.submit_secret(secret)
                return

    def _show_pin(self, pin: str) -> None:
        logger.info("Pair this screen (%s) with pin %s", self.device_code, pin)

    def submit_secret(self, secret: str) -> None:
        """Accept a secret entered by an operator or obtained by pairing."""
        self.pairing.cancel()
        self.sync.submit_secret(secret)

    # Main loop

    def process_events(self) -> None:
        """Apply queued manifest and standby events to playback."""
        while True:
            try:
                kind, payload = self._events.get_nowait()
            except queue.Empty:
                return

            if kind == 'manifest':
                self.playback.load_manifest(payload)
            elif kind == 'standby':
                self.playback.stop()

    def start(self) -> bool:
        """Start background services."""
        logger.info("Starting player %s against %s", self.device_code, self.config.cms_url)
        self._running = True
        self._stop_event.clear()

        if not self.store.get_secret(self.device_code):
            self.state_machine.transition_to(PlayerState.SECRET_REQUIRED)

        self.sync.start()
        self.heartbeat.start()
        return True

    def stop(self) -> None:
        """Stop all components."""
        logger.info("Stopping player...")
        self._running = False
        self._stop_event.set()
        self.pairing.cancel()
        self.sync.stop()
        self.heartbeat.stop()
        self.playback.stop()
        logger.info("Player stopped")

    def run(self) -> None:
        """Run the player until a signal is received (blocking)."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        if not self.start():
            logger.error("Failed to start player")
            sys.exit(1)

        logger.info("Player running - press Ctrl+C to stop")
        try:
            while self._running:
                self.process_events()
                self.playback.tick()
                if self._stop_event.wait(timeout=self.TICK_SECONDS):
                    break
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

        self.stop()

    def _signal_handler(self, signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received signal: %s", sig_name)
        self._running = False
        self._stop_event.set()

    def get_status(self) -> Dict[str, Any]:
        return {
            'device_code': self.device_code,
            'state': self.state_machine.get_state_info(),
            'sync': self.sync.get_status(),
            'heartbeat': self.heartbeat.get_last_heartbeat_info(),
            'playback': self.playback.get_status(),
        }


def main(argv=None):
    """Main entry point for the player."""
    parser = argparse.ArgumentParser(description="Retail signage display player")
    parser.add_argument('--config-dir', help="Config directory path")
    parser.add_argument('--cms-url', help="CMS URL override")
    parser.add_argument('--device-code', help="Device code override")
    parser.add_argument('--secret', help="Device secret to store before starting")
    parser.add_argument('--no-pair', action='store_true', help="Do not run the pairing flow automatically")

    args = parser.parse_args(argv)

    config = PlayerConfig(args.config_dir)
    if args.cms_url:
        config.cms_url = args.cms_url
    if args.device_code:
        config.device_code = args.device_code
    if args.cms_url or args.device_code:
        config.save_device()

    player = SignagePlayer(config, auto_pair=not args.no_pair)
    if args.secret:
        player.store.save_secret(player.device_code, args.secret)

    player.run()


if __name__ == "__main__":
    main()
