"""
Manifest Sync Service for the display player.
Keeps the screen's manifest current by polling the CMS on the interval the
manifest dictates, caching the last good manifest for offline playback.
"""

import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from src.common.cms_client import (
    CmsClient,
    CredentialError,
    NoContentYet,
    ServerFault,
    TransientNetworkError,
)
from src.common.logger import setup_logger

from .credential_store import CredentialStore
from .state_machine import PlayerState, PlayerStateMachine


logger = setup_logger(__name__)


class SyncService:
    """
    Fetches the manifest in a background thread and drives the state machine.

    Outcomes of a refresh:
    - manifest            -> PLAYING, manifest cached
    - NoContentYet        -> STANDBY, polled at the standby cadence
    - CredentialError     -> secret dropped, SECRET_REQUIRED
    - network/server fault -> cached manifest with offline flag, else ERROR

    Each refresh takes a generation number; a result that arrives after a
    newer refresh started is discarded.
    """

    DEFAULT_POLL_SECONDS = 60
    STANDBY_POLL_SECONDS = 30

    def __init__(
        self,
        client: CmsClient,
        store: CredentialStore,
        state_machine: PlayerStateMachine,
        default_poll_seconds: int = DEFAULT_POLL_SECONDS,
        standby_poll_seconds: int = STANDBY_POLL_SECONDS,
        on_manifest: Optional[Callable[[Dict[str, Any], bool], None]] = None,
        on_standby: Optional[Callable[[Dict[str, Any]], None]] = None
    ):
        """
        Initialize the sync service.

        Args:
            client: CMS client bound to this device code
            store: Credential and manifest store
            state_machine: Player state machine to drive
            default_poll_seconds: Interval until a manifest dictates one
            standby_poll_seconds: Interval while in STANDBY
            on_manifest: Called with (manifest, offline) when content changes
            on_standby: Called with the standby body on entering STANDBY
        """
        self.client = client
        self.store = store
        self.state_machine = state_machine
        self.default_poll_seconds = default_poll_seconds
        self.standby_poll_seconds = standby_poll_seconds
        self._on_manifest = on_manifest
        self._on_standby = on_standby

        self._manifest: Optional[Dict[str, Any]] = None
        self._standby: Optional[Dict[str, Any]] = None
        self._generation = 0
        self._lock = threading.Lock()

        # Background thread state
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()

        # Sync statistics
        self._last_sync_time: Optional[datetime] = None
        self._last_sync_success = False
        self._consecutive_failures = 0
        self._total_syncs = 0
        self._total_failures = 0
        self._discarded_results = 0

    @property
    def device_code(self) -> str:
        return self.client.device_code

    @property
    def manifest(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._manifest

    @property
    def current_version(self) -> Optional[str]:
        """Version of the manifest on screen, if any."""
        manifest = self.manifest
        if not manifest:
            return None
        return (manifest.get('resolved') or {}).get('version')

    @property
    def status_label(self) -> str:
        """Status string reported in heartbeats."""
        state = self.state_machine.state
        if state == PlayerState.PLAYING and self.state_machine.offline:
            return 'offline'
        return state.value

    def next_interval(self) -> int:
        """Seconds until the next refresh given the current state."""
        state = self.state_machine.state
        if state == PlayerState.STANDBY:
            standby = self._standby or {}
            return int(standby.get('poll_seconds') or self.standby_poll_seconds)
        if state == PlayerState.PLAYING and not self.state_machine.offline:
            manifest = self.manifest or {}
            return int(manifest.get('poll_seconds') or self.default_poll_seconds)
        return self.default_poll_seconds

    def start(self) -> None:
        """Start the background sync thread."""
        if self._running:
            logger.warning("Sync service already running")
            return

        self._running = True
        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._sync_loop,
            name="SyncService",
            daemon=True
        )
        self._thread.start()

        logger.info("Sync service started for %s", self.device_code)

    def stop(self) -> None:
        """Stop the background sync thread."""
        if not self._running:
            return

        logger.info("Stopping sync service...")
        self._running = False
        self._stop_event.set()
        self._wake_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)

        logger.info("Sync service stopped")

    def wake(self) -> None:
        """Cut the current wait short and refresh now."""
        self._wake_event.set()

    def _sync_loop(self) -> None:
        """Background thread sync loop."""
        while self._running:
            try:
                self.refresh_now()
            except Exception as e:
                # A bug in a callback must not kill the refresh thread
                logger.exception("Unexpected error during refresh: %s", e)

            self._wake_event.wait(timeout=self.next_interval())
            self._wake_event.clear()

            if self._stop_event.is_set():
                break

        logger.info("Sync loop ended")

    def _begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            current = generation == self._generation
        if not current:
            self._discarded_results += 1
            logger.debug("Discarding result of superseded refresh #%d", generation)
        return current

    def _enter(self, target: PlayerState, error_message: Optional[str] = None) -> None:
        """Transition, passing through LOADING when no direct edge exists."""
        if not self.state_machine.can_transition_to(target):
            self.state_machine.transition_to(PlayerState.LOADING)
        self.state_machine.transition_to(target, error_message=error_message)

    def refresh_now(self) -> PlayerState:
        """
        Fetch the manifest once and apply the outcome.

        Returns:
            The player state after the refresh
        """
        generation = self._begin()
        self._total_syncs += 1

        secret = self.store.get_secret(self.device_code)
        if not secret:
            self._enter(PlayerState.SECRET_REQUIRED)
            return self.state_machine.state

        try:
            manifest = self.client.fetch_manifest(secret, self.current_version)
        except NoContentYet as e:
            if self._is_current(generation):
                self._apply_standby(e.standby)
        except CredentialError as e:
            if self._is_current(generation):
                self._apply_credential_error(e)
        except (TransientNetworkError, ServerFault) as e:
            if self._is_current(generation):
                self._apply_fault(e)
        else:
            if self._is_current(generation):
                self._apply_manifest(manifest)

        return self.state_machine.state

    def _apply_manifest(self, manifest: Dict[str, Any]) -> None:
        self._record_success()

        with self._lock:
            previous = self._manifest
            self._manifest = manifest
            self._standby = None

        self.store.save_manifest(self.device_code, manifest)
        was_offline = self.state_machine.offline
        self._enter(PlayerState.PLAYING)
        self.state_machine.set_offline(False)

        if previous != manifest or was_offline:
            logger.info(
                "Manifest applied: version=%s scope=%s",
                (manifest.get('resolved') or {}).get('version'),
                (manifest.get('resolved') or {}).get('scope')
            )
            if self._on_manifest:
                self._on_manifest(manifest, False)

    def _apply_standby(self, standby: Dict[str, Any]) -> None:
        self._record_success()

        with self._lock:
            self._manifest = None
            self._standby = standby

        # Content was unpublished; the cache must not resurface it offline
        self.store.clear_manifest(self.device_code)
        entered = self.state_machine.state != PlayerState.STANDBY
        self._enter(PlayerState.STANDBY)

        if entered:
            debug = standby.get('debug') or {}
            logger.info(
                "No content yet for %s (tenant=%s role=%s active_role_pubs=%s)",
                self.device_code,
                debug.get('device_tenant'),
                debug.get('device_role_id'),
                debug.get('active_role_pub_count')
            )
            if self._on_standby:
                self._on_standby(standby)

    def _apply_credential_error(self, error: CredentialError) -> None:
        self._record_failure()
        logger.warning("Credentials rejected: %s", error)

        self.store.clear_secret(self.device_code)
        self._enter(PlayerState.SECRET_REQUIRED)

    def _apply_fault(self, error: Exception) -> None:
        self._record_failure()
        logger.warning("Manifest refresh failed (%s): %s", type(error).__name__, error)

        state = self.state_machine.state
        if state == PlayerState.STANDBY:
            # Standby stays up; next poll tries again
            return

        with self._lock:
            cached = self._manifest
        if cached is None:
            cached = self.store.get_manifest(self.device_code)

        if cached is None:
            self._enter(PlayerState.ERROR, error_message=str(error))
            return

        with self._lock:
            showing = self._manifest is cached
            self._manifest = cached

        self._enter(PlayerState.PLAYING)
        self.state_machine.set_offline(True)
        if not showing and self._on_manifest:
            self._on_manifest(cached, True)

    def submit_secret(self, secret: str) -> None:
        """Store an operator-entered or paired secret and refresh."""
        secret = (secret or '').strip()
        if not secret:
            raise ValueError("secret must not be empty")

        self.store.save_secret(self.device_code, secret)
        if self.state_machine.state == PlayerState.SECRET_REQUIRED:
            self.state_machine.transition_to(PlayerState.LOADING)
        self.wake()

    def retry(self) -> None:
        """Retry action offered on the ERROR screen."""
        if self.state_machine.state == PlayerState.ERROR:
            self.state_machine.transition_to(PlayerState.LOADING)
        self.wake()

    def _record_success(self) -> None:
        self._last_sync_time = datetime.now()
        self._last_sync_success = True
        self._consecutive_failures = 0

    def _record_failure(self) -> None:
        self._last_sync_time = datetime.now()
        self._last_sync_success = False
        self._consecutive_failures += 1
        self._total_failures += 1

    def get_status(self) -> Dict[str, Any]:
        """
        Get current sync status.

        Returns:
            Dictionary with sync statistics and state
        """
        return {
            'running': self._running,
            'device_code': self.device_code,
            'state': self.state_machine.state.value,
            'offline': self.state_machine.offline,
            'current_version': self.current_version,
            'next_interval': self.next_interval(),
            'last_sync_time': self._last_sync_time.isoformat() if self._last_sync_time else None,
            'last_sync_success': self._last_sync_success,
            'consecutive_failures': self._consecutive_failures,
            'total_syncs': self._total_syncs,
            'total_failures': self._total_failures,
            'discarded_results': self._discarded_results,
        }
