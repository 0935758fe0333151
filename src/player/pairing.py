"""
Pairing flow for an unpaired screen.

The screen asks the CMS for a 6-digit pin, displays it, and polls until an
administrator has claimed it, at which point the CMS hands out the device
secret.
"""

import threading
import time
from typing import Callable, Optional

from src.common.cms_client import CmsClient, CredentialError, ServerFault, TransientNetworkError
from src.common.logger import setup_logger

from .credential_store import CredentialStore

logger = setup_logger(__name__)


class PairingClient:
    """Drives INIT and CLAIM_POLL for one device code."""

    DEFAULT_POLL_SECONDS = 5
    DEFAULT_PIN_TTL_SECONDS = 600

    def __init__(
        self,
        client: CmsClient,
        store: CredentialStore,
        poll_seconds: float = DEFAULT_POLL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.client = client
        self.store = store
        self.poll_seconds = poll_seconds
        self._clock = clock

        self.pin: Optional[str] = None
        self._pin_deadline: Optional[float] = None
        self._stop_event = threading.Event()

    def request_pin(self) -> str:
        """
        Ask the CMS for a new pin.

        Returns:
            The pin to display

        Raises:
            TransientNetworkError, ServerFault
        """
        data = self.client.pairing_init()
        self.pin = str(data['pairing_pin'])
        ttl = data.get('expires_in') or self.DEFAULT_PIN_TTL_SECONDS
        self._pin_deadline = self._clock() + float(ttl)

        logger.info(f"Pairing pin {self.pin} valid for {ttl}s")
        return self.pin

    def cancel(self) -> None:
        """Abort a running wait_for_secret."""
        self._stop_event.set()

    def wait_for_secret(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Poll CLAIM_POLL until the pin is claimed.

        Stops when a secret arrives, the pin's window lapses, ``timeout``
        elapses, or cancel() is called. Network failures are logged and the
        poll continues.

        Returns:
            The device secret (also saved to the store), or None
        """
        start = self._clock()
        deadlines = [d for d in (self._pin_deadline, start + timeout if timeout else None) if d]
        deadline = min(deadlines) if deadlines else None
        self._stop_event.clear()

        while not self._stop_event.is_set():
            try:
                secret = self.client.claim_poll()
            except (TransientNetworkError, ServerFault, CredentialError) as e:
                logger.warning(f"Pairing poll failed: {e}")
                secret = None

            if secret:
                self.store.save_secret(self.client.device_code, secret)
                logger.info(f"Device {self.client.device_code} paired")
                self.pin = None
                return secret

            if deadline is not None and self._clock() >= deadline:
                logger.info("Pairing window lapsed without a claim")
                return None

            if self._stop_event.wait(timeout=self.poll_seconds):
                break

        return None

    def pair(self, on_pin: Optional[Callable[[str], None]] = None,
             timeout: Optional[float] = None) -> Optional[str]:
        """
        Run the whole flow: request a pin, show it, wait for the claim.

        Args:
            on_pin: Called with the pin so the UI can display it
            timeout: Give up after this many seconds

        Returns:
            The device secret, or None if the pin lapsed
        """
        pin = self.request_pin()
        if on_pin:
            on_pin(pin)
        return self.wait_for_secret(timeout=timeout)
