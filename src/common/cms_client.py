"""
CMS Client - device API calls with a typed failure taxonomy.

Every call is bounded by a timeout and every failure surfaces as one of:

- CredentialError: the CMS rejected the device secret (401/403)
- NoContentYet: authenticated, nothing published (404 with a standby body)
- TransientNetworkError: timeout, DNS, refused connection
- ServerFault: 5xx, unexpected status or a body that is not valid JSON

Callers decide what each means for the screen; this module never retries.
"""

from typing import Any, Dict, Optional

import requests

from src.common.logger import setup_logger

logger = setup_logger(__name__)


class CmsClientError(Exception):
    """Base class for CMS client failures."""
    pass


class CredentialError(CmsClientError):
    """The device secret was rejected."""
    pass


class NoContentYet(CmsClientError):
    """The device is authenticated but has no publication; carries the standby body."""

    def __init__(self, standby: Optional[Dict[str, Any]] = None):
        self.standby = standby or {}
        super().__init__('No active publication for this device')


class TransientNetworkError(CmsClientError):
    """The CMS could not be reached in time."""
    pass


class ServerFault(CmsClientError):
    """The CMS answered, but not with anything usable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class CmsClient:
    """Client for the /api/v1/devices endpoints."""

    DEFAULT_TIMEOUT = 15

    def __init__(self, cms_url: str, device_code: str, timeout: float = DEFAULT_TIMEOUT):
        self.cms_url = cms_url.rstrip('/')
        self.device_code = device_code
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.cms_url}/api/v1/devices/{path}"

    def _post(self, path: str, payload: Dict[str, Any]) -> requests.Response:
        try:
            return requests.post(self._url(path), json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise TransientNetworkError(f"Timed out after {self.timeout}s calling {path}") from e
        except requests.exceptions.ConnectionError as e:
            raise TransientNetworkError(f"Cannot reach CMS at {self.cms_url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransientNetworkError(f"Request to {path} failed: {e}") from e

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ServerFault('Malformed JSON from CMS', response.status_code) from e
        if not isinstance(data, dict):
            raise ServerFault('Unexpected JSON shape from CMS', response.status_code)
        return data

    def _check_auth(self, response: requests.Response) -> None:
        if response.status_code in (401, 403):
            raise CredentialError(f"CMS rejected credentials for {self.device_code}")

    def _credentials(self, secret: str) -> Dict[str, Any]:
        return {'device_code': self.device_code, 'device_secret': secret}

    def fetch_manifest(self, secret: str, current_version: Optional[str] = None) -> Dict[str, Any]:
        """
        Fetch the device's manifest.

        Args:
            secret: Device secret
            current_version: Version currently playing, reported to the CMS

        Returns:
            Manifest dictionary

        Raises:
            CredentialError, NoContentYet, TransientNetworkError, ServerFault
        """
        payload = self._credentials(secret)
        payload['current_version'] = current_version

        response = self._post('manifest', payload)
        self._check_auth(response)

        if response.status_code == 404:
            body = self._json(response)
            if 'resolved' not in body and 'device' not in body:
                raise ServerFault('Manifest endpoint not found', 404)
            raise NoContentYet(body)

        if response.status_code != 200:
            raise ServerFault(f"Manifest request failed: HTTP {response.status_code}", response.status_code)

        manifest = self._json(response)
        if not isinstance(manifest.get('region_playlists'), dict):
            raise ServerFault('Manifest is missing region_playlists', response.status_code)
        return manifest

    def send_heartbeat(
        self,
        secret: str,
        current_version: Optional[str] = None,
        status: str = 'playing'
    ) -> None:
        """
        Report liveness.

        Raises:
            CredentialError, TransientNetworkError, ServerFault
        """
        payload = self._credentials(secret)
        payload['current_version'] = current_version
        payload['status'] = status

        response = self._post('heartbeat', payload)
        self._check_auth(response)
        if response.status_code != 200:
            raise ServerFault(f"Heartbeat failed: HTTP {response.status_code}", response.status_code)

    def pairing_init(self) -> Dict[str, Any]:
        """
        Ask the CMS for a pairing pin.

        Returns:
            {'pairing_pin': '123456', 'expires_in': 600, ...}
        """
        response = self._post('pairing', {'action': 'INIT', 'device_code': self.device_code})
        if response.status_code != 200:
            raise ServerFault(f"Pairing INIT failed: HTTP {response.status_code}", response.status_code)

        data = self._json(response)
        if not data.get('pairing_pin'):
            raise ServerFault('Pairing INIT returned no pin', response.status_code)

        logger.info(f"Pairing pin issued for {self.device_code}")
        return data

    def claim_poll(self) -> Optional[str]:
        """
        Check whether an administrator claimed the pin.

        Returns:
            The device secret once claimed, otherwise None
        """
        response = self._post('pairing', {'action': 'CLAIM_POLL', 'device_code': self.device_code})
        if response.status_code != 200:
            raise ServerFault(f"Pairing poll failed: HTTP {response.status_code}", response.status_code)

        return self._json(response).get('device_secret') or None
