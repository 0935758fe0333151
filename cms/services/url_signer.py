"""
Signed media URLs.

Storage-backed assets are never exposed directly. Manifests carry
time-limited URLs of the form::

    <base>/api/v1/media/<storage_path>?expires=<unix ts>&sig=<hmac>

and the media route re-computes the HMAC before streaming the file.
"""

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Optional
from urllib.parse import quote


MEDIA_ROUTE_PREFIX = '/api/v1/media/'


class URLSigner:
    """HMAC-SHA256 signer for media storage paths."""

    SIGNATURE_LENGTH = 16

    def __init__(self, secret: str, base_url: str = '', ttl_seconds: int = 3600):
        if not secret:
            raise ValueError('URL signing secret is required')
        self.secret = secret
        self.base_url = (base_url or '').rstrip('/')
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_config(cls, config) -> 'URLSigner':
        """Build a signer from a Flask config mapping."""
        return cls(
            secret=config['URL_SIGNING_SECRET'],
            base_url=config.get('MEDIA_BASE_URL', ''),
            ttl_seconds=config.get('SIGNED_URL_TTL_SECONDS', 3600),
        )

    def _signature(self, storage_path: str, expires_ts: int) -> str:
        payload = f'{storage_path}:{expires_ts}'
        return hmac.new(
            self.secret.encode(),
            payload.encode(),
            hashlib.sha256
        ).hexdigest()[:self.SIGNATURE_LENGTH]

    def sign(self, storage_path: str, expires_at: datetime) -> str:
        """Signed URL for one storage path valid until ``expires_at``."""
        storage_path = storage_path.lstrip('/')
        expires_ts = int(expires_at.timestamp())
        signature = self._signature(storage_path, expires_ts)
        return (
            f'{self.base_url}{MEDIA_ROUTE_PREFIX}{quote(storage_path)}'
            f'?expires={expires_ts}&sig={signature}'
        )

    def sign_many(
        self,
        storage_paths: Iterable[str],
        ttl_seconds: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, str]:
        """
        Sign a batch of storage paths with one shared expiry.

        Returns:
            Mapping of storage_path -> signed URL
        """
        now = now or datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=ttl_seconds or self.ttl_seconds)
        return {
            path: self.sign(path, expires_at)
            for path in dict.fromkeys(storage_paths)
            if path
        }

    def verify(
        self,
        storage_path: str,
        expires,
        signature: Optional[str],
        now: Optional[datetime] = None
    ) -> bool:
        """
        Check a signature and that it has not expired.

        Returns:
            True if the URL is authentic and still valid
        """
        if not storage_path or not signature:
            return False
        try:
            expires_ts = int(expires)
        except (TypeError, ValueError):
            return False

        now = now or datetime.now(timezone.utc)
        if expires_ts <= int(now.timestamp()):
            return False

        expected = self._signature(storage_path.lstrip('/'), expires_ts)
        return hmac.compare_digest(str(signature), expected)
