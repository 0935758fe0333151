"""
CMS Services Package.

Business logic for device lifecycle and content delivery:
- PairingService: Issues and redeems device pairing pins
- PublicationService: Publishes content and resolves it per device
- ManifestBuilder: Expands a resolved publication into a player manifest
- HeartbeatService: Records device liveness and reports online status
- URLSigner: Time-limited signed URLs for stored media
"""

from cms.services.errors import (
    CMSServiceError,
    DeviceAuthError,
    InvalidOrExpiredPin,
    InvalidPublicationTarget,
    NoActivePublication,
    PublicationConflict,
)
from cms.services.pairing_service import PairingService
from cms.services.publication_service import PublicationService, Resolution
from cms.services.manifest_service import ManifestBuilder
from cms.services.heartbeat_service import HeartbeatService
from cms.services.url_signer import URLSigner

__all__ = [
    'CMSServiceError',
    'DeviceAuthError',
    'InvalidOrExpiredPin',
    'InvalidPublicationTarget',
    'NoActivePublication',
    'PublicationConflict',
    'PairingService',
    'PublicationService',
    'Resolution',
    'ManifestBuilder',
    'HeartbeatService',
    'URLSigner',
]
