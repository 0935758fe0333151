"""
Manifest Builder for CMS.

Turns a resolved publication into the self-contained document a player needs
to render its screen without further lookups:

    {
        "device": {...},
        "resolved": {"scope", "role", "bundle_id", "version",
                     "publication_id", "published_at", "diagnostics"?},
        "layout": {"layout_id", "template_id", "regions"},
        "region_playlists": {"<region_id>": [item, ...]},
        "assets": [{"media_id", "name", "type", "url", ...}],
        "poll_seconds": 60
    }

When nothing is published for the device a standby document with the same
outer shape is produced instead.
"""

import logging
from typing import Dict, List, Optional

from cms.models import Device, MediaAsset, Publication, Role
from cms.services.publication_service import Resolution
from cms.services.url_signer import URLSigner


logger = logging.getLogger(__name__)


STANDBY_SCOPE = 'STANDBY'


def _role_echo(role: Optional[Role]) -> Optional[Dict]:
    if role is None:
        return None
    return {'id': role.id, 'name': role.name}


class ManifestBuilder:
    """
    Assemble manifests and standby documents.

    Args:
        signer: URLSigner for storage-backed assets
        poll_seconds: Refresh interval dictated to playing devices
        standby_poll_seconds: Refresh interval dictated to devices in standby
    """

    def __init__(self, signer: URLSigner, poll_seconds: int = 60, standby_poll_seconds: int = 30):
        self.signer = signer
        self.poll_seconds = poll_seconds
        self.standby_poll_seconds = standby_poll_seconds

    @classmethod
    def from_config(cls, config) -> 'ManifestBuilder':
        return cls(
            signer=URLSigner.from_config(config),
            poll_seconds=config.get('MANIFEST_POLL_SECONDS', 60),
            standby_poll_seconds=config.get('STANDBY_POLL_SECONDS', 30),
        )

    def _resolve_asset_urls(self, media: List[MediaAsset]) -> Dict[str, Optional[str]]:
        """media_id -> URL; storage paths are signed in one batch."""
        signed = self.signer.sign_many(
            m.storage_path for m in media if m.is_storage_backed
        )
        urls = {}
        for m in media:
            if m.is_storage_backed:
                urls[m.id] = signed.get(m.storage_path)
            else:
                urls[m.id] = m.url
        return urls

    def build(self, db_session, device: Device, resolution: Resolution) -> Dict:
        """
        Expand a resolution into a full manifest.

        Args:
            db_session: SQLAlchemy session
            device: Authenticated device
            resolution: Result of PublicationService.resolve

        Returns:
            Manifest dictionary ready for jsonify
        """
        publication: Publication = resolution.publication
        layout = publication.layout
        template = layout.template if layout else None
        regions = template.regions if template else []

        # Every template region is present, empty when unassigned
        region_playlists: Dict[str, List[Dict]] = {
            str(region.get('id')): [] for region in regions if region.get('id') is not None
        }

        media_by_id: Dict[str, MediaAsset] = {}
        for assignment in (layout.region_playlists if layout else []):
            region_items = region_playlists.setdefault(assignment.region_id, [])
            if assignment.playlist is None:
                continue
            for item in sorted(assignment.playlist.items, key=lambda i: (i.sort_order, i.id)):
                region_items.append(item.to_dict())
                if item.media is not None and item.media.id not in media_by_id:
                    media_by_id[item.media.id] = item.media

        urls = self._resolve_asset_urls(list(media_by_id.values()))
        assets = [
            {
                'media_id': media.id,
                'name': media.name,
                'type': media.type,
                'url': urls.get(media.id),
                'checksum_sha256': media.checksum_sha256,
                'bytes': media.bytes,
            }
            for media in media_by_id.values()
        ]

        resolved = {
            'scope': resolution.scope,
            'role': _role_echo(publication.role),
            'bundle_id': publication.bundle_id,
            'version': publication.bundle.version if publication.bundle else None,
            'publication_id': publication.id,
            'published_at': publication.published_at.isoformat() if publication.published_at else None,
        }
        if resolution.has_duplicates:
            resolved['diagnostics'] = {
                'duplicate_publication_ids': list(resolution.duplicate_ids),
            }

        return {
            'device': device.to_manifest_dict(),
            'resolved': resolved,
            'layout': {
                'layout_id': layout.id if layout else None,
                'template_id': template.id if template else None,
                'regions': regions,
            },
            'region_playlists': region_playlists,
            'assets': assets,
            'poll_seconds': self.poll_seconds,
        }

    def standby(self, db_session, device: Device) -> Dict:
        """
        Document returned when the device has nothing to play.

        Includes counts that help an operator see why nothing resolved.
        """
        role = db_session.get(Role, device.role_id) if device.role_id else None

        total_tenant_pubs = 0
        role_pub_count = 0
        active_role_pub_count = 0
        if device.tenant_id:
            base = db_session.query(Publication).filter(Publication.tenant_id == device.tenant_id)
            total_tenant_pubs = base.count()
            if device.role_id:
                role_query = base.filter(Publication.role_id == device.role_id)
                role_pub_count = role_query.count()
                active_role_pub_count = role_query.filter(Publication.is_active.is_(True)).count()

        device_echo = device.to_manifest_dict()
        device_echo['role_name'] = role.name if role else None

        logger.info(
            'Standby for %s: tenant=%s role=%s active_role_pubs=%d',
            device.device_code, device.tenant_id, device.role_id, active_role_pub_count
        )

        return {
            'error': 'No active publication found for this device',
            'device': device_echo,
            'resolved': {
                'scope': STANDBY_SCOPE,
                'role': _role_echo(role),
                'bundle_id': None,
                'version': None,
            },
            'layout': None,
            'region_playlists': {},
            'assets': [],
            'poll_seconds': self.standby_poll_seconds,
            'debug': {
                'device_tenant': device.tenant_id,
                'device_role_id': device.role_id,
                'total_tenant_pubs': total_tenant_pubs,
                'role_pub_count': role_pub_count,
                'active_role_pub_count': active_role_pub_count,
            },
        }
