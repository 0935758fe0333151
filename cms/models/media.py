"""
Media Asset Model for CMS Service.

A media asset is either storage-backed (``storage_path`` relative to the
media root, served through signed URLs) or external (``url`` passed through
to players unchanged).
"""

import enum
from datetime import datetime, timezone
import uuid

from cms.models import db, DateTimeUTC


class MediaType(enum.Enum):
    """Kind of content a media asset or playlist item carries."""
    IMAGE = 'image'
    VIDEO = 'video'
    WEB_URL = 'web_url'


class MediaAsset(db.Model):
    """
    SQLAlchemy model representing an uploaded or linked media file.

    Attributes:
        id: Unique UUID identifier
        tenant_id: Owning tenant
        name: Display name
        type: image, video or web_url
        storage_path: Path under MEDIA_ROOT for storage-backed assets
        url: External URL for linked assets
        bytes: File size if known
        checksum_sha256: Hex digest if known
        tags: Comma separated free-form tags
    """

    __tablename__ = 'media_assets'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = db.Column(db.String(36), db.ForeignKey('tenants.id'), nullable=False, index=True)
    name = db.Column(db.String(300), nullable=False)
    type = db.Column(db.String(20), nullable=False, default=MediaType.IMAGE.value)
    storage_path = db.Column(db.String(500), nullable=True)
    url = db.Column(db.String(1000), nullable=True)
    bytes = db.Column(db.BigInteger, nullable=True)
    checksum_sha256 = db.Column(db.String(64), nullable=True)
    tags = db.Column(db.Text, nullable=True)
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))

    @property
    def is_storage_backed(self) -> bool:
        return bool(self.storage_path)

    @property
    def tag_list(self):
        if not self.tags:
            return []
        return [tag.strip() for tag in self.tags.split(',') if tag.strip()]

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'name': self.name,
            'type': self.type,
            'storage_path': self.storage_path,
            'url': self.url,
            'bytes': self.bytes,
            'checksum_sha256': self.checksum_sha256,
            'tags': self.tag_list,
        }

    def __repr__(self):
        return f'<MediaAsset {self.name}>'
