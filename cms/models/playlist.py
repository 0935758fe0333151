"""
Playlist Model for CMS Service.

A playlist is an ordered list of items. Ordering is by ``sort_order``, which
does not need to be contiguous.
"""

from datetime import datetime, timezone
import uuid

from cms.models import db, DateTimeUTC
from cms.models.media import MediaType


class Playlist(db.Model):
    """
    SQLAlchemy model representing a playlist.

    Attributes:
        id: Unique UUID identifier
        tenant_id: Owning tenant
        name: Human-readable playlist name
        description: Optional detailed description
        items: Playlist items ordered by sort_order
    """

    __tablename__ = 'playlists'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = db.Column(db.String(36), db.ForeignKey('tenants.id'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    items = db.relationship(
        'PlaylistItem',
        back_populates='playlist',
        order_by='PlaylistItem.sort_order',
        cascade='all, delete-orphan',
        lazy='select'
    )

    def to_dict(self, include_items=False):
        result = {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'name': self.name,
            'description': self.description,
            'item_count': len(self.items),
        }
        if include_items:
            result['items'] = [item.to_dict() for item in self.items]
        return result

    def __repr__(self):
        return f'<Playlist {self.name}>'


class PlaylistItem(db.Model):
    """
    One entry of a playlist.

    Image and video items reference a MediaAsset; web_url items may carry
    their URL directly in ``web_url`` instead.

    Attributes:
        id: Unique UUID identifier
        playlist_id: Owning playlist
        media_id: Referenced media asset (optional for web_url items)
        type: image, video or web_url
        web_url: Raw URL for web content
        duration_seconds: Display duration override; None means type default
        sort_order: Ordering key within the playlist
    """

    __tablename__ = 'playlist_items'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    playlist_id = db.Column(
        db.String(36),
        db.ForeignKey('playlists.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    media_id = db.Column(
        db.String(36),
        db.ForeignKey('media_assets.id', ondelete='SET NULL'),
        nullable=True,
        index=True
    )
    type = db.Column(db.String(20), nullable=False, default=MediaType.IMAGE.value)
    web_url = db.Column(db.String(1000), nullable=True)
    duration_seconds = db.Column(db.Integer, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))

    playlist = db.relationship('Playlist', back_populates='items')
    media = db.relationship('MediaAsset')

    def to_dict(self):
        """Manifest entry for this item."""
        return {
            'playlist_item_id': self.id,
            'media_id': self.media_id,
            'type': self.type,
            'web_url': self.web_url,
            'duration_seconds': self.duration_seconds,
            'sort_order': self.sort_order,
        }

    def __repr__(self):
        return f'<PlaylistItem {self.playlist_id}:{self.sort_order}>'
