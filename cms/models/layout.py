"""
Layout Models for CMS Service.

A LayoutTemplate describes screen regions geometrically. A Layout picks a
template and assigns one playlist per region through LayoutRegionPlaylist.
"""

import json
from datetime import datetime, timezone
import uuid

from cms.models import db, DateTimeUTC


class LayoutTemplate(db.Model):
    """
    Reusable screen geometry.

    ``regions`` is stored as a JSON list of
    ``{"id", "label", "x", "y", "width", "height"}`` objects in percent units.
    """

    __tablename__ = 'layout_templates'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = db.Column(db.String(36), db.ForeignKey('tenants.id'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    regions_json = db.Column(db.Text, nullable=False, default='[]')
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))

    @property
    def regions(self):
        """Parsed region list."""
        try:
            regions = json.loads(self.regions_json or '[]')
        except (TypeError, ValueError):
            return []
        return regions if isinstance(regions, list) else []

    @regions.setter
    def regions(self, value):
        self.regions_json = json.dumps(value or [])

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'name': self.name,
            'description': self.description,
            'is_default': self.is_default,
            'regions': self.regions,
        }

    def __repr__(self):
        return f'<LayoutTemplate {self.name}>'


class Layout(db.Model):
    """A template instance with a playlist assigned to each region."""

    __tablename__ = 'layouts'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = db.Column(db.String(36), db.ForeignKey('tenants.id'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    template_id = db.Column(
        db.String(36),
        db.ForeignKey('layout_templates.id', ondelete='SET NULL'),
        nullable=True,
        index=True
    )
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    template = db.relationship('LayoutTemplate')
    region_playlists = db.relationship(
        'LayoutRegionPlaylist',
        back_populates='layout',
        cascade='all, delete-orphan',
        lazy='select'
    )

    def playlist_id_for_region(self, region_id):
        for assignment in self.region_playlists:
            if assignment.region_id == region_id:
                return assignment.playlist_id
        return None

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'name': self.name,
            'template_id': self.template_id,
            'region_playlists': {
                assignment.region_id: assignment.playlist_id
                for assignment in self.region_playlists
            },
        }

    def __repr__(self):
        return f'<Layout {self.name}>'


class LayoutRegionPlaylist(db.Model):
    """Assignment of a playlist to one region of a layout."""

    __tablename__ = 'layout_region_playlists'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    layout_id = db.Column(
        db.String(36),
        db.ForeignKey('layouts.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    region_id = db.Column(db.String(100), nullable=False)
    playlist_id = db.Column(
        db.String(36),
        db.ForeignKey('playlists.id', ondelete='SET NULL'),
        nullable=True,
        index=True
    )
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint('layout_id', 'region_id', name='uq_layout_region'),
    )

    layout = db.relationship('Layout', back_populates='region_playlists')
    playlist = db.relationship('Playlist')

    def __repr__(self):
        return f'<LayoutRegionPlaylist {self.layout_id}:{self.region_id}>'
