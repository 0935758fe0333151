"""
Publication and Bundle Models for CMS Service.

A Publication binds a layout and a bundle to a targeting scope for one role:
- GLOBAL: every device of the role in the tenant
- STORE: devices of the role installed in one store
- DEVICE: one specific device

At most one publication may be active per (tenant, role, scope, target). The
partial unique index below enforces it at the database level so a failed
deactivation can never leave two rows active.
"""

import enum
from datetime import datetime, timezone
import uuid

from cms.models import db, DateTimeUTC


class PublicationScope(enum.Enum):
    """Targeting tier of a publication, highest priority first."""
    DEVICE = 'DEVICE'
    STORE = 'STORE'
    GLOBAL = 'GLOBAL'


# target_key used for GLOBAL publications, which have no target id
GLOBAL_TARGET_KEY = '*'


class Bundle(db.Model):
    """
    Immutable named snapshot of the media a published layout references.

    Used for version reporting and rollback only; resolution never looks at it.
    """

    __tablename__ = 'bundles'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = db.Column(db.String(36), db.ForeignKey('tenants.id'), nullable=False, index=True)
    version = db.Column(db.String(50), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))

    files = db.relationship('BundleFile', back_populates='bundle', cascade='all, delete-orphan')

    __table_args__ = (
        db.UniqueConstraint('tenant_id', 'version', name='uq_bundle_tenant_version'),
    )

    def to_dict(self, include_files=False):
        result = {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'version': self.version,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_files:
            result['media_ids'] = [f.media_id for f in self.files]
        return result

    def __repr__(self):
        return f'<Bundle {self.version}>'


class BundleFile(db.Model):
    """Membership of a media asset in a bundle."""

    __tablename__ = 'bundle_files'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    bundle_id = db.Column(
        db.String(36),
        db.ForeignKey('bundles.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    media_id = db.Column(
        db.String(36),
        db.ForeignKey('media_assets.id', ondelete='CASCADE'),
        nullable=False
    )
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))

    bundle = db.relationship('Bundle', back_populates='files')
    media = db.relationship('MediaAsset')

    __table_args__ = (
        db.UniqueConstraint('bundle_id', 'media_id', name='uq_bundle_media'),
    )


class Publication(db.Model):
    """
    Binding of (tenant, scope, role, store?, device?) to (layout, bundle).

    Attributes:
        id: Unique UUID identifier
        tenant_id: Owning tenant
        scope: GLOBAL, STORE or DEVICE
        role_id: Role the publication applies to
        store_id: Target store for STORE scope
        device_id: Target device for DEVICE scope
        target_key: Normalized target ('*', store id or device id)
        layout_id: Published layout
        bundle_id: Published bundle (version label)
        is_active: Whether this is the live publication for its target
        published_at: When it was published
    """

    __tablename__ = 'publications'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = db.Column(db.String(36), db.ForeignKey('tenants.id'), nullable=False, index=True)
    scope = db.Column(db.String(10), nullable=False)
    role_id = db.Column(db.String(36), db.ForeignKey('roles.id'), nullable=False, index=True)
    store_id = db.Column(db.String(36), db.ForeignKey('stores.id'), nullable=True)
    device_id = db.Column(db.String(36), db.ForeignKey('devices.id'), nullable=True)
    target_key = db.Column(db.String(36), nullable=False)
    layout_id = db.Column(db.String(36), db.ForeignKey('layouts.id'), nullable=False)
    bundle_id = db.Column(db.String(36), db.ForeignKey('bundles.id'), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    published_at = db.Column(DateTimeUTC, nullable=False, default=lambda: datetime.now(timezone.utc))

    layout = db.relationship('Layout')
    bundle = db.relationship('Bundle')
    role = db.relationship('Role')

    __table_args__ = (
        db.Index(
            'ux_publications_active_target',
            'tenant_id', 'role_id', 'scope', 'target_key',
            unique=True,
            sqlite_where=db.text('is_active = 1'),
            postgresql_where=db.text('is_active'),
        ),
    )

    @staticmethod
    def target_key_for(scope, store_id=None, device_id=None):
        """Normalized target identifier for a scope."""
        if scope == PublicationScope.DEVICE.value:
            return device_id
        if scope == PublicationScope.STORE.value:
            return store_id
        return GLOBAL_TARGET_KEY

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'scope': self.scope,
            'role_id': self.role_id,
            'store_id': self.store_id,
            'device_id': self.device_id,
            'layout_id': self.layout_id,
            'bundle_id': self.bundle_id,
            'version': self.bundle.version if self.bundle else None,
            'is_active': self.is_active,
            'published_at': self.published_at.isoformat() if self.published_at else None,
        }

    def __repr__(self):
        return f'<Publication {self.scope}:{self.target_key} active={self.is_active}>'
