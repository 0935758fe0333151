"""
Device Model for CMS Service.

Represents a display screen. A device is identified by its human-readable
``device_code`` and authenticates with an opaque ``device_secret`` that is
only ever issued by claiming a pairing pin.
"""

import enum
from datetime import datetime, timezone
import uuid

from cms.models import db, DateTimeUTC


class PairingState(enum.Enum):
    """Pairing state of a device record.

    - UNPAIRED: No pin issued and no secret claimed yet
    - PIN_ISSUED: A pin is live; CLAIM_POLL must not reveal any secret
    - PAIRED: The latest pin was claimed; the secret may be handed out
    """
    UNPAIRED = 'unpaired'
    PIN_ISSUED = 'pin_issued'
    PAIRED = 'paired'


class Orientation(enum.Enum):
    """Physical orientation of the display."""
    LANDSCAPE = 'landscape'
    PORTRAIT = 'portrait'


class Device(db.Model):
    """
    SQLAlchemy model representing a display device.

    Attributes:
        id: Unique UUID identifier (internal database ID)
        tenant_id: Owning tenant (null until the device is claimed)
        store_id: Store the device is installed in (optional)
        role_id: Role that selects which publications apply (optional)
        device_code: Human-readable unique code, e.g. ABC-1234
        device_secret: Opaque bearer credential, rotated only by re-pairing
        display_name: Name shown in admin screens
        orientation: landscape or portrait
        resolution: e.g. 1920x1080
        active: Soft-delete flag; inactive devices cannot authenticate
        pairing_state: Explicit pairing state (see PairingState)
        pairing_pin: Live 6-digit pin while pairing_state is PIN_ISSUED
        pairing_expires_at: Moment the live pin stops being claimable
    """

    __tablename__ = 'devices'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = db.Column(db.String(36), db.ForeignKey('tenants.id'), nullable=True, index=True)
    store_id = db.Column(db.String(36), db.ForeignKey('stores.id', ondelete='SET NULL'), nullable=True, index=True)
    role_id = db.Column(db.String(36), db.ForeignKey('roles.id', ondelete='SET NULL'), nullable=True, index=True)
    device_code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    device_secret = db.Column(db.String(64), nullable=True)
    display_name = db.Column(db.String(200), nullable=True)
    orientation = db.Column(db.String(20), nullable=False, default=Orientation.LANDSCAPE.value)
    resolution = db.Column(db.String(20), nullable=False, default='1920x1080')
    active = db.Column(db.Boolean, nullable=False, default=False)

    # Pairing session
    pairing_state = db.Column(db.String(20), nullable=False, default=PairingState.UNPAIRED.value)
    pairing_pin = db.Column(db.String(6), nullable=True, index=True)
    pairing_expires_at = db.Column(DateTimeUTC, nullable=True)

    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    tenant = db.relationship('Tenant', backref=db.backref('devices', lazy='dynamic'))
    store = db.relationship('Store', backref=db.backref('devices', lazy='dynamic'))
    role = db.relationship('Role', backref=db.backref('devices', lazy='dynamic'))

    @property
    def is_paired(self) -> bool:
        """True once a claim has issued a secret for the latest pin."""
        return self.pairing_state == PairingState.PAIRED.value and bool(self.device_secret)

    def to_dict(self):
        """
        Serialize the device for admin API responses.

        The secret is never included.
        """
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'store_id': self.store_id,
            'role_id': self.role_id,
            'device_code': self.device_code,
            'display_name': self.display_name,
            'orientation': self.orientation,
            'resolution': self.resolution,
            'active': self.active,
            'pairing_state': self.pairing_state,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_manifest_dict(self):
        """Device identity echo embedded in manifests."""
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'store_id': self.store_id,
            'role_id': self.role_id,
            'device_code': self.device_code,
            'orientation': self.orientation,
            'resolution': self.resolution,
        }

    def __repr__(self):
        """String representation for debugging."""
        return f'<Device {self.device_code}>'
