"""
Device Heartbeat Model for CMS Service.

Append-only liveness log. Rows are inserted on every heartbeat and never
updated; the newest row per device is that device's current status.
"""

from datetime import datetime, timezone
import uuid

from cms.models import db, DateTimeUTC


class DeviceHeartbeat(db.Model):
    """
    One heartbeat received from a player.

    Attributes:
        id: Unique UUID identifier
        device_id: Reporting device
        device_code: Denormalized device code for log queries
        last_seen_at: Server receive time
        current_version: Bundle version the player reports as playing
        ip_address: Remote address of the request
        status: Player reported status (playing, standby, offline, ...)
    """

    __tablename__ = 'device_heartbeats'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    device_id = db.Column(
        db.String(36),
        db.ForeignKey('devices.id', ondelete='CASCADE'),
        nullable=True,
        index=True
    )
    device_code = db.Column(db.String(50), nullable=False, index=True)
    last_seen_at = db.Column(DateTimeUTC, nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    current_version = db.Column(db.String(50), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(30), nullable=False, default='playing')
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'device_id': self.device_id,
            'device_code': self.device_code,
            'last_seen_at': self.last_seen_at.isoformat() if self.last_seen_at else None,
            'current_version': self.current_version,
            'ip_address': self.ip_address,
            'status': self.status,
        }

    def __repr__(self):
        return f'<DeviceHeartbeat {self.device_code} {self.status}>'
