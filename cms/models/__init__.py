"""
CMS Models Package.

SQLAlchemy models for the display content backend including:
- Tenants, Stores and Roles (targeting dimensions)
- Devices (individual screens, with pairing state)
- Media Assets (images, videos, web URLs)
- Playlists and Playlist Items (ordered sequences)
- Layout Templates, Layouts and Region Playlists (screen composition)
- Bundles and Bundle Files (versioned media snapshots)
- Publications (scope-targeted layout + bundle bindings)
- Device Heartbeats (append-only liveness log)
"""

from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import DateTime as _SADateTime
from sqlalchemy.types import TypeDecorator


class DateTimeUTC(TypeDecorator):
    """DateTime type that ensures values are always timezone-aware (UTC).

    SQLite stores datetimes as naive strings.  This TypeDecorator adds UTC
    timezone info when reading and strips it when writing, so Python code
    can safely compare with ``datetime.now(timezone.utc)`` without hitting
    "can't compare offset-naive and offset-aware datetimes".
    """

    impl = _SADateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc)
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
        return value


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    All models should inherit from db.Model which uses this Base class.
    """
    pass


# SQLAlchemy database instance
db = SQLAlchemy(model_class=Base)


# Import models after db is defined to avoid circular imports
from cms.models.tenant import Tenant, Store, Role
from cms.models.device import Device, PairingState
from cms.models.media import MediaAsset, MediaType
from cms.models.playlist import Playlist, PlaylistItem
from cms.models.layout import LayoutTemplate, Layout, LayoutRegionPlaylist
from cms.models.publication import Bundle, BundleFile, Publication, PublicationScope
from cms.models.heartbeat import DeviceHeartbeat

__all__ = [
    'db',
    'Base',
    'DateTimeUTC',
    'utcnow',
    'Tenant',
    'Store',
    'Role',
    'Device',
    'PairingState',
    'MediaAsset',
    'MediaType',
    'Playlist',
    'PlaylistItem',
    'LayoutTemplate',
    'Layout',
    'LayoutRegionPlaylist',
    'Bundle',
    'BundleFile',
    'Publication',
    'PublicationScope',
    'DeviceHeartbeat',
]
