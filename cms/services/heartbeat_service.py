"""
Heartbeat Service for CMS.

Records player liveness and derives per-device online status from the newest
heartbeat row.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy import func

from cms.models import Device, DeviceHeartbeat


logger = logging.getLogger(__name__)


class HeartbeatService:
    """Append heartbeats and report device status."""

    DEFAULT_STATUS = 'playing'

    @classmethod
    def record(
        cls,
        db_session,
        device: Device,
        current_version: Optional[str] = None,
        status: Optional[str] = None,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> DeviceHeartbeat:
        """
        Append a heartbeat row for an authenticated device.

        Args:
            db_session: SQLAlchemy session
            device: Authenticated device
            current_version: Bundle version the player reports
            status: Player reported status
            ip_address: Remote address of the request
            now: Receive time (injectable for tests)

        Returns:
            The stored DeviceHeartbeat
        """
        # Players may send numbers or other JSON scalars here
        if current_version is not None:
            current_version = str(current_version)[:50]
        status = str(status)[:30] if status not in (None, '') else cls.DEFAULT_STATUS

        heartbeat = DeviceHeartbeat(
            device_id=device.id,
            device_code=device.device_code,
            last_seen_at=now or datetime.now(timezone.utc),
            current_version=current_version,
            ip_address=ip_address,
            status=status,
        )
        db_session.add(heartbeat)
        db_session.commit()

        logger.debug('Heartbeat from %s (version=%s)', device.device_code, current_version)
        return heartbeat

    @classmethod
    def device_statuses(
        cls,
        db_session,
        tenant_id: str,
        threshold_seconds: int = 180,
        now: Optional[datetime] = None
    ) -> List[Dict]:
        """
        Latest heartbeat per active device of a tenant with an online flag.

        A device is online when its newest heartbeat is younger than
        ``threshold_seconds``. Devices that never reported are offline.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=threshold_seconds)

        latest = db_session.query(
            DeviceHeartbeat.device_id,
            func.max(DeviceHeartbeat.last_seen_at).label('last_seen_at')
        ).group_by(DeviceHeartbeat.device_id).subquery()

        rows = db_session.query(Device, DeviceHeartbeat).outerjoin(
            latest, latest.c.device_id == Device.id
        ).outerjoin(
            DeviceHeartbeat,
            (DeviceHeartbeat.device_id == Device.id)
            & (DeviceHeartbeat.last_seen_at == latest.c.last_seen_at)
        ).filter(
            Device.tenant_id == tenant_id,
            Device.active.is_(True)
        ).order_by(Device.device_code).all()

        statuses = {}
        for device, heartbeat in rows:
            # Identical timestamps can yield two rows for a device; keep the first
            if device.id in statuses:
                continue
            last_seen = heartbeat.last_seen_at if heartbeat else None
            statuses[device.id] = {
                'device': device.to_dict(),
                'last_seen_at': last_seen.isoformat() if last_seen else None,
                'current_version': heartbeat.current_version if heartbeat else None,
                'status': heartbeat.status if heartbeat else None,
                'ip_address': heartbeat.ip_address if heartbeat else None,
                'online': bool(last_seen and last_seen > cutoff),
            }

        return list(statuses.values())
