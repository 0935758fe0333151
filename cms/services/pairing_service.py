"""
Pairing Service for CMS.

Bootstraps trust between an unpaired screen and an administrator:

1. INIT (player): the device asks for a 6-digit pin and shows it on screen.
2. CLAIM (admin): the administrator types the pin into the CMS. The device
   gets a fresh secret, becomes active and the pin is cleared.
3. CLAIM_POLL (player): the device polls until the pin is gone and then
   receives its secret.

The secret is only revealed when ``pairing_state`` is PAIRED, so a device that
was re-issued a pin can never pick up its old secret through CLAIM_POLL before
an administrator claims the new pin.
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from cms.models import Device, PairingState
from cms.services.errors import InvalidOrExpiredPin


logger = logging.getLogger(__name__)


class PairingService:
    """
    Issue and redeem pairing pins.

    All methods take the SQLAlchemy session explicitly and commit their own
    work.
    """

    PIN_LENGTH = 6
    DEFAULT_PIN_TTL_SECONDS = 600

    # Attempts to draw a pin that no other device currently holds
    MAX_PIN_ATTEMPTS = 10

    @classmethod
    def generate_pin(cls) -> str:
        """Random 6-digit numeric pin without a leading zero."""
        return str(100000 + secrets.randbelow(900000))

    @classmethod
    def generate_secret(cls) -> str:
        """Opaque bearer credential for a device."""
        return str(uuid.uuid4())

    @classmethod
    def _draw_unique_pin(cls, db_session, now: datetime) -> str:
        for _ in range(cls.MAX_PIN_ATTEMPTS):
            pin = cls.generate_pin()
            clash = db_session.query(Device.id).filter(
                Device.pairing_pin == pin,
                Device.pairing_expires_at > now
            ).first()
            if clash is None:
                return pin
        raise RuntimeError('Could not allocate a free pairing pin')

    @classmethod
    def init_pairing(
        cls,
        db_session,
        device_code: str,
        ttl_seconds: int = DEFAULT_PIN_TTL_SECONDS,
        now: Optional[datetime] = None,
        _retry: bool = True
    ) -> Tuple[str, datetime]:
        """
        Issue a new pin for a device, creating the device row if needed.

        Any previously issued, unclaimed pin is replaced. An existing secret is
        left in place so a screen that is already playing keeps working, but
        CLAIM_POLL will not reveal it until the new pin is claimed.

        Args:
            db_session: SQLAlchemy session
            device_code: The player's device code
            ttl_seconds: Pin lifetime
            now: Current time (injectable for tests)

        Returns:
            Tuple of (pin, expires_at)

        Raises:
            ValueError: If device_code is empty
        """
        if not device_code or not device_code.strip():
            raise ValueError('device_code is required')
        device_code = device_code.strip()

        now = now or datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=ttl_seconds)
        pin = cls._draw_unique_pin(db_session, now)

        device = db_session.query(Device).filter_by(device_code=device_code).first()
        if device:
            device.pairing_pin = pin
            device.pairing_expires_at = expires_at
            device.pairing_state = PairingState.PIN_ISSUED.value
        else:
            device = Device(
                device_code=device_code,
                display_name=f'New Device ({device_code})',
                active=False,
                pairing_pin=pin,
                pairing_expires_at=expires_at,
                pairing_state=PairingState.PIN_ISSUED.value,
            )
            db_session.add(device)

        try:
            db_session.commit()
        except IntegrityError:
            # Two INITs for a brand-new code raced; the other one inserted first
            db_session.rollback()
            if not _retry:
                raise
            return cls.init_pairing(db_session, device_code, ttl_seconds, now, _retry=False)

        logger.info('Pairing INIT: %s -> pin issued (expires %s)', device_code, expires_at.isoformat())
        return pin, expires_at

    @classmethod
    def claim(
        cls,
        db_session,
        pin: str,
        default_tenant_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Device:
        """
        Redeem a pin on behalf of an administrator.

        The expiry check and the pin-clearing write happen in one conditional
        UPDATE, so of two concurrent claims for the same pin at most one
        matches a row.

        Args:
            db_session: SQLAlchemy session
            pin: The 6-digit pin shown on the screen
            default_tenant_id: Tenant to attach the device to if it has none
            now: Current time (injectable for tests)

        Returns:
            The claimed Device (active, with a fresh secret)

        Raises:
            InvalidOrExpiredPin: If no device holds a live pin with this value
        """
        pin = (pin or '').strip()
        if len(pin) != cls.PIN_LENGTH or not pin.isdigit():
            raise InvalidOrExpiredPin('Invalid or expired pairing code')

        now = now or datetime.now(timezone.utc)

        device = db_session.query(Device).filter(
            Device.pairing_pin == pin,
            Device.pairing_expires_at > now
        ).first()
        if device is None:
            raise InvalidOrExpiredPin('Invalid or expired pairing code')

        secret = cls.generate_secret()
        values = {
            'device_secret': secret,
            'active': True,
            'pairing_pin': None,
            'pairing_expires_at': None,
            'pairing_state': PairingState.PAIRED.value,
            'updated_at': now,
        }
        if default_tenant_id:
            values['tenant_id'] = func.coalesce(Device.tenant_id, default_tenant_id)

        stmt = (
            update(Device)
            .where(
                Device.id == device.id,
                Device.pairing_pin == pin,
                Device.pairing_expires_at > now
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = db_session.execute(stmt)

        if result.rowcount != 1:
            db_session.rollback()
            raise InvalidOrExpiredPin('Invalid or expired pairing code')

        db_session.commit()
        db_session.refresh(device)

        logger.info('Pairing CLAIM: %s paired successfully', device.device_code)
        return device

    @classmethod
    def claim_poll(cls, db_session, device_code: str) -> Optional[str]:
        """
        The unpaired device's view of its pairing.

        Returns:
            The device secret once the latest pin was claimed, otherwise None
            (PENDING).
        """
        if not device_code:
            return None

        device = db_session.query(Device).filter_by(device_code=device_code.strip()).first()
        if device is None:
            return None

        if device.pairing_pin or not device.is_paired:
            return None

        return device.device_secret
