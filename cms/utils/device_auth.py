"""
CMS Device Authentication Utilities.

Players authenticate every manifest and heartbeat request with the
``device_code`` / ``device_secret`` pair carried in the JSON body.

Usage:
    from cms.utils.device_auth import device_auth_required, get_current_device

    @blueprint.route('/manifest', methods=['POST'])
    @device_auth_required
    def manifest():
        device = get_current_device()
        ...
"""

import hmac
from functools import wraps

from flask import request, jsonify, g

from cms.models import db, Device
from cms.services.errors import DeviceAuthError


def authenticate_device(db_session, device_code, device_secret):
    """
    Look up an active device by code and verify its secret.

    Args:
        db_session: SQLAlchemy session
        device_code: Code the player claims to be
        device_secret: Secret the player presents

    Returns:
        The authenticated Device

    Raises:
        DeviceAuthError: Unknown code, missing/wrong secret, or inactive device
    """
    if not device_code or not device_secret:
        raise DeviceAuthError('device_code and device_secret are required')

    device = db_session.query(Device).filter_by(device_code=device_code).first()
    if device is None or not device.device_secret:
        raise DeviceAuthError('Invalid device credentials')

    if not hmac.compare_digest(str(device.device_secret), str(device_secret)):
        raise DeviceAuthError('Invalid device credentials')

    if not device.active:
        raise DeviceAuthError('Device is inactive')

    return device


def get_current_device():
    """
    Get the device authenticated for the current request.

    Returns:
        Device set by @device_auth_required, or None
    """
    return getattr(g, 'current_device', None)


def device_auth_required(f):
    """
    Decorator that authenticates the calling player.

    Reads ``device_code`` and ``device_secret`` from the JSON body. On success
    the device is stored in ``g.current_device`` and the parsed body in
    ``g.device_payload``; on failure a 401 JSON response is returned.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        data = request.get_json(silent=True) or {}

        try:
            device = authenticate_device(
                db.session,
                data.get('device_code'),
                data.get('device_secret')
            )
        except DeviceAuthError as e:
            return jsonify({
                'error': str(e),
                'code': 'INVALID_CREDENTIALS'
            }), 401

        g.current_device = device
        g.device_payload = data
        return f(*args, **kwargs)

    return decorated_function
