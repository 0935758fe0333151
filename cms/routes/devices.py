"""
CMS Devices Routes

Blueprint for the player-facing device API:
- POST /manifest: Resolve and return the device's manifest (or standby body)
- POST /heartbeat: Record device liveness
- POST /pairing: Pairing protocol (INIT, CLAIM, CLAIM_POLL)
- GET /status: Latest heartbeat and online flag per device of a tenant

All endpoints are prefixed with /api/v1/devices when registered with the app.
"""

from flask import Blueprint, current_app, g, jsonify, request

from cms.models import db
from cms.services import (
    HeartbeatService,
    InvalidOrExpiredPin,
    ManifestBuilder,
    NoActivePublication,
    PairingService,
    PublicationService,
)
from cms.utils.device_auth import device_auth_required, get_current_device


# Create devices blueprint
devices_bp = Blueprint('devices', __name__)


PAIRING_ACTIONS = ('INIT', 'CLAIM', 'CLAIM_POLL')


@devices_bp.route('/manifest', methods=['POST'])
@device_auth_required
def get_manifest():
    """
    Return the manifest for the authenticated device.

    Request Body:
        {
            "device_code": "ABC-1234" (required),
            "device_secret": "..." (required),
            "current_version": "v1.2.0" (optional)
        }

    Returns:
        200: Manifest (device, resolved, layout, region_playlists, assets, poll_seconds)
        401: Invalid credentials or inactive device
        404: Standby body; the device is authenticated but nothing is published
    """
    device = get_current_device()
    builder = ManifestBuilder.from_config(current_app.config)

    try:
        resolution = PublicationService.resolve(
            db.session,
            tenant_id=device.tenant_id,
            role_id=device.role_id,
            store_id=device.store_id,
            device_id=device.id,
        )
    except NoActivePublication:
        return jsonify(builder.standby(db.session, device)), 404

    manifest = builder.build(db.session, device, resolution)

    current_version = g.device_payload.get('current_version')
    if current_version and current_version != manifest['resolved']['version']:
        current_app.logger.info(
            f"Device {device.device_code} moving from {current_version} "
            f"to {manifest['resolved']['version']}"
        )

    return jsonify(manifest), 200


@devices_bp.route('/heartbeat', methods=['POST'])
@device_auth_required
def heartbeat():
    """
    Record a heartbeat from the authenticated device.

    Request Body:
        {
            "device_code": "ABC-1234" (required),
            "device_secret": "..." (required),
            "current_version": "v1.2.0" (optional),
            "status": "playing" (optional)
        }

    Returns:
        200: {"ok": true}
        401: Invalid credentials or inactive device
    """
    device = get_current_device()
    data = g.device_payload

    HeartbeatService.record(
        db.session,
        device,
        current_version=data.get('current_version'),
        status=data.get('status'),
        ip_address=request.remote_addr,
    )

    return jsonify({'ok': True}), 200


@devices_bp.route('/pairing', methods=['POST'])
def pairing():
    """
    Pairing protocol endpoint.

    Request Body:
        {"action": "INIT", "device_code": "ABC-1234"}        (player)
        {"action": "CLAIM", "pairing_pin": "123456"}          (administrator)
        {"action": "CLAIM_POLL", "device_code": "ABC-1234"}  (player)

    Returns:
        INIT:       200 {"pairing_pin": "123456", "expires_in": 600}
                    400 device_code missing
        CLAIM:      200 {"device": {...}}
                    400 invalid or expired pin
        CLAIM_POLL: 200 {"status": "PENDING"} or {"device_secret": "..."}
        400: Unknown action
    """
    data = request.get_json(silent=True) or {}
    action = str(data.get('action') or '').upper()

    if action not in PAIRING_ACTIONS:
        return jsonify({
            'error': f"Unknown action: {data.get('action')}",
            'valid_actions': list(PAIRING_ACTIONS)
        }), 400

    if action == 'INIT':
        device_code = str(data.get('device_code') or '').strip()
        if not device_code:
            return jsonify({'error': 'device_code required'}), 400

        ttl_seconds = current_app.config.get('PAIRING_PIN_TTL_SECONDS', 600)
        pin, expires_at = PairingService.init_pairing(
            db.session, device_code, ttl_seconds=ttl_seconds
        )
        current_app.logger.info(f'Pairing INIT for {device_code}')
        return jsonify({
            'pairing_pin': pin,
            'expires_in': ttl_seconds,
            'expires_at': expires_at.isoformat(),
        }), 200

    if action == 'CLAIM':
        pin = str(data.get('pairing_pin') or '').strip()
        if not pin:
            return jsonify({'error': 'pairing_pin required'}), 400

        try:
            device = PairingService.claim(
                db.session,
                pin,
                default_tenant_id=current_app.config.get('DEFAULT_TENANT_ID'),
            )
        except InvalidOrExpiredPin as e:
            return jsonify({'error': str(e)}), 400

        return jsonify({'device': device.to_dict()}), 200

    # CLAIM_POLL
    secret = PairingService.claim_poll(db.session, str(data.get('device_code') or ''))
    if secret is None:
        return jsonify({'status': 'PENDING'}), 200
    return jsonify({'device_secret': secret}), 200


@devices_bp.route('/status', methods=['GET'])
def device_status():
    """
    Latest heartbeat and online flag for each active device of a tenant.

    Query Parameters:
        tenant_id: Tenant to report on (required)

    Returns:
        200: {"devices": [...], "count": N, "online_threshold_seconds": 180}
        400: tenant_id missing
    """
    tenant_id = request.args.get('tenant_id')
    if not tenant_id:
        return jsonify({'error': 'tenant_id is required'}), 400

    threshold = current_app.config.get('ONLINE_THRESHOLD_SECONDS', 180)
    statuses = HeartbeatService.device_statuses(
        db.session, tenant_id, threshold_seconds=threshold
    )

    return jsonify({
        'devices': statuses,
        'count': len(statuses),
        'online_threshold_seconds': threshold,
    }), 200
