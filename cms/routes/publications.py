"""
CMS Publications Routes

Blueprint for publishing content to devices:
- POST /: Publish a layout + bundle to a GLOBAL, STORE or DEVICE target
- POST /<id>/rollback: Re-publish an earlier bundle to the same target
- POST /<id>/unpublish: Deactivate a publication
- GET /: List publications of a tenant

All endpoints are prefixed with /api/v1/publications when registered with the app.
"""

from flask import Blueprint, jsonify, request

from cms.models import db
from cms.services import (
    InvalidPublicationTarget,
    PublicationConflict,
    PublicationService,
)


# Create publications blueprint
publications_bp = Blueprint('publications', __name__)


def _error_response(error):
    if isinstance(error, PublicationConflict):
        return jsonify({'error': str(error), 'code': 'PUBLICATION_CONFLICT'}), 409
    return jsonify({'error': str(error), 'code': 'INVALID_TARGET'}), 400


@publications_bp.route('', methods=['POST'])
def publish():
    """
    Publish a layout and bundle.

    Request Body:
        {
            "tenant_id": "uuid" (required),
            "scope": "GLOBAL" | "STORE" | "DEVICE" (required),
            "role_id": "uuid" (required),
            "layout_id": "uuid" (required),
            "bundle_id": "uuid" (required),
            "store_id": "uuid" (STORE scope only),
            "device_id": "uuid" (DEVICE scope only)
        }

    Returns:
        201: Publication created and active
        400: Invalid scope/target
        409: Concurrent publish for the same target
    """
    data = request.get_json(silent=True) or {}

    try:
        publication = PublicationService.publish(
            db.session,
            tenant_id=data.get('tenant_id'),
            scope=data.get('scope'),
            role_id=data.get('role_id'),
            layout_id=data.get('layout_id'),
            bundle_id=data.get('bundle_id'),
            store_id=data.get('store_id') or None,
            device_id=data.get('device_id') or None,
        )
    except (InvalidPublicationTarget, PublicationConflict) as e:
        return _error_response(e)

    return jsonify(publication.to_dict()), 201


@publications_bp.route('/<publication_id>/rollback', methods=['POST'])
def rollback(publication_id):
    """
    Re-publish a previous bundle to the target of an existing publication.

    Request Body:
        {"bundle_id": "uuid" (required)}

    Returns:
        201: New active publication
        400: Unknown publication or bundle
        409: Concurrent publish for the same target
    """
    data = request.get_json(silent=True) or {}
    if not data.get('bundle_id'):
        return jsonify({'error': 'bundle_id is required'}), 400

    try:
        publication = PublicationService.rollback(
            db.session, publication_id, data['bundle_id']
        )
    except (InvalidPublicationTarget, PublicationConflict) as e:
        return _error_response(e)

    return jsonify(publication.to_dict()), 201


@publications_bp.route('/<publication_id>/unpublish', methods=['POST'])
def unpublish(publication_id):
    """Deactivate a publication; affected devices fall back to the next tier."""
    try:
        publication = PublicationService.unpublish(db.session, publication_id)
    except InvalidPublicationTarget as e:
        return jsonify({'error': str(e)}), 404

    return jsonify(publication.to_dict()), 200


@publications_bp.route('', methods=['GET'])
def list_publications():
    """
    List publications of a tenant, newest first.

    Query Parameters:
        tenant_id: Tenant (required)
        active: "true" to list active publications only
    """
    tenant_id = request.args.get('tenant_id')
    if not tenant_id:
        return jsonify({'error': 'tenant_id is required'}), 400

    active_only = request.args.get('active', '').lower() in ('1', 'true', 'yes')
    publications = PublicationService.list_publications(
        db.session, tenant_id, active_only=active_only
    )

    return jsonify({
        'publications': [p.to_dict() for p in publications],
        'count': len(publications),
    }), 200
