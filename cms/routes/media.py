"""
CMS Media Routes

Blueprint for delivering stored media through signed URLs:
- GET /<storage_path>?expires=&sig=: Stream a file from MEDIA_ROOT

All endpoints are prefixed with /api/v1/media when registered with the app.
"""

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from cms.services import URLSigner


# Create media blueprint
media_bp = Blueprint('media', __name__)


@media_bp.route('/<path:storage_path>', methods=['GET'])
def serve_media(storage_path):
    """
    Serve a stored media file if its signature is valid and unexpired.

    Query Parameters:
        expires: Unix timestamp the URL is valid until
        sig: HMAC signature over storage_path and expires

    Returns:
        200: File contents
        403: Missing, invalid or expired signature
        404: File not found
    """
    signer = URLSigner.from_config(current_app.config)
    if not signer.verify(storage_path, request.args.get('expires'), request.args.get('sig')):
        current_app.logger.warning(f'Rejected media request for {storage_path}')
        return jsonify({
            'status': 'error',
            'error': 'Forbidden',
            'message': 'Invalid or expired signature'
        }), 403

    return send_from_directory(str(current_app.config['MEDIA_ROOT']), storage_path)
