"""
CMS Routes Package

Blueprint registration for all API route modules:
- Devices: Manifest delivery, heartbeats, pairing and device status
- Publications: Publishing, rollback and unpublishing of content
- Media: Signed delivery of stored media files
"""

# Import Devices blueprint from its module
from cms.routes.devices import devices_bp

# Import Publications blueprint from its module
from cms.routes.publications import publications_bp

# Import Media blueprint from its module
from cms.routes.media import media_bp

__all__ = [
    'devices_bp',
    'publications_bp',
    'media_bp',
]
