"""
CMS Utility Functions.

This package contains utility functions and decorators used across the CMS:
- device_auth: Device credential checks and the @device_auth_required decorator
"""

from cms.utils.device_auth import (
    authenticate_device,
    device_auth_required,
    get_current_device,
)

__all__ = [
    'authenticate_device',
    'device_auth_required',
    'get_current_device',
]
