"""
Domain exceptions raised by CMS services.

Route handlers translate these into HTTP responses; nothing below the route
layer knows about status codes.
"""


class CMSServiceError(Exception):
    """Base class for service-level failures."""
    pass


class InvalidOrExpiredPin(CMSServiceError):
    """No device holds the given pin, or the pin's window has closed."""
    pass


class DeviceAuthError(CMSServiceError):
    """Unknown device code, wrong secret, or inactive device."""
    pass


class NoActivePublication(CMSServiceError):
    """
    The device authenticated but no publication applies to it yet.

    Not a fault: players render a standby screen.
    """

    def __init__(self, tenant_id=None, role_id=None, store_id=None, device_id=None):
        self.tenant_id = tenant_id
        self.role_id = role_id
        self.store_id = store_id
        self.device_id = device_id
        super().__init__(
            f'No active publication for tenant={tenant_id} role={role_id}'
        )


class InvalidPublicationTarget(CMSServiceError):
    """Scope and target ids do not fit together, or a referenced row is missing."""
    pass


class PublicationConflict(CMSServiceError):
    """A concurrent publish won the race for the same scope target."""
    pass
