"""
Tenant, Store and Role Models for CMS Service.

These are the targeting dimensions a publication can be bound to. Their CRUD
lives outside this service; the models exist so devices and publications can
reference them and so manifests can echo their names.
"""

from datetime import datetime, timezone
import uuid

from cms.models import db, DateTimeUTC


class Tenant(db.Model):
    """
    A customer organization owning stores, roles, devices and content.

    Attributes:
        id: Unique UUID identifier
        name: Human-readable tenant name
        slug: URL-friendly unique identifier
        active: Whether the tenant is enabled
    """

    __tablename__ = 'tenants'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False, index=True)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'active': self.active,
        }

    def __repr__(self):
        return f'<Tenant {self.slug}>'


class Store(db.Model):
    """A physical retail location within a tenant."""

    __tablename__ = 'stores'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = db.Column(db.String(36), db.ForeignKey('tenants.id'), nullable=False, index=True)
    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    timezone = db.Column(db.String(64), nullable=False, default='UTC')
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint('tenant_id', 'code', name='uq_store_tenant_code'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'code': self.code,
            'name': self.name,
            'timezone': self.timezone,
            'active': self.active,
        }

    def __repr__(self):
        return f'<Store {self.code}>'


class Role(db.Model):
    """
    The kind of screen a device is (e.g. "Checkout", "Menu Board").

    Every publication targets exactly one role; a device without a role never
    resolves to any content.
    """

    __tablename__ = 'roles'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = db.Column(db.String(36), db.ForeignKey('tenants.id'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(DateTimeUTC, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'name': self.name,
            'description': self.description,
        }

    def __repr__(self):
        return f'<Role {self.name}>'
