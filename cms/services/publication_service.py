"""
Publication Service for CMS.

Owns the two halves of the publication invariant:

- publish(): deactivating the previous active publication for a scope target
  and activating the new one happen in a single transaction, backed by the
  ``ux_publications_active_target`` partial unique index.
- resolve(): picks the one publication that applies to a device, in strict
  DEVICE > STORE > GLOBAL order, with a most-recent tie-break in case the
  invariant was ever bypassed.

The tenant is always an explicit argument; nothing here reads ambient state.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from cms.models import (
    Bundle,
    BundleFile,
    Device,
    Layout,
    Publication,
    PublicationScope,
    Role,
    Store,
)
from cms.services.errors import (
    InvalidPublicationTarget,
    NoActivePublication,
    PublicationConflict,
)


logger = logging.getLogger(__name__)


# Resolution order, highest priority first
SCOPE_PRIORITY = [
    PublicationScope.DEVICE.value,
    PublicationScope.STORE.value,
    PublicationScope.GLOBAL.value,
]


@dataclass
class Resolution:
    """Outcome of resolving a device to a publication."""

    publication: Publication
    scope: str
    # Other active publications found in the winning tier (invariant breach)
    duplicate_ids: List[str] = field(default_factory=list)

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicate_ids)


class PublicationService:
    """Publish, roll back and resolve publications."""

    @classmethod
    def normalize_scope(cls, scope) -> str:
        value = (scope.value if isinstance(scope, PublicationScope) else str(scope or '')).upper()
        if value not in SCOPE_PRIORITY:
            raise InvalidPublicationTarget(
                f"scope must be one of {', '.join(SCOPE_PRIORITY)}"
            )
        return value

    @classmethod
    def _validate_target(cls, db_session, tenant_id, scope, role_id, layout_id,
                         bundle_id, store_id, device_id):
        """Check scope/target shape and that every referenced row is in the tenant."""
        if not tenant_id:
            raise InvalidPublicationTarget('tenant_id is required')

        role = db_session.get(Role, role_id) if role_id else None
        if role is None or role.tenant_id != tenant_id:
            raise InvalidPublicationTarget('role not found in tenant')

        layout = db_session.get(Layout, layout_id) if layout_id else None
        if layout is None or layout.tenant_id != tenant_id:
            raise InvalidPublicationTarget('layout not found in tenant')

        bundle = db_session.get(Bundle, bundle_id) if bundle_id else None
        if bundle is None or bundle.tenant_id != tenant_id:
            raise InvalidPublicationTarget('bundle not found in tenant')

        if scope == PublicationScope.STORE.value:
            if not store_id:
                raise InvalidPublicationTarget('store_id is required for STORE scope')
            if device_id:
                raise InvalidPublicationTarget('device_id is not allowed for STORE scope')
            store = db_session.get(Store, store_id)
            if store is None or store.tenant_id != tenant_id:
                raise InvalidPublicationTarget('store not found in tenant')
        elif scope == PublicationScope.DEVICE.value:
            if not device_id:
                raise InvalidPublicationTarget('device_id is required for DEVICE scope')
            device = db_session.get(Device, device_id)
            if device is None or device.tenant_id != tenant_id:
                raise InvalidPublicationTarget('device not found in tenant')
        elif store_id or device_id:
            raise InvalidPublicationTarget('GLOBAL scope takes no store_id or device_id')

        return layout, bundle

    @classmethod
    def layout_media_ids(cls, layout: Layout) -> List[str]:
        """Distinct media ids referenced by a layout's region playlists, in order."""
        seen = []
        for assignment in layout.region_playlists:
            if assignment.playlist is None:
                continue
            for item in assignment.playlist.items:
                if item.media_id and item.media_id not in seen:
                    seen.append(item.media_id)
        return seen

    @classmethod
    def _snapshot_bundle(cls, db_session, bundle: Bundle, layout: Layout) -> None:
        """Record the layout's media in the bundle the first time it is published."""
        if bundle.files:
            return
        for media_id in cls.layout_media_ids(layout):
            db_session.add(BundleFile(bundle_id=bundle.id, media_id=media_id))

    @classmethod
    def publish(
        cls,
        db_session,
        tenant_id: str,
        scope,
        role_id: str,
        layout_id: str,
        bundle_id: str,
        store_id: Optional[str] = None,
        device_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Publication:
        """
        Make a layout + bundle the active content for a scope target.

        Args:
            db_session: SQLAlchemy session
            tenant_id: Owning tenant
            scope: GLOBAL, STORE or DEVICE
            role_id: Role the publication applies to
            layout_id: Layout to publish
            bundle_id: Bundle (version label) to publish
            store_id: Target store for STORE scope
            device_id: Target device for DEVICE scope
            now: Publish time (injectable for tests)

        Returns:
            The new active Publication

        Raises:
            InvalidPublicationTarget: Bad scope/target or missing rows
            PublicationConflict: A concurrent publish for the same target won
        """
        scope = cls.normalize_scope(scope)
        layout, bundle = cls._validate_target(
            db_session, tenant_id, scope, role_id, layout_id, bundle_id, store_id, device_id
        )
        target_key = Publication.target_key_for(scope, store_id, device_id)
        now = now or datetime.now(timezone.utc)

        try:
            deactivated = db_session.query(Publication).filter(
                Publication.tenant_id == tenant_id,
                Publication.role_id == role_id,
                Publication.scope == scope,
                Publication.target_key == target_key,
                Publication.is_active.is_(True)
            ).update({'is_active': False}, synchronize_session='fetch')
            # The deactivation has to reach the database before the insert
            # or the partial unique index rejects the new row
            db_session.flush()

            publication = Publication(
                tenant_id=tenant_id,
                scope=scope,
                role_id=role_id,
                store_id=store_id if scope == PublicationScope.STORE.value else None,
                device_id=device_id if scope == PublicationScope.DEVICE.value else None,
                target_key=target_key,
                layout_id=layout.id,
                bundle_id=bundle.id,
                is_active=True,
                published_at=now,
            )
            db_session.add(publication)
            cls._snapshot_bundle(db_session, bundle, layout)
            db_session.commit()
        except IntegrityError as e:
            db_session.rollback()
            logger.warning('Publish conflict for %s/%s/%s: %s', tenant_id, scope, target_key, e)
            raise PublicationConflict(
                'Another publication for this target was activated concurrently'
            ) from e

        logger.info(
            'Published layout %s bundle %s to %s:%s (role %s), replaced %d',
            layout.id, bundle.version, scope, target_key, role_id, deactivated
        )
        return publication

    @classmethod
    def rollback(cls, db_session, publication_id: str, bundle_id: str,
                 now: Optional[datetime] = None) -> Publication:
        """
        Re-publish an earlier bundle to the same target as an existing publication.

        Raises:
            InvalidPublicationTarget: Unknown publication or bundle
        """
        publication = db_session.get(Publication, publication_id)
        if publication is None:
            raise InvalidPublicationTarget('publication not found')

        return cls.publish(
            db_session,
            tenant_id=publication.tenant_id,
            scope=publication.scope,
            role_id=publication.role_id,
            layout_id=publication.layout_id,
            bundle_id=bundle_id,
            store_id=publication.store_id,
            device_id=publication.device_id,
            now=now,
        )

    @classmethod
    def unpublish(cls, db_session, publication_id: str) -> Publication:
        """Deactivate a publication; devices fall back to the next tier."""
        publication = db_session.get(Publication, publication_id)
        if publication is None:
            raise InvalidPublicationTarget('publication not found')

        publication.is_active = False
        db_session.commit()
        logger.info('Unpublished %s', publication_id)
        return publication

    @classmethod
    def list_publications(cls, db_session, tenant_id: str, active_only: bool = False):
        query = db_session.query(Publication).filter(Publication.tenant_id == tenant_id)
        if active_only:
            query = query.filter(Publication.is_active.is_(True))
        return query.order_by(Publication.published_at.desc()).all()

    @classmethod
    def resolve(
        cls,
        db_session,
        tenant_id: Optional[str],
        role_id: Optional[str],
        store_id: Optional[str] = None,
        device_id: Optional[str] = None
    ) -> Resolution:
        """
        Select the single publication that applies to a device.

        Priority: DEVICE (this device) > STORE (this device's store) > GLOBAL.
        If a tier holds more than one active row the most recently published
        wins and the others are reported as duplicates.

        Raises:
            NoActivePublication: Nothing applies (authenticated, nothing to show)
        """
        if not tenant_id or not role_id:
            raise NoActivePublication(tenant_id, role_id, store_id, device_id)

        candidates = db_session.query(Publication).filter(
            Publication.tenant_id == tenant_id,
            Publication.role_id == role_id,
            Publication.is_active.is_(True)
        ).all()

        tiers = {scope: [] for scope in SCOPE_PRIORITY}
        for publication in candidates:
            if publication.scope == PublicationScope.DEVICE.value:
                if device_id and publication.device_id == device_id:
                    tiers[publication.scope].append(publication)
            elif publication.scope == PublicationScope.STORE.value:
                if store_id and publication.store_id == store_id:
                    tiers[publication.scope].append(publication)
            elif publication.scope == PublicationScope.GLOBAL.value:
                tiers[publication.scope].append(publication)

        for scope in SCOPE_PRIORITY:
            matches = tiers[scope]
            if not matches:
                continue

            matches.sort(key=lambda p: (p.published_at, p.id), reverse=True)
            chosen = matches[0]
            duplicates = [p.id for p in matches[1:]]
            if duplicates:
                logger.warning(
                    'Multiple active %s publications for tenant %s role %s: chose %s, ignored %s',
                    scope, tenant_id, role_id, chosen.id, duplicates
                )
            return Resolution(publication=chosen, scope=scope, duplicate_ids=duplicates)

        raise NoActivePublication(tenant_id, role_id, store_id, device_id)
