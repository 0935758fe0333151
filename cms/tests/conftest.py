"""
Pytest configuration and fixtures for CMS tests.

This module provides shared fixtures for testing:
- Flask application with test configuration
- In-memory SQLite database
- Test client
- Sample tenant, stores, role and a paired device
- Sample media, playlist, layout template, layout and bundles
"""

from datetime import datetime, timedelta, timezone

import pytest

from cms.app import create_app
from cms.models import (
    db,
    Bundle,
    Device,
    Layout,
    LayoutRegionPlaylist,
    LayoutTemplate,
    MediaAsset,
    PairingState,
    Playlist,
    PlaylistItem,
    Role,
    Store,
    Tenant,
)


SAMPLE_DEVICE_CODE = 'ABC-1234'
SAMPLE_DEVICE_SECRET = 'test-secret-abc'


@pytest.fixture(scope='function')
def app(tmp_path):
    """
    Create a Flask application configured for testing.

    This fixture provides an isolated Flask app with:
    - In-memory SQLite database
    - Testing mode enabled
    - A temporary media root

    Yields:
        Flask application instance
    """
    application = create_app(config_name='testing')
    application.config['MEDIA_ROOT'] = tmp_path / 'media'
    application.config['MEDIA_ROOT'].mkdir()

    with application.app_context():
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """
    Create a test client for the Flask application.

    Args:
        app: Flask application fixture

    Yields:
        Flask test client
    """
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """
    Provide a database session for testing.

    Args:
        app: Flask application fixture

    Yields:
        SQLAlchemy session
    """
    with app.app_context():
        yield db.session


@pytest.fixture(scope='function')
def sample_tenant(app, db_session):
    """The default tenant seeded by create_app."""
    return db_session.get(Tenant, app.config['DEFAULT_TENANT_ID'])


@pytest.fixture(scope='function')
def other_tenant(db_session):
    tenant = Tenant(name='Other Retailer', slug='other-retailer')
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def sample_store(db_session, sample_tenant):
    store = Store(tenant_id=sample_tenant.id, code='S1', name='Store One')
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def second_store(db_session, sample_tenant):
    store = Store(tenant_id=sample_tenant.id, code='S2', name='Store Two')
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def sample_role(db_session, sample_tenant):
    role = Role(tenant_id=sample_tenant.id, name='Checkout')
    db_session.add(role)
    db_session.commit()
    return role


@pytest.fixture(scope='function')
def sample_device(db_session, sample_tenant, sample_store, sample_role):
    """
    A paired, active device in store S1 with role R1.

    Returns:
        Device instance with SAMPLE_DEVICE_SECRET as its secret
    """
    device = Device(
        tenant_id=sample_tenant.id,
        store_id=sample_store.id,
        role_id=sample_role.id,
        device_code=SAMPLE_DEVICE_CODE,
        device_secret=SAMPLE_DEVICE_SECRET,
        display_name='Checkout Screen 1',
        active=True,
        pairing_state=PairingState.PAIRED.value,
    )
    db_session.add(device)
    db_session.commit()
    return device


@pytest.fixture(scope='function')
def device_credentials(sample_device):
    """Request body fields that authenticate sample_device."""
    return {
        'device_code': SAMPLE_DEVICE_CODE,
        'device_secret': SAMPLE_DEVICE_SECRET,
    }


@pytest.fixture(scope='function')
def unpaired_device(db_session):
    """A device that asked for a pin which is still live."""
    device = Device(
        device_code='NEW-0001',
        display_name='New Device (NEW-0001)',
        active=False,
        pairing_state=PairingState.PIN_ISSUED.value,
        pairing_pin='654321',
        pairing_expires_at=datetime.now(timezone.utc) + timedelta(minutes=10),
    )
    db_session.add(device)
    db_session.commit()
    return device


@pytest.fixture(scope='function')
def sample_media(db_session, sample_tenant):
    """A storage-backed image and an externally hosted video."""
    image = MediaAsset(
        tenant_id=sample_tenant.id,
        name='Promo',
        type='image',
        storage_path='images/promo.jpg',
        bytes=2048,
        checksum_sha256='ab' * 32,
    )
    video = MediaAsset(
        tenant_id=sample_tenant.id,
        name='Brand Film',
        type='video',
        url='https://cdn.example.com/brand.mp4',
    )
    db_session.add_all([image, video])
    db_session.commit()
    return {'image': image, 'video': video}


@pytest.fixture(scope='function')
def sample_playlist(db_session, sample_tenant, sample_media):
    """
    Playlist whose items were inserted out of order.

    sort_order 2 -> web page, 0 -> image, 1 -> video
    """
    playlist = Playlist(tenant_id=sample_tenant.id, name='Main Loop')
    db_session.add(playlist)
    db_session.flush()

    db_session.add_all([
        PlaylistItem(
            playlist_id=playlist.id,
            type='web_url',
            web_url='https://example.com/menu',
            duration_seconds=20,
            sort_order=2,
        ),
        PlaylistItem(
            playlist_id=playlist.id,
            media_id=sample_media['image'].id,
            type='image',
            sort_order=0,
        ),
        PlaylistItem(
            playlist_id=playlist.id,
            media_id=sample_media['video'].id,
            type='video',
            sort_order=1,
        ),
    ])
    db_session.commit()
    return playlist


@pytest.fixture(scope='function')
def sample_template(db_session, sample_tenant):
    template = LayoutTemplate(tenant_id=sample_tenant.id, name='Full + Ticker', is_default=True)
    template.regions = [
        {'id': 'full', 'label': 'Main', 'x': 0, 'y': 0, 'width': 100, 'height': 90},
        {'id': 'ticker', 'label': 'Ticker', 'x': 0, 'y': 90, 'width': 100, 'height': 10},
    ]
    db_session.add(template)
    db_session.commit()
    return template


@pytest.fixture(scope='function')
def sample_layout(db_session, sample_tenant, sample_template, sample_playlist):
    """Layout with the sample playlist in 'full' and nothing in 'ticker'."""
    layout = Layout(
        tenant_id=sample_tenant.id,
        name='Checkout Layout',
        template_id=sample_template.id,
    )
    db_session.add(layout)
    db_session.flush()
    db_session.add(LayoutRegionPlaylist(
        layout_id=layout.id,
        region_id='full',
        playlist_id=sample_playlist.id,
    ))
    db_session.commit()
    return layout


@pytest.fixture(scope='function')
def sample_bundle(db_session, sample_tenant):
    bundle = Bundle(tenant_id=sample_tenant.id, version='v1.0.0', notes='Launch')
    db_session.add(bundle)
    db_session.commit()
    return bundle


@pytest.fixture(scope='function')
def second_bundle(db_session, sample_tenant):
    bundle = Bundle(tenant_id=sample_tenant.id, version='v2.0.0')
    db_session.add(bundle)
    db_session.commit()
    return bundle


@pytest.fixture(scope='function')
def publish_args(sample_tenant, sample_role, sample_layout, sample_bundle):
    """Keyword arguments for a GLOBAL publish of the sample layout/bundle."""
    return {
        'tenant_id': sample_tenant.id,
        'scope': 'GLOBAL',
        'role_id': sample_role.id,
        'layout_id': sample_layout.id,
        'bundle_id': sample_bundle.id,
    }
