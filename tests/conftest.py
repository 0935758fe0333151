"""
Pytest fixtures for the display player tests.

Provides a temporary config directory, a credential store, a mocked CMS
client and sample manifest/standby documents.
"""

import copy
from unittest import mock

import pytest

from src.common.cms_client import CmsClient
from src.player.credential_store import CredentialStore
from src.player.state_machine import PlayerStateMachine


DEVICE_CODE = 'ABC-1234'
DEVICE_SECRET = 'test-secret-abc'


SAMPLE_MANIFEST = {
    'device': {'device_code': DEVICE_CODE, 'store_id': 'store-1', 'role_id': 'role-1'},
    'resolved': {
        'scope': 'GLOBAL',
        'role': {'id': 'role-1', 'name': 'Checkout'},
        'bundle_id': 'bundle-1',
        'version': 'v1.0.0',
    },
    'layout': {
        'layout_id': 'layout-1',
        'template_id': 'template-1',
        'regions': [
            {'id': 'full', 'label': 'Full screen'},
            {'id': 'ticker', 'label': 'Ticker'},
        ],
    },
    'region_playlists': {
        'full': [
            {'playlist_item_id': 3, 'media_id': None, 'type': 'web_url',
             'web_url': 'https://example.com/menu', 'duration_seconds': 20, 'sort_order': 2},
            {'playlist_item_id': 1, 'media_id': 'media-img', 'type': 'image',
             'web_url': None, 'duration_seconds': None, 'sort_order': 0},
            {'playlist_item_id': 2, 'media_id': 'media-vid', 'type': 'video',
             'web_url': None, 'duration_seconds': None, 'sort_order': 1},
        ],
        'ticker': [],
    },
    'assets': [
        {'media_id': 'media-img', 'type': 'image', 'url': 'http://cms/api/v1/media/images/promo.jpg?expires=1&sig=a',
         'checksum_sha256': None, 'bytes': 1024},
        {'media_id': 'media-vid', 'type': 'video', 'url': 'https://cdn.example.com/video.mp4',
         'checksum_sha256': None, 'bytes': None},
    ],
    'poll_seconds': 45,
}


SAMPLE_STANDBY = {
    'error': 'No active publication found for this device',
    'device': {'device_code': DEVICE_CODE, 'role_name': 'Checkout'},
    'resolved': {'scope': 'STANDBY', 'role': {'id': 'role-1', 'name': 'Checkout'},
                 'bundle_id': None, 'version': None},
    'layout': None,
    'region_playlists': {},
    'assets': [],
    'poll_seconds': 20,
    'debug': {
        'device_tenant': 'tenant-1',
        'device_role_id': 'role-1',
        'total_tenant_pubs': 0,
        'role_pub_count': 0,
        'active_role_pub_count': 0,
    },
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment overrides out of the tests."""
    for name in ('SIGNAGE_DEVICE_CODE', 'SIGNAGE_CMS_URL', 'SIGNAGE_DEFAULTS_FILE'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / 'config'
    config_dir.mkdir()
    return str(config_dir)


@pytest.fixture
def store(temp_config_dir):
    return CredentialStore(temp_config_dir)


@pytest.fixture
def paired_store(store):
    """Store that already holds the device secret."""
    store.save_secret(DEVICE_CODE, DEVICE_SECRET)
    return store


@pytest.fixture
def mock_client():
    """CMS client double with the device code set."""
    client = mock.MagicMock(spec=CmsClient)
    client.device_code = DEVICE_CODE
    return client


@pytest.fixture
def state_machine():
    return PlayerStateMachine()


@pytest.fixture
def manifest():
    return copy.deepcopy(SAMPLE_MANIFEST)


@pytest.fixture
def standby_body():
    return copy.deepcopy(SAMPLE_STANDBY)
