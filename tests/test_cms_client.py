"""
CMS Client Tests

Tests for the device API client with mocked HTTP requests, covering the
mapping of every response class onto the client's error taxonomy.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from src.common.cms_client import (
    CmsClient,
    CmsClientError,
    CredentialError,
    NoContentYet,
    ServerFault,
    TransientNetworkError,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def client():
    return CmsClient('http://cms.local:5002/', 'ABC-1234', timeout=15)


def make_response(status_code, json_data=None, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def mock_post():
    with patch('src.common.cms_client.requests.post') as post:
        yield post


# =============================================================================
# Manifest
# =============================================================================


class TestFetchManifest:
    """Tests for fetch_manifest."""

    def test_success(self, client, mock_post, manifest):
        mock_post.return_value = make_response(200, manifest)

        assert client.fetch_manifest('secret', 'v1') == manifest

        mock_post.assert_called_once_with(
            'http://cms.local:5002/api/v1/devices/manifest',
            json={'device_code': 'ABC-1234', 'device_secret': 'secret', 'current_version': 'v1'},
            timeout=15,
        )

    @pytest.mark.parametrize('status', [401, 403])
    def test_rejected_credentials(self, client, mock_post, status):
        mock_post.return_value = make_response(status, {'error': 'Invalid device credentials'})

        with pytest.raises(CredentialError):
            client.fetch_manifest('bad')

    def test_standby(self, client, mock_post, standby_body):
        mock_post.return_value = make_response(404, standby_body)

        with pytest.raises(NoContentYet) as exc_info:
            client.fetch_manifest('secret')

        assert exc_info.value.standby['resolved']['role']['name'] == 'Checkout'
        assert exc_info.value.standby['debug']['active_role_pub_count'] == 0

    def test_plain_404_is_server_fault(self, client, mock_post):
        mock_post.return_value = make_response(404, {'error': 'Not found'})

        with pytest.raises(ServerFault) as exc_info:
            client.fetch_manifest('secret')
        assert exc_info.value.status_code == 404

    def test_server_error(self, client, mock_post):
        mock_post.return_value = make_response(500, {'error': 'Internal server error'})

        with pytest.raises(ServerFault) as exc_info:
            client.fetch_manifest('secret')
        assert exc_info.value.status_code == 500

    def test_malformed_json(self, client, mock_post):
        mock_post.return_value = make_response(200, json_error=ValueError('bad json'))

        with pytest.raises(ServerFault):
            client.fetch_manifest('secret')

    def test_missing_region_playlists(self, client, mock_post):
        mock_post.return_value = make_response(200, {'resolved': {}})

        with pytest.raises(ServerFault):
            client.fetch_manifest('secret')

    def test_timeout_is_network_error(self, client, mock_post):
        mock_post.side_effect = requests.exceptions.Timeout()

        with pytest.raises(TransientNetworkError) as exc_info:
            client.fetch_manifest('secret')
        assert not isinstance(exc_info.value, CredentialError)

    def test_connection_error(self, client, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('refused')

        with pytest.raises(TransientNetworkError):
            client.fetch_manifest('secret')

    def test_all_errors_share_base(self):
        for error in (CredentialError, NoContentYet, TransientNetworkError, ServerFault):
            assert issubclass(error, CmsClientError)


# =============================================================================
# Heartbeat and pairing
# =============================================================================


class TestHeartbeat:
    """Tests for send_heartbeat."""

    def test_success(self, client, mock_post):
        mock_post.return_value = make_response(200, {'ok': True})

        client.send_heartbeat('secret', current_version='v1', status='offline')

        payload = mock_post.call_args.kwargs['json']
        assert payload == {
            'device_code': 'ABC-1234',
            'device_secret': 'secret',
            'current_version': 'v1',
            'status': 'offline',
        }

    def test_rejected(self, client, mock_post):
        mock_post.return_value = make_response(401, {'error': 'Invalid device credentials'})

        with pytest.raises(CredentialError):
            client.send_heartbeat('bad')


class TestPairing:
    """Tests for pairing_init and claim_poll."""

    def test_init_returns_pin(self, client, mock_post):
        mock_post.return_value = make_response(200, {'pairing_pin': '123456', 'expires_in': 600})

        assert client.pairing_init()['pairing_pin'] == '123456'
        assert mock_post.call_args.kwargs['json'] == {'action': 'INIT', 'device_code': 'ABC-1234'}

    def test_init_without_pin(self, client, mock_post):
        mock_post.return_value = make_response(200, {})

        with pytest.raises(ServerFault):
            client.pairing_init()

    def test_poll_pending(self, client, mock_post):
        mock_post.return_value = make_response(200, {'status': 'PENDING'})

        assert client.claim_poll() is None

    def test_poll_claimed(self, client, mock_post):
        mock_post.return_value = make_response(200, {'device_secret': 's3cret'})

        assert client.claim_poll() == 's3cret'
        assert mock_post.call_args.kwargs['json'] == {'action': 'CLAIM_POLL', 'device_code': 'ABC-1234'}
