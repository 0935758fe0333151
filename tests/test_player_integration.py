"""
Integration tests for SignagePlayer.

The CMS client is mocked; everything else (store, state machine, sync,
playback) is real.
"""

from unittest import mock

import pytest

from src.common.cms_client import CredentialError, NoContentYet
from src.player.config import PlayerConfig
from src.player.playback import LoggingRenderer
from src.player.player import SignagePlayer, main
from src.player.state_machine import PlayerState


@pytest.fixture
def config(temp_config_dir):
    config = PlayerConfig(temp_config_dir)
    config.device_code = 'ABC-1234'
    return config


@pytest.fixture
def player(config, mock_client):
    with mock.patch('src.player.player.CmsClient', return_value=mock_client):
        p = SignagePlayer(config, renderer=LoggingRenderer(), auto_pair=False)
    yield p
    p.stop()


class TestWiring:

    def test_generates_device_code_when_missing(self, temp_config_dir, mock_client):
        config = PlayerConfig(temp_config_dir)
        with mock.patch('src.player.player.CmsClient', return_value=mock_client) as client_cls:
            p = SignagePlayer(config, auto_pair=False)

        assert p.device_code.startswith('DEV-')
        assert PlayerConfig(temp_config_dir).device_code == p.device_code
        client_cls.assert_called_once_with(config.cms_url, p.device_code, timeout=15.0)

    def test_heartbeat_reports_sync_status(self, player, mock_client, manifest):
        player.store.save_secret('ABC-1234', 'secret')
        mock_client.fetch_manifest.return_value = manifest
        player.sync.refresh_now()

        player.heartbeat.send_heartbeat()

        mock_client.send_heartbeat.assert_called_once_with('secret', current_version='v1.0.0', status='playing')


class TestManifestFlow:

    def test_manifest_reaches_playback_on_main_loop(self, player, mock_client, manifest):
        player.store.save_secret('ABC-1234', 'secret')
        mock_client.fetch_manifest.return_value = manifest

        player.sync.refresh_now()
        # Nothing drawn until the main loop drains the queue
        assert player.playback.current_item is None

        player.process_events()

        assert player.playback.version == 'v1.0.0'
        assert player.playback.current_item.item_id == 1

    def test_standby_clears_playback(self, player, mock_client, manifest, standby_body):
        player.store.save_secret('ABC-1234', 'secret')
        mock_client.fetch_manifest.return_value = manifest
        player.sync.refresh_now()
        player.process_events()

        mock_client.fetch_manifest.side_effect = NoContentYet(standby_body)
        player.sync.refresh_now()
        player.process_events()

        assert player.state_machine.state == PlayerState.STANDBY
        assert player.playback.current_item is None

    def test_credential_error_keeps_content_on_screen(self, player, mock_client, manifest):
        player.store.save_secret('ABC-1234', 'secret')
        mock_client.fetch_manifest.return_value = manifest
        player.sync.refresh_now()
        player.process_events()

        mock_client.fetch_manifest.side_effect = CredentialError('rejected')
        player.sync.refresh_now()
        player.process_events()

        assert player.state_machine.needs_secret
        assert player.playback.current_item is not None


class TestPairingFlow:

    def test_secret_required_starts_pairing(self, config, mock_client):
        mock_client.pairing_init.return_value = {'pairing_pin': '123456', 'expires_in': 600}
        mock_client.claim_poll.return_value = 'paired-secret'
        mock_client.fetch_manifest.side_effect = NoContentYet({'poll_seconds': 30})

        with mock.patch('src.player.player.CmsClient', return_value=mock_client):
            p = SignagePlayer(config, auto_pair=True)
        try:
            p.start()
            p._pairing_thread.join(timeout=5)

            assert p.store.get_secret('ABC-1234') == 'paired-secret'
        finally:
            p.stop()

    def test_submit_secret(self, player):
        player.state_machine.transition_to(PlayerState.SECRET_REQUIRED)

        player.submit_secret('typed-secret')

        assert player.store.get_secret('ABC-1234') == 'typed-secret'
        assert player.state_machine.state == PlayerState.LOADING


class TestMain:

    def test_cli_overrides(self, temp_config_dir):
        with mock.patch.object(SignagePlayer, 'run') as run:
            main(['--config-dir', temp_config_dir, '--cms-url', 'http://cms:5002',
                  '--device-code', 'CLI-0001', '--secret', 's', '--no-pair'])

        run.assert_called_once()
        config = PlayerConfig(temp_config_dir)
        assert config.cms_url == 'http://cms:5002'
        assert config.device_code == 'CLI-0001'
