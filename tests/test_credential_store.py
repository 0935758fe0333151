"""Unit tests for the CredentialStore."""

import json
from pathlib import Path

from src.player.credential_store import CredentialStore


class TestCredentialStore:
    """Tests for secret and manifest persistence."""

    def test_empty_store(self, store):
        assert store.get_secret('ABC-1234') is None
        assert store.get_manifest('ABC-1234') is None

    def test_secret_round_trip_survives_reopen(self, temp_config_dir):
        CredentialStore(temp_config_dir).save_secret('ABC-1234', 'secret-1')

        assert CredentialStore(temp_config_dir).get_secret('ABC-1234') == 'secret-1'

    def test_keyed_by_device_code(self, store):
        store.save_secret('ABC-1234', 'one')
        store.save_secret('XYZ-9999', 'two')

        store.clear_secret('ABC-1234')

        assert store.get_secret('ABC-1234') is None
        assert store.get_secret('XYZ-9999') == 'two'

    def test_file_layout(self, store, temp_config_dir, manifest):
        store.save_secret('ABC-1234', 'secret-1')
        store.save_manifest('ABC-1234', manifest)

        data = json.loads((Path(temp_config_dir) / 'credentials.json').read_text())

        assert data['secret:ABC-1234'] == 'secret-1'
        assert data['manifest:ABC-1234']['resolved']['version'] == 'v1.0.0'

    def test_clear_manifest_keeps_secret(self, store, manifest):
        store.save_secret('ABC-1234', 'secret-1')
        store.save_manifest('ABC-1234', manifest)

        store.clear_manifest('ABC-1234')

        assert store.get_manifest('ABC-1234') is None
        assert store.get_secret('ABC-1234') == 'secret-1'

    def test_corrupt_file_is_ignored(self, temp_config_dir):
        (Path(temp_config_dir) / 'credentials.json').write_text('{not json')
        store = CredentialStore(temp_config_dir)

        assert store.get_secret('ABC-1234') is None
        store.save_secret('ABC-1234', 'fresh')
        assert store.get_secret('ABC-1234') == 'fresh'
