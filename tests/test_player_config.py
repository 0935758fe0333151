"""Unit tests for the player configuration modules.

Tests YAML defaults, JSON device/settings files, environment overrides
and the device code file.
"""

import json
from pathlib import Path

import pytest
import yaml

from src.common.config import Config
from src.common.device_id import generate_device_code, get_or_create_device_code
from src.player.config import PlayerConfig


SAMPLE_DEFAULTS = {
    'cms': {
        'base_url': 'https://cms.example.com'
    },
    'player': {
        'heartbeat_interval_seconds': 45,
        'standby_poll_seconds': 20,
    },
}


@pytest.fixture
def defaults_file(tmp_path):
    path = tmp_path / 'defaults.yaml'
    path.write_text(yaml.dump(SAMPLE_DEFAULTS))
    return str(path)


class TestDefaultsConfig:
    """Tests for the YAML defaults file."""

    def test_get_nested_key(self, defaults_file):
        config = Config(defaults_file)
        assert config.get('cms.base_url') == 'https://cms.example.com'
        assert config.get('player.heartbeat_interval_seconds') == 45

    def test_missing_key_returns_default(self, defaults_file):
        assert Config(defaults_file).get('cms.nope', 'fallback') == 'fallback'

    def test_missing_file_is_empty(self, tmp_path):
        config = Config(str(tmp_path / 'absent.yaml'))
        assert config.get('cms.base_url') is None

    def test_explicit_load_of_missing_file_raises(self, tmp_path):
        config = Config(str(tmp_path / 'absent.yaml'))
        with pytest.raises(FileNotFoundError):
            config.load()

    def test_env_var_selects_file(self, defaults_file, monkeypatch):
        monkeypatch.setenv('SIGNAGE_DEFAULTS_FILE', defaults_file)
        assert Config().get('cms.base_url') == 'https://cms.example.com'

    def test_set_creates_nested_sections(self):
        config = Config()
        config.set('player.pairing_poll_seconds', 3)
        assert config.section('player') == {'pairing_poll_seconds': 3}


class TestPlayerConfig:
    """Tests for PlayerConfig."""

    def test_builtin_defaults(self, temp_config_dir):
        config = PlayerConfig(temp_config_dir)

        assert config.device_code == ''
        assert config.cms_url == PlayerConfig.DEFAULT_CMS_URL
        assert config.fetch_timeout_seconds == 15.0
        assert config.heartbeat_interval_seconds == 30
        assert config.default_poll_seconds == 60
        assert config.standby_poll_seconds == 30
        assert config.pairing_poll_seconds == 5

    def test_yaml_defaults_layer(self, temp_config_dir, defaults_file):
        config = PlayerConfig(temp_config_dir, defaults_file=defaults_file)

        assert config.cms_url == 'https://cms.example.com'
        assert config.heartbeat_interval_seconds == 45
        assert config.standby_poll_seconds == 20
        assert config.default_poll_seconds == 60

    def test_settings_json_wins_over_yaml(self, temp_config_dir, defaults_file):
        (Path(temp_config_dir) / 'settings.json').write_text(json.dumps({'heartbeat_interval_seconds': 10}))

        config = PlayerConfig(temp_config_dir, defaults_file=defaults_file)

        assert config.heartbeat_interval_seconds == 10

    def test_device_json(self, temp_config_dir):
        (Path(temp_config_dir) / 'device.json').write_text(json.dumps({
            'device_code': 'ABC-1234',
            'cms_url': 'http://10.0.0.5:5002',
            'display_name': 'Checkout 1',
        }))

        config = PlayerConfig(temp_config_dir)

        assert config.device_code == 'ABC-1234'
        assert config.cms_url == 'http://10.0.0.5:5002'
        assert config.display_name == 'Checkout 1'

    def test_env_overrides(self, temp_config_dir, monkeypatch):
        monkeypatch.setenv('SIGNAGE_DEVICE_CODE', 'ENV-0001')
        monkeypatch.setenv('SIGNAGE_CMS_URL', 'http://env-cms')

        config = PlayerConfig(temp_config_dir)

        assert config.device_code == 'ENV-0001'
        assert config.cms_url == 'http://env-cms'

    def test_save_and_reload(self, temp_config_dir):
        config = PlayerConfig(temp_config_dir)
        config.device_code = 'ABC-1234'
        config.set_setting('default_poll_seconds', 120)
        config.save_all()

        reloaded = PlayerConfig(temp_config_dir)
        assert reloaded.device_code == 'ABC-1234'
        assert reloaded.default_poll_seconds == 120

    def test_unknown_setting_rejected(self, temp_config_dir):
        with pytest.raises(KeyError):
            PlayerConfig(temp_config_dir).set_setting('camera_enabled', True)

    def test_effective_settings(self, temp_config_dir):
        settings = PlayerConfig(temp_config_dir).get_settings_config()
        assert set(settings) == set(PlayerConfig.DEFAULT_SETTINGS)


class TestDeviceCode:
    """Tests for device code generation and persistence."""

    def test_format(self):
        code = generate_device_code()
        assert code.startswith('DEV-')
        assert len(code) == 12

    def test_persisted(self, temp_config_dir):
        first = get_or_create_device_code(temp_config_dir)
        second = get_or_create_device_code(temp_config_dir)

        assert first == second
        assert (Path(temp_config_dir) / 'device_code.txt').read_text() == first
