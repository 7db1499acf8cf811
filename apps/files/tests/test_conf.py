"""
Tests for reading the TELESTORE setting.
"""
import hashlib
import pytest
from django.core.exceptions import ImproperlyConfigured
from apps.files.conf import build_storage_config, derive_default_key, get_storage_config
from apps.files.repository import TrackingDriver
from apps.files.services.chunk_service import DEFAULT_CHUNK_SIZE


@pytest.mark.unit
class TestBuildStorageConfig:

    def test_defaults(self, mock_telegram_config):
        config = build_storage_config(mock_telegram_config, secret_key='s3cret')

        assert config.platform == 'Telegram'
        assert config.tracking_driver is TrackingDriver.ARRAY
        assert config.chunking.enabled is True
        assert config.chunking.size == DEFAULT_CHUNK_SIZE
        assert config.encryption.enabled is False
        assert config.logging.enabled is False
        assert config.logging.channel == 'telestore'
        assert config.validate_provider is True

    def test_default_key_is_derived_from_secret_key(self, mock_telegram_config):
        config = build_storage_config(mock_telegram_config, secret_key='s3cret')

        assert config.encryption.key == hashlib.sha256(b's3cret').digest()
        assert len(config.encryption.key) == 32

    def test_explicit_key_wins(self, mock_telegram_config):
        config = build_storage_config(
            {**mock_telegram_config, 'encryption': {'enabled': True, 'key': 'k' * 32}},
            secret_key='s3cret',
        )

        assert config.encryption.key == 'k' * 32
        assert config.encryption.enabled is True

    def test_missing_secret_key_without_explicit_key(self):
        with pytest.raises(ImproperlyConfigured, match="SECRET_KEY"):
            derive_default_key('')

    def test_chat_id_is_stringified(self):
        config = build_storage_config({'bot_token': 't', 'chat_id': -1001234567890}, secret_key='s')

        assert config.chat_id == '-1001234567890'

    @pytest.mark.parametrize('value, expected', [('true', True), ('0', False), ('on', True), (False, False)])
    def test_string_flags(self, value, expected):
        config = build_storage_config({'track_files': value, 'chunking': {'enabled': value}}, secret_key='s')

        assert config.track_files is expected
        assert config.chunking.enabled is expected

    def test_unknown_tracking_driver(self):
        with pytest.raises(ImproperlyConfigured, match="Unsupported tracking driver"):
            build_storage_config({'tracking_driver': 'redis'}, secret_key='s')

    def test_unknown_platform(self):
        with pytest.raises(ImproperlyConfigured, match="Unsupported storage provider platform"):
            build_storage_config({'platform': 'Dropbox'}, secret_key='s')

    @pytest.mark.parametrize('size', [0, -5, '10', 2.5, True])
    def test_invalid_chunk_size(self, size):
        with pytest.raises(ImproperlyConfigured, match="chunking.size"):
            build_storage_config({'chunking': {'size': size}}, secret_key='s')

    def test_json_driver_requires_a_path(self):
        with pytest.raises(ImproperlyConfigured, match="json_tracking_path"):
            build_storage_config({'tracking_driver': 'json'}, secret_key='s')

    def test_track_files_off_overrides_driver(self):
        config = build_storage_config({'tracking_driver': 'database', 'track_files': False}, secret_key='s')

        assert config.tracking_driver is TrackingDriver.DATABASE
        assert config.effective_tracking_driver is TrackingDriver.NONE

    def test_provider_config(self, mock_telegram_config):
        config = build_storage_config(
            {**mock_telegram_config, 'timeout': 30, 'chunking': {'size': 1024}},
            secret_key='s',
        )

        assert config.provider_config() == {
            'bot_token': mock_telegram_config['bot_token'],
            'chat_id': mock_telegram_config['chat_id'],
            'timeout': 30.0,
            'max_chunk_size': 1024,
            'encrypted': False,
        }


class TestGetStorageConfig:

    def test_reads_django_settings(self, settings, tmp_path):
        settings.TELESTORE = {
            'bot_token': 'from-settings',
            'chat_id': '@telestore_files',
            'tracking_driver': 'json',
            'json_tracking_path': tmp_path / 'files.json',
            'logging': {'enabled': True, 'channel': 'uploads'},
        }

        config = get_storage_config()

        assert config.bot_token == 'from-settings'
        assert config.tracking_driver is TrackingDriver.JSON
        assert config.json_tracking_path == str(tmp_path / 'files.json')
        assert config.logging.channel == 'uploads'
        assert config.encryption.key == derive_default_key(settings.SECRET_KEY)

    def test_falls_back_to_environment(self, settings, monkeypatch):
        settings.TELESTORE = {}
        monkeypatch.setenv('TELEGRAM_BOT_TOKEN', 'from-env')
        monkeypatch.setenv('TELEGRAM_CHAT_ID', '-100555')

        config = get_storage_config()

        assert config.bot_token == 'from-env'
        assert config.chat_id == '-100555'
