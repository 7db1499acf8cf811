"""
Reads the TELESTORE dict from Django settings and merges it over the defaults.

    TELESTORE = {
        "bot_token": "...",
        "chat_id": "...",
        "tracking_driver": "database",
        "chunking": {"enabled": True, "size": 19 * 1024 * 1024},
        "encryption": {"enabled": True, "key": "base64:..."},
        "logging": {"enabled": True, "channel": "telestore"},
    }
"""
import hashlib
import os
from dataclasses import dataclass, field
from typing import Optional, Union

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from apps.files.repository import TrackingDriver
from apps.files.services.chunk_service import DEFAULT_CHUNK_SIZE
from apps.storage_providers.providers import PLATFORM_TELEGRAM, PROVIDER_REGISTRY


@dataclass(frozen=True)
class ChunkingConfig:
    enabled: bool = True
    size: int = DEFAULT_CHUNK_SIZE


@dataclass(frozen=True)
class EncryptionConfig:
    enabled: bool = False
    key: Optional[Union[str, bytes]] = None


@dataclass(frozen=True)
class LoggingConfig:
    enabled: bool = False
    channel: str = "telestore"


@dataclass(frozen=True)
class StorageConfig:
    bot_token: str = ""
    chat_id: str = ""
    platform: str = PLATFORM_TELEGRAM
    timeout: float = 60.0
    validate_provider: bool = True
    track_files: bool = True
    tracking_driver: TrackingDriver = TrackingDriver.ARRAY
    json_tracking_path: Optional[str] = None
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    encryption: EncryptionConfig = field(default_factory=EncryptionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def effective_tracking_driver(self) -> TrackingDriver:
        if not self.track_files:
            return TrackingDriver.NONE
        return self.tracking_driver

    def provider_config(self) -> dict:
        """Config dict handed to the storage provider class."""
        return {
            'bot_token': self.bot_token,
            'chat_id': self.chat_id,
            'timeout': self.timeout,
            'max_chunk_size': self.chunking.size,
            'encrypted': self.encryption.enabled,
        }


def derive_default_key(secret_key) -> bytes:
    """32-byte key derived from the project-wide SECRET_KEY."""
    if not secret_key:
        raise ImproperlyConfigured("SECRET_KEY is required to derive the default encryption key")
    return hashlib.sha256(str(secret_key).encode("utf-8")).digest()


def _as_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def build_storage_config(options=None, secret_key=None) -> StorageConfig:
    """
    Validates raw options and returns a StorageConfig.
    Raises ImproperlyConfigured on invalid values.
    """
    options = dict(options or {})
    chunking = dict(options.pop('chunking', None) or {})
    encryption = dict(options.pop('encryption', None) or {})
    logging_options = dict(options.pop('logging', None) or {})

    driver = options.get('tracking_driver', TrackingDriver.ARRAY)
    try:
        driver = TrackingDriver(driver)
    except ValueError:
        raise ImproperlyConfigured(
            f"Unsupported tracking driver '{driver}'. Must be one of {[d.value for d in TrackingDriver]}"
        ) from None

    platform = options.get('platform', PLATFORM_TELEGRAM)
    if platform not in PROVIDER_REGISTRY:
        raise ImproperlyConfigured(f"Unsupported storage provider platform: {platform}")

    chunk_size = chunking.get('size', DEFAULT_CHUNK_SIZE)
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
        raise ImproperlyConfigured(f"chunking.size must be a positive integer, got {chunk_size!r}")

    key = encryption.get('key')
    if not key:
        key = derive_default_key(secret_key)

    json_path = options.get('json_tracking_path')
    if driver is TrackingDriver.JSON and not json_path:
        raise ImproperlyConfigured("json_tracking_path is required for the json tracking driver")

    return StorageConfig(
        bot_token=options.get('bot_token') or "",
        chat_id=str(options.get('chat_id') or ""),
        platform=platform,
        timeout=float(options.get('timeout', 60.0)),
        validate_provider=_as_bool(options.get('validate_provider', True)),
        track_files=_as_bool(options.get('track_files', True)),
        tracking_driver=driver,
        json_tracking_path=str(json_path) if json_path else None,
        chunking=ChunkingConfig(
            enabled=_as_bool(chunking.get('enabled', True)),
            size=chunk_size,
        ),
        encryption=EncryptionConfig(
            enabled=_as_bool(encryption.get('enabled', False)),
            key=key,
        ),
        logging=LoggingConfig(
            enabled=_as_bool(logging_options.get('enabled', False)),
            channel=logging_options.get('channel') or "telestore",
        ),
    )


def get_storage_config() -> StorageConfig:
    options = dict(getattr(settings, 'TELESTORE', {}) or {})
    options.setdefault('bot_token', os.getenv('TELEGRAM_BOT_TOKEN', ''))
    options.setdefault('chat_id', os.getenv('TELEGRAM_CHAT_ID', ''))
    return build_storage_config(options, secret_key=settings.SECRET_KEY)
