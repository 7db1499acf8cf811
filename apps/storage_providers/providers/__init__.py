from .base import BaseStorageProvider
from .telegram.telegram_provider import TelegramStorageProvider
# Add more providers as needed

# Platform constants
PLATFORM_TELEGRAM = "Telegram"

# Centralized provider registry
PROVIDER_REGISTRY = {
    PLATFORM_TELEGRAM: TelegramStorageProvider,
    # Add more providers as needed
}

__all__ = [
    'PROVIDER_REGISTRY',
    'PLATFORM_TELEGRAM',
    'BaseStorageProvider',
    'TelegramStorageProvider',
]
