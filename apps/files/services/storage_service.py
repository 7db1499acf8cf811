from apps.storage_providers.providers import PROVIDER_REGISTRY, PLATFORM_TELEGRAM
from apps.files.exceptions import StorageUploadError, StorageDownloadError

class StorageService:
    """
    A service that abstracts the interaction with different storage providers.
    It delegates the actual upload/download operations to the specific provider's implementation.
    """

    def __init__(self, provider_config=None, platform=PLATFORM_TELEGRAM, skip_validation=False, provider=None):
        """
        Initializes the service with the provider registered for a platform.

        Args:
            provider_config: Config dict handed to the provider class
            platform: Key of the provider class in PROVIDER_REGISTRY
            skip_validation: If True, skip provider configuration validation (useful for testing)
            provider: Ready-made provider instance, used as-is when given
        """
        if provider is None:
            provider_class = PROVIDER_REGISTRY.get(platform)
            if not provider_class:
                raise ValueError(f"Unsupported storage provider platform: {platform}")
            if not isinstance(provider_config, dict):
                raise ValueError("provider_config must be a dictionary")
            provider = provider_class(provider_config, skip_validation=skip_validation)

        self.provider = provider
        self.provider_name = platform

    @classmethod
    def from_config(cls, config):
        """Builds the service from an apps.files.conf.StorageConfig."""
        return cls(
            config.provider_config(),
            platform=config.platform,
            skip_validation=not config.validate_provider,
        )

    def upload_chunk(self, chunk, display_name, caption=None):
        """
        Uploads a chunk of a file to the configured storage provider.
        Returns the provider's chunk reference. Its "file_id" entry is the
        remote id needed to download the chunk later.
        """
        if not isinstance(chunk, (bytes, bytearray)):
            raise ValueError(f"chunk must be bytes, got {type(chunk).__name__}")
        if not display_name:
            raise ValueError("display_name cannot be empty")

        try:
            result = self.provider.upload_chunk(chunk, display_name, caption)

            if not result:
                raise StorageUploadError("Provider returned no result")
            if not isinstance(result, dict):
                raise StorageUploadError(f"Provider returned invalid type: {type(result)}")
            file_id = result.get("file_id")
            if not file_id or not isinstance(file_id, str):
                raise StorageUploadError("Provider returned no usable file_id")
            return result

        except StorageUploadError:
            raise
        except Exception as e:
            raise StorageUploadError(f"Failed to upload chunk: {str(e)}") from e

    def download_chunk(self, remote_id):
        """
        Downloads a chunk from the storage provider.
        """
        if not remote_id:
            raise ValueError("remote_id cannot be empty")

        try:
            result = self.provider.download_chunk(remote_id)

            if not isinstance(result, bytes):
                raise StorageDownloadError(f"Provider returned invalid type: {type(result)}, expected bytes")

            return result

        except StorageDownloadError:
            raise
        except Exception as e:
            raise StorageDownloadError(f"Failed to download chunk: {str(e)}") from e
