from abc import ABC, abstractmethod

class BaseStorageProvider(ABC):
    """
    An abstract base class that all storage providers must implement.
    This defines the contract for how the StorageService will interact with them.
    """

    # Largest payload a single upload may carry. Providers override it.
    max_chunk_size = 19 * 1024 * 1024

    def __init__(self, config):
        """
        Initializes the provider with its configuration.
        """
        self.config = config

    @abstractmethod
    def upload_chunk(self, chunk:bytes, display_name:str, caption:str=None) -> dict:
        """
        Uploads one chunk of data and returns its chunk reference.

        Args:
            chunk: The bytes of the chunk to upload, encrypted or not.
            display_name: File name shown for the upload on the remote side.
            caption: Optional text attached to the upload.
        Returns:
            Dict containing provider-specific chunk reference info. It must contain
            "file_id", the opaque remote id used to download the chunk later.
        """
        pass

    @abstractmethod
    def download_chunk(self, remote_id:str) -> bytes:
        """
        Downloads a chunk of data given its remote id.

        Args:
            remote_id: The "file_id" returned by upload_chunk.
        Returns:
            The downloaded bytes of the chunk, exactly as uploaded.
        """
        pass
