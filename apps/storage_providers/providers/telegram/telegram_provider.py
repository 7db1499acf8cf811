import httpx
import logging

from ..base import BaseStorageProvider
from .telegram_validator import TelegramConfigValidator
from apps.files.exceptions import StorageUploadError, StorageDownloadError

logger = logging.getLogger(__name__)

class TelegramStorageProvider(BaseStorageProvider):
    """
    The implementation of the storage provider for the Telegram Bot API.
    Every chunk is sent as a document message to a single chat.
    """

    def __init__(self, config, skip_validation=False, validator=None):
        super().__init__(config)

        # Validate the config, because the bot token might be revoked.
        if not skip_validation:
            if not validator:
                validator = TelegramConfigValidator(config)
            if not validator.validate():
                raise ValueError("Invalid Telegram storage provider configuration")

        self.bot_token = self.config.get('bot_token')
        self.chat_id = self.config.get('chat_id')
        self.timeout = self.config.get('timeout', 60.0)

        self.max_chunk_size = self.config.get('max_chunk_size', 19 * 1024 * 1024)  # Stay under the 20MB getFile limit

        self.api_base = f"https://api.telegram.org/bot{self.bot_token}"
        self.file_base = f"https://api.telegram.org/file/bot{self.bot_token}"

    @staticmethod
    def _error_text(response):
        try:
            return response.json().get('description') or response.text
        except ValueError:
            return response.text

    def upload_chunk(self, chunk: bytes, display_name: str, caption: str = None) -> dict:
        """
        Sends the chunk as a document to the configured chat.
        Returns the document info, with the message ID, that would be useful
        for downloading later. "file_id" is the remote id.

        Raises StorageUploadError on failure.
        """
        if not chunk:
            raise StorageUploadError(f"Telegram does not accept empty documents: {display_name}")

        logger.info(f"Starting upload of {display_name} to chat: {self.chat_id}")
        logger.debug(f"Chunk size: {len(chunk)} bytes")

        url = f"{self.api_base}/sendDocument"

        files = {
            'document': (display_name, chunk, 'application/octet-stream')
        }
        data = {
            'chat_id': str(self.chat_id),
            'caption': caption if caption is not None else display_name,
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                logger.debug("Sending POST request to Telegram API...")
                response = client.post(url, data=data, files=files)

                if response.status_code != 200:
                    error_text = self._error_text(response)
                    logger.error(f"Upload failed with status {response.status_code}: {error_text}")
                    raise StorageUploadError(
                        f"Telegram API error (status {response.status_code}): {error_text}"
                    )

                payload = response.json()
                if not payload.get('ok'):
                    error_text = payload.get('description', 'unknown error')
                    logger.error(f"Upload rejected by Telegram: {error_text}")
                    raise StorageUploadError(f"Telegram API error: {error_text}")

                result = payload.get('result') or {}
                document = result.get('document') or {}
                file_id = document.get('file_id')
                if not file_id:
                    logger.error(f"No file_id returned from Telegram for {display_name}")
                    raise StorageUploadError("No file_id returned from Telegram")

                chunk_ref = dict(document)
                chunk_ref["message_id"] = result.get("message_id")
                chunk_ref["chat_id"] = str(self.chat_id)

                logger.info(f"Upload successful. File ID: {file_id}")
                return chunk_ref

        except httpx.HTTPError as e:
            logger.exception(f"HTTP error during chunk upload: {e}")
            raise StorageUploadError(f"Network error uploading chunk: {str(e)}") from e
        except StorageUploadError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error during chunk upload: {e}")
            raise StorageUploadError(f"Failed to upload chunk: {str(e)}") from e

    def download_chunk(self, remote_id: str) -> bytes:
        """
        Resolves the remote id to a file path with getFile, then downloads
        the file from the file-serving endpoint.

        Raises StorageDownloadError on failure.
        """
        if not remote_id:
            raise StorageDownloadError("remote_id is required for Telegram downloads")

        logger.info(f"Starting download for file ID: {remote_id}")

        try:
            with httpx.Client(timeout=self.timeout) as client:
                logger.debug("Resolving file path from Telegram API...")
                response = client.get(f"{self.api_base}/getFile", params={'file_id': remote_id})

                if response.status_code != 200:
                    error_text = self._error_text(response)
                    logger.error(f"Failed to get file info. Status: {response.status_code}, Error: {error_text}")
                    raise StorageDownloadError(f"Telegram API error (status {response.status_code}): {error_text}")

                file_path = (response.json().get('result') or {}).get('file_path')
                if not file_path:
                    logger.error(f"No file_path returned for file ID {remote_id}")
                    raise StorageDownloadError(f"No file_path returned from Telegram for {remote_id}")

                download_response = client.get(f"{self.file_base}/{file_path}")

                if download_response.status_code == 200:
                    content = download_response.content
                    logger.info(f"Download successful. Chunk size: {len(content)} bytes")
                    return content
                else:
                    error_text = download_response.text
                    logger.error(f"Failed to download file. Status: {download_response.status_code}, Error: {error_text}")
                    raise StorageDownloadError(f"Failed to download file (status {download_response.status_code}): {error_text}")

        except httpx.HTTPError as e:
            logger.exception(f"HTTP error during chunk download: {e}")
            raise StorageDownloadError(f"Network error downloading chunk: {str(e)}") from e
        except StorageDownloadError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error during chunk download: {e}")
            raise StorageDownloadError(f"Failed to download chunk: {str(e)}") from e
