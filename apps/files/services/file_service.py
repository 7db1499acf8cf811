import hashlib
import logging
import mimetypes
import os

from apps.files.conf import get_storage_config
from apps.files.exceptions import (
    ChecksumMismatch,
    FileDeleteError,
    FileReadError,
    FileWriteError,
    NotFound,
)
from apps.files.records import FileRecord
from apps.files.repository import BaseFileRepository, get_file_repository
from apps.files.services import chunk_service
from apps.files.services.encryption_service import EncryptionService
from apps.files.services.storage_service import StorageService

logger = logging.getLogger(__name__)

# A path with no separator and more than this many characters is taken for a
# Telegram file_id when nothing is tracked under it.
RAW_REMOTE_ID_MIN_LENGTH = 20


def looks_like_remote_id(path) -> bool:
    return "/" not in path and len(path) > RAW_REMOTE_ID_MIN_LENGTH


class FileService:
    """
    Orchestrates file writes and reads by coordinating chunking, encryption,
    storage, and tracking. Primary service layer for file management.

    A write uploads every segment before anything is tracked, so a failed
    write never leaves a record behind. Segments uploaded before the failure
    stay in the chat: the bot API offers no way to delete them.
    """

    def __init__(self, file_repository: BaseFileRepository, storage_service=None, encryption_service=None, config=None):
        if not file_repository:
            raise ValueError("file_repository is required")
        if not isinstance(file_repository, BaseFileRepository):
            raise TypeError("file_repository must be an instance of BaseFileRepository")
        self.file_repository = file_repository

        if config is None:
            config = get_storage_config()
        self.config = config
        self.chunking_enabled = config.chunking.enabled
        self.chunk_size = config.chunking.size

        if not storage_service:
            logger.info(f"No StorageService provided, using configured platform '{config.platform}'")
            storage_service = StorageService.from_config(config)
        self._storage_service = storage_service

        if not encryption_service:
            logger.debug("No EncryptionService provided, creating one from configuration")
            encryption_service = EncryptionService(
                key=config.encryption.key,
                enabled=config.encryption.enabled,
            )
        self._encryption_service = encryption_service

        self._action_logger = logging.getLogger(config.logging.channel) if config.logging.enabled else None

        logger.info(
            f"FileService initialized with provider: {self._storage_service.provider_name}, "
            f"chunking: {self.chunk_size if self.chunking_enabled else 'disabled'}, "
            f"encryption: {'enabled' if self._encryption_service.enabled else 'disabled'}"
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def write(self, path: str, contents: bytes, caption: str = None) -> FileRecord:
        """
        Orchestrates: chunk decision -> encrypt -> upload -> track.
        Raises FileWriteError naming the path and the cause on any failure.
        """
        logger.info(f"Starting write: {path}")

        try:
            if not path:
                raise ValueError("path cannot be empty")
            if not isinstance(contents, (bytes, bytearray, memoryview)):
                raise TypeError(f"contents must be bytes, got {type(contents).__name__}")
            contents = bytes(contents)

            file_name = os.path.basename(path) or path

            if self.chunking_enabled and chunk_service.needs_chunking(contents, self.chunk_size):
                remote_ids = self._upload_chunked(file_name, contents, caption)
            else:
                remote_ids = [self._upload_single(file_name, contents, caption)]

            record = self.file_repository.track(path, remote_ids, {
                'is_chunked': len(remote_ids) > 1,
                'is_encrypted': self._encryption_service.enabled,
                'size': len(contents),
                'mime_type': mimetypes.guess_type(file_name)[0] or 'application/octet-stream',
                'file_name': file_name,
                'caption': caption,
                'checksum': hashlib.sha256(contents).hexdigest(),
            })

        except Exception as e:
            logger.error(f"Failed to write file {path}: {str(e)}", exc_info=True)
            self._log_action('write', level=logging.ERROR, path=path, error=str(e))
            raise FileWriteError(path, e) from e

        logger.info(f"Successfully wrote file: {path} with {record.chunk_count} chunk(s)")
        self._log_action('write', path=path, file_ids=record.remote_ids, size=record.original_size)
        return record

    def _upload_single(self, file_name, contents, caption):
        logger.debug(f"Uploading {file_name} as a single segment ({len(contents)} bytes)")
        payload = self._encryption_service.encrypt_chunk(contents)
        chunk_ref = self._storage_service.upload_chunk(payload, file_name, caption)
        return chunk_ref["file_id"]

    def _upload_chunked(self, file_name, contents, caption):
        segments = chunk_service.split(contents, self.chunk_size)
        total = len(segments)
        logger.info(f"Splitting {file_name} into {total} chunks of up to {self.chunk_size} bytes")

        # Staged in memory until every segment is uploaded
        remote_ids = []
        for index, segment in enumerate(segments):
            display_name = chunk_service.segment_name(file_name, index, total)
            logger.debug(f"Processing chunk {index + 1}/{total} for file: {file_name} (size: {len(segment)} bytes)")

            payload = self._encryption_service.encrypt_chunk(segment)
            segment_caption = f"{caption} ({index + 1}/{total})" if caption else None
            try:
                chunk_ref = self._storage_service.upload_chunk(payload, display_name, segment_caption)
            except Exception:
                if remote_ids:
                    logger.warning(
                        f"Chunk {index + 1}/{total} of {file_name} failed; "
                        f"{len(remote_ids)} uploaded chunk(s) are left orphaned: {remote_ids}"
                    )
                raise
            remote_ids.append(chunk_ref["file_id"])

        return remote_ids

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read(self, path: str) -> bytes:
        """
        Orchestrates: lookup record -> download in recorded order -> decrypt -> merge.
        A path that is not tracked but looks like a Telegram file_id is read directly.
        Raises FileReadError naming the path and the cause on any failure.
        """
        logger.info(f"Starting read: {path}")

        try:
            if not path:
                raise ValueError("path cannot be empty")
            record = self.file_repository.get_metadata(path)
            if record is not None:
                contents = self._read_record(record)
            elif looks_like_remote_id(path):
                logger.debug(f"No record for {path}, reading it as a raw file_id")
                contents = self._fetch_segment(path, self._encryption_service.enabled)
            else:
                raise NotFound(f"No tracked file at '{path}'")

        except Exception as e:
            logger.error(f"Failed to read file {path}: {str(e)}", exc_info=True)
            self._log_action('read', level=logging.ERROR, path=path, error=str(e))
            raise FileReadError(path, e) from e

        logger.info(f"Completed read: {path} ({len(contents)} bytes)")
        self._log_action('read', path=path, size=len(contents))
        return contents

    def read_remote(self, remote_id: str, encrypted: bool = None) -> bytes:
        """
        Reads a single upload by its file_id, bypassing tracking.
        encrypted defaults to whether encryption is currently enabled.
        """
        if encrypted is None:
            encrypted = self._encryption_service.enabled
        try:
            contents = self._fetch_segment(remote_id, encrypted)
        except Exception as e:
            logger.error(f"Failed to read file_id {remote_id}: {str(e)}", exc_info=True)
            self._log_action('read', level=logging.ERROR, file_id=remote_id, error=str(e))
            raise FileReadError(remote_id, e) from e

        self._log_action('read', file_id=remote_id, size=len(contents))
        return contents

    def _read_record(self, record: FileRecord) -> bytes:
        if record.is_chunked:
            logger.debug(f"Found {record.chunk_count} chunks for file: {record.path}")
            segments = []
            for index, remote_id in enumerate(record.remote_ids):
                logger.debug(f"Processing chunk {index + 1}/{record.chunk_count} for file: {record.path}")
                segments.append(self._fetch_segment(remote_id, record.is_encrypted))
            contents = chunk_service.merge(segments)
        else:
            contents = self._fetch_segment(record.file_id, record.is_encrypted)

        if record.checksum and hashlib.sha256(contents).hexdigest() != record.checksum:
            raise ChecksumMismatch(
                f"Content of '{record.path}' does not match its recorded checksum"
            )
        return contents

    def _fetch_segment(self, remote_id, encrypted) -> bytes:
        payload = self._storage_service.download_chunk(remote_id)
        if encrypted:
            payload = self._encryption_service.decrypt_chunk(payload)
        return payload

    # ------------------------------------------------------------------
    # Derived operations and metadata
    # ------------------------------------------------------------------

    def copy(self, source: str, destination: str, caption: str = None) -> FileRecord:
        """
        Reads source and writes it again under destination. The copy gets its
        own uploads, it never shares the source's file_ids.
        """
        logger.info(f"Copying {source} to {destination}")
        if caption is None:
            try:
                source_record = self.get_metadata(source)
            except Exception as e:
                logger.error(f"Failed to look up {source} for copy: {str(e)}", exc_info=True)
                self._log_action('copy', level=logging.ERROR, source=source, error=str(e))
                raise FileReadError(source, e) from e
            caption = source_record.caption if source_record else None

        contents = self.read(source)
        record = self.write(destination, contents, caption=caption)
        self._log_action('copy', source=source, destination=destination)
        return record

    def move(self, source: str, destination: str, caption: str = None) -> FileRecord:
        """
        Copy, then forget the source. Its uploads stay in the chat.
        Moving a path onto itself leaves its record untouched.
        """
        if source == destination:
            try:
                record = self.get_metadata(source)
                if record is None:
                    raise NotFound(f"No tracked file at '{source}'")
            except Exception as e:
                logger.error(f"Failed to move file {source}: {str(e)}", exc_info=True)
                self._log_action('move', level=logging.ERROR, source=source, error=str(e))
                raise FileReadError(source, e) from e
            logger.info(f"Move of {source} onto itself, nothing to do")
            return record
        record = self.copy(source, destination, caption=caption)
        self.delete(source)
        self._log_action('move', source=source, destination=destination)
        return record

    def delete(self, path: str) -> bool:
        """
        Removes the tracking record only; Telegram keeps the uploaded documents.
        Returns False when nothing was tracked under path.
        """
        try:
            removed = self.file_repository.forget(path)
        except Exception as e:
            logger.error(f"Failed to delete file {path}: {str(e)}", exc_info=True)
            self._log_action('delete', level=logging.ERROR, path=path, error=str(e))
            raise FileDeleteError(path, e) from e

        if removed:
            logger.info(f"Forgot tracked file: {path}")
        else:
            logger.warning(f"Nothing tracked at {path}, nothing deleted")
        self._log_action('delete', path=path, removed=removed)
        return removed

    def exists(self, path: str) -> bool:
        return self.file_repository.exists(path)

    def get_metadata(self, path: str):
        return self.file_repository.get_metadata(path)

    def list_files(self, prefix: str = ""):
        return self.file_repository.list_files(prefix)

    def file_size(self, path: str):
        record = self.get_metadata(path)
        return record.original_size if record else None

    def mime_type(self, path: str):
        record = self.get_metadata(path)
        return record.mime_type if record else None

    def last_modified(self, path: str):
        record = self.get_metadata(path)
        return record.updated_at if record else None

    def _log_action(self, action, level=logging.INFO, **details):
        """Side channel enabled by the logging.enabled option."""
        if self._action_logger is not None:
            self._action_logger.log(level, f"Telestore: {action} {details}")


def build_file_service(config=None) -> FileService:
    """
    Builds a FileService and its tracking backend from settings.TELESTORE.
    """
    if config is None:
        config = get_storage_config()
    file_repository = get_file_repository(config.effective_tracking_driver, config.json_tracking_path)
    return FileService(file_repository, config=config)
