import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import TrackingError
from .records import FileRecord

logger = logging.getLogger(__name__)


class TrackingDriver(str, Enum):
    ARRAY = "array"
    DATABASE = "database"
    JSON = "json"
    NONE = "none"


class BaseFileRepository(ABC):
    """
    Abstract base class for file tracking backends.
    Defines the contract the FileService relies on to persist FileRecords.
    """

    @abstractmethod
    def track(self, path, remote_ids, metadata=None) -> FileRecord:
        """
        Stores the record for path, replacing any previous one in full.
        Returns the stored FileRecord.
        """
        pass

    @abstractmethod
    def exists(self, path) -> bool:
        """
        Returns True if a record is tracked for path.
        """
        pass

    @abstractmethod
    def get_metadata(self, path):
        """
        Returns the FileRecord for path, or None.
        """
        pass

    @abstractmethod
    def forget(self, path) -> bool:
        """
        Removes the record for path. Returns True if something was removed.
        """
        pass

    @abstractmethod
    def list_files(self, prefix=""):
        """
        Returns every FileRecord whose path starts with prefix.
        Order is not guaranteed.
        """
        pass

    @abstractmethod
    def clear(self):
        """
        Removes every tracked record.
        """
        pass

    def _build_record(self, path, remote_ids, metadata=None, created_at=None) -> FileRecord:
        metadata = metadata or {}
        now = timezone.now()
        return FileRecord(
            path=path,
            remote_ids=list(remote_ids),
            is_chunked=metadata.get('is_chunked', False),
            is_encrypted=metadata.get('is_encrypted', False),
            original_size=metadata.get('size', 0),
            mime_type=metadata.get('mime_type'),
            file_name=metadata.get('file_name'),
            caption=metadata.get('caption'),
            checksum=metadata.get('checksum'),
            created_at=created_at or now,
            updated_at=now,
        )


class InMemoryFileRepository(BaseFileRepository):
    """
    Keeps records in a dict keyed by path for the lifetime of the instance.
    """

    def __init__(self):
        self._files = {}

    def track(self, path, remote_ids, metadata=None) -> FileRecord:
        previous = self._files.get(path)
        record = self._build_record(path, remote_ids, metadata,
                                    created_at=previous.created_at if previous else None)
        self._files[path] = record
        logger.debug(f"Tracked {path} in memory ({record.chunk_count} remote id(s))")
        return record

    def exists(self, path) -> bool:
        return path in self._files

    def get_metadata(self, path):
        return self._files.get(path)

    def forget(self, path) -> bool:
        return self._files.pop(path, None) is not None

    def list_files(self, prefix=""):
        return [record for record in self._files.values() if record.path.startswith(prefix)]

    def clear(self):
        self._files.clear()


class JsonFileRepository(BaseFileRepository):
    """
    Stores all records in one pretty-printed JSON document mapping path -> record.
    Every mutation loads the whole file, modifies it and rewrites it atomically.
    """

    def __init__(self, file_path):
        self.file_path = Path(file_path)
        self._ensure_file_exists()

    def track(self, path, remote_ids, metadata=None) -> FileRecord:
        files = self._load_files()
        previous = files.get(path)
        created_at = self._to_record(path, previous).created_at if previous else None
        record = self._build_record(path, remote_ids, metadata, created_at=created_at)
        files[path] = record.to_dict()
        self._save_files(files)
        logger.debug(f"Tracked {path} in {self.file_path}")
        return record

    def exists(self, path) -> bool:
        return path in self._load_files()

    def get_metadata(self, path):
        data = self._load_files().get(path)
        return self._to_record(path, data) if data else None

    def forget(self, path) -> bool:
        files = self._load_files()
        if path not in files:
            return False
        del files[path]
        self._save_files(files)
        return True

    def list_files(self, prefix=""):
        return [
            self._to_record(path, data)
            for path, data in self._load_files().items()
            if path.startswith(prefix)
        ]

    def clear(self):
        self._save_files({})

    def _load_files(self) -> dict:
        try:
            contents = self.file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise TrackingError(f"Failed to read tracking file {self.file_path}: {str(e)}") from e

        if not contents.strip():
            return {}
        try:
            data = json.loads(contents)
        except json.JSONDecodeError as e:
            raise TrackingError(f"Failed to decode JSON tracking file {self.file_path}: {str(e)}") from e
        if not isinstance(data, dict):
            raise TrackingError(f"JSON tracking file {self.file_path} must contain an object")
        return data

    def _to_record(self, path, data) -> FileRecord:
        try:
            return FileRecord.from_dict(data)
        except (TypeError, ValueError) as e:
            raise TrackingError(f"Malformed record for '{path}' in {self.file_path}: {str(e)}") from e

    def _save_files(self, files: dict):
        encoded = json.dumps(files, indent=4, ensure_ascii=False)
        directory = self.file_path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{self.file_path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(encoded)
                os.replace(tmp_path, self.file_path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise TrackingError(f"Failed to write to tracking file {self.file_path}: {str(e)}") from e

    def _ensure_file_exists(self):
        if not self.file_path.exists():
            self._save_files({})


class FileRepositoryDjango(BaseFileRepository):
    """
    Django ORM implementation of the BaseFileRepository.
    Encapsulates all database interactions related to tracked files.
    """

    def __init__(self):
        from .models import TrackedFile
        self.model = TrackedFile

    def track(self, path, remote_ids, metadata=None) -> FileRecord:
        record = self._build_record(path, remote_ids, metadata)
        try:
            with transaction.atomic():
                instance, created = self.model.objects.update_or_create(
                    path=path,
                    defaults={
                        'file_id': record.file_id,
                        'file_name': record.file_name,
                        'mime_type': record.mime_type,
                        'size': record.original_size,
                        'caption': record.caption,
                        'metadata': {
                            'chunk_count': record.chunk_count,
                            'chunk_file_ids': record.remote_ids,
                            'original_path': path,
                            'encrypted': record.is_encrypted,
                            'checksum': record.checksum,
                        },
                        'is_chunked': record.is_chunked,
                        'is_encrypted': record.is_encrypted,
                    }
                )
        except DatabaseError as e:
            logger.error(f"Failed to track {path} in database: {str(e)}", exc_info=True)
            raise TrackingError(f"Failed to track '{path}': {str(e)}") from e

        logger.debug(f"{'Created' if created else 'Updated'} tracked file row {instance.pk} for {path}")
        return self._to_record(instance)

    def exists(self, path) -> bool:
        try:
            return self.model.objects.filter(path=path).exists()
        except DatabaseError as e:
            raise TrackingError(f"Failed to check '{path}': {str(e)}") from e

    def get_metadata(self, path):
        try:
            instance = self.model.objects.filter(path=path).first()
        except DatabaseError as e:
            raise TrackingError(f"Failed to fetch '{path}': {str(e)}") from e
        return self._to_record(instance) if instance else None

    def forget(self, path) -> bool:
        try:
            deleted, _ = self.model.objects.filter(path=path).delete()
        except DatabaseError as e:
            raise TrackingError(f"Failed to forget '{path}': {str(e)}") from e
        return deleted > 0

    def list_files(self, prefix=""):
        try:
            queryset = self.model.objects.all()
            if prefix:
                queryset = queryset.filter(path__startswith=prefix)
            return [self._to_record(instance) for instance in queryset]
        except DatabaseError as e:
            raise TrackingError(f"Failed to list tracked files: {str(e)}") from e

    def clear(self):
        try:
            self.model.objects.all().delete()
        except DatabaseError as e:
            raise TrackingError(f"Failed to clear tracked files: {str(e)}") from e

    def _to_record(self, instance) -> FileRecord:
        metadata = instance.metadata or {}
        return FileRecord(
            path=instance.path,
            remote_ids=instance.chunk_file_ids,
            is_chunked=instance.is_chunked,
            is_encrypted=instance.is_encrypted,
            original_size=instance.size or 0,
            mime_type=instance.mime_type,
            file_name=instance.file_name,
            caption=instance.caption,
            checksum=metadata.get('checksum'),
            created_at=instance.created_at,
            updated_at=instance.updated_at,
        )


class NullFileRepository(BaseFileRepository):
    """
    Used when tracking is disabled. Nothing is stored.
    """

    def track(self, path, remote_ids, metadata=None) -> FileRecord:
        return self._build_record(path, remote_ids, metadata)

    def exists(self, path) -> bool:
        return False

    def get_metadata(self, path):
        return None

    def forget(self, path) -> bool:
        return False

    def list_files(self, prefix=""):
        return []

    def clear(self):
        pass


def get_file_repository(driver, json_path=None) -> BaseFileRepository:
    """
    Builds the tracking backend for the given driver. Called once at construction.
    """
    try:
        driver = TrackingDriver(driver)
    except ValueError:
        raise ValueError(f"Unsupported tracking driver: {driver}. "
                         f"Must be one of {[d.value for d in TrackingDriver]}") from None

    logger.debug(f"Using tracking driver: {driver.value}")
    if driver is TrackingDriver.ARRAY:
        return InMemoryFileRepository()
    if driver is TrackingDriver.JSON:
        if not json_path:
            raise ValueError("json_path is required for the json tracking driver")
        return JsonFileRepository(json_path)
    if driver is TrackingDriver.DATABASE:
        return FileRepositoryDjango()
    return NullFileRepository()
