"""
Shared pytest fixtures for the telestore project.
"""
import pytest
from unittest.mock import Mock
from apps.files.conf import build_storage_config
from apps.files.exceptions import StorageUploadError, StorageDownloadError
from apps.files.repository import InMemoryFileRepository
from apps.files.services.file_service import FileService
from apps.files.services.storage_service import StorageService
from apps.storage_providers.providers import BaseStorageProvider


class FakeTelegramProvider(BaseStorageProvider):
    """
    Keeps uploaded documents in a dict instead of a Telegram chat.
    fail_on_upload is the 1-based number of the upload call that should fail.
    """

    def __init__(self, fail_on_upload=None, fail_on_download=None):
        super().__init__({})
        self.documents = {}
        self.uploads = []
        self.downloads = []
        self.fail_on_upload = fail_on_upload
        self.fail_on_download = set(fail_on_download or [])

    def upload_chunk(self, chunk, display_name, caption=None):
        call_number = len(self.uploads) + 1
        self.uploads.append({'display_name': display_name, 'caption': caption, 'size': len(chunk)})
        if call_number == self.fail_on_upload:
            raise StorageUploadError(f"Telegram API error (status 500): upload {call_number} failed")

        file_id = f"BQACAgQAAxkDAAIB{call_number:08d}remote"
        self.documents[file_id] = chunk
        return {
            'file_id': file_id,
            'file_unique_id': f"AgAD{call_number:04d}",
            'file_name': display_name,
            'mime_type': 'application/octet-stream',
            'file_size': len(chunk),
        }

    def download_chunk(self, remote_id):
        self.downloads.append(remote_id)
        if remote_id in self.fail_on_download:
            raise StorageDownloadError(f"Network error downloading chunk: {remote_id}")
        if remote_id not in self.documents:
            raise StorageDownloadError("Telegram API error (status 400): Bad Request: invalid file_id")
        return self.documents[remote_id]


@pytest.fixture
def mock_telegram_config():
    """Returns a mock Telegram provider configuration."""
    return {
        'bot_token': '123456789:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw',
        'chat_id': '-1001234567890',
    }


@pytest.fixture
def sample_encryption_key():
    """Returns a sample encryption key for testing."""
    return b'0' * 32  # 32 bytes for AES-256


@pytest.fixture
def sample_file_data():
    """Returns sample binary file data for testing."""
    return b'This is test file content for encryption and upload testing.' * 100


@pytest.fixture
def storage_config(mock_telegram_config):
    """Storage config with tiny chunks so small payloads get split."""
    return build_storage_config({
        **mock_telegram_config,
        'validate_provider': False,
        'chunking': {'enabled': True, 'size': 10},
    }, secret_key='test-secret-key')


@pytest.fixture
def encrypted_storage_config(mock_telegram_config, sample_encryption_key):
    return build_storage_config({
        **mock_telegram_config,
        'validate_provider': False,
        'chunking': {'enabled': True, 'size': 10},
        'encryption': {'enabled': True, 'key': sample_encryption_key},
    }, secret_key='test-secret-key')


@pytest.fixture
def fake_provider():
    return FakeTelegramProvider()


@pytest.fixture
def fake_storage_service(fake_provider):
    return StorageService(provider=fake_provider)


@pytest.fixture
def file_repository():
    return InMemoryFileRepository()


@pytest.fixture
def file_service(file_repository, fake_storage_service, storage_config):
    """FileService over the in-memory tracker and the fake provider, no encryption."""
    return FileService(file_repository, storage_service=fake_storage_service, config=storage_config)


@pytest.fixture
def encrypted_file_service(file_repository, fake_storage_service, encrypted_storage_config):
    return FileService(file_repository, storage_service=fake_storage_service, config=encrypted_storage_config)


@pytest.fixture
def mock_httpx_response():
    """Creates a mock httpx response for testing HTTP calls."""
    mock_response = Mock()
    mock_response.status_code = 200
    mock_response.json.return_value = {'ok': True, 'result': {}}
    mock_response.text = 'Success'
    return mock_response


@pytest.fixture
def mock_telegram_validator():
    """Returns a mock Telegram validator that always validates successfully."""
    mock = Mock()
    mock.validate = Mock(return_value=True)
    return mock
