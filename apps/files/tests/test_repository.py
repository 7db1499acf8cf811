"""
Tests for the tracking backends and FileRecord.

Backend-agnostic behaviour is checked once per backend through the
parametrized `tracker` fixture.
"""
import json
import pytest
from apps.files.exceptions import TrackingError
from apps.files.models import TrackedFile
from apps.files.records import FileRecord
from apps.files.repository import (
    FileRepositoryDjango,
    InMemoryFileRepository,
    JsonFileRepository,
    NullFileRepository,
    TrackingDriver,
    get_file_repository,
)


@pytest.fixture(params=['array', 'json', 'database'])
def tracker(request, tmp_path):
    if request.param == 'array':
        return InMemoryFileRepository()
    if request.param == 'json':
        return JsonFileRepository(tmp_path / 'tracking' / 'files.json')
    request.getfixturevalue('db')
    return FileRepositoryDjango()


class TestTrackerContract:

    def test_track_and_get_metadata(self, tracker):
        tracker.track('docs/report.pdf', ['file_a'], {
            'size': 1234, 'mime_type': 'application/pdf', 'file_name': 'report.pdf',
            'caption': 'Q3', 'is_encrypted': True, 'checksum': 'abc123',
        })

        record = tracker.get_metadata('docs/report.pdf')

        assert record.path == 'docs/report.pdf'
        assert record.remote_ids == ['file_a']
        assert record.is_chunked is False
        assert record.is_encrypted is True
        assert record.original_size == 1234
        assert record.mime_type == 'application/pdf'
        assert record.caption == 'Q3'
        assert record.checksum == 'abc123'
        assert record.created_at is not None
        assert record.updated_at is not None

    def test_multiple_remote_ids_keep_their_order(self, tracker):
        tracker.track('big.bin', ['id_3', 'id_1', 'id_2'])

        record = tracker.get_metadata('big.bin')

        assert record.remote_ids == ['id_3', 'id_1', 'id_2']
        assert record.is_chunked is True

    def test_exists(self, tracker):
        assert tracker.exists('a.txt') is False
        tracker.track('a.txt', ['file_a'])
        assert tracker.exists('a.txt') is True

    def test_get_metadata_missing_returns_none(self, tracker):
        assert tracker.get_metadata('missing.txt') is None

    def test_overwrite_leaves_one_record_with_second_write(self, tracker):
        tracker.track('a.txt', ['first_1', 'first_2'], {'caption': 'first'})
        tracker.track('a.txt', ['second'])

        records = tracker.list_files('a.txt')

        assert len(records) == 1
        assert records[0].remote_ids == ['second']
        assert records[0].is_chunked is False
        # Full replacement, fields of the first write are not merged in
        assert records[0].caption is None

    def test_overwrite_preserves_created_at(self, tracker):
        first = tracker.track('a.txt', ['first'])
        tracker.track('a.txt', ['second'])

        second = tracker.get_metadata('a.txt')

        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at

    def test_forget(self, tracker):
        tracker.track('a.txt', ['file_a'])

        assert tracker.forget('a.txt') is True
        assert tracker.exists('a.txt') is False
        assert tracker.forget('a.txt') is False

    def test_list_with_prefix(self, tracker):
        tracker.track('photos/1.jpg', ['p1'])
        tracker.track('photos/2.jpg', ['p2'])
        tracker.track('docs/1.pdf', ['d1'])

        assert sorted(r.path for r in tracker.list_files('photos/')) == ['photos/1.jpg', 'photos/2.jpg']
        assert sorted(r.path for r in tracker.list_files()) == ['docs/1.pdf', 'photos/1.jpg', 'photos/2.jpg']
        assert tracker.list_files('videos/') == []

    def test_clear(self, tracker):
        tracker.track('a.txt', ['file_a'])
        tracker.track('b.txt', ['file_b'])

        tracker.clear()

        assert tracker.list_files() == []

    def test_track_without_remote_ids_raises(self, tracker):
        with pytest.raises(ValueError, match="at least one remote id"):
            tracker.track('a.txt', [])
        assert tracker.exists('a.txt') is False


class TestJsonFileRepository:

    def test_creates_file_on_init(self, tmp_path):
        path = tmp_path / 'nested' / 'files.json'

        JsonFileRepository(path)

        assert json.loads(path.read_text()) == {}

    def test_document_maps_path_to_record_and_is_pretty_printed(self, tmp_path):
        path = tmp_path / 'files.json'
        repo = JsonFileRepository(path)

        repo.track('a.txt', ['file_a', 'file_b'], {'size': 20})

        contents = path.read_text()
        data = json.loads(contents)
        assert list(data) == ['a.txt']
        assert data['a.txt']['remote_ids'] == ['file_a', 'file_b']
        assert data['a.txt']['is_chunked'] is True
        assert '\n    ' in contents

    def test_records_survive_a_new_instance(self, tmp_path):
        path = tmp_path / 'files.json'
        JsonFileRepository(path).track('a.txt', ['file_a'], {'size': 3})

        record = JsonFileRepository(path).get_metadata('a.txt')

        assert record.remote_ids == ['file_a']
        assert record.original_size == 3
        assert record.created_at.tzinfo is not None

    def test_corrupt_file_raises_tracking_error(self, tmp_path):
        path = tmp_path / 'files.json'
        path.write_text('{not json')
        repo = JsonFileRepository(path)

        with pytest.raises(TrackingError, match="decode"):
            repo.get_metadata('a.txt')

    def test_non_object_document_raises_tracking_error(self, tmp_path):
        path = tmp_path / 'files.json'
        path.write_text('[]')

        with pytest.raises(TrackingError):
            JsonFileRepository(path).list_files()

    @pytest.mark.parametrize('entry', [{'path': 'a.txt'}, {'path': 'a.txt', 'remote_ids': []}, 'not a record'])
    def test_malformed_record_raises_tracking_error(self, tmp_path, entry):
        path = tmp_path / 'files.json'
        path.write_text(json.dumps({'a.txt': entry}))
        repo = JsonFileRepository(path)

        with pytest.raises(TrackingError, match="Malformed record for 'a.txt'"):
            repo.get_metadata('a.txt')
        with pytest.raises(TrackingError):
            repo.list_files()

    def test_no_temporary_files_left_behind(self, tmp_path):
        repo = JsonFileRepository(tmp_path / 'files.json')
        repo.track('a.txt', ['file_a'])
        repo.forget('a.txt')

        assert [p.name for p in tmp_path.iterdir()] == ['files.json']


@pytest.mark.django_db
class TestFileRepositoryDjango:

    def test_row_layout(self):
        FileRepositoryDjango().track('big.bin', ['id_1', 'id_2'], {
            'size': 25, 'is_encrypted': True, 'file_name': 'big.bin', 'checksum': 'c0ffee',
        })

        row = TrackedFile.objects.get(path='big.bin')

        assert row.file_id == 'id_1'
        assert row.size == 25
        assert row.is_chunked is True
        assert row.is_encrypted is True
        assert row.metadata == {
            'chunk_count': 2,
            'chunk_file_ids': ['id_1', 'id_2'],
            'original_path': 'big.bin',
            'encrypted': True,
            'checksum': 'c0ffee',
        }

    def test_overwrite_updates_the_same_row(self):
        repo = FileRepositoryDjango()
        repo.track('a.txt', ['first'])
        pk = TrackedFile.objects.get(path='a.txt').pk

        repo.track('a.txt', ['second'])

        assert TrackedFile.objects.count() == 1
        assert TrackedFile.objects.get(path='a.txt').pk == pk

    def test_reads_rows_created_elsewhere(self):
        from apps.files.tests.factories import ChunkedTrackedFileFactory
        row = ChunkedTrackedFileFactory(path='video.mp4', chunks=4)

        record = FileRepositoryDjango().get_metadata('video.mp4')

        assert record.remote_ids == row.metadata['chunk_file_ids']
        assert record.chunk_count == 4

    def test_database_errors_become_tracking_errors(self, monkeypatch):
        from django.db import DatabaseError
        repo = FileRepositoryDjango()

        def broken(*args, **kwargs):
            raise DatabaseError("database is locked")

        monkeypatch.setattr(TrackedFile.objects, 'update_or_create', broken)

        with pytest.raises(TrackingError, match="database is locked"):
            repo.track('a.txt', ['file_a'])


@pytest.mark.unit
class TestNullFileRepository:

    def test_nothing_is_stored(self):
        repo = NullFileRepository()

        record = repo.track('a.txt', ['file_a'])

        assert record.remote_ids == ['file_a']
        assert repo.exists('a.txt') is False
        assert repo.get_metadata('a.txt') is None
        assert repo.list_files() == []
        assert repo.forget('a.txt') is False


@pytest.mark.unit
class TestGetFileRepository:

    def test_array(self):
        assert isinstance(get_file_repository('array'), InMemoryFileRepository)

    def test_none(self):
        assert isinstance(get_file_repository(TrackingDriver.NONE), NullFileRepository)

    def test_database(self):
        assert isinstance(get_file_repository('database'), FileRepositoryDjango)

    def test_json(self, tmp_path):
        repo = get_file_repository('json', json_path=tmp_path / 'files.json')
        assert isinstance(repo, JsonFileRepository)

    def test_json_requires_a_path(self):
        with pytest.raises(ValueError, match="json_path"):
            get_file_repository('json')

    def test_unknown_driver(self):
        with pytest.raises(ValueError, match="Unsupported tracking driver"):
            get_file_repository('redis')


@pytest.mark.unit
class TestFileRecord:

    def test_empty_remote_ids_rejected(self):
        with pytest.raises(ValueError):
            FileRecord(path='a.txt', remote_ids=[])

    def test_is_chunked_follows_remote_ids(self):
        assert FileRecord(path='a', remote_ids=['1', '2']).is_chunked is True
        assert FileRecord(path='a', remote_ids=['1']).is_chunked is False
        assert FileRecord(path='a', remote_ids=['1'], is_chunked=True).is_chunked is True

    def test_dict_roundtrip_keeps_timestamps(self):
        from django.utils import timezone
        now = timezone.now()
        record = FileRecord(path='a', remote_ids=['1', '2'], original_size=5,
                            created_at=now, updated_at=now)

        restored = FileRecord.from_dict(record.to_dict())

        assert restored == record
        assert isinstance(record.to_dict()['created_at'], str)

    def test_from_dict_ignores_unknown_keys(self):
        record = FileRecord.from_dict({'path': 'a', 'remote_ids': ['1'], 'timestamp': 123})
        assert record.file_id == '1'
