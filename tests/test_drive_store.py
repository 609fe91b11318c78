"""Tests for the Google Drive object store with a faked API client."""

import io
import threading
from types import SimpleNamespace

import httplib2
import pytest
from googleapiclient.errors import HttpError

from relay import drive_store
from relay.drive_store import DriveObjectStore
from relay.exceptions import RemoteError


class FakeRequest:
    def __init__(self, result=None, chunks=None, error=None):
        self.result = result
        self.chunks = list(chunks or [])
        self.error = error

    def execute(self):
        if self.error is not None:
            raise self.error
        return self.result

    def next_chunk(self):
        return self.chunks.pop(0)


class FakeFiles:
    def __init__(self, pages=None, create_request=None, delete_error=None):
        self.pages = list(pages or [])
        self.create_request = create_request
        self.delete_error = delete_error
        self.list_calls = []
        self.create_calls = []
        self.deleted = []

    def list(self, **kwargs):
        self.list_calls.append(kwargs)
        return FakeRequest(result=self.pages.pop(0))

    def create(self, **kwargs):
        self.create_calls.append(kwargs)
        return self.create_request

    def delete(self, fileId):
        self.deleted.append(fileId)
        return FakeRequest(result="", error=self.delete_error)


def http_error(status_code, message):
    resp = httplib2.Response({"status": status_code})
    content = ('{"error": {"message": "%s"}}' % message).encode()
    return HttpError(resp, content)


@pytest.fixture
def drive(monkeypatch):
    """
    Patch the Drive client builder.

    Returns:
        Function installing a FakeFiles and returning a ready store
    """
    def install(files, folder_id="FOLDER"):
        service = SimpleNamespace(files=lambda: files)
        monkeypatch.setattr(drive_store, "build", lambda *args, **kwargs: service)
        store = DriveObjectStore(folder_id=folder_id)
        store._credentials = object()
        return store
    return install


class TestDriveList:
    """Test DriveObjectStore.list."""

    @pytest.mark.asyncio
    async def test_follows_pagination(self, drive):
        files = FakeFiles(pages=[
            {
                "files": [{
                    "id": "R1", "name": "a.txt", "size": "10", "mimeType": "text/plain",
                    "createdTime": "2024-01-01T00:00:00.000Z", "webViewLink": "https://d/R1",
                }],
                "nextPageToken": "page-2",
            },
            {"files": [{"id": "F1", "name": "sub", "mimeType": "application/vnd.google-apps.folder"}]},
        ])
        store = drive(files)

        entries = await store.list()

        assert [e.id for e in entries] == ["R1", "F1"]
        assert entries[0].size == 10
        assert entries[0].created_at == "2024-01-01T00:00:00.000Z"
        assert entries[1].size == 0
        assert files.list_calls[0]["q"] == "'FOLDER' in parents and trashed = false"
        assert files.list_calls[0]["pageToken"] is None
        assert files.list_calls[1]["pageToken"] == "page-2"

    @pytest.mark.asyncio
    async def test_whole_drive_query_without_folder(self, drive):
        files = FakeFiles(pages=[{"files": []}])
        store = drive(files, folder_id=None)

        assert await store.list() == []
        assert files.list_calls[0]["q"] == "trashed = false"

    @pytest.mark.asyncio
    async def test_http_error_becomes_remote_error(self, drive, monkeypatch):
        files = FakeFiles()
        store = drive(files)

        def failing_list(**kwargs):
            return FakeRequest(error=http_error(401, "Invalid Credentials"))

        monkeypatch.setattr(files, "list", failing_list)

        with pytest.raises(RemoteError, match="list"):
            await store.list()


class TestDriveCreate:
    """Test DriveObjectStore.create."""

    @pytest.mark.asyncio
    async def test_reports_progress_per_chunk(self, drive):
        request = FakeRequest(chunks=[
            (SimpleNamespace(resumable_progress=262144, total_size=600000), None),
            (SimpleNamespace(resumable_progress=524288, total_size=600000), None),
            (None, {"id": "NEW", "webViewLink": "https://d/NEW"}),
        ])
        files = FakeFiles(create_request=request)
        store = drive(files)
        progress = []

        async def on_progress(sent, total):
            progress.append((sent, total))

        stored = await store.create(
            name="big.bin",
            parent_folder_id="FOLDER",
            content=io.BytesIO(b"\0" * 600000),
            total_size=600000,
            mime_type="application/octet-stream",
            on_progress=on_progress,
        )

        assert stored.id == "NEW"
        assert stored.link == "https://d/NEW"
        assert progress == [(262144, 600000), (524288, 600000)]
        assert files.create_calls[0]["body"] == {"name": "big.bin", "parents": ["FOLDER"]}

    @pytest.mark.asyncio
    async def test_one_client_drives_chunks_in_turn(self, drive, monkeypatch):
        class TrackingRequest(FakeRequest):
            def __init__(self, chunks):
                super().__init__(chunks=chunks)
                self.lock = threading.Lock()

            def next_chunk(self):
                assert self.lock.acquire(blocking=False), "chunks overlapped"
                try:
                    return super().next_chunk()
                finally:
                    self.lock.release()

        request = TrackingRequest(chunks=[
            (SimpleNamespace(resumable_progress=1, total_size=3), None),
            (SimpleNamespace(resumable_progress=2, total_size=3), None),
            (None, {"id": "NEW", "webViewLink": "https://d/NEW"}),
        ])
        store = drive(FakeFiles(create_request=request, pages=[{"files": []}]))
        builds = []
        patched_build = drive_store.build

        def counting_build(*args, **kwargs):
            builds.append(threading.get_ident())
            return patched_build(*args, **kwargs)

        monkeypatch.setattr(drive_store, "build", counting_build)

        async def on_progress(sent, total):
            pass

        await store.create(
            name="small.bin",
            parent_folder_id="FOLDER",
            content=io.BytesIO(b"abc"),
            total_size=3,
            mime_type="application/octet-stream",
            on_progress=on_progress,
        )
        assert len(builds) == 1

        await store.list()
        assert len(builds) == 2

    @pytest.mark.asyncio
    async def test_progress_callback_errors_propagate(self, drive):
        request = FakeRequest(chunks=[(SimpleNamespace(resumable_progress=1, total_size=2), None)])
        store = drive(FakeFiles(create_request=request))

        async def on_progress(sent, total):
            raise RuntimeError("stop")

        with pytest.raises(RuntimeError):
            await store.create("a", None, io.BytesIO(b"ab"), 2, "text/plain", on_progress)

    @pytest.mark.asyncio
    async def test_upload_error_becomes_remote_error(self, drive):
        class FailingRequest:
            def next_chunk(self):
                raise http_error(403, "storageQuotaExceeded")

        store = drive(FakeFiles(create_request=FailingRequest()))

        async def on_progress(sent, total):
            pass

        with pytest.raises(RemoteError, match="upload"):
            await store.create("a", "FOLDER", io.BytesIO(b"ab"), 2, "text/plain", on_progress)


class TestDriveDelete:
    """Test DriveObjectStore.delete."""

    @pytest.mark.asyncio
    async def test_delete(self, drive):
        files = FakeFiles()
        store = drive(files)

        await store.delete("R1")

        assert files.deleted == ["R1"]

    @pytest.mark.asyncio
    async def test_delete_not_found(self, drive):
        store = drive(FakeFiles(delete_error=http_error(404, "File not found")))

        with pytest.raises(RemoteError, match="delete"):
            await store.delete("R1")


class TestChunkSize:
    """Test chunk size alignment."""

    def test_rounded_down_to_alignment(self):
        assert DriveObjectStore(chunk_size=300 * 1024).chunk_size == 256 * 1024

    def test_minimum_is_one_alignment_unit(self):
        assert DriveObjectStore(chunk_size=1).chunk_size == 256 * 1024
