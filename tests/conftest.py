"""Shared pytest fixtures for all tests."""

import asyncio
from typing import BinaryIO, Dict, List, Optional

import pytest

from relay.event_broadcaster import EventBroadcaster
from relay.exceptions import RemoteError
from relay.object_store import ObjectStore, ProgressCallback, StoredObject, StoreEntry
from relay.upload_registry import UploadRegistry


class FakeObjectStore(ObjectStore):
    """
    In-memory object store.

    Uploads are read in chunk_size pieces with a progress callback after
    each piece. Setting chunk_gate pauses the upload before every chunk
    after the first until the event is set; setting list_gate pauses list().
    """

    def __init__(self, entries: Optional[List[StoreEntry]] = None, chunk_size: int = 4):
        self.entries: Dict[str, StoreEntry] = {entry.id: entry for entry in entries or []}
        self.chunk_size = chunk_size
        self.deleted: List[str] = []
        self.uploads: List[dict] = []
        self.list_calls = 0

        self.list_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.failing_delete_ids = set()

        self.list_gate: Optional[asyncio.Event] = None
        self.chunk_gate: Optional[asyncio.Event] = None
        self._counter = 0

    async def list(self) -> List[StoreEntry]:
        self.list_calls += 1
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.list_error is not None:
            raise self.list_error
        return list(self.entries.values())

    async def create(
        self,
        name: str,
        parent_folder_id: Optional[str],
        content: BinaryIO,
        total_size: int,
        mime_type: str,
        on_progress: ProgressCallback,
    ) -> StoredObject:
        if self.create_error is not None:
            raise self.create_error

        data = b""
        while True:
            if data and self.chunk_gate is not None:
                await self.chunk_gate.wait()
            chunk = content.read(self.chunk_size)
            if not chunk:
                break
            data += chunk
            await on_progress(len(data), total_size)
            await asyncio.sleep(0)

        self._counter += 1
        object_id = f"obj-{self._counter}"
        link = f"https://drive.example/file/{object_id}"
        self.entries[object_id] = StoreEntry(
            id=object_id,
            name=name,
            size=len(data),
            created_at="2030-01-01T00:00:00Z",
            mime_type=mime_type,
            link=link,
        )
        self.uploads.append({
            "name": name,
            "folder": parent_folder_id,
            "data": data,
            "mime_type": mime_type,
        })
        return StoredObject(id=object_id, link=link)

    async def delete(self, object_id: str) -> None:
        if object_id in self.failing_delete_ids:
            raise RemoteError(f"delete of {object_id} refused")
        if object_id not in self.entries:
            raise RemoteError(f"{object_id} not found")
        del self.entries[object_id]
        self.deleted.append(object_id)


def make_entry(
    object_id: str,
    name: str,
    size: int,
    created_at: str = "2024-01-01T00:00:00Z",
    mime_type: str = "text/plain",
) -> StoreEntry:
    return StoreEntry(
        id=object_id,
        name=name,
        size=size,
        created_at=created_at,
        mime_type=mime_type,
        link=f"https://drive.example/file/{object_id}",
    )


@pytest.fixture
def fake_store():
    return FakeObjectStore()


@pytest.fixture
def registry():
    return UploadRegistry()


@pytest.fixture
def broadcaster():
    return EventBroadcaster()


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a 10-byte sample file for upload tests.

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'sample.txt'
    file_path.write_bytes(b'0123456789')
    return file_path


@pytest.fixture
def scan_roots(tmp_path):
    """
    Create two roots: a/ holding x.txt (10 B), b/ holding .hidden (5 B) and y.txt (20 B).

    Returns:
        List of the two root directory paths as strings
    """
    root_a = tmp_path / 'a'
    root_b = tmp_path / 'b'
    root_a.mkdir()
    root_b.mkdir()
    (root_a / 'x.txt').write_bytes(b'x' * 10)
    (root_b / '.hidden').write_bytes(b'h' * 5)
    (root_b / 'y.txt').write_bytes(b'y' * 20)
    return [str(root_a), str(root_b)]


@pytest.fixture
def entry_factory():
    """Factory for store entries: entry_factory(id, name, size, created_at=..., mime_type=...)."""
    return make_entry


@pytest.fixture
def store_factory():
    """Factory for fake stores: store_factory(entries, chunk_size=4)."""
    return FakeObjectStore
