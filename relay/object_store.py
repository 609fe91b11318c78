"""
Abstract interface for the remote object store.

The relay only needs three capabilities from the store: list the objects in
the destination folder, create one object from a local stream while
reporting progress, and delete one object by id. Implementations translate
every transport or authentication failure into RemoteError.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, BinaryIO, Callable, List, Optional

ProgressCallback = Callable[[int, int], Awaitable[None]]


@dataclass(frozen=True)
class StoreEntry:
    """Raw object metadata as reported by the store."""
    id: str
    name: str
    size: int
    created_at: str
    mime_type: str
    link: str


@dataclass(frozen=True)
class StoredObject:
    """Identity of a freshly created object."""
    id: str
    link: str


class ObjectStore(ABC):
    """
    Remote storage backend used for listing, uploading and evicting files.
    """

    @abstractmethod
    async def list(self) -> List[StoreEntry]:
        """
        List every object in the destination folder, folders included.

        Returns:
            Store entries with id, name, size, RFC 3339 creation time,
            MIME type and viewing link

        Raises:
            RemoteError: If the store cannot be queried
        """

    @abstractmethod
    async def create(
        self,
        name: str,
        parent_folder_id: Optional[str],
        content: BinaryIO,
        total_size: int,
        mime_type: str,
        on_progress: ProgressCallback,
    ) -> StoredObject:
        """
        Stream content into a new object.

        Args:
            name: Object name in the store
            parent_folder_id: Destination folder, or None for the store root
            content: Readable binary stream positioned at offset 0
            total_size: Number of bytes that will be read from content
            mime_type: Content type recorded on the object
            on_progress: Awaited with (bytes_sent, total_bytes) at every chunk
                boundary; an exception raised by it aborts the upload

        Returns:
            Id and link of the created object

        Raises:
            RemoteError: If the store rejects or fails the upload
        """

    @abstractmethod
    async def delete(self, object_id: str) -> None:
        """
        Delete one object.

        Raises:
            RemoteError: If the object cannot be deleted
        """

    async def close(self) -> None:
        """Release any resources held by the store."""
        return None
