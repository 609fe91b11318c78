"""Shared data type definitions (FileDescriptor, RemoteObject, UploadTask)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from relay.cancellation import CancelToken


@dataclass
class FileDescriptor:
    """
    One row of a file listing.

    Built by a local scan and rewritten during reconciliation with upload
    and remote state. Remote-only rows carry the remote link as their path.
    """
    path: str
    name: str
    size: int
    upload_id: Optional[str] = None
    progress: float = 0.0
    link: Optional[str] = None


@dataclass(frozen=True)
class RemoteObject:
    """
    Snapshot of a previously uploaded object in the remote folder.
    """
    id: str
    name: str
    size: int
    created_at: Optional[datetime]
    link: str


@dataclass
class UploadTask:
    """
    An upload in flight, keyed by local path while active.
    """
    path: str
    name: str
    total_size: int
    current_progress: float = 0.0
    cancel: Optional["CancelToken"] = field(default=None, compare=False, repr=False)
