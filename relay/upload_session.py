"""Owns a single upload from opening the local file to reporting completion."""

import asyncio
import logging
import os
import uuid
from dataclasses import replace
from typing import BinaryIO, Optional

from common.types import UploadTask
from relay.cancellation import CancelToken
from relay.event_broadcaster import CompletionEvent, ErrorEvent, EventBroadcaster, ProgressEvent
from relay.exceptions import (
    RelayException,
    UploadCancelledError,
    UploadInProgressError,
    local_io_error,
)
from relay.file_catalog import canonical_path
from relay.mime_sniffer import sniff_stream
from relay.object_store import ObjectStore, StoredObject
from relay.quota_evictor import QuotaEvictor
from relay.upload_registry import UploadRegistry

logger = logging.getLogger(__name__)


class UploadSession:
    """
    One upload of one local path.

    start() opens and sniffs the file and claims the path in the registry;
    the transfer itself runs as a background task that evicts old remote
    objects, streams the file and publishes progress. Whatever the outcome,
    the file is closed, the registry slot released and exactly one
    completion or error event published. Every event carries the session's
    session_id, so listeners can follow one upload even when another attempt
    names the same path.
    """

    def __init__(
        self,
        path: str,
        store: ObjectStore,
        registry: UploadRegistry,
        broadcaster: EventBroadcaster,
        evictor: QuotaEvictor,
        folder_id: Optional[str] = None,
        cancel: Optional[CancelToken] = None,
    ):
        self.path = canonical_path(path)
        self.name = os.path.basename(self.path)
        self.session_id = uuid.uuid4().hex
        self.store = store
        self.registry = registry
        self.broadcaster = broadcaster
        self.evictor = evictor
        self.folder_id = folder_id or None
        self.cancel = cancel or CancelToken()

        self.task: Optional[UploadTask] = None
        self.mime_type: Optional[str] = None
        self.runner: Optional[asyncio.Task] = None
        self._file: Optional[BinaryIO] = None

    async def start(self) -> UploadTask:
        """
        Claim the path and launch the transfer in the background.

        Returns:
            Copy of the registered upload task

        Raises:
            UploadInProgressError: If the path is already uploading
            LocalIOError: If the file cannot be opened or read
        """
        # duplicates are reported to the caller only, never broadcast
        if await self.registry.is_active(self.path):
            raise UploadInProgressError(f"{self.path} is already uploading")

        try:
            self._file, size, self.mime_type = await asyncio.to_thread(self._open)
        except RelayException as e:
            self._publish_error(str(e))
            raise

        task = UploadTask(path=self.path, name=self.name, total_size=size, cancel=self.cancel)
        try:
            await self.registry.register(task)
        except UploadInProgressError:
            self._close()
            raise

        self.task = task
        self.runner = asyncio.create_task(self._run(), name=f"upload:{self.path}")
        logger.info(f"Uploading {self.path} ({size} bytes, {self.mime_type})")
        return replace(task)

    async def wait(self) -> Optional[StoredObject]:
        """Wait for the background transfer; None if it failed or was cancelled."""
        if self.runner is None:
            return None
        return await self.runner

    def _publish_error(self, message: str) -> None:
        self.broadcaster.publish(ErrorEvent(message, self.path, session_id=self.session_id))

    def _open(self):
        try:
            stream = open(self.path, 'rb')
        except OSError as e:
            raise local_io_error(self.path, e) from e

        try:
            size = os.fstat(stream.fileno()).st_size
            mime_type = sniff_stream(stream, self.name)
        except OSError as e:
            stream.close()
            raise local_io_error(self.path, e) from e

        return stream, size, mime_type

    def _close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    async def _transfer(self) -> StoredObject:
        self.cancel.raise_if_cancelled()
        await self.evictor.ensure_capacity(self.task.total_size)

        self.cancel.raise_if_cancelled()
        return await self.store.create(
            name=self.name,
            parent_folder_id=self.folder_id,
            content=self._file,
            total_size=self.task.total_size,
            mime_type=self.mime_type,
            on_progress=self._on_progress,
        )

    async def _on_progress(self, sent: int, total: int) -> None:
        self.cancel.raise_if_cancelled()

        progress = sent * 100 / total if total > 0 else 100.0
        stored = await self.registry.update_progress(self.path, progress)
        if stored is None:
            return

        self.broadcaster.publish(ProgressEvent(
            path=self.path,
            name=self.name,
            size=total,
            progress=stored,
            session_id=self.session_id,
        ))

    async def _run(self) -> Optional[StoredObject]:
        stored = None
        error = None

        try:
            stored = await self._transfer()
        except UploadCancelledError as e:
            error = f"Upload of {self.path} cancelled: {e}"
        except RelayException as e:
            error = f"Upload of {self.path} failed: {e}"
        except OSError as e:
            error = f"Upload of {self.path} failed: {local_io_error(self.path, e)}"
        except Exception as e:
            logger.error(f"Unexpected error uploading {self.path}: {e}", exc_info=True)
            error = f"Upload of {self.path} failed: {e}"
        finally:
            self._close()
            await self.registry.remove(self.path)

        if error is not None:
            self._publish_error(error)
            return None

        self.broadcaster.publish(CompletionEvent(
            path=self.path,
            name=self.name,
            size=self.task.total_size,
            upload_id=stored.id,
            link=stored.link,
            session_id=self.session_id,
        ))
        return stored
