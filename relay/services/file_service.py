"""File service for listing, uploading and deleting."""

import asyncio
import logging
from typing import List, Optional, Sequence

from common.types import FileDescriptor, UploadTask
from relay.cancellation import CancelToken
from relay.event_broadcaster import EventBroadcaster
from relay.file_catalog import FileCatalog, canonical_path
from relay.object_store import ObjectStore
from relay.quota_evictor import QuotaEvictor
from relay.remote_catalog import RemoteCatalog
from relay.status_reconciler import StatusReconciler
from relay.upload_registry import UploadRegistry
from relay.upload_session import UploadSession

logger = logging.getLogger(__name__)


def _discard_result(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Discarded late failure of abandoned fetch {task.get_name()}: {exc}")
    else:
        logger.debug(f"Discarded late result of abandoned fetch {task.get_name()}")


class FileService:
    """
    Wires the catalogs, registry, evictor and broadcaster together.

    Built once at application startup; every request handler reaches the
    same instance through the application state.
    """

    def __init__(
        self,
        store: ObjectStore,
        roots: Sequence[str],
        folder_id: Optional[str],
        quota_limit: int,
        registry: Optional[UploadRegistry] = None,
        broadcaster: Optional[EventBroadcaster] = None,
        shutdown_token: Optional[CancelToken] = None,
    ):
        self.store = store
        self.roots = list(roots)
        self.folder_id = folder_id or None
        self.registry = registry or UploadRegistry()
        self.broadcaster = broadcaster or EventBroadcaster()
        self.shutdown_token = shutdown_token or CancelToken()

        self.file_catalog = FileCatalog()
        self.remote_catalog = RemoteCatalog(store)
        self.evictor = QuotaEvictor(self.remote_catalog, limit=quota_limit)
        self.reconciler = StatusReconciler()

        self._sessions = set()

    async def list_files(self) -> List[FileDescriptor]:
        """
        Scan local roots and list the remote folder concurrently, then reconcile.

        The first fetch to fail fails the listing at once; the other fetch is
        left to finish on its own and its outcome is discarded.

        Raises:
            LocalIOError: If no root could be scanned
            RemoteError: If the remote folder cannot be listed
        """
        local_fetch = asyncio.create_task(self.file_catalog.scan_async(self.roots), name="scan-local")
        remote_fetch = asyncio.create_task(self.remote_catalog.list(), name="list-remote")
        fetches = [local_fetch, remote_fetch]

        pending = set(fetches)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
            failed = [fetch for fetch in fetches if fetch in done and fetch.exception() is not None]
            if failed:
                for fetch in pending:
                    fetch.add_done_callback(_discard_result)
                logger.error(f"Listing failed: {failed[0].exception()}")
                raise failed[0].exception()

        inflight = await self.registry.snapshot()
        files = self.reconciler.reconcile(local_fetch.result(), remote_fetch.result(), inflight)
        logger.info(f"Listed {len(files)} files ({len(inflight)} uploading)")
        return files

    async def start_upload(self, path: str, cancel: Optional[CancelToken] = None) -> UploadSession:
        """
        Start uploading a local file in the background.

        Args:
            path: Local file path
            cancel: Token to derive the upload's token from; defaults to the
                application shutdown token

        Returns:
            The started session (its task is already registered)

        Raises:
            UploadInProgressError: If the path is already uploading
            LocalIOError: If the file cannot be opened
        """
        parent = cancel or self.shutdown_token
        session = UploadSession(
            path=path,
            store=self.store,
            registry=self.registry,
            broadcaster=self.broadcaster,
            evictor=self.evictor,
            folder_id=self.folder_id,
            cancel=parent.child(),
        )
        await session.start()

        self._sessions.add(session)
        session.runner.add_done_callback(lambda _: self._sessions.discard(session))
        return session

    async def cancel_upload(self, path: str) -> None:
        """
        Raises:
            UploadNotFoundError: If the path is not uploading
        """
        await self.registry.cancel(canonical_path(path))

    async def list_uploads(self) -> List[UploadTask]:
        return await self.registry.snapshot()

    async def delete_remote(self, upload_id: str) -> None:
        """
        Raises:
            RemoteError: If the store refuses the deletion
        """
        await self.store.delete(upload_id)
        logger.info(f"Deleted remote object {upload_id}")

    async def shutdown(self) -> None:
        """Cancel every running upload and wait for them to release their files."""
        self.shutdown_token.cancel("server shutting down")
        sessions = list(self._sessions)
        if sessions:
            logger.info(f"Waiting for {len(sessions)} uploads to stop")
            await asyncio.gather(*(session.wait() for session in sessions), return_exceptions=True)
