"""Registry for tracking uploads in flight."""

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional

from common.types import UploadTask
from relay.exceptions import UploadInProgressError, UploadNotFoundError

logger = logging.getLogger(__name__)


class UploadRegistry:
    """
    Table of in-flight uploads keyed by local path.

    Upload tasks write to it while listing requests read it, so every access
    goes through the lock. Readers get copies, never the live tasks.
    """

    def __init__(self):
        self.lock = asyncio.Lock()
        self._tasks: Dict[str, UploadTask] = {}

    async def register(self, task: UploadTask) -> None:
        """
        Add a task.

        Raises:
            UploadInProgressError: If the path already has an active upload
        """
        async with self.lock:
            if task.path in self._tasks:
                raise UploadInProgressError(f"{task.path} is already uploading")
            self._tasks[task.path] = task
            logger.info(f"Registered upload of {task.path} ({task.total_size} bytes). Active uploads: {len(self._tasks)}")

    async def update_progress(self, path: str, progress: float) -> Optional[float]:
        """
        Record progress for a path, never moving backwards.

        Returns:
            The stored progress, or None if the path is not registered
        """
        async with self.lock:
            task = self._tasks.get(path)
            if task is None:
                return None
            task.current_progress = min(100.0, max(task.current_progress, progress))
            return task.current_progress

    async def remove(self, path: str) -> Optional[UploadTask]:
        """Remove a task; returns it, or None if it was not registered."""
        async with self.lock:
            task = self._tasks.pop(path, None)
            if task is not None:
                logger.info(f"Removed upload of {path}. Active uploads: {len(self._tasks)}")
            return task

    async def get(self, path: str) -> Optional[UploadTask]:
        async with self.lock:
            task = self._tasks.get(path)
            return replace(task) if task is not None else None

    async def is_active(self, path: str) -> bool:
        async with self.lock:
            return path in self._tasks

    async def snapshot(self) -> List[UploadTask]:
        """Copies of every active task in registration order."""
        async with self.lock:
            return [replace(task) for task in self._tasks.values()]

    async def cancel(self, path: str, reason: str = "cancelled by request") -> None:
        """
        Signal the upload of a path to stop at its next chunk boundary.

        Raises:
            UploadNotFoundError: If the path has no active upload
        """
        async with self.lock:
            task = self._tasks.get(path)
            if task is None:
                raise UploadNotFoundError(f"{path} is not uploading")
            if task.cancel is not None:
                task.cancel.cancel(reason)
            logger.info(f"Cancellation requested for {path}: {reason}")

    async def cancel_all(self, reason: str) -> int:
        async with self.lock:
            for task in self._tasks.values():
                if task.cancel is not None:
                    task.cancel.cancel(reason)
            return len(self._tasks)
