"""Enumerates uploadable local files under the configured roots."""

import asyncio
import logging
import os
from typing import List, Sequence

from common.types import FileDescriptor
from relay.exceptions import LocalIOError

logger = logging.getLogger(__name__)


def is_hidden(name: str) -> bool:
    return name.startswith('.')


def canonical_path(path: str) -> str:
    """Absolute, normalized form used to key listings and uploads by path."""
    return os.path.abspath(path)


class FileCatalog:
    """
    Walks root directories depth-first and describes every visible file.

    Hidden entries (a leading dot in the name or in the path relative to the
    root) are skipped, and hidden directories are not descended into.
    Per-entry failures are logged and skipped.
    """

    def scan(self, roots: Sequence[str]) -> List[FileDescriptor]:
        """
        Scan roots in order.

        Args:
            roots: Ordered root directories; overlapping roots produce duplicates

        Returns:
            File descriptors in per-root depth-first order

        Raises:
            LocalIOError: If every configured root is unreadable
        """
        files: List[FileDescriptor] = []
        failed_roots = []

        for root in roots:
            try:
                files.extend(self._scan_root(root))
            except OSError as e:
                logger.warning(f"Cannot read root {root}: {e}")
                failed_roots.append(root)

        if roots and len(failed_roots) == len(roots):
            raise LocalIOError(f"No readable root among {', '.join(failed_roots)}")

        logger.debug(f"Scanned {len(files)} files under {len(roots)} roots")
        return files

    async def scan_async(self, roots: Sequence[str]) -> List[FileDescriptor]:
        """Run scan() in a worker thread."""
        return await asyncio.to_thread(self.scan, list(roots))

    def _scan_root(self, root: str) -> List[FileDescriptor]:
        st = os.stat(root)
        if not os.path.isdir(root):
            name = os.path.basename(os.path.normpath(root))
            if is_hidden(name):
                return []
            return [FileDescriptor(path=canonical_path(root), name=name, size=st.st_size)]

        # the root itself must be listable; deeper failures are per-entry
        os.listdir(root)

        files: List[FileDescriptor] = []
        self._walk(canonical_path(root), root, files)
        return files

    def _walk(self, root: str, directory: str, files: List[FileDescriptor]) -> None:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {directory}: {e}")
            return

        for entry in entries:
            if is_hidden(entry.name):
                continue

            path = canonical_path(entry.path)
            if is_hidden(os.path.relpath(path, root)):
                continue

            try:
                if entry.is_dir(follow_symlinks=False):
                    self._walk(root, entry.path, files)
                    continue
                size = entry.stat().st_size
            except OSError as e:
                logger.warning(f"Skipping {path}: {e}")
                continue

            files.append(FileDescriptor(path=path, name=entry.name, size=size))
