"""Merges local, remote and in-flight views of the file set into one listing."""

from dataclasses import replace
from typing import List, Sequence, Set

from common.types import FileDescriptor, RemoteObject, UploadTask


class StatusReconciler:
    """
    Builds the listing returned to clients.

    Merge order matters, later steps win:

    1. local scan entries, in scan order;
    2. in-flight uploads below 100% overwrite size and progress of the entry
       with the same path (tasks whose path is not in the scan are dropped);
    3. each remote object claims the first unclaimed entry with the same
       (name, size) and marks it uploaded, or is appended as a remote-only
       entry whose path is the remote link.

    The (name, size) match is a heuristic: two different local files with
    the same name and size are indistinguishable from the remote side.
    Inputs are never mutated, so equal inputs always give equal output.
    """

    def reconcile(
        self,
        local: Sequence[FileDescriptor],
        remote: Sequence[RemoteObject],
        inflight: Sequence[UploadTask],
    ) -> List[FileDescriptor]:
        merged = [replace(entry) for entry in local]

        index_by_path = {}
        for i, entry in enumerate(merged):
            index_by_path.setdefault(entry.path, []).append(i)

        for task in inflight:
            if task.current_progress >= 100:
                continue
            for i in index_by_path.get(task.path, []):
                merged[i].size = task.total_size
                merged[i].progress = task.current_progress

        claimed: Set[int] = set()
        for obj in remote:
            match = self._find_unclaimed(merged, claimed, obj)
            if match is None:
                merged.append(FileDescriptor(
                    path=obj.link,
                    name=obj.name,
                    size=obj.size,
                    upload_id=obj.id,
                    progress=100.0,
                    link=obj.link,
                ))
                claimed.add(len(merged) - 1)
                continue

            entry = merged[match]
            entry.upload_id = obj.id
            entry.link = obj.link
            entry.progress = 100.0
            claimed.add(match)

        return merged

    @staticmethod
    def _find_unclaimed(merged: List[FileDescriptor], claimed: Set[int], obj: RemoteObject):
        for i, entry in enumerate(merged):
            if i in claimed:
                continue
            if entry.name == obj.name and entry.size == obj.size:
                return i
        return None
