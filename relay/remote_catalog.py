"""Snapshot of previously uploaded objects in the remote folder."""

import logging
from datetime import datetime
from typing import List, Optional

from common.constants import DRIVE_FOLDER_MIME_TYPE
from common.types import RemoteObject
from relay.object_store import ObjectStore

logger = logging.getLogger(__name__)


def parse_created_at(value: str) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp.

    Args:
        value: Timestamp such as "2024-03-01T10:00:00.000Z"

    Returns:
        Timezone-aware datetime, or None if the value cannot be parsed
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00').replace('z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


class RemoteCatalog:
    """Lists uploadable (non-folder) objects from the object store."""

    def __init__(self, store: ObjectStore):
        self.store = store

    async def list(self) -> List[RemoteObject]:
        """
        List remote objects, skipping folders.

        Raises:
            RemoteError: If the store cannot be queried
        """
        entries = await self.store.list()

        objects = [
            RemoteObject(
                id=entry.id,
                name=entry.name,
                size=entry.size,
                created_at=parse_created_at(entry.created_at),
                link=entry.link,
            )
            for entry in entries
            if entry.mime_type != DRIVE_FOLDER_MIME_TYPE
        ]

        logger.debug(f"Remote folder holds {len(objects)} objects ({len(entries) - len(objects)} folders skipped)")
        return objects
