"""Keeps the remote folder under its quota by evicting the oldest objects."""

import logging
from dataclasses import dataclass, field
from typing import List

from common.constants import QUOTA_LIMIT_BYTES
from relay.remote_catalog import RemoteCatalog

logger = logging.getLogger(__name__)


@dataclass
class EvictionResult:
    """Outcome of one eviction pass."""
    consumed_before: int
    consumed_after: int
    pending: int
    limit: int
    deleted_ids: List[str] = field(default_factory=list)

    @property
    def satisfied(self) -> bool:
        return self.consumed_after + self.pending < self.limit


class QuotaEvictor:
    """
    Deletes the oldest remote objects until a pending upload fits.

    Objects whose creation time could not be parsed are never evicted.
    Running out of candidates is logged and tolerated; the upload is still
    attempted. A failed deletion stops the pass and is not rolled back.
    """

    def __init__(self, catalog: RemoteCatalog, limit: int = QUOTA_LIMIT_BYTES):
        self.catalog = catalog
        self.limit = limit

    async def ensure_capacity(self, pending: int) -> EvictionResult:
        """
        Make room for pending bytes.

        Args:
            pending: Size of the upload about to start

        Returns:
            Consumption before and after, and the ids that were deleted

        Raises:
            RemoteError: If listing or any deletion fails
        """
        objects = await self.catalog.list()
        consumed = sum(obj.size for obj in objects)
        result = EvictionResult(
            consumed_before=consumed,
            consumed_after=consumed,
            pending=pending,
            limit=self.limit,
        )

        if result.satisfied:
            return result

        candidates = sorted(
            (obj for obj in objects if obj.created_at is not None),
            key=lambda obj: obj.created_at,
        )

        logger.info(
            f"Quota exceeded ({consumed} + {pending} >= {self.limit}), "
            f"evicting from {len(candidates)} candidates"
        )

        for obj in candidates:
            await self.catalog.store.delete(obj.id)
            result.deleted_ids.append(obj.id)
            result.consumed_after -= obj.size
            logger.info(f"Evicted {obj.name} ({obj.id}, {obj.size} bytes, created {obj.created_at.isoformat()})")

            if result.satisfied:
                break

        if not result.satisfied:
            logger.warning(
                f"Eviction could not free enough space: {result.consumed_after} + {pending} "
                f">= {self.limit} after deleting {len(result.deleted_ids)} objects"
            )

        return result
