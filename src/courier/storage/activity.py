"""Activity log storage operations.

Every registry mutation appends one entry; entries are never updated.
"""

from __future__ import annotations

from typing import Any

from qdrant_client import models

from courier.models import ActivityEntry
from courier.storage.retry import qdrant_retry


class ActivityMixin:
    """Mixin providing activity log operations for CourierStorage."""

    _upsert: Any
    _scroll_ordered: Any
    _match: Any
    _to_model: Any

    @qdrant_retry
    async def log_activity(self, entry: ActivityEntry) -> str:
        """Append an activity entry.

        Args:
            entry: ActivityEntry to log.

        Returns:
            The entry ID.
        """
        await self._upsert("activity", entry.id, entry.model_dump(mode="json"))
        return entry.id

    @qdrant_retry
    async def get_activity_log(
        self,
        entity_id: str | None = None,
        tenant_id: str | None = None,
        limit: int = 100,
    ) -> list[ActivityEntry]:
        """Get activity entries, newest first.

        Args:
            entity_id: Only entries about this entity.
            tenant_id: Only entries for this tenant.
            limit: Maximum entries to return.

        Returns:
            Entries sorted by timestamp descending.
        """
        conditions: list[models.Condition] = []
        if entity_id is not None:
            conditions.append(self._match("entity_id", entity_id))
        if tenant_id is not None:
            conditions.append(self._match("tenant_id", tenant_id))

        payloads = await self._scroll_ordered("activity", conditions or None, limit)
        return [self._to_model(p, ActivityEntry) for p in payloads]
