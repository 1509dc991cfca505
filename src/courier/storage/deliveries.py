"""Delivery attempt and retry queue storage operations.

Attempts are append-only; each is written once under its own delivery ID.
Retry entries are inserted by the scheduler and deleted by the worker.
Time windows, counts and ordering are evaluated by Qdrant, so results stay
exact however many attempts a subscription accumulates.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from qdrant_client import models

from courier.models import DeliveryAttempt, DeliveryStatus, RetryQueueEntry
from courier.storage.retry import qdrant_retry


class DeliveryMixin:
    """Mixin providing delivery log and retry queue operations.

    Expects ``_upsert``, ``_scroll_all``, ``_scroll_ordered``, ``_count``,
    ``_since``, ``_until``, ``_delete_where``, ``_delete_record``, ``_match``
    and ``_to_model`` from the base class.
    """

    _upsert: Any
    _scroll_all: Any
    _scroll_ordered: Any
    _count: Any
    _since: Any
    _until: Any
    _delete_where: Any
    _delete_record: Any
    _match: Any
    _to_model: Any

    @qdrant_retry
    async def log_delivery(self, attempt: DeliveryAttempt) -> str:
        """Record a delivery attempt.

        Args:
            attempt: Attempt to record.

        Returns:
            The delivery ID.
        """
        await self._upsert("deliveries", attempt.id, attempt.model_dump(mode="json"))
        return attempt.id

    def _delivery_conditions(
        self,
        webhook_id: str,
        since: datetime | None = None,
        status: DeliveryStatus | None = None,
    ) -> list[models.Condition]:
        conditions: list[models.Condition] = [self._match("webhook_id", webhook_id)]
        if since is not None:
            conditions.append(self._since("deliveries", since))
        if status is not None:
            conditions.append(self._match("status", status))
        return conditions

    @qdrant_retry
    async def get_deliveries(
        self,
        webhook_id: str,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[DeliveryAttempt]:
        """Get delivery attempts for a subscription, newest first.

        Args:
            webhook_id: Subscription ID.
            since: Only attempts created after this time.
            limit: Maximum attempts to return (the newest ones). None returns all.

        Returns:
            Attempts sorted by created_at descending.
        """
        conditions = self._delivery_conditions(webhook_id, since=since)
        if limit is not None:
            payloads = await self._scroll_ordered("deliveries", conditions, limit)
        else:
            payloads = await self._scroll_all("deliveries", conditions)
        attempts: list[DeliveryAttempt] = [self._to_model(p, DeliveryAttempt) for p in payloads]
        attempts.sort(key=lambda a: a.created_at, reverse=True)
        return attempts

    @qdrant_retry
    async def count_deliveries(
        self,
        webhook_id: str,
        since: datetime | None = None,
        status: DeliveryStatus | None = None,
    ) -> int:
        """Count delivery attempts for a subscription.

        Args:
            webhook_id: Subscription ID.
            since: Only attempts created after this time.
            status: Only attempts with this outcome.

        Returns:
            Exact number of matching attempts.
        """
        count: int = await self._count(
            "deliveries", self._delivery_conditions(webhook_id, since=since, status=status)
        )
        return count

    @qdrant_retry
    async def delete_deliveries(self, webhook_id: str) -> None:
        """Delete every delivery attempt of a subscription."""
        await self._delete_where("deliveries", [self._match("webhook_id", webhook_id)])

    @qdrant_retry
    async def enqueue_retry(self, entry: RetryQueueEntry) -> str:
        """Insert a retry queue entry.

        Returns:
            The entry ID.
        """
        await self._upsert("retry_queue", entry.id, entry.model_dump(mode="json"))
        return entry.id

    @qdrant_retry
    async def get_retries(self, webhook_id: str | None = None) -> list[RetryQueueEntry]:
        """Get retry entries, optionally for one subscription, oldest retry_at first."""
        conditions = [self._match("webhook_id", webhook_id)] if webhook_id else None
        payloads = await self._scroll_all("retry_queue", conditions)
        entries: list[RetryQueueEntry] = [self._to_model(p, RetryQueueEntry) for p in payloads]
        entries.sort(key=lambda e: e.retry_at)
        return entries

    @qdrant_retry
    async def get_due_retries(self, now: datetime, limit: int = 100) -> list[RetryQueueEntry]:
        """Get retry entries whose scheduled time has arrived.

        The due filter and ordering run in Qdrant, so entries scheduled for
        later never crowd out entries that are already due.

        Args:
            now: Evaluation time.
            limit: Maximum entries to return.

        Returns:
            Due entries, oldest retry_at first.
        """
        payloads = await self._scroll_ordered(
            "retry_queue", [self._until("retry_queue", now)], limit, direction="asc"
        )
        return [self._to_model(p, RetryQueueEntry) for p in payloads]

    @qdrant_retry
    async def delete_retry(self, entry_id: str) -> None:
        """Delete one retry entry."""
        await self._delete_record("retry_queue", entry_id)

    @qdrant_retry
    async def delete_retries(self, webhook_id: str) -> None:
        """Delete every retry entry of a subscription."""
        await self._delete_where("retry_queue", [self._match("webhook_id", webhook_id)])
