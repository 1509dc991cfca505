"""Qdrant storage client for Courier.

Combines all record operations through mixins.

Example:
    ```python
    from courier.storage import CourierStorage

    async with CourierStorage(url=":memory:") as storage:
        await storage.store_subscription(subscription)
        matches = await storage.find_subscriptions_for_event(EventName.DEAL_CREATED)
    ```
"""

from __future__ import annotations

from typing import Any

from .activity import ActivityMixin
from .base import StorageBase
from .deliveries import DeliveryMixin
from .subscriptions import SubscriptionMixin


class CourierStorage(SubscriptionMixin, DeliveryMixin, ActivityMixin, StorageBase):
    """Async Qdrant storage for webhook subscriptions and their dependents.

    This class combines functionality from multiple mixins:
    - SubscriptionMixin: store/get/list/delete subscriptions, event lookup
    - DeliveryMixin: delivery log and retry queue
    - ActivityMixin: audit trail of registry mutations

    Every write is a single-record upsert or delete keyed by the record's
    own ID, so concurrent deliveries never contend.
    """

    async def __aenter__(self) -> CourierStorage:
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def delete_subscription_cascade(self, webhook_id: str) -> None:
        """Delete a subscription with its delivery attempts and retry entries.

        Dependents are swept again once the subscription is gone, removing
        rows that in-flight deliveries wrote during the first pass.
        """
        await self.delete_deliveries(webhook_id)
        await self.delete_retries(webhook_id)
        await self.delete_subscription(webhook_id)
        await self.delete_deliveries(webhook_id)
        await self.delete_retries(webhook_id)
