"""Webhook subscription storage operations."""

from __future__ import annotations

from typing import Any

from qdrant_client import models

from courier.models import EventName, WebhookSubscription
from courier.storage.retry import qdrant_retry


class SubscriptionMixin:
    """Mixin providing subscription operations for CourierStorage.

    Expects from the base class: ``_upsert``, ``_retrieve``, ``_scroll_all``,
    ``_delete_record``, ``_match`` and ``_to_model``.
    """

    _upsert: Any
    _retrieve: Any
    _scroll_all: Any
    _match: Any
    _to_model: Any
    _delete_record: Any

    @qdrant_retry
    async def store_subscription(self, subscription: WebhookSubscription) -> str:
        """Insert or replace a subscription.

        Args:
            subscription: Subscription to persist (secret included).

        Returns:
            The subscription ID.
        """
        await self._upsert("webhooks", subscription.id, subscription.to_storage_payload())
        return subscription.id

    @qdrant_retry
    async def get_subscription(self, webhook_id: str) -> WebhookSubscription | None:
        """Get a subscription by ID, or None if it does not exist."""
        payload = await self._retrieve("webhooks", webhook_id)
        if payload is None:
            return None
        subscription: WebhookSubscription = self._to_model(payload, WebhookSubscription)
        return subscription

    @qdrant_retry
    async def list_subscriptions(
        self,
        event: EventName | None = None,
        is_active: bool | None = None,
        tenant_id: str | None = None,
    ) -> list[WebhookSubscription]:
        """List subscriptions matching the given filters, newest first.

        Args:
            event: Only subscriptions that include this event.
            is_active: Only active (True) or inactive (False) subscriptions.
            tenant_id: Only subscriptions owned by this tenant.

        Returns:
            Matching subscriptions sorted by created_at descending.
        """
        conditions: list[models.Condition] = []
        if event is not None:
            conditions.append(self._match("events", EventName(event).value))
        if is_active is not None:
            conditions.append(self._match("is_active", is_active))
        if tenant_id is not None:
            conditions.append(self._match("tenant_id", tenant_id))

        payloads = await self._scroll_all("webhooks", conditions)
        subscriptions: list[WebhookSubscription] = [
            self._to_model(p, WebhookSubscription) for p in payloads
        ]
        subscriptions.sort(key=lambda s: s.created_at, reverse=True)
        return subscriptions

    async def find_subscriptions_for_event(
        self,
        event: EventName,
        tenant_id: str | None = None,
    ) -> list[WebhookSubscription]:
        """Get every active subscription that includes ``event``.

        Args:
            event: Event being dispatched.
            tenant_id: Optional tenant scope.

        Returns:
            Active subscriptions subscribed to the event.
        """
        subscriptions = await self.list_subscriptions(
            event=event, is_active=True, tenant_id=tenant_id
        )
        return [s for s in subscriptions if s.subscribes_to(event)]

    @qdrant_retry
    async def delete_subscription(self, webhook_id: str) -> None:
        """Delete a subscription record (dependents are not touched)."""
        await self._delete_record("webhooks", webhook_id)
