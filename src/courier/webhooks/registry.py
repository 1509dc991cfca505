"""Webhook registry: validated CRUD over subscriptions with an audit trail.

Every mutation is validated in full before anything is written, so an
invalid request never leaves a partial record behind. Each successful
mutation appends one activity entry naming the acting user.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field, SecretStr
from pydantic import ValidationError as PydanticValidationError

from courier.exceptions import NotFoundError, ValidationError
from courier.models import (
    ALL_EVENT_NAMES,
    ActivityEntry,
    DeliveryAttempt,
    EventName,
    WebhookCreate,
    WebhookSubscription,
    WebhookUpdate,
    utc_now,
)
from courier.signing import generate_secret

from .stats import DeliveryStats

if TYPE_CHECKING:
    from courier.storage import CourierStorage

    from .stats import StatisticsAggregator

logger = logging.getLogger(__name__)

WebhookStatus = Literal["active", "inactive"]

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class WebhookWithStats(BaseModel):
    """A subscription joined with its delivery statistics."""

    webhook: WebhookSubscription
    statistics: DeliveryStats


class Pagination(BaseModel):
    """Page position within a filtered listing."""

    page: int = Field(ge=1)
    limit: int = Field(ge=1, le=MAX_PAGE_SIZE)
    total: int = Field(ge=0, description="Size of the filtered set")
    total_pages: int = Field(ge=0)


class RegistrySummary(BaseModel):
    """Totals reported alongside a listing.

    ``total_webhooks`` and ``active_webhooks`` count the filtered set;
    ``total_deliveries`` sums the attempts of the returned page.
    """

    total_webhooks: int = 0
    active_webhooks: int = 0
    total_deliveries: int = 0


class WebhookListing(BaseModel):
    """One page of a webhook listing."""

    items: list[WebhookWithStats] = Field(default_factory=list)
    pagination: Pagination
    summary: RegistrySummary
    available_events: list[str] = Field(default_factory=lambda: list(ALL_EVENT_NAMES))


def _matches_search(subscription: WebhookSubscription, search: str) -> bool:
    needle = search.casefold()
    haystacks = (subscription.name, str(subscription.url), subscription.description or "")
    return any(needle in text.casefold() for text in haystacks)


class WebhookRegistry:
    """Create, read, update and delete webhook subscriptions.

    Example:
        ```python
        registry = WebhookRegistry(storage, StatisticsAggregator(storage))
        webhook = await registry.create(
            {"name": "CRM sync", "url": "https://crm.example.com/hook",
             "events": ["deal.created"]},
            actor="user_42",
        )
        listing = await registry.list(event="deal.created", status="active")
        ```
    """

    def __init__(self, storage: CourierStorage, stats: StatisticsAggregator) -> None:
        self._storage = storage
        self._stats = stats

    async def create(
        self,
        data: WebhookCreate | dict[str, Any],
        actor: str | None = None,
    ) -> WebhookSubscription:
        """Register a new webhook.

        A 32-byte hex secret is generated when none is supplied. The
        secret is stored but never returned by any read path.

        Args:
            data: Registration input.
            actor: User performing the registration.

        Returns:
            The stored subscription.

        Raises:
            ValidationError: If the input is invalid. Nothing is stored.
        """
        try:
            spec = data if isinstance(data, WebhookCreate) else WebhookCreate.model_validate(data)
            subscription = WebhookSubscription(
                **spec.model_dump(exclude={"secret"}),
                secret=spec.secret or SecretStr(generate_secret()),
                created_by=actor,
            )
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e

        await self._storage.store_subscription(subscription)
        await self._storage.log_activity(
            ActivityEntry.for_created(
                webhook_id=subscription.id,
                name=subscription.name,
                events=[e.value for e in subscription.events],
                url=str(subscription.url),
                actor=actor,
                tenant_id=subscription.tenant_id,
            )
        )

        logger.info("Webhook created: %s (%s)", subscription.id, subscription.name)
        return subscription

    async def get(self, webhook_id: str) -> WebhookSubscription:
        """Get a webhook by ID.

        Raises:
            NotFoundError: If no webhook has this ID.
        """
        subscription = await self._storage.get_subscription(webhook_id)
        if subscription is None:
            raise NotFoundError("webhook", webhook_id)
        return subscription

    async def get_with_stats(self, webhook_id: str) -> WebhookWithStats:
        """Get a webhook joined with fresh delivery statistics."""
        subscription = await self.get(webhook_id)
        stats = await self._stats.stats_for(webhook_id)
        return WebhookWithStats(webhook=subscription, statistics=stats)

    async def update(
        self,
        webhook_id: str,
        changes: WebhookUpdate | dict[str, Any],
        actor: str | None = None,
    ) -> WebhookSubscription:
        """Apply a partial update.

        Only fields present in ``changes`` are applied; ``retry_config`` is
        merged field by field. The merged record is re-validated as a whole
        before it is stored.

        Args:
            webhook_id: Webhook to update.
            changes: Fields to change.
            actor: User performing the update.

        Returns:
            The updated subscription.

        Raises:
            NotFoundError: If no webhook has this ID.
            ValidationError: If the changes or the merged record are invalid.
        """
        current = await self.get(webhook_id)

        try:
            if isinstance(changes, WebhookUpdate):
                update = changes
            else:
                update = WebhookUpdate.model_validate(changes)
            patch = update.model_dump(exclude_unset=True)
            merged = current.model_dump()
            if "retry_config" in patch:
                policy_patch = patch.pop("retry_config") or {}
                merged["retry_config"] = {**merged["retry_config"], **policy_patch}
            merged.update(patch)
            merged["updated_at"] = utc_now()
            updated = WebhookSubscription.model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e

        changed_fields = sorted(update.model_fields_set)
        await self._storage.store_subscription(updated)
        await self._storage.log_activity(
            ActivityEntry.for_updated(
                webhook_id=updated.id,
                name=updated.name,
                changes=changed_fields,
                actor=actor,
                tenant_id=updated.tenant_id,
            )
        )

        logger.info("Webhook updated: %s (%s)", updated.id, ", ".join(changed_fields))
        return updated

    async def delete(self, webhook_id: str, actor: str | None = None) -> None:
        """Delete a webhook with its delivery history and pending retries.

        Raises:
            NotFoundError: If no webhook has this ID.
        """
        subscription = await self.get(webhook_id)

        await self._storage.delete_subscription_cascade(webhook_id)
        await self._storage.log_activity(
            ActivityEntry.for_deleted(
                webhook_id=webhook_id,
                name=subscription.name,
                actor=actor,
                tenant_id=subscription.tenant_id,
            )
        )

        logger.info("Webhook deleted: %s (%s)", webhook_id, subscription.name)

    async def deliveries(self, webhook_id: str, limit: int = 50) -> list[DeliveryAttempt]:
        """Get a webhook's delivery history, newest first.

        Raises:
            NotFoundError: If no webhook has this ID.
        """
        await self.get(webhook_id)
        return await self._storage.get_deliveries(webhook_id, limit=limit)

    async def list(
        self,
        event: EventName | str | None = None,
        status: WebhookStatus | None = None,
        search: str | None = None,
        tenant_id: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> WebhookListing:
        """List webhooks, newest first, with statistics.

        Args:
            event: Only webhooks subscribed to this event.
            status: "active" or "inactive".
            search: Case-insensitive substring of name, URL or description.
            tenant_id: Only webhooks of this tenant.
            page: Page number (1-indexed).
            limit: Page size (1..100).

        Returns:
            WebhookListing with items, pagination, summary and the event catalog.

        Raises:
            ValidationError: If a filter or pagination value is invalid.
        """
        if page < 1:
            raise ValidationError("page", "must be >= 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError("limit", f"must be between 1 and {MAX_PAGE_SIZE}")
        if status is not None and status not in ("active", "inactive"):
            raise ValidationError("status", "must be 'active' or 'inactive'")
        event_name: EventName | None = None
        if event is not None:
            try:
                event_name = EventName(event)
            except ValueError as e:
                raise ValidationError("event", f"unknown event: {event}") from e

        subscriptions = await self._storage.list_subscriptions(
            event=event_name,
            is_active=None if status is None else status == "active",
            tenant_id=tenant_id,
        )
        if search:
            subscriptions = [s for s in subscriptions if _matches_search(s, search)]

        total = len(subscriptions)
        offset = (page - 1) * limit
        items = [
            WebhookWithStats(webhook=s, statistics=await self._stats.stats_for(s.id))
            for s in subscriptions[offset : offset + limit]
        ]

        return WebhookListing(
            items=items,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
            ),
            summary=RegistrySummary(
                total_webhooks=total,
                active_webhooks=sum(1 for s in subscriptions if s.is_active),
                total_deliveries=sum(item.statistics.total for item in items),
            ),
        )
