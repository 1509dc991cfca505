"""Pydantic schemas for API request/response models.

Request bodies for create/update reuse ``WebhookCreate``/``WebhookUpdate``
from ``courier.models``. Responses never carry a webhook secret, only
``has_secret``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from courier.models import DeliveryAttempt, EventName, RetryPolicy, WebhookSubscription
from courier.webhooks import DeliveryStats, Pagination, RegistrySummary


class WebhookResponse(BaseModel):
    """A webhook as returned by the API.

    Attributes:
        id: Webhook ID.
        name: Webhook name.
        url: Destination URL.
        events: Subscribed events.
        has_secret: Whether deliveries are signed (the secret itself is never returned).
        is_active: Whether the webhook receives deliveries.
        retry_config: Retry policy.
        headers: Custom headers.
        timeout: Delivery timeout in seconds.
        description: Optional description.
        tenant_id: Owning tenant.
        created_by: Registering actor.
        created_at: Creation time.
        updated_at: Last modification time.
        statistics: Delivery statistics (included on reads).
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    url: str
    events: list[EventName]
    has_secret: bool
    is_active: bool
    retry_config: RetryPolicy
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float
    description: str | None = None
    tenant_id: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime
    statistics: DeliveryStats | None = None

    @classmethod
    def from_subscription(
        cls,
        subscription: WebhookSubscription,
        statistics: DeliveryStats | None = None,
    ) -> WebhookResponse:
        return cls(
            id=subscription.id,
            name=subscription.name,
            url=str(subscription.url),
            events=subscription.events,
            has_secret=subscription.has_secret,
            is_active=subscription.is_active,
            retry_config=subscription.retry_config,
            headers=subscription.headers,
            timeout=subscription.timeout,
            description=subscription.description,
            tenant_id=subscription.tenant_id,
            created_by=subscription.created_by,
            created_at=subscription.created_at,
            updated_at=subscription.updated_at,
            statistics=statistics,
        )


class WebhookListResponse(BaseModel):
    """Response for listing webhooks."""

    model_config = ConfigDict(extra="forbid")

    webhooks: list[WebhookResponse]
    pagination: Pagination
    summary: RegistrySummary
    available_events: list[str]


class DeleteResponse(BaseModel):
    """Response for deleting a webhook."""

    model_config = ConfigDict(extra="forbid")

    message: str


class DeliveryListResponse(BaseModel):
    """Delivery history of one webhook, newest first."""

    model_config = ConfigDict(extra="forbid")

    webhook_id: str
    deliveries: list[DeliveryAttempt]
    count: int


class TriggerRequest(BaseModel):
    """Request body for triggering an event.

    Attributes:
        event: Event name from the catalog.
        payload: Event data delivered as the envelope's ``data``.
        tenant_id: Only deliver to this tenant's webhooks.
        metadata: Optional metadata added to the envelope.
    """

    model_config = ConfigDict(extra="forbid")

    event: EventName
    payload: dict[str, Any] = Field(default_factory=dict)
    tenant_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class TriggerDelivery(BaseModel):
    """Outcome of one delivery made by a trigger."""

    success: bool
    webhook_id: str
    delivery_id: str
    status_code: int | None = None
    error: str | None = None
    response_time: int


class TriggerResponse(BaseModel):
    """Response for triggering an event."""

    model_config = ConfigDict(extra="forbid")

    message: str
    deliveries: list[TriggerDelivery]
    total_webhooks: int
    successful_deliveries: int


class EventCatalogResponse(BaseModel):
    """The events a webhook can subscribe to."""

    model_config = ConfigDict(extra="forbid")

    events: list[str]


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status (healthy, unhealthy).
        version: API version.
        storage_connected: Whether storage is connected.
        retry_worker_running: Whether the retry worker is polling.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["healthy", "unhealthy"]
    version: str
    storage_connected: bool
    retry_worker_running: bool = False
