"""Webhook subscription models."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, HttpUrl, SecretStr

from .base import generate_id, utc_now
from .events import EventName

# Headers set by the delivery executor; subscribers cannot override them
RESERVED_HEADERS = frozenset(
    {
        "content-type",
        "user-agent",
        "x-webhook-delivery",
        "x-webhook-event",
        "x-webhook-timestamp",
        "x-webhook-signature",
    }
)


def _dedupe_events(events: list[EventName]) -> list[EventName]:
    return list(dict.fromkeys(events))


def _reject_reserved_headers(headers: dict[str, str]) -> dict[str, str]:
    clashes = sorted(name for name in headers if name.lower() in RESERVED_HEADERS)
    if clashes:
        raise ValueError(f"reserved header(s) cannot be overridden: {', '.join(clashes)}")
    return headers


EventList = Annotated[list[EventName], Field(min_length=1), AfterValidator(_dedupe_events)]
HeaderMap = Annotated[dict[str, str], AfterValidator(_reject_reserved_headers)]


class RetryPolicy(BaseModel):
    """Retry behaviour for failed deliveries.

    Attributes:
        max_retries: Highest attempt number a retry may carry (0 disables retry).
        retry_delay: Base delay in seconds before the first retry.
        backoff_multiplier: Factor applied to the delay for each later retry.
    """

    model_config = ConfigDict(extra="forbid")

    max_retries: int = Field(default=3, ge=0, le=10, description="Maximum retries")
    retry_delay: float = Field(default=60, ge=1, le=3600, description="Base delay (seconds)")
    backoff_multiplier: float = Field(
        default=2, ge=1, le=10, description="Backoff multiplier per retry"
    )


class RetryPolicyUpdate(BaseModel):
    """Partial retry policy; unset fields keep their current value."""

    model_config = ConfigDict(extra="forbid")

    max_retries: int | None = Field(default=None, ge=0, le=10)
    retry_delay: float | None = Field(default=None, ge=1, le=3600)
    backoff_multiplier: float | None = Field(default=None, ge=1, le=10)


class WebhookCreate(BaseModel):
    """Registration input for a webhook.

    Attributes:
        name: Human-readable name.
        url: Absolute http(s) URL receiving POST callbacks.
        events: Subscribed event names (non-empty, unique).
        secret: Shared HMAC secret (generated when omitted).
        is_active: Inactive subscriptions receive nothing.
        retry_config: Retry policy for failed deliveries.
        headers: Extra headers sent with every delivery.
        timeout: Per-delivery deadline in seconds.
        description: Optional description.
        tenant_id: Owning tenant (optional).
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255, description="Webhook name")
    url: HttpUrl = Field(description="Destination URL")
    events: EventList = Field(description="Subscribed events")
    secret: SecretStr | None = Field(default=None, description="Shared HMAC secret")
    is_active: bool = Field(default=True, description="Whether the webhook is active")
    retry_config: RetryPolicy = Field(default_factory=RetryPolicy)
    headers: HeaderMap = Field(default_factory=dict, description="Custom headers")
    timeout: float = Field(default=30, ge=1, le=60, description="Delivery timeout (seconds)")
    description: str | None = Field(default=None, description="Optional description")
    tenant_id: str | None = Field(default=None, description="Owning tenant")


class WebhookUpdate(BaseModel):
    """Partial update of a webhook.

    Only fields explicitly set are applied. ``retry_config`` is merged
    field by field into the current policy.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    url: HttpUrl | None = None
    events: EventList | None = None
    secret: SecretStr | None = None
    is_active: bool | None = None
    retry_config: RetryPolicyUpdate | None = None
    headers: HeaderMap | None = None
    timeout: float | None = Field(default=None, ge=1, le=60)
    description: str | None = None


class WebhookSubscription(WebhookCreate):
    """A registered webhook destination and the events it receives.

    The secret is write-only: it is held as a ``SecretStr`` and is only
    unwrapped by the signing function and the storage write path.

    Attributes:
        id: Unique identifier (``whk_`` prefix).
        created_by: Actor that registered the webhook.
        created_at: When the webhook was registered.
        updated_at: When the webhook was last modified.
    """

    id: str = Field(default_factory=lambda: generate_id("whk"))
    created_by: str | None = Field(default=None, description="Registering actor")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def has_secret(self) -> bool:
        """Whether deliveries to this webhook are signed."""
        return self.secret is not None and bool(self.secret.get_secret_value())

    def subscribes_to(self, event: EventName | str) -> bool:
        """Check whether this webhook is active and subscribed to ``event``."""
        return self.is_active and EventName(event) in self.events

    def to_storage_payload(self) -> dict[str, Any]:
        """Serialize for persistence, including the raw secret."""
        payload = self.model_dump(mode="json")
        payload["secret"] = self.secret.get_secret_value() if self.secret else None
        return payload
