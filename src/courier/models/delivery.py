"""Delivery attempt, retry queue, and dispatch result models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from courier.signing import generate_delivery_id

from .base import generate_id, utc_now
from .events import EventName

DeliveryStatus = Literal["success", "failed"]

# Status code recorded when no HTTP response was received
TRANSPORT_FAILURE = 0


class DeliveryAttempt(BaseModel):
    """Record of one outbound webhook call.

    Attempts are immutable: a retry creates a new record with a higher
    attempt number instead of updating this one.

    Attributes:
        id: Opaque delivery ID (``whd_`` prefix), also sent as X-Webhook-Delivery.
        webhook_id: Subscription the call was made for.
        event: Event name delivered.
        payload: Snapshot of the envelope that was sent.
        url: Destination at send time.
        status: success or failed.
        status_code: HTTP status, 0 when the transport failed.
        response_body: Response text (or transport error), truncated.
        error: Transport error description, if any.
        response_time: Latency in milliseconds.
        attempt: Attempt number, 1 for the first send.
        created_at: When the attempt was recorded.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(default_factory=generate_delivery_id)
    webhook_id: str = Field(description="Subscription ID")
    event: EventName = Field(description="Event delivered")
    payload: dict[str, Any] = Field(default_factory=dict, description="Envelope snapshot")
    url: str = Field(description="Destination at send time")
    status: DeliveryStatus = Field(description="Delivery outcome")
    status_code: int = Field(ge=0, description="HTTP status, 0 for transport failure")
    response_body: str | None = Field(default=None, description="Truncated response text")
    error: str | None = Field(default=None, description="Transport error, if any")
    response_time: int = Field(default=0, ge=0, description="Latency (ms)")
    attempt: int = Field(default=1, ge=1, description="Attempt number")
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class RetryQueueEntry(BaseModel):
    """A scheduled retry of a failed delivery.

    Created by the retry scheduler, consumed and deleted by the retry worker.

    Attributes:
        id: Entry ID (``whr_`` prefix).
        webhook_id: Subscription to retry.
        original_delivery_id: The failed attempt that caused this retry.
        payload: Exact envelope body to resend.
        attempt: Attempt number the retry will carry.
        retry_at: Earliest time the retry may run.
        created_at: When the retry was scheduled.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(default_factory=lambda: generate_id("whr"))
    webhook_id: str = Field(description="Subscription ID")
    original_delivery_id: str = Field(description="Failed attempt ID")
    payload: str = Field(description="Serialized envelope body")
    attempt: int = Field(ge=2, description="Next attempt number")
    retry_at: datetime = Field(description="Scheduled retry time")
    created_at: datetime = Field(default_factory=utc_now)

    def is_due(self, now: datetime) -> bool:
        return self.retry_at <= now


class DeliveryResult(BaseModel):
    """Per-subscriber outcome reported back from a trigger."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    webhook_id: str
    delivery_id: str
    status_code: int | None = None
    error: str | None = None
    response_time: int

    @classmethod
    def from_attempt(cls, attempt: DeliveryAttempt) -> DeliveryResult:
        if attempt.status_code == TRANSPORT_FAILURE:
            return cls(
                success=False,
                webhook_id=attempt.webhook_id,
                delivery_id=attempt.id,
                error=attempt.error or attempt.response_body,
                response_time=attempt.response_time,
            )
        return cls(
            success=attempt.succeeded,
            webhook_id=attempt.webhook_id,
            delivery_id=attempt.id,
            status_code=attempt.status_code,
            response_time=attempt.response_time,
        )


class DispatchResult(BaseModel):
    """Outcome of dispatching one event.

    Attributes:
        matched_count: Active subscriptions that matched the event.
        sent_count: Deliveries that succeeded (2xx).
        deliveries: One result per matched subscription.
    """

    model_config = ConfigDict(extra="forbid")

    matched_count: int = 0
    sent_count: int = 0
    deliveries: list[DeliveryResult] = Field(default_factory=list)

    def to_trigger_response(self) -> dict[str, Any]:
        return {
            "deliveries": [d.model_dump() for d in self.deliveries],
            "total_webhooks": self.matched_count,
            "successful_deliveries": self.sent_count,
        }
