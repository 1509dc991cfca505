"""Event catalog and the envelope sent to subscribers.

The catalog is closed: an event name outside ``EventName`` is rejected
when a subscription or envelope is constructed, never silently ignored.
Adding an event means adding a member here; nothing else changes.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .base import utc_now


class EventName(str, Enum):
    """Business events a webhook can subscribe to."""

    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"
    USER_DELETED = "user.deleted"
    CLIENT_CREATED = "client.created"
    CLIENT_UPDATED = "client.updated"
    CLIENT_DELETED = "client.deleted"
    DEAL_CREATED = "deal.created"
    DEAL_UPDATED = "deal.updated"
    DEAL_STATUS_CHANGED = "deal.status_changed"
    DEAL_DELETED = "deal.deleted"
    MESSAGE_SENT = "message.sent"
    SEQUENCE_ENROLLED = "sequence.enrolled"
    SEQUENCE_COMPLETED = "sequence.completed"
    PAYMENT_SUCCEEDED = "payment.succeeded"
    PAYMENT_FAILED = "payment.failed"
    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELLED = "subscription.cancelled"


ALL_EVENT_NAMES: list[str] = [event.value for event in EventName]


class EventEnvelope(BaseModel):
    """Canonical payload wrapper delivered to every matching subscriber.

    Built once per dispatch. The serialized ``body`` is computed once and
    cached, so every subscriber (and every retry) receives and is signed
    over byte-identical content.

    Attributes:
        event: Event name from the catalog.
        timestamp: When the event was dispatched (UTC).
        data: Event payload supplied by the producer.
        metadata: Optional producer metadata.
    """

    model_config = ConfigDict(extra="forbid")

    event: EventName = Field(description="Event name")
    timestamp: datetime = Field(default_factory=utc_now, description="Dispatch time (UTC)")
    data: dict[str, Any] = Field(default_factory=dict, description="Event payload")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Producer metadata")

    _body: str | None = PrivateAttr(default=None)

    @property
    def body(self) -> str:
        """The exact JSON body sent on the wire."""
        if self._body is None:
            self._body = self.model_dump_json()
        return self._body

    @property
    def timestamp_header(self) -> str:
        """Timestamp rendered exactly as it appears in the body."""
        return str(self.model_dump(mode="json", include={"timestamp"})["timestamp"])

    @classmethod
    def from_body(cls, body: str) -> EventEnvelope:
        """Rebuild an envelope from a stored body, keeping the original bytes."""
        envelope = cls.model_validate_json(body)
        envelope._body = body
        return envelope
