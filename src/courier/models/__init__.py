"""Models for Courier.

Records:
    - WebhookSubscription: registered destination + subscribed events
      (WebhookCreate / WebhookUpdate are its registry inputs)
    - DeliveryAttempt: one outbound call and its outcome (immutable)
    - RetryQueueEntry: a scheduled retry of a failed delivery
    - ActivityEntry: audit trail of registry mutations

Transient:
    - EventEnvelope: canonical payload sent to every subscriber
    - DeliveryResult, DispatchResult: outcomes reported to producers
"""

from .activity import ActivityAction, ActivityEntry
from .base import generate_id, utc_now
from .delivery import (
    TRANSPORT_FAILURE,
    DeliveryAttempt,
    DeliveryResult,
    DeliveryStatus,
    DispatchResult,
    RetryQueueEntry,
)
from .events import ALL_EVENT_NAMES, EventEnvelope, EventName
from .subscription import (
    RESERVED_HEADERS,
    RetryPolicy,
    RetryPolicyUpdate,
    WebhookCreate,
    WebhookSubscription,
    WebhookUpdate,
)

__all__ = [
    # Helpers
    "generate_id",
    "utc_now",
    # Events
    "ALL_EVENT_NAMES",
    "EventEnvelope",
    "EventName",
    # Subscriptions
    "RESERVED_HEADERS",
    "RetryPolicy",
    "RetryPolicyUpdate",
    "WebhookCreate",
    "WebhookSubscription",
    "WebhookUpdate",
    # Deliveries
    "TRANSPORT_FAILURE",
    "DeliveryAttempt",
    "DeliveryResult",
    "DeliveryStatus",
    "DispatchResult",
    "RetryQueueEntry",
    # Audit
    "ActivityAction",
    "ActivityEntry",
]
