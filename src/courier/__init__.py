"""Courier: reliable webhook delivery.

Registers webhook subscriptions for business events and delivers signed
HTTP callbacks to them, retrying failed deliveries with exponential
backoff.

Quick Start:
    from courier.service import CourierService

    async with CourierService.create() as courier:
        # Register a subscriber
        webhook = await courier.registry.create(
            {
                "name": "CRM sync",
                "url": "https://crm.example.com/hooks/deals",
                "events": ["deal.created", "deal.status_changed"],
            },
            actor="user_42",
        )

        # Fan an event out to every active subscriber
        result = await courier.dispatcher.dispatch(
            "deal.created", {"deal_id": "deal_1", "value": 12000}
        )

Subscribers verify the ``X-Webhook-Signature`` header with
``courier.signing.verify_signature`` (or any HMAC-SHA256 implementation)
and deduplicate on ``X-Webhook-Delivery``.
"""

__version__ = "0.1.0"

# Configuration
from .config import Settings, settings

# Exceptions
from .exceptions import (
    CourierError,
    DeliveryError,
    NotFoundError,
    StorageError,
    ValidationError,
)

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

# Models
from .models import (
    ALL_EVENT_NAMES,
    ActivityEntry,
    DeliveryAttempt,
    EventEnvelope,
    EventName,
    RetryPolicy,
    RetryQueueEntry,
    WebhookCreate,
    WebhookSubscription,
    WebhookUpdate,
)

# Service
from .service import CourierService

# Signing
from .signing import compute_signature, generate_secret, verify_signature

__all__ = [
    "__version__",
    # Configuration
    "Settings",
    "settings",
    # Exceptions
    "CourierError",
    "DeliveryError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    # Logging
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    # Models
    "ALL_EVENT_NAMES",
    "ActivityEntry",
    "DeliveryAttempt",
    "EventEnvelope",
    "EventName",
    "RetryPolicy",
    "RetryQueueEntry",
    "WebhookCreate",
    "WebhookSubscription",
    "WebhookUpdate",
    # Service
    "CourierService",
    # Signing
    "compute_signature",
    "generate_secret",
    "verify_signature",
]
