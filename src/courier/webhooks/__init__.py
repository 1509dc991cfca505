"""Webhook delivery engine.

Components:
    - WebhookRegistry: validated CRUD + audit trail
    - EventDispatcher: fan-out of one event to every matching subscription
    - DeliveryExecutor: one signed POST and its recorded outcome
    - RetryScheduler: exponential backoff into the retry queue
    - RetryWorker: re-runs due retries
    - StatisticsAggregator: rolling per-subscription counters

Example:
    ```python
    from courier.webhooks import EventDispatcher

    result = await dispatcher.dispatch("payment.succeeded", {"invoice_id": "inv_1"})
    ```
"""

from courier.signing import compute_signature, verify_signature

from .delivery import DeliveryExecutor, is_success
from .dispatcher import EventDispatcher, build_envelope
from .registry import (
    Pagination,
    RegistrySummary,
    WebhookListing,
    WebhookRegistry,
    WebhookStatus,
    WebhookWithStats,
)
from .scheduler import RetryScheduler, compute_backoff
from .stats import ROLLING_WINDOW, DeliveryStats, StatisticsAggregator, aggregate
from .worker import RetryWorker

__all__ = [
    "ROLLING_WINDOW",
    "DeliveryExecutor",
    "DeliveryStats",
    "EventDispatcher",
    "Pagination",
    "RegistrySummary",
    "RetryScheduler",
    "RetryWorker",
    "StatisticsAggregator",
    "WebhookListing",
    "WebhookRegistry",
    "WebhookStatus",
    "WebhookWithStats",
    "aggregate",
    "build_envelope",
    "compute_backoff",
    "compute_signature",
    "is_success",
    "verify_signature",
]
