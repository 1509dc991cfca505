"""Retry scheduling with exponential backoff.

The scheduler only decides *when* a failed delivery is retried. It writes
a retry queue entry; ``RetryWorker`` performs the call.

Backoff for a failure of attempt ``n``:

    delay = retry_delay * backoff_multiplier ** (n - 1)

With retry_delay=60 and backoff_multiplier=2: 60s, 120s, 240s, ...
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from courier.models import RetryPolicy, RetryQueueEntry, utc_now

if TYPE_CHECKING:
    from courier.models import DeliveryAttempt, EventEnvelope, WebhookSubscription
    from courier.storage import CourierStorage

logger = logging.getLogger(__name__)


def compute_backoff(policy: RetryPolicy, attempt_number: int) -> float:
    """Delay in seconds before retrying a failure of ``attempt_number``.

    Args:
        policy: Subscription retry policy.
        attempt_number: Attempt that just failed (1-indexed).

    Returns:
        Delay in seconds.
    """
    if attempt_number < 1:
        raise ValueError(f"attempt_number must be >= 1, got {attempt_number}")
    return float(policy.retry_delay * policy.backoff_multiplier ** (attempt_number - 1))


class RetryScheduler:
    """Enqueues retries for failed deliveries.

    Example:
        ```python
        scheduler = RetryScheduler(storage)
        entry = await scheduler.schedule_retry(subscription, envelope, attempt, 1)
        if entry is None:
            ...  # retries exhausted
        ```
    """

    def __init__(self, storage: CourierStorage) -> None:
        self._storage = storage

    async def schedule_retry(
        self,
        subscription: WebhookSubscription,
        envelope: EventEnvelope,
        failed_attempt: DeliveryAttempt,
        attempt_number: int,
        now: datetime | None = None,
    ) -> RetryQueueEntry | None:
        """Schedule the next attempt after a failed one.

        The entry carries the exact envelope body and ``attempt_number + 1``.
        No entry is created once that next attempt would exceed the
        subscription's ``max_retries``; the chain ends there.

        Args:
            subscription: Subscription the delivery failed for.
            envelope: Envelope that was sent.
            failed_attempt: The recorded failed attempt.
            attempt_number: Attempt number that failed.
            now: Scheduling time (defaults to current UTC time).

        Returns:
            The queued entry, or None if retries are exhausted.
        """
        policy = subscription.retry_config
        next_attempt = attempt_number + 1

        if next_attempt > policy.max_retries:
            logger.warning(
                "Webhook retries exhausted: %s to %s after attempt %d",
                envelope.event.value,
                subscription.url,
                attempt_number,
            )
            return None

        now = now or utc_now()
        delay = compute_backoff(policy, attempt_number)
        entry = RetryQueueEntry(
            webhook_id=subscription.id,
            original_delivery_id=failed_attempt.id,
            payload=envelope.body,
            attempt=next_attempt,
            retry_at=now + timedelta(seconds=delay),
            created_at=now,
        )
        await self._storage.enqueue_retry(entry)

        logger.info(
            "Webhook scheduled for retry: %s to %s (attempt %d at %s)",
            envelope.event.value,
            subscription.url,
            next_attempt,
            entry.retry_at.isoformat(),
        )
        return entry
