"""Tests for retry scheduling and backoff."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from courier.models import DeliveryAttempt, EventEnvelope, RetryPolicy
from courier.webhooks.scheduler import RetryScheduler, compute_backoff

NOW = datetime(2026, 5, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def mock_storage() -> AsyncMock:
    """Storage mock recording enqueued retries."""
    storage = AsyncMock()
    storage.enqueue_retry = AsyncMock(side_effect=lambda entry: entry.id)
    return storage


@pytest.fixture
def envelope() -> EventEnvelope:
    return EventEnvelope(event="payment.failed", data={"invoice_id": "inv_9"})


def failed_attempt(webhook_id: str, attempt: int = 1) -> DeliveryAttempt:
    return DeliveryAttempt(
        webhook_id=webhook_id,
        event="payment.failed",
        url="https://example.com",
        status="failed",
        status_code=500,
        attempt=attempt,
    )


class TestComputeBackoff:
    """Tests for compute_backoff."""

    def test_default_policy_sequence(self):
        """Default policy doubles from 60 seconds."""
        policy = RetryPolicy()
        assert [compute_backoff(policy, n) for n in (1, 2, 3, 4)] == [60, 120, 240, 480]

    def test_custom_policy(self):
        """Delay is retry_delay * multiplier ** (n - 1)."""
        policy = RetryPolicy(retry_delay=10, backoff_multiplier=3)
        assert compute_backoff(policy, 1) == 10
        assert compute_backoff(policy, 3) == 90

    @pytest.mark.parametrize("multiplier", [1, 1.5, 2, 10])
    def test_monotonic_non_decreasing(self, multiplier):
        """Backoff never shrinks as the attempt number grows."""
        policy = RetryPolicy(retry_delay=5, backoff_multiplier=multiplier)
        delays = [compute_backoff(policy, n) for n in range(1, 11)]
        assert delays == sorted(delays)

    def test_multiplier_one_is_constant(self):
        """A multiplier of 1 gives a fixed delay."""
        policy = RetryPolicy(retry_delay=30, backoff_multiplier=1)
        assert {compute_backoff(policy, n) for n in range(1, 6)} == {30}

    def test_attempt_number_must_be_positive(self):
        """Attempt numbers start at 1."""
        with pytest.raises(ValueError):
            compute_backoff(RetryPolicy(), 0)


class TestRetryScheduler:
    """Tests for RetryScheduler.schedule_retry."""

    async def test_first_failure_schedules_attempt_two(
        self, mock_storage, make_subscription, envelope
    ):
        """A first failure schedules attempt 2 after the base delay."""
        sub = make_subscription()
        scheduler = RetryScheduler(mock_storage)
        attempt = failed_attempt(sub.id)

        entry = await scheduler.schedule_retry(sub, envelope, attempt, 1, now=NOW)

        assert entry is not None
        assert entry.attempt == 2
        assert entry.retry_at == NOW + timedelta(seconds=60)
        assert entry.webhook_id == sub.id
        assert entry.original_delivery_id == attempt.id
        assert entry.payload == envelope.body
        mock_storage.enqueue_retry.assert_awaited_once_with(entry)

    async def test_scenario_retry_chain_stops_at_max(
        self, mock_storage, make_subscription, envelope
    ):
        """max_retries=3, delay 60, multiplier 2: entries at +60s and +120s, then none."""
        sub = make_subscription(
            retry_config=RetryPolicy(max_retries=3, retry_delay=60, backoff_multiplier=2)
        )
        scheduler = RetryScheduler(mock_storage)

        second, third, fourth = [
            await scheduler.schedule_retry(sub, envelope, failed_attempt(sub.id, n), n, now=NOW)
            for n in (1, 2, 3)
        ]

        assert second is not None and second.attempt == 2
        assert second.retry_at == NOW + timedelta(seconds=60)
        assert third is not None and third.attempt == 3
        assert third.retry_at == NOW + timedelta(seconds=120)
        assert fourth is None
        assert mock_storage.enqueue_retry.await_count == 2

    async def test_zero_max_retries_never_schedules(
        self, mock_storage, make_subscription, envelope
    ):
        """With max_retries=0 nothing is ever queued."""
        sub = make_subscription(retry_config=RetryPolicy(max_retries=0))
        scheduler = RetryScheduler(mock_storage)

        assert await scheduler.schedule_retry(sub, envelope, failed_attempt(sub.id), 1) is None
        mock_storage.enqueue_retry.assert_not_awaited()

    async def test_attempt_numbers_increase_along_chain(
        self, mock_storage, make_subscription, envelope
    ):
        """Each scheduled entry carries exactly one more than the failed attempt."""
        sub = make_subscription(retry_config=RetryPolicy(max_retries=10))
        scheduler = RetryScheduler(mock_storage)

        numbers = []
        for n in range(1, 10):
            entry = await scheduler.schedule_retry(sub, envelope, failed_attempt(sub.id, n), n)
            assert entry is not None
            numbers.append(entry.attempt)

        assert numbers == list(range(2, 11))

    async def test_persists_to_real_storage(self, storage, make_subscription, envelope):
        """Scheduled entries land in the retry queue."""
        sub = make_subscription()
        scheduler = RetryScheduler(storage)

        entry = await scheduler.schedule_retry(sub, envelope, failed_attempt(sub.id), 1, now=NOW)

        stored = await storage.get_retries(sub.id)
        assert [e.id for e in stored] == [entry.id]
        assert stored[0].payload == envelope.body
