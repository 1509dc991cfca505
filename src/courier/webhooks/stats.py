"""Rolling delivery statistics per subscription.

Computed fresh from storage counts on every call; nothing is cached.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from courier.models import DeliveryAttempt, utc_now

if TYPE_CHECKING:
    from courier.storage import CourierStorage

ROLLING_WINDOW = timedelta(hours=24)


class DeliveryStats(BaseModel):
    """Delivery counters for one subscription."""

    model_config = ConfigDict(extra="forbid")

    total: int = Field(default=0, ge=0, description="All recorded attempts")
    successful: int = Field(default=0, ge=0, description="Successful attempts")
    failed: int = Field(default=0, ge=0, description="Failed attempts")
    success_rate: float = Field(
        default=0.0, ge=0.0, le=1.0, description="successful / total, 0 when no attempts"
    )
    deliveries_24h: int = Field(default=0, ge=0, description="Attempts in the trailing 24h")
    last_delivery_at: datetime | None = Field(default=None, description="Latest attempt time")


def aggregate(attempts: Iterable[DeliveryAttempt], now: datetime | None = None) -> DeliveryStats:
    """Aggregate delivery attempts into statistics.

    Args:
        attempts: Attempts of one subscription.
        now: Evaluation time for the 24h window (defaults to now).

    Returns:
        DeliveryStats for the attempts.
    """
    now = now or utc_now()
    window_start = now - ROLLING_WINDOW

    total = successful = recent = 0
    last: datetime | None = None
    for attempt in attempts:
        total += 1
        if attempt.succeeded:
            successful += 1
        if attempt.created_at > window_start:
            recent += 1
        if last is None or attempt.created_at > last:
            last = attempt.created_at

    return DeliveryStats(
        total=total,
        successful=successful,
        failed=total - successful,
        success_rate=successful / total if total else 0.0,
        deliveries_24h=recent,
        last_delivery_at=last,
    )


class StatisticsAggregator:
    """Computes per-subscription statistics from exact storage counts.

    Counts, the 24h window and the latest attempt are all evaluated by
    storage, so the figures cover every attempt ever recorded.
    """

    def __init__(self, storage: CourierStorage) -> None:
        self._storage = storage

    async def stats_for(self, webhook_id: str, now: datetime | None = None) -> DeliveryStats:
        """Compute statistics for one subscription.

        Args:
            webhook_id: Subscription ID.
            now: Evaluation time (defaults to now).

        Returns:
            Fresh DeliveryStats.
        """
        now = now or utc_now()
        total = await self._storage.count_deliveries(webhook_id)
        if total == 0:
            return DeliveryStats()

        successful = await self._storage.count_deliveries(webhook_id, status="success")
        recent = await self._storage.count_deliveries(webhook_id, since=now - ROLLING_WINDOW)
        latest = await self._storage.get_deliveries(webhook_id, limit=1)

        return DeliveryStats(
            total=total,
            successful=successful,
            failed=total - successful,
            success_rate=successful / total,
            deliveries_24h=recent,
            last_delivery_at=latest[0].created_at if latest else None,
        )
