"""Courier service layer.

Wires storage and the webhook components together from settings so the
API, producers and tests share one construction path.

Example:
    ```python
    from courier.service import CourierService

    async with CourierService.create() as courier:
        webhook = await courier.registry.create(
            {"name": "Billing", "url": "https://billing.example.com/hook",
             "events": ["payment.succeeded", "payment.failed"]},
        )
        result = await courier.dispatcher.dispatch(
            "payment.succeeded", {"invoice_id": "inv_1", "amount": 4200}
        )
        print(f"{result.sent_count}/{result.matched_count} delivered")
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from courier.config import Settings
from courier.storage import CourierStorage
from courier.webhooks import (
    DeliveryExecutor,
    EventDispatcher,
    RetryScheduler,
    RetryWorker,
    StatisticsAggregator,
    WebhookRegistry,
)


@dataclass
class CourierService:
    """High-level Courier service.

    Attributes:
        storage: Storage backend (Qdrant).
        settings: Configuration settings.
        registry: Webhook CRUD + audit trail.
        dispatcher: Event fan-out used by producers.
        executor: Signed delivery of a single call.
        scheduler: Backoff scheduling of failed deliveries.
        worker: Background processor of the retry queue.
        stats: Per-webhook delivery statistics.
    """

    storage: CourierStorage
    settings: Settings
    registry: WebhookRegistry
    dispatcher: EventDispatcher
    executor: DeliveryExecutor
    scheduler: RetryScheduler
    worker: RetryWorker
    stats: StatisticsAggregator

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> CourierService:
        """Create a CourierService with default dependencies.

        Args:
            settings: Optional settings. Uses environment if None.
            transport: Optional httpx transport for outbound calls.

        Returns:
            Configured (not yet initialized) CourierService.
        """
        if settings is None:
            settings = Settings()

        storage = CourierStorage(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            prefix=settings.collection_prefix,
            max_scroll_limit=settings.storage_max_scroll_limit,
        )
        scheduler = RetryScheduler(storage)
        executor = DeliveryExecutor(
            storage,
            scheduler=scheduler,
            user_agent=settings.user_agent,
            response_body_limit=settings.response_body_limit,
            transport=transport,
        )
        stats = StatisticsAggregator(storage)

        return cls(
            storage=storage,
            settings=settings,
            registry=WebhookRegistry(storage, stats),
            dispatcher=EventDispatcher(storage, executor),
            executor=executor,
            scheduler=scheduler,
            worker=RetryWorker(
                storage,
                executor,
                interval_seconds=settings.retry_poll_interval_seconds,
                batch_size=settings.retry_batch_size,
            ),
            stats=stats,
        )

    async def initialize(self) -> None:
        """Initialize the service (storage collections)."""
        await self.storage.initialize()

    async def close(self) -> None:
        """Stop the retry worker and release storage."""
        await self.worker.stop()
        await self.storage.close()

    async def __aenter__(self) -> CourierService:
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


__all__ = ["CourierService"]
