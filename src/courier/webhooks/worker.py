"""Retry queue worker.

Polls the retry queue for entries whose scheduled time has arrived and
re-runs the delivery with the stored attempt number. Once its subscription
has been looked up, an entry is deleted whatever the delivery outcome; a
renewed failure makes the executor ask the scheduler for the next entry,
so the chain ends when the scheduler declines. An entry whose lookup
fails stays queued and is picked up again by a later poll.

Usage::

    worker = RetryWorker(storage, executor, interval_seconds=5.0)
    worker.start()
    ...
    await worker.stop()
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING

from courier.logging import get_logger
from courier.models import EventEnvelope, RetryQueueEntry, utc_now

if TYPE_CHECKING:
    from courier.storage import CourierStorage

    from .delivery import DeliveryExecutor

logger = get_logger(__name__)


class RetryWorker:
    """In-process worker that drains due retry entries.

    Entries are processed concurrently; one failing entry never stops the
    others or the polling loop.
    """

    def __init__(
        self,
        storage: CourierStorage,
        executor: DeliveryExecutor,
        interval_seconds: float = 5.0,
        batch_size: int = 100,
    ) -> None:
        """Initialize the worker.

        Args:
            storage: Storage holding the retry queue.
            executor: Executor used to re-run deliveries.
            interval_seconds: Seconds between polls.
            batch_size: Maximum due entries processed per poll.
        """
        self._storage = storage
        self._executor = executor
        self._interval = interval_seconds
        self._batch_size = batch_size
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def process_due(self, now: datetime | None = None, limit: int | None = None) -> int:
        """Process every retry entry that is due.

        Args:
            now: Evaluation time (defaults to now).
            limit: Maximum entries to process (defaults to the batch size).

        Returns:
            Number of entries processed.
        """
        now = now or utc_now()
        entries = await self._storage.get_due_retries(now, limit=limit or self._batch_size)
        if not entries:
            return 0

        results = await asyncio.gather(
            *(self._process_entry(entry) for entry in entries),
            return_exceptions=True,
        )
        for entry, result in zip(entries, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Retry entry failed", entry_id=entry.id, error=str(result))

        logger.info("Processed retry entries", count=len(entries))
        return len(entries)

    async def _process_entry(self, entry: RetryQueueEntry) -> None:
        # A failed lookup leaves the entry queued for the next poll
        subscription = await self._storage.get_subscription(entry.webhook_id)
        try:
            if subscription is None or not subscription.is_active:
                logger.info(
                    "Dropping retry for missing or inactive webhook",
                    entry_id=entry.id,
                    webhook_id=entry.webhook_id,
                )
                return

            envelope = EventEnvelope.from_body(entry.payload)
            await self._executor.deliver(subscription, envelope, attempt_number=entry.attempt)
        finally:
            await self._storage.delete_retry(entry.id)

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Poll until ``stop_event`` is set.

        Args:
            stop_event: Event that ends the loop (defaults to the one ``stop()`` sets).
        """
        stop_event = stop_event or self._stop_event
        logger.info("Retry worker started", interval_seconds=self._interval)
        while not stop_event.is_set():
            try:
                await self.process_due()
            except Exception:
                logger.exception("Retry worker poll failed")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                pass
        logger.info("Retry worker stopped")

    def start(self) -> None:
        """Start polling in a background task."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop polling and wait for the current poll to finish."""
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
