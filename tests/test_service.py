"""Tests for CourierService."""

import json

import httpx
import pytest
from conftest import RecordingTransport

from courier.config import Settings
from courier.service import CourierService
from courier.signing import verify_signature
from courier.webhooks import (
    DeliveryExecutor,
    EventDispatcher,
    RetryScheduler,
    RetryWorker,
    StatisticsAggregator,
    WebhookRegistry,
    build_envelope,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        qdrant_url=":memory:",
        collection_prefix="svc",
        user_agent="Courier-Test/0.1",
        retry_poll_interval_seconds=0.05,
    )


class TestCourierServiceCreate:
    """Tests for CourierService.create factory."""

    def test_wires_components(self, settings):
        """Every component is built and shares one storage."""
        service = CourierService.create(settings)

        assert service.settings is settings
        assert isinstance(service.registry, WebhookRegistry)
        assert isinstance(service.dispatcher, EventDispatcher)
        assert isinstance(service.executor, DeliveryExecutor)
        assert isinstance(service.scheduler, RetryScheduler)
        assert isinstance(service.worker, RetryWorker)
        assert isinstance(service.stats, StatisticsAggregator)
        assert service.storage._collection_name("webhooks").startswith("svc")

    def test_executor_uses_configured_user_agent(self, settings, make_subscription):
        service = CourierService.create(settings)
        envelope = build_envelope("deal.created", {})

        headers = service.executor.build_headers(make_subscription(), envelope, "whd_1")

        assert headers["User-Agent"] == "Courier-Test/0.1"


class TestCourierServiceLifecycle:
    """Tests for initialization and shutdown."""

    async def test_context_manager(self, settings):
        """The async context manager initializes and closes storage."""
        async with CourierService.create(settings) as service:
            assert await service.registry.list() is not None

    async def test_close_stops_worker(self, settings):
        """Closing the service stops a running retry worker."""
        service = CourierService.create(settings)
        await service.initialize()
        service.worker.start()
        assert service.worker.running

        await service.close()

        assert not service.worker.running


class TestCourierServiceEndToEnd:
    """Register, dispatch and inspect through the service."""

    async def test_register_dispatch_and_stats(self, settings):
        transport = RecordingTransport()
        async with CourierService.create(settings, transport=transport) as service:
            webhook = await service.registry.create(
                {
                    "name": "Billing",
                    "url": "https://billing.example.com/hook",
                    "events": ["payment.succeeded"],
                    "secret": "billing-secret",
                },
                actor="user_1",
            )

            result = await service.dispatcher.dispatch(
                "payment.succeeded", {"invoice_id": "inv_1", "amount": 4200}
            )
            item = await service.registry.get_with_stats(webhook.id)

        assert result.matched_count == 1
        assert result.sent_count == 1
        request = transport.requests[0]
        assert json.loads(request.content)["data"]["invoice_id"] == "inv_1"
        assert verify_signature(
            request.content, "billing-secret", request.headers["x-webhook-signature"]
        )
        assert item.statistics.total == 1
        assert item.statistics.successful == 1

    async def test_failed_delivery_retried_by_worker(self, settings):
        """A failure is queued and the worker's retry succeeds."""
        responses = iter([503, 200])
        transport = RecordingTransport(lambda request: httpx.Response(next(responses)))
        async with CourierService.create(settings, transport=transport) as service:
            webhook = await service.registry.create(
                {
                    "name": "Flaky",
                    "url": "https://flaky.example.com/hook",
                    "events": ["deal.created"],
                    "retry_config": {"retry_delay": 1},
                }
            )
            await service.dispatcher.dispatch("deal.created", {"id": "d1"})
            queued = await service.storage.get_retries(webhook.id)

            processed = await service.worker.process_due(now=queued[0].retry_at)
            history = await service.registry.deliveries(webhook.id)

        assert processed == 1
        assert [(a.attempt, a.status) for a in history] == [(2, "success"), (1, "failed")]
        assert transport.requests[0].content == transport.requests[1].content
