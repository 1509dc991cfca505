"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from courier.models import WebhookSubscription
from courier.storage import CourierStorage

# Add tests directory to path so helpers here can be imported by test modules
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

TEST_SECRET = "whsec_test_secret_value"


class RecordingTransport(httpx.AsyncBaseTransport):
    """httpx transport that records requests and answers from a handler.

    The handler receives the request and returns a response, or raises an
    httpx exception to simulate a transport failure.
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response] | None = None) -> None:
        self.handler = handler or (lambda request: httpx.Response(200, text="ok"))
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        return self.handler(request)

    def bodies(self) -> list[dict[str, Any]]:
        """Decoded JSON bodies of every recorded request."""
        return [json.loads(r.content) for r in self.requests]


def respond_by_host(statuses: dict[str, int]) -> Callable[[httpx.Request], httpx.Response]:
    """Handler answering with a fixed status per destination host."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(statuses.get(request.url.host, 200), text="ack")

    return handler


@pytest.fixture
async def storage():
    """In-memory storage using qdrant-client's local mode."""
    store = CourierStorage(url=":memory:", prefix="test")
    await store.initialize()

    yield store

    await store.close()


@pytest.fixture
def make_subscription() -> Callable[..., WebhookSubscription]:
    """Factory for subscriptions with sensible defaults."""

    def factory(**overrides: Any) -> WebhookSubscription:
        fields: dict[str, Any] = {
            "name": "Test hook",
            "url": "https://hooks.example.com/receive",
            "events": ["deal.created"],
            "secret": TEST_SECRET,
        }
        fields.update(overrides)
        return WebhookSubscription(**fields)

    return factory


@pytest.fixture
def transport() -> RecordingTransport:
    """Transport answering 200 to every request."""
    return RecordingTransport()


@pytest.fixture
async def paged_storage():
    """In-memory storage that pages through scrolls ten records at a time."""
    store = CourierStorage(url=":memory:", prefix="paged", max_scroll_limit=10)
    await store.initialize()

    yield store

    await store.close()
