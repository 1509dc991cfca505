"""Signed webhook delivery.

One call per (subscription, attempt):
- HMAC-SHA256 signature over the exact body bytes sent
- Subscription-level deadline; timeouts, DNS and connection errors are
  recorded uniformly as status code 0
- An immutable DeliveryAttempt is recorded for every call
- Failures are handed to the retry scheduler

``deliver`` never raises. A failure for one subscriber is recorded and
returned, so it cannot affect delivery to any other subscriber.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

import httpx

from courier.config import settings
from courier.exceptions import DeliveryError
from courier.models import TRANSPORT_FAILURE, DeliveryAttempt
from courier.signing import compute_signature, generate_delivery_id

if TYPE_CHECKING:
    from courier.models import EventEnvelope, WebhookSubscription
    from courier.storage import CourierStorage

    from .scheduler import RetryScheduler

logger = logging.getLogger(__name__)


def is_success(status_code: int) -> bool:
    """Only 2xx responses count as delivered."""
    return 200 <= status_code < 300


class DeliveryExecutor:
    """Performs signed webhook calls and records their outcome.

    Example:
        ```python
        executor = DeliveryExecutor(storage, scheduler=RetryScheduler(storage))
        attempt = await executor.deliver(subscription, envelope)
        print(attempt.status, attempt.status_code, attempt.response_time)
        ```
    """

    def __init__(
        self,
        storage: CourierStorage,
        scheduler: RetryScheduler | None = None,
        user_agent: str | None = None,
        response_body_limit: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            storage: Storage used to record attempts.
            scheduler: Retry scheduler for failed deliveries (None disables retry).
            user_agent: User-Agent header. Defaults to settings.user_agent.
            response_body_limit: Characters of response text kept.
            transport: Optional httpx transport for outbound calls.
        """
        self._storage = storage
        self._scheduler = scheduler
        self._user_agent = user_agent or settings.user_agent
        self._body_limit = (
            settings.response_body_limit if response_body_limit is None else response_body_limit
        )
        self._transport = transport

    def build_headers(
        self,
        subscription: WebhookSubscription,
        envelope: EventEnvelope,
        delivery_id: str,
    ) -> dict[str, str]:
        """Assemble outbound headers for one delivery.

        Custom subscription headers are added first; the reserved headers
        and the signature are always set by the executor.
        """
        headers = dict(subscription.headers)
        headers.update(
            {
                "Content-Type": "application/json",
                "User-Agent": self._user_agent,
                "X-Webhook-Delivery": delivery_id,
                "X-Webhook-Event": envelope.event.value,
                "X-Webhook-Timestamp": envelope.timestamp_header,
            }
        )
        if subscription.secret is not None and subscription.has_secret:
            headers["X-Webhook-Signature"] = compute_signature(envelope.body, subscription.secret)
        return headers

    async def deliver(
        self,
        subscription: WebhookSubscription,
        envelope: EventEnvelope,
        attempt_number: int = 1,
    ) -> DeliveryAttempt:
        """Deliver an envelope to one subscription.

        Args:
            subscription: Destination subscription.
            envelope: Envelope to send (its cached body is sent verbatim).
            attempt_number: 1 for the first send, higher for retries.

        Returns:
            The recorded DeliveryAttempt. Never raises.
        """
        delivery_id = generate_delivery_id()
        url = str(subscription.url)
        headers = self.build_headers(subscription, envelope, delivery_id)

        status_code = TRANSPORT_FAILURE
        response_text: str | None = None
        error: str | None = None

        started = time.perf_counter()
        try:
            response = await self._post(url, envelope.body, headers, subscription.timeout)
            status_code = response.status_code
            response_text = response.text
        except DeliveryError as e:
            error = e.message
        except Exception as e:
            error = f"Unexpected error: {e}"
            logger.exception("Webhook delivery error for %s", url)
        response_time = int((time.perf_counter() - started) * 1000)

        succeeded = error is None and is_success(status_code)
        attempt = DeliveryAttempt(
            id=delivery_id,
            webhook_id=subscription.id,
            event=envelope.event,
            payload=envelope.model_dump(mode="json"),
            url=url,
            status="success" if succeeded else "failed",
            status_code=status_code,
            response_body=self._truncate(error if error is not None else response_text),
            error=error,
            response_time=response_time,
            attempt=attempt_number,
        )

        if succeeded:
            logger.info(
                "Webhook delivered: %s to %s (status %d, %dms)",
                envelope.event.value,
                url,
                status_code,
                response_time,
            )
        else:
            logger.warning(
                "Webhook delivery failed: %s to %s (status %d, attempt %d): %s",
                envelope.event.value,
                url,
                status_code,
                attempt_number,
                error or f"HTTP {status_code}",
            )

        await self._record(attempt)

        if not succeeded and subscription.retry_config.max_retries > 0:
            await self._hand_off(subscription, envelope, attempt, attempt_number)

        return attempt

    async def _post(
        self,
        url: str,
        body: str,
        headers: dict[str, str],
        timeout: float,
    ) -> httpx.Response:
        """POST the body under a total deadline of ``timeout`` seconds."""
        try:
            async with asyncio.timeout(timeout):
                async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                    return await client.post(url, content=body.encode("utf-8"), headers=headers)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise DeliveryError(f"Request timeout after {timeout:g}s") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DeliveryError(str(e) or type(e).__name__) from e

    def _truncate(self, text: str | None) -> str | None:
        if not text:
            return None
        return text[: self._body_limit]

    async def _record(self, attempt: DeliveryAttempt) -> None:
        try:
            await self._storage.log_delivery(attempt)
        except Exception:
            logger.exception("Failed to record delivery attempt %s", attempt.id)

    async def _hand_off(
        self,
        subscription: WebhookSubscription,
        envelope: EventEnvelope,
        attempt: DeliveryAttempt,
        attempt_number: int,
    ) -> None:
        if self._scheduler is None:
            return
        try:
            await self._scheduler.schedule_retry(subscription, envelope, attempt, attempt_number)
        except Exception:
            logger.exception("Failed to schedule retry for delivery %s", attempt.id)
