"""Event fan-out to matching webhook subscriptions.

The dispatcher is the only interface business-event producers use. It
finds active subscriptions for an event, builds one envelope, and runs
one delivery per subscription concurrently. Producers never see HTTP
detail; the only error they can observe is a failed subscription lookup.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from courier.exceptions import StorageError, ValidationError
from courier.models import DeliveryResult, DispatchResult, EventEnvelope, EventName

if TYPE_CHECKING:
    from courier.models import DeliveryAttempt, WebhookSubscription
    from courier.storage import CourierStorage

    from .delivery import DeliveryExecutor

logger = logging.getLogger(__name__)


def build_envelope(
    event: EventName | str,
    payload: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
) -> EventEnvelope:
    """Build the envelope for one dispatch.

    Raises:
        ValidationError: If the event name is not in the catalog.
    """
    try:
        return EventEnvelope(event=event, data=payload or {}, metadata=metadata or {})
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


class EventDispatcher:
    """Dispatches events to every subscribed webhook.

    Example:
        ```python
        dispatcher = EventDispatcher(storage, executor)
        result = await dispatcher.dispatch("deal.created", {"id": "d1"})
        print(result.matched_count, result.sent_count)
        ```
    """

    def __init__(self, storage: CourierStorage, executor: DeliveryExecutor) -> None:
        self._storage = storage
        self._executor = executor

    async def dispatch(
        self,
        event: EventName | str,
        payload: dict[str, Any] | None = None,
        tenant_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> DispatchResult:
        """Deliver an event to all active subscriptions that include it.

        All deliveries run concurrently and the call returns once every one
        of them has resolved. One subscriber's failure never affects the
        others; failures show up in the returned results and delivery history.

        Args:
            event: Event name from the catalog.
            payload: Event data.
            tenant_id: Restrict delivery to this tenant's subscriptions.
            metadata: Optional producer metadata added to the envelope.

        Returns:
            DispatchResult with matched/sent counts and per-delivery results.

        Raises:
            ValidationError: If the event name is not in the catalog.
            StorageError: If the subscription lookup fails.
        """
        envelope = build_envelope(event, payload, metadata)

        try:
            subscriptions = await self._storage.find_subscriptions_for_event(
                envelope.event, tenant_id=tenant_id
            )
        except Exception as e:
            raise StorageError(
                f"Subscription lookup failed for {envelope.event.value}: {e}"
            ) from e

        if not subscriptions:
            logger.debug("No webhooks subscribed to event %s", envelope.event.value)
            return DispatchResult()

        attempts = await self._fan_out(subscriptions, envelope)
        results = [DeliveryResult.from_attempt(a) for a in attempts]
        sent = sum(1 for r in results if r.success)

        logger.info(
            "Dispatched %s to %d webhook(s), %d delivered",
            envelope.event.value,
            len(subscriptions),
            sent,
        )
        return DispatchResult(
            matched_count=len(subscriptions),
            sent_count=sent,
            deliveries=results,
        )

    async def trigger(
        self,
        event: EventName | str,
        payload: dict[str, Any] | None = None,
        tenant_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Dispatch and report in the trigger-response shape.

        Returns:
            ``{"deliveries": [...], "total_webhooks": n, "successful_deliveries": m}``
        """
        result = await self.dispatch(event, payload, tenant_id=tenant_id, metadata=metadata)
        return result.to_trigger_response()

    async def _fan_out(
        self,
        subscriptions: list[WebhookSubscription],
        envelope: EventEnvelope,
    ) -> list[DeliveryAttempt]:
        return list(
            await asyncio.gather(
                *(self._executor.deliver(subscription, envelope) for subscription in subscriptions)
            )
        )
