"""FastAPI router for Courier API endpoints."""

from __future__ import annotations

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from courier import __version__
from courier.logging import get_logger
from courier.models import ALL_EVENT_NAMES, WebhookCreate, WebhookUpdate
from courier.service import CourierService

from .schemas import (
    DeleteResponse,
    DeliveryListResponse,
    EventCatalogResponse,
    HealthResponse,
    TriggerRequest,
    TriggerResponse,
    WebhookListResponse,
    WebhookResponse,
)

logger = get_logger(__name__)

router = APIRouter()

# Service instance (set by app lifespan)
_service: CourierService | None = None


def set_service(service: CourierService | None) -> None:
    """Set the global service instance."""
    global _service
    _service = service


async def get_service() -> CourierService:
    """Dependency to get the CourierService instance."""
    if _service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return _service


ServiceDep = Annotated[CourierService, Depends(get_service)]

# Acting user recorded on audit entries
ActorDep = Annotated[str | None, Header(alias="X-Actor-Id")]


@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check() -> HealthResponse:
    """Check service health.

    Reports whether storage is connected and the retry worker is polling.
    """
    if _service is None:
        return HealthResponse(status="unhealthy", version=__version__, storage_connected=False)
    return HealthResponse(
        status="healthy",
        version=__version__,
        storage_connected=True,
        retry_worker_running=_service.worker.running,
    )


@router.get("/webhooks", response_model=WebhookListResponse, tags=["webhooks"])
async def list_webhooks(
    service: ServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    event: str | None = None,
    status_filter: Annotated[Literal["active", "inactive"] | None, Query(alias="status")] = None,
    search: str | None = None,
    tenant_id: str | None = None,
) -> WebhookListResponse:
    """List webhooks with delivery statistics.

    Supports filtering by event, status and tenant, a case-insensitive
    search over name, URL and description, and pagination.
    """
    listing = await service.registry.list(
        event=event,
        status=status_filter,
        search=search,
        tenant_id=tenant_id,
        page=page,
        limit=limit,
    )
    return WebhookListResponse(
        webhooks=[
            WebhookResponse.from_subscription(item.webhook, item.statistics)
            for item in listing.items
        ],
        pagination=listing.pagination,
        summary=listing.summary,
        available_events=listing.available_events,
    )


@router.post(
    "/webhooks",
    response_model=WebhookResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["webhooks"],
)
async def create_webhook(
    request: WebhookCreate,
    service: ServiceDep,
    actor: ActorDep = None,
) -> WebhookResponse:
    """Register a webhook.

    A signing secret is generated when none is supplied. The response
    reports ``has_secret`` but never the secret.
    """
    subscription = await service.registry.create(request, actor=actor)
    logger.info("Webhook registered", webhook_id=subscription.id, actor=actor)
    return WebhookResponse.from_subscription(subscription)


@router.get("/webhooks/events", response_model=EventCatalogResponse, tags=["webhooks"])
async def list_events() -> EventCatalogResponse:
    """List the events a webhook can subscribe to."""
    return EventCatalogResponse(events=list(ALL_EVENT_NAMES))


@router.post("/webhooks/trigger", response_model=TriggerResponse, tags=["webhooks"])
async def trigger_event(request: TriggerRequest, service: ServiceDep) -> TriggerResponse:
    """Deliver an event to every active webhook subscribed to it.

    Returns once every delivery has resolved. Failed deliveries are
    reported per webhook and scheduled for retry.
    """
    result = await service.dispatcher.dispatch(
        request.event,
        request.payload,
        tenant_id=request.tenant_id,
        metadata=request.metadata,
    )
    logger.info(
        "Event triggered",
        event_name=request.event.value,
        matched=result.matched_count,
        sent=result.sent_count,
    )
    return TriggerResponse.model_validate(
        {"message": "Webhook event triggered", **result.to_trigger_response()}
    )


@router.get("/webhooks/{webhook_id}", response_model=WebhookResponse, tags=["webhooks"])
async def get_webhook(webhook_id: str, service: ServiceDep) -> WebhookResponse:
    """Get a webhook with fresh delivery statistics."""
    item = await service.registry.get_with_stats(webhook_id)
    return WebhookResponse.from_subscription(item.webhook, item.statistics)


@router.api_route(
    "/webhooks/{webhook_id}",
    methods=["PUT", "PATCH"],
    response_model=WebhookResponse,
    tags=["webhooks"],
)
async def update_webhook(
    webhook_id: str,
    request: WebhookUpdate,
    service: ServiceDep,
    actor: ActorDep = None,
) -> WebhookResponse:
    """Partially update a webhook.

    Only the fields in the body are changed; ``retry_config`` is merged
    field by field.
    """
    subscription = await service.registry.update(webhook_id, request, actor=actor)
    return WebhookResponse.from_subscription(subscription)


@router.delete("/webhooks/{webhook_id}", response_model=DeleteResponse, tags=["webhooks"])
async def delete_webhook(
    webhook_id: str,
    service: ServiceDep,
    actor: ActorDep = None,
) -> DeleteResponse:
    """Delete a webhook with its delivery history and pending retries."""
    await service.registry.delete(webhook_id, actor=actor)
    return DeleteResponse(message="Webhook deleted successfully")


@router.get(
    "/webhooks/{webhook_id}/deliveries",
    response_model=DeliveryListResponse,
    tags=["webhooks"],
)
async def list_deliveries(
    webhook_id: str,
    service: ServiceDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> DeliveryListResponse:
    """Get a webhook's delivery history, newest first."""
    deliveries = await service.registry.deliveries(webhook_id, limit=limit)
    return DeliveryListResponse(
        webhook_id=webhook_id,
        deliveries=deliveries,
        count=len(deliveries),
    )
