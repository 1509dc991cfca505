"""ActivityEntry model - audit trail of registry mutations."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .base import generate_id, utc_now

ActivityAction = Literal[
    "webhook.created",
    "webhook.updated",
    "webhook.deleted",
]


class ActivityEntry(BaseModel):
    """Audit log entry for a webhook registry mutation.

    Attributes:
        id: Unique identifier for this entry.
        timestamp: When the mutation happened.
        actor: Who performed it (None for system actions).
        action: What was done.
        entity_type: Type of the mutated entity.
        entity_id: ID of the mutated entity.
        tenant_id: Tenant of the entity (optional).
        metadata: Action-specific details.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("act"))
    timestamp: datetime = Field(default_factory=utc_now)
    actor: str | None = Field(default=None, description="Acting user")
    action: ActivityAction = Field(description="Mutation performed")
    entity_type: str = Field(default="webhook", description="Entity type")
    entity_id: str = Field(description="Entity ID")
    tenant_id: str | None = Field(default=None, description="Tenant (optional)")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Action details")

    @classmethod
    def for_created(
        cls,
        webhook_id: str,
        name: str,
        events: list[str],
        url: str,
        actor: str | None = None,
        tenant_id: str | None = None,
    ) -> "ActivityEntry":
        """Create entry for a webhook registration."""
        return cls(
            actor=actor,
            action="webhook.created",
            entity_id=webhook_id,
            tenant_id=tenant_id,
            metadata={"webhook_name": name, "events": events, "url": url},
        )

    @classmethod
    def for_updated(
        cls,
        webhook_id: str,
        name: str,
        changes: list[str],
        actor: str | None = None,
        tenant_id: str | None = None,
    ) -> "ActivityEntry":
        """Create entry for a webhook update."""
        return cls(
            actor=actor,
            action="webhook.updated",
            entity_id=webhook_id,
            tenant_id=tenant_id,
            metadata={"webhook_name": name, "changes": changes},
        )

    @classmethod
    def for_deleted(
        cls,
        webhook_id: str,
        name: str,
        actor: str | None = None,
        tenant_id: str | None = None,
    ) -> "ActivityEntry":
        """Create entry for a webhook deletion."""
        return cls(
            actor=actor,
            action="webhook.deleted",
            entity_id=webhook_id,
            tenant_id=tenant_id,
            metadata={"webhook_name": name},
        )
