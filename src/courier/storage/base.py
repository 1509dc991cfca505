"""Base storage class and helpers.

Contains client lifecycle, collection management, and shared utilities
for the mixins that make up ``CourierStorage``.
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any, Literal, TypeVar

from pydantic import BaseModel
from qdrant_client import AsyncQdrantClient, models

from courier.config import settings

ModelT = TypeVar("ModelT", bound=BaseModel)

# Collection names by record kind
COLLECTION_NAMES = {
    "webhooks": "webhooks",
    "deliveries": "webhook_deliveries",
    "retry_queue": "webhook_retry_queue",
    "activity": "activity_log",
}

# Keyword payload indexes per record kind (used for filtering)
KEYWORD_INDEXES = {
    "webhooks": ("events", "tenant_id"),
    "deliveries": ("webhook_id", "status"),
    "retry_queue": ("webhook_id",),
    "activity": ("entity_id", "tenant_id"),
}

# Datetime field mirrored per record kind as an epoch-seconds float, so range
# filters, counts and ordered scrolls run inside Qdrant
TIME_KEYS = {
    "webhooks": ("created_at", "created_ts"),
    "deliveries": ("created_at", "created_ts"),
    "retry_queue": ("retry_at", "retry_ts"),
    "activity": ("timestamp", "timestamp_ts"),
}
_STORAGE_ONLY_KEYS = frozenset(time_key for _, time_key in TIME_KEYS.values())

# Records are looked up by payload only; every point carries this vector
PLACEHOLDER_VECTOR = [1.0]


class StorageBase:
    """Base class for Courier storage.

    Provides:
    - Client initialization and lifecycle management
    - Collection creation and indexing
    - Point ID derivation
    - Paged scrolling, ordered scrolling, counting and payload deserialization

    Reads never truncate silently: ``_scroll_all`` pages through every
    matching point, and bounded reads go through ``_scroll_ordered`` so the
    records kept are the first ones by time, not by point ID.
    """

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        prefix: str | None = None,
        max_scroll_limit: int | None = None,
    ) -> None:
        """Initialize storage client settings.

        Args:
            url: Qdrant server URL, or ":memory:" for local mode.
                Defaults to settings.qdrant_url.
            api_key: Qdrant API key. Defaults to settings.qdrant_api_key.
            prefix: Collection name prefix. Defaults to settings.collection_prefix.
            max_scroll_limit: Records fetched per scroll request when paging.
        """
        self._url = url or settings.qdrant_url
        self._api_key = api_key or settings.qdrant_api_key
        self._prefix = prefix or settings.collection_prefix
        self._max_scroll_limit = max_scroll_limit or settings.storage_max_scroll_limit
        self._client: AsyncQdrantClient | None = None

    @property
    def client(self) -> AsyncQdrantClient:
        """Get the Qdrant client, raising if not initialized."""
        if self._client is None:
            raise RuntimeError("Storage not initialized. Call initialize() first.")
        return self._client

    async def initialize(self) -> None:
        """Create the client and ensure collections exist."""
        if self._url == ":memory:":
            self._client = AsyncQdrantClient(location=":memory:")
        else:
            self._client = AsyncQdrantClient(url=self._url, api_key=self._api_key)
        await self._ensure_collections()

    async def close(self) -> None:
        """Close the client connection."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    def _collection_name(self, kind: str) -> str:
        """Get full collection name with prefix."""
        return f"{self._prefix}_{COLLECTION_NAMES.get(kind, kind)}"

    @staticmethod
    def _point_id(kind: str, record_id: str) -> str:
        """Derive a deterministic UUID-format point ID for a record.

        Qdrant only accepts UUIDs or unsigned integers as point IDs.
        """
        h = hashlib.sha256(f"{kind}/{record_id}".encode()).hexdigest()[:32]
        return f"{h[:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"

    async def _ensure_collections(self) -> None:
        """Ensure all required collections exist with indexes."""
        collections = await self.client.get_collections()
        existing = {c.name for c in collections.collections}

        for kind in COLLECTION_NAMES:
            collection_name = self._collection_name(kind)
            if collection_name in existing:
                continue
            await self.client.create_collection(
                collection_name=collection_name,
                vectors_config=models.VectorParams(
                    size=len(PLACEHOLDER_VECTOR),
                    distance=models.Distance.DOT,
                ),
            )
            for field_name in KEYWORD_INDEXES.get(kind, ()):
                await self.client.create_payload_index(
                    collection_name=collection_name,
                    field_name=field_name,
                    field_schema=models.PayloadSchemaType.KEYWORD,
                )
            # Range filters and order_by need a float index on the time key
            await self.client.create_payload_index(
                collection_name=collection_name,
                field_name=TIME_KEYS[kind][1],
                field_schema=models.PayloadSchemaType.FLOAT,
            )

    @classmethod
    def _since(cls, kind: str, since: datetime) -> models.FieldCondition:
        """Condition: the record's time key is strictly after ``since``."""
        return models.FieldCondition(
            key=TIME_KEYS[kind][1], range=models.Range(gt=since.timestamp())
        )

    @classmethod
    def _until(cls, kind: str, until: datetime) -> models.FieldCondition:
        """Condition: the record's time key is at or before ``until``."""
        return models.FieldCondition(
            key=TIME_KEYS[kind][1], range=models.Range(lte=until.timestamp())
        )

    async def _upsert(self, kind: str, record_id: str, payload: dict[str, Any]) -> None:
        field_name, time_key = TIME_KEYS[kind]
        stored = dict(payload)
        stored[time_key] = datetime.fromisoformat(payload[field_name]).timestamp()
        await self.client.upsert(
            collection_name=self._collection_name(kind),
            points=[
                models.PointStruct(
                    id=self._point_id(kind, record_id),
                    vector=PLACEHOLDER_VECTOR,
                    payload=stored,
                )
            ],
        )

    async def _retrieve(self, kind: str, record_id: str) -> dict[str, Any] | None:
        results = await self.client.retrieve(
            collection_name=self._collection_name(kind),
            ids=[self._point_id(kind, record_id)],
            with_payload=True,
        )
        if not results:
            return None
        return results[0].payload

    async def _scroll_all(
        self,
        kind: str,
        conditions: list[models.Condition] | None = None,
    ) -> list[dict[str, Any]]:
        """Scroll every matching payload, one page of ``max_scroll_limit`` at a time."""
        scroll_filter = models.Filter(must=conditions) if conditions else None
        payloads: list[dict[str, Any]] = []
        offset: Any = None

        while True:
            points, offset = await self.client.scroll(
                collection_name=self._collection_name(kind),
                scroll_filter=scroll_filter,
                limit=self._max_scroll_limit,
                offset=offset,
                with_payload=True,
            )
            payloads.extend(p.payload for p in points if p.payload is not None)
            if offset is None:
                return payloads

    async def _scroll_ordered(
        self,
        kind: str,
        conditions: list[models.Condition] | None,
        limit: int,
        direction: Literal["asc", "desc"] = "desc",
    ) -> list[dict[str, Any]]:
        """Get the first ``limit`` matching payloads ordered by the kind's time key."""
        points, _ = await self.client.scroll(
            collection_name=self._collection_name(kind),
            scroll_filter=models.Filter(must=conditions) if conditions else None,
            limit=limit,
            order_by=models.OrderBy(
                key=TIME_KEYS[kind][1],
                direction=models.Direction.DESC if direction == "desc" else models.Direction.ASC,
            ),
            with_payload=True,
        )
        return [p.payload for p in points if p.payload is not None]

    async def _count(self, kind: str, conditions: list[models.Condition] | None = None) -> int:
        result = await self.client.count(
            collection_name=self._collection_name(kind),
            count_filter=models.Filter(must=conditions) if conditions else None,
            exact=True,
        )
        return result.count

    async def _delete_record(self, kind: str, record_id: str) -> None:
        await self.client.delete(
            collection_name=self._collection_name(kind),
            points_selector=models.PointIdsList(points=[self._point_id(kind, record_id)]),
        )

    async def _delete_where(self, kind: str, conditions: list[models.Condition]) -> None:
        await self.client.delete(
            collection_name=self._collection_name(kind),
            points_selector=models.FilterSelector(filter=models.Filter(must=conditions)),
        )

    @staticmethod
    def _match(key: str, value: Any) -> models.FieldCondition:
        return models.FieldCondition(key=key, match=models.MatchValue(value=value))

    @staticmethod
    def _to_model(payload: dict[str, Any], model_class: type[ModelT]) -> ModelT:
        fields = {k: v for k, v in payload.items() if k not in _STORAGE_ONLY_KEYS}
        return model_class.model_validate(fields)
