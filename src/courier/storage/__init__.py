"""Storage backend for Courier.

Persists subscriptions, delivery attempts, retry queue entries and the
activity log in Qdrant (payload-only records).

Example:
    ```python
    from courier.storage import CourierStorage

    async with CourierStorage() as storage:
        await storage.store_subscription(subscription)
    ```
"""

from .base import COLLECTION_NAMES
from .client import CourierStorage

__all__ = [
    "COLLECTION_NAMES",
    "CourierStorage",
]
