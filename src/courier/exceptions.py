"""Courier exception hierarchy.

All exceptions inherit from CourierError so callers can catch every
Courier failure with a single except clause.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import pydantic


class CourierError(Exception):
    """Base exception for all Courier errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "courier_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ValidationError(CourierError):
    """Invalid input provided.

    Raised when a registry mutation or trigger request fails validation.
    Nothing is persisted when this is raised.

    Attributes:
        field: The first field that failed validation.
        details: Every failing field as ``{"field", "message"}`` dicts.
    """

    code: str = "validation_error"

    def __init__(
        self,
        field: str,
        message: str,
        details: list[dict[str, str]] | None = None,
    ) -> None:
        self.field = field
        self.details = details or [{"field": field, "message": message}]
        super().__init__(f"{field}: {message}")

    @classmethod
    def from_pydantic(cls, exc: pydantic.ValidationError) -> ValidationError:
        """Build a per-field error from a pydantic validation failure."""
        return cls.from_errors(exc.errors())

    @classmethod
    def from_errors(cls, errors: Sequence[Any]) -> ValidationError:
        """Build a per-field error from pydantic-style error dicts.

        Works for both ``pydantic.ValidationError.errors()`` and FastAPI's
        ``RequestValidationError.errors()``.
        """
        details = [_error_detail(err) for err in errors]
        first = details[0] if details else {"field": "body", "message": "Invalid input"}
        return cls(first["field"], first["message"], details=details)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "field": self.field,
                "message": self.message,
                "details": self.details,
            }
        }


# Leading loc parts naming where a FastAPI request value came from
_REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header"})


def _error_detail(err: Any) -> dict[str, str]:
    loc = [str(part) for part in err.get("loc", ())]
    if loc and loc[0] in _REQUEST_LOCATIONS:
        loc = loc[1:]
    return {"field": ".".join(loc) or "body", "message": str(err.get("msg", "Invalid value"))}


class NotFoundError(CourierError):
    """Resource not found.

    Attributes:
        resource_type: Type of resource (e.g., "webhook").
        resource_id: ID of the missing resource.
    """

    code: str = "not_found"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "resource_type": self.resource_type,
                "resource_id": self.resource_id,
                "message": self.message,
            }
        }


class StorageError(CourierError):
    """Storage operation failed.

    The only failure a business-event producer can observe from
    ``dispatch``: the subscription lookup itself could not run.
    """

    code: str = "storage_error"


class DeliveryError(CourierError):
    """An outbound webhook call failed at the transport level.

    Raised and caught inside the delivery executor; recorded on the
    delivery attempt with status code 0 and never propagated.
    """

    code: str = "delivery_error"
