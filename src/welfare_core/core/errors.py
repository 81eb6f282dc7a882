"""Typed business errors carried inside ``Err`` results.

Services never raise for expected failures. Each public operation returns
``Result[T, ClaimError]`` and the HTTP layer maps the error class to a
status code. Every error exposes a human readable ``message`` and a
machine readable ``code``.
"""

from decimal import Decimal
from typing import ClassVar

from attrs import field, frozen


@frozen
class NotFound:
    """The referenced entity does not exist (or is not available)."""

    code: ClassVar[str] = "NOT_FOUND"

    entity: str = field()
    entity_id: str = field()

    @property
    def message(self) -> str:
        return f"{self.entity} {self.entity_id} not found"


@frozen
class ValidationError:
    """Malformed or missing input."""

    code: ClassVar[str] = "VALIDATION_ERROR"

    message: str = field()
    field_name: str | None = field(default=None)


@frozen
class QuotaExceeded:
    """The claim would breach a configured limit."""

    code: ClassVar[str] = "QUOTA_EXCEEDED"

    limit: str = field()
    limit_value: Decimal = field()
    would_be_total: Decimal = field()
    detail: str | None = field(default=None)

    @property
    def excess(self) -> Decimal:
        """How far the would-be total goes past the limit."""
        return self.would_be_total - self.limit_value

    @property
    def message(self) -> str:
        if self.detail:
            return self.detail
        return (
            f"{self.limit} exceeded: limit {self.limit_value}, "
            f"would be {self.would_be_total} (over by {self.excess})"
        )


@frozen
class InvalidStateTransition:
    """The claim's current status does not allow the requested transition."""

    code: ClassVar[str] = "INVALID_STATE_TRANSITION"

    current: str = field()
    attempted: str = field()

    @property
    def message(self) -> str:
        return f"Cannot move claim from {self.current} to {self.attempted}"


@frozen
class Forbidden:
    """The caller has no rights over the resource."""

    code: ClassVar[str] = "FORBIDDEN"

    message: str = field()


@frozen
class StorageError:
    """The unit of work failed in the storage layer and was rolled back."""

    code: ClassVar[str] = "STORAGE_ERROR"

    message: str = field()


ClaimError = (
    NotFound
    | ValidationError
    | QuotaExceeded
    | InvalidStateTransition
    | Forbidden
    | StorageError
)

__all__ = [
    "ClaimError",
    "Forbidden",
    "InvalidStateTransition",
    "NotFound",
    "QuotaExceeded",
    "StorageError",
    "ValidationError",
]
