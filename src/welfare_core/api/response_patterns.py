"""API response patterns following Result[T, E] + HTTP semantics.

Services return typed errors; the mapping from error class to HTTP status
lives here and nowhere else.
"""

from typing import Any, TypeVar, Union

from beartype import beartype
from fastapi import Response, status
from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import (
    ClaimError,
    Forbidden,
    InvalidStateTransition,
    NotFound,
    QuotaExceeded,
    StorageError,
    ValidationError,
)
from ..core.logging_utils import get_logger
from ..core.result_types import Result

T = TypeVar("T")

logger = get_logger(__name__)

ERROR_STATUS: dict[type, int] = {
    NotFound: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    QuotaExceeded: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidStateTransition: status.HTTP_409_CONFLICT,
    Forbidden: status.HTTP_403_FORBIDDEN,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@beartype
class ErrorResponse(BaseModel):
    """Standardized error response for business logic failures."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    success: bool = Field(default=False, description="Always false for error responses")
    error: str = Field(..., description="Human-readable error message")
    error_code: str | None = Field(default=None, description="Machine-readable error code")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")


@beartype
def error_details(error: ClaimError) -> dict[str, Any] | None:
    """Structured context for errors that carry more than a message."""
    if isinstance(error, QuotaExceeded):
        return {
            "limit": error.limit,
            "limit_value": str(error.limit_value),
            "would_be_total": str(error.would_be_total),
            "excess": str(error.excess),
        }
    if isinstance(error, InvalidStateTransition):
        return {"current": error.current, "attempted": error.attempted}
    if isinstance(error, NotFound):
        return {"entity": error.entity, "entity_id": error.entity_id}
    if isinstance(error, ValidationError) and error.field_name:
        return {"field": error.field_name}
    return None


@beartype
def error_response(error: ClaimError, response: Response) -> ErrorResponse:
    response.status_code = ERROR_STATUS[type(error)]
    return ErrorResponse(
        error=error.message,
        error_code=error.code,
        details=error_details(error),
    )


@beartype
def handle_result(
    result: Result[T, ClaimError],
    response: Response,
    success_status: int = 200,
) -> Union[T, ErrorResponse]:
    """Convert a service Result to the success value or an ErrorResponse."""
    if result.is_err():
        error = result.unwrap_err()
        if isinstance(error, StorageError):
            logger.error("Request failed in storage: %s", error.message)
        return error_response(error, response)

    response.status_code = success_status
    return result.unwrap()
