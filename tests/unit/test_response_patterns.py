"""Tests for mapping service results onto HTTP responses."""

from decimal import Decimal

import pytest
from fastapi import Response

from welfare_core.api.response_patterns import ErrorResponse, error_details, handle_result
from welfare_core.core.errors import (
    ClaimError,
    Forbidden,
    InvalidStateTransition,
    NotFound,
    QuotaExceeded,
    StorageError,
    ValidationError,
)
from welfare_core.core.result_types import Err, Ok


class TestHandleResult:
    def test_success_value_and_status(self) -> None:
        response = Response()
        assert handle_result(Ok({"id": 1}), response, 201) == {"id": 1}
        assert response.status_code == 201

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (NotFound("Claim", "1"), 404),
            (ValidationError("bad", "nights"), 400),
            (QuotaExceeded("max_per_year", Decimal("5000"), Decimal("5100")), 422),
            (InvalidStateTransition("COMPLETED", "REJECTED"), 409),
            (Forbidden("nope"), 403),
            (StorageError("down"), 503),
        ],
    )
    def test_error_status(self, error: ClaimError, status_code: int) -> None:
        response = Response()

        body = handle_result(Err(error), response)

        assert response.status_code == status_code
        assert isinstance(body, ErrorResponse)
        assert body.success is False
        assert body.error == error.message
        assert body.error_code == error.code


class TestErrorDetails:
    def test_quota_details(self) -> None:
        details = error_details(QuotaExceeded("max_per_year", Decimal("5000"), Decimal("5100")))
        assert details == {
            "limit": "max_per_year",
            "limit_value": "5000",
            "would_be_total": "5100",
            "excess": "100",
        }

    def test_transition_details(self) -> None:
        details = error_details(InvalidStateTransition("PENDING", "COMPLETED"))
        assert details == {"current": "PENDING", "attempted": "COMPLETED"}

    def test_validation_without_field(self) -> None:
        assert error_details(ValidationError("bad")) is None
        assert error_details(ValidationError("bad", "text")) == {"field": "text"}

    def test_plain_errors(self) -> None:
        assert error_details(Forbidden("nope")) is None
