"""Quota usage and eligibility models."""

from decimal import Decimal
from uuid import UUID

from beartype import beartype
from pydantic import Field

from .base import BaseModelConfig
from .welfare import UnitType


@beartype
class UsageSnapshot(BaseModelConfig):
    """Consumption of one claimant for one sub-program.

    Year figures cover one fiscal year; lifetime figures cover every fiscal
    year of the same claimant and sub-program.
    """

    claimant_id: UUID = Field(...)
    sub_program_id: UUID = Field(...)
    fiscal_year: int = Field(...)
    used_amount_year: Decimal = Field(default=Decimal("0"), ge=0)
    used_amount_lifetime: Decimal = Field(default=Decimal("0"), ge=0)
    used_claims_year: int = Field(default=0, ge=0)
    used_claims_lifetime: int = Field(default=0, ge=0)

    @classmethod
    def empty(
        cls, claimant_id: UUID, sub_program_id: UUID, fiscal_year: int
    ) -> "UsageSnapshot":
        """Zero usage, for keys with no ledger entry yet."""
        return cls(
            claimant_id=claimant_id,
            sub_program_id=sub_program_id,
            fiscal_year=fiscal_year,
        )


@beartype
class QuotaViolation(BaseModelConfig):
    """One breached limit."""

    limit: str = Field(..., description="Limit name, e.g. max_per_year")
    limit_value: Decimal = Field(...)
    would_be_total: Decimal = Field(...)
    message: str = Field(...)


@beartype
class ClaimEligibility(BaseModelConfig):
    """Outcome of validating a prospective claim."""

    is_valid: bool = Field(...)
    calculated_amount: Decimal = Field(...)
    fiscal_year: int = Field(...)
    remaining_yearly: Decimal | None = Field(default=None)
    remaining_lifetime: Decimal | None = Field(default=None)
    remaining_claims_yearly: int | None = Field(default=None)
    remaining_claims_lifetime: int | None = Field(default=None)
    message: str | None = Field(default=None, description="First violation")
    errors: list[QuotaViolation] = Field(default_factory=list)


@beartype
class QuotaSummaryItem(BaseModelConfig):
    """Per sub-program row of a claimant's quota summary."""

    program_id: UUID = Field(...)
    program_name: str = Field(...)
    sub_program_id: UUID = Field(...)
    sub_program_name: str = Field(...)
    unit_type: UnitType = Field(...)
    amount: Decimal = Field(...)
    fiscal_year: int = Field(...)
    max_per_request: Decimal | None = Field(default=None)
    max_per_year: Decimal | None = Field(default=None)
    max_lifetime: Decimal | None = Field(default=None)
    max_claims_per_year: int | None = Field(default=None)
    max_claims_lifetime: int | None = Field(default=None)
    used_amount_year: Decimal = Field(...)
    used_amount_lifetime: Decimal = Field(...)
    used_claims_year: int = Field(...)
    used_claims_lifetime: int = Field(...)
    remaining_yearly: Decimal | None = Field(default=None)
    remaining_lifetime: Decimal | None = Field(default=None)
    remaining_claims_yearly: int | None = Field(default=None)
    remaining_claims_lifetime: int | None = Field(default=None)
    can_claim: bool = Field(...)
