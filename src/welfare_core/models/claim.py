"""Claim domain models.

A claim is created on submission in ``PENDING`` and is only ever mutated
through the workflow transitions. ``approved_amount`` exists exactly when
the claim is ``COMPLETED``.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Final
from uuid import UUID

from beartype import beartype
from pydantic import Field, model_validator

from .actor import ActorKind
from .base import BaseModelConfig


class ClaimStatus(str, Enum):
    """Enumeration of claim processing states."""

    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    ADMIN_APPROVED = "ADMIN_APPROVED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


TERMINAL_STATUSES: Final = frozenset({ClaimStatus.COMPLETED, ClaimStatus.REJECTED})


class ApprovalStep(str, Enum):
    """Entry types of the approval trail."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    REJECT = "REJECT"


@beartype
class ClaimDocument(BaseModelConfig):
    """Descriptor returned by the document store for an uploaded file."""

    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=1024)
    file_type: str = Field(..., min_length=1, max_length=100)
    file_size: int = Field(..., ge=0)


@beartype
class ClaimSubmission(BaseModelConfig):
    """Claim request as made by a claimant.

    ``nights`` is left unconstrained here so that the validator can report a
    missing or non-positive value as a business validation error.
    """

    sub_program_id: UUID = Field(...)
    nights: int | None = Field(default=None)
    beneficiary_name: str | None = Field(default=None, max_length=200)
    beneficiary_relation: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=5000)
    fiscal_year: int | None = Field(
        default=None,
        ge=2000,
        le=2200,
        description="Defaults to the fiscal year of the current date",
    )
    documents: list[ClaimDocument] = Field(default_factory=list, max_length=20)


@beartype
class Claim(BaseModelConfig):
    """Central claim entity."""

    id: UUID = Field(...)
    claim_number: str = Field(..., pattern=r"^WC-\d{4}-[0-9A-F]{8}$")
    claimant_id: UUID = Field(...)
    sub_program_id: UUID = Field(...)
    sub_program_name: str | None = Field(default=None)
    fiscal_year: int = Field(...)
    requested_amount: Decimal = Field(..., ge=0, decimal_places=2)
    approved_amount: Decimal | None = Field(default=None, decimal_places=2)
    nights: int | None = Field(default=None)
    beneficiary_name: str | None = Field(default=None)
    beneficiary_relation: str | None = Field(default=None)
    description: str | None = Field(default=None)
    status: ClaimStatus = Field(...)
    admin_approver_id: UUID | None = Field(default=None)
    admin_approved_at: datetime | None = Field(default=None)
    manager_approver_id: UUID | None = Field(default=None)
    manager_approved_at: datetime | None = Field(default=None)
    rejection_reason: str | None = Field(default=None)
    submitted_at: datetime = Field(...)
    completed_at: datetime | None = Field(default=None)
    updated_at: datetime = Field(...)
    documents: list[ClaimDocument] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_approved_amount(self) -> "Claim":
        """Approved amount is present exactly on completed claims."""
        completed = self.status is ClaimStatus.COMPLETED
        if completed != (self.approved_amount is not None):
            raise ValueError("approved_amount must be set if and only if COMPLETED")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@beartype
class ClaimComment(BaseModelConfig):
    """Append-only note on a claim."""

    id: int = Field(...)
    claim_id: UUID = Field(...)
    author_id: UUID = Field(...)
    author_kind: ActorKind = Field(...)
    body: str = Field(...)
    created_at: datetime = Field(...)


@beartype
class ClaimApproval(BaseModelConfig):
    """Approval trail entry."""

    id: int = Field(...)
    claim_id: UUID = Field(...)
    approver_id: UUID = Field(...)
    step: ApprovalStep = Field(...)
    comments: str | None = Field(default=None)
    created_at: datetime = Field(...)
