# WelfareCore - Employee Welfare Claims Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Welfare program catalog models.

A program (e.g. Medical) groups sub-programs; the sub-program is the
configurable benefit rule claims are made against.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from beartype import beartype
from pydantic import Field, model_validator

from .base import BaseModelConfig, IdentifiableModel


class UnitType(str, Enum):
    """How the claimable amount is derived from the per-unit amount."""

    LUMP_SUM = "LUMP_SUM"
    PER_NIGHT = "PER_NIGHT"


@beartype
class RequiredDocument(BaseModelConfig):
    """Document descriptor a claimant is asked to attach."""

    name: str = Field(..., min_length=1, max_length=200)
    is_required: bool = Field(default=True)


@beartype
class SubProgramLimits(BaseModelConfig):
    """Limits shared by creation, update and read models.

    ``None`` means unlimited. Zero is a valid limit that allows nothing.
    """

    max_per_request: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    max_per_year: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    max_lifetime: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    max_claims_per_year: int | None = Field(default=None, ge=0)
    max_claims_lifetime: int | None = Field(default=None, ge=0)


@beartype
class WelfareSubProgram(IdentifiableModel, SubProgramLimits):
    """Benefit rule nested under a program."""

    program_id: UUID = Field(...)
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None)
    unit_type: UnitType = Field(...)
    amount: Decimal = Field(
        ..., gt=0, max_digits=12, decimal_places=2, description="Per-unit amount"
    )
    is_active: bool = Field(default=True)
    sort_order: int = Field(default=0)
    program_active: bool = Field(
        default=True, description="Active flag of the parent program"
    )

    @property
    def is_claimable(self) -> bool:
        """A sub-program accepts claims only while it and its parent are active."""
        return self.is_active and self.program_active


@beartype
class WelfareProgram(IdentifiableModel):
    """Benefit category with its sub-programs."""

    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None)
    is_active: bool = Field(default=True)
    sort_order: int = Field(default=0)
    required_documents: list[RequiredDocument] = Field(default_factory=list)
    sub_programs: list[WelfareSubProgram] = Field(default_factory=list)


@beartype
class WelfareProgramCreate(BaseModelConfig):
    code: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Z0-9_]+$")
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    sort_order: int = Field(default=0)
    required_documents: list[RequiredDocument] = Field(
        default_factory=list, max_length=20
    )


@beartype
class WelfareSubProgramCreate(SubProgramLimits):
    program_id: UUID = Field(...)
    code: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Z0-9_]+$")
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    unit_type: UnitType = Field(...)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    sort_order: int = Field(default=0)


@beartype
class WelfareSubProgramUpdate(BaseModelConfig):
    """Partial update; only fields explicitly set are applied.

    Limits can be cleared back to unlimited by sending ``null``.
    """

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    unit_type: UnitType | None = Field(default=None)
    amount: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    max_per_request: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    max_per_year: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    max_lifetime: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    max_claims_per_year: int | None = Field(default=None, ge=0)
    max_claims_lifetime: int | None = Field(default=None, ge=0)
    is_active: bool | None = Field(default=None)
    sort_order: int | None = Field(default=None)

    @model_validator(mode="after")
    def reject_cleared_fields(self) -> "WelfareSubProgramUpdate":
        # Non-limit fields may be omitted but not cleared.
        for name in ("name", "unit_type", "amount", "is_active", "sort_order"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self


@beartype
class DeletionOutcome(BaseModelConfig):
    """Result of a delete request that may degrade into a deactivation."""

    id: UUID = Field(...)
    deleted: bool = Field(..., description="Row physically removed")
    deactivated: bool = Field(..., description="Row kept but marked inactive")
