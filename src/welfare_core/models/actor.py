"""Identity of the caller performing an operation."""

from enum import Enum
from uuid import UUID

from beartype import beartype
from pydantic import Field, model_validator

from .base import BaseModelConfig


class ActorKind(str, Enum):
    """Who is acting: the employee who owns claims, or back-office staff."""

    CLAIMANT = "claimant"
    REVIEWER = "reviewer"


class ReviewerRole(str, Enum):
    """Back-office roles. PRIMARY may do everything ADMIN and MANAGER can."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    PRIMARY = "PRIMARY"


@beartype
class Actor(BaseModelConfig):
    """Authenticated caller."""

    actor_id: UUID = Field(..., description="Claimant or reviewer id")
    kind: ActorKind = Field(...)
    role: ReviewerRole | None = Field(
        default=None, description="Reviewer role; always None for claimants"
    )

    @model_validator(mode="after")
    def validate_role(self) -> "Actor":
        if self.kind is ActorKind.CLAIMANT and self.role is not None:
            raise ValueError("Claimants cannot carry a reviewer role")
        return self

    @property
    def is_reviewer(self) -> bool:
        return self.kind is ActorKind.REVIEWER
