"""Quota endpoints for claimants."""

from uuid import UUID

from beartype import beartype
from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from ...core.errors import Forbidden
from ...core.result_types import Err
from ...models.actor import Actor, ActorKind
from ...models.quota import ClaimEligibility, QuotaSummaryItem, UsageSnapshot
from ...services.authorization import ClaimAction, can_perform
from ...services.quota_service import QuotaService
from ..dependencies import get_current_actor, get_quota_service
from ..response_patterns import ErrorResponse, handle_result

router = APIRouter()


class EligibilityRequest(BaseModel):
    """Would-be submission to check against the caller's quota."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    sub_program_id: UUID = Field(...)
    nights: int | None = Field(default=None)
    fiscal_year: int | None = Field(default=None, ge=2000, le=2200)


@beartype
def _resolve_claimant(actor: Actor, claimant_id: UUID | None) -> UUID | None:
    """Whose quota the caller may read; None when not allowed."""
    if actor.kind is ActorKind.CLAIMANT:
        if claimant_id not in (None, actor.actor_id):
            return None
        return actor.actor_id
    if claimant_id is None or not can_perform(actor, ClaimAction.VIEW_ALL_CLAIMS):
        return None
    return claimant_id


_FORBIDDEN = Err(Forbidden("Quota is only visible to its claimant and reviewers"))


@router.get("/summary")
@beartype
async def get_quota_summary(
    response: Response,
    fiscal_year: int | None = Query(default=None, ge=2000, le=2200),
    claimant_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    service: QuotaService = Depends(get_quota_service),
) -> list[QuotaSummaryItem] | ErrorResponse:
    """Per sub-program limits, usage and remaining allowance."""
    target = _resolve_claimant(actor, claimant_id)
    if target is None:
        return handle_result(_FORBIDDEN, response)
    result = await service.get_quota_summary(target, fiscal_year)
    return handle_result(result, response)


@router.get("/usage/{sub_program_id}")
@beartype
async def get_quota_usage(
    sub_program_id: UUID,
    response: Response,
    fiscal_year: int | None = Query(default=None, ge=2000, le=2200),
    claimant_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    service: QuotaService = Depends(get_quota_service),
) -> UsageSnapshot | ErrorResponse:
    target = _resolve_claimant(actor, claimant_id)
    if target is None:
        return handle_result(_FORBIDDEN, response)
    result = await service.get_quota_usage(target, sub_program_id, fiscal_year)
    return handle_result(result, response)


@router.post("/validate")
@beartype
async def check_eligibility(
    request: EligibilityRequest,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: QuotaService = Depends(get_quota_service),
) -> ClaimEligibility | ErrorResponse:
    """Dry run of a submission for the calling claimant.

    Always 200 for a claimable sub-program; ``is_valid`` and ``errors``
    tell whether the claim would pass.
    """
    if actor.kind is not ActorKind.CLAIMANT:
        return handle_result(_FORBIDDEN, response)
    result = await service.check_eligibility(
        actor.actor_id, request.sub_program_id, request.nights, request.fiscal_year
    )
    return handle_result(result, response)
