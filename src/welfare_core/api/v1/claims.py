"""Claim endpoints: submission, review workflow, comments and history.

Claimants see and act on their own claims only. Reviewer operations are
gated by the capability table in ``services.authorization``.
"""

from decimal import Decimal
from uuid import UUID

from beartype import beartype
from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.errors import ClaimError, Forbidden
from ...core.result_types import Err, Ok, Result
from ...models.actor import Actor, ActorKind
from ...models.claim import (
    Claim,
    ClaimApproval,
    ClaimComment,
    ClaimStatus,
    ClaimSubmission,
)
from ...services.authorization import ClaimAction, authorize, can_perform
from ...services.claim_service import ClaimService
from ...services.comment_service import CommentService
from ..dependencies import (
    PaginationParams,
    get_claim_service,
    get_comment_service,
    get_current_actor,
)
from ..response_patterns import ErrorResponse, handle_result

router = APIRouter()


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )


class AdminApprovalRequest(_ApiModel):
    """First-stage approval."""

    comments: str | None = Field(default=None, max_length=2000)


class ManagerApprovalRequest(_ApiModel):
    """Final approval, optionally granting less than requested."""

    approved_amount: Decimal | None = Field(
        default=None,
        decimal_places=2,
        max_digits=12,
        description="Override of the requested amount; defaults to requested",
    )
    comments: str | None = Field(default=None, max_length=2000)


class RejectionRequest(_ApiModel):
    reason: str = Field(..., max_length=2000)


class CommentRequest(_ApiModel):
    text: str = Field(...)


class WithdrawalResponse(_ApiModel):
    id: UUID
    withdrawn: bool = True


@beartype
def _ensure_visible(actor: Actor, claim: Claim) -> Result[Claim, ClaimError]:
    """Claimants may only see their own claims; viewers see all."""
    if actor.kind is ActorKind.CLAIMANT:
        if claim.claimant_id != actor.actor_id:
            return Err(Forbidden("Claimants may only read their own claims"))
        return Ok(claim)
    if not can_perform(actor, ClaimAction.VIEW_ALL_CLAIMS):
        return Err(Forbidden("Reviewer may not view claims"))
    return Ok(claim)


@router.post("/", status_code=status.HTTP_201_CREATED)
@beartype
async def submit_claim(
    submission: ClaimSubmission,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: ClaimService = Depends(get_claim_service),
) -> Claim | ErrorResponse:
    """Submit a new claim for the calling claimant.

    The amount is computed from the sub-program; the claim starts PENDING.
    """
    if actor.kind is not ActorKind.CLAIMANT:
        return handle_result(Err(Forbidden("Only claimants may submit claims")), response)
    result = await service.submit_claim(actor.actor_id, submission)
    return handle_result(result, response, status.HTTP_201_CREATED)


@router.get("/")
@beartype
async def list_claims(
    response: Response,
    pagination: PaginationParams = Depends(),
    claim_status: ClaimStatus | None = Query(default=None, alias="status"),
    fiscal_year: int | None = Query(default=None, ge=2000, le=2200),
    claimant_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    service: ClaimService = Depends(get_claim_service),
) -> list[Claim] | ErrorResponse:
    """List claims newest first.

    Claimants always get their own claims; reviewers may filter by claimant.
    """
    if actor.kind is ActorKind.CLAIMANT:
        claimant_id = actor.actor_id
    else:
        allowed = authorize(actor, ClaimAction.VIEW_ALL_CLAIMS)
        if isinstance(allowed, Err):
            return handle_result(allowed, response)

    result = await service.list_claims(
        claimant_id=claimant_id,
        status=claim_status,
        fiscal_year=fiscal_year,
        limit=pagination.limit,
        offset=pagination.skip,
    )
    return handle_result(result, response)


@router.get("/{claim_id}")
@beartype
async def get_claim(
    claim_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: ClaimService = Depends(get_claim_service),
) -> Claim | ErrorResponse:
    result = await service.get_claim(claim_id)
    if isinstance(result, Err):
        return handle_result(result, response)
    return handle_result(_ensure_visible(actor, result.unwrap()), response)


@router.delete("/{claim_id}")
@beartype
async def withdraw_claim(
    claim_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: ClaimService = Depends(get_claim_service),
) -> WithdrawalResponse | ErrorResponse:
    """Withdraw an own claim while it is still PENDING."""
    if actor.kind is not ActorKind.CLAIMANT:
        return handle_result(
            Err(Forbidden("Only the claimant may withdraw a claim")), response
        )
    result = await service.withdraw_claim(claim_id, actor.actor_id)
    return handle_result(
        result.map(lambda withdrawn: WithdrawalResponse(id=withdrawn)), response
    )


@router.post("/{claim_id}/admin-approve")
@beartype
async def approve_as_admin(
    claim_id: UUID,
    response: Response,
    body: AdminApprovalRequest | None = None,
    actor: Actor = Depends(get_current_actor),
    service: ClaimService = Depends(get_claim_service),
) -> Claim | ErrorResponse:
    allowed = authorize(actor, ClaimAction.ADMIN_APPROVE)
    if isinstance(allowed, Err):
        return handle_result(allowed, response)
    result = await service.approve_as_admin(
        claim_id, actor.actor_id, comments=body.comments if body else None
    )
    return handle_result(result, response)


@router.post("/{claim_id}/manager-approve")
@beartype
async def approve_as_manager(
    claim_id: UUID,
    response: Response,
    body: ManagerApprovalRequest | None = None,
    actor: Actor = Depends(get_current_actor),
    service: ClaimService = Depends(get_claim_service),
) -> Claim | ErrorResponse:
    """Complete an ADMIN_APPROVED claim and charge the quota ledger.

    Returns 422 when the claimant's quota no longer fits the amount; the
    claim then stays ADMIN_APPROVED.
    """
    allowed = authorize(actor, ClaimAction.MANAGER_APPROVE)
    if isinstance(allowed, Err):
        return handle_result(allowed, response)
    result = await service.approve_as_manager(
        claim_id,
        actor.actor_id,
        approved_amount=body.approved_amount if body else None,
        comments=body.comments if body else None,
    )
    return handle_result(result, response)


@router.post("/{claim_id}/reject")
@beartype
async def reject_claim(
    claim_id: UUID,
    body: RejectionRequest,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: ClaimService = Depends(get_claim_service),
) -> Claim | ErrorResponse:
    allowed = authorize(actor, ClaimAction.REJECT)
    if isinstance(allowed, Err):
        return handle_result(allowed, response)
    result = await service.reject(claim_id, actor.actor_id, body.reason)
    return handle_result(result, response)


@router.get("/{claim_id}/approvals")
@beartype
async def list_approvals(
    claim_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: ClaimService = Depends(get_claim_service),
) -> list[ClaimApproval] | ErrorResponse:
    claim = await service.get_claim(claim_id)
    if isinstance(claim, Err):
        return handle_result(claim, response)
    visible = _ensure_visible(actor, claim.unwrap())
    if isinstance(visible, Err):
        return handle_result(visible, response)
    return handle_result(await service.get_approvals(claim_id), response)


@router.post("/{claim_id}/comments", status_code=status.HTTP_201_CREATED)
@beartype
async def add_comment(
    claim_id: UUID,
    body: CommentRequest,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: CommentService = Depends(get_comment_service),
) -> ClaimComment | ErrorResponse:
    result = await service.add_comment(claim_id, actor.actor_id, actor.kind, body.text)
    return handle_result(result, response, status.HTTP_201_CREATED)


@router.get("/{claim_id}/comments")
@beartype
async def list_comments(
    claim_id: UUID,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    service: CommentService = Depends(get_comment_service),
) -> list[ClaimComment] | ErrorResponse:
    result = await service.list_comments(claim_id, actor.actor_id, actor.kind)
    return handle_result(result, response)
