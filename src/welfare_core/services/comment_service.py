"""Comments on claims.

Comments are append-only. A claimant commenting on their own PENDING claim
moves it to IN_REVIEW; a reviewer comment notifies the claimant without
changing the status.
"""

from uuid import UUID

import sqlalchemy as sa
from beartype import beartype
from sqlalchemy.ext.asyncio import AsyncConnection

from ..core.database import Database
from ..core.errors import ClaimError, Forbidden, NotFound, ValidationError
from ..core.fiscal_year import Clock, system_clock
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..core.tables import claim_comments, claims
from ..models.actor import ActorKind
from ..models.claim import Claim, ClaimComment, ClaimStatus
from .audit_trail import AuditAction, AuditTrail
from .claim_service import read_claim
from .claim_workflow import apply_transition
from .notifications import NotificationEmitter
from .transaction_helpers import with_connection, with_transaction

logger = get_logger(__name__)

MAX_COMMENT_LENGTH = 5000


class CommentService:
    """Service for the comment side-channel of a claim."""

    def __init__(
        self,
        db: Database,
        notifier: NotificationEmitter,
        audit: AuditTrail,
        clock: Clock = system_clock,
    ) -> None:
        if not db or not hasattr(db, "transaction"):
            raise ValueError("Database connection required and must be active")

        self._db = db
        self._notifier = notifier
        self._audit = audit
        self._clock = clock

    @beartype
    async def add_comment(
        self,
        claim_id: UUID,
        author_id: UUID,
        author_kind: ActorKind,
        text: str,
    ) -> Result[ClaimComment, ClaimError]:
        """Append a comment, moving a PENDING claim to IN_REVIEW for claimants."""
        body = text.strip()
        if not body:
            return Err(ValidationError("Comment text is required", "text"))
        if len(body) > MAX_COMMENT_LENGTH:
            return Err(
                ValidationError(
                    f"Comment must be at most {MAX_COMMENT_LENGTH} characters", "text"
                )
            )
        now = self._clock()
        claim_holder: list[Claim] = []

        async def _operation(conn: AsyncConnection) -> Result[ClaimComment, ClaimError]:
            claim = await read_claim(conn, claim_id)
            if claim is None:
                return Err(NotFound("Claim", str(claim_id)))
            if author_kind is ActorKind.CLAIMANT and claim.claimant_id != author_id:
                return Err(Forbidden("Claimants may only comment on their own claims"))
            claim_holder.append(claim)

            inserted = await conn.execute(
                claim_comments.insert()
                .values(
                    claim_id=claim_id,
                    author_id=author_id,
                    author_kind=author_kind.value,
                    body=body,
                    created_at=now,
                )
                .returning(claim_comments.c.id)
            )
            comment_id = inserted.scalar_one()

            if author_kind is ActorKind.CLAIMANT and claim.status is ClaimStatus.PENDING:
                moved = await apply_transition(
                    conn,
                    claim_id,
                    ClaimStatus.IN_REVIEW,
                    sources=frozenset({ClaimStatus.PENDING}),
                    updated_at=now,
                )
                if isinstance(moved, Err):
                    # A reviewer acted first; the comment still stands.
                    logger.info(
                        "Claim %s left PENDING before comment %d: %s",
                        claim_id,
                        comment_id,
                        moved.unwrap_err().message,
                    )

            return Ok(
                ClaimComment(
                    id=comment_id,
                    claim_id=claim_id,
                    author_id=author_id,
                    author_kind=author_kind,
                    body=body,
                    created_at=now,
                )
            )

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok):
            if author_kind is ActorKind.REVIEWER:
                await self._notifier.claim_comment(claim_holder[0], body, now)
            await self._audit.record(
                AuditAction.CLAIM_COMMENTED,
                claim_id,
                author_id,
                now,
                author_kind=author_kind.value,
            )
        return result

    @beartype
    async def list_comments(
        self,
        claim_id: UUID,
        requester_id: UUID,
        requester_kind: ActorKind,
    ) -> Result[list[ClaimComment], ClaimError]:
        """Comments oldest first; claimants only see their own claims."""

        async def _operation(conn: AsyncConnection) -> Result[list[ClaimComment], ClaimError]:
            owner = (
                await conn.execute(
                    sa.select(claims.c.claimant_id).where(claims.c.id == claim_id)
                )
            ).first()
            if owner is None:
                return Err(NotFound("Claim", str(claim_id)))
            if requester_kind is ActorKind.CLAIMANT and owner.claimant_id != requester_id:
                return Err(Forbidden("Claimants may only read their own claims"))

            rows = await conn.execute(
                sa.select(claim_comments)
                .where(claim_comments.c.claim_id == claim_id)
                .order_by(claim_comments.c.created_at, claim_comments.c.id)
            )
            return Ok([ClaimComment.model_validate(dict(row)) for row in rows.mappings()])

        return await with_connection(self._db, _operation)
