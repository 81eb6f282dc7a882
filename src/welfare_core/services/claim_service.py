# WelfareCore - Employee Welfare Claims Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Claim lifecycle service.

Drives a claim from submission through admin and manager approval, or to
rejection. Every operation runs as one unit of work: the status change, the
approval trail entry and, on completion, the quota posting commit together
or not at all. Notifications and audit events are dispatched only after
the commit.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

import sqlalchemy as sa
from beartype import beartype
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection

from ..core.config import get_settings
from ..core.database import Database
from ..core.errors import (
    ClaimError,
    Forbidden,
    InvalidStateTransition,
    NotFound,
    ValidationError,
)
from ..core.fiscal_year import Clock, current_fiscal_year, system_clock
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..core.tables import (
    claim_approvals,
    claim_comments,
    claim_documents,
    claims,
    welfare_sub_programs,
)
from ..models.claim import (
    ApprovalStep,
    Claim,
    ClaimApproval,
    ClaimDocument,
    ClaimStatus,
    ClaimSubmission,
)
from .audit_trail import AuditAction, AuditTrail
from .catalog_service import CatalogService, read_sub_program
from .claim_validator import ClaimValidator, find_violations, quota_exceeded
from .claim_workflow import apply_transition, read_status
from .notifications import NotificationEmitter
from .performance_monitor import performance_monitor
from .quota_ledger import QuotaLedger, lock_entry, read_usage, record_usage
from .transaction_helpers import with_connection, with_transaction

logger = get_logger(__name__)

CENT = Decimal("0.01")
WITHDRAWN = "WITHDRAWN"


def new_claim_number(fiscal_year: int) -> str:
    return f"WC-{fiscal_year}-{uuid4().hex[:8].upper()}"


def _row_to_claim(row: RowMapping, documents: list[ClaimDocument]) -> Claim:
    return Claim(
        id=row["id"],
        claim_number=row["claim_number"],
        claimant_id=row["claimant_id"],
        sub_program_id=row["sub_program_id"],
        sub_program_name=row["sub_program_name"],
        fiscal_year=row["fiscal_year"],
        requested_amount=row["requested_amount"],
        approved_amount=row["approved_amount"],
        nights=row["nights"],
        beneficiary_name=row["beneficiary_name"],
        beneficiary_relation=row["beneficiary_relation"],
        description=row["description"],
        status=row["status"],
        admin_approver_id=row["admin_approver_id"],
        admin_approved_at=row["admin_approved_at"],
        manager_approver_id=row["manager_approver_id"],
        manager_approved_at=row["manager_approved_at"],
        rejection_reason=row["rejection_reason"],
        submitted_at=row["submitted_at"],
        completed_at=row["completed_at"],
        updated_at=row["updated_at"],
        documents=documents,
    )


def _claim_query() -> sa.Select:
    return sa.select(
        claims, welfare_sub_programs.c.name.label("sub_program_name")
    ).join(welfare_sub_programs, welfare_sub_programs.c.id == claims.c.sub_program_id)


async def _read_documents(
    conn: AsyncConnection, claim_ids: list[UUID]
) -> dict[UUID, list[ClaimDocument]]:
    documents: dict[UUID, list[ClaimDocument]] = {claim_id: [] for claim_id in claim_ids}
    if not claim_ids:
        return documents
    rows = await conn.execute(
        sa.select(claim_documents)
        .where(claim_documents.c.claim_id.in_(claim_ids))
        .order_by(claim_documents.c.id)
    )
    for row in rows.mappings():
        documents[row["claim_id"]].append(
            ClaimDocument(
                file_name=row["file_name"],
                file_url=row["file_url"],
                file_type=row["file_type"],
                file_size=row["file_size"],
            )
        )
    return documents


@beartype
async def read_claim(conn: AsyncConnection, claim_id: UUID) -> Claim | None:
    """Claim with its documents and sub-program name."""
    row = (
        await conn.execute(_claim_query().where(claims.c.id == claim_id))
    ).mappings().first()
    if row is None:
        return None
    documents = await _read_documents(conn, [claim_id])
    return _row_to_claim(row, documents[claim_id])


async def _append_approval(
    conn: AsyncConnection,
    claim_id: UUID,
    approver_id: UUID,
    step: ApprovalStep,
    comments: str | None,
    at: datetime,
) -> None:
    await conn.execute(
        claim_approvals.insert().values(
            claim_id=claim_id,
            approver_id=approver_id,
            step=step.value,
            comments=comments,
            created_at=at,
        )
    )


class ClaimService:
    """Service for the claim lifecycle."""

    def __init__(
        self,
        db: Database,
        catalog: CatalogService,
        notifier: NotificationEmitter,
        audit: AuditTrail,
        clock: Clock = system_clock,
    ) -> None:
        """Initialize claim service with dependency validation."""
        if not db or not hasattr(db, "transaction"):
            raise ValueError("Database connection required and must be active")

        self._db = db
        self._notifier = notifier
        self._audit = audit
        self._clock = clock
        self._ledger = QuotaLedger(db)
        self._validator = ClaimValidator(catalog, self._ledger, clock)

    @property
    def validator(self) -> ClaimValidator:
        return self._validator

    @property
    def ledger(self) -> QuotaLedger:
        return self._ledger

    @beartype
    @performance_monitor("submit_claim")
    async def submit_claim(
        self, claimant_id: UUID, submission: ClaimSubmission
    ) -> Result[Claim, ClaimError]:
        """Validate and create a claim in PENDING."""
        now = self._clock()
        fiscal_year = submission.fiscal_year or current_fiscal_year(
            now, get_settings().fiscal_zone
        )

        eligibility = await self._validator.validate(
            claimant_id, submission.sub_program_id, submission.nights, fiscal_year
        )
        if isinstance(eligibility, Err):
            return eligibility
        amount = eligibility.unwrap().calculated_amount
        claim_id = uuid4()

        async def _operation(conn: AsyncConnection) -> Result[Claim, ClaimError]:
            await conn.execute(
                claims.insert().values(
                    id=claim_id,
                    claim_number=new_claim_number(fiscal_year),
                    claimant_id=claimant_id,
                    sub_program_id=submission.sub_program_id,
                    fiscal_year=fiscal_year,
                    requested_amount=amount,
                    approved_amount=None,
                    nights=submission.nights,
                    beneficiary_name=submission.beneficiary_name,
                    beneficiary_relation=submission.beneficiary_relation,
                    description=submission.description,
                    status=ClaimStatus.PENDING.value,
                    submitted_at=now,
                    updated_at=now,
                )
            )
            for document in submission.documents:
                await conn.execute(
                    claim_documents.insert().values(
                        claim_id=claim_id,
                        uploaded_at=now,
                        **document.model_dump(),
                    )
                )
            return await self._reload(conn, claim_id)

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok):
            claim = result.unwrap()
            logger.info(
                "Claim %s submitted by %s for %s (FY %d)",
                claim.claim_number,
                claimant_id,
                amount,
                fiscal_year,
            )
            await self._audit.record(
                AuditAction.CLAIM_SUBMITTED,
                claim.id,
                claimant_id,
                now,
                amount=amount,
                fiscal_year=fiscal_year,
            )
        return result

    @beartype
    @performance_monitor("approve_as_admin")
    async def approve_as_admin(
        self, claim_id: UUID, reviewer_id: UUID, comments: str | None = None
    ) -> Result[Claim, ClaimError]:
        """PENDING or IN_REVIEW to ADMIN_APPROVED."""
        now = self._clock()

        async def _operation(conn: AsyncConnection) -> Result[Claim, ClaimError]:
            moved = await apply_transition(
                conn,
                claim_id,
                ClaimStatus.ADMIN_APPROVED,
                admin_approver_id=reviewer_id,
                admin_approved_at=now,
                updated_at=now,
            )
            if isinstance(moved, Err):
                return moved
            await _append_approval(conn, claim_id, reviewer_id, ApprovalStep.ADMIN, comments, now)
            return await self._reload(conn, claim_id)

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok):
            claim = result.unwrap()
            await self._notifier.claim_admin_approved(claim, now)
            await self._audit.record(
                AuditAction.CLAIM_ADMIN_APPROVED, claim_id, reviewer_id, now, comments=comments
            )
        return result

    @beartype
    @performance_monitor("approve_as_manager")
    async def approve_as_manager(
        self,
        claim_id: UUID,
        reviewer_id: UUID,
        approved_amount: Decimal | None = None,
        comments: str | None = None,
    ) -> Result[Claim, ClaimError]:
        """ADMIN_APPROVED to COMPLETED, charging the quota ledger.

        The approved amount defaults to the requested amount. The limits are
        checked again with the ledger entry locked; a breach leaves the claim
        in ADMIN_APPROVED.
        """
        now = self._clock()

        async def _operation(conn: AsyncConnection) -> Result[Claim, ClaimError]:
            claim = await read_claim(conn, claim_id)
            if claim is None:
                return Err(NotFound("Claim", str(claim_id)))

            amount = (
                claim.requested_amount if approved_amount is None else approved_amount
            ).quantize(CENT)
            moved = await apply_transition(
                conn,
                claim_id,
                ClaimStatus.COMPLETED,
                approved_amount=amount,
                manager_approver_id=reviewer_id,
                manager_approved_at=now,
                completed_at=now,
                updated_at=now,
            )
            if isinstance(moved, Err):
                return moved

            if amount <= 0 or amount > claim.requested_amount:
                return Err(
                    ValidationError(
                        "approved_amount must be greater than 0 and at most "
                        f"the requested amount {claim.requested_amount}",
                        "approved_amount",
                    )
                )
            sub_program = await read_sub_program(conn, claim.sub_program_id)
            if sub_program is None:
                return Err(NotFound("WelfareSubProgram", str(claim.sub_program_id)))

            await lock_entry(conn, claim.claimant_id, claim.sub_program_id, claim.fiscal_year, now)
            usage = await read_usage(
                conn, claim.claimant_id, claim.sub_program_id, claim.fiscal_year
            )
            violations = find_violations(sub_program, usage, amount)
            if violations:
                logger.info(
                    "Completion of claim %s refused at posting: %s",
                    claim_id,
                    violations[0].message,
                )
                return Err(quota_exceeded(violations[0]))

            await record_usage(
                conn,
                claim_id,
                claim.claimant_id,
                claim.sub_program_id,
                claim.fiscal_year,
                amount,
                now,
            )
            await _append_approval(
                conn, claim_id, reviewer_id, ApprovalStep.MANAGER, comments, now
            )
            return await self._reload(conn, claim_id)

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok):
            claim = result.unwrap()
            await self._notifier.claim_completed(claim, now)
            await self._audit.record(
                AuditAction.CLAIM_MANAGER_APPROVED,
                claim_id,
                reviewer_id,
                now,
                approved_amount=claim.approved_amount,
                comments=comments,
            )
        return result

    @beartype
    @performance_monitor("reject_claim")
    async def reject(
        self, claim_id: UUID, reviewer_id: UUID, reason: str
    ) -> Result[Claim, ClaimError]:
        """Any non-terminal status to REJECTED. The ledger is never touched."""
        reason = reason.strip()
        if not reason:
            return Err(ValidationError("Rejection reason is required", "reason"))
        now = self._clock()

        async def _operation(conn: AsyncConnection) -> Result[Claim, ClaimError]:
            moved = await apply_transition(
                conn,
                claim_id,
                ClaimStatus.REJECTED,
                rejection_reason=reason,
                updated_at=now,
            )
            if isinstance(moved, Err):
                return moved
            await _append_approval(conn, claim_id, reviewer_id, ApprovalStep.REJECT, reason, now)
            return await self._reload(conn, claim_id)

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok):
            claim = result.unwrap()
            await self._notifier.claim_rejected(claim, now)
            await self._audit.record(
                AuditAction.CLAIM_REJECTED, claim_id, reviewer_id, now, reason=reason
            )
        return result

    @beartype
    @performance_monitor("withdraw_claim")
    async def withdraw_claim(
        self, claim_id: UUID, claimant_id: UUID
    ) -> Result[UUID, ClaimError]:
        """Delete a claim that is still PENDING, on its owner's request."""
        now = self._clock()

        async def _operation(conn: AsyncConnection) -> Result[UUID, ClaimError]:
            row = (
                await conn.execute(
                    sa.select(claims.c.claimant_id).where(claims.c.id == claim_id)
                )
            ).first()
            if row is None:
                return Err(NotFound("Claim", str(claim_id)))
            if row.claimant_id != claimant_id:
                return Err(Forbidden("Only the claimant may withdraw this claim"))

            for table in (claim_documents, claim_comments, claim_approvals):
                await conn.execute(table.delete().where(table.c.claim_id == claim_id))
            deleted = await conn.execute(
                claims.delete()
                .where(
                    claims.c.id == claim_id,
                    claims.c.status == ClaimStatus.PENDING.value,
                )
                .returning(claims.c.id)
            )
            if deleted.first() is None:
                current = await read_status(conn, claim_id)
                return Err(
                    InvalidStateTransition(
                        current.value if current else WITHDRAWN, WITHDRAWN
                    )
                )
            return Ok(claim_id)

        result = await with_transaction(self._db, _operation)
        if isinstance(result, Ok):
            logger.info("Claim %s withdrawn by %s", claim_id, claimant_id)
            await self._audit.record(AuditAction.CLAIM_WITHDRAWN, claim_id, claimant_id, now)
        return result

    @beartype
    async def get_claim(self, claim_id: UUID) -> Result[Claim, ClaimError]:
        async def _operation(conn: AsyncConnection) -> Result[Claim, ClaimError]:
            return await self._reload(conn, claim_id)

        return await with_connection(self._db, _operation)

    @beartype
    @performance_monitor("list_claims")
    async def list_claims(
        self,
        claimant_id: UUID | None = None,
        status: ClaimStatus | None = None,
        fiscal_year: int | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Result[list[Claim], ClaimError]:
        """Claims newest first, optionally filtered."""
        query = _claim_query()
        if claimant_id is not None:
            query = query.where(claims.c.claimant_id == claimant_id)
        if status is not None:
            query = query.where(claims.c.status == status.value)
        if fiscal_year is not None:
            query = query.where(claims.c.fiscal_year == fiscal_year)
        query = (
            query.order_by(claims.c.submitted_at.desc(), claims.c.claim_number)
            .limit(limit)
            .offset(offset)
        )

        async def _operation(conn: AsyncConnection) -> Result[list[Claim], ClaimError]:
            rows = (await conn.execute(query)).mappings().all()
            documents = await _read_documents(conn, [row["id"] for row in rows])
            return Ok([_row_to_claim(row, documents[row["id"]]) for row in rows])

        return await with_connection(self._db, _operation)

    @beartype
    async def get_approvals(self, claim_id: UUID) -> Result[list[ClaimApproval], ClaimError]:
        """Approval trail of a claim, oldest first."""

        async def _operation(conn: AsyncConnection) -> Result[list[ClaimApproval], ClaimError]:
            if await read_status(conn, claim_id) is None:
                return Err(NotFound("Claim", str(claim_id)))
            rows = await conn.execute(
                sa.select(claim_approvals)
                .where(claim_approvals.c.claim_id == claim_id)
                .order_by(claim_approvals.c.created_at, claim_approvals.c.id)
            )
            return Ok([ClaimApproval.model_validate(dict(row)) for row in rows.mappings()])

        return await with_connection(self._db, _operation)

    async def _reload(self, conn: AsyncConnection, claim_id: UUID) -> Result[Claim, ClaimError]:
        claim = await read_claim(conn, claim_id)
        if claim is None:
            return Err(NotFound("Claim", str(claim_id)))
        return Ok(claim)
