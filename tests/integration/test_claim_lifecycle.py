"""End-to-end claim scenarios across catalog, workflow and ledger."""

import asyncio
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import sqlalchemy as sa

from welfare_core.core.database import Database
from welfare_core.core.errors import InvalidStateTransition, QuotaExceeded
from welfare_core.core.result_types import Ok
from welfare_core.core.tables import claims, quota_ledger
from welfare_core.models.actor import ActorKind
from welfare_core.models.claim import ClaimStatus, ClaimSubmission
from welfare_core.models.welfare import UnitType, WelfareSubProgramCreate
from welfare_core.services.catalog_service import CatalogService
from welfare_core.services.claim_service import ClaimService
from welfare_core.services.comment_service import CommentService
from welfare_core.services.quota_service import QuotaService

from tests.fixtures.test_data import SeededCatalog, submit, usage_of

pytestmark = pytest.mark.integration

FORWARD = {
    ClaimStatus.PENDING: 0,
    ClaimStatus.IN_REVIEW: 1,
    ClaimStatus.ADMIN_APPROVED: 2,
    ClaimStatus.COMPLETED: 3,
    ClaimStatus.REJECTED: 3,
}


async def ledger_matches_completed_claims(db: Database) -> bool:
    """Ledger totals equal the approved amounts of completed claims, per key."""
    async with db.connection() as conn:
        completed = (
            await conn.execute(
                sa.select(
                    claims.c.claimant_id,
                    claims.c.sub_program_id,
                    claims.c.fiscal_year,
                    sa.func.sum(claims.c.approved_amount).label("amount"),
                    sa.func.count().label("count"),
                )
                .where(claims.c.status == ClaimStatus.COMPLETED.value)
                .group_by(claims.c.claimant_id, claims.c.sub_program_id, claims.c.fiscal_year)
            )
        ).all()
        ledger = (
            await conn.execute(
                sa.select(quota_ledger).where(quota_ledger.c.used_claims_year > 0)
            )
        ).mappings().all()

    expected = {
        (row.claimant_id, row.sub_program_id, row.fiscal_year): (
            Decimal(str(row.amount)),
            row.count,
        )
        for row in completed
    }
    actual = {
        (row["claimant_id"], row["sub_program_id"], row["fiscal_year"]): (
            Decimal(str(row["used_amount_year"])),
            row["used_claims_year"],
        )
        for row in ledger
    }
    return expected == actual


class TestMarriageBenefit:
    async def test_one_marriage_gift_per_fiscal_year(
        self,
        db: Database,
        claim_service: ClaimService,
        comment_service: CommentService,
        quota_service: QuotaService,
        seeded: SeededCatalog,
        claimant_id: UUID,
        admin_id: UUID,
        manager_id: UUID,
    ) -> None:
        claim = await submit(claim_service, claimant_id, seeded.marriage_id)
        statuses = [claim.status]

        await comment_service.add_comment(
            claim.id, claimant_id, ActorKind.CLAIMANT, "Certificate uploaded"
        )
        statuses.append((await claim_service.get_claim(claim.id)).unwrap().status)
        statuses.append((await claim_service.approve_as_admin(claim.id, admin_id)).unwrap().status)
        completed = (await claim_service.approve_as_manager(claim.id, manager_id)).unwrap()
        statuses.append(completed.status)

        assert statuses == [
            ClaimStatus.PENDING,
            ClaimStatus.IN_REVIEW,
            ClaimStatus.ADMIN_APPROVED,
            ClaimStatus.COMPLETED,
        ]
        assert completed.approved_amount == Decimal("3000.00")

        second = await claim_service.submit_claim(
            claimant_id, ClaimSubmission(sub_program_id=seeded.marriage_id)
        )
        error = second.unwrap_err()
        assert isinstance(error, QuotaExceeded)
        assert error.limit in {"max_per_year", "max_claims_per_year"}

        next_year = await claim_service.submit_claim(
            claimant_id, ClaimSubmission(sub_program_id=seeded.marriage_id, fiscal_year=2026)
        )
        assert isinstance(next_year, Ok)

        summary = (await quota_service.get_quota_summary(claimant_id)).unwrap()
        marriage = next(item for item in summary if item.sub_program_id == seeded.marriage_id)
        assert marriage.can_claim is False
        assert await ledger_matches_completed_claims(db)

    async def test_rejected_claim_leaves_quota_untouched(
        self,
        db: Database,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
        admin_id: UUID,
        manager_id: UUID,
    ) -> None:
        rejected = await submit(claim_service, claimant_id, seeded.marriage_id)
        (await claim_service.approve_as_admin(rejected.id, admin_id)).unwrap()
        (await claim_service.reject(rejected.id, manager_id, "Wrong beneficiary")).unwrap()

        snapshot = await usage_of(claim_service, claimant_id, seeded.marriage_id)
        assert snapshot.used_claims_year == 0

        retry = await submit(claim_service, claimant_id, seeded.marriage_id)
        (await claim_service.approve_as_admin(retry.id, admin_id)).unwrap()
        (await claim_service.approve_as_manager(retry.id, manager_id)).unwrap()

        final = (await claim_service.get_claim(rejected.id)).unwrap()
        assert final.status is ClaimStatus.REJECTED
        assert final.approved_amount is None
        assert await ledger_matches_completed_claims(db)


class TestYearlyLimit:
    async def test_claim_that_would_cross_the_limit_is_refused(
        self,
        catalog: CatalogService,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
        admin_id: UUID,
        manager_id: UUID,
    ) -> None:
        nursing = (
            await catalog.create_sub_program(
                WelfareSubProgramCreate(
                    program_id=seeded.medical_program_id,
                    code="NURSING",
                    name="Home nursing",
                    unit_type=UnitType.PER_NIGHT,
                    amount=Decimal("300.00"),
                    max_per_year=Decimal("5000.00"),
                )
            )
        ).unwrap()
        first = await submit(claim_service, claimant_id, nursing.id, nights=15)
        (await claim_service.approve_as_admin(first.id, admin_id)).unwrap()
        (await claim_service.approve_as_manager(first.id, manager_id)).unwrap()

        result = await claim_service.submit_claim(
            claimant_id, ClaimSubmission(sub_program_id=nursing.id, nights=2)
        )

        error = result.unwrap_err()
        assert isinstance(error, QuotaExceeded)
        assert error.limit_value == Decimal("5000.00")
        assert error.would_be_total == Decimal("5100.00")
        assert error.excess == Decimal("100.00")


class TestConcurrency:
    async def test_concurrent_manager_approvals_complete_once(
        self,
        db: Database,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
        admin_id: UUID,
    ) -> None:
        claim = await submit(claim_service, claimant_id, seeded.inpatient_id, nights=2)
        (await claim_service.approve_as_admin(claim.id, admin_id)).unwrap()

        results = await asyncio.gather(
            *(claim_service.approve_as_manager(claim.id, uuid4()) for _ in range(4))
        )

        winners = [r for r in results if isinstance(r, Ok)]
        losers = [r.unwrap_err() for r in results if not isinstance(r, Ok)]
        assert len(winners) == 1
        assert losers == [InvalidStateTransition("COMPLETED", "COMPLETED")] * 3
        snapshot = await usage_of(claim_service, claimant_id, seeded.inpatient_id)
        assert snapshot.used_amount_year == Decimal("1000.00")
        assert snapshot.used_claims_year == 1
        assert await ledger_matches_completed_claims(db)

    async def test_racing_completions_respect_the_yearly_count(
        self,
        db: Database,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
        admin_id: UUID,
    ) -> None:
        # Both claims pass submission because pending claims consume nothing.
        pending = [await submit(claim_service, claimant_id, seeded.marriage_id) for _ in range(2)]
        for claim in pending:
            (await claim_service.approve_as_admin(claim.id, admin_id)).unwrap()

        results = await asyncio.gather(
            *(claim_service.approve_as_manager(claim.id, uuid4()) for claim in pending)
        )

        assert sum(isinstance(r, Ok) for r in results) == 1
        refused = [r.unwrap_err() for r in results if not isinstance(r, Ok)]
        assert isinstance(refused[0], QuotaExceeded)
        snapshot = await usage_of(claim_service, claimant_id, seeded.marriage_id)
        assert snapshot.used_claims_year == 1
        assert await ledger_matches_completed_claims(db)

    async def test_statuses_never_move_backwards(
        self,
        claim_service: ClaimService,
        comment_service: CommentService,
        seeded: SeededCatalog,
        claimant_id: UUID,
        admin_id: UUID,
        manager_id: UUID,
    ) -> None:
        claim = await submit(claim_service, claimant_id, seeded.dental_id)
        seen = [claim.status]

        attempts = [
            claim_service.approve_as_admin(claim.id, admin_id),
            comment_service.add_comment(claim.id, claimant_id, ActorKind.CLAIMANT, "late"),
            claim_service.approve_as_manager(claim.id, manager_id),
            claim_service.reject(claim.id, admin_id, "too late"),
            claim_service.approve_as_admin(claim.id, admin_id),
        ]
        for attempt in attempts:
            await attempt
            seen.append((await claim_service.get_claim(claim.id)).unwrap().status)

        ranks = [FORWARD[status] for status in seen]
        assert ranks == sorted(ranks)
        assert seen[-1] is ClaimStatus.COMPLETED
