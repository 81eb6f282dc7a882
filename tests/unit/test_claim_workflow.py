"""Tests for claim status transitions."""

from uuid import UUID, uuid4

import pytest

from welfare_core.core.database import Database
from welfare_core.core.errors import InvalidStateTransition, NotFound
from welfare_core.models.claim import ClaimStatus
from welfare_core.services.claim_service import ClaimService
from welfare_core.services.claim_workflow import (
    TRANSITIONS,
    allowed_sources,
    apply_transition,
    is_valid_transition,
    read_status,
)

from tests.fixtures.test_data import SeededCatalog, submit

ORDER = [
    ClaimStatus.PENDING,
    ClaimStatus.IN_REVIEW,
    ClaimStatus.ADMIN_APPROVED,
    ClaimStatus.COMPLETED,
]


class TestTransitionTable:
    def test_every_status_is_listed(self) -> None:
        assert set(TRANSITIONS) == set(ClaimStatus)

    @pytest.mark.parametrize("terminal", [ClaimStatus.COMPLETED, ClaimStatus.REJECTED])
    def test_terminal_statuses_have_no_exit(self, terminal: ClaimStatus) -> None:
        assert TRANSITIONS[terminal] == frozenset()

    def test_moves_only_go_forward(self) -> None:
        for source, targets in TRANSITIONS.items():
            for target in targets - {ClaimStatus.REJECTED}:
                assert ORDER.index(target) > ORDER.index(source)

    def test_completion_requires_admin_approval(self) -> None:
        assert allowed_sources(ClaimStatus.COMPLETED) == {ClaimStatus.ADMIN_APPROVED}
        assert not is_valid_transition(ClaimStatus.PENDING, ClaimStatus.COMPLETED)
        assert not is_valid_transition(ClaimStatus.IN_REVIEW, ClaimStatus.COMPLETED)

    def test_rejection_from_any_open_status(self) -> None:
        assert allowed_sources(ClaimStatus.REJECTED) == {
            ClaimStatus.PENDING,
            ClaimStatus.IN_REVIEW,
            ClaimStatus.ADMIN_APPROVED,
        }


class TestApplyTransition:
    async def test_moves_and_reports_previous_status(
        self,
        db: Database,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
    ) -> None:
        claim = await submit(claim_service, claimant_id, seeded.marriage_id)

        async with db.transaction() as conn:
            moved = await apply_transition(conn, claim.id, ClaimStatus.IN_REVIEW)
            assert moved.unwrap() is ClaimStatus.PENDING
            assert await read_status(conn, claim.id) is ClaimStatus.IN_REVIEW

    async def test_refuses_when_source_does_not_match(
        self,
        db: Database,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
    ) -> None:
        claim = await submit(claim_service, claimant_id, seeded.marriage_id)

        async with db.transaction() as conn:
            refused = await apply_transition(conn, claim.id, ClaimStatus.COMPLETED)

        error = refused.unwrap_err()
        assert isinstance(error, InvalidStateTransition)
        assert (error.current, error.attempted) == ("PENDING", "COMPLETED")

    async def test_narrowed_sources(
        self,
        db: Database,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
    ) -> None:
        claim = await submit(claim_service, claimant_id, seeded.marriage_id)

        async with db.transaction() as conn:
            refused = await apply_transition(
                conn,
                claim.id,
                ClaimStatus.ADMIN_APPROVED,
                sources=frozenset({ClaimStatus.IN_REVIEW}),
            )

        assert isinstance(refused.unwrap_err(), InvalidStateTransition)

    async def test_unknown_claim(self, db: Database) -> None:
        async with db.transaction() as conn:
            result = await apply_transition(conn, uuid4(), ClaimStatus.REJECTED)
        assert isinstance(result.unwrap_err(), NotFound)
