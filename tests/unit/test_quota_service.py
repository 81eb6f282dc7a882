"""Tests for claimant-facing quota queries."""

from decimal import Decimal
from uuid import UUID

from welfare_core.services.claim_service import ClaimService
from welfare_core.services.quota_service import QuotaService

from tests.fixtures.test_data import SeededCatalog, submit


async def complete(
    claim_service: ClaimService, claim_id: UUID, admin_id: UUID, manager_id: UUID
) -> None:
    (await claim_service.approve_as_admin(claim_id, admin_id)).unwrap()
    (await claim_service.approve_as_manager(claim_id, manager_id)).unwrap()


class TestQuotaSummary:
    async def test_fresh_claimant_can_claim_everything(
        self, quota_service: QuotaService, seeded: SeededCatalog, claimant_id: UUID
    ) -> None:
        summary = (await quota_service.get_quota_summary(claimant_id)).unwrap()

        assert [item.sub_program_name for item in summary] == [
            "Marriage gift",
            "Inpatient room",
            "Dental care",
        ]
        assert all(item.can_claim for item in summary)
        assert all(item.fiscal_year == 2025 for item in summary)
        inpatient = summary[1]
        assert inpatient.remaining_yearly == Decimal("5000.00")
        assert inpatient.remaining_lifetime is None

    async def test_usage_is_reflected(
        self,
        quota_service: QuotaService,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
        admin_id: UUID,
        manager_id: UUID,
    ) -> None:
        claim = await submit(claim_service, claimant_id, seeded.marriage_id)
        await complete(claim_service, claim.id, admin_id, manager_id)

        summary = (await quota_service.get_quota_summary(claimant_id)).unwrap()
        marriage = next(item for item in summary if item.sub_program_id == seeded.marriage_id)

        assert marriage.used_amount_year == Decimal("3000.00")
        assert marriage.used_claims_year == 1
        assert marriage.remaining_yearly == Decimal("0")
        assert marriage.remaining_claims_yearly == 0
        assert marriage.can_claim is False

    async def test_other_fiscal_year_is_untouched(
        self,
        quota_service: QuotaService,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
        admin_id: UUID,
        manager_id: UUID,
    ) -> None:
        claim = await submit(claim_service, claimant_id, seeded.marriage_id)
        await complete(claim_service, claim.id, admin_id, manager_id)

        summary = (await quota_service.get_quota_summary(claimant_id, 2026)).unwrap()
        marriage = next(item for item in summary if item.sub_program_id == seeded.marriage_id)

        assert marriage.used_amount_year == Decimal("0")
        assert marriage.can_claim is True

    async def test_pending_claims_do_not_consume(
        self,
        quota_service: QuotaService,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
    ) -> None:
        await submit(claim_service, claimant_id, seeded.inpatient_id, nights=4)

        usage = (await quota_service.get_quota_usage(claimant_id, seeded.inpatient_id)).unwrap()

        assert usage.used_amount_year == Decimal("0")
        assert usage.fiscal_year == 2025


class TestEligibility:
    async def test_reports_amount_and_remaining(
        self, quota_service: QuotaService, seeded: SeededCatalog, claimant_id: UUID
    ) -> None:
        report = (
            await quota_service.check_eligibility(claimant_id, seeded.inpatient_id, nights=3)
        ).unwrap()

        assert report.is_valid is True
        assert report.calculated_amount == Decimal("1500.00")
        assert report.remaining_yearly == Decimal("5000.00")
        assert report.errors == []

    async def test_reports_violations_instead_of_failing(
        self,
        quota_service: QuotaService,
        claim_service: ClaimService,
        seeded: SeededCatalog,
        claimant_id: UUID,
        admin_id: UUID,
        manager_id: UUID,
    ) -> None:
        claim = await submit(claim_service, claimant_id, seeded.inpatient_id, nights=9)
        await complete(claim_service, claim.id, admin_id, manager_id)

        report = (
            await quota_service.check_eligibility(claimant_id, seeded.inpatient_id, nights=2)
        ).unwrap()

        assert report.is_valid is False
        assert report.remaining_yearly == Decimal("500.00")
        assert [v.limit for v in report.errors] == ["max_per_year"]
