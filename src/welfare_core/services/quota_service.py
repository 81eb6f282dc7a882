"""Quota queries for claimants: usage, summary and pre-submission checks."""

from uuid import UUID

from beartype import beartype

from ..core.config import get_settings
from ..core.errors import ClaimError
from ..core.fiscal_year import Clock, current_fiscal_year, system_clock
from ..core.result_types import Err, Ok, Result
from ..models.quota import ClaimEligibility, QuotaSummaryItem, UsageSnapshot
from .catalog_service import CatalogService
from .claim_validator import ClaimValidator, find_violations, remaining_allowance
from .performance_monitor import performance_monitor
from .quota_ledger import QuotaLedger


class QuotaService:
    """Read-only view of a claimant's quota."""

    def __init__(
        self,
        catalog: CatalogService,
        ledger: QuotaLedger,
        clock: Clock = system_clock,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._clock = clock
        self._validator = ClaimValidator(catalog, ledger, clock)

    def _fiscal_year(self, fiscal_year: int | None) -> int:
        if fiscal_year is not None:
            return fiscal_year
        return current_fiscal_year(self._clock(), get_settings().fiscal_zone)

    @beartype
    async def get_quota_usage(
        self,
        claimant_id: UUID,
        sub_program_id: UUID,
        fiscal_year: int | None = None,
    ) -> Result[UsageSnapshot, ClaimError]:
        return await self._ledger.get_usage(
            claimant_id, sub_program_id, self._fiscal_year(fiscal_year)
        )

    @beartype
    async def check_eligibility(
        self,
        claimant_id: UUID,
        sub_program_id: UUID,
        nights: int | None = None,
        fiscal_year: int | None = None,
    ) -> Result[ClaimEligibility, ClaimError]:
        """What a submission would be granted, without submitting it."""
        return await self._validator.evaluate(
            claimant_id, sub_program_id, nights, self._fiscal_year(fiscal_year)
        )

    @beartype
    @performance_monitor("quota_summary")
    async def get_quota_summary(
        self, claimant_id: UUID, fiscal_year: int | None = None
    ) -> Result[list[QuotaSummaryItem], ClaimError]:
        """One row per active sub-program, in catalog order.

        ``can_claim`` tells whether one more claim of the sub-program's unit
        amount would fit every limit.
        """
        fiscal_year = self._fiscal_year(fiscal_year)

        programs = await self._catalog.list_programs(active_only=True)
        if isinstance(programs, Err):
            return programs
        usage_by_sub_program = await self._ledger.get_usage_for_year(claimant_id, fiscal_year)
        if isinstance(usage_by_sub_program, Err):
            return usage_by_sub_program
        usage_map = usage_by_sub_program.unwrap()

        items: list[QuotaSummaryItem] = []
        for program in programs.unwrap():
            for sub_program in program.sub_programs:
                usage = usage_map.get(sub_program.id) or UsageSnapshot.empty(
                    claimant_id, sub_program.id, fiscal_year
                )
                items.append(
                    QuotaSummaryItem(
                        program_id=program.id,
                        program_name=program.name,
                        sub_program_id=sub_program.id,
                        sub_program_name=sub_program.name,
                        unit_type=sub_program.unit_type,
                        amount=sub_program.amount,
                        fiscal_year=fiscal_year,
                        max_per_request=sub_program.max_per_request,
                        max_per_year=sub_program.max_per_year,
                        max_lifetime=sub_program.max_lifetime,
                        max_claims_per_year=sub_program.max_claims_per_year,
                        max_claims_lifetime=sub_program.max_claims_lifetime,
                        used_amount_year=usage.used_amount_year,
                        used_amount_lifetime=usage.used_amount_lifetime,
                        used_claims_year=usage.used_claims_year,
                        used_claims_lifetime=usage.used_claims_lifetime,
                        remaining_yearly=remaining_allowance(
                            sub_program.max_per_year, usage.used_amount_year
                        ),
                        remaining_lifetime=remaining_allowance(
                            sub_program.max_lifetime, usage.used_amount_lifetime
                        ),
                        remaining_claims_yearly=remaining_allowance(
                            sub_program.max_claims_per_year, usage.used_claims_year
                        ),
                        remaining_claims_lifetime=remaining_allowance(
                            sub_program.max_claims_lifetime, usage.used_claims_lifetime
                        ),
                        can_claim=not find_violations(sub_program, usage, sub_program.amount),
                    )
                )
        return Ok(items)
