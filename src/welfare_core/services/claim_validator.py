"""Admissibility check for a prospective claim.

The arithmetic lives in pure functions (``calculate_amount``,
``assess_eligibility``) that take the sub-program and a usage snapshot. The
``ClaimValidator`` resolves both and never writes. Its answer is advisory:
the limits are checked again under lock when the claim completes, which is
the point where quota is actually consumed.
"""

from decimal import Decimal
from uuid import UUID

from beartype import beartype

from ..core.config import get_settings
from ..core.errors import ClaimError, NotFound, QuotaExceeded, ValidationError
from ..core.fiscal_year import Clock, current_fiscal_year, system_clock
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.quota import ClaimEligibility, QuotaViolation, UsageSnapshot
from ..models.welfare import UnitType, WelfareSubProgram
from .catalog_service import CatalogService
from .performance_monitor import performance_monitor
from .quota_ledger import QuotaLedger

logger = get_logger(__name__)

CENT = Decimal("0.01")
MAX_NIGHTS = 366
# Largest value a Numeric(12, 2) money column holds.
MAX_AMOUNT = Decimal("9999999999.99")


@beartype
def calculate_amount(
    sub_program: WelfareSubProgram, nights: int | None
) -> Result[Decimal, ValidationError]:
    """Per-unit amount times the number of units claimed."""
    if sub_program.unit_type is UnitType.PER_NIGHT:
        if nights is None or nights <= 0:
            return Err(ValidationError("nights required and must be greater than 0", "nights"))
        if nights > MAX_NIGHTS:
            return Err(ValidationError(f"nights may not exceed {MAX_NIGHTS}", "nights"))
        amount = (sub_program.amount * nights).quantize(CENT)
        if amount > MAX_AMOUNT:
            return Err(
                ValidationError("Claimed amount exceeds the largest payable amount", "nights")
            )
        return Ok(amount)

    if nights is not None:
        return Err(
            ValidationError("nights only applies to PER_NIGHT sub-programs", "nights")
        )
    return Ok(sub_program.amount.quantize(CENT))


def remaining_allowance(
    limit: Decimal | int | None, used: Decimal | int
) -> Decimal | int | None:
    """What is left under ``limit``, floored at zero; ``None`` when unlimited."""
    if limit is None:
        return None
    return max(limit - used, 0)


def _violation(
    limit: str, limit_value: Decimal | int, would_be: Decimal | int, what: str
) -> QuotaViolation:
    excess = would_be - limit_value
    return QuotaViolation(
        limit=limit,
        limit_value=Decimal(limit_value),
        would_be_total=Decimal(would_be),
        message=f"{what} exceeded: limit {limit_value}, would be {would_be} (over by {excess})",
    )


@beartype
def find_violations(
    sub_program: WelfareSubProgram, usage: UsageSnapshot, amount: Decimal
) -> list[QuotaViolation]:
    """Every configured limit that claiming ``amount`` on top of ``usage`` breaks."""
    violations: list[QuotaViolation] = []

    if sub_program.max_per_request is not None and amount > sub_program.max_per_request:
        violations.append(
            _violation("max_per_request", sub_program.max_per_request, amount, "Per-request limit")
        )

    if sub_program.max_per_year is not None:
        total = usage.used_amount_year + amount
        if total > sub_program.max_per_year:
            violations.append(
                _violation("max_per_year", sub_program.max_per_year, total, "Yearly amount limit")
            )

    if sub_program.max_lifetime is not None:
        total = usage.used_amount_lifetime + amount
        if total > sub_program.max_lifetime:
            violations.append(
                _violation("max_lifetime", sub_program.max_lifetime, total, "Lifetime amount limit")
            )

    if sub_program.max_claims_per_year is not None:
        count = usage.used_claims_year + 1
        if count > sub_program.max_claims_per_year:
            violations.append(
                _violation(
                    "max_claims_per_year",
                    sub_program.max_claims_per_year,
                    count,
                    "Yearly claim count limit",
                )
            )

    if sub_program.max_claims_lifetime is not None:
        count = usage.used_claims_lifetime + 1
        if count > sub_program.max_claims_lifetime:
            violations.append(
                _violation(
                    "max_claims_lifetime",
                    sub_program.max_claims_lifetime,
                    count,
                    "Lifetime claim count limit",
                )
            )

    return violations


@beartype
def assess_eligibility(
    sub_program: WelfareSubProgram, usage: UsageSnapshot, amount: Decimal
) -> ClaimEligibility:
    """Full eligibility report for claiming ``amount``."""
    violations = find_violations(sub_program, usage, amount)
    return ClaimEligibility(
        is_valid=not violations,
        calculated_amount=amount,
        fiscal_year=usage.fiscal_year,
        remaining_yearly=remaining_allowance(sub_program.max_per_year, usage.used_amount_year),
        remaining_lifetime=remaining_allowance(
            sub_program.max_lifetime, usage.used_amount_lifetime
        ),
        remaining_claims_yearly=remaining_allowance(
            sub_program.max_claims_per_year, usage.used_claims_year
        ),
        remaining_claims_lifetime=remaining_allowance(
            sub_program.max_claims_lifetime, usage.used_claims_lifetime
        ),
        message=violations[0].message if violations else None,
        errors=violations,
    )


@beartype
def quota_exceeded(violation: QuotaViolation) -> QuotaExceeded:
    return QuotaExceeded(
        limit=violation.limit,
        limit_value=violation.limit_value,
        would_be_total=violation.would_be_total,
        detail=violation.message,
    )


class ClaimValidator:
    """Resolves configuration and usage, then applies the eligibility rules."""

    def __init__(
        self,
        catalog: CatalogService,
        ledger: QuotaLedger,
        clock: Clock = system_clock,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._clock = clock

    @beartype
    async def resolve_sub_program(
        self, sub_program_id: UUID
    ) -> Result[WelfareSubProgram, ClaimError]:
        """The sub-program if it exists and accepts claims."""
        result = await self._catalog.get_sub_program(sub_program_id)
        if isinstance(result, Err):
            return result
        sub_program = result.unwrap()
        if not sub_program.is_claimable:
            return Err(NotFound("WelfareSubProgram", str(sub_program_id)))
        return Ok(sub_program)

    @beartype
    @performance_monitor("evaluate_claim")
    async def evaluate(
        self,
        claimant_id: UUID,
        sub_program_id: UUID,
        nights: int | None = None,
        fiscal_year: int | None = None,
    ) -> Result[ClaimEligibility, ClaimError]:
        """Eligibility report; quota violations are reported, not raised."""
        if fiscal_year is None:
            fiscal_year = current_fiscal_year(self._clock(), get_settings().fiscal_zone)

        resolved = await self.resolve_sub_program(sub_program_id)
        if isinstance(resolved, Err):
            return resolved
        sub_program = resolved.unwrap()

        amount = calculate_amount(sub_program, nights)
        if isinstance(amount, Err):
            return amount

        usage = await self._ledger.get_usage(claimant_id, sub_program_id, fiscal_year)
        if isinstance(usage, Err):
            return usage

        return Ok(assess_eligibility(sub_program, usage.unwrap(), amount.unwrap()))

    @beartype
    async def validate(
        self,
        claimant_id: UUID,
        sub_program_id: UUID,
        nights: int | None = None,
        fiscal_year: int | None = None,
    ) -> Result[ClaimEligibility, ClaimError]:
        """Like ``evaluate`` but the first violation becomes ``QuotaExceeded``."""
        result = await self.evaluate(claimant_id, sub_program_id, nights, fiscal_year)
        if isinstance(result, Err):
            return result

        eligibility = result.unwrap()
        if not eligibility.is_valid:
            logger.info(
                "Claim by %s on %s refused: %s",
                claimant_id,
                sub_program_id,
                eligibility.message,
            )
            return Err(quota_exceeded(eligibility.errors[0]))
        return Ok(eligibility)
