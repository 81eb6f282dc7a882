"""Tests for amount calculation and limit checks."""

from decimal import Decimal
from uuid import uuid4

import pytest

from welfare_core.core.errors import NotFound, QuotaExceeded, ValidationError
from welfare_core.core.result_types import Err, Ok
from welfare_core.models.quota import UsageSnapshot
from welfare_core.models.welfare import UnitType, WelfareSubProgramUpdate
from welfare_core.services.claim_validator import (
    assess_eligibility,
    calculate_amount,
    find_violations,
    quota_exceeded,
    remaining_allowance,
)

from tests.fixtures.test_data import make_sub_program


def usage(
    amount_year: str = "0",
    amount_lifetime: str | None = None,
    claims_year: int = 0,
    claims_lifetime: int | None = None,
) -> UsageSnapshot:
    return UsageSnapshot(
        claimant_id=uuid4(),
        sub_program_id=uuid4(),
        fiscal_year=2025,
        used_amount_year=Decimal(amount_year),
        used_amount_lifetime=Decimal(amount_lifetime or amount_year),
        used_claims_year=claims_year,
        used_claims_lifetime=claims_lifetime if claims_lifetime is not None else claims_year,
    )


class TestCalculateAmount:
    def test_per_night_multiplies_by_nights(self) -> None:
        sub_program = make_sub_program(UnitType.PER_NIGHT, "500.00")
        assert calculate_amount(sub_program, 3) == Ok(Decimal("1500.00"))

    @pytest.mark.parametrize("nights", [None, 0, -2])
    def test_per_night_requires_positive_nights(self, nights: int | None) -> None:
        result = calculate_amount(make_sub_program(UnitType.PER_NIGHT, "500.00"), nights)
        assert isinstance(result, Err)
        assert isinstance(result.unwrap_err(), ValidationError)
        assert result.unwrap_err().field_name == "nights"

    @pytest.mark.parametrize("nights", [367, 10**9, 10**27])
    def test_per_night_caps_nights_at_one_year(self, nights: int) -> None:
        result = calculate_amount(make_sub_program(UnitType.PER_NIGHT, "500.00"), nights)
        assert isinstance(result.unwrap_err(), ValidationError)
        assert result.unwrap_err().field_name == "nights"

    def test_full_year_of_nights_is_allowed(self) -> None:
        sub_program = make_sub_program(UnitType.PER_NIGHT, "500.00")
        assert calculate_amount(sub_program, 366) == Ok(Decimal("183000.00"))

    def test_amount_beyond_money_precision_is_refused(self) -> None:
        sub_program = make_sub_program(UnitType.PER_NIGHT, "50000000.00")

        result = calculate_amount(sub_program, 300)

        assert isinstance(result.unwrap_err(), ValidationError)
        assert result.unwrap_err().field_name == "nights"

    def test_lump_sum_is_the_configured_amount(self) -> None:
        assert calculate_amount(make_sub_program(), None) == Ok(Decimal("3000.00"))

    def test_lump_sum_refuses_nights(self) -> None:
        result = calculate_amount(make_sub_program(), 2)
        assert isinstance(result, Err)
        assert isinstance(result.unwrap_err(), ValidationError)


class TestFindViolations:
    def test_yearly_amount_limit(self) -> None:
        sub_program = make_sub_program(amount="600.00", max_per_year=Decimal("5000"))
        violations = find_violations(sub_program, usage("4500"), Decimal("600"))

        assert [v.limit for v in violations] == ["max_per_year"]
        error = quota_exceeded(violations[0])
        assert isinstance(error, QuotaExceeded)
        assert error.limit_value == Decimal("5000")
        assert error.would_be_total == Decimal("5100")
        assert error.excess == Decimal("100")

    def test_exactly_at_the_limit_is_allowed(self) -> None:
        sub_program = make_sub_program(amount="500.00", max_per_year=Decimal("5000"))
        assert find_violations(sub_program, usage("4500"), Decimal("500")) == []

    def test_per_request_limit_rejects_instead_of_clamping(self) -> None:
        sub_program = make_sub_program(
            UnitType.PER_NIGHT, "500.00", max_per_request=Decimal("1000")
        )
        violations = find_violations(sub_program, usage(), Decimal("1500"))
        assert [v.limit for v in violations] == ["max_per_request"]
        assert violations[0].would_be_total == Decimal("1500")

    def test_lifetime_limits_use_lifetime_usage(self) -> None:
        sub_program = make_sub_program(
            amount="600.00", max_lifetime=Decimal("1200"), max_claims_lifetime=2
        )
        snapshot = usage("0", amount_lifetime="1200", claims_lifetime=2)
        limits = {v.limit for v in find_violations(sub_program, snapshot, Decimal("600"))}
        assert limits == {"max_lifetime", "max_claims_lifetime"}

    def test_claim_count_limit(self) -> None:
        sub_program = make_sub_program(max_claims_per_year=1)
        violations = find_violations(sub_program, usage("3000", claims_year=1), Decimal("3000"))
        assert [v.limit for v in violations] == ["max_claims_per_year"]

    def test_zero_limit_allows_nothing(self) -> None:
        sub_program = make_sub_program(max_claims_per_year=0)
        assert find_violations(sub_program, usage(), Decimal("3000"))

    def test_no_limits_means_unlimited(self) -> None:
        snapshot = usage("999999", claims_year=500)
        assert find_violations(make_sub_program(), snapshot, Decimal("3000")) == []


class TestAssessEligibility:
    def test_remaining_allowances(self) -> None:
        sub_program = make_sub_program(
            amount="500.00", max_per_year=Decimal("5000"), max_claims_per_year=4
        )
        report = assess_eligibility(sub_program, usage("4500", claims_year=3), Decimal("600"))

        assert report.is_valid is False
        assert report.calculated_amount == Decimal("600")
        assert report.remaining_yearly == Decimal("500")
        assert report.remaining_claims_yearly == 1
        assert report.remaining_lifetime is None
        assert report.message is not None and "5000" in report.message

    def test_remaining_is_floored_at_zero(self) -> None:
        assert remaining_allowance(Decimal("100"), Decimal("250")) == 0
        assert remaining_allowance(None, Decimal("250")) is None


class TestSubProgramUpdate:
    def test_limits_may_be_cleared(self) -> None:
        changes = WelfareSubProgramUpdate(max_per_year=None)
        assert changes.model_dump(exclude_unset=True) == {"max_per_year": None}

    def test_required_fields_cannot_be_cleared(self) -> None:
        with pytest.raises(ValueError):
            WelfareSubProgramUpdate(amount=None)


class TestClaimValidator:
    """Validator wired to the catalog and ledger."""

    async def test_rejects_over_limit(self, claim_service, seeded, claimant_id) -> None:
        result = await claim_service.validator.validate(claimant_id, seeded.inpatient_id, 11)
        assert isinstance(result, Err)
        error = result.unwrap_err()
        assert isinstance(error, QuotaExceeded)
        assert error.limit == "max_per_year"

    async def test_evaluate_reports_without_failing(
        self, claim_service, seeded, claimant_id
    ) -> None:
        result = await claim_service.validator.evaluate(claimant_id, seeded.inpatient_id, 11)
        report = result.unwrap()
        assert report.is_valid is False
        assert report.errors[0].limit == "max_per_year"

    async def test_inactive_sub_program_is_not_claimable(
        self, catalog, claim_service, seeded, claimant_id
    ) -> None:
        (await catalog.deactivate_sub_program(seeded.marriage_id)).unwrap()

        result = await claim_service.validator.validate(claimant_id, seeded.marriage_id)
        assert isinstance(result.unwrap_err(), NotFound)

    async def test_unknown_sub_program(self, claim_service, seeded, claimant_id) -> None:
        result = await claim_service.validator.validate(claimant_id, uuid4())
        assert isinstance(result.unwrap_err(), NotFound)
