from decimal import Decimal

import pytest

from payslip_builder.core import DeductionInput, DeductionKind, ValidationError
from payslip_builder.deductions import (
    compute_deduction_amount,
    create_deduction,
    quick_add_deductions,
    total_deductions,
)


@pytest.mark.unit
def test_percentage_deduction_is_share_of_gross():
    form = DeductionInput("Income Tax", DeductionKind.PERCENTAGE, Decimal("20"))
    assert compute_deduction_amount(form, Decimal("3000")) == Decimal("600")


@pytest.mark.unit
def test_fractional_percentage_is_exact():
    form = DeductionInput("Medicare", DeductionKind.PERCENTAGE, Decimal("1.45"))
    amount = compute_deduction_amount(form, Decimal("1234.56"))
    assert amount == Decimal("1234.56") * Decimal("1.45") / Decimal("100")


@pytest.mark.unit
def test_fixed_deduction_returns_value_unchanged():
    form = DeductionInput("Union Dues", DeductionKind.FIXED, Decimal("42.10"))
    assert compute_deduction_amount(form, Decimal("99999")) == Decimal("42.10")


@pytest.mark.unit
@pytest.mark.parametrize("kind", [DeductionKind.PERCENTAGE, DeductionKind.FIXED])
def test_negative_value_is_rejected(kind):
    form = DeductionInput("Bad", kind, Decimal("-1"))
    with pytest.raises(ValidationError) as excinfo:
        compute_deduction_amount(form, Decimal("1000"))
    assert "negative" in excinfo.value.errors[0]


@pytest.mark.unit
def test_percentage_above_hundred_is_rejected():
    form = DeductionInput("Too Much", DeductionKind.PERCENTAGE, Decimal("120"))
    with pytest.raises(ValidationError):
        compute_deduction_amount(form, Decimal("1000"))


@pytest.mark.unit
def test_create_deduction_copies_form_and_computes_amount():
    deduction = create_deduction(DeductionInput("Income Tax", DeductionKind.PERCENTAGE, Decimal("20")), Decimal("3000"))
    assert deduction.amount == Decimal("600")
    assert deduction.value == Decimal("20")
    assert deduction.kind is DeductionKind.PERCENTAGE
    assert deduction.id


@pytest.mark.unit
def test_created_deductions_get_distinct_ids():
    form = DeductionInput("Pension", DeductionKind.FIXED, Decimal("10"))
    assert create_deduction(form, Decimal("0")).id != create_deduction(form, Decimal("0")).id


@pytest.mark.unit
def test_total_deductions_sums_amounts():
    gross = Decimal("2000")
    deductions = [
        create_deduction(DeductionInput("Tax", DeductionKind.PERCENTAGE, Decimal("10")), gross),
        create_deduction(DeductionInput("Pension", DeductionKind.FIXED, Decimal("55.50")), gross),
    ]
    assert total_deductions(deductions) == Decimal("255.50")


@pytest.mark.unit
def test_total_deductions_empty_is_zero():
    assert total_deductions([]) == Decimal("0")


@pytest.mark.unit
def test_quick_add_uk_presets():
    deductions = quick_add_deductions("uk", Decimal("1000"))
    assert [d.name for d in deductions] == ["Income Tax", "National Insurance", "Pension", "Student Loan"]
    assert [d.amount for d in deductions] == [Decimal("200"), Decimal("120"), Decimal("50"), Decimal("90")]


@pytest.mark.unit
def test_quick_add_us_presets():
    deductions = quick_add_deductions("US", Decimal("1000"))
    assert deductions[2].name == "Social Security"
    assert deductions[2].amount == Decimal("62")
    assert deductions[3].amount == Decimal("14.5")


@pytest.mark.unit
def test_quick_add_unknown_locale():
    with pytest.raises(KeyError):
        quick_add_deductions("FR", Decimal("1000"))


@pytest.mark.unit
def test_non_numeric_value_raises_validation_error():
    form = DeductionInput("Income Tax", DeductionKind.PERCENTAGE, Decimal("NaN"))
    with pytest.raises(ValidationError, match="non-numeric value"):
        compute_deduction_amount(form, Decimal("3000"))
    with pytest.raises(ValidationError):
        create_deduction(DeductionInput("Bonus Tax", DeductionKind.FIXED, Decimal("Infinity")), Decimal("3000"))
