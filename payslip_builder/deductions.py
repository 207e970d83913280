from __future__ import annotations

from decimal import Decimal
from typing import Iterable, NamedTuple

from payslip_builder.core import (
    ZERO,
    Deduction,
    DeductionInput,
    DeductionKind,
    ValidationError,
    as_decimal,
    new_id,
)

HUNDRED = Decimal("100")


class CommonDeduction(NamedTuple):
    name: str
    value: Decimal
    kind: DeductionKind


UK_DEDUCTIONS: tuple[CommonDeduction, ...] = (
    CommonDeduction("Income Tax", Decimal("20"), DeductionKind.PERCENTAGE),
    CommonDeduction("National Insurance", Decimal("12"), DeductionKind.PERCENTAGE),
    CommonDeduction("Pension", Decimal("5"), DeductionKind.PERCENTAGE),
    CommonDeduction("Student Loan", Decimal("9"), DeductionKind.PERCENTAGE),
)

US_DEDUCTIONS: tuple[CommonDeduction, ...] = (
    CommonDeduction("Federal Tax", Decimal("22"), DeductionKind.PERCENTAGE),
    CommonDeduction("State Tax", Decimal("5"), DeductionKind.PERCENTAGE),
    CommonDeduction("Social Security", Decimal("6.2"), DeductionKind.PERCENTAGE),
    CommonDeduction("Medicare", Decimal("1.45"), DeductionKind.PERCENTAGE),
)

COMMON_DEDUCTIONS = {"UK": UK_DEDUCTIONS, "US": US_DEDUCTIONS}


def compute_deduction_amount(deduction: DeductionInput | Deduction, gross_pay: Decimal) -> Decimal:
    value = as_decimal(deduction.value)
    if not value.is_finite():
        raise ValidationError([f"Deduction '{deduction.name}' has a non-numeric value ({value})"])
    if value < 0:
        raise ValidationError([f"Deduction '{deduction.name}' has a negative value ({value})"])

    kind = DeductionKind(deduction.kind)
    if kind is DeductionKind.PERCENTAGE:
        if value > HUNDRED:
            raise ValidationError([f"Deduction '{deduction.name}' percentage {value} exceeds 100"])
        return as_decimal(gross_pay) * value / HUNDRED
    if kind is DeductionKind.FIXED:
        return value
    raise ValueError(f"Unsupported deduction kind: {kind}")


def create_deduction(form_input: DeductionInput, gross_pay: Decimal) -> Deduction:
    """
    Build a deduction whose amount is frozen at creation time.

    The amount is evaluated against ``gross_pay`` once. Later changes to the
    payslip's gross pay do not touch it.
    """
    return Deduction(
        id=new_id(),
        name=form_input.name,
        kind=DeductionKind(form_input.kind),
        value=as_decimal(form_input.value),
        amount=compute_deduction_amount(form_input, gross_pay),
    )


def total_deductions(deductions: Iterable[Deduction]) -> Decimal:
    return sum((d.amount for d in deductions), ZERO)


def quick_add_deductions(locale: str, gross_pay: Decimal) -> list[Deduction]:
    presets = COMMON_DEDUCTIONS.get(locale.upper())
    if presets is None:
        raise KeyError(f"No common deductions for locale: {locale}")
    return [create_deduction(DeductionInput(p.name, p.kind, p.value), gross_pay) for p in presets]
