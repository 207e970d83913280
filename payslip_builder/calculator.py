#!/usr/bin/env python3

from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable

from payslip_builder.core import (
    MAX_FINANCIAL_AMOUNT,
    ZERO,
    Deduction,
    DeductionKind,
    EmployeeRecord,
    PaymentEntry,
    PaymentKind,
    PayslipData,
    PayslipRecord,
    RecordDeduction,
    ValidationError,
    YTDFigures,
    as_decimal,
    as_optional_decimal,
    new_id,
)
from payslip_builder.deductions import total_deductions
from payslip_builder.periods import Frequency, pay_period_for, period_key

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[A-Za-z0-9 \-'.]+$")
PAYROLL_NUMBER_RE = re.compile(r"^[A-Za-z0-9\-]+$")
MAX_NAME_LENGTH = 100
MAX_PAYROLL_NUMBER_LENGTH = 20
MAX_DEDUCTION_NAME_LENGTH = 50
MAX_PERIOD_DISTANCE = timedelta(days=365)


def entry_amount(entry: PaymentEntry) -> Decimal:
    kind = PaymentKind(entry.kind)
    if kind in (PaymentKind.FIXED, PaymentKind.BONUS):
        return entry.amount
    if kind in (PaymentKind.HOURLY, PaymentKind.OVERTIME):
        if entry.quantity is not None and entry.rate is not None:
            return entry.quantity * entry.rate
        return entry.amount
    raise ValueError(f"Unsupported payment kind: {kind}")


def gross_pay(entries: Iterable[PaymentEntry]) -> Decimal:
    return sum((entry_amount(entry) for entry in entries), ZERO)


def net_pay(gross: Decimal, deductions: Iterable[Deduction]) -> Decimal:
    # Not clamped: deductions may exceed gross and the caller must be able to see that.
    return gross - total_deductions(deductions)


def current_period_figures(data: PayslipData) -> YTDFigures:
    deducted = total_deductions(data.deductions)
    return YTDFigures(
        gross_pay=data.gross_pay,
        total_deductions=deducted,
        net_pay=data.gross_pay - deducted,
    )


def refresh_gross_pay(data: PayslipData) -> Decimal:
    data.gross_pay = gross_pay(data.payment_entries)
    return data.gross_pay


def make_payment_entry(
    kind: PaymentKind | str = PaymentKind.FIXED,
    description: str = "",
    amount: Any = None,
    quantity: Any = None,
    rate: Any = None,
    entry_id: str | None = None,
) -> PaymentEntry:
    entry = PaymentEntry(
        id=entry_id or new_id(),
        description=description,
        kind=PaymentKind(kind),
        amount=as_decimal(amount),
        quantity=as_optional_decimal(quantity),
        rate=as_optional_decimal(rate),
    )
    entry.amount = entry_amount(entry)
    return entry


def add_payment_entry(data: PayslipData, entry: PaymentEntry | None = None) -> PaymentEntry:
    entry = entry or make_payment_entry()
    entry.amount = entry_amount(entry)
    data.payment_entries.append(entry)
    refresh_gross_pay(data)
    return entry


def update_payment_entry(data: PayslipData, entry_id: str, **changes: Any) -> PaymentEntry:
    for index, entry in enumerate(data.payment_entries):
        if entry.id != entry_id:
            continue
        if "amount" in changes:
            changes["amount"] = as_decimal(changes["amount"])
        for key in ("quantity", "rate"):
            if key in changes:
                changes[key] = as_optional_decimal(changes[key])
        if "kind" in changes:
            changes["kind"] = PaymentKind(changes["kind"])
        updated = replace(entry, **changes)
        updated.amount = entry_amount(updated)
        data.payment_entries[index] = updated
        refresh_gross_pay(data)
        return updated
    raise KeyError(f"No payment entry with id {entry_id}")


def remove_payment_entry(data: PayslipData, entry_id: str) -> bool:
    """Remove an entry by id. The last remaining entry is never removed."""
    if len(data.payment_entries) <= 1:
        return False
    remaining = [entry for entry in data.payment_entries if entry.id != entry_id]
    if len(remaining) == len(data.payment_entries):
        return False
    data.payment_entries = remaining
    refresh_gross_pay(data)
    return True


def as_today(now: date | datetime | None) -> date:
    if now is None:
        return date.today()
    if isinstance(now, datetime):
        return now.date()
    return now


def validate_name(label: str, value: str, errors: list[str]) -> None:
    value = (value or "").strip()
    if not value:
        errors.append(f"{label} is required")
    elif len(value) > MAX_NAME_LENGTH:
        errors.append(f"{label} must be at most {MAX_NAME_LENGTH} characters")
    elif NAME_RE.match(value) is None:
        errors.append(f"{label} contains invalid characters")


def validate_payroll_number(value: str | None, errors: list[str]) -> None:
    value = (value or "").strip()
    if value and (len(value) > MAX_PAYROLL_NUMBER_LENGTH or PAYROLL_NUMBER_RE.match(value) is None):
        errors.append("Payroll number contains invalid characters")


def validate_payslip(data: PayslipData, now: date | datetime | None = None) -> list[str]:
    """
    Collect every rule the draft violates.

    Rules:
    1. Company and employee names are non-empty and use letters, digits,
       spaces, hyphens, apostrophes and periods only.
    2. Payroll number, when given, uses letters, digits and hyphens only.
    3. At least one payment entry has an amount above zero; no entry is
       negative or non-finite.
    4. The pay period start precedes its end and both lie within one year
       of ``now``.
    5. Every deduction has a name of at most 50 characters and a finite,
       non-negative amount no greater than 999,999,999.99.
    """
    errors: list[str] = []
    today = as_today(now)

    validate_name("Employee name", data.employee_name, errors)
    validate_name("Company name", data.company_name, errors)

    validate_payroll_number(data.payroll_number, errors)

    amounts = []
    for index, entry in enumerate(data.payment_entries, start=1):
        amount = entry_amount(entry)
        if not amount.is_finite() or amount < 0:
            errors.append(f"Payment entry {index} has an invalid amount")
            continue
        amounts.append(amount)
    if not any(amount > 0 for amount in amounts):
        errors.append("At least one payment entry must have an amount greater than 0")
    else:
        total = sum(amounts, ZERO)
        if total > MAX_FINANCIAL_AMOUNT:
            errors.append("Invalid gross pay amount")

    start, end = data.pay_period_start, data.pay_period_end
    if start is None or end is None:
        errors.append("Pay period is required")
    else:
        if start >= end:
            errors.append("Pay period start must be before pay period end")
        if abs(start - today) > MAX_PERIOD_DISTANCE or abs(end - today) > MAX_PERIOD_DISTANCE:
            errors.append("Pay period dates must be within one year of today")

    for index, deduction in enumerate(data.deductions, start=1):
        name = (deduction.name or "").strip()
        if not name:
            errors.append(f"Deduction {index} must have a name")
        elif len(name) > MAX_DEDUCTION_NAME_LENGTH:
            errors.append(f"Deduction '{name[:20]}...' name exceeds {MAX_DEDUCTION_NAME_LENGTH} characters")
        amount = deduction.amount
        if not amount.is_finite() or amount < 0 or amount > MAX_FINANCIAL_AMOUNT:
            errors.append(f"Deduction {index} has an invalid amount")

    return errors


def ensure_valid(data: PayslipData, now: date | datetime | None = None) -> None:
    errors = validate_payslip(data, now=now)
    if errors:
        raise ValidationError(errors)


def build_payslip_record(
    data: PayslipData,
    owner_id: str,
    now: datetime | None = None,
    record_id: str | None = None,
) -> PayslipRecord:
    """Validate a draft and freeze it into a record ready for the store."""
    now = now or datetime.now(timezone.utc)
    ensure_valid(data, now=now)
    start, end = data.pay_period_start, data.pay_period_end
    if start is None or end is None:
        raise ValidationError(["Pay period is required"])

    gross = gross_pay(data.payment_entries)
    logger.debug("Freezing payslip for %s (%s)", data.employee_name, data.period)
    return PayslipRecord(
        id=record_id or new_id(),
        owner_id=owner_id,
        child_id=data.child_id,
        employee_name=data.employee_name.strip(),
        payroll_number=(data.payroll_number or "").strip(),
        company_name=data.company_name.strip(),
        pay_period_start=start,
        pay_period_end=end,
        gross_salary=gross,
        net_salary=net_pay(gross, data.deductions),
        deductions=tuple(
            RecordDeduction(id=d.id, name=d.name.strip(), amount=d.amount) for d in data.deductions
        ),
        created_at=now.isoformat(),
    )


def draft_from_record(record: PayslipRecord) -> PayslipData:
    """Reload a saved record into a fresh draft for editing or duplication."""
    entry = make_payment_entry(PaymentKind.FIXED, description="Salary", amount=record.gross_salary)
    deductions = [
        Deduction(id=new_id(), name=d.name, kind=DeductionKind.FIXED, value=d.amount, amount=d.amount)
        for d in record.deductions
    ]
    return PayslipData(
        employee_name=record.employee_name,
        payroll_number=record.payroll_number,
        company_name=record.company_name,
        pay_period_start=record.pay_period_start,
        pay_period_end=record.pay_period_end,
        period=period_key(record.pay_period_start),
        frequency="custom",
        payment_entries=[entry],
        gross_pay=entry.amount,
        deductions=deductions,
        child_id=record.child_id,
    )


def validate_employee(employee: EmployeeRecord) -> list[str]:
    errors: list[str] = []
    validate_name("Employee name", employee.name, errors)
    validate_payroll_number(employee.payroll_number, errors)
    salary = employee.default_gross_salary
    if salary is not None and (not salary.is_finite() or salary < 0 or salary > MAX_FINANCIAL_AMOUNT):
        errors.append("Default gross salary is invalid")
    return errors


def draft_from_employee(
    employee: EmployeeRecord,
    company_name: str = "",
    frequency: Frequency | str = Frequency.MONTHLY,
    reference: date | None = None,
) -> PayslipData:
    """
    Start a draft prefilled from a saved employee.

    A default gross salary becomes a single fixed "Basic Salary" entry;
    otherwise the draft starts with one empty fixed entry.
    """
    salary = employee.default_gross_salary
    entry = make_payment_entry(PaymentKind.FIXED, description="Basic Salary" if salary else "", amount=salary)
    period = pay_period_for(frequency, reference)
    data = PayslipData(
        employee_name=employee.name,
        payroll_number=employee.payroll_number,
        company_name=company_name,
        pay_period_start=period.start,
        pay_period_end=period.end,
        period=period.period,
        frequency=Frequency(frequency).value,
        payment_entries=[entry],
    )
    refresh_gross_pay(data)
    return data
