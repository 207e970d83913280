import json
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable

import pytest

from payslip_builder.calculator import make_payment_entry, refresh_gross_pay
from payslip_builder.core import (
    DeductionInput,
    DeductionKind,
    PaymentKind,
    PayslipData,
    PayslipRecord,
    RecordDeduction,
)
from payslip_builder.deductions import create_deduction
from payslip_builder.periods import month_bounds, period_key


@pytest.fixture
def this_month() -> tuple[date, date]:
    today = date.today()
    return month_bounds(today.year, today.month)


@pytest.fixture
def make_draft(this_month: tuple[date, date]) -> Callable[..., PayslipData]:
    """Factory for a valid monthly draft with one fixed entry and a 20% deduction."""

    def _make(gross: str = "3000.00", deduction_percent: str | None = "20", **overrides: Any) -> PayslipData:
        start, end = this_month
        data = PayslipData(
            employee_name="Jane Smith",
            payroll_number="EMP-001",
            company_name="Acme Ltd.",
            pay_period_start=start,
            pay_period_end=end,
            period=period_key(start),
            payment_entries=[make_payment_entry(PaymentKind.FIXED, "Salary", amount=gross)],
        )
        refresh_gross_pay(data)
        if deduction_percent is not None:
            data.deductions.append(
                create_deduction(
                    DeductionInput("Income Tax", DeductionKind.PERCENTAGE, Decimal(deduction_percent)),
                    data.gross_pay,
                )
            )
        for key, value in overrides.items():
            setattr(data, key, value)
        return data

    return _make


@pytest.fixture
def make_record() -> Callable[..., PayslipRecord]:
    def _make(
        record_id: str,
        start: date,
        gross: str = "900.00",
        deductions: str = "180.00",
        employee_name: str = "Jane Smith",
        owner_id: str = "owner-1",
        child_id: str | None = None,
    ) -> PayslipRecord:
        gross_value = Decimal(gross)
        deduction_value = Decimal(deductions)
        return PayslipRecord(
            id=record_id,
            owner_id=owner_id,
            child_id=child_id,
            employee_name=employee_name,
            company_name="Acme Ltd.",
            pay_period_start=start,
            pay_period_end=start + timedelta(days=27),
            gross_salary=gross_value,
            net_salary=gross_value - deduction_value,
            deductions=(RecordDeduction(id=f"{record_id}-d1", name="Income Tax", amount=deduction_value),),
            created_at=f"{start.isoformat()}T09:00:00+00:00",
        )

    return _make


@pytest.fixture
def draft_payload(this_month: tuple[date, date]) -> dict[str, Any]:
    start, end = this_month
    return {
        "version": "1.0.0",
        "employee_name": "Jane Smith",
        "payroll_number": "EMP-001",
        "company_name": "Acme Ltd.",
        "frequency": "monthly",
        "pay_period_start": start.isoformat(),
        "pay_period_end": end.isoformat(),
        "payment_entries": [
            {"description": "Salary", "kind": "fixed", "amount": "2500.00"},
            {"description": "Overtime", "kind": "overtime", "quantity": "10", "rate": "25.00"},
        ],
        "deductions": [
            {"name": "Income Tax", "kind": "percentage", "value": "20"},
            {"name": "Pension", "kind": "fixed", "value": "100.00"},
        ],
    }


@pytest.fixture
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    def _write(name: str, payload: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
