#!/usr/bin/env python3

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
MAX_FINANCIAL_AMOUNT = Decimal("999999999.99")


class PaymentKind(str, Enum):
    FIXED = "fixed"
    HOURLY = "hourly"
    OVERTIME = "overtime"
    BONUS = "bonus"


class DeductionKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ValidationError(Exception):
    """Raised when payslip input violates one or more structural rules."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


def new_id() -> str:
    return uuid.uuid4().hex


def as_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def reject_non_finite(token: str) -> Any:
    """``parse_constant`` hook for ``json.load``: NaN and Infinity are never amounts."""
    raise ValueError(f"Non-finite number {token} is not a valid amount")


def as_optional_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return as_decimal(value)


def money_str(value: Decimal) -> str:
    """Two-decimal string without currency symbol, e.g. ``"2400.00"``."""
    return f"{value.quantize(CENT):.2f}"


def format_money(value: Decimal | None, currency: str = "£") -> str:
    if value is None:
        return "n/a"
    quantized = value.quantize(CENT)
    if quantized < 0:
        return f"-{currency}{-quantized:,.2f}"
    return f"{currency}{quantized:,.2f}"


@dataclass
class PaymentEntry:
    id: str
    description: str
    kind: PaymentKind
    amount: Decimal = ZERO
    quantity: Decimal | None = None
    rate: Decimal | None = None


@dataclass
class DeductionInput:
    name: str
    kind: DeductionKind
    value: Decimal


@dataclass
class Deduction:
    id: str
    name: str
    kind: DeductionKind
    value: Decimal
    amount: Decimal


@dataclass
class YTDFigures:
    gross_pay: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_pay: Decimal = ZERO

    def __add__(self, other: YTDFigures) -> YTDFigures:
        return YTDFigures(
            gross_pay=self.gross_pay + other.gross_pay,
            total_deductions=self.total_deductions + other.total_deductions,
            net_pay=self.net_pay + other.net_pay,
        )

    def scaled(self, factor: int) -> YTDFigures:
        return YTDFigures(
            gross_pay=self.gross_pay * factor,
            total_deductions=self.total_deductions * factor,
            net_pay=self.net_pay * factor,
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "gross_pay": money_str(self.gross_pay),
            "total_deductions": money_str(self.total_deductions),
            "net_pay": money_str(self.net_pay),
        }


@dataclass
class PayslipData:
    employee_name: str = ""
    payroll_number: str = ""
    company_name: str = ""
    company_address: str | None = None
    company_phone: str | None = None
    company_email: str | None = None
    company_registration: str | None = None
    pay_period_start: date | None = None
    pay_period_end: date | None = None
    period: str = ""
    frequency: str = "monthly"
    payment_entries: list[PaymentEntry] = field(default_factory=list)
    gross_pay: Decimal = ZERO
    deductions: list[Deduction] = field(default_factory=list)
    ytd_override: YTDFigures | None = None
    child_id: str | None = None


@dataclass(frozen=True)
class RecordDeduction:
    id: str
    name: str
    amount: Decimal


@dataclass(frozen=True)
class PayslipRecord:
    id: str
    owner_id: str
    employee_name: str
    company_name: str
    pay_period_start: date
    pay_period_end: date
    gross_salary: Decimal
    net_salary: Decimal
    deductions: tuple[RecordDeduction, ...] = ()
    created_at: str = ""
    payroll_number: str = ""
    child_id: str | None = None

    @property
    def total_deductions(self) -> Decimal:
        return sum((d.amount for d in self.deductions), ZERO)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "child_id": self.child_id,
            "employee_name": self.employee_name,
            "payroll_number": self.payroll_number,
            "company_name": self.company_name,
            "pay_period_start": self.pay_period_start.isoformat(),
            "pay_period_end": self.pay_period_end.isoformat(),
            "gross_salary": money_str(self.gross_salary),
            "net_salary": money_str(self.net_salary),
            "deductions": [{"id": d.id, "name": d.name, "amount": money_str(d.amount)} for d in self.deductions],
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PayslipRecord:
        raw_deductions = payload.get("deductions") or []
        deductions = tuple(
            RecordDeduction(
                id=str(item.get("id", "")),
                name=str(item.get("name", "")),
                amount=as_decimal(item.get("amount")),
            )
            for item in raw_deductions
            if isinstance(item, dict)
        )
        return cls(
            id=str(payload["id"]),
            owner_id=str(payload.get("owner_id") or payload.get("user_id") or ""),
            child_id=payload.get("child_id"),
            employee_name=payload["employee_name"],
            payroll_number=payload.get("payroll_number") or "",
            company_name=payload["company_name"],
            pay_period_start=date.fromisoformat(payload["pay_period_start"]),
            pay_period_end=date.fromisoformat(payload["pay_period_end"]),
            gross_salary=as_decimal(payload.get("gross_salary")),
            net_salary=as_decimal(payload.get("net_salary")),
            deductions=deductions,
            created_at=payload.get("created_at") or "",
        )


@dataclass(frozen=True)
class EmployeeRecord:
    """A saved employee whose details seed new payslips."""

    id: str
    owner_id: str
    name: str
    payroll_number: str = ""
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    default_gross_salary: Decimal | None = None
    tax_code: str | None = None
    ni_number: str | None = None
    notes: str = ""
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "payroll_number": self.payroll_number,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "default_gross_salary": (
                money_str(self.default_gross_salary) if self.default_gross_salary is not None else None
            ),
            "tax_code": self.tax_code,
            "ni_number": self.ni_number,
            "notes": self.notes,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> EmployeeRecord:
        return cls(
            id=str(payload["id"]),
            owner_id=str(payload.get("owner_id") or payload.get("user_id") or ""),
            name=payload["name"],
            payroll_number=payload.get("payroll_number") or "",
            email=payload.get("email"),
            phone=payload.get("phone"),
            address=payload.get("address"),
            default_gross_salary=as_optional_decimal(payload.get("default_gross_salary")),
            tax_code=payload.get("tax_code"),
            ni_number=payload.get("ni_number"),
            notes=payload.get("notes") or "",
            created_at=payload.get("created_at") or "",
        )
