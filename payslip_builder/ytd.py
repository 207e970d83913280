#!/usr/bin/env python3

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterator

from payslip_builder.calculator import current_period_figures
from payslip_builder.core import PayslipData, PayslipRecord, YTDFigures
from payslip_builder.periods import period_number
from payslip_builder.store import PayslipStore, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YTDContribution:
    payslip_id: str
    employee_name: str
    period_start: date
    period_end: date
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal

    @classmethod
    def from_record(cls, record: PayslipRecord) -> YTDContribution:
        return cls(
            payslip_id=record.id,
            employee_name=record.employee_name,
            period_start=record.pay_period_start,
            period_end=record.pay_period_end,
            gross_pay=record.gross_salary,
            total_deductions=record.total_deductions,
            net_pay=record.net_salary,
        )

    @property
    def figures(self) -> YTDFigures:
        return YTDFigures(self.gross_pay, self.total_deductions, self.net_pay)


class YTDContributionSet:
    """Historical payslips the user picked to count toward year-to-date totals."""

    def __init__(self) -> None:
        self._contributions: list[YTDContribution] = []
        self.notices: list[str] = []

    def __len__(self) -> int:
        return len(self._contributions)

    def __iter__(self) -> Iterator[YTDContribution]:
        return iter(list(self._contributions))

    def __contains__(self, payslip_id: object) -> bool:
        return any(c.payslip_id == payslip_id for c in self._contributions)

    @property
    def contributions(self) -> list[YTDContribution]:
        return list(self._contributions)

    def add(self, record: PayslipRecord) -> bool:
        if record.id in self:
            notice = "This payslip is already included in YTD calculations"
            logger.warning("%s (payslip %s)", notice, record.id)
            self.notices.append(notice)
            return False
        self._contributions.append(YTDContribution.from_record(record))
        self.notices.append(
            f"Payslip for {record.pay_period_start.isoformat()} to "
            f"{record.pay_period_end.isoformat()} added to YTD"
        )
        return True

    def remove(self, payslip_id: str) -> None:
        self._contributions = [c for c in self._contributions if c.payslip_id != payslip_id]

    def clear(self) -> None:
        self._contributions = []

    def totals(self) -> YTDFigures:
        # Recomputed from scratch on every call.
        total = YTDFigures()
        for contribution in self._contributions:
            total = total + contribution.figures
        return total


def automatic_ytd(data: PayslipData) -> YTDFigures:
    return current_period_figures(data).scaled(period_number(data.period))


def compute_ytd(data: PayslipData, contributions: YTDContributionSet | None = None) -> YTDFigures:
    """(override or automatic) + sum of historical contributions."""
    base = data.ytd_override if data.ytd_override is not None else automatic_ytd(data)
    if contributions is None:
        return base
    return base + contributions.totals()


def enable_override(data: PayslipData) -> YTDFigures:
    data.ytd_override = current_period_figures(data)
    return data.ytd_override


def disable_override(data: PayslipData) -> None:
    data.ytd_override = None


def load_candidate_history(store: PayslipStore, owner_id: str, employee_name: str) -> list[PayslipRecord]:
    """Previous payslips for an employee, newest period first; empty on store failure."""
    if not employee_name:
        return []
    try:
        records = store.list_payslips_for_employee(owner_id, employee_name)
    except StoreError as exc:
        logger.error("Failed to fetch previous payslips for %s: %s", employee_name, exc)
        return []
    return sorted(records or [], key=lambda r: (r.pay_period_start, r.created_at), reverse=True)
