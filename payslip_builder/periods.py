"""
Pay period derivation.

Every period carries a coarse ``YYYY-MM`` key taken from its start date. A
weekly or bi-weekly period that crosses a month boundary is attributed to the
month it starts in.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

PERIOD_RE = re.compile(r"^(\d{4})-(\d{1,2})")


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    CUSTOM = "custom"


PRESETS = ("lastWeek", "thisMonth", "lastMonth", "customQuarter")


@dataclass(frozen=True)
class PayPeriod:
    start: date
    end: date
    period: str


def period_key(start: date) -> str:
    return f"{start.year}-{start.month:02d}"


def make_period(start: date, end: date) -> PayPeriod:
    return PayPeriod(start=start, end=end, period=period_key(start))


def week_monday(reference: date) -> date:
    # date.weekday(): Monday == 0, Sunday == 6
    return reference - timedelta(days=reference.weekday())


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def quarter_bounds(reference: date) -> tuple[date, date]:
    first_month = ((reference.month - 1) // 3) * 3 + 1
    start, _ = month_bounds(reference.year, first_month)
    _, end = month_bounds(reference.year, first_month + 2)
    return start, end


def pay_period_for(
    frequency: Frequency | str,
    reference: date | None = None,
    start: date | None = None,
    end: date | None = None,
) -> PayPeriod:
    frequency = Frequency(frequency)
    reference = reference or date.today()

    if frequency is Frequency.WEEKLY:
        monday = week_monday(reference)
        return make_period(monday, monday + timedelta(days=6))
    if frequency is Frequency.BI_WEEKLY:
        monday = week_monday(reference)
        return make_period(monday, monday + timedelta(days=13))
    if frequency is Frequency.MONTHLY:
        return make_period(*month_bounds(reference.year, reference.month))
    if frequency is Frequency.QUARTERLY:
        return make_period(*quarter_bounds(reference))
    if frequency is Frequency.CUSTOM:
        if start is None or end is None:
            raise ValueError("Custom pay periods require explicit start and end dates.")
        return make_period(start, end)
    raise ValueError(f"Unsupported frequency: {frequency}")


def preset_period(preset: str, reference: date | None = None) -> PayPeriod:
    """Seed dates for a custom period from one of the named presets."""
    reference = reference or date.today()

    if preset == "lastWeek":
        monday = week_monday(reference) - timedelta(days=7)
        return make_period(monday, monday + timedelta(days=6))
    if preset == "thisMonth":
        return make_period(*month_bounds(reference.year, reference.month))
    if preset == "lastMonth":
        last_of_previous = reference.replace(day=1) - timedelta(days=1)
        return make_period(*month_bounds(last_of_previous.year, last_of_previous.month))
    if preset == "customQuarter":
        return make_period(*quarter_bounds(reference))
    raise ValueError(f"Unknown period preset: {preset}. Expected one of {', '.join(PRESETS)}.")


def period_number(period: str | None) -> int:
    """1-based calendar month of a ``YYYY-MM`` key; 1 when missing or unparseable."""
    if not period:
        return 1
    match = PERIOD_RE.match(period)
    if match is None:
        return 1
    month = int(match.group(2))
    if month < 1 or month > 12:
        return 1
    return month
