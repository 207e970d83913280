#!/usr/bin/env python3

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from payslip_builder.calculator import current_period_figures, entry_amount
from payslip_builder.core import CENT, PayslipData, format_money, money_str
from payslip_builder.periods import period_number
from payslip_builder.ytd import YTDContributionSet, automatic_ytd, compute_ytd

RENDER_SCHEMA_VERSION = "1.0.0"
PARENT_MODE_YTD_NOTE = (
    "Year-to-Date (YTD) shows how much you've earned and paid in taxes from the beginning of the tax year. "
    "It helps you track your total earnings and plan for the rest of the year!"
)


def to_cents(value: Decimal) -> int:
    return int(value.quantize(CENT, rounding=ROUND_HALF_UP) * 100)


def build_render_context(
    data: PayslipData,
    currency: str,
    contributions: YTDContributionSet | None = None,
) -> dict[str, Any]:
    """
    Numbers handed to a payslip template.

    gross equals the sum of entries, net equals gross minus deductions, and
    ytd equals (override or automatic) plus historical contributions.
    Money is emitted as two-decimal strings alongside integer cents.
    """
    current = current_period_figures(data)
    ytd = compute_ytd(data, contributions)

    return {
        "schema_version": RENDER_SCHEMA_VERSION,
        "currency": currency,
        "payslip": {
            "employee_name": data.employee_name,
            "payroll_number": data.payroll_number,
            "company_name": data.company_name,
            "company_address": data.company_address,
            "company_phone": data.company_phone,
            "company_email": data.company_email,
            "company_registration": data.company_registration,
            "pay_period_start": data.pay_period_start.isoformat() if data.pay_period_start else None,
            "pay_period_end": data.pay_period_end.isoformat() if data.pay_period_end else None,
            "period": data.period,
            "payment_entries": [
                {
                    "description": entry.description,
                    "kind": entry.kind.value,
                    "quantity": str(entry.quantity) if entry.quantity is not None else None,
                    "rate": money_str(entry.rate) if entry.rate is not None else None,
                    "amount": money_str(entry_amount(entry)),
                }
                for entry in data.payment_entries
            ],
            "deductions": [
                {"name": d.name, "kind": d.kind.value, "value": str(d.value), "amount": money_str(d.amount)}
                for d in data.deductions
            ],
        },
        "gross_pay": money_str(current.gross_pay),
        "total_deductions": money_str(current.total_deductions),
        "net_pay": money_str(current.net_pay),
        "gross_pay_cents": to_cents(current.gross_pay),
        "total_deductions_cents": to_cents(current.total_deductions),
        "net_pay_cents": to_cents(current.net_pay),
        "ytd": ytd.to_dict(),
        "ytd_source": "override" if data.ytd_override is not None else "automatic",
        "ytd_contribution_count": len(contributions) if contributions is not None else 0,
    }


def payslip_to_markdown(
    data: PayslipData,
    currency: str,
    contributions: YTDContributionSet | None = None,
    parent_mode: bool = False,
) -> str:
    current = current_period_figures(data)
    ytd = compute_ytd(data, contributions)

    lines: list[str] = []
    lines.append(f"# Payslip: {data.employee_name}")
    lines.append("")
    lines.append(f"- Company: {data.company_name}")
    if data.payroll_number:
        lines.append(f"- Payroll Number: {data.payroll_number}")
    if data.pay_period_start and data.pay_period_end:
        lines.append(f"- Pay Period: {data.pay_period_start.isoformat()} to {data.pay_period_end.isoformat()}")
    lines.append("")

    lines.append("## Payments")
    lines.append("| Description | Type | Hours | Rate | Amount |")
    lines.append("| :--- | :--- | ---: | ---: | ---: |")
    for entry in data.payment_entries:
        hours = str(entry.quantity) if entry.quantity is not None else ""
        rate = format_money(entry.rate, currency) if entry.rate is not None else ""
        lines.append(
            f"| {entry.description or '-'} | {entry.kind.value} | {hours} | {rate} | "
            f"{format_money(entry_amount(entry), currency)} |"
        )
    lines.append("")

    lines.append("## Deductions")
    if data.deductions:
        lines.append("| Name | Rule | Amount |")
        lines.append("| :--- | :--- | ---: |")
        for d in data.deductions:
            rule = f"{d.value}%" if d.kind.value == "percentage" else format_money(d.value, currency)
            lines.append(f"| {d.name} | {rule} | {format_money(d.amount, currency)} |")
    else:
        lines.append("- None")
    lines.append("")

    lines.append("## Summary")
    lines.append("| | This Period | Year to Date |")
    lines.append("| :--- | ---: | ---: |")
    lines.append(f"| Gross Pay | {format_money(current.gross_pay, currency)} | {format_money(ytd.gross_pay, currency)} |")
    lines.append(
        f"| Deductions | {format_money(current.total_deductions, currency)} | "
        f"{format_money(ytd.total_deductions, currency)} |"
    )
    lines.append(f"| Net Pay | {format_money(current.net_pay, currency)} | {format_money(ytd.net_pay, currency)} |")
    lines.append("")

    if current.net_pay < 0:
        lines.append("> Warning: deductions exceed gross pay for this period.")
        lines.append("")

    if data.ytd_override is not None:
        lines.append("_YTD uses manually entered values._")
    else:
        auto = automatic_ytd(data)
        lines.append(
            f"_YTD calculated: {format_money(current.gross_pay, currency)} x {period_number(data.period)} months "
            f"= {format_money(auto.gross_pay, currency)}._"
        )
    if contributions is not None and len(contributions):
        lines.append("")
        lines.append("### YTD Contributions")
        for c in contributions:
            lines.append(
                f"- {c.period_start.isoformat()} to {c.period_end.isoformat()}: "
                f"+{format_money(c.gross_pay, currency)}"
            )

    if parent_mode:
        lines.append("")
        lines.append(f"> {PARENT_MODE_YTD_NOTE}")

    return "\n".join(lines) + "\n"
