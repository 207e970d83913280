"""
CLI Entry Point: payslip-history

List, export and delete saved payslips, and manage the saved employees
that seed new payslips.
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path

from payslip_builder.config import load_settings, locale_config
from payslip_builder.core import EmployeeRecord, PayslipRecord, format_money, new_id
from payslip_builder.store import (
    JsonFilePayslipStore,
    StoreError,
    default_export_name,
    delete_payslips,
    write_records_csv,
)
from payslip_builder.utils.console import ask_confirm, print_error, print_success, print_table
from payslip_builder.utils.contracts import ContractError

EXIT_STORE_ERROR = 2
EXIT_INVALID_INPUT = 2


def sorted_records(records: list[PayslipRecord]) -> list[PayslipRecord]:
    return sorted(records, key=lambda r: (r.pay_period_start, r.created_at), reverse=True)


def money_arg(value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not an amount: {value}") from exc
    if not amount.is_finite():
        raise argparse.ArgumentTypeError(f"not an amount: {value}")
    return amount


def output_employees(employees: list[EmployeeRecord], currency: str) -> None:
    print_table(
        f"Employees ({len(employees)})",
        ["ID", "Name", "Payroll", "Gross"],
        [
            [
                e.id,
                e.name,
                e.payroll_number or "-",
                format_money(e.default_gross_salary, currency) if e.default_gross_salary is not None else "-",
            ]
            for e in employees
        ],
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Manage saved payslips and employees.")
    parser.add_argument("--settings", type=Path, default=None, help="Optional settings JSON file.")
    parser.add_argument("--store", type=Path, default=None, help="Payslip history JSON store.")
    parser.add_argument("--owner", default=None, help="Owner id whose payslips to manage.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List saved payslips.")
    list_parser.add_argument("--employee", default=None, help="Only payslips for this employee.")
    list_parser.add_argument("--child", default=None, help="Only payslips attributed to this child profile.")

    export_parser = subparsers.add_parser("export", help="Export payslips to CSV.")
    export_parser.add_argument("ids", nargs="*", help="Payslip ids to export (default: all).")
    export_parser.add_argument("--out", type=Path, default=None, help="CSV output path.")

    delete_parser = subparsers.add_parser("delete", help="Delete payslips.")
    delete_parser.add_argument("ids", nargs="+", help="Payslip ids to delete.")
    delete_parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")

    employees_parser = subparsers.add_parser("employees", help="List saved employees.")
    employees_parser.add_argument("--search", default=None, help="Match on name or payroll number.")

    add_employee_parser = subparsers.add_parser("add-employee", help="Save a new employee.")
    add_employee_parser.add_argument("name", help="Employee name.")
    add_employee_parser.add_argument("--payroll-number", default="", help="Payroll number.")
    add_employee_parser.add_argument("--gross", type=money_arg, default=None, help="Default gross pay per period.")
    add_employee_parser.add_argument("--email", default=None)
    add_employee_parser.add_argument("--phone", default=None)
    add_employee_parser.add_argument("--address", default=None)
    add_employee_parser.add_argument("--tax-code", default=None)
    add_employee_parser.add_argument("--ni-number", default=None)
    add_employee_parser.add_argument("--notes", default="")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.settings)
    except (ContractError, json.JSONDecodeError) as exc:
        print_error(f"Invalid settings file: {exc}", exit_code=EXIT_INVALID_INPUT)
    if args.store:
        settings.store_path = args.store
    if args.owner:
        settings.owner_id = args.owner
    currency = locale_config(settings.locale).currency

    try:
        store = JsonFilePayslipStore(settings.store_path)
    except StoreError as exc:
        print_error(str(exc), exit_code=EXIT_STORE_ERROR)

    if args.command == "list":
        if args.employee:
            records = store.list_payslips_for_employee(settings.owner_id, args.employee)
            if args.child:
                records = [r for r in records if r.child_id == args.child]
        else:
            records = store.list_payslips(settings.owner_id, child_id=args.child)
        print_table(
            f"Payslips ({len(records)})",
            ["ID", "Employee", "Company", "Period", "Gross", "Deductions", "Net"],
            [
                [
                    r.id,
                    r.employee_name,
                    r.company_name,
                    f"{r.pay_period_start.isoformat()} - {r.pay_period_end.isoformat()}",
                    format_money(r.gross_salary, currency),
                    format_money(r.total_deductions, currency),
                    format_money(r.net_salary, currency),
                ]
                for r in sorted_records(records)
            ],
        )
        return

    if args.command == "export":
        records = store.list_payslips(settings.owner_id)
        if args.ids:
            wanted = set(args.ids)
            records = [r for r in records if r.id in wanted]
        out = args.out or Path(default_export_name())
        write_records_csv(out, sorted_records(records))
        print_success(f"{len(records)} payslip{'s' if len(records) != 1 else ''} exported to {out}")
        return

    if args.command == "delete":
        owned = {r.id for r in store.list_payslips(settings.owner_id)}
        missing = [payslip_id for payslip_id in args.ids if payslip_id not in owned]
        if missing:
            print_error(f"Payslip(s) not found: {', '.join(missing)}", exit_code=EXIT_STORE_ERROR)
        if not args.yes and not ask_confirm(f"Delete {len(args.ids)} payslip(s)?"):
            print_error("Deletion cancelled.", exit_code=1)
        try:
            deleted = delete_payslips(store, args.ids)
        except StoreError as exc:
            print_error(str(exc), exit_code=EXIT_STORE_ERROR)
        print_success(f"{deleted} payslip{'s' if deleted != 1 else ''} deleted successfully")
        return

    if args.command == "employees":
        output_employees(store.list_employees(settings.owner_id, search=args.search), currency)
        return

    if args.command == "add-employee":
        employee = EmployeeRecord(
            id=new_id(),
            owner_id=settings.owner_id,
            name=args.name.strip(),
            payroll_number=args.payroll_number.strip(),
            email=args.email,
            phone=args.phone,
            address=args.address,
            default_gross_salary=args.gross,
            tax_code=args.tax_code,
            ni_number=args.ni_number,
            notes=args.notes,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        try:
            store.create_employee(employee)
        except StoreError as exc:
            print_error(str(exc), exit_code=EXIT_INVALID_INPUT)
        print_success(f"Saved employee {employee.id} ({employee.name})")


if __name__ == "__main__":
    main()
