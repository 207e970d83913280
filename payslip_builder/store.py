#!/usr/bin/env python3

from __future__ import annotations

import csv
import json
import logging
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Protocol

from payslip_builder.calculator import validate_employee, validate_name, validate_payroll_number
from payslip_builder.core import EmployeeRecord, PayslipRecord, as_decimal, money_str, reject_non_finite
from payslip_builder.utils.contracts import ContractError, validate_payload

logger = logging.getLogger(__name__)

RECORD_SCHEMA = "payslip_record"
EMPLOYEE_SCHEMA = "employee_record"
CSV_HEADERS = [
    "Employee Name",
    "Company Name",
    "Pay Period Start",
    "Pay Period End",
    "Gross Salary",
    "Net Salary",
    "Created Date",
]
# Fields a patch may change; everything else on a saved record is fixed.
PATCHABLE_FIELDS = {"employee_name", "company_name", "payroll_number", "child_id"}


class StoreError(Exception):
    """Raised when the payslip store cannot complete a request."""


class PayslipStore(Protocol):
    def list_payslips_for_employee(self, owner_id: str, employee_name: str) -> list[PayslipRecord]: ...

    def list_payslips(self, owner_id: str, child_id: str | None = None) -> list[PayslipRecord]: ...

    def get_payslip(self, payslip_id: str) -> PayslipRecord | None: ...

    def create_payslip(self, record: PayslipRecord) -> str: ...

    def update_payslip(self, payslip_id: str, patch: dict[str, Any]) -> PayslipRecord: ...

    def delete_payslip(self, payslip_id: str) -> None: ...

    def list_employees(self, owner_id: str, search: str | None = None) -> list[EmployeeRecord]: ...

    def get_employee(self, employee_id: str) -> EmployeeRecord | None: ...

    def create_employee(self, employee: EmployeeRecord) -> str: ...


def apply_patch(record: PayslipRecord, patch: dict[str, Any]) -> PayslipRecord:
    unknown = sorted(set(patch) - PATCHABLE_FIELDS)
    if unknown:
        raise StoreError(f"Cannot update fields on a saved payslip: {', '.join(unknown)}")

    errors: list[str] = []
    if "employee_name" in patch:
        validate_name("Employee name", patch["employee_name"], errors)
    if "company_name" in patch:
        validate_name("Company name", patch["company_name"], errors)
    if "payroll_number" in patch:
        validate_payroll_number(patch["payroll_number"], errors)
    if errors:
        raise StoreError("; ".join(errors))
    return replace(record, **patch)


def check_contract(payload: dict[str, Any], schema_name: str) -> None:
    try:
        validate_payload(payload, schema_name)
    except ContractError as exc:
        raise StoreError(str(exc)) from exc


def employee_matches(employee: EmployeeRecord, search: str | None) -> bool:
    if not search:
        return True
    term = search.lower()
    return term in employee.name.lower() or term in employee.payroll_number.lower()


class InMemoryPayslipStore:
    """Dictionary-backed store; insertion order is not meaningful to callers."""

    def __init__(
        self,
        records: Iterable[PayslipRecord] = (),
        employees: Iterable[EmployeeRecord] = (),
    ) -> None:
        self._records: dict[str, PayslipRecord] = {record.id: record for record in records}
        self._employees: dict[str, EmployeeRecord] = {employee.id: employee for employee in employees}

    def _check(self, record: PayslipRecord) -> None:
        """Hook run on every record before it is stored."""

    def list_payslips_for_employee(self, owner_id: str, employee_name: str) -> list[PayslipRecord]:
        return [r for r in self._records.values() if r.owner_id == owner_id and r.employee_name == employee_name]

    def list_payslips(self, owner_id: str, child_id: str | None = None) -> list[PayslipRecord]:
        return [
            r
            for r in self._records.values()
            if r.owner_id == owner_id and (child_id is None or r.child_id == child_id)
        ]

    def get_payslip(self, payslip_id: str) -> PayslipRecord | None:
        return self._records.get(payslip_id)

    def create_payslip(self, record: PayslipRecord) -> str:
        if record.id in self._records:
            raise StoreError(f"Payslip {record.id} already exists")
        self._check(record)
        self._records[record.id] = record
        logger.info("Saved payslip %s for %s", record.id, record.employee_name)
        return record.id

    def update_payslip(self, payslip_id: str, patch: dict[str, Any]) -> PayslipRecord:
        existing = self._records.get(payslip_id)
        if existing is None:
            raise StoreError(f"Payslip {payslip_id} not found")
        updated = apply_patch(existing, patch)
        self._check(updated)
        self._records[payslip_id] = updated
        return updated

    def delete_payslip(self, payslip_id: str) -> None:
        if self._records.pop(payslip_id, None) is None:
            raise StoreError(f"Payslip {payslip_id} not found")
        logger.info("Deleted payslip %s", payslip_id)

    def list_employees(self, owner_id: str, search: str | None = None) -> list[EmployeeRecord]:
        matches = [
            e for e in self._employees.values() if e.owner_id == owner_id and employee_matches(e, search)
        ]
        return sorted(matches, key=lambda e: e.name.lower())

    def get_employee(self, employee_id: str) -> EmployeeRecord | None:
        return self._employees.get(employee_id)

    def create_employee(self, employee: EmployeeRecord) -> str:
        if employee.id in self._employees:
            raise StoreError(f"Employee {employee.id} already exists")
        errors = validate_employee(employee)
        if errors:
            raise StoreError("; ".join(errors))
        self._employees[employee.id] = employee
        logger.info("Saved employee %s (%s)", employee.id, employee.name)
        return employee.id


class JsonFilePayslipStore(InMemoryPayslipStore):
    """
    Store persisted to a single JSON document.

    The file holds ``{"payslips": [record, ...], "employees": [employee, ...]}``.
    Every record is checked against its contract on load and before it
    replaces anything in memory. A write that fails leaves memory as it was.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(*self._read())

    def _read(self) -> tuple[list[PayslipRecord], list[EmployeeRecord]]:
        if not self.path.exists():
            return [], []
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle, parse_constant=reject_non_finite)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Could not read payslip store {self.path}: {exc}") from exc

        records: list[PayslipRecord] = []
        for raw in payload.get("payslips", []):
            check_contract(raw, RECORD_SCHEMA)
            records.append(PayslipRecord.from_dict(raw))
        employees: list[EmployeeRecord] = []
        for raw in payload.get("employees", []):
            check_contract(raw, EMPLOYEE_SCHEMA)
            employees.append(EmployeeRecord.from_dict(raw))
        return records, employees

    def _check(self, record: PayslipRecord) -> None:
        check_contract(record.to_dict(), RECORD_SCHEMA)

    def _flush(self) -> None:
        document = {
            "payslips": [record.to_dict() for record in self._records.values()],
            "employees": [employee.to_dict() for employee in self._employees.values()],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Could not write payslip store {self.path}: {exc}") from exc

    def _commit(self, records: dict[str, PayslipRecord], employees: dict[str, EmployeeRecord]) -> None:
        try:
            self._flush()
        except StoreError:
            self._records, self._employees = records, employees
            raise

    def create_payslip(self, record: PayslipRecord) -> str:
        records, employees = dict(self._records), dict(self._employees)
        payslip_id = super().create_payslip(record)
        self._commit(records, employees)
        return payslip_id

    def update_payslip(self, payslip_id: str, patch: dict[str, Any]) -> PayslipRecord:
        records, employees = dict(self._records), dict(self._employees)
        updated = super().update_payslip(payslip_id, patch)
        self._commit(records, employees)
        return updated

    def delete_payslip(self, payslip_id: str) -> None:
        records, employees = dict(self._records), dict(self._employees)
        super().delete_payslip(payslip_id)
        self._commit(records, employees)

    def create_employee(self, employee: EmployeeRecord) -> str:
        check_contract(employee.to_dict(), EMPLOYEE_SCHEMA)
        records, employees = dict(self._records), dict(self._employees)
        employee_id = super().create_employee(employee)
        self._commit(records, employees)
        return employee_id


def delete_payslips(store: PayslipStore, payslip_ids: Iterable[str]) -> int:
    deleted = 0
    for payslip_id in payslip_ids:
        store.delete_payslip(payslip_id)
        deleted += 1
    return deleted


def record_csv_row(record: PayslipRecord) -> list[str]:
    created = record.created_at[:10] if record.created_at else ""
    return [
        record.employee_name,
        record.company_name,
        record.pay_period_start.isoformat(),
        record.pay_period_end.isoformat(),
        money_str(as_decimal(record.gross_salary)),
        money_str(as_decimal(record.net_salary)),
        created,
    ]


def write_records_csv(path: Path, records: Iterable[PayslipRecord]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle, quoting=csv.QUOTE_MINIMAL)
        writer.writerow(CSV_HEADERS)
        for record in records:
            writer.writerow(record_csv_row(record))
    return path


def default_export_name(today: date | None = None) -> str:
    today = today or date.today()
    return f"payslips-export-{today.isoformat()}.csv"
