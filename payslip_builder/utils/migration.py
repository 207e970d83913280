from __future__ import annotations

import calendar
import logging
from typing import Any

logger = logging.getLogger(__name__)

CURRENT_DRAFT_VERSION = "1.0.0"

LEGACY_KEY_MAP = {
    "name": "employee_name",
    "payrollNumber": "payroll_number",
    "companyName": "company_name",
    "companyAddress": "company_address",
    "companyPhone": "company_phone",
    "companyEmail": "company_email",
    "companyRegistration": "company_registration",
    "payPeriodStart": "pay_period_start",
    "payPeriodEnd": "pay_period_end",
    "paymentEntries": "payment_entries",
    "grossPay": "gross_pay",
    "ytdOverride": "ytd_override",
    "childId": "child_id",
}
LEGACY_YTD_KEY_MAP = {"grossPay": "gross_pay", "totalDeductions": "total_deductions", "netPay": "net_pay"}


def migrate_draft_v0_1_to_v0_2(draft: dict[str, Any]) -> dict[str, Any]:
    """
    Migrate a v0.1 draft (camelCase keys, no version) to v0.2.0.

    Changes:
    - Renames camelCase keys to snake_case.
    - Renames deduction ``type`` to ``kind`` and payment entry ``type`` to ``kind``.
    """
    logger.warning(
        "Migrating payslip draft from %s to 0.2.0. Re-save the draft to suppress this warning.",
        draft.get("version") or "0.1.0",
    )
    migrated: dict[str, Any] = {}
    for key, value in draft.items():
        migrated[LEGACY_KEY_MAP.get(key, key)] = value

    override = migrated.get("ytd_override")
    if isinstance(override, dict):
        migrated["ytd_override"] = {LEGACY_YTD_KEY_MAP.get(k, k): v for k, v in override.items()}

    for collection in ("deductions", "payment_entries"):
        items = []
        for item in migrated.get(collection) or []:
            item = dict(item)
            if "type" in item and "kind" not in item:
                item["kind"] = item.pop("type")
            items.append(item)
        if collection in migrated:
            migrated[collection] = items

    migrated["version"] = "0.2.0"
    return migrated


def migrate_draft_v0_2_to_v1_0(draft: dict[str, Any]) -> dict[str, Any]:
    """
    Migrate a v0.2.x draft to v1.0.0.

    Changes:
    - A lone ``gross_pay`` becomes a single fixed payment entry.
    - A ``period`` (YYYY-MM) without explicit dates expands to the full month.
    """
    logger.warning("Migrating payslip draft from %s to %s.", draft.get("version"), CURRENT_DRAFT_VERSION)

    if not draft.get("payment_entries"):
        draft["payment_entries"] = [
            {"description": "Salary", "kind": "fixed", "amount": draft.get("gross_pay") or 0}
        ]
    draft.pop("gross_pay", None)

    period = draft.get("period") or ""
    if period and not draft.get("pay_period_start") and not draft.get("pay_period_end"):
        year, month = (int(part) for part in period.split("-")[:2])
        last_day = calendar.monthrange(year, month)[1]
        draft["pay_period_start"] = f"{year:04d}-{month:02d}-01"
        draft["pay_period_end"] = f"{year:04d}-{month:02d}-{last_day:02d}"
    draft.pop("period", None)

    draft["version"] = CURRENT_DRAFT_VERSION
    return draft


def migrate_draft(draft: dict[str, Any]) -> dict[str, Any]:
    """
    Run all sequential migrations to bring a draft payload to the latest version.
    """
    version = draft.get("version") or ""
    if not version or version.startswith("0.1."):
        draft = migrate_draft_v0_1_to_v0_2(draft)
        version = draft.get("version", "")

    if version.startswith("0.2."):
        draft = migrate_draft_v0_2_to_v1_0(draft)
        version = draft.get("version", "")

    return draft
