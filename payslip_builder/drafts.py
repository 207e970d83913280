#!/usr/bin/env python3

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Protocol

from payslip_builder.calculator import make_payment_entry, refresh_gross_pay
from payslip_builder.core import (
    Deduction,
    DeductionInput,
    DeductionKind,
    PayslipData,
    YTDFigures,
    as_decimal,
    new_id,
    reject_non_finite,
)
from payslip_builder.deductions import create_deduction
from payslip_builder.periods import Frequency, pay_period_for, preset_period
from payslip_builder.utils.contracts import validate_payload
from payslip_builder.utils.migration import CURRENT_DRAFT_VERSION, migrate_draft

logger = logging.getLogger(__name__)

DRAFT_SCHEMA = "payslip_draft"
DEFAULT_DRAFT_TTL = timedelta(hours=24)
SAFE_KEY_RE = re.compile(r"[^A-Za-z0-9_\-]")
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def decimal_str(value: Decimal) -> str:
    return format(value, "f")


def draft_to_dict(data: PayslipData) -> dict[str, Any]:
    return {
        "version": CURRENT_DRAFT_VERSION,
        "employee_name": data.employee_name,
        "payroll_number": data.payroll_number,
        "company_name": data.company_name,
        "company_address": data.company_address,
        "company_phone": data.company_phone,
        "company_email": data.company_email,
        "company_registration": data.company_registration,
        "child_id": data.child_id,
        "frequency": data.frequency,
        "pay_period_start": data.pay_period_start.isoformat() if data.pay_period_start else None,
        "pay_period_end": data.pay_period_end.isoformat() if data.pay_period_end else None,
        "payment_entries": [
            {
                "id": entry.id,
                "description": entry.description,
                "kind": entry.kind.value,
                "amount": decimal_str(entry.amount),
                "quantity": decimal_str(entry.quantity) if entry.quantity is not None else None,
                "rate": decimal_str(entry.rate) if entry.rate is not None else None,
            }
            for entry in data.payment_entries
        ],
        "deductions": [
            {
                "id": d.id,
                "name": d.name,
                "kind": d.kind.value,
                "value": decimal_str(d.value),
                # Full precision so a reloaded draft keeps its snapshot exactly.
                "amount": decimal_str(d.amount),
            }
            for d in data.deductions
        ],
        "ytd_override": (
            {
                "gross_pay": decimal_str(data.ytd_override.gross_pay),
                "total_deductions": decimal_str(data.ytd_override.total_deductions),
                "net_pay": decimal_str(data.ytd_override.net_pay),
            }
            if data.ytd_override is not None
            else None
        ),
    }


def draft_from_dict(payload: dict[str, Any], reference: date | None = None) -> PayslipData:
    """
    Build a working draft from a (possibly legacy) JSON payload.

    Period dates come from explicit ``pay_period_start``/``pay_period_end``,
    else from a named ``preset``, else from ``frequency`` relative to
    ``reference_date`` (or ``reference``, or today). Deductions that carry an
    ``amount`` keep it; the rest are created against the draft's gross pay.
    """
    payload = migrate_draft(dict(payload))
    validate_payload(payload, DRAFT_SCHEMA)

    if payload.get("reference_date"):
        reference = date.fromisoformat(payload["reference_date"])

    start_raw, end_raw = payload.get("pay_period_start"), payload.get("pay_period_end")
    default_frequency = Frequency.CUSTOM if start_raw and end_raw else Frequency.MONTHLY
    frequency = Frequency(payload.get("frequency") or default_frequency.value)
    if start_raw and end_raw:
        period = pay_period_for(
            Frequency.CUSTOM, start=date.fromisoformat(start_raw), end=date.fromisoformat(end_raw)
        )
    elif payload.get("preset"):
        period = preset_period(payload["preset"], reference)
        frequency = Frequency.CUSTOM
    else:
        period = pay_period_for(frequency, reference)

    data = PayslipData(
        employee_name=payload.get("employee_name") or "",
        payroll_number=payload.get("payroll_number") or "",
        company_name=payload.get("company_name") or "",
        company_address=payload.get("company_address"),
        company_phone=payload.get("company_phone"),
        company_email=payload.get("company_email"),
        company_registration=payload.get("company_registration"),
        child_id=payload.get("child_id"),
        frequency=frequency.value,
        pay_period_start=period.start,
        pay_period_end=period.end,
        period=period.period,
    )

    for raw in payload["payment_entries"]:
        data.payment_entries.append(
            make_payment_entry(
                kind=raw["kind"],
                description=raw.get("description") or "",
                amount=raw.get("amount"),
                quantity=raw.get("quantity"),
                rate=raw.get("rate"),
                entry_id=raw.get("id"),
            )
        )
    refresh_gross_pay(data)

    for raw in payload.get("deductions") or []:
        form = DeductionInput(name=raw["name"], kind=DeductionKind(raw["kind"]), value=as_decimal(raw["value"]))
        if raw.get("amount") is not None:
            deduction = Deduction(
                id=raw.get("id") or new_id(),
                name=form.name,
                kind=form.kind,
                value=form.value,
                amount=as_decimal(raw["amount"]),
            )
        else:
            deduction = create_deduction(form, data.gross_pay)
        data.deductions.append(deduction)

    override = payload.get("ytd_override")
    if override:
        data.ytd_override = YTDFigures(
            gross_pay=as_decimal(override["gross_pay"]),
            total_deductions=as_decimal(override["total_deductions"]),
            net_pay=as_decimal(override["net_pay"]),
        )
    return data


def load_draft_file(path: Path, reference: date | None = None) -> PayslipData:
    with path.open("r", encoding="utf-8") as handle:
        payload: dict[str, Any] = json.load(handle, parse_constant=reject_non_finite)
    return draft_from_dict(payload, reference=reference)


class DraftStore(Protocol):
    def save(self, key: str, payload: dict[str, Any]) -> None: ...

    def load(self, key: str) -> dict[str, Any] | None: ...

    def discard(self, key: str) -> None: ...


def is_expired(saved_at: str | None, ttl: timedelta, now: datetime) -> bool:
    try:
        saved = datetime.fromisoformat(saved_at)
    except (TypeError, ValueError):
        return True
    if saved.tzinfo is None:
        saved = saved.replace(tzinfo=timezone.utc)
    return now - saved > ttl


class InMemoryDraftStore:
    def __init__(self, ttl: timedelta = DEFAULT_DRAFT_TTL, clock: Clock = utc_now) -> None:
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[str, dict[str, Any]] = {}

    def save(self, key: str, payload: dict[str, Any]) -> None:
        self._entries[key] = {"saved_at": self.clock().isoformat(), "draft": payload}

    def load(self, key: str) -> dict[str, Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if is_expired(entry["saved_at"], self.ttl, self.clock()):
            logger.warning("Discarding expired draft %s saved at %s", key, entry["saved_at"])
            self.discard(key)
            return None
        return dict(entry["draft"])

    def discard(self, key: str) -> None:
        self._entries.pop(key, None)


class JsonDirectoryDraftStore:
    """One ``<key>.json`` file per draft inside ``directory``."""

    def __init__(self, directory: Path, ttl: timedelta = DEFAULT_DRAFT_TTL, clock: Clock = utc_now) -> None:
        self.directory = Path(directory)
        self.ttl = ttl
        self.clock = clock

    def _path(self, key: str) -> Path:
        return self.directory / f"{SAFE_KEY_RE.sub('_', key)}.json"

    def save(self, key: str, payload: dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        envelope = {"saved_at": self.clock().isoformat(), "draft": payload}
        self._path(key).write_text(json.dumps(envelope, indent=2), encoding="utf-8")

    def load(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            envelope = json.loads(path.read_text(encoding="utf-8"), parse_constant=reject_non_finite)
        except ValueError:
            logger.warning("Discarding unreadable draft %s", path)
            self.discard(key)
            return None
        if is_expired(envelope.get("saved_at"), self.ttl, self.clock()):
            logger.warning("Discarding expired draft %s saved at %s", key, envelope.get("saved_at"))
            self.discard(key)
            return None
        draft: dict[str, Any] = envelope.get("draft") or {}
        return draft

    def discard(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
