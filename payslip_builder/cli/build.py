"""
CLI Entry Point: payslip-build

Validate a payslip draft, compute its figures and year-to-date totals,
and optionally export or save it.
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

from payslip_builder.calculator import (
    build_payslip_record,
    current_period_figures,
    draft_from_employee,
    validate_payslip,
)
from payslip_builder.config import Settings, load_settings, locale_config
from payslip_builder.core import PayslipData, ValidationError, format_money
from payslip_builder.drafts import JsonDirectoryDraftStore, draft_from_dict, draft_to_dict, load_draft_file
from payslip_builder.export import build_render_context, payslip_to_markdown
from payslip_builder.store import JsonFilePayslipStore, StoreError
from payslip_builder.utils.console import print_error, print_success, print_table, print_warning
from payslip_builder.utils.contracts import ContractError
from payslip_builder.ytd import YTDContributionSet, compute_ytd, enable_override, load_candidate_history

EXIT_INVALID_INPUT = 2
EXIT_VALIDATION_FAILED = 1


def write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def write_markdown(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def open_store(settings: Settings) -> JsonFilePayslipStore | None:
    try:
        return JsonFilePayslipStore(settings.store_path)
    except StoreError as exc:
        print_warning(f"Payslip history unavailable: {exc}")
        return None


def load_input(args: argparse.Namespace, settings: Settings, drafts: JsonDirectoryDraftStore) -> PayslipData:
    if args.resume:
        payload = drafts.load(settings.owner_id)
        if payload is None:
            print_error(
                f"No saved draft for {settings.owner_id} (drafts expire after {settings.draft_ttl_hours:g} hours).",
                exit_code=EXIT_INVALID_INPUT,
            )
        source = "saved draft"
    elif args.draft is None and args.employee:
        store = open_store(settings)
        employee = store.get_employee(args.employee) if store is not None else None
        if employee is None or employee.owner_id != settings.owner_id:
            print_error(f"Employee not found: {args.employee}", exit_code=EXIT_INVALID_INPUT)
        return draft_from_employee(employee, company_name=args.company or "", reference=args.reference_date)
    else:
        if args.draft is None:
            print_error(
                "A draft file is required unless --resume or --employee is given.", exit_code=EXIT_INVALID_INPUT
            )
        if not args.draft.exists():
            print_error(f"Draft not found: {args.draft}", exit_code=EXIT_INVALID_INPUT)
        payload = None
        source = str(args.draft)

    try:
        if payload is not None:
            return draft_from_dict(payload, reference=args.reference_date)
        return load_draft_file(args.draft, reference=args.reference_date)
    except (ContractError, ValidationError, json.JSONDecodeError, ValueError, KeyError) as exc:
        print_error(f"Invalid draft ({source}): {exc}", exit_code=EXIT_INVALID_INPUT)


def collect_contributions(
    data: PayslipData,
    store: JsonFilePayslipStore | None,
    owner_id: str,
    include_ids: list[str],
    include_all: bool,
) -> YTDContributionSet:
    contributions = YTDContributionSet()
    if store is None or not (include_ids or include_all):
        return contributions

    candidates = load_candidate_history(store, owner_id, data.employee_name)
    by_id = {record.id: record for record in candidates}
    selected = list(by_id) if include_all else include_ids
    for payslip_id in selected:
        record = by_id.get(payslip_id)
        if record is None:
            print_warning(f"No previous payslip {payslip_id} for {data.employee_name}; skipping.")
            continue
        if not contributions.add(record):
            print_warning(contributions.notices[-1])
    return contributions


def output_human(data: PayslipData, contributions: YTDContributionSet, currency: str) -> None:
    current = current_period_figures(data)
    ytd = compute_ytd(data, contributions)

    print_table(
        f"Payslip: {data.employee_name} ({data.period})",
        ["", "This Period", "Year to Date"],
        [
            ["Gross Pay", format_money(current.gross_pay, currency), format_money(ytd.gross_pay, currency)],
            [
                "Deductions",
                format_money(current.total_deductions, currency),
                format_money(ytd.total_deductions, currency),
            ],
            ["Net Pay", format_money(current.net_pay, currency), format_money(ytd.net_pay, currency)],
        ],
    )
    if current.net_pay < 0:
        print_warning("Deductions exceed gross pay for this period.")
    if len(contributions):
        print_table(
            "YTD Contributions",
            ["Period", "Gross", "Deductions", "Net"],
            [
                [
                    f"{c.period_start.isoformat()} - {c.period_end.isoformat()}",
                    format_money(c.gross_pay, currency),
                    format_money(c.total_deductions, currency),
                    format_money(c.net_pay, currency),
                ]
                for c in contributions
            ],
        )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Validate a payslip draft and compute its totals.")
    parser.add_argument("draft", type=Path, nargs="?", default=None, help="Draft payslip JSON file.")
    parser.add_argument("--settings", type=Path, default=None, help="Optional settings JSON file.")
    parser.add_argument("--draft-dir", type=Path, default=None, help="Directory for auto-saved drafts.")
    parser.add_argument("--autosave", action="store_true", help="Keep a copy of the loaded draft for --resume.")
    parser.add_argument("--resume", action="store_true", help="Load the auto-saved draft instead of a file.")
    parser.add_argument("--employee", default=None, help="Start from a saved employee instead of a draft file.")
    parser.add_argument("--company", default=None, help="Company name for a draft started with --employee.")
    parser.add_argument("--locale", choices=["UK", "US"], default=None, help="Currency locale (default: UK).")
    parser.add_argument("--store", type=Path, default=None, help="Payslip history JSON store.")
    parser.add_argument("--owner", default=None, help="Owner id used for history lookups and saves.")
    parser.add_argument(
        "--reference-date",
        type=date.fromisoformat,
        default=None,
        help="Date used to derive the pay period from the draft's frequency (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--include-ytd",
        action="append",
        default=[],
        metavar="PAYSLIP_ID",
        help="Previous payslip id to add to YTD totals (repeatable).",
    )
    parser.add_argument("--include-all-ytd", action="store_true", help="Add every previous payslip to YTD.")
    parser.add_argument(
        "--ytd-override",
        action="store_true",
        help="Seed a manual YTD override from this period's own figures when the draft has none.",
    )
    parser.add_argument("--json", action="store_true", help="Output machine-readable JSON.")
    parser.add_argument("--json-out", type=Path, default=None, help="Write the render payload to this path.")
    parser.add_argument("--markdown-out", type=Path, default=None, help="Write a Markdown payslip to this path.")
    parser.add_argument("--parent-mode", action="store_true", help="Add learning notes for children.")
    parser.add_argument("--save", action="store_true", help="Save the payslip to the history store.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.settings)
    except (ContractError, json.JSONDecodeError) as exc:
        print_error(f"Invalid settings file: {exc}", exit_code=EXIT_INVALID_INPUT)
    if args.locale:
        settings.locale = args.locale
    if args.store:
        settings.store_path = args.store
    if args.owner:
        settings.owner_id = args.owner
    if args.draft_dir:
        settings.draft_dir = args.draft_dir
    currency = locale_config(settings.locale).currency

    drafts = JsonDirectoryDraftStore(settings.draft_dir, ttl=settings.draft_ttl)
    data = load_input(args, settings, drafts)
    if args.autosave:
        drafts.save(settings.owner_id, draft_to_dict(data))

    errors = validate_payslip(data)
    if errors:
        for error in errors:
            print_error(error)
        print_error("Payslip failed validation.", exit_code=EXIT_VALIDATION_FAILED)

    needs_store = args.save or args.include_ytd or args.include_all_ytd
    store = open_store(settings) if needs_store else None

    contributions = collect_contributions(
        data, store, settings.owner_id, args.include_ytd, args.include_all_ytd
    )
    if args.ytd_override and data.ytd_override is None:
        enable_override(data)

    context = build_render_context(data, currency, contributions)
    if args.json:
        print(json.dumps(context, indent=2))
    else:
        output_human(data, contributions, currency)

    if args.json_out:
        write_json(args.json_out, context)
    if args.markdown_out:
        write_markdown(args.markdown_out, payslip_to_markdown(data, currency, contributions, args.parent_mode))

    if args.save:
        if store is None:
            print_error("Cannot save: payslip store unavailable.", exit_code=EXIT_INVALID_INPUT)
        record = build_payslip_record(data, settings.owner_id)
        try:
            store.create_payslip(record)
        except StoreError as exc:
            print_error(f"Could not save payslip: {exc}", exit_code=EXIT_INVALID_INPUT)
        drafts.discard(settings.owner_id)
        if not args.json:
            print_success(f"Saved payslip {record.id} to {settings.store_path}")


if __name__ == "__main__":
    main()
