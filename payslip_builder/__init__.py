from payslip_builder.core import (
    Deduction,
    DeductionInput,
    DeductionKind,
    PaymentEntry,
    PaymentKind,
    PayslipData,
    PayslipRecord,
    ValidationError,
    YTDFigures,
    format_money,
)
from payslip_builder.deductions import (
    compute_deduction_amount,
    create_deduction,
    quick_add_deductions,
    total_deductions,
)
from payslip_builder.periods import Frequency, PayPeriod, pay_period_for, period_number, preset_period
from payslip_builder.calculator import (
    add_payment_entry,
    build_payslip_record,
    draft_from_record,
    ensure_valid,
    gross_pay,
    net_pay,
    remove_payment_entry,
    update_payment_entry,
    validate_payslip,
)
from payslip_builder.store import InMemoryPayslipStore, JsonFilePayslipStore, StoreError
from payslip_builder.ytd import (
    YTDContribution,
    YTDContributionSet,
    compute_ytd,
    disable_override,
    enable_override,
    load_candidate_history,
)
from payslip_builder.export import build_render_context, payslip_to_markdown

__all__ = [
    "Deduction",
    "DeductionInput",
    "DeductionKind",
    "Frequency",
    "InMemoryPayslipStore",
    "JsonFilePayslipStore",
    "PayPeriod",
    "PaymentEntry",
    "PaymentKind",
    "PayslipData",
    "PayslipRecord",
    "StoreError",
    "ValidationError",
    "YTDContribution",
    "YTDContributionSet",
    "YTDFigures",
    "add_payment_entry",
    "build_payslip_record",
    "build_render_context",
    "compute_deduction_amount",
    "compute_ytd",
    "create_deduction",
    "disable_override",
    "draft_from_record",
    "enable_override",
    "ensure_valid",
    "format_money",
    "gross_pay",
    "load_candidate_history",
    "net_pay",
    "pay_period_for",
    "payslip_to_markdown",
    "period_number",
    "preset_period",
    "quick_add_deductions",
    "remove_payment_entry",
    "total_deductions",
    "update_payment_entry",
    "validate_payslip",
]
