import unittest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from payslip_builder.calculator import (
    add_payment_entry,
    build_payslip_record,
    draft_from_employee,
    draft_from_record,
    ensure_valid,
    entry_amount,
    gross_pay,
    make_payment_entry,
    net_pay,
    remove_payment_entry,
    update_payment_entry,
    validate_employee,
    validate_payslip,
)
from payslip_builder.core import (
    Deduction,
    EmployeeRecord,
    DeductionKind,
    PaymentKind,
    PayslipData,
    ValidationError,
)
from payslip_builder.periods import Frequency, month_bounds, period_key
from payslip_builder.store import InMemoryPayslipStore


@pytest.mark.unit
class EntryAmountTests(unittest.TestCase):
    def test_hourly_amount_is_quantity_times_rate(self) -> None:
        entry = make_payment_entry(PaymentKind.HOURLY, "Hours", quantity=40, rate=15)
        self.assertEqual(entry.amount, Decimal("600"))
        self.assertEqual(gross_pay([entry]), Decimal("600"))

    def test_overtime_without_rate_keeps_entered_amount(self) -> None:
        entry = make_payment_entry(PaymentKind.OVERTIME, "OT", amount="75.00", quantity=5)
        self.assertEqual(entry_amount(entry), Decimal("75.00"))

    def test_fixed_and_bonus_ignore_quantity_and_rate(self) -> None:
        fixed = make_payment_entry(PaymentKind.FIXED, amount="100.00", quantity=3, rate=3)
        bonus = make_payment_entry(PaymentKind.BONUS, amount="250.00")
        self.assertEqual(gross_pay([fixed, bonus]), Decimal("350.00"))

    def test_gross_of_no_entries_is_zero(self) -> None:
        self.assertEqual(gross_pay([]), Decimal("0"))


@pytest.mark.unit
def test_fixed_entry_with_percentage_deduction(make_draft):
    data = make_draft(gross="3000")
    assert data.gross_pay == Decimal("3000")
    assert data.deductions[0].amount == Decimal("600")
    assert net_pay(data.gross_pay, data.deductions) == Decimal("2400")


@pytest.mark.unit
def test_net_pay_may_be_negative():
    deductions = [Deduction("d1", "Loan", DeductionKind.FIXED, Decimal("500"), Decimal("500"))]
    assert net_pay(Decimal("300"), deductions) == Decimal("-200")


@pytest.mark.unit
class EntryMutationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.data = PayslipData(payment_entries=[make_payment_entry(PaymentKind.FIXED, amount="1000")])
        self.data.gross_pay = gross_pay(self.data.payment_entries)

    def test_add_entry_updates_gross(self) -> None:
        add_payment_entry(self.data, make_payment_entry(PaymentKind.BONUS, amount="200"))
        self.assertEqual(self.data.gross_pay, Decimal("1200"))

    def test_add_default_entry_is_zero_fixed(self) -> None:
        entry = add_payment_entry(self.data)
        self.assertIs(entry.kind, PaymentKind.FIXED)
        self.assertEqual(self.data.gross_pay, Decimal("1000"))

    def test_update_rate_recomputes_amount_and_gross(self) -> None:
        entry = add_payment_entry(self.data, make_payment_entry(PaymentKind.HOURLY, quantity=10, rate=20))
        self.assertEqual(self.data.gross_pay, Decimal("1200"))
        updated = update_payment_entry(self.data, entry.id, rate="25")
        self.assertEqual(updated.amount, Decimal("250"))
        self.assertEqual(self.data.gross_pay, Decimal("1250"))

    def test_switching_kind_to_hourly_uses_quantity_and_rate(self) -> None:
        entry_id = self.data.payment_entries[0].id
        update_payment_entry(self.data, entry_id, kind="hourly", quantity="37.5", rate="20")
        self.assertEqual(self.data.gross_pay, Decimal("750.0"))

    def test_update_unknown_entry_raises(self) -> None:
        with self.assertRaises(KeyError):
            update_payment_entry(self.data, "missing", amount="1")

    def test_remove_keeps_last_entry(self) -> None:
        only_id = self.data.payment_entries[0].id
        self.assertFalse(remove_payment_entry(self.data, only_id))
        self.assertEqual(len(self.data.payment_entries), 1)

    def test_remove_updates_gross(self) -> None:
        bonus = add_payment_entry(self.data, make_payment_entry(PaymentKind.BONUS, amount="300"))
        self.assertTrue(remove_payment_entry(self.data, bonus.id))
        self.assertEqual(self.data.gross_pay, Decimal("1000"))

    def test_remove_unknown_id_is_noop(self) -> None:
        add_payment_entry(self.data, make_payment_entry(PaymentKind.BONUS, amount="300"))
        self.assertFalse(remove_payment_entry(self.data, "missing"))
        self.assertEqual(self.data.gross_pay, Decimal("1300"))


@pytest.mark.unit
def test_deduction_amount_is_frozen_when_gross_changes(make_draft):
    data = make_draft(gross="3000")
    update_payment_entry(data, data.payment_entries[0].id, amount="4000")
    assert data.gross_pay == Decimal("4000")
    assert data.deductions[0].amount == Decimal("600")
    assert net_pay(data.gross_pay, data.deductions) == Decimal("3400")


@pytest.mark.unit
class ValidationTests(unittest.TestCase):
    def make(self, **overrides):
        start, end = month_bounds(2025, 6)
        data = PayslipData(
            employee_name="Jane Smith",
            company_name="Acme Ltd.",
            pay_period_start=start,
            pay_period_end=end,
            period=period_key(start),
            payment_entries=[make_payment_entry(PaymentKind.FIXED, amount="3000")],
        )
        data.gross_pay = gross_pay(data.payment_entries)
        for key, value in overrides.items():
            setattr(data, key, value)
        return data

    now = date(2025, 6, 20)

    def test_valid_draft_has_no_errors(self) -> None:
        self.assertEqual(validate_payslip(self.make(), now=self.now), [])

    def test_inverted_range_raises(self) -> None:
        data = self.make(pay_period_start=date(2025, 6, 10), pay_period_end=date(2025, 6, 1))
        with self.assertRaises(ValidationError) as ctx:
            ensure_valid(data, now=self.now)
        self.assertIn("Pay period start must be before pay period end", ctx.exception.errors)

    def test_equal_start_and_end_rejected(self) -> None:
        data = self.make(pay_period_start=date(2025, 6, 10), pay_period_end=date(2025, 6, 10))
        self.assertTrue(validate_payslip(data, now=self.now))

    def test_dates_more_than_a_year_away_rejected(self) -> None:
        data = self.make(pay_period_start=date(2023, 1, 1), pay_period_end=date(2023, 1, 31))
        errors = validate_payslip(data, now=self.now)
        self.assertIn("Pay period dates must be within one year of today", errors)

    def test_missing_dates_rejected(self) -> None:
        errors = validate_payslip(self.make(pay_period_start=None), now=self.now)
        self.assertIn("Pay period is required", errors)

    def test_names_reject_disallowed_characters(self) -> None:
        errors = validate_payslip(self.make(employee_name="José <script>", company_name=""), now=self.now)
        self.assertIn("Employee name contains invalid characters", errors)
        self.assertIn("Company name is required", errors)

    def test_names_allow_apostrophes_hyphens_periods(self) -> None:
        data = self.make(employee_name="Mary-Jane O'Neil Jr.", company_name="St. John's Co-op 2")
        self.assertEqual(validate_payslip(data, now=self.now), [])

    def test_payroll_number_characters(self) -> None:
        errors = validate_payslip(self.make(payroll_number="EMP 001!"), now=self.now)
        self.assertIn("Payroll number contains invalid characters", errors)

    def test_requires_positive_entry(self) -> None:
        data = self.make(payment_entries=[make_payment_entry(PaymentKind.FIXED, amount="0")])
        errors = validate_payslip(data, now=self.now)
        self.assertIn("At least one payment entry must have an amount greater than 0", errors)

    def test_negative_entry_rejected(self) -> None:
        entries = [
            make_payment_entry(PaymentKind.FIXED, amount="100"),
            make_payment_entry(PaymentKind.BONUS, amount="-5"),
        ]
        errors = validate_payslip(self.make(payment_entries=entries), now=self.now)
        self.assertIn("Payment entry 2 has an invalid amount", errors)

    def test_gross_above_maximum_rejected(self) -> None:
        entries = [
            make_payment_entry(PaymentKind.FIXED, amount="999999999.99"),
            make_payment_entry(PaymentKind.BONUS, amount="1"),
        ]
        errors = validate_payslip(self.make(payment_entries=entries), now=self.now)
        self.assertIn("Invalid gross pay amount", errors)

    def test_gross_at_maximum_accepted(self) -> None:
        entries = [make_payment_entry(PaymentKind.FIXED, amount="999999999.99")]
        errors = validate_payslip(self.make(payment_entries=entries), now=self.now)
        self.assertNotIn("Invalid gross pay amount", errors)

    def test_deduction_rules(self) -> None:
        deductions = [
            Deduction("d1", "", DeductionKind.FIXED, Decimal("1"), Decimal("1")),
            Deduction("d2", "x" * 51, DeductionKind.FIXED, Decimal("1"), Decimal("1")),
            Deduction("d3", "Huge", DeductionKind.FIXED, Decimal("1e12"), Decimal("1e12")),
            Deduction("d4", "NaN", DeductionKind.FIXED, Decimal("0"), Decimal("NaN")),
        ]
        errors = validate_payslip(self.make(deductions=deductions), now=self.now)
        self.assertIn("Deduction 1 must have a name", errors)
        self.assertTrue(any("exceeds 50 characters" in e for e in errors))
        self.assertIn("Deduction 3 has an invalid amount", errors)
        self.assertIn("Deduction 4 has an invalid amount", errors)

    def test_all_violations_reported_together(self) -> None:
        data = self.make(
            employee_name="",
            pay_period_start=date(2025, 6, 10),
            pay_period_end=date(2025, 6, 1),
            payment_entries=[make_payment_entry(PaymentKind.FIXED, amount="0")],
        )
        with self.assertRaises(ValidationError) as ctx:
            ensure_valid(data, now=self.now)
        self.assertEqual(len(ctx.exception.errors), 3)


@pytest.mark.unit
def test_inverted_range_never_reaches_store(make_draft):
    store = InMemoryPayslipStore()
    data = make_draft(pay_period_start=date(2025, 6, 10), pay_period_end=date(2025, 6, 1))
    with pytest.raises(ValidationError):
        store.create_payslip(build_payslip_record(data, "owner-1", now=datetime(2025, 6, 20, tzinfo=timezone.utc)))
    assert store.list_payslips("owner-1") == []


@pytest.mark.unit
def test_build_record_freezes_figures(make_draft):
    data = make_draft(gross="3000", child_id="child-7")
    now = datetime.combine(data.pay_period_start + timedelta(days=3), datetime.min.time(), tzinfo=timezone.utc)
    record = build_payslip_record(data, "owner-1", now=now)
    assert record.gross_salary == Decimal("3000")
    assert record.net_salary == Decimal("2400")
    assert record.total_deductions == Decimal("600")
    assert record.owner_id == "owner-1"
    assert record.child_id == "child-7"
    assert record.deductions[0].name == "Income Tax"
    assert record.created_at == now.isoformat()


@pytest.mark.unit
def test_build_record_without_period_raises(make_draft):
    data = make_draft(pay_period_end=None)
    with pytest.raises(ValidationError) as excinfo:
        build_payslip_record(data, "owner-1")
    assert "Pay period is required" in excinfo.value.errors


@pytest.mark.unit
def test_draft_from_record_round_trips_totals(make_draft):
    data = make_draft(gross="3000")
    record = build_payslip_record(data, "owner-1")
    reloaded = draft_from_record(record)
    assert reloaded.gross_pay == Decimal("3000")
    assert reloaded.period == data.period
    assert [d.amount for d in reloaded.deductions] == [Decimal("600")]
    assert all(d.kind is DeductionKind.FIXED for d in reloaded.deductions)
    assert reloaded.payment_entries[0].kind is PaymentKind.FIXED


@pytest.mark.unit
class EmployeeTests(unittest.TestCase):
    def employee(self, **overrides) -> EmployeeRecord:
        fields = {
            "id": "e1",
            "owner_id": "owner-1",
            "name": "Jane Smith",
            "payroll_number": "EMP-001",
            "default_gross_salary": Decimal("2500.00"),
        }
        fields.update(overrides)
        return EmployeeRecord(**fields)

    def test_valid_employee(self) -> None:
        self.assertEqual(validate_employee(self.employee()), [])

    def test_employee_rules(self) -> None:
        errors = validate_employee(self.employee(name="", payroll_number="EMP 1", default_gross_salary=Decimal("-1")))
        self.assertEqual(
            errors,
            ["Employee name is required", "Payroll number contains invalid characters", "Default gross salary is invalid"],
        )
        self.assertIn(
            "Default gross salary is invalid", validate_employee(self.employee(default_gross_salary=Decimal("NaN")))
        )

    def test_draft_prefilled_from_employee(self) -> None:
        data = draft_from_employee(self.employee(), company_name="Acme Ltd.", reference=date(2025, 6, 20))
        self.assertEqual(data.employee_name, "Jane Smith")
        self.assertEqual(data.payroll_number, "EMP-001")
        self.assertEqual(data.company_name, "Acme Ltd.")
        self.assertEqual(len(data.payment_entries), 1)
        entry = data.payment_entries[0]
        self.assertIs(entry.kind, PaymentKind.FIXED)
        self.assertEqual(entry.description, "Basic Salary")
        self.assertEqual(entry.amount, Decimal("2500.00"))
        self.assertEqual(data.gross_pay, Decimal("2500.00"))
        self.assertEqual((data.pay_period_start, data.pay_period_end), month_bounds(2025, 6))
        self.assertEqual(data.period, "2025-06")
        self.assertEqual(validate_payslip(data, now=date(2025, 6, 20)), [])

    def test_draft_without_default_salary_starts_empty(self) -> None:
        data = draft_from_employee(
            self.employee(default_gross_salary=None), frequency=Frequency.WEEKLY, reference=date(2025, 6, 20)
        )
        self.assertEqual(data.payment_entries[0].amount, Decimal("0"))
        self.assertEqual(data.payment_entries[0].description, "")
        self.assertEqual(data.gross_pay, Decimal("0"))
        self.assertEqual(data.frequency, "weekly")
        self.assertEqual(data.pay_period_start, date(2025, 6, 16))
        self.assertEqual(data.pay_period_end, date(2025, 6, 22))
