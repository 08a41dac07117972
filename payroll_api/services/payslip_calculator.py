from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
import logging

from payroll_api.common.errors import ValidationError
from payroll_api.services.payroll_types import (
    DEFAULT_OVERTIME_MULTIPLIER,
    DEFAULT_REGULAR_HOLIDAY_MULTIPLIER,
    DEFAULT_REST_DAY_OT_MULTIPLIER,
    DEFAULT_SPECIAL_HOLIDAY_MULTIPLIER,
    HOUR_FIELDS,
    ZERO,
    Deductions,
    Earnings,
    EmployeePayProfile,
    Payroll,
    PayslipSummary,
    SalaryType,
    WorkDayEntry,
    as_date,
    as_decimal,
    as_flag,
    money,
    validate_period,
)
from payroll_api.services.storage import PayrollStorage

log = logging.getLogger(__name__)

WORKING_DAYS_PER_MONTH = Decimal("21.67")
HOURS_PER_DAY = Decimal("8")
ONE = Decimal("1")
REST_DAY_HOLIDAY_PREMIUM = Decimal("0.30")


def _or_default(value: Optional[Decimal], default: Decimal) -> Decimal:
    # zero counts as "not configured"
    return value if value else default


def daily_rate(profile: EmployeePayProfile) -> Decimal:
    basic = profile.basic_salary or ZERO
    if profile.salary_type == SalaryType.DAILY:
        return basic
    return basic / WORKING_DAYS_PER_MONTH


def hourly_rate(profile: EmployeePayProfile) -> Decimal:
    if profile.hourly_rate:
        return profile.hourly_rate
    return daily_rate(profile) / HOURS_PER_DAY


def rates(profile: EmployeePayProfile) -> Tuple[Decimal, Decimal]:
    """(daily_rate, hourly_rate), unrounded."""
    return daily_rate(profile), hourly_rate(profile)


def day_gross(day: WorkDayEntry, profile: EmployeePayProfile) -> Decimal:
    """
    Pay earned on one work day.

    Holiday hours earn only the premium above base (multiplier - 1) on the
    daily rate; a regular holiday on a rest day adds 30% of the daily rate
    per holiday hour; rest-day work adds the rest-day premium on hourly pay.
    """
    d_rate, h_rate = rates(profile)
    ot_mult = _or_default(profile.overtime_multiplier, DEFAULT_OVERTIME_MULTIPLIER)
    reg_hol_mult = _or_default(profile.regular_holiday_multiplier, DEFAULT_REGULAR_HOLIDAY_MULTIPLIER)
    spec_hol_mult = _or_default(profile.special_holiday_multiplier, DEFAULT_SPECIAL_HOLIDAY_MULTIPLIER)
    rest_mult = _or_default(profile.rest_day_overtime_multiplier, DEFAULT_REST_DAY_OT_MULTIPLIER)

    gross = day.reg_hrs * h_rate
    gross += day.ot_hrs * h_rate * ot_mult
    gross += day.reg_hol_hrs * d_rate * (reg_hol_mult - ONE)
    gross += day.spec_hol_hrs * d_rate * (spec_hol_mult - ONE)

    if day.reg_hol_hrs > 0 and day.is_rest_day:
        gross += day.reg_hol_hrs * d_rate * REST_DAY_HOLIDAY_PREMIUM
    if day.is_rest_day and (day.reg_hrs > 0 or day.ot_hrs > 0):
        gross += (day.reg_hrs + day.ot_hrs) * h_rate * (rest_mult - ONE)

    return gross


def compute_summary(work_days: Iterable[WorkDayEntry], earnings: Earnings,
                    deductions: Deductions, profile: EmployeePayProfile) -> PayslipSummary:
    """Pure: same inputs, same summary. Net may be negative."""
    gross = sum((day_gross(d, profile) for d in work_days), ZERO) + earnings.total()
    total_ded = deductions.total()
    return PayslipSummary(
        gross=money(gross),
        total_deductions=money(total_ded),
        net=money(gross - total_ded),
    )


class PayslipWorksheet:
    """
    Editable state of one detailed payslip: employee, period, work days,
    earnings, deductions and the live summary. Every edit recomputes the
    whole summary; a failed edit leaves the previous state untouched.
    """

    def __init__(self, profile: Optional[EmployeePayProfile] = None,
                 period_start: Optional[date] = None, period_end: Optional[date] = None):
        self.profile: Optional[EmployeePayProfile] = None
        self.period_start = period_start
        self.period_end = period_end
        self.work_days: List[WorkDayEntry] = []
        self.earnings = Earnings()
        self.deductions = Deductions()
        self.summary: Optional[PayslipSummary] = None
        if profile is not None:
            self.select_employee(profile)

    # ---- selection ----
    def select_employee(self, profile: Optional[EmployeePayProfile]) -> None:
        self.profile = profile
        self.earnings = Earnings()
        self.deductions = Deductions.seeded_from(profile) if profile else Deductions()
        self.work_days = []
        self.summary = None

    def set_period(self, start, end) -> None:
        self.period_start, self.period_end = validate_period(start, end)

    def check_work_days(self, entries: Iterable[WorkDayEntry]) -> None:
        """One entry per calendar day, all inside the period when one is set."""
        seen = set()
        for d in entries:
            if d.date in seen:
                raise ValidationError(f"work day {d.date.isoformat()} appears more than once")
            seen.add(d.date)
            if self.period_start is not None and self.period_end is not None \
                    and not self.period_start <= d.date <= self.period_end:
                raise ValidationError(
                    f"work day {d.date.isoformat()} is outside the pay period "
                    f"{self.period_start.isoformat()}..{self.period_end.isoformat()}"
                )

    # ---- edits ----
    def load_work_days(self, entries: Iterable[WorkDayEntry]) -> None:
        entries = list(entries)
        self.check_work_days(entries)
        self.work_days = entries
        self.recompute()

    def update_work_day(self, index: int, field: str, value) -> None:
        if not 0 <= index < len(self.work_days):
            raise ValidationError(f"work day index {index} out of range")
        day = self.work_days[index]
        if field in HOUR_FIELDS:
            new_day = replace(day, **{field: as_decimal(value, field)})
        elif field == "is_rest_day":
            new_day = replace(day, is_rest_day=as_flag(value, "is_rest_day"))
        elif field == "notes":
            new_day = replace(day, notes=str(value or ""))
        else:
            raise ValidationError(f"work day field {field!r} is not editable")
        self.work_days[index] = new_day
        self.recompute()

    def update_earnings(self, **changes) -> None:
        self.earnings = self.earnings.updated(**changes)
        self.recompute()

    def update_deductions(self, **changes) -> None:
        self.deductions = self.deductions.updated(**changes)
        self.recompute()

    def recompute(self) -> Optional[PayslipSummary]:
        if self.profile is None or not self.work_days:
            self.summary = None
        else:
            self.summary = compute_summary(self.work_days, self.earnings, self.deductions, self.profile)
        return self.summary

    # ---- commit ----
    def build_record(self, pay_date_issued) -> Payroll:
        if self.profile is None:
            raise ValidationError("an employee must be selected")
        if not self.work_days:
            raise ValidationError("at least one work day is required")
        if self.summary is None:
            raise ValidationError("payslip summary has not been computed")
        if self.period_start is None or self.period_end is None:
            raise ValidationError("pay period is required")
        self.check_work_days(self.work_days)
        return Payroll(
            employee_id=self.profile.employee_id,
            pay_period_start=self.period_start,
            pay_period_end=self.period_end,
            pay_date_issued=as_date(pay_date_issued, "pay_date_issued"),
            gross_pay=self.summary.gross,
            deductions=self.summary.total_deductions,
            net_pay=self.summary.net,
        )

    def commit(self, storage: PayrollStorage, pay_date_issued) -> Payroll:
        """
        Upsert the payroll record. On success the work days and summary are
        discarded; on a store failure they are kept so the save can be retried.
        """
        record = self.build_record(pay_date_issued)
        saved = storage.upsert_payroll(record)
        log.info("[payslip] saved %s %s..%s gross=%s net=%s",
                 saved.employee_id, saved.pay_period_start, saved.pay_period_end,
                 saved.gross_pay, saved.net_pay)
        self.work_days = []
        self.summary = None
        return saved
