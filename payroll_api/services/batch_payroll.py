from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from payroll_api.common.errors import ValidationError
from payroll_api.services.payroll_types import (
    ZERO,
    EmployeePayProfile,
    Payroll,
    SalaryType,
    money,
    validate_period,
)
from payroll_api.services.storage import PayrollStorage

log = logging.getLogger(__name__)

BATCH_WORKING_DAYS = Decimal("22")
BATCH_HOURS_PER_DAY = Decimal("8")


def estimate_gross(profile: EmployeePayProfile) -> Decimal:
    """Flat full-attendance estimate; ignores calendar days and time logs."""
    basic = profile.basic_salary or ZERO
    if profile.salary_type == SalaryType.MONTHLY:
        return basic
    if profile.salary_type == SalaryType.DAILY:
        return basic * BATCH_WORKING_DAYS
    hourly = profile.hourly_rate or (basic / BATCH_HOURS_PER_DAY)
    return hourly * BATCH_WORKING_DAYS * BATCH_HOURS_PER_DAY


def statutory_total(profile: EmployeePayProfile) -> Decimal:
    return ((profile.sss_deduction or ZERO)
            + (profile.philhealth_deduction or ZERO)
            + (profile.hdmf_deduction or ZERO))


def batch_record(profile: EmployeePayProfile, period_start: date, period_end: date,
                 pay_date_issued: date) -> Payroll:
    gross = estimate_gross(profile)
    ded = statutory_total(profile)
    return Payroll(
        employee_id=profile.employee_id,
        pay_period_start=period_start,
        pay_period_end=period_end,
        pay_date_issued=pay_date_issued,
        gross_pay=money(gross),
        deductions=money(ded),
        net_pay=money(gross - ded),
    )


def run_batch_payroll(storage: PayrollStorage, period_start, period_end,
                      today: Optional[date] = None) -> Dict[str, object]:
    """
    Approximate payroll for every active employee, upserted in one write.

    Existing records for the same (employee, period) are overwritten,
    including detailed payslips. Any failure aborts the whole run.
    """
    try:
        start, end = validate_period(period_start, period_end)
    except ValidationError as e:
        log.warning("[batch_payroll] rejected period %r..%r: %s", period_start, period_end, e.message)
        raise
    issued = today or date.today()

    employees = storage.fetch_active_employees()
    records: List[Payroll] = [batch_record(p, start, end, issued) for p in employees]
    saved = storage.upsert_payrolls(records) if records else []

    log.info("[batch_payroll] %s..%s processed %d employees", start, end, len(saved))
    return {
        "processed_count": len(saved),
        "period_start": start.isoformat(),
        "period_end": end.isoformat(),
        "records": saved,
    }
