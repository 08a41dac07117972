from datetime import date
from decimal import Decimal

import pytest

from payroll_api.common.errors import PersistenceError, ValidationError
from payroll_api.services.batch_payroll import estimate_gross, run_batch_payroll
from payroll_api.services.payroll_types import EmployeePayProfile, Payroll, SalaryType
from payroll_api.services.storage import MemoryStorage

START, END = date(2025, 3, 1), date(2025, 3, 15)
TODAY = date(2025, 3, 16)

STAT = {"sss_deduction": "581.30", "philhealth_deduction": "250", "hdmf_deduction": "100"}


def _storage():
    return MemoryStorage(employees=[
        {"employee_id": "EMP-001", "first_name": "Ana", "salary_type": "Monthly", "basic_salary": "21700", **STAT},
        {"employee_id": "EMP-002", "first_name": "Ben", "salary_type": "Daily", "basic_salary": "610"},
        {"employee_id": "EMP-003", "first_name": "Carla", "salary_type": "", "basic_salary": "0", "hourly_rate": "95"},
        {"employee_id": "EMP-004", "first_name": "Dan", "salary_type": "", "basic_salary": "800"},
        {"employee_id": "EMP-005", "first_name": "Eve", "salary_type": "Monthly", "basic_salary": "30000",
         "is_archived": True},
        {"employee_id": "EMP-006", "first_name": "Fay", "salary_type": "Monthly", "basic_salary": "30000",
         "status": "Resigned"},
    ])


def test_gross_estimates_per_salary_type():
    assert estimate_gross(EmployeePayProfile("E", SalaryType.MONTHLY, Decimal("21700"))) == Decimal("21700")
    assert estimate_gross(EmployeePayProfile("E", SalaryType.DAILY, Decimal("610"))) == Decimal("13420")
    hourly = EmployeePayProfile("E", SalaryType.UNSET, Decimal("0"), hourly_rate=Decimal("95"))
    assert estimate_gross(hourly) == Decimal("16720")
    # no hourly rate: basic / 8 per hour
    assert estimate_gross(EmployeePayProfile("E", SalaryType.UNSET, Decimal("800"))) == Decimal("17600")


def test_run_covers_only_active_employees():
    storage = _storage()
    result = run_batch_payroll(storage, "2025-03-01", "2025-03-15", today=TODAY)

    assert result["processed_count"] == 4
    assert result["period_start"] == "2025-03-01"
    assert result["period_end"] == "2025-03-15"
    ids = [r.employee_id for r in storage.query_payrolls(START, END)]
    assert sorted(ids) == ["EMP-001", "EMP-002", "EMP-003", "EMP-004"]


def test_run_deducts_only_statutory_amounts():
    storage = _storage()
    run_batch_payroll(storage, START, END, today=TODAY)
    rec = storage.query_payrolls(START, END, "EMP-001")[0]
    assert rec.gross_pay == Decimal("21700.00")
    assert rec.deductions == Decimal("931.30")
    assert rec.net_pay == Decimal("20768.70")
    assert rec.pay_date_issued == TODAY


def test_batch_overwrites_detailed_payslip():
    storage = _storage()
    detailed = storage.upsert_payroll(Payroll(
        employee_id="EMP-001", pay_period_start=START, pay_period_end=END,
        pay_date_issued=START, gross_pay=Decimal("9999.99"), deductions=Decimal("1"),
        net_pay=Decimal("9998.99"),
    ))

    run_batch_payroll(storage, START, END, today=TODAY)

    rows = storage.query_payrolls(START, END, "EMP-001")
    assert len(rows) == 1
    assert rows[0].id == detailed.id
    assert rows[0].gross_pay == Decimal("21700.00")
    assert rows[0].pay_date_issued == TODAY


def test_rerun_is_idempotent():
    storage = _storage()
    run_batch_payroll(storage, START, END, today=TODAY)
    run_batch_payroll(storage, START, END, today=TODAY)
    assert len(storage.query_payrolls(START, END)) == 4


def test_no_active_employees_writes_nothing():
    storage = MemoryStorage()
    result = run_batch_payroll(storage, START, END, today=TODAY)
    assert result["processed_count"] == 0
    assert result["records"] == []


def test_failed_write_leaves_no_partial_rows():
    class FlakyStorage(MemoryStorage):
        def _apply(self, table, record):
            if record.employee_id == "EMP-003":
                raise PersistenceError(RuntimeError("row rejected"))
            return super()._apply(table, record)

    storage = FlakyStorage(employees=_storage()._employees.values())
    with pytest.raises(PersistenceError):
        run_batch_payroll(storage, START, END, today=TODAY)
    assert storage.query_payrolls(START, END) == []


@pytest.mark.parametrize("start,end", [(None, "2025-03-15"), ("2025-03-15", "2025-03-01")])
def test_invalid_period_rejected(start, end):
    with pytest.raises(ValidationError):
        run_batch_payroll(_storage(), start, end)
