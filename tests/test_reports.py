from datetime import date
from decimal import Decimal

from payroll_api.services.payroll_types import Payroll
from payroll_api.services.reports import payroll_summary
from payroll_api.services.storage import MemoryStorage


def _rec(emp, gross, pay_date=None):
    return Payroll(employee_id=emp, pay_period_start=date(2025, 3, 1), pay_period_end=date(2025, 3, 15),
                   pay_date_issued=pay_date, gross_pay=Decimal(gross), deductions=Decimal("100"),
                   net_pay=Decimal(gross) - 100)


def test_summary_skips_payrolls_without_employee():
    storage = MemoryStorage(employees=[{"employee_id": "EMP-001", "first_name": "Ana", "last_name": "Reyes"}])
    storage.upsert_payrolls([_rec("EMP-001", "1000", date(2025, 3, 16)), _rec("EMP-GONE", "500")])

    rep = payroll_summary(storage, "2025-03-01", "2025-03-31")
    assert [r["name"] for r in rep["rows"]] == ["Ana Reyes"]
    assert rep["rows"][0]["pay_date"] == "2025-03-16"
    assert rep["totals"] == {"count": 1, "gross_pay": 1000.0, "deductions": 100.0, "net_pay": 900.0}


def test_summary_pay_date_placeholder():
    storage = MemoryStorage(employees=[{"employee_id": "EMP-001", "first_name": "Ana"}])
    storage.upsert_payrolls([_rec("EMP-001", "1000")])
    row = payroll_summary(storage, "2025-03-01", "2025-03-15")["rows"][0]
    assert row["pay_date"] == "N/A"
    assert row["pay_period"] == "2025-03-01 to 2025-03-15"
