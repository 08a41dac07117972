from datetime import date, datetime
from decimal import Decimal

import pytest

from payroll_api.common.errors import ValidationError
from payroll_api.services.payroll_types import (
    Deductions,
    Earnings,
    EmployeePayProfile,
    Payroll,
    SalaryType,
    TimeLogEvent,
    TimeLogMethod,
    TimeLogType,
    WorkDayEntry,
    validate_period,
)


def test_time_log_event_row_mapping():
    ev = TimeLogEvent(employee_id="EMP-001", timestamp=datetime(2025, 3, 3, 8, 0),
                      type=TimeLogType.CLOCK_IN, method=TimeLogMethod.FORCED_MANUAL, id=7)
    row = ev.to_storage_row()
    assert row["type"] == "Clock In"
    assert row["method"] == "Forced Manual"
    assert TimeLogEvent.from_storage_row(row) == ev


def test_time_log_event_from_row_accepts_iso_text_and_default_method():
    ev = TimeLogEvent.from_storage_row(
        {"employee_id": 42, "timestamp": "2025-03-03 17:30:00", "type": "Clock Out"})
    assert ev.employee_id == "42"
    assert ev.timestamp == datetime(2025, 3, 3, 17, 30)
    assert ev.method is TimeLogMethod.MANUAL


def test_pay_profile_row_mapping():
    p = EmployeePayProfile(employee_id="EMP-001", salary_type=SalaryType.DAILY,
                           basic_salary=Decimal("610"), hourly_rate=Decimal("80"),
                           overtime_multiplier=Decimal("1.5"), sss_deduction=Decimal("300"))
    assert EmployeePayProfile.from_storage_row(p.to_storage_row()) == p


def test_pay_profile_missing_columns_use_defaults():
    p = EmployeePayProfile.from_storage_row({"employee_id": "EMP-001", "hourly_rate": ""})
    assert p.salary_type is SalaryType.UNSET
    assert p.basic_salary == 0
    assert p.hourly_rate is None
    assert p.regular_holiday_multiplier == Decimal("2.0")
    assert p.special_holiday_multiplier == Decimal("1.3")
    assert p.rest_day_overtime_multiplier == Decimal("1.3")


def test_payroll_row_mapping_rounds_money():
    rec = Payroll(employee_id="EMP-001", pay_period_start=date(2025, 3, 1),
                  pay_period_end=date(2025, 3, 15), pay_date_issued=date(2025, 3, 16),
                  gross_pay=Decimal("1000.005"), deductions=Decimal("0"),
                  net_pay=Decimal("1000.005"), created_at=datetime(2025, 3, 16, 9, 0), id=3)
    row = rec.to_storage_row()
    assert row["gross_pay"] == Decimal("1000.01")
    back = Payroll.from_storage_row(row)
    assert back.key == rec.key
    assert back.gross_pay == Decimal("1000.01")
    assert back.created_at == rec.created_at

    again = Payroll.from_storage_row(back.to_storage_row())
    assert again == back


def test_payroll_from_row_accepts_iso_dates():
    rec = Payroll.from_storage_row({
        "employee_id": "EMP-001", "pay_period_start": "2025-03-01", "pay_period_end": "2025-03-15",
        "pay_date_issued": None, "gross_pay": "10", "deductions": "2", "net_pay": "8",
    })
    assert rec.pay_period_start == date(2025, 3, 1)
    assert rec.pay_date_issued is None
    assert rec.to_dict()["net_pay"] == 8.0


def test_work_day_dict_mapping_accepts_camel_case():
    d = WorkDayEntry.from_dict({"date": "2025-03-08", "regHrs": 8, "otHrs": "1.5",
                                "isRestDay": True, "notes": "inventory"})
    assert d.reg_hrs == Decimal("8")
    assert d.ot_hrs == Decimal("1.5")
    assert d.is_rest_day is True
    assert WorkDayEntry.from_dict(d.to_dict()) == d


def test_work_day_rest_day_flag_parsing():
    base = {"date": "2025-03-08", "reg_hrs": 8}
    assert WorkDayEntry.from_dict({**base, "is_rest_day": "false"}).is_rest_day is False
    assert WorkDayEntry.from_dict({**base, "is_rest_day": "0"}).is_rest_day is False
    assert WorkDayEntry.from_dict({**base, "isRestDay": "true"}).is_rest_day is True
    assert WorkDayEntry.from_dict({**base, "is_rest_day": 1}).is_rest_day is True
    assert WorkDayEntry.from_dict(base).is_rest_day is False

    with pytest.raises(ValidationError):
        WorkDayEntry.from_dict({**base, "is_rest_day": "sometimes"})
    with pytest.raises(ValidationError):
        WorkDayEntry.from_dict({**base, "is_rest_day": 2})


def test_work_day_rejects_negative_hours():
    with pytest.raises(ValidationError):
        WorkDayEntry.from_dict({"date": "2025-03-08", "reg_hrs": -1})


def test_deductions_from_dict_keeps_seeded_defaults():
    seeded = Deductions(sss_deduction=Decimal("500"), philhealth_deduction=Decimal("200"))
    d = Deductions.from_dict({"philhealthDeduction": 0, "vale_cash_advance": "75"}, defaults=seeded)
    assert d.sss_deduction == Decimal("500")
    assert d.philhealth_deduction == 0
    assert d.vale_cash_advance == Decimal("75")


def test_earnings_from_dict_defaults_to_zero():
    e = Earnings.from_dict({"thirteenthMonthPay": "1000"})
    assert e.total() == Decimal("1000")
    assert Earnings.from_dict(None).total() == 0


@pytest.mark.parametrize("raw,expected", [
    ("Clock In", TimeLogType.CLOCK_IN), ("clock_out", TimeLogType.CLOCK_OUT), ("OUT", TimeLogType.CLOCK_OUT),
])
def test_time_log_type_parse(raw, expected):
    assert TimeLogType.parse(raw) is expected


def test_unknown_enum_values_rejected():
    with pytest.raises(ValidationError):
        TimeLogType.parse("Lunch")
    with pytest.raises(ValidationError):
        TimeLogMethod.parse("Biometric")
    with pytest.raises(ValidationError):
        SalaryType.parse("Weekly")


def test_validate_period():
    assert validate_period("2025-03-01", "2025-03-01") == (date(2025, 3, 1), date(2025, 3, 1))
    with pytest.raises(ValidationError):
        validate_period("2025-03-02", "2025-03-01")
