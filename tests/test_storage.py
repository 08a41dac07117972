import os
from datetime import date, datetime
from decimal import Decimal

import pytest

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.common.errors import NotFoundError, PersistenceError
from payroll_api.models.employee import Employee
from payroll_api.models.payroll import Payroll as PayrollRow
from payroll_api.models.time_log import TimeLog
from payroll_api.services.payroll_types import Payroll, SalaryType, TimeLogMethod, TimeLogType
from payroll_api.services.storage import MemoryStorage, SqlAlchemyStorage, get_storage


def _mk_app(**kw):
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app(**kw)
    return app


def _seed():
    db.session.add_all([
        Employee(employee_id="EMP-001", first_name="Ana", last_name="Reyes", salary_type="Monthly",
                 basic_salary=Decimal("21700"), sss_deduction=Decimal("581.30")),
        Employee(employee_id="EMP-002", first_name="Ben", salary_type="Daily", basic_salary=Decimal("610")),
        Employee(employee_id="EMP-003", first_name="Old", salary_type="Daily", basic_salary=Decimal("500"),
                 is_archived=True),
    ])
    db.session.commit()


def _rec(emp="EMP-001", start=date(2025, 3, 1), end=date(2025, 3, 15), gross="1000", ded="100"):
    gross, ded = Decimal(gross), Decimal(ded)
    return Payroll(employee_id=emp, pay_period_start=start, pay_period_end=end,
                   pay_date_issued=date(2025, 3, 16), gross_pay=gross, deductions=ded,
                   net_pay=gross - ded)


def test_sql_upsert_keeps_one_row_with_latest_values():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _seed()
        storage = SqlAlchemyStorage(db.session)

        first = storage.upsert_payroll(_rec(gross="1000"))
        second = storage.upsert_payroll(_rec(gross="2500.555"))

        assert PayrollRow.query.count() == 1
        assert second.id == first.id
        assert second.created_at == first.created_at
        assert second.gross_pay == Decimal("2500.56")
        assert second.net_pay == Decimal("2400.56")


def test_sql_batch_upsert_is_all_or_nothing():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _seed()
        storage = SqlAlchemyStorage(db.session)
        bad = _rec("EMP-002", start=date(2025, 3, 15), end=date(2025, 3, 1))  # violates period check

        with pytest.raises(PersistenceError):
            storage.upsert_payrolls([_rec("EMP-001"), bad])
        assert PayrollRow.query.count() == 0


def test_sql_fetch_time_logs_covers_whole_days_in_order():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _seed()
        db.session.add_all([
            TimeLog(employee_id="EMP-001", timestamp=datetime(2025, 3, 3, 17, 0), type="Clock Out"),
            TimeLog(employee_id="EMP-001", timestamp=datetime(2025, 3, 3, 8, 0), type="Clock In", method="QR"),
            TimeLog(employee_id="EMP-001", timestamp=datetime(2025, 3, 4, 23, 59, 59), type="Clock Out"),
            TimeLog(employee_id="EMP-001", timestamp=datetime(2025, 3, 5, 0, 0), type="Clock In"),
            TimeLog(employee_id="EMP-002", timestamp=datetime(2025, 3, 3, 8, 0), type="Clock In"),
        ])
        db.session.commit()

        events = SqlAlchemyStorage(db.session).fetch_time_logs("EMP-001", date(2025, 3, 3), date(2025, 3, 4))
        assert [e.timestamp.hour for e in events] == [8, 17, 23]
        assert events[0].type is TimeLogType.CLOCK_IN
        assert events[0].method is TimeLogMethod.QR
        assert events[1].method is TimeLogMethod.MANUAL


def test_sql_profiles_and_active_employees():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _seed()
        storage = SqlAlchemyStorage(db.session)

        p = storage.fetch_employee_pay_profile("EMP-001")
        assert p.salary_type is SalaryType.MONTHLY
        assert p.basic_salary == Decimal("21700")
        assert p.sss_deduction == Decimal("581.30")
        assert p.overtime_multiplier == Decimal("1.25")

        assert [e.employee_id for e in storage.fetch_active_employees()] == ["EMP-001", "EMP-002"]
        with pytest.raises(NotFoundError):
            storage.fetch_employee_pay_profile("EMP-404")


def test_sql_query_payrolls_window_and_order():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _seed()
        storage = SqlAlchemyStorage(db.session)
        storage.upsert_payrolls([
            _rec("EMP-002"),
            _rec("EMP-001"),
            _rec("EMP-001", start=date(2025, 3, 16), end=date(2025, 3, 31)),
            _rec("EMP-001", start=date(2025, 2, 16), end=date(2025, 3, 2)),  # starts before window
        ])

        rows = storage.query_payrolls(date(2025, 3, 1), date(2025, 3, 31))
        assert [(r.employee_id, r.pay_period_start.day) for r in rows] == [
            ("EMP-001", 16), ("EMP-001", 1), ("EMP-002", 1)]

        only = storage.query_payrolls(date(2025, 3, 1), date(2025, 3, 31), "EMP-002")
        assert [r.employee_id for r in only] == ["EMP-002"]
        assert storage.employee_names(["EMP-001", "EMP-404"]) == {"EMP-001": "Ana Reyes"}


def test_memory_upsert_keeps_one_row_with_latest_values():
    storage = MemoryStorage()
    first = storage.upsert_payroll(_rec(gross="1000"))
    second = storage.upsert_payroll(_rec(gross="1200"))
    rows = storage.query_payrolls(date(2025, 3, 1), date(2025, 3, 15))
    assert len(rows) == 1
    assert rows[0].id == first.id == second.id
    assert rows[0].gross_pay == Decimal("1200.00")


def test_get_storage_defaults_to_orm_and_honours_factory():
    app = _mk_app()
    with app.app_context():
        assert isinstance(get_storage(), SqlAlchemyStorage)

    mem = MemoryStorage()
    app = _mk_app(storage_factory=lambda: mem)
    with app.app_context():
        assert get_storage() is mem
