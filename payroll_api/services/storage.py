"""
Storage collaborators for the payroll core.

The core only talks to ``PayrollStorage``. Two adapters ship:

  - SqlAlchemyStorage : the ORM tables (production / tests with sqlite)
  - MemoryStorage     : plain dicts, for unit tests and local tooling

Adapters raise RetrievalError / PersistenceError (never raw driver errors)
so callers can surface them without knowing the backend.
"""
from __future__ import annotations

import abc
import copy
import itertools
import logging
from datetime import date, datetime, time as _time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from payroll_api.common.errors import NotFoundError, PersistenceError, RetrievalError
from payroll_api.services.payroll_types import (
    EmployeePayProfile,
    Payroll,
    TimeLogEvent,
)

log = logging.getLogger(__name__)

ACTIVE_STATUS = "Active"

PayrollKey = Tuple[str, date, date]


def _day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    return datetime.combine(start, _time.min), datetime.combine(end, _time.max)


class PayrollStorage(abc.ABC):
    """Operations the payroll core needs from the outside world."""

    @abc.abstractmethod
    def fetch_time_logs(self, employee_id: str, start: date, end: date) -> List[TimeLogEvent]:
        """Events whose timestamp falls within [start 00:00, end 23:59:59.999999], ascending."""

    @abc.abstractmethod
    def fetch_employee_pay_profile(self, employee_id: str) -> EmployeePayProfile:
        """Raises NotFoundError for an unknown employee."""

    @abc.abstractmethod
    def fetch_active_employees(self) -> List[EmployeePayProfile]:
        """Non-archived employees with status 'Active'."""

    @abc.abstractmethod
    def upsert_payroll(self, record: Payroll) -> Payroll:
        """Insert-or-update keyed by (employee_id, pay_period_start, pay_period_end)."""

    @abc.abstractmethod
    def upsert_payrolls(self, records: Iterable[Payroll]) -> List[Payroll]:
        """Batch upsert; all rows are written or none are."""

    @abc.abstractmethod
    def query_payrolls(self, period_start: date, period_end: date,
                       employee_id: Optional[str] = None) -> List[Payroll]:
        """Records inside the window, newest period first."""

    @abc.abstractmethod
    def employee_names(self, employee_ids: Iterable[str]) -> Dict[str, str]:
        """Display names for reports; unknown ids are omitted."""


# ---------- SQLAlchemy adapter ----------

def _employee_row(e) -> dict:
    return {
        "employee_id": e.employee_id,
        "salary_type": e.salary_type,
        "basic_salary": e.basic_salary,
        "hourly_rate": e.hourly_rate,
        "overtime_multiplier": e.overtime_multiplier,
        "regular_holiday_multiplier": e.regular_holiday_multiplier,
        "special_holiday_multiplier": e.special_holiday_multiplier,
        "rest_day_overtime_multiplier": e.rest_day_overtime_multiplier,
        "sss_deduction": e.sss_deduction,
        "philhealth_deduction": e.philhealth_deduction,
        "hdmf_deduction": e.hdmf_deduction,
    }


def _time_log_row(t) -> dict:
    return {
        "id": t.id,
        "employee_id": t.employee_id,
        "timestamp": t.timestamp,
        "type": t.type,
        "method": t.method,
    }


def _payroll_row(p) -> dict:
    return {
        "id": p.id,
        "employee_id": p.employee_id,
        "pay_period_start": p.pay_period_start,
        "pay_period_end": p.pay_period_end,
        "pay_date_issued": p.pay_date_issued,
        "gross_pay": p.gross_pay,
        "deductions": p.deductions,
        "net_pay": p.net_pay,
        "created_at": p.created_at,
    }


# columns an upsert overwrites; id and created_at stay with the first insert
_UPSERT_COLUMNS = ("pay_date_issued", "gross_pay", "deductions", "net_pay")


class SqlAlchemyStorage(PayrollStorage):
    def __init__(self, session):
        self.session = session

    def _read(self, what: str, fn: Callable):
        try:
            return fn()
        except SQLAlchemyError as e:
            log.exception("[storage] %s failed", what)
            self.session.rollback()
            raise RetrievalError(e) from e

    def fetch_time_logs(self, employee_id, start, end):
        from payroll_api.models.time_log import TimeLog

        lo, hi = _day_bounds(start, end)

        def _q():
            return (TimeLog.query
                    .filter(TimeLog.employee_id == employee_id)
                    .filter(TimeLog.timestamp >= lo)
                    .filter(TimeLog.timestamp <= hi)
                    .order_by(TimeLog.timestamp.asc(), TimeLog.id.asc())
                    .all())

        rows = self._read("fetch_time_logs", _q)
        return [TimeLogEvent.from_storage_row(_time_log_row(r)) for r in rows]

    def fetch_employee_pay_profile(self, employee_id):
        from payroll_api.models.employee import Employee

        e = self._read("fetch_employee_pay_profile",
                       lambda: Employee.query.filter_by(employee_id=employee_id).first())
        if e is None:
            raise NotFoundError(f"employee {employee_id} not found")
        return EmployeePayProfile.from_storage_row(_employee_row(e))

    def fetch_active_employees(self):
        from payroll_api.models.employee import Employee

        rows = self._read("fetch_active_employees", lambda: (
            Employee.query
            .filter(Employee.is_archived.is_(False))
            .filter(Employee.status == ACTIVE_STATUS)
            .order_by(Employee.employee_id.asc())
            .all()
        ))
        return [EmployeePayProfile.from_storage_row(_employee_row(e)) for e in rows]

    def _apply(self, record: Payroll):
        from payroll_api.models.payroll import Payroll as PayrollRow

        row = record.to_storage_row()
        obj = (PayrollRow.query
               .filter_by(employee_id=record.employee_id,
                          pay_period_start=record.pay_period_start,
                          pay_period_end=record.pay_period_end)
               .first())
        if obj is None:
            row.pop("id", None)
            row["created_at"] = row.get("created_at") or datetime.utcnow()
            obj = PayrollRow(**row)
            self.session.add(obj)
        else:
            for col in _UPSERT_COLUMNS:
                setattr(obj, col, row[col])
        return obj

    def upsert_payroll(self, record):
        return self.upsert_payrolls([record])[0]

    def upsert_payrolls(self, records):
        records = list(records)
        try:
            objs = [self._apply(r) for r in records]
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.exception("[storage] payroll upsert failed (%d rows)", len(records))
            raise PersistenceError(e) from e
        return [Payroll.from_storage_row(_payroll_row(o)) for o in objs]

    def query_payrolls(self, period_start, period_end, employee_id=None):
        from payroll_api.models.payroll import Payroll as PayrollRow

        def _q():
            q = (PayrollRow.query
                 .filter(PayrollRow.pay_period_start >= period_start)
                 .filter(PayrollRow.pay_period_end <= period_end))
            if employee_id:
                q = q.filter(PayrollRow.employee_id == employee_id)
            return q.order_by(PayrollRow.pay_period_start.desc(), PayrollRow.employee_id.asc()).all()

        rows = self._read("query_payrolls", _q)
        return [Payroll.from_storage_row(_payroll_row(r)) for r in rows]

    def employee_names(self, employee_ids):
        from payroll_api.models.employee import Employee

        ids = list(set(employee_ids))
        if not ids:
            return {}
        rows = self._read("employee_names",
                          lambda: Employee.query.filter(Employee.employee_id.in_(ids)).all())
        return {e.employee_id: e.full_name for e in rows}


# ---------- in-memory adapter ----------

class MemoryStorage(PayrollStorage):
    """
    Dict-backed storage. Employees are kept as storage rows (with 'status',
    'is_archived', 'first_name', 'last_name' alongside the pay fields).
    """

    def __init__(self, employees: Iterable[dict] = (), time_logs: Iterable[TimeLogEvent] = ()):
        self._employees: Dict[str, dict] = {}
        self._time_logs: List[TimeLogEvent] = []
        self._payrolls: Dict[PayrollKey, dict] = {}
        self._ids = itertools.count(1)
        for e in employees:
            self.add_employee(e)
        for t in time_logs:
            self.add_time_log(t)

    # -- setup helpers --
    def add_employee(self, row: dict) -> None:
        row = {"status": ACTIVE_STATUS, "is_archived": False, **row}
        self._employees[str(row["employee_id"])] = row

    def add_time_log(self, event: TimeLogEvent) -> None:
        self._time_logs.append(event)

    # -- interface --
    def fetch_time_logs(self, employee_id, start, end):
        lo, hi = _day_bounds(start, end)
        hits = [t for t in self._time_logs
                if t.employee_id == employee_id and lo <= t.timestamp <= hi]
        return sorted(hits, key=lambda t: t.timestamp)

    def fetch_employee_pay_profile(self, employee_id):
        row = self._employees.get(employee_id)
        if row is None:
            raise NotFoundError(f"employee {employee_id} not found")
        return EmployeePayProfile.from_storage_row(row)

    def fetch_active_employees(self):
        rows = [r for r in self._employees.values()
                if not r.get("is_archived") and r.get("status") == ACTIVE_STATUS]
        return [EmployeePayProfile.from_storage_row(r)
                for r in sorted(rows, key=lambda r: r["employee_id"])]

    def _apply(self, table: Dict[PayrollKey, dict], record: Payroll) -> dict:
        row = record.to_storage_row()
        cur = table.get(record.key)
        if cur is None:
            row["id"] = next(self._ids)
            row["created_at"] = row.get("created_at") or datetime.utcnow()
            table[record.key] = row
            return row
        for col in _UPSERT_COLUMNS:
            cur[col] = row[col]
        return cur

    def upsert_payroll(self, record):
        return self.upsert_payrolls([record])[0]

    def upsert_payrolls(self, records):
        staged = copy.deepcopy(self._payrolls)
        rows = [self._apply(staged, r) for r in records]
        self._payrolls = staged
        return [Payroll.from_storage_row(r) for r in rows]

    def query_payrolls(self, period_start, period_end, employee_id=None):
        rows = [r for r in self._payrolls.values()
                if r["pay_period_start"] >= period_start and r["pay_period_end"] <= period_end
                and (not employee_id or r["employee_id"] == employee_id)]
        rows.sort(key=lambda r: r["employee_id"])
        rows.sort(key=lambda r: r["pay_period_start"], reverse=True)
        return [Payroll.from_storage_row(r) for r in rows]

    def employee_names(self, employee_ids):
        out = {}
        for eid in set(employee_ids):
            row = self._employees.get(eid)
            if row is not None:
                out[eid] = f"{row.get('first_name', '')} {row.get('last_name') or ''}".strip()
        return out


# ---------- wiring ----------

def get_storage() -> PayrollStorage:
    """
    Storage for the current app. create_app() installs a factory under
    app.extensions['payroll_storage']; default is the ORM adapter.
    """
    factory = current_app.extensions.get("payroll_storage")
    if factory is None:
        from payroll_api.extensions import db
        return SqlAlchemyStorage(db.session)
    return factory()
