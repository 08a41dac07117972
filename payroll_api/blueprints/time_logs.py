from __future__ import annotations

from datetime import datetime, time as _time
from typing import Any, Dict
import logging

from flask import Blueprint, request

from payroll_api.extensions import db
from payroll_api.common.auth import requires_perms
from payroll_api.common.errors import NotFoundError, ValidationError
from payroll_api.common.http import ok
from payroll_api.common.paging import page_limit
from payroll_api.models.employee import Employee
from payroll_api.models.time_log import TimeLog
from payroll_api.services.payroll_types import (
    TimeLogMethod,
    TimeLogType,
    as_date,
    as_datetime,
    validate_period,
)

log = logging.getLogger(__name__)

bp = Blueprint("time_logs", __name__, url_prefix="/api/v1/time-logs")


# ---------- helpers ----------
def _row(t: TimeLog) -> Dict[str, Any]:
    return {
        "id": t.id,
        "employee_id": t.employee_id,
        "timestamp": t.timestamp.isoformat() if t.timestamp else None,
        "type": t.type,
        "method": t.method,
        "note": t.note,
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }


def _require_employee(employee_id) -> Employee:
    if not employee_id:
        raise ValidationError("employee_id is required")
    emp = Employee.query.filter_by(employee_id=str(employee_id)).first()
    if emp is None:
        raise NotFoundError(f"employee {employee_id} not found")
    return emp


def _get_log(log_id: int) -> TimeLog:
    t = db.session.get(TimeLog, log_id)
    if t is None:
        raise NotFoundError(f"time log {log_id} not found")
    return t


# ---------- routes ----------
@bp.get("")
@requires_perms("attendance.time_log.read")
def list_time_logs():
    """
    GET /api/v1/time-logs
      ?employee_id=EMP-001
      &date=YYYY-MM-DD            (single day)
      | &from=YYYY-MM-DD&to=YYYY-MM-DD
      &page=1&size=20
    """
    q = TimeLog.query

    emp = (request.args.get("employee_id") or request.args.get("employeeId") or "").strip()
    if emp:
        q = q.filter(TimeLog.employee_id == emp)

    if request.args.get("date"):
        d = as_date(request.args["date"], "date")
        lo, hi = datetime.combine(d, _time.min), datetime.combine(d, _time.max)
        q = q.filter(TimeLog.timestamp >= lo, TimeLog.timestamp <= hi)
    elif request.args.get("from") or request.args.get("to"):
        start, end = validate_period(request.args.get("from"), request.args.get("to"))
        q = q.filter(TimeLog.timestamp >= datetime.combine(start, _time.min),
                     TimeLog.timestamp <= datetime.combine(end, _time.max))

    page, size = page_limit()
    total = q.count()
    rows = (q.order_by(TimeLog.timestamp.asc(), TimeLog.id.asc())
             .offset((page - 1) * size).limit(size).all())
    return ok([_row(t) for t in rows], page=page, size=size, total=total)


@bp.post("")
@requires_perms("attendance.time_log.write")
def add_time_log():
    """
    POST /api/v1/time-logs
      {employee_id, timestamp, type: 'Clock In'|'Clock Out', method?: 'QR'|'Manual'|'Forced Manual'}
    """
    j = request.get_json(silent=True) or {}
    emp = _require_employee(j.get("employee_id") or j.get("employeeId"))
    t = TimeLog(
        employee_id=emp.employee_id,
        timestamp=as_datetime(j.get("timestamp"), "timestamp"),
        type=TimeLogType.parse(j.get("type")).value,
        method=TimeLogMethod.parse(j.get("method")).value,
        note=(j.get("note") or "").strip() or None,
    )
    db.session.add(t)
    db.session.commit()
    return ok(_row(t), 201)


@bp.patch("/<int:log_id>")
@requires_perms("attendance.time_log.write")
def update_time_log(log_id: int):
    """Correct a captured event; payroll derivations pick up the change on next generate."""
    t = _get_log(log_id)
    j = request.get_json(silent=True) or {}

    if "employee_id" in j:
        t.employee_id = _require_employee(j.get("employee_id")).employee_id
    if "timestamp" in j:
        t.timestamp = as_datetime(j.get("timestamp"), "timestamp")
    if "type" in j:
        t.type = TimeLogType.parse(j.get("type")).value
    if "method" in j:
        t.method = TimeLogMethod.parse(j.get("method")).value
    if "note" in j:
        t.note = (j.get("note") or "").strip() or None

    db.session.commit()
    return ok(_row(t))


@bp.post("/force-clock-out")
@requires_perms("attendance.time_log.write")
def force_clock_out():
    """Record a Clock Out 'now' for an employee who never clocked out."""
    j = request.get_json(silent=True) or {}
    emp = _require_employee(j.get("employee_id") or j.get("employeeId"))
    t = TimeLog(
        employee_id=emp.employee_id,
        timestamp=datetime.now().replace(microsecond=0),
        type=TimeLogType.CLOCK_OUT.value,
        method=TimeLogMethod.FORCED_MANUAL.value,
    )
    db.session.add(t)
    db.session.commit()
    log.info("[time_logs] forced clock-out for %s at %s", emp.employee_id, t.timestamp)
    return ok(_row(t), 201)


@bp.get("/attendance-overview")
@requires_perms("attendance.time_log.read")
def attendance_overview():
    """Every event in [start, end] with the employee's name, oldest first."""
    start, end = validate_period(request.args.get("start"), request.args.get("end"))
    rows = (db.session.query(TimeLog, Employee)
            .join(Employee, Employee.employee_id == TimeLog.employee_id)
            .filter(TimeLog.timestamp >= datetime.combine(start, _time.min))
            .filter(TimeLog.timestamp <= datetime.combine(end, _time.max))
            .order_by(TimeLog.timestamp.asc(), TimeLog.id.asc())
            .all())
    data = [{
        "employee_id": t.employee_id,
        "name": e.full_name,
        "timestamp": t.timestamp.isoformat(),
        "type": t.type,
        "method": t.method,
    } for t, e in rows]
    return ok(data, total=len(data))
