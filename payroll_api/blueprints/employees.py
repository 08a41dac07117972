from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict

from flask import Blueprint, request
from sqlalchemy import or_

from payroll_api.extensions import db
from payroll_api.common.auth import requires_perms
from payroll_api.common.errors import NotFoundError, ValidationError
from payroll_api.common.http import ok
from payroll_api.common.paging import as_bool, page_limit, text_q
from payroll_api.models.employee import Employee
from payroll_api.services.payroll_types import (
    DEFAULT_OVERTIME_MULTIPLIER,
    DEFAULT_REGULAR_HOLIDAY_MULTIPLIER,
    DEFAULT_REST_DAY_OT_MULTIPLIER,
    DEFAULT_SPECIAL_HOLIDAY_MULTIPLIER,
    SalaryType,
    ZERO,
    as_decimal,
)
from payroll_api.services.storage import get_storage

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")

MONTHLY_EQUIVALENT_DAYS = Decimal("22")

# payload key -> (column, default on create)
_PAY_FIELDS = {
    "basic_salary": ("basic_salary", ZERO),
    "hourly_rate": ("hourly_rate", None),
    "overtime_multiplier": ("overtime_multiplier", DEFAULT_OVERTIME_MULTIPLIER),
    "regular_holiday_multiplier": ("regular_holiday_multiplier", DEFAULT_REGULAR_HOLIDAY_MULTIPLIER),
    "special_holiday_multiplier": ("special_holiday_multiplier", DEFAULT_SPECIAL_HOLIDAY_MULTIPLIER),
    "rest_day_overtime_multiplier": ("rest_day_overtime_multiplier", DEFAULT_REST_DAY_OT_MULTIPLIER),
    "sss_deduction": ("sss_deduction", ZERO),
    "philhealth_deduction": ("philhealth_deduction", ZERO),
    "hdmf_deduction": ("hdmf_deduction", ZERO),
}
_TEXT_FIELDS = ("first_name", "last_name", "email", "department", "position", "status")


# ---------- helpers ----------
def _f(v):
    return float(v) if v is not None else None

def _row(x: Employee) -> Dict[str, Any]:
    return {
        "id": x.id,
        "employee_id": x.employee_id,
        "first_name": x.first_name,
        "last_name": x.last_name,
        "email": x.email,
        "department": x.department,
        "position": x.position,
        "status": x.status,
        "is_archived": bool(x.is_archived),
        "salary_type": x.salary_type,
        "basic_salary": _f(x.basic_salary),
        "hourly_rate": _f(x.hourly_rate),
        "monthly_equivalent": _f(x.monthly_equivalent),
        **{k: _f(getattr(x, col)) for k, (col, _) in _PAY_FIELDS.items()
           if k not in ("basic_salary", "hourly_rate")},
        "created_at": x.created_at.isoformat() if x.created_at else None,
        "updated_at": x.updated_at.isoformat() if x.updated_at else None,
    }

def monthly_equivalent(salary_type: str, basic_salary) -> Decimal:
    basic = basic_salary or ZERO
    if salary_type == SalaryType.DAILY.value:
        return basic * MONTHLY_EQUIVALENT_DAYS
    if salary_type == SalaryType.MONTHLY.value:
        return basic
    return ZERO

def _apply_payload(e: Employee, j: Dict[str, Any], creating: bool) -> None:
    for k in _TEXT_FIELDS:
        if k in j:
            v = (j.get(k) or "").strip() or None
            if k in ("first_name", "status") and not v:
                raise ValidationError(f"{k} cannot be empty")
            setattr(e, k, v)

    if "salary_type" in j or creating:
        e.salary_type = SalaryType.parse(j.get("salary_type")).value

    for k, (col, default) in _PAY_FIELDS.items():
        if k in j:
            setattr(e, col, as_decimal(j.get(k), k, default=default))
        elif creating:
            setattr(e, col, default)

    e.monthly_equivalent = monthly_equivalent(e.salary_type, e.basic_salary)

def _get_emp(employee_id: str) -> Employee:
    e = Employee.query.filter_by(employee_id=employee_id).first()
    if e is None:
        raise NotFoundError(f"employee {employee_id} not found")
    return e


# ---------- routes ----------
@bp.get("")
@requires_perms("employee.read")
def list_employees():
    """
    GET /api/v1/employees?status=Active&include_archived=false&q=ana&page=1&size=20
    """
    q = Employee.query
    if not as_bool(request.args.get("include_archived")):
        q = q.filter(Employee.is_archived.is_(False))
    if request.args.get("status"):
        q = q.filter(Employee.status == request.args["status"])
    term = text_q()
    if term:
        like = f"%{term.lower()}%"
        q = q.filter(or_(Employee.employee_id.ilike(like),
                         Employee.first_name.ilike(like),
                         Employee.last_name.ilike(like)))

    page, size = page_limit()
    total = q.count()
    rows = q.order_by(Employee.first_name.asc(), Employee.id.asc()).offset((page - 1) * size).limit(size).all()
    return ok([_row(x) for x in rows], page=page, size=size, total=total)


@bp.post("")
@requires_perms("employee.write")
def create_employee():
    j = request.get_json(silent=True) or {}
    eid = (j.get("employee_id") or "").strip()
    if not eid or not (j.get("first_name") or "").strip():
        raise ValidationError("employee_id and first_name are required")
    if Employee.query.filter_by(employee_id=eid).first():
        raise ValidationError(f"employee_id {eid} already exists")

    e = Employee(employee_id=eid, status="Active", is_archived=False)
    _apply_payload(e, j, creating=True)
    db.session.add(e)
    db.session.commit()
    return ok(_row(e), 201)


@bp.get("/<employee_id>/pay-profile")
@requires_perms("employee.read")
def get_pay_profile(employee_id: str):
    return ok(get_storage().fetch_employee_pay_profile(employee_id).to_storage_row())


@bp.patch("/<employee_id>")
@requires_perms("employee.write")
def update_employee(employee_id: str):
    """Profile changes apply to future payslips only; saved payrolls are untouched."""
    e = _get_emp(employee_id)
    j = request.get_json(silent=True) or {}
    j.pop("employee_id", None)
    _apply_payload(e, j, creating=False)
    e.updated_at = datetime.utcnow()
    db.session.commit()
    return ok(_row(e))


@bp.post("/<employee_id>/archive")
@requires_perms("employee.write")
def archive_employee(employee_id: str):
    e = _get_emp(employee_id)
    e.is_archived = True
    db.session.commit()
    return ok(_row(e))


@bp.post("/<employee_id>/unarchive")
@requires_perms("employee.write")
def unarchive_employee(employee_id: str):
    e = _get_emp(employee_id)
    e.is_archived = False
    db.session.commit()
    return ok(_row(e))
