from __future__ import annotations
from datetime import date
from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, request, current_app

from payroll_api.common.auth import requires_perms
from payroll_api.common.errors import ValidationError
from payroll_api.common.http import ok
from payroll_api.services.storage import get_storage, PayrollStorage
from payroll_api.services.payroll_types import (
    Deductions,
    Earnings,
    WorkDayEntry,
    as_date,
    validate_period,
)
from payroll_api.services.work_days import generate_work_days
from payroll_api.services.payslip_calculator import PayslipWorksheet, rates
from payroll_api.services.batch_payroll import run_batch_payroll
from payroll_api.services.reports import payroll_summary

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")


# ---------- helpers ----------
def _json() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}

def _arg(j: Dict[str, Any], *keys):
    for k in keys:
        v = j.get(k)
        if v not in (None, ""):
            return v
    return None

def _employee_id(j) -> str:
    eid = _arg(j, "employee_id", "employeeId")
    if not eid:
        raise ValidationError("employee_id is required")
    return str(eid).strip()

def _rest_days():
    return current_app.config.get("PAYROLL_DEFAULT_REST_DAYS", (5, 6))

def _period(j: Dict[str, Any], required: bool) -> Optional[Tuple[date, date]]:
    start = _arg(j, "period_start", "payPeriodStart")
    end = _arg(j, "period_end", "payPeriodEnd")
    if not required and start is None and end is None:
        return None
    return validate_period(start, end)

def _worksheet(storage: PayrollStorage, j: Dict[str, Any], period=None) -> PayslipWorksheet:
    """
    Rebuild the payslip worksheet from a request body and recompute it.
    The body is fully parsed before the profile is read from the store.
    """
    eid = _employee_id(j)
    days = j.get("work_days", j.get("workDays"))
    if days is None:
        days = []
    if not isinstance(days, list):
        raise ValidationError("work_days must be a list")
    entries = [WorkDayEntry.from_dict(d) for d in days]
    earnings = Earnings.from_dict(j.get("earnings"))

    ws = PayslipWorksheet(None, *(period or (None, None)))
    ws.check_work_days(entries)

    ws.select_employee(storage.fetch_employee_pay_profile(eid))
    # statutory deductions not sent by the client stay seeded from the profile
    ws.earnings = earnings
    ws.deductions = Deductions.from_dict(j.get("deductions"), defaults=ws.deductions)
    ws.load_work_days(entries)
    return ws

def _rates_meta(ws: PayslipWorksheet) -> Dict[str, float]:
    d_rate, h_rate = rates(ws.profile)
    return {"daily_rate": round(float(d_rate), 2), "hourly_rate": round(float(h_rate), 2)}


# ---------- routes ----------
@bp.post("/work-days")
@requires_perms("payroll.payslip.write")
def work_days():
    """
    POST /api/v1/payroll/work-days
      {employee_id, period_start, period_end}
    Regenerates the full list from time logs (hand edits are not merged).
    """
    j = _json()
    days = generate_work_days(
        get_storage(),
        _employee_id(j),
        _arg(j, "period_start", "payPeriodStart"),
        _arg(j, "period_end", "payPeriodEnd"),
        rest_days=_rest_days(),
    )
    return ok([d.to_dict() for d in days], count=len(days))


@bp.post("/payslips/preview")
@requires_perms("payroll.payslip.write")
def preview_payslip():
    j = _json()
    period = _period(j, required=False)
    ws = _worksheet(get_storage(), j, period)
    return ok({
        "summary": ws.summary.to_dict() if ws.summary else None,
        "earnings": ws.earnings.to_dict(),
        "deductions": ws.deductions.to_dict(),
        **_rates_meta(ws),
    })


@bp.post("/payslips")
@requires_perms("payroll.payslip.write")
def save_payslip():
    """
    Recompute from the submitted worksheet and upsert one payroll record for
    (employee_id, period_start, period_end).
    """
    j = _json()
    # reject a bad period or pay date before touching the store
    period = _period(j, required=True)
    pay_date = as_date(_arg(j, "pay_date_issued", "payDateIssued") or date.today(), "pay_date_issued")

    storage = get_storage()
    ws = _worksheet(storage, j, period)
    summary = ws.summary
    saved = ws.commit(storage, pay_date)
    return ok({"payroll": saved.to_dict(), "summary": summary.to_dict()}, 201)


@bp.post("/runs")
@requires_perms("payroll.run.write")
def run_payroll():
    j = _json()
    result = run_batch_payroll(
        get_storage(),
        _arg(j, "period_start", "payPeriodStart"),
        _arg(j, "period_end", "payPeriodEnd"),
    )
    return ok({
        "processed_count": result["processed_count"],
        "period_start": result["period_start"],
        "period_end": result["period_end"],
        "items": [r.to_dict() for r in result["records"]],
    }, 201)


@bp.get("")
@requires_perms("payroll.read")
def list_payrolls():
    """
    GET /api/v1/payroll?period_start=YYYY-MM-DD&period_end=YYYY-MM-DD[&employee_id=EMP-001]
    """
    start, end = validate_period(
        _arg(request.args, "period_start", "from"),
        _arg(request.args, "period_end", "to"),
    )
    emp = (request.args.get("employee_id") or "").strip() or None
    rows = get_storage().query_payrolls(start, end, emp)
    return ok([r.to_dict() for r in rows], total=len(rows))


@bp.get("/reports/payroll-summary")
@requires_perms("payroll.read")
def payroll_summary_report():
    rep = payroll_summary(
        get_storage(),
        _arg(request.args, "start", "period_start"),
        _arg(request.args, "end", "period_end"),
    )
    return ok(rep["rows"], totals=rep["totals"])
