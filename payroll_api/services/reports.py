from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List

from payroll_api.services.payroll_types import ZERO, money, validate_period
from payroll_api.services.storage import PayrollStorage


def payroll_summary(storage: PayrollStorage, start, end) -> Dict[str, Any]:
    """
    Rows for the payroll summary report plus period totals.
    Payrolls whose employee is no longer in the directory are left out,
    the same as the attendance overview join.
    """
    start, end = validate_period(start, end)
    records = storage.query_payrolls(start, end)
    names = storage.employee_names(r.employee_id for r in records)

    rows: List[Dict[str, Any]] = []
    gross = ded = net = ZERO
    for r in records:
        name = names.get(r.employee_id)
        if name is None:
            continue
        rows.append({
            "employee_id": r.employee_id,
            "name": name,
            "gross_pay": float(money(r.gross_pay)),
            "deductions": float(money(r.deductions)),
            "net_pay": float(money(r.net_pay)),
            "pay_period": f"{r.pay_period_start.isoformat()} to {r.pay_period_end.isoformat()}",
            "pay_date": r.pay_date_issued.isoformat() if r.pay_date_issued else "N/A",
        })
        gross += Decimal(r.gross_pay)
        ded += Decimal(r.deductions)
        net += Decimal(r.net_pay)

    return {
        "rows": rows,
        "totals": {
            "count": len(rows),
            "gross_pay": float(money(gross)),
            "deductions": float(money(ded)),
            "net_pay": float(money(net)),
        },
    }
