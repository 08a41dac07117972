# payroll_api/common/http.py
from datetime import date, datetime
from decimal import Decimal

from flask import jsonify


def _plain(v):
    """Money as JSON numbers, dates as ISO strings (Flask would emit str / RFC 822)."""
    if isinstance(v, Decimal):
        return float(v)
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    if isinstance(v, dict):
        return {k: _plain(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_plain(x) for x in v]
    return v

def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": _plain(data)}
    if meta:
        payload["meta"] = _plain(meta)
    return jsonify(payload), status

def fail(message="Bad Request", status=400, code=None, detail=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = _plain(detail)
    return jsonify({"success": False, "error": err}), status
