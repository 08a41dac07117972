# payroll_api/common/paging.py
from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 20
MAX_SIZE = 100

def page_limit():
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except Exception:
        page = DEFAULT_PAGE
    raw = request.args.get("size", request.args.get("limit", DEFAULT_SIZE))
    try:
        size = max(1, min(int(raw), MAX_SIZE))
    except Exception:
        size = DEFAULT_SIZE
    return page, size

def text_q():
    q = request.args.get("q", "")
    return q.strip() or None

def as_bool(val, default=False):
    if val is None:
        return default
    return str(val).strip().lower() in ("1", "true", "yes", "y")
