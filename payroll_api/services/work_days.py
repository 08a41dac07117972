# payroll_api/services/work_days.py
from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from payroll_api.common.errors import ValidationError
from payroll_api.services.payroll_types import (
    ZERO,
    TimeLogEvent,
    TimeLogType,
    WorkDayEntry,
    money,
    validate_period,
)
from payroll_api.services.storage import PayrollStorage

log = logging.getLogger(__name__)

REGULAR_DAY_HOURS = Decimal("8")
LUNCH_MIN_SHIFT_HOURS = Decimal("5")
LUNCH_BOUNDARY_HOUR = 13
LUNCH_HOURS = Decimal("1")
SECONDS_PER_HOUR = Decimal("3600")

DEFAULT_REST_DAYS = frozenset({5, 6})  # Saturday, Sunday


def _elapsed_hours(clock_in: datetime, clock_out: datetime) -> Decimal:
    delta = clock_out - clock_in
    secs = Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds) / Decimal(1_000_000)
    return secs / SECONDS_PER_HOUR


def shift_hours(clock_in: datetime, clock_out: datetime) -> Decimal:
    """
    Paid hours for one resolved IN/OUT pair.

    A shift longer than 5h that starts before 13:00 and ends at or after
    13:00 loses one hour for the unpaid 12:00-13:00 lunch. Never negative.
    """
    hours = _elapsed_hours(clock_in, clock_out)
    if (hours > LUNCH_MIN_SHIFT_HOURS
            and clock_in.hour < LUNCH_BOUNDARY_HOUR
            and clock_out.hour >= LUNCH_BOUNDARY_HOUR):
        hours -= LUNCH_HOURS
    return max(ZERO, hours)


def split_regular_overtime(hours: Decimal) -> Tuple[Decimal, Decimal]:
    if hours > REGULAR_DAY_HOURS:
        return REGULAR_DAY_HOURS, hours - REGULAR_DAY_HOURS
    return hours, ZERO


def day_hours(events: Iterable[TimeLogEvent]) -> Tuple[Decimal, Decimal]:
    """
    Pair one day's events into (regular, overtime) hours.

    Every IN opens (a second IN replaces an unresolved one); an OUT closes
    the open IN. An OUT with nothing open is ignored, as is a trailing IN.
    """
    reg = ZERO
    ot = ZERO
    open_in: Optional[datetime] = None

    for ev in sorted(events, key=lambda e: e.timestamp):
        if ev.type == TimeLogType.CLOCK_IN:
            open_in = ev.timestamp
        elif open_in is not None:
            r, o = split_regular_overtime(shift_hours(open_in, ev.timestamp))
            reg += r
            ot += o
            open_in = None

    return reg, ot


def iter_days(start: date, end: date):
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def derive_work_days(events: Iterable[TimeLogEvent], start: date, end: date,
                     rest_days: Iterable[int] = DEFAULT_REST_DAYS) -> List[WorkDayEntry]:
    """One WorkDayEntry per calendar day in [start, end], ascending."""
    rest = frozenset(rest_days)
    by_day: Dict[date, List[TimeLogEvent]] = {}
    for ev in events:
        by_day.setdefault(ev.timestamp.date(), []).append(ev)

    out: List[WorkDayEntry] = []
    for d in iter_days(start, end):
        reg, ot = day_hours(by_day.get(d, ()))
        out.append(WorkDayEntry(
            date=d,
            reg_hrs=money(reg),
            ot_hrs=money(ot),
            is_rest_day=d.weekday() in rest,
        ))
    return out


def generate_work_days(storage: PayrollStorage, employee_id: str, start, end,
                       rest_days: Iterable[int] = DEFAULT_REST_DAYS) -> List[WorkDayEntry]:
    """
    Fetch the employee's time logs for the period and derive the work-day list.

    Validation happens before any store call; a store failure propagates as
    RetrievalError and no list is produced.
    """
    if not employee_id:
        raise ValidationError("employee_id is required")
    start, end = validate_period(start, end)

    storage.fetch_employee_pay_profile(employee_id)  # unknown employee -> NotFoundError
    events = storage.fetch_time_logs(employee_id, start, end)
    days = derive_work_days(events, start, end, rest_days)
    log.info("[work_days] %s %s..%s: %d days from %d events",
             employee_id, start, end, len(days), len(events))
    return days
