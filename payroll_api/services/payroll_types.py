from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from payroll_api.common.errors import ValidationError

ZERO = Decimal("0")
TWO_PLACES = Decimal("0.01")

DEFAULT_OVERTIME_MULTIPLIER = Decimal("1.25")
DEFAULT_REGULAR_HOLIDAY_MULTIPLIER = Decimal("2.0")
DEFAULT_SPECIAL_HOLIDAY_MULTIPLIER = Decimal("1.3")
DEFAULT_REST_DAY_OT_MULTIPLIER = Decimal("1.3")


# ---------- coercion ----------

def money(value) -> Decimal:
    """Round to 2 places, half-up (presentation and persistence)."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_decimal(value, default: Decimal = ZERO) -> Decimal:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def as_decimal(value, field_name: str, default: Decimal = ZERO, allow_negative: bool = False) -> Decimal:
    """Strict variant used on user input: rejects garbage and negatives."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        out = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not out.is_finite():
        raise ValidationError(f"{field_name} must be a number")
    if out < 0 and not allow_negative:
        raise ValidationError(f"{field_name} must be >= 0")
    return out


def as_date(value, field_name: str, required: bool = True) -> Optional[date]:
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field_name} is required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD")


_TRUE = ("1", "true", "yes", "y")
_FALSE = ("0", "false", "no", "n", "")


def as_flag(value, field_name: str, default: bool = False) -> bool:
    """JSON booleans, 0/1, or the usual query-string spellings; anything else is rejected."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        s = value.strip().lower()
        if s in _TRUE:
            return True
        if s in _FALSE:
            return False
    raise ValidationError(f"{field_name} must be true or false")


def as_datetime(value, field_name: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if value in (None, ""):
        raise ValidationError(f"{field_name} is required")
    try:
        return datetime.fromisoformat(str(value).strip().replace(" ", "T"))
    except ValueError:
        raise ValidationError(f"{field_name} must be an ISO datetime")


def validate_period(start, end) -> Tuple[date, date]:
    start = as_date(start, "period_start")
    end = as_date(end, "period_end")
    if start > end:
        raise ValidationError("period_start must be <= period_end")
    return start, end


def _pick(data: Mapping[str, Any], *keys, default=None):
    """First present key wins; lets callers send snake_case or camelCase."""
    for k in keys:
        if k in data:
            return data[k]
    return default


# ---------- enums ----------

class TimeLogType(str, Enum):
    CLOCK_IN = "Clock In"
    CLOCK_OUT = "Clock Out"

    @classmethod
    def parse(cls, raw) -> "TimeLogType":
        if isinstance(raw, cls):
            return raw
        s = str(raw or "").strip().lower().replace("_", " ").replace("-", " ")
        if s in ("clock in", "clockin", "in", "i"):
            return cls.CLOCK_IN
        if s in ("clock out", "clockout", "out", "o"):
            return cls.CLOCK_OUT
        raise ValidationError(f"invalid time log type: {raw!r} (use 'Clock In' or 'Clock Out')")


class TimeLogMethod(str, Enum):
    QR = "QR"
    MANUAL = "Manual"
    FORCED_MANUAL = "Forced Manual"

    @classmethod
    def parse(cls, raw, default: "TimeLogMethod" = None) -> "TimeLogMethod":
        if isinstance(raw, cls):
            return raw
        if raw in (None, ""):
            return default or cls.MANUAL
        s = str(raw).strip().lower().replace("_", " ")
        if s in ("qr", "scan", "kiosk"):
            return cls.QR
        if s in ("manual", "admin"):
            return cls.MANUAL
        if s in ("forced manual", "forced", "force"):
            return cls.FORCED_MANUAL
        raise ValidationError(f"invalid time log method: {raw!r}")


class SalaryType(str, Enum):
    MONTHLY = "Monthly"
    DAILY = "Daily"
    UNSET = ""

    @classmethod
    def parse(cls, raw) -> "SalaryType":
        if isinstance(raw, cls):
            return raw
        s = str(raw or "").strip().lower()
        if s == "monthly":
            return cls.MONTHLY
        if s == "daily":
            return cls.DAILY
        if s == "":
            return cls.UNSET
        raise ValidationError(f"invalid salary_type: {raw!r} (use 'Monthly', 'Daily' or '')")


# ---------- entities ----------

@dataclass(frozen=True)
class TimeLogEvent:
    employee_id: str
    timestamp: datetime
    type: TimeLogType
    method: TimeLogMethod = TimeLogMethod.MANUAL
    id: Optional[int] = None

    def to_storage_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "method": self.method.value,
        }

    @classmethod
    def from_storage_row(cls, row: Mapping[str, Any]) -> "TimeLogEvent":
        return cls(
            id=row.get("id"),
            employee_id=str(row["employee_id"]),
            timestamp=as_datetime(row["timestamp"], "timestamp"),
            type=TimeLogType.parse(row["type"]),
            method=TimeLogMethod.parse(row.get("method")),
        )


@dataclass(frozen=True)
class EmployeePayProfile:
    employee_id: str
    salary_type: SalaryType = SalaryType.UNSET
    basic_salary: Decimal = ZERO
    hourly_rate: Optional[Decimal] = None
    overtime_multiplier: Decimal = DEFAULT_OVERTIME_MULTIPLIER
    regular_holiday_multiplier: Decimal = DEFAULT_REGULAR_HOLIDAY_MULTIPLIER
    special_holiday_multiplier: Decimal = DEFAULT_SPECIAL_HOLIDAY_MULTIPLIER
    rest_day_overtime_multiplier: Decimal = DEFAULT_REST_DAY_OT_MULTIPLIER
    sss_deduction: Decimal = ZERO
    philhealth_deduction: Decimal = ZERO
    hdmf_deduction: Decimal = ZERO

    def to_storage_row(self) -> Dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "salary_type": self.salary_type.value,
            "basic_salary": self.basic_salary,
            "hourly_rate": self.hourly_rate,
            "overtime_multiplier": self.overtime_multiplier,
            "regular_holiday_multiplier": self.regular_holiday_multiplier,
            "special_holiday_multiplier": self.special_holiday_multiplier,
            "rest_day_overtime_multiplier": self.rest_day_overtime_multiplier,
            "sss_deduction": self.sss_deduction,
            "philhealth_deduction": self.philhealth_deduction,
            "hdmf_deduction": self.hdmf_deduction,
        }

    @classmethod
    def from_storage_row(cls, row: Mapping[str, Any]) -> "EmployeePayProfile":
        hourly = row.get("hourly_rate")
        return cls(
            employee_id=str(row["employee_id"]),
            salary_type=SalaryType.parse(row.get("salary_type")),
            basic_salary=to_decimal(row.get("basic_salary")),
            hourly_rate=None if hourly in (None, "") else to_decimal(hourly),
            overtime_multiplier=to_decimal(row.get("overtime_multiplier"), DEFAULT_OVERTIME_MULTIPLIER),
            regular_holiday_multiplier=to_decimal(row.get("regular_holiday_multiplier"),
                                                  DEFAULT_REGULAR_HOLIDAY_MULTIPLIER),
            special_holiday_multiplier=to_decimal(row.get("special_holiday_multiplier"),
                                                  DEFAULT_SPECIAL_HOLIDAY_MULTIPLIER),
            rest_day_overtime_multiplier=to_decimal(row.get("rest_day_overtime_multiplier"),
                                                    DEFAULT_REST_DAY_OT_MULTIPLIER),
            sss_deduction=to_decimal(row.get("sss_deduction")),
            philhealth_deduction=to_decimal(row.get("philhealth_deduction")),
            hdmf_deduction=to_decimal(row.get("hdmf_deduction")),
        )


HOUR_FIELDS = ("reg_hrs", "ot_hrs", "reg_hol_hrs", "spec_hol_hrs")


@dataclass
class WorkDayEntry:
    date: date
    reg_hrs: Decimal = ZERO
    ot_hrs: Decimal = ZERO
    reg_hol_hrs: Decimal = ZERO
    spec_hol_hrs: Decimal = ZERO
    is_rest_day: bool = False
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "reg_hrs": float(self.reg_hrs),
            "ot_hrs": float(self.ot_hrs),
            "reg_hol_hrs": float(self.reg_hol_hrs),
            "spec_hol_hrs": float(self.spec_hol_hrs),
            "is_rest_day": self.is_rest_day,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkDayEntry":
        return cls(
            date=as_date(data.get("date"), "work_days.date"),
            reg_hrs=as_decimal(_pick(data, "reg_hrs", "regHrs"), "reg_hrs"),
            ot_hrs=as_decimal(_pick(data, "ot_hrs", "otHrs"), "ot_hrs"),
            reg_hol_hrs=as_decimal(_pick(data, "reg_hol_hrs", "regHolHrs"), "reg_hol_hrs"),
            spec_hol_hrs=as_decimal(_pick(data, "spec_hol_hrs", "specHolHrs"), "spec_hol_hrs"),
            is_rest_day=as_flag(_pick(data, "is_rest_day", "isRestDay"), "is_rest_day"),
            notes=str(data.get("notes") or ""),
        )


@dataclass
class Earnings:
    adjustments: Decimal = ZERO
    bonuses: Decimal = ZERO
    thirteenth_month_pay: Decimal = ZERO
    other_earnings: Decimal = ZERO

    _ALIASES = {
        "adjustments": ("adjustments",),
        "bonuses": ("bonuses",),
        "thirteenth_month_pay": ("thirteenth_month_pay", "thirteenthMonthPay"),
        "other_earnings": ("other_earnings", "otherEarnings"),
    }

    def total(self) -> Decimal:
        return self.adjustments + self.bonuses + self.thirteenth_month_pay + self.other_earnings

    def updated(self, **changes) -> "Earnings":
        return replace(self, **_validated_amounts(self, changes))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Earnings":
        data = data or {}
        return cls(**{
            name: as_decimal(_pick(data, *keys), name)
            for name, keys in cls._ALIASES.items()
        })

    def to_dict(self) -> Dict[str, float]:
        return {f.name: float(getattr(self, f.name)) for f in fields(self)}


@dataclass
class Deductions:
    vale_cash_advance: Decimal = ZERO
    loan_payments: Decimal = ZERO
    sss_deduction: Decimal = ZERO
    philhealth_deduction: Decimal = ZERO
    hdmf_deduction: Decimal = ZERO

    _ALIASES = {
        "vale_cash_advance": ("vale_cash_advance", "valeCashAdvance"),
        "loan_payments": ("loan_payments", "loanPayments"),
        "sss_deduction": ("sss_deduction", "sssDeduction"),
        "philhealth_deduction": ("philhealth_deduction", "philhealthDeduction"),
        "hdmf_deduction": ("hdmf_deduction", "hdmfDeduction"),
    }

    def total(self) -> Decimal:
        return (self.vale_cash_advance + self.loan_payments + self.sss_deduction
                + self.philhealth_deduction + self.hdmf_deduction)

    def updated(self, **changes) -> "Deductions":
        return replace(self, **_validated_amounts(self, changes))

    @classmethod
    def seeded_from(cls, profile: EmployeePayProfile) -> "Deductions":
        """Statutory amounts come from the profile; vale and loan start at zero."""
        return cls(
            sss_deduction=profile.sss_deduction or ZERO,
            philhealth_deduction=profile.philhealth_deduction or ZERO,
            hdmf_deduction=profile.hdmf_deduction or ZERO,
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]],
                  defaults: Optional["Deductions"] = None) -> "Deductions":
        data = data or {}
        base = defaults or cls()
        return cls(**{
            name: as_decimal(_pick(data, *keys), name, default=getattr(base, name))
            for name, keys in cls._ALIASES.items()
        })

    def to_dict(self) -> Dict[str, float]:
        return {f.name: float(getattr(self, f.name)) for f in fields(self)}


def _validated_amounts(obj, changes: Mapping[str, Any]) -> Dict[str, Decimal]:
    known = {f.name for f in fields(obj)}
    out = {}
    for name, value in changes.items():
        if name not in known:
            raise ValidationError(f"unknown field: {name}")
        out[name] = as_decimal(value, name)
    return out


@dataclass(frozen=True)
class PayslipSummary:
    gross: Decimal
    total_deductions: Decimal
    net: Decimal

    def to_dict(self) -> Dict[str, float]:
        return {
            "gross": float(self.gross),
            "total_deductions": float(self.total_deductions),
            "net": float(self.net),
        }


@dataclass
class Payroll:
    employee_id: str
    pay_period_start: date
    pay_period_end: date
    pay_date_issued: Optional[date]
    gross_pay: Decimal
    deductions: Decimal
    net_pay: Decimal
    created_at: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def key(self) -> Tuple[str, date, date]:
        return (self.employee_id, self.pay_period_start, self.pay_period_end)

    def to_storage_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "pay_period_start": self.pay_period_start,
            "pay_period_end": self.pay_period_end,
            "pay_date_issued": self.pay_date_issued,
            "gross_pay": money(self.gross_pay),
            "deductions": money(self.deductions),
            "net_pay": money(self.net_pay),
            "created_at": self.created_at,
        }

    @classmethod
    def from_storage_row(cls, row: Mapping[str, Any]) -> "Payroll":
        created = row.get("created_at")
        return cls(
            id=row.get("id"),
            employee_id=str(row["employee_id"]),
            pay_period_start=as_date(row["pay_period_start"], "pay_period_start"),
            pay_period_end=as_date(row["pay_period_end"], "pay_period_end"),
            pay_date_issued=as_date(row.get("pay_date_issued"), "pay_date_issued", required=False),
            gross_pay=money(row.get("gross_pay")),
            deductions=money(row.get("deductions")),
            net_pay=money(row.get("net_pay")),
            created_at=None if created in (None, "") else as_datetime(created, "created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "pay_period_start": self.pay_period_start.isoformat(),
            "pay_period_end": self.pay_period_end.isoformat(),
            "pay_date_issued": self.pay_date_issued.isoformat() if self.pay_date_issued else None,
            "gross_pay": float(money(self.gross_pay)),
            "deductions": float(money(self.deductions)),
            "net_pay": float(money(self.net_pay)),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
