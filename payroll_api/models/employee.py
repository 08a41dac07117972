from datetime import datetime
from payroll_api.extensions import db

class Employee(db.Model):
    """
    Pay-relevant slice of an employee record.

    basic_salary is the monthly amount for 'Monthly' and the daily rate
    for 'Daily'. monthly_equivalent is derived on save (Daily -> basic * 22).
    """
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(32), unique=True, index=True, nullable=False)  # business key

    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=True)
    email      = db.Column(db.String(255), unique=True, nullable=True)
    department = db.Column(db.String(120), nullable=True)
    position   = db.Column(db.String(120), nullable=True)

    status      = db.Column(db.String(32), default="Active", nullable=False)  # Active/On Leave/Resigned/...
    is_archived = db.Column(db.Boolean, default=False, nullable=False)

    # salary
    salary_type        = db.Column(db.String(16), default="", nullable=False)   # Monthly | Daily | ''
    basic_salary       = db.Column(db.Numeric(14, 2), default=0, nullable=False)
    hourly_rate        = db.Column(db.Numeric(14, 4), nullable=True)
    monthly_equivalent = db.Column(db.Numeric(14, 2), default=0)

    # pay rate multipliers
    overtime_multiplier          = db.Column(db.Numeric(6, 3), default=1.25)
    regular_holiday_multiplier   = db.Column(db.Numeric(6, 3), default=2.0)
    special_holiday_multiplier   = db.Column(db.Numeric(6, 3), default=1.3)
    rest_day_overtime_multiplier = db.Column(db.Numeric(6, 3), default=1.3)

    # standard deductions
    sss_deduction        = db.Column(db.Numeric(14, 2), default=0)
    philhealth_deduction = db.Column(db.Numeric(14, 2), default=0)
    hdmf_deduction       = db.Column(db.Numeric(14, 2), default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("salary_type in ('Monthly','Daily','')", name="ck_employee_salary_type"),
        db.Index("ix_emp_status_archived", "status", "is_archived"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()
