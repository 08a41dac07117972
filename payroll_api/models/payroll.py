from datetime import datetime
from payroll_api.extensions import db


class Payroll(db.Model):
    """Finalized payslip summary; one row per employee and pay period."""
    __tablename__ = "payrolls"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(32), db.ForeignKey("employees.employee_id"), nullable=False, index=True)

    pay_period_start = db.Column(db.Date, nullable=False)
    pay_period_end   = db.Column(db.Date, nullable=False)
    pay_date_issued  = db.Column(db.Date, nullable=True)

    gross_pay  = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_pay    = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "pay_period_start", "pay_period_end",
                            name="uq_payroll_employee_period"),
        db.CheckConstraint("pay_period_start <= pay_period_end", name="ck_payroll_period_order"),
        db.Index("ix_payroll_period", "pay_period_start", "pay_period_end"),
    )

    employee = db.relationship("Employee", lazy="joined")
