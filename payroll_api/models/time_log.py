# payroll_api/models/time_log.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_api.extensions import db


class TimeLog(db.Model):
    """
    One clock event captured from:
      - QR            : badge scan at the attendance kiosk
      - Manual        : admin entry on the time-logs page
      - Forced Manual : admin forced clock-out of a still-clocked-in employee

    timestamp is naive local time. Rows are never mutated by payroll;
    duplicates are allowed and resolved by the work-day pairing.
    """

    __tablename__ = "time_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    employee_id: Mapped[str] = mapped_column(
        db.String(32), ForeignKey("employees.employee_id", ondelete="CASCADE"), index=True, nullable=False
    )

    timestamp: Mapped[datetime] = mapped_column(index=True, nullable=False)
    type: Mapped[str] = mapped_column(db.String(16), nullable=False)  # 'Clock In' | 'Clock Out'
    method: Mapped[str] = mapped_column(db.String(16), nullable=False, default="Manual")

    note: Mapped[Optional[str]] = mapped_column(db.String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    employee = relationship("Employee", lazy="joined")

    __table_args__ = (
        CheckConstraint("type in ('Clock In','Clock Out')", name="ck_time_log_type"),
        CheckConstraint(
            "method in ('QR','Manual','Forced Manual')",
            name="ck_time_log_method",
        ),
        Index("ix_time_log_employee_ts", "employee_id", "timestamp"),
    )
