"""initial payroll schema: employees, time_logs, payrolls

Revision ID: 3f1a9c0d2b7e
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c0d2b7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.String(length=32), nullable=False),
        sa.Column('first_name', sa.String(length=80), nullable=False),
        sa.Column('last_name', sa.String(length=80), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('department', sa.String(length=120), nullable=True),
        sa.Column('position', sa.String(length=120), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='Active'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('salary_type', sa.String(length=16), nullable=False, server_default=''),
        sa.Column('basic_salary', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('hourly_rate', sa.Numeric(14, 4), nullable=True),
        sa.Column('monthly_equivalent', sa.Numeric(14, 2), nullable=True),
        sa.Column('overtime_multiplier', sa.Numeric(6, 3), nullable=True),
        sa.Column('regular_holiday_multiplier', sa.Numeric(6, 3), nullable=True),
        sa.Column('special_holiday_multiplier', sa.Numeric(6, 3), nullable=True),
        sa.Column('rest_day_overtime_multiplier', sa.Numeric(6, 3), nullable=True),
        sa.Column('sss_deduction', sa.Numeric(14, 2), nullable=True),
        sa.Column('philhealth_deduction', sa.Numeric(14, 2), nullable=True),
        sa.Column('hdmf_deduction', sa.Numeric(14, 2), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("salary_type in ('Monthly','Daily','')", name='ck_employee_salary_type'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_employees_employee_id', 'employees', ['employee_id'], unique=True)
    op.create_index('ix_emp_status_archived', 'employees', ['status', 'is_archived'])

    op.create_table(
        'time_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('employee_id', sa.String(length=32),
                  sa.ForeignKey('employees.employee_id', ondelete='CASCADE'), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("type in ('Clock In','Clock Out')", name='ck_time_log_type'),
        sa.CheckConstraint("method in ('QR','Manual','Forced Manual')", name='ck_time_log_method'),
    )
    op.create_index('ix_time_logs_employee_id', 'time_logs', ['employee_id'])
    op.create_index('ix_time_logs_timestamp', 'time_logs', ['timestamp'])
    op.create_index('ix_time_log_employee_ts', 'time_logs', ['employee_id', 'timestamp'])

    op.create_table(
        'payrolls',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.String(length=32),
                  sa.ForeignKey('employees.employee_id'), nullable=False),
        sa.Column('pay_period_start', sa.Date(), nullable=False),
        sa.Column('pay_period_end', sa.Date(), nullable=False),
        sa.Column('pay_date_issued', sa.Date(), nullable=True),
        sa.Column('gross_pay', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('deductions', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('net_pay', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('employee_id', 'pay_period_start', 'pay_period_end',
                            name='uq_payroll_employee_period'),
        sa.CheckConstraint('pay_period_start <= pay_period_end', name='ck_payroll_period_order'),
    )
    op.create_index('ix_payrolls_employee_id', 'payrolls', ['employee_id'])
    op.create_index('ix_payroll_period', 'payrolls', ['pay_period_start', 'pay_period_end'])


def downgrade() -> None:
    op.drop_index('ix_payroll_period', table_name='payrolls')
    op.drop_index('ix_payrolls_employee_id', table_name='payrolls')
    op.drop_table('payrolls')
    op.drop_index('ix_time_log_employee_ts', table_name='time_logs')
    op.drop_index('ix_time_logs_timestamp', table_name='time_logs')
    op.drop_index('ix_time_logs_employee_id', table_name='time_logs')
    op.drop_table('time_logs')
    op.drop_index('ix_emp_status_archived', table_name='employees')
    op.drop_index('ix_employees_employee_id', table_name='employees')
    op.drop_table('employees')
