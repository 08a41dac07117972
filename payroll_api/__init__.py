import os
import click
from flask import Flask
from flask_cors import CORS

from payroll_api.extensions import db, migrate, init_db
from payroll_api.common.errors import register_error_handlers
from payroll_api.models import load_all

from datetime import timedelta, datetime, date
from decimal import Decimal
from flask_jwt_extended import JWTManager

jwt = JWTManager()


def _rest_days(raw: str):
    """'5,6' -> (5, 6); Python weekday numbers, Monday=0."""
    out = []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        n = int(part)
        if not 0 <= n <= 6:
            raise ValueError(f"rest day out of range: {n}")
        out.append(n)
    return tuple(sorted(set(out)))


def create_app(config_object: str | None = None, storage_factory=None):
    app = Flask(__name__)

    # Basic inline config (defaults)
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY", "dev-jwt-secret")
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(hours=2)
    app.config["JWT_DECODE_LEEWAY"] = 120  # 2 minutes grace for clock skew
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL", "sqlite:///payroll_dev.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    try:
        app.config["PAYROLL_DEFAULT_REST_DAYS"] = _rest_days(os.getenv("PAYROLL_REST_DAYS", "5,6"))
    except ValueError as e:
        app.logger.warning("Ignoring PAYROLL_REST_DAYS (%s); using Sat/Sun", e)
        app.config["PAYROLL_DEFAULT_REST_DAYS"] = (5, 6)

    if config_object:
        try:
            app.config.from_object(config_object)
        except Exception as e:
            # Just log and continue with defaults
            app.logger.warning("Could not import config object %r: %s", config_object, e)

    # CORS (dev)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # Extensions
    init_db(app)
    register_error_handlers(app)
    jwt.init_app(app)
    migrate.init_app(app, db)

    # alternate payroll storage (tests / tooling); default is the ORM adapter
    if storage_factory is not None:
        app.extensions["payroll_storage"] = storage_factory

    # Ensure models are loaded so metadata is complete
    with app.app_context():
        load_all()

    # Blueprints
    from payroll_api.blueprints.payroll import bp as payroll_bp
    from payroll_api.blueprints.time_logs import bp as time_logs_bp
    from payroll_api.blueprints.employees import bp as employees_bp

    app.register_blueprint(payroll_bp)
    app.register_blueprint(time_logs_bp)
    app.register_blueprint(employees_bp)

    # ----------------- CLI COMMANDS -----------------

    @app.cli.command("seed-demo")
    @click.option("--days", default=14, show_default=True, help="Calendar days of time logs to create.")
    def seed_demo(days: int):
        """Seed demo employees and a fortnight of clock events."""
        from payroll_api.models.employee import Employee
        from payroll_api.models.time_log import TimeLog
        from payroll_api.blueprints.employees import monthly_equivalent

        demo = (
            ("EMP-001", "Ana", "Reyes", "Monthly", Decimal("21700.00"), None),
            ("EMP-002", "Ben", "Cruz", "Daily", Decimal("610.00"), None),
            ("EMP-003", "Carla", "Santos", "", Decimal("0"), Decimal("95.00")),
        )
        created = 0
        for eid, first, last, stype, basic, hourly in demo:
            if Employee.query.filter_by(employee_id=eid).first():
                continue
            emp = Employee(
                employee_id=eid, first_name=first, last_name=last,
                department="Operations", position="Staff",
                salary_type=stype, basic_salary=basic, hourly_rate=hourly,
                sss_deduction=Decimal("581.30"), philhealth_deduction=Decimal("250.00"), hdmf_deduction=Decimal("100.00"),
            )
            emp.monthly_equivalent = monthly_equivalent(stype, emp.basic_salary)
            db.session.add(emp)
            created += 1
        db.session.commit()

        start = date.today() - timedelta(days=days)
        logs = 0
        for eid, *_ in demo:
            if TimeLog.query.filter_by(employee_id=eid).first():
                continue
            for i in range(days):
                d = start + timedelta(days=i)
                if d.weekday() in app.config["PAYROLL_DEFAULT_REST_DAYS"]:
                    continue
                db.session.add(TimeLog(employee_id=eid, type="Clock In", method="QR",
                                       timestamp=datetime(d.year, d.month, d.day, 8, 0)))
                db.session.add(TimeLog(employee_id=eid, type="Clock Out", method="QR",
                                       timestamp=datetime(d.year, d.month, d.day, 18, 0)))
                logs += 2
        db.session.commit()
        click.echo(f"Seeded {created} employees and {logs} time logs from {start.isoformat()}")

    @app.cli.command("run-payroll")
    @click.option("--start", "start_opt", required=True, help="Pay period start YYYY-MM-DD")
    @click.option("--end", "end_opt", required=True, help="Pay period end YYYY-MM-DD")
    def run_payroll_cmd(start_opt: str, end_opt: str):
        """Run the flat-rate batch payroll for every active employee."""
        from payroll_api.common.errors import APIError
        from payroll_api.services.batch_payroll import run_batch_payroll
        from payroll_api.services.storage import get_storage

        try:
            result = run_batch_payroll(get_storage(), start_opt, end_opt)
        except APIError as e:
            raise click.ClickException(e.message)
        click.echo(
            f"Processed {result['processed_count']} employees "
            f"for {result['period_start']} to {result['period_end']}"
        )

    return app
