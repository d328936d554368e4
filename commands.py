# ==========================================================================================================
# -------------- Operator repair commands:  flask repair <command> --------------------------------------------
# ==========================================================================================================
import json
from decimal import Decimal

import click
from flask import current_app
from flask.cli import AppGroup
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from logger import repair_logger as logger
from models import AuditLog, Profile, Role
from accounts.customers import CustomerHelper
from accounts.payment_schedule import PaymentScheduleHelper
from commission.config import CommissionConfigHelper
from commission.distribution import CommissionDistributionHelper
from commission.reconciliation import ReconciliationHelper
from errors import ServiceError
from utils import check_backend_health


repair_cli = AppGroup("repair", help="Data integrity checks and repairs.")


def _echo_json(payload):
    click.echo(json.dumps(payload, indent=2, default=str))


def _mode(apply):
    return "APPLY" if apply else "DRY RUN"

# ------------------------------------------------------------------------------
# Payment schedules
# ------------------------------------------------------------------------------

@repair_cli.command("check-schedules")
def check_schedules():
    """List customers whose 20-month schedule is incomplete."""
    customers = PaymentScheduleHelper.find_customers_missing_schedules()
    if not customers:
        click.echo("All customers have a complete payment schedule.")
        return
    click.echo(f"{len(customers)} customer(s) with an incomplete payment schedule:")
    for item in customers:
        click.echo(f"  {item['customer_id'] or item['id']}  {item['name']}  payments={item['payment_count']}")


@repair_cli.command("repair-schedules")
@click.option("--apply", is_flag=True, help="Write changes instead of reporting them.")
def repair_schedules(apply):
    """Create the missing installments for every incomplete schedule."""
    summary = PaymentScheduleHelper.repair_missing_schedules(dry_run=not apply, actor="cli")
    click.echo(f"[{_mode(apply)}] customers found: {summary['customers_found']}")
    if apply:
        click.echo(f"repaired: {summary['repaired']}  rows created: {summary['rows_created']}  "
                   f"failed: {summary['failed']}")
    for error in summary["errors"]:
        click.echo(f"  error {error['customer_id']}: {error['error']}", err=True)
    for item in summary["needs_review"]:
        click.echo(f"  needs review {item['customer_id'] or item['id']}: "
                   f"out of range {item['out_of_range_months']}  duplicates {item['duplicate_months']}")

# ------------------------------------------------------------------------------
# Commissions & wallets
# ------------------------------------------------------------------------------

@repair_cli.command("check-commissions")
def check_commissions():
    """List customers with a parent promoter but no commission rows."""
    _, message = CommissionConfigHelper.validate_configuration()
    click.echo(message)
    customers = CommissionDistributionHelper.find_customers_missing_commissions()
    if not customers:
        click.echo("Every linked customer has commission records.")
        return
    click.echo(f"{len(customers)} customer(s) missing commission:")
    for customer in customers:
        click.echo(f"  {customer.customer_id or customer.id}  {customer.name}  parent={customer.parent_promoter_id}")


@repair_cli.command("repair-commissions")
@click.option("--apply", is_flag=True, help="Write changes instead of reporting them.")
def repair_commissions(apply):
    """Distribute commission for customers that never received it."""
    summary = CommissionDistributionHelper.repair_missing_commissions(dry_run=not apply, actor="cli")
    click.echo(f"[{_mode(apply)}] customers found: {summary['customers_found']}")
    if apply:
        click.echo(f"repaired: {summary['repaired']}  failed: {summary['failed']}  "
                   f"total distributed: {summary['total_distributed']:.2f}")
    for error in summary["errors"]:
        click.echo(f"  error {error['customer_id']}: {error['error']}", err=True)


@repair_cli.command("reconcile-wallets")
@click.option("--apply", is_flag=True, help="Write changes instead of reporting them.")
@click.option("--tolerance", default=None, help="Allowed difference before a wallet counts as drifted.")
def reconcile_wallets(apply, tolerance):
    """Compare cached wallet balances with the credited commission ledger."""
    tolerance = Decimal(tolerance) if tolerance else current_app.config.get("WALLET_DRIFT_TOLERANCE", Decimal("0.01"))
    summary = ReconciliationHelper.repair_wallet_drift(dry_run=not apply, tolerance=tolerance, actor="cli")
    click.echo(f"[{_mode(apply)}] drifted wallets: {summary['profiles_found']}")
    for item in summary["profiles"]:
        click.echo(f"  {item['promoter_id'] or item['id']}  cached={item['cached_balance']:.2f}  "
                   f"expected={item['expected_balance']:.2f}  drift={item['drift']:.2f}")
    if apply:
        click.echo(f"repaired: {summary['repaired']}  failed: {summary['failed']}")

# ------------------------------------------------------------------------------
# Diagnostics
# ------------------------------------------------------------------------------

@repair_cli.command("check-customer")
@click.argument("customer")
def check_customer(customer):
    """Schedule and commission state of one customer (uuid or card number)."""
    try:
        _echo_json(CustomerHelper.customer_report(customer))
    except ServiceError as e:
        raise click.ClickException(e.message)


@repair_cli.command("system-health")
@click.option("--url", default=None, help="Backend base URL, defaults to BACKEND_URL.")
def system_health(url):
    """Check the running backend, the database and the commission configuration."""
    url = url or current_app.config.get("BACKEND_URL")
    healthy = True

    ok, message, _ = check_backend_health(url, timeout=current_app.config.get("REQUEST_TIMEOUT_SECONDS", 30))
    click.echo(f"backend:    {'OK' if ok else 'FAIL'}  {message}")
    healthy = healthy and ok

    try:
        db.session.execute(text("SELECT 1"))
        profiles = Profile.query.count()
        click.echo(f"database:   OK  {profiles} profiles")
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        click.echo(f"database:   FAIL  {e}")
        healthy = False

    ok, message = CommissionConfigHelper.validate_configuration()
    click.echo(f"commission: {'OK' if ok else 'FAIL'}  {message}")
    healthy = healthy and ok

    if not healthy:
        raise click.ClickException("System health check failed")

# ------------------------------------------------------------------------------
# Admin tools
# ------------------------------------------------------------------------------

@repair_cli.command("make-admin")
@click.argument("phone")
@click.option("--name", default="Administrator", help="Name used when the profile has to be created.")
@click.option("--password", default=None, help="Password for a newly created admin.")
def make_admin(phone, name, password):
    """Promote the profile with this phone number to admin, creating it if needed."""
    profile = Profile.query.filter_by(phone=phone).first()
    if profile:
        click.echo(f"Found profile id={profile.id}, phone={profile.phone}. Promoting to admin...")
    else:
        if not password:
            raise click.ClickException("No profile with that phone; pass --password to create one.")
        click.echo(f"No profile with phone {phone} found - creating a new one.")
        profile = Profile(name=name, phone=phone)
        profile.set_password(password)
        db.session.add(profile)

    profile.role = Role.ADMIN.value
    AuditLog.record("make_admin", {"phone": phone}, actor="cli")
    db.session.commit()
    click.echo(f"Profile (id={profile.id}, phone={phone}) is now admin.")


def split_sql_statements(script):
    """Split a SQL script on semicolons outside quotes and $$ bodies."""
    statements = []
    current = []
    in_single = False
    in_dollar = False
    i = 0
    while i < len(script):
        char = script[i]
        if not in_single and script.startswith("$$", i):
            in_dollar = not in_dollar
            current.append("$$")
            i += 2
            continue
        if char == "'" and not in_dollar:
            in_single = not in_single
        if char == ";" and not in_single and not in_dollar:
            statement = "".join(current).strip()
            if statement:
                statements.append(statement)
            current = []
        else:
            current.append(char)
        i += 1

    statement = "".join(current).strip()
    if statement:
        statements.append(statement)
    return statements


@repair_cli.command("run-sql")
@click.argument("sql_file", type=click.File("r", encoding="utf-8"))
def run_sql(sql_file):
    """Execute a SQL script in a single transaction."""
    statements = split_sql_statements(sql_file.read())
    if not statements:
        raise click.ClickException("SQL file contains no statements")

    try:
        # raw driver execution: colons and percent signs in literals are not bind markers
        connection = db.session.connection()
        for statement in statements:
            connection.exec_driver_sql(statement, execution_options={"no_parameters": True})
        AuditLog.record("run_sql", {"file": sql_file.name, "statements": len(statements)}, actor="cli")
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"SQL script {sql_file.name} failed, rolled back: {e}")
        raise click.ClickException(f"SQL script failed and was rolled back: {e}")

    logger.info(f"Executed {len(statements)} statement(s) from {sql_file.name}")
    click.echo(f"Executed {len(statements)} statement(s) from {sql_file.name}")


def init_commands(app):
    app.cli.add_command(repair_cli)
