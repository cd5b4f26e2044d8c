# Overview: Flask CLI command groups for bootstrap and maintenance.

# backend/bakerypos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-username admin]
#   Idempotent bootstrap: creates tables and the default admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock:
# - python -m flask stock clear-day [--date 2024-10-19]
#   Zero every remaining balance for a day (unsold perishables).
# - python -m flask stock low [--threshold 10]
#   List stock items at or below the low-stock threshold.
#
# Suppliers:
# - python -m flask suppliers outstanding
#   List suppliers with purchases, payments and outstanding balance.

import click
from flask.cli import with_appcontext

from .errors import BakeryError
from .extensions import db
from .models import User
from .money import cents_to_str
from .services import company_service, inventory_service, supplier_service
from .time_utils import business_today, parse_iso_date


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Username of the default admin')
@with_appcontext
def init_system(admin_username):
    """
    Initialize the bakery POS database.

    Creates:
    - All tables (if missing)
    - Default admin user (if no user with that username exists)
    - Default shop profile (if none exists)
    """
    click.echo("START Initializing bakery POS...")

    db.create_all()
    click.echo("PASS Tables ready")

    user = db.session.query(User).filter_by(username=admin_username).first()
    if user is None:
        user = User(username=admin_username, first_name="Admin", role="admin", status="active")
        db.session.add(user)
        db.session.commit()
        click.echo(f"PASS Created admin user: {user.username} (ID: {user.id})")
    else:
        click.echo(f"PASS Using existing admin user: {user.username} (ID: {user.id})")

    company = company_service.get_settings()
    click.echo(f"PASS Shop profile: {company.name}")

    click.echo("DONE Send X-User-Id with the admin's ID to use the API.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('stock')
def stock_group():
    """Daily stock maintenance."""


@stock_group.command('clear-day')
@click.option('--date', 'day', default=None, help='Business date (YYYY-MM-DD), defaults to today')
@with_appcontext
def clear_day(day):
    """Zero all remaining balances for a business date."""
    try:
        stock_date = parse_iso_date(day) or business_today()
    except ValueError:
        raise click.BadParameter("date must be YYYY-MM-DD", param_hint="--date")

    try:
        cleared = inventory_service.clear_day(stock_date)
    except BakeryError as exc:
        raise click.ClickException(exc.message)
    click.echo(f"PASS Cleared {cleared} stock row(s) for {stock_date.isoformat()}")


@stock_group.command('low')
@click.option('--threshold', type=int, default=None, help='Quantity at or below which an item is listed')
@with_appcontext
def low_stock(threshold):
    """List stock items running low."""
    items = inventory_service.low_stock_items(threshold)
    if not items:
        click.echo("No low stock items")
        return
    for item in items:
        click.echo(f"{item.id:>4}  {item.name:<30} {item.quantity} {item.unit}")


@click.group('suppliers')
def suppliers_group():
    """Supplier ledger inspection."""


@suppliers_group.command('outstanding')
@click.option('--all', 'show_all', is_flag=True, help='Include suppliers with nothing outstanding')
@with_appcontext
def outstanding(show_all):
    """List what is owed to each supplier."""
    rows = supplier_service.list_suppliers_with_balances()
    shown = 0
    for row in rows:
        if not show_all and row["outstanding_cents"] == 0:
            continue
        shown += 1
        click.echo(
            f"{row['id']:>4}  {row['name']:<30} "
            f"purchases={cents_to_str(row['total_purchases_cents'])} "
            f"paid={cents_to_str(row['total_paid_cents'])} "
            f"outstanding={cents_to_str(row['outstanding_cents'])}"
        )
    if not shown:
        click.echo("No outstanding supplier balances")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(suppliers_group)
