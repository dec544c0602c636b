# Overview: Flask CLI command groups for store bootstrap and ledger maintenance.

# backend/paintledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Store bootstrap/repair:
# - python -m flask store init-db
#   Create all tables (idempotent).
# - python -m flask store reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Ledger maintenance:
# - python -m flask ledger rebuild-balances
#   Recompute every customer balance from sales, payments and returns.
# - python -m flask ledger stats
#   Print dashboard totals and the financial overview.
# - python -m flask ledger overdue --days 45
#   List unsettled sales older than N days (defaults to OVERDUE_AFTER_DAYS).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import get_store
from .money_utils import money_str
from .services import balance_service, reporting_service


@click.group('store')
def store_group():
    """Record store bootstrap and repair commands."""


@store_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables. Safe to run repeatedly."""
    store = get_store()
    store.initialize()
    click.echo(f"PASS Record store ready ({store.name}).")


@store_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all records and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all records...")
    get_store().reset()

    click.echo("PASS Record store reset complete.")


@click.group('ledger')
def ledger_group():
    """Customer balance and financial reporting commands."""


@ledger_group.command('rebuild-balances')
@with_appcontext
def rebuild_balances():
    """Recompute every customer balance from scratch."""
    balances = balance_service.rebuild_all_balances(get_store())
    for b in balances:
        click.echo(
            f"  customer {b.customer_id:<6} sales {money_str(b.total_sales):>12} "
            f"payments {money_str(b.total_payments):>12} returns {money_str(b.total_returns):>12} "
            f"balance {money_str(b.balance):>12}"
        )
    click.echo(f"PASS Rebuilt {len(balances)} customer balance(s).")


@ledger_group.command('stats')
@with_appcontext
def stats():
    """Print dashboard totals and the financial overview."""
    store = get_store()
    dashboard = reporting_service.get_dashboard_stats(store)
    overview = reporting_service.get_financial_overview(
        store, days=current_app.config["OVERDUE_AFTER_DAYS"]
    )

    click.echo(f"Total sales:      {money_str(dashboard['total_sales'])}")
    click.echo(f"Customers:        {dashboard['total_customers']}")
    click.echo(f"Products:         {dashboard['total_products']}")
    click.echo(f"Returns:          {dashboard['total_returns']}")
    click.echo(f"Payments:         {money_str(overview['total_payments'])}")
    click.echo(f"Returned amount:  {money_str(overview['total_returns'])}")
    click.echo(f"Outstanding:      {money_str(overview['outstanding'])}")
    click.echo(f"Overdue:          {overview['overdue_count']} sale(s), {money_str(overview['overdue_amount'])}")


@ledger_group.command('overdue')
@click.option('--days', type=int, default=None, help='Age threshold in days (defaults to OVERDUE_AFTER_DAYS)')
@with_appcontext
def overdue(days):
    """List unsettled sales older than the threshold."""
    if days is None:
        days = current_app.config["OVERDUE_AFTER_DAYS"]
    if days < 0:
        raise click.BadParameter("days must be >= 0", param_hint="--days")

    sales = reporting_service.get_overdue_sales(get_store(), days=days)
    if not sales:
        click.echo(f"No sales overdue by more than {days} day(s).")
        return

    for s in sales:
        customer = s.customer.name if s.customer else "(deleted customer)"
        click.echo(
            f"  {s.invoice_number:<16} {s.date:%Y-%m-%d}  {customer:<30} "
            f"{money_str(s.total_amount):>12}  {s.payment_status}"
        )
    click.echo(f"{len(sales)} overdue sale(s).")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(store_group)
    app.cli.add_command(ledger_group)
