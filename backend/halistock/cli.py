# Overview: Flask CLI command groups for bootstrap, demo data, and rental calendar maintenance.

# backend/halistock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Add a few demo products and customers (skipped when products exist).
#
# Rentals:
# - python -m flask rentals rebuild-calendar [--rental-id 12]
#   Rebuild rental_calendar from rental rows (after a calendar write failure).
# - python -m flask rentals list [--status active|returned|cancelled|overdue]
#   List rentals with their effective status.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product
from .services import rental_service
from .services.customer_service import upsert_customer
from .validation import NotFoundError, ValidationError


DEMO_PRODUCTS = [
    {
        "name": "Robe de soirée bleue",
        "category": "robes",
        "size": "M",
        "color": "bleu",
        "barcode": "HS-0001",
        "purchase_price_cents": 800000,
        "sale_price_cents": 1500000,
        "rental_price_per_day_cents": 100000,
        "stock": 3,
        "is_available_for_rental": True,
    },
    {
        "name": "Costume homme noir",
        "category": "costumes",
        "size": "L",
        "color": "noir",
        "barcode": "HS-0002",
        "purchase_price_cents": 1200000,
        "sale_price_cents": 2200000,
        "rental_price_per_day_cents": 150000,
        "stock": 2,
        "is_available_for_rental": True,
    },
    {
        "name": "Foulard en soie",
        "category": "accessoires",
        "color": "rouge",
        "barcode": "HS-0003",
        "purchase_price_cents": 50000,
        "sale_price_cents": 120000,
        "rental_price_per_day_cents": 0,
        "stock": 10,
        "is_available_for_rental": False,
    },
]

DEMO_CUSTOMERS = [
    {"name": "Amina B.", "phone": "0550000001", "email": "amina@example.com"},
    {"name": "Karim D.", "phone": "0550000002"},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables that do not exist yet."""
    click.echo("START Initializing HaliStock database...")
    db.create_all()
    click.echo("PASS Tables ready.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Insert demo products and customers into an empty catalog."""
    if db.session.query(Product).first() is not None:
        click.echo("SKIP Products already exist; demo data not added.")
        return

    for fields in DEMO_PRODUCTS:
        db.session.add(Product(**fields))
    for fields in DEMO_CUSTOMERS:
        upsert_customer(commit=False, **fields)
    db.session.commit()

    click.echo(f"PASS Added {len(DEMO_PRODUCTS)} products and {len(DEMO_CUSTOMERS)} customers.")


@click.group('rentals')
def rentals_group():
    """Rental inspection and calendar maintenance."""


@rentals_group.command('rebuild-calendar')
@click.option('--rental-id', type=int, default=None, help='Rebuild a single rental')
@with_appcontext
def rebuild_calendar(rental_id):
    """Reconcile rental_calendar with the rental rows."""
    try:
        report = rental_service.rebuild_calendar(rental_id)
    except NotFoundError as e:
        raise click.ClickException(str(e))

    click.echo(
        f"PASS Checked {report['rentals_checked']} rental(s): "
        f"{report['created']} day(s) reserved, {report['released']} day(s) released."
    )
    for conflict in report["conflicts"]:
        days = ", ".join(d["date"] for d in conflict["days"])
        click.echo(f"WARN Rental {conflict['rental_id']} could not reserve: {days}")


@rentals_group.command('list')
@click.option('--status', default=None, help='active, returned, cancelled or overdue')
@with_appcontext
def list_rentals(status):
    """List rentals, newest first."""
    try:
        rentals = rental_service.list_rentals(status=status)
    except ValidationError as e:
        raise click.ClickException(str(e))

    if not rentals:
        click.echo("No rentals found.")
        return

    for rental in rentals:
        data = rental_service.rental_to_dict(rental)
        click.echo(
            f"#{data['id']:<5} {data['effective_status']:<10} "
            f"{data['rental_start_date']}..{data['rental_end_date']}  "
            f"{data['product_name'] or data['product_id']}  "
            f"{data['customer_name']} ({data['customer_phone']})  "
            f"due {data['remaining_amount_cents']}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(rentals_group)
