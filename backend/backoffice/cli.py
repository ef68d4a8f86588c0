# Overview: Flask CLI command groups for bootstrap, inspection, and stock maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app backoffice <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask --app backoffice system init-db
#   Create any missing tables (idempotent). Use `flask db upgrade` where migrations are managed.
# - python -m flask --app backoffice system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalogue:
# - python -m flask --app backoffice catalog seed-demo
#   Create a demo user, unit, SELLABLE product and 8 % tax (skips what already exists).
#
# Inventory inspection/adjustment:
# - python -m flask --app backoffice inventory summary [--product-id 1]
#   Print non-zero balances per product and unit.
# - python -m flask --app backoffice inventory adjust 1 1 -2 --user-id 1 --remark "broken"
#   Append one manual ledger row (negative quantity removes stock).

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .enums import ProductType
from .errors import LedgerError
from .extensions import db
from .models import Product, Tax, UnitQuantity, User
from .services import inventory_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables are in place.")


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

    click.echo("PASS Database reset complete. Run 'flask catalog seed-demo' for sample data.")


@click.group('catalog')
def catalog_group():
    """Catalogue bootstrap commands."""


@catalog_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create a demo user, unit, product and tax; existing rows are reused."""
    user = db.session.query(User).filter_by(email="admin@backoffice.local").first()
    if not user:
        user = User(name="Admin", email="admin@backoffice.local", role="admin")
        db.session.add(user)
        db.session.flush()
        click.echo(f"CREATE User {user.email} (id={user.id})")

    unit = db.session.query(UnitQuantity).filter_by(name="pcs", deleted_at=None).first()
    if not unit:
        unit = UnitQuantity(name="pcs", created_by=user.id, updated_by=user.id)
        db.session.add(unit)
        db.session.flush()
        click.echo(f"CREATE Unit {unit.name} (id={unit.id})")

    product = db.session.query(Product).filter_by(name="Demo Product", deleted_at=None).first()
    if not product:
        product = Product(
            name="Demo Product",
            type=ProductType.SELLABLE.value,
            created_by=user.id,
            updated_by=user.id,
        )
        db.session.add(product)
        db.session.flush()
        click.echo(f"CREATE Product {product.name} (id={product.id})")

    tax = db.session.query(Tax).filter_by(name="VAT 8%", deleted_at=None).first()
    if not tax:
        tax = Tax(name="VAT 8%", value=Decimal("8"), created_by=user.id, updated_by=user.id)
        db.session.add(tax)
        db.session.flush()
        click.echo(f"CREATE Tax {tax.name} (id={tax.id})")

    db.session.commit()
    click.echo("PASS Demo catalogue ready.")


@click.group('inventory')
def inventory_group():
    """Stock ledger inspection and manual adjustments."""


@inventory_group.command('summary')
@click.option('--product-id', type=int, default=None, help='Only this product')
@with_appcontext
def inventory_summary(product_id):
    """Print non-zero balances grouped by product."""
    try:
        summaries = inventory_service.get_inventory_summary(product_id)
    except LedgerError as e:
        raise click.ClickException(e.message)

    if not summaries:
        click.echo("No stock on hand.")
        return

    for summary in summaries:
        click.echo(f"{summary['product_id']:>5}  {summary['product_name']}")
        for quantity in summary["quantities"]:
            click.echo(f"       {quantity['total_quantity']:>12}  {quantity['unit_quantity_name']}")


@inventory_group.command('adjust', context_settings={"ignore_unknown_options": True})
@click.argument('product_id', type=int)
@click.argument('unit_quantity_id', type=int)
@click.argument('quantity', type=str)
@click.option('--user-id', type=int, required=True, help='Acting user id')
@click.option('--remark', default=None, help='Ledger remark')
@with_appcontext
def inventory_adjust(product_id, unit_quantity_id, quantity, user_id, remark):
    """Append one manual ledger row; QUANTITY may be negative."""
    if db.session.get(User, user_id) is None:
        raise click.ClickException(f"User not found: {user_id}")

    try:
        rows = inventory_service.manipulate_inventory(
            {
                "items": [
                    {
                        "product_id": product_id,
                        "unit_quantity_id": unit_quantity_id,
                        "quantity": quantity,
                    }
                ],
                "remark": remark,
            },
            actor_id=user_id,
        )
    except LedgerError as e:
        raise click.ClickException(e.message)

    for row in rows:
        click.echo(
            f"PASS Ledger row {row['id']}: {row['product_name']} "
            f"{row['quantity']:+} {row['unit_quantity_name']}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(inventory_group)
