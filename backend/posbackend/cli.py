# Overview: Flask CLI command groups for bootstrap and stock maintenance.

# backend/posbackend/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to posbackend (PowerShell: $env:FLASK_APP="posbackend").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask products add --sku SKU-1 --name "Widget" --price-cents 1000 --tax-rate-bps 1000 --quantity 5
#   Create a product with its inventory record.
#
# Inventory:
# - python -m flask inventory adjust 1 10 --mode add --reason "Delivery" --actor-id 1
#   Adjust a record's stock and post the cogs ledger entry.

import click
from flask import Flask
from flask.cli import AppGroup

from .extensions import db
from .errors import PosError


system_cli = AppGroup("system", help="Database bootstrap commands.")
products_cli = AppGroup("products", help="Catalog commands.")
inventory_cli = AppGroup("inventory", help="Inventory commands.")


@system_cli.command("init-db")
def init_db_command():
    """Create all tables."""
    from . import models  # noqa: F401
    db.create_all()
    click.echo("Database tables created.")


@system_cli.command("reset-db")
@click.option("--yes", is_flag=True, help="Confirm destructive reset.")
def reset_db_command(yes: bool):
    """Drop and recreate all tables."""
    if not yes:
        raise click.ClickException("Refusing to reset without --yes")
    from . import models  # noqa: F401
    db.drop_all()
    db.create_all()
    click.echo("Database reset.")


@products_cli.command("add")
@click.option("--sku", required=True)
@click.option("--name", required=True)
@click.option("--price-cents", type=int, required=True)
@click.option("--cost-cents", type=int, default=0, show_default=True)
@click.option("--tax-rate-bps", type=int, default=0, show_default=True, help="1000 = 10%")
@click.option("--quantity", type=int, default=0, show_default=True, help="Initial on-hand quantity.")
@click.option("--category", default=None)
def add_product_command(sku, name, price_cents, cost_cents, tax_rate_bps, quantity, category):
    """Create a product and its inventory record."""
    from .services.catalog_service import create_product

    try:
        product = create_product(
            sku=sku,
            name=name,
            price_cents=price_cents,
            cost_cents=cost_cents,
            tax_rate_bps=tax_rate_bps,
            category=category,
            initial_quantity=quantity,
        )
    except PosError as e:
        raise click.ClickException(e.message) from e
    click.echo(
        f"Created product id={product.id} sku={product.sku} "
        f"inventory_record_id={product.inventory.id} quantity={product.inventory.quantity}"
    )


@inventory_cli.command("adjust")
@click.argument("record_id", type=int)
@click.argument("quantity", type=int)
@click.option("--mode", type=click.Choice(["add", "set"]), default="add", show_default=True)
@click.option("--reason", default=None)
@click.option("--actor-id", type=int, required=True)
def adjust_inventory_command(record_id, quantity, mode, reason, actor_id):
    """Adjust stock on an inventory record."""
    from .services.inventory_service import adjust_inventory

    try:
        record = adjust_inventory(
            record_id=record_id,
            quantity=quantity,
            mode=mode,
            reason=reason,
            actor_id=actor_id,
        )
    except PosError as e:
        raise click.ClickException(e.message) from e
    click.echo(f"Inventory record {record.id}: quantity={record.quantity}")


def register_commands(app: Flask) -> None:
    app.cli.add_command(system_cli)
    app.cli.add_command(products_cli)
    app.cli.add_command(inventory_cli)
