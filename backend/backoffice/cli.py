# Overview: Flask CLI command groups for bootstrap and catalog/stock setup.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to backoffice (PowerShell: $env:FLASK_APP="backoffice").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for managed schemas).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog / stock setup:
# - python -m flask catalog add-product --name "Oversized Tee" --price-cents 250000 [--cost-cents 120000] [--sku TEE-01]
# - python -m flask catalog add-variant --product-id 1 --size M --color Black --qty 12 [--price-cents 260000]
# - python -m flask catalog list-variants [--product-id 1]

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import OrderError
from .models import Product, Variant
from .services.concurrency import run_atomic
from .services.stock_service import receive_stock


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date")


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
    click.echo("START Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('catalog')
def catalog_group():
    """Product and variant setup."""


@catalog_group.command('add-product')
@click.option('--name', required=True, help='Product name')
@click.option('--price-cents', type=int, required=True, help='Default selling price in cents')
@click.option('--cost-cents', type=int, default=None, help='Default cost price in cents')
@click.option('--sku', default=None, help='Optional unique SKU')
@with_appcontext
def add_product(name, price_cents, cost_cents, sku):
    """Create a product."""
    if price_cents < 0 or (cost_cents is not None and cost_cents < 0):
        raise click.BadParameter("prices must be >= 0")

    product = Product(name=name, price_cents=price_cents, cost_price_cents=cost_cents, sku=sku)
    db.session.add(product)
    db.session.commit()
    click.echo(f"PASS Created product {product.name} (ID: {product.id})")


@catalog_group.command('add-variant')
@click.option('--product-id', type=int, required=True)
@click.option('--size', default=None)
@click.option('--color', default=None)
@click.option('--qty', type=int, default=0, help='Opening quantity on hand')
@click.option('--price-cents', type=int, default=None, help='Overrides the product price')
@click.option('--cost-cents', type=int, default=None, help='Overrides the product cost')
@with_appcontext
def add_variant(product_id, size, color, qty, price_cents, cost_cents):
    """Create a size/color variant and book its opening stock through the ledger."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise click.ClickException(f"Product {product_id} not found")
    if qty < 0:
        raise click.BadParameter("qty must be >= 0")

    def _op():
        variant = Variant(
            product_id=product.id,
            size=size,
            color=color,
            quantity_on_hand=0,
            selling_price_cents=price_cents,
            cost_price_cents=cost_cents,
        )
        db.session.add(variant)
        db.session.flush()
        receive_stock(variant.id, qty)
        return variant

    try:
        variant = run_atomic(_op)
    except OrderError as e:
        raise click.ClickException(f"{e} {e.details}")

    click.echo(f"PASS Created variant {variant.id} for {product.name} ({size or '-'} / {color or '-'}), qty {qty}")


@catalog_group.command('list-variants')
@click.option('--product-id', type=int, default=None)
@with_appcontext
def list_variants(product_id):
    """List variants with stock and effective prices."""
    q = db.session.query(Variant)
    if product_id is not None:
        q = q.filter_by(product_id=product_id)
    variants = q.order_by(Variant.product_id, Variant.id).all()

    if not variants:
        click.echo("No variants found")
        return

    for v in variants:
        click.echo(
            f"{v.id:>5}  {v.product.name:<30} {v.size or '-':<6} {v.color or '-':<12} "
            f"qty={v.quantity_on_hand:<5} price={v.effective_price_cents} cost={v.effective_cost_cents}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
