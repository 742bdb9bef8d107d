# Overview: Flask CLI command groups for tenant bootstrap, stock inspection, and maintenance.

# backend/barpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management:
# - python -m flask tenants list
#   List all tenants.
# - python -m flask tenants create --name "Bar Central" --slug "bar-central"
#   Create a new tenant.
#
# Tables:
# - python -m flask tables list --tenant-id 1 [--all]
#   List tables (active only unless --all).
# - python -m flask tables create --tenant-id 1 --number 4 --label "Terrace 4"
#   Create a table that can receive QR orders.
#
# Stock inspection:
# - python -m flask stock low --tenant-id 1
#   List products at or below their low-stock threshold.
# - python -m flask stock verify --tenant-id 1 [--product-id 7]
#   Replay stock movements and report products whose ledger disagrees with stock.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import BarposError
from .models import Tenant, Table, Product
from .services.stock_service import StockManager
from .services import tenant_service


@click.group('system')
def system_group():
    """System maintenance commands."""


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

    click.echo("PASS Database reset complete")


@click.group('tenants')
def tenants_group():
    """Tenant (venue) management."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants with table and product counts."""
    tenants = Tenant.query.order_by(Tenant.id).all()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Slug':<20} {'Active':<8} {'Tables':<8} {'Products'}")
    click.echo("="*80)

    for tenant in tenants:
        table_count = Table.query.filter_by(tenant_id=tenant.id).count()
        product_count = Product.query.filter_by(tenant_id=tenant.id).count()
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.slug:<20} {active_str:<8} {table_count:<8} {product_count}")

    click.echo("="*80 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--slug', required=True, help='Short unique slug')
@with_appcontext
def create_tenant_cli(name, slug):
    """Create a new tenant."""
    try:
        tenant = tenant_service.create_tenant(name=name, slug=slug)
    except BarposError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Slug: {tenant.slug})")


@click.group('tables')
def tables_group():
    """Table management."""


@tables_group.command('create')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--number', type=int, required=True, help='Table number (unique within tenant)')
@click.option('--label', help='Display label')
@with_appcontext
def create_table_cli(tenant_id, number, label):
    """
    Create a table.

    Example:
        flask tables create --tenant-id 1 --number 4 --label "Terrace 4"
    """
    try:
        table = tenant_service.create_table(tenant_id=tenant_id, number=number, label=label)
    except BarposError as e:
        click.echo(f"FAIL Error: {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created table {table.number} (ID: {table.id})")
    click.echo(f"   Tenant ID: {table.tenant_id}")
    click.echo(f"   Label: {table.label or 'Not specified'}")


@tables_group.command('list')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive tables')
@with_appcontext
def list_tables_cli(tenant_id, include_inactive):
    """List tables of a tenant (active only unless --all)."""
    tables = tenant_service.list_tables(
        tenant_id=tenant_id,
        is_active=None if include_inactive else True,
    )

    if not tables:
        click.echo("No tables found.")
        return

    click.echo(f"\n{'ID':<6} {'Number':<8} {'Label':<30} {'Active'}")
    click.echo("-"*60)
    for t in tables:
        click.echo(f"{t.id:<6} {t.number:<8} {t.label or '-':<30} {'Yes' if t.is_active else 'No'}")
    click.echo("")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('low')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@with_appcontext
def low_stock_cli(tenant_id):
    """List products at or below their low-stock threshold."""
    products = StockManager().get_low_stock_products(tenant_id=tenant_id)

    if not products:
        click.echo("No low-stock products.")
        return

    click.echo(f"\n{'ID':<6} {'Name':<30} {'Stock':<8} {'Threshold'}")
    click.echo("-"*60)
    for p in products:
        click.echo(f"{p.id:<6} {p.name:<30} {p.stock_quantity:<8} {p.low_stock_threshold}")
    click.echo("")


@stock_group.command('verify')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--product-id', type=int, help='Only verify this product')
@with_appcontext
def verify_stock_cli(tenant_id, product_id):
    """
    Replay stock movements and compare with current stock.

    Exits with status 1 if any product is inconsistent.
    """
    manager = StockManager()

    if product_id is not None:
        product_ids = [product_id]
    else:
        product_ids = [
            row.id for row in
            db.session.query(Product.id).filter_by(tenant_id=tenant_id).order_by(Product.id).all()
        ]

    failures = 0
    for pid in product_ids:
        try:
            report = manager.verify_ledger(tenant_id=tenant_id, product_id=pid)
        except BarposError as e:
            click.echo(f"FAIL product {pid}: {e.message}")
            failures += 1
            continue

        if report["consistent"]:
            click.echo(f"PASS product {pid}: {report['movement_count']} movements, stock {report['stock_quantity']}")
        else:
            failures += 1
            click.echo(
                f"FAIL product {pid}: replayed {report['replayed_stock']}, "
                f"stock {report['stock_quantity']}, broken movements {len(report['broken_movements'])}"
            )

    if failures:
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(tables_group)
    app.cli.add_command(stock_group)
