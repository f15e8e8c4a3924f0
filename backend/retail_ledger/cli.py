# Overview: Flask CLI command groups for bootstrap, ledger audits and shift inspection.

# backend/retail_ledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for migrated databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system create-business --tenant acme --name "Main Street"
#   Create a business (trading location) inside a tenant.
# - python -m flask system businesses
#   List businesses.
#
# Ledger audits:
# - python -m flask ledger verify [--business-id 1]
#   Compare every product's current_stock with its movement history.
#   Exits non-zero when any product has drifted.
# - python -m flask ledger history --product-id 1 --limit 20
#   Show the newest movements of a product.
#
# Capabilities:
# - python -m flask perms list [--role STAFF] [--category CASH]
#   List capabilities grouped by category, or those a role holds.
# - python -m flask perms check VIEW_ONLY PROCESS_REFUND
#   Show whether a role may perform an action.
#
# Cash shifts:
# - python -m flask shifts list [--business-id 1] [--status OPEN]
#   List recent shifts with their expected cash and variance.
# - python -m flask shifts balance 3
#   Show the cash breakdown and live balance of a shift.

from itertools import islice

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import Business
from .permissions import (
    CapabilityCategory,
    ROLES,
    get_all_capability_codes,
    get_capabilities_by_category,
    get_capability_definition,
    get_role_capabilities,
    is_allowed,
)
from .services import cash_shift_service, inventory_service, ledger_service, reporting_service


def _fail(message: str) -> None:
    click.echo(f"FAIL {message}")
    raise SystemExit(1)


def _money(cents) -> str:
    if cents is None:
        return "-"
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Schema ready.")


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

    click.echo("PASS Database reset complete.")


@system_group.command('create-business')
@click.option('--tenant', 'tenant_id', required=True, help='Tenant identifier')
@click.option('--name', required=True, help='Business name')
@click.option('--location', default=None, help='Address or description')
@with_appcontext
def create_business_cli(tenant_id, name, location):
    """Create a business inside a tenant."""
    try:
        business = inventory_service.create_business(tenant_id, name, location)
    except LedgerError as e:
        _fail(e.message)
    click.echo(f"PASS Created business: {business.name} (ID: {business.id}, Tenant: {business.tenant_id})")


@system_group.command('businesses')
@with_appcontext
def list_businesses():
    """List all businesses."""
    businesses = db.session.query(Business).order_by(Business.id).all()

    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Tenant':<20} {'Name':<30} {'Location'}")
    click.echo("="*80)
    for b in businesses:
        click.echo(f"{b.id:<5} {b.tenant_id:<20} {b.name:<30} {b.location or '-'}")
    click.echo("="*80 + "\n")


@click.group('ledger')
def ledger_group():
    """Stock ledger audits."""


@ledger_group.command('verify')
@click.option('--business-id', type=int, default=None, help='Only check one business')
@with_appcontext
def verify_ledger(business_id):
    """Check current_stock == opening_stock + SUM(movements) for every product."""
    drifted = ledger_service.verify_stock(business_id)
    if not drifted:
        click.echo("PASS All product stock matches the movement ledger.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Product':<9} {'Business':<10} {'SKU':<20} {'Current':>10} {'Ledger':>10} {'Drift':>8}")
    click.echo("="*80)
    for row in drifted:
        click.echo(
            f"{row['product_id']:<9} {row['business_id']:<10} {row['sku']:<20} "
            f"{row['current_stock']:>10} {row['ledger_stock']:>10} {row['drift']:>8}"
        )
    click.echo("="*80 + "\n")
    _fail(f"{len(drifted)} product(s) drifted from the ledger")


@ledger_group.command('history')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--kind', default=None, help='Only one movement kind')
@click.option('--limit', type=int, default=20, show_default=True, help='Maximum rows to show')
@with_appcontext
def ledger_history(product_id, kind, limit):
    """Show a product's newest movements."""
    try:
        movements = list(islice(ledger_service.history(product_id, kind=kind), limit))
    except LedgerError as e:
        _fail(e.message)

    if not movements:
        click.echo("No movements found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<7} {'Kind':<11} {'Delta':>7} {'After':>7}  {'When':<21} {'Reason'}")
    click.echo("="*80)
    for m in movements:
        when = m.created_at.strftime("%Y-%m-%d %H:%M:%S") if m.created_at else "-"
        click.echo(f"{m.id:<7} {m.kind:<11} {m.quantity_delta:>7} {m.stock_after:>7}  {when:<21} {m.reason or ''}")
    click.echo("="*80 + "\n")


@click.group('shifts')
def shifts_group():
    """Cash shift inspection."""


@shifts_group.command('list')
@click.option('--business-id', type=int, default=None, help='Filter by business')
@click.option('--status', type=click.Choice(['OPEN', 'CLOSED'], case_sensitive=False), default=None)
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_shifts(business_id, status, limit):
    """List recent shifts."""
    shifts = reporting_service.list_shifts(business_id=business_id, status=status, limit=limit)

    if not shifts:
        click.echo("No shifts found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Business':<9} {'Status':<7} {'Opened':<17} {'Float':>10} {'Expected':>10} {'Variance':>10}")
    click.echo("="*80)
    for s in shifts:
        opened = s.opened_at.strftime("%Y-%m-%d %H:%M") if s.opened_at else "-"
        click.echo(
            f"{s.id:<5} {s.business_id:<9} {s.status:<7} {opened:<17} "
            f"{_money(s.opening_float_cents):>10} {_money(s.expected_cash_cents):>10} {_money(s.variance_cents):>10}"
        )
    click.echo("="*80 + "\n")


@shifts_group.command('balance')
@click.argument('shift_id', type=int)
@with_appcontext
def shift_balance(shift_id):
    """Show a shift's cash breakdown and live balance."""
    try:
        summary = cash_shift_service.shift_summary(shift_id)
    except LedgerError as e:
        _fail(e.message)

    shift = summary["shift"]
    click.echo(f"Shift {shift['id']} ({shift['status']}) business {shift['business_id']}")
    click.echo(f"  Opening float:  {_money(summary['opening_float_cents'])}")
    click.echo(f"  Cash sales:     {_money(summary['cash_sales_cents'])}")
    click.echo(f"  Cash refunds:   {_money(summary['cash_refunds_cents'])}")
    click.echo(f"  Float added:    {_money(summary['float_add_cents'])}")
    click.echo(f"  Drops:          {_money(summary['drop_cents'])}")
    click.echo(f"  Payouts:        {_money(summary['payout_cents'])}")
    click.echo(f"  Live balance:   {_money(summary['live_balance_cents'])}")
    if summary["is_closed"]:
        click.echo(f"  Expected cash:  {_money(summary['expected_cash_cents'])}")
        click.echo(f"  Variance:       {_money(summary['variance_cents'])}")


@click.group('perms')
def perms_group():
    """Capability inspection commands."""


@perms_group.command('list')
@click.option('--role', default=None, help='Only capabilities this role holds')
@click.option('--category', default=None, help='Only one category')
def list_capabilities_cli(role, category):
    """List capabilities grouped by category."""
    if category is not None:
        category = category.strip().upper()
        if category not in CapabilityCategory.ALL:
            _fail(f"Unknown category '{category}' (choose from {', '.join(CapabilityCategory.ALL)})")
    if role is not None:
        role = role.strip().upper()
        if role not in ROLES:
            _fail(f"Unknown role '{role}' (choose from {', '.join(ROLES)})")
        held = set(get_role_capabilities(role))
        title = f"Capabilities for role: {role}"
    else:
        held = set(get_all_capability_codes())
        title = "All capabilities"

    click.echo(f"\n{'='*80}")
    click.echo(title)
    click.echo(f"{'='*80}")

    total = 0
    for cat in CapabilityCategory.ALL:
        if category and cat != category:
            continue
        caps = [cap for cap in get_capabilities_by_category(cat) if cap[0] in held]
        if not caps:
            continue
        click.echo(f"\nCATEGORY {cat}")
        click.echo("-"*80)
        for code, name, _description, _category in caps:
            click.echo(f"  {code:<28} {name}")
        total += len(caps)

    click.echo(f"\n Total: {total} capabilities\n")


@perms_group.command('check')
@click.argument('role')
@click.argument('capability')
def check_capability_cli(role, capability):
    """Show whether a role may perform an action. Exits non-zero when denied."""
    definition = get_capability_definition(capability.strip().upper())
    if definition is None:
        _fail(f"Unknown capability '{capability}'")

    role = role.strip().upper()
    if is_allowed(role, definition["code"]):
        click.echo(f"PASS Role '{role}' HAS '{definition['code']}' ({definition['name']})")
        return
    _fail(f"Role '{role}' DOES NOT HAVE '{definition['code']}' ({definition['name']})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(shifts_group)
    app.cli.add_command(perms_group)
