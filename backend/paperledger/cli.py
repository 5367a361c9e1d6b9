# Overview: Flask CLI command group for ledger bootstrap and inspection.

# backend/paperledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app paperledger <group> <command> [options]
#
# Bootstrap:
# - python -m flask --app paperledger ledger init-db
#   Create the stored_collections table (idempotent).
# - python -m flask --app paperledger ledger reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all ledger data).
# - python -m flask --app paperledger ledger seed-banks
#   Seed the default bank accounts if none are stored yet.
#
# Inspection:
# - python -m flask --app paperledger ledger summary
#   Print the financial summary (payables, receivables, bank balances).
# - python -m flask --app paperledger ledger receipt COL-123456-ABC
#   Show one receipt by number.
# - python -m flask --app paperledger ledger low-stock
#   List items at or below their minimum stock level.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services.registry import get_ledgers


@click.group('ledger')
def ledger_group():
    """Ledger bootstrap and inspection commands."""


@ledger_group.command('init-db')
@with_appcontext
def init_db():
    """Create database tables for SQL-backed ledger storage."""
    db.create_all()
    click.echo("PASS Database tables created")


@ledger_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("ABORT Pass --yes to drop all ledger data")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@ledger_group.command('seed-banks')
@with_appcontext
def seed_banks():
    """Seed the default bank accounts (no-op if banks already exist)."""
    banks = get_ledgers().cashflow.list_banks()
    click.echo(f"PASS {len(banks)} bank accounts available")
    for bank in banks:
        click.echo(f"  [{bank.id}] {bank.name}: {bank.balance}")


@ledger_group.command('summary')
@with_appcontext
def summary():
    """Print the current financial summary."""
    result = get_ledgers().cashflow.compute_financial_summary()
    click.echo(f"Total payable:            {result.total_payable}")
    click.echo(f"Total receivable:         {result.total_receivable}")
    click.echo(f"Total bank balance:       {result.total_bank_balance}")
    click.echo(f"Cash balance:             {result.cash_balance}")
    click.echo(f"Cash + receivable - due:  {result.cash_receivable_balance}")
    click.echo(f"Difference:               {result.difference}")


@ledger_group.command('receipt')
@click.argument('receipt_number')
@with_appcontext
def show_receipt(receipt_number):
    """Show a receipt by its number."""
    receipt = get_ledgers().inventory.find_receipt(receipt_number.strip().upper())
    if receipt is None:
        raise click.ClickException(f"Receipt {receipt_number} not found")

    click.echo(f"{receipt.receipt_number} ({receipt.type}) {receipt.date}")
    if receipt.counterpart:
        click.echo(f"  {'Supplier' if receipt.type == 'collection' else 'Customer'}: {receipt.counterpart}")
    for line in receipt.items:
        click.echo(f"  {line.name}: {line.quantity} x {line.unit_price} = {line.total_amount}")
    click.echo(f"  Total: {receipt.total_amount}")


@ledger_group.command('low-stock')
@with_appcontext
def low_stock():
    """List items at or below their minimum stock level."""
    items = get_ledgers().inventory.low_stock_items()
    if not items:
        click.echo("PASS No items below minimum stock")
        return
    for item in items:
        click.echo(f"LOW {item.name}: {item.current_stock} (min {item.min_stock_level})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(ledger_group)
