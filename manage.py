#!/usr/bin/env python3
"""
Management script for the trade ledger (direct database access).

Usage:
    python manage.py db init
    python manage.py db status
    python manage.py db clear
    python manage.py account create alice [--cash 10000]
    python manage.py account delete alice
    python manage.py trade alice BUY AAPL 10 100
    python manage.py analyze alice [--output json|yaml]
    python manage.py reconcile alice
"""

import asyncio
import json
from dataclasses import asdict, replace
from decimal import Decimal

import click
import yaml
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from tradeledger.config import get_settings
from tradeledger.database import AsyncSessionLocal, Base, engine, init_db
from tradeledger.errors import LedgerError
from tradeledger.models import Account, Holding, LedgerEntry
from tradeledger.services import accounts, execution, replay
from tradeledger.services.valuation import get_price_source


# ============================================================================
# Direct database operations (internal)
# ============================================================================


async def _clear_db():
    """Drop and recreate all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def _count_records():
    """Count records in each table."""
    async with AsyncSessionLocal() as session:
        counts = {}
        for model, name in [
            (Account, "accounts"),
            (Holding, "holdings"),
            (LedgerEntry, "ledger_entries"),
        ]:
            result = await session.execute(select(func.count()).select_from(model))
            counts[name] = result.scalar_one()
        return counts


def _run(coro):
    """Run a coroutine after making sure the tables exist."""

    async def run():
        await init_db()
        try:
            return await coro
        finally:
            await engine.dispose()

    return asyncio.run(run())


def _dump(data, fmt: str) -> str:
    if fmt == "yaml":
        return yaml.dump(data, default_flow_style=False, allow_unicode=True)
    return json.dumps(data, indent=2, default=str)


# ============================================================================
# CLI: Main group
# ============================================================================


@click.group()
def cli():
    """Trade ledger management commands."""
    pass


# ============================================================================
# CLI: db
# ============================================================================


@cli.group()
def db():
    """Database management."""
    pass


@db.command("init")
def db_init():
    """Create tables if they don't exist."""
    asyncio.run(init_db())
    click.echo("Database initialized.")


@db.command("clear")
@click.confirmation_option(prompt="Are you sure you want to clear all data?")
def db_clear():
    """Clear all data from the database (destructive!)."""
    click.echo("Clearing database...")
    asyncio.run(_clear_db())
    click.echo("Database cleared and tables recreated.")


@db.command("status")
def db_status():
    """Show database status and record counts."""
    counts = _run(_count_records())

    click.echo("\nDatabase Status:")
    click.echo("-" * 30)
    for table, count in counts.items():
        click.echo(f"  {table:<15} {count:>10,}")
    click.echo("-" * 30)
    click.echo(f"  {'Total':<15} {sum(counts.values()):>10,}")


# ============================================================================
# CLI: account
# ============================================================================


@cli.group()
def account():
    """Manage accounts."""
    pass


@account.command("create")
@click.argument("account_id")
@click.option("--cash", type=str, default=None, help="Initial cash (default from settings)")
def account_create(account_id, cash):
    """Provision an account and print its API key."""

    async def run():
        async with AsyncSessionLocal() as session:
            return await accounts.create_account(
                session, account_id, Decimal(cash) if cash is not None else None
            )

    try:
        created, api_key = _run(run())
    except IntegrityError:
        raise click.ClickException(f"Account '{account_id}' already exists")

    click.echo(f"Created account {created.id} with balance {created.cash_balance}")
    click.echo(f"API key (store it now, it cannot be retrieved later): {api_key}")


@account.command("delete")
@click.argument("account_id")
@click.confirmation_option(prompt="Delete the account with its holdings and ledger?")
def account_delete(account_id):
    """Delete an account together with its holdings and ledger entries."""

    async def run():
        async with AsyncSessionLocal() as session:
            await accounts.delete_account(session, account_id)

    try:
        _run(run())
    except LedgerError as e:
        raise click.ClickException(str(e))

    click.echo(f"Deleted account {account_id}.")


# ============================================================================
# CLI: trading and analysis
# ============================================================================


@cli.command("trade")
@click.argument("account_id")
@click.argument("side", type=click.Choice(["BUY", "SELL"], case_sensitive=False))
@click.argument("symbol")
@click.argument("quantity")
@click.argument("price")
def trade(account_id, side, symbol, quantity, price):
    """Execute a trade directly against the ledger."""

    async def run():
        async with AsyncSessionLocal() as session:
            return await execution.execute(session, account_id, symbol, quantity, price, side)

    try:
        result = _run(run())
    except LedgerError as e:
        raise click.ClickException(str(e))

    click.echo(result.description)
    click.echo(f"  Amount:      {result.amount}")
    click.echo(f"  New balance: {result.new_balance}")
    if result.new_holding:
        click.echo(
            f"  Position:    {result.new_holding.quantity} @ {result.new_holding.avg_cost}"
        )
    else:
        click.echo("  Position:    closed")


@cli.command("analyze")
@click.argument("account_id")
@click.option(
    "--output", "-o",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="Output format",
)
def analyze(account_id, output):
    """Print the analysis report for an account."""

    async def run():
        async with AsyncSessionLocal() as session:
            return await replay.analyze(session, account_id, get_price_source())

    try:
        report = _run(run())
    except LedgerError as e:
        raise click.ClickException(str(e))

    data = asdict(replace(report, integrity_warnings=[]))
    data["total_realized_gain_loss"] = report.total_realized_gain_loss
    data["integrity_warnings"] = [
        {"symbol": w.symbol, "detail": w.detail} for w in report.integrity_warnings
    ]
    # Round-trip through JSON so Decimal and datetime become plain values
    click.echo(_dump(json.loads(json.dumps(data, default=str)), output))


@cli.command("reconcile")
@click.argument("account_id")
def reconcile(account_id):
    """Replay an account's ledger and compare it with stored holdings.

    Exits with status 1 when drift is found.
    """

    async def run():
        async with AsyncSessionLocal() as session:
            holdings, entries = await replay.load_snapshot(session, account_id)
        _, positions, warnings = replay.replay_realized_gains(entries)
        warnings.extend(
            replay.reconcile_holdings(
                account_id, positions, holdings, get_settings().reconcile_tolerance
            )
        )
        return len(entries), warnings

    try:
        entry_count, warnings = _run(run())
    except LedgerError as e:
        raise click.ClickException(str(e))

    click.echo(f"Replayed {entry_count} ledger entries for {account_id}")
    if not warnings:
        click.echo("Holdings match the ledger.")
        return

    for warning in warnings:
        click.echo(f"  {warning.symbol:<8} {warning.detail}", err=True)
    raise SystemExit(1)


if __name__ == "__main__":
    cli()
