# finance_ledger/cli.py
from datetime import date

import click
import yaml
from dotenv import load_dotenv

from finance_ledger.aggregation import category_breakdown, daily_breakdown, sorted_breakdown, totals
from finance_ledger.ai import generate_advice
from finance_ledger.config import (
    configure_logging,
    ensure_config_file,
    load_config,
    store_from_config,
)
from finance_ledger.core.errors import StorageError, ValidationError
from finance_ledger.core.models import EXPENSE, TRANSACTION_TYPES
from finance_ledger.manual import import_transactions, load_manual_transactions
from finance_ledger.outputs import get_output


def _format_row(tx):
    desc = f"  {tx.description}" if tx.description else ""
    return f"{tx.id:>5}  {tx.date}  {tx.type:<7}  {tx.category}  {tx.amount:.2f}{desc}"


def _store(ctx):
    return store_from_config(ctx.obj['config'], ctx.obj['db_path'])


def _fail(exc):
    if isinstance(exc, ValidationError):
        raise click.UsageError(str(exc))
    raise click.ClickException(str(exc))


@click.group()
@click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to ledgerly.yaml (defaults to $LEDGERLY_CONFIG or ./ledgerly.yaml)'
)
@click.option(
    '--db', 'db_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='SQLite database file (overrides config)'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file containing API tokens for AI providers'
)
@click.pass_context
def main(ctx, config_path, db_path, env_file):
    """
    Record income and expenses in a local ledger and summarize them:
    totals, balance, per-category and per-day breakdowns.
    """
    if env_file:
        load_dotenv(env_file)
    cfg = load_config(config_path)
    configure_logging(cfg)
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg
    ctx.obj['db_path'] = db_path


@main.command()
@click.argument('amount')
@click.argument('category')
@click.option('--type', 'tx_type', default=EXPENSE, type=click.Choice(TRANSACTION_TYPES))
@click.option('--description', default='', help='Free-form note')
@click.option('--date', 'tx_date', default=None, help='Event date YYYY-MM-DD (default: today)')
@click.pass_context
def add(ctx, amount, category, tx_type, description, tx_date):
    """Record a transaction and print its id."""
    try:
        new_id = _store(ctx).append(
            amount, tx_type, category, description, tx_date or date.today().isoformat()
        )
    except (ValidationError, StorageError) as exc:
        _fail(exc)
    click.echo(f"Added transaction {new_id}.")


@main.command(name='list')
@click.option('--limit', default=None, type=click.IntRange(min=0), help='Show at most N records')
@click.pass_context
def list_cmd(ctx, limit):
    """List transactions, newest first."""
    try:
        txs = _store(ctx).list()
    except StorageError as exc:
        _fail(exc)
    if limit is not None:
        txs = txs[:limit]
    if not txs:
        click.echo("No transactions recorded.")
        return
    for tx in txs:
        click.echo(_format_row(tx))


@main.command()
@click.argument('transaction_id', type=int)
@click.pass_context
def delete(ctx, transaction_id):
    """Delete a transaction by id. Deleting an unknown id is not an error."""
    try:
        removed = _store(ctx).delete(transaction_id)
    except StorageError as exc:
        _fail(exc)
    if removed:
        click.echo(f"Deleted transaction {transaction_id}.")
    else:
        click.echo(f"No transaction {transaction_id}; nothing removed.")


@main.command()
@click.pass_context
def stats(ctx):
    """Show total income, total expense and balance."""
    try:
        summary = totals(_store(ctx))
    except StorageError as exc:
        _fail(exc)
    click.echo(f"Income:  {summary.total_income:.2f}")
    click.echo(f"Expense: {summary.total_expense:.2f}")
    click.echo(f"Balance: {summary.balance:.2f}")


@main.command()
@click.option('--type', 'tx_type', default=EXPENSE, type=click.Choice(TRANSACTION_TYPES))
@click.pass_context
def categories(ctx, tx_type):
    """Show amounts per category, largest first."""
    try:
        breakdown = category_breakdown(_store(ctx), tx_type)
    except StorageError as exc:
        _fail(exc)
    if not breakdown:
        click.echo(f"No {tx_type} records.")
        return
    for name, amount in sorted_breakdown(breakdown):
        click.echo(f"{name}: {amount:.2f}")


@main.command()
@click.pass_context
def daily(ctx):
    """Show records grouped by date with each day's expense total."""
    try:
        groups = daily_breakdown(_store(ctx))
    except StorageError as exc:
        _fail(exc)
    for day, group in groups.items():
        click.echo(f"{day}  expense {group.expense_total:.2f}")
        for tx in group.records:
            click.echo("  " + _format_row(tx))


@main.command(name='import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_cmd(ctx, path):
    """Append transactions from a YAML file."""
    try:
        entries = load_manual_transactions(path)
    except (ValueError, yaml.YAMLError) as exc:
        raise click.ClickException(f"Error loading {path}: {exc}")
    try:
        ids = import_transactions(_store(ctx), entries)
    except (ValidationError, StorageError) as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Imported {len(ids)} transaction(s).")


@main.command()
@click.option(
    '--output', 'output_format',
    default='csv',
    help='Output module name from config output_modules'
)
@click.pass_context
def export(ctx, output_format):
    """Write the ledger through a configured output module."""
    cfg = ctx.obj['config']
    try:
        outputter = get_output(output_format, cfg)
    except KeyError as exc:
        raise click.BadParameter(str(exc.args[0]), param_hint='--output')
    try:
        path = outputter.write(_store(ctx).list())
    except StorageError as exc:
        _fail(exc)
    click.echo(f"Exported ledger to {path}.")


@main.command()
@click.pass_context
def advice(ctx):
    """Ask an LLM for savings advice based on the ledger."""
    try:
        report = generate_advice(_store(ctx))
    except StorageError as exc:
        _fail(exc)
    click.echo(report)


@main.command(name='init-config')
@click.argument('path', type=click.Path(dir_okay=False))
def init_config(path):
    """Write a default config file if none exists at PATH."""
    ensure_config_file(path)
    click.echo(f"Config ready at {path}.")
