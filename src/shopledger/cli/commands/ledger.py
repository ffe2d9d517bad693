"""Ledger inspection commands."""

import click

from shopledger.cli.date_filters import period_options, resolve_cli_date_range
from shopledger.cli.error_handling import format_money, handle_domain_error
from shopledger.cli.services import get_services
from shopledger.domain.errors import DomainError
from shopledger.utils.account_resolver import resolve_account_spec


@click.group()
def ledger_group():
    """Inspect the balance transaction ledger."""
    pass


@ledger_group.command("list")
@period_options
@click.option("--account", help="'cash' or a bank ID, number or label")
@click.pass_context
def list_ledger(ctx, start_date, end_date, account: str | None, **period_flags):
    """List balance transactions (default today)."""
    services = get_services(ctx)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    try:
        target = resolve_account_spec(services.registry, account) if account else None
    except DomainError as e:
        handle_domain_error(ctx, e)

    transactions = services.store.list_transactions(account=target, start_date=start, end_date=end)
    if not transactions:
        click.echo("No transactions found.")
        return

    for txn in transactions:
        click.echo(
            f"{txn.id:5d} | {txn.created_at:%Y-%m-%d %H:%M:%S} | {txn.account_key:8s} | "
            f"{txn.source.value:27s} | {format_money(txn.before_balance):>12s} "
            f"{txn.amount:>+12,.2f} = {format_money(txn.after_balance):>12s}"
        )


@ledger_group.command("verify")
@click.option("--account", help="'cash' or a bank ID, number or label")
@click.pass_context
def verify_ledger(ctx, account: str | None):
    """Check that every transaction continues from the one before it."""
    services = get_services(ctx)
    try:
        target = resolve_account_spec(services.registry, account) if account else None
    except DomainError as e:
        handle_domain_error(ctx, e)

    breaks = services.store.verify_chain(account=target)
    if not breaks:
        click.echo("Ledger is consistent.")
        return

    for item in breaks:
        click.echo(
            f"{item.account_key}: transaction {item.transaction_id} starts at "
            f"{format_money(item.actual_before)}, expected {format_money(item.expected_before)} "
            f"(after transaction {item.previous_id})",
            err=True,
        )
    ctx.exit(1)


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(ledger_group, name="ledger")
