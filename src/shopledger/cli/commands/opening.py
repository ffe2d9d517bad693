"""Opening balance commands."""

import click

from shopledger.cli.error_handling import format_money, handle_domain_error
from shopledger.cli.services import get_services
from shopledger.domain.entities import BalanceMode, OpeningBalance
from shopledger.utils.account_resolver import resolve_account_spec
from shopledger.utils.date_parser import parse_date, parse_datetime
from shopledger.utils.amount_parser import parse_amount


@click.group()
def opening_group():
    """View and adjust opening balances."""
    pass


def echo_balances(title: str, balance) -> None:
    click.echo(f"{title}:")
    click.echo(f"  {'Cash':30s} {format_money(balance.cash):>14s}")
    for bank in balance.bank_balances:
        name = f"{bank.bank_name} ({bank.account_number})"
        click.echo(f"  {name:30s} {format_money(bank.balance):>14s}")
    click.echo(f"  {'Total':30s} {format_money(balance.total):>14s}")


def _echo_opening(opening: OpeningBalance) -> None:
    origin = "explicit" if opening.is_explicit else "carried forward"
    echo_balances(f"Opening balance {opening.date.isoformat()} ({origin})", opening)
    if opening.notes:
        click.echo(f"Notes: {opening.notes}")


@opening_group.command("show")
@click.argument("date", required=False, default="today")
@click.pass_context
def show_opening(ctx, date: str):
    """Show the opening balance of DATE (default today)."""
    services = get_services(ctx)
    try:
        on_date = parse_date(date)
    except ValueError as e:
        handle_domain_error(ctx, e)
    _echo_opening(services.opening.get_opening_balance(on_date))


def _apply_command(mode: BalanceMode, help_text: str):
    @opening_group.command(mode.value, help=help_text)
    @click.argument("date")
    @click.argument("amount")
    @click.option("--account", default="cash", show_default=True, help="'cash' or a bank ID, number or label")
    @click.option("--note", help="Note stored with the opening balance")
    @click.option("--at", "at", help="Time of the entry on DATE (e.g. '09:00')")
    @click.pass_context
    def command(ctx, date: str, amount: str, account: str, note: str | None, at: str | None):
        services = get_services(ctx)
        try:
            on_date = parse_date(date)
            target = resolve_account_spec(services.registry, account)
            occurred_at = parse_datetime(at, on_date=on_date) if at else None
            opening = services.opening.apply_addition(
                on_date,
                target.payment_type,
                parse_amount(amount),
                mode=mode,
                bank_account_id=target.bank_account_id,
                description=note,
                occurred_at=occurred_at,
            )
        except ValueError as e:
            handle_domain_error(ctx, e)
        _echo_opening(opening)

    return command


_apply_command(BalanceMode.ADD, "Add AMOUNT to an account's balance on DATE.")
_apply_command(BalanceMode.SET, "Set an account's balance on DATE to AMOUNT (recorded as a correction).")


@opening_group.command("list")
@click.option("--start-date", help="First date")
@click.option("--end-date", help="Last date")
@click.pass_context
def list_openings(ctx, start_date: str | None, end_date: str | None):
    """List dates with explicitly stored opening balances."""
    services = get_services(ctx)
    try:
        start = parse_date(start_date) if start_date else None
        end = parse_date(end_date) if end_date else None
    except ValueError as e:
        handle_domain_error(ctx, e)

    rows = services.opening.list_opening_balances(start, end)
    if not rows:
        click.echo("No explicit opening balances found.")
        return
    for row in rows:
        cash = format_money(row.cash_balance) if row.cash_balance is not None else "-"
        banks = ", ".join(f"{bid}: {format_money(v)}" for bid, v in sorted(row.bank_balances.items()))
        click.echo(f"{row.date.isoformat()} | cash {cash} | banks {banks or '-'} | {row.notes or ''}")


def register_commands(cli):
    """Register opening balance commands with main CLI."""
    cli.add_command(opening_group, name="opening")
