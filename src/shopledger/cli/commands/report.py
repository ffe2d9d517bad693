"""Reconciliation report commands."""

import click

from shopledger.cli.commands.opening import echo_balances
from shopledger.cli.date_filters import period_options, resolve_cli_date_range
from shopledger.cli.error_handling import format_money, handle_domain_error
from shopledger.cli.services import get_services
from shopledger.domain.entities import DailyReport, FlowSummary
from shopledger.domain.errors import DomainError
from shopledger.utils.date_parser import parse_date


@click.group()
def report_group():
    """Daily, range and timeline reports."""
    pass


def _echo_flows(title: str, summary: FlowSummary) -> None:
    click.echo(
        f"{title:12s} count {summary.count:3d} | cash {format_money(summary.cash):>12s} | "
        f"bank {format_money(summary.bank_transfer):>12s} | total {format_money(summary.total):>12s}"
    )


def _echo_daily(report: DailyReport) -> None:
    click.echo(f"\nDaily report {report.date.isoformat()}")
    click.echo("=" * 70)
    echo_balances("Opening balance", report.opening_balance)
    for txn in report.opening_balance_additions:
        click.echo(f"  + addition {txn.account_key:10s} {format_money(txn.amount):>14s} {txn.description or ''}")
    for txn in report.opening_balance_corrections:
        click.echo(f"  ~ correction {txn.account_key:8s} {format_money(txn.amount):>14s} {txn.description or ''}")
    _echo_flows("Sales", report.sales)
    _echo_flows("Purchases", report.purchases)
    _echo_flows("Expenses", report.expenses)
    echo_balances("Closing balance", report.closing_balance)


@report_group.command("daily")
@click.argument("date", required=False, default="today")
@click.pass_context
def daily_report(ctx, date: str):
    """Reconcile a single DATE (default today)."""
    services = get_services(ctx)
    try:
        on_date = parse_date(date)
    except ValueError as e:
        handle_domain_error(ctx, e)
    _echo_daily(services.engine.compute_daily_report(on_date))


@report_group.command("range")
@period_options
@click.option("--daily", "show_daily", is_flag=True, help="Also print every daily report")
@click.pass_context
def range_report(ctx, start_date, end_date, show_daily: bool, **period_flags):
    """Summarize a range of dates (default today)."""
    services = get_services(ctx)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    try:
        report = services.ranges.compute_range_report(start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if show_daily:
        for daily in report.daily_reports:
            _echo_daily(daily)

    summary = report.summary
    click.echo(f"\nRange {start.isoformat()} to {end.isoformat()} ({len(report.daily_reports)} days)")
    click.echo("=" * 70)
    echo_balances("Opening balance", summary.opening_balance)
    click.echo(f"Sales       {summary.sales_count:4d} {format_money(summary.sales_total):>14s}")
    click.echo(f"Purchases   {summary.purchases_count:4d} {format_money(summary.purchases_total):>14s}")
    click.echo(f"Expenses    {summary.expenses_count:4d} {format_money(summary.expenses_total):>14s}")
    click.echo(f"Additions        {format_money(summary.additions_total):>14s}")
    echo_balances("Closing balance", summary.closing_balance)
    click.echo(f"Net change: {format_money(summary.net_change)}")


@report_group.command("timeline")
@period_options
@click.pass_context
def timeline_report(ctx, start_date, end_date, **period_flags):
    """List every balance movement in time order (default today)."""
    services = get_services(ctx)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    try:
        rows = services.timeline.build_timeline(start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not rows:
        click.echo("No balance movements found.")
        return

    for row in rows:
        account = row.bank_label or "Cash"
        click.echo(
            f"{row.timestamp:%Y-%m-%d %H:%M} | {row.type:7s} | {account:20s} | "
            f"{format_money(row.before_balance):>12s} -> {format_money(row.after_balance):>12s} "
            f"({format_money(row.amount):>12s}) | {row.description}"
        )


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
