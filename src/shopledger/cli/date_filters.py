"""CLI helpers for date range resolution."""

from datetime import date
from typing import Callable

import click

from shopledger.utils.date_parser import get_date_range, parse_date

PERIOD_FLAGS = ["this-week", "last-week", "this-month", "last-month", "this-year"]


def period_options(command: Callable) -> Callable:
    """Add --start-date, --end-date and the period flags to a command.

    The flags reach the command as keyword arguments such as ``this_week``.
    """
    for period in reversed(PERIOD_FLAGS):
        command = click.option(
            f"--{period}", is_flag=True, help=f"Limit to {period.replace('-', ' ')}"
        )(command)
    command = click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")(command)
    command = click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'this month')")(command)
    return command


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
    today: date | None = None,
) -> tuple[date, date]:
    """Resolve CLI date range from period flags or explicit dates.

    A missing start date defaults to the end date and a missing end date to
    today, so no options at all means "today".
    """
    selected = [name for name, is_set in period_flags.items() if is_set]

    if len(selected) > 1:
        flags = ", ".join(f"--{p}" for p in PERIOD_FLAGS)
        click.echo(f"Error: Only one period option ({flags}) can be specified at a time.", err=True)
        ctx.exit(1)

    if selected and (start_date or end_date):
        click.echo(
            "Error: Period options (--this-week, --this-month, etc.) cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    today = today or date.today()
    if selected:
        return get_date_range(selected[0].replace("_", "-"), today=today)

    start = end = None
    if end_date:
        try:
            end = parse_date(end_date, today=today)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)
    if start_date:
        try:
            start = parse_date(start_date, today=today)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    end = end or today
    start = start or end
    return start, end
