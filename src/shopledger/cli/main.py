"""Main CLI entry point."""

import click

from shopledger.config import LOG_LEVELS, load_settings
from shopledger.database.factories import DB_PATH_ENV, create_sqlite_database
from shopledger.logging_config import setup_logging

# Import and register all commands at module level
from shopledger.cli.commands import account, ledger, opening, payment, record, report


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help=f"Path to database file (overrides {DB_PATH_ENV} environment variable)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Log level (overrides SHOPLEDGER_LOG_LEVEL environment variable)",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """Shopledger - cash and bank balance ledger for a retail shop.

    Records every payment against the cash drawer or a bank account, carries
    balances forward day to day and reconciles each day's opening and closing.
    """
    ctx.ensure_object(dict)

    try:
        settings = load_settings().with_overrides(
            db_path=db_path, log_level=log_level.upper() if log_level else None
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    setup_logging(settings.log_level)
    ctx.obj["settings"] = settings

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=settings.db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
record.register_commands(cli)
payment.register_commands(cli)
opening.register_commands(cli)
report.register_commands(cli)
ledger.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
