"""Commands for adding payments to existing records."""

import click

from shopledger.cli.commands.record import echo_record, payment_options
from shopledger.cli.error_handling import handle_domain_error
from shopledger.cli.services import get_services
from shopledger.utils.account_resolver import build_payments
from shopledger.utils.date_parser import parse_datetime


@click.group()
def payment_group():
    """Manage payments of sales, purchases and expenses."""
    pass


@payment_group.command("add")
@click.argument("record_id", type=int, metavar="RECORD_ID")
@payment_options
@click.pass_context
def add_payment(ctx, record_id: int, cash, bank, at):
    """Add one payment to an existing record.

    Examples:
        shopledger payment add 12 --cash 250
        shopledger payment add 12 --bank 1=250 --at "2024-01-16 10:00"
    """
    services = get_services(ctx)
    try:
        payments = build_payments(services.registry, cash, bank)
        if len(payments) != 1:
            raise ValueError("Specify exactly one --cash or --bank payment")
        occurred_at = parse_datetime(at) if at else None
        record = services.payments.add_payment(record_id, payments[0], occurred_at=occurred_at)
    except ValueError as e:
        handle_domain_error(ctx, e)
    echo_record(record)


def register_commands(cli):
    """Register payment commands with main CLI."""
    cli.add_command(payment_group, name="payment")
