"""Sale, purchase and expense recording commands."""

import click

from shopledger.cli.error_handling import format_money, handle_domain_error
from shopledger.cli.services import get_services
from shopledger.domain.entities import BusinessRecord, RecordKind
from shopledger.utils.account_resolver import build_payments
from shopledger.utils.date_parser import parse_datetime


def payment_options(command):
    """Add repeatable --cash and --bank payment options to a command."""
    command = click.option(
        "--bank",
        multiple=True,
        metavar="BANK=AMOUNT",
        help="Bank transfer payment; BANK is an ID, account number or label (repeatable)",
    )(command)
    command = click.option("--cash", multiple=True, metavar="AMOUNT", help="Cash payment (repeatable)")(
        command
    )
    command = click.option(
        "--at", "at", help="When the payment was made (e.g. '2024-01-15 14:30'; default now)"
    )(command)
    return command


def echo_record(record: BusinessRecord) -> None:
    click.echo(f"{record.kind.value.capitalize()} {record.id} on {record.business_date.isoformat()}")
    for line in record.payment_lines:
        target = "cash" if line.bank_account_id is None else f"bank {line.bank_account_id}"
        click.echo(f"  #{line.position} {target:10s} {format_money(line.amount):>14s}")
    click.echo(f"  Total paid: {format_money(record.paid_total)}")


def _record_command(kind: RecordKind):
    @click.command(kind.value, help=f"Record a {kind.value} and post its payments to the ledger.")
    @payment_options
    @click.option("--reference", help="Bill number, supplier invoice or expense category")
    @click.option("--description", help="Free text description")
    @click.pass_context
    def command(ctx, cash, bank, at, reference, description):
        services = get_services(ctx)
        try:
            payments = build_payments(services.registry, cash, bank)
            occurred_at = parse_datetime(at) if at else None
            recorder = getattr(services.payments, f"record_{kind.value}")
            record = recorder(
                payments, reference=reference, description=description, occurred_at=occurred_at
            )
        except ValueError as e:
            handle_domain_error(ctx, e)
        echo_record(record)

    return command


sale = _record_command(RecordKind.SALE)
purchase = _record_command(RecordKind.PURCHASE)
expense = _record_command(RecordKind.EXPENSE)


def register_commands(cli):
    """Register sale, purchase and expense commands with main CLI."""
    cli.add_command(sale)
    cli.add_command(purchase)
    cli.add_command(expense)
